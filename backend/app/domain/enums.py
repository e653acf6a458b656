from enum import StrEnum


class SubmissionWindow(StrEnum):
    OPEN = "OPEN"
    EXTENDED_INSERT_NEEDS_BOOSTER = "EXTENDED_INSERT_NEEDS_BOOSTER"
    EXTENDED_UPDATE_NEEDS_BOOSTER = "EXTENDED_UPDATE_NEEDS_BOOSTER"
    LATE_NEEDS_BOOSTER = "LATE_NEEDS_BOOSTER"
    LATE_INSERT_REJECTED = "LATE_INSERT_REJECTED"
    CLOSED = "CLOSED"


class BoosterKind(StrEnum):
    SEGUNDA_CHANCE = "segunda_chance"
    O_ESQUECIDO = "o_esquecido"


class ActivationScope(StrEnum):
    MATCH = "match"
    GLOBAL = "global"


class ActivationStatus(StrEnum):
    ACTIVE = "active"
    EXPIRED = "expired"


class PredictionStatus(StrEnum):
    ACTIVE = "active"
    SUPERSEDED = "superseded"


class UsageStatus(StrEnum):
    CONSUMED = "consumed"


class PoolLookup(StrEnum):
    BY_ID = "BY_ID"
    BY_CODE = "BY_CODE"
    NOT_FOUND = "NOT_FOUND"


class MaintenanceRunType(StrEnum):
    EXPIRE_BOOSTERS = "expire_boosters"
    PURGE_IDEMPOTENCY = "purge_idempotency"
    CYCLE = "cycle"
