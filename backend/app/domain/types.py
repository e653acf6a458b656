from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from app.domain.enums import BoosterKind, PoolLookup
from app.domain.errors import InvalidPayload

# Scores are stored in a 32-bit INTEGER column.
MAX_SCORE = 2**31 - 1


def _coerce_score(value: Any, field: str) -> int:
    if isinstance(value, bool) or value is None:
        raise InvalidPayload(f"{field} must be a non-negative integer")
    if isinstance(value, int):
        score = value
    elif isinstance(value, float):
        if not value.is_integer():
            raise InvalidPayload(f"{field} must be a non-negative integer")
        score = int(value)
    elif isinstance(value, str) and value.strip().isdecimal():
        digits = value.strip().lstrip("0") or "0"
        if len(digits) > len(str(MAX_SCORE)):
            raise InvalidPayload(f"{field} must be at most {MAX_SCORE}")
        score = int(digits)
    else:
        raise InvalidPayload(f"{field} must be a non-negative integer")
    if score < 0:
        raise InvalidPayload(f"{field} must be a non-negative integer")
    if score > MAX_SCORE:
        raise InvalidPayload(f"{field} must be at most {MAX_SCORE}")
    return score


def parse_match_id(payload: Any) -> str:
    if not isinstance(payload, dict):
        raise InvalidPayload("Invalid payload")
    match_id = payload.get("matchId")
    if not isinstance(match_id, str) or not match_id.strip():
        raise InvalidPayload("matchId is required")
    return match_id.strip()


@dataclass(frozen=True, slots=True)
class PredictionRequest:
    match_id: str
    home_pred: int
    away_pred: int

    def __post_init__(self) -> None:
        if not self.match_id.strip():
            raise InvalidPayload("matchId must not be empty")
        if self.home_pred < 0 or self.away_pred < 0:
            raise InvalidPayload("predictions must be non-negative")

    @classmethod
    def from_payload(cls, payload: Any) -> PredictionRequest:
        match_id = parse_match_id(payload)
        return cls(
            match_id=match_id,
            home_pred=_coerce_score(payload.get("home_pred"), "home_pred"),
            away_pred=_coerce_score(payload.get("away_pred"), "away_pred"),
        )

    def canonical(self) -> dict[str, object]:
        return {"matchId": self.match_id, "home_pred": self.home_pred, "away_pred": self.away_pred}


@dataclass(frozen=True, slots=True)
class PoolResolution:
    lookup: PoolLookup
    pool_id: str | None = None


@dataclass(frozen=True, slots=True)
class BoosterOverride:
    booster: BoosterKind
    activation_id: str
    match_scoped: bool


@dataclass(frozen=True, slots=True)
class SubmissionResult:
    status_code: int
    body: dict[str, object]
    replayed: bool = False
