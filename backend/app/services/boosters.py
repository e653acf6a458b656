from __future__ import annotations

import logging
from datetime import datetime, timedelta

from sqlalchemy import or_, select, update
from sqlalchemy.orm import Session

from app.core.window import as_utc
from app.domain.enums import ActivationScope, ActivationStatus, BoosterKind, UsageStatus
from app.domain.errors import InvalidBooster, InvalidPayload, WindowClosed
from app.domain.types import BoosterOverride
from app.models import BoosterActivation, BoosterUsage
from app.services.pools import load_match, resolve_pool

logger = logging.getLogger(__name__)


_BOOSTER_ALIASES = {
    "second_chance": BoosterKind.SEGUNDA_CHANCE.value,
    "forgotten": BoosterKind.O_ESQUECIDO.value,
}


def parse_booster(value: object) -> BoosterKind:
    key = str(value).strip().lower()
    try:
        return BoosterKind(_BOOSTER_ALIASES.get(key, key))
    except ValueError as exc:
        raise InvalidBooster(f"unknown booster '{value}'") from exc


def _is_valid(activation: BoosterActivation, now: datetime) -> bool:
    return activation.expires_at is None or as_utc(activation.expires_at) > as_utc(now)


def _active_candidates(
    session: Session,
    *,
    user_id: str,
    pool_id: str,
    booster: BoosterKind,
    match_condition,
) -> list[BoosterActivation]:
    stmt = (
        select(BoosterActivation)
        .where(
            BoosterActivation.user_id == user_id,
            BoosterActivation.booster_id == booster.value,
            BoosterActivation.status == ActivationStatus.ACTIVE.value,
            or_(BoosterActivation.pool_id == pool_id, BoosterActivation.pool_id.is_(None)),
            match_condition,
        )
        .order_by(BoosterActivation.created_at.asc(), BoosterActivation.id.asc())
    )
    return list(session.execute(stmt).scalars().all())


def find_activation(
    session: Session,
    *,
    user_id: str,
    pool_id: str,
    match_id: str,
    booster: BoosterKind,
    now: datetime,
) -> BoosterOverride | None:
    """Pick the activation that lets ``user_id`` use ``booster`` on ``match_id``.

    An activation bound to this match wins over a global one. Either kind must
    be active, belong to this pool or to no pool, and not be past its expiry.
    """
    for match_condition, match_scoped in (
        (BoosterActivation.match_id == match_id, True),
        (BoosterActivation.match_id.is_(None), False),
    ):
        candidates = _active_candidates(
            session,
            user_id=user_id,
            pool_id=pool_id,
            booster=booster,
            match_condition=match_condition,
        )
        for activation in candidates:
            if _is_valid(activation, now):
                return BoosterOverride(booster=booster, activation_id=activation.id, match_scoped=match_scoped)
    return None


def consume_activation(
    session: Session,
    override: BoosterOverride,
    *,
    pool_id: str,
    user_id: str,
    match_id: str,
) -> BoosterUsage:
    """Stage the usage row and, for a match-bound activation, expire it.

    The caller owns the transaction. Expiry only applies to a row that is still
    active, so when two requests race on the same activation the loser sees
    zero affected rows and is rejected before anything is written.
    """
    if override.match_scoped:
        result = session.execute(
            update(BoosterActivation)
            .where(
                BoosterActivation.id == override.activation_id,
                BoosterActivation.match_id == match_id,
                BoosterActivation.status == ActivationStatus.ACTIVE.value,
            )
            .values(status=ActivationStatus.EXPIRED.value)
        )
        if result.rowcount == 0:
            raise WindowClosed(
                f"Prediction locked (booster {override.booster.value} already consumed)",
                reason="booster_already_consumed",
            )

    usage = BoosterUsage(
        pool_id=pool_id,
        user_id=user_id,
        match_id=match_id,
        booster_id=override.booster.value,
        activation_id=override.activation_id,
        status=UsageStatus.CONSUMED.value,
    )
    session.add(usage)
    logger.info(
        "Consumed booster %s (activation %s) for user %s on match %s",
        override.booster.value,
        override.activation_id,
        user_id,
        match_id,
    )
    return usage


def activate_booster(
    session: Session,
    *,
    user_id: str,
    booster_id: object,
    pool_id_or_code: str | None,
    match_id: str | None,
    now: datetime,
    duration_days: int,
) -> BoosterActivation:
    booster = parse_booster(booster_id)
    pool_id = resolve_pool(session, user_id, pool_id_or_code) if pool_id_or_code else None

    if match_id:
        if pool_id is None:
            raise InvalidPayload("poolId is required to activate a booster for a match")
        match = load_match(session, match_id, pool_id)
        existing = _active_candidates(
            session,
            user_id=user_id,
            pool_id=pool_id,
            booster=booster,
            match_condition=BoosterActivation.match_id == match.id,
        )
        if existing:
            return existing[0]
        activation = BoosterActivation(
            user_id=user_id,
            booster_id=booster.value,
            scope=ActivationScope.MATCH.value,
            match_id=match.id,
            pool_id=pool_id,
            expires_at=as_utc(match.start_time) if match.start_time is not None else None,
            status=ActivationStatus.ACTIVE.value,
        )
        session.add(activation)
        session.commit()
        return activation

    duration = timedelta(days=duration_days)
    pool_condition = BoosterActivation.pool_id.is_(None) if pool_id is None else BoosterActivation.pool_id == pool_id
    current = session.execute(
        select(BoosterActivation)
        .where(
            BoosterActivation.user_id == user_id,
            BoosterActivation.booster_id == booster.value,
            BoosterActivation.status == ActivationStatus.ACTIVE.value,
            BoosterActivation.match_id.is_(None),
            pool_condition,
        )
        .order_by(BoosterActivation.created_at.desc(), BoosterActivation.id.desc())
        .limit(1)
    ).scalars().first()

    if current is not None:
        if current.expires_at is not None:
            current.expires_at = max(as_utc(current.expires_at), as_utc(now)) + duration
        session.commit()
        return current

    activation = BoosterActivation(
        user_id=user_id,
        booster_id=booster.value,
        scope=ActivationScope.GLOBAL.value,
        match_id=None,
        pool_id=pool_id,
        expires_at=as_utc(now) + duration,
        status=ActivationStatus.ACTIVE.value,
    )
    session.add(activation)
    session.commit()
    return activation


def list_active_activations(
    session: Session,
    *,
    user_id: str,
    pool_id: str | None,
    now: datetime,
) -> list[dict[str, object]]:
    stmt = (
        select(BoosterActivation)
        .where(
            BoosterActivation.user_id == user_id,
            BoosterActivation.status == ActivationStatus.ACTIVE.value,
        )
        .order_by(BoosterActivation.created_at.asc(), BoosterActivation.id.asc())
    )
    if pool_id is not None:
        stmt = stmt.where(or_(BoosterActivation.pool_id == pool_id, BoosterActivation.pool_id.is_(None)))

    rows = session.execute(stmt).scalars().all()
    return [
        {
            "id": row.id,
            "booster_id": row.booster_id,
            "scope": row.scope,
            "match_id": row.match_id,
            "pool_id": row.pool_id,
            "expires_at": row.expires_at,
            "status": row.status,
        }
        for row in rows
        if _is_valid(row, now)
    ]


def expire_stale_activations(session: Session, now: datetime) -> dict[str, int]:
    rows = session.execute(
        select(BoosterActivation).where(
            BoosterActivation.status == ActivationStatus.ACTIVE.value,
            BoosterActivation.expires_at.is_not(None),
        )
    ).scalars().all()

    summary = {"checked": len(rows), "expired": 0}
    for row in rows:
        if not _is_valid(row, now):
            row.status = ActivationStatus.EXPIRED.value
            summary["expired"] += 1
    session.commit()
    return summary
