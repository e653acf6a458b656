from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Any

from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.config import Settings, get_settings
from app.core.window import as_utc, classify_window, outcome_sign, required_booster
from app.domain.enums import PredictionStatus, SubmissionWindow
from app.domain.errors import PersistenceError, PredictionNotFound, WindowClosed
from app.domain.types import BoosterOverride, PredictionRequest, SubmissionResult, parse_match_id
from app.models import Match, Prediction
from app.services.boosters import consume_activation, find_activation
from app.services.idempotency import check_replay, hash_request, normalize_key, store_result
from app.services.pools import load_match, resolve_pool

logger = logging.getLogger(__name__)

MARKET_1X2 = "1x2"


def get_active_prediction(session: Session, match_id: str, user_id: str) -> Prediction | None:
    return session.execute(
        select(Prediction).where(
            Prediction.match_id == match_id,
            Prediction.user_id == user_id,
            Prediction.status == PredictionStatus.ACTIVE.value,
        )
    ).scalar_one_or_none()


def write_prediction(session: Session, request: PredictionRequest, user_id: str) -> Prediction:
    """Stage an insert or in-place update of the (match, user) prediction."""
    prediction = session.execute(
        select(Prediction).where(Prediction.match_id == request.match_id, Prediction.user_id == user_id)
    ).scalar_one_or_none()
    if prediction is None:
        prediction = Prediction(match_id=request.match_id, user_id=user_id)
        session.add(prediction)

    prediction.home_pred = request.home_pred
    prediction.away_pred = request.away_pred
    prediction.status = PredictionStatus.ACTIVE.value
    prediction.market = MARKET_1X2
    prediction.outcome = outcome_sign(request.home_pred, request.away_pred)
    return prediction


def _reject_closed(state: SubmissionWindow) -> None:
    if state == SubmissionWindow.CLOSED:
        raise WindowClosed("Prediction window closed for this match", reason="window_closed")
    if state == SubmissionWindow.LATE_INSERT_REJECTED:
        raise WindowClosed(
            "Prediction locked (window closed for new predictions)",
            reason="window_closed_for_new_predictions",
        )


def _require_override(
    session: Session,
    state: SubmissionWindow,
    *,
    user_id: str,
    pool_id: str,
    match_id: str,
    now: datetime,
) -> BoosterOverride | None:
    booster = required_booster(state)
    if booster is None:
        return None

    override = find_activation(
        session,
        user_id=user_id,
        pool_id=pool_id,
        match_id=match_id,
        booster=booster,
        now=now,
    )
    if override is None:
        if state == SubmissionWindow.EXTENDED_INSERT_NEEDS_BOOSTER:
            raise WindowClosed(
                f"Prediction locked (need {booster.value} to insert)",
                reason="need_booster_to_insert",
            )
        raise WindowClosed(
            f"Prediction locked (need {booster.value} to update)",
            reason="need_booster_to_update",
        )
    return override


def submit_prediction(
    session: Session,
    *,
    user_id: str,
    pool_id_or_code: str,
    payload: Any,
    idempotency_key: str | None = None,
    now: datetime | None = None,
    settings: Settings | None = None,
) -> SubmissionResult:
    settings = settings or get_settings()
    now = now or datetime.now(timezone.utc)

    request = PredictionRequest.from_payload(payload)
    idempotency_key = normalize_key(idempotency_key)
    request_hash = hash_request(request)
    replay = check_replay(session, user_id=user_id, key=idempotency_key, request_hash=request_hash, now=now)
    if replay is not None:
        return replay

    pool_id = resolve_pool(session, user_id, pool_id_or_code)
    match = load_match(session, request.match_id, pool_id)

    existing = get_active_prediction(session, match.id, user_id)
    state = classify_window(
        now,
        match.start_time,
        existing is not None,
        base_lock=timedelta(minutes=settings.base_lock_minutes),
        extended_lock=timedelta(minutes=settings.extended_lock_minutes),
    )
    _reject_closed(state)
    override = _require_override(session, state, user_id=user_id, pool_id=pool_id, match_id=match.id, now=now)

    # Prediction, usage row and activation expiry commit together.
    try:
        if override is not None:
            consume_activation(session, override, pool_id=pool_id, user_id=user_id, match_id=match.id)
        write_prediction(session, request, user_id)
        session.commit()
    except WindowClosed:
        session.rollback()
        raise
    except SQLAlchemyError as exc:
        session.rollback()
        logger.exception("Failed to persist prediction for user %s on match %s", user_id, match.id)
        raise PersistenceError("Could not save prediction") from exc

    result = SubmissionResult(status_code=200, body={"ok": True})
    store_result(
        session,
        user_id=user_id,
        key=idempotency_key,
        request_hash=request_hash,
        result=result,
        now=now,
        ttl_hours=settings.idempotency_ttl_hours,
    )
    return result


def undo_prediction(
    session: Session,
    *,
    user_id: str,
    pool_id_or_code: str,
    payload: Any,
    now: datetime | None = None,
) -> SubmissionResult:
    """Withdraw the caller's active prediction for a match without deleting it.

    The row is marked superseded, so a later submission for the same match is
    classified as an insert. Withdrawing is refused once the match has started.
    """
    now = now or datetime.now(timezone.utc)
    match_id = parse_match_id(payload)
    pool_id = resolve_pool(session, user_id, pool_id_or_code)
    match = load_match(session, match_id, pool_id)
    if as_utc(now) >= as_utc(match.start_time):
        raise WindowClosed("Prediction window closed for this match", reason="window_closed")

    try:
        result = session.execute(
            update(Prediction)
            .where(
                Prediction.match_id == match.id,
                Prediction.user_id == user_id,
                Prediction.status == PredictionStatus.ACTIVE.value,
            )
            .values(status=PredictionStatus.SUPERSEDED.value)
        )
        undone = result.rowcount > 0
        if undone:
            session.commit()
        else:
            session.rollback()
    except SQLAlchemyError as exc:
        session.rollback()
        logger.exception("Failed to undo prediction for user %s on match %s", user_id, match.id)
        raise PersistenceError("Could not undo prediction") from exc

    if not undone:
        raise PredictionNotFound("Prediction not found")
    logger.info("User %s withdrew prediction on match %s", user_id, match.id)
    return SubmissionResult(status_code=200, body={"ok": True})


def list_predictions(session: Session, *, user_id: str, pool_id: str) -> list[dict[str, object]]:
    rows = session.execute(
        select(Prediction, Match)
        .join(Match, Prediction.match_id == Match.id)
        .where(
            Match.pool_id == pool_id,
            Prediction.user_id == user_id,
            Prediction.status == PredictionStatus.ACTIVE.value,
        )
        .order_by(Match.start_time.asc(), Match.id.asc())
    ).all()
    return [
        {
            "match_id": match.id,
            "home_team": match.home_team,
            "away_team": match.away_team,
            "start_time": match.start_time,
            "home_pred": prediction.home_pred,
            "away_pred": prediction.away_pred,
            "outcome": prediction.outcome,
            "market": prediction.market,
            "updated_at": prediction.updated_at,
        }
        for prediction, match in rows
    ]
