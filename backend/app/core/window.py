from __future__ import annotations

from datetime import datetime, timedelta, timezone

from app.domain.enums import BoosterKind, SubmissionWindow

DEFAULT_BASE_LOCK = timedelta(minutes=60)
DEFAULT_EXTENDED_LOCK = timedelta(minutes=15)


def as_utc(value: datetime) -> datetime:
    """Return ``value`` as an aware UTC datetime; naive values are taken as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def classify_window(
    now: datetime,
    start_time: datetime,
    has_existing_prediction: bool,
    *,
    base_lock: timedelta = DEFAULT_BASE_LOCK,
    extended_lock: timedelta = DEFAULT_EXTENDED_LOCK,
) -> SubmissionWindow:
    """Classify a submission made at ``now`` for a match kicking off at ``start_time``.

    Each boundary instant belongs to the stricter state: the extended window
    starts exactly at ``start - base_lock``, the late window exactly at
    ``start - extended_lock`` and the match is closed from ``start`` onwards.
    """
    now_utc = as_utc(now)
    start_utc = as_utc(start_time)

    if now_utc >= start_utc:
        return SubmissionWindow.CLOSED
    if now_utc >= start_utc - extended_lock:
        if has_existing_prediction:
            return SubmissionWindow.LATE_NEEDS_BOOSTER
        return SubmissionWindow.LATE_INSERT_REJECTED
    if now_utc >= start_utc - base_lock:
        if has_existing_prediction:
            return SubmissionWindow.EXTENDED_UPDATE_NEEDS_BOOSTER
        return SubmissionWindow.EXTENDED_INSERT_NEEDS_BOOSTER
    return SubmissionWindow.OPEN


_REQUIRED_BOOSTER: dict[SubmissionWindow, BoosterKind] = {
    SubmissionWindow.EXTENDED_INSERT_NEEDS_BOOSTER: BoosterKind.O_ESQUECIDO,
    SubmissionWindow.EXTENDED_UPDATE_NEEDS_BOOSTER: BoosterKind.SEGUNDA_CHANCE,
    SubmissionWindow.LATE_NEEDS_BOOSTER: BoosterKind.SEGUNDA_CHANCE,
}


def required_booster(state: SubmissionWindow) -> BoosterKind | None:
    return _REQUIRED_BOOSTER.get(state)


def is_rejected(state: SubmissionWindow) -> bool:
    return state in {SubmissionWindow.CLOSED, SubmissionWindow.LATE_INSERT_REJECTED}


def outcome_sign(home_pred: int, away_pred: int) -> int:
    """1 for a home win, -1 for an away win, 0 for a draw."""
    if home_pred > away_pred:
        return 1
    if home_pred < away_pred:
        return -1
    return 0
