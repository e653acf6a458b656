from __future__ import annotations

import hashlib
import json
import logging
from datetime import datetime, timedelta

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.window import as_utc
from app.domain.errors import IdempotencyConflict, InvalidPayload
from app.domain.types import PredictionRequest, SubmissionResult
from app.models import IDEMPOTENCY_KEY_MAX_LENGTH, IdempotencyRecord

logger = logging.getLogger(__name__)


def hash_request(request: PredictionRequest) -> str:
    payload = json.dumps(request.canonical(), sort_keys=True, separators=(",", ":"))
    return hashlib.sha256(payload.encode("utf-8")).hexdigest()


def normalize_key(key: str | None) -> str | None:
    if key is None or not key.strip():
        return None
    key = key.strip()
    if len(key) > IDEMPOTENCY_KEY_MAX_LENGTH:
        raise InvalidPayload(f"Idempotency-Key must be at most {IDEMPOTENCY_KEY_MAX_LENGTH} characters")
    return key


def _is_live(record: IdempotencyRecord, now: datetime) -> bool:
    return record.expires_at is None or as_utc(record.expires_at) > as_utc(now)


def _get_record(session: Session, user_id: str, key: str) -> IdempotencyRecord | None:
    return session.execute(
        select(IdempotencyRecord).where(IdempotencyRecord.user_id == user_id, IdempotencyRecord.key == key)
    ).scalar_one_or_none()


def check_replay(
    session: Session,
    *,
    user_id: str,
    key: str | None,
    request_hash: str,
    now: datetime,
) -> SubmissionResult | None:
    """Return the stored result for a replayed key, or ``None`` to run the request.

    A store failure during the lookup only disables deduplication for this
    request; it never blocks the submission itself.
    """
    if not key:
        return None

    try:
        record = _get_record(session, user_id, key)
    except SQLAlchemyError:
        logger.warning("Idempotency lookup failed for user %s; continuing without dedup", user_id, exc_info=True)
        session.rollback()
        return None

    if record is None or not _is_live(record, now):
        return None
    if record.request_hash != request_hash:
        raise IdempotencyConflict("Idempotency-Key reuse with different payload")
    return SubmissionResult(status_code=record.status_code, body=dict(record.response_json), replayed=True)


def store_result(
    session: Session,
    *,
    user_id: str,
    key: str | None,
    request_hash: str,
    result: SubmissionResult,
    now: datetime,
    ttl_hours: int,
) -> bool:
    if not key:
        return False

    expires_at = as_utc(now) + timedelta(hours=ttl_hours)
    try:
        record = _get_record(session, user_id, key)
        if record is None:
            session.add(
                IdempotencyRecord(
                    user_id=user_id,
                    key=key,
                    request_hash=request_hash,
                    response_json=result.body,
                    status_code=result.status_code,
                    expires_at=expires_at,
                )
            )
        else:
            record.request_hash = request_hash
            record.response_json = result.body
            record.status_code = result.status_code
            record.expires_at = expires_at
        session.commit()
    except SQLAlchemyError:
        session.rollback()
        logger.warning("Could not record idempotency key for user %s", user_id, exc_info=True)
        return False
    return True


def purge_expired(session: Session, now: datetime) -> dict[str, int]:
    rows = session.execute(
        select(IdempotencyRecord).where(IdempotencyRecord.expires_at.is_not(None))
    ).scalars().all()
    summary = {"checked": len(rows), "deleted": 0}
    for row in rows:
        if not _is_live(row, now):
            session.delete(row)
            summary["deleted"] += 1
    session.commit()
    return summary
