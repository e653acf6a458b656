from __future__ import annotations

from datetime import datetime, timedelta, timezone

from sqlalchemy import create_engine, select
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session

from app.domain.types import PredictionRequest, SubmissionResult
from app.models import Base, IdempotencyRecord
from app.services import idempotency
from app.services.idempotency import check_replay, hash_request, purge_expired, store_result

NOW = datetime(2025, 1, 1, 12, 0, tzinfo=timezone.utc)


def _session() -> Session:
    engine = create_engine("sqlite+pysqlite:///:memory:", future=True)
    Base.metadata.create_all(engine)
    return Session(engine)


def test_request_hash_depends_only_on_relevant_fields() -> None:
    base = PredictionRequest.from_payload({"matchId": "M1", "home_pred": 2, "away_pred": 1})
    same = PredictionRequest.from_payload({"away_pred": "1", "home_pred": 2.0, "matchId": " M1 ", "note": "x"})
    other = PredictionRequest.from_payload({"matchId": "M1", "home_pred": 1, "away_pred": 2})

    assert hash_request(base) == hash_request(same)
    assert hash_request(base) != hash_request(other)
    assert len(hash_request(base)) == 64


def test_no_key_never_deduplicates() -> None:
    with _session() as session:
        assert check_replay(session, user_id="ana", key=None, request_hash="h", now=NOW) is None
        stored = store_result(
            session,
            user_id="ana",
            key=None,
            request_hash="h",
            result=SubmissionResult(200, {"ok": True}),
            now=NOW,
            ttl_hours=24,
        )
        assert stored is False
        assert session.execute(select(IdempotencyRecord)).first() is None


def test_keys_are_scoped_per_user() -> None:
    with _session() as session:
        store_result(
            session,
            user_id="ana",
            key="k",
            request_hash="h",
            result=SubmissionResult(200, {"ok": True}),
            now=NOW,
            ttl_hours=24,
        )
        replay = check_replay(session, user_id="ana", key="k", request_hash="h", now=NOW + timedelta(hours=1))
        assert replay is not None
        assert replay.replayed is True
        assert (replay.status_code, replay.body) == (200, {"ok": True})
        assert check_replay(session, user_id="bia", key="k", request_hash="other", now=NOW) is None


def test_lookup_failure_falls_back_to_normal_processing(monkeypatch) -> None:
    def broken_lookup(*_args, **_kwargs):
        raise OperationalError("SELECT", {}, Exception("relation idempotency_log does not exist"))

    monkeypatch.setattr(idempotency, "_get_record", broken_lookup)
    with _session() as session:
        assert check_replay(session, user_id="ana", key="k", request_hash="h", now=NOW) is None
        stored = store_result(
            session,
            user_id="ana",
            key="k",
            request_hash="h",
            result=SubmissionResult(200, {"ok": True}),
            now=NOW,
            ttl_hours=24,
        )
        assert stored is False


def test_purge_expired_records() -> None:
    with _session() as session:
        for key, expires_at in [("old", NOW - timedelta(hours=1)), ("new", NOW + timedelta(hours=1)), ("forever", None)]:
            session.add(
                IdempotencyRecord(
                    user_id="ana",
                    key=key,
                    request_hash="h",
                    response_json={"ok": True},
                    status_code=200,
                    expires_at=expires_at,
                )
            )
        session.commit()

        summary = purge_expired(session, NOW)

        assert summary == {"checked": 2, "deleted": 1}
        keys = sorted(session.execute(select(IdempotencyRecord.key)).scalars().all())
        assert keys == ["forever", "new"]
