from __future__ import annotations

import json
from datetime import datetime, timedelta, timezone

import pytest
from fastapi import HTTPException
from sqlalchemy import create_engine
from sqlalchemy.orm import Session

from app.api.maintenance import maintenance_run
from app.config import get_settings
from app.models import Base, BoosterActivation, IdempotencyRecord, MaintenanceRun
from app.services import maintenance

NOW = datetime(2025, 5, 1, 12, 0, tzinfo=timezone.utc)


def _session_with_stale_rows() -> Session:
    engine = create_engine("sqlite+pysqlite:///:memory:", future=True)
    Base.metadata.create_all(engine)
    session = Session(engine)
    session.add(
        BoosterActivation(
            user_id="ana",
            booster_id="segunda_chance",
            scope="global",
            expires_at=NOW - timedelta(days=1),
            status="active",
        )
    )
    session.add(
        IdempotencyRecord(
            user_id="ana",
            key="k",
            request_hash="h",
            response_json={"ok": True},
            status_code=200,
            expires_at=NOW - timedelta(hours=1),
        )
    )
    session.commit()
    return session


def test_run_cycle_runs_every_step_and_logs() -> None:
    get_settings.cache_clear()
    settings = get_settings()

    with _session_with_stale_rows() as session:
        summary = maintenance.run_cycle(session, settings, now=NOW)
        runs = session.query(MaintenanceRun).all()

        assert summary["errors_count"] == 0
        assert summary["steps"]["expire_boosters"] == {"checked": 1, "expired": 1}
        assert summary["steps"]["purge_idempotency"] == {"checked": 1, "deleted": 1}
        assert sorted(run.run_type for run in runs) == ["cycle", "expire_boosters", "purge_idempotency"]
        assert session.query(IdempotencyRecord).count() == 0
        assert session.query(BoosterActivation).one().status == "expired"

        statuses = maintenance.latest_run_statuses(session)
        assert statuses["expire_boosters"]["status"] == "ok"
        assert statuses["purge_idempotency"]["status"] == "ok"


def test_run_cycle_records_step_errors(monkeypatch) -> None:
    get_settings.cache_clear()
    settings = get_settings()

    def broken(_session, _now):
        raise RuntimeError("boom")

    monkeypatch.setattr(maintenance, "expire_stale_activations", broken)

    with _session_with_stale_rows() as session:
        summary = maintenance.run_cycle(session, settings, now=NOW)
        runs = maintenance.list_maintenance_runs(session)

    assert summary["errors"] == {"expire_boosters": "boom"}
    by_type = {run["run_type"]: run for run in runs}
    assert by_type["expire_boosters"]["status"] == "error"
    assert by_type["purge_idempotency"]["status"] == "ok"
    assert by_type["cycle"]["status"] == "error"
    assert json.loads(by_type["cycle"]["error"]) == {"expire_boosters": "boom"}


def test_run_and_log_single_step_and_failure(monkeypatch) -> None:
    get_settings.cache_clear()
    settings = get_settings()

    with _session_with_stale_rows() as session:
        result = maintenance.run_and_log(session, settings, run_type="purge_idempotency", now=NOW)
        assert result["deleted"] == 1

        with pytest.raises(ValueError):
            maintenance.run_and_log(session, settings, run_type="rebuild_ranking", now=NOW)
        statuses = [(run.run_type, run.status) for run in session.query(MaintenanceRun).order_by(MaintenanceRun.id)]

    assert statuses == [("purge_idempotency", "ok"), ("rebuild_ranking", "error")]


def test_maintenance_endpoint_requires_cron_secret(monkeypatch) -> None:
    monkeypatch.setenv("CRON_SECRET", "s3cret")
    get_settings.cache_clear()

    with _session_with_stale_rows() as session:
        with pytest.raises(HTTPException) as excinfo:
            maintenance_run(run_type="expire_boosters", x_cron_secret="wrong", db=session)
        assert excinfo.value.status_code == 401

        result = maintenance_run(run_type="expire_boosters", x_cron_secret="s3cret", db=session)
        assert result["expired"] == 1
    get_settings.cache_clear()
