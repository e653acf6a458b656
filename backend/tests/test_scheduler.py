from __future__ import annotations

from app.config import get_settings
from app.core import scheduler as sched


def test_scheduler_disabled(monkeypatch) -> None:
    monkeypatch.setenv("ENABLE_SCHEDULER", "false")
    get_settings.cache_clear()
    settings = get_settings()

    started = sched.start_scheduler(settings)
    assert started is False
    assert sched.scheduler_is_running() is False


def test_scheduler_skips_when_db_unreachable(monkeypatch) -> None:
    monkeypatch.setenv("ENABLE_SCHEDULER", "true")
    monkeypatch.setenv("SCHED_REQUIRE_DB", "true")
    get_settings.cache_clear()
    settings = get_settings()

    monkeypatch.setattr(sched, "_can_reach_db", lambda: False)

    started = sched.start_scheduler(settings)
    assert started is False
    assert sched.scheduler_is_running() is False


def test_scheduler_registers_maintenance_jobs(monkeypatch) -> None:
    monkeypatch.setenv("ENABLE_SCHEDULER", "true")
    monkeypatch.setenv("SCHED_REQUIRE_DB", "false")
    get_settings.cache_clear()
    settings = get_settings()
    monkeypatch.setattr(sched, "_run_job", lambda _run_type, _settings: None)

    try:
        assert sched.start_scheduler(settings) is True
        assert sched.scheduler_is_running() is True
        assert set(sched.scheduler_next_run_times()) == {"expire_boosters_job", "purge_idempotency_job"}
    finally:
        sched.stop_scheduler()
    assert sched.scheduler_is_running() is False


def test_run_job_skips_when_locked(monkeypatch) -> None:
    get_settings.cache_clear()
    settings = get_settings()
    calls: list[str] = []
    monkeypatch.setattr(sched, "run_and_log", lambda _session, _settings, run_type: calls.append(run_type))

    assert sched._run_lock.acquire(blocking=False)
    try:
        sched._run_job("expire_boosters", settings)
    finally:
        sched._run_lock.release()

    assert calls == []
