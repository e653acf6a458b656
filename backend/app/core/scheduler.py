from __future__ import annotations

import logging
import threading
from datetime import datetime, timedelta, timezone

from apscheduler.schedulers.background import BackgroundScheduler
from sqlalchemy import text

from app.config import Settings
from app.db import SessionLocal, engine
from app.domain.enums import MaintenanceRunType
from app.services.maintenance import run_and_log

logger = logging.getLogger(__name__)

_scheduler: BackgroundScheduler | None = None
_run_lock = threading.Semaphore(1)


def _can_reach_db() -> bool:
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        return True
    except Exception:  # noqa: BLE001
        return False


def _job_id(run_type: str) -> str:
    return f"{run_type}_job"


def _maintenance_jobs(settings: Settings) -> list[tuple[MaintenanceRunType, int, int]]:
    # (run type, interval seconds, delay before first run)
    return [
        (MaintenanceRunType.EXPIRE_BOOSTERS, settings.sched_expire_interval_sec, 0),
        (MaintenanceRunType.PURGE_IDEMPOTENCY, settings.sched_purge_interval_sec, 60),
    ]


def _run_job(run_type: str, settings: Settings) -> None:
    # Jobs share one lock so an expiry sweep never overlaps a purge.
    if not _run_lock.acquire(blocking=False):
        logger.info("Skipping %s job because another maintenance run is in progress", run_type)
        return

    try:
        with SessionLocal() as session:
            stats = run_and_log(session, settings, run_type=run_type)
        logger.info("Maintenance job %s finished: %s", run_type, stats)
    except Exception:  # noqa: BLE001
        logger.exception("Maintenance job %s failed", run_type)
    finally:
        _run_lock.release()


def start_scheduler(settings: Settings) -> bool:
    global _scheduler

    if not settings.enable_scheduler:
        logger.info("Scheduler disabled by ENABLE_SCHEDULER=false")
        return False

    if settings.sched_require_db and (not settings.database_url or not _can_reach_db()):
        logger.warning("Scheduler not started: DB unavailable and SCHED_REQUIRE_DB=true")
        return False

    if scheduler_is_running():
        return True

    scheduler = BackgroundScheduler(timezone=timezone.utc)
    now = datetime.now(timezone.utc)
    for run_type, interval_sec, delay_sec in _maintenance_jobs(settings):
        scheduler.add_job(
            _run_job,
            "interval",
            args=[run_type.value, settings],
            id=_job_id(run_type.value),
            seconds=interval_sec,
            jitter=settings.sched_jitter_sec,
            max_instances=1,
            coalesce=True,
            next_run_time=now + timedelta(seconds=delay_sec),
            replace_existing=True,
        )
    scheduler.start()
    _scheduler = scheduler
    logger.info("Scheduler started with jobs %s", sorted(job.id for job in scheduler.get_jobs()))
    return True


def stop_scheduler() -> None:
    global _scheduler
    if _scheduler is not None:
        _scheduler.shutdown(wait=False)
        _scheduler = None


def scheduler_is_running() -> bool:
    return _scheduler is not None and _scheduler.running


def scheduler_next_run_times() -> dict[str, datetime | None]:
    if _scheduler is None:
        return {}
    return {job.id: job.next_run_time for job in _scheduler.get_jobs()}
