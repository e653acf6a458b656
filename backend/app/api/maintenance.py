from __future__ import annotations

from fastapi import APIRouter, Depends, Header, HTTPException, Query
from sqlalchemy.orm import Session

from app.config import get_settings
from app.core.scheduler import scheduler_is_running, scheduler_next_run_times
from app.db import get_db
from app.services.maintenance import latest_run_statuses, list_maintenance_runs, run_and_log

router = APIRouter(tags=["maintenance"])


def _check_cron_secret(x_cron_secret: str | None) -> None:
    expected = get_settings().cron_secret
    if expected and x_cron_secret != expected:
        raise HTTPException(status_code=401, detail="Unauthorized")


@router.post("/maintenance/run")
def maintenance_run(
    run_type: str = Query("cycle", pattern="^(cycle|expire_boosters|purge_idempotency)$"),
    x_cron_secret: str | None = Header(None, alias="X-Cron-Secret"),
    db: Session = Depends(get_db),
) -> dict[str, object]:
    _check_cron_secret(x_cron_secret)
    return run_and_log(db, get_settings(), run_type=run_type)


@router.get("/maintenance/runs")
def maintenance_runs(
    limit: int = Query(50, ge=1, le=500),
    x_cron_secret: str | None = Header(None, alias="X-Cron-Secret"),
    db: Session = Depends(get_db),
) -> list[dict[str, object]]:
    _check_cron_secret(x_cron_secret)
    return list_maintenance_runs(db, limit=limit)


@router.get("/maintenance/health")
def maintenance_health(db: Session = Depends(get_db)) -> dict[str, object]:
    return {
        "scheduler_enabled": scheduler_is_running(),
        "next_run_times": scheduler_next_run_times(),
        "last_run_statuses": latest_run_statuses(db),
    }
