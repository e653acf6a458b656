from __future__ import annotations

import json
from datetime import datetime, timezone

from sqlalchemy import desc, select
from sqlalchemy.orm import Session

from app.config import Settings
from app.domain.enums import MaintenanceRunType
from app.models import MaintenanceRun
from app.services.boosters import expire_stale_activations
from app.services.idempotency import purge_expired

RUN_STEPS = [MaintenanceRunType.EXPIRE_BOOSTERS, MaintenanceRunType.PURGE_IDEMPOTENCY]


def _log_run(
    session: Session,
    *,
    run_type: str,
    status: str,
    stats: dict,
    error: str | None = None,
) -> None:
    session.add(
        MaintenanceRun(
            run_type=run_type,
            status=status,
            stats_json=json.dumps(stats, sort_keys=True, default=str),
            error=error,
        )
    )
    session.commit()


def run_expire_boosters(session: Session, now: datetime | None = None) -> dict:
    return expire_stale_activations(session, now or datetime.now(timezone.utc))


def run_purge_idempotency(session: Session, now: datetime | None = None) -> dict:
    return purge_expired(session, now or datetime.now(timezone.utc))


def _run_step(session: Session, run_type: MaintenanceRunType, now: datetime | None) -> dict:
    if run_type == MaintenanceRunType.EXPIRE_BOOSTERS:
        return run_expire_boosters(session, now)
    if run_type == MaintenanceRunType.PURGE_IDEMPOTENCY:
        return run_purge_idempotency(session, now)
    raise ValueError(f"Unsupported run_type '{run_type}'")


def run_cycle(session: Session, settings: Settings, now: datetime | None = None) -> dict:
    cycle_stats: dict[str, dict] = {}
    cycle_errors: dict[str, str] = {}

    for step in RUN_STEPS:
        try:
            result = _run_step(session, step, now)
            cycle_stats[step.value] = result
            _log_run(session, run_type=step.value, status="ok", stats=result)
        except Exception as exc:  # noqa: BLE001
            session.rollback()
            message = str(exc)
            cycle_errors[step.value] = message
            cycle_stats[step.value] = {"error": message}
            _log_run(session, run_type=step.value, status="error", stats=cycle_stats[step.value], error=message)

    cycle_summary = {
        "environment": settings.app_env,
        "steps": cycle_stats,
        "errors": cycle_errors,
        "errors_count": len(cycle_errors),
    }
    _log_run(
        session,
        run_type=MaintenanceRunType.CYCLE.value,
        status="ok" if not cycle_errors else "error",
        stats=cycle_summary,
        error=json.dumps(cycle_errors, sort_keys=True) if cycle_errors else None,
    )
    return cycle_summary


def run_and_log(session: Session, settings: Settings, run_type: str, now: datetime | None = None) -> dict:
    if run_type == MaintenanceRunType.CYCLE.value:
        return run_cycle(session, settings, now=now)
    try:
        result = _run_step(session, MaintenanceRunType(run_type), now)
        _log_run(session, run_type=run_type, status="ok", stats=result)
        return result
    except Exception as exc:  # noqa: BLE001
        session.rollback()
        message = str(exc)
        _log_run(session, run_type=run_type, status="error", stats={"error": message}, error=message)
        raise


def list_maintenance_runs(session: Session, limit: int = 50) -> list[dict[str, object]]:
    rows = (
        session.execute(select(MaintenanceRun).order_by(desc(MaintenanceRun.created_at), desc(MaintenanceRun.id)).limit(limit))
        .scalars()
        .all()
    )
    return [
        {
            "id": row.id,
            "created_at": row.created_at,
            "run_type": row.run_type,
            "status": row.status,
            "stats_json": row.stats_json,
            "error": row.error,
        }
        for row in rows
    ]


def latest_run_statuses(session: Session) -> dict[str, dict[str, object] | None]:
    output: dict[str, dict[str, object] | None] = {}
    for run_type in [step.value for step in RUN_STEPS]:
        row = (
            session.execute(
                select(MaintenanceRun)
                .where(MaintenanceRun.run_type == run_type)
                .order_by(desc(MaintenanceRun.created_at), desc(MaintenanceRun.id))
                .limit(1)
            )
            .scalars()
            .first()
        )
        output[run_type] = (
            {
                "status": row.status,
                "created_at": row.created_at,
                "error": row.error,
            }
            if row is not None
            else None
        )
    return output
