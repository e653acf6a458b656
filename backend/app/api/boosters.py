from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from fastapi import APIRouter, Body, Depends, Header, Query
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from app.api import deps
from app.config import get_settings
from app.db import get_db
from app.domain.errors import InvalidPayload, SubmissionError
from app.services.boosters import activate_booster, list_active_activations
from app.services.pools import resolve_pool

router = APIRouter(tags=["boosters"])


def _optional_str(payload: dict[str, Any], field: str) -> str | None:
    value = payload.get(field)
    if value is None:
        return None
    if not isinstance(value, str):
        raise InvalidPayload(f"{field} must be a string")
    return value.strip() or None


@router.post("/boosters/activate")
def activate(
    payload: Any = Body(None),
    authorization: str | None = Header(None),
    db: Session = Depends(get_db),
) -> JSONResponse:
    settings = get_settings()
    try:
        user_id = deps.authenticate(authorization)
        if not isinstance(payload, dict) or not payload.get("boosterId"):
            raise InvalidPayload("boosterId is required")
        activation = activate_booster(
            db,
            user_id=user_id,
            booster_id=payload["boosterId"],
            pool_id_or_code=_optional_str(payload, "poolId"),
            match_id=_optional_str(payload, "matchId"),
            now=datetime.now(timezone.utc),
            duration_days=settings.booster_default_duration_days,
        )
    except SubmissionError as exc:
        return deps.error_response(exc)

    return JSONResponse(
        content=jsonable_encoder(
            {
                "ok": True,
                "activation_id": activation.id,
                "booster_id": activation.booster_id,
                "scope": activation.scope,
                "match_id": activation.match_id,
                "pool_id": activation.pool_id,
                "expires_at": activation.expires_at,
            }
        )
    )


@router.get("/boosters/activations")
def my_activations(
    pool: str | None = Query(None),
    authorization: str | None = Header(None),
    db: Session = Depends(get_db),
) -> JSONResponse:
    try:
        user_id = deps.authenticate(authorization)
        pool_id = resolve_pool(db, user_id, pool) if pool else None
    except SubmissionError as exc:
        return deps.error_response(exc)
    rows = list_active_activations(db, user_id=user_id, pool_id=pool_id, now=datetime.now(timezone.utc))
    return JSONResponse(content=jsonable_encoder({"ok": True, "activations": rows}))
