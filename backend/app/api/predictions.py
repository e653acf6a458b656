from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Body, Depends, Header
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from app.api import deps
from app.db import get_db
from app.domain.errors import SubmissionError
from app.services.pools import resolve_pool
from app.services.predictions import list_predictions, submit_prediction, undo_prediction

router = APIRouter(tags=["predictions"])


@router.post("/pools/{pool_id_or_code}/predictions")
def create_or_update_prediction(
    pool_id_or_code: str,
    payload: Any = Body(None),
    authorization: str | None = Header(None),
    idempotency_key: str | None = Header(None, alias="Idempotency-Key"),
    db: Session = Depends(get_db),
) -> JSONResponse:
    try:
        user_id = deps.authenticate(authorization)
        result = submit_prediction(
            db,
            user_id=user_id,
            pool_id_or_code=pool_id_or_code,
            payload=payload,
            idempotency_key=idempotency_key,
        )
    except SubmissionError as exc:
        return deps.error_response(exc)
    return JSONResponse(status_code=result.status_code, content=result.body)


@router.post("/pools/{pool_id_or_code}/predictions/undo")
def undo_my_prediction(
    pool_id_or_code: str,
    payload: Any = Body(None),
    authorization: str | None = Header(None),
    db: Session = Depends(get_db),
) -> JSONResponse:
    try:
        user_id = deps.authenticate(authorization)
        result = undo_prediction(db, user_id=user_id, pool_id_or_code=pool_id_or_code, payload=payload)
    except SubmissionError as exc:
        return deps.error_response(exc)
    return JSONResponse(status_code=result.status_code, content=result.body)


@router.get("/pools/{pool_id_or_code}/predictions")
def my_predictions(
    pool_id_or_code: str,
    authorization: str | None = Header(None),
    db: Session = Depends(get_db),
) -> JSONResponse:
    try:
        user_id = deps.authenticate(authorization)
        pool_id = resolve_pool(db, user_id, pool_id_or_code)
    except SubmissionError as exc:
        return deps.error_response(exc)
    rows = list_predictions(db, user_id=user_id, pool_id=pool_id)
    return JSONResponse(content=jsonable_encoder({"ok": True, "pool_id": pool_id, "predictions": rows}))
