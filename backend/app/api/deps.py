from __future__ import annotations

from fastapi.responses import JSONResponse

from app.domain.errors import SubmissionError
from app.integrations.identity import parse_bearer_token, resolve_user_id


def authenticate(authorization: str | None) -> str:
    return resolve_user_id(parse_bearer_token(authorization))


def error_response(exc: SubmissionError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content=exc.to_payload())
