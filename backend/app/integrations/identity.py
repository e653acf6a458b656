from __future__ import annotations

import logging

import requests

from app.config import get_settings
from app.domain.errors import AuthRequired

logger = logging.getLogger(__name__)


def parse_bearer_token(authorization: str | None) -> str:
    if not authorization or not authorization.lower().startswith("bearer "):
        raise AuthRequired("Missing Authorization Bearer token")
    token = authorization[7:].strip()
    if not token:
        raise AuthRequired("Missing Authorization Bearer token")
    return token


def resolve_user_id(token: str) -> str:
    settings = get_settings()
    headers = {"Authorization": f"Bearer {token}"}
    if settings.auth_api_key:
        headers["apikey"] = settings.auth_api_key

    try:
        response = requests.get(
            f"{settings.auth_base_url}/auth/v1/user",
            headers=headers,
            timeout=settings.auth_timeout_sec,
        )
    except requests.RequestException as exc:
        logger.warning("Identity lookup failed: %s", exc)
        raise AuthRequired("Invalid user token") from exc

    if response.status_code != 200:
        raise AuthRequired("Invalid user token")

    try:
        body = response.json()
    except ValueError as exc:
        logger.warning("Identity provider returned a non-JSON body: %s", exc)
        raise AuthRequired("Invalid user token") from exc

    user_id = body.get("id") if isinstance(body, dict) else None
    if not isinstance(user_id, str) or not user_id:
        raise AuthRequired("Invalid user token")
    return user_id
