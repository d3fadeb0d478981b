from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any
from uuid import uuid4

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt

from activity_tracker.errors import ApiError
from activity_tracker.settings import get_settings

bearer_scheme = HTTPBearer(auto_error=False)

USER_ROLES = frozenset({"user", "admin"})


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def create_access_token(
    *,
    user_key: str,
    username: str,
    display_name: str | None = None,
    role: str = "user",
    expires_delta: timedelta | None = None,
) -> tuple[str, dict[str, Any]]:
    """Mint a bearer token for an already-authenticated user."""
    settings = get_settings()
    now = _utcnow()
    lifetime = expires_delta or timedelta(minutes=settings.access_token_minutes)
    claims = {
        "sub": user_key,
        "user_key": user_key,
        "username": username,
        "display_name": display_name,
        "role": role,
        "iss": settings.jwt_issuer,
        "aud": settings.jwt_audience,
        "iat": int(now.timestamp()),
        "exp": int((now + lifetime).timestamp()),
        "jti": str(uuid4()),
        "typ": "access",
    }
    token = jwt.encode(claims, settings.jwt_secret, algorithm="HS256")
    return token, claims


def decode_token(token: str) -> dict[str, Any]:
    settings = get_settings()
    try:
        payload = jwt.decode(
            token,
            settings.jwt_secret,
            algorithms=["HS256"],
            audience=settings.jwt_audience,
            issuer=settings.jwt_issuer,
            options={"require_sub": True, "require_iat": True, "require_exp": True},
        )
    except JWTError as exc:
        raise ApiError(status_code=401, code="INVALID_TOKEN", message="Token is invalid.") from exc

    if payload.get("typ") != "access":
        raise ApiError(status_code=401, code="INVALID_TOKEN", message="Token type is invalid.")

    subject = payload.get("sub")
    if not isinstance(subject, str) or not subject:
        raise ApiError(status_code=401, code="INVALID_TOKEN", message="Token subject is invalid.")

    # Tokens minted by older login flows only carry the subject.
    if not payload.get("user_key"):
        payload["user_key"] = subject

    if payload.get("role") not in USER_ROLES:
        raise ApiError(status_code=403, code="FORBIDDEN", message="Insufficient permissions.")

    return payload


def require_user(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
) -> dict[str, Any]:
    if credentials is None or credentials.scheme.lower() != "bearer":
        raise ApiError(status_code=401, code="INVALID_TOKEN", message="Missing bearer token.")

    payload = decode_token(credentials.credentials)

    request.state.actor = payload["role"]
    request.state.actor_id = str(payload["user_key"])
    return payload


def require_admin(claims: dict[str, Any] = Depends(require_user)) -> dict[str, Any]:
    if claims.get("role") != "admin":
        raise ApiError(status_code=403, code="FORBIDDEN", message="Insufficient permissions.")
    return claims
