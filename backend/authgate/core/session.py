"""Session issuing: signed bearer tokens and the auth cookie."""

from datetime import datetime, timedelta, timezone
from typing import Any
from uuid import uuid4

import jwt
from fastapi import Response

from authgate.core.config import settings
from authgate.models.user import User


def _session_expiry(now: datetime | None = None) -> datetime:
    now = now or datetime.now(timezone.utc)
    return now + timedelta(days=settings.SESSION_EXPIRE_DAYS)


def issue_session_token(user: User, workspace_id: Any) -> str:
    """Create a session JWT for an authenticated user."""
    if not settings.JWT_SECRET:
        raise ValueError("JWT_SECRET must be set")

    now = datetime.now(timezone.utc)
    payload = {
        "sub": str(user.id),
        "workspace_id": str(workspace_id),
        "iat": now,
        "exp": _session_expiry(now),
        "jti": str(uuid4()),
        "type": "access",
    }

    return jwt.encode(payload, settings.JWT_SECRET, algorithm=settings.JWT_ALG)


def decode_session_token(token: str) -> dict[str, Any]:
    """Verify and decode a session JWT."""
    if not settings.JWT_SECRET:
        raise ValueError("JWT_SECRET must be set")

    try:
        payload = jwt.decode(token, settings.JWT_SECRET, algorithms=[settings.JWT_ALG])
    except jwt.ExpiredSignatureError:
        raise jwt.InvalidTokenError("Token has expired") from None
    if payload.get("type") != "access":
        raise jwt.InvalidTokenError("Token is not an access token")
    if "workspace_id" not in payload:
        raise jwt.InvalidTokenError("Token is not bound to a workspace")
    return payload


def set_auth_cookie(response: Response, token: str) -> None:
    """Attach the session cookie to a response."""
    response.set_cookie(
        key=settings.AUTH_COOKIE_NAME,
        value=token,
        httponly=True,
        path="/",
        expires=_session_expiry(),
        secure=settings.is_https,
        samesite="lax",
    )


def clear_auth_cookie(response: Response) -> None:
    """Remove the session cookie."""
    response.delete_cookie(
        key=settings.AUTH_COOKIE_NAME,
        path="/",
        httponly=True,
        secure=settings.is_https,
        samesite="lax",
    )
