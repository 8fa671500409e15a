"""Security event logging utilities."""

from typing import Any

from fastapi import Request

from authgate.common.request_id import get_request_id
from authgate.core.logging import get_logger

logger = get_logger(__name__)


def get_client_ip(request: Request) -> str:
    """Extract client IP from request."""
    forwarded_for = request.headers.get("X-Forwarded-For")
    if forwarded_for:
        return forwarded_for.split(",")[0].strip()
    real_ip = request.headers.get("X-Real-IP")
    if real_ip:
        return real_ip
    if request.client:
        return request.client.host
    return "unknown"


def get_user_agent(request: Request) -> str | None:
    """Extract user agent from request."""
    return request.headers.get("User-Agent")


def log_security_event(
    request: Request,
    event_type: str,
    outcome: str,  # "allow", "deny"
    reason_code: str | None = None,
    user_id: str | None = None,
    workspace_id: str | None = None,
    **extra_fields: Any,
) -> None:
    """
    Log a security event with structured fields.

    Args:
        request: FastAPI request object
        event_type: Event type (e.g., "auth_login_success", "mfa_failed")
        outcome: "allow" or "deny"
        reason_code: Error code if outcome is "deny"
        user_id: User ID if known
        workspace_id: Workspace the request was scoped to
        **extra_fields: Additional fields to include (never secrets or codes)
    """
    log_data = {
        "event_type": event_type,
        "request_id": get_request_id(request),
        "outcome": outcome,
        "ip_address": get_client_ip(request),
        "user_agent": get_user_agent(request),
    }

    if user_id:
        log_data["user_id"] = user_id
    if workspace_id:
        log_data["workspace_id"] = workspace_id
    if reason_code:
        log_data["reason_code"] = reason_code

    log_data.update(extra_fields)

    if outcome == "deny":
        logger.warning("Security event: denied", extra=log_data)
    else:
        logger.info("Security event: allowed", extra=log_data)
