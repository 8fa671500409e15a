"""Request ID middleware and utilities."""

import time
import uuid
from typing import Any, Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from authgate.core.logging import get_logger

logger = get_logger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"
WORKSPACE_HEADER = "X-Workspace-Id"


def get_request_id(request: Request) -> str:
    """Get request ID from request state."""
    return getattr(request.state, "request_id", "unknown")


def _request_context(request: Request) -> dict[str, Any]:
    context = {
        "request_id": request.state.request_id,
        "method": request.method,
        "path": request.url.path,
    }
    # Header value as sent; resolution and validation happen in the route
    workspace_id = request.headers.get(WORKSPACE_HEADER)
    if workspace_id:
        context["workspace_id"] = workspace_id[:64]
    return context


class RequestIDMiddleware(BaseHTTPMiddleware):
    """Assigns X-Request-ID and logs each request with its workspace scope."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request.state.request_id = request.headers.get(REQUEST_ID_HEADER) or str(uuid.uuid4())
        context = _request_context(request)

        start_time = time.time()
        logger.info("Request started", extra=context)

        try:
            response = await call_next(request)
        except Exception as e:
            logger.error(
                "Request failed",
                extra={
                    **context,
                    "status_code": 500,
                    "latency_ms": int((time.time() - start_time) * 1000),
                    "error": str(e),
                },
                exc_info=True,
            )
            raise

        response.headers[REQUEST_ID_HEADER] = request.state.request_id
        logger.info(
            "Request completed",
            extra={
                **context,
                "status_code": response.status_code,
                "latency_ms": int((time.time() - start_time) * 1000),
            },
        )
        return response
