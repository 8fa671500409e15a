"""Health and readiness endpoints."""

from typing import Literal

from fastapi import APIRouter, Depends, Request, status
from pydantic import BaseModel
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from authgate.core.errors import get_request_id
from authgate.core.logging import get_logger
from authgate.db.session import get_db

logger = get_logger(__name__)

router = APIRouter(tags=["Health"])


class HealthResponse(BaseModel):
    """Health check response."""

    status: Literal["ok"] = "ok"


class ReadinessResponse(BaseModel):
    """Readiness check response."""

    status: Literal["ok", "down"]
    database: Literal["ok", "down"]
    request_id: str


@router.get(
    "/health",
    response_model=HealthResponse,
    status_code=status.HTTP_200_OK,
    summary="Liveness check",
)
async def health() -> HealthResponse:
    """Process is up."""
    return HealthResponse()


@router.get(
    "/ready",
    response_model=ReadinessResponse,
    status_code=status.HTTP_200_OK,
    summary="Readiness check",
)
async def ready(request: Request, db: Session = Depends(get_db)) -> ReadinessResponse:
    """Check the database is reachable."""
    try:
        db.execute(text("SELECT 1"))
        database = "ok"
    except SQLAlchemyError as e:
        logger.warning("Readiness check failed", extra={"error": str(e)})
        database = "down"

    return ReadinessResponse(
        status=database,
        database=database,
        request_id=get_request_id(request),
    )
