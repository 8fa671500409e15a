"""FastAPI application factory and main entry point."""

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException

from authgate.api.v1.router import api_router
from authgate.common.request_id import RequestIDMiddleware
from authgate.core.config import settings
from authgate.core.errors import (
    general_exception_handler,
    http_exception_handler,
    validation_exception_handler,
)
from authgate.core.logging import setup_logging
from authgate.core.security_headers import SecurityHeadersMiddleware
from authgate.core.seed_auth import seed_demo_accounts
from authgate.db.base import Base, import_models
from authgate.db.engine import engine


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events."""
    # Startup
    setup_logging()
    # Create tables (in production, use migrations)
    if settings.ENV in ("dev", "test"):
        import_models()
        Base.metadata.create_all(bind=engine)
    seed_demo_accounts()
    yield


def create_app() -> FastAPI:
    """Create and configure FastAPI application."""
    app = FastAPI(
        title=settings.PROJECT_NAME,
        version="1.0.0",
        description="Credential and second-factor authentication gate for workspaces",
        openapi_url="/openapi.json" if settings.ENV != "prod" else None,
        docs_url="/docs" if settings.ENV != "prod" else None,
        redoc_url="/redoc" if settings.ENV != "prod" else None,
        lifespan=lifespan,
    )

    # Add middleware (order matters - last added is outermost)
    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(RequestIDMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Add exception handlers
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(Exception, general_exception_handler)

    # Include API routers
    app.include_router(api_router, prefix=settings.API_PREFIX)

    return app


# Create app instance
app = create_app()
