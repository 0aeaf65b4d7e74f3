"""FastAPI application entry point."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from ledgercrm import __version__
from ledgercrm.api.router import api_router
from ledgercrm.api.routes import health
from ledgercrm.config import get_settings
from ledgercrm.infrastructure.database.connection import create_schema, dispose_engine
from ledgercrm.observability.metrics import setup_metrics
from ledgercrm.shared.context import clear_tenant_context
from ledgercrm.shared.exceptions import (
    ConflictError,
    CRMError,
    InternalError,
    NotFoundError,
    ValidationError,
)
from ledgercrm.shared.logging import clear_request_context, get_logger, setup_logging

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan - startup and shutdown events."""
    # Startup
    setup_logging()
    logger.info("ledgercrm_starting", version=__version__)

    settings = get_settings()
    if settings.database_auto_create:
        await create_schema()
        logger.info("database_schema_created")

    yield

    # Shutdown
    logger.info("ledgercrm_stopping")
    await dispose_engine()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title="LedgerCRM API",
        description="Holders, account aliases and holder links for ledger accounts",
        version=__version__,
        docs_url="/docs" if settings.is_development else None,
        redoc_url="/redoc" if settings.is_development else None,
        lifespan=lifespan,
    )

    # CORS middleware
    # In production, be more restrictive; in development, allow all for convenience
    if settings.is_production:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=settings.cors_origins,
            allow_credentials=True,
            allow_methods=["GET", "POST", "PATCH", "DELETE", "OPTIONS"],
            allow_headers=["Content-Type", "X-Organization-Id", "X-Request-ID"],
        )
    else:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=settings.cors_origins,
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    @app.middleware("http")
    async def reset_request_context(request: Request, call_next):  # type: ignore[no-untyped-def]
        try:
            return await call_next(request)
        finally:
            clear_tenant_context()
            clear_request_context()

    # Exception handlers
    register_exception_handlers(app)

    # Include routers
    app.include_router(health.router)
    app.include_router(api_router, prefix="/v1")

    # Observability
    setup_metrics(app)

    return app


# HTTP status and error code per error kind
ERROR_STATUS: tuple[tuple[type[CRMError], int, str], ...] = (
    (ValidationError, 422, "validation_error"),
    (NotFoundError, 404, "not_found"),
    (ConflictError, 409, "conflict"),
    (InternalError, 500, "internal_error"),
)


def error_response(
    status_code: int, error: str, message: str, details: dict[str, Any] | None = None
) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"error": error, "message": message, "details": details or {}},
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Register custom exception handlers."""

    @app.exception_handler(CRMError)
    async def crm_error_handler(request: Request, exc: CRMError) -> JSONResponse:
        _ = request
        for kind, status_code, error in ERROR_STATUS:
            if not isinstance(exc, kind):
                continue
            if status_code >= 500:
                logger.error("internal_error", error=exc.message, details=exc.details)
                return error_response(
                    status_code, error, "An internal error occurred", exc.details
                )
            return error_response(status_code, error, exc.message, exc.details)

        logger.error("unhandled_error", error=exc.message, details=exc.details)
        return error_response(500, "internal_error", "An internal error occurred")

    @app.exception_handler(RequestValidationError)
    async def request_validation_error_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        _ = request
        return error_response(
            422,
            "validation_error",
            "Request validation failed",
            {"errors": jsonable_errors(exc)},
        )

    @app.exception_handler(Exception)
    async def generic_error_handler(request: Request, exc: Exception) -> JSONResponse:
        _ = request
        logger.exception("unexpected_error", error_type=type(exc).__name__)
        return error_response(500, "internal_error", "An unexpected error occurred")


def jsonable_errors(exc: RequestValidationError) -> list[dict[str, object]]:
    """Strip raw input values from pydantic errors; they may carry personal data."""
    return [
        {"loc": list(error.get("loc", ())), "msg": error.get("msg"), "type": error.get("type")}
        for error in exc.errors()
    ]


# Create app instance
app = create_app()
