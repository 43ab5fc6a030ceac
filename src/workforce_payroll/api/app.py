"""FastAPI application factory."""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from workforce_payroll.api.routes import (
    entries_router,
    health_router,
    locums_router,
    periods_router,
    rates_router,
)
from workforce_payroll.config import get_settings
from workforce_payroll.database import create_schema, dispose_db, init_db
from workforce_payroll.errors import (
    ComputationError,
    ConcurrencyConflictError,
    ImmutableStateError,
    NotFoundError,
    PayrollError,
    PayrollPermissionError,
    ValidationError,
)
from workforce_payroll.logging_config import configure_logging

logger = logging.getLogger(__name__)

# Most specific first; PayrollError is the catch-all
ERROR_STATUS: list[tuple[type[PayrollError], int, str]] = [
    (ValidationError, status.HTTP_422_UNPROCESSABLE_ENTITY, "VALIDATION_ERROR"),
    (NotFoundError, status.HTTP_404_NOT_FOUND, "NOT_FOUND"),
    (ImmutableStateError, status.HTTP_409_CONFLICT, "PERIOD_FINALIZED"),
    (ConcurrencyConflictError, status.HTTP_409_CONFLICT, "CONCURRENT_MODIFICATION"),
    (PayrollPermissionError, status.HTTP_403_FORBIDDEN, "FORBIDDEN"),
    (ComputationError, status.HTTP_500_INTERNAL_SERVER_ERROR, "COMPUTATION_ERROR"),
]


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler."""
    # Startup
    configure_logging()
    engine, _ = init_db()
    await create_schema(engine)
    yield
    # Shutdown
    await dispose_db()


def error_response(exc: PayrollError) -> JSONResponse:
    """Map a payroll exception to its HTTP status and error code."""
    for exc_type, status_code, code in ERROR_STATUS:
        if isinstance(exc, exc_type):
            break
    else:
        status_code, code = status.HTTP_400_BAD_REQUEST, "PAYROLL_ERROR"

    context = None
    if isinstance(exc, ValidationError) and exc.field:
        context = {"field": exc.field}
    return JSONResponse(
        status_code=status_code,
        content={"detail": str(exc), "code": code, "context": context},
    )


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()
    app = FastAPI(
        title="Workforce Payroll API",
        description="Kenya payroll computation and period lifecycle engine",
        version=settings.engine_version,
        lifespan=lifespan,
    )

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Exception handlers
    @app.exception_handler(PayrollError)
    async def payroll_exception_handler(
        request: Request, exc: PayrollError
    ) -> JSONResponse:
        """Handle domain exceptions."""
        response = error_response(exc)
        if response.status_code >= 500:
            logger.error("%s %s failed: %s", request.method, request.url.path, exc)
        else:
            logger.warning("%s %s rejected: %s", request.method, request.url.path, exc)
        return response

    @app.exception_handler(Exception)
    async def general_exception_handler(
        request: Request, exc: Exception
    ) -> JSONResponse:
        """Handle unexpected exceptions."""
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "detail": "An unexpected error occurred",
                "code": "INTERNAL_ERROR",
            },
        )

    # Include routers
    app.include_router(health_router)
    app.include_router(periods_router, prefix="/api/v1")
    app.include_router(entries_router, prefix="/api/v1")
    app.include_router(locums_router, prefix="/api/v1")
    app.include_router(rates_router, prefix="/api/v1")

    return app
