"""
FastAPI application factory and configuration.
"""

import logging
import os
import time
import uuid
from contextlib import asynccontextmanager
from datetime import datetime, UTC
from decimal import Decimal

from fastapi import FastAPI, Request, HTTPException
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from prometheus_client import Counter, Gauge, Histogram
import structlog
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.base import BaseHTTPMiddleware

from statement_desk.config.database import (
    async_database_health_check,
    async_engine,
    check_async_database_connection,
)
from statement_desk.config.logging import configure_logging
from statement_desk.config.observability import (
    SERVICE_VERSION,
    configure_observability,
    instrument_fastapi,
    instrument_sqlalchemy,
    performance_monitor,
    trace_operation,
)
from statement_desk.config.settings import get_settings
from statement_desk.routers import metrics_router, statements_router, system_router
from statement_desk.services.fonts import register_fonts
from statement_desk.utils.errors import ERROR_CODES, DomainError, error_payload

logger = logging.getLogger(__name__)

# Native Prometheus collectors; always present on /metrics regardless of OTEL setup
APP_REQUEST_COUNT = Counter(
    "app_requests_total",
    "Total HTTP requests processed",
    ["method", "path", "status"],
)
APP_REQUEST_LATENCY = Histogram(
    "app_request_duration_seconds",
    "Request latency in seconds",
    ["method", "path", "status"],
)
APP_UPTIME_SECONDS = Gauge(
    "app_uptime_seconds",
    "Application uptime in seconds",
)

APP_START_TIME = datetime.now(UTC)


def _fast_tests() -> bool:
    return os.getenv("FAST_TESTS") == "1" or os.getenv("TESTING", "false").lower() == "true"


def _route_path(request: Request) -> str:
    # Route template keeps label cardinality bounded (/statements/{statement_id})
    route = request.scope.get("route")
    return getattr(route, "path", request.url.path)


class ResponseTimeMiddleware(BaseHTTPMiddleware):
    """Record request latency and expose it as X-Response-Time."""

    async def dispatch(self, request: Request, call_next):  # noqa: D401
        start_time = time.time()
        response = await call_next(request)
        duration_s = time.time() - start_time
        response_time_ms = duration_s * 1000
        response.headers["X-Response-Time"] = f"{response_time_ms:.1f}ms"

        status = str(getattr(response, "status_code", 0))
        path = _route_path(request)
        performance_monitor.record_request(
            endpoint=path,
            method=request.method,
            duration_ms=response_time_ms,
            status_code=response.status_code,
        )
        APP_REQUEST_COUNT.labels(request.method, path, status).inc()
        APP_REQUEST_LATENCY.labels(request.method, path, status).observe(duration_s)
        APP_UPTIME_SECONDS.set((datetime.now(UTC) - APP_START_TIME).total_seconds())
        return response


class RequestIDMiddleware(BaseHTTPMiddleware):
    """Generate a per-request ID, echo it back and bind it for structlog loggers."""

    async def dispatch(self, request: Request, call_next):  # noqa: D401
        request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        request.state.request_id = request_id
        structlog.contextvars.bind_contextvars(request_id=request_id)
        try:
            response = await call_next(request)
        finally:
            structlog.contextvars.unbind_contextvars("request_id")
        response.headers["X-Request-ID"] = request_id
        return response


@asynccontextmanager
async def lifespan(app: FastAPI):  # noqa: ARG001
    """Application lifespan management."""
    logger.info("Starting up Statement Desk API...")
    configure_logging()
    if _fast_tests():
        logger.info("Test mode: skipping OpenTelemetry setup and DB connectivity check")
        yield
        return

    configure_observability()
    instrument_sqlalchemy(async_engine.sync_engine)
    if not await check_async_database_connection():
        logger.error("Failed to connect to database")
        raise RuntimeError("Database connection failed")
    # Schema is managed by Alembic migrations only
    regular, bold = register_fonts()
    logger.info("PDF fonts ready: %s / %s", regular, bold)
    logger.info("Application startup complete")
    yield
    logger.info("Shutting down Statement Desk API...")
    await async_engine.dispose()


def create_application() -> FastAPI:
    """Create and configure FastAPI application."""
    application_obj = FastAPI(
        title="Statement Desk",
        description="Money-transfer statements with printable applications, receipts and acts",
        version=SERVICE_VERSION,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/api/v1/openapi.json",
        lifespan=lifespan
    )
    setup_middleware(application_obj)
    setup_exception_handlers(application_obj)
    setup_routes(application_obj)
    if get_settings().ENABLE_TRACING and not _fast_tests():
        instrument_fastapi(application_obj)
    return application_obj


def setup_middleware(app: FastAPI) -> None:
    """Setup application middleware."""
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],  # Configure appropriately for production
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        # Browsers only expose this header to the frontend when listed
        expose_headers=["Content-Disposition"],
    )
    app.add_middleware(ResponseTimeMiddleware)
    app.add_middleware(RequestIDMiddleware)


def _error_response(request: Request, status_code: int, code: str, message: str,
                    details=None, headers=None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=error_payload(code, message, details=details, path=str(request.url.path)),
        headers=headers,
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    # pydantic error contexts may hold exceptions and Decimals
    details = jsonable_encoder(exc.errors(), custom_encoder={Exception: str, Decimal: str})
    return _error_response(request, 422, ERROR_CODES["validation"],
                           "Request validation failed", details=details)


async def http_exception_handler(request: Request, exc: HTTPException):
    """HTTPException raised by routers; `code` is attached by utils.errors.http_error."""
    return _error_response(request, exc.status_code, getattr(exc, "code", "HTTP_ERROR"),
                           exc.detail, headers=exc.headers)


async def starlette_exception_handler(request: Request, exc: StarletteHTTPException):
    """Unknown routes and unsupported methods."""
    code = ERROR_CODES["not_found"] if exc.status_code == 404 else "HTTP_ERROR"
    return _error_response(request, exc.status_code, code, exc.detail)


async def domain_exception_handler(request: Request, exc: DomainError):
    """Domain errors that escaped a router without translation."""
    status_code = 500 if exc.code == ERROR_CODES["pdf_failed"] else 400
    return _error_response(request, status_code, exc.code, exc.message, details=exc.details)


async def database_exception_handler(request: Request, exc: SQLAlchemyError):
    logger.error("Database error on %s: %s", request.url.path, exc, exc_info=True)
    performance_monitor.record_error(_route_path(request))
    return _error_response(request, 503, ERROR_CODES["db"], "Database unavailable")


async def general_exception_handler(request: Request, exc: Exception):
    logger.error("Unhandled exception: %s", exc, exc_info=True)
    performance_monitor.record_error(_route_path(request))
    return _error_response(request, 500, ERROR_CODES["internal"], "An unexpected error occurred")


def setup_exception_handlers(app: FastAPI) -> None:
    """Render every failure in the error envelope."""
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(StarletteHTTPException, starlette_exception_handler)
    app.add_exception_handler(DomainError, domain_exception_handler)
    app.add_exception_handler(SQLAlchemyError, database_exception_handler)
    app.add_exception_handler(Exception, general_exception_handler)


def setup_routes(app: FastAPI) -> None:
    """Setup application routes."""

    @app.get("/health")
    async def health_check():
        """Health check endpoint for monitoring."""
        with trace_operation("health_check"):
            db_health = await async_database_health_check()
            return {
                "status": "healthy" if db_health["status"] == "healthy" else "unhealthy",
                "timestamp": time.time(),
                "database": db_health,
                "version": SERVICE_VERSION,
            }

    @app.get("/")
    async def root():
        """Root endpoint with API information."""
        return {
            "status": "success",
            "data": {
                "message": "Statement Desk",
                "version": SERVICE_VERSION,
                "docs": "/docs",
                "health": "/health"
            },
            "timestamp": time.time()
        }

    app.include_router(statements_router, prefix="/api/v1/statements", tags=["Statements"])
    # Legacy prefix used by the dashboard frontend
    app.include_router(statements_router, prefix="/statements", include_in_schema=False)
    app.include_router(system_router, prefix="/api/v1/system", tags=["System"])
    # Exposes /metrics (Prometheus exposition format) without API prefix
    app.include_router(metrics_router)


app = create_application()


__all__ = ["app", "create_application"]
