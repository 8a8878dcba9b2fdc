"""Main application module.

This module builds the FastAPI application: it wires the shortcode registry
and event sink, includes routes, and configures middleware and exception
handlers.
"""

import time
from typing import Optional

from fastapi import FastAPI, HTTPException, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from loguru import logger

from shorturls.api import api_router
from shorturls.core.config import settings
from shorturls.core.events import (
    CollectorEventSink,
    EventLevel,
    EventSink,
    create_event_sink,
    emit_event,
)
from shorturls.core.logging import setup_logging
from shorturls.core.telemetry import get_service_metrics, instrument_app, setup_telemetry
from shorturls.middleware.logging import add_logging_middleware
from shorturls.middleware.tracing import TracingMiddleware, record_outcome
from shorturls.services.exceptions import ErrorKind, ShortURLError
from shorturls.services.generator import ShortCodeGenerator
from shorturls.services.registry import ShortcodeRegistry

# Status code for each registry outcome
STATUS_BY_KIND = {
    ErrorKind.INVALID_URL: 400,
    ErrorKind.INVALID_CODE: 400,
    ErrorKind.CODE_CONFLICT: 409,
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.EXPIRED: 410,
    ErrorKind.INTERNAL_ERROR: 500,
}


def create_registry(sink: EventSink) -> ShortcodeRegistry:
    """Build a registry configured from settings."""
    return ShortcodeRegistry(
        sink=sink,
        generator=ShortCodeGenerator(nbytes=settings.CODE_RANDOM_BYTES),
        default_validity_minutes=settings.DEFAULT_VALIDITY_MINUTES,
        max_attempts=settings.CODE_MAX_ATTEMPTS,
        custom_code_max_length=settings.CUSTOM_CODE_MAX_LENGTH,
    )


def _internal_error_response(request: Request, exc: Exception) -> JSONResponse:
    error_id = f"error-{time.time()}"
    error_location = f"{request.method} {request.url.path}"

    # Full detail goes to the log before the client gets the opaque version
    logger.bind(
        error_id=error_id,
        url=str(request.url),
        method=request.method,
        path_params=request.path_params,
        query_params=dict(request.query_params),
        client_host=request.client.host if request.client else None
    ).opt(exception=exc).error("Unhandled exception in {}", error_location)
    emit_event(
        request.app.state.event_sink,
        EventLevel.ERROR,
        "handler",
        f"Internal error {error_id} in {error_location}: {type(exc).__name__}: {exc}",
    )

    return JSONResponse(
        status_code=500,
        content={
            "detail": str(exc) if settings.DEBUG else "Internal server error",
            "error_code": ErrorKind.INTERNAL_ERROR.value,
            "error_id": error_id,
        }
    )


def create_app(
    registry: Optional[ShortcodeRegistry] = None,
    event_sink: Optional[EventSink] = None,
) -> FastAPI:
    """
    Create the FastAPI application.

    Args:
        registry: Registry to serve; built from settings when omitted
        event_sink: Sink for structured events; built from settings when omitted

    Returns:
        FastAPI: The configured application
    """
    setup_logging()

    if event_sink is None:
        event_sink = registry.sink if registry is not None else create_event_sink()
    if registry is None:
        registry = create_registry(event_sink)

    app = FastAPI(
        title=settings.APP_NAME,
        description=settings.APP_DESCRIPTION,
        version=settings.APP_VERSION,
        docs_url="/docs" if settings.DEBUG else None,
        redoc_url="/redoc" if settings.DEBUG else None,
    )

    # The registry lives exactly as long as the application
    app.state.registry = registry
    app.state.event_sink = event_sink

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    if settings.OTEL_ENABLED:
        app.add_middleware(TracingMiddleware)

    if settings.REQUEST_LOGGING_ENABLED:
        add_logging_middleware(app)

    app.include_router(api_router)

    @app.exception_handler(ShortURLError)
    async def short_url_exception_handler(request: Request, exc: ShortURLError):
        get_service_metrics().failures.add(1, {"kind": exc.kind.value})
        record_outcome(request, exc.kind.value)
        if exc.kind is ErrorKind.INTERNAL_ERROR:
            return _internal_error_response(request, exc)
        return JSONResponse(
            status_code=STATUS_BY_KIND[exc.kind],
            content={"detail": str(exc), "error_code": exc.kind.value}
        )

    @app.exception_handler(HTTPException)
    async def http_exception_handler(request: Request, exc: HTTPException):
        return JSONResponse(
            status_code=exc.status_code,
            content={"detail": exc.detail}
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        """Handle validation errors with detailed information."""
        logger.warning(f"Request validation error: {exc}")
        return JSONResponse(
            status_code=422,
            content={"detail": "Validation error", "errors": jsonable_encoder(exc.errors())}
        )

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        """Global exception handler to catch and log all unhandled exceptions."""
        return _internal_error_response(request, exc)

    @app.on_event("startup")
    async def startup_event():
        logger.info(f"Starting {settings.APP_NAME} v{settings.APP_VERSION}")
        logger.info(f"Environment: {settings.ENVIRONMENT.value}")
        logger.info(f"Debug mode: {settings.DEBUG}")

        setup_telemetry()
        instrument_app(app)

        sink = app.state.event_sink
        if isinstance(sink, CollectorEventSink):
            await sink.start()

    @app.on_event("shutdown")
    async def shutdown_event():
        logger.info(f"Shutting down {settings.APP_NAME}")

        sink = app.state.event_sink
        if isinstance(sink, CollectorEventSink):
            await sink.stop(timeout=settings.EVENT_SHUTDOWN_TIMEOUT)

    return app


app = create_app()
