"""
Request logging middleware for FastAPI using Loguru.

Every request gets an ID (echoed back in ``X-Request-ID``) and a single
access line at the custom REQUEST level once the response is ready.
"""

import time
import uuid
from contextvars import ContextVar
from typing import Any, Dict, Optional

from fastapi import Request, Response
from loguru import logger
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

from shorturls.core.logging import register_request_level

# Context variable to store request ID across async context
request_id_var: ContextVar[str] = ContextVar("request_id", default="")


def get_client_ip(request: Request) -> Optional[str]:
    """Best-effort client address, preferring the first X-Forwarded-For entry."""
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        first = forwarded.split(",")[0].strip()
        if first:
            return first
    return request.client.host if request.client else None


class LoggingMiddleware(BaseHTTPMiddleware):
    """Log method, path, status and timing of every request."""

    def __init__(self, app: ASGIApp):
        super().__init__(app)
        register_request_level()

    async def dispatch(self, request: Request, call_next) -> Response:
        request_id = str(uuid.uuid4())
        request_id_var.set(request_id)

        start_time = time.time()

        response = await call_next(request)

        # Add request ID to response headers for traceability
        response.headers["X-Request-ID"] = request_id

        process_time = time.time() - start_time

        log_record: Dict[str, Any] = {
            "request_id": request_id,
            "client_ip": get_client_ip(request) or "unknown",
            "method": request.method,
            "path": request.url.path,
            "status_code": response.status_code,
            "process_time_ms": round(process_time * 1000, 2),
        }

        if request.query_params:
            log_record["query_params"] = dict(request.query_params)

        logger.log(
            "REQUEST",
            "{method} {path} {status_code} {process_time_ms}ms {client_ip} {request_id}",
            **log_record,
        )

        return response


def add_logging_middleware(app) -> None:
    """Add the request logging middleware to the FastAPI application."""
    app.add_middleware(LoggingMiddleware)
