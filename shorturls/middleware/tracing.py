"""
Request tracing for the short URL service.

Each request gets one server span named after its route template
(``GET /shorturls/{short_code}``) rather than the raw path, so spans for
different shortcodes group together. The shortcode itself and the registry
outcome are recorded as span attributes.
"""

import time
from typing import Any, Dict, Optional

from fastapi import Request
from opentelemetry import trace
from opentelemetry.trace import SpanKind, Status, StatusCode
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response
from starlette.types import ASGIApp

from shorturls.core.telemetry import get_meter

OUTCOME_OK = "ok"

meter = get_meter("shorturls.middleware")

request_counter = meter.create_counter(
    name="shorturls.http.requests",
    description="Number of HTTP requests by route and registry outcome",
    unit="1",
)

request_duration = meter.create_histogram(
    name="shorturls.http.duration",
    description="Duration of HTTP requests",
    unit="ms",
)


def record_outcome(request: Request, outcome: str) -> None:
    """Remember the registry outcome of a request for the tracing middleware."""
    request.state.registry_outcome = outcome


def _route_template(request: Request) -> str:
    route = request.scope.get("route")
    return getattr(route, "path", None) or request.url.path


class TracingMiddleware(BaseHTTPMiddleware):
    """Open a span per request and tag it with shortcode and registry outcome."""

    def __init__(self, app: ASGIApp, tracer_provider: Optional[trace.TracerProvider] = None) -> None:
        super().__init__(app)
        self.tracer = trace.get_tracer("shorturls.middleware", tracer_provider=tracer_provider)

    async def dispatch(self, request: Request, call_next) -> Response:
        start_time = time.time()

        with self.tracer.start_as_current_span(
            f"{request.method} {request.url.path}",
            kind=SpanKind.SERVER,
            attributes={
                "http.method": request.method,
                "http.target": request.url.path,
                "http.user_agent": request.headers.get("user-agent", ""),
            },
        ) as span:
            response = await call_next(request)

            # Routing has filled in the scope by now
            route = _route_template(request)
            span.update_name(f"{request.method} {route}")

            outcome = getattr(request.state, "registry_outcome", OUTCOME_OK)
            attributes: Dict[str, Any] = {
                "http.method": request.method,
                "http.route": route,
                "http.status_code": response.status_code,
                "shorturls.outcome": outcome,
            }
            short_code = request.path_params.get("short_code")
            if short_code is not None:
                span.set_attribute("shorturls.short_code", short_code)

            span.set_attributes(attributes)
            if response.status_code >= 500:
                span.set_status(Status(StatusCode.ERROR, outcome))

            request_counter.add(1, attributes)
            request_duration.record((time.time() - start_time) * 1000, attributes)

            return response
