"""API dependencies for FastAPI.

This module provides dependency injection functions for FastAPI endpoints
to access the application-owned registry and event sink.
"""

from fastapi import Request

from shorturls.core.events import EventSink
from shorturls.services.registry import ShortcodeRegistry


def get_registry(request: Request) -> ShortcodeRegistry:
    """Get the registry owned by the running application."""
    return request.app.state.registry


def get_event_sink(request: Request) -> EventSink:
    """Get the event sink owned by the running application."""
    return request.app.state.event_sink


def build_short_link(request: Request, short_code: str) -> str:
    """Compose the public link from the request's own scheme and host."""
    return f"{request.url.scheme}://{request.url.netloc}/shorturls/{short_code}"
