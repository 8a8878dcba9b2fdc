"""
Structured event sinks.

The registry and the HTTP layer report significant events as ``LogEvent``
records through anything with a non-blocking ``send(event)`` method. Two
sinks are provided: ``LoguruEventSink`` writes events to the local log, and
``CollectorEventSink`` forwards them to a remote log collector over HTTP
without ever blocking or failing the caller.
"""

import asyncio
from enum import Enum
from typing import Any, Dict, Optional, Protocol

import httpx
from loguru import logger
from pydantic import BaseModel, ConfigDict

from shorturls.core.config import settings


class EventLevel(str, Enum):
    DEBUG = "debug"
    INFO = "info"
    WARN = "warn"
    ERROR = "error"
    FATAL = "fatal"


# Loguru level name for each event level
_LOGURU_LEVELS = {
    EventLevel.DEBUG: "DEBUG",
    EventLevel.INFO: "INFO",
    EventLevel.WARN: "WARNING",
    EventLevel.ERROR: "ERROR",
    EventLevel.FATAL: "CRITICAL",
}


class LogEvent(BaseModel):
    """A structured event destined for the telemetry sink."""

    model_config = ConfigDict(frozen=True)

    component: str
    level: EventLevel
    category: str
    message: str

    def to_payload(self) -> Dict[str, Any]:
        """Wire format expected by the log collector."""
        return {
            "stack": self.component,
            "level": self.level.value,
            "package": self.category,
            "message": self.message,
        }


class EventSink(Protocol):
    """Anything that accepts events without blocking the caller."""

    def send(self, event: LogEvent) -> None:
        ...


class LoguruEventSink:
    """Write events to the local loguru handlers."""

    def send(self, event: LogEvent) -> None:
        logger.bind(
            event_component=event.component,
            event_category=event.category,
        ).log(
            _LOGURU_LEVELS[event.level],
            "[{}/{}] {}",
            event.component,
            event.category,
            event.message,
        )


class CollectorEventSink:
    """
    Fire-and-forget delivery of events to a remote log collector.

    ``send`` only enqueues; a background worker posts each event with httpx.
    Events that cannot be delivered (sink not started, queue full, transport
    failure, non-2xx response) are logged locally through the fallback sink.
    """

    def __init__(
        self,
        endpoint: str,
        timeout: float = 5.0,
        queue_size: int = 10000,
        fallback: Optional[EventSink] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize the collector sink.

        Args:
            endpoint: URL the events are POSTed to
            timeout: Per-request timeout in seconds
            queue_size: Maximum number of pending events
            fallback: Sink receiving events that could not be delivered
            transport: Optional httpx transport, mainly for tests
        """
        self.endpoint = endpoint
        self.timeout = timeout
        self.queue_size = queue_size
        self.fallback = fallback or LoguruEventSink()
        self._transport = transport
        self._queue: Optional[asyncio.Queue] = None
        self._client: Optional[httpx.AsyncClient] = None
        self._worker: Optional[asyncio.Task] = None
        self._loop: Optional[asyncio.AbstractEventLoop] = None

    @property
    def is_running(self) -> bool:
        return self._worker is not None and not self._worker.done()

    async def start(self) -> None:
        """Create the HTTP client and start the delivery worker."""
        if self.is_running:
            logger.warning("Event collector sink already started")
            return

        self._loop = asyncio.get_running_loop()
        self._queue = asyncio.Queue(maxsize=self.queue_size)
        self._client = httpx.AsyncClient(timeout=self.timeout, transport=self._transport)
        self._worker = asyncio.create_task(self._run())
        logger.info(f"Event collector sink started, forwarding to {self.endpoint}")

    async def stop(self, timeout: float = 5.0) -> None:
        """Drain pending events within ``timeout`` seconds, then shut down."""
        if self._queue is not None and self.is_running:
            try:
                await asyncio.wait_for(self._queue.join(), timeout=timeout)
            except asyncio.TimeoutError:
                logger.warning(
                    f"Timed out draining event queue, {self._queue.qsize()} events left undelivered"
                )

        if self._worker is not None:
            self._worker.cancel()
            try:
                await self._worker
            except asyncio.CancelledError:
                pass
            self._worker = None

        if self._client is not None:
            await self._client.aclose()
            self._client = None

        # Anything still queued goes to the local log
        if self._queue is not None:
            while not self._queue.empty():
                self.fallback.send(self._queue.get_nowait())
                self._queue.task_done()
            self._queue = None
        self._loop = None

        logger.info("Event collector sink stopped")

    def send(self, event: LogEvent) -> None:
        """Queue an event for delivery; safe to call from any thread."""
        if self._queue is None or self._loop is None or not self.is_running:
            self.fallback.send(event)
            return

        try:
            current_loop = asyncio.get_running_loop()
        except RuntimeError:
            current_loop = None

        if current_loop is self._loop:
            self._enqueue(event)
            return

        # asyncio.Queue is not thread-safe, so hand off to the worker's loop
        try:
            self._loop.call_soon_threadsafe(self._enqueue, event)
        except RuntimeError:
            self.fallback.send(event)

    def _enqueue(self, event: LogEvent) -> None:
        if self._queue is None:
            self.fallback.send(event)
            return

        try:
            self._queue.put_nowait(event)
        except asyncio.QueueFull:
            logger.warning("Event queue full, logging event locally")
            self.fallback.send(event)

    async def _run(self) -> None:
        while True:
            event = await self._queue.get()
            try:
                await self._deliver(event)
            except asyncio.CancelledError:
                # Shutdown interrupted this delivery
                self.fallback.send(event)
                raise
            except Exception as e:
                logger.error(f"Unexpected error delivering log event: {e}")
                self.fallback.send(event)
            finally:
                self._queue.task_done()

    async def _deliver(self, event: LogEvent) -> None:
        try:
            response = await self._client.post(self.endpoint, json=event.to_payload())
            response.raise_for_status()
        except httpx.HTTPError as e:
            logger.error(f"Could not send log event to collector: {e}")
            self.fallback.send(event)


def create_event_sink() -> EventSink:
    """Build the sink selected by settings."""
    if settings.EVENT_COLLECTOR_URL:
        return CollectorEventSink(
            endpoint=settings.EVENT_COLLECTOR_URL,
            timeout=settings.EVENT_COLLECTOR_TIMEOUT,
            queue_size=settings.EVENT_QUEUE_SIZE,
        )
    return LoguruEventSink()


def emit_event(
    sink: EventSink,
    level: EventLevel,
    category: str,
    message: str,
    component: Optional[str] = None,
) -> None:
    """
    Send an event, isolating the caller from any sink failure.

    A sink that raises is reported to the local log and otherwise ignored,
    so the operation that triggered the event always completes.
    """
    event = LogEvent(
        component=component or settings.EVENT_COMPONENT,
        level=level,
        category=category,
        message=message,
    )
    try:
        sink.send(event)
    except Exception as e:
        logger.opt(exception=e).error(
            f"Event sink {type(sink).__name__} failed, dropping event: {event.message}"
        )
