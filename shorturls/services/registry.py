"""Shortcode registry for the short URL service.

This module contains the ShortcodeRegistry class, the in-memory authoritative
store of shortcode -> LinkRecord. It owns link creation, lookup, expiry checks
and click recording, and is safe to share between concurrent request handlers.
"""

import logging
import math
import re
import threading
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, Optional

from pydantic import AnyUrl, TypeAdapter, ValidationError

from shorturls.core.events import EventLevel, EventSink, LoguruEventSink, emit_event
from shorturls.models.click import ClickEvent
from shorturls.models.link import CreatedLink, LinkRecord
from shorturls.services.exceptions import (
    CodeConflictError,
    CustomCodeValidationError,
    InvalidURLError,
    ShortCodeGenerationError,
    URLExpiredError,
    URLNotFoundError,
)
from shorturls.services.generator import ShortCodeGenerator, is_valid_short_code

logger = logging.getLogger(__name__)

EVENT_CATEGORY = "registry"

DEFAULT_VALIDITY_MINUTES = 30

_LEADING_INT = re.compile(r"\s*([+-]?\d+)")

_URL_ADAPTER = TypeAdapter(AnyUrl)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def parse_validity(value: Any, default: int = DEFAULT_VALIDITY_MINUTES) -> int:
    """
    Interpret a client-supplied validity in minutes.

    Integers are taken as-is, floats are truncated and strings contribute
    their leading integer ("15abc" -> 15). Anything else, and any result
    that is not positive, yields ``default``. Never raises.

    Args:
        value: Raw validity value from the request
        default: Minutes to use when the value is unusable

    Returns:
        int: A positive number of minutes
    """
    minutes: Optional[int] = None

    if isinstance(value, bool):
        minutes = None
    elif isinstance(value, int):
        minutes = value
    elif isinstance(value, float):
        minutes = int(value) if math.isfinite(value) else None
    elif isinstance(value, str):
        match = _LEADING_INT.match(value)
        minutes = int(match.group(1)) if match else None

    if minutes is None or minutes <= 0:
        return default
    return minutes


def is_valid_url(url: Any) -> bool:
    """Check that ``url`` is an absolute URL with both a scheme and a host.

    Parsing follows the WHATWG URL rules through pydantic, so hosts with
    spaces or forbidden characters and out-of-range ports are rejected.
    Hosts with empty labels (``a..b``) are rejected as well.
    """
    if not isinstance(url, str) or not url.strip():
        return False

    try:
        parsed = _URL_ADAPTER.validate_python(url)
    except ValidationError:
        return False

    host = parsed.host
    if not host:
        return False
    if not host.startswith("[") and any(not label for label in host.rstrip(".").split(".")):
        return False
    return True


class ShortcodeRegistry:
    """
    In-memory map of shortcode to LinkRecord.

    A single lock guards the map and every record in it. All operations are
    synchronous and never wait on I/O, so holding the lock is always brief.
    Events are emitted to the sink after the lock is released.
    """

    def __init__(
        self,
        sink: Optional[EventSink] = None,
        generator: Optional[ShortCodeGenerator] = None,
        clock: Callable[[], datetime] = utc_now,
        default_validity_minutes: int = DEFAULT_VALIDITY_MINUTES,
        max_attempts: int = 10,
        custom_code_max_length: int = 32,
    ):
        """
        Initialize the registry.

        Args:
            sink: Receiver of structured events (local log by default)
            generator: Source of candidate shortcodes
            clock: Returns the current time as an aware UTC datetime
            default_validity_minutes: Validity used when the client gives none
            max_attempts: Generated candidates tried before giving up
            custom_code_max_length: Longest accepted requested shortcode
        """
        self.sink = sink or LoguruEventSink()
        self.generator = generator or ShortCodeGenerator()
        self.clock = clock
        self.default_validity_minutes = default_validity_minutes
        self.max_attempts = max_attempts
        self.custom_code_max_length = custom_code_max_length
        self._links: Dict[str, LinkRecord] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._links)

    def __contains__(self, code: object) -> bool:
        return isinstance(code, str) and self.exists(code)

    def exists(self, code: str) -> bool:
        """Check whether a record, active or expired, is stored under ``code``."""
        with self._lock:
            return code in self._links

    def create(
        self,
        url: Any,
        validity: Any = None,
        requested_code: Optional[str] = None,
    ) -> CreatedLink:
        """
        Register a new short link.

        Args:
            url: The original URL to shorten
            validity: Minutes until expiry; unusable values fall back to the default
            requested_code: Optional client-chosen shortcode

        Returns:
            CreatedLink: The stored code together with its timestamps

        Raises:
            InvalidURLError: If the URL is missing or not absolute
            CustomCodeValidationError: If the requested code is malformed
            CodeConflictError: If the requested code is already registered
            ShortCodeGenerationError: If no free code could be generated
        """
        if not is_valid_url(url):
            self._emit(EventLevel.WARN, f"Rejected invalid URL: {url!r}")
            raise InvalidURLError(f"Invalid or missing URL: {url!r}")

        if requested_code and not is_valid_short_code(requested_code, self.custom_code_max_length):
            self._emit(EventLevel.WARN, f"Rejected invalid shortcode: {requested_code!r}")
            raise CustomCodeValidationError(
                f"Shortcode '{requested_code}' does not meet requirements. "
                f"Must be {self.custom_code_max_length} chars or less, "
                f"containing only letters, numbers, hyphens and underscores."
            )

        minutes = parse_validity(validity, self.default_validity_minutes)

        # Choosing a free code and inserting it is one step under the lock
        with self._lock:
            if requested_code:
                short_code = None if requested_code in self._links else requested_code
            else:
                short_code = self._claim_generated_code()

            if short_code is not None:
                created_at = self.clock()
                expires_at = self._expiry(created_at, minutes)
                self._links[short_code] = LinkRecord(
                    short_code=short_code,
                    original_url=url,
                    created_at=created_at,
                    expires_at=expires_at,
                )

        if short_code is None and requested_code:
            self._emit(EventLevel.WARN, f"Shortcode conflict: '{requested_code}' is already in use")
            raise CodeConflictError(requested_code)
        if short_code is None:
            message = f"Failed to generate a unique shortcode after {self.max_attempts} attempts"
            emit_event(self.sink, EventLevel.ERROR, "generator", message)
            raise ShortCodeGenerationError(message)

        self._emit(
            EventLevel.INFO,
            f"Created shortcode '{short_code}' for {url} expiring at {expires_at.isoformat()}",
        )
        return CreatedLink(
            short_code=short_code,
            original_url=url,
            created_at=created_at,
            expires_at=expires_at,
        )

    def resolve(
        self,
        code: str,
        referrer: Optional[str] = None,
        source_address: Optional[str] = None,
    ) -> str:
        """
        Look up the target of a shortcode and record the click.

        Args:
            code: The shortcode being followed
            referrer: Referer supplied by the visitor
            source_address: Network origin of the visitor

        Returns:
            str: The original URL to redirect to

        Raises:
            URLNotFoundError: If no link is registered under the code
            URLExpiredError: If the link exists but has expired
        """
        with self._lock:
            record = self._links.get(code)
            now = self.clock()
            if record is None:
                outcome = "missing"
            elif record.is_expired(now):
                outcome = "expired"
            else:
                outcome = "ok"
                record.register_click(
                    ClickEvent(timestamp=now, referrer=referrer, source_address=source_address)
                )
                original_url = record.original_url
                click_count = record.click_count

        if outcome == "missing":
            self._emit(EventLevel.WARN, f"Redirect requested for unknown shortcode '{code}'")
            raise URLNotFoundError(code)
        if outcome == "expired":
            self._emit(EventLevel.WARN, f"Redirect refused for expired shortcode '{code}'")
            raise URLExpiredError(code)

        self._emit(
            EventLevel.INFO,
            f"Redirected '{code}' to {original_url} (click {click_count})",
        )
        return original_url

    def stats(self, code: str) -> LinkRecord:
        """
        Get a consistent snapshot of a link and its click history.

        Expired links are still reported.

        Raises:
            URLNotFoundError: If no link is registered under the code
        """
        with self._lock:
            record = self._links.get(code)
            snapshot = record.snapshot() if record is not None else None

        if snapshot is None:
            self._emit(EventLevel.WARN, f"Stats requested for unknown shortcode '{code}'")
            raise URLNotFoundError(code)

        self._emit(
            EventLevel.INFO,
            f"Stats retrieved for '{code}' ({snapshot.click_count} clicks)",
        )
        return snapshot

    def _claim_generated_code(self) -> Optional[str]:
        # Caller must hold self._lock
        for attempt in range(1, self.max_attempts + 1):
            candidate = self.generator.generate()
            if candidate not in self._links:
                return candidate
            logger.debug(f"Generated shortcode '{candidate}' already taken (attempt {attempt})")
        return None

    def _expiry(self, created_at: datetime, minutes: int) -> datetime:
        try:
            return created_at + timedelta(minutes=minutes)
        except OverflowError:
            logger.warning(f"Validity of {minutes} minutes is out of range, using default")
            return created_at + timedelta(minutes=self.default_validity_minutes)

    def _emit(self, level: EventLevel, message: str) -> None:
        emit_event(self.sink, level, EVENT_CATEGORY, message)
