"""Test utilities for short URL service tests."""

import random
import string
import threading
from datetime import datetime, timedelta, timezone
from typing import Iterator, List

from shorturls.core.events import LogEvent

EPOCH = datetime(2024, 1, 1, 12, 0, 0, tzinfo=timezone.utc)


def random_string(length: int = 10) -> str:
    """Generate a random alphanumeric string."""
    return ''.join(random.choice(string.ascii_letters + string.digits) for _ in range(length))


def random_url() -> str:
    """Generate a random URL for testing."""
    domain = f"{random_string(8)}.com"
    path = random_string(12)
    return f"https://{domain}/{path}"


class FakeClock:
    """Controllable clock; every call returns the current fake time."""

    def __init__(self, start: datetime = EPOCH):
        self.now = start
        self._lock = threading.Lock()

    def __call__(self) -> datetime:
        with self._lock:
            return self.now

    def advance(self, **kwargs) -> datetime:
        with self._lock:
            self.now = self.now + timedelta(**kwargs)
            return self.now

    def set(self, value: datetime) -> None:
        with self._lock:
            self.now = value


class TickingClock(FakeClock):
    """Clock that moves forward one millisecond on every reading."""

    def __call__(self) -> datetime:
        with self._lock:
            self.now = self.now + timedelta(milliseconds=1)
            return self.now


class RecordingSink:
    """Event sink that keeps every event it receives."""

    def __init__(self):
        self.events: List[LogEvent] = []
        self._lock = threading.Lock()

    def send(self, event: LogEvent) -> None:
        with self._lock:
            self.events.append(event)

    def messages(self, level=None) -> List[str]:
        return [e.message for e in self.events if level is None or e.level == level]


class FailingSink:
    """Event sink that always raises."""

    def __init__(self):
        self.calls = 0

    def send(self, event: LogEvent) -> None:
        self.calls += 1
        raise RuntimeError("collector unreachable")


class SequenceGenerator:
    """Code generator returning a fixed sequence of candidates, then repeating the last."""

    def __init__(self, codes: List[str]):
        self.codes = list(codes)
        self.calls = 0
        self._iter: Iterator[str] = iter(self.codes)

    def generate(self) -> str:
        self.calls += 1
        return next(self._iter, self.codes[-1])
