"""Test fixtures for the short URL service."""

import os

# Settings are read at import time, so the test environment goes first
os.environ["ENVIRONMENT"] = "testing"
os.environ["DEBUG"] = "false"
os.environ["LOG_TO_FILE"] = "false"
os.environ["OTEL_ENABLED"] = "false"
os.environ["EVENT_COLLECTOR_URL"] = ""

from typing import Generator

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from shorturls.main import create_app
from shorturls.services.registry import ShortcodeRegistry
from tests.utils import FakeClock, RecordingSink


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def sink() -> RecordingSink:
    return RecordingSink()


@pytest.fixture
def registry(clock, sink) -> ShortcodeRegistry:
    """Return a registry with a fake clock and a recording sink."""
    return ShortcodeRegistry(sink=sink, clock=clock)


@pytest.fixture
def test_app(registry, sink) -> FastAPI:
    """Create a FastAPI test app serving the fixture registry."""
    return create_app(registry=registry, event_sink=sink)


@pytest.fixture
def client(test_app) -> Generator[TestClient, None, None]:
    """Return FastAPI TestClient instance."""
    with TestClient(test_app) as test_client:
        yield test_client
