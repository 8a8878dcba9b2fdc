"""Tests for the short link endpoints."""

from datetime import timedelta

import pytest
from fastapi.testclient import TestClient

from shorturls.core.events import EventLevel
from shorturls.main import create_app
from shorturls.services.registry import ShortcodeRegistry
from tests.utils import RecordingSink, SequenceGenerator


@pytest.mark.api
class TestCreateEndpoint:

    def test_create_returns_short_link_and_expiry(self, client, clock):
        response = client.post("/shorturls", json={"url": "https://example.com/page", "validity": 1})

        assert response.status_code == 200
        body = response.json()
        assert body["shortLink"].startswith("http://testserver/shorturls/")
        assert len(body["shortLink"].rsplit("/", 1)[1]) == 4
        expected_expiry = clock.now + timedelta(minutes=1)
        assert body["expiry"] == expected_expiry.strftime("%Y-%m-%dT%H:%M:%S.000Z")

    def test_create_defaults_validity(self, client, clock):
        response = client.post("/shorturls", json={"url": "https://example.com", "validity": "soon"})

        assert response.status_code == 200
        assert response.json()["expiry"] == "2024-01-01T12:30:00.000Z"

    def test_create_with_shortcode(self, client, registry):
        response = client.post("/shorturls", json={"url": "https://example.com", "shortcode": "promo"})

        assert response.status_code == 200
        assert response.json()["shortLink"] == "http://testserver/shorturls/promo"
        assert registry.exists("promo")

    def test_numeric_shortcode_is_accepted(self, client, registry):
        response = client.post("/shorturls", json={"url": "https://example.com", "shortcode": 2024})

        assert response.status_code == 200
        assert registry.exists("2024")

    def test_short_link_uses_request_host(self, client):
        response = client.post(
            "/shorturls",
            json={"url": "https://example.com", "shortcode": "hosted"},
            headers={"host": "sho.rt:8080"},
        )

        assert response.json()["shortLink"] == "http://sho.rt:8080/shorturls/hosted"

    @pytest.mark.parametrize("payload", [
        {},
        {"url": ""},
        {"url": "not a url"},
        {"url": 12345},
        {"url": None},
    ])
    def test_invalid_url(self, client, payload):
        response = client.post("/shorturls", json=payload)

        assert response.status_code == 400
        assert response.json()["error_code"] == "InvalidUrl"

    def test_invalid_shortcode(self, client):
        response = client.post("/shorturls", json={"url": "https://example.com", "shortcode": "a/b"})

        assert response.status_code == 400
        assert response.json()["error_code"] == "InvalidCode"

    def test_conflict(self, client, registry):
        client.post("/shorturls", json={"url": "https://first.example.com", "shortcode": "dup"})

        response = client.post("/shorturls", json={"url": "https://second.example.com", "shortcode": "dup"})

        assert response.status_code == 409
        assert response.json()["error_code"] == "CodeConflict"
        assert registry.stats("dup").original_url == "https://first.example.com"

    def test_non_object_body(self, client):
        response = client.post("/shorturls", json=["https://example.com"])

        assert response.status_code == 422

    def test_response_carries_request_id(self, client):
        response = client.post("/shorturls", json={"url": "https://example.com"})

        assert response.headers["X-Request-ID"]


@pytest.mark.api
class TestRedirectEndpoint:

    def test_redirect(self, client):
        client.post("/shorturls", json={"url": "https://example.com/target", "shortcode": "go"})

        response = client.get("/shorturls/go", follow_redirects=False)

        assert response.status_code == 302
        assert response.headers["location"] == "https://example.com/target"

    def test_redirect_records_referrer_and_address(self, client, registry):
        client.post("/shorturls", json={"url": "https://example.com", "shortcode": "track"})

        client.get(
            "/shorturls/track",
            headers={"referer": "https://news.example", "x-forwarded-for": "203.0.113.7, 10.0.0.1"},
            follow_redirects=False,
        )

        click = registry.stats("track").click_events[0]
        assert click.referrer == "https://news.example"
        assert click.source_address == "203.0.113.7"

    def test_redirect_unknown(self, client):
        response = client.get("/shorturls/nothere", follow_redirects=False)

        assert response.status_code == 404
        assert response.json()["error_code"] == "NotFound"

    def test_redirect_expired(self, client, clock):
        client.post("/shorturls", json={"url": "https://example.com", "shortcode": "old", "validity": 1})
        clock.advance(minutes=1, milliseconds=1)

        response = client.get("/shorturls/old", follow_redirects=False)

        assert response.status_code == 410
        assert response.json()["error_code"] == "Expired"

    def test_redirect_at_expiry_instant(self, client, clock):
        client.post("/shorturls", json={"url": "https://example.com", "shortcode": "edge", "validity": 1})
        clock.advance(minutes=1)

        response = client.get("/shorturls/edge", follow_redirects=False)

        assert response.status_code == 302


@pytest.mark.api
class TestStatsEndpoint:

    def test_stats(self, client, clock):
        client.post("/shorturls", json={"url": "https://example.com", "shortcode": "stat", "validity": 10})
        clock.advance(seconds=5)
        client.get("/shorturls/stat", headers={"referer": "https://a.example"}, follow_redirects=False)
        clock.advance(seconds=5)
        client.get("/shorturls/stat", follow_redirects=False)

        response = client.get("/shorturls/stat/stats")

        assert response.status_code == 200
        body = response.json()
        assert body["shortcode"] == "stat"
        assert body["originalUrl"] == "https://example.com"
        assert body["createdAt"] == "2024-01-01T12:00:00.000Z"
        assert body["expiry"] == "2024-01-01T12:10:00.000Z"
        assert body["totalClicks"] == 2
        assert body["clickDetails"][0] == {
            "timestamp": "2024-01-01T12:00:05.000Z",
            "referrer": "https://a.example",
            "location": "testclient",
        }
        assert body["clickDetails"][1]["referrer"] is None
        assert body["clickDetails"][1]["timestamp"] == "2024-01-01T12:00:10.000Z"

    def test_stats_after_expiry(self, client, clock):
        client.post("/shorturls", json={"url": "https://example.com", "shortcode": "gone", "validity": 1})
        client.get("/shorturls/gone", follow_redirects=False)
        clock.advance(minutes=5)

        assert client.get("/shorturls/gone", follow_redirects=False).status_code == 410
        response = client.get("/shorturls/gone/stats")

        assert response.status_code == 200
        assert response.json()["totalClicks"] == 1

    def test_stats_unknown(self, client):
        response = client.get("/shorturls/missing/stats")

        assert response.status_code == 404
        assert response.json()["error_code"] == "NotFound"

    def test_stats_events_are_emitted(self, client, sink):
        client.post("/shorturls", json={"url": "https://example.com", "shortcode": "ev"})
        client.get("/shorturls/ev/stats")

        assert any("Stats retrieved for 'ev'" in m for m in sink.messages(EventLevel.INFO))


@pytest.mark.api
class TestInternalErrors:

    def test_generator_exhaustion_is_opaque(self, clock):
        sink = RecordingSink()
        registry = ShortcodeRegistry(
            sink=sink,
            clock=clock,
            generator=SequenceGenerator(["same"]),
            max_attempts=2,
        )
        registry.create("https://example.com")
        app = create_app(registry=registry, event_sink=sink)

        with TestClient(app) as client:
            response = client.post("/shorturls", json={"url": "https://example.com"})

        assert response.status_code == 500
        body = response.json()
        assert body["detail"] == "Internal server error"
        assert body["error_code"] == "InternalError"
        assert body["error_id"].startswith("error-")
        handler_events = [e for e in sink.events if e.category == "handler"]
        assert handler_events and handler_events[0].level == EventLevel.ERROR

    def test_unexpected_exception_is_opaque(self, clock):
        class BrokenRegistry(ShortcodeRegistry):
            def stats(self, code):
                raise RuntimeError("corrupted record")

        sink = RecordingSink()
        app = create_app(registry=BrokenRegistry(sink=sink, clock=clock), event_sink=sink)

        with TestClient(app, raise_server_exceptions=False) as client:
            response = client.get("/shorturls/any/stats")

        assert response.status_code == 500
        assert response.json()["detail"] == "Internal server error"
        assert any("corrupted record" in e.message for e in sink.events if e.category == "handler")
