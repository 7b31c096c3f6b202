"""Tests for the shipped event handlers."""

import json
import logging

import httpx
import pytest
import respx

from src.streams.handlers import (
    CompositeHandler,
    EventHandler,
    LoggingHandler,
    WebhookHandler,
)
from src.streams.schemas import Failure, FailureKind
from tests.test_streams.conftest import RecordingHandler

WEBHOOK_URL = "https://hooks.example.com/stream-alerts"


@pytest.fixture
def failure() -> Failure:
    return Failure(
        kind=FailureKind.STATUS,
        message="Helix returned status 503 for alice",
        identifier="alice",
        status_code=503,
    )


def test_event_handler_requires_both_methods():
    class OnlyLive(EventHandler):
        async def on_live(self, identifier, status):
            pass

    with pytest.raises(TypeError):
        OnlyLive()


class TestLoggingHandler:
    @pytest.mark.asyncio
    async def test_logs_went_live(self, live_status, caplog):
        with caplog.at_level(logging.INFO, logger="src.streams.handlers"):
            await LoggingHandler().on_live("alice", live_status)

        assert "alice went live" in caplog.text
        assert "morning coffee stream" in caplog.text

    @pytest.mark.asyncio
    async def test_logs_failure(self, failure, caplog):
        with caplog.at_level(logging.WARNING, logger="src.streams.handlers"):
            await LoggingHandler().on_error(failure)

        assert "status [alice]" in caplog.text


class TestWebhookHandler:
    @pytest.mark.asyncio
    @respx.mock
    async def test_posts_went_live(self, live_status):
        route = respx.post(WEBHOOK_URL).mock(return_value=httpx.Response(204))
        handler = WebhookHandler(WEBHOOK_URL, headers={"X-Token": "secret"})

        await handler.on_live("alice", live_status)

        assert route.called
        request = route.calls.last.request
        assert request.headers["X-Token"] == "secret"
        payload = json.loads(request.content)
        assert payload["event"] == "went_live"
        assert payload["identifier"] == "alice"
        assert payload["title"] == "morning coffee stream"
        assert payload["category"] == "Just Chatting"
        assert payload["started_at"] == "2026-03-02T19:30:00+00:00"
        assert payload["url"] == "https://twitch.tv/alice"
        assert "1280x720" in payload["thumbnail_url"]

    @pytest.mark.asyncio
    @respx.mock
    async def test_posts_failure(self, failure):
        route = respx.post(WEBHOOK_URL).mock(return_value=httpx.Response(200))

        await WebhookHandler(WEBHOOK_URL).on_error(failure)

        payload = json.loads(route.calls.last.request.content)
        assert payload["event"] == "failure"
        assert payload["kind"] == "status"
        assert payload["identifier"] == "alice"
        assert payload["status_code"] == 503

    @pytest.mark.asyncio
    @respx.mock
    async def test_error_status_is_swallowed(self, live_status):
        respx.post(WEBHOOK_URL).mock(return_value=httpx.Response(500))

        await WebhookHandler(WEBHOOK_URL).on_live("alice", live_status)

    @pytest.mark.asyncio
    @respx.mock
    async def test_timeout_is_swallowed(self, failure):
        respx.post(WEBHOOK_URL).mock(side_effect=httpx.ReadTimeout)

        await WebhookHandler(WEBHOOK_URL).on_error(failure)

    @pytest.mark.asyncio
    @respx.mock
    async def test_connection_error_is_swallowed(self, failure):
        respx.post(WEBHOOK_URL).mock(side_effect=httpx.ConnectError)

        await WebhookHandler(WEBHOOK_URL).on_error(failure)


class TestCompositeHandler:
    def test_requires_handlers(self):
        with pytest.raises(ValueError):
            CompositeHandler([])

    @pytest.mark.asyncio
    async def test_fans_out_in_order(self, live_status, failure):
        journal: list[tuple] = []
        first = RecordingHandler(journal)
        second = RecordingHandler(journal)
        composite = CompositeHandler([first, second])

        await composite.on_live("alice", live_status)
        await composite.on_error(failure)

        assert len(first.live) == len(second.live) == 1
        assert first.errors == second.errors == [failure]
        assert journal == [
            ("on_live", "alice"),
            ("on_live", "alice"),
            ("on_error", FailureKind.STATUS),
            ("on_error", FailureKind.STATUS),
        ]
        assert composite.handlers == [first, second]
