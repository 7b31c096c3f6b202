"""Event handlers: the engine's only channel to the outside world.

The engine awaits each call inline before moving on, so a slow handler
stalls the whole polling cadence. Exceptions raised by a handler are not
caught by the engine and terminate ``run()``; handlers that talk to the
network should catch their own delivery errors, as WebhookHandler does.

Pattern: Strategy (engine holds one EventHandler), Composite for fan-out.
"""

import logging
from abc import ABC, abstractmethod
from typing import Any

import httpx

from src.streams.schemas import Failure, LiveStatus

logger = logging.getLogger(__name__)


class EventHandler(ABC):
    """Receives went-live events and classified failures."""

    @abstractmethod
    async def on_live(self, identifier: str, status: LiveStatus) -> None:
        """Called once per new live session, after it has been persisted.

        Args:
            identifier: Watch-list identifier of the channel.
            status: Session metadata reported by Helix.
        """

    @abstractmethod
    async def on_error(self, failure: Failure) -> None:
        """Called for every classified, non-fatal failure.

        Args:
            failure: What went wrong, and for which channel if known.
        """


class LoggingHandler(EventHandler):
    """Writes one log line per event."""

    async def on_live(self, identifier: str, status: LiveStatus) -> None:
        logger.info(
            "%s went live: %r playing %s (%d viewers, started %s)",
            identifier,
            status.title,
            status.category or "no category",
            status.viewer_count,
            status.started_at.isoformat(),
        )

    async def on_error(self, failure: Failure) -> None:
        logger.warning("Status check failure %s", failure)


class WebhookHandler(EventHandler):
    """Delivers events as JSON POST to an HTTP endpoint.

    Creates a new ``httpx.AsyncClient`` per call (short-lived, no pooling).
    Delivery problems are logged and swallowed so the handler never raises
    into the poll loop.
    """

    def __init__(
        self,
        url: str,
        headers: dict[str, str] | None = None,
        timeout: float = 10.0,
    ) -> None:
        self._url = url
        self._headers = headers or {}
        self._timeout = timeout

    def _live_payload(self, identifier: str, status: LiveStatus) -> dict[str, Any]:
        return {
            "event": "went_live",
            "identifier": identifier,
            "session_id": status.session_id,
            "user_id": status.user_id,
            "user_name": status.user_name,
            "title": status.title,
            "category": status.category,
            "viewer_count": status.viewer_count,
            "language": status.language,
            "is_mature": status.is_mature,
            "tags": status.tags or [],
            "started_at": status.started_at.isoformat(),
            "thumbnail_url": status.thumbnail(),
            "url": f"https://twitch.tv/{status.user_login}",
        }

    def _error_payload(self, failure: Failure) -> dict[str, Any]:
        return {
            "event": "failure",
            "kind": failure.kind.value,
            "message": failure.message,
            "identifier": failure.identifier,
            "status_code": failure.status_code,
            "timestamp": failure.occurred_at.isoformat(),
        }

    async def _post(self, payload: dict[str, Any]) -> bool:
        try:
            async with httpx.AsyncClient(timeout=self._timeout) as client:
                resp = await client.post(self._url, json=payload, headers=self._headers)
                if resp.is_success:
                    return True
                logger.warning(
                    "Webhook %s returned %d for %s event",
                    self._url, resp.status_code, payload["event"],
                )
                return False
        except httpx.TimeoutException:
            logger.warning("Webhook %s timed out for %s event", self._url, payload["event"])
            return False
        except Exception as e:
            logger.warning(
                "Webhook %s failed for %s event: %s", self._url, payload["event"], e,
            )
            return False

    async def on_live(self, identifier: str, status: LiveStatus) -> None:
        await self._post(self._live_payload(identifier, status))

    async def on_error(self, failure: Failure) -> None:
        await self._post(self._error_payload(failure))


class CompositeHandler(EventHandler):
    """Forwards every event to each wrapped handler in order."""

    def __init__(self, handlers: list[EventHandler]) -> None:
        if not handlers:
            raise ValueError("CompositeHandler needs at least one handler")
        self._handlers = list(handlers)

    @property
    def handlers(self) -> list[EventHandler]:
        return self._handlers

    async def on_live(self, identifier: str, status: LiveStatus) -> None:
        for handler in self._handlers:
            await handler.on_live(identifier, status)

    async def on_error(self, failure: Failure) -> None:
        for handler in self._handlers:
            await handler.on_error(failure)
