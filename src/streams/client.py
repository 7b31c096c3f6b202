"""
Helix streams client.

Performs the single status request the poller issues per channel per pass:
``GET {helix}/streams?user_login=<channel>`` with the bearer token and
client id headers. No retries: one request per channel per pass, and the
next cycle picks up transient failures.

Every failure is raised as StatusCheckError carrying its FailureKind, so
callers never need to know about httpx's exception hierarchy.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any

import httpx

from src.config.settings import Settings
from src.observability.tracing import get_tracer, traced
from src.streams.errors import ConfigurationError, StatusCheckError, classify_exception
from src.streams.schemas import FailureKind, LiveStatus, StreamsResponse

logger = logging.getLogger(__name__)

_tracer = get_tracer(__name__)


@dataclass(frozen=True)
class HelixCredentials:
    """
    Client id and app/user access token for Helix.

    Example:
        credentials = HelixCredentials.from_settings(get_settings())
    """

    client_id: str
    access_token: str = field(repr=False)

    def __post_init__(self) -> None:
        if not self.client_id:
            raise ConfigurationError("Missing Twitch client id (TWITCH_CLIENT_ID)")
        if not self.access_token:
            raise ConfigurationError(
                "Missing Twitch access token (TWITCH_ACCESS_TOKEN)"
            )

    @classmethod
    def from_settings(cls, settings: Settings) -> "HelixCredentials":
        """
        Build credentials from application settings.

        Raises:
            ConfigurationError: If either value is missing
        """
        return cls(
            client_id=settings.twitch_client_id or "",
            access_token=settings.twitch_access_token or "",
        )

    def headers(self) -> dict[str, str]:
        """The two headers every Helix request carries."""
        return {
            "Authorization": f"Bearer {self.access_token}",
            "Client-Id": self.client_id,
        }


class HelixStreamsClient:
    """
    Async client for the Helix ``/streams`` endpoint.

    Example:
        async with HelixStreamsClient(credentials) as client:
            status = await client.get_live_status("some_channel")
            if status is not None:
                print(status.title, status.started_at)
    """

    def __init__(
        self,
        credentials: HelixCredentials,
        base_url: str = "https://api.twitch.tv/helix",
        timeout: float = 10.0,
    ):
        """
        Initialize the client.

        Args:
            credentials: Helix client id and token
            base_url: Helix API root
            timeout: Deadline in seconds for the whole request, body included
        """
        self.credentials = credentials
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._client: httpx.AsyncClient | None = None

    @property
    def streams_url(self) -> str:
        return f"{self.base_url}/streams"

    async def __aenter__(self) -> "HelixStreamsClient":
        """Enter async context manager, create client."""
        self._client = httpx.AsyncClient(timeout=self.timeout)
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        """Exit async context manager, close client."""
        if self._client:
            await self._client.aclose()
            self._client = None

    async def get_live_status(self, identifier: str) -> LiveStatus | None:
        """
        Fetch the current session of a channel.

        Args:
            identifier: Channel login

        Returns:
            LiveStatus if the channel is live, None if it is offline

        Raises:
            StatusCheckError: On any transport, status, or payload failure
        """
        if not self._client:
            raise RuntimeError("HelixStreamsClient must be used as async context manager")

        with traced(_tracer, "helix.get_stream", {"channel": identifier}):
            try:
                async with asyncio.timeout(self.timeout):
                    response = await self._client.get(
                        self.streams_url,
                        params={"user_login": identifier},
                        headers=self.credentials.headers(),
                    )
                response.raise_for_status()
                payload = StreamsResponse.model_validate(response.json())

            except httpx.HTTPStatusError as e:
                status_code = e.response.status_code
                raise StatusCheckError(
                    classify_exception(e),
                    f"Helix returned status {status_code} for {identifier}",
                    status_code=status_code,
                    response_body=e.response.text,
                ) from e

            except TimeoutError as e:
                raise StatusCheckError(
                    FailureKind.TIMEOUT,
                    f"Request for {identifier} exceeded its {self.timeout}s deadline",
                ) from e

            except (httpx.HTTPError, httpx.InvalidURL, httpx.StreamError, ValueError) as e:
                # ValueError covers invalid JSON and pydantic ValidationError
                kind = classify_exception(e)
                raise StatusCheckError(
                    kind,
                    f"{type(e).__name__} checking {identifier}: {e}",
                ) from e

        status = payload.current
        if status is None:
            logger.debug("Channel %s offline", identifier)
        else:
            logger.debug(
                "Channel %s live since %s (%d viewers)",
                identifier, status.started_at.isoformat(), status.viewer_count,
            )
        return status
