"""
Error types and httpx exception classification for the stream poller.

Runtime failures (network, HTTP status, bad payloads, write-back) are never
fatal: they are converted into a FailureKind and dispatched to the handler.
Misconfiguration is fatal and raised as ConfigurationError before the poll
loop starts.
"""

import json

import httpx
from pydantic import ValidationError

from src.streams.schemas import Failure, FailureKind


class ConfigurationError(Exception):
    """Raised when the engine cannot start because it is misconfigured."""


class StatusCheckError(Exception):
    """Raised by the Helix client when a status check fails."""

    def __init__(
        self,
        kind: FailureKind,
        message: str,
        status_code: int | None = None,
        response_body: str | None = None,
    ):
        super().__init__(message)
        self.kind = kind
        self.status_code = status_code
        self.response_body = response_body

    def to_failure(self, identifier: str | None = None) -> Failure:
        """Convert into the event dispatched to the handler."""
        return Failure(
            kind=self.kind,
            message=str(self),
            identifier=identifier,
            status_code=self.status_code,
        )


class PersistenceError(Exception):
    """Raised by a watch-list store when a read or write fails."""


def classify_exception(exc: BaseException) -> FailureKind:
    """
    Map an exception raised during a status check to a FailureKind.

    Order matters: ReadError, DecodingError and RemoteProtocolError are all
    httpx.RequestError subclasses, so body errors are matched before the
    generic REQUEST branch.

    Args:
        exc: Exception raised while building, sending, or decoding a request

    Returns:
        The matching FailureKind, UNKNOWN for unrecognized httpx errors
        and TASK for anything that is not an HTTP or payload error
    """
    if isinstance(exc, StatusCheckError):
        return exc.kind
    if isinstance(exc, httpx.TimeoutException):
        return FailureKind.TIMEOUT
    if isinstance(exc, httpx.ConnectError):
        return FailureKind.CONNECT
    if isinstance(exc, httpx.TooManyRedirects):
        return FailureKind.REDIRECT
    if isinstance(exc, httpx.HTTPStatusError):
        if 300 <= exc.response.status_code < 400:
            return FailureKind.REDIRECT
        return FailureKind.STATUS
    if isinstance(exc, (httpx.InvalidURL, httpx.UnsupportedProtocol)):
        return FailureKind.BUILDER
    if isinstance(
        exc,
        (
            httpx.ReadError,
            httpx.DecodingError,
            httpx.RemoteProtocolError,
            httpx.StreamError,
            json.JSONDecodeError,
            UnicodeDecodeError,
            ValidationError,
        ),
    ):
        return FailureKind.BODY
    if isinstance(exc, httpx.RequestError):
        return FailureKind.REQUEST
    if isinstance(exc, httpx.HTTPError):
        return FailureKind.UNKNOWN
    return FailureKind.TASK


def describe(kind: FailureKind) -> str:
    """Human-readable description of a failure kind."""
    return _DESCRIPTIONS[kind]


_DESCRIPTIONS: dict[FailureKind, str] = {
    FailureKind.TIMEOUT: "request timed out",
    FailureKind.CONNECT: "could not connect to the API",
    FailureKind.STATUS: "API returned an error status",
    FailureKind.REDIRECT: "API attempted an unexpected redirect",
    FailureKind.REQUEST: "request could not be sent",
    FailureKind.BODY: "response body could not be read or decoded",
    FailureKind.BUILDER: "request could not be built",
    FailureKind.UNKNOWN: "unknown request error",
    FailureKind.PERSISTENCE: "watch-list store operation failed",
    FailureKind.TASK: "status check task was cancelled or crashed",
}
