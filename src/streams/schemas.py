"""
Schemas for watch-list entries, Helix stream payloads, and engine events.

LiveStatus mirrors one element of the Helix ``GET /streams`` ``data`` array.
Field aliases keep the wire names (``id``, ``type``) out of the Python API
while still validating the raw JSON directly.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator


def _utc_now() -> datetime:
    """Return current UTC time with timezone info."""
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    """Attach UTC to naive datetimes and convert aware ones to UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


@dataclass(frozen=True)
class WatchEntry:
    """A channel on the watch-list.

    ``identifier`` is the channel login used in the Helix query and as the
    key for pacing and suppression. ``last_live_started_at`` is the start
    time of the last session an alert was raised for, or None if the
    channel has never been seen live.
    """

    identifier: str
    alerts_enabled: bool = True
    last_live_started_at: datetime | None = None

    def is_new_session(self, started_at: datetime) -> bool:
        """Return True if ``started_at`` differs from the recorded session start."""
        if self.last_live_started_at is None:
            return True
        return as_utc(self.last_live_started_at) != as_utc(started_at)


class LiveStatus(BaseModel):
    """
    A live session as reported by Helix.

    Only exists while the channel is broadcasting; an offline channel is
    represented by ``None`` rather than an empty LiveStatus.
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    session_id: str = Field(..., alias="id", description="Helix stream id")
    user_id: str
    user_login: str
    user_name: str
    game_id: str = ""
    game_name: str = ""
    stream_type: str = Field(default="live", alias="type")
    title: str = ""
    viewer_count: int = Field(default=0, ge=0)
    started_at: datetime
    language: str = ""
    thumbnail_url: str = ""
    tag_ids: list[str] | None = Field(
        default=None,
        validation_alias=AliasChoices("tag_ids", "tags_ids"),
    )
    tags: list[str] | None = None
    is_mature: bool = False

    @field_validator("started_at")
    @classmethod
    def _normalize_started_at(cls, value: datetime) -> datetime:
        return as_utc(value)

    @property
    def identifier(self) -> str:
        """Channel login, the key the watch-list uses."""
        return self.user_login

    @property
    def category(self) -> str:
        """Game/category name shown on the channel."""
        return self.game_name

    def thumbnail(self, width: int = 1280, height: int = 720) -> str:
        """Fill the ``{width}x{height}`` placeholders of the thumbnail template."""
        return self.thumbnail_url.replace("{width}", str(width)).replace(
            "{height}", str(height)
        )


class Pagination(BaseModel):
    """Helix pagination block. Unused by the poller, kept for completeness."""

    cursor: str | None = None


class StreamsResponse(BaseModel):
    """Envelope of a Helix ``GET /streams`` response."""

    data: list[LiveStatus] = Field(default_factory=list)
    pagination: Pagination = Field(default_factory=Pagination)

    @property
    def current(self) -> LiveStatus | None:
        """First session in ``data``, or None when the channel is offline."""
        return self.data[0] if self.data else None


class FailureKind(str, Enum):
    """Classification of a failed status check or write-back."""

    TIMEOUT = "timeout"
    CONNECT = "connect"
    STATUS = "status"
    REDIRECT = "redirect"
    REQUEST = "request"
    BODY = "body"
    BUILDER = "builder"
    UNKNOWN = "unknown"
    PERSISTENCE = "persistence"
    TASK = "task"


@dataclass(frozen=True)
class WentLive:
    """A channel started a session that has not been announced yet."""

    identifier: str
    status: LiveStatus
    detected_at: datetime = field(default_factory=_utc_now)


@dataclass(frozen=True)
class Failure:
    """A classified, non-fatal error raised during a cycle."""

    kind: FailureKind
    message: str
    identifier: str | None = None
    status_code: int | None = None
    occurred_at: datetime = field(default_factory=_utc_now)

    def __str__(self) -> str:
        target = f" [{self.identifier}]" if self.identifier else ""
        return f"{self.kind.value}{target}: {self.message}"
