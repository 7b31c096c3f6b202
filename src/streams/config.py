"""Poller configuration.

Controls the cycle cadence, per-request pacing, suppression window and the
Helix endpoint. All settings can be overridden via ``POLLER_*`` environment
variables (e.g. ``POLLER_SUPPRESSION_TTL_SECONDS=60``).
"""

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Helix allows roughly 800 requests per minute per client id
MIN_REQUEST_INTERVAL_MS = 80


class PollerConfig(BaseSettings):
    """Configuration for the poll cycle engine."""

    model_config = SettingsConfigDict(
        env_prefix="POLLER_",
        case_sensitive=False,
        extra="ignore",
    )

    cycle_delay_ms: int = Field(
        default=MIN_REQUEST_INTERVAL_MS,
        description="Sleep before each cycle; values below the floor are raised to it",
    )
    request_pause_ms: int = Field(
        default=MIN_REQUEST_INTERVAL_MS,
        description="Mandatory pause after every status check",
    )
    suppression_ttl_seconds: float = Field(
        default=30.0,
        ge=0.0,
        description="Skip a channel checked less than this many seconds ago (0 = off)",
    )
    request_timeout_seconds: float = Field(
        default=10.0,
        gt=0.0,
        le=120.0,
        description="Deadline for one Helix request",
    )
    stop_when_empty: bool = Field(
        default=True,
        description="Stop the loop when the watch-list snapshot is empty",
    )
    helix_base_url: str = Field(
        default="https://api.twitch.tv/helix",
        description="Helix API root; the streams endpoint is appended to it",
    )

    @field_validator("cycle_delay_ms", "request_pause_ms")
    @classmethod
    def _clamp_to_floor(cls, value: int) -> int:
        return max(value, MIN_REQUEST_INTERVAL_MS)

    @property
    def cycle_delay_seconds(self) -> float:
        return self.cycle_delay_ms / 1000.0

    @property
    def request_pause_seconds(self) -> float:
        return self.request_pause_ms / 1000.0
