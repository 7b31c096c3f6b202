"""Shared fixtures for stream poller tests."""

import asyncio
from collections.abc import Iterable
from datetime import datetime
from typing import Any
from unittest.mock import AsyncMock

import pytest

from src.streams.config import PollerConfig
from src.streams.errors import PersistenceError
from src.streams.handlers import EventHandler
from src.streams.schemas import Failure, LiveStatus, WatchEntry
from src.streams.watchlist import StaticWatchList


class ScriptedHelix:
    """Stand-in for HelixStreamsClient that replays scripted outcomes.

    Each identifier maps to a list of outcomes consumed one per call; the
    last outcome repeats. An outcome is a LiveStatus, None (offline), an
    exception instance to raise, or an async callable to await.
    """

    def __init__(self, script: dict[str, list[Any]] | None = None):
        self.script = {k: list(v) for k, v in (script or {}).items()}
        self.calls: list[str] = []

    def set(self, identifier: str, *outcomes: Any) -> None:
        self.script[identifier] = list(outcomes)

    async def get_live_status(self, identifier: str) -> LiveStatus | None:
        self.calls.append(identifier)
        outcomes = self.script.get(identifier, [None])
        outcome = outcomes.pop(0) if len(outcomes) > 1 else outcomes[0]
        if isinstance(outcome, BaseException):
            raise outcome
        if callable(outcome):
            return await outcome()
        return outcome


class RecordingHandler(EventHandler):
    """Handler that records every event, optionally into a shared journal."""

    def __init__(self, journal: list[tuple] | None = None):
        self.live: list[tuple[str, LiveStatus]] = []
        self.errors: list[Failure] = []
        self.journal = journal if journal is not None else []

    async def on_live(self, identifier: str, status: LiveStatus) -> None:
        self.live.append((identifier, status))
        self.journal.append(("on_live", identifier))

    async def on_error(self, failure: Failure) -> None:
        self.errors.append(failure)
        self.journal.append(("on_error", failure.kind))


class RecordingStore(StaticWatchList):
    """In-memory store that journals write-backs and can be made to fail."""

    def __init__(
        self,
        entries: Iterable[WatchEntry | str],
        journal: list[tuple] | None = None,
    ):
        super().__init__(entries)
        self.journal = journal if journal is not None else []
        self.writes: list[tuple[str, datetime]] = []
        self.fail_writes = False
        self.fail_reads = False

    async def list_alertable(self) -> list[WatchEntry]:
        if self.fail_reads:
            raise PersistenceError("connection refused")
        return await super().list_alertable()

    async def update_last_live_started_at(
        self, identifier: str, started_at: datetime
    ) -> None:
        if self.fail_writes:
            self.journal.append(("write_failed", identifier))
            raise PersistenceError(f"write for {identifier} failed")
        await super().update_last_live_started_at(identifier, started_at)
        self.writes.append((identifier, started_at))
        self.journal.append(("write", identifier))


@pytest.fixture
def fast_config() -> PollerConfig:
    """Floor cadence, suppression off so consecutive cycles re-check."""
    return PollerConfig(
        cycle_delay_ms=80,
        request_pause_ms=80,
        suppression_ttl_seconds=0,
        stop_when_empty=True,
    )


@pytest.fixture
def journal() -> list[tuple]:
    return []


@pytest.fixture
def handler(journal) -> RecordingHandler:
    return RecordingHandler(journal)


@pytest.fixture
def helix() -> ScriptedHelix:
    return ScriptedHelix()


@pytest.fixture
def mock_database() -> AsyncMock:
    """Mock Database instance matching the Database API."""
    db = AsyncMock()
    db.fetch = AsyncMock(return_value=[])
    db.fetchval = AsyncMock(return_value=None)
    db.fetchrow = AsyncMock(return_value=None)
    db.execute = AsyncMock(return_value="CREATE TABLE")
    return db


async def hang_forever() -> None:
    await asyncio.Event().wait()
