"""Watch-list sources.

The engine pulls a snapshot of alertable channels from a WatchListSource at
the start of every cycle. A WatchListStore additionally accepts the
write-back of a new session start. Disabled channels are filtered here, at
the source boundary, and never reach the engine.
"""

import logging
from abc import ABC, abstractmethod
from collections.abc import Iterable
from datetime import datetime

from src.config.settings import Settings
from src.streams.errors import PersistenceError
from src.streams.schemas import WatchEntry, as_utc

logger = logging.getLogger(__name__)


class WatchListSource(ABC):
    """Supplies the channels to check on each cycle."""

    @abstractmethod
    async def list_alertable(self) -> list[WatchEntry]:
        """Return the entries with alerts enabled, in check order."""


class WatchListStore(WatchListSource):
    """A watch-list source that also persists session starts."""

    @abstractmethod
    async def update_last_live_started_at(
        self, identifier: str, started_at: datetime
    ) -> None:
        """Record ``started_at`` as the last announced session of ``identifier``.

        Raises:
            PersistenceError: If the write did not happen
        """


class StaticWatchList(WatchListStore):
    """In-memory watch-list built from configuration.

    Session starts are kept in memory for the life of the process, so the
    list doubles as its own store and a restart forgets them.
    """

    def __init__(self, entries: Iterable[WatchEntry | str]):
        self._entries: dict[str, WatchEntry] = {}
        for item in entries:
            entry = WatchEntry(identifier=item) if isinstance(item, str) else item
            key = entry.identifier.strip().lower()
            if not key:
                continue
            if key in self._entries:
                logger.warning("Duplicate watch-list entry ignored: %s", key)
                continue
            self._entries[key] = WatchEntry(
                identifier=key,
                alerts_enabled=entry.alerts_enabled,
                last_live_started_at=entry.last_live_started_at,
            )

    @classmethod
    def from_settings(cls, settings: Settings) -> "StaticWatchList":
        """Build from the ``watch_list`` setting."""
        return cls(settings.watch_list)

    async def list_alertable(self) -> list[WatchEntry]:
        return [entry for entry in self._entries.values() if entry.alerts_enabled]

    async def update_last_live_started_at(
        self, identifier: str, started_at: datetime
    ) -> None:
        key = identifier.lower()
        current = self._entries.get(key)
        if current is None:
            raise PersistenceError(f"Channel {identifier} is not on the watch-list")
        self._entries[key] = WatchEntry(
            identifier=key,
            alerts_enabled=current.alerts_enabled,
            last_live_started_at=as_utc(started_at),
        )

    def set_alerts_enabled(self, identifier: str, enabled: bool) -> bool:
        """Toggle alerts for a channel. Returns False if it is not listed."""
        key = identifier.lower()
        current = self._entries.get(key)
        if current is None:
            return False
        self._entries[key] = WatchEntry(
            identifier=key,
            alerts_enabled=enabled,
            last_live_started_at=current.last_live_started_at,
        )
        return True

    def __len__(self) -> int:
        return len(self._entries)
