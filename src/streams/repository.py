"""Database repository for the watched_channels table."""

import logging
from datetime import datetime

from src.storage.database import Database
from src.streams.errors import PersistenceError
from src.streams.schemas import WatchEntry, as_utc
from src.streams.watchlist import WatchListStore

logger = logging.getLogger(__name__)

_CREATE_TABLE_SQL = """
CREATE TABLE IF NOT EXISTS watched_channels (
    identifier           TEXT PRIMARY KEY,
    alerts_enabled       BOOLEAN NOT NULL DEFAULT TRUE,
    last_live_started_at TIMESTAMPTZ,
    created_at           TIMESTAMPTZ NOT NULL DEFAULT NOW(),
    updated_at           TIMESTAMPTZ NOT NULL DEFAULT NOW()
);

CREATE INDEX IF NOT EXISTS idx_watched_channels_alerts
    ON watched_channels(alerts_enabled) WHERE alerts_enabled = TRUE;
"""

_LIST_ALERTABLE_SQL = """
SELECT identifier, alerts_enabled, last_live_started_at
FROM watched_channels
WHERE alerts_enabled = TRUE
ORDER BY created_at, identifier
"""

_LIST_ALL_SQL = """
SELECT identifier, alerts_enabled, last_live_started_at
FROM watched_channels
ORDER BY created_at, identifier
"""

_GET_SQL = """
SELECT identifier, alerts_enabled, last_live_started_at
FROM watched_channels
WHERE identifier = $1
"""

_UPDATE_STARTED_AT_SQL = """
UPDATE watched_channels
SET last_live_started_at = $2, updated_at = NOW()
WHERE identifier = $1
RETURNING identifier
"""

_UPSERT_SQL = """
INSERT INTO watched_channels (identifier, alerts_enabled)
VALUES ($1, $2)
ON CONFLICT (identifier) DO UPDATE SET
    alerts_enabled = EXCLUDED.alerts_enabled,
    updated_at = NOW()
RETURNING identifier
"""

_SET_ALERTS_SQL = """
UPDATE watched_channels
SET alerts_enabled = $2, updated_at = NOW()
WHERE identifier = $1
RETURNING identifier
"""

_DELETE_SQL = """
DELETE FROM watched_channels
WHERE identifier = $1
RETURNING identifier
"""


def _record_to_entry(record) -> WatchEntry:
    """Convert an asyncpg Record to a WatchEntry."""
    started_at = record["last_live_started_at"]
    return WatchEntry(
        identifier=record["identifier"],
        alerts_enabled=record["alerts_enabled"],
        last_live_started_at=as_utc(started_at) if started_at is not None else None,
    )


class WatchListRepository(WatchListStore):
    """PostgreSQL-backed watch-list and session-start store."""

    def __init__(self, database: Database) -> None:
        self._db = database

    async def create_table(self) -> None:
        """Create the watched_channels table and indexes (idempotent)."""
        await self._db.execute(_CREATE_TABLE_SQL)
        logger.info("watched_channels table ensured")

    async def list_alertable(self) -> list[WatchEntry]:
        try:
            rows = await self._db.fetch(_LIST_ALERTABLE_SQL)
        except Exception as e:
            raise PersistenceError(f"Failed to load watch-list: {e}") from e
        return [_record_to_entry(r) for r in rows]

    async def update_last_live_started_at(
        self, identifier: str, started_at: datetime
    ) -> None:
        try:
            result = await self._db.fetchval(
                _UPDATE_STARTED_AT_SQL, identifier, as_utc(started_at)
            )
        except Exception as e:
            raise PersistenceError(
                f"Failed to record session start for {identifier}: {e}"
            ) from e
        if result is None:
            raise PersistenceError(f"Channel {identifier} is not on the watch-list")

    async def list_all(self) -> list[WatchEntry]:
        """Every watched channel, including those with alerts disabled."""
        rows = await self._db.fetch(_LIST_ALL_SQL)
        return [_record_to_entry(r) for r in rows]

    async def get(self, identifier: str) -> WatchEntry | None:
        row = await self._db.fetchrow(_GET_SQL, identifier.lower())
        if row is None:
            return None
        return _record_to_entry(row)

    async def upsert(self, identifier: str, alerts_enabled: bool = True) -> None:
        """Add a channel, or update its alert flag if already watched."""
        await self._db.fetchval(_UPSERT_SQL, identifier.lower(), alerts_enabled)

    async def set_alerts_enabled(self, identifier: str, enabled: bool) -> bool:
        """Toggle alerts for a channel.

        Returns:
            True if updated, False if the channel is not watched
        """
        result = await self._db.fetchval(_SET_ALERTS_SQL, identifier.lower(), enabled)
        return result is not None

    async def remove(self, identifier: str) -> bool:
        """Stop watching a channel.

        Returns:
            True if deleted, False if it was not watched
        """
        result = await self._db.fetchval(_DELETE_SQL, identifier.lower())
        if result is not None:
            logger.info("Removed %s from watch-list", identifier)
        return result is not None
