"""Tests for the asyncpg pool wrapper.

asyncpg.create_pool is patched, so no PostgreSQL server is needed.
"""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest

import src.storage
from src.storage.database import Database


@pytest.fixture
def mock_pool():
    pool = MagicMock()
    pool.close = AsyncMock()
    return pool


class TestDatabase:
    """Tests for Database lifecycle."""

    def test_not_connected_until_connect(self):
        db = Database(database_url="postgresql://localhost/test")

        assert not db.is_connected
        with pytest.raises(RuntimeError, match="not connected"):
            db.pool

    @pytest.mark.asyncio
    async def test_context_manager_opens_and_closes_pool(self, mock_pool):
        with patch(
            "src.storage.database.asyncpg.create_pool",
            AsyncMock(return_value=mock_pool),
        ) as create_pool:
            async with Database(
                database_url="postgresql://localhost/test",
                min_size=1,
                max_size=3,
                command_timeout=5.0,
            ) as db:
                assert db.is_connected
                assert db.pool is mock_pool

        create_pool.assert_awaited_once_with(
            "postgresql://localhost/test",
            min_size=1,
            max_size=3,
            command_timeout=5.0,
        )
        mock_pool.close.assert_awaited_once()
        assert not db.is_connected

    @pytest.mark.asyncio
    async def test_connect_failure_propagates(self):
        with patch(
            "src.storage.database.asyncpg.create_pool",
            AsyncMock(side_effect=OSError("connection refused")),
        ):
            db = Database(database_url="postgresql://localhost/test")
            with pytest.raises(OSError, match="connection refused"):
                await db.connect()

        assert not db.is_connected

    @pytest.mark.asyncio
    async def test_health_check_false_when_not_connected(self):
        db = Database(database_url="postgresql://localhost/test")

        assert await db.health_check() is False


def test_package_exports_only_the_pool_wrapper():
    assert src.storage.__all__ == ["Database"]
    assert not hasattr(src.storage, "get_database")
