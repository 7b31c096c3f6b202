"""Storage layer: PostgreSQL pool shared by the watch-list repository."""

from src.storage.database import Database

__all__ = ["Database"]
