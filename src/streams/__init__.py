"""Live-status polling for a watch-list of Twitch channels.

Components:
- StreamAlertEngine: Poll cycle engine (cadence, pacing, suppression, dispatch)
- CycleReport: Outcome of one pass over the watch-list
- PollerConfig: Pydantic settings for cadence, pacing and suppression
- HelixStreamsClient / HelixCredentials: Helix ``/streams`` status checks
- SuppressionWindow: TTL window of recently checked channels
- RequestPacer: Shared lock plus fixed pause between requests
- WatchListSource / WatchListStore: Snapshot and write-back protocols
- StaticWatchList / WatchListRepository: In-memory and PostgreSQL stores
- EventHandler / LoggingHandler / WebhookHandler / CompositeHandler: Dispatch
- FailureKind / Failure / WentLive / LiveStatus / WatchEntry: Data types
- ConfigurationError / StatusCheckError / PersistenceError: Exceptions
"""

from src.streams.client import HelixCredentials, HelixStreamsClient
from src.streams.config import MIN_REQUEST_INTERVAL_MS, PollerConfig
from src.streams.engine import CycleReport, StreamAlertEngine
from src.streams.errors import (
    ConfigurationError,
    PersistenceError,
    StatusCheckError,
    classify_exception,
)
from src.streams.handlers import (
    CompositeHandler,
    EventHandler,
    LoggingHandler,
    WebhookHandler,
)
from src.streams.pacing import RequestPacer
from src.streams.repository import WatchListRepository
from src.streams.schemas import (
    Failure,
    FailureKind,
    LiveStatus,
    WatchEntry,
    WentLive,
)
from src.streams.suppression import SuppressionWindow
from src.streams.watchlist import StaticWatchList, WatchListSource, WatchListStore

__all__ = [
    "CompositeHandler",
    "ConfigurationError",
    "CycleReport",
    "EventHandler",
    "Failure",
    "FailureKind",
    "HelixCredentials",
    "HelixStreamsClient",
    "LiveStatus",
    "LoggingHandler",
    "MIN_REQUEST_INTERVAL_MS",
    "PersistenceError",
    "PollerConfig",
    "RequestPacer",
    "StaticWatchList",
    "StatusCheckError",
    "StreamAlertEngine",
    "SuppressionWindow",
    "WatchEntry",
    "WatchListRepository",
    "WatchListSource",
    "WatchListStore",
    "WebhookHandler",
    "WentLive",
    "classify_exception",
]
