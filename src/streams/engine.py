"""
Poll cycle engine.

Walks the watch-list on a fixed cadence, issues one paced Helix status check
per channel, decides whether a live result is a session that has not been
announced yet, writes the new session start back to the store and then
dispatches the event.

Per cycle:
1. Sleep the inter-cycle delay (interruptible by stop())
2. Load the alertable snapshot from the watch-list source
3. For each entry in order: skip if suppressed, otherwise mark it, check it
   inside a pacing slot, and act on the outcome
4. Record cycle metrics

Runtime failures never stop the loop; they are classified and sent to the
handler's on_error. Handler exceptions are not caught.
"""

import asyncio
import time
from dataclasses import dataclass, field
from datetime import datetime

import structlog

from src.observability.metrics import MetricsCollector, get_metrics
from src.observability.tracing import get_tracer, traced
from src.streams.client import HelixStreamsClient
from src.streams.config import PollerConfig
from src.streams.errors import (
    ConfigurationError,
    PersistenceError,
    StatusCheckError,
    classify_exception,
)
from src.streams.handlers import EventHandler
from src.streams.pacing import RequestPacer, interruptible_sleep
from src.streams.schemas import (
    Failure,
    FailureKind,
    LiveStatus,
    WatchEntry,
    WentLive,
    as_utc,
)
from src.streams.suppression import SuppressionWindow
from src.streams.watchlist import WatchListSource, WatchListStore

logger = structlog.get_logger(__name__)

_tracer = get_tracer(__name__)

# Returned by _fetch when shutdown cut the check short
_INTERRUPTED = object()


def _persistence_message(context: str, exc: Exception) -> str:
    if isinstance(exc, PersistenceError):
        return str(exc)
    return f"{context}: {type(exc).__name__}: {exc}"


@dataclass
class CycleReport:
    """Outcome of one pass over the watch-list."""

    snapshot_size: int = 0
    checked: int = 0
    suppressed: int = 0
    went_live: list[WentLive] = field(default_factory=list)
    failures: list[Failure] = field(default_factory=list)
    elapsed: float = 0.0
    source_failed: bool = False
    interrupted: bool = False

    @property
    def is_empty(self) -> bool:
        """True when the source answered with no alertable channels."""
        return not self.source_failed and self.snapshot_size == 0

    def to_dict(self) -> dict:
        return {
            "snapshot_size": self.snapshot_size,
            "checked": self.checked,
            "suppressed": self.suppressed,
            "went_live": [e.identifier for e in self.went_live],
            "failures": [str(f) for f in self.failures],
            "elapsed_seconds": round(self.elapsed, 3),
            "source_failed": self.source_failed,
            "interrupted": self.interrupted,
        }


class StreamAlertEngine:
    """
    Detects offline -> live transitions for a watch-list of channels.

    One engine runs in one asyncio task. The suppression window, the pacer
    and the shutdown event belong to the instance; two engines share nothing.

    Usage:
        async with HelixStreamsClient(credentials) as client:
            engine = StreamAlertEngine(
                source=StaticWatchList(["alice", "bob"]),
                handler=LoggingHandler(),
                client=client,
            )
            await engine.run()  # until stop() or the watch-list empties
    """

    def __init__(
        self,
        source: WatchListSource | None,
        handler: EventHandler | None,
        client: HelixStreamsClient | None,
        config: PollerConfig | None = None,
        metrics: MetricsCollector | None = None,
    ):
        """
        Initialize the engine.

        Args:
            source: Supplies the alertable snapshot each cycle
            handler: Receives went-live events and failures
            client: Open Helix client used for status checks
            config: Cadence, pacing and suppression settings
            metrics: Metrics collector (defaults to the global one)

        Raises:
            ConfigurationError: If source, handler or client is missing
        """
        if source is None:
            raise ConfigurationError("No watch-list source configured")
        if handler is None:
            raise ConfigurationError("No event handler configured")
        if client is None:
            raise ConfigurationError("No Helix client configured")

        self._source = source
        self._handler = handler
        self._client = client
        # Write-backs go to the same collaborator the snapshot is read from
        self._store = source if isinstance(source, WatchListStore) else None

        self._config = config or PollerConfig()
        self._metrics = metrics or get_metrics()

        self._suppression = SuppressionWindow(self._config.suppression_ttl_seconds)
        self._pacer = RequestPacer(interval=self._config.request_pause_seconds)
        self._shutdown = asyncio.Event()
        self._running = False
        self._cycles = 0

        # Session starts announced by this process, used only without a store
        self._announced: dict[str, datetime] = {}

        if self._store is None:
            logger.warning(
                "No watch-list store configured, session starts kept in memory only"
            )

    @property
    def config(self) -> PollerConfig:
        return self._config

    @property
    def suppression(self) -> SuppressionWindow:
        return self._suppression

    @property
    def pacer(self) -> RequestPacer:
        return self._pacer

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def cycles(self) -> int:
        """Cycles completed by run() so far."""
        return self._cycles

    def stop(self) -> None:
        """
        Request shutdown.

        Sleeps wake immediately and an in-flight check is cancelled without
        being reported as a failure. Safe to call from a signal handler.
        """
        if not self._shutdown.is_set():
            logger.info("Stream alert engine stop requested")
        self._shutdown.set()

    async def run(self) -> None:
        """
        Run cycles until stop() is called or the watch-list is empty.

        An empty snapshot ends the loop only when ``stop_when_empty`` is set.
        A stopped engine is not restartable.
        """
        self._running = True
        logger.info(
            "Stream alert engine started",
            cycle_delay_ms=self._config.cycle_delay_ms,
            request_pause_ms=self._config.request_pause_ms,
            suppression_ttl_seconds=self._config.suppression_ttl_seconds,
        )

        try:
            while not self._shutdown.is_set():
                if await interruptible_sleep(
                    self._config.cycle_delay_seconds, self._shutdown
                ):
                    break

                report = await self.run_cycle()
                self._cycles += 1

                if report.is_empty and self._config.stop_when_empty:
                    logger.info("Watch-list is empty, stopping")
                    break
        finally:
            self._running = False
            logger.info("Stream alert engine stopped", cycles=self._cycles)

    async def run_cycle(self) -> CycleReport:
        """
        Run exactly one pass over the watch-list, without the cycle delay.

        Returns:
            CycleReport describing what the pass did
        """
        report = CycleReport()
        started = time.perf_counter()

        self._suppression.evict_expired()

        with traced(_tracer, "poll.cycle") as span:
            snapshot = await self._load_snapshot(report)
            span.set_attribute("watch_list.size", len(snapshot))

            for entry in snapshot:
                if self._shutdown.is_set() or not await self._process(entry, report):
                    report.interrupted = True
                    break

            span.set_attribute("cycle.checked", report.checked)
            span.set_attribute("cycle.went_live", len(report.went_live))

        report.elapsed = time.perf_counter() - started
        if not report.source_failed:
            self._metrics.record_cycle(report.elapsed, report.snapshot_size)

        logger.debug(
            "Cycle complete",
            snapshot_size=report.snapshot_size,
            checked=report.checked,
            suppressed=report.suppressed,
            went_live=len(report.went_live),
            failures=len(report.failures),
            elapsed=round(report.elapsed, 3),
        )
        return report

    async def _load_snapshot(self, report: CycleReport) -> list[WatchEntry]:
        """Fetch the alertable entries, dropping disabled and repeated ones."""
        try:
            entries = await self._source.list_alertable()
        except Exception as e:
            report.source_failed = True
            await self._dispatch_failure(
                Failure(
                    kind=FailureKind.PERSISTENCE,
                    message=_persistence_message("Failed to load watch-list", e),
                ),
                report,
            )
            return []

        snapshot: list[WatchEntry] = []
        seen: set[str] = set()
        for entry in entries:
            if not entry.alerts_enabled:
                continue
            if entry.identifier in seen:
                logger.warning("Duplicate channel in snapshot", channel=entry.identifier)
                continue
            seen.add(entry.identifier)
            snapshot.append(entry)

        report.snapshot_size = len(snapshot)
        return snapshot

    async def _process(self, entry: WatchEntry, report: CycleReport) -> bool:
        """
        Check one entry and act on the outcome.

        Returns:
            False if shutdown interrupted the check, True otherwise
        """
        identifier = entry.identifier

        if self._suppression.is_suppressed(identifier):
            report.suppressed += 1
            self._metrics.record_suppressed()
            return True
        self._suppression.mark(identifier)

        started = time.perf_counter()
        async with self._pacer.slot(self._shutdown):
            outcome = await self._fetch(identifier)
            latency = time.perf_counter() - started

        if outcome is _INTERRUPTED:
            return False
        report.checked += 1

        if isinstance(outcome, Failure):
            self._metrics.record_check("failed", latency)
            await self._dispatch_failure(outcome, report)
            return True

        if outcome is None:
            self._metrics.record_check("offline", latency)
            return True

        if not self._is_new_session(entry, outcome):
            self._metrics.record_check("unchanged", latency)
            return True

        self._metrics.record_check("live", latency)
        await self._announce(entry, outcome, report)
        return True

    async def _fetch(self, identifier: str):
        """
        Run one status check as its own task, raced against shutdown.

        Returns:
            LiveStatus or None on success, a Failure on error, or
            _INTERRUPTED when shutdown won the race
        """
        check = asyncio.create_task(
            self._client.get_live_status(identifier),
            name=f"status-check:{identifier}",
        )
        stop_waiter = asyncio.create_task(self._shutdown.wait())
        try:
            done, _ = await asyncio.wait(
                {check, stop_waiter},
                return_when=asyncio.FIRST_COMPLETED,
            )
        finally:
            stop_waiter.cancel()
            if not check.done():
                check.cancel()

        if check not in done:
            await asyncio.gather(check, return_exceptions=True)
            logger.debug("Status check cancelled by shutdown", channel=identifier)
            return _INTERRUPTED

        if check.cancelled():
            if self._shutdown.is_set():
                return _INTERRUPTED
            return Failure(
                kind=FailureKind.TASK,
                message="Status check task was cancelled",
                identifier=identifier,
            )

        exc = check.exception()
        if exc is None:
            return check.result()
        if isinstance(exc, StatusCheckError):
            return exc.to_failure(identifier)

        kind = classify_exception(exc)
        message = f"{type(exc).__name__}: {exc}"
        if kind == FailureKind.TASK:
            message = f"Status check crashed: {message}"
        return Failure(kind=kind, message=message, identifier=identifier)

    def _is_new_session(self, entry: WatchEntry, status: LiveStatus) -> bool:
        if self._store is None:
            announced = self._announced.get(entry.identifier)
            if announced is not None:
                return as_utc(announced) != status.started_at
        return entry.is_new_session(status.started_at)

    async def _announce(
        self, entry: WatchEntry, status: LiveStatus, report: CycleReport
    ) -> None:
        """Write the session start back, then dispatch WentLive."""
        identifier = entry.identifier

        if self._store is not None:
            try:
                await self._store.update_last_live_started_at(
                    identifier, status.started_at
                )
            except Exception as e:
                await self._dispatch_failure(
                    Failure(
                        kind=FailureKind.PERSISTENCE,
                        message=_persistence_message(
                            "Failed to record session start", e
                        ),
                        identifier=identifier,
                    ),
                    report,
                )
                return
        else:
            self._announced[identifier] = status.started_at

        event = WentLive(identifier=identifier, status=status)
        report.went_live.append(event)
        self._metrics.record_went_live()
        logger.info(
            "Channel went live",
            channel=identifier,
            session_id=status.session_id,
            started_at=status.started_at.isoformat(),
            category=status.category,
        )
        await self._handler.on_live(identifier, status)

    async def _dispatch_failure(self, failure: Failure, report: CycleReport) -> None:
        report.failures.append(failure)
        self._metrics.record_failure(failure.kind)
        logger.warning(
            "Status check failure",
            kind=failure.kind.value,
            channel=failure.identifier,
            status_code=failure.status_code,
            error=failure.message,
        )
        await self._handler.on_error(failure)
