"""
Prometheus metrics for monitoring the stream poller.

Defines and exposes metrics for:
- Status checks by outcome
- Went-live events and classified failures
- Suppressed (skipped) checks
- Check latency and cycle duration
- Watch-list size

Metrics are exposed via HTTP endpoint for Prometheus scraping.
"""

import logging
from enum import Enum

from prometheus_client import (
    REGISTRY,
    Counter,
    Gauge,
    Histogram,
    start_http_server,
)

from src.config.settings import get_settings

logger = logging.getLogger(__name__)

# Buckets for latency histograms (in seconds)
LATENCY_BUCKETS = (0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0)

# Cycles over large watch-lists take N x pacing interval
CYCLE_BUCKETS = (0.1, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0, 60.0, 120.0, 300.0)


class MetricsCollector:
    """
    Prometheus metrics collector for the stream poller.

    Usage:
        metrics = MetricsCollector()
        metrics.start_server()

        metrics.record_check("offline", latency=0.12)
        metrics.record_failure("timeout")
    """

    def __init__(self):
        """Initialize Prometheus metrics."""

        self.checks = Counter(
            "stream_alerts_checks_total",
            "Total Helix status checks issued",
            ["outcome"],  # outcome: live, unchanged, offline, failed
        )

        self.went_live = Counter(
            "stream_alerts_went_live_total",
            "Total new live sessions announced",
        )

        self.failures = Counter(
            "stream_alerts_failures_total",
            "Total classified failures dispatched",
            ["kind"],
        )

        self.suppressed = Counter(
            "stream_alerts_suppressed_total",
            "Checks skipped because the channel was checked within the TTL",
        )

        self.cycles = Counter(
            "stream_alerts_cycles_total",
            "Total poll cycles completed",
        )

        self.check_latency = Histogram(
            "stream_alerts_check_latency_seconds",
            "Time for one Helix status check",
            buckets=LATENCY_BUCKETS,
        )

        self.cycle_duration = Histogram(
            "stream_alerts_cycle_duration_seconds",
            "Time for one pass over the watch-list, pacing included",
            buckets=CYCLE_BUCKETS,
        )

        self.watch_list_size = Gauge(
            "stream_alerts_watch_list_size",
            "Number of alertable channels in the last snapshot",
        )

        logger.info("Prometheus metrics initialized")

    def start_server(self, port: int | None = None) -> None:
        """
        Start Prometheus metrics HTTP server.

        Args:
            port: Port to expose metrics on (default from settings)
        """
        settings = get_settings()
        port = port or settings.metrics_port

        start_http_server(port, registry=REGISTRY)
        logger.info(f"Prometheus metrics server started on port {port}")

    # Convenience methods

    def record_check(self, outcome: str, latency: float | None = None) -> None:
        """
        Record one status check.

        Args:
            outcome: live, unchanged, offline, or failed
            latency: Request latency in seconds
        """
        self.checks.labels(outcome=outcome).inc()
        if latency is not None:
            self.check_latency.observe(latency)

    def record_went_live(self) -> None:
        self.went_live.inc()

    def record_failure(self, kind: Enum | str) -> None:
        kind_str = kind.value if isinstance(kind, Enum) else kind
        self.failures.labels(kind=kind_str).inc()

    def record_suppressed(self, count: int = 1) -> None:
        if count > 0:
            self.suppressed.inc(count)

    def record_cycle(self, duration: float, watch_list_size: int) -> None:
        """
        Record a completed cycle.

        Args:
            duration: Wall time of the pass in seconds
            watch_list_size: Entries in the snapshot
        """
        self.cycles.inc()
        self.cycle_duration.observe(duration)
        self.watch_list_size.set(watch_list_size)


# Global metrics instance
_metrics: MetricsCollector | None = None


def get_metrics() -> MetricsCollector:
    """Get global metrics collector instance."""
    global _metrics
    if _metrics is None:
        _metrics = MetricsCollector()
    return _metrics
