"""Tests for Prometheus metrics recorded by the poller."""

import pytest
from prometheus_client import REGISTRY

from src.observability.metrics import get_metrics
from src.streams.config import PollerConfig
from src.streams.engine import StreamAlertEngine
from src.streams.errors import StatusCheckError
from src.streams.schemas import FailureKind
from src.streams.watchlist import StaticWatchList
from tests.test_streams.conftest import RecordingHandler, ScriptedHelix


def _sample(name: str, labels: dict | None = None) -> float:
    return REGISTRY.get_sample_value(name, labels or {}) or 0.0


class TestMetricsCollector:
    def test_singleton(self):
        assert get_metrics() is get_metrics()

    def test_record_failure_accepts_enum_and_str(self):
        metrics = get_metrics()
        before = _sample("stream_alerts_failures_total", {"kind": "body"})

        metrics.record_failure(FailureKind.BODY)
        metrics.record_failure("body")

        assert _sample("stream_alerts_failures_total", {"kind": "body"}) == before + 2

    def test_record_suppressed_ignores_zero(self):
        metrics = get_metrics()
        before = _sample("stream_alerts_suppressed_total")

        metrics.record_suppressed(0)

        assert _sample("stream_alerts_suppressed_total") == before

    def test_record_cycle_sets_watch_list_size(self):
        get_metrics().record_cycle(0.5, watch_list_size=7)

        assert _sample("stream_alerts_watch_list_size") == 7


class TestEngineMetrics:
    @pytest.mark.asyncio
    async def test_cycle_records_outcomes(self):
        helix = ScriptedHelix({
            "alice": [None],
            "bob": [StatusCheckError(FailureKind.TIMEOUT, "timed out")],
        })
        engine = StreamAlertEngine(
            source=StaticWatchList(["alice", "bob"]),
            handler=RecordingHandler(),
            client=helix,
            config=PollerConfig(),
        )
        offline = _sample("stream_alerts_checks_total", {"outcome": "offline"})
        failed = _sample("stream_alerts_checks_total", {"outcome": "failed"})
        timeouts = _sample("stream_alerts_failures_total", {"kind": "timeout"})
        cycles = _sample("stream_alerts_cycles_total")

        await engine.run_cycle()

        assert _sample("stream_alerts_checks_total", {"outcome": "offline"}) == offline + 1
        assert _sample("stream_alerts_checks_total", {"outcome": "failed"}) == failed + 1
        assert _sample("stream_alerts_failures_total", {"kind": "timeout"}) == timeouts + 1
        assert _sample("stream_alerts_cycles_total") == cycles + 1
        assert _sample("stream_alerts_watch_list_size") == 2
