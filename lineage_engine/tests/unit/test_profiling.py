"""Tests for the profiling module.

Covers the ``@profile_operation`` decorator and the ``TimingCollector``
aggregation (percentiles, windowing, summary ordering, thread safety).
"""

from __future__ import annotations

import logging
import threading

import pytest
from lineage_engine.models.config import PipelineConfig, PipelineNode
from lineage_engine.models.results import OperationTimings
from lineage_engine.planner.wave_planner import compute_execution_waves
from lineage_engine.telemetry.profiling import (
    TimingCollector,
    get_collector,
    profile_operation,
)

# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _clear_collector():
    get_collector().clear()
    yield
    get_collector().clear()


# ---------------------------------------------------------------------------
# TimingCollector
# ---------------------------------------------------------------------------


class TestTimingCollector:
    def test_process_collector_is_shared(self) -> None:
        assert get_collector() is get_collector()

    def test_rejects_empty_window(self) -> None:
        with pytest.raises(ValueError, match="window must be >= 1"):
            TimingCollector(window=0)

    def test_unknown_operation(self) -> None:
        assert TimingCollector().timings("missing") is None

    def test_aggregation(self) -> None:
        collector = TimingCollector()
        for value in (5.0, 1.0, 4.0, 2.0, 3.0):
            collector.record("waves.compute", value)
        assert collector.timings("waves.compute") == OperationTimings(
            operation="waves.compute",
            calls=5,
            total_ms=15.0,
            mean_ms=3.0,
            p50_ms=3.0,
            p95_ms=4.8,
            max_ms=5.0,
        )

    def test_single_sample(self) -> None:
        collector = TimingCollector()
        collector.record("op", 2.5)
        timings = collector.timings("op")
        assert timings is not None
        assert timings.p50_ms == timings.p95_ms == timings.max_ms == 2.5

    def test_window_drops_old_samples_but_counts_calls(self) -> None:
        collector = TimingCollector(window=3)
        for value in (100.0, 1.0, 2.0, 3.0):
            collector.record("op", value)
        timings = collector.timings("op")
        assert timings is not None
        assert timings.calls == 4
        assert timings.max_ms == 3.0
        assert timings.total_ms == 6.0

    def test_summary_slowest_first(self) -> None:
        collector = TimingCollector()
        collector.record("adjacency.build", 1.0)
        collector.record("waves.compute", 2.0)
        collector.record("waves.compute", 2.0)
        collector.record("blast.build_graph", 1.0)
        assert [t.operation for t in collector.summary()] == [
            "waves.compute",
            "adjacency.build",
            "blast.build_graph",
        ]

    def test_clear(self) -> None:
        collector = TimingCollector()
        collector.record("op", 1.0)
        collector.clear()
        assert collector.summary() == []
        assert collector.timings("op") is None

    def test_thread_safe_recording(self) -> None:
        collector = TimingCollector(window=10)

        def _worker() -> None:
            for _ in range(250):
                collector.record("op", 0.1)

        threads = [threading.Thread(target=_worker) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        timings = collector.timings("op")
        assert timings is not None
        assert timings.calls == 2000


# ---------------------------------------------------------------------------
# @profile_operation
# ---------------------------------------------------------------------------


class TestProfileOperation:
    def test_records_and_returns_value(self) -> None:
        @profile_operation("test.add")
        def add(a: int, b: int) -> int:
            return a + b

        assert add(2, 3) == 5
        timings = get_collector().timings("test.add")
        assert timings is not None
        assert timings.calls == 1

    def test_records_on_exception(self) -> None:
        @profile_operation("test.fail")
        def fail() -> None:
            raise RuntimeError("boom")

        with pytest.raises(RuntimeError):
            fail()
        assert get_collector().timings("test.fail") is not None

    def test_preserves_metadata(self) -> None:
        @profile_operation("test.named")
        def documented() -> None:
            """Docstring."""

        assert documented.__name__ == "documented"
        assert documented.__doc__ == "Docstring."

    def test_logs_at_debug(self, caplog: pytest.LogCaptureFixture) -> None:
        @profile_operation("test.logged")
        def noop() -> None:
            return None

        with caplog.at_level(logging.DEBUG, logger="lineage_engine.telemetry.profiling"):
            noop()
        assert "PROFILE test.logged" in caplog.text

    def test_engine_operations_are_profiled(self) -> None:
        config = PipelineConfig(pipelines=[PipelineNode(name="a"), PipelineNode(name="b", upstream_pipelines=["a"])])
        compute_execution_waves(config, ["a"])
        operations = {t.operation for t in get_collector().summary()}
        assert {"waves.compute", "adjacency.build"} <= operations
