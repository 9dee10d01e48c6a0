"""Wall-clock timings for the engine's graph builds and planners.

Hot paths are wrapped with ``@profile_operation(name)``; every call appends
its duration to the process-wide :class:`TimingCollector` and logs it at
DEBUG level.  The ``pipeviz --profile`` option resets the collector before a
command and renders :meth:`TimingCollector.summary` afterwards, so users see
which stage of a query (adjacency build, wave planning, attribute map) took
the time.

Operation names in use:

* ``adjacency.build``
* ``attribute_lineage.build``
* ``blast.build_graph``
* ``waves.compute``
"""

from __future__ import annotations

import functools
import logging
import threading
import time
from collections import deque
from collections.abc import Callable, Sequence
from typing import Any, TypeVar

from lineage_engine.models.results import OperationTimings

logger = logging.getLogger(__name__)

F = TypeVar("F", bound=Callable[..., Any])


def _interpolated_percentile(ordered: Sequence[float], pct: float) -> float:
    """Percentile of ascending *ordered* with linear interpolation between ranks."""
    rank = (len(ordered) - 1) * pct / 100.0
    below = int(rank)
    if below + 1 >= len(ordered):
        return ordered[-1]
    return ordered[below] + (rank - below) * (ordered[below + 1] - ordered[below])


class TimingCollector:
    """Durations of recent calls, kept per operation name.

    Parameters
    ----------
    window:
        How many of the most recent durations to keep for each operation.
        Older samples are dropped; the call count keeps growing.
    """

    def __init__(self, window: int = 100) -> None:
        if window < 1:
            raise ValueError(f"window must be >= 1, got {window}")
        self._window = window
        self._samples: dict[str, deque[float]] = {}
        self._calls: dict[str, int] = {}
        self._lock = threading.Lock()

    def record(self, operation: str, duration_ms: float) -> None:
        with self._lock:
            samples = self._samples.setdefault(operation, deque(maxlen=self._window))
            samples.append(duration_ms)
            self._calls[operation] = self._calls.get(operation, 0) + 1

    def timings(self, operation: str) -> OperationTimings | None:
        """Aggregate *operation*, or ``None`` when it never ran."""
        with self._lock:
            if operation not in self._samples:
                return None
            ordered = sorted(self._samples[operation])
            calls = self._calls[operation]

        total = sum(ordered)
        return OperationTimings(
            operation=operation,
            calls=calls,
            total_ms=round(total, 3),
            mean_ms=round(total / len(ordered), 3),
            p50_ms=round(_interpolated_percentile(ordered, 50), 3),
            p95_ms=round(_interpolated_percentile(ordered, 95), 3),
            max_ms=round(ordered[-1], 3),
        )

    def summary(self) -> list[OperationTimings]:
        """Timings of every recorded operation, slowest total first."""
        with self._lock:
            names = list(self._samples)
        rows = [t for t in (self.timings(name) for name in names) if t is not None]
        return sorted(rows, key=lambda t: (-t.total_ms, t.operation))

    def clear(self) -> None:
        with self._lock:
            self._samples.clear()
            self._calls.clear()


_collector = TimingCollector()


def get_collector() -> TimingCollector:
    """Return the collector that ``@profile_operation`` records into."""
    return _collector


def profile_operation(name: str) -> Callable[[F], F]:
    """Record the duration of every call to the decorated function under *name*.

    Failed calls are recorded too.
    """

    def decorator(func: F) -> F:
        @functools.wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            started = time.perf_counter()
            try:
                return func(*args, **kwargs)
            finally:
                elapsed_ms = (time.perf_counter() - started) * 1000
                _collector.record(name, elapsed_ms)
                logger.debug("PROFILE %s: %.3f ms", name, elapsed_ms)

        return wrapper  # type: ignore[return-value]

    return decorator
