"""Logging and profiling helpers."""

from lineage_engine.telemetry.logging import JSONFormatter, configure_logging
from lineage_engine.telemetry.profiling import TimingCollector, get_collector, profile_operation

__all__ = [
    "JSONFormatter",
    "TimingCollector",
    "configure_logging",
    "get_collector",
    "profile_operation",
]
