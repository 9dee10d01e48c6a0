"""In-process configuration snapshots."""

from lineage_engine.state.snapshot_store import ConfigSnapshot, ConfigSnapshotStore

__all__ = [
    "ConfigSnapshot",
    "ConfigSnapshotStore",
]
