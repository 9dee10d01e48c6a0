"""Versioned, immutable configuration snapshots.

The store is the only mutable state in the engine.  Publishing a new
configuration creates a new :class:`ConfigSnapshot` with a monotonically
increasing version; readers that grabbed an earlier snapshot keep a
consistent view because snapshots are never modified.  Derived structures
(adjacency graphs, blast graph, attribute lineage, groups) are computed
lazily on first access and cached on the snapshot.
"""

from __future__ import annotations

import logging
import threading
from collections import OrderedDict
from dataclasses import dataclass
from functools import cached_property

from lineage_engine.graph.adjacency import AdjacencyGraph, full_adjacency, pipeline_adjacency
from lineage_engine.graph.attribute_lineage import AttributeLineage, build_attribute_lineage_map
from lineage_engine.graph.groups import GroupData, build_group_data
from lineage_engine.loader.config_loader import config_content_hash
from lineage_engine.models.config import PipelineConfig
from lineage_engine.simulation.blast_radius import BlastGraph, build_blast_graph

logger = logging.getLogger(__name__)


@dataclass(frozen=True, eq=False)
class ConfigSnapshot:
    """One published configuration and its lazily derived graphs."""

    version: int
    content_hash: str
    config: PipelineConfig

    @cached_property
    def pipeline_adjacency(self) -> AdjacencyGraph:
        return pipeline_adjacency(self.config)

    @cached_property
    def full_adjacency(self) -> AdjacencyGraph:
        return full_adjacency(self.config)

    @cached_property
    def blast_graph(self) -> BlastGraph:
        return build_blast_graph(self.config)

    @cached_property
    def attribute_lineage(self) -> AttributeLineage:
        return build_attribute_lineage_map(self.config)

    @cached_property
    def group_data(self) -> GroupData:
        return build_group_data(self.config)


class ConfigSnapshotStore:
    """Thread-safe holder of the most recent configuration snapshots.

    Parameters
    ----------
    retention:
        Number of snapshots kept; older versions are evicted first.  The
        current snapshot is never evicted.
    """

    def __init__(self, retention: int = 10) -> None:
        if retention < 1:
            raise ValueError("retention must be at least 1")
        self._retention = retention
        self._snapshots: OrderedDict[int, ConfigSnapshot] = OrderedDict()
        self._next_version = 1
        self._lock = threading.Lock()

    def publish(self, config: PipelineConfig) -> ConfigSnapshot:
        """Publish *config* and return its snapshot.

        Publishing content identical to the current snapshot returns that
        snapshot unchanged, without allocating a new version.
        """
        content_hash = config_content_hash(config)
        with self._lock:
            current = self._current_locked()
            if current is not None and current.content_hash == content_hash:
                logger.debug("Configuration unchanged; keeping version %d", current.version)
                return current

            snapshot = ConfigSnapshot(version=self._next_version, content_hash=content_hash, config=config)
            self._next_version += 1
            self._snapshots[snapshot.version] = snapshot
            while len(self._snapshots) > self._retention:
                evicted, _ = self._snapshots.popitem(last=False)
                logger.debug("Evicted configuration snapshot version %d", evicted)

        logger.info("Published configuration version %d (%s)", snapshot.version, content_hash[:12])
        return snapshot

    def current(self) -> ConfigSnapshot | None:
        with self._lock:
            return self._current_locked()

    def get(self, version: int) -> ConfigSnapshot | None:
        """Return a retained snapshot by version, or ``None``."""
        with self._lock:
            return self._snapshots.get(version)

    def versions(self) -> list[int]:
        """Retained versions, oldest first."""
        with self._lock:
            return list(self._snapshots)

    def _current_locked(self) -> ConfigSnapshot | None:
        if not self._snapshots:
            return None
        return next(reversed(self._snapshots.values()))
