"""Unit tests for lineage_engine.state.snapshot_store."""

from __future__ import annotations

import threading

import pytest
from lineage_engine.models.config import DatasourceNode, PipelineConfig, PipelineNode
from lineage_engine.state.snapshot_store import ConfigSnapshotStore


def _config(*names: str) -> PipelineConfig:
    return PipelineConfig(
        pipelines=[PipelineNode(name=n, output_sources=[f"{n}_out"]) for n in names],
        datasources=[DatasourceNode(name=f"{n}_out") for n in names],
    )


class TestPublish:
    def test_versions_increase(self):
        store = ConfigSnapshotStore()
        first = store.publish(_config("a"))
        second = store.publish(_config("a", "b"))
        assert (first.version, second.version) == (1, 2)
        assert store.current() is second

    def test_identical_content_keeps_version(self):
        store = ConfigSnapshotStore()
        first = store.publish(_config("a"))
        again = store.publish(_config("a"))
        assert again is first
        assert store.versions() == [1]

    def test_reverting_content_creates_new_version(self):
        store = ConfigSnapshotStore()
        store.publish(_config("a"))
        store.publish(_config("b"))
        assert store.publish(_config("a")).version == 3

    def test_empty_store(self):
        store = ConfigSnapshotStore()
        assert store.current() is None
        assert store.get(1) is None
        assert store.versions() == []


class TestRetention:
    def test_oldest_evicted(self):
        store = ConfigSnapshotStore(retention=2)
        for name in ("a", "b", "c"):
            store.publish(_config(name))
        assert store.versions() == [2, 3]
        assert store.get(1) is None
        assert store.get(3) is store.current()

    def test_invalid_retention(self):
        with pytest.raises(ValueError, match="retention"):
            ConfigSnapshotStore(retention=0)

    def test_old_snapshot_stays_consistent(self):
        store = ConfigSnapshotStore(retention=1)
        old = store.publish(_config("a"))
        store.publish(_config("b"))
        assert old.config.pipeline_names() == ["a"]
        assert "a" in old.pipeline_adjacency


class TestDerivedGraphs:
    def test_cached_per_snapshot(self):
        snapshot = ConfigSnapshotStore().publish(_config("a", "b"))
        assert snapshot.full_adjacency is snapshot.full_adjacency
        assert snapshot.blast_graph is snapshot.blast_graph
        assert snapshot.attribute_lineage is snapshot.attribute_lineage
        assert snapshot.group_data is snapshot.group_data

    def test_graphs_reflect_config(self):
        snapshot = ConfigSnapshotStore().publish(_config("a"))
        assert "a_out" in snapshot.full_adjacency
        assert "a_out" not in snapshot.pipeline_adjacency
        assert "a" in snapshot.blast_graph


class TestConcurrency:
    def test_concurrent_publishers_get_unique_versions(self):
        store = ConfigSnapshotStore(retention=100)
        versions: list[int] = []
        lock = threading.Lock()

        def _publish(name: str) -> None:
            snapshot = store.publish(_config(name))
            with lock:
                versions.append(snapshot.version)

        threads = [threading.Thread(target=_publish, args=(f"p{i}",)) for i in range(20)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert len(versions) == 20
        assert sorted(versions) == list(range(1, 21))
