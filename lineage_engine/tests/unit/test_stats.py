"""Unit tests for lineage_engine.graph.stats."""

from __future__ import annotations

import pytest

from lineage_engine.graph.stats import compute_config_stats
from lineage_engine.models.config import DatasourceNode, PipelineConfig, PipelineNode
from lineage_engine.models.results import NodeType


@pytest.fixture()
def config() -> PipelineConfig:
    return PipelineConfig(
        pipelines=[
            PipelineNode(
                name="ingest",
                output_sources=["events"],
                schedule="@hourly",
                cluster="core",
                links={"airflow": "https://airflow/dags/ingest"},
            ),
            PipelineNode(name="sessions", input_sources=["events"], output_sources=["sessions_ds"], cluster="core"),
            PipelineNode(name="funnel", input_sources=["events", "sessions_ds"], schedule="@daily"),
            PipelineNode(name="cycle_a", upstream_pipelines=["cycle_b"], cluster="sandbox"),
            PipelineNode(name="cycle_b", upstream_pipelines=["cycle_a"], cluster="sandbox"),
        ],
        datasources=[
            DatasourceNode(name="events", type="kafka"),
            DatasourceNode(name="sessions_ds", type="table"),
            DatasourceNode(name="legacy", type="table"),
            DatasourceNode(name="notes"),
        ],
    )


class TestComputeConfigStats:
    def test_counts(self, config):
        stats = compute_config_stats(config)
        assert stats.counts.pipelines == 5
        assert stats.counts.datasources == 4
        assert stats.counts.clusters == 2

    def test_cycles(self, config):
        stats = compute_config_stats(config)
        assert len(stats.cycles) == 1
        assert set(stats.cycles[0]) == {"cycle_a", "cycle_b"}

    def test_orphaned_datasources(self, config):
        assert compute_config_stats(config).orphaned == ["legacy", "notes"]

    def test_schedule_coverage(self, config):
        coverage = compute_config_stats(config).schedule_coverage
        assert coverage.covered == 2
        assert coverage.total == 5
        assert coverage.missing == ["sessions", "cycle_a", "cycle_b"]

    def test_airflow_coverage(self, config):
        coverage = compute_config_stats(config).airflow_coverage
        assert coverage.covered == 1
        assert coverage.missing == ["sessions", "funnel", "cycle_a", "cycle_b"]

    def test_distributions(self, config):
        stats = compute_config_stats(config)
        assert stats.cluster_distribution == {"core": 2, "sandbox": 2, "unclustered": 1}
        assert stats.type_distribution == {"table": 2, "kafka": 1, "unknown": 1}

    def test_hubs_ranked_by_total_then_name(self, config):
        hubs = compute_config_stats(config).hubs
        assert hubs[0].name == "events"
        assert hubs[0].type == NodeType.DATASOURCE
        assert (hubs[0].upstream, hubs[0].downstream, hubs[0].total) == (1, 2, 3)
        keys = [(-h.total, h.name) for h in hubs]
        assert keys == sorted(keys)

    def test_hub_limit(self, config):
        assert len(compute_config_stats(config, hub_limit=2).hubs) == 2

    def test_grouped_pipelines_count_as_group(self):
        config = PipelineConfig(
            pipelines=[
                PipelineNode(name="m1", output_sources=["a"], group="g"),
                PipelineNode(name="m2", output_sources=["b"], group="g"),
            ]
        )
        hubs = compute_config_stats(config).hubs
        assert hubs[0].name == "g"
        assert hubs[0].type == NodeType.GROUP
        assert hubs[0].downstream == 2

    def test_empty_config(self):
        stats = compute_config_stats(PipelineConfig())
        assert stats.counts.pipelines == 0
        assert stats.cycles == []
        assert stats.hubs == []
        assert stats.schedule_coverage.total == 0
