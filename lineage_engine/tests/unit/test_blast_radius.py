"""Unit tests for lineage_engine.simulation.blast_radius."""

from __future__ import annotations

import pytest

from lineage_engine.models.config import DatasourceNode, PipelineConfig, PipelineNode
from lineage_engine.models.results import NodeType
from lineage_engine.simulation.blast_radius import blast_radius_for_node, build_blast_graph


@pytest.fixture()
def config() -> PipelineConfig:
    """
    raw -> clean_job -> clean -> agg_job -> agg -> dash_job
                                 \\-> export_job  (explicit upstream)
    loader_a, loader_b (group "loaders") both write raw; loader_b depends on loader_a.
    """
    return PipelineConfig(
        pipelines=[
            PipelineNode(name="loader_a", output_sources=["raw"], group="loaders"),
            PipelineNode(name="loader_b", output_sources=["raw"], upstream_pipelines=["loader_a"], group="loaders"),
            PipelineNode(
                name="clean_job",
                input_sources=["raw"],
                output_sources=["clean"],
                schedule="0 * * * *",
                cluster="etl",
            ),
            PipelineNode(name="agg_job", input_sources=["clean"], output_sources=["agg"]),
            PipelineNode(name="dash_job", input_sources=["agg"]),
            PipelineNode(name="export_job", upstream_pipelines=["agg_job"]),
        ],
        datasources=[DatasourceNode(name="raw"), DatasourceNode(name="unused")],
    )


@pytest.fixture()
def graph(config):
    return build_blast_graph(config)


class TestBuildBlastGraph:
    def test_node_types(self, graph):
        assert graph.node_types["clean_job"] == NodeType.PIPELINE
        assert graph.node_types["clean"] == NodeType.DATASOURCE
        assert graph.node_types["unused"] == NodeType.DATASOURCE

    def test_edges_follow_data_flow(self, graph):
        assert graph.downstream["raw"] == frozenset({"clean_job"})
        assert graph.downstream["clean_job"] == frozenset({"clean"})
        assert graph.downstream["agg_job"] == frozenset({"agg", "export_job"})

    def test_groups(self, graph):
        assert graph.groups["loaders"] == ("loader_a", "loader_b")
        assert "loaders" in graph


class TestBlastRadiusForNode:
    def test_empty_or_unknown_target(self, graph):
        assert blast_radius_for_node(graph, "") is None
        assert blast_radius_for_node(graph, None) is None
        assert blast_radius_for_node(graph, "ghost") is None

    def test_datasource_source(self, graph):
        result = blast_radius_for_node(graph, "clean")
        assert result is not None
        assert result.source_type == NodeType.DATASOURCE
        assert [(n.name, n.depth) for n in result.downstream] == [
            ("agg_job", 1),
            ("agg", 2),
            ("export_job", 2),
            ("dash_job", 3),
        ]
        assert result.total_affected == 4
        assert result.max_depth == 3

    def test_by_depth_groups_nodes(self, graph):
        result = blast_radius_for_node(graph, "clean")
        assert result is not None
        assert sorted(result.by_depth) == [1, 2, 3]
        assert [n.name for n in result.by_depth[2]] == ["agg", "export_job"]

    def test_pipeline_metadata_attached(self, graph):
        result = blast_radius_for_node(graph, "raw")
        assert result is not None
        clean_job = next(n for n in result.downstream if n.name == "clean_job")
        assert clean_job.type == NodeType.PIPELINE
        assert clean_job.schedule == "0 * * * *"
        assert clean_job.cluster == "etl"

    def test_leaf_has_no_impact(self, graph):
        result = blast_radius_for_node(graph, "dash_job")
        assert result is not None
        assert result.total_affected == 0
        assert result.max_depth == 0
        assert result.edges == []

    def test_max_depth(self, graph):
        result = blast_radius_for_node(graph, "clean", max_depth=1)
        assert result is not None
        assert [n.name for n in result.downstream] == ["agg_job"]

    def test_edges_recorded_once(self, graph):
        result = blast_radius_for_node(graph, "raw")
        assert result is not None
        pairs = [(e.source, e.target) for e in result.edges]
        assert len(pairs) == len(set(pairs))
        assert ("raw", "clean_job") in pairs
        assert ("agg_job", "export_job") in pairs

    def test_source_not_in_downstream(self, graph):
        result = blast_radius_for_node(graph, "raw")
        assert result is not None
        assert "raw" not in {n.name for n in result.downstream}


class TestGroupBlastRadius:
    def test_group_is_one_source(self, graph):
        result = blast_radius_for_node(graph, "loaders")
        assert result is not None
        assert result.source_type == NodeType.GROUP
        assert result.group_members == ["loader_a", "loader_b"]
        assert result.group_size == 2
        assert result.downstream[0].name == "raw"
        assert result.downstream[0].depth == 1

    def test_members_never_reported_as_impacted(self, graph):
        result = blast_radius_for_node(graph, "loaders")
        assert result is not None
        assert not {"loader_a", "loader_b"} & {n.name for n in result.downstream}

    def test_edges_use_group_name(self, graph):
        result = blast_radius_for_node(graph, "loaders")
        assert result is not None
        pairs = [(e.source, e.target) for e in result.edges]
        assert ("loaders", "raw") in pairs
        assert pairs.count(("loaders", "raw")) == 1
        assert not any(s in {"loader_a", "loader_b"} or t in {"loader_a", "loader_b"} for s, t in pairs)
        assert ("loaders", "loaders") not in pairs

    def test_non_group_result_has_no_group_fields(self, graph):
        result = blast_radius_for_node(graph, "raw")
        assert result is not None
        assert result.group_members is None
        assert result.group_size is None


# ---------------------------------------------------------------------------
# Converging paths
# ---------------------------------------------------------------------------


@pytest.fixture()
def diamond_graph():
    """raw feeds j1 and j2, which both write out; report reads out."""
    return build_blast_graph(
        PipelineConfig(
            pipelines=[
                PipelineNode(name="j1", input_sources=["raw"], output_sources=["out"]),
                PipelineNode(name="j2", input_sources=["raw"], output_sources=["out"]),
                PipelineNode(name="report", input_sources=["out"]),
            ]
        )
    )


class TestImpactSubgraph:
    def test_edges_into_visited_nodes_are_kept(self, diamond_graph):
        result = blast_radius_for_node(diamond_graph, "raw")
        assert result is not None
        pairs = [(e.source, e.target) for e in result.edges]
        assert pairs.count(("j1", "out")) == 1
        assert pairs.count(("j2", "out")) == 1
        assert set(pairs) == {("raw", "j1"), ("raw", "j2"), ("j1", "out"), ("j2", "out"), ("out", "report")}
        assert len(pairs) == 5

    def test_converging_node_keeps_min_depth(self, diamond_graph):
        result = blast_radius_for_node(diamond_graph, "raw")
        assert result is not None
        assert [(n.name, n.depth) for n in result.downstream] == [
            ("j1", 1),
            ("j2", 1),
            ("out", 2),
            ("report", 3),
        ]


# ---------------------------------------------------------------------------
# Undeclared upstream names
# ---------------------------------------------------------------------------


class TestUndeclaredUpstream:
    @pytest.fixture()
    def graph(self):
        return build_blast_graph(
            PipelineConfig(
                pipelines=[
                    PipelineNode(name="consumer", upstream_pipelines=["ext"], output_sources=["sink"]),
                ]
            )
        )

    def test_classified_unknown(self, graph):
        assert graph.node_types["ext"] == NodeType.UNKNOWN
        assert "ext" in graph

    def test_queryable(self, graph):
        result = blast_radius_for_node(graph, "ext")
        assert result is not None
        assert result.source_type == NodeType.UNKNOWN
        assert [(n.name, n.type, n.depth) for n in result.downstream] == [
            ("consumer", NodeType.PIPELINE, 1),
            ("sink", NodeType.DATASOURCE, 2),
        ]

    def test_declared_names_keep_their_type(self):
        graph = build_blast_graph(
            PipelineConfig(
                pipelines=[
                    PipelineNode(name="a", upstream_pipelines=["b", "events"]),
                    PipelineNode(name="b"),
                ],
                datasources=[DatasourceNode(name="events")],
            )
        )
        assert graph.node_types["b"] == NodeType.PIPELINE
        assert graph.node_types["events"] == NodeType.DATASOURCE
