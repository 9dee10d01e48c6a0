"""Adjacency construction for pipeline and datasource graphs.

A single builder derives both views of a configuration:

* **pipeline-only** (``include_datasource_nodes=False``,
  ``infer_implicit_producer_edges=True``): nodes are pipelines.  Edges come
  from explicit ``upstream_pipelines`` plus implicit producer edges, where a
  pipeline that writes datasource ``D`` is upstream of every pipeline that
  reads ``D``.
* **full** (``include_datasource_nodes=True``,
  ``infer_implicit_producer_edges=False``): pipelines and datasources are
  nodes; edges run ``input -> pipeline -> output`` plus the explicit
  ``upstream_pipeline -> pipeline`` dependencies.

Edges always point from the upstream (producer) node to the downstream
(consumer) node.  The resulting :class:`AdjacencyGraph` is immutable and is
a pure function of the configuration.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator, Mapping
from dataclasses import dataclass
from types import MappingProxyType

import networkx as nx

from lineage_engine.graph.traversal import bfs, reachable
from lineage_engine.models.config import PipelineConfig
from lineage_engine.models.results import LineageResult
from lineage_engine.telemetry.profiling import profile_operation

logger = logging.getLogger(__name__)

_EMPTY: frozenset[str] = frozenset()


@dataclass(frozen=True)
class AdjacencyGraph:
    """Read-only directed graph stored as upstream and downstream maps.

    ``nodes`` preserves discovery order (pipelines in configuration order,
    then datasources).  Both maps contain an entry for every node.
    """

    nodes: tuple[str, ...]
    upstream: Mapping[str, frozenset[str]]
    downstream: Mapping[str, frozenset[str]]

    def __contains__(self, node: object) -> bool:
        return node in self.upstream

    def __len__(self) -> int:
        return len(self.nodes)

    def __iter__(self) -> Iterator[str]:
        return iter(self.nodes)

    def upstream_neighbors(self, node: str) -> frozenset[str]:
        return self.upstream.get(node, _EMPTY)

    def downstream_neighbors(self, node: str) -> frozenset[str]:
        return self.downstream.get(node, _EMPTY)

    def edges(self) -> list[tuple[str, str]]:
        """All ``(source, target)`` pairs, sorted."""
        return sorted((src, dst) for src, targets in self.downstream.items() for dst in targets)

    def lineage(self, node: str, *, max_depth: int | None = None) -> LineageResult | None:
        """Upstream and downstream records of *node*, or ``None`` if unknown."""
        if node not in self:
            return None
        return LineageResult(
            node=node,
            upstream=bfs(node, self.upstream_neighbors, max_depth=max_depth),
            downstream=bfs(node, self.downstream_neighbors, max_depth=max_depth),
        )

    def to_digraph(self) -> nx.DiGraph:
        """Return an equivalent :class:`networkx.DiGraph`."""
        dag = nx.DiGraph()
        dag.add_nodes_from(self.nodes)
        dag.add_edges_from(self.edges())
        return dag


class AdjacencyAccumulator:
    """Mutable scratch space used while an :class:`AdjacencyGraph` is built."""

    def __init__(self) -> None:
        self._nodes: dict[str, None] = {}
        self._upstream: dict[str, set[str]] = {}
        self._downstream: dict[str, set[str]] = {}

    def add_node(self, node: str) -> None:
        if node not in self._nodes:
            self._nodes[node] = None
            self._upstream[node] = set()
            self._downstream[node] = set()

    def add_edge(self, source: str, target: str) -> None:
        self.add_node(source)
        self.add_node(target)
        self._upstream[target].add(source)
        self._downstream[source].add(target)

    def freeze(self) -> AdjacencyGraph:
        return AdjacencyGraph(
            nodes=tuple(self._nodes),
            upstream=MappingProxyType({n: frozenset(s) for n, s in self._upstream.items()}),
            downstream=MappingProxyType({n: frozenset(s) for n, s in self._downstream.items()}),
        )


def producers_by_output(config: PipelineConfig) -> dict[str, list[str]]:
    """Map every output datasource to the pipelines that write it, in config order."""
    producers: dict[str, list[str]] = {}
    for pipeline in config.pipelines:
        for output in pipeline.output_sources:
            writers = producers.setdefault(output, [])
            if pipeline.name not in writers:
                writers.append(pipeline.name)
    return producers


# ---------------------------------------------------------------------------
# Construction
# ---------------------------------------------------------------------------


@profile_operation("adjacency.build")
def build_adjacency(
    config: PipelineConfig,
    *,
    include_datasource_nodes: bool = False,
    infer_implicit_producer_edges: bool = True,
) -> AdjacencyGraph:
    """Build the adjacency graph of *config*.

    Parameters
    ----------
    config:
        The configuration snapshot.
    include_datasource_nodes:
        Add every declared or referenced datasource as a node, with
        ``input -> pipeline`` and ``pipeline -> output`` edges.  When false,
        explicit upstream names that are not pipelines are dropped.
    infer_implicit_producer_edges:
        Add ``producer -> consumer`` edges between pipelines that share a
        datasource.  A pipeline reading its own output gains no self edge.

    Returns
    -------
    AdjacencyGraph
        The frozen graph.
    """
    acc = AdjacencyAccumulator()
    pipeline_names = {p.name for p in config.pipelines}

    for pipeline in config.pipelines:
        acc.add_node(pipeline.name)

    if include_datasource_nodes:
        for datasource in config.datasources:
            acc.add_node(datasource.name)
        for pipeline in config.pipelines:
            for source in pipeline.input_sources:
                acc.add_edge(source, pipeline.name)
            for output in pipeline.output_sources:
                acc.add_edge(pipeline.name, output)

    if infer_implicit_producer_edges:
        producers = producers_by_output(config)
        for pipeline in config.pipelines:
            for source in pipeline.input_sources:
                for producer in producers.get(source, ()):
                    if producer != pipeline.name:
                        acc.add_edge(producer, pipeline.name)

    for pipeline in config.pipelines:
        for upstream in pipeline.upstream_pipelines:
            if include_datasource_nodes or upstream in pipeline_names:
                acc.add_edge(upstream, pipeline.name)
            else:
                logger.debug(
                    "Dropping upstream '%s' of pipeline '%s': not a known pipeline",
                    upstream,
                    pipeline.name,
                )

    return acc.freeze()


def pipeline_adjacency(config: PipelineConfig) -> AdjacencyGraph:
    """Pipelines only, with implicit producer edges."""
    return build_adjacency(config, include_datasource_nodes=False, infer_implicit_producer_edges=True)


def full_adjacency(config: PipelineConfig) -> AdjacencyGraph:
    """Pipelines and datasources, with explicit data-flow edges only."""
    return build_adjacency(config, include_datasource_nodes=True, infer_implicit_producer_edges=False)


# ---------------------------------------------------------------------------
# Queries
# ---------------------------------------------------------------------------


def upstream_of(config: PipelineConfig, node: str) -> set[str]:
    """Return every pipeline transitively upstream of *node*.

    Unknown nodes have no upstream and yield an empty set.
    """
    return reachable(node, pipeline_adjacency(config).upstream_neighbors)


def downstream_of(config: PipelineConfig, node: str) -> set[str]:
    """Return every pipeline transitively downstream of *node*."""
    return reachable(node, pipeline_adjacency(config).downstream_neighbors)


def lineage(
    config: PipelineConfig,
    node: str,
    *,
    include_datasource_nodes: bool = False,
    max_depth: int | None = None,
) -> LineageResult | None:
    """Depth-annotated upstream and downstream lineage of *node*.

    Parameters
    ----------
    config:
        The configuration snapshot.
    node:
        Pipeline name, or (with ``include_datasource_nodes``) a datasource.
    include_datasource_nodes:
        Walk the full graph instead of the pipeline-only graph.
    max_depth:
        Optional hop limit applied in both directions.

    Returns
    -------
    LineageResult | None
        ``None`` when *node* is not part of the selected graph.
    """
    graph = full_adjacency(config) if include_datasource_nodes else pipeline_adjacency(config)
    return graph.lineage(node, max_depth=max_depth)


def full_graph_lineage(config: PipelineConfig, node: str, *, max_depth: int | None = None) -> LineageResult | None:
    """:func:`lineage` over the full pipeline + datasource graph."""
    return lineage(config, node, include_datasource_nodes=True, max_depth=max_depth)
