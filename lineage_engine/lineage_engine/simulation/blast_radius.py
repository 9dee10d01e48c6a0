"""Blast-radius analysis: what breaks downstream if a node changes.

The blast graph links pipelines and datasources in data-flow direction
(``input -> pipeline -> output`` and ``upstream_pipeline -> pipeline``).  It
is built once per configuration snapshot and reused across queries.

A group name is analysed as one logical source: traversal starts from every
member at once, edges between two members are ignored, and edges touching a
member are reported against the group name instead.

A name that appears only in some pipeline's ``upstream_pipelines`` is
classified as ``NodeType.UNKNOWN``; it can be queried like any other node.
"""

from __future__ import annotations

import logging
from collections import deque
from collections.abc import Mapping
from dataclasses import dataclass
from types import MappingProxyType

from lineage_engine.models.config import PipelineConfig, PipelineNode
from lineage_engine.models.results import BlastRadiusResult, ImpactEdge, ImpactedNode, NodeType
from lineage_engine.telemetry.profiling import profile_operation

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BlastGraph:
    """Downstream adjacency plus the metadata needed to describe impact."""

    downstream: Mapping[str, frozenset[str]]
    node_types: Mapping[str, NodeType]
    pipelines: Mapping[str, PipelineNode]
    groups: Mapping[str, tuple[str, ...]]

    def __contains__(self, node: object) -> bool:
        return node in self.node_types or node in self.groups


@profile_operation("blast.build_graph")
def build_blast_graph(config: PipelineConfig) -> BlastGraph:
    """Build the reusable blast graph of *config* in a single pass."""
    downstream: dict[str, set[str]] = {}
    node_types: dict[str, NodeType] = {}
    pipelines: dict[str, PipelineNode] = {}
    groups: dict[str, list[str]] = {}

    for pipeline in config.pipelines:
        node_types[pipeline.name] = NodeType.PIPELINE
        pipelines.setdefault(pipeline.name, pipeline)
        downstream.setdefault(pipeline.name, set())
        if pipeline.group:
            groups.setdefault(pipeline.group, []).append(pipeline.name)

    for pipeline in config.pipelines:
        for output in pipeline.output_sources:
            downstream[pipeline.name].add(output)
            node_types.setdefault(output, NodeType.DATASOURCE)
        for source in pipeline.input_sources:
            downstream.setdefault(source, set()).add(pipeline.name)
            node_types.setdefault(source, NodeType.DATASOURCE)
        for upstream in pipeline.upstream_pipelines:
            downstream.setdefault(upstream, set()).add(pipeline.name)

    for datasource in config.datasources:
        node_types.setdefault(datasource.name, NodeType.DATASOURCE)

    # Names seen only in upstream_pipelines are undeclared but still queryable.
    for name in downstream:
        node_types.setdefault(name, NodeType.UNKNOWN)

    return BlastGraph(
        downstream=MappingProxyType({n: frozenset(t) for n, t in downstream.items()}),
        node_types=MappingProxyType(node_types),
        pipelines=MappingProxyType(pipelines),
        groups=MappingProxyType({g: tuple(m) for g, m in groups.items()}),
    )


def blast_radius_for_node(
    graph: BlastGraph,
    target: str | None,
    *,
    max_depth: int | None = None,
) -> BlastRadiusResult | None:
    """Compute everything downstream of *target*.

    Parameters
    ----------
    graph:
        A graph built by :func:`build_blast_graph`.
    target:
        A pipeline, datasource, or group name.
    max_depth:
        When set, nodes further than this many hops are not explored.

    Returns
    -------
    BlastRadiusResult | None
        ``None`` when *target* is empty or unknown.  Otherwise the impacted
        nodes sorted by ``(depth, name)`` and every traversed edge exactly
        once, in discovery order.
    """
    if not target:
        return None

    members = graph.groups.get(target)
    is_group = members is not None
    if not is_group and target not in graph.node_types:
        return None

    sources: tuple[str, ...] = members if is_group else (target,)
    member_set = set(sources)
    depth_of: dict[str, int] = {name: 0 for name in sources}
    queue: deque[tuple[str, int]] = deque((name, 0) for name in sources)
    edges: dict[tuple[str, str], None] = {}

    while queue:
        current, depth = queue.popleft()
        if max_depth is not None and depth >= max_depth:
            continue
        for neighbor in sorted(graph.downstream.get(current, ())):
            if is_group and current in member_set and neighbor in member_set:
                continue
            edge_source = target if is_group and current in member_set else current
            edge_target = target if is_group and neighbor in member_set else neighbor
            edges.setdefault((edge_source, edge_target), None)
            if neighbor not in depth_of:
                depth_of[neighbor] = depth + 1
                queue.append((neighbor, depth + 1))

    impacted: list[ImpactedNode] = []
    for name, depth in depth_of.items():
        if name in member_set:
            continue
        pipeline = graph.pipelines.get(name)
        impacted.append(
            ImpactedNode(
                name=name,
                type=graph.node_types.get(name, NodeType.UNKNOWN),
                depth=depth,
                schedule=pipeline.schedule if pipeline else None,
                cluster=pipeline.cluster if pipeline else None,
            )
        )
    impacted.sort(key=lambda n: (n.depth, n.name))

    by_depth: dict[int, list[ImpactedNode]] = {}
    for node in impacted:
        by_depth.setdefault(node.depth, []).append(node)

    result = BlastRadiusResult(
        source=target,
        source_type=NodeType.GROUP if is_group else graph.node_types[target],
        total_affected=len(impacted),
        max_depth=max((n.depth for n in impacted), default=0),
        downstream=impacted,
        by_depth=by_depth,
        edges=[ImpactEdge(source=s, target=t) for s, t in edges],
        group_members=list(sources) if is_group else None,
        group_size=len(sources) if is_group else None,
    )
    logger.debug("Blast radius of '%s': %d affected node(s)", target, result.total_affected)
    return result
