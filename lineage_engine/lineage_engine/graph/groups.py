"""Pipeline groups: aggregation, provenance, and the collapsed graph view.

Pipelines that share a ``group`` label are presented as one logical node.
A group is derived from the configuration on demand and never stored.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from types import MappingProxyType

from lineage_engine.graph.adjacency import AdjacencyAccumulator, AdjacencyGraph, full_adjacency, pipeline_adjacency
from lineage_engine.graph.traversal import bfs
from lineage_engine.models.config import PipelineConfig, PipelineNode
from lineage_engine.models.results import GroupProvenance, LineageRecord

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GroupInfo:
    """Aggregate view of one group.

    Attributes
    ----------
    members:
        Member pipeline names in configuration order.
    external_inputs:
        Datasources read by a member and written by no member.
    external_outputs:
        Every datasource written by any member.
    upstream_pipelines:
        Explicit dependencies of members on pipelines outside the group.
    downstream_pipelines:
        Non-member pipelines that read any datasource the group writes.
    cluster:
        Cluster of the first member.
    """

    name: str
    members: tuple[str, ...]
    external_inputs: tuple[str, ...]
    external_outputs: tuple[str, ...]
    upstream_pipelines: tuple[str, ...]
    downstream_pipelines: tuple[str, ...]
    cluster: str | None


@dataclass(frozen=True)
class GroupData:
    groups: Mapping[str, GroupInfo]
    pipeline_to_group: Mapping[str, str]


def _ordered_unique(values: Iterable[str]) -> tuple[str, ...]:
    return tuple(dict.fromkeys(values))


def all_groups(config: PipelineConfig) -> list[str]:
    """Group labels in order of first appearance."""
    return list(_ordered_unique(p.group for p in config.pipelines if p.group))


def build_group_data(config: PipelineConfig) -> GroupData:
    """Aggregate every group in *config*.

    Parameters
    ----------
    config:
        The configuration snapshot.

    Returns
    -------
    GroupData
        ``groups`` keyed by label and the reverse ``pipeline_to_group`` map.
    """
    members_by_group: dict[str, list[PipelineNode]] = {}
    for pipeline in config.pipelines:
        if pipeline.group:
            members_by_group.setdefault(pipeline.group, []).append(pipeline)

    groups: dict[str, GroupInfo] = {}
    pipeline_to_group: dict[str, str] = {}

    for name, members in members_by_group.items():
        member_names = {m.name for m in members}
        produced = {out for m in members for out in m.output_sources}
        external_outputs = _ordered_unique(out for m in members for out in m.output_sources)
        external_inputs = _ordered_unique(src for m in members for src in m.input_sources if src not in produced)
        upstream = _ordered_unique(up for m in members for up in m.upstream_pipelines if up not in member_names)
        downstream = _ordered_unique(
            p.name
            for p in config.pipelines
            if p.name not in member_names and any(src in produced for src in p.input_sources)
        )

        groups[name] = GroupInfo(
            name=name,
            members=tuple(m.name for m in members),
            external_inputs=external_inputs,
            external_outputs=external_outputs,
            upstream_pipelines=upstream,
            downstream_pipelines=downstream,
            cluster=members[0].cluster,
        )
        for member in members:
            pipeline_to_group[member.name] = name

    return GroupData(groups=MappingProxyType(groups), pipeline_to_group=MappingProxyType(pipeline_to_group))


def _merge_min_depth(records_per_member: Iterable[list[LineageRecord]], exclude: set[str]) -> list[LineageRecord]:
    best: dict[str, int] = {}
    for records in records_per_member:
        for record in records:
            if record.id in exclude:
                continue
            if record.id not in best or record.depth < best[record.id]:
                best[record.id] = record.depth
    return [LineageRecord(id=n, depth=d) for n, d in sorted(best.items(), key=lambda item: (item[1], item[0]))]


def group_provenance(
    config: PipelineConfig,
    group_name: str,
    *,
    max_depth: int | None = None,
    graph: AdjacencyGraph | None = None,
) -> GroupProvenance | None:
    """External upstream and downstream lineage of a group.

    Every member is traversed over the full pipeline + datasource graph.
    Members themselves are removed from the result, and a node reached from
    several members keeps its smallest depth.

    Parameters
    ----------
    config:
        The configuration snapshot.
    group_name:
        The group label.
    max_depth:
        Optional hop limit per member.
    graph:
        A prebuilt full adjacency graph of *config*, to avoid rebuilding it.

    Returns
    -------
    GroupProvenance | None
        ``None`` when no pipeline carries *group_name*.
    """
    members = [p.name for p in config.pipelines if p.group == group_name]
    if not members:
        return None

    graph = graph if graph is not None else full_adjacency(config)
    exclude = set(members)
    upstream = _merge_min_depth((bfs(m, graph.upstream_neighbors, max_depth=max_depth) for m in members), exclude)
    downstream = _merge_min_depth((bfs(m, graph.downstream_neighbors, max_depth=max_depth) for m in members), exclude)
    return GroupProvenance(group=group_name, members=members, upstream=upstream, downstream=downstream)


def build_grouped_adjacency(config: PipelineConfig, *, expanded_groups: Iterable[str] = ()) -> AdjacencyGraph:
    """Pipeline-only adjacency with collapsed groups replaced by their label.

    Members of a group not listed in *expanded_groups* are merged into a
    node named after the group.  Edges between two members of the same
    collapsed group disappear; edges crossing the group boundary are
    redirected to or from the group node.
    """
    expanded = set(expanded_groups)
    collapsed = {p.name: p.group for p in config.pipelines if p.group and p.group not in expanded}

    base = pipeline_adjacency(config)
    acc = AdjacencyAccumulator()
    for node in base.nodes:
        acc.add_node(collapsed.get(node, node))
    for source, target in base.edges():
        mapped_source = collapsed.get(source, source)
        mapped_target = collapsed.get(target, target)
        if mapped_source == mapped_target and source in collapsed:
            continue
        acc.add_edge(mapped_source, mapped_target)

    logger.debug("Grouped view collapsed %d pipeline(s)", len(collapsed))
    return acc.freeze()
