"""Backfill planning by topological layering.

Given a selection of pipelines to re-run, the planner computes the affected
set (the selection plus everything transitively downstream of it) and
partitions it into *waves*: every pipeline in wave ``i`` depends only on
pipelines in earlier waves, so the members of a wave may run concurrently.

Waves are produced with Kahn's algorithm.  Each wave is sorted
lexicographically so that identical configurations always yield identical
plans.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence

import networkx as nx

from lineage_engine.errors import CyclicDependencyError, InvalidSelectionError
from lineage_engine.graph.adjacency import AdjacencyGraph, pipeline_adjacency
from lineage_engine.graph.traversal import reachable
from lineage_engine.models.config import PipelineConfig
from lineage_engine.models.results import ExecutionPlan, ExecutionWave, PlanEdge, WavePipeline
from lineage_engine.telemetry.profiling import profile_operation

logger = logging.getLogger(__name__)


def kahn_waves(nodes: Iterable[str], edges: Iterable[tuple[str, str]]) -> list[list[str]] | None:
    """Layer *nodes* into waves of zero in-degree.

    Parameters
    ----------
    nodes:
        The node set to schedule.
    edges:
        ``(source, target)`` pairs; ``source`` must run before ``target``.
        Edges touching nodes outside *nodes* are ignored.

    Returns
    -------
    list[list[str]] | None
        Sorted waves whose union is *nodes*, or ``None`` when the nodes
        cannot all be scheduled because of a cycle.
    """
    node_set = set(nodes)
    in_degree: dict[str, int] = {n: 0 for n in node_set}
    successors: dict[str, set[str]] = {n: set() for n in node_set}

    for source, target in edges:
        if source not in node_set or target not in node_set or target in successors[source]:
            continue
        successors[source].add(target)
        in_degree[target] += 1

    waves: list[list[str]] = []
    current = sorted(n for n, d in in_degree.items() if d == 0)
    scheduled = 0

    while current:
        waves.append(current)
        scheduled += len(current)
        ready: list[str] = []
        for node in current:
            for successor in successors[node]:
                in_degree[successor] -= 1
                if in_degree[successor] == 0:
                    ready.append(successor)
        current = sorted(ready)

    if scheduled != len(node_set):
        return None
    return waves


def _validate_selection(config: PipelineConfig, selected: Sequence[str]) -> None:
    known = set(config.pipeline_names())
    invalid = [name for name in selected if name not in known]
    if invalid:
        raise InvalidSelectionError(invalid)


def _affected_subgraph(graph: AdjacencyGraph, selected: Sequence[str]) -> nx.DiGraph:
    affected: set[str] = set(selected)
    for name in selected:
        affected |= reachable(name, graph.downstream_neighbors)
    return graph.to_digraph().subgraph(affected).copy()


def _wave_details(config: PipelineConfig, waves: list[list[str]]) -> list[ExecutionWave]:
    details: list[ExecutionWave] = []
    for index, wave in enumerate(waves):
        members: list[WavePipeline] = []
        for name in wave:
            pipeline = config.get_pipeline(name)
            members.append(
                WavePipeline(
                    name=name,
                    schedule=pipeline.schedule if pipeline else None,
                    owner=pipeline.owner if pipeline else None,
                    cluster=pipeline.cluster if pipeline else None,
                )
            )
        details.append(ExecutionWave(wave=index, parallel_count=len(wave), pipelines=members))
    return details


@profile_operation("waves.compute")
def compute_execution_waves(
    config: PipelineConfig,
    selected: Sequence[str],
    *,
    graph: AdjacencyGraph | None = None,
) -> ExecutionPlan | None:
    """Compute the backfill plan for *selected*.

    Parameters
    ----------
    config:
        The configuration snapshot.
    selected:
        Pipeline names to backfill.
    graph:
        A prebuilt pipeline-only adjacency graph of *config*.

    Returns
    -------
    ExecutionPlan | None
        ``None`` when the selection is empty or the affected subgraph
        contains a cycle.

    Raises
    ------
    InvalidSelectionError
        If any selected name is not a pipeline.
    """
    selected = list(dict.fromkeys(selected))
    if not selected:
        return None
    _validate_selection(config, selected)

    graph = graph if graph is not None else pipeline_adjacency(config)
    subgraph = _affected_subgraph(graph, selected)
    edges = sorted(subgraph.edges())

    waves = kahn_waves(subgraph.nodes, edges)
    if waves is None:
        logger.info("Cannot plan backfill for %s: dependency cycle in affected pipelines", ", ".join(selected))
        return None

    plan = ExecutionPlan(
        selected=selected,
        waves=waves,
        edges=[PlanEdge(source=s, target=t) for s, t in edges],
        node_count=subgraph.number_of_nodes(),
        wave_details=_wave_details(config, waves),
    )
    logger.debug(
        "Planned backfill of %d pipeline(s) in %d wave(s), max parallelism %d",
        plan.node_count,
        plan.total_waves,
        plan.max_parallelism,
    )
    return plan


def plan_backfill(
    config: PipelineConfig,
    selected: Sequence[str],
    *,
    graph: AdjacencyGraph | None = None,
) -> ExecutionPlan:
    """Like :func:`compute_execution_waves`, but every failure raises.

    Raises
    ------
    InvalidSelectionError
        If the selection is empty or names something that is not a pipeline.
    CyclicDependencyError
        If the affected pipelines contain a dependency cycle.
    """
    if not selected:
        raise InvalidSelectionError([], "No pipelines selected for backfill.")

    plan = compute_execution_waves(config, selected, graph=graph)
    if plan is None:
        graph = graph if graph is not None else pipeline_adjacency(config)
        subgraph = _affected_subgraph(graph, list(dict.fromkeys(selected)))
        raise CyclicDependencyError(list(nx.simple_cycles(subgraph)))
    return plan
