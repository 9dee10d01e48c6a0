"""Cycle detection over explicit pipeline dependencies.

Only the ``upstream_pipelines`` relation is considered.  Pipelines sharing a
``group`` label collapse into a single supernode named after the group:
upstream references to a member resolve to its group, and dependencies
between two members of the same group are ignored.

The search reports at most one cycle per connected region, in scan order.
After a cycle is found the visited bookkeeping is reset and only the nodes of
that cycle stay marked, so the scan moves on to other regions of the graph.
It is a health check, not an exhaustive enumeration; use
``networkx.simple_cycles`` when every elementary cycle is needed.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator, Sequence

from lineage_engine.models.config import PipelineNode

logger = logging.getLogger(__name__)


class _InternedGraph:
    """Supernodes interned to integer handles with index-based adjacency."""

    def __init__(self, pipelines: Sequence[PipelineNode]) -> None:
        self.names: list[str] = []
        self.index: dict[str, int] = {}
        member_group = {p.name: p.group for p in pipelines if p.group}

        for pipeline in pipelines:
            self._intern(pipeline.group or pipeline.name)

        # dict keys keep insertion order and deduplicate
        self.successors: list[dict[int, None]] = [{} for _ in self.names]
        for pipeline in pipelines:
            target = self.index[pipeline.group or pipeline.name]
            for upstream in pipeline.upstream_pipelines:
                source_name = member_group.get(upstream, upstream)
                source = self.index.get(source_name)
                if source is None:
                    continue
                if pipeline.group and source_name == pipeline.group:
                    continue
                self.successors[source][target] = None

    def _intern(self, name: str) -> int:
        handle = self.index.get(name)
        if handle is None:
            handle = self.index[name] = len(self.names)
            self.names.append(name)
        return handle

    def __len__(self) -> int:
        return len(self.names)


def _find_cycle(graph: _InternedGraph, root: int, visited: list[bool], on_path: list[bool]) -> list[int] | None:
    """Depth-first search from *root* using an explicit stack.

    Returns the first closed cycle found (``[a, b, c, a]``) or ``None``.
    """
    path: list[int] = [root]
    visited[root] = on_path[root] = True
    stack: list[Iterator[int]] = [iter(graph.successors[root])]

    while stack:
        descended = False
        for neighbor in stack[-1]:
            if not visited[neighbor]:
                visited[neighbor] = on_path[neighbor] = True
                path.append(neighbor)
                stack.append(iter(graph.successors[neighbor]))
                descended = True
                break
            if on_path[neighbor]:
                start = path.index(neighbor)
                return path[start:] + [neighbor]
        if not descended:
            stack.pop()
            on_path[path.pop()] = False

    return None


def detect_cycles(pipelines: Sequence[PipelineNode]) -> list[list[str]]:
    """Find dependency cycles among *pipelines*.

    Parameters
    ----------
    pipelines:
        Pipeline definitions, in configuration order.

    Returns
    -------
    list[list[str]]
        Closed cycles, each starting and ending with the same supernode
        (pipeline or group name).  Empty when the graph is acyclic.
    """
    graph = _InternedGraph(pipelines)
    size = len(graph)
    visited = [False] * size
    on_path = [False] * size
    cycles: list[list[str]] = []

    for root in range(size):
        if visited[root]:
            continue
        cycle = _find_cycle(graph, root, visited, on_path)
        if cycle is None:
            continue
        cycles.append([graph.names[i] for i in cycle])
        visited[:] = [False] * size
        on_path[:] = [False] * size
        for handle in cycle:
            visited[handle] = True

    if cycles:
        logger.info("Detected %d dependency cycle(s)", len(cycles))
    return cycles
