"""Breadth-first traversal shared by every lineage query.

Adjacency is passed in as a callable so the same primitive walks pipeline
graphs, the full pipeline + datasource graph, attribute graphs, and
datasource roll-ups alike.
"""

from __future__ import annotations

from collections import deque
from collections.abc import Callable, Iterable

from lineage_engine.models.results import LineageRecord

NeighborFn = Callable[[str], Iterable[str]]


def bfs(start: str, neighbors: NeighborFn, *, max_depth: int | None = None) -> list[LineageRecord]:
    """Return every node reachable from *start* with its hop distance.

    The visited set is seeded with *start*, so the start node never appears
    in the output, not even when a cycle leads back to it.  Each node is
    reported once, at the depth it was first discovered; FIFO order makes
    that its minimum distance.  Neighbors are visited in sorted order so
    that nodes at equal depth come out in a deterministic sequence.

    Parameters
    ----------
    start:
        The node to traverse from.
    neighbors:
        Returns the direct neighbors of a node (upstream or downstream,
        depending on the direction being walked).  Unknown nodes should
        yield nothing.
    max_depth:
        When set, nodes deeper than this are neither reported nor expanded.

    Returns
    -------
    list[LineageRecord]
        Records in non-decreasing depth order.
    """
    visited: set[str] = {start}
    queue: deque[tuple[str, int]] = deque([(start, 0)])
    result: list[LineageRecord] = []

    while queue:
        current, depth = queue.popleft()
        if max_depth is not None and depth >= max_depth:
            continue
        for neighbor in sorted(neighbors(current)):
            if neighbor in visited:
                continue
            visited.add(neighbor)
            result.append(LineageRecord(id=neighbor, depth=depth + 1))
            queue.append((neighbor, depth + 1))

    return result


def reachable(start: str, neighbors: NeighborFn) -> set[str]:
    """Return the ids reachable from *start*, excluding *start* itself."""
    return {record.id for record in bfs(start, neighbors)}
