"""Adjacency construction, traversal, cycles, groups, and attribute lineage."""

from lineage_engine.graph.adjacency import (
    AdjacencyGraph,
    build_adjacency,
    downstream_of,
    full_adjacency,
    full_graph_lineage,
    lineage,
    pipeline_adjacency,
    upstream_of,
)
from lineage_engine.graph.attribute_lineage import (
    AttributeLineage,
    attribute_provenance,
    build_attribute_lineage_map,
    parse_reference,
)
from lineage_engine.graph.cycles import detect_cycles
from lineage_engine.graph.groups import (
    GroupData,
    all_groups,
    build_group_data,
    build_grouped_adjacency,
    group_provenance,
)
from lineage_engine.graph.stats import compute_config_stats
from lineage_engine.graph.traversal import bfs, reachable

__all__ = [
    # Adjacency
    "AdjacencyGraph",
    "build_adjacency",
    "downstream_of",
    "full_adjacency",
    "full_graph_lineage",
    "lineage",
    "pipeline_adjacency",
    "upstream_of",
    # Traversal
    "bfs",
    "reachable",
    # Cycles
    "detect_cycles",
    # Groups
    "GroupData",
    "all_groups",
    "build_group_data",
    "build_grouped_adjacency",
    "group_provenance",
    # Attribute lineage
    "AttributeLineage",
    "attribute_provenance",
    "build_attribute_lineage_map",
    "parse_reference",
    # Statistics
    "compute_config_stats",
]
