"""Downstream impact simulation."""

from lineage_engine.simulation.blast_radius import BlastGraph, blast_radius_for_node, build_blast_graph

__all__ = [
    "BlastGraph",
    "blast_radius_for_node",
    "build_blast_graph",
]
