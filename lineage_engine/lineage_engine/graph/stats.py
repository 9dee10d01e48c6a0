"""Catalog health statistics for a configuration snapshot."""

from __future__ import annotations

import logging
from collections import Counter

from lineage_engine.graph.cycles import detect_cycles
from lineage_engine.models.config import PipelineConfig
from lineage_engine.models.results import ConfigCounts, ConfigStats, Coverage, HubNode, NodeType

logger = logging.getLogger(__name__)

UNCLUSTERED = "unclustered"
UNKNOWN_TYPE = "unknown"


def _hubs(config: PipelineConfig, limit: int) -> list[HubNode]:
    """Most connected nodes; grouped pipelines count as their group."""
    upstream: Counter[str] = Counter()
    downstream: Counter[str] = Counter()

    for pipeline in config.pipelines:
        node = pipeline.group or pipeline.name
        for source in pipeline.input_sources:
            downstream[source] += 1
            upstream[node] += 1
        for output in pipeline.output_sources:
            downstream[node] += 1
            upstream[output] += 1
        for dep in pipeline.upstream_pipelines:
            downstream[dep] += 1
            upstream[node] += 1

    groups = {p.group for p in config.pipelines if p.group}
    pipeline_names = set(config.pipeline_names())

    hubs: list[HubNode] = []
    for name in set(upstream) | set(downstream):
        if name in groups:
            node_type = NodeType.GROUP
        elif name in pipeline_names:
            node_type = NodeType.PIPELINE
        else:
            node_type = NodeType.DATASOURCE
        hubs.append(
            HubNode(
                name=name,
                type=node_type,
                upstream=upstream[name],
                downstream=downstream[name],
                total=upstream[name] + downstream[name],
            )
        )

    hubs.sort(key=lambda h: (-h.total, h.name))
    return hubs[:limit]


def compute_config_stats(config: PipelineConfig, *, hub_limit: int = 8) -> ConfigStats:
    """Summarize *config*: counts, cycles, hubs, orphans, coverage, distributions.

    Parameters
    ----------
    config:
        The configuration snapshot.
    hub_limit:
        Maximum number of hub nodes to report.

    Returns
    -------
    ConfigStats
        The computed statistics.
    """
    pipelines = config.pipelines
    datasources = config.datasources

    referenced = {s for p in pipelines for s in (*p.input_sources, *p.output_sources)}
    orphaned = [ds.name for ds in datasources if ds.name not in referenced]

    cluster_distribution = Counter(p.cluster or UNCLUSTERED for p in pipelines)
    type_distribution = Counter(ds.type or UNKNOWN_TYPE for ds in datasources)

    schedule_missing = [p.name for p in pipelines if not p.schedule]
    airflow_missing = [p.name for p in pipelines if not p.links.get("airflow")]

    stats = ConfigStats(
        counts=ConfigCounts(
            pipelines=len(pipelines),
            datasources=len(datasources),
            clusters=len([c for c in cluster_distribution if c != UNCLUSTERED]),
        ),
        cycles=detect_cycles(pipelines),
        hubs=_hubs(config, hub_limit),
        orphaned=orphaned,
        schedule_coverage=Coverage(
            covered=len(pipelines) - len(schedule_missing),
            total=len(pipelines),
            missing=schedule_missing,
        ),
        airflow_coverage=Coverage(
            covered=len(pipelines) - len(airflow_missing),
            total=len(pipelines),
            missing=airflow_missing,
        ),
        cluster_distribution=dict(cluster_distribution.most_common()),
        type_distribution=dict(type_distribution.most_common()),
    )
    logger.debug("Computed stats for %d pipeline(s)", len(pipelines))
    return stats
