"""Synthetic pipeline configurations for performance benchmarking.

All generators are deterministic: same inputs always produce identical
configurations.  Pipelines are named with zero-padded indices
(``p_0000``, ``p_0001``, ...) and each writes one datasource
(``ds_0000``, ...) that its consumers read, so both the implicit producer
edges and the full pipeline + datasource graph are exercised.

Three topologies are provided, each stressing a different axis:

* **linear_chain**: maximum depth, minimum breadth.
* **wide_fanout**: maximum breadth, minimum depth.
* **diamond**: converging and diverging layers (many-to-many).

Every datasource also carries a small attribute schema whose columns derive
from the upstream datasource, so attribute lineage scales with the graph.
"""

from __future__ import annotations

import logging
import math

from lineage_engine.models.config import DatasourceNode, PipelineConfig, PipelineNode

logger = logging.getLogger(__name__)

_COLUMNS: tuple[str, ...] = ("id", "name", "created_at", "amount")


def _pipeline_name(idx: int) -> str:
    return f"p_{idx:04d}"


def _datasource_name(idx: int) -> str:
    return f"ds_{idx:04d}"


def _datasource(idx: int, upstream: list[int]) -> DatasourceNode:
    """Datasource written by pipeline *idx*, with columns derived from *upstream*."""
    attributes = [
        {"name": column, "from": [f"{_datasource_name(u)}::{column}" for u in upstream]} for column in _COLUMNS
    ]
    return DatasourceNode.model_validate({"name": _datasource_name(idx), "type": "table", "attributes": attributes})


def _config(edges: dict[int, list[int]], n: int) -> PipelineConfig:
    """Build a configuration where pipeline ``i`` reads the outputs of ``edges[i]``."""
    pipelines = [
        PipelineNode(
            name=_pipeline_name(i),
            input_sources=[_datasource_name(u) for u in edges.get(i, [])],
            output_sources=[_datasource_name(i)],
            schedule="0 * * * *",
            cluster=f"cluster_{i % 4}",
            links={"airflow": f"https://airflow.example.com/dags/dag_{i // 10:03d}"},
        )
        for i in range(n)
    ]
    datasources = [_datasource(i, edges.get(i, [])) for i in range(n)]
    return PipelineConfig(pipelines=pipelines, datasources=datasources)


class SyntheticConfigGenerator:
    """Generate synthetic configurations for benchmarking.

    All methods are static and deterministic.
    """

    @staticmethod
    def generate_linear_chain(n: int) -> PipelineConfig:
        """Generate a chain of *n* pipelines, each reading its predecessor's output.

        Parameters
        ----------
        n:
            Number of pipelines to generate (must be >= 1).
        """
        if n < 1:
            raise ValueError(f"n must be >= 1, got {n}")
        return _config({i: [i - 1] for i in range(1, n)}, n)

    @staticmethod
    def generate_wide_fanout(n: int, fanout: int = 10) -> PipelineConfig:
        """Generate a tree where every pipeline feeds *fanout* children.

        Parameters
        ----------
        n:
            Number of pipelines.
        fanout:
            Number of children per parent.
        """
        if n < 1:
            raise ValueError(f"n must be >= 1, got {n}")
        if fanout < 1:
            raise ValueError(f"fanout must be >= 1, got {fanout}")
        return _config({i: [(i - 1) // fanout] for i in range(1, n)}, n)

    @staticmethod
    def generate_diamond(n: int) -> PipelineConfig:
        """Generate a single root feeding square layers that read the whole previous layer.

        ``p_0000`` is the only root.  The remaining pipelines form layers of
        width ``ceil(sqrt(n - 1))``; the first layer reads the root and every
        later pipeline reads the whole previous layer, giving many-to-many
        fan-in and fan-out between consecutive layers.
        """
        if n < 1:
            raise ValueError(f"n must be >= 1, got {n}")

        width = max(1, math.isqrt(max(n - 2, 0)) + 1)
        edges: dict[int, list[int]] = {}
        for i in range(1, n):
            layer = (i - 1) // width
            if layer == 0:
                edges[i] = [0]
            else:
                layer_start = 1 + (layer - 1) * width
                edges[i] = list(range(layer_start, layer_start + width))
        logger.debug("Generated diamond configuration: %d pipelines, layer width %d", n, width)
        return _config(edges, n)
