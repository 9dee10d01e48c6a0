"""Query result models returned by the lineage engine.

Traversal records are small frozen dataclasses because they are produced in
bulk by every BFS.  Results handed to presentation layers are pydantic models
so they serialise to JSON with ``model_dump(mode="json")``.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from pydantic import BaseModel, Field

# ---------------------------------------------------------------------------
# Traversal records
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class LineageRecord:
    """A node reached by BFS; ``depth == 1`` means a direct neighbor."""

    id: str
    depth: int


class NodeType(str, Enum):
    """Classification of a node in the full pipeline + datasource graph."""

    PIPELINE = "pipeline"
    DATASOURCE = "datasource"
    GROUP = "group"
    UNKNOWN = "unknown"


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------


class ValidationResult(BaseModel):
    """Outcome of structural configuration validation."""

    valid: bool
    errors: list[str] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Node lineage
# ---------------------------------------------------------------------------


class LineageResult(BaseModel):
    """Upstream and downstream lineage of a single node."""

    node: str
    upstream: list[LineageRecord] = Field(default_factory=list)
    downstream: list[LineageRecord] = Field(default_factory=list)

    def upstream_names(self) -> set[str]:
        return {r.id for r in self.upstream}

    def downstream_names(self) -> set[str]:
        return {r.id for r in self.downstream}


# ---------------------------------------------------------------------------
# Backfill planning
# ---------------------------------------------------------------------------


class PlanEdge(BaseModel):
    """A dependency edge inside the affected subgraph of a backfill."""

    source: str
    target: str


class WavePipeline(BaseModel):
    """A pipeline scheduled in a wave, with the metadata operators need."""

    name: str
    schedule: str | None = None
    owner: str | None = None
    cluster: str | None = None


class ExecutionWave(BaseModel):
    """One stage of a backfill; members may run concurrently."""

    wave: int = Field(..., ge=0)
    parallel_count: int = Field(..., ge=0)
    pipelines: list[WavePipeline] = Field(default_factory=list)


class ExecutionPlan(BaseModel):
    """Topologically layered backfill plan for a selection of pipelines.

    ``waves`` is ordered; waves are pairwise disjoint and their union is the
    affected set (the selection plus everything downstream of it).
    """

    selected: list[str] = Field(default_factory=list)
    waves: list[list[str]] = Field(default_factory=list)
    edges: list[PlanEdge] = Field(default_factory=list)
    node_count: int = Field(default=0, ge=0)
    wave_details: list[ExecutionWave] = Field(default_factory=list)

    @property
    def total_waves(self) -> int:
        return len(self.waves)

    @property
    def max_parallelism(self) -> int:
        return max((len(w) for w in self.waves), default=0)

    def wave_index(self) -> dict[str, int]:
        """Map every scheduled pipeline to the index of its wave."""
        return {name: idx for idx, wave in enumerate(self.waves) for name in wave}


class AirflowDagRun(BaseModel):
    """Pipelines of one wave that share an Airflow DAG."""

    dag: str
    airflow_url: str
    pipelines: list[str] = Field(default_factory=list)


class AirflowWave(BaseModel):
    wave: int
    parallel_count: int
    dags: list[AirflowDagRun] = Field(default_factory=list)


class AirflowEdge(BaseModel):
    source_dag: str
    target_dag: str


class AirflowPlan(BaseModel):
    """A backfill plan projected onto Airflow DAGs."""

    total_dags: int = 0
    total_waves: int = 0
    waves: list[AirflowWave] = Field(default_factory=list)
    edges: list[AirflowEdge] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Blast radius
# ---------------------------------------------------------------------------


class ImpactedNode(BaseModel):
    """A node downstream of a blast-radius source."""

    name: str
    type: NodeType
    depth: int = Field(..., ge=1)
    schedule: str | None = None
    cluster: str | None = None


class ImpactEdge(BaseModel):
    source: str
    target: str


class BlastRadiusResult(BaseModel):
    """Downstream impact of changing a node or a whole group."""

    source: str
    source_type: NodeType
    total_affected: int = 0
    max_depth: int = 0
    downstream: list[ImpactedNode] = Field(default_factory=list)
    by_depth: dict[int, list[ImpactedNode]] = Field(default_factory=dict)
    edges: list[ImpactEdge] = Field(default_factory=list)
    group_members: list[str] | None = None
    group_size: int | None = None


# ---------------------------------------------------------------------------
# Attribute provenance
# ---------------------------------------------------------------------------


class ProvenanceEntry(BaseModel):
    """An attribute reached while tracing provenance."""

    id: str
    depth: int = Field(..., ge=1)
    full_name: str | None = Field(default=None, description="None for unresolved references.")
    datasource: str | None = None


class AttributeProvenance(BaseModel):
    """Full upstream/downstream record for one attribute."""

    attribute: str
    name: str
    full_name: str
    datasource: str
    upstream: list[ProvenanceEntry] = Field(default_factory=list)
    downstream: list[ProvenanceEntry] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Groups
# ---------------------------------------------------------------------------


class GroupProvenance(BaseModel):
    """External upstream/downstream footprint of a pipeline group."""

    group: str
    members: list[str] = Field(default_factory=list)
    upstream: list[LineageRecord] = Field(default_factory=list)
    downstream: list[LineageRecord] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Statistics
# ---------------------------------------------------------------------------


class HubNode(BaseModel):
    name: str
    type: NodeType
    upstream: int = 0
    downstream: int = 0
    total: int = 0


class Coverage(BaseModel):
    covered: int = 0
    total: int = 0
    missing: list[str] = Field(default_factory=list)


class ConfigCounts(BaseModel):
    pipelines: int = 0
    datasources: int = 0
    clusters: int = 0


class ConfigStats(BaseModel):
    """Catalog-wide health statistics."""

    counts: ConfigCounts = Field(default_factory=ConfigCounts)
    cycles: list[list[str]] = Field(default_factory=list)
    hubs: list[HubNode] = Field(default_factory=list)
    orphaned: list[str] = Field(default_factory=list)
    schedule_coverage: Coverage = Field(default_factory=Coverage)
    airflow_coverage: Coverage = Field(default_factory=Coverage)
    cluster_distribution: dict[str, int] = Field(default_factory=dict)
    type_distribution: dict[str, int] = Field(default_factory=dict)


# ---------------------------------------------------------------------------
# Profiling
# ---------------------------------------------------------------------------


class OperationTimings(BaseModel):
    """Aggregated wall-clock timings of one profiled engine operation."""

    operation: str
    calls: int
    total_ms: float
    mean_ms: float
    p50_ms: float
    p95_ms: float
    max_ms: float
