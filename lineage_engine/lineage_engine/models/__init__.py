"""Domain models for the lineage engine."""

from lineage_engine.models.config import (
    Attribute,
    ClusterNode,
    DatasourceNode,
    LeafAttribute,
    PipelineConfig,
    PipelineNode,
    StructAttribute,
)
from lineage_engine.models.results import (
    AttributeProvenance,
    BlastRadiusResult,
    ConfigStats,
    ExecutionPlan,
    GroupProvenance,
    LineageRecord,
    LineageResult,
    NodeType,
    ValidationResult,
)

__all__ = [
    "Attribute",
    "AttributeProvenance",
    "BlastRadiusResult",
    "ClusterNode",
    "ConfigStats",
    "DatasourceNode",
    "ExecutionPlan",
    "GroupProvenance",
    "LeafAttribute",
    "LineageRecord",
    "LineageResult",
    "NodeType",
    "PipelineConfig",
    "PipelineNode",
    "StructAttribute",
    "ValidationResult",
]
