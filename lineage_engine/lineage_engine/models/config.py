"""Configuration schema for pipelines, datasources, and nested attributes.

A configuration is a declarative snapshot of an organization's pipeline
catalog.  Models are frozen after validation: every engine function treats
the configuration as an immutable value and derives graphs from it on demand.

Attributes form a tree (a struct attribute owns child attributes) and are
modelled as a tagged variant.  Containment never implies data flow; lineage
edges come exclusively from the ``from`` references.
"""

from __future__ import annotations

from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Discriminator, Field, Tag, field_validator


def _as_name_list(value: Any) -> Any:
    """Accept ``None`` or a bare string where a list of names is expected."""
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    return value


# ---------------------------------------------------------------------------
# Attributes
# ---------------------------------------------------------------------------


class _AttributeBase(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    name: str = Field(..., min_length=1, description="Attribute (column) name.")
    from_: list[str] = Field(
        default_factory=list,
        alias="from",
        description="References of the form 'datasource::path::path' this attribute derives from.",
    )

    @field_validator("from_", mode="before")
    @classmethod
    def _normalize_from(cls, v: Any) -> Any:
        return _as_name_list(v)


class LeafAttribute(_AttributeBase):
    """An attribute without children."""

    kind: Literal["leaf"] = "leaf"


class StructAttribute(_AttributeBase):
    """An attribute that owns a non-empty list of child attributes."""

    kind: Literal["struct"] = "struct"
    attributes: list[Attribute] = Field(..., min_length=1)


def _attribute_kind(value: Any) -> str:
    if isinstance(value, dict):
        return "struct" if value.get("attributes") else "leaf"
    return getattr(value, "kind", "leaf")


Attribute = Annotated[
    Union[
        Annotated[LeafAttribute, Tag("leaf")],
        Annotated[StructAttribute, Tag("struct")],
    ],
    Discriminator(_attribute_kind),
]

StructAttribute.model_rebuild()


def child_attributes(attribute: LeafAttribute | StructAttribute) -> list[LeafAttribute | StructAttribute]:
    """Return the children of *attribute* (empty for leaves)."""
    if isinstance(attribute, StructAttribute):
        return list(attribute.attributes)
    return []


# ---------------------------------------------------------------------------
# Graph nodes
# ---------------------------------------------------------------------------


class PipelineNode(BaseModel):
    """A named data-processing job."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    name: str = Field(..., min_length=1, description="Unique pipeline name.")
    description: str | None = None
    input_sources: list[str] = Field(default_factory=list, description="Datasources this pipeline reads.")
    output_sources: list[str] = Field(default_factory=list, description="Datasources this pipeline writes.")
    upstream_pipelines: list[str] = Field(
        default_factory=list,
        description="Explicit upstream pipeline dependencies.",
    )
    schedule: str | None = None
    cluster: str | None = None
    group: str | None = Field(default=None, description="Group label; members collapse to one logical node.")
    tags: list[str] = Field(default_factory=list)
    links: dict[str, str] = Field(default_factory=dict)
    owner: str | None = None

    @field_validator("input_sources", "output_sources", "upstream_pipelines", "tags", mode="before")
    @classmethod
    def _normalize_lists(cls, v: Any) -> Any:
        return _as_name_list(v)


class DatasourceNode(BaseModel):
    """A named data store or stream, optionally with an attribute schema."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    name: str = Field(..., min_length=1, description="Unique datasource name.")
    type: str | None = None
    description: str | None = None
    cluster: str | None = None
    owner: str | None = None
    tags: list[str] = Field(default_factory=list)
    metadata: dict[str, Any] = Field(default_factory=dict)
    links: dict[str, str] = Field(default_factory=dict)
    attributes: list[Attribute] = Field(default_factory=list)

    @field_validator("tags", mode="before")
    @classmethod
    def _normalize_tags(cls, v: Any) -> Any:
        return _as_name_list(v)

    @field_validator("attributes", mode="before")
    @classmethod
    def _normalize_attributes(cls, v: Any) -> Any:
        return [] if v is None else v


class ClusterNode(BaseModel):
    """A visual cluster; clusters may nest through ``parent``."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    name: str = Field(..., min_length=1)
    description: str | None = None
    parent: str | None = None


class PipelineConfig(BaseModel):
    """A complete configuration snapshot."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    pipelines: list[PipelineNode] = Field(default_factory=list)
    datasources: list[DatasourceNode] = Field(default_factory=list)
    clusters: list[ClusterNode] = Field(default_factory=list)

    @field_validator("pipelines", "datasources", "clusters", mode="before")
    @classmethod
    def _normalize_sections(cls, v: Any) -> Any:
        return [] if v is None else v

    def pipeline_names(self) -> list[str]:
        """Pipeline names in configuration order."""
        return [p.name for p in self.pipelines]

    def get_pipeline(self, name: str) -> PipelineNode | None:
        for pipeline in self.pipelines:
            if pipeline.name == name:
                return pipeline
        return None
