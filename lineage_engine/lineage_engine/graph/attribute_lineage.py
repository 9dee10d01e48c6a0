"""Attribute (column) level lineage across datasources.

Every attribute in a datasource's attribute tree receives a deterministic id
built from the sanitized datasource name and the ``__``-joined nested path::

    datasource "raw-events", attribute user -> id
    id == "raw_events__user__id"

Lineage edges come exclusively from ``from`` references of the form
``"datasource::path::path"``.  Nesting never implies data flow: a struct
attribute is not upstream of its children.

On top of the attribute graph the module derives a datasource roll-up where
datasource ``A`` is upstream of ``B`` whenever some attribute of ``B`` is
derived from an attribute of ``A``.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from types import MappingProxyType

from lineage_engine.graph.traversal import bfs
from lineage_engine.models.config import Attribute, PipelineConfig, child_attributes
from lineage_engine.models.results import AttributeProvenance, LineageRecord, ProvenanceEntry
from lineage_engine.telemetry.profiling import profile_operation

logger = logging.getLogger(__name__)

REFERENCE_SEPARATOR = "::"
ID_SEPARATOR = "__"

_DATASOURCE_UNSAFE = re.compile(r"[^a-zA-Z0-9]")
_PATH_UNSAFE = re.compile(r"[^a-zA-Z0-9_]")


# ---------------------------------------------------------------------------
# Identifiers and references
# ---------------------------------------------------------------------------


def sanitize_datasource(name: str) -> str:
    """Replace every character outside ``[A-Za-z0-9]`` with ``_``."""
    return _DATASOURCE_UNSAFE.sub("_", name)


def sanitize_path(path: str) -> str:
    """Replace every character outside ``[A-Za-z0-9_]`` with ``_``."""
    return _PATH_UNSAFE.sub("_", path)


def attribute_id(datasource: str, path: Sequence[str]) -> str:
    """Deterministic id of the attribute at *path* inside *datasource*."""
    return sanitize_datasource(datasource) + ID_SEPARATOR + sanitize_path(ID_SEPARATOR.join(path))


@dataclass(frozen=True)
class AttributeReference:
    """A parsed ``"datasource::path::path"`` reference."""

    datasource: str
    path: tuple[str, ...]
    id: str

    @property
    def datasource_id(self) -> str:
        return sanitize_datasource(self.datasource)


def parse_reference(reference: str) -> AttributeReference | None:
    """Parse an attribute reference.

    Returns ``None`` when the reference has fewer than two ``::``-separated
    parts, i.e. when it names no attribute inside a datasource.
    """
    parts = reference.split(REFERENCE_SEPARATOR)
    if len(parts) < 2:
        return None
    datasource, path = parts[0], tuple(parts[1:])
    return AttributeReference(datasource=datasource, path=path, id=attribute_id(datasource, path))


# ---------------------------------------------------------------------------
# Lineage map
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class AttributeNode:
    """One attribute with its direct and transitive lineage.

    ``upstream`` keeps references to attributes that do not exist; they are
    also listed in :attr:`AttributeLineage.unresolved_references`.
    """

    id: str
    name: str
    datasource: str
    full_name: str
    upstream: tuple[str, ...]
    downstream: tuple[str, ...]
    full_upstream: tuple[LineageRecord, ...]
    full_downstream: tuple[LineageRecord, ...]


@dataclass(frozen=True)
class DatasourceLineage:
    name: str
    upstream: tuple[LineageRecord, ...]
    downstream: tuple[LineageRecord, ...]


@dataclass(frozen=True)
class UnresolvedReference:
    """A ``from`` reference naming an attribute that is not declared."""

    attribute: str
    reference: str
    target_id: str


@dataclass(frozen=True)
class AttributeLineage:
    attribute_map: Mapping[str, AttributeNode]
    datasource_map: Mapping[str, DatasourceLineage]
    unresolved_references: tuple[UnresolvedReference, ...] = ()


@dataclass
class _AttributeRecord:
    name: str
    datasource: str
    full_name: str
    references: list[tuple[str, AttributeReference]]


def _flatten(
    attributes: Sequence[Attribute],
    datasource: str,
    prefix: tuple[str, ...],
    records: dict[str, _AttributeRecord],
) -> None:
    for attribute in attributes:
        path = prefix + (attribute.name,)
        attr_id = attribute_id(datasource, path)
        references: list[tuple[str, AttributeReference]] = []
        for raw in attribute.from_:
            parsed = parse_reference(raw)
            if parsed is None:
                logger.warning("Ignoring malformed reference '%s' on attribute '%s'", raw, attr_id)
                continue
            references.append((raw, parsed))

        if attr_id in records:
            logger.warning("Attribute id '%s' is declared more than once; keeping the first", attr_id)
        else:
            records[attr_id] = _AttributeRecord(
                name=attribute.name,
                datasource=datasource,
                full_name=REFERENCE_SEPARATOR.join((datasource,) + path),
                references=references,
            )
        _flatten(child_attributes(attribute), datasource, path, records)


@profile_operation("attribute_lineage.build")
def build_attribute_lineage_map(config: PipelineConfig) -> AttributeLineage:
    """Build the attribute graph and the datasource roll-up of *config*.

    Parameters
    ----------
    config:
        The configuration snapshot.

    Returns
    -------
    AttributeLineage
        ``attribute_map`` keyed by attribute id, ``datasource_map`` keyed by
        sanitized datasource name, and every unresolved reference.
    """
    records: dict[str, _AttributeRecord] = {}
    for datasource in config.datasources:
        _flatten(datasource.attributes, datasource.name, (), records)

    upstream: dict[str, dict[str, None]] = {attr_id: {} for attr_id in records}
    downstream: dict[str, dict[str, None]] = {attr_id: {} for attr_id in records}
    unresolved: list[UnresolvedReference] = []

    # datasource roll-up, keyed by sanitized datasource id
    datasource_ids = {sanitize_datasource(ds.name): ds.name for ds in config.datasources}
    ds_upstream: dict[str, dict[str, None]] = {ds_id: {} for ds_id in datasource_ids}
    ds_downstream: dict[str, dict[str, None]] = {ds_id: {} for ds_id in datasource_ids}

    for target_id, record in records.items():
        target_ds = sanitize_datasource(record.datasource)
        for raw, ref in record.references:
            upstream[target_id][ref.id] = None
            if ref.id in downstream:
                downstream[ref.id][target_id] = None
            else:
                unresolved.append(UnresolvedReference(attribute=target_id, reference=raw, target_id=ref.id))

            source_ds = ref.datasource_id
            if source_ds != target_ds:
                ds_upstream.setdefault(target_ds, {})[source_ds] = None
                ds_downstream.setdefault(source_ds, {})[target_ds] = None

    for item in unresolved:
        logger.warning("Attribute '%s' references unknown attribute '%s'", item.attribute, item.reference)

    def _up(attr_id: str) -> list[str]:
        return list(upstream.get(attr_id, ()))

    def _down(attr_id: str) -> list[str]:
        return list(downstream.get(attr_id, ()))

    attribute_map = {
        attr_id: AttributeNode(
            id=attr_id,
            name=record.name,
            datasource=record.datasource,
            full_name=record.full_name,
            upstream=tuple(upstream[attr_id]),
            downstream=tuple(downstream[attr_id]),
            full_upstream=tuple(bfs(attr_id, _up)),
            full_downstream=tuple(bfs(attr_id, _down)),
        )
        for attr_id, record in records.items()
    }

    datasource_map = {
        ds_id: DatasourceLineage(
            name=name,
            upstream=tuple(bfs(ds_id, lambda x: ds_upstream.get(x, ()))),
            downstream=tuple(bfs(ds_id, lambda x: ds_downstream.get(x, ()))),
        )
        for ds_id, name in datasource_ids.items()
    }

    logger.debug(
        "Attribute lineage: %d attribute(s), %d datasource(s), %d unresolved reference(s)",
        len(attribute_map),
        len(datasource_map),
        len(unresolved),
    )
    return AttributeLineage(
        attribute_map=MappingProxyType(attribute_map),
        datasource_map=MappingProxyType(datasource_map),
        unresolved_references=tuple(unresolved),
    )


# ---------------------------------------------------------------------------
# Provenance
# ---------------------------------------------------------------------------


def _entries(lineage: AttributeLineage, records: Sequence[LineageRecord], max_depth: int | None) -> list[ProvenanceEntry]:
    entries: list[ProvenanceEntry] = []
    for record in records:
        if max_depth is not None and record.depth > max_depth:
            continue
        node = lineage.attribute_map.get(record.id)
        entries.append(
            ProvenanceEntry(
                id=record.id,
                depth=record.depth,
                full_name=node.full_name if node else None,
                datasource=node.datasource if node else None,
            )
        )
    return entries


def attribute_provenance(
    lineage: AttributeLineage,
    attr_id: str,
    max_depth: int | None = None,
) -> AttributeProvenance | None:
    """Transitive upstream and downstream attributes of *attr_id*.

    Parameters
    ----------
    lineage:
        A map built by :func:`build_attribute_lineage_map`.
    attr_id:
        The attribute id (e.g. ``"raw_events__user__id"``).
    max_depth:
        When set, entries deeper than this are omitted.

    Returns
    -------
    AttributeProvenance | None
        ``None`` when *attr_id* is not a declared attribute.
    """
    node = lineage.attribute_map.get(attr_id)
    if node is None:
        return None
    return AttributeProvenance(
        attribute=node.id,
        name=node.name,
        full_name=node.full_name,
        datasource=node.datasource,
        upstream=_entries(lineage, node.full_upstream, max_depth),
        downstream=_entries(lineage, node.full_downstream, max_depth),
    )


def resolve_attribute(lineage: AttributeLineage, name: str) -> str | None:
    """Accept either an attribute id or a ``"ds::path"`` full name."""
    if name in lineage.attribute_map:
        return name
    ref = parse_reference(name)
    if ref is not None and ref.id in lineage.attribute_map:
        return ref.id
    return None
