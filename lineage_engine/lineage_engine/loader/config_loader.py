"""Load and validate pipeline configurations.

A configuration is a JSON or YAML document with a ``pipelines`` list, an
optional ``datasources`` list and an optional ``clusters`` list.  Structural
validation runs on the raw mapping *before* model parsing so that every
problem is reported at once with a readable message, instead of failing on
the first pydantic error.

Typical usage::

    config = load_config(Path("pipelines.yaml"))
"""

from __future__ import annotations

import hashlib
import json
import logging
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from lineage_engine.errors import ConfigLoadError, ConfigValidationError
from lineage_engine.models.config import PipelineConfig
from lineage_engine.models.results import ValidationResult

logger = logging.getLogger(__name__)

# Pipeline fields whose values must be lists of names when present.
_PIPELINE_LIST_FIELDS: tuple[str, ...] = ("input_sources", "output_sources", "upstream_pipelines", "tags")

_JSON_SUFFIXES: frozenset[str] = frozenset({".json"})
_YAML_SUFFIXES: frozenset[str] = frozenset({".yaml", ".yml"})


# ---------------------------------------------------------------------------
# Structural validation
# ---------------------------------------------------------------------------


def _named_entries(
    entries: list[Any],
    kind: str,
    errors: list[str],
) -> list[tuple[str, Mapping[str, Any]]]:
    """Check the ``name`` of every entry; return the well-formed ones."""
    named: list[tuple[str, Mapping[str, Any]]] = []
    seen: set[str] = set()
    for index, entry in enumerate(entries):
        if not isinstance(entry, Mapping):
            errors.append(f"{kind} at index {index} must be a mapping, got {type(entry).__name__}")
            continue
        name = entry.get("name")
        if not isinstance(name, str) or not name.strip():
            errors.append(f"{kind} missing name (index {index})")
            continue
        if name in seen:
            errors.append(f"duplicate {kind} name '{name}'")
            continue
        seen.add(name)
        named.append((name, entry))
    return named


def _check_structure(raw: Any) -> ValidationResult:
    """Structural checks on the raw mapping, reporting every problem at once."""
    errors: list[str] = []
    warnings: list[str] = []

    if raw is None:
        return ValidationResult(valid=False, errors=["config is absent"])
    if not isinstance(raw, Mapping):
        return ValidationResult(valid=False, errors=[f"config must be a mapping, got {type(raw).__name__}"])

    pipelines = raw.get("pipelines")
    pipeline_entries: list[tuple[str, Mapping[str, Any]]] = []
    if pipelines is None or (isinstance(pipelines, list) and not pipelines):
        errors.append("no pipelines defined")
    elif not isinstance(pipelines, list):
        errors.append(f"'pipelines' must be a list, got {type(pipelines).__name__}")
    else:
        pipeline_entries = _named_entries(pipelines, "pipeline", errors)

    for name, entry in pipeline_entries:
        for field in _PIPELINE_LIST_FIELDS:
            value = entry.get(field)
            if value is not None and not isinstance(value, list):
                errors.append(f"pipeline '{name}': '{field}' must be a list, got {type(value).__name__}")
        links = entry.get("links")
        if links is not None and not isinstance(links, Mapping):
            errors.append(f"pipeline '{name}': 'links' must be a mapping, got {type(links).__name__}")

    datasource_entries: list[tuple[str, Mapping[str, Any]]] = []
    datasources = raw.get("datasources")
    if datasources is not None:
        if not isinstance(datasources, list):
            errors.append(f"'datasources' must be a list, got {type(datasources).__name__}")
        else:
            datasource_entries = _named_entries(datasources, "datasource", errors)

    for name, entry in datasource_entries:
        attributes = entry.get("attributes")
        if attributes is not None and not isinstance(attributes, list):
            errors.append(f"datasource '{name}': 'attributes' must be a list, got {type(attributes).__name__}")

    clusters = raw.get("clusters")
    if clusters is not None and not isinstance(clusters, list):
        errors.append(f"'clusters' must be a list, got {type(clusters).__name__}")

    pipeline_names = {name for name, _ in pipeline_entries}
    datasource_names = {name for name, _ in datasource_entries}

    for name in sorted(pipeline_names & datasource_names):
        warnings.append(f"name '{name}' is used by both a pipeline and a datasource")

    for name, entry in pipeline_entries:
        upstream = entry.get("upstream_pipelines")
        if not isinstance(upstream, list):
            continue
        for dep in upstream:
            if dep not in pipeline_names:
                warnings.append(f"pipeline '{name}' depends on unknown pipeline '{dep}'")

    return ValidationResult(valid=not errors, errors=errors, warnings=warnings)


def _format_validation_error(error: Mapping[str, Any]) -> str:
    location = ".".join(str(part) for part in error.get("loc", ()))
    return f"{location}: {error.get('msg', 'invalid value')}" if location else str(error.get("msg"))


def _validate(raw: Any) -> tuple[ValidationResult, PipelineConfig | None]:
    """Run the structural checks, then the model stage when they pass."""
    result = _check_structure(raw)
    if not result.valid:
        return result, None
    try:
        config = PipelineConfig.model_validate(raw)
    except ValidationError as exc:
        errors = [_format_validation_error(e) for e in exc.errors()]
        return ValidationResult(valid=False, errors=errors, warnings=result.warnings), None
    return result, config


def validate_config(raw: Any) -> ValidationResult:
    """Check a raw configuration mapping.

    Never raises: every problem is reported in the returned result.  Field
    types are checked by the configuration model once the structure is
    sound, so a ``valid`` result always parses.

    Parameters
    ----------
    raw:
        The decoded JSON/YAML document.

    Returns
    -------
    ValidationResult
        ``valid`` is false when any error was found.  Warnings (name
        collisions, dependencies on unknown pipelines) do not affect
        validity.
    """
    result, _ = _validate(raw)
    return result


# ---------------------------------------------------------------------------
# Parsing and loading
# ---------------------------------------------------------------------------


def parse_config(raw: Any) -> PipelineConfig:
    """Validate *raw* and build the configuration model.

    Raises
    ------
    ConfigValidationError
        If structural validation or model validation fails.
    """
    result, config = _validate(raw)
    if config is None:
        raise ConfigValidationError(result.errors)
    for warning in result.warnings:
        logger.warning("Configuration warning: %s", warning)
    return config


def _decode(path: Path, text: str) -> Any:
    suffix = path.suffix.lower()
    if suffix in _JSON_SUFFIXES:
        try:
            return json.loads(text)
        except json.JSONDecodeError as exc:
            raise ConfigLoadError(f"Configuration file '{path}' is not valid JSON: {exc}") from exc
    if suffix in _YAML_SUFFIXES:
        try:
            return yaml.safe_load(text)
        except yaml.YAMLError as exc:
            raise ConfigLoadError(f"Configuration file '{path}' is not valid YAML: {exc}") from exc
    raise ConfigLoadError(
        f"Unsupported configuration format '{path.suffix}' for '{path}'. " "Expected .json, .yaml or .yml."
    )


def read_config_document(path: Path | str) -> Any:
    """Read and decode a configuration file without validating it.

    Raises
    ------
    ConfigLoadError
        If the file is missing, unreadable, or cannot be decoded.
    """
    path = Path(path)
    if not path.is_file():
        raise ConfigLoadError(f"Configuration file does not exist or is not a file: '{path}'")
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigLoadError(f"Failed to read configuration file '{path}': {exc}") from exc
    return _decode(path, text)


def load_config(path: Path | str) -> PipelineConfig:
    """Read, decode, validate, and parse a configuration file.

    Parameters
    ----------
    path:
        A ``.json``, ``.yaml`` or ``.yml`` file.

    Raises
    ------
    ConfigLoadError
        If the file is missing, unreadable, or cannot be decoded.
    ConfigValidationError
        If the decoded document is not a valid configuration.
    """
    path = Path(path)
    config = parse_config(read_config_document(path))
    logger.info(
        "Loaded configuration from %s: %d pipeline(s), %d datasource(s)",
        path,
        len(config.pipelines),
        len(config.datasources),
    )
    return config


def config_content_hash(config: PipelineConfig) -> str:
    """SHA-256 of the canonical JSON form of *config*."""
    canonical = json.dumps(
        config.model_dump(mode="json", by_alias=True),
        sort_keys=True,
        separators=(",", ":"),
        ensure_ascii=False,
    )
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()
