"""pipeviz CLI application -- Typer-based developer interface.

Provides commands for configuration validation, node lineage, backfill
planning, blast-radius analysis, attribute provenance, group inspection,
cycle detection, and catalog statistics.  Human-readable output goes to
*stderr* via Rich; with ``--json`` a machine-readable document is written to
*stdout* so that the CLI composes cleanly in shell pipelines.
"""

from __future__ import annotations

import dataclasses
import json
import logging
import sys
from pathlib import Path
from typing import Any

import typer
from rich.console import Console

from cli.display import (
    display_airflow_plan,
    display_attribute_provenance,
    display_backfill_plan,
    display_blast_radius,
    display_cycles,
    display_group,
    display_lineage,
    display_profile,
    display_stats,
    display_validation,
)
from lineage_engine.config import Settings, load_settings
from lineage_engine.errors import LineageEngineError
from lineage_engine.state.snapshot_store import ConfigSnapshot, ConfigSnapshotStore
from lineage_engine.telemetry.logging import configure_logging
from lineage_engine.telemetry.profiling import get_collector

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# App & global state
# ---------------------------------------------------------------------------

app = typer.Typer(
    name="pipeviz",
    help="pipeviz - lineage, backfill planning and impact analysis for pipeline catalogs",
    no_args_is_help=True,
)
console = Console(stderr=True)

# Mutable global options populated by the Typer callback.
_json_output: bool = False
_settings: Settings | None = None
_store: ConfigSnapshotStore | None = None


# ---------------------------------------------------------------------------
# Callback -- global options
# ---------------------------------------------------------------------------


@app.callback()
def _global_options(
    ctx: typer.Context,
    json_mode: bool = typer.Option(
        False,
        "--json/--no-json",
        help="Emit structured JSON to stdout instead of human-readable output.",
    ),
    log_level: str | None = typer.Option(
        None,
        "--log-level",
        help="Override PIPEVIZ_LOG_LEVEL for this invocation.",
    ),
    profile: bool = typer.Option(
        False,
        "--profile",
        help="Print engine operation timings to stderr when the command finishes.",
    ),
) -> None:
    """Global options applied to every command."""
    global _json_output, _settings, _store  # noqa: PLW0603
    _json_output = json_mode

    overrides: dict[str, Any] = {}
    if log_level is not None:
        overrides["log_level"] = log_level
    try:
        _settings = load_settings(**overrides)
    except ValueError as exc:
        console.print(f"[red]Invalid settings: {exc}[/red]")
        raise typer.Exit(code=3) from exc

    configure_logging(_settings)
    _store = ConfigSnapshotStore(retention=_settings.snapshot_retention)

    if profile:
        get_collector().clear()
        ctx.call_on_close(_print_profile)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _print_profile() -> None:
    display_profile(console, get_collector().summary())


def _get_settings() -> Settings:
    return _settings if _settings is not None else load_settings()


def _emit_json(payload: Any) -> None:
    sys.stdout.write(json.dumps(payload, indent=2, default=str) + "\n")


def _resolve_config_path(config_path: Path | None) -> Path:
    """Pick the explicit ``--config`` path or fall back to PIPEVIZ_CONFIG_PATH."""
    path = config_path or _get_settings().config_path
    if path is None:
        console.print("[red]No configuration given. Pass --config or set PIPEVIZ_CONFIG_PATH.[/red]")
        raise typer.Exit(code=3)
    return path


def _load_snapshot(config_path: Path | None) -> ConfigSnapshot:
    """Load the configuration and publish it as the current snapshot."""
    from lineage_engine.loader import load_config

    global _store  # noqa: PLW0603
    path = _resolve_config_path(config_path)
    try:
        config = load_config(path)
    except LineageEngineError as exc:
        console.print(f"[red]Failed to load configuration: {exc}[/red]")
        raise typer.Exit(code=3) from exc

    if _store is None:
        _store = ConfigSnapshotStore(retention=_get_settings().snapshot_retention)
    snapshot = _store.publish(config)
    logger.debug("Using configuration snapshot version %d", snapshot.version)
    return snapshot


def _depth_or_default(depth: int | None) -> int | None:
    return depth if depth is not None else _get_settings().default_lineage_depth


_CONFIG_OPTION_HELP = "Path to the pipeline configuration (.json, .yaml, .yml)."


# ---------------------------------------------------------------------------
# validate
# ---------------------------------------------------------------------------


@app.command()
def validate(
    config_path: Path | None = typer.Option(None, "--config", "-c", help=_CONFIG_OPTION_HELP),
) -> None:
    """Check a configuration for structural errors and warnings."""
    from lineage_engine.loader import read_config_document, validate_config

    path = _resolve_config_path(config_path)
    try:
        raw = read_config_document(path)
    except LineageEngineError as exc:
        console.print(f"[red]{exc}[/red]")
        raise typer.Exit(code=3) from exc

    result = validate_config(raw)
    if _json_output:
        _emit_json(result.model_dump(mode="json"))
    else:
        display_validation(console, result)

    if not result.valid:
        raise typer.Exit(code=3)


# ---------------------------------------------------------------------------
# lineage
# ---------------------------------------------------------------------------


@app.command()
def lineage(
    node: str = typer.Argument(..., help="Pipeline (or, with --full, datasource) name."),
    config_path: Path | None = typer.Option(None, "--config", "-c", help=_CONFIG_OPTION_HELP),
    full: bool = typer.Option(
        False,
        "--full/--pipelines-only",
        help="Walk the pipeline + datasource graph instead of pipelines only.",
    ),
    depth: int | None = typer.Option(None, "--depth", min=1, help="Maximum traversal depth."),
) -> None:
    """Display upstream and downstream lineage for a node."""
    snapshot = _load_snapshot(config_path)
    graph = snapshot.full_adjacency if full else snapshot.pipeline_adjacency

    result = graph.lineage(node, max_depth=_depth_or_default(depth))
    if result is None:
        console.print(f"[red]Node '{node}' not found in configuration.[/red]")
        available = ", ".join(sorted(graph.nodes)[:10])
        if available:
            console.print(f"[dim]Available nodes: {available}[/dim]")
        raise typer.Exit(code=3)

    if _json_output:
        _emit_json(result.model_dump(mode="json"))
    else:
        display_lineage(console, result)


# ---------------------------------------------------------------------------
# backfill
# ---------------------------------------------------------------------------


@app.command()
def backfill(
    pipelines: list[str] = typer.Argument(..., help="Pipelines to backfill."),
    config_path: Path | None = typer.Option(None, "--config", "-c", help=_CONFIG_OPTION_HELP),
    airflow: bool = typer.Option(False, "--airflow", help="Group the plan by Airflow DAG."),
) -> None:
    """Plan a backfill: the selection plus everything downstream, in waves."""
    from lineage_engine.planner import map_plan_to_airflow, plan_backfill

    snapshot = _load_snapshot(config_path)
    try:
        plan = plan_backfill(snapshot.config, pipelines, graph=snapshot.pipeline_adjacency)
    except LineageEngineError as exc:
        console.print(f"[red]Cannot plan backfill: {exc}[/red]")
        raise typer.Exit(code=3) from exc

    if not airflow:
        if _json_output:
            payload = plan.model_dump(mode="json")
            payload["total_waves"] = plan.total_waves
            payload["max_parallelism"] = plan.max_parallelism
            _emit_json(payload)
        else:
            display_backfill_plan(console, plan)
        return

    try:
        airflow_plan = map_plan_to_airflow(snapshot.config, plan)
    except LineageEngineError as exc:
        console.print(f"[red]{exc}[/red]")
        raise typer.Exit(code=3) from exc

    if _json_output:
        _emit_json(airflow_plan.model_dump(mode="json"))
    else:
        display_airflow_plan(console, airflow_plan)


# ---------------------------------------------------------------------------
# blast-radius
# ---------------------------------------------------------------------------


@app.command("blast-radius")
def blast_radius(
    node: str = typer.Argument(..., help="Pipeline, datasource, or group name."),
    config_path: Path | None = typer.Option(None, "--config", "-c", help=_CONFIG_OPTION_HELP),
    depth: int | None = typer.Option(None, "--depth", min=1, help="Maximum traversal depth."),
) -> None:
    """Show everything downstream that a change to NODE would affect."""
    from lineage_engine.simulation import blast_radius_for_node

    snapshot = _load_snapshot(config_path)
    result = blast_radius_for_node(snapshot.blast_graph, node, max_depth=_depth_or_default(depth))
    if result is None:
        console.print(f"[red]Node or group '{node}' not found in configuration.[/red]")
        raise typer.Exit(code=3)

    if _json_output:
        _emit_json(result.model_dump(mode="json"))
    else:
        display_blast_radius(console, result)


# ---------------------------------------------------------------------------
# provenance
# ---------------------------------------------------------------------------


@app.command()
def provenance(
    attribute: str = typer.Argument(..., help="Attribute id or 'datasource::path' name."),
    config_path: Path | None = typer.Option(None, "--config", "-c", help=_CONFIG_OPTION_HELP),
    depth: int | None = typer.Option(None, "--depth", min=1, help="Maximum traversal depth."),
) -> None:
    """Trace an attribute (column) upstream to its sources and downstream to its consumers."""
    from lineage_engine.graph.attribute_lineage import attribute_provenance, resolve_attribute

    snapshot = _load_snapshot(config_path)
    lineage_map = snapshot.attribute_lineage
    attr_id = resolve_attribute(lineage_map, attribute)
    result = attribute_provenance(lineage_map, attr_id, _depth_or_default(depth)) if attr_id else None
    if result is None:
        console.print(f"[red]Attribute '{attribute}' not found in configuration.[/red]")
        raise typer.Exit(code=3)

    if _json_output:
        _emit_json(result.model_dump(mode="json"))
    else:
        display_attribute_provenance(console, result)


# ---------------------------------------------------------------------------
# group
# ---------------------------------------------------------------------------


@app.command()
def group(
    name: str = typer.Argument(..., help="Group label."),
    config_path: Path | None = typer.Option(None, "--config", "-c", help=_CONFIG_OPTION_HELP),
    depth: int | None = typer.Option(None, "--depth", min=1, help="Maximum traversal depth."),
) -> None:
    """Describe a pipeline group and its external lineage."""
    from lineage_engine.graph.groups import group_provenance

    snapshot = _load_snapshot(config_path)
    info = snapshot.group_data.groups.get(name)
    result = group_provenance(
        snapshot.config,
        name,
        max_depth=_depth_or_default(depth),
        graph=snapshot.full_adjacency,
    )
    if info is None or result is None:
        console.print(f"[red]Group '{name}' not found in configuration.[/red]")
        raise typer.Exit(code=3)

    if _json_output:
        payload = dataclasses.asdict(info)
        payload["lineage"] = result.model_dump(mode="json")
        _emit_json(payload)
    else:
        display_group(console, info, result)


# ---------------------------------------------------------------------------
# cycles
# ---------------------------------------------------------------------------


@app.command()
def cycles(
    config_path: Path | None = typer.Option(None, "--config", "-c", help=_CONFIG_OPTION_HELP),
) -> None:
    """Detect cyclic explicit dependencies.  Exits 1 when a cycle is found."""
    from lineage_engine.graph.cycles import detect_cycles

    snapshot = _load_snapshot(config_path)
    found = detect_cycles(snapshot.config.pipelines)

    if _json_output:
        _emit_json({"cycles": found})
    else:
        display_cycles(console, found)

    if found:
        raise typer.Exit(code=1)


# ---------------------------------------------------------------------------
# stats
# ---------------------------------------------------------------------------


@app.command()
def stats(
    config_path: Path | None = typer.Option(None, "--config", "-c", help=_CONFIG_OPTION_HELP),
    hubs: int | None = typer.Option(None, "--hubs", min=1, help="Number of hub nodes to list."),
) -> None:
    """Summarize the catalog: counts, hubs, coverage, orphans, and cycles."""
    from lineage_engine.graph.stats import compute_config_stats

    snapshot = _load_snapshot(config_path)
    hub_limit = hubs if hubs is not None else _get_settings().hub_limit
    result = compute_config_stats(snapshot.config, hub_limit=hub_limit)

    if _json_output:
        _emit_json(result.model_dump(mode="json"))
    else:
        display_stats(console, result)
