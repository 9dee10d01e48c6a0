"""Rich output formatting for the pipeviz CLI.

All functions write to a :class:`rich.console.Console` instance (typically
bound to *stderr*) so that machine-readable output on *stdout* is never
polluted with human-readable decoration.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.tree import Tree

if TYPE_CHECKING:
    from lineage_engine.graph.groups import GroupInfo
    from lineage_engine.models.results import (
        AirflowPlan,
        AttributeProvenance,
        BlastRadiusResult,
        ConfigStats,
        Coverage,
        ExecutionPlan,
        GroupProvenance,
        LineageRecord,
        LineageResult,
        OperationTimings,
        ProvenanceEntry,
        ValidationResult,
    )


# ---------------------------------------------------------------------------
# Node type colour mapping
# ---------------------------------------------------------------------------

_TYPE_COLOURS: dict[str, str] = {
    "pipeline": "cyan",
    "datasource": "magenta",
    "group": "green",
    "unknown": "dim",
}


def _coloured_type(node_type: str) -> str:
    """Return a Rich markup string with the node type colour-coded."""
    colour = _TYPE_COLOURS.get(node_type, "white")
    return f"[{colour}]{node_type}[/{colour}]"


def _coverage_pct(coverage: Coverage) -> int:
    return round(coverage.covered / coverage.total * 100) if coverage.total else 100


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------


def display_validation(console: Console, result: ValidationResult) -> None:
    """Render configuration validation errors and warnings."""
    status = "[green]VALID[/green]" if result.valid else "[red]INVALID[/red]"
    console.print(f"\nConfiguration {status}\n")

    for error in result.errors:
        console.print(f"  [red]✗ {error}[/red]")
    for warning in result.warnings:
        console.print(f"  [yellow]! {warning}[/yellow]")

    console.print(f"\n{len(result.errors)} error(s), {len(result.warnings)} warning(s)")


# ---------------------------------------------------------------------------
# Lineage
# ---------------------------------------------------------------------------


def _add_records(tree: Tree, label: str, records: list[LineageRecord], colour: str, empty: str) -> None:
    if not records:
        tree.add(f"[dim]{empty}[/dim]")
        return
    branch = tree.add(f"[bold {colour}]{label}[/bold {colour}]")
    for record in records:
        branch.add(f"[{colour}]{record.id}[/{colour}] [dim](depth {record.depth})[/dim]")


def display_lineage(console: Console, result: LineageResult) -> None:
    """Render a lineage tree showing upstream and downstream nodes.

    Parameters
    ----------
    console:
        Rich console to write to.
    result:
        Depth-annotated lineage of the focal node.
    """
    tree = Tree(f"[bold yellow]{result.node}[/bold yellow]", guide_style="dim")
    _add_records(tree, "upstream", result.upstream, "blue", "no upstream dependencies")
    _add_records(tree, "downstream", result.downstream, "green", "no downstream dependents")

    console.print(Panel(tree, title="Lineage", border_style="yellow"))
    console.print(f"[bold]{len(result.upstream)}[/bold] upstream, [bold]{len(result.downstream)}[/bold] downstream")


# ---------------------------------------------------------------------------
# Backfill plans
# ---------------------------------------------------------------------------


def display_backfill_plan(console: Console, plan: ExecutionPlan) -> None:
    """Render a backfill plan as a wave-by-wave table.

    Parameters
    ----------
    console:
        Rich console to write to (typically stderr).
    plan:
        The computed execution plan.
    """
    header_lines = [
        f"[bold]Selected:[/bold]        {', '.join(plan.selected)}",
        f"[bold]Pipelines:[/bold]       {plan.node_count}",
        f"[bold]Waves:[/bold]           {plan.total_waves}",
        f"[bold]Max parallelism:[/bold] {plan.max_parallelism}",
    ]
    console.print(Panel("\n".join(header_lines), title="Backfill Plan", border_style="blue"))

    table = Table(title="Execution Waves", show_lines=False, pad_edge=True, expand=False)
    table.add_column("Wave", style="dim", width=5, justify="right")
    table.add_column("Pipeline", style="bold")
    table.add_column("Schedule")
    table.add_column("Owner")
    table.add_column("Cluster")

    for wave in plan.wave_details:
        for idx, pipeline in enumerate(wave.pipelines):
            table.add_row(
                str(wave.wave + 1) if idx == 0 else "",
                pipeline.name,
                pipeline.schedule or "-",
                pipeline.owner or "-",
                pipeline.cluster or "-",
            )

    console.print(table)


def display_airflow_plan(console: Console, plan: AirflowPlan) -> None:
    """Render a backfill plan grouped by Airflow DAG."""
    table = Table(title="Airflow Backfill", show_lines=False, pad_edge=True, expand=False)
    table.add_column("Wave", style="dim", width=5, justify="right")
    table.add_column("DAG", style="bold")
    table.add_column("Pipelines")
    table.add_column("URL", style="dim")

    for wave in plan.waves:
        for idx, run in enumerate(wave.dags):
            table.add_row(str(wave.wave + 1) if idx == 0 else "", run.dag, ", ".join(run.pipelines), run.airflow_url)

    console.print(table)
    if plan.edges:
        console.print("[bold]DAG dependencies:[/bold]")
        for edge in plan.edges:
            console.print(f"  {edge.source_dag} → {edge.target_dag}")
    console.print(f"\n[bold]{plan.total_dags}[/bold] DAG(s) in [bold]{plan.total_waves}[/bold] wave(s)")


# ---------------------------------------------------------------------------
# Blast radius
# ---------------------------------------------------------------------------


def display_blast_radius(console: Console, result: BlastRadiusResult) -> None:
    """Render the downstream impact of a node, grouped by depth."""
    title = result.source
    if result.group_members is not None:
        title = f"{result.source} ({result.group_size} pipelines)"
    console.print(
        Panel(
            f"[bold]Source:[/bold]   {title} [{_coloured_type(result.source_type.value)}]\n"
            f"[bold]Affected:[/bold] {result.total_affected}\n"
            f"[bold]Depth:[/bold]    {result.max_depth}",
            title="Blast Radius",
            border_style="red",
        )
    )

    if not result.downstream:
        console.print("[dim]Nothing downstream.[/dim]")
        return

    table = Table(show_lines=False, pad_edge=True, expand=False)
    table.add_column("Depth", justify="right", style="dim")
    table.add_column("Node", style="bold")
    table.add_column("Type")
    table.add_column("Schedule")
    table.add_column("Cluster")
    for node in result.downstream:
        table.add_row(
            str(node.depth),
            node.name,
            _coloured_type(node.type.value),
            node.schedule or "-",
            node.cluster or "-",
        )
    console.print(table)


# ---------------------------------------------------------------------------
# Attribute provenance
# ---------------------------------------------------------------------------


def _add_entries(tree: Tree, label: str, entries: list[ProvenanceEntry], colour: str) -> None:
    if not entries:
        tree.add(f"[dim]no {label} attributes[/dim]")
        return
    branch = tree.add(f"[bold {colour}]{label}[/bold {colour}]")
    for entry in entries:
        name = entry.full_name or f"{entry.id} [red](unresolved)[/red]"
        branch.add(f"[{colour}]{name}[/{colour}] [dim](depth {entry.depth})[/dim]")


def display_attribute_provenance(console: Console, provenance: AttributeProvenance) -> None:
    """Render the upstream and downstream chain of one attribute."""
    tree = Tree(f"[bold yellow]{provenance.full_name}[/bold yellow]", guide_style="dim")
    _add_entries(tree, "upstream", provenance.upstream, "blue")
    _add_entries(tree, "downstream", provenance.downstream, "green")
    console.print(Panel(tree, title="Attribute Provenance", border_style="yellow"))


# ---------------------------------------------------------------------------
# Groups
# ---------------------------------------------------------------------------


def display_group(console: Console, info: GroupInfo, provenance: GroupProvenance) -> None:
    """Render a group's members, external interface, and lineage."""
    lines = [
        f"[bold]Members:[/bold]          {', '.join(info.members)}",
        f"[bold]Cluster:[/bold]          {info.cluster or '-'}",
        f"[bold]External inputs:[/bold]  {', '.join(info.external_inputs) or '-'}",
        f"[bold]Outputs:[/bold]          {', '.join(info.external_outputs) or '-'}",
        f"[bold]Depends on:[/bold]       {', '.join(info.upstream_pipelines) or '-'}",
        f"[bold]Consumed by:[/bold]      {', '.join(info.downstream_pipelines) or '-'}",
    ]
    console.print(Panel("\n".join(lines), title=f"Group {info.name}", border_style="green"))

    tree = Tree(f"[bold yellow]{info.name}[/bold yellow]", guide_style="dim")
    _add_records(tree, "upstream", provenance.upstream, "blue", "no upstream dependencies")
    _add_records(tree, "downstream", provenance.downstream, "green", "no downstream dependents")
    console.print(tree)


# ---------------------------------------------------------------------------
# Cycles and statistics
# ---------------------------------------------------------------------------


def display_cycles(console: Console, cycles: list[list[str]]) -> None:
    """Render detected dependency cycles."""
    if not cycles:
        console.print("[green]✓ No dependency cycles.[/green]")
        return
    console.print(f"[red bold]{len(cycles)} dependency cycle(s) detected[/red bold]")
    for idx, cycle in enumerate(cycles, start=1):
        console.print(f"  [dim]#{idx}[/dim] {' > '.join(cycle)}")


def display_stats(console: Console, stats: ConfigStats) -> None:
    """Render configuration statistics."""
    console.print(
        f"[bold]{stats.counts.pipelines}[/bold] pipelines, "
        f"[bold]{stats.counts.datasources}[/bold] datasources, "
        f"[bold]{stats.counts.clusters}[/bold] clusters"
    )

    coverage = Table(title="Coverage", show_lines=False, pad_edge=True, expand=False)
    coverage.add_column("Check")
    coverage.add_column("Covered", justify="right")
    coverage.add_column("%", justify="right")
    for label, item in (("Schedules", stats.schedule_coverage), ("Airflow links", stats.airflow_coverage)):
        pct = _coverage_pct(item)
        colour = "green" if pct >= 80 else "yellow" if pct >= 50 else "red"
        coverage.add_row(label, f"{item.covered}/{item.total}", f"[{colour}]{pct}%[/{colour}]")
    console.print(coverage)

    if stats.hubs:
        hubs = Table(title="Hubs", show_lines=False, pad_edge=True, expand=False)
        hubs.add_column("#", style="dim", width=3, justify="right")
        hubs.add_column("Node", style="bold")
        hubs.add_column("Type")
        hubs.add_column("↑", justify="right")
        hubs.add_column("↓", justify="right")
        for idx, hub in enumerate(stats.hubs, start=1):
            hubs.add_row(str(idx), hub.name, _coloured_type(hub.type.value), str(hub.upstream), str(hub.downstream))
        console.print(hubs)

    display_cycles(console, stats.cycles)

    for label, names in (
        ("Missing schedule", stats.schedule_coverage.missing),
        ("Missing Airflow link", stats.airflow_coverage.missing),
        ("Orphaned datasources", stats.orphaned),
    ):
        if names:
            console.print(f"[yellow]{label} ({len(names)}):[/yellow] {', '.join(names)}")


# ---------------------------------------------------------------------------
# Profiling
# ---------------------------------------------------------------------------


def display_profile(console: Console, timings: list[OperationTimings]) -> None:
    """Render per-operation engine timings collected during a command."""
    if not timings:
        console.print("[dim]No profiled engine operations ran.[/dim]")
        return

    table = Table(title="Engine Timings", show_lines=False, pad_edge=True, expand=False)
    table.add_column("Operation", style="bold", no_wrap=True)
    table.add_column("Calls", justify="right")
    table.add_column("Total (ms)", justify="right")
    table.add_column("Mean (ms)", justify="right")
    table.add_column("p95 (ms)", justify="right")
    table.add_column("Max (ms)", justify="right")
    for row in timings:
        table.add_row(
            row.operation,
            str(row.calls),
            f"{row.total_ms:.3f}",
            f"{row.mean_ms:.3f}",
            f"{row.p95_ms:.3f}",
            f"{row.max_ms:.3f}",
        )
    console.print(table)
