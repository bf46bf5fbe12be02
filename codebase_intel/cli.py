"""Typer-based CLI for codebase intel."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

import typer
from rich.console import Console
from rich.table import Table

from . import __version__, config_manager
from .cli_groups import config_grp
from .complexity import compute_complexity
from .graph import (
    build_dependency_graph,
    file_reader,
    find_cycles,
    top_dependencies,
    transitive_dependents,
)
from .languages import iter_source_files
from .models import (
    ERROR_NO_DETECTOR,
    ERROR_UNKNOWN_LANGUAGE,
    DependencyGraph,
)
from .orchestration import classify_plan_file, route_task, select_execution_mode
from .repo_map import generate_repo_map
from .signatures import extract_signatures

console = Console()

app = typer.Typer(
    help="🧠 Codebase Intel: signatures, complexity, dependency graphs and task routing.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)

app.add_typer(config_grp, name="config")


def version_callback(value: bool):
    """Print version and exit."""
    if value:
        typer.echo(f"codebase-intel v{__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: Optional[bool] = typer.Option(
        None,
        "--version",
        "-v",
        help="Show version and exit.",
        callback=version_callback,
        is_eager=True,
    ),
    verbose: bool = typer.Option(False, "--verbose", "-V", help="Log debug detail to stderr."),
):
    """Codebase intel: structural facts about a source tree."""
    logging.basicConfig(format="%(levelname)s %(name)s: %(message)s")
    logging.getLogger("codebase_intel").setLevel(logging.DEBUG if verbose else logging.WARNING)


def _emit_json(payload: Any) -> None:
    typer.echo(json.dumps(payload, indent=2))


def _require_dir(root: Path) -> Path:
    if not root.is_dir():
        raise typer.BadParameter(f"'{root}' is not a directory.")
    return root.resolve()


def _relative(root: Path, file: str) -> str:
    path = Path(file)
    if path.is_absolute():
        try:
            path = path.resolve().relative_to(root)
        except ValueError:
            raise typer.BadParameter(f"'{file}' is outside '{root}'.")
    return path.as_posix()


def _build_graph(root: Path) -> DependencyGraph:
    graph_cfg = config_manager.load_graph_config()
    files = list(iter_source_files(root))
    return build_dependency_graph(
        files,
        read=file_reader(root),
        max_workers=graph_cfg["max_workers"],
    )


# ===================================================================
# Extraction
# ===================================================================


@app.command("signatures")
def signatures(
    file: Path = typer.Argument(..., exists=True, dir_okay=False, help="Source file to inspect."),
    as_json: bool = typer.Option(False, "--json", help="Emit JSON."),
):
    """List functions, classes and methods declared in a file."""
    result = extract_signatures(str(file))
    if result.error in (ERROR_UNKNOWN_LANGUAGE, ERROR_NO_DETECTOR):
        raise typer.BadParameter(f"Cannot extract signatures from '{file}': {result.error}")

    if as_json:
        _emit_json(result.to_dict())
        return

    table = Table(title=f"Signatures: {file.name} ({result.language})", show_header=True)
    table.add_column("Line", justify="right", style="dim")
    table.add_column("Kind", style="cyan")
    table.add_column("Name", style="bold")
    table.add_column("Params")
    for sig in result.signatures:
        flags = " ".join(f for f, on in (("async", sig.is_async), ("gen", sig.generator)) if on)
        name = f"{sig.name} [dim]{flags}[/dim]" if flags else sig.name
        table.add_row(str(sig.line), sig.kind, name, ", ".join(sig.params))
    console.print(table)

    surface = result.export_surface
    if surface is not None and surface.export_names:
        console.print(f"[bold]Exports ({surface.type}):[/bold] {', '.join(surface.export_names)}")
    if result.error:
        console.print(f"[yellow]⚠ {result.error}[/yellow]")


@app.command("complexity")
def complexity(
    file: Path = typer.Argument(..., exists=True, dir_okay=False, help="Source file to score."),
    as_json: bool = typer.Option(False, "--json", help="Emit JSON."),
):
    """Cyclomatic complexity per function."""
    report = compute_complexity(str(file))
    if report.error == ERROR_UNKNOWN_LANGUAGE:
        raise typer.BadParameter(f"Unknown language for '{file}'.")

    if as_json:
        _emit_json(report.to_dict())
        return

    table = Table(title=f"Complexity: {file.name}", show_header=True)
    table.add_column("Line", justify="right", style="dim")
    table.add_column("Function", style="bold")
    table.add_column("Complexity", justify="right")
    table.add_column("Nesting", justify="right")
    for fn in sorted(report.functions, key=lambda f: -f.complexity):
        style = "red" if fn.complexity >= 10 else "yellow" if fn.complexity >= 5 else "green"
        table.add_row(str(fn.line), fn.name, f"[{style}]{fn.complexity}[/{style}]", str(fn.nesting_max))
    console.print(table)
    console.print(f"Module complexity: [bold]{report.module_complexity}[/bold]")
    if report.error:
        console.print(f"[yellow]⚠ {report.error}[/yellow]")


@app.command("repo-map")
def repo_map(
    root: Path = typer.Argument(Path("."), help="Project root."),
    tokens: Optional[int] = typer.Option(None, "--tokens", "-t", min=1, help="Token budget."),
    as_json: bool = typer.Option(False, "--json", help="Emit JSON."),
):
    """Compact signature digest of a project, densest files first."""
    root = _require_dir(root)
    budget = tokens or config_manager.load_repo_map_config()["token_budget"]
    workers = config_manager.load_graph_config()["max_workers"]
    result = generate_repo_map(iter_source_files(root), budget, root=root, max_workers=workers)

    if as_json:
        _emit_json(result.to_dict())
        return
    typer.echo(result.summary)
    console.print(
        f"\n[dim]{result.files_included} files, {result.total_signatures} signatures, "
        f"~{result.token_estimate} tokens[/dim]"
    )


# ===================================================================
# Dependency graph
# ===================================================================


@app.command("deps")
def deps(
    root: Path = typer.Argument(Path("."), help="Project root."),
    cycles: bool = typer.Option(False, "--cycles", help="Report import cycles."),
    top: int = typer.Option(10, "--top", min=1, help="How many most-imported files to list."),
    as_json: bool = typer.Option(False, "--json", help="Emit JSON."),
):
    """Build the import graph and summarise it."""
    root = _require_dir(root)
    graph = _build_graph(root)
    cycle_report = find_cycles(graph) if cycles else None
    ranked = top_dependencies(graph, limit=top)

    if as_json:
        payload: Dict[str, Any] = graph.to_dict()
        payload["top_dependencies"] = [{"file": f, "importers": n} for f, n in ranked]
        if cycle_report is not None:
            payload["cycles"] = cycle_report.to_dict()
        _emit_json(payload)
        return

    stats = graph.stats
    console.print(
        f"[bold cyan]Dependency graph[/bold cyan]: {stats.total_files_parsed} files, "
        f"{stats.total_edges} edges, languages: {', '.join(stats.languages_parsed) or 'none'}"
    )
    if stats.parse_errors:
        console.print(f"[yellow]⚠ {stats.parse_errors} files could not be read or parsed[/yellow]")

    if ranked:
        table = Table(title="Most imported", show_header=True)
        table.add_column("File", style="bold")
        table.add_column("Importers", justify="right")
        for path, count in ranked:
            table.add_row(path, str(count))
        console.print(table)

    if cycle_report is not None:
        if not cycle_report.cycles:
            console.print("[green]✓ No import cycles[/green]")
        else:
            console.print(
                f"[red]✗ {cycle_report.cycle_count} cycles "
                f"({cycle_report.files_in_cycles} files)[/red]"
            )
            for i, cycle in enumerate(cycle_report.cycles, 1):
                console.print(f"  {i}. " + " → ".join(cycle))


@app.command("impact")
def impact(
    root: Path = typer.Argument(..., help="Project root."),
    files: List[str] = typer.Argument(..., help="Files (relative to root) to analyse."),
    max_depth: Optional[int] = typer.Option(None, "--max-depth", "-d", min=1, help="BFS depth cap."),
    as_json: bool = typer.Option(False, "--json", help="Emit JSON."),
):
    """Which files depend on FILES, directly and transitively."""
    root = _require_dir(root)
    depth = max_depth or config_manager.load_graph_config()["max_depth"]
    graph = _build_graph(root)
    reports = [transitive_dependents(graph, _relative(root, f), depth) for f in files]

    if as_json:
        _emit_json([r.to_dict() for r in reports])
        return

    for report in reports:
        console.print(f"\n[bold]{report.file}[/bold]: fan-in {report.fan_in}")
        if not report.fan_in:
            console.print("  no dependents")
            continue
        for dep in report.direct:
            console.print(f"  [cyan]1[/cyan] {dep}")
        for dep in report.transitive:
            console.print(f"  [dim]{dep.depth}[/dim] {dep.path}")
        if report.truncated:
            console.print(f"  [yellow]⚠ stopped at depth {depth}; more dependents exist[/yellow]")


# ===================================================================
# Plans
# ===================================================================


@app.command("classify")
def classify(
    plans: List[Path] = typer.Argument(..., exists=True, dir_okay=False, help="Plan files."),
    root: Optional[Path] = typer.Option(None, "--root", "-r", help="Project root for blast-radius scoring."),
    profile: Optional[str] = typer.Option(None, "--profile", "-p", help="Model profile (quality, balanced, budget)."),
    as_json: bool = typer.Option(False, "--json", help="Emit JSON."),
):
    """Score plan tasks and choose an execution mode."""
    graph = _build_graph(_require_dir(root)) if root is not None else None
    routing = config_manager.load_routing_config()
    model_profile = profile or routing["model_profile"] or None

    classifications = []
    for plan_path in plans:
        result = classify_plan_file(plan_path, graph)
        if result is None:
            typer.echo(f"Failed to classify plan: {plan_path}", err=True)
            raise typer.Exit(code=1)
        classifications.append(result)
    mode = select_execution_mode(classifications)

    routes = [
        [route_task(t.complexity, model_profile, routing["profiles"]) for t in c.tasks]
        for c in classifications
    ]

    if as_json:
        payload = []
        for c, plan_routes in zip(classifications, routes):
            entry = c.to_dict()
            for task, route in zip(entry["tasks"], plan_routes):
                task["route"] = route.to_dict()
            payload.append(entry)
        _emit_json({"plans": payload, "execution_mode": mode.to_dict()})
        return

    for c, plan_routes in zip(classifications, routes):
        console.print(
            f"\n[bold cyan]{c.plan}[/bold cyan]  wave {c.wave} | "
            f"complexity {c.plan_complexity}/5 | model [bold]{c.recommended_model}[/bold]"
        )
        table = Table(show_header=True)
        table.add_column("Task", style="bold")
        table.add_column("Score", justify="right")
        table.add_column("Label")
        table.add_column("Route")
        table.add_column("Factors")
        for t, route in zip(c.tasks, plan_routes):
            table.add_row(
                t.name,
                str(t.complexity.score),
                t.complexity.label,
                route.model,
                ", ".join(t.complexity.factors) or "minimal",
            )
        console.print(table)

    console.print(f"\n[bold]Execution mode:[/bold] {mode.mode}: {mode.reason}")
    console.print(
        f"Waves: {mode.total_waves} | Plans: {mode.total_plans} | "
        f"Checkpoints: {'yes' if mode.has_checkpoints else 'no'}"
    )


if __name__ == "__main__":
    app()
