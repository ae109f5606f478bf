"""Typer-based CLI for KnitGraph dependency-graph extraction."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import List, Optional, Tuple

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from . import __version__
from .analyzer import analyze_files
from .assembler import DEDUPE_MODES
from .config import load_settings
from .errors import EmptyGraphError, KnitGraphError
from .graph_analysis import analyze_graph
from .graph_export import export_dot, export_html, export_json, node_label
from .models import AnalysisResult, GraphAnalysis
from .sources import SourceBatch, load_sources

console = Console()
err_console = Console(stderr=True)

app = typer.Typer(
    help="🧶 KnitGraph: dependency graphs for Knit-style Kotlin DI.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)


def version_callback(value: bool):
    """Print version and exit."""
    if value:
        typer.echo(f"KnitGraph v{__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: Optional[bool] = typer.Option(
        None,
        "--version",
        "-V",
        help="Show version and exit.",
        callback=version_callback,
        is_eager=True,
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging."),
):
    """KnitGraph: static extraction and analysis of DI dependency graphs."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=err_console, show_path=False)],
        force=True,
    )


# ---------------------------------------------------------------------------
# Shared helpers
# ---------------------------------------------------------------------------

def _run(
    source_path: Path,
    include: List[str],
    prefix: str,
    workers: Optional[int],
    dedupe: Optional[str],
) -> Tuple[SourceBatch, AnalysisResult]:
    settings = load_settings()
    dedupe = dedupe or settings.dedupe_mode
    if dedupe not in DEDUPE_MODES:
        raise typer.BadParameter(f"--dedupe must be one of: {', '.join(DEDUPE_MODES)}")

    try:
        batch = load_sources(
            source_path,
            include=include,
            prefix=prefix,
            max_files=settings.max_files,
            max_file_bytes=settings.max_file_bytes,
        )
        result = analyze_files(
            batch.files,
            workers=workers if workers is not None else settings.workers,
            dedupe=dedupe,
        )
    except EmptyGraphError as exc:
        err_console.print(f"[red]❌ {exc}[/red]")
        for message in exc.errors:
            err_console.print(f"   - {message}")
        raise typer.Exit(code=1)
    except KnitGraphError as exc:
        err_console.print(f"[red]❌ {exc}[/red]")
        raise typer.Exit(code=1)

    result.errors = batch.skipped + result.errors
    return batch, result


def _graph_analysis(result: AnalysisResult) -> GraphAnalysis:
    ceiling = load_settings().critical_node_ceiling
    include_critical = len(result.nodes) <= ceiling
    if not include_critical:
        err_console.print(
            f"[yellow]⚠ {len(result.nodes)} nodes exceed the critical-node ceiling "
            f"({ceiling}); skipping critical nodes.[/yellow]"
        )
    return analyze_graph(result.nodes, result.edges, include_critical=include_critical)


def _print_errors(result: AnalysisResult) -> None:
    if result.errors:
        err_console.print(f"[yellow]⚠ {len(result.errors)} file(s) had processing errors[/yellow]")
        for message in result.errors:
            err_console.print(f"   - {message}")


# Options are shared by every command that runs an analysis.
_PATH_ARG = typer.Argument(..., exists=True, file_okay=False, help="Root folder of Kotlin sources.")
_INCLUDE_OPT = typer.Option([], "--include", "-i", help="File or folder to include (repeatable).")
_PREFIX_OPT = typer.Option("", "--prefix", help="Only analyze files under this folder.")
_WORKERS_OPT = typer.Option(None, "--workers", "-w", min=1, help="Parallel extraction workers.")
_DEDUPE_OPT = typer.Option(None, "--dedupe", help="Edge dedup mode: meaning or location.")


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------

@app.command("analyze")
def analyze(
    source_path: Path = _PATH_ARG,
    include: List[str] = _INCLUDE_OPT,
    prefix: str = _PREFIX_OPT,
    workers: Optional[int] = _WORKERS_OPT,
    dedupe: Optional[str] = _DEDUPE_OPT,
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Write the JSON result here."),
):
    """Extract the DI dependency graph from Kotlin sources."""
    batch, result = _run(source_path, include, prefix, workers, dedupe)

    if output is not None:
        payload = result.to_dict()
        payload["fileCount"] = len(batch.files)
        payload["truncated"] = batch.truncated
        output.write_text(json.dumps(payload, indent=2), encoding="utf-8")
        typer.echo(f"Wrote analysis to {output}")
    typer.echo(f"Files: {len(batch.files)} | Nodes: {len(result.nodes)} | Edges: {len(result.edges)}")
    if batch.truncated:
        typer.echo("Note: file list was truncated to the configured maximum.")
    _print_errors(result)


@app.command("stats")
def stats(
    source_path: Path = _PATH_ARG,
    include: List[str] = _INCLUDE_OPT,
    prefix: str = _PREFIX_OPT,
    workers: Optional[int] = _WORKERS_OPT,
    dedupe: Optional[str] = _DEDUPE_OPT,
):
    """Show cycles, heaviest, critical, and longest-path metrics."""
    _, result = _run(source_path, include, prefix, workers, dedupe)
    analysis = _graph_analysis(result)

    summary = Table(title="Graph summary", show_header=False)
    summary.add_row("Nodes", str(len(result.nodes)))
    summary.add_row("Edges", str(len(result.edges)))
    summary.add_row("Cycles", str(len(analysis.cycles.cycles)))
    summary.add_row("Max depth", str(analysis.max_depth))
    summary.add_row("Roots", str(len(analysis.root_nodes)))
    summary.add_row("Leaves", str(len(analysis.leaf_nodes)))
    summary.add_row("Isolated", str(len(analysis.isolated_nodes)))
    console.print(summary)

    heavy = Table(title="Heaviest nodes")
    heavy.add_column("Node", style="cyan")
    heavy.add_column("In", justify="right")
    heavy.add_column("Out", justify="right")
    heavy.add_column("Total", justify="right", style="bold")
    for h in analysis.heaviest_nodes:
        heavy.add_row(h.id, str(h.incoming), str(h.outgoing), str(h.total_dependencies))
    console.print(heavy)

    if analysis.critical_nodes:
        console.print("[bold]Critical nodes:[/bold] " + ", ".join(analysis.critical_nodes))

    for info in analysis.longest_paths:
        chain = " → ".join(node_label(n) for n in info.path)
        console.print(f"[bold]Longest path ({info.length}):[/bold] {chain}")

    if analysis.cycles.cycles:
        console.print("[red bold]Cycles:[/red bold]")
        for cycle in analysis.cycles.cycles:
            console.print("  [red]" + " → ".join(cycle) + "[/red]")
    else:
        console.print("[green]No cycles detected.[/green]")

    _print_errors(result)


@app.command("export")
def export(
    source_path: Path = _PATH_ARG,
    fmt: str = typer.Option("html", "--format", "-f", help="Export format: html, dot, or json."),
    focus: str = typer.Option("", "--focus", help="Only export nodes matching this text and their neighbors."),
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Output file path."),
    include: List[str] = _INCLUDE_OPT,
    prefix: str = _PREFIX_OPT,
    workers: Optional[int] = _WORKERS_OPT,
    dedupe: Optional[str] = _DEDUPE_OPT,
):
    """Export the graph with analysis highlights to HTML, Graphviz DOT, or JSON."""
    fmt = fmt.lower()
    if fmt not in {"html", "dot", "json"}:
        raise typer.BadParameter("Format must be one of: html, dot, json")

    _, result = _run(source_path, include, prefix, workers, dedupe)
    analysis = _graph_analysis(result)

    if output is None:
        output = Path.cwd() / f"{source_path.resolve().name}_graph.{fmt}"

    if fmt == "html":
        export_html(result, output, analysis=analysis, focus=focus)
    elif fmt == "dot":
        export_dot(result, output, analysis=analysis, focus=focus)
    else:
        output.write_text(export_json(result, analysis), encoding="utf-8")

    typer.echo(f"Exported graph to {output}")
    _print_errors(result)


if __name__ == "__main__":
    app()
