"""vibelog summarize -- reduce a raw Chrome trace file offline."""

from __future__ import annotations

from pathlib import Path

import typer
from rich.console import Console
from rich.markup import escape

from vibelog.cli.output import render_summary
from vibelog.models.performance import TraceError
from vibelog.trace.summarizer import summarize_trace_file


def summarize(
    trace_file: Path = typer.Argument(..., help="Raw trace JSON file"),
    json_output: bool = typer.Option(
        False, "--json", help="Print the summary as JSON instead of a table"
    ),
) -> None:
    """Summarize a raw performance trace."""
    console = Console()
    result = summarize_trace_file(trace_file)

    if isinstance(result, TraceError):
        console.print(f"[bold red]Error:[/bold red] {escape(result.error)}")
        raise typer.Exit(code=1)

    if json_output:
        typer.echo(result.model_dump_json(indent=2))
        return

    render_summary(result, console)
