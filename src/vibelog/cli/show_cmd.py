"""vibelog show -- display a recorded session timeline."""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import typer
from pydantic import ValidationError
from rich.console import Console
from rich.markup import escape

from vibelog.cli.output import render_timeline
from vibelog.models.config import find_project_root, load_recorder_config
from vibelog.models.timeline import EventType
from vibelog.storage.session_store import TIMELINE_FILENAME, load_timeline


def _latest_session(output_dir: Path) -> Path | None:
    if not output_dir.is_dir():
        return None
    # Folder names embed ISO timestamps, so lexical order is chronological
    folders = sorted(
        p for p in output_dir.glob("session_*") if (p / TIMELINE_FILENAME).exists()
    )
    return folders[-1] if folders else None


def show(
    session_dir: Optional[Path] = typer.Argument(
        None, help="Session folder (default: latest session in the capture directory)"
    ),
    event_type: Optional[str] = typer.Option(
        None, "--type", "-t", help="Only show events of this type"
    ),
) -> None:
    """Show the timeline of a recorded session."""
    console = Console()

    if session_dir is None:
        project_root = find_project_root()
        config = load_recorder_config(project_root)
        session_dir = _latest_session(config.resolve_output_dir(project_root))
        if session_dir is None:
            console.print("[dim]No recorded sessions found.[/dim]")
            raise typer.Exit(code=0)

    type_filter: EventType | None = None
    if event_type is not None:
        try:
            type_filter = EventType(event_type.upper())
        except ValueError:
            valid = ", ".join(t.value for t in EventType)
            console.print(
                f"[bold red]Error:[/bold red] Unknown event type '{escape(event_type)}'. "
                f"Expected one of: {valid}"
            )
            raise typer.Exit(code=1)

    try:
        events = load_timeline(session_dir)
    except FileNotFoundError:
        console.print(
            f"[bold red]Error:[/bold red] No {TIMELINE_FILENAME} in '{escape(str(session_dir))}'."
        )
        raise typer.Exit(code=1)
    except (ValueError, ValidationError) as exc:
        console.print(f"[bold red]Error:[/bold red] Corrupt timeline: {escape(str(exc))}")
        raise typer.Exit(code=1)

    if type_filter is not None:
        events = [e for e in events if e.type is type_filter]

    console.print(f"[bold]{escape(session_dir.name)}[/bold] - {len(events)} event(s)\n")
    render_timeline(events, console)
