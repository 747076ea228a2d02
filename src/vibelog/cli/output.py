"""Rich terminal output for trace summaries and session timelines."""

from __future__ import annotations

from typing import TYPE_CHECKING

from rich import box
from rich.console import Console
from rich.markup import escape
from rich.table import Table

if TYPE_CHECKING:
    from vibelog.models.performance import PerformanceSummary
    from vibelog.models.timeline import TimelineEvent


# Event type -> Rich markup style
_TYPE_STYLES: dict[str, str] = {
    "USER_INTERACTION": "cyan",
    "NETWORK_REQUEST": "blue",
    "SNAPSHOT": "magenta",
    "CONSOLE": "white",
    "CONSOLE_ERROR": "bold red",
    "PERFORMANCE_SUMMARY": "bold green",
}


def render_summary(summary: PerformanceSummary, console: Console) -> None:
    """Render a performance summary as a key-value table plus offenders."""
    metrics = summary.metrics
    table = Table(box=box.SIMPLE, show_header=False, padding=(0, 2))
    table.add_column("Key", style="bold")
    table.add_column("Value")

    blocking_style = "bold red" if metrics.long_tasks_count > 0 else "green"
    table.add_row(
        "Blocking",
        f"[{blocking_style}]{metrics.total_blocking_time:.2f}ms "
        f"across {metrics.long_tasks_count} long task(s)[/{blocking_style}]",
    )
    table.add_row("Scripting", f"{metrics.categories.scripting:.2f}ms")
    table.add_row("Rendering", f"{metrics.categories.rendering:.2f}ms")
    table.add_row("Painting", f"{metrics.categories.painting:.2f}ms")
    console.print(table)

    if metrics.offenders:
        console.print("[bold]Slowest scripts:[/bold]")
        for rank, offender in enumerate(metrics.offenders, start=1):
            console.print(f"  {rank}. {escape(offender)}")

    console.print(f"\n[dim]{summary.analysis_hint}[/dim]")


def describe_event(event: TimelineEvent) -> str:
    """One-line human description of a timeline event's payload."""
    data = event.data
    event_type = event.type.value

    if event_type == "USER_INTERACTION":
        target = data.get("selector") or data.get("tagName") or "?"
        return f"{data.get('action', 'interaction')} on {target} at ({data.get('x')}, {data.get('y')})"
    if event_type == "NETWORK_REQUEST":
        url = str(data.get("url", ""))
        if len(url) > 80:
            url = url[:80] + "..."
        return f"[{data.get('method', '?')}] {data.get('status', '?')} {url}"
    if event_type == "SNAPSHOT":
        return f"{data.get('filename')} ({data.get('trigger')})"
    if event_type in ("CONSOLE", "CONSOLE_ERROR"):
        return f"{data.get('type', 'log')}: {data.get('text', '')}"
    if event_type == "PERFORMANCE_SUMMARY":
        metrics = data.get("metrics", {})
        return (
            f"TBT={metrics.get('total_blocking_time')}ms "
            f"long_tasks={metrics.get('long_tasks_count')}"
        )
    return str(data)


def render_timeline(events: list[TimelineEvent], console: Console) -> None:
    """Render timeline events as a table in recorded order.

    Recorded text is escaped, so brackets in messages or URLs print as-is.
    """
    table = Table(box=box.SIMPLE_HEAD, padding=(0, 1))
    table.add_column("Time", style="dim", no_wrap=True)
    table.add_column("Type", no_wrap=True)
    table.add_column("Details")

    for event in events:
        style = _TYPE_STYLES.get(event.type.value, "white")
        table.add_row(
            event.timestamp.strftime("%H:%M:%S.%f")[:-3],
            f"[{style}]{event.type.value}[/{style}]",
            escape(describe_event(event)),
        )

    console.print(table)
