"""Reduce a raw Chrome performance trace to a compact summary.

A trace captured over a few seconds of interaction easily reaches tens
of megabytes of Trace Event JSON. An agent only needs to know where the
main thread spent its time and which scripts were slow, so a single pass
buckets event durations into scripting, rendering and painting, counts
long tasks, and ranks the slowest scripts.

Trace durations (``dur``) are in microseconds; all reported values are
in milliseconds.
"""

from __future__ import annotations

import json
import math
from collections.abc import Iterable
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import structlog

from vibelog.models.performance import (
    HINT_BLOCKING,
    HINT_HEALTHY,
    CategoryTimes,
    PerformanceMetrics,
    PerformanceSummary,
    TraceError,
)

logger = structlog.get_logger(__name__)

SCRIPTING_EVENTS: frozenset[str] = frozenset({"EvaluateScript", "FunctionCall", "v8.compile"})
RENDERING_EVENTS: frozenset[str] = frozenset({"UpdateLayoutTree", "Layout", "RecalculateStyles"})
PAINTING_EVENTS: frozenset[str] = frozenset({"Paint", "CompositeLayers"})
LONG_TASK_EVENT = "RunTask"

LONG_TASK_THRESHOLD_MS = 50.0
OFFENDER_THRESHOLD_MS = 10.0
MAX_OFFENDERS = 5


@dataclass
class _Offender:
    name: str
    duration_ms: float


def extract_trace_events(raw: Any) -> list[Any]:
    """Pull the event list out of a parsed trace document.

    Accepts either ``{"traceEvents": [...]}`` or a bare array. Any other
    shape yields an empty list.
    """
    if isinstance(raw, dict):
        events = raw.get("traceEvents")
        return events if isinstance(events, list) else []
    if isinstance(raw, list):
        return raw
    return []


def _duration_ms(event: dict[str, Any]) -> float | None:
    """Event duration in ms, or None for instant, negative or non-numeric ``dur``."""
    dur = event.get("dur")
    if isinstance(dur, bool) or not isinstance(dur, (int, float)) or dur <= 0:
        return None
    return dur / 1000


def _round2(value: float) -> float:
    # Half up, so 0.125 reports as 0.13
    return math.floor(value * 100 + 0.5) / 100


def _offender_name(event: dict[str, Any]) -> str:
    args = event.get("args")
    data = args.get("data") if isinstance(args, dict) else None
    if not isinstance(data, dict):
        return "Anonymous"
    return data.get("functionName") or data.get("url") or "Inline Script"


def summarize_events(events: Iterable[Any]) -> PerformanceSummary:
    """Summarize a sequence of raw trace events.

    Instant events (no or zero duration), events with a negative duration
    and events without a name are ignored.

    - Scripting: EvaluateScript, FunctionCall, v8.compile. Scripts over
      10ms become offender candidates named by function, URL, or
      "Inline Script".
    - Rendering: UpdateLayoutTree, Layout, RecalculateStyles.
    - Painting: Paint, CompositeLayers.
    - Long tasks: RunTask over 50ms; the excess over 50ms adds to the
      total blocking time.

    Totals are rounded half up to 2 decimals. The five slowest offenders are
    reported as ``"<name> (<ms>ms)"``, ties kept in encounter order.

    Args:
        events: Parsed trace events (dicts); other items are skipped.

    Returns:
        The PerformanceSummary for the trace.
    """
    scripting = rendering = painting = 0.0
    total_blocking_time = 0.0
    long_tasks_count = 0
    candidates: list[_Offender] = []

    for event in events:
        if not isinstance(event, dict):
            continue
        name = event.get("name")
        duration_ms = _duration_ms(event)
        if not name or not isinstance(name, str) or duration_ms is None:
            continue

        if name in SCRIPTING_EVENTS:
            scripting += duration_ms
            if duration_ms > OFFENDER_THRESHOLD_MS:
                candidates.append(_Offender(_offender_name(event), duration_ms))
        elif name in RENDERING_EVENTS:
            rendering += duration_ms
        elif name in PAINTING_EVENTS:
            painting += duration_ms
        elif name == LONG_TASK_EVENT and duration_ms > LONG_TASK_THRESHOLD_MS:
            long_tasks_count += 1
            total_blocking_time += duration_ms - LONG_TASK_THRESHOLD_MS

    # sorted() is stable, so equal durations keep encounter order
    ranked = sorted(candidates, key=lambda o: o.duration_ms, reverse=True)[:MAX_OFFENDERS]

    metrics = PerformanceMetrics(
        total_blocking_time=_round2(total_blocking_time),
        long_tasks_count=long_tasks_count,
        categories=CategoryTimes(
            scripting=_round2(scripting),
            rendering=_round2(rendering),
            painting=_round2(painting),
        ),
        offenders=[f"{o.name} ({o.duration_ms:.1f}ms)" for o in ranked],
    )
    return PerformanceSummary(
        metrics=metrics,
        analysis_hint=HINT_BLOCKING if long_tasks_count > 0 else HINT_HEALTHY,
    )


def summarize_trace_file(trace_path: Path) -> PerformanceSummary | TraceError:
    """Read a raw trace file and summarize it.

    Never raises for I/O or parse problems: a missing, unreadable,
    malformed or too deeply nested file yields a TraceError instead.

    Args:
        trace_path: Path to the raw Chrome Trace Event JSON file.

    Returns:
        PerformanceSummary on success, TraceError otherwise.
    """
    if not trace_path.exists():
        return TraceError(error=f"Trace file not found: {trace_path.name}")

    try:
        with trace_path.open("r", encoding="utf-8") as fh:
            raw = json.load(fh)
    except (OSError, ValueError, RecursionError) as exc:
        logger.warning("Trace file unreadable", path=str(trace_path), error=str(exc))
        return TraceError(error="Trace file corrupted or unreadable")

    return summarize_events(extract_trace_events(raw))
