"""Tests for vibelog.trace.summarizer - raw trace reduction."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from vibelog.models.performance import (
    HINT_BLOCKING,
    HINT_HEALTHY,
    PerformanceSummary,
    TraceError,
)
from vibelog.trace.summarizer import (
    extract_trace_events,
    summarize_events,
    summarize_trace_file,
)


def _event(name: str, dur_ms: float | None, **data) -> dict:
    """Build a raw trace event; duration given in ms, stored in µs."""
    event: dict = {"name": name, "ph": "X"}
    if dur_ms is not None:
        event["dur"] = dur_ms * 1000
    if data:
        event["args"] = {"data": data}
    return event


class TestExtractTraceEvents:
    def test_object_with_trace_events(self):
        assert extract_trace_events({"traceEvents": [1, 2]}) == [1, 2]

    def test_bare_array(self):
        assert extract_trace_events([{"name": "x"}]) == [{"name": "x"}]

    @pytest.mark.parametrize("raw", [None, 42, "text", {"other": []}, {"traceEvents": "nope"}])
    def test_other_shapes_empty(self, raw):
        assert extract_trace_events(raw) == []


class TestCategories:
    """Durations land in the right bucket, in milliseconds."""

    def test_scripting_rendering_painting(self):
        summary = summarize_events([
            _event("EvaluateScript", 2),
            _event("FunctionCall", 3),
            _event("v8.compile", 1),
            _event("Layout", 4),
            _event("UpdateLayoutTree", 1),
            _event("RecalculateStyles", 0.5),
            _event("Paint", 2),
            _event("CompositeLayers", 0.25),
        ])
        categories = summary.metrics.categories
        assert categories.scripting == 6.0
        assert categories.rendering == 5.5
        assert categories.painting == 2.25

    def test_rounding_two_decimals(self):
        """Scripting time of 12.3456ms is reported as 12.35."""
        summary = summarize_events([_event("EvaluateScript", 12.3456)])
        assert summary.metrics.categories.scripting == 12.35

    def test_rounding_half_up(self):
        """125µs of painting is 0.125ms, reported as 0.13."""
        summary = summarize_events([{"name": "Paint", "dur": 125}])
        assert summary.metrics.categories.painting == 0.13

    def test_negative_duration_ignored(self):
        summary = summarize_events([{"name": "Layout", "dur": -4000}, _event("Layout", 1)])
        assert summary.metrics.categories.rendering == 1.0

    def test_instant_and_unnamed_events_ignored(self):
        summary = summarize_events([
            _event("EvaluateScript", None),
            {"dur": 5000},
            {"name": "Paint", "dur": 0},
            "not-an-event",
            {"name": "Layout", "dur": "123"},
        ])
        categories = summary.metrics.categories
        assert (categories.scripting, categories.rendering, categories.painting) == (0, 0, 0)

    def test_unknown_events_ignored(self):
        summary = summarize_events([_event("GPUTask", 500)])
        assert summary.metrics.long_tasks_count == 0
        assert summary.metrics.categories.scripting == 0


class TestLongTasks:
    def test_single_long_task(self):
        """A 120ms RunTask is one long task with 70ms blocking time."""
        summary = summarize_events([_event("RunTask", 120)])
        assert summary.metrics.long_tasks_count == 1
        assert summary.metrics.total_blocking_time == 70.00
        assert summary.analysis_hint == HINT_BLOCKING

    def test_threshold_is_exclusive(self):
        summary = summarize_events([_event("RunTask", 50), _event("RunTask", 49)])
        assert summary.metrics.long_tasks_count == 0
        assert summary.metrics.total_blocking_time == 0
        assert summary.analysis_hint == HINT_HEALTHY

    def test_blocking_accumulates(self):
        summary = summarize_events([
            _event("RunTask", 60.123),
            _event("RunTask", 200),
            _event("RunTask", 10),
        ])
        assert summary.metrics.long_tasks_count == 2
        assert summary.metrics.total_blocking_time == 160.12


class TestOffenders:
    """Slow scripts are ranked and formatted."""

    def test_ordering_with_ties(self):
        """Only scripts over 10ms qualify; ties keep encounter order."""
        summary = summarize_events([
            _event("FunctionCall", 5, functionName="a"),
            _event("FunctionCall", 50, functionName="b"),
            _event("FunctionCall", 50, functionName="c"),
            _event("FunctionCall", 3, functionName="d"),
            _event("FunctionCall", 100, functionName="e"),
        ])
        assert summary.metrics.offenders == [
            "e (100.0ms)",
            "b (50.0ms)",
            "c (50.0ms)",
        ]

    def test_top_five_only(self):
        events = [
            _event("EvaluateScript", 11 + i, url=f"https://x.com/{i}.js") for i in range(8)
        ]
        offenders = summarize_events(events).metrics.offenders
        assert len(offenders) == 5
        assert offenders[0] == "https://x.com/7.js (18.0ms)"
        assert offenders[-1] == "https://x.com/3.js (14.0ms)"

    def test_identifier_priority(self):
        summary = summarize_events([
            _event("FunctionCall", 40, functionName="handleClick", url="https://x.com/a.js"),
            _event("EvaluateScript", 30, url="https://x.com/b.js"),
            _event("EvaluateScript", 20, lineNumber=3),
            {"name": "v8.compile", "dur": 15000},
        ])
        assert summary.metrics.offenders == [
            "handleClick (40.0ms)",
            "https://x.com/b.js (30.0ms)",
            "Inline Script (20.0ms)",
            "Anonymous (15.0ms)",
        ]

    def test_one_decimal_format(self):
        summary = summarize_events([_event("FunctionCall", 12.345, functionName="f")])
        assert summary.metrics.offenders == ["f (12.3ms)"]


class TestSummaryShape:
    def test_discriminator_and_dump(self):
        summary = summarize_events([])
        dumped = summary.model_dump(mode="json")
        assert dumped["summary_type"] == "performance_bottlenecks"
        assert dumped["metrics"] == {
            "total_blocking_time": 0.0,
            "long_tasks_count": 0,
            "categories": {"scripting": 0.0, "rendering": 0.0, "painting": 0.0},
            "offenders": [],
        }
        assert dumped["analysis_hint"] == HINT_HEALTHY


class TestSummarizeTraceFile:
    def test_trace_events_object(self, tmp_path: Path):
        path = tmp_path / "trace.json"
        path.write_text(json.dumps({"traceEvents": [_event("RunTask", 120)]}), encoding="utf-8")
        result = summarize_trace_file(path)
        assert isinstance(result, PerformanceSummary)
        assert result.metrics.long_tasks_count == 1

    def test_bare_array_file(self, tmp_path: Path):
        path = tmp_path / "trace.json"
        path.write_text(json.dumps([_event("Paint", 3)]), encoding="utf-8")
        result = summarize_trace_file(path)
        assert isinstance(result, PerformanceSummary)
        assert result.metrics.categories.painting == 3.0

    def test_corrupted_file(self, tmp_path: Path):
        path = tmp_path / "trace.json"
        path.write_text('{"traceEvents": [ {"name": ', encoding="utf-8")
        result = summarize_trace_file(path)
        assert isinstance(result, TraceError)
        assert "corrupted" in result.error

    def test_binary_garbage(self, tmp_path: Path):
        path = tmp_path / "trace.json"
        path.write_bytes(b"\xff\xfe\x00garbage")
        assert isinstance(summarize_trace_file(path), TraceError)

    def test_missing_file(self, tmp_path: Path):
        result = summarize_trace_file(tmp_path / "absent.json")
        assert isinstance(result, TraceError)
        assert "not found" in result.error

    def test_deeply_nested_file(self, tmp_path: Path):
        """Nesting too deep for the JSON parser is reported, not raised."""
        path = tmp_path / "trace.json"
        path.write_text("[" * 200000 + "]" * 200000, encoding="utf-8")
        result = summarize_trace_file(path)
        assert isinstance(result, TraceError)
        assert "corrupted" in result.error
