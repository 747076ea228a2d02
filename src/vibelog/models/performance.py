"""Pydantic models for the reduced performance trace summary."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field

SUMMARY_TYPE = "performance_bottlenecks"

HINT_BLOCKING = "High main thread blocking detected. UI may feel unresponsive."
HINT_HEALTHY = "Performance looks healthy."


class CategoryTimes(BaseModel):
    """Milliseconds spent per main-thread work category."""

    model_config = {"extra": "forbid", "frozen": True}

    scripting: float = 0.0
    rendering: float = 0.0
    painting: float = 0.0


class PerformanceMetrics(BaseModel):
    """Aggregated metrics extracted from a raw Chrome trace."""

    model_config = {"extra": "forbid", "frozen": True}

    total_blocking_time: float = 0.0
    long_tasks_count: int = 0
    categories: CategoryTimes = Field(default_factory=CategoryTimes)
    offenders: list[str] = Field(default_factory=list)


class PerformanceSummary(BaseModel):
    """Compact, LLM-friendly summary of a session's performance trace."""

    model_config = {"extra": "forbid", "frozen": True}

    summary_type: Literal["performance_bottlenecks"] = SUMMARY_TYPE
    metrics: PerformanceMetrics
    analysis_hint: str


class TraceError(BaseModel):
    """Returned instead of a summary when the trace file cannot be read."""

    model_config = {"extra": "forbid", "frozen": True}

    error: str
