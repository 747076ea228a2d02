"""vibelog data models - re-exports all public model classes."""

from vibelog.models.config import RecorderConfig
from vibelog.models.performance import (
    CategoryTimes,
    PerformanceMetrics,
    PerformanceSummary,
    TraceError,
)
from vibelog.models.timeline import EventType, NetworkCandidate, TimelineEvent

__all__ = [
    "CategoryTimes",
    "EventType",
    "NetworkCandidate",
    "PerformanceMetrics",
    "PerformanceSummary",
    "RecorderConfig",
    "TimelineEvent",
    "TraceError",
]
