"""Performance trace reduction (raw Chrome trace -> compact summary)."""

from vibelog.trace.summarizer import (
    extract_trace_events,
    summarize_events,
    summarize_trace_file,
)

__all__ = [
    "extract_trace_events",
    "summarize_events",
    "summarize_trace_file",
]
