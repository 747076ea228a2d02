"""Timeline models for recorded browser sessions.

Pydantic models because the timeline is serialized to timeline.json at
the end of every session and read back by the CLI.
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field, field_serializer


class EventType(str, Enum):
    """Kinds of entries that can appear on a session timeline."""

    USER_INTERACTION = "USER_INTERACTION"
    NETWORK_REQUEST = "NETWORK_REQUEST"
    SNAPSHOT = "SNAPSHOT"
    CONSOLE = "CONSOLE"
    CONSOLE_ERROR = "CONSOLE_ERROR"
    PERFORMANCE_SUMMARY = "PERFORMANCE_SUMMARY"


def iso_timestamp(moment: datetime) -> str:
    """Format a datetime as UTC ISO 8601 with millisecond precision.

    Produces the ``2024-05-01T12:30:45.123Z`` shape used in every
    persisted artifact. Naive datetimes are assumed to be UTC.
    """
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    moment = moment.astimezone(timezone.utc)
    return f"{moment:%Y-%m-%dT%H:%M:%S}.{moment.microsecond // 1000:03d}Z"


def path_safe_timestamp(moment: datetime) -> str:
    """ISO timestamp with colons and dots replaced by dashes."""
    return iso_timestamp(moment).replace(":", "-").replace(".", "-")


class TimelineEvent(BaseModel):
    """A single immutable entry on the session timeline.

    ``data`` is the type-specific payload and is always redacted
    before the event is constructed.
    """

    model_config = {"extra": "forbid", "frozen": True}

    timestamp: datetime
    type: EventType
    data: dict[str, Any] = Field(default_factory=dict)

    @field_serializer("timestamp")
    def _serialize_timestamp(self, value: datetime) -> str:
        return iso_timestamp(value)


class NetworkCandidate(BaseModel):
    """An observed network response awaiting the noise filter.

    Transient: either dropped by the filter chain or converted into a
    NETWORK_REQUEST timeline event.
    """

    url: str
    method: str = "GET"
    status: int
    resource_type: str = "other"
    content_type: str | None = None
    body: Any = None  # Parsed JSON or raw text
    request_body: str | None = None  # Raw post data

    @property
    def is_json(self) -> bool:
        """True when the response declares a JSON content type."""
        if not self.content_type:
            return False
        media_type = self.content_type.split(";", 1)[0].strip().lower()
        return media_type == "application/json" or media_type.endswith("+json")
