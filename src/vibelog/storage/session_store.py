"""File storage for a single recording session.

Owns the in-memory timeline buffer for one session and everything the
session writes into its folder:

    captures/
        session_2024-05-01T12-30-45-123Z/
            timeline.json          # Written once, at session end
            snap_<timestamp>.html  # Zero or more DOM snapshots
            console_dump.log       # Only with console_mode: separate

The timeline is written atomically (write to .tmp, then rename) so a
crash mid-write never leaves a truncated timeline.json behind.
"""

from __future__ import annotations

import json
from collections.abc import Callable
from datetime import datetime
from pathlib import Path
from typing import Any

from vibelog.models.timeline import (
    EventType,
    TimelineEvent,
    iso_timestamp,
    path_safe_timestamp,
)
from vibelog.recording.redaction import sanitize

TIMELINE_FILENAME = "timeline.json"
CONSOLE_DUMP_FILENAME = "console_dump.log"


def _unique_path(directory: Path, stem: str, suffix: str = "") -> Path:
    candidate = directory / f"{stem}{suffix}"
    counter = 1
    while candidate.exists():
        candidate = directory / f"{stem}_{counter}{suffix}"
        counter += 1
    return candidate


class SessionStore:
    """Append-only timeline buffer plus the session folder it flushes to.

    Every payload goes through the sanitizer before it is stored, and is
    deep-copied through JSON so later mutation by the caller cannot
    change a recorded event. Timestamps never go backwards: an event
    stamped earlier than its predecessor takes the predecessor's time.
    """

    def __init__(
        self,
        folder: Path,
        sanitizer: Callable[[Any], Any] = sanitize,
    ) -> None:
        self.folder = folder
        self.timeline_path = folder / TIMELINE_FILENAME
        self.console_path = folder / CONSOLE_DUMP_FILENAME
        self._sanitizer = sanitizer
        self._events: list[TimelineEvent] = []
        self._console_lines: list[str] = []
        self._last_timestamp: datetime | None = None

    @classmethod
    def create(
        cls,
        output_dir: Path,
        started_at: datetime,
        sanitizer: Callable[[Any], Any] = sanitize,
    ) -> "SessionStore":
        """Allocate a new session folder named after the start instant.

        Args:
            output_dir: Base capture directory (created if missing).
            started_at: Session start time; determines the folder name.
            sanitizer: Redaction applied to every appended payload.

        Returns:
            A SessionStore bound to the freshly created folder.
        """
        output_dir.mkdir(parents=True, exist_ok=True)
        folder = _unique_path(output_dir, f"session_{path_safe_timestamp(started_at)}")
        folder.mkdir(parents=True)
        return cls(folder, sanitizer=sanitizer)

    @property
    def events(self) -> tuple[TimelineEvent, ...]:
        """Snapshot of the buffered events in insertion order."""
        return tuple(self._events)

    def __len__(self) -> int:
        return len(self._events)

    def _monotonic(self, timestamp: datetime) -> datetime:
        if self._last_timestamp is not None and timestamp < self._last_timestamp:
            timestamp = self._last_timestamp
        self._last_timestamp = timestamp
        return timestamp

    def append(
        self,
        event_type: EventType,
        data: Any,
        timestamp: datetime,
    ) -> TimelineEvent:
        """Redact a payload and append it to the timeline buffer.

        Non-dict payloads are wrapped as ``{"value": ...}``.

        Raises:
            TypeError: If the payload cannot be represented as JSON.
            ValueError: If event_type is not a known EventType.
        """
        event_type = EventType(event_type)
        payload = self._sanitizer(data)
        if not isinstance(payload, dict):
            payload = {"value": payload}
        payload = json.loads(json.dumps(payload, ensure_ascii=False, default=str))

        event = TimelineEvent(
            timestamp=self._monotonic(timestamp),
            type=event_type,
            data=payload,
        )
        self._events.append(event)
        return event

    def append_console_line(
        self,
        timestamp: datetime,
        level: str,
        message: str,
        source: str | None = None,
    ) -> str:
        """Buffer one console_dump.log line and return it."""
        line = f"[{iso_timestamp(timestamp)}] [{level.upper()}] {message} ({source or 'unknown'})"
        self._console_lines.append(line)
        return line

    def write_snapshot(self, content: str, taken_at: datetime) -> str:
        """Write an HTML snapshot into the session folder.

        Args:
            content: HTML text.
            taken_at: Capture time; determines the file name.

        Returns:
            The snapshot filename (relative to the session folder).

        Raises:
            OSError: If the file cannot be written.
        """
        path = _unique_path(self.folder, f"snap_{path_safe_timestamp(taken_at)}", ".html")
        path.write_text(content, encoding="utf-8")
        return path.name

    def flush(self) -> Path:
        """Persist the timeline (and console dump, if any) to disk.

        Returns:
            Path to timeline.json.

        Raises:
            OSError: If the timeline cannot be written.
        """
        self.folder.mkdir(parents=True, exist_ok=True)

        data = [event.model_dump(mode="json") for event in self._events]
        content = json.dumps(data, indent=2, ensure_ascii=False)

        # Atomic write
        tmp_path = self.folder / f"{TIMELINE_FILENAME}.tmp"
        tmp_path.write_text(content, encoding="utf-8")
        tmp_path.replace(self.timeline_path)

        if self._console_lines:
            self.console_path.write_text(
                "\n".join(self._console_lines) + "\n", encoding="utf-8"
            )

        return self.timeline_path


def load_timeline(folder: Path) -> list[TimelineEvent]:
    """Load a persisted session timeline.

    Args:
        folder: Session folder containing timeline.json.

    Returns:
        Events in their recorded order.

    Raises:
        FileNotFoundError: If the folder has no timeline.json.
        ValueError: If the file is not a valid timeline.
    """
    content = (folder / TIMELINE_FILENAME).read_text(encoding="utf-8")
    raw = json.loads(content)
    if not isinstance(raw, list):
        raise ValueError("timeline.json must contain a JSON array")
    return [TimelineEvent.model_validate(item) for item in raw]
