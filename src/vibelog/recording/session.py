"""SessionManager: the recording session state machine.

States cycle ``IDLE -> RECORDING -> STOPPING -> IDLE``. One manager owns
at most one Session at a time; a second concurrent session means a
second manager instance.

All ingestion arrives from the browser collaborator's event loop, so
state checks and transitions happen synchronously between awaits and
cannot interleave. The only await inside a transition is the bounded
wait on trace capture in stop(); the STOPPING state makes any stop()
that arrives during it a no-op.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any, Protocol

import structlog

from vibelog.errors import SessionStateError
from vibelog.models.config import RecorderConfig
from vibelog.models.performance import TraceError
from vibelog.models.timeline import EventType, NetworkCandidate, path_safe_timestamp
from vibelog.recording.bounded import race_timeout
from vibelog.recording.filters import FilterDecision, NoiseFilter, build_network_payload
from vibelog.recording.redaction import build_sanitizer
from vibelog.storage.session_store import SessionStore
from vibelog.trace.summarizer import summarize_trace_file

logger = structlog.get_logger(__name__)


class SessionState(str, Enum):
    """Lifecycle states of a SessionManager."""

    IDLE = "idle"
    RECORDING = "recording"
    STOPPING = "stopping"


class TraceCapture(Protocol):
    """A running performance trace capture owned by the browser layer."""

    path: Path

    async def stop(self) -> None:
        """Stop capturing and write the raw trace to ``path``."""
        ...


@dataclass
class Session:
    """One bounded recording interval."""

    id: str
    started_at: datetime
    store: SessionStore
    active: bool = True
    trace: TraceCapture | None = None

    @property
    def folder(self) -> Path:
        return self.store.folder


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class SessionManager:
    """Orchestrate session lifecycle, event logging, and finalization.

    Logging calls made while no session is recording are silently
    ignored so stray callbacks from the page never raise.
    """

    def __init__(
        self,
        config: RecorderConfig | None = None,
        clock: Callable[[], datetime] = _utcnow,
        noise_filter: NoiseFilter | None = None,
    ) -> None:
        self.config = config or RecorderConfig()
        self.noise_filter = noise_filter or NoiseFilter(self.config.extra_blocked_domains)
        self._clock = clock
        self._sanitizer = build_sanitizer(self.config.extra_sensitive_keys)
        self._state = SessionState.IDLE
        self._session: Session | None = None

    # -- State queries --

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def is_recording(self) -> bool:
        """True while a session accepts events."""
        return (
            self._state is SessionState.RECORDING
            and self._session is not None
            and self._session.active
        )

    @property
    def session(self) -> Session | None:
        return self._session

    # -- Lifecycle --

    def init(self, output_dir: Path) -> Path:
        """Start a new recording session.

        If a session is already recording it is ended first (its timeline
        is saved without trace processing) so no buffered events are lost.

        Args:
            output_dir: Base capture directory.

        Returns:
            The new session folder.

        Raises:
            SessionStateError: If a stop() is still in progress.
        """
        if self._state is SessionState.STOPPING:
            raise SessionStateError(
                "Cannot start a session while the previous one is stopping"
            )
        if self._state is SessionState.RECORDING:
            logger.warning(
                "Session already recording, saving it before starting a new one",
                folder=str(self._session.folder) if self._session else None,
            )
            self.end()

        started_at = self._clock()
        store = SessionStore.create(Path(output_dir), started_at, sanitizer=self._sanitizer)
        self._session = Session(
            id=path_safe_timestamp(started_at),
            started_at=started_at,
            store=store,
        )
        self._state = SessionState.RECORDING

        logger.info("Session initialized", folder=str(store.folder))
        return store.folder

    def attach_trace(self, capture: TraceCapture) -> None:
        """Register the performance trace capture running for this session.

        Ignored when no session is recording.
        """
        if not self.is_recording or self._session is None:
            return
        self._session.trace = capture

    async def stop(self) -> Path | None:
        """Stop the current session and persist its timeline.

        At most one call is effective: a call arriving while another
        stop() is in progress, or with no session recording, returns None
        immediately. Steps, in order:

        1. Stop accepting events (racing events are dropped).
        2. Stop trace capture, bounded by ``trace_stop_timeout``. A
           timeout or failure is logged and tracing is skipped.
        3. Summarize the raw trace into a PERFORMANCE_SUMMARY event and
           delete the raw file (delete failures are logged).
        4. Write timeline.json. Always attempted, whatever happened above.

        Returns:
            The session folder, or None if there was no session to stop
            or the timeline could not be written.
        """
        if self._state is not SessionState.RECORDING or self._session is None:
            if self._state is SessionState.STOPPING:
                logger.debug("Stop already in progress, ignoring")
            return None

        session = self._session
        self._state = SessionState.STOPPING
        session.active = False

        folder: Path | None = None
        try:
            await self._finish_trace(session)
        finally:
            folder = self._flush(session)
            self._session = None
            self._state = SessionState.IDLE
        return folder

    def end(self) -> Path | None:
        """End the current session immediately, without trace processing.

        Returns:
            The session folder, or None if nothing was recording or the
            timeline could not be written.
        """
        if self._state is not SessionState.RECORDING or self._session is None:
            return None

        session = self._session
        session.active = False
        if session.trace is not None:
            logger.warning("Trace capture abandoned", folder=str(session.folder))
        try:
            return self._flush(session)
        finally:
            self._session = None
            self._state = SessionState.IDLE

    async def _finish_trace(self, session: Session) -> None:
        capture = session.trace
        if capture is None:
            return

        try:
            completed = await race_timeout(capture.stop(), self.config.trace_stop_timeout)
        except Exception as exc:
            logger.warning("Trace capture stop failed", error=str(exc))
            return
        if not completed:
            logger.warning(
                "Trace capture stop timed out, skipping performance summary",
                timeout=self.config.trace_stop_timeout,
            )
            return

        trace_path = Path(capture.path)
        if not trace_path.exists():
            logger.warning("Raw trace file missing", path=str(trace_path))
            return

        result = summarize_trace_file(trace_path)
        if isinstance(result, TraceError):
            logger.warning("Performance summary skipped", error=result.error)
        else:
            session.store.append(
                EventType.PERFORMANCE_SUMMARY,
                result.model_dump(mode="json"),
                self._clock(),
            )

        try:
            trace_path.unlink()
        except OSError as exc:
            logger.warning("Raw trace delete failed", path=str(trace_path), error=str(exc))

    def _flush(self, session: Session) -> Path | None:
        try:
            session.store.flush()
        except OSError as exc:
            logger.error("Timeline write failed", folder=str(session.folder), error=str(exc))
            return None
        logger.info("Timeline saved", folder=str(session.folder), events=len(session.store))
        return session.folder

    # -- Event logging --

    def log_event(self, event_type: EventType | str, data: Any = None) -> None:
        """Append a redacted, timestamped event to the current session.

        Silently does nothing unless a session is recording. Never raises:
        payloads that cannot be recorded are dropped with a warning.
        """
        session = self._session
        if session is None or not session.active:
            return
        try:
            session.store.append(
                EventType(event_type),
                data if data is not None else {},
                self._clock(),
            )
        except (TypeError, ValueError, RecursionError) as exc:
            logger.warning("Dropped malformed event", type=str(event_type), error=str(exc))

    def record_click(
        self,
        x: float,
        y: float,
        selector: str | None = None,
        tag: str | None = None,
    ) -> None:
        """Log a USER_INTERACTION click."""
        self.log_event(
            EventType.USER_INTERACTION,
            {"action": "click", "x": x, "y": y, "selector": selector, "tagName": tag},
        )

    def log_console(self, level: str, text: str, source: str | None = None) -> None:
        """Log a page console message.

        Messages containing any configured ignore substring are skipped.
        Errors become CONSOLE_ERROR events. With console_mode "separate"
        messages go to console_dump.log instead of the timeline.
        """
        session = self._session
        if session is None or not session.active:
            return
        if any(fragment in text for fragment in self.config.console_ignore_substrings):
            return

        if self.config.console_mode == "separate":
            session.store.append_console_line(self._clock(), level, text, source)
            return

        event_type = EventType.CONSOLE_ERROR if level.lower() == "error" else EventType.CONSOLE
        self.log_event(event_type, {"type": level, "text": text, "location": source})

    def record_network(self, candidate: NetworkCandidate) -> FilterDecision:
        """Run a response through the noise filter and log it if kept.

        Returns the filter decision whether or not a session is recording,
        so the caller can still notify the page.
        """
        decision = self.noise_filter.evaluate(candidate)
        if decision.keep and self.is_recording:
            payload = build_network_payload(
                candidate,
                capture_body=decision.capture_body,
                snippet_limit=self.config.response_snippet_limit,
                sanitizer=self._sanitizer,
            )
            self.log_event(EventType.NETWORK_REQUEST, payload)
            logger.debug(
                "Network request kept",
                method=candidate.method,
                status=candidate.status,
                url=candidate.url[:80],
            )
        return decision

    def save_snapshot(self, content: str, trigger: str) -> str | None:
        """Write a DOM snapshot file and log a SNAPSHOT event for it.

        Returns:
            The snapshot filename, or None if no session is recording.

        Raises:
            OSError: If the snapshot file cannot be written.
        """
        session = self._session
        if session is None or not session.active:
            return None

        filename = session.store.write_snapshot(content, self._clock())
        self.log_event(EventType.SNAPSHOT, {"filename": filename, "trigger": trigger})
        logger.info("Snapshot saved", filename=filename, trigger=trigger)
        return filename
