"""Typed ingestion events and the pump that feeds them to a session.

The browser layer delivers clicks, console lines, network responses,
page loads and disconnects as callbacks. Instead of calling the
SessionManager from those callbacks directly, the browser layer submits
typed events to an EventPump, which owns a bounded queue and dispatches
them one at a time in arrival order.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Protocol, Union

import structlog

from vibelog.models.timeline import NetworkCandidate
from vibelog.recording.session import SessionManager
from vibelog.recording.snapshot import clean_html

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class ClickEvent:
    x: float
    y: float
    selector: str | None = None
    tag: str | None = None


@dataclass(frozen=True)
class ConsoleEvent:
    level: str
    text: str
    source: str | None = None


@dataclass(frozen=True)
class NetworkResponseEvent:
    candidate: NetworkCandidate


@dataclass(frozen=True)
class PageLoadEvent:
    url: str | None = None


@dataclass(frozen=True)
class DisconnectEvent:
    reason: str | None = None


IngestionEvent = Union[
    ClickEvent, ConsoleEvent, NetworkResponseEvent, PageLoadEvent, DisconnectEvent
]


class BrowserBridge(Protocol):
    """Side effects the pump needs from the browser layer."""

    async def show_network_toast(self, method: str, url: str, status: int) -> None:
        """Flash a small in-page notification for a network response."""
        ...

    async def capture_dom(self) -> str:
        """Return the current document's outer HTML."""
        ...


class EventPump:
    """Dispatch ingestion events to a SessionManager in arrival order.

    submit() never blocks: when the queue is full the event is dropped
    with a warning. A failing handler is logged and the pump moves on to
    the next event.
    """

    def __init__(
        self,
        manager: SessionManager,
        bridge: BrowserBridge | None = None,
        maxsize: int | None = None,
    ) -> None:
        self.manager = manager
        self.bridge = bridge
        self._queue: asyncio.Queue[IngestionEvent | None] = asyncio.Queue(
            maxsize=maxsize or manager.config.queue_maxsize
        )
        self._task: asyncio.Task[None] | None = None

    def submit(self, event: IngestionEvent) -> bool:
        """Enqueue an event. Returns False if it was dropped."""
        try:
            self._queue.put_nowait(event)
        except asyncio.QueueFull:
            logger.warning("Ingestion queue full, dropping event", type=type(event).__name__)
            return False
        return True

    def start(self) -> asyncio.Task[None]:
        """Run the pump in a background task on the current loop."""
        if self._task is None or self._task.done():
            self._task = asyncio.create_task(self.run())
        return self._task

    async def run(self) -> None:
        """Consume events until close() is called."""
        while True:
            event = await self._queue.get()
            try:
                if event is None:
                    return
                await self.dispatch(event)
            except Exception as exc:
                logger.warning(
                    "Ingestion handler failed", type=type(event).__name__, error=str(exc)
                )
            finally:
                self._queue.task_done()

    async def drain(self) -> None:
        """Wait until every submitted event has been handled."""
        await self._queue.join()

    async def close(self) -> None:
        """Handle everything already queued, then stop the pump."""
        await self._queue.put(None)
        if self._task is not None:
            await self._task
            self._task = None

    async def dispatch(self, event: IngestionEvent) -> None:
        """Handle a single event."""
        if isinstance(event, ClickEvent):
            self.manager.record_click(event.x, event.y, event.selector, event.tag)
        elif isinstance(event, ConsoleEvent):
            self.manager.log_console(event.level, event.text, event.source)
        elif isinstance(event, NetworkResponseEvent):
            await self._handle_network(event.candidate)
        elif isinstance(event, PageLoadEvent):
            if self.manager.is_recording:
                await asyncio.sleep(self.manager.config.navigation_snapshot_delay)
                await self.capture_snapshot("navigation_complete")
        elif isinstance(event, DisconnectEvent):
            if self.manager.is_recording:
                logger.warning("Browser disconnected while recording, saving session")
                await self.manager.stop()
        else:
            raise TypeError(f"Unknown ingestion event: {type(event).__name__}")

    async def capture_snapshot(self, trigger: str) -> str | None:
        """Capture the page DOM through the bridge and save it.

        Returns:
            The snapshot filename, or None when there is no bridge or no
            session is recording.
        """
        if self.bridge is None or not self.manager.is_recording:
            return None
        html = await self.bridge.capture_dom()
        if self.manager.config.clean_snapshots:
            html = clean_html(html)
        return self.manager.save_snapshot(html, trigger)

    async def _handle_network(self, candidate: NetworkCandidate) -> None:
        decision = self.manager.record_network(candidate)
        if not decision.keep:
            return

        if decision.notify and self.bridge is not None:
            try:
                await self.bridge.show_network_toast(
                    candidate.method, candidate.url, candidate.status
                )
            except Exception as exc:
                # Page may be navigating; the toast is cosmetic
                logger.debug("Network toast failed", error=str(exc))

        if candidate.status >= 400 and self.manager.is_recording:
            await self.capture_snapshot(f"network_error_{candidate.status}")
