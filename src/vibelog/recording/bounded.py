"""Bounded wait: race an awaitable against a fixed timer.

Unlike asyncio.wait_for, the awaitable is NOT cancelled when the timer
wins. Trace capture stop is driven by the browser and cannot be
reliably interrupted, so the loser keeps running in the background and
its side effects may still land after the bound expires.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable
from typing import Any

import structlog

logger = structlog.get_logger(__name__)

# Strong references to abandoned tasks so they are not garbage collected
# mid-flight.
_abandoned: set[asyncio.Future[Any]] = set()


def _reap(task: asyncio.Future[Any]) -> None:
    _abandoned.discard(task)
    if task.cancelled():
        return
    exc = task.exception()
    if exc is not None:
        logger.warning("Abandoned operation failed after timeout", error=str(exc))


async def race_timeout(awaitable: Awaitable[Any], timeout: float) -> bool:
    """Wait for an awaitable for at most timeout seconds.

    Args:
        awaitable: The operation to wait on.
        timeout: Bound in seconds.

    Returns:
        True if the operation completed within the bound, False if the
        timer won. On False the operation is left running.

    Raises:
        Exception: Whatever the operation raised, if it failed within
            the bound.
    """
    task = asyncio.ensure_future(awaitable)
    done, _ = await asyncio.wait({task}, timeout=timeout)
    if task in done:
        task.result()
        return True

    _abandoned.add(task)
    task.add_done_callback(_reap)
    return False
