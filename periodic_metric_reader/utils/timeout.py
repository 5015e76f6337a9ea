"""
Best-effort deadline for awaitables.
"""

import asyncio
import logging
from typing import Any, Awaitable, Set

from periodic_metric_reader.utils.error_classification import ExportTimeoutError

logger = logging.getLogger(__name__)

# Operations whose deadline passed; referenced until they settle on their own.
_abandoned_tasks: Set[asyncio.Future] = set()


def _consume_abandoned_result(task: asyncio.Future) -> None:
    """Retrieve the late outcome of an abandoned operation without surfacing it."""
    _abandoned_tasks.discard(task)

    if task.cancelled():
        logger.debug("Abandoned operation was cancelled")
        return

    error = task.exception()
    if error is not None:
        logger.debug(f"Abandoned operation finished with error after its deadline: {error!r}")
    else:
        logger.debug("Abandoned operation finished after its deadline")


def _abandon(task: asyncio.Future) -> None:
    _abandoned_tasks.add(task)
    task.add_done_callback(_consume_abandoned_result)


async def call_with_timeout(awaitable: Awaitable[Any], timeout_millis: float) -> Any:
    """
    Race an awaitable against a deadline.

    The awaitable runs as its own task. If the deadline wins, this stops
    waiting and raises ExportTimeoutError, but the task is NOT cancelled:
    it keeps running in the background and its eventual result or error is
    consumed here and never reaches the caller. The deadline itself is a
    plain event loop timer and keeps nothing alive once the loop stops.

    Args:
        awaitable: Operation to wait for
        timeout_millis: Deadline in milliseconds

    Returns:
        The operation's result if it settled first

    Raises:
        ExportTimeoutError: If the deadline elapsed first
        Exception: Whatever the operation raised, if it settled first
    """
    task = asyncio.ensure_future(awaitable)
    try:
        done, _ = await asyncio.wait({task}, timeout=timeout_millis / 1000)
    except asyncio.CancelledError:
        _abandon(task)
        raise

    if task in done:
        return task.result()

    _abandon(task)
    raise ExportTimeoutError(timeout_millis)
