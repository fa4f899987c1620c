"""Async utilities for safe task management and scheduling.

Provides safe wrappers for asyncio.create_task with error handling, and the
Scheduler used by the periodic loops (credential refresh, race discovery).
Loops reschedule themselves through a Scheduler instead of sleeping inline,
so tests can substitute a scheduler that runs callbacks on demand.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable, Coroutine, Protocol, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


def create_safe_task(
    coro: Coroutine[Any, Any, T],
    *,
    name: str | None = None,
    on_error: Callable[[BaseException], None] | None = None,
    suppress_cancelled: bool = True,
) -> asyncio.Task[T]:
    """Create an asyncio task with proper error handling.

    Args:
        coro: The coroutine to run as a task
        name: Optional name for the task (for logging)
        on_error: Optional callback for exception handling
        suppress_cancelled: If True, don't log CancelledError

    Returns:
        The created task
    """
    task = asyncio.create_task(coro, name=name)

    def handle_exception(t: asyncio.Task) -> None:
        if t.cancelled():
            if not suppress_cancelled:
                logger.debug(f"Task {name or 'unnamed'} was cancelled")
            return

        exc = t.exception()
        if exc is None:
            return

        logger.error(
            f"Task {name or 'unnamed'} failed with {type(exc).__name__}: {exc}",
            exc_info=exc,
        )

        if on_error:
            try:
                on_error(exc)
            except Exception as handler_exc:
                logger.error(f"Error handler for task {name} also failed: {handler_exc}")

    task.add_done_callback(handle_exception)
    return task


async def cancel_task_safe(task: asyncio.Task | None, timeout: float = 5.0) -> bool:
    """Safely cancel a task with timeout.

    Args:
        task: The task to cancel
        timeout: Maximum time to wait for cancellation

    Returns:
        True if task was cancelled successfully, False otherwise
    """
    if task is None:
        return True

    if task.done():
        return True

    # A task cannot await its own cancellation
    if task is asyncio.current_task():
        task.cancel()
        return True

    task.cancel()

    try:
        await asyncio.wait_for(
            asyncio.shield(task),
            timeout=timeout,
        )
    except asyncio.CancelledError:
        return True
    except asyncio.TimeoutError:
        logger.warning(f"Task cancellation timed out after {timeout}s")
        return False
    except Exception as e:
        logger.debug(f"Task raised exception during cancellation: {e}")
        return True

    return task.done()


class ScheduledCall(Protocol):
    """Handle to a pending scheduled callback."""

    def cancel(self) -> Any: ...

    def done(self) -> bool: ...


class Scheduler(Protocol):
    """Runs an async callback once after a delay."""

    def call_later(
        self,
        delay: float,
        callback: Callable[[], Awaitable[None]],
        *,
        name: str | None = None,
    ) -> ScheduledCall: ...


class AsyncioScheduler:
    """Scheduler backed by the running event loop.

    Each call becomes a safe task that sleeps for ``delay`` seconds and then
    awaits the callback. Cancelling the returned task cancels the call.
    """

    def call_later(
        self,
        delay: float,
        callback: Callable[[], Awaitable[None]],
        *,
        name: str | None = None,
    ) -> asyncio.Task[None]:
        async def _run() -> None:
            if delay > 0:
                await asyncio.sleep(delay)
            await callback()

        return create_safe_task(_run(), name=name)
