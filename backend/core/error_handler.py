"""Global error handling helpers for async work outside the request cycle."""

import asyncio
import logging
from typing import Any, Coroutine

logger = logging.getLogger(__name__)

_background_tasks: set[asyncio.Task] = set()


def setup_global_exception_handler() -> None:
    """Set up global exception handler for uncaught asyncio exceptions."""

    def handle_exception(loop: asyncio.AbstractEventLoop, context: dict) -> None:
        exception = context.get("exception")
        message = context.get("message", "Unhandled exception in async task")

        if exception:
            logger.error(
                "Asyncio exception handler caught: %s",
                message,
                exc_info=exception,
            )
        else:
            logger.error(
                "Asyncio exception handler caught: %s (context: %s)",
                message,
                context,
            )

    try:
        loop = asyncio.get_running_loop()
        loop.set_exception_handler(handle_exception)
        logger.info("Global asyncio exception handler installed")
    except RuntimeError:
        logger.debug("No running loop to install exception handler yet")


def safe_background_task(task_name: str, task_coro: Coroutine[Any, Any, Any]) -> asyncio.Task:
    """
    Schedule fire-and-forget work.

    Failures are logged and dropped; the caller's response never waits on or
    observes the outcome. A strong reference is held until the task finishes.
    """

    async def wrapped() -> Any:
        try:
            return await task_coro
        except asyncio.CancelledError:
            logger.info("Background task '%s' cancelled", task_name)
        except Exception:
            logger.exception("Background task '%s' failed with unhandled exception", task_name)
        return None

    task = asyncio.create_task(wrapped(), name=task_name)
    _background_tasks.add(task)
    task.add_done_callback(_background_tasks.discard)
    return task


async def drain_background_tasks(timeout: float = 5.0) -> None:
    """Wait for pending fire-and-forget tasks, cancelling what is left after timeout."""
    pending = [task for task in _background_tasks if not task.done()]
    if not pending:
        return
    logger.info("Draining %d background tasks...", len(pending))
    _done, still_pending = await asyncio.wait(pending, timeout=timeout)
    for task in still_pending:
        logger.warning("Cancelling background task: %s", task.get_name())
        task.cancel()


__all__ = ["drain_background_tasks", "safe_background_task", "setup_global_exception_handler"]
