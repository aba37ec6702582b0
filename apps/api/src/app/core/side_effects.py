"""
Best-effort side channel.

Emails and geocoding lookups triggered by a request run after the response
is sent, through FastAPI background tasks. A failure here is logged and
dropped: the state change that triggered it is already committed.
"""

import logging
from collections.abc import Awaitable, Callable
from typing import Any

from fastapi import BackgroundTasks

logger = logging.getLogger(__name__)


async def run_best_effort(
    description: str,
    func: Callable[..., Awaitable[Any]],
    *args: Any,
    **kwargs: Any,
) -> Any:
    """Await ``func`` and return its result, or log and return None if it fails."""
    try:
        return await func(*args, **kwargs)
    except Exception:
        logger.exception(f"Side effect failed: {description}")
        return None


def dispatch(
    background_tasks: BackgroundTasks,
    description: str,
    func: Callable[..., Awaitable[Any]],
    *args: Any,
    **kwargs: Any,
) -> None:
    """Schedule ``func`` to run after the response without blocking it."""
    background_tasks.add_task(run_best_effort, description, func, *args, **kwargs)
