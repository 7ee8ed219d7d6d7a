"""Simple asyncio scheduler for periodic maintenance tasks (audit retention sweeps)."""
import asyncio
import logging
from typing import Any, Awaitable, Callable

logger = logging.getLogger(__name__)


async def _periodic_task(
    name: str,
    interval_seconds: float,
    coro: Callable[[], Awaitable[Any]],
    initial_delay_seconds: float,
):
    if initial_delay_seconds > 0:
        await asyncio.sleep(initial_delay_seconds)
    while True:
        try:
            result = await coro()
            logger.debug(f"Scheduled task '{name}' finished: {result}")
        except Exception as e:
            logger.error(f"Scheduled task '{name}' error: {e}", exc_info=True)
        await asyncio.sleep(interval_seconds)


def start_scheduler(
    name: str,
    interval_seconds: float,
    coro: Callable[[], Awaitable[Any]],
    initial_delay_seconds: float = 0.0,
) -> asyncio.Task:
    """Start periodic coro as a named background task and return the task."""
    if interval_seconds <= 0:
        raise ValueError(f"interval must be positive, got {interval_seconds}")
    return asyncio.create_task(
        _periodic_task(name, interval_seconds, coro, initial_delay_seconds),
        name=f"scheduled:{name}",
    )
