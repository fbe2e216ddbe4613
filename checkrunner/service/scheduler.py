"""Interval scheduler: runs a tick immediately, then every ``interval`` seconds.

Ticks never overlap: the next one is only scheduled after the previous tick
has returned. A tick that overruns the interval is followed by the next tick
right away; missed intervals are not queued up.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import Any

logger = logging.getLogger(__name__)


async def wait_for_shutdown(shutdown: asyncio.Event | None, timeout: float) -> bool:
    """Sleep up to ``timeout`` seconds. Returns True if shutdown was signalled."""
    if shutdown is None:
        await asyncio.sleep(timeout)
        return False
    if shutdown.is_set():
        return True
    try:
        await asyncio.wait_for(shutdown.wait(), timeout=timeout)
    except asyncio.TimeoutError:
        return False
    return True


async def repeat(
    name: str,
    tick: Callable[[], Awaitable[Any]],
    interval: float,
    shutdown: asyncio.Event,
) -> int:
    """Run ``tick`` on an interval until ``shutdown`` is set.

    Exceptions raised by a tick are logged and do not stop the loop.
    Returns the number of ticks executed.
    """
    loop = asyncio.get_running_loop()
    ticks = 0
    logger.info("%s started (interval=%ss)", name, interval)

    while not shutdown.is_set():
        started = loop.time()
        try:
            await tick()
        except asyncio.CancelledError:
            raise
        except Exception:
            logger.exception("%s tick failed", name)
        ticks += 1

        remaining = max(0.0, interval - (loop.time() - started))
        if await wait_for_shutdown(shutdown, remaining):
            break

    logger.info("%s cancelled after %d ticks", name, ticks)
    return ticks
