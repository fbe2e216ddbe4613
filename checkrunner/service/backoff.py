"""Retry with a doubling delay plus random jitter, aware of the shutdown signal.

The policy is a plain value; logging is left to the optional ``on_retry``
callback so the loop itself stays side-effect free.
"""

from __future__ import annotations

import asyncio
import random
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import TypeVar

from ..errors import RetryCancelledError, RetryExhaustedError
from .scheduler import wait_for_shutdown

T = TypeVar("T")


@dataclass(frozen=True)
class BackoffPolicy:
    """Max attempts, base delay, delay cap and jitter bound (seconds).

    The wait after attempt ``n`` is ``delay * 2 ** (n - 1)``, capped at
    ``max_delay``, plus a uniform jitter in ``[0, max_jitter]``.
    """

    attempts: int = 8
    delay: float = 2.0
    max_jitter: float = 3.0
    max_delay: float = 128.0

    def __post_init__(self) -> None:
        if self.attempts < 1:
            raise ValueError("attempts must be >= 1")
        if self.delay < 0 or self.max_jitter < 0 or self.max_delay < 0:
            raise ValueError("delay, max_jitter and max_delay must be >= 0")

    def next_delay(self, attempt: int = 1, rng: random.Random | None = None) -> float:
        base = min(self.delay * 2 ** max(attempt - 1, 0), self.max_delay)
        jitter = (rng or random).uniform(0, self.max_jitter) if self.max_jitter else 0.0
        return base + jitter


async def retry(
    fn: Callable[[], Awaitable[T]],
    policy: BackoffPolicy,
    shutdown: asyncio.Event | None = None,
    on_retry: Callable[[int, Exception], None] | None = None,
    rng: random.Random | None = None,
) -> T:
    """Call ``fn`` until it succeeds or the attempt budget is spent.

    Raises RetryExhaustedError carrying only the last error, or
    RetryCancelledError as soon as ``shutdown`` is set.
    """
    last_error: Exception | None = None

    for attempt in range(1, policy.attempts + 1):
        if shutdown is not None and shutdown.is_set():
            raise RetryCancelledError(attempt - 1, last_error)
        try:
            return await fn()
        except Exception as e:
            last_error = e
            if on_retry is not None:
                on_retry(attempt, e)

        if attempt == policy.attempts:
            break
        if await wait_for_shutdown(shutdown, policy.next_delay(attempt, rng)):
            raise RetryCancelledError(attempt, last_error)

    raise RetryExhaustedError(policy.attempts, last_error)
