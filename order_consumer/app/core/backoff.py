"""Backoff utilities.

`exponential_backoff` yields once per attempt. The first attempt yields 0.0 right
away; every later attempt first sleeps and then yields the delay it slept, so the
yielded value is the wait that actually preceded the attempt. Callers break out
of the loop on success.
"""
import asyncio
from typing import AsyncIterator


async def exponential_backoff(
    initial_delay: float,
    max_delay: float,
    multiplier: float,
    max_attempts: int,
) -> AsyncIterator[float]:
    delay = min(initial_delay, max_delay)
    for attempt in range(1, max_attempts + 1):
        if attempt == 1:
            yield 0.0
            continue
        await asyncio.sleep(delay)
        yield delay
        delay = min(delay * multiplier, max_delay)
