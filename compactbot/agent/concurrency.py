"""Bounded-concurrency ordered map over asyncio tasks."""

import asyncio
import math
from typing import Awaitable, Callable, Sequence, TypeVar

T = TypeVar("T")
U = TypeVar("U")


async def map_with_concurrency(
    items: Sequence[T],
    concurrency: float,
    mapper: Callable[[T, int], Awaitable[U]],
) -> list[U]:
    """Map *mapper* over *items* with at most *concurrency* calls in flight.

    ``result[i]`` always corresponds to ``items[i]``, whatever order the calls
    finish in. Concurrency is floored and clamped to at least 1. The first
    mapper exception cancels the remaining workers and is re-raised.
    """
    if not items:
        return []

    limit = max(1, math.floor(concurrency))
    results: list[U | None] = [None] * len(items)
    # Shared cursor; each (index, item) pair is handed to exactly one worker
    cursor = iter(enumerate(items))

    async def worker() -> None:
        for index, item in cursor:
            results[index] = await mapper(item, index)

    workers = [asyncio.create_task(worker()) for _ in range(min(limit, len(items)))]
    try:
        await asyncio.gather(*workers)
    except BaseException:
        for task in workers:
            task.cancel()
        raise

    return results  # type: ignore[return-value]
