"""Helpers for splitting id lists into store-sized batches and running them."""

import asyncio
from collections.abc import Awaitable, Callable, Iterable, Iterator, Sequence
from typing import TypeVar

T = TypeVar("T")


def chunked(items: Sequence[T], size: int) -> Iterator[list[T]]:
    """
    Split a sequence into consecutive chunks of at most `size` items.

    Args:
        items: Items to split
        size: Max chunk size (must be positive)

    Yields:
        Lists of items, in order
    """
    if size < 1:
        raise ValueError(f"Chunk size must be positive, got {size}")
    for start in range(0, len(items), size):
        yield list(items[start:start + size])


async def gather_bounded(
    calls: Iterable[Callable[[], Awaitable[T]]], limit: int
) -> list[T]:
    """
    Run call factories concurrently with at most `limit` in flight.

    Results keep the order of `calls`. The first failure propagates.

    Args:
        calls: Zero-argument callables returning awaitables
        limit: Max concurrently awaited calls (must be positive)

    Returns:
        Results in call order
    """
    if limit < 1:
        raise ValueError(f"Concurrency limit must be positive, got {limit}")
    semaphore = asyncio.Semaphore(limit)

    async def run(call: Callable[[], Awaitable[T]]) -> T:
        async with semaphore:
            return await call()

    return list(await asyncio.gather(*(run(call) for call in calls)))
