"""Ordered first-success evaluation of concurrent checks."""

from __future__ import annotations

import asyncio
from typing import Awaitable, Callable, Iterable, Optional, TypeVar

T = TypeVar("T")
R = TypeVar("R")


async def first_in_order(
    items: Iterable[T],
    check: Callable[[T], Awaitable[Optional[R]]],
    max_concurrency: int,
) -> Optional[tuple[T, R]]:
    """Run ``check`` over *items* concurrently; return the earliest success.

    A success is any result other than ``None``.  Results are consumed in
    item order, so the outcome is identical to a sequential scan that stops
    at the first success.  Once that item is known every other task is
    cancelled, as is everything still in flight if the caller is cancelled.
    Exceptions raised by ``check`` propagate.
    """
    semaphore = asyncio.Semaphore(max(1, max_concurrency))

    async def _bounded(item: T) -> Optional[R]:
        async with semaphore:
            return await check(item)

    ordered = list(items)
    tasks = [asyncio.create_task(_bounded(item)) for item in ordered]
    try:
        for item, task in zip(ordered, tasks):
            result = await task
            if result is not None:
                return item, result
        return None
    finally:
        for task in tasks:
            if not task.done():
                task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
