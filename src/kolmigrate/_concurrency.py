"""Bounded fan-out for per-record store lookups."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable, Iterable
from typing import TypeVar

T = TypeVar("T")
R = TypeVar("R")


async def gather_bounded(
    items: Iterable[T],
    func: Callable[[T], Awaitable[R]],
    max_concurrent: int,
) -> list[R]:
    """
    Run ``func`` over items concurrently, at most ``max_concurrent`` at once.

    Uses asyncio.Semaphore to limit the number of in-flight operations and
    asyncio.TaskGroup so a failure cancels the remaining calls. Results keep
    the order of ``items``. The first exception is re-raised unwrapped from
    the task group's ExceptionGroup.

    Args:
        items: Inputs to process
        func: Coroutine function applied to each item
        max_concurrent: Maximum concurrent operations

    Returns:
        One result per item, in input order
    """
    semaphore = asyncio.Semaphore(max_concurrent)

    async def run_with_semaphore(item: T) -> R:
        async with semaphore:
            return await func(item)

    try:
        async with asyncio.TaskGroup() as group:
            tasks = [group.create_task(run_with_semaphore(item)) for item in items]
    except BaseExceptionGroup as error_group:
        raise error_group.exceptions[0] from None

    return [task.result() for task in tasks]


__all__ = ["gather_bounded"]
