"""Bounded-concurrency execution of independent build jobs."""

from __future__ import annotations

import asyncio
import inspect
import logging
from collections import deque
from collections.abc import Callable, Iterable
from typing import Any, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


async def _invoke(worker: Callable[[T], Any], item: T) -> None:
    if inspect.iscoroutinefunction(worker):
        await worker(item)
        return
    result = await asyncio.to_thread(worker, item)
    if inspect.isawaitable(result):
        await result


async def run_with_concurrency(
    items: Iterable[T],
    limit: int,
    worker: Callable[[T], Any],
) -> None:
    """Run ``worker`` over ``items`` with at most ``limit`` jobs in flight.

    Each lane picks the next queued item as soon as its current one finishes.
    The first failure stops further scheduling; jobs already started are left
    to finish and their outcomes are discarded, then that first error is
    re-raised.
    """
    pending: deque[T] = deque(items)
    if not pending:
        return
    failures: list[Exception] = []

    async def _lane() -> None:
        while pending and not failures:
            item = pending.popleft()
            try:
                await _invoke(worker, item)
            except Exception as exc:
                if not failures:
                    failures.append(exc)
                else:
                    logger.debug("Discarding later failure: %r", exc)
                return

    lanes = min(max(1, limit), len(pending))
    await asyncio.gather(*(_lane() for _ in range(lanes)))
    if failures:
        raise failures[0]
