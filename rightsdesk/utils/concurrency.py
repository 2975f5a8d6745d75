"""Bounded-concurrency helpers for fan-out calls to external providers.

There is no module-level semaphore: every caller passes its own, so two
requests never share throttling state.

Two patterns are exposed:

1. **throttled_gather** -- ``asyncio.gather`` with each awaitable wrapped in
   a semaphore acquire/release.  Results come back in input order, never in
   completion order, which is what keeps chunk positions stable when chunk
   embeddings are requested in parallel.

2. **first_exception** -- pick the first failure out of a
   ``return_exceptions=True`` gather so a caller can fail the whole batch.
"""

from __future__ import annotations

import asyncio
from typing import Awaitable, TypeVar

_T = TypeVar("_T")


async def throttled_gather(
    coros: list[Awaitable[_T]],
    semaphore: asyncio.Semaphore,
    return_exceptions: bool = True,
) -> list[_T | BaseException]:
    """Run awaitables concurrently, at most ``semaphore`` slots at a time.

    Parameters
    ----------
    coros:
        Awaitable objects to execute concurrently.
    semaphore:
        Semaphore that bounds how many awaitables run at once.
    return_exceptions:
        If ``True``, exceptions are returned in the results list rather
        than being raised.  Mirrors ``asyncio.gather`` semantics.

    Returns
    -------
    list[_T | BaseException]
        Results in the same order as the input coroutines.
    """

    async def _wrapped(coro: Awaitable[_T]) -> _T:
        async with semaphore:
            return await coro

    tasks = [_wrapped(c) for c in coros]
    return await asyncio.gather(*tasks, return_exceptions=return_exceptions)


def first_exception(results: list[_T | BaseException]) -> BaseException | None:
    """Return the first exception in *results* (by position), or ``None``."""
    for result in results:
        if isinstance(result, BaseException):
            return result
    return None
