"""Async utilities for running the synchronous converters in worker threads."""

import asyncio
import logging
from typing import Any, Callable, Coroutine, Sequence, TypeVar

T = TypeVar("T")
logger = logging.getLogger(__name__)

# Module-level semaphore, initialized before a batch conversion
_semaphore: asyncio.Semaphore | None = None


def init_semaphore(max_parallel: int = 4) -> None:
    """Initialize the concurrency semaphore. Call once per event loop."""
    global _semaphore
    _semaphore = asyncio.Semaphore(max_parallel)
    logger.debug("Conversion semaphore initialized: max_parallel=%d", max_parallel)


async def run_sync(func: Callable[..., T], *args: Any, **kwargs: Any) -> T:
    """Run a synchronous function in a thread pool without blocking the event loop.

    Does NOT acquire the semaphore.

    Args:
        func: Synchronous function to call
        *args: Positional arguments for func
        **kwargs: Keyword arguments for func

    Returns:
        Result of func(*args, **kwargs)

    Example:
        markdown = await run_sync(to_markdown, wiki_text)
    """
    return await asyncio.to_thread(func, *args, **kwargs)


async def run_sync_limited(func: Callable[..., T], *args: Any, **kwargs: Any) -> T:
    """Run a synchronous function in a thread pool, bounded by the semaphore.

    Falls back to unbounded if the semaphore is not initialized.
    """
    if _semaphore is None:
        return await asyncio.to_thread(func, *args, **kwargs)
    async with _semaphore:
        return await asyncio.to_thread(func, *args, **kwargs)


async def gather_limited(
    coros: Sequence[Coroutine[Any, Any, T]],
) -> list[T]:
    """Run coroutines concurrently and return their results in input order.

    Each coroutine should use run_sync_limited internally so the semaphore
    bounds the number of busy threads. Exceptions propagate from the first
    failure.
    """
    return list(await asyncio.gather(*coros))
