"""
Async helpers for running blocking upstream calls in a thread pool.

Earth Engine's ``getInfo()`` and the weather archive's HTTP calls are blocking.
They are run in a shared thread pool so the event loop keeps serving other
requests, each under an explicit timeout and a bounded retry policy.
"""

import asyncio
import logging
from concurrent.futures import ThreadPoolExecutor
from functools import partial
from typing import Any, Callable, Optional, TypeVar

from tenacity import (
    AsyncRetrying,
    before_sleep_log,
    retry_if_exception_type,
    retry_if_not_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from river_monitor.config.settings import get_settings
from river_monitor.exceptions import (
    ServiceNotReadyError,
    UpstreamError,
    UpstreamTimeout,
)

logger = logging.getLogger(__name__)

# Global thread pool executor for blocking upstream operations
_executor: ThreadPoolExecutor | None = None

# Semaphore to limit concurrent upstream calls across all requests
_upstream_semaphore: asyncio.Semaphore | None = None

T = TypeVar("T")


def get_executor() -> ThreadPoolExecutor:
    """
    Get or create the global thread pool executor.

    Returns:
        ThreadPoolExecutor: Shared executor for blocking operations
    """
    global _executor
    if _executor is None:
        max_workers = get_settings().executor_max_workers
        _executor = ThreadPoolExecutor(
            max_workers=max_workers,
            thread_name_prefix="upstream_worker_"
        )
        logger.info(f"Created thread pool executor with {max_workers} workers")
    return _executor


def get_semaphore() -> asyncio.Semaphore:
    """
    Get or create the global semaphore limiting concurrent upstream calls.

    Returns:
        asyncio.Semaphore: Semaphore limiting concurrent calls
    """
    global _upstream_semaphore
    if _upstream_semaphore is None:
        limit = get_settings().upstream_max_concurrent
        _upstream_semaphore = asyncio.Semaphore(limit)
        logger.info(f"Created upstream semaphore with {limit} concurrent limit")
    return _upstream_semaphore


async def run_in_executor(func: Callable[..., T], *args: Any, **kwargs: Any) -> T:
    """
    Run a blocking function in the thread pool executor.

    Args:
        func: Blocking function to execute
        *args: Positional arguments for the function
        **kwargs: Keyword arguments for the function

    Returns:
        Result of the blocking function
    """
    loop = asyncio.get_running_loop()
    executor = get_executor()

    if kwargs:
        return await loop.run_in_executor(executor, partial(func, *args, **kwargs))
    return await loop.run_in_executor(executor, func, *args)


async def run_in_executor_with_limit(
    func: Callable[..., T], *args: Any, timeout: Optional[float] = None, **kwargs: Any
) -> T:
    """
    Run a blocking function in the thread pool under the upstream semaphore.

    Raises:
        UpstreamTimeout: if ``timeout`` seconds elapse first. The worker thread
            is not interrupted; its result is discarded.
    """
    semaphore = get_semaphore()
    async with semaphore:
        try:
            return await asyncio.wait_for(
                run_in_executor(func, *args, **kwargs), timeout=timeout
            )
        except asyncio.TimeoutError:
            name = getattr(func, "__qualname__", repr(func))
            raise UpstreamTimeout(f"{name} timed out after {timeout} seconds")


async def call_upstream(
    func: Callable[..., T],
    *args: Any,
    timeout: Optional[float] = None,
    attempts: Optional[int] = None,
    **kwargs: Any,
) -> T:
    """
    Call a blocking upstream function with timeout and bounded retry.

    Only ``UpstreamError`` is retried, with exponential backoff. Timeouts and
    an uninitialized session fail on the first attempt.

    Example:
        >>> stats = await call_upstream(reducer.reduce_climate_window, region, start, end)
    """
    settings = get_settings()
    retrying = AsyncRetrying(
        stop=stop_after_attempt(attempts or settings.upstream_retry_attempts),
        wait=wait_exponential(
            multiplier=1,
            min=settings.upstream_retry_min_wait,
            max=settings.upstream_retry_max_wait,
        ),
        retry=(
            retry_if_exception_type(UpstreamError)
            & retry_if_not_exception_type((UpstreamTimeout, ServiceNotReadyError))
        ),
        before_sleep=before_sleep_log(logger, logging.WARNING),
        reraise=True,
    )
    async for attempt in retrying:
        with attempt:
            return await run_in_executor_with_limit(
                func,
                *args,
                timeout=timeout or settings.upstream_timeout_seconds,
                **kwargs,
            )


class CancellationToken:
    """Cooperative cancellation flag checked between batch intervals."""

    def __init__(self):
        self._event = asyncio.Event()
        self.reason: Optional[str] = None

    def cancel(self, reason: str = "cancelled") -> None:
        self.reason = reason
        self._event.set()

    @property
    def is_cancelled(self) -> bool:
        return self._event.is_set()


def shutdown_executor():
    """
    Shutdown the global thread pool executor.

    Should be called during application shutdown to clean up resources.
    """
    global _executor, _upstream_semaphore
    if _executor is not None:
        logger.info("Shutting down thread pool executor")
        _executor.shutdown(wait=False, cancel_futures=True)
        _executor = None
    _upstream_semaphore = None
