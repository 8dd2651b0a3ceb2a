"""Parallel execution helpers for the texture pipeline."""
from __future__ import annotations

import concurrent.futures
import logging
from contextlib import contextmanager
from typing import Callable, Iterator, Optional, Sequence, TypeVar


LOGGER = logging.getLogger("fabrik_pipeline.parallel")

T = TypeVar("T")
R = TypeVar("R")


def create_thread_pool(max_workers: Optional[int] = None) -> concurrent.futures.ThreadPoolExecutor:
    """Create a thread pool executor with sane defaults."""

    return concurrent.futures.ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="fabrik")


def run_parallel(function: Callable[[T], R], items: Sequence[T], *, max_workers: Optional[int] = None) -> list[R]:
    """Run *function* for each element in *items* concurrently.

    Results come back in the order of *items*.  The first worker failure is
    logged and re-raised once every submitted task has settled, so callers
    never observe a partial result list.
    """

    if not items:
        return []
    with create_thread_pool(max_workers=max_workers) as executor:
        futures = [executor.submit(function, item) for item in items]
        concurrent.futures.wait(futures)
    results: list[R] = []
    for item, future in zip(items, futures):
        exc = future.exception()
        if exc is not None:
            LOGGER.error("Parallel worker failure for %r: %s", item, exc)
            raise exc
        results.append(future.result())
    return results


def run_sequential(function: Callable[[T], R], items: Sequence[T]) -> list[R]:
    """Sequential counterpart of :func:`run_parallel` with the same contract."""

    return [function(item) for item in items]


@contextmanager
def limited_threads(max_workers: Optional[int]) -> Iterator[None]:
    """Context manager that logs thread usage for diagnostics."""

    LOGGER.debug("Starting thread pool with up to %s workers", max_workers)
    try:
        yield
    finally:
        LOGGER.debug("Thread pool with %s workers completed", max_workers)
