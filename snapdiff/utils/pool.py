"""Bounded worker pool for independent, CPU-bound comparisons."""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from concurrent.futures import Future, ThreadPoolExecutor
from typing import TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")
R = TypeVar("R")


def run_bounded(fn: Callable[[T], R], items: Iterable[T], max_workers: int) -> list[R]:
    """Apply ``fn`` to every item on at most ``max_workers`` threads.

    Results come back in input order regardless of completion order. The
    first exception raised by a job cancels every job that has not started
    yet and is re-raised to the caller.
    """
    if max_workers < 1:
        raise ValueError(f"max_workers must be >= 1, got {max_workers}")
    work = list(items)
    if not work:
        return []
    if max_workers == 1 or len(work) == 1:
        return [fn(item) for item in work]

    workers = min(max_workers, len(work))
    logger.debug("Running %d jobs on %d workers", len(work), workers)
    with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="snapdiff") as pool:
        futures: list[Future[R]] = [pool.submit(fn, item) for item in work]
        results: list[R] = []
        try:
            for future in futures:
                results.append(future.result())
        except BaseException:
            for future in futures:
                future.cancel()
            raise
    return results
