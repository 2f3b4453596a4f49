"""All-or-nothing concurrent batches over a thread pool.

Each task is a zero-argument callable. Results come back in submission order.
The first failure is re-raised as-is and tasks that have not started yet are
cancelled; there is no partial result.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from concurrent.futures import FIRST_EXCEPTION, ThreadPoolExecutor, wait
from typing import TypeVar

T = TypeVar("T")


def run_all(tasks: Sequence[Callable[[], T]], *, max_workers: int) -> list[T]:
    """Run ``tasks`` concurrently and return their results in input order."""

    if not isinstance(max_workers, int) or max_workers < 1:
        raise ValueError("max_workers must be a positive integer")

    if not tasks:
        return []

    if len(tasks) == 1:
        return [tasks[0]()]

    with ThreadPoolExecutor(max_workers=min(max_workers, len(tasks))) as pool:
        futures = [pool.submit(task) for task in tasks]
        done, _ = wait(futures, return_when=FIRST_EXCEPTION)

        for future in futures:
            if future in done and future.exception() is not None:
                pool.shutdown(wait=False, cancel_futures=True)
                raise future.exception()  # type: ignore[misc]

        return [future.result() for future in futures]


__all__ = ["run_all"]
