"""Worker pool for concurrent archive and upload jobs.

This module provides:
- WorkerResult: Tagged success/failure outcome of one job
- WorkerPool: Runs a function over many items with bounded concurrency
"""

from __future__ import annotations

import logging
import queue
import threading
import time
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from typing import Any, Generic, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class WorkerResult(Generic[T]):
    """Result of one job.

    Attributes:
        item: The input the job ran on.
        success: Whether the job succeeded.
        result: The job's return value if successful.
        error: Error message if failed.
        elapsed_time: Time taken in seconds.
    """

    item: T
    success: bool
    result: Any = None
    error: str | None = None
    elapsed_time: float = 0.0


class WorkerPool:
    """Pool of worker threads running independent jobs.

    A failing job never cancels its siblings: every exception is captured
    in that job's WorkerResult and the pool keeps going.

    Usage:
        pool = WorkerPool(max_workers=4, name="archive")
        results = pool.run(archive_one, directories)
        done = [r.result for r in results if r.success]
    """

    def __init__(self, max_workers: int = 1, name: str = "worker") -> None:
        """Initialize the pool.

        Args:
            max_workers: Maximum concurrent jobs.
            name: Prefix for worker thread names.
        """
        if max_workers < 1:
            raise ValueError("max_workers must be at least 1")
        self._max_workers = max_workers
        self._name = name

    @property
    def max_workers(self) -> int:
        """Maximum number of concurrent jobs."""
        return self._max_workers

    def run(
        self,
        func: Callable[[T], Any],
        items: Sequence[T],
        on_result: Callable[[WorkerResult[T]], None] | None = None,
    ) -> list[WorkerResult[T]]:
        """Run func over every item and wait for all jobs.

        Args:
            func: Job function, called once per item.
            items: Inputs.
            on_result: Optional callback invoked as each job finishes.

        Returns:
            One WorkerResult per item, in input order.
        """
        results: list[WorkerResult[T] | None] = [None] * len(items)
        tasks: queue.Queue[int] = queue.Queue()
        lock = threading.Lock()

        for index in range(len(items)):
            tasks.put(index)

        def worker() -> None:
            while True:
                try:
                    index = tasks.get_nowait()
                except queue.Empty:
                    return
                result = self._execute(func, items[index])
                with lock:
                    results[index] = result
                    if on_result:
                        on_result(result)

        workers = [
            threading.Thread(target=worker, name=f"{self._name}-{i}", daemon=True)
            for i in range(min(self._max_workers, len(items)))
        ]
        for thread in workers:
            thread.start()
        for thread in workers:
            thread.join()

        return [r for r in results if r is not None]

    def _execute(self, func: Callable[[T], Any], item: T) -> WorkerResult[T]:
        started = time.monotonic()
        try:
            value = func(item)
        except Exception as e:
            logger.debug(f"{self._name} job failed for {item}: {e}")
            return WorkerResult(
                item=item,
                success=False,
                error=str(e) or type(e).__name__,
                elapsed_time=time.monotonic() - started,
            )
        return WorkerResult(
            item=item,
            success=True,
            result=value,
            elapsed_time=time.monotonic() - started,
        )
