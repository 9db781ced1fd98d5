"""Single-consumer executors that serialize work onto one thread."""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Final, Protocol, runtime_checkable

logger: Final = logging.getLogger(__name__)

Task = Callable[[], None]


@runtime_checkable
class Executor(Protocol):
    """Protocol for executors that run submitted tasks one at a time."""

    def submit(self, task: Task) -> bool:
        """Queue a task.

        Args:
            task: Zero-argument callable

        Returns:
            True if the task was accepted, False after shutdown
        """
        ...

    def shutdown(self, wait: bool = True) -> None:
        """Stop accepting tasks; idempotent."""
        ...


class SerialExecutor:
    """Run tasks in submission order on a single worker thread.

    Every notification and every timer tick is posted here, so whatever a
    task touches is only ever touched by one thread at a time.
    """

    def __init__(self, name: str = "battery-monitor") -> None:
        self.name = name
        self._pool = ThreadPoolExecutor(max_workers=1, thread_name_prefix=name)
        self._lock = threading.Lock()
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def submit(self, task: Task) -> bool:
        with self._lock:
            if self._closed:
                return False
            future = self._pool.submit(task)
        future.add_done_callback(self._log_failure)
        return True

    def shutdown(self, wait: bool = True) -> None:
        with self._lock:
            if self._closed:
                return
            self._closed = True
        self._pool.shutdown(wait=wait, cancel_futures=True)
        logger.debug("Executor %s shut down", self.name)

    @staticmethod
    def _log_failure(future: Future[None]) -> None:
        if future.cancelled():
            return
        exc = future.exception()
        if exc is not None:
            logger.error("Task failed on serial executor: %s", exc, exc_info=exc)


class InlineExecutor:
    """Run each task immediately on the submitting thread.

    Serialization holds only if callers never submit concurrently, which is
    the case in tests and in single-threaded hosts.
    """

    def __init__(self) -> None:
        self._closed = False
        self.executed = 0

    @property
    def closed(self) -> bool:
        return self._closed

    def submit(self, task: Task) -> bool:
        if self._closed:
            return False
        self.executed += 1
        task()
        return True

    def shutdown(self, wait: bool = True) -> None:
        self._closed = True
