"""Fixed-period tick source."""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from typing import Final

logger: Final = logging.getLogger(__name__)


class RepeatingTimer:
    """Call a function every ``interval`` seconds on a daemon thread.

    The first call happens one interval after start(). cancel() is
    idempotent and, once it returns, the function will not be called again;
    a call already running when cancel() is invoked finishes but does not
    re-arm the timer.
    """

    def __init__(
        self,
        interval: float,
        function: Callable[[], None],
        name: str = "battery-tick",
    ) -> None:
        """Initialize the timer.

        Args:
            interval: Seconds between calls, must be positive
            function: Zero-argument callable invoked on every tick
            name: Thread name, useful in logs
        """
        if interval <= 0:
            raise ValueError("interval must be positive")
        self.interval = interval
        self.function = function
        self.name = name
        self._stopped = threading.Event()
        self._thread: threading.Thread | None = None
        self._lock = threading.Lock()

    @property
    def running(self) -> bool:
        return self._thread is not None and not self._stopped.is_set()

    def start(self) -> None:
        """Start ticking; a cancelled timer cannot be restarted."""
        with self._lock:
            if self._thread is not None or self._stopped.is_set():
                return
            self._thread = threading.Thread(target=self._run, name=self.name, daemon=True)
            self._thread.start()
        logger.debug("Timer %s started (every %.3fs)", self.name, self.interval)

    def cancel(self, wait: bool = True) -> None:
        """Stop the timer.

        Args:
            wait: Join the timer thread unless called from it
        """
        with self._lock:
            already = self._stopped.is_set()
            self._stopped.set()
            thread = self._thread

        if thread is not None and wait and thread is not threading.current_thread():
            thread.join(timeout=max(1.0, self.interval * 2))
        if not already:
            logger.debug("Timer %s cancelled", self.name)

    def _run(self) -> None:
        while not self._stopped.wait(self.interval):
            try:
                self.function()
            except Exception as exc:
                logger.error("Timer %s callback failed: %s", self.name, exc, exc_info=exc)
