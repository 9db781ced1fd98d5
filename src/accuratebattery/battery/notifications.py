"""Battery-state-change notification sources.

Neither supported host exposes a change notification that can be consumed
without native bindings, so the portable source polls: it re-reads the
battery on a background thread and invokes the subscriber's callback
whenever the reading differs from the previous one.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Hashable
from typing import Final

from accuratebattery.battery.errors import NotificationError, ReadError, ServiceUnavailableError
from accuratebattery.battery.protocols import (
    ManualNotificationSource,
    NotificationCallback,
    NotificationSource,
    SnapshotReader,
)

logger: Final = logging.getLogger(__name__)

DEFAULT_POLL_SECONDS: Final = 2.0


class PollingSubscription:
    """Subscription backed by a polling thread."""

    def __init__(
        self,
        source: PollingNotificationSource,
        callback: NotificationCallback,
        initial: Hashable,
    ) -> None:
        self._source = source
        self._callback = callback
        self._last = initial
        self._stopped = threading.Event()
        self._thread = threading.Thread(
            target=self._run, name="battery-notifications", daemon=True
        )

    @property
    def active(self) -> bool:
        return not self._stopped.is_set()

    def start(self) -> None:
        self._thread.start()

    def cancel(self) -> None:
        """Stop polling; safe to call more than once and from the callback."""
        if self._stopped.is_set():
            return
        self._stopped.set()
        if self._thread.is_alive() and self._thread is not threading.current_thread():
            self._thread.join(timeout=max(1.0, self._source.interval * 2))
        logger.debug("Notification subscription cancelled")

    def _run(self) -> None:
        while not self._stopped.wait(self._source.interval):
            try:
                current = self._source.fingerprint()
            except Exception as exc:
                logger.error("Battery poll failed: %s", exc, exc_info=exc)
                current = (type(exc).__name__, str(exc))
            if current == self._last:
                continue
            self._last = current
            if self._stopped.is_set():
                break
            try:
                self._callback()
            except Exception as exc:
                logger.error("Notification callback failed: %s", exc, exc_info=exc)


class PollingNotificationSource:
    """Notify subscribers when successive reads of a reader differ."""

    def __init__(self, reader: SnapshotReader, interval: float = DEFAULT_POLL_SECONDS) -> None:
        """Initialize with the reader to watch.

        Args:
            reader: Reader whose output is compared between polls
            interval: Seconds between polls
        """
        if interval <= 0:
            raise ValueError("interval must be positive")
        self.reader = reader
        self.interval = interval

    def fingerprint(self) -> Hashable:
        """Return a comparable summary of the current reading.

        A failed read is summarised by its error type and message, so a
        change into or out of an error condition is also a change.
        """
        try:
            return self.reader.read()
        except ReadError as exc:
            return (type(exc).__name__, exc.message)

    def subscribe(self, callback: NotificationCallback) -> PollingSubscription:
        """Start polling on behalf of a callback.

        Raises:
            NotificationError: If the host has no battery service to watch
        """
        try:
            initial: Hashable = self.reader.read()
        except ServiceUnavailableError as exc:
            raise NotificationError(
                f"Cannot watch battery service: {exc.message}", original_error=exc
            ) from exc
        except ReadError as exc:
            initial = (type(exc).__name__, exc.message)
        except Exception as exc:
            logger.error("Initial battery poll failed: %s", exc, exc_info=exc)
            initial = (type(exc).__name__, str(exc))

        subscription = PollingSubscription(self, callback, initial)
        subscription.start()
        logger.debug("Polling battery for changes every %.1fs", self.interval)
        return subscription


def create_notification_source(
    reader: SnapshotReader | None = None,
    poll_seconds: float = DEFAULT_POLL_SECONDS,
) -> NotificationSource:
    """Create a notification source for a reader.

    Args:
        reader: Reader to watch (None gives a source that only fires manually)
        poll_seconds: Seconds between polls

    Returns:
        A NotificationSource implementation
    """
    if reader is None:
        return ManualNotificationSource()
    return PollingNotificationSource(reader, poll_seconds)
