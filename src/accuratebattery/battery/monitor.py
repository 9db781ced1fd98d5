"""Battery telemetry and extrapolation engine.

The monitor keeps the last confirmed battery snapshot, re-reads it whenever
the host reports a change, and between real reads projects the charge
forward from the last measured current so a time-series consumer sees a
smooth signal instead of a step function.

Every mutation runs on one executor. Notification callbacks and timer ticks
arrive on their own threads and only ever post work into it.
"""

from __future__ import annotations

import dataclasses
import logging
import threading
from collections.abc import Callable
from datetime import datetime
from types import TracebackType
from typing import Final

from accuratebattery.battery.errors import NotificationError, ReadError, ServiceUnavailableError
from accuratebattery.battery.history import CapacityHistory
from accuratebattery.battery.models import BatteryState, CapacityEntry, MonitorState
from accuratebattery.battery.protocols import NotificationSource, SnapshotReader, Subscription
from accuratebattery.scheduling import Executor, RepeatingTimer, SerialExecutor
from accuratebattery.utils.time import TimeUtils

logger: Final = logging.getLogger(__name__)

DEFAULT_TICK_SECONDS: Final = 0.1

StateListener = Callable[[MonitorState], None]
Clock = Callable[[], datetime]


def project_capacity(
    last_capacity: float, max_capacity: float, amperage: float, elapsed_hours: float
) -> float:
    """Project the charge forward by integrating a constant current.

    Args:
        last_capacity: Capacity at the last real read (mAh)
        max_capacity: Full-charge capacity (mAh), the projection never exceeds it
        amperage: Current at the last real read (mA, positive while charging)
        elapsed_hours: Hours since the last real read

    Returns:
        Projected capacity in mAh
    """
    return min(float(max_capacity), last_capacity + amperage * elapsed_hours)


class BatteryMonitor:
    """Owns the battery state and its capacity history.

    Construction performs one synchronous read to seed the state, then
    subscribes to the notification source and starts the extrapolation
    timer. Call :meth:`shutdown` (or use the monitor as a context manager)
    to release both.

    Examples:
        reader = create_snapshot_reader()
        with BatteryMonitor(reader, PollingNotificationSource(reader)) as monitor:
            print(monitor.state.state.label, monitor.state.level)
    """

    def __init__(
        self,
        reader: SnapshotReader,
        notification_source: NotificationSource | None = None,
        executor: Executor | None = None,
        tick_seconds: float | None = DEFAULT_TICK_SECONDS,
        history: CapacityHistory | None = None,
        clock: Clock | None = None,
    ) -> None:
        """Initialize the monitor.

        Args:
            reader: Snapshot reader for the host battery
            notification_source: Source of change notifications; None means
                the owner calls :meth:`notify` itself
            executor: Executor all updates are serialized onto; a private
                SerialExecutor is created (and shut down) when omitted
            tick_seconds: Extrapolation period; None disables the timer and
                leaves ticking to the owner via :meth:`tick`
            history: History to append to; a fresh unbounded one by default
            clock: Callable returning the current instant
        """
        self._reader = reader
        self._owns_executor = executor is None
        self._executor: Executor = executor or SerialExecutor()
        self._clock: Clock = clock or TimeUtils.now_localized
        self.history = history if history is not None else CapacityHistory()
        self.tick_seconds = tick_seconds

        self._lock = threading.Lock()
        self._state = MonitorState()
        self._listeners: list[StateListener] = []
        self._subscription: Subscription | None = None
        self._timer: RepeatingTimer | None = None
        self._closed = False
        self.degraded = False

        # Seed before anything else can post work.
        self.on_state_change()

        if notification_source is not None:
            try:
                self._subscription = notification_source.subscribe(self.notify)
            except NotificationError as exc:
                self.degraded = True
                logger.error("Battery notification registration failed: %s", exc)

        if tick_seconds is not None:
            self._timer = RepeatingTimer(tick_seconds, self.tick, name="battery-extrapolation")
            self._timer.start()

    # ── published state ─────────────────────────────────────────────────────
    @property
    def state(self) -> MonitorState:
        """Current published state (an immutable copy)."""
        with self._lock:
            return self._state

    @property
    def closed(self) -> bool:
        return self._closed

    def add_listener(self, listener: StateListener) -> None:
        """Call ``listener`` with the new state after every update."""
        with self._lock:
            self._listeners.append(listener)

    def remove_listener(self, listener: StateListener) -> None:
        with self._lock:
            if listener in self._listeners:
                self._listeners.remove(listener)

    # ── thread-safe entry points for adapters ───────────────────────────────
    def notify(self) -> None:
        """Queue a re-read; called by the notification source on any thread."""
        if self._closed:
            return
        self._executor.submit(self.on_state_change)

    def tick(self) -> None:
        """Queue an extrapolation step; called by the timer on any thread."""
        if self._closed:
            return
        self._executor.submit(self.extrapolate)

    # ── handlers (run on the executor) ──────────────────────────────────────
    def on_state_change(self) -> None:
        """Re-read the battery and commit the result.

        On success the snapshot fields, the state label and the baseline
        instant are replaced together and a real history entry is appended.
        On failure only the label (and last error) change.
        """
        if self._closed:
            return
        if self.state.state is BatteryState.UNAVAILABLE:
            logger.debug("Battery service unavailable; ignoring notification")
            return

        try:
            snapshot = self._reader.read()
        except ServiceUnavailableError as exc:
            self._commit_error(BatteryState.UNAVAILABLE, exc)
            return
        except ReadError as exc:
            self._commit_error(BatteryState.READ_ERROR, exc)
            return
        except Exception as exc:
            logger.exception("Unexpected error reading battery snapshot")
            self._commit_error(BatteryState.READ_ERROR, exc)
            return

        now = self._clock()
        with self._lock:
            if self._closed:
                return
            previous = self._state.state
            self._state = MonitorState(
                state=snapshot.state,
                snapshot=snapshot,
                last_snapshot_at=now,
            )
            self.history.record(snapshot.current_capacity, extrapolated=False, timestamp=now)
            state = self._state

        logger.debug(
            "Battery read: %d/%d mAh, %d mA, %s",
            snapshot.current_capacity,
            snapshot.max_capacity,
            snapshot.amperage,
            state.state.label,
        )
        if previous is not state.state:
            logger.info("Battery state %s -> %s", previous.label, state.state.label)
        if snapshot.over_capacity:
            logger.debug(
                "Reported capacity %d exceeds full-charge capacity %d",
                snapshot.current_capacity,
                snapshot.max_capacity,
            )
        self._publish(state)

    def extrapolate(self) -> CapacityEntry | None:
        """Append a projected capacity point while charging.

        The projection is also published as the state's display capacity,
        until the next real read replaces it.

        Returns:
            The appended entry, or None when not charging or closed
        """
        if self._closed:
            return None

        with self._lock:
            current = self._state
            snapshot = current.snapshot
            if (
                self._closed
                or current.state is not BatteryState.CHARGING
                or snapshot is None
                or current.last_snapshot_at is None
            ):
                return None

            now = self._clock()
            elapsed = TimeUtils.hours_between(current.last_snapshot_at, now)
            projected = project_capacity(
                snapshot.current_capacity, snapshot.max_capacity, snapshot.amperage, elapsed
            )
            entry = self.history.record(projected, extrapolated=True, timestamp=now)
            self._state = dataclasses.replace(current, projected_capacity=entry.capacity)
            state = self._state

        self._publish(state)
        return entry

    # ── lifecycle ───────────────────────────────────────────────────────────
    def shutdown(self) -> None:
        """Release the subscription and the timer; idempotent."""
        with self._lock:
            if self._closed:
                return
            self._closed = True
            subscription, self._subscription = self._subscription, None
            timer, self._timer = self._timer, None

        if subscription is not None:
            subscription.cancel()
        if timer is not None:
            timer.cancel()
        if self._owns_executor:
            self._executor.shutdown(wait=False)
        logger.info("Battery monitor shut down")

    def __enter__(self) -> BatteryMonitor:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.shutdown()

    # ── internals ───────────────────────────────────────────────────────────
    def _commit_error(self, label: BatteryState, exc: Exception) -> None:
        message = exc.message if isinstance(exc, ReadError) else str(exc)
        with self._lock:
            if self._closed:
                return
            previous = self._state.state
            self._state = MonitorState(
                state=label,
                snapshot=self._state.snapshot,
                last_snapshot_at=self._state.last_snapshot_at,
                last_error=message,
                projected_capacity=self._state.projected_capacity,
            )
            state = self._state

        if label is BatteryState.UNAVAILABLE:
            logger.warning("Battery service unavailable: %s", message)
        else:
            logger.warning("Could not read battery properties: %s", message)
        if previous is not label:
            logger.info("Battery state %s -> %s", previous.label, label.label)
        self._publish(state)

    def _publish(self, state: MonitorState) -> None:
        with self._lock:
            listeners = list(self._listeners)
        for listener in listeners:
            try:
                listener(state)
            except Exception as exc:
                logger.warning("Battery state listener failed: %s", exc)
