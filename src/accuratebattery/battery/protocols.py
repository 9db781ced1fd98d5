# src/accuratebattery/battery/protocols.py
from __future__ import annotations

import dataclasses
from collections.abc import Callable, Mapping
from typing import Any, Protocol, runtime_checkable

from accuratebattery.battery.errors import ReadError, ServiceUnavailableError
from accuratebattery.battery.models import BatterySnapshot
from accuratebattery.battery.readers import snapshot_from_properties
from accuratebattery.utils.time import TimeUtils

# Callback invoked by a notification source; it carries no payload.
NotificationCallback = Callable[[], None]


@runtime_checkable
class SnapshotReader(Protocol):
    """Protocol defining the interface for battery snapshot readers.

    A reader performs one synchronous, bounded-time read of the seven
    battery properties as a single unit. Partial results are never
    returned: a read either produces a complete BatterySnapshot or raises
    a ReadError subclass.
    """

    def read(self) -> BatterySnapshot:
        """Read one snapshot from the host.

        Returns:
            A complete battery snapshot

        Raises:
            ServiceUnavailableError: If the host has no battery service
            IncompleteDataError: If any property is missing or mistyped
        """
        ...


@runtime_checkable
class Subscription(Protocol):
    """Handle returned by a notification source; cancel() is idempotent."""

    def cancel(self) -> None:
        """Stop delivering notifications to the subscribed callback."""
        ...

    @property
    def active(self) -> bool:
        """Whether the callback can still be invoked."""
        ...


@runtime_checkable
class NotificationSource(Protocol):
    """Protocol for sources of battery-state-change notifications.

    The callback may be invoked on any thread. Consumers must not trust any
    data from the notification itself and should re-read a snapshot.
    """

    def subscribe(self, callback: NotificationCallback) -> Subscription:
        """Register a callback for state changes.

        Args:
            callback: Zero-argument callable invoked on every change

        Returns:
            Subscription handle used to cancel delivery

        Raises:
            NotificationError: If the registration with the host fails
        """
        ...


class MockSnapshotReader:
    """Mock implementation of SnapshotReader for testing."""

    def __init__(self, snapshot: BatterySnapshot | None = None) -> None:
        self.snapshot = snapshot
        self.error: ReadError | None = None
        self.read_calls = 0

    def set_snapshot(self, snapshot: BatterySnapshot) -> None:
        """Return this snapshot from subsequent reads and clear any error."""
        self.snapshot = snapshot
        self.error = None

    def set_error(self, error: ReadError) -> None:
        """Raise this error from subsequent reads."""
        self.error = error

    def update(self, **changes: Any) -> None:
        """Change some fields of the snapshot returned by later reads."""
        if self.snapshot is None:
            raise ValueError("No snapshot to update")
        self.set_snapshot(dataclasses.replace(self.snapshot, **changes))

    def read(self) -> BatterySnapshot:
        """Return a fresh copy of the configured snapshot or raise the error."""
        self.read_calls += 1
        if self.error is not None:
            raise self.error
        if self.snapshot is None:
            raise ServiceUnavailableError("Mock reader has no battery")
        return dataclasses.replace(self.snapshot, timestamp=TimeUtils.now_localized())

    def reset_call_history(self) -> None:
        """Reset the call counter for testing."""
        self.read_calls = 0


class PropertyMapReader:
    """Reader that validates a raw property mapping on every read.

    Useful for simulating registry reads that lose or garble properties.
    """

    def __init__(self, properties: Mapping[str, Any] | None) -> None:
        self.properties: dict[str, Any] | None = (
            dict(properties) if properties is not None else None
        )

    def remove_property(self, name: str) -> None:
        """Drop a property so the next read reports incomplete data."""
        if self.properties is not None:
            self.properties.pop(name, None)

    def set_property(self, name: str, value: Any) -> None:
        if self.properties is None:
            self.properties = {}
        self.properties[name] = value

    def read(self) -> BatterySnapshot:
        if self.properties is None:
            raise ServiceUnavailableError("No battery service registered")
        return snapshot_from_properties(self.properties)


class MockSubscription:
    """Subscription handle for ManualNotificationSource."""

    def __init__(self, source: ManualNotificationSource, callback: NotificationCallback) -> None:
        self._source = source
        self.callback = callback
        self._active = True

    @property
    def active(self) -> bool:
        return self._active

    def cancel(self) -> None:
        if self._active:
            self._active = False
            self._source._remove(self)


class ManualNotificationSource:
    """Notification source that fires only when told to.

    Used by tests and by hosts that deliver change events through some
    other channel (a signal handler, a udev hook) and want to forward them.
    """

    def __init__(self, fail_subscribe: Exception | None = None) -> None:
        """Initialize the source.

        Args:
            fail_subscribe: If set, subscribe() raises this exception
        """
        self.fail_subscribe = fail_subscribe
        self.subscriptions: list[MockSubscription] = []
        self.subscribe_calls = 0

    def subscribe(self, callback: NotificationCallback) -> MockSubscription:
        self.subscribe_calls += 1
        if self.fail_subscribe is not None:
            raise self.fail_subscribe
        subscription = MockSubscription(self, callback)
        self.subscriptions.append(subscription)
        return subscription

    def fire(self) -> int:
        """Invoke every active callback once.

        Returns:
            Number of callbacks invoked
        """
        delivered = 0
        for subscription in list(self.subscriptions):
            if subscription.active:
                subscription.callback()
                delivered += 1
        return delivered

    def _remove(self, subscription: MockSubscription) -> None:
        if subscription in self.subscriptions:
            self.subscriptions.remove(subscription)


def create_mock_reader(snapshot: BatterySnapshot | None = None) -> MockSnapshotReader:
    """Create and return a mock snapshot reader for testing."""
    return MockSnapshotReader(snapshot)


def create_mock_snapshot(**overrides: Any) -> BatterySnapshot:
    """Create a plausible discharging snapshot, with optional overrides."""
    fields: dict[str, Any] = {
        "current_capacity": 4000,
        "max_capacity": 5000,
        "design_capacity": 5500,
        "external_connected": False,
        "is_charging": False,
        "fully_charged": False,
        "amperage": -800,
    }
    fields.update(overrides)
    return BatterySnapshot(**fields)
