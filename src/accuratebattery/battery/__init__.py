"""Battery package - snapshot readers, notifications, history and the monitor."""

from accuratebattery.battery.errors import (
    BatteryError,
    IncompleteDataError,
    NotificationError,
    ReadError,
    ServiceUnavailableError,
)
from accuratebattery.battery.history import CapacityHistory, RetentionPolicy
from accuratebattery.battery.models import (
    BatterySnapshot,
    BatteryState,
    CapacityEntry,
    MonitorState,
    derive_state,
)
from accuratebattery.battery.monitor import BatteryMonitor, project_capacity
from accuratebattery.battery.notifications import (
    PollingNotificationSource,
    create_notification_source,
)
from accuratebattery.battery.protocols import NotificationSource, SnapshotReader, Subscription
from accuratebattery.battery.readers import (
    IORegSnapshotReader,
    ReaderBackend,
    SysfsSnapshotReader,
    create_snapshot_reader,
    snapshot_from_properties,
)

__all__ = [
    "BatteryError",
    "BatteryMonitor",
    "BatterySnapshot",
    "BatteryState",
    "CapacityEntry",
    "CapacityHistory",
    "IORegSnapshotReader",
    "IncompleteDataError",
    "MonitorState",
    "NotificationError",
    "NotificationSource",
    "PollingNotificationSource",
    "ReadError",
    "ReaderBackend",
    "RetentionPolicy",
    "ServiceUnavailableError",
    "SnapshotReader",
    "Subscription",
    "SysfsSnapshotReader",
    "create_notification_source",
    "create_snapshot_reader",
    "derive_state",
    "project_capacity",
    "snapshot_from_properties",
]
