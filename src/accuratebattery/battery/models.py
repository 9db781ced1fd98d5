"""Value types shared by the battery readers, the monitor and its history."""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any

from accuratebattery.utils.time import TimeUtils


class BatteryState(Enum):
    """Derived battery state label.

    The value of each member is the human-readable label shown by a
    presentation layer. FULL, CHARGING, ON_POWER and ON_BATTERY are derived
    from a successful snapshot; UNAVAILABLE and READ_ERROR come from failed
    reads. UNKNOWN is only seen before the first read completes.
    """

    UNKNOWN = "Unknown"
    FULL = "Full"
    CHARGING = "Charging"
    ON_POWER = "On Power Adapter"
    ON_BATTERY = "On Battery"
    UNAVAILABLE = "Not Available"
    READ_ERROR = "Error Reading Properties"

    @property
    def label(self) -> str:
        """Human-readable label for this state."""
        return self.value

    @property
    def is_error(self) -> bool:
        """Return True for states produced by a failed read."""
        return self in (BatteryState.UNAVAILABLE, BatteryState.READ_ERROR)


@dataclass(frozen=True)
class BatterySnapshot:
    """One complete, consistent read of the battery properties.

    Capacities are raw mAh-equivalent units. ``amperage`` is signed and
    positive while the battery accepts charge. ``current_capacity`` may
    transiently exceed ``max_capacity`` on real hardware; that is reported
    by :attr:`over_capacity` and never treated as an error.

    The read timestamp is excluded from equality so two reads with the same
    property values compare equal.
    """

    current_capacity: int
    max_capacity: int
    design_capacity: int
    external_connected: bool
    is_charging: bool
    fully_charged: bool
    amperage: int
    timestamp: datetime = field(default_factory=TimeUtils.now_localized, compare=False)

    @property
    def state(self) -> BatteryState:
        """Derive the state label from the snapshot flags."""
        return derive_state(self)

    @property
    def level(self) -> float:
        """Charge level as a fraction of the present full-charge capacity."""
        return capacity_level(self.current_capacity, self.max_capacity)

    @property
    def health(self) -> float:
        """Present full-charge capacity as a fraction of the design capacity."""
        if self.design_capacity <= 0:
            return 0.0
        return self.max_capacity / self.design_capacity

    @property
    def over_capacity(self) -> bool:
        """True when the reported charge exceeds the full-charge capacity."""
        return self.current_capacity > self.max_capacity

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for logging/serialization."""
        return {
            "current_capacity": self.current_capacity,
            "max_capacity": self.max_capacity,
            "design_capacity": self.design_capacity,
            "external_connected": self.external_connected,
            "is_charging": self.is_charging,
            "fully_charged": self.fully_charged,
            "amperage": self.amperage,
            "timestamp": self.timestamp.isoformat(),
        }


@dataclass(frozen=True)
class CapacityEntry:
    """A single point of the capacity history."""

    timestamp: datetime
    capacity: float
    extrapolated: bool
    id: uuid.UUID = field(default_factory=uuid.uuid4)


@dataclass(frozen=True)
class MonitorState:
    """Published view of a monitor's state.

    Instances are immutable copies; the monitor replaces its published
    state wholesale on every update, so a consumer holding one always sees
    fields that belong together. ``projected_capacity`` is the latest
    extrapolated point since the last real read, None right after one.
    """

    state: BatteryState = BatteryState.UNKNOWN
    snapshot: BatterySnapshot | None = None
    last_snapshot_at: datetime | None = None
    last_error: str | None = None
    projected_capacity: float | None = None

    @property
    def level(self) -> float:
        """Charge level in [0, 1] from the last confirmed snapshot."""
        if self.snapshot is None:
            return 0.0
        return self.snapshot.level

    @property
    def display_capacity(self) -> float:
        """Newest capacity, projected or real, for a smoothed display."""
        if self.projected_capacity is not None:
            return self.projected_capacity
        return float(self.current_capacity)

    @property
    def display_level(self) -> float:
        return capacity_level(self.display_capacity, self.max_capacity)

    @property
    def current_capacity(self) -> int:
        return self.snapshot.current_capacity if self.snapshot else 0

    @property
    def max_capacity(self) -> int:
        return self.snapshot.max_capacity if self.snapshot else 0

    @property
    def design_capacity(self) -> int:
        return self.snapshot.design_capacity if self.snapshot else 0

    @property
    def amperage(self) -> int:
        return self.snapshot.amperage if self.snapshot else 0

    @property
    def is_charging(self) -> bool:
        """True when the derived label is CHARGING."""
        return self.state is BatteryState.CHARGING

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for logging/serialization."""
        return {
            "state": self.state.label,
            "level": self.level,
            "display_capacity": self.display_capacity,
            "display_level": self.display_level,
            "current_capacity": self.current_capacity,
            "max_capacity": self.max_capacity,
            "design_capacity": self.design_capacity,
            "amperage": self.amperage,
            "last_snapshot_at": (
                self.last_snapshot_at.isoformat() if self.last_snapshot_at else None
            ),
            "last_error": self.last_error,
        }


def capacity_level(current_capacity: float, max_capacity: float) -> float:
    """Return ``current / max`` clamped to [0, 1], or 0 when max is 0.

    Args:
        current_capacity: Present charge
        max_capacity: Present full-charge capacity

    Returns:
        Charge level as a fraction
    """
    if max_capacity <= 0:
        return 0.0
    return min(1.0, max(0.0, current_capacity / max_capacity))


def derive_state(snapshot: BatterySnapshot) -> BatteryState:
    """Classify a snapshot.

    The first matching flag wins: fully charged, then charging, then
    adapter connected, otherwise on battery.
    """
    if snapshot.fully_charged:
        return BatteryState.FULL
    if snapshot.is_charging:
        return BatteryState.CHARGING
    if snapshot.external_connected:
        return BatteryState.ON_POWER
    return BatteryState.ON_BATTERY
