"""Host adapters that read one battery snapshot.

Two backends are provided:

- ``IORegSnapshotReader`` reads the ``AppleSmartBattery`` registry entry on
  macOS through the ``ioreg`` tool's plist output.
- ``SysfsSnapshotReader`` reads ``/sys/class/power_supply`` on Linux.

Both funnel the raw values through :func:`snapshot_from_properties`, so the
all-or-nothing validation of the seven properties lives in one place.
"""

from __future__ import annotations

import logging
import platform
import plistlib
import subprocess
from collections.abc import Mapping
from enum import Enum
from pathlib import Path
from typing import Any, Final
from xml.parsers.expat import ExpatError

from accuratebattery.battery.errors import IncompleteDataError, ServiceUnavailableError
from accuratebattery.battery.models import BatterySnapshot

logger: Final = logging.getLogger(__name__)

# ── Registry property names ──────────────────────────────────────────────────
CURRENT_CAPACITY: Final = "AppleRawCurrentCapacity"
MAX_CAPACITY: Final = "AppleRawMaxCapacity"
DESIGN_CAPACITY: Final = "DesignCapacity"
EXTERNAL_CONNECTED: Final = "ExternalConnected"
IS_CHARGING: Final = "IsCharging"
FULLY_CHARGED: Final = "FullyCharged"
AMPERAGE: Final = "Amperage"

INT_PROPERTIES: Final = (CURRENT_CAPACITY, MAX_CAPACITY, DESIGN_CAPACITY, AMPERAGE)
BOOL_PROPERTIES: Final = (EXTERNAL_CONNECTED, IS_CHARGING, FULLY_CHARGED)
SNAPSHOT_PROPERTIES: Final = (
    CURRENT_CAPACITY,
    MAX_CAPACITY,
    DESIGN_CAPACITY,
    EXTERNAL_CONNECTED,
    IS_CHARGING,
    FULLY_CHARGED,
    AMPERAGE,
)

IOREG_COMMAND: Final = ["ioreg", "-r", "-a", "-c", "AppleSmartBattery"]
DEFAULT_SYSFS_ROOT: Final = Path("/sys/class/power_supply")

_UINT64: Final = 2**64


class ReaderBackend(Enum):
    """Available snapshot reader backends."""

    AUTO = "auto"
    IOREG = "ioreg"
    SYSFS = "sysfs"


def snapshot_from_properties(properties: Mapping[str, Any]) -> BatterySnapshot:
    """Validate a raw property mapping and build a snapshot from it.

    Integer properties reject booleans, boolean properties reject anything
    that is not a bool. Negative capacities count as mistyped.

    Args:
        properties: Mapping of registry property name to raw value

    Returns:
        A complete BatterySnapshot

    Raises:
        IncompleteDataError: If any of the seven properties is missing or
            has the wrong type
    """
    missing = [name for name in SNAPSHOT_PROPERTIES if name not in properties]
    mistyped: list[str] = []

    for name in INT_PROPERTIES:
        if name in properties:
            value = properties[name]
            if isinstance(value, bool) or not isinstance(value, int):
                mistyped.append(name)
            elif name != AMPERAGE and value < 0:
                mistyped.append(name)

    for name in BOOL_PROPERTIES:
        if name in properties and not isinstance(properties[name], bool):
            mistyped.append(name)

    if missing or mistyped:
        raise IncompleteDataError.for_properties(missing=missing, mistyped=mistyped)

    return BatterySnapshot(
        current_capacity=properties[CURRENT_CAPACITY],
        max_capacity=properties[MAX_CAPACITY],
        design_capacity=properties[DESIGN_CAPACITY],
        external_connected=properties[EXTERNAL_CONNECTED],
        is_charging=properties[IS_CHARGING],
        fully_charged=properties[FULLY_CHARGED],
        amperage=properties[AMPERAGE],
    )


def _signed_amperage(value: Any) -> Any:
    """Undo the registry's unsigned encoding of negative currents."""
    if isinstance(value, int) and not isinstance(value, bool) and value >= _UINT64 // 2:
        return value - _UINT64
    return value


class IORegSnapshotReader:
    """Read the AppleSmartBattery registry entry via ``ioreg``."""

    def __init__(self, timeout: float = 5.0, command: list[str] | None = None) -> None:
        """Initialize the reader.

        Args:
            timeout: Seconds to wait for ioreg before giving up
            command: Override of the ioreg command line
        """
        self.timeout = timeout
        self.command = command or list(IOREG_COMMAND)

    def read(self) -> BatterySnapshot:
        """Run ioreg and convert its first battery entry to a snapshot."""
        try:
            result = subprocess.run(
                self.command,
                check=True,
                capture_output=True,
                timeout=self.timeout,
            )
        except FileNotFoundError as exc:
            raise ServiceUnavailableError("ioreg not found (not a macOS host)", exc) from exc
        except subprocess.TimeoutExpired as exc:
            raise IncompleteDataError(f"ioreg timed out after {self.timeout}s", original_error=exc) from exc
        except subprocess.CalledProcessError as exc:
            raise IncompleteDataError(
                f"ioreg exited with status {exc.returncode}", original_error=exc
            ) from exc

        if not result.stdout.strip():
            raise ServiceUnavailableError("No AppleSmartBattery service found")

        try:
            entries = plistlib.loads(result.stdout)
        except (plistlib.InvalidFileException, ExpatError, ValueError) as exc:
            raise IncompleteDataError("Unable to parse ioreg output", original_error=exc) from exc

        if not isinstance(entries, list) or not entries:
            raise ServiceUnavailableError("No AppleSmartBattery service found")

        if not isinstance(entries[0], dict):
            raise IncompleteDataError(
                f"Unexpected ioreg entry of type {type(entries[0]).__name__}"
            )

        properties = dict(entries[0])
        if AMPERAGE in properties:
            properties[AMPERAGE] = _signed_amperage(properties[AMPERAGE])

        logger.debug("ioreg returned %d battery properties", len(properties))
        return snapshot_from_properties(properties)


class SysfsSnapshotReader:
    """Read the first battery under ``/sys/class/power_supply``.

    Charge values are reported by the kernel in µAh and become mAh, with the
    rate in mA. Drivers that only expose energy report µWh; those become mWh
    with the rate in mW, so the rate always integrates into the capacity
    units. The sign of the rate is normalised so it is positive while
    charging and negative otherwise.
    """

    def __init__(self, root: Path | str = DEFAULT_SYSFS_ROOT) -> None:
        self.root = Path(root)

    def read(self) -> BatterySnapshot:
        battery = self._find_battery()
        status = (self._read_text(battery / "status") or "").strip()
        is_charging = status == "Charging"
        fully_charged = status == "Full"

        properties: dict[str, Any] = {
            IS_CHARGING: is_charging,
            FULLY_CHARGED: fully_charged,
        }

        prefix = "charge" if (battery / "charge_now").exists() else "energy"
        for name, filename in (
            (CURRENT_CAPACITY, f"{prefix}_now"),
            (MAX_CAPACITY, f"{prefix}_full"),
            (DESIGN_CAPACITY, f"{prefix}_full_design"),
        ):
            value = self._read_value(battery / filename)
            if value is not None:
                properties[name] = value // 1000 if isinstance(value, int) else value

        current = self._read_rate(battery, prefix)
        if current is not None:
            if isinstance(current, int):
                properties[AMPERAGE] = abs(current) if is_charging else -abs(current)
            else:
                properties[AMPERAGE] = current

        external = self._external_connected()
        properties[EXTERNAL_CONNECTED] = (
            external if external is not None else status in ("Charging", "Full", "Not charging")
        )

        return snapshot_from_properties(properties)

    def _find_battery(self) -> Path:
        if not self.root.is_dir():
            raise ServiceUnavailableError(f"{self.root} does not exist")

        for supply in sorted(self.root.iterdir()):
            kind = (self._read_text(supply / "type") or "").strip().lower()
            if kind == "battery" or (not kind and supply.name.upper().startswith("BAT")):
                return supply

        raise ServiceUnavailableError(f"No battery found under {self.root}")

    def _external_connected(self) -> bool | None:
        found: bool | None = None
        for supply in sorted(self.root.iterdir()):
            kind = (self._read_text(supply / "type") or "").strip().lower()
            if kind in ("mains", "usb", "usb_c", "usb_pd"):
                online = self._read_value(supply / "online")
                if isinstance(online, int):
                    found = bool(found) or online == 1
        return found

    def _read_rate(self, battery: Path, prefix: str) -> Any:
        """Return the charge rate in the units of the capacity values.

        Charge-reporting drivers get mA (from ``current_now``), energy-reporting
        drivers get mW (from ``power_now``). Each falls back to deriving its
        rate from the other attribute and ``voltage_now``.
        """
        current = self._read_value(battery / "current_now")
        power = self._read_value(battery / "power_now")
        voltage = self._read_value(battery / "voltage_now")
        has_voltage = isinstance(voltage, int) and voltage > 0

        if prefix == "energy":
            if power is not None:
                return power // 1000 if isinstance(power, int) else power
            if isinstance(current, int) and has_voltage:
                # µA * µV = pW
                return current * voltage // 10**9
            return None if isinstance(current, int) else current

        if current is not None:
            return current // 1000 if isinstance(current, int) else current
        if isinstance(power, int) and has_voltage:
            # µW / µV = A
            return int(power / voltage * 1000)
        return None

    @staticmethod
    def _read_text(path: Path) -> str | None:
        try:
            return path.read_text(encoding="utf-8", errors="ignore")
        except OSError:
            return None

    @classmethod
    def _read_value(cls, path: Path) -> Any:
        """Read an integer attribute; unparsable content is returned as text."""
        text = cls._read_text(path)
        if text is None:
            return None
        text = text.strip()
        try:
            return int(text)
        except ValueError:
            return text


def create_snapshot_reader(
    backend: ReaderBackend | str = ReaderBackend.AUTO,
    timeout: float = 5.0,
    sysfs_root: Path | str = DEFAULT_SYSFS_ROOT,
) -> IORegSnapshotReader | SysfsSnapshotReader:
    """Create the snapshot reader for a backend.

    Args:
        backend: Backend name or enum member; AUTO picks one for this OS
        timeout: Read timeout for subprocess-based readers
        sysfs_root: Root of the Linux power-supply class directory

    Returns:
        A SnapshotReader implementation
    """
    backend = ReaderBackend(backend)
    if backend is ReaderBackend.AUTO:
        backend = ReaderBackend.IOREG if platform.system() == "Darwin" else ReaderBackend.SYSFS
        logger.debug("Auto-selected %s snapshot reader", backend.value)

    if backend is ReaderBackend.IOREG:
        return IORegSnapshotReader(timeout=timeout)
    return SysfsSnapshotReader(root=sysfs_root)
