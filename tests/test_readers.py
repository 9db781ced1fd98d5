"""Tests for accuratebattery.battery.readers."""

from __future__ import annotations

import plistlib
import subprocess
from pathlib import Path
from typing import Any

import pytest

from accuratebattery.battery import readers
from accuratebattery.battery.errors import IncompleteDataError, ServiceUnavailableError
from accuratebattery.battery.monitor import project_capacity
from accuratebattery.battery.readers import (
    AMPERAGE,
    IORegSnapshotReader,
    ReaderBackend,
    SysfsSnapshotReader,
    create_snapshot_reader,
    snapshot_from_properties,
)

PROPERTIES: dict[str, Any] = {
    "AppleRawCurrentCapacity": 4210,
    "AppleRawMaxCapacity": 4980,
    "DesignCapacity": 5103,
    "ExternalConnected": True,
    "IsCharging": True,
    "FullyCharged": False,
    "Amperage": 1820,
}


# ── snapshot_from_properties ─────────────────────────────────────────────────
def test_snapshot_from_complete_properties() -> None:
    snap = snapshot_from_properties(PROPERTIES)
    assert snap.current_capacity == 4210
    assert snap.max_capacity == 4980
    assert snap.design_capacity == 5103
    assert snap.external_connected is True
    assert snap.is_charging is True
    assert snap.fully_charged is False
    assert snap.amperage == 1820


def test_missing_property_fails_whole_read() -> None:
    props = {k: v for k, v in PROPERTIES.items() if k != AMPERAGE}
    with pytest.raises(IncompleteDataError) as excinfo:
        snapshot_from_properties(props)
    assert excinfo.value.missing == ("Amperage",)
    assert "Amperage" in str(excinfo.value)


@pytest.mark.parametrize(
    "name, value",
    [
        ("AppleRawCurrentCapacity", True),  # bool is not a capacity
        ("AppleRawMaxCapacity", "4980"),
        ("DesignCapacity", 5103.0),
        ("IsCharging", 1),  # int is not a flag
        ("ExternalConnected", "Yes"),
        ("AppleRawCurrentCapacity", -5),
    ],
)
def test_mistyped_property_fails_whole_read(name: str, value: Any) -> None:
    props = {**PROPERTIES, name: value}
    with pytest.raises(IncompleteDataError) as excinfo:
        snapshot_from_properties(props)
    assert excinfo.value.mistyped == (name,)


def test_negative_amperage_is_valid() -> None:
    snap = snapshot_from_properties({**PROPERTIES, "Amperage": -950})
    assert snap.amperage == -950


# ── ioreg ────────────────────────────────────────────────────────────────────
def _fake_run(stdout: bytes) -> Any:
    def run(cmd: list[str], **kwargs: Any) -> subprocess.CompletedProcess[bytes]:
        return subprocess.CompletedProcess(cmd, 0, stdout=stdout, stderr=b"")

    return run


def test_ioreg_reader_parses_plist(monkeypatch: pytest.MonkeyPatch) -> None:
    payload = plistlib.dumps([{**PROPERTIES, "Voltage": 12500}])
    monkeypatch.setattr(readers.subprocess, "run", _fake_run(payload))

    snap = IORegSnapshotReader().read()

    assert snap.current_capacity == 4210
    assert snap.amperage == 1820


def test_ioreg_reader_signs_unsigned_amperage(monkeypatch: pytest.MonkeyPatch) -> None:
    payload = plistlib.dumps([{**PROPERTIES, "Amperage": 2**64 - 1200}])
    monkeypatch.setattr(readers.subprocess, "run", _fake_run(payload))

    assert IORegSnapshotReader().read().amperage == -1200


def test_ioreg_reader_no_battery(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(readers.subprocess, "run", _fake_run(plistlib.dumps([])))
    with pytest.raises(ServiceUnavailableError):
        IORegSnapshotReader().read()


def test_ioreg_reader_empty_output(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(readers.subprocess, "run", _fake_run(b""))
    with pytest.raises(ServiceUnavailableError):
        IORegSnapshotReader().read()


def test_ioreg_missing_binary(monkeypatch: pytest.MonkeyPatch) -> None:
    def run(*_a: Any, **_kw: Any) -> None:
        raise FileNotFoundError("ioreg")

    monkeypatch.setattr(readers.subprocess, "run", run)
    with pytest.raises(ServiceUnavailableError):
        IORegSnapshotReader().read()


def test_ioreg_timeout_is_transient(monkeypatch: pytest.MonkeyPatch) -> None:
    def run(cmd: list[str], **kwargs: Any) -> None:
        raise subprocess.TimeoutExpired(cmd, kwargs["timeout"])

    monkeypatch.setattr(readers.subprocess, "run", run)
    with pytest.raises(IncompleteDataError) as excinfo:
        IORegSnapshotReader(timeout=0.5).read()
    assert not excinfo.value.is_permanent


def test_ioreg_garbage_output(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(readers.subprocess, "run", _fake_run(b"not a plist"))
    with pytest.raises(IncompleteDataError):
        IORegSnapshotReader().read()


def test_ioreg_truncated_plist(monkeypatch: pytest.MonkeyPatch) -> None:
    payload = plistlib.dumps([PROPERTIES])[:120]
    monkeypatch.setattr(readers.subprocess, "run", _fake_run(payload))
    with pytest.raises(IncompleteDataError):
        IORegSnapshotReader().read()


@pytest.mark.parametrize("entry", ["AppleSmartBattery", 42, [1, 2]])
def test_ioreg_entry_not_a_dict(monkeypatch: pytest.MonkeyPatch, entry: Any) -> None:
    monkeypatch.setattr(readers.subprocess, "run", _fake_run(plistlib.dumps([entry])))
    with pytest.raises(IncompleteDataError):
        IORegSnapshotReader().read()


def test_ioreg_missing_property(monkeypatch: pytest.MonkeyPatch) -> None:
    props = {k: v for k, v in PROPERTIES.items() if k != "DesignCapacity"}
    monkeypatch.setattr(readers.subprocess, "run", _fake_run(plistlib.dumps([props])))
    with pytest.raises(IncompleteDataError) as excinfo:
        IORegSnapshotReader().read()
    assert excinfo.value.missing == ("DesignCapacity",)


# ── sysfs ────────────────────────────────────────────────────────────────────
def _write_supply(root: Path, name: str, files: dict[str, str]) -> Path:
    supply = root / name
    supply.mkdir(parents=True)
    for filename, content in files.items():
        (supply / filename).write_text(content + "\n")
    return supply


@pytest.fixture
def sysfs_root(tmp_path: Path) -> Path:
    root = tmp_path / "power_supply"
    _write_supply(root, "AC", {"type": "Mains", "online": "1"})
    _write_supply(
        root,
        "BAT0",
        {
            "type": "Battery",
            "status": "Charging",
            "charge_now": "4210000",
            "charge_full": "4980000",
            "charge_full_design": "5103000",
            "current_now": "1820000",
        },
    )
    return root


def test_sysfs_reader_charging(sysfs_root: Path) -> None:
    snap = SysfsSnapshotReader(sysfs_root).read()
    assert snap.current_capacity == 4210
    assert snap.max_capacity == 4980
    assert snap.design_capacity == 5103
    assert snap.is_charging is True
    assert snap.fully_charged is False
    assert snap.external_connected is True
    assert snap.amperage == 1820


def test_sysfs_reader_discharging_sign(sysfs_root: Path) -> None:
    (sysfs_root / "BAT0" / "status").write_text("Discharging\n")
    (sysfs_root / "AC" / "online").write_text("0\n")

    snap = SysfsSnapshotReader(sysfs_root).read()

    assert snap.is_charging is False
    assert snap.external_connected is False
    assert snap.amperage == -1820


ENERGY_BATTERY = {
    "type": "Battery",
    "status": "Charging",
    "energy_now": "40000000",
    "energy_full": "50000000",
    "energy_full_design": "57000000",
    "voltage_now": "12000000",
}


def test_sysfs_reader_energy_rate_matches_capacity_units(tmp_path: Path) -> None:
    root = tmp_path / "power_supply"
    _write_supply(root, "BAT1", {**ENERGY_BATTERY, "power_now": "24000000"})

    snap = SysfsSnapshotReader(root).read()

    # mWh capacities with an mW rate: 24 W for 15 minutes is 6000 mWh.
    assert snap.current_capacity == 40000
    assert snap.max_capacity == 50000
    assert snap.amperage == 24000
    assert snap.external_connected is True  # inferred from status
    assert project_capacity(
        snap.current_capacity, snap.max_capacity, snap.amperage, 0.25
    ) == pytest.approx(46000)


def test_sysfs_reader_energy_discharging(tmp_path: Path) -> None:
    root = tmp_path / "power_supply"
    _write_supply(
        root, "BAT1", {**ENERGY_BATTERY, "status": "Discharging", "power_now": "9000000"}
    )

    snap = SysfsSnapshotReader(root).read()

    assert snap.is_charging is False
    assert snap.amperage == -9000


def test_sysfs_reader_energy_rate_from_current(tmp_path: Path) -> None:
    root = tmp_path / "power_supply"
    _write_supply(root, "BAT1", {**ENERGY_BATTERY, "current_now": "2000000"})

    assert SysfsSnapshotReader(root).read().amperage == 24000


def test_sysfs_reader_full_energy_battery(tmp_path: Path) -> None:
    root = tmp_path / "power_supply"
    _write_supply(
        root,
        "BAT1",
        {**ENERGY_BATTERY, "status": "Full", "energy_now": "50000000", "power_now": "0"},
    )

    snap = SysfsSnapshotReader(root).read()

    assert snap.fully_charged is True
    assert snap.amperage == 0


def test_sysfs_reader_missing_current(sysfs_root: Path) -> None:
    (sysfs_root / "BAT0" / "current_now").unlink()
    with pytest.raises(IncompleteDataError) as excinfo:
        SysfsSnapshotReader(sysfs_root).read()
    assert "Amperage" in excinfo.value.missing


def test_sysfs_reader_garbled_value(sysfs_root: Path) -> None:
    (sysfs_root / "BAT0" / "charge_now").write_text("n/a\n")
    with pytest.raises(IncompleteDataError) as excinfo:
        SysfsSnapshotReader(sysfs_root).read()
    assert "AppleRawCurrentCapacity" in excinfo.value.mistyped


def test_sysfs_reader_no_battery(tmp_path: Path) -> None:
    root = tmp_path / "power_supply"
    _write_supply(root, "AC", {"type": "Mains", "online": "1"})
    with pytest.raises(ServiceUnavailableError):
        SysfsSnapshotReader(root).read()


def test_sysfs_reader_missing_root(tmp_path: Path) -> None:
    with pytest.raises(ServiceUnavailableError):
        SysfsSnapshotReader(tmp_path / "nope").read()


# ── factory ──────────────────────────────────────────────────────────────────
@pytest.mark.parametrize(
    "system, expected",
    [("Darwin", IORegSnapshotReader), ("Linux", SysfsSnapshotReader)],
)
def test_create_snapshot_reader_auto(
    monkeypatch: pytest.MonkeyPatch, system: str, expected: type
) -> None:
    monkeypatch.setattr(readers.platform, "system", lambda: system)
    assert isinstance(create_snapshot_reader("auto"), expected)


def test_create_snapshot_reader_explicit(tmp_path: Path) -> None:
    reader = create_snapshot_reader(ReaderBackend.SYSFS, sysfs_root=tmp_path)
    assert isinstance(reader, SysfsSnapshotReader)
    assert reader.root == tmp_path

    ioreg = create_snapshot_reader("ioreg", timeout=1.5)
    assert isinstance(ioreg, IORegSnapshotReader)
    assert ioreg.timeout == 1.5


def test_create_snapshot_reader_rejects_unknown() -> None:
    with pytest.raises(ValueError):
        create_snapshot_reader("acpi")
