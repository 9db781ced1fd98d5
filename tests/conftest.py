from datetime import UTC, datetime, timedelta

import pytest

from accuratebattery.battery.models import BatterySnapshot
from accuratebattery.battery.protocols import create_mock_snapshot


class FakeClock:
    """Manually advanced clock for deterministic elapsed-time tests."""

    def __init__(self, start: datetime | None = None) -> None:
        self.now = start or datetime(2025, 5, 3, 12, 0, tzinfo=UTC)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def discharging_snapshot() -> BatterySnapshot:
    return create_mock_snapshot()


@pytest.fixture
def charging_snapshot() -> BatterySnapshot:
    return create_mock_snapshot(
        current_capacity=5000,
        max_capacity=5200,
        external_connected=True,
        is_charging=True,
        amperage=1000,
    )
