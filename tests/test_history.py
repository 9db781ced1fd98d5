from datetime import UTC, datetime, timedelta

import pytest

from accuratebattery.battery.history import CapacityHistory, RetentionPolicy
from accuratebattery.battery.models import CapacityEntry

T0 = datetime(2025, 5, 3, 12, 0, tzinfo=UTC)


def test_empty_history() -> None:
    history = CapacityHistory()
    assert len(history) == 0
    assert history.latest() is None
    assert history.last_actual() is None
    assert history.entries() == ()


def test_append_keeps_order_and_entries() -> None:
    history = CapacityHistory()
    history.record(4000, extrapolated=False, timestamp=T0)
    history.record(4010.5, extrapolated=True, timestamp=T0 + timedelta(seconds=1))
    history.record(4010.5, extrapolated=True, timestamp=T0 + timedelta(seconds=1))

    entries = history.entries()
    assert [e.capacity for e in entries] == [4000.0, 4010.5, 4010.5]  # no dedup
    assert [e.extrapolated for e in entries] == [False, True, True]
    assert len({e.id for e in entries}) == 3
    assert history.latest() is entries[-1]
    assert history.last_actual() is entries[0]


def test_out_of_order_timestamp_is_restamped() -> None:
    history = CapacityHistory()
    history.record(4000, extrapolated=False, timestamp=T0)
    stored = history.record(3990, extrapolated=False, timestamp=T0 - timedelta(minutes=5))

    assert stored.timestamp == T0
    timestamps = [e.timestamp for e in history]
    assert timestamps == sorted(timestamps)


def test_entries_snapshot_is_immutable() -> None:
    history = CapacityHistory()
    history.record(4000, extrapolated=False, timestamp=T0)
    snapshot = history.entries()
    history.record(4001, extrapolated=True, timestamp=T0)
    assert len(snapshot) == 1
    assert len(history) == 2


def test_append_prebuilt_entry() -> None:
    history = CapacityHistory()
    entry = CapacityEntry(timestamp=T0, capacity=100.0, extrapolated=False)
    assert history.append(entry) is entry


def test_retention_by_count() -> None:
    history = CapacityHistory(RetentionPolicy(max_entries=3))
    for i in range(5):
        history.record(i, extrapolated=False, timestamp=T0 + timedelta(seconds=i))

    assert [e.capacity for e in history] == [2.0, 3.0, 4.0]


def test_retention_by_age() -> None:
    history = CapacityHistory(RetentionPolicy(max_age=timedelta(minutes=10)))
    history.record(1, extrapolated=False, timestamp=T0)
    history.record(2, extrapolated=False, timestamp=T0 + timedelta(minutes=5))
    history.record(3, extrapolated=False, timestamp=T0 + timedelta(minutes=12))

    assert [e.capacity for e in history] == [2.0, 3.0]


def test_unbounded_policy_keeps_everything() -> None:
    policy = RetentionPolicy()
    assert policy.is_unbounded
    history = CapacityHistory(policy)
    for i in range(100):
        history.record(i, extrapolated=True, timestamp=T0)
    assert len(history) == 100


@pytest.mark.parametrize(
    "kwargs",
    [{"max_entries": 0}, {"max_entries": -1}, {"max_age": timedelta(0)}],
)
def test_retention_policy_rejects_non_positive(kwargs: dict) -> None:
    with pytest.raises(ValueError):
        RetentionPolicy(**kwargs)
