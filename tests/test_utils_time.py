from datetime import UTC, datetime, timedelta

import pytest

from accuratebattery.utils import TimeUtils

T0 = datetime(2025, 5, 3, 12, 0, tzinfo=UTC)


@pytest.mark.parametrize(
    "delta, expected",
    [
        (timedelta(hours=1), 1.0),
        (timedelta(minutes=30), 0.5),
        (timedelta(milliseconds=100), 0.1 / 3600),
        (timedelta(0), 0.0),
        (timedelta(minutes=-5), 0.0),  # clock stepped backwards
    ],
)
def test_hours_between(delta: timedelta, expected: float) -> None:
    assert TimeUtils.hours_between(T0, T0 + delta) == pytest.approx(expected)


def test_now_localized_is_aware() -> None:
    assert TimeUtils.now_localized().tzinfo is not None
