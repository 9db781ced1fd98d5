"""Data models for monitor timing settings."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta


@dataclass
class TimingSettings:
    """Cadence of the extrapolation tick and the change poll."""

    tick_interval: timedelta = timedelta(seconds=0.1)
    poll_interval: timedelta = timedelta(seconds=2)

    @property
    def tick_seconds(self) -> float:
        return self.tick_interval.total_seconds()

    @property
    def poll_seconds(self) -> float:
        return self.poll_interval.total_seconds()
