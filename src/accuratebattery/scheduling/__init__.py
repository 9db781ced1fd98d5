"""Scheduling package: the serial executor and the extrapolation timer."""

from accuratebattery.scheduling.executor import (
    Executor,
    InlineExecutor,
    SerialExecutor,
)
from accuratebattery.scheduling.models import TimingSettings
from accuratebattery.scheduling.timer import RepeatingTimer

__all__ = [
    "Executor",
    "InlineExecutor",
    "RepeatingTimer",
    "SerialExecutor",
    "TimingSettings",
]
