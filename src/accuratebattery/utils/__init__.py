"""Common utility functions and helpers for the accuratebattery package."""

from accuratebattery.utils.time import SECONDS_PER_HOUR, TimeUtils

__all__ = [
    "SECONDS_PER_HOUR",
    "TimeUtils",
]
