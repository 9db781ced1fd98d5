"""Accurate Battery - smoothed battery telemetry for the host machine."""

__version__ = "0.1.0"
