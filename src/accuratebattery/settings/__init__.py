"""Application settings management.

This package provides:
- UserSettings: User-configurable settings loaded from config.yaml
- ApplicationSettings: Internal application settings and defaults
"""

from accuratebattery.settings.application import ApplicationSettings
from accuratebattery.settings.user import HistoryRetention, UserSettings

__all__ = [
    "ApplicationSettings",
    "HistoryRetention",
    "UserSettings",
]
