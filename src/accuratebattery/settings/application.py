"""Internal application settings derived from user settings."""

from __future__ import annotations

from datetime import timedelta
from pathlib import Path

from accuratebattery.battery.history import RetentionPolicy
from accuratebattery.battery.readers import ReaderBackend
from accuratebattery.scheduling.models import TimingSettings
from accuratebattery.settings.user import UserSettings


class ApplicationSettings:
    """Application settings container.

    This class combines user-provided configuration with application
    defaults to create the objects the monitor is built from:

    - Reader backend selection and hardware paths
    - Extrapolation and polling cadence through TimingSettings
    - The optional history retention policy

    Examples:
        user_settings = UserSettings.load_or_default()
        app_settings = ApplicationSettings(user_settings)

        backend = app_settings.reader_backend
        period = app_settings.timing.tick_seconds
    """

    def __init__(
        self,
        user_settings: UserSettings,
        timing: TimingSettings | None = None,
        retention: RetentionPolicy | None = None,
    ):
        """Initialize application settings with configuration sources."""
        self.user = user_settings
        self.timing = timing or TimingSettings(
            tick_interval=timedelta(seconds=user_settings.tick_seconds),
            poll_interval=timedelta(seconds=user_settings.poll_seconds),
        )
        self.retention = retention or self._retention_from_user(user_settings)

    @property
    def reader_backend(self) -> ReaderBackend:
        return ReaderBackend(self.user.reader)

    @property
    def sysfs_root(self) -> Path:
        return Path(self.user.sysfs_root)

    @property
    def read_timeout(self) -> float:
        return self.user.read_timeout_seconds

    @staticmethod
    def _retention_from_user(user_settings: UserSettings) -> RetentionPolicy | None:
        if user_settings.history is None:
            return None
        return RetentionPolicy(
            max_entries=user_settings.history.max_entries,
            max_age=user_settings.history.max_age,
        )
