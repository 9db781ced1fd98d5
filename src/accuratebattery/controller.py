# src/accuratebattery/controller.py
"""Core controller wiring settings, hardware adapters and the monitor."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Final

from accuratebattery.battery.history import CapacityHistory
from accuratebattery.battery.models import BatterySnapshot, MonitorState
from accuratebattery.battery.monitor import BatteryMonitor
from accuratebattery.battery.notifications import create_notification_source
from accuratebattery.battery.protocols import (
    ManualNotificationSource,
    MockSnapshotReader,
    NotificationSource,
    SnapshotReader,
    create_mock_snapshot,
)
from accuratebattery.battery.readers import create_snapshot_reader
from accuratebattery.scheduling import Executor, InlineExecutor
from accuratebattery.settings.application import ApplicationSettings
from accuratebattery.settings.user import UserSettings

logger: Final = logging.getLogger(__name__)

LOG_FORMAT: Final = "%(asctime)s [%(levelname)s] %(message)s"


class BatteryApp:
    """Main controller class for the battery monitor application.

    This class orchestrates the monitor's collaborators:
    - Loading configuration and configuring logging
    - Selecting the snapshot reader for this host
    - Creating the change-notification source
    - Starting and stopping the BatteryMonitor

    All application dependencies are initialized here, making this
    the central coordination point for the application.
    """

    def __init__(
        self,
        config_path: Path | None = None,
        reader: SnapshotReader | None = None,
        notification_source: NotificationSource | None = None,
        executor: Executor | None = None,
        settings: UserSettings | None = None,
        debug: bool = False,
    ):
        """Initialize the battery application controller.

        Args:
            config_path: Path to config.yaml (default search when None)
            reader: Optional custom snapshot reader
            notification_source: Optional custom notification source
            executor: Optional executor for the monitor
            settings: Already loaded settings; skips config loading
            debug: Enable debug logging
        """
        self.config: UserSettings = settings or UserSettings.load_or_default(config_path)

        # Configure logging
        logging.basicConfig(
            level=logging.DEBUG if debug else getattr(logging, self.config.log_level),
            format=LOG_FORMAT,
        )

        # Create centralized settings
        self.settings = ApplicationSettings(self.config)

        # Allow dependency injection or create defaults
        self.reader: SnapshotReader = reader or create_snapshot_reader(
            self.settings.reader_backend,
            timeout=self.settings.read_timeout,
            sysfs_root=self.settings.sysfs_root,
        )
        self.notification_source = notification_source or create_notification_source(
            self.reader, self.settings.timing.poll_seconds
        )
        self.executor = executor
        self.monitor: BatteryMonitor | None = None

    def read_once(self) -> BatterySnapshot:
        """Read one snapshot without starting a monitor.

        Raises:
            ReadError: If the read fails
        """
        return self.reader.read()

    def start(self) -> BatteryMonitor:
        """Start (or return the already running) monitor."""
        if self.monitor is not None and not self.monitor.closed:
            return self.monitor

        self.monitor = BatteryMonitor(
            self.reader,
            self.notification_source,
            executor=self.executor,
            tick_seconds=self.settings.timing.tick_seconds,
            history=CapacityHistory(self.settings.retention),
        )
        state = self.monitor.state
        logger.info(
            "Battery monitor started: %s at %.1f%%", state.state.label, state.level * 100
        )
        return self.monitor

    def stop(self) -> None:
        """Shut down the monitor if one is running."""
        if self.monitor is not None:
            self.monitor.shutdown()

    @staticmethod
    def status_line(state: MonitorState, history_size: int | None = None) -> str:
        """Render a one-line plain-text summary of a monitor state."""
        line = (
            f"{state.state.label}: {state.display_level * 100:.2f}% "
            f"({state.display_capacity:.1f}/{state.max_capacity} mAh, "
            f"design {state.design_capacity} mAh, {state.amperage} mA)"
        )
        if state.last_error:
            line += f" [{state.last_error}]"
        if history_size is not None:
            line += f" history={history_size}"
        return line

    @classmethod
    def create_for_testing(
        cls,
        snapshot: BatterySnapshot | None = None,
        settings: UserSettings | None = None,
    ) -> BatteryApp:
        """Create a BatteryApp wired to in-memory doubles.

        Args:
            snapshot: Snapshot the mock reader returns (a discharging default
                when None)
            settings: Settings to use instead of loading a config file

        Returns:
            BatteryApp using a MockSnapshotReader, a ManualNotificationSource
            and an InlineExecutor
        """
        return cls(
            reader=MockSnapshotReader(snapshot or create_mock_snapshot()),
            notification_source=ManualNotificationSource(),
            executor=InlineExecutor(),
            settings=settings or UserSettings(),
            debug=True,
        )
