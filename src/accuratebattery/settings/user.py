"""User-configurable settings loaded from config.yaml."""

from __future__ import annotations

import os
import re
from datetime import timedelta
from pathlib import Path
from typing import ClassVar, Literal

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, Field, ValidationError, model_validator

# Load environment variables from .env file(s)
load_dotenv()

CONFIG_ENV_VAR = "ACCURATEBATTERY_CONFIG"


def _interpolate_env(content: str) -> str:
    return re.sub(r"\$\{(\w+)\}", lambda m: os.getenv(m.group(1), ""), content)


class HistoryRetention(BaseModel):
    """Bound on how much capacity history the monitor keeps.

    At least one limit must be given; omit the whole section to keep the
    history unbounded for the lifetime of the monitor.
    """

    max_entries: int | None = Field(None, gt=0, description="Keep at most this many samples")
    max_age_minutes: float | None = Field(
        None, gt=0, description="Drop samples older than this many minutes"
    )

    @model_validator(mode="after")
    def check_some_limit(self) -> HistoryRetention:
        if self.max_entries is None and self.max_age_minutes is None:
            raise ValueError("history needs max_entries or max_age_minutes")
        return self

    @property
    def max_age(self) -> timedelta | None:
        if self.max_age_minutes is None:
            return None
        return timedelta(minutes=self.max_age_minutes)


class UserSettings(BaseModel):
    """User settings for the battery monitor. These values can be
    overridden in config.yaml; every field has a working default.
    """

    # Default search paths for configuration
    DEFAULT_CONFIG_PATHS: ClassVar[list[Path]] = [
        Path("config.yaml"),
        Path("~/.config/accuratebattery/config.yaml").expanduser(),
        Path("/etc/accuratebattery/config.yaml"),
    ]

    # Hardware access
    reader: Literal["auto", "ioreg", "sysfs"] = Field(
        "auto", description="Snapshot reader backend (auto picks one for this OS)"
    )
    sysfs_root: str = Field(
        "/sys/class/power_supply", description="Linux power-supply class directory"
    )
    read_timeout_seconds: float = Field(5.0, gt=0, description="Timeout for one snapshot read")

    # Timing
    tick_seconds: float = Field(
        0.1, gt=0, le=60, description="Extrapolation period between real reads (seconds)"
    )
    poll_seconds: float = Field(
        2.0, gt=0, description="How often the battery is checked for changes (seconds)"
    )

    # History
    history: HistoryRetention | None = None

    # Logging
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"

    # ---- convenience methods ----
    @property
    def tick_interval(self) -> timedelta:
        """Extrapolation period as a timedelta."""
        return timedelta(seconds=self.tick_seconds)

    @property
    def history_is_bounded(self) -> bool:
        """Whether a retention policy has been configured."""
        return self.history is not None

    @classmethod
    def find_config(cls) -> Path | None:
        """Locate a config file without loading it.

        Returns:
            Path from ACCURATEBATTERY_CONFIG or the first existing default
            path, or None if there is none

        Raises:
            FileNotFoundError: If ACCURATEBATTERY_CONFIG names a missing file
        """
        env_path = os.environ.get(CONFIG_ENV_VAR)
        if env_path:
            path = Path(env_path)
            if not path.exists():
                raise FileNotFoundError(f"Config file from {CONFIG_ENV_VAR} not found: {path}")
            return path

        for default_path in cls.DEFAULT_CONFIG_PATHS:
            if default_path.exists():
                return default_path
        return None

    @classmethod
    def load(cls, path: Path | None = None) -> UserSettings:
        """Load configuration from a YAML file.

        Args:
            path: Path to config file (optional, searches default locations if None)

        Returns:
            Validated UserSettings object

        Raises:
            FileNotFoundError: If no config file is found
            RuntimeError: If the config file cannot be parsed or is invalid
        """
        if path is None:
            path = cls.find_config()
            if path is None:
                raise FileNotFoundError(
                    f"No configuration file found. Create config.yaml or set {CONFIG_ENV_VAR}."
                )

        try:
            raw = _interpolate_env(path.read_text())
            data = yaml.safe_load(raw) or {}
        except (OSError, yaml.YAMLError) as exc:
            raise RuntimeError(f"Unable to read config YAML: {exc}") from exc

        try:
            return cls.model_validate(data)
        except ValidationError as err:
            raise RuntimeError(f"Invalid configuration:\n{err}") from err

    @classmethod
    def load_or_default(cls, path: Path | None = None) -> UserSettings:
        """Load configuration, falling back to defaults when no file exists.

        An explicit ``path`` that does not exist is still an error.
        """
        if path is None and cls.find_config() is None:
            return cls()
        return cls.load(path)
