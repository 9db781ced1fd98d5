# src/accuratebattery/utils/time.py
"""Time and date handling utilities."""

from __future__ import annotations

from datetime import UTC, datetime

SECONDS_PER_HOUR = 3600.0


class TimeUtils:
    """Time-related utility functions.

    Centralized utilities for working with instants in the monitor:
    - Current time retrieval with proper timezone handling
    - Elapsed-time calculations in hours for current integration
    """

    @staticmethod
    def now_localized() -> datetime:
        """Get current datetime with local timezone.

        Returns:
            Current datetime with local timezone
        """
        return datetime.now(UTC).astimezone()

    @staticmethod
    def hours_between(start: datetime, end: datetime) -> float:
        """Return the elapsed time between two instants in hours.

        A negative interval (clock stepped backwards) is reported as zero.

        Args:
            start: Earlier instant
            end: Later instant

        Returns:
            Elapsed hours as a float, never negative
        """
        seconds = (end - start).total_seconds()
        return max(0.0, seconds) / SECONDS_PER_HOUR
