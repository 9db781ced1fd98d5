"""Exception classes for battery reads and notification subscriptions.

This module defines a hierarchy of exception classes for handling
the error conditions a battery monitor can run into when talking to
the host's power-management service.
"""

from __future__ import annotations

from typing import Iterable, Optional


class BatteryError(Exception):
    """Base class for every error raised by the battery core."""

    def __init__(self, message: str, original_error: Optional[Exception] = None) -> None:
        """Initialize the exception.

        Args:
            message: Human-readable error message
            original_error: The underlying exception, when one was caught
        """
        super().__init__(message)
        self.message: str = message
        self.original_error = original_error


class ReadError(BatteryError):
    """A battery snapshot could not be read.

    Subclasses distinguish the permanent case (no battery service on this
    host) from the transient one (a read returned incomplete data).
    """

    @property
    def is_permanent(self) -> bool:
        """Check whether retrying the read can ever succeed.

        Returns:
            True if the condition lasts for the process lifetime
        """
        return False


class ServiceUnavailableError(ReadError):
    """Raised when the host exposes no battery service (e.g. a desktop)."""

    @property
    def is_permanent(self) -> bool:
        return True


class IncompleteDataError(ReadError):
    """Raised when a read is missing properties or returns mistyped values."""

    def __init__(
        self,
        message: str,
        missing: Iterable[str] = (),
        mistyped: Iterable[str] = (),
        original_error: Optional[Exception] = None,
    ) -> None:
        """Initialize with the offending property names.

        Args:
            message: Description of the problem
            missing: Names of properties absent from the read
            mistyped: Names of properties present with the wrong type
            original_error: The original exception that was caught
        """
        super().__init__(message, original_error)
        self.missing: tuple[str, ...] = tuple(missing)
        self.mistyped: tuple[str, ...] = tuple(mistyped)

    @classmethod
    def for_properties(
        cls, missing: Iterable[str] = (), mistyped: Iterable[str] = ()
    ) -> IncompleteDataError:
        """Create an error describing which properties failed validation.

        Args:
            missing: Names of absent properties
            mistyped: Names of properties with the wrong type

        Returns:
            IncompleteDataError with a message listing the properties
        """
        missing = tuple(missing)
        mistyped = tuple(mistyped)
        parts: list[str] = []
        if missing:
            parts.append(f"missing {', '.join(missing)}")
        if mistyped:
            parts.append(f"wrong type for {', '.join(mistyped)}")
        message = "Incomplete battery data: " + ("; ".join(parts) or "unknown cause")
        return cls(message, missing=missing, mistyped=mistyped)


class NotificationError(BatteryError):
    """Raised when subscribing to battery-state notifications fails."""

    pass
