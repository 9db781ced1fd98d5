"""Append-only capacity history used for trend display."""

from __future__ import annotations

import dataclasses
import logging
from collections import deque
from collections.abc import Iterator
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Final

from accuratebattery.battery.models import CapacityEntry

logger: Final = logging.getLogger(__name__)


@dataclass(frozen=True)
class RetentionPolicy:
    """Bound on how much history to keep.

    Either limit may be None. A policy with both limits None keeps
    everything, which is the same as passing no policy at all.

    Attributes:
        max_entries: Keep at most this many entries (oldest evicted first)
        max_age: Drop entries older than this relative to the newest entry
    """

    max_entries: int | None = None
    max_age: timedelta | None = None

    def __post_init__(self) -> None:
        if self.max_entries is not None and self.max_entries <= 0:
            raise ValueError("max_entries must be positive")
        if self.max_age is not None and self.max_age <= timedelta(0):
            raise ValueError("max_age must be positive")

    @property
    def is_unbounded(self) -> bool:
        return self.max_entries is None and self.max_age is None


class CapacityHistory:
    """Ordered log of capacity samples.

    Entries are only ever appended at the end and are never modified,
    reordered or deduplicated. Timestamps are kept non-decreasing: an entry
    stamped before the current last entry is re-stamped with the last
    entry's timestamp on the way in.

    Without a retention policy the history grows for as long as its owner
    lives. With one, the oldest entries are evicted from the front.
    """

    def __init__(self, retention: RetentionPolicy | None = None) -> None:
        """Initialize an empty history.

        Args:
            retention: Optional bound on kept entries; None keeps everything
        """
        self.retention = retention
        self._entries: deque[CapacityEntry] = deque()

    def append(self, entry: CapacityEntry) -> CapacityEntry:
        """Append an entry and return the entry as stored.

        Args:
            entry: Entry to append

        Returns:
            The stored entry (re-stamped if it was older than the last one)
        """
        if self._entries and entry.timestamp < self._entries[-1].timestamp:
            logger.debug(
                "History entry at %s precedes last entry at %s; re-stamping",
                entry.timestamp.isoformat(),
                self._entries[-1].timestamp.isoformat(),
            )
            entry = dataclasses.replace(entry, timestamp=self._entries[-1].timestamp)

        self._entries.append(entry)
        self._apply_retention()
        return entry

    def record(self, capacity: float, extrapolated: bool, timestamp: datetime) -> CapacityEntry:
        """Build an entry from its fields and append it."""
        return self.append(
            CapacityEntry(timestamp=timestamp, capacity=float(capacity), extrapolated=extrapolated)
        )

    def entries(self) -> tuple[CapacityEntry, ...]:
        """Return an immutable snapshot of the history, oldest first."""
        return tuple(self._entries)

    def latest(self) -> CapacityEntry | None:
        """Return the newest entry, or None when empty."""
        return self._entries[-1] if self._entries else None

    def last_actual(self) -> CapacityEntry | None:
        """Return the newest entry that came from a real read."""
        for entry in reversed(self._entries):
            if not entry.extrapolated:
                return entry
        return None

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[CapacityEntry]:
        return iter(self.entries())

    def _apply_retention(self) -> None:
        policy = self.retention
        if policy is None or policy.is_unbounded:
            return

        if policy.max_entries is not None:
            while len(self._entries) > policy.max_entries:
                self._entries.popleft()

        if policy.max_age is not None:
            cutoff = self._entries[-1].timestamp - policy.max_age
            while self._entries and self._entries[0].timestamp < cutoff:
                self._entries.popleft()
