"""Clock port.

Timestamps and cache TTLs are read through a Clock so tests can pin time.
"""

import time
from abc import ABC, abstractmethod
from datetime import datetime, timezone


class Clock(ABC):
    """Source of the current instant."""

    @abstractmethod
    def now(self) -> datetime:
        """Return the current time as a timezone-aware UTC datetime."""

    def monotonic(self) -> float:
        """Seconds on a clock suitable for measuring TTLs."""
        return self.now().timestamp()


class SystemClock(Clock):
    """Wall clock backed by the operating system."""

    def now(self) -> datetime:
        return datetime.now(timezone.utc)

    def monotonic(self) -> float:
        return time.monotonic()
