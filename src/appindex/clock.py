"""Clock abstractions so store and catalog code never read wall-clock time directly."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Protocol


class Clock(Protocol):
    """A source of timezone-aware UTC datetimes."""

    def now(self) -> datetime:
        ...


@dataclass(frozen=True, slots=True)
class SystemClock:
    """Clock that returns the current system time in UTC."""

    def now(self) -> datetime:
        return datetime.now(timezone.utc)


@dataclass(frozen=True, slots=True)
class FixedClock:
    """Clock that always returns *fixed_time* (naive values are taken as UTC)."""

    fixed_time: datetime

    def now(self) -> datetime:
        if self.fixed_time.tzinfo is None:
            return self.fixed_time.replace(tzinfo=timezone.utc)
        return self.fixed_time
