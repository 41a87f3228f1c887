"""
Clock implementations.

The engine never calls datetime.now() directly; callers inject a clock so
canonical timestamps are reproducible in tests.
"""

from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone


class SystemClock:
    """Wall-clock UTC time source."""

    def now(self) -> datetime:
        return datetime.now(timezone.utc)


@dataclass
class ManualClock:
    """
    Manually advanced time source.

    now() returns the current instant and then advances by step, so
    consecutive calls yield strictly increasing timestamps.
    """
    current: datetime = field(
        default_factory=lambda: datetime(2026, 1, 1, tzinfo=timezone.utc)
    )
    step: timedelta = timedelta(seconds=1)

    def now(self) -> datetime:
        ts = self.current
        self.current = self.current + self.step
        return ts

    def advance(self, delta: timedelta) -> None:
        self.current = self.current + delta
