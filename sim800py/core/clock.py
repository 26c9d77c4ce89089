"""
Millisecond clock abstraction.

Timestamps live in a 32-bit unsigned domain; all comparisons go through
``elapsed_ms`` so a counter wrap never produces a negative duration.
"""

import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Optional

CLOCK_MASK = 0xFFFFFFFF


def elapsed_ms(now: int, since: int) -> int:
    """Milliseconds from ``since`` to ``now``, modulo the clock width."""
    return (now - since) & CLOCK_MASK


class Clock(ABC):
    """Monotonic millisecond clock with a blocking sleep."""

    @abstractmethod
    def now_ms(self) -> int:
        """Current time in milliseconds (32-bit unsigned, wraps)."""
        pass

    @abstractmethod
    def sleep_ms(self, ms: int) -> None:
        """Block for ``ms`` milliseconds."""
        pass


class MonotonicClock(Clock):
    """Clock backed by ``time.monotonic``."""

    def now_ms(self) -> int:
        return int(time.monotonic() * 1000) & CLOCK_MASK

    def sleep_ms(self, ms: int) -> None:
        if ms > 0:
            time.sleep(ms / 1000.0)


class ManualClock(Clock):
    """
    Virtual clock for testing.

    Time only moves when ``sleep_ms`` or ``advance`` is called, so every
    timeout in the driver resolves instantly and deterministically.
    """

    def __init__(self, start_ms: int = 0) -> None:
        self._now = start_ms & CLOCK_MASK

    def now_ms(self) -> int:
        return self._now

    def sleep_ms(self, ms: int) -> None:
        self.advance(ms)

    def advance(self, ms: int) -> None:
        self._now = (self._now + max(ms, 0)) & CLOCK_MASK


@dataclass
class PollCache:
    """
    Cached result of a rate-limited query.

    A cache that has never been polled is always due.
    """
    cooldown_ms: int
    value: Any = None
    last_polled_ms: Optional[int] = None

    def is_due(self, now: int) -> bool:
        if self.last_polled_ms is None:
            return True
        return elapsed_ms(now, self.last_polled_ms) > self.cooldown_ms

    def mark(self, now: int) -> None:
        self.last_polled_ms = now
