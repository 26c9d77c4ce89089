"""
Bounded retry policy shared by bring-up, SMS submission and call polling.
"""

import logging
from dataclasses import dataclass
from typing import Callable, Iterator, Optional

from .clock import Clock, elapsed_ms

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RetryPolicy:
    """
    Attempt budget for a repeated operation.

    Attributes:
        max_attempts: Upper bound on attempts (None = bounded by deadline only)
        attempt_timeout: Seconds each attempt may wait for its reply
        deadline_ms: Overall budget measured from the first attempt
        interval_ms: Pause between attempts, spent yielding to the idle callback
    """
    max_attempts: Optional[int] = None
    attempt_timeout: float = 2.0
    deadline_ms: Optional[int] = None
    interval_ms: int = 0

    def __post_init__(self) -> None:
        if self.max_attempts is None and self.deadline_ms is None:
            raise ValueError("RetryPolicy needs max_attempts or deadline_ms")

    def attempts(
        self,
        clock: Clock,
        idle: Optional[Callable[[], None]] = None,
        poll_interval_ms: int = 10
    ) -> Iterator[int]:
        """
        Yield attempt numbers (starting at 1) until the budget is spent.

        The caller breaks out of the loop on success.

        Example:

        .. code-block:: python

            for attempt in policy.attempts(clock, idle):
                if try_once():
                    break
        """
        start = clock.now_ms()
        attempt = 0

        while True:
            if self.max_attempts is not None and attempt >= self.max_attempts:
                return
            if self.deadline_ms is not None and attempt > 0 \
                    and elapsed_ms(clock.now_ms(), start) >= self.deadline_ms:
                logger.debug(f"Retry deadline of {self.deadline_ms} ms reached after {attempt} attempts")
                return

            if attempt > 0 and self.interval_ms:
                pause_start = clock.now_ms()
                while elapsed_ms(clock.now_ms(), pause_start) < self.interval_ms:
                    if idle:
                        idle()
                    clock.sleep_ms(poll_interval_ms)

            attempt += 1
            yield attempt
