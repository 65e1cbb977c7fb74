"""
Reliability utilities for the printer link.

Includes a capped reconnect counter modelled on a circuit breaker.
"""

import time
from typing import Callable, Any, Optional

from arbi_pos.app.core.exceptions import ReconnectLimitError


class ReconnectGuard:
    """
    Counts consecutive failed connection attempts.

    Each failure increments the counter and each success resets it to 0.
    Once 'max_attempts' failures have piled up the guard is OPEN and
    automatic reconnects are refused until an explicit connect succeeds.
    """
    def __init__(self, max_attempts: int = 3):
        self.max_attempts = max_attempts
        self.attempts = 0
        self.last_failure_time: Optional[float] = None

    @property
    def state(self) -> str:
        if self.attempts >= self.max_attempts:
            return "OPEN"
        if self.attempts > 0:
            return "HALF_OPEN"
        return "CLOSED"

    def check(self):
        """Raise if another automatic reconnect is not allowed."""
        if self.state == "OPEN":
            raise ReconnectLimitError(self.attempts)

    async def call(self, func: Callable, *args, **kwargs) -> Any:
        try:
            result = await func(*args, **kwargs)
        except Exception:
            self.record_failure()
            raise
        self.reset_state()
        return result

    def record_failure(self):
        self.attempts += 1
        self.last_failure_time = time.time()

    def reset_state(self):
        self.attempts = 0
        self.last_failure_time = None
