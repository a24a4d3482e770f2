"""
Submission guard — slows down a single abusive session.

Distinct from ratelimit.RateLimiter: this one keeps a rolling list of
attempt times for one checkout and knows nothing about keys or windows.
"""

from __future__ import annotations

from collections import deque
from datetime import timedelta

from kungfu import Result, Ok, Error

from checkout_engine._types import Clock, system_clock
from checkout_engine.checkout._types import CheckoutError, CheckoutErrorKind

TOO_MANY_ATTEMPTS = "Too many order attempts. Please wait 10 minutes before trying again."


class SubmissionGuard:
    def __init__(
        self,
        limit: int = 3,
        window: timedelta = timedelta(minutes=10),
        *,
        clock: Clock = system_clock,
    ) -> None:
        self.limit = limit
        self.window = window.total_seconds()
        self._clock = clock
        self._attempts: deque[float] = deque()

    def _prune(self, now: float) -> None:
        while self._attempts and now - self._attempts[0] >= self.window:
            self._attempts.popleft()

    def check(self) -> Result[None, CheckoutError]:
        """Record an attempt, or refuse when `limit` already happened in the window."""
        now = self._clock()
        self._prune(now)
        if len(self._attempts) >= self.limit:
            return Error(CheckoutError(CheckoutErrorKind.RATE_LIMITED, TOO_MANY_ATTEMPTS))
        self._attempts.append(now)
        return Ok(None)

    @property
    def attempts(self) -> int:
        self._prune(self._clock())
        return len(self._attempts)

    def reset(self) -> None:
        self._attempts.clear()


__all__ = ("SubmissionGuard", "TOO_MANY_ATTEMPTS")
