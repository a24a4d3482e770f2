"""
Fixed-window rate limiter.

Each key holds one counter and the moment its window ends. A call after
that moment starts a fresh window; calls beyond max_requests inside the
window are refused without touching the counter. Bursts straddling a
window boundary can reach twice the nominal rate.
"""

from __future__ import annotations

from datetime import timedelta

import structlog
from kungfu import Result, Ok, Error

from checkout_engine._periodic import Periodic
from checkout_engine._types import Clock, system_clock
from checkout_engine.ratelimit._types import (
    KeyGenerator,
    RateWindow,
    RateDecision,
    RateLimited,
)

logger = structlog.get_logger(__name__)


def _identity(identifier: str) -> str:
    return identifier


class RateLimiter:
    """
    Per-key fixed-window counter.

    Example:
        limiter = RateLimiter(60, timedelta(minutes=1), lambda ip: f"graphql:{ip}")
        decision = limiter.is_allowed(client_ip)
        if not decision.allowed:
            ...
    """

    def __init__(
        self,
        max_requests: int,
        window: timedelta,
        key_generator: KeyGenerator = _identity,
        *,
        clock: Clock = system_clock,
    ) -> None:
        self.max_requests = max_requests
        self.window = window
        self._key = key_generator
        self._clock = clock
        self._windows: dict[str, RateWindow] = {}

    def is_allowed(self, identifier: str) -> RateDecision:
        now = self._clock()
        key = self._key(identifier)
        current = self._windows.get(key)

        if current is None or now > current.reset_time:
            reset = now + self.window.total_seconds()
            self._windows[key] = RateWindow(count=1, reset_time=reset)
            return RateDecision(allowed=True, remaining=self.max_requests - 1, reset_time=reset)

        if current.count >= self.max_requests:
            return RateDecision(allowed=False, remaining=0, reset_time=current.reset_time)

        current.count += 1
        return RateDecision(
            allowed=True,
            remaining=self.max_requests - current.count,
            reset_time=current.reset_time,
        )

    def check(self, identifier: str) -> Result[RateDecision, RateLimited]:
        """is_allowed() as a Result, for callers that match on outcomes."""
        decision = self.is_allowed(identifier)
        if decision.allowed:
            return Ok(decision)
        return Error(RateLimited(key=self._key(identifier), reset_time=decision.reset_time))

    def cleanup(self) -> int:
        """Drop windows that already ended. Returns how many were removed."""
        now = self._clock()
        stale = [k for k, w in self._windows.items() if now > w.reset_time]
        for key in stale:
            del self._windows[key]
        return len(stale)

    def __len__(self) -> int:
        return len(self._windows)


def cleaner(*limiters: RateLimiter, interval: timedelta = timedelta(minutes=5)) -> Periodic:
    """Background task running cleanup() on every limiter."""

    async def sweep() -> None:
        removed = sum(limiter.cleanup() for limiter in limiters)
        if removed:
            logger.debug("rate windows cleaned", removed=removed)

    return Periodic("ratelimit-cleanup", interval.total_seconds(), sweep)


# ═══════════════════════════════════════════════════════════════════════════════
# Presets
# ═══════════════════════════════════════════════════════════════════════════════


def graphql_limiter(
    max_requests: int = 60,
    window: timedelta = timedelta(minutes=1),
    *,
    clock: Clock = system_clock,
) -> RateLimiter:
    """GraphQL proxy: 60 requests per minute per IP."""
    return RateLimiter(max_requests, window, lambda ip: f"graphql:{ip}", clock=clock)


def category_limiter(
    max_requests: int = 10,
    window: timedelta = timedelta(minutes=1),
    *,
    clock: Clock = system_clock,
) -> RateLimiter:
    """Category pages: 10 requests per minute per IP."""
    return RateLimiter(max_requests, window, lambda ip: f"category:{ip}", clock=clock)


def verify_limiter(
    max_requests: int = 10,
    window: timedelta = timedelta(minutes=1),
    *,
    clock: Clock = system_clock,
) -> RateLimiter:
    """Customer verification endpoint: 10 requests per minute per IP."""
    return RateLimiter(max_requests, window, lambda ip: f"verify:{ip}", clock=clock)


__all__ = (
    "RateLimiter",
    "cleaner",
    "graphql_limiter",
    "category_limiter",
    "verify_limiter",
)
