"""
Rate limiter types.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass

type KeyGenerator = Callable[[str], str]
"""Maps a caller identifier (IP, session id) to a window key."""


@dataclass(slots=True)
class RateWindow:
    """Counter for one key. Mutable: count grows within the window."""
    count: int
    reset_time: float


@dataclass(frozen=True, slots=True)
class RateDecision:
    """Outcome of a single is_allowed() check."""
    allowed: bool
    remaining: int
    reset_time: float


@dataclass(frozen=True, slots=True)
class RateLimited:
    """Request rejected by a limiter."""
    key: str
    reset_time: float

    @property
    def message(self) -> str:
        return f"Too many requests for {self.key}"


__all__ = ("KeyGenerator", "RateWindow", "RateDecision", "RateLimited")
