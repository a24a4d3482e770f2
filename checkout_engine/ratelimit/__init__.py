"""
Rate limiting — fixed-window counters keyed per caller.

    from checkout_engine import ratelimit as R

    limiter = R.graphql_limiter()
    if not limiter.is_allowed(ip).allowed:
        ...
"""

from __future__ import annotations

from checkout_engine.ratelimit._types import (
    KeyGenerator,
    RateWindow,
    RateDecision,
    RateLimited,
)
from checkout_engine.ratelimit._limiter import (
    RateLimiter,
    cleaner,
    graphql_limiter,
    category_limiter,
    verify_limiter,
)

__all__ = (
    "KeyGenerator",
    "RateWindow",
    "RateDecision",
    "RateLimited",
    "RateLimiter",
    "cleaner",
    "graphql_limiter",
    "category_limiter",
    "verify_limiter",
)
