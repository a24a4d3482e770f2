"""
Standalone tier operations, catalogue key helpers and preset tiers.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from datetime import timedelta

import structlog
from kungfu import LazyCoroResult
from combinators import lift as L

from checkout_engine._periodic import Periodic
from checkout_engine.cache._types import Tier, TTLTier, CacheError, CacheErrorKind

logger = structlog.get_logger(__name__)


def _connection_error(exc: Exception) -> CacheError:
    return CacheError(CacheErrorKind.CONNECTION, str(exc))


def _guarded[R](op: Callable[[], Awaitable[R]]) -> LazyCoroResult[R, CacheError]:
    return L.catching_async(op, on_error=_connection_error)


# ═══════════════════════════════════════════════════════════════════════════════
# Invalidation
# ═══════════════════════════════════════════════════════════════════════════════


def invalidate[T](t: Tier[T], key: str) -> LazyCoroResult[bool, CacheError]:
    """
    Drop one key. A tier that raises surfaces as a CONNECTION error.

        await C.invalidate(products, C.product_key(100))
    """
    return _guarded(lambda: t.delete(key))


def invalidate_pattern[T](t: Tier[T], pattern: str) -> LazyCoroResult[int, CacheError]:
    """Drop every key matching a glob, e.g. ``"category:shoes:*"``."""
    return _guarded(lambda: t.delete_pattern(pattern))


# ═══════════════════════════════════════════════════════════════════════════════
# Background sweep
# ═══════════════════════════════════════════════════════════════════════════════


def sweeper[T](t: TTLTier[T], interval: timedelta = timedelta(minutes=1)) -> Periodic:
    """
    Background task that drops expired entries from t every interval.

    Example:
        sweep = C.sweeper(verdicts)
        sweep.start()
        ...
        await sweep.stop()
    """

    async def sweep() -> None:
        removed = t.cleanup()
        if removed:
            logger.debug("cache sweep", tier=t.name, removed=removed)

    return Periodic(f"cache-sweep:{t.name}", interval.total_seconds(), sweep)


# ═══════════════════════════════════════════════════════════════════════════════
# Keys & Presets
# ═══════════════════════════════════════════════════════════════════════════════


def category_key(slug: str, page: int = 1) -> str:
    return f"category:{slug}:page:{page}"


def product_key(product_id: int | str) -> str:
    return f"product:{product_id}"


def category_cache[T]() -> TTLTier[T]:
    """Category listing pages: 5 minutes, 1000 entries."""
    return TTLTier(ttl=timedelta(minutes=5), max_size=1000, name="category")


def product_cache[T]() -> TTLTier[T]:
    """Product details: 3 minutes, 5000 entries."""
    return TTLTier(ttl=timedelta(minutes=3), max_size=5000, name="product")


# ═══════════════════════════════════════════════════════════════════════════════
# Exports
# ═══════════════════════════════════════════════════════════════════════════════

__all__ = (
    "invalidate",
    "invalidate_pattern",
    "sweeper",
    "category_key",
    "product_key",
    "category_cache",
    "product_cache",
)
