"""
Expiring in-memory tiers and a read-through cache in front of lazy fetches.

    from checkout_engine import cache as C

    products = C.product_cache()
    lookup = C.cache(C.product_key, fetch_product).tier(products).build()

    match await lookup.get(100):
        case Ok(found) if found.hit:
            ...

C.sweeper(tier) returns a periodic task that evicts expired entries.
"""

from __future__ import annotations

from checkout_engine.cache._types import (
    Tier,
    CacheEntry,
    CacheStats,
    TTLTier,
    CacheResult,
    CacheError,
    CacheErrorKind,
)
from checkout_engine.cache._builder import cache, Cache, CacheExecutor
from checkout_engine.cache._ops import (
    invalidate,
    invalidate_pattern,
    sweeper,
    category_key,
    product_key,
    category_cache,
    product_cache,
)

__all__ = (
    "Tier",
    "CacheEntry",
    "CacheStats",
    "TTLTier",
    "CacheResult",
    "CacheError",
    "CacheErrorKind",
    "cache",
    "Cache",
    "CacheExecutor",
    "invalidate",
    "invalidate_pattern",
    "sweeper",
    "category_key",
    "product_key",
    "category_cache",
    "product_cache",
)
