"""
Read-through cache over one or more tiers.

    verdicts = (
        C.cache(lambda phone: f"risk:{phone}", lookup)
        .tier(C.TTLTier(ttl=timedelta(minutes=5), name="risk"))
        .store_if(lambda verdict: verdict.cacheable)
        .build()
    )
    match await verdicts.get("01712345678"):
        case Ok(found):
            found.value, found.hit, found.tier

Tiers are read in the order they were added; a miss everywhere runs the
fetch, and an accepted value is written back to every tier. A tier that
raises is logged and skipped, so a broken tier degrades to a miss.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, replace

import structlog
from kungfu import Result, Ok, Error

from checkout_engine import lift as L
from checkout_engine._types import Lazy
from checkout_engine.cache._types import CacheError, CacheResult, Tier

logger = structlog.get_logger(__name__)

type KeyFn[K] = Callable[[K], str]

type Fetch[K, T, E] = Callable[[K], Lazy[T, E]]

type StorePredicate[T] = Callable[[T], bool]
"""Decides whether a fetched value may be written to the tiers."""


def _always(value: object) -> bool:
    return True


# ═══════════════════════════════════════════════════════════════════════════════
# Builder
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(slots=True, frozen=True)
class Cache[K, T, E]:
    """Immutable configuration; every method returns a new builder."""

    key: KeyFn[K]
    fetch: Fetch[K, T, E]
    tiers: tuple[Tier[T], ...] = ()
    keep: StorePredicate[T] = _always

    def tier(self, t: Tier[T]) -> Cache[K, T, E]:
        return replace(self, tiers=(*self.tiers, t))

    def store_if(self, predicate: StorePredicate[T]) -> Cache[K, T, E]:
        """Write fetched values back only when predicate(value) holds."""
        return replace(self, keep=predicate)

    def build(self) -> CacheExecutor[K, T, E]:
        if not self.tiers:
            raise ValueError("cache needs at least one tier")
        return CacheExecutor(self)


# ═══════════════════════════════════════════════════════════════════════════════
# Executor
# ═══════════════════════════════════════════════════════════════════════════════


class CacheExecutor[K, T, E]:
    __slots__ = ("_config",)

    def __init__(self, config: Cache[K, T, E]) -> None:
        self._config = config

    @property
    def tiers(self) -> tuple[Tier[T], ...]:
        return self._config.tiers

    async def _read(self, cache_key: str) -> CacheResult[T] | None:
        for t in self._config.tiers:
            try:
                value = await t.get(cache_key)
            except Exception as e:
                logger.warning("cache tier read failed", tier=t.name, key=cache_key, error=str(e))
                continue
            if value is not None:
                return CacheResult(value=value, hit=True, tier=t.name)
        return None

    async def _write(self, cache_key: str, value: T) -> None:
        if not self._config.keep(value):
            logger.debug("fetched value not cached", key=cache_key)
            return
        for t in self._config.tiers:
            try:
                await t.set(cache_key, value)
            except Exception as e:
                logger.warning("cache tier write failed", tier=t.name, key=cache_key, error=str(e))

    def get(self, key: K) -> Lazy[CacheResult[T], E]:
        """Cached value for key, fetching and writing back on a miss."""
        cache_key = self._config.key(key)

        async def run() -> Result[CacheResult[T], E]:
            cached = await self._read(cache_key)
            if cached is not None:
                return Ok(cached)

            match await self._config.fetch(key):
                case Ok(value):
                    await self._write(cache_key, value)
                    return Ok(CacheResult(value=value, hit=False, tier=None))
                case Error(e):
                    return Error(e)

        return L.from_result_async(run)

    async def invalidate(self, key: K) -> Result[bool, CacheError]:
        """Drop key from every tier. True if any tier held it."""
        cache_key = self._config.key(key)
        removed = [await t.delete(cache_key) for t in self._config.tiers]
        return Ok(any(removed))


def cache[K, T, E](key: KeyFn[K], fetch: Fetch[K, T, E]) -> Cache[K, T, E]:
    """Start a read-through cache from a key function and a lazy fetch."""
    return Cache(key=key, fetch=fetch)


__all__ = ("Cache", "CacheExecutor", "cache", "KeyFn", "Fetch", "StorePredicate")
