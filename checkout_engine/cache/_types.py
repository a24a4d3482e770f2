"""
Cache types.
"""

from __future__ import annotations

import fnmatch
from dataclasses import dataclass
from datetime import timedelta
from enum import Enum, auto
from typing import Protocol

from checkout_engine._types import Clock, system_clock

# ═══════════════════════════════════════════════════════════════════════════════
# Tier Protocol
# ═══════════════════════════════════════════════════════════════════════════════

class Tier[T](Protocol):
    """
    Anything that can hold cached values under string keys.

    TTLTier is the in-process implementation. A shared tier only has to
    provide the same five members, e.g. one backed by the durable store:

        class StoreTier:
            name = "durable"

            def __init__(self, store: St.DurableStore) -> None:
                self.store = store

            async def get(self, key: str) -> JSON | None:
                return (await self.store.get(key)).unwrap_or(None)
            ...
    """

    @property
    def name(self) -> str:
        """Label used in logs and CacheResult.tier."""
        ...

    async def get(self, key: str) -> T | None:
        """None when absent or expired."""
        ...

    async def set(self, key: str, value: T) -> None: ...

    async def delete(self, key: str) -> bool:
        """True if the key was present."""
        ...

    async def delete_pattern(self, pattern: str) -> int:
        """Drop keys matching a glob pattern. Returns how many went."""
        ...


# ═══════════════════════════════════════════════════════════════════════════════
# Entries & Stats
# ═══════════════════════════════════════════════════════════════════════════════

@dataclass(slots=True)
class CacheEntry[T]:
    """Stored value with expiry bookkeeping. Mutable: hits grow on every read."""
    value: T
    created_at: float
    expires_at: float
    hits: int = 0

    def expired(self, now: float) -> bool:
        return now > self.expires_at


@dataclass(frozen=True, slots=True)
class CacheStats:
    """Point-in-time cache statistics."""
    size: int
    max_size: int
    hit_rate: float


# ═══════════════════════════════════════════════════════════════════════════════
# TTL Tier (in-memory, insertion-order eviction)
# ═══════════════════════════════════════════════════════════════════════════════

class TTLTier[T]:
    """
    In-memory tier with per-entry expiry and bounded size.

    Expired entries are dropped lazily on read and by cleanup().
    When a write pushes the size over max_size, the oldest inserted key goes.
    Re-setting an existing key keeps its original insertion position.

    Example:
        tier = TTLTier[Verdict](ttl=timedelta(minutes=5), max_size=1000)
        await tier.set("01711111111", verdict)
    """

    def __init__(
        self,
        ttl: timedelta = timedelta(minutes=5),
        max_size: int = 1000,
        *,
        name: str = "ttl",
        clock: Clock = system_clock,
    ) -> None:
        self._ttl = ttl.total_seconds()
        self._max_size = max_size
        self._name = name
        self._clock = clock
        self._entries: dict[str, CacheEntry[T]] = {}

    @property
    def name(self) -> str:
        return self._name

    @property
    def max_size(self) -> int:
        return self._max_size

    def _live(self, key: str) -> CacheEntry[T] | None:
        entry = self._entries.get(key)
        if entry is None:
            return None
        if entry.expired(self._clock()):
            del self._entries[key]
            return None
        return entry

    async def get(self, key: str) -> T | None:
        entry = self._live(key)
        if entry is None:
            return None
        entry.hits += 1
        return entry.value

    async def has(self, key: str) -> bool:
        return await self.get(key) is not None

    async def set(self, key: str, value: T, ttl: timedelta | None = None) -> None:
        now = self._clock()
        seconds = ttl.total_seconds() if ttl is not None else self._ttl
        existing = self._entries.get(key)
        if existing is not None:
            existing.value = value
            existing.created_at = now
            existing.expires_at = now + seconds
            existing.hits = 0
            return

        self._entries[key] = CacheEntry(value=value, created_at=now, expires_at=now + seconds)
        if len(self._entries) > self._max_size:
            oldest = next(iter(self._entries))
            del self._entries[oldest]

    async def delete(self, key: str) -> bool:
        return self._entries.pop(key, None) is not None

    async def delete_pattern(self, pattern: str) -> int:
        keys = [k for k in self._entries if fnmatch.fnmatch(k, pattern)]
        for key in keys:
            del self._entries[key]
        return len(keys)

    def clear(self) -> None:
        self._entries.clear()

    def cleanup(self) -> int:
        """Remove every expired entry. Returns how many were dropped."""
        now = self._clock()
        expired = [k for k, e in self._entries.items() if e.expired(now)]
        for key in expired:
            del self._entries[key]
        return len(expired)

    def size(self) -> int:
        self.cleanup()
        return len(self._entries)

    def stats(self) -> CacheStats:
        size = self.size()
        hits = sum(e.hits for e in self._entries.values())
        rate = round(hits / size, 2) if size else 0.0
        return CacheStats(size=size, max_size=self._max_size, hit_rate=rate)


# ═══════════════════════════════════════════════════════════════════════════════
# Cache Result
# ═══════════════════════════════════════════════════════════════════════════════

@dataclass(frozen=True, slots=True)
class CacheResult[T]:
    """Cache operation result with metadata."""
    value: T
    hit: bool
    tier: str | None


class CacheErrorKind(Enum):
    """Cache error kinds."""
    MISS = auto()
    CONNECTION = auto()
    SERIALIZATION = auto()


@dataclass(frozen=True, slots=True)
class CacheError:
    """Cache operation error."""
    kind: CacheErrorKind
    message: str


# ═══════════════════════════════════════════════════════════════════════════════
# Exports
# ═══════════════════════════════════════════════════════════════════════════════

__all__ = (
    "Tier",
    "CacheEntry",
    "CacheStats",
    "TTLTier",
    "CacheResult",
    "CacheError",
    "CacheErrorKind",
)
