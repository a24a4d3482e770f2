"""
In-memory store.

Only for tests and as the last-resort fallback: data does not survive a restart.
"""

from __future__ import annotations

import asyncio
import copy

from kungfu import Result, Ok

from checkout_engine._types import JSON
from checkout_engine.storage._types import StorageError


class MemoryStore:
    """Dict-backed DurableStore."""

    def __init__(self, name: str = "memory") -> None:
        self._name = name
        self._values: dict[str, JSON] = {}
        self._lock = asyncio.Lock()

    @property
    def name(self) -> str:
        return self._name

    async def get(self, key: str) -> Result[JSON | None, StorageError]:
        async with self._lock:
            return Ok(copy.deepcopy(self._values.get(key)))

    async def set(self, key: str, value: JSON) -> Result[None, StorageError]:
        async with self._lock:
            self._values[key] = copy.deepcopy(value)
            return Ok(None)

    async def delete(self, key: str) -> Result[bool, StorageError]:
        async with self._lock:
            return Ok(self._values.pop(key, None) is not None)

    def keys(self) -> list[str]:
        return list(self._values)


__all__ = ("MemoryStore",)
