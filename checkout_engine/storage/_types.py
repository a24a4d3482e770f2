"""
Storage types — durable key/value capability.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol

from kungfu import Result

from checkout_engine._types import JSON


# ═══════════════════════════════════════════════════════════════════════════════
# Store Error
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True)
class StorageError:
    """Storage operation error."""

    message: str
    backend: str = ""
    cause: Exception | None = None


# ═══════════════════════════════════════════════════════════════════════════════
# DurableStore Protocol
# ═══════════════════════════════════════════════════════════════════════════════


class DurableStore(Protocol):
    """
    Durable key/value store of JSON-compatible values.

    All methods return Result so a failing backend never raises into the
    checkout flow.

    Example Redis implementation:

        class RedisStore:
            name = "redis"

            def __init__(self, client: Redis):
                self.client = client

            async def get(self, key: str) -> Result[JSON | None, StorageError]:
                try:
                    raw = await self.client.get(key)
                    return Ok(json.loads(raw) if raw else None)
                except Exception as e:
                    return Error(StorageError("get failed", self.name, e))

            # ... set / delete
    """

    @property
    def name(self) -> str:
        """Backend name for logs."""
        ...

    async def get(self, key: str) -> Result[JSON | None, StorageError]:
        """Get value. Returns Ok(None) if not found."""
        ...

    async def set(self, key: str, value: JSON) -> Result[None, StorageError]:
        """Store value, replacing any previous one."""
        ...

    async def delete(self, key: str) -> Result[bool, StorageError]:
        """Delete value. Returns Ok(True) if existed."""
        ...


__all__ = ("StorageError", "DurableStore")
