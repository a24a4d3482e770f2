"""
Fallback chain — ordered backends behind one DurableStore.

Writes land in the first backend that accepts them; if every durable backend
fails, the value is kept in an in-memory fallback so the current process can
still read it back. Reads return the first value found in order. A backend
that raises is treated the same as one that returns an error.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable, Sequence

import structlog
from kungfu import Result, Ok, Error

from checkout_engine._types import JSON
from checkout_engine.storage._types import DurableStore, StorageError
from checkout_engine.storage._memory import MemoryStore

logger = structlog.get_logger(__name__)


async def _attempt[T](
    backend: DurableStore,
    op: Callable[[], Awaitable[Result[T, StorageError]]],
) -> Result[T, StorageError]:
    try:
        return await op()
    except Exception as e:
        return Error(StorageError(str(e) or type(e).__name__, backend=backend.name, cause=e))


class FallbackStore:
    """
    Tries backends in sequence.

    Example:
        store = FallbackStore([JsonFileStore(state_dir), SQLAlchemyStore(sessions)])
        await store.set("last_order", snapshot)   # never fails
    """

    def __init__(
        self,
        backends: Sequence[DurableStore],
        fallback: MemoryStore | None = None,
    ) -> None:
        self._backends = tuple(backends)
        self._fallback = fallback or MemoryStore("memory-fallback")

    @property
    def name(self) -> str:
        return "+".join(b.name for b in (*self._backends, self._fallback))

    @property
    def backends(self) -> tuple[DurableStore, ...]:
        return self._backends

    async def get(self, key: str) -> Result[JSON | None, StorageError]:
        for backend in (*self._backends, self._fallback):
            match await _attempt(backend, lambda: backend.get(key)):
                case Ok(value) if value is not None:
                    return Ok(value)
                case Ok(_):
                    continue
                case Error(e):
                    logger.warning("storage read failed", backend=backend.name, key=key, error=e.message)
        return Ok(None)

    async def set(self, key: str, value: JSON) -> Result[None, StorageError]:
        await self.set_where(key, value)
        return Ok(None)

    async def set_where(self, key: str, value: JSON) -> str:
        """Store value and return the name of the backend that took it."""
        for backend in self._backends:
            match await _attempt(backend, lambda: backend.set(key, value)):
                case Ok(_):
                    return backend.name
                case Error(e):
                    logger.warning("storage write failed", backend=backend.name, key=key, error=e.message)
        await self._fallback.set(key, value)
        logger.warning("storage degraded to memory", key=key)
        return self._fallback.name

    async def delete(self, key: str) -> Result[bool, StorageError]:
        deleted = False
        for backend in (*self._backends, self._fallback):
            match await _attempt(backend, lambda: backend.delete(key)):
                case Ok(existed):
                    deleted = deleted or existed
                case Error(e):
                    logger.warning("storage delete failed", backend=backend.name, key=key, error=e.message)
        return Ok(deleted)


__all__ = ("FallbackStore",)
