"""
Storage — durable key/value capability with ordered fallbacks.

    from checkout_engine import storage as St

    store = St.FallbackStore([St.JsonFileStore(".state")])
    await store.set("customer_profile", {...})
"""

from __future__ import annotations

from checkout_engine.storage._types import StorageError, DurableStore
from checkout_engine.storage._memory import MemoryStore
from checkout_engine.storage._file import JsonFileStore
from checkout_engine.storage._sqlalchemy import (
    KeyValueRow,
    SQLAlchemyStore,
    create_kv_database,
)
from checkout_engine.storage._chain import FallbackStore

__all__ = (
    "StorageError",
    "DurableStore",
    "MemoryStore",
    "JsonFileStore",
    "KeyValueRow",
    "SQLAlchemyStore",
    "create_kv_database",
    "FallbackStore",
)
