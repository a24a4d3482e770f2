"""
SQLAlchemy integration — key/value table as a DurableStore.

Usage:
    session_factory, engine = await create_kv_database("sqlite+aiosqlite:///state.db")
    store = SQLAlchemyStore(session_factory)
    await store.set("facebook_customer_values", {...})
"""

from datetime import datetime
from typing import Any

from sqlalchemy import JSON as SA_JSON, DateTime, String
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from kungfu import Result, Ok, Error

from checkout_engine._types import JSON
from checkout_engine.storage._types import StorageError


# ═══════════════════════════════════════════════════════════════════════════════
# Table
# ═══════════════════════════════════════════════════════════════════════════════

class Base(DeclarativeBase):
    pass


class KeyValueRow(Base):
    """One stored value per key."""

    __tablename__ = "checkout_kv"

    key: Mapped[str] = mapped_column(String(255), primary_key=True)
    value: Mapped[Any] = mapped_column(SA_JSON, nullable=True)
    updated_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.now)


async def create_kv_database(
    url: str = "sqlite+aiosqlite:///:memory:",
) -> tuple[async_sessionmaker[AsyncSession], AsyncEngine]:
    """Create the key/value table and return (session_factory, engine)."""
    engine = create_async_engine(url, echo=False)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    return async_sessionmaker(engine, expire_on_commit=False), engine


# ═══════════════════════════════════════════════════════════════════════════════
# Store
# ═══════════════════════════════════════════════════════════════════════════════

class SQLAlchemyStore:
    """DurableStore backed by the checkout_kv table."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        name: str = "sqlalchemy",
    ) -> None:
        self._session_factory = session_factory
        self._name = name

    @property
    def name(self) -> str:
        return self._name

    async def get(self, key: str) -> Result[JSON | None, StorageError]:
        try:
            async with self._session_factory() as session:
                row = await session.get(KeyValueRow, key)
                return Ok(None if row is None else row.value)
        except Exception as e:
            return Error(StorageError(f"Failed to get: {e}", self._name, e))

    async def set(self, key: str, value: JSON) -> Result[None, StorageError]:
        try:
            async with self._session_factory() as session:
                row = await session.get(KeyValueRow, key)
                if row is None:
                    session.add(KeyValueRow(key=key, value=value, updated_at=datetime.now()))
                else:
                    row.value = value
                    row.updated_at = datetime.now()
                await session.commit()
                return Ok(None)
        except Exception as e:
            return Error(StorageError(f"Failed to set: {e}", self._name, e))

    async def delete(self, key: str) -> Result[bool, StorageError]:
        try:
            async with self._session_factory() as session:
                row = await session.get(KeyValueRow, key)
                if row is None:
                    return Ok(False)
                await session.delete(row)
                await session.commit()
                return Ok(True)
        except Exception as e:
            return Error(StorageError(f"Failed to delete: {e}", self._name, e))


__all__ = (
    "Base",
    "KeyValueRow",
    "create_kv_database",
    "SQLAlchemyStore",
)
