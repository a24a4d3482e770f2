from __future__ import annotations

from kungfu import Ok, Error, Result

from checkout_engine import storage as St


class BrokenStore:
    """Backend whose every call fails, like storage with no quota left."""

    name = "broken"

    def __init__(self) -> None:
        self.writes = 0

    async def get(self, key: str) -> Result[None, St.StorageError]:
        return Error(St.StorageError("read refused", self.name))

    async def set(self, key: str, value: object) -> Result[None, St.StorageError]:
        self.writes += 1
        return Error(St.StorageError("quota exceeded", self.name))

    async def delete(self, key: str) -> Result[bool, St.StorageError]:
        return Error(St.StorageError("delete refused", self.name))


class RaisingStore(St.MemoryStore):
    """Backend that raises instead of returning an Error."""

    def __init__(self) -> None:
        super().__init__("raising")

    async def get(self, key: str) -> Result[None, St.StorageError]:
        raise OSError("disk gone")

    async def set(self, key: str, value: object) -> Result[None, St.StorageError]:
        raise RuntimeError("quota exceeded")

    async def delete(self, key: str) -> Result[bool, St.StorageError]:
        raise OSError("disk gone")


async def test_memory_store_copies_values():
    store = St.MemoryStore()
    value = {"items": [1, 2]}
    await store.set("k", value)
    value["items"].append(3)

    assert await store.get("k") == Ok({"items": [1, 2]})
    assert await store.delete("k") == Ok(True)
    assert await store.delete("k") == Ok(False)
    assert await store.get("k") == Ok(None)


async def test_json_file_store_round_trip(tmp_path):
    store = St.JsonFileStore(tmp_path / "state")
    await store.set("last_order", {"orderNumber": "1001", "items": []})

    assert (tmp_path / "state" / "last_order.json").exists()
    assert await store.get("last_order") == Ok({"orderNumber": "1001", "items": []})
    assert await store.get("missing") == Ok(None)


async def test_json_file_store_sanitizes_keys(tmp_path):
    store = St.JsonFileStore(tmp_path)
    await store.set("../escape:me", 1)
    assert await store.get("../escape:me") == Ok(1)
    assert list(tmp_path.parent.glob("escape*")) == []


async def test_sqlalchemy_store(tmp_path):
    sessions, engine = await St.create_kv_database(f"sqlite+aiosqlite:///{tmp_path / 'kv.db'}")
    try:
        store = St.SQLAlchemyStore(sessions)
        await store.set("profile", {"phone": "01711111111"})
        await store.set("profile", {"phone": "01811111111"})

        assert await store.get("profile") == Ok({"phone": "01811111111"})
        assert await store.delete("profile") == Ok(True)
        assert await store.get("profile") == Ok(None)
    finally:
        await engine.dispose()


async def test_fallback_uses_first_working_backend():
    broken = BrokenStore()
    memory = St.MemoryStore("primary-memory")
    store = St.FallbackStore([broken, memory])

    assert await store.set_where("k", "v") == "primary-memory"
    assert broken.writes == 1
    assert await store.get("k") == Ok("v")


async def test_fallback_degrades_to_memory_when_everything_fails():
    store = St.FallbackStore([BrokenStore(), BrokenStore()])

    assert await store.set("k", {"a": 1}) == Ok(None)
    assert await store.get("k") == Ok({"a": 1})
    assert await store.delete("k") == Ok(True)


async def test_fallback_reads_in_order():
    first, second = St.MemoryStore("first"), St.MemoryStore("second")
    await second.set("k", "from-second")
    store = St.FallbackStore([first, second])

    assert await store.get("k") == Ok("from-second")
    await first.set("k", "from-first")
    assert await store.get("k") == Ok("from-first")
    assert store.name == "first+second+memory-fallback"


async def test_raising_backend_is_skipped_like_a_failing_one():
    memory = St.MemoryStore("second")
    store = St.FallbackStore([RaisingStore(), memory])

    assert await store.set_where("k", "v") == "second"
    assert await store.get("k") == Ok("v")
    assert await store.delete("k") == Ok(True)

    alone = St.FallbackStore([RaisingStore()])
    assert await alone.set_where("k", "v") == "memory-fallback"
    assert await alone.get("k") == Ok("v")
