"""
JSON file store — one file per key under a directory.
"""

from __future__ import annotations

import asyncio
import json
import re
from pathlib import Path

from kungfu import Result, Ok, Error

from checkout_engine._types import JSON
from checkout_engine.storage._types import StorageError

_UNSAFE = re.compile(r"[^A-Za-z0-9_.-]")


class JsonFileStore:
    """
    DurableStore writing `<directory>/<key>.json`.

    Writes go to a temporary file first and are renamed into place.
    File I/O runs in a worker thread.
    """

    def __init__(self, directory: Path | str, name: str = "file") -> None:
        self._dir = Path(directory)
        self._name = name

    @property
    def name(self) -> str:
        return self._name

    def _path(self, key: str) -> Path:
        return self._dir / f"{_UNSAFE.sub('_', key)}.json"

    async def get(self, key: str) -> Result[JSON | None, StorageError]:
        path = self._path(key)

        def read() -> JSON | None:
            if not path.exists():
                return None
            return json.loads(path.read_text(encoding="utf-8"))

        try:
            return Ok(await asyncio.to_thread(read))
        except (OSError, ValueError) as e:
            return Error(StorageError(f"Failed to read {key}: {e}", self._name, e))

    async def set(self, key: str, value: JSON) -> Result[None, StorageError]:
        path = self._path(key)

        def write() -> None:
            self._dir.mkdir(parents=True, exist_ok=True)
            tmp = path.with_suffix(".tmp")
            tmp.write_text(json.dumps(value, ensure_ascii=False), encoding="utf-8")
            tmp.replace(path)

        try:
            await asyncio.to_thread(write)
            return Ok(None)
        except (OSError, TypeError, ValueError) as e:
            return Error(StorageError(f"Failed to write {key}: {e}", self._name, e))

    async def delete(self, key: str) -> Result[bool, StorageError]:
        path = self._path(key)

        def remove() -> bool:
            if not path.exists():
                return False
            path.unlink()
            return True

        try:
            return Ok(await asyncio.to_thread(remove))
        except OSError as e:
            return Error(StorageError(f"Failed to delete {key}: {e}", self._name, e))


__all__ = ("JsonFileStore",)
