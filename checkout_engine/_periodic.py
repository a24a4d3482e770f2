"""
Periodic — background task that calls a tick on a fixed interval.

Used by the cache sweep, the limiter cleanup and the event flush timer.
"""

from __future__ import annotations

import asyncio
import contextlib
from collections.abc import Awaitable, Callable

import structlog

logger = structlog.get_logger(__name__)

type Tick = Callable[[], Awaitable[object]]


class Periodic:
    """
    Runs tick() every interval seconds until stopped.

    A failing tick is logged and the loop keeps going.

    Example:
        sweeper = Periodic("cache-sweep", 60.0, sweep)
        sweeper.start()
        ...
        await sweeper.stop()
    """

    def __init__(self, name: str, interval: float, tick: Tick) -> None:
        self.name = name
        self.interval = interval
        self._tick = tick
        self._task: asyncio.Task[None] | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        """Start the loop on the running event loop. No-op if already running."""
        if self.running:
            return
        self._task = asyncio.get_running_loop().create_task(self._loop(), name=self.name)

    async def stop(self) -> None:
        task, self._task = self._task, None
        if task is None:
            return
        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task

    async def _loop(self) -> None:
        while True:
            await asyncio.sleep(self.interval)
            try:
                await self._tick()
            except Exception:
                logger.exception("periodic tick failed", task=self.name)


__all__ = ("Periodic", "Tick")
