"""
Event batcher — prioritized, chunked, best-effort delivery.

    batcher = EventBatcher(client=PixelLog(), server=conversions, audience=tracker)
    batcher.start()
    batcher.add(E.purchase("1001", lines, value=500), Priority.HIGH)

A flush takes everything queued, orders it by (priority, enqueued_at),
and dispatches chunk by chunk, each event to the client channel and then
the server channel. Failures are logged per event and never retried: the
taken events are gone whether or not delivery worked, so a sustained
downstream outage loses analytics silently.
"""

from __future__ import annotations

import asyncio
import itertools
import math
from collections.abc import Callable
from dataclasses import dataclass

import structlog
from kungfu import Ok, Error

from checkout_engine._periodic import Periodic
from checkout_engine._types import Clock, system_clock
from checkout_engine.audience import AudienceTracker
from checkout_engine.events._channels import ClientChannel, ServerChannel
from checkout_engine.events._payload import ServerEvent, event_id, payload_of
from checkout_engine.events._types import BatchedEvent, Priority, TrackingEvent, UserData

logger = structlog.get_logger(__name__)

type UserDataSource = Callable[[TrackingEvent], UserData]


def _no_user_data(event: TrackingEvent) -> UserData:
    return UserData()


# ═══════════════════════════════════════════════════════════════════════════════
# Reports
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class FlushReport:
    """Outcome of one flush."""
    taken: int
    delivered: int
    failed: int
    suppressed: int


@dataclass(frozen=True, slots=True)
class QueueStatus:
    queue_length: int
    is_processing: bool
    batch_size: int
    flush_interval: float
    max_queue: int


# ═══════════════════════════════════════════════════════════════════════════════
# Batcher
# ═══════════════════════════════════════════════════════════════════════════════


class EventBatcher:
    """Queue of tracking events flushed on a timer and on high-priority adds."""

    def __init__(
        self,
        client: ClientChannel,
        server: ServerChannel | None = None,
        *,
        audience: AudienceTracker | None = None,
        user_data: UserDataSource = _no_user_data,
        event_source_url: str = "",
        batch_size: int = 5,
        flush_interval: float = 2.0,
        max_queue: int = 500,
        clock: Clock = system_clock,
    ) -> None:
        self._client = client
        self._server = server
        self._audience = audience
        self._user_data = user_data
        self._source_url = event_source_url
        self._batch_size = batch_size
        self._max_queue = max_queue
        self._clock = clock
        self._queue: list[BatchedEvent] = []
        self._seq = itertools.count()
        self._processing = False
        self._pending: set[asyncio.Task[FlushReport]] = set()
        self._timer = Periodic("event-flush", flush_interval, self._tick)

    # ─── Lifecycle ─────────────────────────────────────────────────────────────

    def start(self) -> None:
        self._timer.start()

    async def stop(self) -> None:
        """Stop the timer, wait for in-flight flushes, then flush what is left."""
        await self._timer.stop()
        if self._pending:
            await asyncio.gather(*self._pending, return_exceptions=True)
        await self.flush()

    async def _tick(self) -> None:
        if self._queue:
            await self.flush()

    # ─── Queue ─────────────────────────────────────────────────────────────────

    def add(self, event: TrackingEvent, priority: Priority = Priority.MEDIUM) -> None:
        """
        Queue an event. HIGH priority also schedules an immediate flush when
        an event loop is running.
        """
        if len(self._queue) >= self._max_queue:
            dropped = self._queue.pop(0)
            logger.warning("event queue full, dropping oldest", dropped=dropped.event.name)

        self._queue.append(BatchedEvent(event, priority, self._clock(), next(self._seq)))
        logger.debug("event queued", event_name=event.name, priority=priority.name)

        if priority is Priority.HIGH:
            try:
                loop = asyncio.get_running_loop()
            except RuntimeError:
                return
            task = loop.create_task(self.flush())
            self._pending.add(task)
            task.add_done_callback(self._pending.discard)

    def clear(self) -> int:
        cleared = len(self._queue)
        self._queue.clear()
        logger.info("event queue cleared", cleared=cleared)
        return cleared

    def status(self) -> QueueStatus:
        return QueueStatus(
            queue_length=len(self._queue),
            is_processing=self._processing,
            batch_size=self._batch_size,
            flush_interval=self._timer.interval,
            max_queue=self._max_queue,
        )

    def queued(self) -> list[BatchedEvent]:
        return list(self._queue)

    def update_settings(self, batch_size: int, flush_interval: float) -> None:
        """Change chunk size and timer period. The new period applies from the next tick."""
        self._batch_size = batch_size
        self._timer.interval = flush_interval
        logger.info("batch settings updated", batch_size=batch_size, flush_interval=flush_interval)

    # ─── Flush ─────────────────────────────────────────────────────────────────

    async def flush(self) -> FlushReport:
        """Dispatch everything queued. A flush already in progress makes this a no-op."""
        if self._processing or not self._queue:
            return FlushReport(0, 0, 0, 0)

        self._processing = True
        taken, self._queue = self._queue, []
        delivered = failed = suppressed = 0
        try:
            ordered = sorted(taken, key=lambda b: b.sort_key)
            chunks = math.ceil(len(ordered) / self._batch_size)
            for i in range(chunks):
                chunk = ordered[i * self._batch_size : (i + 1) * self._batch_size]
                for batched in chunk:
                    outcome = await self._dispatch(batched.event)
                    if outcome is None:
                        suppressed += 1
                    elif outcome:
                        delivered += 1
                    else:
                        failed += 1
        finally:
            self._processing = False

        logger.info(
            "events flushed",
            taken=len(taken),
            delivered=delivered,
            failed=failed,
            suppressed=suppressed,
        )
        return FlushReport(len(taken), delivered, failed, suppressed)

    async def _dispatch(self, event: TrackingEvent) -> bool | None:
        """Send one event to both channels. None means the audience suppressed it."""
        custom_data = payload_of(event)
        if self._audience is not None and event.customer_id:
            enhanced = self._audience.enhanced_event_data(custom_data, event.customer_id)
            if enhanced is None:
                logger.debug("event suppressed for excluded customer", event_name=event.name)
                return None
            custom_data = enhanced

        now = self._clock()
        eid = event_id(event, now)
        ok = True

        try:
            match await self._client.track(event.name, custom_data, eid):
                case Ok(_):
                    pass
                case Error(e):
                    ok = False
                    logger.warning("client dispatch failed", channel=e.channel, event_name=e.event_name, error=e.message)
        except Exception as e:
            ok = False
            logger.exception("client dispatch raised", event_name=event.name, error=str(e))

        if self._server is None:
            return ok

        record = ServerEvent(
            event_name=event.name,
            event_time=int(now),
            event_id=eid,
            custom_data=custom_data,
            user_data=self._user_data(event).hashed(),
            event_source_url=self._source_url,
        )
        try:
            match await self._server.send(record):
                case Ok(_):
                    pass
                case Error(e):
                    ok = False
                    logger.warning("server dispatch failed", channel=e.channel, event_name=e.event_name, error=e.message)
        except Exception as e:
            ok = False
            logger.exception("server dispatch raised", event_name=event.name, error=str(e))

        return ok


__all__ = ("EventBatcher", "FlushReport", "QueueStatus", "UserDataSource")
