from __future__ import annotations

import asyncio
import json
from decimal import Decimal
from typing import Any

import httpx
from kungfu import Ok, Error, Result

from checkout_engine import events as E
from checkout_engine import storage as St
from checkout_engine.audience import AudienceTracker


class RecordingServer:
    name = "recording"

    def __init__(self, fail: bool = False) -> None:
        self.sent: list[E.ServerEvent] = []
        self.fail = fail

    async def send(self, event: E.ServerEvent) -> Result[None, E.DispatchError]:
        self.sent.append(event)
        if self.fail:
            return Error(E.DispatchError(self.name, event.event_name, "HTTP 500"))
        return Ok(None)


class ExplodingClient:
    name = "exploding"

    async def track(self, event_name: str, payload: dict[str, Any], event_id: str) -> Result[None, E.DispatchError]:
        raise RuntimeError("pixel not loaded")


LINES = [E.LineItem(100, 2, Decimal(500))]


# ═══════════════════════════════════════════════════════════════════════════════
# Payloads
# ═══════════════════════════════════════════════════════════════════════════════


def test_purchase_payload_shape():
    event = E.purchase("1001", LINES, value=Decimal(500))
    payload = E.payload_of(event)
    assert event.name == "Purchase"
    assert payload == {
        "content_ids": ["100"],
        "content_type": "product",
        "contents": [{"id": "100", "quantity": 2, "item_price": 250.0}],
        "currency": "BDT",
        "value": 500.0,
        "num_items": 1,
    }
    assert E.event_id(event, 0) == "purchase_1001"


def test_every_kind_has_a_payload():
    events: list[E.TrackingEvent] = [
        E.add_to_cart(7, 120, 2),
        E.view_content(7, 120),
        E.initiate_checkout(LINES, value=500),
        E.search("saree"),
        E.custom("WishlistAdd", {"product": 7}),
    ]
    names = [e.name for e in events]
    assert names == ["AddToCart", "ViewContent", "InitiateCheckout", "Search", "WishlistAdd"]
    assert E.payload_of(events[0])["value"] == 240.0
    assert E.payload_of(events[3])["search_string"] == "saree"
    assert E.payload_of(events[4]) == {"product": 7}


def test_user_data_is_hashed():
    hashed = E.UserData(phone="01711111111", client_ip="1.2.3.4").hashed()
    assert hashed["ph"] == E.sha256("01711111111")
    assert hashed["country"] == E.sha256("bd")
    assert hashed["client_ip_address"] == "1.2.3.4"
    assert "em" not in hashed


# ═══════════════════════════════════════════════════════════════════════════════
# Batcher
# ═══════════════════════════════════════════════════════════════════════════════


async def test_flush_orders_by_priority_then_time(clock):
    pixel = E.PixelLog()
    batcher = E.EventBatcher(pixel, clock=clock)

    batcher.add(E.search("low"), E.Priority.LOW)
    clock.advance(1)
    batcher.add(E.view_content(1, 10))
    clock.advance(1)
    batcher.add(E.add_to_cart(2, 20))
    batcher.add(E.purchase("9", LINES, value=500), E.Priority.HIGH)

    report = await batcher.flush()

    assert report == E.FlushReport(taken=4, delivered=4, failed=0, suppressed=0)
    assert [c.event_name for c in pixel.drain()] == ["Purchase", "ViewContent", "AddToCart", "Search"]
    assert batcher.status().queue_length == 0


async def test_high_priority_triggers_immediate_flush():
    pixel = E.PixelLog()
    batcher = E.EventBatcher(pixel, flush_interval=3600)

    batcher.add(E.purchase("1001", LINES, value=500), E.Priority.HIGH)
    await asyncio.sleep(0)
    await asyncio.sleep(0)

    assert [c.event_id for c in pixel.drain()] == ["purchase_1001"]
    assert batcher.queued() == []


async def test_failures_are_swallowed_and_queue_is_cleared():
    server = RecordingServer(fail=True)
    batcher = E.EventBatcher(ExplodingClient(), server)
    batcher.add(E.view_content(1, 10))
    batcher.add(E.add_to_cart(1, 10))

    report = await batcher.flush()

    assert report.taken == 2
    assert report.failed == 2
    assert len(server.sent) == 2
    assert batcher.queued() == []
    # nothing is retried
    assert await batcher.flush() == E.FlushReport(0, 0, 0, 0)


async def test_both_channels_share_the_event_id(clock):
    pixel = E.PixelLog()
    server = RecordingServer()
    batcher = E.EventBatcher(
        pixel,
        server,
        user_data=lambda event: E.UserData(phone=event.customer_id or ""),
        event_source_url="https://shop.test",
        clock=clock,
    )
    batcher.add(E.purchase("1001", LINES, value=500, customer_id="01711111111"))
    await batcher.flush()

    [call] = pixel.drain()
    [record] = server.sent
    assert call.event_id == record.event_id == "purchase_1001"
    assert record.user_data["ph"] == E.sha256("01711111111")
    assert record.event_source_url == "https://shop.test"
    assert record.event_time == int(clock())


async def test_queue_is_bounded():
    batcher = E.EventBatcher(E.PixelLog(), max_queue=2)
    batcher.add(E.search("a"))
    batcher.add(E.search("b"))
    batcher.add(E.search("c"))
    assert [b.event.payload.search_string for b in batcher.queued()] == ["b", "c"]
    assert batcher.clear() == 2


async def test_excluded_customers_are_suppressed():
    audience = AudienceTracker(St.MemoryStore())
    await audience.add_to_exclusions("01711111111")
    pixel = E.PixelLog()
    batcher = E.EventBatcher(pixel, audience=audience)

    batcher.add(E.purchase("1", LINES, value=500, customer_id="01711111111"))
    batcher.add(E.purchase("2", LINES, value=500, customer_id="01812345678"))
    report = await batcher.flush()

    assert report.suppressed == 1
    [call] = pixel.drain()
    assert call.payload["customer_order_count"] == 0
    assert "value_optimization_score" in call.payload


async def test_update_settings_and_stop_flushes():
    pixel = E.PixelLog()
    batcher = E.EventBatcher(pixel)
    batcher.start()
    batcher.update_settings(batch_size=2, flush_interval=10)
    batcher.add(E.search("a"))
    batcher.add(E.search("b"))
    batcher.add(E.search("c"))

    status = batcher.status()
    assert status.batch_size == 2
    assert status.flush_interval == 10

    await batcher.stop()
    assert len(pixel) == 3


# ═══════════════════════════════════════════════════════════════════════════════
# HTTP channels
# ═══════════════════════════════════════════════════════════════════════════════


async def test_conversions_channel_posts_graph_payload():
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"events_received": 1})

    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as http:
        channel = E.ConversionsChannel(http, pixel_id="123", access_token="secret")
        record = E.ServerEvent("Purchase", 1700000000, "purchase_1", {"value": 500})
        assert await channel.send(record) == Ok(None)

    [request] = seen
    assert str(request.url) == "https://graph.facebook.com/v18.0/123/events"
    body = json.loads(request.content)
    assert body["access_token"] == "secret"
    assert body["data"][0]["action_source"] == "website"
    assert body["data"][0]["event_id"] == "purchase_1"


async def test_unconfigured_conversions_channel_refuses():
    async with httpx.AsyncClient(transport=httpx.MockTransport(lambda r: httpx.Response(200))) as http:
        channel = E.ConversionsChannel(http, pixel_id="", access_token="")
        assert not channel.configured
        result = await channel.send(E.ServerEvent("Purchase", 0, "x", {}))
    assert isinstance(result, Error)


async def test_relay_channel_requires_success_flag():
    answers = iter([{"success": True}, {"success": False}])

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json=next(answers))

    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as http:
        relay = E.RelayChannel(http, "https://shop.test/api/facebook-conversions")
        record = E.ServerEvent("AddToCart", 0, "a", {})
        assert await relay.send(record) == Ok(None)
        assert isinstance(await relay.send(record), Error)
