from __future__ import annotations

import asyncio
from decimal import Decimal
from urllib.parse import parse_qs, urlsplit

import pytest
from kungfu import Ok, Error

from checkout_engine import checkout as Co
from checkout_engine import commerce as Cm
from checkout_engine import events as E
from checkout_engine import risk as R
from checkout_engine import storage as St
from checkout_engine.audience import AudienceTracker

COURIER_URL = "https://courier.test/search.php"

PHONE = "01712345678"


def form(**overrides: str) -> Co.CheckoutForm:
    fields = {
        "full_name": "Rahim Uddin",
        "phone": "+880 1712-345678",
        "address": "House 12, Road 5, Dhanmondi",
        "delivery_zone": "inside",
    }
    fields.update(overrides)
    return Co.CheckoutForm(**fields)


def line(key: str = "a", product_id: int = 100, quantity: int = 2, price: int = 250) -> Co.CartLine:
    return Co.CartLine(key, product_id, quantity, Decimal(price), Decimal(price * quantity))


def summaries(total: int, delivered: int) -> dict[str, dict[str, int]]:
    return {"Steadfast": {"Total Parcels": total, "Delivered Parcels": delivered}}


def failed(result) -> Co.CheckoutError:
    match result:
        case Error(e):
            return e
        case Ok(v):
            raise AssertionError(f"expected failure, got {v!r}")


# ═══════════════════════════════════════════════════════════════════════════════
# Phone & form
# ═══════════════════════════════════════════════════════════════════════════════


@pytest.mark.parametrize("raw", ["01711111111", "+8801711111111", "8801711111111", "1711111111", "017-1111-1111"])
def test_phone_forms_normalize_to_local(raw):
    assert Co.normalize_phone(raw) == Ok("01711111111")


@pytest.mark.parametrize(
    ("raw", "message"),
    [
        ("0171111111", "Phone number must be 11 digits"),
        ("017111111111", "Phone number must be 11 digits"),
        ("01211111111", "Please enter a valid Bangladeshi mobile number (01XXXXXXXXX)"),
        ("02711111111", "Please enter a valid Bangladeshi mobile number (01XXXXXXXXX)"),
    ],
)
def test_invalid_phones(raw, message):
    error = failed(Co.normalize_phone(raw))
    assert error.kind is Co.CheckoutErrorKind.VALIDATION
    assert error.field == "phone"
    assert error.message == message


def test_valid_form():
    valid = Co.validate_form(form(note="Call before <b>delivery</b>")).unwrap()
    assert valid.phone == PHONE
    assert valid.zone is Co.DeliveryZone.INSIDE
    assert valid.payment is Co.PaymentMethod.COD
    assert valid.first_name == "Rahim"
    assert valid.last_name == "Uddin"
    assert valid.note == "Call before delivery"


@pytest.mark.parametrize(
    ("overrides", "field"),
    [
        ({"full_name": "Al"}, "full_name"),
        ({"full_name": "<script>alert(1)</script>"}, "full_name"),
        ({"phone": "12345"}, "phone"),
        ({"address": "Dhaka"}, "address"),
        ({"delivery_zone": "mars"}, "delivery_zone"),
        ({"payment_method": "bkash"}, "payment_method"),
        ({"note": "<img src=x onerror=alert(1)>"}, "note"),
    ],
)
def test_first_failing_field_is_reported(overrides, field):
    assert failed(Co.validate_form(form(**overrides))).field == field


def test_name_checked_before_phone():
    error = failed(Co.validate_form(form(full_name="A", phone="1")))
    assert error.field == "full_name"
    assert error.message == "Name must be at least 3 characters"


def test_zone_aliases():
    assert Co.DeliveryZone.parse(" Dhaka ") is Co.DeliveryZone.INSIDE
    assert Co.DeliveryZone.parse("outside_dhaka") is Co.DeliveryZone.OUTSIDE
    assert Co.DeliveryZone.parse("") is None


def test_sanitizers():
    assert Co.sanitize_text("  <p>Hello</p> ") == "Hello"
    assert Co.has_injection("javascript:alert(1)")
    assert not Co.has_injection("Road 5, House 12")
    assert Co.validate_product_id("42abc") == 42
    assert Co.validate_product_id(True) is None
    assert Co.validate_product_id(0) is None
    assert Co.sanitize_price("৳1,250.5") == "1250.50"
    assert Co.sanitize_price("-5") == "0"
    assert Co.sanitize_price("abc") == "0"


# ═══════════════════════════════════════════════════════════════════════════════
# Guard, messages, receipt, cart
# ═══════════════════════════════════════════════════════════════════════════════


def test_guard_rolls_over(clock):
    guard = Co.SubmissionGuard(3, clock=clock)
    for _ in range(3):
        assert guard.check() == Ok(None)
    error = failed(guard.check())
    assert error.kind is Co.CheckoutErrorKind.RATE_LIMITED
    assert error.message == Co.TOO_MANY_ATTEMPTS

    clock.advance(600)
    assert guard.check() == Ok(None)
    assert guard.attempts == 1


@pytest.mark.parametrize(
    ("detail", "kind"),
    [
        ("Request timed out", Co.CheckoutErrorKind.TIMEOUT),
        ("Failed to fetch", Co.CheckoutErrorKind.TRANSPORT),
        ("Session token expired", Co.CheckoutErrorKind.SESSION),
        ("Invalid payment method", Co.CheckoutErrorKind.PAYMENT),
        ("Product out of stock", Co.CheckoutErrorKind.CART),
        ("Something failed", Co.CheckoutErrorKind.LOGICAL),
        ("teapot", None),
    ],
)
def test_classify(detail, kind):
    assert Co.classify(detail) is kind


def test_unrecognized_detail_gets_support_message():
    from checkout_engine.checkout._messages import SUPPORT

    assert Co.message_for("teapot") == SUPPORT


def test_from_commerce():
    forbidden = Cm.CommerceError(Cm.CommerceErrorKind.HTTP_STATUS, "HTTP 403", status=403)
    assert Co.from_commerce(forbidden).kind is Co.CheckoutErrorKind.SESSION

    timeout = Cm.CommerceError(Cm.CommerceErrorKind.TIMEOUT, "timeout: read")
    assert Co.from_commerce(timeout).kind is Co.CheckoutErrorKind.TIMEOUT

    opaque = Cm.CommerceError(Cm.CommerceErrorKind.PAYLOAD, "teapot")
    converted = Co.from_commerce(opaque, Co.CheckoutErrorKind.CART)
    assert converted.kind is Co.CheckoutErrorKind.CART
    assert converted.detail == "teapot"


def test_delivery_labels_and_shipping():
    assert Co.delivery_label(Co.StockStatus.IN_STOCK) == Co.FAST_DELIVERY
    assert Co.delivery_label(Co.StockStatus.ON_BACKORDER) == Co.REGULAR_DELIVERY
    assert Co.delivery_label(Co.StockStatus.OUT_OF_STOCK) == Co.GLOBAL_DELIVERY
    rates = Co.ShippingRates()
    assert rates.charge(Co.DeliveryZone.INSIDE) == 80
    assert rates.charge(Co.DeliveryZone.OUTSIDE) == 130


def test_receipt_url():
    valid = Co.validate_form(form()).unwrap()
    url = Co.receipt_url("1001", valid, Decimal("580.00"), Decimal(80), 1)
    parts = urlsplit(url)
    query = parse_qs(parts.query)
    assert parts.path == "/thank-you"
    assert query["orderNumber"] == ["1001"]
    assert query["name"] == ["Rahim Uddin"]
    assert query["total"] == ["580"]
    assert query["delivery"] == ["80"]
    assert query["items"] == ["1"]


def test_local_cart():
    cart = Co.LocalCart([line("a"), line("a", quantity=1)])
    assert len(cart) == 1
    assert cart.item_count == 3
    assert cart.subtotal == 750

    cart.add(line("b", product_id=200, quantity=1, price=100))
    assert cart.update_quantity("b", 4).line_total == 400
    assert cart.update_quantity("b", 0) is None
    assert [l.key for l in cart] == ["a"]
    assert not cart.remove("missing")

    cart.clear()
    assert cart.is_empty

    with pytest.raises(ValueError):
        line(quantity=0)


def test_chunked():
    assert Co.chunked([1, 2, 3, 4, 5], 3) == [[1, 2, 3], [4, 5]]
    with pytest.raises(ValueError):
        Co.chunked([1], 0)


# ═══════════════════════════════════════════════════════════════════════════════
# Orchestrator
# ═══════════════════════════════════════════════════════════════════════════════


@pytest.fixture
def strict_verifier(http) -> R.CourierVerifier:
    return R.CourierVerifier(http, url=COURIER_URL, api_key="test-key", bypass_suffixes=())


@pytest.fixture
def pixel() -> E.PixelLog:
    return E.PixelLog()


@pytest.fixture
def batcher(pixel) -> E.EventBatcher:
    return E.EventBatcher(pixel, flush_interval=3600)


@pytest.fixture
def audience(memory_store) -> AudienceTracker:
    return AudienceTracker(memory_store)


@pytest.fixture
def orchestrator(commerce_client, strict_verifier, memory_store, batcher, audience, clock):
    return Co.CheckoutOrchestrator(
        commerce_client,
        strict_verifier,
        store=memory_store,
        batcher=batcher,
        audience=audience,
        guard=Co.SubmissionGuard(clock=clock),
        options=Co.CheckoutOptions(sync_batch_delay=0),
    )


async def test_successful_checkout(orchestrator, commerce, memory_store, batcher, pixel, audience):
    cart = Co.LocalCart([line()])

    done = (await orchestrator.submit(form(), cart)).unwrap()

    assert done.order_number == "1001"
    assert done.subtotal == 500
    assert done.shipping == 80
    assert done.total == 580
    assert "orderNumber=1001" in done.receipt_url
    assert orchestrator.state is Co.CheckoutState.SUCCESS
    assert cart.is_empty

    assert commerce.operations == ["session", "add", "read", "place"]
    placed = commerce.last_checkout
    assert placed["billing"]["phone"] == PHONE
    assert placed["paymentMethod"] == "cod"
    assert {"key": "delivery_zone", "value": "inside"} in placed["metaData"]

    profile = (await memory_store.get(Co.PROFILE_KEY)).unwrap()
    assert profile["phone"] == PHONE
    snapshot = (await memory_store.get(Co.LAST_ORDER_KEY)).unwrap()
    assert snapshot["orderNumber"] == "1001"
    assert snapshot["items"][0]["deliveryTime"] == Co.FAST_DELIVERY

    assert audience.customer_value(PHONE).total_spent == 500

    queued = {b.event.name: b.priority for b in batcher.queued()}
    assert queued == {"InitiateCheckout": E.Priority.MEDIUM, "Purchase": E.Priority.HIGH}

    await asyncio.sleep(0)
    calls = pixel.drain()
    assert [c.event_name for c in calls] == ["Purchase", "InitiateCheckout"]
    assert calls[0].event_id == "purchase_1001"
    assert calls[0].payload["value"] == 500.0


async def test_blocked_customer_never_reaches_commerce(orchestrator, courier, commerce):
    courier.summaries[PHONE] = summaries(3, 0)
    cart = Co.LocalCart([line()])

    error = failed(await orchestrator.submit(form(), cart))

    assert error.kind is Co.CheckoutErrorKind.RISK_REJECTED
    assert error.field == "phone"
    assert "30%" in error.message
    assert commerce.remote_calls == 0
    assert not cart.is_empty
    assert orchestrator.state is Co.CheckoutState.ERROR


async def test_placement_timeout_is_retried_once(orchestrator, commerce):
    commerce.place_behaviour = ["timeout"]
    cart = Co.LocalCart([line()])

    done = (await orchestrator.submit(form(), cart)).unwrap()

    assert done.order_number == "1001"
    assert commerce.count("place") == 2


async def test_second_timeout_fails_and_keeps_cart(orchestrator, commerce):
    commerce.place_behaviour = ["timeout", "timeout"]
    cart = Co.LocalCart([line()])

    error = failed(await orchestrator.submit(form(), cart))

    assert error.kind is Co.CheckoutErrorKind.TIMEOUT
    assert commerce.count("place") == 2
    assert not cart.is_empty


async def test_fourth_attempt_is_rate_limited(orchestrator, commerce):
    cart = Co.LocalCart([line()])
    for _ in range(3):
        error = failed(await orchestrator.submit(form(full_name="Al"), cart))
        assert error.kind is Co.CheckoutErrorKind.VALIDATION

    error = failed(await orchestrator.submit(form(), cart))

    assert error.kind is Co.CheckoutErrorKind.RATE_LIMITED
    assert error.message == Co.TOO_MANY_ATTEMPTS
    assert commerce.remote_calls == 0


async def test_empty_cart(orchestrator, commerce):
    error = failed(await orchestrator.submit(form(), Co.LocalCart()))
    assert error.kind is Co.CheckoutErrorKind.EMPTY_CART
    assert commerce.remote_calls == 0


async def test_rotated_tokens_are_followed(commerce_client, strict_verifier, memory_store, commerce):
    commerce.rotate_on_add = True
    orchestrator = Co.CheckoutOrchestrator(
        commerce_client,
        strict_verifier,
        store=memory_store,
        options=Co.CheckoutOptions(sync_batch_size=1, sync_batch_delay=0),
    )
    cart = Co.LocalCart([line("a"), line("b", product_id=200)])

    assert isinstance(await orchestrator.submit(form(), cart), Ok)

    assert commerce.sessions_seen == [None, "tok-1", "tok-2", "tok-3", "tok-3"]
    assert orchestrator.session.token == "tok-3"


async def test_lines_are_pushed_in_batches(orchestrator, commerce):
    cart = Co.LocalCart([line(str(i), product_id=100 + i, quantity=1) for i in range(5)])

    assert isinstance(await orchestrator.submit(form(), cart), Ok)

    assert commerce.count("add") == 5
    assert len(commerce.carts["tok-1"]) == 5


async def test_placeholder_order_number_is_rejected(orchestrator, commerce):
    commerce.order["orderNumber"] = "pending"
    cart = Co.LocalCart([line()])

    error = failed(await orchestrator.submit(form(), cart))

    assert error.kind is Co.CheckoutErrorKind.LOGICAL
    assert "pending" in error.detail
    assert not cart.is_empty


async def test_payment_error_is_not_retried(orchestrator, commerce):
    commerce.place_behaviour = ["error"]

    error = failed(await orchestrator.submit(form(), Co.LocalCart([line()])))

    assert error.kind is Co.CheckoutErrorKind.PAYMENT
    assert commerce.count("place") == 1


async def test_state_listeners_and_final_success(orchestrator):
    seen: list[tuple[Co.CheckoutState, Co.CheckoutState]] = []
    unsubscribe = orchestrator.on_state_change(lambda old, new: seen.append((old, new)))

    await orchestrator.submit(form(), Co.LocalCart([line()]))

    S = Co.CheckoutState
    assert seen == [
        (S.IDLE, S.PROCESSING),
        (S.PROCESSING, S.PLACING_ORDER),
        (S.PLACING_ORDER, S.SUCCESS),
    ]

    again = failed(await orchestrator.submit(form(), Co.LocalCart([line()])))
    assert again.kind is Co.CheckoutErrorKind.BUSY

    unsubscribe()
    orchestrator.reset()
    assert orchestrator.state is S.IDLE
    assert len(seen) == 3


async def test_failing_listener_does_not_break_checkout(orchestrator):
    def explode(old, new):
        raise RuntimeError("listener bug")

    orchestrator.on_state_change(explode)
    assert isinstance(await orchestrator.submit(form(), Co.LocalCart([line()])), Ok)


async def test_live_verdict_is_reused(orchestrator, courier):
    assert await orchestrator.verify_live("01712") is None

    verdict = await orchestrator.verify_live(PHONE)
    assert verdict.allowed

    await orchestrator.submit(form(), Co.LocalCart([line()]))
    assert courier.calls == [PHONE]


async def test_resubmit_after_failed_placement_uses_a_fresh_cart(orchestrator, commerce):
    commerce.place_behaviour = ["error"]
    cart = Co.LocalCart([line()])

    failed(await orchestrator.submit(form(), cart))
    assert orchestrator.state is Co.CheckoutState.ERROR
    assert not cart.is_empty

    done = (await orchestrator.submit(form(), cart)).unwrap()

    assert done.order_number == "1001"
    assert orchestrator.session.token == "tok-2"
    assert [(l["productId"], l["quantity"]) for l in commerce.carts["tok-2"]] == [(100, 2)]
    assert commerce.count("session") == 2


async def test_rejected_session_is_dropped(orchestrator, commerce):
    commerce.place_behaviour = ["reject"]

    error = failed(await orchestrator.submit(form(), Co.LocalCart([line()])))

    assert error.kind is Co.CheckoutErrorKind.SESSION
    assert orchestrator.session.token is None


class ExplodingStore(St.MemoryStore):
    async def set(self, key, value):
        raise RuntimeError("quota exceeded")


@pytest.mark.parametrize(
    "store",
    [ExplodingStore(), St.FallbackStore([ExplodingStore()])],
    ids=["raising", "fallback-over-raising"],
)
async def test_bookkeeping_failure_does_not_fail_placed_order(commerce_client, strict_verifier, commerce, store):
    orchestrator = Co.CheckoutOrchestrator(
        commerce_client,
        strict_verifier,
        store=store,
        options=Co.CheckoutOptions(sync_batch_delay=0),
    )
    cart = Co.LocalCart([line()])

    done = (await orchestrator.submit(form(), cart)).unwrap()

    assert done.order_number == "1001"
    assert orchestrator.state is Co.CheckoutState.SUCCESS
    assert cart.is_empty
    assert commerce.count("place") == 1


async def test_unexpected_exception_ends_in_error_state(commerce_client, strict_verifier, memory_store, commerce):
    class BrokenCart(Co.LocalCart):
        def clear(self):
            raise RuntimeError("cart listener failed")

    orchestrator = Co.CheckoutOrchestrator(
        commerce_client,
        strict_verifier,
        store=memory_store,
        options=Co.CheckoutOptions(sync_batch_delay=0),
    )

    error = failed(await orchestrator.submit(form(), BrokenCart([line()])))

    assert error.kind is Co.CheckoutErrorKind.LOGICAL
    assert "cart listener failed" in error.detail
    assert orchestrator.state is Co.CheckoutState.ERROR


async def test_live_verdict_is_used_once(orchestrator, commerce, courier, strict_verifier):
    assert (await orchestrator.verify_live(PHONE)).allowed
    commerce.place_behaviour = ["error"]
    failed(await orchestrator.submit(form(), Co.LocalCart([line()])))

    courier.summaries[PHONE] = summaries(3, 0)
    await strict_verifier.forget(PHONE)

    error = failed(await orchestrator.submit(form(), Co.LocalCart([line()])))
    assert error.kind is Co.CheckoutErrorKind.RISK_REJECTED
