"""
Checkout — validation, risk gate, cart sync and order placement.

    from checkout_engine import checkout as Co

    cart = Co.LocalCart([Co.CartLine("a", 100, 2, Decimal(250), Decimal(500))])
    result = await orchestrator.submit(Co.CheckoutForm(...), cart)
"""

from __future__ import annotations

from checkout_engine.checkout._types import (
    DeliveryZone,
    PaymentMethod,
    CheckoutForm,
    ValidForm,
    StockStatus,
    CartLine,
    CheckoutState,
    CheckoutErrorKind,
    CheckoutError,
    CheckoutSuccess,
)
from checkout_engine.checkout._validate import (
    sanitize_text,
    has_injection,
    validate_product_id,
    sanitize_price,
    normalize_phone,
    validate_form,
)
from checkout_engine.checkout._cart import LocalCart
from checkout_engine.checkout._guard import SubmissionGuard, TOO_MANY_ATTEMPTS
from checkout_engine.checkout._messages import (
    classify,
    message_for,
    message_for_kind,
    from_commerce,
)
from checkout_engine.checkout._receipt import (
    FAST_DELIVERY,
    REGULAR_DELIVERY,
    GLOBAL_DELIVERY,
    ShippingRates,
    delivery_label,
    subtotal,
    order_snapshot,
    customer_profile,
    receipt_url,
)
from checkout_engine.checkout._sync import chunked, acquire_session, sync_cart
from checkout_engine.checkout._place import PLACEHOLDER_ORDER_NUMBERS, validate_order, place_order
from checkout_engine.checkout._orchestrator import (
    PROFILE_KEY,
    LAST_ORDER_KEY,
    StateListener,
    CheckoutOptions,
    CheckoutOrchestrator,
)

__all__ = (
    "DeliveryZone",
    "PaymentMethod",
    "CheckoutForm",
    "ValidForm",
    "StockStatus",
    "CartLine",
    "CheckoutState",
    "CheckoutErrorKind",
    "CheckoutError",
    "CheckoutSuccess",
    "sanitize_text",
    "has_injection",
    "validate_product_id",
    "sanitize_price",
    "normalize_phone",
    "validate_form",
    "LocalCart",
    "SubmissionGuard",
    "TOO_MANY_ATTEMPTS",
    "classify",
    "message_for",
    "message_for_kind",
    "from_commerce",
    "FAST_DELIVERY",
    "REGULAR_DELIVERY",
    "GLOBAL_DELIVERY",
    "ShippingRates",
    "delivery_label",
    "subtotal",
    "order_snapshot",
    "customer_profile",
    "receipt_url",
    "chunked",
    "acquire_session",
    "sync_cart",
    "PLACEHOLDER_ORDER_NUMBERS",
    "validate_order",
    "place_order",
    "PROFILE_KEY",
    "LAST_ORDER_KEY",
    "StateListener",
    "CheckoutOptions",
    "CheckoutOrchestrator",
)
