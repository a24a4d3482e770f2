"""
Commerce — remote session cart and order placement.

    from checkout_engine import commerce as Cm

    client = Cm.CommerceClient(http, settings.commerce_url)
    session = Cm.RemoteSession()
"""

from __future__ import annotations

from checkout_engine.commerce._types import (
    SESSION_HEADER,
    SESSION_PREFIX,
    RemoteSession,
    Reply,
    parse_money,
    RemoteCartLine,
    RemoteCart,
    Address,
    CheckoutInput,
    PlacedOrder,
    CommerceErrorKind,
    CommerceError,
)
from checkout_engine.commerce._client import (
    CommerceClient,
    decode_cart,
    decode_order,
    session_from,
)

__all__ = (
    "SESSION_HEADER",
    "SESSION_PREFIX",
    "RemoteSession",
    "Reply",
    "parse_money",
    "RemoteCartLine",
    "RemoteCart",
    "Address",
    "CheckoutInput",
    "PlacedOrder",
    "CommerceErrorKind",
    "CommerceError",
    "CommerceClient",
    "decode_cart",
    "decode_order",
    "session_from",
)
