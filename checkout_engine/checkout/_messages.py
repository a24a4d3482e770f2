"""
Failure → message shown to the customer.

Transport and logical failures are matched by substring of their technical
detail; anything unrecognized gets the contact-support text.
"""

from __future__ import annotations

from checkout_engine.commerce import CommerceError, CommerceErrorKind
from checkout_engine.checkout._types import CheckoutError, CheckoutErrorKind

NETWORK = "Network problem. Please check your internet connection and try again."
SESSION = "Your session expired. Please refresh the page and try again."
PAYMENT = "Payment method problem. Please choose Cash on Delivery and try again."
CART = "There was a problem with your cart. Please review your items and try again."
TIMEOUT = "The order is taking too long to process. Please try again in a moment."
GENERIC = "Failed to place the order. Please try again."
SUPPORT = "Something went wrong while placing your order. Please contact support if the problem continues."

# first match wins
_MARKERS: tuple[tuple[tuple[str, ...], CheckoutErrorKind], ...] = (
    (("timeout", "timed out"), CheckoutErrorKind.TIMEOUT),
    (("network", "fetch", "connection", "econn"), CheckoutErrorKind.TRANSPORT),
    (("session", "token", "expired"), CheckoutErrorKind.SESSION),
    (("payment",), CheckoutErrorKind.PAYMENT),
    (("cart", "product", "stock"), CheckoutErrorKind.CART),
    (("failed", "error", "invalid"), CheckoutErrorKind.LOGICAL),
)

_MESSAGES = {
    CheckoutErrorKind.TIMEOUT: TIMEOUT,
    CheckoutErrorKind.TRANSPORT: NETWORK,
    CheckoutErrorKind.SESSION: SESSION,
    CheckoutErrorKind.PAYMENT: PAYMENT,
    CheckoutErrorKind.CART: CART,
    CheckoutErrorKind.EMPTY_CART: CART,
    CheckoutErrorKind.LOGICAL: GENERIC,
}


def classify(detail: str) -> CheckoutErrorKind | None:
    lowered = detail.lower()
    for markers, kind in _MARKERS:
        if any(m in lowered for m in markers):
            return kind
    return None


def message_for(detail: str) -> str:
    kind = classify(detail)
    return SUPPORT if kind is None else _MESSAGES[kind]


def message_for_kind(kind: CheckoutErrorKind, detail: str = "") -> str:
    """Message by kind; LOGICAL falls back to substring matching on detail."""
    if kind is CheckoutErrorKind.LOGICAL:
        return message_for(detail)
    return _MESSAGES.get(kind, SUPPORT)


def from_commerce(error: CommerceError, fallback: CheckoutErrorKind = CheckoutErrorKind.LOGICAL) -> CheckoutError:
    """Translate a remote failure into a user-facing CheckoutError."""
    match error.kind:
        case CommerceErrorKind.TIMEOUT:
            kind = CheckoutErrorKind.TIMEOUT
        case CommerceErrorKind.TRANSPORT:
            kind = CheckoutErrorKind.TRANSPORT
        case CommerceErrorKind.HTTP_STATUS if error.status in (401, 403):
            kind = CheckoutErrorKind.SESSION
        case _:
            kind = classify(error.message) or fallback
    return CheckoutError(kind, message_for_kind(kind, error.message), detail=error.message)


__all__ = (
    "NETWORK",
    "SESSION",
    "PAYMENT",
    "CART",
    "TIMEOUT",
    "GENERIC",
    "SUPPORT",
    "classify",
    "message_for",
    "message_for_kind",
    "from_commerce",
)
