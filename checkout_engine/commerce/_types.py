"""
Commerce types — remote session cart and order shapes.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from enum import Enum, auto
from typing import Any

# ═══════════════════════════════════════════════════════════════════════════════
# Session
# ═══════════════════════════════════════════════════════════════════════════════

SESSION_HEADER = "woocommerce-session"
SESSION_PREFIX = "Session "


@dataclass(slots=True)
class RemoteSession:
    """Opaque credential naming a server-side cart. Mutable: the server may rotate it."""
    token: str | None = None

    def adopt(self, token: str | None) -> bool:
        """Take a token returned by the server. Returns True if it changed."""
        if token and token != self.token:
            self.token = token
            return True
        return False

    def clear(self) -> None:
        self.token = None


@dataclass(frozen=True, slots=True)
class Reply[T]:
    """Decoded response plus whatever session token came back with it."""
    data: T
    session: str | None


# ═══════════════════════════════════════════════════════════════════════════════
# Money
# ═══════════════════════════════════════════════════════════════════════════════

_NOT_NUMERIC = re.compile(r"[^0-9.\-]+")


def parse_money(raw: object) -> Decimal:
    """
    Parse a formatted amount such as "৳1,580.00" or "580".

    Anything unparseable is zero.
    """
    if raw is None:
        return Decimal(0)
    if isinstance(raw, (int, float, Decimal)):
        return Decimal(str(raw))
    cleaned = _NOT_NUMERIC.sub("", str(raw))
    try:
        return Decimal(cleaned) if cleaned else Decimal(0)
    except InvalidOperation:
        return Decimal(0)


# ═══════════════════════════════════════════════════════════════════════════════
# Cart & Order
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class RemoteCartLine:
    key: str
    product_id: int | None
    variation_id: int | None
    quantity: int
    total: Decimal


@dataclass(frozen=True, slots=True)
class RemoteCart:
    lines: tuple[RemoteCartLine, ...]
    subtotal: Decimal
    total: Decimal
    is_empty: bool


@dataclass(frozen=True, slots=True)
class Address:
    first_name: str
    last_name: str
    address1: str
    city: str
    phone: str
    country: str = "BD"
    email: str = ""

    def to_input(self) -> dict[str, str]:
        data = {
            "firstName": self.first_name,
            "lastName": self.last_name,
            "address1": self.address1,
            "city": self.city,
            "country": self.country,
            "phone": self.phone,
        }
        if self.email:
            data["email"] = self.email
        return data


@dataclass(frozen=True, slots=True)
class CheckoutInput:
    """Variables for the place-order mutation."""
    billing: Address
    shipping: Address
    payment_method: str
    shipping_method: str
    meta: dict[str, str] = field(default_factory=dict)
    customer_note: str = ""

    def to_variables(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "billing": self.billing.to_input(),
            "shipping": self.shipping.to_input(),
            "paymentMethod": self.payment_method,
            "shippingMethod": [self.shipping_method],
            "isPaid": False,
            "metaData": [{"key": k, "value": v} for k, v in self.meta.items()],
        }
        if self.customer_note:
            data["customerNote"] = self.customer_note
        return {"input": data}


@dataclass(frozen=True, slots=True)
class PlacedOrder:
    """Order as returned by the backend. Provisional until validated."""
    id: str
    order_number: str
    total: Decimal
    shipping_total: Decimal
    status: str


# ═══════════════════════════════════════════════════════════════════════════════
# Errors
# ═══════════════════════════════════════════════════════════════════════════════


class CommerceErrorKind(Enum):
    """Commerce API error kinds."""
    TRANSPORT = auto()
    TIMEOUT = auto()
    HTTP_STATUS = auto()
    GRAPHQL = auto()
    PAYLOAD = auto()


@dataclass(frozen=True, slots=True)
class CommerceError:
    """Remote commerce call failure."""
    kind: CommerceErrorKind
    message: str
    status: int | None = None


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
)
