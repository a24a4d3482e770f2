"""
Checkout types — form, cart lines, states and the error taxonomy.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum, auto

# ═══════════════════════════════════════════════════════════════════════════════
# Form
# ═══════════════════════════════════════════════════════════════════════════════


class DeliveryZone(Enum):
    INSIDE = "inside"
    OUTSIDE = "outside"

    @classmethod
    def parse(cls, raw: str) -> DeliveryZone | None:
        match raw.strip().lower():
            case "inside" | "dhaka" | "inside_dhaka":
                return cls.INSIDE
            case "outside" | "outside_dhaka":
                return cls.OUTSIDE
            case _:
                return None

    @property
    def city(self) -> str:
        return "Dhaka" if self is DeliveryZone.INSIDE else "Outside Dhaka"

    @property
    def shipping_method(self) -> str:
        return "flat_rate:inside" if self is DeliveryZone.INSIDE else "flat_rate:outside"


class PaymentMethod(Enum):
    COD = "cod"


@dataclass(frozen=True, slots=True)
class CheckoutForm:
    """Raw form input as typed by the customer."""
    full_name: str
    phone: str
    address: str
    delivery_zone: str
    payment_method: str = "cod"
    email: str = ""
    note: str = ""


@dataclass(frozen=True, slots=True)
class ValidForm:
    """Form after validation; phone is in canonical 01XXXXXXXXX shape."""
    full_name: str
    phone: str
    address: str
    zone: DeliveryZone
    payment: PaymentMethod
    email: str = ""
    note: str = ""

    @property
    def first_name(self) -> str:
        return self.full_name.split(" ", 1)[0]

    @property
    def last_name(self) -> str:
        parts = self.full_name.split(" ", 1)
        return parts[1] if len(parts) > 1 else ""


# ═══════════════════════════════════════════════════════════════════════════════
# Cart
# ═══════════════════════════════════════════════════════════════════════════════


class StockStatus(Enum):
    IN_STOCK = "IN_STOCK"
    ON_BACKORDER = "ON_BACKORDER"
    OUT_OF_STOCK = "OUT_OF_STOCK"


@dataclass(frozen=True, slots=True)
class CartLine:
    key: str
    product_id: int
    quantity: int
    unit_price: Decimal
    line_total: Decimal
    variation_id: int | None = None
    name: str = ""
    stock_status: StockStatus = StockStatus.IN_STOCK

    def __post_init__(self) -> None:
        if self.quantity <= 0:
            raise ValueError(f"quantity must be positive, got {self.quantity}")


# ═══════════════════════════════════════════════════════════════════════════════
# State
# ═══════════════════════════════════════════════════════════════════════════════


class CheckoutState(Enum):
    """
    idle → processing → placing_order → success | error

    processing covers validation and risk checks; placing_order covers
    cart sync and order submission. error is recoverable, success is final.
    """
    IDLE = "idle"
    PROCESSING = "processing"
    PLACING_ORDER = "placing_order"
    SUCCESS = "success"
    ERROR = "error"

    @property
    def busy(self) -> bool:
        return self in (CheckoutState.PROCESSING, CheckoutState.PLACING_ORDER)


# ═══════════════════════════════════════════════════════════════════════════════
# Errors
# ═══════════════════════════════════════════════════════════════════════════════


class CheckoutErrorKind(Enum):
    """Why a submission did not produce an order."""
    VALIDATION = auto()
    RATE_LIMITED = auto()
    RISK_REJECTED = auto()
    BUSY = auto()
    EMPTY_CART = auto()
    SESSION = auto()
    CART = auto()
    TRANSPORT = auto()
    TIMEOUT = auto()
    LOGICAL = auto()
    PAYMENT = auto()

    @property
    def recoverable_inline(self) -> bool:
        """Shown next to the form rather than as an alert."""
        return self in (
            CheckoutErrorKind.VALIDATION,
            CheckoutErrorKind.RATE_LIMITED,
            CheckoutErrorKind.RISK_REJECTED,
        )


@dataclass(frozen=True, slots=True)
class CheckoutError:
    """
    User-facing failure.

    message is safe to show; detail keeps the technical cause for logs.
    """
    kind: CheckoutErrorKind
    message: str
    field: str | None = None
    detail: str = ""


# ═══════════════════════════════════════════════════════════════════════════════
# Success
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class CheckoutSuccess:
    order_number: str
    order_id: str
    subtotal: Decimal
    shipping: Decimal
    total: Decimal
    receipt_url: str


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
)
