"""
Receipt — shipping charge, delivery labels, order snapshot and receipt URL.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from decimal import Decimal
from typing import Any
from urllib.parse import urlencode

from checkout_engine.checkout._types import CartLine, DeliveryZone, StockStatus, ValidForm

FAST_DELIVERY = "Fast Delivery (1-3 days)"
REGULAR_DELIVERY = "Regular Delivery (3-5 days)"
GLOBAL_DELIVERY = "Global Delivery (10-15 days)"


@dataclass(frozen=True, slots=True)
class ShippingRates:
    inside: Decimal = Decimal(80)
    outside: Decimal = Decimal(130)

    def charge(self, zone: DeliveryZone) -> Decimal:
        return self.inside if zone is DeliveryZone.INSIDE else self.outside


def delivery_label(status: StockStatus) -> str:
    match status:
        case StockStatus.IN_STOCK:
            return FAST_DELIVERY
        case StockStatus.ON_BACKORDER:
            return REGULAR_DELIVERY
        case _:
            return GLOBAL_DELIVERY


def subtotal(lines: Sequence[CartLine]) -> Decimal:
    return sum((line.line_total for line in lines), Decimal(0))


def order_snapshot(order_number: str, lines: Sequence[CartLine], shipping: Decimal) -> dict[str, Any]:
    """JSON-safe copy of what was ordered, for the receipt view."""
    return {
        "orderNumber": order_number,
        "items": [
            {
                "key": line.key,
                "productId": line.product_id,
                "variationId": line.variation_id,
                "name": line.name,
                "quantity": line.quantity,
                "unitPrice": str(line.unit_price),
                "lineTotal": str(line.line_total),
                "deliveryTime": delivery_label(line.stock_status),
            }
            for line in lines
        ],
        "subtotal": str(subtotal(lines)),
        "shipping": str(shipping),
    }


def customer_profile(form: ValidForm) -> dict[str, Any]:
    """Form pre-fill for the next visit."""
    return {
        "fullName": form.full_name,
        "phone": form.phone,
        "address": form.address,
        "deliveryZone": form.zone.value,
        "email": form.email,
    }


def _amount(value: Decimal) -> str:
    return str(value.quantize(Decimal(1))) if value == value.to_integral_value() else str(value)


def receipt_url(
    order_number: str,
    form: ValidForm,
    total: Decimal,
    shipping: Decimal,
    item_count: int,
    *,
    path: str = "/thank-you",
) -> str:
    query = urlencode(
        {
            "orderNumber": order_number,
            "name": form.full_name,
            "phone": form.phone,
            "address": form.address,
            "total": _amount(total),
            "delivery": _amount(shipping),
            "items": item_count,
        }
    )
    return f"{path}?{query}"


__all__ = (
    "FAST_DELIVERY",
    "REGULAR_DELIVERY",
    "GLOBAL_DELIVERY",
    "ShippingRates",
    "delivery_label",
    "subtotal",
    "order_snapshot",
    "customer_profile",
    "receipt_url",
)
