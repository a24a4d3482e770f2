"""
Payload builders and per-channel rendering.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any

from checkout_engine.events._types import (
    AddToCart,
    CommercePayload,
    ContentItem,
    Custom,
    CustomPayload,
    InitiateCheckout,
    Purchase,
    Search,
    SearchPayload,
    TrackingEvent,
    ViewContent,
)

# ═══════════════════════════════════════════════════════════════════════════════
# Builders
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class LineItem:
    """Minimal line description accepted by the builders."""
    product_id: int | str
    quantity: int
    line_total: Decimal | float


def _contents(lines: Iterable[LineItem]) -> tuple[ContentItem, ...]:
    items = []
    for line in lines:
        quantity = max(line.quantity, 1)
        items.append(
            ContentItem(
                id=str(line.product_id),
                quantity=line.quantity,
                item_price=round(float(line.line_total) / quantity, 2),
            )
        )
    return tuple(items)


def purchase(
    order_number: str,
    lines: Iterable[LineItem],
    *,
    value: Decimal | float,
    currency: str = "BDT",
    customer_id: str | None = None,
) -> Purchase:
    contents = _contents(lines)
    return Purchase(
        order_number=order_number,
        payload=CommercePayload(contents, float(value), currency, num_items=len(contents)),
        customer_id=customer_id,
    )


def add_to_cart(
    product_id: int | str,
    price: Decimal | float,
    quantity: int = 1,
    *,
    currency: str = "BDT",
    customer_id: str | None = None,
) -> AddToCart:
    item = ContentItem(str(product_id), quantity, float(price))
    return AddToCart(CommercePayload((item,), float(price) * quantity, currency), customer_id)


def view_content(
    product_id: int | str,
    price: Decimal | float,
    *,
    currency: str = "BDT",
    customer_id: str | None = None,
) -> ViewContent:
    item = ContentItem(str(product_id), 1, float(price))
    return ViewContent(CommercePayload((item,), float(price), currency), customer_id)


def initiate_checkout(
    lines: Iterable[LineItem],
    *,
    value: Decimal | float,
    currency: str = "BDT",
    customer_id: str | None = None,
) -> InitiateCheckout:
    contents = _contents(lines)
    return InitiateCheckout(
        CommercePayload(contents, float(value), currency, num_items=len(contents)),
        customer_id,
    )


def search(term: str, *, customer_id: str | None = None) -> Search:
    return Search(SearchPayload(term), customer_id)


def custom(name: str, data: dict[str, Any] | None = None, *, customer_id: str | None = None) -> Custom:
    return Custom(name, CustomPayload(dict(data or {})), customer_id)


# ═══════════════════════════════════════════════════════════════════════════════
# Rendering
# ═══════════════════════════════════════════════════════════════════════════════


def event_id(event: TrackingEvent, now: float) -> str:
    """Deduplication id shared by both channels for the same event."""
    millis = int(now * 1000)
    match event:
        case Purchase(order_number=number):
            return f"purchase_{number}"
        case AddToCart(payload=p):
            return f"addtocart_{'_'.join(p.content_ids)}_{millis}"
        case ViewContent(payload=p):
            return f"viewcontent_{'_'.join(p.content_ids)}_{millis}"
        case InitiateCheckout(payload=p):
            return f"checkout_{'_'.join(p.content_ids)}_{p.value:g}"
        case Search(payload=p):
            return f"search_{p.search_string}_{millis}"
        case Custom(event_name=name):
            return f"{name}_{millis}"


def payload_of(event: TrackingEvent) -> dict[str, Any]:
    """Downstream custom_data for an event."""
    match event:
        case Purchase(payload=p) | AddToCart(payload=p) | ViewContent(payload=p) | InitiateCheckout(payload=p):
            return p.to_dict()
        case Search(payload=s):
            return s.to_dict()
        case Custom(payload=c):
            return c.to_dict()


@dataclass(frozen=True, slots=True)
class ServerEvent:
    """Server-side conversions record."""
    event_name: str
    event_time: int
    event_id: str
    custom_data: dict[str, Any]
    user_data: dict[str, str] = field(default_factory=dict)
    event_source_url: str = ""
    action_source: str = "website"

    def to_dict(self) -> dict[str, Any]:
        return {
            "event_name": self.event_name,
            "event_time": self.event_time,
            "user_data": self.user_data,
            "custom_data": self.custom_data,
            "event_source_url": self.event_source_url,
            "action_source": self.action_source,
            "event_id": self.event_id,
        }


__all__ = (
    "LineItem",
    "purchase",
    "add_to_cart",
    "view_content",
    "initiate_checkout",
    "search",
    "custom",
    "event_id",
    "payload_of",
    "ServerEvent",
)
