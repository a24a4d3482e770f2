"""
Event types — closed set of tracking events with typed payloads.

Each event kind is its own dataclass; dispatch code matches on the class,
so a payload that does not fit its kind cannot be constructed.
"""

from __future__ import annotations

import hashlib
from dataclasses import dataclass, field
from enum import Enum, IntEnum
from typing import Any, ClassVar

# ═══════════════════════════════════════════════════════════════════════════════
# Kinds & Priority
# ═══════════════════════════════════════════════════════════════════════════════


class EventKind(Enum):
    """Known event kinds. The value is the name sent downstream."""
    PURCHASE = "Purchase"
    ADD_TO_CART = "AddToCart"
    VIEW_CONTENT = "ViewContent"
    INITIATE_CHECKOUT = "InitiateCheckout"
    SEARCH = "Search"
    CUSTOM = "Custom"


class Priority(IntEnum):
    """Lower value flushes first."""
    HIGH = 0
    MEDIUM = 1
    LOW = 2


# ═══════════════════════════════════════════════════════════════════════════════
# Payloads
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class ContentItem:
    id: str
    quantity: int
    item_price: float


@dataclass(frozen=True, slots=True)
class CommercePayload:
    """Shape shared by purchase, add-to-cart, view-content and checkout events."""
    contents: tuple[ContentItem, ...]
    value: float
    currency: str = "BDT"
    num_items: int | None = None

    @property
    def content_ids(self) -> list[str]:
        return [c.id for c in self.contents]

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "content_ids": self.content_ids,
            "content_type": "product",
            "contents": [
                {"id": c.id, "quantity": c.quantity, "item_price": c.item_price}
                for c in self.contents
            ],
            "currency": self.currency,
            "value": self.value,
        }
        if self.num_items is not None:
            data["num_items"] = self.num_items
        return data


@dataclass(frozen=True, slots=True)
class SearchPayload:
    search_string: str
    content_ids: tuple[str, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {
            "search_string": self.search_string,
            "content_ids": list(self.content_ids),
            "content_type": "product",
        }


@dataclass(frozen=True, slots=True)
class CustomPayload:
    data: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return dict(self.data)


# ═══════════════════════════════════════════════════════════════════════════════
# Events (tagged variants)
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class Purchase:
    kind: ClassVar[EventKind] = EventKind.PURCHASE
    order_number: str
    payload: CommercePayload
    customer_id: str | None = None

    @property
    def name(self) -> str:
        return self.kind.value


@dataclass(frozen=True, slots=True)
class AddToCart:
    kind: ClassVar[EventKind] = EventKind.ADD_TO_CART
    payload: CommercePayload
    customer_id: str | None = None

    @property
    def name(self) -> str:
        return self.kind.value


@dataclass(frozen=True, slots=True)
class ViewContent:
    kind: ClassVar[EventKind] = EventKind.VIEW_CONTENT
    payload: CommercePayload
    customer_id: str | None = None

    @property
    def name(self) -> str:
        return self.kind.value


@dataclass(frozen=True, slots=True)
class InitiateCheckout:
    kind: ClassVar[EventKind] = EventKind.INITIATE_CHECKOUT
    payload: CommercePayload
    customer_id: str | None = None

    @property
    def name(self) -> str:
        return self.kind.value


@dataclass(frozen=True, slots=True)
class Search:
    kind: ClassVar[EventKind] = EventKind.SEARCH
    payload: SearchPayload
    customer_id: str | None = None

    @property
    def name(self) -> str:
        return self.kind.value


@dataclass(frozen=True, slots=True)
class Custom:
    """Any event outside the known kinds, sent under its own name."""
    kind: ClassVar[EventKind] = EventKind.CUSTOM
    event_name: str
    payload: CustomPayload
    customer_id: str | None = None

    @property
    def name(self) -> str:
        return self.event_name


type TrackingEvent = Purchase | AddToCart | ViewContent | InitiateCheckout | Search | Custom


@dataclass(frozen=True, slots=True)
class BatchedEvent:
    """Queued event. seq breaks ties between events enqueued at the same instant."""
    event: TrackingEvent
    priority: Priority
    enqueued_at: float
    seq: int

    @property
    def sort_key(self) -> tuple[int, float, int]:
        return (int(self.priority), self.enqueued_at, self.seq)


# ═══════════════════════════════════════════════════════════════════════════════
# User data (server-side matching)
# ═══════════════════════════════════════════════════════════════════════════════


def sha256(value: str) -> str:
    return hashlib.sha256(value.strip().lower().encode("utf-8")).hexdigest()


@dataclass(frozen=True, slots=True)
class UserData:
    """Customer identifiers; hashed before they leave the process."""
    phone: str = ""
    email: str = ""
    first_name: str = ""
    last_name: str = ""
    city: str = ""
    country: str = "bd"
    client_ip: str = ""
    user_agent: str = ""

    def hashed(self) -> dict[str, str]:
        data: dict[str, str] = {}
        for key, raw in (
            ("ph", self.phone),
            ("em", self.email),
            ("fn", self.first_name),
            ("ln", self.last_name),
            ("ct", self.city),
            ("country", self.country),
        ):
            if raw:
                data[key] = sha256(raw)
        if self.client_ip:
            data["client_ip_address"] = self.client_ip
        if self.user_agent:
            data["client_user_agent"] = self.user_agent
        return data


# ═══════════════════════════════════════════════════════════════════════════════
# Errors
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class DispatchError:
    """One channel failed to deliver one event."""
    channel: str
    event_name: str
    message: str


__all__ = (
    "EventKind",
    "Priority",
    "ContentItem",
    "CommercePayload",
    "SearchPayload",
    "CustomPayload",
    "Purchase",
    "AddToCart",
    "ViewContent",
    "InitiateCheckout",
    "Search",
    "Custom",
    "TrackingEvent",
    "BatchedEvent",
    "sha256",
    "UserData",
    "DispatchError",
)
