"""
Events — typed tracking events, batching and delivery channels.

    from checkout_engine import events as E

    batcher = E.EventBatcher(client=E.PixelLog(), server=conversions)
    batcher.add(E.purchase("1001", lines, value=500), E.Priority.HIGH)
"""

from __future__ import annotations

from checkout_engine.events._types import (
    EventKind,
    Priority,
    ContentItem,
    CommercePayload,
    SearchPayload,
    CustomPayload,
    Purchase,
    AddToCart,
    ViewContent,
    InitiateCheckout,
    Search,
    Custom,
    TrackingEvent,
    BatchedEvent,
    sha256,
    UserData,
    DispatchError,
)
from checkout_engine.events._payload import (
    LineItem,
    purchase,
    add_to_cart,
    view_content,
    initiate_checkout,
    search,
    custom,
    event_id,
    payload_of,
    ServerEvent,
)
from checkout_engine.events._channels import (
    ClientChannel,
    ServerChannel,
    PixelCall,
    PixelLog,
    ConversionsChannel,
    RelayChannel,
)
from checkout_engine.events._batcher import (
    EventBatcher,
    FlushReport,
    QueueStatus,
    UserDataSource,
)

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
    "ClientChannel",
    "ServerChannel",
    "PixelCall",
    "PixelLog",
    "ConversionsChannel",
    "RelayChannel",
    "EventBatcher",
    "FlushReport",
    "QueueStatus",
    "UserDataSource",
)
