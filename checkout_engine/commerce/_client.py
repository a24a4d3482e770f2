"""
Commerce client — GraphQL over httpx with session-token propagation.

Every request replays the held token in the `woocommerce-session` header,
and every reply carries back whatever token the server sent, so callers
decide when a rotated token supersedes the one they hold.

    client = CommerceClient(http, url)
    reply = await client.add_to_cart(100, 2, session=session.token)
    match reply:
        case Ok(r):
            session.adopt(r.session)
"""

from __future__ import annotations

from collections.abc import Callable, Mapping, Sequence
from typing import Any

import httpx
import structlog
from kungfu import Result, Ok, Error

from checkout_engine import lift as L
from checkout_engine._types import Lazy
from checkout_engine.commerce import _documents as D
from checkout_engine.commerce._types import (
    SESSION_HEADER,
    SESSION_PREFIX,
    CheckoutInput,
    CommerceError,
    CommerceErrorKind,
    PlacedOrder,
    RemoteCart,
    RemoteCartLine,
    Reply,
    parse_money,
)

logger = structlog.get_logger(__name__)

type Json = dict[str, Any]

# ═══════════════════════════════════════════════════════════════════════════════
# Decoding
# ═══════════════════════════════════════════════════════════════════════════════


def _node_id(wrapper: object) -> int | None:
    if not isinstance(wrapper, Mapping):
        return None
    node = wrapper.get("node")
    if not isinstance(node, Mapping):
        return None
    raw = node.get("databaseId")
    return raw if isinstance(raw, int) else None


def decode_cart(raw: object) -> Result[RemoteCart, CommerceError]:
    if not isinstance(raw, Mapping):
        return Error(CommerceError(CommerceErrorKind.PAYLOAD, "cart missing from response"))
    nodes = (raw.get("contents") or {}).get("nodes") or []
    lines = tuple(
        RemoteCartLine(
            key=str(n.get("key", "")),
            product_id=_node_id(n.get("product")),
            variation_id=_node_id(n.get("variation")),
            quantity=int(n.get("quantity") or 0),
            total=parse_money(n.get("total")),
        )
        for n in nodes
        if isinstance(n, Mapping)
    )
    return Ok(
        RemoteCart(
            lines=lines,
            subtotal=parse_money(raw.get("subtotal")),
            total=parse_money(raw.get("total")),
            is_empty=bool(raw.get("isEmpty", not lines)),
        )
    )


def decode_order(raw: object) -> Result[PlacedOrder, CommerceError]:
    if not isinstance(raw, Mapping):
        return Error(CommerceError(CommerceErrorKind.PAYLOAD, "order missing from checkout response"))
    return Ok(
        PlacedOrder(
            id=str(raw.get("id") or ""),
            order_number=str(raw.get("orderNumber") or ""),
            total=parse_money(raw.get("total")),
            shipping_total=parse_money(raw.get("shippingTotal")),
            status=str(raw.get("status") or ""),
        )
    )


def session_from(response: httpx.Response) -> str | None:
    header = response.headers.get(SESSION_HEADER)
    if not header:
        return None
    return header.removeprefix(SESSION_PREFIX).strip() or None


# ═══════════════════════════════════════════════════════════════════════════════
# Client
# ═══════════════════════════════════════════════════════════════════════════════


class CommerceClient:
    """Stateless GraphQL client; the session token is passed per call."""

    def __init__(self, http: httpx.AsyncClient, url: str, *, timeout: float | None = None) -> None:
        self._http = http
        self._url = url
        self._timeout = timeout

    async def execute(
        self,
        query: str,
        variables: Mapping[str, Any] | None = None,
        *,
        session: str | None = None,
    ) -> Result[Reply[Json], CommerceError]:
        """Send one GraphQL document. GraphQL `errors` become CommerceError."""
        headers = {"Content-Type": "application/json"}
        if session:
            headers[SESSION_HEADER] = f"{SESSION_PREFIX}{session}"

        extra: dict[str, Any] = {}
        if self._timeout is not None:
            extra["timeout"] = self._timeout

        try:
            response = await self._http.post(
                self._url,
                json={"query": query, "variables": dict(variables or {})},
                headers=headers,
                **extra,
            )
        except httpx.TimeoutException as e:
            return Error(CommerceError(CommerceErrorKind.TIMEOUT, f"timeout: {e}"))
        except httpx.HTTPError as e:
            return Error(CommerceError(CommerceErrorKind.TRANSPORT, f"network error: {e}"))

        token = session_from(response)

        if response.status_code >= 400:
            return Error(
                CommerceError(
                    CommerceErrorKind.HTTP_STATUS,
                    f"HTTP {response.status_code}",
                    status=response.status_code,
                )
            )

        try:
            body = response.json()
        except ValueError as e:
            return Error(CommerceError(CommerceErrorKind.PAYLOAD, f"invalid JSON: {e}"))

        errors = body.get("errors") if isinstance(body, dict) else None
        if errors:
            messages = "; ".join(str(err.get("message", err)) for err in errors if isinstance(err, dict))
            return Error(CommerceError(CommerceErrorKind.GRAPHQL, messages or str(errors)))

        data = body.get("data") if isinstance(body, dict) else None
        if not isinstance(data, dict):
            return Error(CommerceError(CommerceErrorKind.PAYLOAD, "response has no data"))

        return Ok(Reply(data=data, session=token))

    def _call[T](
        self,
        query: str,
        variables: Mapping[str, Any] | None,
        session: str | None,
        decode: Callable[[Json], Result[T, CommerceError]],
    ) -> Lazy[Reply[T], CommerceError]:
        async def run() -> Result[Reply[T], CommerceError]:
            match await self.execute(query, variables, session=session):
                case Ok(reply):
                    match decode(reply.data):
                        case Ok(value):
                            return Ok(Reply(data=value, session=reply.session))
                        case Error(e):
                            return Error(e)
                case Error(e):
                    return Error(e)

        return L.from_result_async(run)

    # ─── Operations ────────────────────────────────────────────────────────────

    def acquire_session(self, session: str | None = None) -> Lazy[Reply[None], CommerceError]:
        """No-op query whose only purpose is to obtain a session token."""
        return self._call(D.SESSION_PING, None, session, lambda _: Ok(None))

    def read_cart(self, session: str | None) -> Lazy[Reply[RemoteCart], CommerceError]:
        return self._call(D.GET_CART, None, session, lambda d: decode_cart(d.get("cart")))

    def add_to_cart(
        self,
        product_id: int,
        quantity: int,
        *,
        variation_id: int | None = None,
        session: str | None = None,
    ) -> Lazy[Reply[RemoteCart], CommerceError]:
        payload: dict[str, Any] = {"productId": product_id, "quantity": quantity}
        if variation_id:
            payload["variationId"] = variation_id
        return self._call(
            D.ADD_TO_CART,
            {"input": payload},
            session,
            lambda d: decode_cart((d.get("addToCart") or {}).get("cart")),
        )

    def update_quantity(
        self, key: str, quantity: int, *, session: str | None
    ) -> Lazy[Reply[RemoteCart], CommerceError]:
        return self._call(
            D.UPDATE_CART_ITEM,
            {"input": {"items": [{"key": key, "quantity": quantity}]}},
            session,
            lambda d: decode_cart((d.get("updateItemQuantities") or {}).get("cart")),
        )

    def remove_items(
        self, keys: Sequence[str], *, session: str | None
    ) -> Lazy[Reply[RemoteCart], CommerceError]:
        return self._call(
            D.REMOVE_FROM_CART,
            {"input": {"keys": list(keys)}},
            session,
            lambda d: decode_cart((d.get("removeItemsFromCart") or {}).get("cart")),
        )

    def place_order(
        self, order: CheckoutInput, *, session: str | None
    ) -> Lazy[Reply[PlacedOrder], CommerceError]:
        return self._call(
            D.PLACE_ORDER,
            order.to_variables(),
            session,
            lambda d: decode_order((d.get("checkout") or {}).get("order")),
        )


__all__ = (
    "CommerceClient",
    "decode_cart",
    "decode_order",
    "session_from",
)
