"""Shared fixtures: a manual clock and fake HTTP backends."""

from __future__ import annotations

import json
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

import httpx
import pytest

from checkout_engine import commerce as Cm
from checkout_engine import risk as R
from checkout_engine import storage as St

COURIER_URL = "https://courier.test/search.php"
COMMERCE_URL = "https://shop.test/graphql"


class FakeClock:
    def __init__(self, now: float = 1_700_000_000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


# ═══════════════════════════════════════════════════════════════════════════════
# Courier API
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass
class FakeCourier:
    """Delivery-history API answering from a phone → Summaries map."""
    summaries: dict[str, dict[str, Any]] = field(default_factory=dict)
    status: int = 200
    fail: bool = False
    calls: list[str] = field(default_factory=list)

    def handle(self, request: httpx.Request) -> httpx.Response:
        phone = request.url.params["searchTerm"]
        self.calls.append(phone)
        if self.fail:
            raise httpx.ConnectError("courier down", request=request)
        if self.status != 200:
            return httpx.Response(self.status, json={"error": "nope"})
        return httpx.Response(200, json={"Summaries": self.summaries.get(phone, {})})


@pytest.fixture
def courier() -> FakeCourier:
    return FakeCourier()


# ═══════════════════════════════════════════════════════════════════════════════
# Commerce API
# ═══════════════════════════════════════════════════════════════════════════════


def _cart(lines: list[dict[str, Any]]) -> dict[str, Any]:
    return {
        "isEmpty": not lines,
        "subtotal": str(sum(int(line["total"]) for line in lines)),
        "total": str(sum(int(line["total"]) for line in lines)),
        "contents": {
            "nodes": [
                {
                    "key": line["key"],
                    "quantity": line["quantity"],
                    "total": line["total"],
                    "product": {"node": {"databaseId": line["productId"]}},
                    "variation": None,
                }
                for line in lines
            ]
        },
    }


@dataclass
class FakeCommerce:
    """
    GraphQL backend keyed by session token.

    `order` is the placed-order payload; `place_behaviour` is consumed one
    entry per PlaceOrder call ("timeout", "error", "reject" or "ok").
    """
    order: dict[str, Any] = field(
        default_factory=lambda: {
            "id": "b3JkZXI6MTAwMQ==",
            "orderNumber": "1001",
            "total": "580",
            "shippingTotal": "80",
            "status": "PROCESSING",
        }
    )
    place_behaviour: list[str] = field(default_factory=list)
    rotate_on_add: bool = False
    issued: int = 0
    carts: dict[str, list[dict[str, Any]]] = field(default_factory=dict)
    operations: list[str] = field(default_factory=list)
    sessions_seen: list[str | None] = field(default_factory=list)
    last_checkout: dict[str, Any] | None = None

    @property
    def remote_calls(self) -> int:
        return len(self.operations)

    def count(self, operation: str) -> int:
        return self.operations.count(operation)

    def _token(self, request: httpx.Request) -> str | None:
        header = request.headers.get(Cm.SESSION_HEADER)
        return header.removeprefix(Cm.SESSION_PREFIX) if header else None

    def _new_token(self) -> str:
        self.issued += 1
        return f"tok-{self.issued}"

    def _respond(self, data: dict[str, Any], token: str | None) -> httpx.Response:
        headers = {Cm.SESSION_HEADER: f"{Cm.SESSION_PREFIX}{token}"} if token else {}
        return httpx.Response(200, json={"data": data}, headers=headers)

    def handle(self, request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        query: str = body["query"]
        variables: dict[str, Any] = body.get("variables") or {}
        token = self._token(request)
        self.sessions_seen.append(token)

        if "SessionPing" in query:
            self.operations.append("session")
            token = token or self._new_token()
            self.carts.setdefault(token, [])
            return self._respond({"cart": {"isEmpty": True}}, token)

        if "AddToCart" in query:
            self.operations.append("add")
            token = token or self._new_token()
            lines = self.carts.setdefault(token, [])
            item = variables["input"]
            lines.append(
                {
                    "key": f"line-{len(lines) + 1}",
                    "productId": item["productId"],
                    "quantity": item["quantity"],
                    "total": "250",
                }
            )
            if self.rotate_on_add:
                rotated = self._new_token()
                self.carts[rotated] = lines
                token = rotated
            return self._respond({"addToCart": {"cart": _cart(lines)}}, token)

        if "UpdateCartItem" in query:
            self.operations.append("update")
            lines = self.carts.get(token or "", [])
            for item in variables["input"]["items"]:
                for line in lines:
                    if line["key"] == item["key"]:
                        line["quantity"] = item["quantity"]
            lines[:] = [line for line in lines if line["quantity"] > 0]
            return self._respond({"updateItemQuantities": {"cart": _cart(lines)}}, token)

        if "RemoveFromCart" in query:
            self.operations.append("remove")
            lines = self.carts.get(token or "", [])
            keys = set(variables["input"]["keys"])
            lines[:] = [line for line in lines if line["key"] not in keys]
            return self._respond({"removeItemsFromCart": {"cart": _cart(lines)}}, token)

        if "GetCart" in query:
            self.operations.append("read")
            return self._respond({"cart": _cart(self.carts.get(token or "", []))}, token)

        if "PlaceOrder" in query:
            self.operations.append("place")
            self.last_checkout = variables["input"]
            behaviour = self.place_behaviour.pop(0) if self.place_behaviour else "ok"
            if behaviour == "timeout":
                raise httpx.ReadTimeout("timed out", request=request)
            if behaviour == "reject":
                return httpx.Response(401, json={"errors": [{"message": "invalid session"}]})
            if behaviour == "error":
                return httpx.Response(200, json={"errors": [{"message": "Invalid payment method"}]})
            return self._respond({"checkout": {"order": self.order}}, token)

        return httpx.Response(400, json={"errors": [{"message": "unknown operation"}]})


@pytest.fixture
def commerce() -> FakeCommerce:
    return FakeCommerce()


# ═══════════════════════════════════════════════════════════════════════════════
# Wiring
# ═══════════════════════════════════════════════════════════════════════════════


def routed(courier: FakeCourier, commerce: FakeCommerce) -> Callable[[httpx.Request], httpx.Response]:
    def handler(request: httpx.Request) -> httpx.Response:
        url = str(request.url)
        if url.startswith(COURIER_URL):
            return courier.handle(request)
        if url.startswith(COMMERCE_URL):
            return commerce.handle(request)
        return httpx.Response(404)

    return handler


@pytest.fixture
async def http(courier: FakeCourier, commerce: FakeCommerce):
    async with httpx.AsyncClient(transport=httpx.MockTransport(routed(courier, commerce))) as client:
        yield client


@pytest.fixture
def commerce_client(http: httpx.AsyncClient) -> Cm.CommerceClient:
    return Cm.CommerceClient(http, COMMERCE_URL)


@pytest.fixture
def verifier(http: httpx.AsyncClient) -> R.CourierVerifier:
    return R.CourierVerifier(http, url=COURIER_URL, api_key="test-key")


@pytest.fixture
def memory_store() -> St.MemoryStore:
    return St.MemoryStore()
