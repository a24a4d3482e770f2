"""
Delivery channels — client-visible tracking and server-side conversions.

Both channels return Result; the batcher logs and drops failures.
"""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass
from typing import Any, Protocol

import httpx
import structlog
from kungfu import Result, Ok, Error

from checkout_engine.events._payload import ServerEvent
from checkout_engine.events._types import DispatchError

logger = structlog.get_logger(__name__)

# ═══════════════════════════════════════════════════════════════════════════════
# Protocols
# ═══════════════════════════════════════════════════════════════════════════════


class ClientChannel(Protocol):
    """Client-visible tracking call (pixel-style)."""

    @property
    def name(self) -> str: ...

    async def track(
        self, event_name: str, payload: dict[str, Any], event_id: str
    ) -> Result[None, DispatchError]: ...


class ServerChannel(Protocol):
    """Best-effort server-side forwarding."""

    @property
    def name(self) -> str: ...

    async def send(self, event: ServerEvent) -> Result[None, DispatchError]: ...


# ═══════════════════════════════════════════════════════════════════════════════
# Pixel log (client-visible calls rendered by the page)
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class PixelCall:
    event_name: str
    payload: dict[str, Any]
    event_id: str


class PixelLog:
    """
    Bounded buffer of client-visible tracking calls.

    The page layer drains it and emits one `fbq('track', ...)` per call.
    """

    def __init__(self, max_size: int = 1000, name: str = "pixel") -> None:
        self._calls: deque[PixelCall] = deque(maxlen=max_size)
        self._name = name

    @property
    def name(self) -> str:
        return self._name

    async def track(
        self, event_name: str, payload: dict[str, Any], event_id: str
    ) -> Result[None, DispatchError]:
        self._calls.append(PixelCall(event_name, payload, event_id))
        return Ok(None)

    def drain(self) -> list[PixelCall]:
        calls = list(self._calls)
        self._calls.clear()
        return calls

    def __len__(self) -> int:
        return len(self._calls)


# ═══════════════════════════════════════════════════════════════════════════════
# Conversions API
# ═══════════════════════════════════════════════════════════════════════════════


class ConversionsChannel:
    """Posts events to `{base}/{version}/{pixel_id}/events`."""

    def __init__(
        self,
        http: httpx.AsyncClient,
        *,
        pixel_id: str,
        access_token: str,
        api_base: str = "https://graph.facebook.com",
        api_version: str = "v18.0",
        name: str = "conversions",
    ) -> None:
        self._http = http
        self._pixel_id = pixel_id
        self._token = access_token
        self._url = f"{api_base.rstrip('/')}/{api_version}/{pixel_id}/events"
        self._name = name

    @property
    def name(self) -> str:
        return self._name

    @property
    def configured(self) -> bool:
        return bool(self._pixel_id and self._token)

    async def send(self, event: ServerEvent) -> Result[None, DispatchError]:
        if not self.configured:
            return Error(DispatchError(self._name, event.event_name, "pixel id or access token missing"))

        body = {"data": [event.to_dict()], "access_token": self._token}
        try:
            response = await self._http.post(self._url, json=body)
        except httpx.HTTPError as e:
            return Error(DispatchError(self._name, event.event_name, f"network error: {e}"))

        if response.is_success:
            return Ok(None)
        return Error(
            DispatchError(self._name, event.event_name, f"HTTP {response.status_code}: {response.text[:200]}")
        )


class RelayChannel:
    """
    Posts events to this service's own forwarding endpoint.

    Used where the process holding the batcher must not see the access token.
    """

    def __init__(self, http: httpx.AsyncClient, url: str, name: str = "relay") -> None:
        self._http = http
        self._url = url
        self._name = name

    @property
    def name(self) -> str:
        return self._name

    async def send(self, event: ServerEvent) -> Result[None, DispatchError]:
        body = {
            "eventName": event.event_name,
            "userData": event.user_data,
            "customData": event.custom_data,
            "eventSourceUrl": event.event_source_url,
            "eventId": event.event_id,
        }
        try:
            response = await self._http.post(self._url, json=body)
            result = response.json()
        except (httpx.HTTPError, ValueError) as e:
            return Error(DispatchError(self._name, event.event_name, str(e)))

        if isinstance(result, dict) and result.get("success"):
            return Ok(None)
        return Error(DispatchError(self._name, event.event_name, f"relay refused: {result!r}"[:200]))


__all__ = (
    "ClientChannel",
    "ServerChannel",
    "PixelCall",
    "PixelLog",
    "ConversionsChannel",
    "RelayChannel",
)
