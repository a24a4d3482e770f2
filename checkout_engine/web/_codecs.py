"""
Request/response codecs for the HTTP surface.

Requests decode into domain values with to_domain(); responses are built
from domain results with from_domain().
"""

from __future__ import annotations

import time
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from checkout_engine import events as E
from checkout_engine import risk as R


class _Camel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ═══════════════════════════════════════════════════════════════════════════════
# Verify customer
# ═══════════════════════════════════════════════════════════════════════════════


class VerifyRequest(_Camel):
    phone: str = Field(min_length=1)

    def to_domain(self) -> str:
        return self.phone


class DeliveryTotalsBody(_Camel):
    total_parcels: int
    total_delivered: int
    total_canceled: int


class VerifyResponse(_Camel):
    allowed: bool
    reason: str
    totals: DeliveryTotalsBody | None = None
    success_rate: float | None = None

    @classmethod
    def from_domain(cls, verdict: R.RiskVerdict) -> VerifyResponse:
        totals = None
        if verdict.totals is not None:
            totals = DeliveryTotalsBody(
                total_parcels=verdict.totals.total_parcels,
                total_delivered=verdict.totals.total_delivered,
                total_canceled=verdict.totals.total_canceled,
            )
        return cls(
            allowed=verdict.allowed,
            reason=verdict.reason,
            totals=totals,
            success_rate=verdict.success_rate,
        )


class ErrorBody(_Camel):
    error: str
    reset_time: float | None = None


# ═══════════════════════════════════════════════════════════════════════════════
# Conversions forwarding
# ═══════════════════════════════════════════════════════════════════════════════


class ConversionsRequest(_Camel):
    event_name: str = Field(min_length=1)
    user_data: dict[str, str] = Field(default_factory=dict)
    custom_data: dict[str, Any] = Field(default_factory=dict)
    event_source_url: str | None = None
    event_id: str | None = None

    def to_domain(self, *, client_ip: str, user_agent: str, default_source_url: str) -> E.ServerEvent:
        now = time.time()
        user_data = {**self.user_data, "client_ip_address": client_ip}
        if user_agent:
            user_data["client_user_agent"] = user_agent
        return E.ServerEvent(
            event_name=self.event_name,
            event_time=int(now),
            event_id=self.event_id or f"{self.event_name}_{int(now * 1000)}",
            custom_data=self.custom_data,
            user_data=user_data,
            event_source_url=self.event_source_url or default_source_url,
        )


class ConversionsResponse(BaseModel):
    success: bool
    error: str | None = None


__all__ = (
    "VerifyRequest",
    "VerifyResponse",
    "DeliveryTotalsBody",
    "ErrorBody",
    "ConversionsRequest",
    "ConversionsResponse",
)
