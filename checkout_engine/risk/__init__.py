"""
Risk — customer verification from courier delivery history.

    from checkout_engine import risk as Rk

    verifier = Rk.CourierVerifier(http, url=settings.courier_url, api_key=key)
    verdict = await verifier.verify(phone)
"""

from __future__ import annotations

from checkout_engine.risk._types import (
    DeliveryTotals,
    NO_HISTORY,
    VerdictSource,
    RiskVerdict,
    OnUnavailable,
    RiskErrorKind,
    RiskError,
)
from checkout_engine.risk._rules import summarize, success_rate, decide
from checkout_engine.risk._service import CourierVerifier, DEFAULT_BYPASS

__all__ = (
    "DeliveryTotals",
    "NO_HISTORY",
    "VerdictSource",
    "RiskVerdict",
    "OnUnavailable",
    "RiskErrorKind",
    "RiskError",
    "summarize",
    "success_rate",
    "decide",
    "CourierVerifier",
    "DEFAULT_BYPASS",
)
