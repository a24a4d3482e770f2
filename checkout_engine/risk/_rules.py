"""
Risk rules — courier summary normalization and tiered decisions.

Couriers report the same counts under different names, so each count is
read from the first alias that holds a non-zero number.
"""

from __future__ import annotations

from collections.abc import Mapping

from checkout_engine.risk._types import DeliveryTotals, RiskVerdict

TOTAL_KEYS = ("Total Parcels", "Total Delivery")
DELIVERED_KEYS = ("Delivered Parcels", "Successful Delivery")
CANCELED_KEYS = ("Canceled Parcels", "Canceled Delivery")

NEW_CUSTOMER = "New customer - Welcome!"
VERIFIED_ACCOUNT = "Verified account"
UNAVAILABLE_ALLOWED = "Verification unavailable - Order allowed"
UNAVAILABLE_BLOCKED = "Unable to verify order history. Please contact support."


def _count(stats: Mapping[str, object], keys: tuple[str, ...]) -> int:
    for key in keys:
        raw = stats.get(key)
        if isinstance(raw, bool):
            continue
        if isinstance(raw, (int, float)) and raw:
            return int(raw)
        if isinstance(raw, str):
            try:
                value = int(float(raw))
            except ValueError:
                continue
            if value:
                return value
    return 0


def summarize(summaries: Mapping[str, object]) -> DeliveryTotals:
    """Sum courier-name → stats into one DeliveryTotals."""
    totals = DeliveryTotals()
    for stats in summaries.values():
        if not isinstance(stats, Mapping):
            continue
        totals += DeliveryTotals(
            _count(stats, TOTAL_KEYS),
            _count(stats, DELIVERED_KEYS),
            _count(stats, CANCELED_KEYS),
        )
    return totals


def success_rate(totals: DeliveryTotals) -> float:
    if totals.total_parcels == 0:
        return 100.0
    return totals.total_delivered / totals.total_parcels * 100


def decide(totals: DeliveryTotals) -> RiskVerdict:
    """
    Apply the tiered policy, first match wins:

        no parcels      → allow
        1–3 parcels     → allow iff success rate ≥ 30%
        4+ parcels      → allow iff success rate ≥ 50%
    """
    rate = success_rate(totals)
    parcels = totals.total_parcels

    if parcels == 0:
        return RiskVerdict(True, NEW_CUSTOMER, totals, rate)

    threshold = 30 if parcels <= 3 else 50
    if rate >= threshold:
        return RiskVerdict(True, f"Verified customer - Success rate: {rate:.1f}%", totals, rate)

    if parcels <= 3:
        reason = (
            f"Your success rate is {rate:.1f}%. We require at least 30% for customers "
            "with 1-3 orders. Please contact support if you believe this is an error."
        )
    else:
        reason = (
            f"Your success rate is {rate:.1f}%. We require at least 50% for customers "
            "with 4+ orders. Due to repeated order cancellations, we cannot process "
            "your order at this time."
        )
    return RiskVerdict(False, reason, totals, rate)


__all__ = (
    "TOTAL_KEYS",
    "DELIVERED_KEYS",
    "CANCELED_KEYS",
    "NEW_CUSTOMER",
    "VERIFIED_ACCOUNT",
    "UNAVAILABLE_ALLOWED",
    "UNAVAILABLE_BLOCKED",
    "summarize",
    "success_rate",
    "decide",
)
