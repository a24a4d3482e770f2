"""
Audience — customer value segments used to enrich or suppress analytics.

    from checkout_engine import audience as A

    tracker = await A.AudienceTracker.open(store)
"""

from __future__ import annotations

from checkout_engine.audience._types import CustomerValue, AudienceInsights
from checkout_engine.audience._tracker import (
    EXCLUDED_KEY,
    HIGH_VALUE_KEY,
    VALUES_KEY,
    value_score,
    AudienceTracker,
)

__all__ = (
    "CustomerValue",
    "AudienceInsights",
    "EXCLUDED_KEY",
    "HIGH_VALUE_KEY",
    "VALUES_KEY",
    "value_score",
    "AudienceTracker",
)
