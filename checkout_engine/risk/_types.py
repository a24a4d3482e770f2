"""
Risk types.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, auto

# ═══════════════════════════════════════════════════════════════════════════════
# Delivery History
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class DeliveryTotals:
    """Parcel counts summed across every courier."""
    total_parcels: int = 0
    total_delivered: int = 0
    total_canceled: int = 0

    def __add__(self, other: DeliveryTotals) -> DeliveryTotals:
        return DeliveryTotals(
            self.total_parcels + other.total_parcels,
            self.total_delivered + other.total_delivered,
            self.total_canceled + other.total_canceled,
        )


NO_HISTORY = DeliveryTotals()

# ═══════════════════════════════════════════════════════════════════════════════
# Verdict
# ═══════════════════════════════════════════════════════════════════════════════


class VerdictSource(Enum):
    """Where a verdict came from. Only COMPUTED verdicts are cached."""
    BYPASS = auto()
    COMPUTED = auto()
    UNAVAILABLE = auto()


@dataclass(frozen=True, slots=True)
class RiskVerdict:
    """Accept/reject decision for one normalized phone number."""
    allowed: bool
    reason: str
    totals: DeliveryTotals | None = None
    success_rate: float | None = None
    source: VerdictSource = VerdictSource.COMPUTED

    @property
    def cacheable(self) -> bool:
        return self.source is VerdictSource.COMPUTED


# ═══════════════════════════════════════════════════════════════════════════════
# Policy & Errors
# ═══════════════════════════════════════════════════════════════════════════════


class OnUnavailable(Enum):
    """What to do when the delivery-history API cannot answer."""
    ALLOW = auto()
    BLOCK = auto()


class RiskErrorKind(Enum):
    """Ways a delivery-history lookup can fail."""
    TRANSPORT = auto()
    BAD_STATUS = auto()
    BAD_PAYLOAD = auto()


@dataclass(frozen=True, slots=True)
class RiskError:
    """Delivery-history lookup error."""
    kind: RiskErrorKind
    message: str


__all__ = (
    "DeliveryTotals",
    "NO_HISTORY",
    "VerdictSource",
    "RiskVerdict",
    "OnUnavailable",
    "RiskErrorKind",
    "RiskError",
)
