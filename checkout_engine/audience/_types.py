"""
Audience types.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any


@dataclass(frozen=True, slots=True)
class CustomerValue:
    """Accumulated purchase history of one customer."""
    customer_id: str
    total_spent: float
    order_count: int
    last_order_date: datetime
    average_order_value: float
    lifetime_value: float

    def add_order(self, order_value: float, at: datetime) -> CustomerValue:
        spent = self.total_spent + order_value
        count = self.order_count + 1
        return CustomerValue(
            customer_id=self.customer_id,
            total_spent=spent,
            order_count=count,
            last_order_date=at,
            average_order_value=spent / count,
            lifetime_value=self.lifetime_value + order_value,
        )

    @classmethod
    def first(cls, customer_id: str, order_value: float, at: datetime) -> CustomerValue:
        return cls(customer_id, order_value, 1, at, order_value, order_value)

    def to_json(self) -> dict[str, Any]:
        return {
            "customerId": self.customer_id,
            "totalSpent": self.total_spent,
            "orderCount": self.order_count,
            "lastOrderDate": self.last_order_date.isoformat(),
            "averageOrderValue": self.average_order_value,
            "customerLifetimeValue": self.lifetime_value,
        }

    @classmethod
    def from_json(cls, data: dict[str, Any]) -> CustomerValue:
        last = datetime.fromisoformat(str(data["lastOrderDate"]).replace("Z", "+00:00"))
        if last.tzinfo is None:
            last = last.replace(tzinfo=timezone.utc)
        return cls(
            customer_id=str(data["customerId"]),
            total_spent=float(data.get("totalSpent", 0)),
            order_count=int(data.get("orderCount", 0)),
            last_order_date=last,
            average_order_value=float(data.get("averageOrderValue", 0)),
            lifetime_value=float(data.get("customerLifetimeValue", 0)),
        )


@dataclass(frozen=True, slots=True)
class AudienceInsights:
    total_excluded: int
    total_high_value: int
    total_customers: int
    average_customer_value: float
    top_customers: tuple[CustomerValue, ...]


__all__ = ("CustomerValue", "AudienceInsights")
