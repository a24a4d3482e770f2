"""
Audience tracker — customer value, exclusions and high-value segments.

State lives in memory and is written through to a DurableStore after every
change. Use AudienceTracker.open() to load previously saved state.
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import datetime, timezone
from typing import Any

import structlog
from kungfu import Ok, Error

from checkout_engine.audience._types import AudienceInsights, CustomerValue
from checkout_engine.storage import DurableStore

logger = structlog.get_logger(__name__)

EXCLUDED_KEY = "facebook_excluded_users"
HIGH_VALUE_KEY = "facebook_high_value_users"
VALUES_KEY = "facebook_customer_values"

type Now = Callable[[], datetime]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def value_score(value: CustomerValue | None, now: datetime) -> float:
    """
    0–100 score:

        orders × 5            (≤ 30)
        total spent / 100     (≤ 40)
        average order / 50    (≤ 20)
        10 − days since last  (≥ 0)
    """
    if value is None:
        return 0.0
    days = int((now - value.last_order_date).total_seconds() // 86400)
    score = (
        min(value.order_count * 5, 30)
        + min(value.total_spent / 100, 40)
        + min(value.average_order_value / 50, 20)
        + max(0, 10 - days)
    )
    return min(score, 100.0)


class AudienceTracker:
    """
    Example:
        tracker = await AudienceTracker.open(store)
        await tracker.update_customer_value("01711111111", 500)
        data = tracker.enhanced_event_data(payload, "01711111111")
        if data is None:
            ...  # excluded, suppress the event
    """

    def __init__(
        self,
        store: DurableStore,
        *,
        high_value_threshold: float | None = 5000.0,
        now: Now = _utcnow,
    ) -> None:
        self._store = store
        self._threshold = high_value_threshold
        self._now = now
        self._excluded: set[str] = set()
        self._high_value: set[str] = set()
        self._values: dict[str, CustomerValue] = {}

    @classmethod
    async def open(cls, store: DurableStore, **kwargs: Any) -> AudienceTracker:
        tracker = cls(store, **kwargs)
        await tracker.load()
        return tracker

    # ─── Persistence ───────────────────────────────────────────────────────────

    async def load(self) -> None:
        match await self._store.get(EXCLUDED_KEY):
            case Ok(list() as ids):
                self._excluded = {str(i) for i in ids}
            case Ok(_):
                pass
            case Error(e):
                logger.error("audience load failed", key=EXCLUDED_KEY, error=e.message)

        match await self._store.get(HIGH_VALUE_KEY):
            case Ok(list() as ids):
                self._high_value = {str(i) for i in ids}
            case Ok(_):
                pass
            case Error(e):
                logger.error("audience load failed", key=HIGH_VALUE_KEY, error=e.message)

        match await self._store.get(VALUES_KEY):
            case Ok(dict() as raw):
                values = {}
                for cid, data in raw.items():
                    try:
                        values[cid] = CustomerValue.from_json(data)
                    except (KeyError, TypeError, ValueError) as e:
                        logger.error("customer value unreadable", customer_id=cid, error=str(e))
                self._values = values
            case Ok(_):
                pass
            case Error(e):
                logger.error("audience load failed", key=VALUES_KEY, error=e.message)

    async def _save(self, key: str, value: Any) -> None:
        match await self._store.set(key, value):
            case Ok(_):
                pass
            case Error(e):
                logger.error("audience save failed", key=key, error=e.message)

    async def _save_excluded(self) -> None:
        await self._save(EXCLUDED_KEY, sorted(self._excluded))

    async def _save_high_value(self) -> None:
        await self._save(HIGH_VALUE_KEY, sorted(self._high_value))

    async def _save_values(self) -> None:
        await self._save(VALUES_KEY, {cid: v.to_json() for cid, v in self._values.items()})

    # ─── Queries ───────────────────────────────────────────────────────────────

    def is_excluded(self, customer_id: str) -> bool:
        return customer_id in self._excluded

    def is_high_value(self, customer_id: str) -> bool:
        return customer_id in self._high_value

    def customer_value(self, customer_id: str) -> CustomerValue | None:
        return self._values.get(customer_id)

    def enhanced_event_data(
        self, base: dict[str, Any], customer_id: str
    ) -> dict[str, Any] | None:
        """Annotate base with value data, or None when the customer is excluded."""
        if self.is_excluded(customer_id):
            return None

        value = self._values.get(customer_id)
        return {
            **base,
            "customer_lifetime_value": value.lifetime_value if value else 0,
            "customer_order_count": value.order_count if value else 0,
            "customer_average_order_value": value.average_order_value if value else 0,
            "is_high_value_customer": self.is_high_value(customer_id),
            "exclude_from_audiences": False,
            "value_optimization_score": value_score(value, self._now()),
        }

    def insights(self, top: int = 10) -> AudienceInsights:
        values = list(self._values.values())
        average = sum(v.lifetime_value for v in values) / len(values) if values else 0.0
        ranked = sorted(values, key=lambda v: v.lifetime_value, reverse=True)
        return AudienceInsights(
            total_excluded=len(self._excluded),
            total_high_value=len(self._high_value),
            total_customers=len(values),
            average_customer_value=average,
            top_customers=tuple(ranked[:top]),
        )

    # ─── Mutations ─────────────────────────────────────────────────────────────

    async def update_customer_value(self, customer_id: str, order_value: float) -> CustomerValue:
        now = self._now()
        existing = self._values.get(customer_id)
        updated = (
            existing.add_order(order_value, now)
            if existing
            else CustomerValue.first(customer_id, order_value, now)
        )
        self._values[customer_id] = updated
        await self._save_values()

        if (
            self._threshold is not None
            and updated.lifetime_value >= self._threshold
            and customer_id not in self._high_value
        ):
            self._high_value.add(customer_id)
            await self._save_high_value()
            logger.info("customer became high value", customer_id=customer_id, clv=updated.lifetime_value)

        return updated

    async def add_to_exclusions(self, customer_id: str, reason: str = "converted") -> None:
        self._excluded.add(customer_id)
        await self._save_excluded()
        logger.info("customer excluded", customer_id=customer_id, reason=reason)

    async def remove_from_exclusions(self, customer_id: str) -> None:
        self._excluded.discard(customer_id)
        await self._save_excluded()
        logger.info("customer exclusion removed", customer_id=customer_id)

    async def add_to_high_value(self, customer_id: str, value: CustomerValue) -> None:
        self._high_value.add(customer_id)
        self._values[customer_id] = value
        await self._save_high_value()
        await self._save_values()
        logger.info("customer marked high value", customer_id=customer_id, clv=value.lifetime_value)

    async def clear_all(self) -> None:
        self._excluded.clear()
        self._high_value.clear()
        self._values.clear()
        await self._save_excluded()
        await self._save_high_value()
        await self._save_values()
        logger.info("audience data cleared")


__all__ = (
    "EXCLUDED_KEY",
    "HIGH_VALUE_KEY",
    "VALUES_KEY",
    "value_score",
    "AudienceTracker",
)
