"""
Courier verification — risk verdicts from delivery history.

    verifier = CourierVerifier(http, url=..., api_key=...)
    verdict = await verifier.verify("01711111111")

Bypass numbers and unavailable-API verdicts are never cached; computed
verdicts are kept in a TTL tier keyed by phone.
"""

from __future__ import annotations

from collections.abc import Sequence
from datetime import timedelta

import httpx
import structlog
from kungfu import LazyCoroResult, Result, Ok, Error

from checkout_engine import cache as C
from checkout_engine import lift as L
from checkout_engine.risk._rules import (
    VERIFIED_ACCOUNT,
    UNAVAILABLE_ALLOWED,
    UNAVAILABLE_BLOCKED,
    decide,
    summarize,
)
from checkout_engine.risk._types import (
    NO_HISTORY,
    OnUnavailable,
    RiskError,
    RiskErrorKind,
    RiskVerdict,
    VerdictSource,
)

logger = structlog.get_logger(__name__)

DEFAULT_BYPASS = ("6644575", "0000000", "1111111")


def _phone_key(phone: str) -> str:
    return f"risk:{phone}"


class CourierVerifier:
    """Decides whether a phone number may place an order."""

    def __init__(
        self,
        http: httpx.AsyncClient,
        *,
        url: str,
        api_key: str,
        bypass_suffixes: Sequence[str] = DEFAULT_BYPASS,
        on_unavailable: OnUnavailable = OnUnavailable.ALLOW,
        tier: C.TTLTier[RiskVerdict] | None = None,
        timeout: float = 10.0,
    ) -> None:
        self._http = http
        self._url = url
        self._api_key = api_key
        self._bypass = tuple(bypass_suffixes)
        self._on_unavailable = on_unavailable
        self._timeout = timeout
        self.tier: C.TTLTier[RiskVerdict] = tier or C.TTLTier(
            ttl=timedelta(minutes=5), name="risk"
        )
        self._verdicts = (
            C.cache(_phone_key, self.lookup)
            .tier(self.tier)
            .store_if(lambda verdict: verdict.cacheable)
            .build()
        )

    def bypassed(self, phone: str) -> bool:
        return any(phone.endswith(suffix) for suffix in self._bypass)

    def lookup(self, phone: str) -> LazyCoroResult[RiskVerdict, RiskError]:
        """Query the delivery-history API and compute a verdict, uncached."""

        async def fetch() -> Result[RiskVerdict, RiskError]:
            try:
                response = await self._http.get(
                    self._url,
                    params={"apiKey": self._api_key, "searchTerm": phone},
                    timeout=self._timeout,
                )
            except httpx.HTTPError as e:
                return Error(RiskError(RiskErrorKind.TRANSPORT, str(e) or type(e).__name__))

            if response.status_code != 200:
                return Error(RiskError(RiskErrorKind.BAD_STATUS, f"HTTP {response.status_code}"))

            try:
                data = response.json()
            except ValueError as e:
                return Error(RiskError(RiskErrorKind.BAD_PAYLOAD, f"invalid JSON: {e}"))

            summaries = data.get("Summaries") if isinstance(data, dict) else None
            if not isinstance(summaries, dict):
                return Error(RiskError(RiskErrorKind.BAD_PAYLOAD, "missing Summaries map"))

            return Ok(decide(summarize(summaries)))

        return L.from_result_async(fetch)

    async def verify(self, phone: str) -> RiskVerdict:
        if self.bypassed(phone):
            return RiskVerdict(
                True, VERIFIED_ACCOUNT, NO_HISTORY, 100.0, VerdictSource.BYPASS
            )

        match await self._verdicts.get(phone):
            case Ok(cached):
                if not cached.value.allowed:
                    logger.info("risk rejected", phone_tail=phone[-4:], reason=cached.value.reason)
                return cached.value
            case Error(e):
                logger.warning(
                    "risk verification unavailable",
                    kind=e.kind.name,
                    error=e.message,
                    policy=self._on_unavailable.name,
                )
                return self._unavailable()

    def _unavailable(self) -> RiskVerdict:
        if self._on_unavailable is OnUnavailable.ALLOW:
            return RiskVerdict(
                True, UNAVAILABLE_ALLOWED, NO_HISTORY, 100.0, VerdictSource.UNAVAILABLE
            )
        return RiskVerdict(False, UNAVAILABLE_BLOCKED, None, None, VerdictSource.UNAVAILABLE)

    async def forget(self, phone: str) -> bool:
        """Drop a cached verdict."""
        match await self._verdicts.invalidate(phone):
            case Ok(deleted):
                return deleted
            case Error(_):
                return False


__all__ = ("CourierVerifier", "DEFAULT_BYPASS")
