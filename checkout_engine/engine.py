"""
Engine — every component built from Settings, with one lifecycle.

    engine = await build_engine(Settings())
    engine.start()
    checkout = engine.new_checkout()
    ...
    await engine.stop()

Nothing in the package is a module-level singleton; whoever owns the
Engine owns the caches, limiters, queue and stores it holds.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import timedelta
from decimal import Decimal
from typing import Any

import httpx
import structlog
from sqlalchemy.ext.asyncio import AsyncEngine

from checkout_engine import cache as C
from checkout_engine import checkout as Co
from checkout_engine import commerce as Cm
from checkout_engine import events as E
from checkout_engine import ratelimit as RL
from checkout_engine import risk as R
from checkout_engine import storage as St
from checkout_engine._periodic import Periodic
from checkout_engine.audience import AudienceTracker
from checkout_engine.config import Settings
from checkout_engine.log import configure_logging

logger = structlog.get_logger(__name__)


def _user_data(event: E.TrackingEvent) -> E.UserData:
    return E.UserData(phone=event.customer_id or "")


@dataclass(slots=True)
class Engine:
    settings: Settings
    http: httpx.AsyncClient
    commerce: Cm.CommerceClient
    verifier: R.CourierVerifier
    category_cache: C.TTLTier[Any]
    product_cache: C.TTLTier[Any]
    graphql_limiter: RL.RateLimiter
    category_limiter: RL.RateLimiter
    verify_limiter: RL.RateLimiter
    store: St.FallbackStore
    audience: AudienceTracker
    pixel: E.PixelLog
    conversions: E.ConversionsChannel
    batcher: E.EventBatcher
    database: AsyncEngine | None = None
    owns_http: bool = True
    background: list[Periodic] = field(default_factory=list)
    started: bool = False

    def checkout_options(self) -> Co.CheckoutOptions:
        s = self.settings
        return Co.CheckoutOptions(
            sync_batch_size=s.sync_batch_size,
            sync_batch_delay=s.sync_batch_delay,
            place_timeout=s.place_timeout,
            place_retries=s.place_retries,
            shipping=Co.ShippingRates(
                inside=Decimal(str(s.shipping_inside)),
                outside=Decimal(str(s.shipping_outside)),
            ),
            currency=s.currency,
            receipt_path=s.receipt_path,
        )

    def new_checkout(self, session: Cm.RemoteSession | None = None) -> Co.CheckoutOrchestrator:
        """Orchestrator for one customer session, sharing the engine's components."""
        return Co.CheckoutOrchestrator(
            self.commerce,
            self.verifier,
            store=self.store,
            batcher=self.batcher,
            audience=self.audience,
            guard=Co.SubmissionGuard(
                self.settings.submission_limit,
                timedelta(seconds=self.settings.submission_window),
            ),
            session=session,
            options=self.checkout_options(),
        )

    def start(self) -> None:
        if self.started:
            return
        for task in self.background:
            task.start()
        self.batcher.start()
        self.started = True
        logger.info("engine started", background=[t.name for t in self.background])

    async def stop(self) -> None:
        """Stop timers, flush the event queue and release connections."""
        for task in self.background:
            await task.stop()
        await self.batcher.stop()
        if self.owns_http:
            await self.http.aclose()
        if self.database is not None:
            await self.database.dispose()
        self.started = False
        logger.info("engine stopped")


async def build_engine(settings: Settings | None = None, *, http: httpx.AsyncClient | None = None) -> Engine:
    """
    Construct every component from settings.

    Pass `http` to share a client (or a mock transport in tests); the
    engine will not close a client it did not create.
    """
    settings = settings or Settings()
    configure_logging(settings.log_level, json=settings.log_json)

    owns_http = http is None
    client = http or httpx.AsyncClient(timeout=settings.commerce_timeout)

    risk_tier: C.TTLTier[R.RiskVerdict] = C.TTLTier(
        ttl=timedelta(seconds=settings.risk_ttl),
        max_size=settings.cache_max_size,
        name="risk",
    )
    verifier = R.CourierVerifier(
        client,
        url=settings.courier_url,
        api_key=settings.courier_api_key.get_secret_value(),
        bypass_suffixes=settings.risk_bypass_suffixes,
        on_unavailable=R.OnUnavailable.ALLOW if settings.risk_fail_open else R.OnUnavailable.BLOCK,
        tier=risk_tier,
        timeout=settings.courier_timeout,
    )

    window = timedelta(seconds=settings.rate_window)
    graphql = RL.graphql_limiter(settings.graphql_rate_limit, window)
    category = RL.category_limiter(settings.category_rate_limit, window)
    verify = RL.verify_limiter(settings.verify_rate_limit, window)

    backends: list[St.DurableStore] = [St.JsonFileStore(settings.state_dir)]
    database: AsyncEngine | None = None
    if settings.database_url:
        sessions, database = await St.create_kv_database(settings.database_url)
        backends.append(St.SQLAlchemyStore(sessions))
    store = St.FallbackStore(backends)

    audience = await AudienceTracker.open(store)

    pixel = E.PixelLog()
    conversions = E.ConversionsChannel(
        client,
        pixel_id=settings.pixel_id,
        access_token=settings.conversions_token.get_secret_value(),
        api_base=settings.graph_api_base,
        api_version=settings.graph_api_version,
    )
    batcher = E.EventBatcher(
        pixel,
        conversions if conversions.configured else None,
        audience=audience,
        user_data=_user_data,
        event_source_url=settings.event_source_url,
        batch_size=settings.batch_size,
        flush_interval=settings.batch_flush_interval,
        max_queue=settings.batch_max_queue,
    )

    category_cache: C.TTLTier[Any] = C.TTLTier(
        ttl=timedelta(seconds=settings.cache_ttl),
        max_size=settings.cache_max_size,
        name="category",
    )
    product_cache: C.TTLTier[Any] = C.product_cache()
    sweep = timedelta(seconds=settings.cache_sweep_interval)

    return Engine(
        settings=settings,
        http=client,
        commerce=Cm.CommerceClient(client, settings.commerce_url, timeout=settings.commerce_timeout),
        verifier=verifier,
        category_cache=category_cache,
        product_cache=product_cache,
        graphql_limiter=graphql,
        category_limiter=category,
        verify_limiter=verify,
        store=store,
        audience=audience,
        pixel=pixel,
        conversions=conversions,
        batcher=batcher,
        database=database,
        owns_http=owns_http,
        background=[
            C.sweeper(risk_tier, sweep),
            C.sweeper(category_cache, sweep),
            C.sweeper(product_cache, sweep),
            RL.cleaner(graphql, category, verify, interval=timedelta(seconds=settings.rate_cleanup_interval)),
        ],
    )


__all__ = ("Engine", "build_engine")
