"""
Checkout orchestrator — turns a local cart into a placed remote order.

    idle → processing → placing_order → success | error

    orchestrator = CheckoutOrchestrator(client, verifier, store=store, batcher=batcher)
    match await orchestrator.submit(form, cart):
        case Ok(done):
            redirect(done.receipt_url)
        case Error(e):
            show(e.message, field=e.field)

processing covers the submission guard, field validation and the risk
check. placing_order covers session acquisition, cart sync and the order
mutation. Validation and risk failures have no remote side effects; a
failed placement leaves the local cart intact for resubmission, and the
next submit starts from a fresh remote session so lines are not pushed
twice. A rejected session token is dropped as soon as it is seen.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from decimal import Decimal

import structlog
from kungfu import Result, Ok, Error

from checkout_engine import commerce as Cm
from checkout_engine import events as E
from checkout_engine import risk as R
from checkout_engine._types import JSON
from checkout_engine.audience import AudienceTracker
from checkout_engine.storage import DurableStore
from checkout_engine.checkout._cart import LocalCart
from checkout_engine.checkout._guard import SubmissionGuard
from checkout_engine.checkout._messages import SUPPORT
from checkout_engine.checkout._place import place_order
from checkout_engine.checkout._receipt import (
    ShippingRates,
    customer_profile,
    order_snapshot,
    receipt_url,
)
from checkout_engine.checkout._sync import acquire_session, sync_cart
from checkout_engine.checkout._types import (
    CartLine,
    CheckoutError,
    CheckoutErrorKind,
    CheckoutForm,
    CheckoutState,
    CheckoutSuccess,
    ValidForm,
)
from checkout_engine.checkout._validate import normalize_phone, validate_form

logger = structlog.get_logger(__name__)

PROFILE_KEY = "customer_profile"
LAST_ORDER_KEY = "last_order"

type StateListener = Callable[[CheckoutState, CheckoutState], object]


@dataclass(frozen=True, slots=True)
class CheckoutOptions:
    """Tunables for one orchestrator. Defaults match production."""
    sync_batch_size: int = 3
    sync_batch_delay: float = 0.1
    verify_remote_cart: bool = True
    place_timeout: float = 10.0
    place_retries: int = 1
    shipping: ShippingRates = ShippingRates()
    currency: str = "BDT"
    receipt_path: str = "/thank-you"


class CheckoutOrchestrator:
    """One checkout session: a remote session token, a guard and a state."""

    def __init__(
        self,
        client: Cm.CommerceClient,
        verifier: R.CourierVerifier,
        *,
        store: DurableStore,
        batcher: E.EventBatcher | None = None,
        audience: AudienceTracker | None = None,
        guard: SubmissionGuard | None = None,
        session: Cm.RemoteSession | None = None,
        options: CheckoutOptions = CheckoutOptions(),
    ) -> None:
        self._client = client
        self._verifier = verifier
        self._store = store
        self._batcher = batcher
        self._audience = audience
        self.guard = guard or SubmissionGuard()
        self.session = session or Cm.RemoteSession()
        self.options = options
        self._state = CheckoutState.IDLE
        self._listeners: list[StateListener] = []
        self._live: dict[str, R.RiskVerdict] = {}
        self.last_error: CheckoutError | None = None
        self.last_success: CheckoutSuccess | None = None

    # ─── State ─────────────────────────────────────────────────────────────────

    @property
    def state(self) -> CheckoutState:
        return self._state

    def on_state_change(self, listener: StateListener) -> Callable[[], None]:
        """Subscribe to transitions. Returns an unsubscribe callable."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _transition(self, state: CheckoutState) -> None:
        previous, self._state = self._state, state
        if previous is state:
            return
        logger.debug("checkout state", previous=previous.value, state=state.value)
        for listener in list(self._listeners):
            try:
                listener(previous, state)
            except Exception:
                logger.exception("state listener failed", state=state.value)

    def reset(self) -> None:
        """Back to idle for a fresh checkout cycle; drops the held session."""
        self.session.clear()
        self.last_error = None
        self.last_success = None
        self._transition(CheckoutState.IDLE)

    # ─── Live verification ─────────────────────────────────────────────────────

    async def verify_live(self, phone: str) -> R.RiskVerdict | None:
        """
        Verdict for a phone number as it is being typed.

        Returns None until the number is a complete valid mobile number.
        Only the latest verdict is remembered, and submit() consumes it.
        """
        match normalize_phone(phone):
            case Ok(normalized):
                pass
            case Error(_):
                return None
        verdict = await self._verifier.verify(normalized)
        self._live = {normalized: verdict}
        return verdict

    # ─── Submit ────────────────────────────────────────────────────────────────

    async def submit(self, form: CheckoutForm, cart: LocalCart) -> Result[CheckoutSuccess, CheckoutError]:
        if self._state.busy:
            return Error(CheckoutError(CheckoutErrorKind.BUSY, "Your order is already being processed."))
        if self._state is CheckoutState.SUCCESS:
            return Error(CheckoutError(CheckoutErrorKind.BUSY, "This order has already been placed."))

        if self._state is CheckoutState.ERROR:
            # the remote cart of a failed attempt still holds the pushed lines
            self.session.clear()
        self._transition(CheckoutState.PROCESSING)

        try:
            outcome = await self._run(form, cart)
        except Exception as exc:
            logger.exception("checkout raised", state=self._state.value)
            outcome = Error(CheckoutError(CheckoutErrorKind.LOGICAL, SUPPORT, detail=str(exc)))

        match outcome:
            case Ok(success):
                self.last_success = success
                self.last_error = None
                self._transition(CheckoutState.SUCCESS)
                return Ok(success)
            case Error(e):
                self.last_error = e
                self._transition(CheckoutState.ERROR)
                return Error(e)

    async def _run(self, form: CheckoutForm, cart: LocalCart) -> Result[CheckoutSuccess, CheckoutError]:
        match self.guard.check():
            case Error(e):
                logger.warning("checkout rate limited", attempts=self.guard.attempts)
                return Error(e)
            case Ok(_):
                pass

        match validate_form(form):
            case Ok(valid):
                pass
            case Error(e):
                return Error(e)

        if cart.is_empty:
            return Error(CheckoutError(CheckoutErrorKind.EMPTY_CART, "Your cart is empty."))

        verdict = self._live.pop(valid.phone, None) or await self._verifier.verify(valid.phone)
        if not verdict.allowed:
            logger.info("checkout blocked", phone_tail=valid.phone[-4:], reason=verdict.reason)
            return Error(CheckoutError(CheckoutErrorKind.RISK_REJECTED, verdict.reason, field="phone"))

        lines = cart.lines
        shipping = self.options.shipping.charge(valid.zone)
        self._track(E.initiate_checkout(_items(lines), value=cart.subtotal, currency=self.options.currency, customer_id=valid.phone))

        self._transition(CheckoutState.PLACING_ORDER)

        match await acquire_session(self._client, self.session):
            case Error(e):
                return Error(self._remote_failure(e))
            case Ok(_):
                pass

        match await sync_cart(
            self._client,
            self.session,
            lines,
            batch_size=self.options.sync_batch_size,
            batch_delay=self.options.sync_batch_delay,
            verify=self.options.verify_remote_cart,
        ):
            case Error(e):
                return Error(self._remote_failure(e))
            case Ok(_):
                pass

        match await place_order(
            self._client,
            self.session,
            self._order_input(valid, shipping),
            timeout=self.options.place_timeout,
            retries=self.options.place_retries,
        ):
            case Ok(order):
                pass
            case Error(e):
                return Error(self._remote_failure(e))

        subtotal = cart.subtotal
        logger.info(
            "order placed",
            order_number=order.order_number,
            total=str(order.total),
            lines=len(lines),
        )
        await self._after_success(valid, lines, order, subtotal, shipping)
        cart.clear()

        return Ok(
            CheckoutSuccess(
                order_number=order.order_number,
                order_id=order.id,
                subtotal=subtotal,
                shipping=shipping,
                total=order.total,
                receipt_url=receipt_url(
                    order.order_number,
                    valid,
                    order.total,
                    shipping,
                    len(lines),
                    path=self.options.receipt_path,
                ),
            )
        )

    # ─── Helpers ───────────────────────────────────────────────────────────────

    def _order_input(self, form: ValidForm, shipping: Decimal) -> Cm.CheckoutInput:
        address = Cm.Address(
            first_name=form.first_name,
            last_name=form.last_name,
            address1=form.address,
            city=form.zone.city,
            phone=form.phone,
            email=form.email,
        )
        return Cm.CheckoutInput(
            billing=address,
            shipping=address,
            payment_method=form.payment.value,
            shipping_method=form.zone.shipping_method,
            meta={
                "delivery_zone": form.zone.value,
                "delivery_charge": str(shipping),
            },
            customer_note=form.note,
        )

    async def _after_success(
        self,
        form: ValidForm,
        lines: list[CartLine],
        order: Cm.PlacedOrder,
        subtotal: Decimal,
        shipping: Decimal,
    ) -> None:
        """Best-effort bookkeeping; nothing here can fail the placed order."""
        await self._remember(PROFILE_KEY, customer_profile(form))
        await self._remember(LAST_ORDER_KEY, order_snapshot(order.order_number, lines, shipping))

        if self._audience is not None:
            try:
                await self._audience.update_customer_value(form.phone, float(subtotal))
            except Exception:
                logger.exception("customer value update failed", order_number=order.order_number)

        self._track(
            E.purchase(
                order.order_number,
                _items(lines),
                value=subtotal,
                currency=self.options.currency,
                customer_id=form.phone,
            ),
            E.Priority.HIGH,
        )

    def _remote_failure(self, error: CheckoutError) -> CheckoutError:
        if error.kind is CheckoutErrorKind.SESSION:
            logger.info("remote session rejected", detail=error.detail)
            self.session.clear()
        return error

    async def _remember(self, key: str, value: JSON) -> None:
        try:
            match await self._store.set(key, value):
                case Ok(_):
                    pass
                case Error(e):
                    logger.warning("checkout record not saved", key=key, error=e.message)
        except Exception:
            logger.exception("checkout record not saved", key=key)

    def _track(self, event: E.TrackingEvent, priority: E.Priority = E.Priority.MEDIUM) -> None:
        if self._batcher is None:
            return
        try:
            self._batcher.add(event, priority)
        except Exception:
            logger.exception("tracking event dropped", event_name=event.name)


def _items(lines: list[CartLine]) -> list[E.LineItem]:
    return [E.LineItem(line.product_id, line.quantity, line.line_total) for line in lines]


__all__ = (
    "PROFILE_KEY",
    "LAST_ORDER_KEY",
    "StateListener",
    "CheckoutOptions",
    "CheckoutOrchestrator",
)
