"""
Order placement — one mutation under a timeout, retried on timeout only.
"""

from __future__ import annotations

import asyncio

import structlog
from kungfu import Result, Ok, Error

from checkout_engine import commerce as Cm
from checkout_engine.checkout._messages import TIMEOUT, from_commerce, message_for
from checkout_engine.checkout._types import CheckoutError, CheckoutErrorKind

logger = structlog.get_logger(__name__)

PLACEHOLDER_ORDER_NUMBERS = frozenset({"", "0", "n/a", "na", "null", "none", "undefined", "pending"})


def validate_order(order: Cm.PlacedOrder) -> Result[Cm.PlacedOrder, CheckoutError]:
    """The backend can answer 200 with an order that was never really created."""
    if order.order_number.strip().lower() in PLACEHOLDER_ORDER_NUMBERS:
        detail = f"invalid order number {order.order_number!r}"
    elif order.total <= 0:
        detail = f"invalid order total {order.total}"
    else:
        return Ok(order)
    logger.error("order placement returned incomplete order", detail=detail, order_id=order.id)
    return Error(CheckoutError(CheckoutErrorKind.LOGICAL, message_for("order failed"), detail=detail))


async def place_order(
    client: Cm.CommerceClient,
    session: Cm.RemoteSession,
    order: Cm.CheckoutInput,
    *,
    timeout: float = 10.0,
    retries: int = 1,
) -> Result[Cm.PlacedOrder, CheckoutError]:
    """
    Submit the order with the held token.

    A timeout, ours or the transport's, is retried up to `retries` more
    times with the same token. Any other failure is returned at once.
    """
    attempts = 1 + max(retries, 0)
    last = CheckoutError(CheckoutErrorKind.TIMEOUT, TIMEOUT)

    async def submit() -> Result[Cm.Reply[Cm.PlacedOrder], Cm.CommerceError]:
        return await client.place_order(order, session=session.token)

    for attempt in range(1, attempts + 1):
        try:
            result = await asyncio.wait_for(submit(), timeout=timeout)
        except TimeoutError:
            last = CheckoutError(
                CheckoutErrorKind.TIMEOUT, TIMEOUT, detail=f"no response in {timeout}s"
            )
            logger.warning("order placement timed out", attempt=attempt, of=attempts)
            continue

        match result:
            case Ok(reply):
                session.adopt(reply.session)
                return validate_order(reply.data)
            case Error(e) if e.kind is Cm.CommerceErrorKind.TIMEOUT:
                last = from_commerce(e)
                logger.warning("order placement timed out", attempt=attempt, of=attempts, error=e.message)
            case Error(e):
                logger.error("order placement failed", kind=e.kind.name, error=e.message)
                return Error(from_commerce(e))

    return Error(last)


__all__ = ("PLACEHOLDER_ORDER_NUMBERS", "validate_order", "place_order")
