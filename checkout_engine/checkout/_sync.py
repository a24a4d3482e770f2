"""
Cart sync — push local lines into the remote session cart.

The remote API can only place an order from the session cart, so every
local line is added there first. Lines go out in fixed-size concurrent
batches; batches run in order with a short pause between them. A token
returned by any successful push supersedes the held one.
"""

from __future__ import annotations

import asyncio
from collections.abc import Sequence

import structlog
from combinators import parallel
from kungfu import Result, Ok, Error

from checkout_engine import commerce as Cm
from checkout_engine.checkout._messages import from_commerce
from checkout_engine.checkout._types import CartLine, CheckoutError, CheckoutErrorKind

logger = structlog.get_logger(__name__)


def chunked[T](items: Sequence[T], size: int) -> list[Sequence[T]]:
    if size <= 0:
        raise ValueError("batch size must be positive")
    return [items[i : i + size] for i in range(0, len(items), size)]


async def acquire_session(
    client: Cm.CommerceClient,
    session: Cm.RemoteSession,
) -> Result[str | None, CheckoutError]:
    """Issue a no-op query to obtain a token when none is held."""
    if session.token:
        return Ok(session.token)

    match await client.acquire_session():
        case Ok(reply):
            session.adopt(reply.session)
            logger.debug("session acquired", has_token=session.token is not None)
            return Ok(session.token)
        case Error(e):
            return Error(from_commerce(e, CheckoutErrorKind.SESSION))


async def sync_cart(
    client: Cm.CommerceClient,
    session: Cm.RemoteSession,
    lines: Sequence[CartLine],
    *,
    batch_size: int = 3,
    batch_delay: float = 0.1,
    verify: bool = True,
) -> Result[int, CheckoutError]:
    """
    Push every line; returns the number of lines pushed.

    A failing batch aborts the sync. A failing verification read only logs,
    order placement is the authoritative check.
    """
    batches = chunked(lines, batch_size)

    for index, batch in enumerate(batches):
        if index:
            await asyncio.sleep(batch_delay)

        token = session.token
        pushed = await parallel(
            *[
                client.add_to_cart(
                    line.product_id,
                    line.quantity,
                    variation_id=line.variation_id,
                    session=token,
                )
                for line in batch
            ]
        )

        match pushed:
            case Ok(replies):
                for reply in replies:
                    if session.adopt(reply.session):
                        logger.debug("session rotated", batch=index)
            case Error(e):
                logger.warning("cart sync failed", batch=index, kind=e.kind.name, error=e.message)
                return Error(from_commerce(e, CheckoutErrorKind.CART))

    if verify:
        await _verify(client, session)

    return Ok(len(lines))


async def _verify(client: Cm.CommerceClient, session: Cm.RemoteSession) -> None:
    match await client.read_cart(session.token):
        case Ok(reply):
            session.adopt(reply.session)
            if reply.data.is_empty:
                logger.warning("remote cart empty after sync")
        case Error(e):
            logger.warning("cart verification failed", kind=e.kind.name, error=e.message)


__all__ = ("chunked", "acquire_session", "sync_cart")
