"""
Lift — Helpers for lifting values into lazy results.

Re-exports from combinators.lift with one local addition.
"""

from __future__ import annotations

from collections.abc import Callable, Awaitable

from kungfu import LazyCoroResult, Result

from combinators.lift import (
    pure,
    fail,
    from_result,
    catching_async,
    call_catching,
)


def from_result_async[T, E](
    fn: Callable[[], Awaitable[Result[T, E]]],
) -> LazyCoroResult[T, E]:
    """
    Wrap an async function that already returns Result.

    Each await of the returned value calls fn again, so the result can
    be awaited more than once.
    """
    return LazyCoroResult(fn)


__all__ = (
    # From combinators.lift
    "pure",
    "fail",
    "from_result",
    "catching_async",
    "call_catching",
    # Local additions
    "from_result_async",
)
