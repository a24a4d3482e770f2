"""
Shared aliases: lazy results, the injected clock and JSON payloads.
"""

from __future__ import annotations

import time
from collections.abc import Callable

from kungfu import LazyCoroResult

type Lazy[T, E] = LazyCoroResult[T, E]
"""Lazy async computation that may fail. Each await runs it again."""

type Clock = Callable[[], float]
"""Wall-clock source in epoch seconds. Injected so expiry can be tested without sleeping."""


def system_clock() -> float:
    return time.time()


# Durable storage payloads
type JSON = dict[str, JSON] | list[JSON] | str | int | float | bool | None

__all__ = ("Lazy", "Clock", "system_clock", "JSON")
