"""
Local cart — the lines the customer sees, keyed by line key.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from dataclasses import replace
from decimal import Decimal

from checkout_engine.checkout._types import CartLine


class LocalCart:
    def __init__(self, lines: Iterable[CartLine] = ()) -> None:
        self._lines: dict[str, CartLine] = {}
        for line in lines:
            self.add(line)

    def add(self, line: CartLine) -> CartLine:
        """Add a line, merging quantity into an existing line with the same key."""
        existing = self._lines.get(line.key)
        if existing is not None:
            quantity = existing.quantity + line.quantity
            line = replace(
                existing,
                quantity=quantity,
                line_total=existing.unit_price * quantity,
            )
        self._lines[line.key] = line
        return line

    def update_quantity(self, key: str, quantity: int) -> CartLine | None:
        """Set a line's quantity; zero or less removes it."""
        line = self._lines.get(key)
        if line is None:
            return None
        if quantity <= 0:
            self.remove(key)
            return None
        updated = replace(line, quantity=quantity, line_total=line.unit_price * quantity)
        self._lines[key] = updated
        return updated

    def remove(self, key: str) -> bool:
        return self._lines.pop(key, None) is not None

    def clear(self) -> None:
        self._lines.clear()

    @property
    def lines(self) -> list[CartLine]:
        return list(self._lines.values())

    @property
    def is_empty(self) -> bool:
        return not self._lines

    @property
    def subtotal(self) -> Decimal:
        return sum((line.line_total for line in self._lines.values()), Decimal(0))

    @property
    def item_count(self) -> int:
        return sum(line.quantity for line in self._lines.values())

    def __len__(self) -> int:
        return len(self._lines)

    def __iter__(self) -> Iterator[CartLine]:
        return iter(list(self._lines.values()))


__all__ = ("LocalCart",)
