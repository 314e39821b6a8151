"""Line items for non-solar (service) budgets."""
from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Iterable

from ..errors import InvalidInputError


@dataclass(frozen=True)
class LineItem:
    description: str
    quantity: float
    unit_price: float
    discount_pct: float = 0.0
    tax_pct: float = 0.0
    unit: str = "un"

    @property
    def gross(self) -> float:
        return self.quantity * self.unit_price

    @property
    def total_price(self) -> float:
        """(quantity * unit price - discount) + tax, both as % of the running value."""
        value = self.gross
        value -= value * (self.discount_pct / 100)
        value += value * (self.tax_pct / 100)
        return value


def _check(index: int, name: str, value: float) -> None:
    field = f"items[{index}].{name}"
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise InvalidInputError(field, "must be a number", value)
    if not math.isfinite(value):
        raise InvalidInputError(field, "must be finite", value)
    if value < 0:
        raise InvalidInputError(field, "must be zero or greater", value)


def service_total(items: Iterable[LineItem]) -> float:
    """Sum of quantity * unit price over all items."""
    total = 0.0
    for i, item in enumerate(items):
        _check(i, "quantity", item.quantity)
        _check(i, "unit_price", item.unit_price)
        total += item.quantity * item.unit_price
    return total
