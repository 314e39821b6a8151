"""Long-horizon economy projection with compounding tariff inflation.

Production is held constant across years (no panel degradation); only the
tariff grows.  Row ``n`` uses ``tariff * (1 + inflation) ** n``.
"""
from __future__ import annotations

import math
from dataclasses import asdict, dataclass

from ..constants import PROJECTION_YEARS, TARIFF_INFLATION_RATE
from ..errors import InvalidInputError


@dataclass(frozen=True)
class ROIRow:
    year: int
    production_kwh: float
    tariff: float
    yearly_economy: float
    accumulated_economy: float
    roi_pct: float

    def to_dict(self) -> dict[str, float]:
        return asdict(self)


def project_economy(
    yearly_total_kwh: float,
    tariff_per_kwh: float,
    total_value: float,
    years: int = PROJECTION_YEARS,
    inflation_rate: float = TARIFF_INFLATION_RATE,
) -> list[ROIRow]:
    """Build the year-by-year economy and ROI table.

    roi(n) = (accumulated(n) - total_value) / total_value * 100
    """
    for field, value in (
        ("yearly_total_kwh", yearly_total_kwh),
        ("tariff_per_kwh", tariff_per_kwh),
        ("total_value", total_value),
    ):
        if not math.isfinite(value):
            raise InvalidInputError(field, "must be finite", value)
    if yearly_total_kwh < 0:
        raise InvalidInputError("yearly_total_kwh", "must be zero or greater", yearly_total_kwh)
    if tariff_per_kwh < 0:
        raise InvalidInputError("tariff_per_kwh", "must be zero or greater", tariff_per_kwh)
    if total_value <= 0:
        raise InvalidInputError("total_value", "must be greater than zero", total_value)
    if years < 1:
        raise InvalidInputError("years", "must be at least 1", years)

    rows: list[ROIRow] = []
    tariff = tariff_per_kwh
    accumulated = 0.0
    for yr in range(1, years + 1):
        tariff = tariff * (1.0 + inflation_rate)
        yearly_economy = yearly_total_kwh * tariff
        accumulated += yearly_economy
        roi = (accumulated - total_value) / total_value * 100
        rows.append(ROIRow(
            year=yr,
            production_kwh=yearly_total_kwh,
            tariff=tariff,
            yearly_economy=yearly_economy,
            accumulated_economy=accumulated,
            roi_pct=roi,
        ))

    return rows


def payback_year(rows: list[ROIRow]) -> int | None:
    """First projection year in which the investment is recovered."""
    for row in rows:
        if row.roi_pct >= 0:
            return row.year
    return None
