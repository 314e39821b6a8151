"""Calculator constant tables.

The seasonal production curve, inverter catalogue, tax rate and tariff
inflation were calibrated for one installer in Manaus/AM.  They are
grouped in a single immutable object so another locale can inject its own
values without touching the calculator.
"""

from __future__ import annotations

import math
from dataclasses import dataclass

# ======================================================================
# Default tables
# ======================================================================

# Monthly yield multipliers, January..December.
SEASONAL_FACTORS: tuple[float, ...] = (
    0.914, 0.93, 0.935, 0.886, 0.898, 1.016,
    1.025, 1.141, 1.131, 1.101, 1.071, 0.953,
)

# Nominal AC ratings available from the distributor (kW), ascending.
INVERTER_TIERS_KW: tuple[float, ...] = (3, 5, 7.5, 8, 10, 15, 20, 25, 30, 50, 75)

BASE_PRODUCTION_KWH_PER_KWP: float = 107.88  # kWh/kWp/month
TAX_RATE: float = 0.06                       # on material + labour
INVERTER_OVERLOAD_RATIO: float = 1.6         # DC input / AC nominal
TARIFF_INFLATION_RATE: float = 0.07          # per year
PROJECTION_YEARS: int = 25

MONTHS_PER_YEAR: int = 12
MONTH_NAMES = [
    "Jan", "Feb", "Mar", "Apr", "May", "Jun",
    "Jul", "Aug", "Sep", "Oct", "Nov", "Dec",
]


@dataclass(frozen=True)
class CalculatorConstants:
    """Locale-specific parameters consumed by the sizing and projection code."""

    seasonal_factors: tuple[float, ...] = SEASONAL_FACTORS
    inverter_tiers_kw: tuple[float, ...] = INVERTER_TIERS_KW
    base_production_kwh_per_kwp: float = BASE_PRODUCTION_KWH_PER_KWP
    tax_rate: float = TAX_RATE
    inverter_overload_ratio: float = INVERTER_OVERLOAD_RATIO
    tariff_inflation_rate: float = TARIFF_INFLATION_RATE
    projection_years: int = PROJECTION_YEARS

    def __post_init__(self) -> None:
        # Accept lists from config layers but store tuples.
        object.__setattr__(self, "seasonal_factors", tuple(float(f) for f in self.seasonal_factors))
        object.__setattr__(self, "inverter_tiers_kw", tuple(float(t) for t in self.inverter_tiers_kw))

        if len(self.seasonal_factors) != MONTHS_PER_YEAR:
            raise ValueError(
                f"seasonal_factors must have {MONTHS_PER_YEAR} values, "
                f"got {len(self.seasonal_factors)}"
            )
        if any(not math.isfinite(f) or f < 0 for f in self.seasonal_factors):
            raise ValueError("seasonal_factors must be finite and >= 0")

        tiers = self.inverter_tiers_kw
        if not tiers:
            raise ValueError("inverter_tiers_kw must not be empty")
        if any(not math.isfinite(t) or t <= 0 for t in tiers):
            raise ValueError("inverter_tiers_kw must be finite and > 0")
        if any(b <= a for a, b in zip(tiers, tiers[1:])):
            raise ValueError(f"inverter_tiers_kw must be strictly ascending, got {tiers}")

        if self.base_production_kwh_per_kwp <= 0:
            raise ValueError(
                f"base_production_kwh_per_kwp must be > 0, got {self.base_production_kwh_per_kwp}"
            )
        if not 0 <= self.tax_rate < 1:
            raise ValueError(f"tax_rate must be in [0, 1), got {self.tax_rate}")
        if self.inverter_overload_ratio <= 0:
            raise ValueError(
                f"inverter_overload_ratio must be > 0, got {self.inverter_overload_ratio}"
            )
        if self.tariff_inflation_rate <= -1:
            raise ValueError(
                f"tariff_inflation_rate must be > -1, got {self.tariff_inflation_rate}"
            )
        if self.projection_years < 1:
            raise ValueError(f"projection_years must be >= 1, got {self.projection_years}")

    @property
    def mean_seasonal_factor(self) -> float:
        return sum(self.seasonal_factors) / MONTHS_PER_YEAR


DEFAULT_CONSTANTS = CalculatorConstants()
