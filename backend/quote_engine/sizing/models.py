"""Input and output value objects for the sizing calculator."""

from __future__ import annotations

from dataclasses import asdict, dataclass
from enum import Enum
from typing import Any


class KitValueMethod(str, Enum):
    """How the equipment kit price is quoted."""

    PER_KWP = "perKwp"
    TOTAL = "total"


@dataclass(frozen=True)
class SizingInput:
    """Raw quote parameters for one solar budget.

    ``value_per_kwp`` is the kit price per installed Wp (so a kit quoted at
    R$ 1.40/Wp becomes ``kWp * 1000 * 1.4``).  Only the field matching
    ``kit_value_method`` is required.
    """

    desired_power_kw: float
    panel_power_w: float
    magic_number: float
    kit_value_method: KitValueMethod
    material_value: float
    labor_per_kwp: float
    profit_margin_pct: float
    tariff_per_kwh: float
    value_per_kwp: float | None = None
    total_kit_value: float | None = None
    commission_enabled: bool = False
    commission_pct: float = 0.0


@dataclass(frozen=True)
class InverterSelection:
    nominal_kw: float
    maximum_kwp: float
    min_required_kw: float
    undersized: bool


@dataclass(frozen=True)
class SizingOutput:
    """Fully computed pricing and production breakdown.

    Monetary fields are in the tariff currency, power in kW/kWp and
    energy in kWh.  ``inverter_undersized`` is True only when the system
    needs more than the largest catalogue inverter can take.
    """

    panel_quantity: int
    system_power_kwp: float
    selected_inverter_kw: float
    inverter_max_kwp: float
    min_required_inverter_kw: float
    inverter_undersized: bool

    kit_value: float
    material_value: float
    labor_value: float
    tax_value: float
    subtotal: float
    profit_value: float
    commission_value: float
    total_value: float

    monthly_production_kwh: tuple[float, ...]
    monthly_average_kwh: float
    yearly_total_kwh: float
    monthly_economy: float
    yearly_economy: float
    tariff_per_kwh: float

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["monthly_production_kwh"] = list(self.monthly_production_kwh)
        return data
