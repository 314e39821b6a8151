"""Solar system sizing and pricing.

Turns a ``SizingInput`` into a ``SizingOutput`` in one pass:

    panels -> system kWp -> inverter tier -> kit / labour / tax
    -> subtotal -> profit -> commission -> total
    -> 12 seasonal monthly yields -> average / yearly -> economy

The function is pure: it reads the input and the injected constants and
returns a new frozen object.  Nothing here logs or touches I/O.
"""

from __future__ import annotations

import math
from typing import Any

from ..constants import DEFAULT_CONSTANTS, MONTHS_PER_YEAR, CalculatorConstants
from ..errors import InvalidInputError
from .inverter import select_inverter
from .models import KitValueMethod, SizingInput, SizingOutput


def _require_number(field: str, value: Any) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise InvalidInputError(field, "must be a number", value)
    if not math.isfinite(value):
        raise InvalidInputError(field, "must be finite", value)
    return float(value)


def _require_positive(field: str, value: Any) -> float:
    number = _require_number(field, value)
    if number <= 0:
        raise InvalidInputError(field, "must be greater than zero", value)
    return number


def _require_non_negative(field: str, value: Any) -> float:
    number = _require_number(field, value)
    if number < 0:
        raise InvalidInputError(field, "must be zero or greater", value)
    return number


def _require_percentage(field: str, value: Any) -> float:
    number = _require_number(field, value)
    if not 0 <= number <= 100:
        raise InvalidInputError(field, "must be between 0 and 100", value)
    return number


def validate_input(sizing_input: SizingInput) -> None:
    """Raise ``InvalidInputError`` for the first malformed field."""
    _require_positive("desired_power_kw", sizing_input.desired_power_kw)
    _require_positive("panel_power_w", sizing_input.panel_power_w)
    _require_positive("magic_number", sizing_input.magic_number)
    _require_non_negative("material_value", sizing_input.material_value)
    _require_non_negative("labor_per_kwp", sizing_input.labor_per_kwp)
    _require_percentage("profit_margin_pct", sizing_input.profit_margin_pct)
    _require_non_negative("tariff_per_kwh", sizing_input.tariff_per_kwh)

    try:
        method = KitValueMethod(sizing_input.kit_value_method)
    except ValueError:
        raise InvalidInputError(
            "kit_value_method", "must be 'perKwp' or 'total'", sizing_input.kit_value_method
        ) from None

    if method is KitValueMethod.PER_KWP:
        if sizing_input.value_per_kwp is None:
            raise InvalidInputError("value_per_kwp", "is required when kit_value_method is perKwp")
        _require_non_negative("value_per_kwp", sizing_input.value_per_kwp)
    else:
        if sizing_input.total_kit_value is None:
            raise InvalidInputError("total_kit_value", "is required when kit_value_method is total")
        _require_non_negative("total_kit_value", sizing_input.total_kit_value)

    # Commission percentage is ignored entirely when commission is off.
    if sizing_input.commission_enabled:
        _require_percentage("commission_pct", sizing_input.commission_pct)


def _too_large(value: float) -> InvalidInputError:
    return InvalidInputError(
        "desired_power_kw", "is too large for the given magic_number and panel_power_w", value
    )


def panel_quantity(desired_power_kw: float, magic_number: float, panel_power_w: float) -> int:
    """Number of panels, always rounded up."""
    required_wp = desired_power_kw / magic_number * 1000
    panels = required_wp / panel_power_w
    if not math.isfinite(panels):
        raise _too_large(desired_power_kw)
    return max(1, math.ceil(panels))


def monthly_production(
    system_power_kwp: float,
    constants: CalculatorConstants = DEFAULT_CONSTANTS,
) -> list[float]:
    base = system_power_kwp * constants.base_production_kwh_per_kwp
    return [base * factor for factor in constants.seasonal_factors]


def compute(
    sizing_input: SizingInput,
    constants: CalculatorConstants = DEFAULT_CONSTANTS,
) -> SizingOutput:
    """Size and price a grid-tied solar system.

    Raises
    ------
    InvalidInputError
        If any numeric input is non-finite or out of range, or the kit
        value matching ``kit_value_method`` is missing, or the
        desired power is so large the derived values overflow.
    """
    validate_input(sizing_input)
    method = KitValueMethod(sizing_input.kit_value_method)

    # --- Sizing ---
    quantity = panel_quantity(
        sizing_input.desired_power_kw,
        sizing_input.magic_number,
        sizing_input.panel_power_w,
    )
    system_power_kwp = float(quantity) * sizing_input.panel_power_w / 1000
    inverter = select_inverter(
        system_power_kwp,
        tiers_kw=constants.inverter_tiers_kw,
        overload_ratio=constants.inverter_overload_ratio,
    )

    # --- Pricing ---
    if method is KitValueMethod.PER_KWP:
        kit_value = system_power_kwp * 1000 * sizing_input.value_per_kwp
    else:
        kit_value = float(sizing_input.total_kit_value)

    material_value = float(sizing_input.material_value)
    labor_value = system_power_kwp * sizing_input.labor_per_kwp
    tax_value = (material_value + labor_value) * constants.tax_rate
    subtotal = kit_value + material_value + labor_value + tax_value
    profit_value = subtotal * (sizing_input.profit_margin_pct / 100)

    commission_value = 0.0
    if sizing_input.commission_enabled:
        commission_value = profit_value * (sizing_input.commission_pct / 100)

    total_value = subtotal + profit_value + commission_value
    if not all(math.isfinite(v) for v in (system_power_kwp, kit_value, total_value)):
        raise _too_large(sizing_input.desired_power_kw)

    # --- Production and economy ---
    monthly = monthly_production(system_power_kwp, constants)
    monthly_average = sum(monthly) / MONTHS_PER_YEAR
    # Average times twelve, not the literal sum of the months.
    yearly_total = monthly_average * MONTHS_PER_YEAR
    monthly_economy = monthly_average * sizing_input.tariff_per_kwh
    yearly_economy = monthly_economy * MONTHS_PER_YEAR
    if not math.isfinite(yearly_economy):
        raise _too_large(sizing_input.desired_power_kw)

    return SizingOutput(
        panel_quantity=quantity,
        system_power_kwp=system_power_kwp,
        selected_inverter_kw=inverter.nominal_kw,
        inverter_max_kwp=inverter.maximum_kwp,
        min_required_inverter_kw=inverter.min_required_kw,
        inverter_undersized=inverter.undersized,
        kit_value=kit_value,
        material_value=material_value,
        labor_value=labor_value,
        tax_value=tax_value,
        subtotal=subtotal,
        profit_value=profit_value,
        commission_value=commission_value,
        total_value=total_value,
        monthly_production_kwh=tuple(monthly),
        monthly_average_kwh=monthly_average,
        yearly_total_kwh=yearly_total,
        monthly_economy=monthly_economy,
        yearly_economy=yearly_economy,
        tariff_per_kwh=float(sizing_input.tariff_per_kwh),
    )
