"""Solar system sizing and pricing."""

from .calculator import compute, monthly_production, panel_quantity, validate_input
from .inverter import select_inverter
from .models import InverterSelection, KitValueMethod, SizingInput, SizingOutput

__all__ = [
    "compute",
    "monthly_production",
    "panel_quantity",
    "validate_input",
    "select_inverter",
    "InverterSelection",
    "KitValueMethod",
    "SizingInput",
    "SizingOutput",
]
