"""Pure quoting computations for solar and service budgets."""

from .constants import DEFAULT_CONSTANTS, CalculatorConstants
from .errors import InvalidInputError, ProposalTransitionError
from .sizing import KitValueMethod, SizingInput, SizingOutput, compute

__all__ = [
    "DEFAULT_CONSTANTS",
    "CalculatorConstants",
    "InvalidInputError",
    "ProposalTransitionError",
    "KitValueMethod",
    "SizingInput",
    "SizingOutput",
    "compute",
]
