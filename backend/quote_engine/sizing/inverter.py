"""Inverter tier selection."""

from __future__ import annotations

from typing import Sequence

from ..constants import INVERTER_OVERLOAD_RATIO, INVERTER_TIERS_KW
from .models import InverterSelection


def select_inverter(
    system_power_kwp: float,
    tiers_kw: Sequence[float] = INVERTER_TIERS_KW,
    overload_ratio: float = INVERTER_OVERLOAD_RATIO,
) -> InverterSelection:
    """Pick the smallest catalogue inverter that can take the array.

    An inverter accepts up to ``overload_ratio`` times its nominal rating as
    DC input, so the minimum nominal size is ``kWp / overload_ratio``.  When
    no tier is large enough the largest one is returned with
    ``undersized=True``; this is a best-effort fallback, not an error.
    """
    min_required = system_power_kwp / overload_ratio

    chosen = None
    for tier in tiers_kw:
        if tier >= min_required:
            chosen = tier
            break

    undersized = chosen is None
    if undersized:
        chosen = tiers_kw[-1]

    return InverterSelection(
        nominal_kw=chosen,
        maximum_kwp=chosen * overload_ratio,
        min_required_kw=min_required,
        undersized=undersized,
    )
