"""Utility functions for working with rate card models."""

import sys
from decimal import Decimal, ROUND_HALF_UP
from typing import TYPE_CHECKING, List, Optional, Sequence

from cargo_core.config.messages import ERROR_INVALID_TIER, ERROR_NO_TIERS, ERROR_TIER_OVERLAP
from cargo_core.exceptions import InvalidTierError, NoTierFoundError

if TYPE_CHECKING:
    from cargo_core.models.schema import WeightTier


KG_PER_UNIT = {
    "kg": 1.0,
    "g": 0.001,
    "lb": 0.45359237,
    "lbs": 0.45359237,
    "pound": 0.45359237,
    "pounds": 0.45359237,
}

CM_PER_UNIT = {
    "cm": 1.0,
    "mm": 0.1,
    "m": 100.0,
    "meter": 100.0,
    "metre": 100.0,
    "in": 2.54,
    "inch": 2.54,
    "inches": 2.54,
}


def validate_tiers(tiers: Sequence["WeightTier"]) -> List["WeightTier"]:
    """Sort tiers by ``min_kg`` and check they are contiguous and non-overlapping.

    Each tier's ``max_kg`` must exceed its ``min_kg``, and must equal or precede
    the next tier's ``min_kg``. Only the last tier may be open-ended.

    Args:
        tiers: Tiers in any order

    Returns:
        New list of tiers sorted ascending by min_kg

    Raises:
        InvalidTierError: If the list is empty, a tier is inverted, or two tiers overlap
    """
    if not tiers:
        raise InvalidTierError(ERROR_NO_TIERS)

    ordered = sorted(tiers, key=lambda t: t.min_kg)
    for i, tier in enumerate(ordered):
        if tier.max_kg is not None and tier.max_kg <= tier.min_kg:
            raise InvalidTierError(ERROR_INVALID_TIER.format(index=i))
        if i > 0:
            previous = ordered[i - 1]
            if previous.max_kg is None or previous.max_kg > tier.min_kg:
                raise InvalidTierError(ERROR_TIER_OVERLAP.format(previous=i - 1, current=i))
    return ordered


def find_tier(tiers: Sequence["WeightTier"], billable_weight_kg: float) -> "WeightTier":
    """Find the tier that prices a billable weight.

    Tiers are assumed sorted ascending by ``min_kg``. Returns the first tier with
    ``min_kg <= weight`` and (open-ended or ``weight < max_kg``). When no tier
    matches, the last tier is used as an open-ended safety net.

    Args:
        tiers: Sorted weight tiers
        billable_weight_kg: Billable weight in kg

    Returns:
        The matching WeightTier

    Raises:
        NoTierFoundError: If ``tiers`` is empty
    """
    if not tiers:
        raise NoTierFoundError()

    for tier in tiers:
        if tier.contains(billable_weight_kg):
            return tier
    return tiers[-1]


def round_money(value: float, decimals: int = 2) -> float:
    """Round a (non-negative) money amount half up.

    Machine epsilon is added before rounding so values such as 1.005 that are
    stored slightly below their decimal representation still round up.

    Args:
        value: Amount to round
        decimals: Number of decimals to keep (default 2 = cents)

    Returns:
        Rounded amount as float
    """
    quantum = Decimal(1).scaleb(-decimals)
    shifted = Decimal(repr(float(value) + sys.float_info.epsilon))
    return float(shifted.quantize(quantum, rounding=ROUND_HALF_UP))


def to_kg(value: float, unit: str = "kg") -> Optional[float]:
    """Convert a weight to kg.

    Args:
        value: Weight in ``unit``
        unit: One of kg, g, lb (and spelled-out aliases)

    Returns:
        Weight in kg, or None if the unit is unknown
    """
    factor = KG_PER_UNIT.get(str(unit).strip().lower())
    if factor is None:
        return None
    return float(value) * factor


def to_cm(value: float, unit: str = "cm") -> Optional[float]:
    """Convert a length to cm.

    Args:
        value: Length in ``unit``
        unit: One of cm, mm, m, in (and spelled-out aliases)

    Returns:
        Length in cm, or None if the unit is unknown
    """
    factor = CM_PER_UNIT.get(str(unit).strip().lower())
    if factor is None:
        return None
    return float(value) * factor
