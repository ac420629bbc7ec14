"""Billable weight calculation (actual vs. volumetric)."""

import math
from typing import Optional

from cargo_core.config.messages import ERROR_INVALID_VOLUMETRIC_DIVISOR
from cargo_core.exceptions import InvalidInputError
from cargo_core.models.quote_models import Dimensions, WeightBreakdown


def _round_up_to_step(value: float, step: float) -> float:
    if not step or step <= 0:
        return value
    # round() first so 2.0000000001 steps is not pushed to 3
    steps = math.ceil(round(value / step, 9))
    return steps * step


def compute_billable_weight(
    actual_weight_per_piece_kg: float,
    dims: Optional[Dimensions] = None,
    quantity: int = 1,
    volumetric_divisor: float = 5000.0,
    round_step_kg: float = 0.5,
) -> WeightBreakdown:
    """Compute actual, volumetric and billable weight for a consignment.

    Billable weight is the greater of actual and volumetric weight, rounded up
    to the next multiple of ``round_step_kg``.

    Args:
        actual_weight_per_piece_kg: Weight of one piece in kg
        dims: Per-piece dimensions in cm (missing or negative sides count as 0)
        quantity: Number of identical pieces, clamped to at least 1
        volumetric_divisor: cm³ per volumetric kg, must be positive
        round_step_kg: Rounding step; 0 or less disables rounding

    Returns:
        WeightBreakdown with actual_total_kg, volumetric_kg and billable_kg

    Raises:
        InvalidInputError: If the divisor is not positive
    """
    if volumetric_divisor is None or volumetric_divisor <= 0:
        raise InvalidInputError(
            ERROR_INVALID_VOLUMETRIC_DIVISOR,
            [{"field": "volumetric_divisor", "message": ERROR_INVALID_VOLUMETRIC_DIVISOR}],
        )

    qty = max(1, int(quantity or 1))
    per_piece = max(0.0, float(actual_weight_per_piece_kg or 0.0))
    volume_cm3 = dims.volume_cm3 if dims is not None else 0.0

    actual_total_kg = per_piece * qty
    volumetric_kg = volume_cm3 * qty / volumetric_divisor
    billable_kg = max(actual_total_kg, volumetric_kg)

    return WeightBreakdown(
        actual_total_kg=actual_total_kg,
        volumetric_kg=volumetric_kg,
        billable_kg=_round_up_to_step(billable_kg, round_step_kg),
    )
