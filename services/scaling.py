"""
Recipe scaling.

A recipe stores unscaled quantities; a batch needs each ingredient in
proportion to its target weight:

    required = unscaled * (target_weight / sum(unscaled))

A recipe whose quantities sum to zero is a configuration error. It yields
no requirements instead of raising, so execution screens keep working.

Usage:
    from batchline.services.scaling import scale_ingredients

    scale_ingredients([("A", 600), ("B", 400)], 500)
    # -> A: 300, B: 200
"""

from __future__ import annotations

import logging
from decimal import Decimal, InvalidOperation
from typing import Iterable

from batchline.exceptions import LineError
from batchline.results import ScaledIngredient

logger = logging.getLogger(__name__)


def to_decimal(value, field: str = "quantity") -> Decimal:
    """Coerce int/float/str to Decimal; malformed input is INVALID_QUANTITY."""
    if isinstance(value, Decimal):
        result = value
    else:
        try:
            result = Decimal(str(value))
        except (InvalidOperation, ValueError, TypeError):
            raise LineError("INVALID_QUANTITY", **{field: str(value)})
    if not result.is_finite():
        raise LineError("INVALID_QUANTITY", **{field: str(value)})
    return result


def scale_ingredients(
    ingredients: Iterable[tuple],
    target_weight: Decimal | int | float,
) -> list[ScaledIngredient]:
    """
    Scale (name, unscaled_quantity[, unit]) tuples to a batch target weight.

    Order of the input is preserved.
    """
    items = []
    for entry in ingredients:
        name, quantity = entry[0], to_decimal(entry[1])
        unit = entry[2] if len(entry) > 2 else "kg"
        items.append((name, quantity, unit))

    total = sum((quantity for _, quantity, _ in items), Decimal("0"))
    if total <= 0:
        logger.warning(
            f"Recipe quantities sum to {total}; no ingredient requirements produced",
            extra={"ingredients": [name for name, _, _ in items]},
        )
        return []

    factor = to_decimal(target_weight) / total

    return [
        ScaledIngredient(name=name, unscaled=quantity, required=quantity * factor, unit=unit)
        for name, quantity, unit in items
    ]
