# recipehub/services/scaling.py
# Serving-size scaling for ingredient quantities (pure; stored quantities are never touched)

from __future__ import annotations
from typing import Any, Dict, Iterable, List, Mapping

from recipehub.core.errors import ValidationError

def scale(quantity: float, base_servings: int, requested_servings: int) -> float:
    """quantity * requested / base, unrounded. Identity when requested == base."""
    if base_servings is None or base_servings <= 0:
        raise ValidationError.single("servings", "base servings must be positive")
    if requested_servings is None or requested_servings <= 0:
        raise ValidationError.single("requestedServings", "requested servings must be positive")
    # ratio first keeps scale(q, s, s) == q and scale(q, s, 2s) == 2q exact in floating point
    return quantity * (requested_servings / base_servings)

def format_quantity(value: float, places: int = 2) -> float:
    # display rounding only
    return round(value, places)

def scale_ingredients(
    ingredients: Iterable[Mapping[str, Any]],
    base_servings: int,
    requested_servings: int,
) -> List[Dict[str, Any]]:
    out: List[Dict[str, Any]] = []
    for ing in ingredients or []:
        q = float(ing.get("quantity") or 0)
        scaled = scale(q, base_servings, requested_servings)
        out.append({
            "name": ing.get("name", ""),
            "unit": ing.get("unit", ""),
            "quantity": q,
            "scaledQuantity": scaled,
            "display": format_quantity(scaled),
        })
    return out
