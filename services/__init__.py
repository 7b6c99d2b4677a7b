"""
Batchline Services.

Business logic that doesn't belong in models:
- scaling: recipe scaling to a batch target weight
- claims: per-ingredient processing markers
- sources: calls to the source collaborator
- weighing: auto-weighing control loop
- execution / runs / adjustments: result-returning mixins composed into Line

Model-dependent modules are not imported here; import them directly.
"""

from batchline.services.claims import Claim, IngredientClaims, claims
from batchline.services.scaling import scale_ingredients, to_decimal

__all__ = [
    "Claim",
    "IngredientClaims",
    "claims",
    "scale_ingredients",
    "to_decimal",
]
