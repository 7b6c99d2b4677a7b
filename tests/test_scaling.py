"""
Tests for recipe scaling (batchline.services.scaling).
"""

from decimal import Decimal

import pytest

from batchline.exceptions import LineError
from batchline.services.scaling import scale_ingredients, to_decimal


# ═══════════════════════════════════════════════════════════════════
# scale_ingredients
# ═══════════════════════════════════════════════════════════════════


class TestScaleIngredients:
    def test_scales_proportionally(self):
        result = scale_ingredients([("A", 600), ("B", 400)], 500)

        assert [(r.name, r.required) for r in result] == [
            ("A", Decimal("300")),
            ("B", Decimal("200")),
        ]

    def test_keeps_unscaled_quantity_and_unit(self):
        result = scale_ingredients([("Salt", "2", "g"), ("Corn", "98")], 1000)

        assert result[0].unscaled == Decimal("2")
        assert result[0].unit == "g"
        assert result[1].unit == "kg"
        assert result[0].required == Decimal("20")

    def test_preserves_input_order(self):
        result = scale_ingredients([("Z", 1), ("A", 1), ("M", 2)], 400)
        assert [r.name for r in result] == ["Z", "A", "M"]

    def test_required_sums_to_target(self):
        result = scale_ingredients([("A", 3), ("B", 3), ("C", 4)], 2000)
        assert sum(r.required for r in result) == Decimal("2000")

    def test_zero_total_yields_no_requirements(self):
        """Misconfigured recipe produces no requirements instead of raising."""
        assert scale_ingredients([("A", 0), ("B", 0)], 500) == []

    def test_empty_recipe(self):
        assert scale_ingredients([], 500) == []

    def test_malformed_quantity_rejected(self):
        with pytest.raises(LineError) as exc:
            scale_ingredients([("A", "abc")], 500)
        assert exc.value.code == "INVALID_QUANTITY"


# ═══════════════════════════════════════════════════════════════════
# to_decimal
# ═══════════════════════════════════════════════════════════════════


class TestToDecimal:
    @pytest.mark.parametrize("value", [300, "300", 300.0, Decimal("300")])
    def test_coerces(self, value):
        assert to_decimal(value) == Decimal("300")

    @pytest.mark.parametrize("value", ["x", None, "NaN", "Infinity"])
    def test_rejects(self, value):
        with pytest.raises(LineError) as exc:
            to_decimal(value, field="total")
        assert exc.value.code == "INVALID_QUANTITY"
        assert "total" in exc.value.details


# ═══════════════════════════════════════════════════════════════════
# Recipe.scale
# ═══════════════════════════════════════════════════════════════════


class TestRecipeScale:
    def test_recipe_scale(self, recipe):
        result = recipe.scale(Decimal("500"))
        assert [(r.name, r.required) for r in result] == [
            ("A", Decimal("300")),
            ("B", Decimal("200")),
        ]

    def test_recipe_totals(self, recipe):
        assert recipe.total_quantity() == Decimal("1000")
        assert recipe.ingredient_names() == ["A", "B"]

    def test_batch_requirements_follow_target_weight(self, batch):
        assert [(r.name, r.required) for r in batch.requirements()] == [
            ("A", Decimal("300")),
            ("B", Decimal("200")),
        ]
