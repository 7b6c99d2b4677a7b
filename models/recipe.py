"""
Recipe and RecipeIngredient models.

Recipe = fórmula de produção, quantidades não escaladas por ingrediente.
RecipeIngredient = ingrediente da receita, escalado por lote via Recipe.scale().
"""

import uuid
from decimal import Decimal

from django.db import models
from django.utils.translation import gettext_lazy as _
from simple_history.models import HistoricalRecords

from batchline.results import ScaledIngredient
from batchline.services.scaling import scale_ingredients


class Recipe(models.Model):
    """
    Receita de produção.

    Read-only reference data from the point of view of batch execution:
    batches only ever read the ingredient list and scale it.
    """

    uuid = models.UUIDField(
        default=uuid.uuid4,
        editable=False,
        unique=True,
        verbose_name=_("UUID"),
    )
    code = models.SlugField(
        unique=True,
        max_length=50,
        verbose_name=_("Código"),
        help_text=_("Identificador único (ex: ração-inicial-v1)"),
    )
    name = models.CharField(
        max_length=200,
        verbose_name=_("Nome"),
    )
    is_active = models.BooleanField(
        default=True,
        verbose_name=_("Ativa"),
    )
    notes = models.TextField(
        blank=True,
        verbose_name=_("Observações"),
    )
    metadata = models.JSONField(
        default=dict,
        blank=True,
        verbose_name=_("Metadados"),
    )

    created_at = models.DateTimeField(
        auto_now_add=True,
        verbose_name=_("Criado em"),
    )
    updated_at = models.DateTimeField(
        auto_now=True,
        verbose_name=_("Atualizado em"),
    )

    history = HistoricalRecords()

    class Meta:
        db_table = "batchline_recipe"
        verbose_name = _("Receita")
        verbose_name_plural = _("Receitas")
        ordering = ["name"]

    def __str__(self) -> str:
        return f"{self.name} ({self.code})"

    @property
    def total_quantity(self) -> Decimal:
        """Soma das quantidades não escaladas."""
        return sum((i.quantity for i in self.ingredients.all()), Decimal("0"))

    @property
    def ingredient_names(self) -> list[str]:
        return [i.name for i in self.ingredients.all()]

    def scale(self, target_weight: Decimal | int | float) -> list[ScaledIngredient]:
        """
        Escala os ingredientes para o peso alvo do lote.

        Example:
            recipe (A: 600, B: 400).scale(500)  # -> A: 300, B: 200
        """
        return scale_ingredients(
            [(i.name, i.quantity, i.unit) for i in self.ingredients.all()],
            target_weight,
        )


class RecipeIngredient(models.Model):
    """
    Ingrediente da receita.

    quantity é a quantidade não escalada; a proporção entre ingredientes
    define a fórmula.
    """

    recipe = models.ForeignKey(
        Recipe,
        on_delete=models.CASCADE,
        related_name="ingredients",
        verbose_name=_("Receita"),
    )
    name = models.CharField(
        max_length=100,
        verbose_name=_("Ingrediente"),
    )
    quantity = models.DecimalField(
        max_digits=12,
        decimal_places=3,
        verbose_name=_("Quantidade"),
        help_text=_("Quantidade não escalada"),
    )
    unit = models.CharField(
        max_length=20,
        default="kg",
        verbose_name=_("Unidade"),
    )
    sort_order = models.PositiveSmallIntegerField(
        default=0,
        verbose_name=_("Ordem"),
    )

    class Meta:
        db_table = "batchline_recipe_ingredient"
        verbose_name = _("Ingrediente da Receita")
        verbose_name_plural = _("Ingredientes da Receita")
        ordering = ["sort_order", "id"]
        unique_together = [("recipe", "name")]

    def __str__(self) -> str:
        return f"{self.name}: {self.quantity} {self.unit}"
