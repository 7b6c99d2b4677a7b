"""
ConsumptionEntry model.

The consumption ledger is append-only. An entry is never deleted; it is
annulled (is_annulled flipped) and the effective consumed quantity of an
ingredient is the sum of its non-annulled entries.
"""

import uuid
from decimal import Decimal

from django.db import models
from django.utils.translation import gettext_lazy as _


class ConsumptionEntryQuerySet(models.QuerySet):
    def effective(self):
        return self.filter(is_annulled=False)

    def for_ingredient(self, ingredient: str):
        return self.filter(ingredient=ingredient)


class ConsumptionEntry(models.Model):
    """
    Lançamento de consumo de um ingrediente em um lote.

    quantity é assinada: negativa representa devolução ao palete.
    Entradas com adjustment preenchido vieram de uma ordem de ajuste.
    """

    uuid = models.UUIDField(
        default=uuid.uuid4,
        editable=False,
        unique=True,
        verbose_name=_("UUID"),
    )
    batch = models.ForeignKey(
        "batchline.Batch",
        on_delete=models.CASCADE,
        related_name="consumption_entries",
        verbose_name=_("Lote"),
    )
    ingredient = models.CharField(
        max_length=100,
        db_index=True,
        verbose_name=_("Ingrediente"),
    )
    source_ref = models.CharField(
        max_length=100,
        verbose_name=_("Origem"),
        help_text=_("Palete/lote de onde o material saiu"),
    )
    quantity = models.DecimalField(
        max_digits=12,
        decimal_places=3,
        verbose_name=_("Quantidade"),
        help_text=_("Negativa = devolução"),
    )

    is_annulled = models.BooleanField(
        default=False,
        verbose_name=_("Anulado"),
    )
    annulled_at = models.DateTimeField(
        null=True,
        blank=True,
        verbose_name=_("Anulado em"),
    )
    annulled_by = models.CharField(
        max_length=255,
        blank=True,
        verbose_name=_("Anulado por"),
    )

    adjustment = models.ForeignKey(
        "batchline.AdjustmentOrder",
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="entries",
        verbose_name=_("Ordem de Ajuste"),
    )

    created_by = models.CharField(
        max_length=255,
        blank=True,
        verbose_name=_("Criado por"),
        help_text=_("Ex: 'joao', 'system:auto-weigh'"),
    )
    created_at = models.DateTimeField(
        auto_now_add=True,
        db_index=True,
        verbose_name=_("Criado em"),
    )

    objects = ConsumptionEntryQuerySet.as_manager()

    class Meta:
        db_table = "batchline_consumption_entry"
        verbose_name = _("Lançamento de Consumo")
        verbose_name_plural = _("Lançamentos de Consumo")
        ordering = ["created_at", "id"]
        indexes = [
            models.Index(fields=["batch", "ingredient", "is_annulled"], name="batchline_entry_ledger_idx"),
        ]

    def __str__(self) -> str:
        flag = " [anulado]" if self.is_annulled else ""
        return f"{self.ingredient} {self.quantity} @ {self.source_ref}{flag}"

    @property
    def is_adjustment(self) -> bool:
        return self.adjustment_id is not None

    @property
    def is_return(self) -> bool:
        return self.quantity < Decimal("0")
