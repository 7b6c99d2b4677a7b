"""
AdjustmentOrder and AdjustmentMaterial models.

AdjustmentOrder = ordem de correção criada quando o NIRS de um lote é
reprovado. Its materials are picked to a staging location and then merged
into the batch ledger as adjustment-tagged consumption entries.

Status: PLANNED → MATERIAL_PICKING → PROCESSING → COMPLETED
        CANCELLED from any non-terminal state
"""

import logging
from decimal import Decimal

from django.db import models, transaction
from django.utils import timezone
from django.utils.translation import gettext_lazy as _
from simple_history.models import HistoricalRecords

from batchline.conf import get_tolerance
from batchline.exceptions import InvariantError, LineError
from batchline.models.consumption import ConsumptionEntry
from batchline.models.sequence import CodeSequence
from batchline.services import sources
from batchline.services.scaling import to_decimal

logger = logging.getLogger(__name__)


class AdjustmentStatus(models.TextChoices):
    PLANNED = "planned", _("Planejada")
    MATERIAL_PICKING = "material_picking", _("Separação de Material")
    PROCESSING = "processing", _("Em Processamento")
    COMPLETED = "completed", _("Concluída")
    CANCELLED = "cancelled", _("Cancelada")


ACTIVE_STATUSES = [
    AdjustmentStatus.PLANNED,
    AdjustmentStatus.MATERIAL_PICKING,
    AdjustmentStatus.PROCESSING,
]


def _username(user) -> str:
    return user.username if user else ""


class AdjustmentOrder(models.Model):
    """
    Ordem de ajuste (correção) de um lote.

    Metadata structure:
        {
            'pick_log': [
                {'ingredient': 'Salt', 'quantity': '2', 'source_ref': 'PAL-9',
                 'at': '...'},
                ...
            ],
            'cancel_reason': '...'
        }
    """

    code = models.CharField(
        unique=True,
        max_length=50,
        blank=True,
        verbose_name=_("Código"),
        help_text=_("Identificador único (auto-gerado se vazio)"),
    )
    batch = models.ForeignKey(
        "batchline.Batch",
        on_delete=models.PROTECT,
        related_name="adjustments",
        verbose_name=_("Lote"),
    )
    status = models.CharField(
        max_length=20,
        choices=AdjustmentStatus.choices,
        default=AdjustmentStatus.PLANNED,
        db_index=True,
        verbose_name=_("Status"),
    )
    staging_location = models.CharField(
        max_length=100,
        blank=True,
        verbose_name=_("Local de Preparação"),
    )
    reason = models.TextField(
        blank=True,
        verbose_name=_("Motivo"),
    )

    completed_at = models.DateTimeField(
        null=True,
        blank=True,
        verbose_name=_("Concluída em"),
    )
    cancelled_at = models.DateTimeField(
        null=True,
        blank=True,
        verbose_name=_("Cancelada em"),
    )

    metadata = models.JSONField(
        default=dict,
        blank=True,
        verbose_name=_("Metadados"),
    )

    created_by = models.CharField(
        max_length=255,
        blank=True,
        verbose_name=_("Criado por"),
        help_text=_("Ex: 'joao', 'system:correction'"),
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
        db_table = "batchline_adjustment_order"
        verbose_name = _("Ordem de Ajuste")
        verbose_name_plural = _("Ordens de Ajuste")
        ordering = ["-created_at"]

    def __str__(self) -> str:
        return f"{self.code} ({self.get_status_display()})"

    def save(self, *args, **kwargs):
        if not self.code:
            self.code = CodeSequence.next_code("ADJ")
        super().save(*args, **kwargs)

    @property
    def is_active(self) -> bool:
        return self.status in ACTIVE_STATUSES

    @property
    def is_fully_picked(self) -> bool:
        tolerance = get_tolerance()
        return all(m.picked_quantity >= m.required_quantity * tolerance for m in self.materials.all())

    # ══════════════════════════════════════════════════════════════
    # CREATION
    # ══════════════════════════════════════════════════════════════

    @classmethod
    def create(cls, batch, materials, reason: str = "", user=None) -> "AdjustmentOrder":
        """
        Cria ordem de ajuste para um lote reprovado no NIRS.

        Args:
            batch: Batch em andamento com nirs_status == "nok"
            materials: Lista de MaterialNeed, dicts {"ingredient", "quantity",
                "source_ref"} ou tuplas (ingredient, quantity[, source_ref])
            reason: Motivo (texto livre)

        Raises:
            LineError: NO_MATERIALS, INVALID_QUANTITY
            InvariantError: INVALID_STATUS, NIRS_NOT_REJECTED,
                ADJUSTMENT_ALREADY_ACTIVE
        """
        from batchline.models.batch import Batch, BatchStatus, NirsStatus

        needs = [_coerce_need(m) for m in materials or []]
        if not needs:
            raise LineError("NO_MATERIALS", batch=batch.code)
        for ingredient, quantity, _source in needs:
            if quantity <= 0:
                raise LineError("INVALID_QUANTITY", ingredient=ingredient, quantity=str(quantity))

        with transaction.atomic():
            Batch.objects.select_for_update().only("pk").get(pk=batch.pk)
            batch.refresh_from_db()

            if batch.status != BatchStatus.ONGOING:
                raise InvariantError("INVALID_STATUS", batch=batch.code, status=batch.status)
            if batch.nirs_status != NirsStatus.NOK:
                raise InvariantError("NIRS_NOT_REJECTED", batch=batch.code, nirs=batch.nirs_status)

            active = batch.active_adjustment
            if active is not None:
                raise InvariantError("ADJUSTMENT_ALREADY_ACTIVE", batch=batch.code, adjustment=active.code)

            order = cls.objects.create(batch=batch, reason=reason, created_by=_username(user))
            AdjustmentMaterial.objects.bulk_create(
                [
                    AdjustmentMaterial(
                        order=order,
                        ingredient=ingredient,
                        required_quantity=quantity,
                        source_ref=source_ref,
                        sort_order=index,
                    )
                    for index, (ingredient, quantity, source_ref) in enumerate(needs)
                ]
            )

        logger.info(
            f"AdjustmentOrder {order.code} created for batch {batch.code}",
            extra={
                "adjustment": order.pk,
                "batch": batch.pk,
                "materials": len(needs),
                "user": _username(user) or None,
            },
        )
        return order

    # ══════════════════════════════════════════════════════════════
    # WORKFLOW
    # ══════════════════════════════════════════════════════════════

    def _lock(self):
        AdjustmentOrder.objects.select_for_update().only("pk").get(pk=self.pk)
        self.refresh_from_db()

    def _require_status(self, *allowed):
        if self.status not in allowed:
            raise InvariantError(
                "INVALID_STATUS",
                adjustment=self.code,
                status=self.status,
                allowed=[str(s) for s in allowed],
            )

    def assign_staging(self, location: str, user=None) -> None:
        """Define local de preparação (PLANNED → MATERIAL_PICKING)."""
        if not location:
            raise LineError("LOCATION_REQUIRED", adjustment=self.code)

        with transaction.atomic():
            self._lock()
            self._require_status(AdjustmentStatus.PLANNED)
            self.staging_location = location
            self.status = AdjustmentStatus.MATERIAL_PICKING
            self.save(update_fields=["staging_location", "status", "updated_at"])

        logger.info(f"AdjustmentOrder {self.code}: staging at {location}")

    def pick(self, index: int, quantity, source_ref: str | None = None, user=None) -> "AdjustmentMaterial":
        """
        Registra separação de material.

        picked_quantity is capped at required_quantity. A pick against a
        material that is already fully picked is rejected. The picked amount
        is withdrawn from the source (the argument, or the material's own
        source) at pick time. Once every material is within tolerance the
        order moves to PROCESSING.

        Raises:
            LineError: INVALID_QUANTITY, MATERIAL_NOT_FOUND, SOURCE_*
            InvariantError: INVALID_STATUS, PICK_EXCEEDS_REQUIRED
        """
        quantity = to_decimal(quantity)
        if quantity <= 0:
            raise LineError("INVALID_QUANTITY", quantity=str(quantity))

        with transaction.atomic():
            self._lock()
            self._require_status(AdjustmentStatus.MATERIAL_PICKING)

            materials = list(self.materials.select_for_update())
            if not 0 <= index < len(materials):
                raise LineError("MATERIAL_NOT_FOUND", adjustment=self.code, index=index)
            material = materials[index]

            if material.picked_quantity >= material.required_quantity:
                raise InvariantError(
                    "PICK_EXCEEDS_REQUIRED",
                    ingredient=material.ingredient,
                    required=str(material.required_quantity),
                    picked=str(material.picked_quantity),
                )

            ref = source_ref or material.source_ref
            picked = min(quantity, material.required_quantity - material.picked_quantity)
            sources.validate_source(ref, material.ingredient, picked)
            sources.withdraw(ref, picked, self.code)

            material.source_ref = ref
            material.picked_quantity += picked
            material.save(update_fields=["picked_quantity", "source_ref"])

            self.metadata.setdefault("pick_log", []).append(
                {
                    "ingredient": material.ingredient,
                    "quantity": str(picked),
                    "source_ref": ref,
                    "at": timezone.now().isoformat(),
                    "user": _username(user) or None,
                }
            )
            update_fields = ["metadata", "updated_at"]

            if self.is_fully_picked:
                self.status = AdjustmentStatus.PROCESSING
                update_fields.append("status")

            self.save(update_fields=update_fields)

        logger.info(
            f"AdjustmentOrder {self.code}: picked {material.picked_quantity}/"
            f"{material.required_quantity} of {material.ingredient}",
            extra={"adjustment": self.pk, "ingredient": material.ingredient, "status": self.status},
        )
        return material

    def consume(self, user=None) -> list[ConsumptionEntry]:
        """
        Incorpora o material separado ao lote (PROCESSING → COMPLETED).

        Appends one adjustment-tagged ledger entry per material, tagged with
        the source it was picked from. Stock already left the source at pick
        time, so nothing is withdrawn here.
        """
        from batchline.models.batch import Batch

        with transaction.atomic():
            self._lock()
            self._require_status(AdjustmentStatus.PROCESSING)
            if not self.is_fully_picked:
                raise InvariantError("NOT_FULLY_PICKED", adjustment=self.code)

            Batch.objects.select_for_update().only("pk").get(pk=self.batch_id)
            batch = self.batch
            batch.refresh_from_db()
            batch._assert_writable()

            entries = [
                ConsumptionEntry.objects.create(
                    batch=batch,
                    ingredient=material.ingredient,
                    source_ref=material.source_ref,
                    quantity=material.picked_quantity,
                    adjustment=self,
                    created_by=_username(user),
                )
                for material in self.materials.all()
            ]

            self.status = AdjustmentStatus.COMPLETED
            self.completed_at = timezone.now()
            self.save(update_fields=["status", "completed_at", "updated_at"])

        logger.info(
            f"AdjustmentOrder {self.code} completed: {len(entries)} entries merged into {batch.code}",
            extra={"adjustment": self.pk, "batch": batch.pk},
        )

        from batchline.signals import adjustment_completed

        adjustment_completed.send(sender=self.__class__, adjustment=self, batch=batch, user=user)
        return entries

    def cancel(self, reason: str = "", user=None) -> None:
        """Cancela a ordem (qualquer status não terminal)."""
        with transaction.atomic():
            self._lock()
            self._require_status(*ACTIVE_STATUSES)
            self.status = AdjustmentStatus.CANCELLED
            self.cancelled_at = timezone.now()
            if reason:
                self.metadata["cancel_reason"] = reason
            self.save(update_fields=["status", "cancelled_at", "metadata", "updated_at"])

        logger.info(f"AdjustmentOrder {self.code} cancelled: {reason}")


class AdjustmentMaterial(models.Model):
    """Material de uma ordem de ajuste."""

    order = models.ForeignKey(
        AdjustmentOrder,
        on_delete=models.CASCADE,
        related_name="materials",
        verbose_name=_("Ordem de Ajuste"),
    )
    ingredient = models.CharField(
        max_length=100,
        verbose_name=_("Ingrediente"),
    )
    required_quantity = models.DecimalField(
        max_digits=12,
        decimal_places=3,
        verbose_name=_("Quantidade Necessária"),
    )
    picked_quantity = models.DecimalField(
        max_digits=12,
        decimal_places=3,
        default=Decimal("0"),
        verbose_name=_("Quantidade Separada"),
    )
    source_ref = models.CharField(
        max_length=100,
        blank=True,
        verbose_name=_("Origem"),
    )
    sort_order = models.PositiveSmallIntegerField(
        default=0,
        verbose_name=_("Ordem"),
    )

    class Meta:
        db_table = "batchline_adjustment_material"
        verbose_name = _("Material de Ajuste")
        verbose_name_plural = _("Materiais de Ajuste")
        ordering = ["sort_order", "id"]

    def __str__(self) -> str:
        return f"{self.ingredient}: {self.picked_quantity}/{self.required_quantity}"

    @property
    def remaining(self) -> Decimal:
        return max(Decimal("0"), self.required_quantity - self.picked_quantity)


def _coerce_need(material) -> tuple[str, Decimal, str]:
    """Normalize MaterialNeed / dict / tuple into (ingredient, quantity, source_ref)."""
    if isinstance(material, dict):
        return (
            material["ingredient"],
            to_decimal(material["quantity"]),
            material.get("source_ref") or "",
        )
    if isinstance(material, (tuple, list)):
        source_ref = material[2] if len(material) > 2 else ""
        return material[0], to_decimal(material[1]), source_ref or ""
    return material.ingredient, to_decimal(material.quantity), material.source_ref or ""
