"""
Batch model.

Batch = unidade de execução dentro de uma produção (Run). Carrega o ledger
de consumo, a sinalização de pesagem concluída e o portão de qualidade
(NIRS + amostragem).

✅ BUSINESS LOGIC ENCAPSULATED IN MODEL (SIREL principle)

Every write goes through a row lock on the batch (transaction.atomic +
select_for_update) and, for ledger writes, through an ingredient claim
shared with the auto-weighing loop.
"""

import logging
from decimal import Decimal

from django.db import models, transaction
from django.db.models import Q
from django.utils import timezone
from django.utils.translation import gettext_lazy as _
from simple_history.models import HistoricalRecords

from batchline.conf import get_tolerance
from batchline.exceptions import InvariantError, LineError
from batchline.models.consumption import ConsumptionEntry
from batchline.results import (
    CloseBlocker,
    CloseCheck,
    IngredientProgress,
    ScaledIngredient,
    format_kg,
)
from batchline.services import sources
from batchline.services.claims import Claim, claims
from batchline.services.scaling import to_decimal

logger = logging.getLogger(__name__)


class BatchStatus(models.TextChoices):
    PLANNED = "planned", _("Planejado")
    ONGOING = "ongoing", _("Em Andamento")
    COMPLETED = "completed", _("Concluído")


class NirsStatus(models.TextChoices):
    PENDING = "pending", _("Pendente")
    OK = "ok", _("Aprovado")
    NOK = "nok", _("Reprovado")


class SamplingStatus(models.TextChoices):
    PENDING = "pending", _("Pendente")
    OK = "ok", _("Coletada")


def _username(user) -> str:
    return user.username if user else ""


class Batch(models.Model):
    """
    Lote de uma produção.

    Status: PLANNED → ONGOING → COMPLETED

    Two independent flags per ingredient:
        - numeric: effective consumption ≥ tolerance × requirement
        - sign-off: ingredient listed in weighing_finished

    Metadata structure:
        {
            'quality_log': [
                {'field': 'nirs', 'status': 'nok', 'at': '...', 'user': 'lab'},
                ...
            ],
            'completed_by': 'supervisor'
        }
    """

    run = models.ForeignKey(
        "batchline.Run",
        on_delete=models.CASCADE,
        related_name="batches",
        verbose_name=_("Produção"),
    )
    number = models.PositiveIntegerField(
        verbose_name=_("Número"),
        help_text=_("Sequencial dentro da produção, começa em 1"),
    )
    target_weight = models.DecimalField(
        max_digits=12,
        decimal_places=3,
        verbose_name=_("Peso Alvo"),
    )

    status = models.CharField(
        max_length=20,
        choices=BatchStatus.choices,
        default=BatchStatus.PLANNED,
        db_index=True,
        verbose_name=_("Status"),
    )

    # Quality gate
    nirs_status = models.CharField(
        max_length=10,
        choices=NirsStatus.choices,
        default=NirsStatus.PENDING,
        verbose_name=_("NIRS"),
    )
    nirs_recorded_at = models.DateTimeField(
        null=True,
        blank=True,
        verbose_name=_("NIRS registrado em"),
    )
    sampling_status = models.CharField(
        max_length=10,
        choices=SamplingStatus.choices,
        default=SamplingStatus.PENDING,
        verbose_name=_("Amostragem"),
    )

    weighing_finished = models.JSONField(
        default=list,
        blank=True,
        verbose_name=_("Pesagem Concluída"),
        help_text=_("Ingredientes confirmados pelo operador"),
    )

    started_at = models.DateTimeField(
        null=True,
        blank=True,
        verbose_name=_("Início"),
    )
    completed_at = models.DateTimeField(
        null=True,
        blank=True,
        verbose_name=_("Fim"),
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
        db_table = "batchline_batch"
        verbose_name = _("Lote")
        verbose_name_plural = _("Lotes")
        ordering = ["run", "number"]
        constraints = [
            models.UniqueConstraint(
                fields=["run", "number"],
                name="batchline_batch_unique_number",
            ),
            models.UniqueConstraint(
                fields=["run"],
                condition=Q(status="ongoing"),
                name="batchline_batch_one_ongoing_per_run",
            ),
        ]

    def __str__(self) -> str:
        return self.code

    @property
    def code(self) -> str:
        return f"{self.run.code}-B{self.number}"

    # ══════════════════════════════════════════════════════════════
    # QUERIES
    # ══════════════════════════════════════════════════════════════

    def requirements(self) -> list[ScaledIngredient]:
        """Recipe scaled to this batch's target weight."""
        return self.run.recipe.scale(self.target_weight)

    def consumed_by_ingredient(self) -> dict[str, Decimal]:
        """Effective consumption: fold over non-annulled ledger entries."""
        totals: dict[str, Decimal] = {}
        for entry in self.consumption_entries.effective():
            totals[entry.ingredient] = totals.get(entry.ingredient, Decimal("0")) + entry.quantity
        return totals

    def consumed_for(self, ingredient: str) -> Decimal:
        return self.consumed_by_ingredient().get(ingredient, Decimal("0"))

    def progress(self) -> list[IngredientProgress]:
        """Per-ingredient state, in recipe order."""
        tolerance = get_tolerance()
        consumed = self.consumed_by_ingredient()
        finished = set(self.weighing_finished)

        result = []
        for req in self.requirements():
            amount = consumed.get(req.name, Decimal("0"))
            result.append(
                IngredientProgress(
                    name=req.name,
                    required=req.required,
                    consumed=amount,
                    within_tolerance=amount >= req.required * tolerance,
                    weighing_finished=req.name in finished,
                )
            )
        return result

    def shortages(self) -> list[IngredientProgress]:
        return [p for p in self.progress() if not p.within_tolerance]

    def is_weighing_finished(self, ingredient: str) -> bool:
        return ingredient in self.weighing_finished

    @property
    def active_adjustment(self):
        """Non-terminal AdjustmentOrder for this batch, if any."""
        from batchline.models.adjustment import ACTIVE_STATUSES

        return self.adjustments.filter(status__in=ACTIVE_STATUSES).first()

    @property
    def nirs_healed(self) -> bool:
        """
        True when a rejected NIRS was compensated by a completed correction.

        Deliberate rule: nirs_status stays "nok" for audit, and the batch is
        treated as released once an AdjustmentOrder completed after the
        latest rejection was recorded. A later re-test that records "nok"
        again moves nirs_recorded_at forward and un-heals the batch.
        """
        from batchline.models.adjustment import AdjustmentStatus

        if self.nirs_status != NirsStatus.NOK or self.nirs_recorded_at is None:
            return False
        return self.adjustments.filter(
            status=AdjustmentStatus.COMPLETED,
            completed_at__gte=self.nirs_recorded_at,
        ).exists()

    @property
    def nirs_released(self) -> bool:
        return self.nirs_status == NirsStatus.OK or self.nirs_healed

    def check_close(self) -> CloseCheck:
        """
        Evaluate the close invariant without changing anything.

        Blockers:
            INVALID_STATUS    batch is not ongoing
            INGREDIENT_SHORT  one per ingredient below tolerance ("B short by 1kg")
            NIRS_PENDING      no NIRS result yet
            NIRS_REJECTED     NIRS nok and no completed correction ("quality gate unresolved")
            SAMPLING_PENDING  sample not taken
        """
        blockers = []

        if self.status != BatchStatus.ONGOING:
            blockers.append(
                CloseBlocker(
                    code="INVALID_STATUS",
                    message=f"batch is {self.status}",
                    batch_number=self.number,
                )
            )

        for p in self.shortages():
            blockers.append(
                CloseBlocker(
                    code="INGREDIENT_SHORT",
                    message=f"{p.name} short by {format_kg(p.shortage)}kg",
                    ingredient=p.name,
                    required=p.required,
                    consumed=p.consumed,
                    batch_number=self.number,
                )
            )

        if self.nirs_status == NirsStatus.PENDING:
            blockers.append(
                CloseBlocker(code="NIRS_PENDING", message="NIRS result pending", batch_number=self.number)
            )
        elif not self.nirs_released:
            blockers.append(
                CloseBlocker(code="NIRS_REJECTED", message="quality gate unresolved", batch_number=self.number)
            )

        if self.sampling_status != SamplingStatus.OK:
            blockers.append(
                CloseBlocker(code="SAMPLING_PENDING", message="sampling pending", batch_number=self.number)
            )

        return CloseCheck(ok=not blockers, blockers=blockers)

    # ══════════════════════════════════════════════════════════════
    # LOCKING
    # ══════════════════════════════════════════════════════════════

    def _lock(self):
        """Lock the batch row and reload state. Call inside transaction.atomic()."""
        Batch.objects.select_for_update().only("pk").get(pk=self.pk)
        self.refresh_from_db()

    def _assert_writable(self):
        """Ledger writes need an ongoing batch in a run that is not paused."""
        from batchline.models.run import Run, RunStatus

        if self.status != BatchStatus.ONGOING:
            raise InvariantError("INVALID_STATUS", batch=self.code, status=self.status)

        run_status = Run.objects.filter(pk=self.run_id).values_list("status", flat=True).get()
        if run_status == RunStatus.PAUSED:
            raise InvariantError("RUN_PAUSED", batch=self.code, run=self.run.code)

    def _assert_recipe_ingredient(self, ingredient: str):
        if ingredient not in {req.name for req in self.requirements()}:
            raise LineError("UNKNOWN_INGREDIENT", batch=self.code, ingredient=ingredient)

    # ══════════════════════════════════════════════════════════════
    # CONSUMPTION LEDGER
    # ══════════════════════════════════════════════════════════════

    def record_consumption(
        self,
        ingredient: str,
        source_ref: str,
        quantity: Decimal | int | float | str,
        user=None,
        claim: Claim | None = None,
    ) -> ConsumptionEntry:
        """
        Registra consumo de um ingrediente.

        Args:
            ingredient: Nome do ingrediente (deve estar na receita)
            source_ref: Palete/lote de origem
            quantity: Quantidade assinada; negativa = devolução
            user: Usuário que registrou (opcional)
            claim: Claim já obtido pelo chamador (auto-weighing). Sem claim,
                o ingrediente é reivindicado só durante este registro.

        Raises:
            LineError: INVALID_QUANTITY, UNKNOWN_INGREDIENT, SOURCE_*
            InvariantError: INVALID_STATUS, RUN_PAUSED, NEGATIVE_BALANCE,
                INGREDIENT_BUSY
            ExternalError: SOURCE_NOT_FOUND, SOURCE_BACKEND_FAILED

        Example:
            batch.record_consumption("A", "PAL-1", 300, user=operador)
            batch.record_consumption("A", "PAL-1", -2)  # devolução
        """
        quantity = to_decimal(quantity)
        if quantity == 0:
            raise LineError("INVALID_QUANTITY", quantity=str(quantity))

        if claim is None:
            with claims.hold(self.pk, ingredient, owner=_username(user)):
                return self._append_entry(ingredient, source_ref, quantity, user)

        claims.verify(claim, self.pk, ingredient)
        return self._append_entry(ingredient, source_ref, quantity, user)

    def _append_entry(self, ingredient, source_ref, quantity, user) -> ConsumptionEntry:
        with transaction.atomic():
            self._lock()
            self._assert_writable()
            self._assert_recipe_ingredient(ingredient)

            current = self.consumed_for(ingredient)
            if current + quantity < 0:
                raise InvariantError(
                    "NEGATIVE_BALANCE",
                    ingredient=ingredient,
                    consumed=str(current),
                    quantity=str(quantity),
                )

            if quantity > 0:
                sources.validate_source(source_ref, ingredient, quantity)
                sources.withdraw(source_ref, quantity, self.code)
            else:
                if not source_ref:
                    raise LineError("SOURCE_REQUIRED", ingredient=ingredient)
                sources.restore(source_ref, -quantity, self.code)

            entry = ConsumptionEntry.objects.create(
                batch=self,
                ingredient=ingredient,
                source_ref=source_ref,
                quantity=quantity,
                created_by=_username(user),
            )

        logger.info(
            f"Batch {self.code}: {ingredient} {quantity} from {source_ref}",
            extra={
                "batch": self.pk,
                "code": self.code,
                "ingredient": ingredient,
                "source_ref": source_ref,
                "quantity": float(quantity),
                "user": _username(user) or None,
            },
        )
        return entry

    def annul(self, entry_id: int, user=None) -> ConsumptionEntry:
        """
        Anula um lançamento (flag, nunca exclusão).

        Restores the source and reopens the ingredient (removes it from
        weighing_finished). Annulling a return takes the quantity back out
        of the source, so the source must still hold it.

        Raises:
            LineError: ENTRY_NOT_FOUND, INSUFFICIENT_SOURCE, SOURCE_BLOCKED
            InvariantError: ALREADY_ANNULLED, ADJUSTMENT_ENTRY,
                NEGATIVE_BALANCE, INVALID_STATUS, RUN_PAUSED, INGREDIENT_BUSY
        """
        entry = self.consumption_entries.filter(pk=entry_id).first()
        if entry is None:
            raise LineError("ENTRY_NOT_FOUND", batch=self.code, entry=entry_id)

        with claims.hold(self.pk, entry.ingredient, owner=_username(user)):
            with transaction.atomic():
                self._lock()
                self._assert_writable()

                entry.refresh_from_db()
                if entry.is_annulled:
                    raise InvariantError("ALREADY_ANNULLED", entry=entry.pk)
                if entry.is_adjustment:
                    raise InvariantError(
                        "ADJUSTMENT_ENTRY",
                        entry=entry.pk,
                        adjustment=entry.adjustment.code,
                    )

                current = self.consumed_for(entry.ingredient)
                if current - entry.quantity < 0:
                    raise InvariantError(
                        "NEGATIVE_BALANCE",
                        ingredient=entry.ingredient,
                        consumed=str(current),
                        quantity=str(-entry.quantity),
                    )

                if entry.quantity > 0:
                    sources.restore(entry.source_ref, entry.quantity, self.code)
                else:
                    sources.validate_source(entry.source_ref, entry.ingredient, -entry.quantity)
                    sources.withdraw(entry.source_ref, -entry.quantity, self.code)

                entry.is_annulled = True
                entry.annulled_at = timezone.now()
                entry.annulled_by = _username(user)
                entry.save(update_fields=["is_annulled", "annulled_at", "annulled_by"])

                if entry.ingredient in self.weighing_finished:
                    self.weighing_finished = [i for i in self.weighing_finished if i != entry.ingredient]
                    self.save(update_fields=["weighing_finished", "updated_at"])

        logger.info(
            f"Batch {self.code}: entry {entry.pk} ({entry.ingredient} {entry.quantity}) annulled",
            extra={
                "batch": self.pk,
                "entry": entry.pk,
                "ingredient": entry.ingredient,
                "user": _username(user) or None,
            },
        )
        return entry

    def undo_last(self, ingredient: str, user=None) -> ConsumptionEntry:
        """Anula o lançamento manual mais recente do ingrediente."""
        entry = (
            self.consumption_entries.effective()
            .for_ingredient(ingredient)
            .filter(adjustment__isnull=True)
            .order_by("-created_at", "-id")
            .first()
        )
        if entry is None:
            raise LineError("NOTHING_TO_UNDO", batch=self.code, ingredient=ingredient)
        return self.annul(entry.pk, user=user)

    def confirm_weight(
        self,
        ingredient: str,
        source_ref: str,
        total: Decimal | int | float | str,
        user=None,
    ) -> ConsumptionEntry | None:
        """
        Confirma o peso total lido na balança.

        Appends the delta between the typed total and the current effective
        consumption (if any), then signs the ingredient off.

        Example:
            batch.confirm_weight("B", "PAL-7", 200)  # consumed 199 → +1 entry
        """
        total = to_decimal(total, field="total")
        if total < 0:
            raise LineError("INVALID_QUANTITY", total=str(total))

        with claims.hold(self.pk, ingredient, owner=_username(user)) as claim:
            with transaction.atomic():
                self._lock()
                delta = total - self.consumed_for(ingredient)
                entry = None
                if delta != 0:
                    entry = self.record_consumption(ingredient, source_ref, delta, user=user, claim=claim)
                self.set_weighing_finished(ingredient, True, user=user)

        return entry

    def set_weighing_finished(self, ingredient: str, finished: bool = True, user=None) -> None:
        """
        Sinalização do operador: pesagem do ingrediente concluída.

        Independent of the numeric tolerance check.
        """
        with transaction.atomic():
            self._lock()
            if self.status != BatchStatus.ONGOING:
                raise InvariantError("INVALID_STATUS", batch=self.code, status=self.status)
            self._assert_recipe_ingredient(ingredient)

            current = list(self.weighing_finished)
            if finished and ingredient not in current:
                current.append(ingredient)
            elif not finished and ingredient in current:
                current.remove(ingredient)
            else:
                return

            self.weighing_finished = current
            self.save(update_fields=["weighing_finished", "updated_at"])

        logger.info(
            f"Batch {self.code}: weighing {'finished' if finished else 'reopened'} for {ingredient}",
            extra={"batch": self.pk, "ingredient": ingredient, "user": _username(user) or None},
        )

    # ══════════════════════════════════════════════════════════════
    # QUALITY GATE
    # ══════════════════════════════════════════════════════════════

    def _log_quality(self, field: str, status: str, user=None):
        self.metadata.setdefault("quality_log", []).append(
            {
                "field": field,
                "status": status,
                "at": timezone.now().isoformat(),
                "user": _username(user) or None,
            }
        )

    def record_nirs(self, status: str, user=None) -> None:
        """
        Registra resultado NIRS ("ok" ou "nok").

        Settable once. A new result is accepted only as a re-test of a
        rejected batch whose correction already completed.

        nok emits quality_rejected, the trigger for adjustment orders.
        It does not block consumption.
        """
        if status not in (NirsStatus.OK, NirsStatus.NOK):
            raise LineError("INVALID_NIRS_STATUS", status=status)

        with transaction.atomic():
            self._lock()
            if self.status != BatchStatus.ONGOING:
                raise InvariantError("INVALID_STATUS", batch=self.code, status=self.status)

            if self.nirs_status != NirsStatus.PENDING and not self.nirs_healed:
                raise InvariantError(
                    "QUALITY_ALREADY_RECORDED",
                    batch=self.code,
                    field="nirs",
                    status=self.nirs_status,
                )

            self.nirs_status = status
            self.nirs_recorded_at = timezone.now()
            self._log_quality("nirs", status, user)
            self.save(update_fields=["nirs_status", "nirs_recorded_at", "metadata", "updated_at"])

        logger.info(
            f"Batch {self.code}: NIRS {status}",
            extra={"batch": self.pk, "code": self.code, "nirs": status},
        )

        if status == NirsStatus.NOK:
            from batchline.signals import quality_rejected

            quality_rejected.send(sender=self.__class__, batch=self, user=user)

    def record_sampling(self, user=None) -> None:
        """Registra coleta de amostra (pending → ok, uma vez)."""
        with transaction.atomic():
            self._lock()
            if self.status != BatchStatus.ONGOING:
                raise InvariantError("INVALID_STATUS", batch=self.code, status=self.status)
            if self.sampling_status != SamplingStatus.PENDING:
                raise InvariantError(
                    "QUALITY_ALREADY_RECORDED",
                    batch=self.code,
                    field="sampling",
                    status=self.sampling_status,
                )

            self.sampling_status = SamplingStatus.OK
            self._log_quality("sampling", SamplingStatus.OK, user)
            self.save(update_fields=["sampling_status", "metadata", "updated_at"])

        logger.info(f"Batch {self.code}: sampling ok", extra={"batch": self.pk})

    # ══════════════════════════════════════════════════════════════
    # CLOSE
    # ══════════════════════════════════════════════════════════════

    def request_close(self, user=None) -> CloseCheck:
        """
        Finaliza o lote se o invariante de fechamento for satisfeito.

        Returns:
            CloseCheck(ok=True) after the transition to COMPLETED, or
            CloseCheck(ok=False, blockers=[...]) with state unchanged.
        """
        with transaction.atomic():
            self._lock()
            check = self.check_close()
            if not check.ok:
                logger.info(
                    f"Batch {self.code}: close refused ({', '.join(check.messages)})",
                    extra={"batch": self.pk, "blockers": check.codes},
                )
                return check

            self.status = BatchStatus.COMPLETED
            self.completed_at = timezone.now()
            self.metadata["completed_by"] = _username(user) or None
            self.save(update_fields=["status", "completed_at", "metadata", "updated_at"])

        logger.info(
            f"Batch {self.code} completed",
            extra={"batch": self.pk, "code": self.code, "run": self.run_id},
        )

        from batchline.signals import batch_completed

        batch_completed.send(sender=self.__class__, batch=self, user=user)
        return check
