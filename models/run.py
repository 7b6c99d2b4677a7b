"""
Run model.

Run = ordem de produção de uma receita, dividida em lotes (Batch) criados
na inicialização e nunca reordenados.

✅ BUSINESS LOGIC ENCAPSULATED IN MODEL (SIREL principle)

At most one batch per run is ongoing. start_next_batch() holds the run row
lock while checking, and a conditional unique constraint on Batch backs it
at the database level.
"""

import logging
import uuid
from datetime import datetime
from decimal import ROUND_CEILING, Decimal

from django.db import models, transaction
from django.utils import timezone
from django.utils.translation import gettext_lazy as _
from simple_history.models import HistoricalRecords

from batchline.conf import get_default_batch_size
from batchline.exceptions import InvariantError, LineError
from batchline.models.batch import Batch, BatchStatus
from batchline.models.event import EventType, ProductionEvent
from batchline.models.sequence import CodeSequence
from batchline.results import CloseBlocker, CloseCheck
from batchline.services.scaling import to_decimal

logger = logging.getLogger(__name__)


class RunStatus(models.TextChoices):
    """Run lifecycle status."""

    PLANNED = "planned", _("Planejada")
    ONGOING = "ongoing", _("Em Produção")
    PAUSED = "paused", _("Pausada")
    COMPLETED = "completed", _("Concluída")


def _username(user) -> str:
    return user.username if user else ""


class Run(models.Model):
    """
    Produção de uma receita até um peso total.

    Status: PLANNED → ONGOING ⇄ PAUSED → COMPLETED

    Metadata structure:
        {
            'downtimes': [
                {
                    'reason': 'falta de energia',
                    'started_at': '2026-03-02T10:00:00+00:00',
                    'ended_at': '2026-03-02T10:25:00+00:00',
                    'duration_minutes': 25.0,
                    'user': 'joao'
                },
                ...
            ],
            'completed_by': 'supervisor'
        }
    """

    uuid = models.UUIDField(
        default=uuid.uuid4,
        editable=False,
        unique=True,
        verbose_name=_("UUID"),
    )
    code = models.CharField(
        unique=True,
        max_length=50,
        blank=True,
        verbose_name=_("Código"),
        help_text=_("Identificador único (auto-gerado se vazio)"),
    )
    recipe = models.ForeignKey(
        "batchline.Recipe",
        on_delete=models.PROTECT,
        related_name="runs",
        verbose_name=_("Receita"),
    )
    target_weight = models.DecimalField(
        max_digits=12,
        decimal_places=3,
        verbose_name=_("Peso Total"),
        help_text=_("Peso total a produzir, dividido em lotes"),
    )
    batch_size = models.DecimalField(
        max_digits=12,
        decimal_places=3,
        null=True,
        blank=True,
        verbose_name=_("Tamanho do Lote"),
    )

    status = models.CharField(
        max_length=20,
        choices=RunStatus.choices,
        default=RunStatus.PLANNED,
        db_index=True,
        verbose_name=_("Status"),
    )

    started_at = models.DateTimeField(
        null=True,
        blank=True,
        verbose_name=_("Início Real"),
    )
    completed_at = models.DateTimeField(
        null=True,
        blank=True,
        verbose_name=_("Fim Real"),
    )

    metadata = models.JSONField(
        default=dict,
        blank=True,
        verbose_name=_("Metadados"),
        help_text=_("Dados adicionais: downtimes, completed_by, etc."),
    )
    notes = models.TextField(
        blank=True,
        verbose_name=_("Observações"),
    )

    created_by = models.CharField(
        max_length=255,
        blank=True,
        verbose_name=_("Criado por"),
        help_text=_("Ex: 'user:joao', 'api:mes-01'"),
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
        db_table = "batchline_run"
        verbose_name = _("Produção")
        verbose_name_plural = _("Produções")
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["recipe", "status"], name="batchline_run_recipe_idx"),
        ]

    def __str__(self) -> str:
        return f"{self.code} - {self.recipe.name}"

    def save(self, *args, **kwargs):
        """Override save to auto-generate code (RUN-YYYY-NNNNN)."""
        if not self.code:
            self.code = CodeSequence.next_code("RUN")
        super().save(*args, **kwargs)

    # ══════════════════════════════════════════════════════════════
    # BATCH PLANNING
    # ══════════════════════════════════════════════════════════════

    def initialize(self, batch_size=None) -> list[Batch]:
        """
        Divide o peso total em lotes.

        ceil(target_weight / batch_size) planned batches; the last one
        carries the remainder.

        Example:
            run(target_weight=4500).initialize(2000)
            # -> 2000, 2000, 500
        """
        size = to_decimal(batch_size, field="batch_size") if batch_size is not None else (
            self.batch_size or get_default_batch_size()
        )
        if size <= 0:
            raise LineError("INVALID_QUANTITY", batch_size=str(size))
        target = to_decimal(self.target_weight, field="target_weight")
        if target <= 0:
            raise LineError("INVALID_QUANTITY", target_weight=str(target))

        count = int((target / size).to_integral_value(rounding=ROUND_CEILING))

        with transaction.atomic():
            Run.objects.select_for_update().only("pk").get(pk=self.pk)
            if self.batches.exists():
                raise InvariantError("ALREADY_INITIALIZED", run=self.code)

            remaining = target
            batches = []
            for number in range(1, count + 1):
                weight = min(size, remaining)
                remaining -= weight
                batches.append(Batch.objects.create(run=self, number=number, target_weight=weight))

            self.batch_size = size
            self.save(update_fields=["batch_size", "updated_at"])

        logger.info(
            f"Run {self.code}: initialized with {count} batches of up to {size}",
            extra={"run": self.pk, "code": self.code, "batches": count, "batch_size": float(size)},
        )
        return batches

    @property
    def ongoing_batch(self) -> Batch | None:
        return self.batches.filter(status=BatchStatus.ONGOING).first()

    @property
    def progress(self) -> dict:
        """
        Progress based on completed batches.

        Returns:
            {'completed': 2, 'total': 3, 'percentage': 66}
        """
        total = self.batches.count()
        completed = self.batches.filter(status=BatchStatus.COMPLETED).count()
        return {
            "completed": completed,
            "total": total,
            "percentage": int(completed / total * 100) if total else 0,
        }

    # ══════════════════════════════════════════════════════════════
    # LIFECYCLE
    # ══════════════════════════════════════════════════════════════

    def start_next_batch(self, user=None) -> Batch:
        """
        Inicia o próximo lote planejado.

        Raises:
            InvariantError: RUN_PAUSED, INVALID_STATUS, BATCH_ALREADY_ONGOING,
                NO_PLANNED_BATCH
        """
        with transaction.atomic():
            Run.objects.select_for_update().only("pk").get(pk=self.pk)
            self.refresh_from_db()

            if self.status == RunStatus.PAUSED:
                raise InvariantError("RUN_PAUSED", run=self.code)
            if self.status == RunStatus.COMPLETED:
                raise InvariantError("INVALID_STATUS", run=self.code, status=self.status)

            ongoing = self.ongoing_batch
            if ongoing is not None:
                raise InvariantError("BATCH_ALREADY_ONGOING", run=self.code, batch=ongoing.number)

            batch = self.batches.filter(status=BatchStatus.PLANNED).order_by("number").first()
            if batch is None:
                raise InvariantError("NO_PLANNED_BATCH", run=self.code)

            now = timezone.now()
            batch.status = BatchStatus.ONGOING
            batch.started_at = now
            batch.save(update_fields=["status", "started_at", "updated_at"])

            if self.status == RunStatus.PLANNED:
                self.status = RunStatus.ONGOING
                self.started_at = now
                self.save(update_fields=["status", "started_at", "updated_at"])

        logger.info(
            f"Run {self.code}: batch {batch.number} started",
            extra={"run": self.pk, "batch": batch.pk, "number": batch.number, "user": _username(user) or None},
        )

        from batchline.signals import batch_started

        batch_started.send(sender=Batch, batch=batch, run=self, user=user)
        return batch

    def pause(self, reason: str = "", user=None) -> None:
        """Pausa produção e abre um registro de parada."""
        with transaction.atomic():
            Run.objects.select_for_update().only("pk").get(pk=self.pk)
            self.refresh_from_db()
            if self.status != RunStatus.ONGOING:
                raise InvariantError("INVALID_STATUS", run=self.code, status=self.status)

            self.status = RunStatus.PAUSED
            self.metadata.setdefault("downtimes", []).append(
                {
                    "reason": reason,
                    "started_at": timezone.now().isoformat(),
                    "ended_at": None,
                    "duration_minutes": None,
                    "user": _username(user) or None,
                }
            )
            self.save(update_fields=["status", "metadata", "updated_at"])

        logger.info(f"Run {self.code} paused: {reason}", extra={"run": self.pk, "reason": reason})

    def resume(self, user=None) -> None:
        """Retoma produção pausada e fecha o registro de parada."""
        with transaction.atomic():
            Run.objects.select_for_update().only("pk").get(pk=self.pk)
            self.refresh_from_db()
            if self.status != RunStatus.PAUSED:
                raise InvariantError("INVALID_STATUS", run=self.code, status=self.status)

            self.status = RunStatus.ONGOING
            downtime = self.open_downtime
            if downtime is not None:
                now = timezone.now()
                started = datetime.fromisoformat(downtime["started_at"])
                downtime["ended_at"] = now.isoformat()
                downtime["duration_minutes"] = round((now - started).total_seconds() / 60, 1)
            self.save(update_fields=["status", "metadata", "updated_at"])

        logger.info(f"Run {self.code} resumed", extra={"run": self.pk})

    @property
    def downtimes(self) -> list[dict]:
        return self.metadata.get("downtimes", [])

    @property
    def open_downtime(self) -> dict | None:
        for downtime in reversed(self.downtimes):
            if downtime.get("ended_at") is None:
                return downtime
        return None

    def check_close(self) -> CloseCheck:
        """Every batch must be completed and the run must not be paused."""
        blockers = []

        if self.status == RunStatus.COMPLETED:
            blockers.append(CloseBlocker(code="INVALID_STATUS", message="run is completed"))
        elif self.status == RunStatus.PAUSED:
            blockers.append(CloseBlocker(code="RUN_PAUSED", message="run is paused"))

        batches = list(self.batches.order_by("number"))
        if not batches:
            blockers.append(CloseBlocker(code="NO_BATCHES", message="run has no batches"))

        for batch in batches:
            if batch.status != BatchStatus.COMPLETED:
                blockers.append(
                    CloseBlocker(
                        code="BATCH_OPEN",
                        message=f"batch {batch.number} is {batch.status}",
                        batch_number=batch.number,
                    )
                )

        return CloseCheck(ok=not blockers, blockers=blockers)

    def request_close(self, user=None) -> CloseCheck:
        """
        Finaliza a produção se todos os lotes estiverem concluídos.

        Returns:
            CloseCheck listing each open batch when refused.
        """
        with transaction.atomic():
            Run.objects.select_for_update().only("pk").get(pk=self.pk)
            self.refresh_from_db()

            check = self.check_close()
            if not check.ok:
                logger.info(
                    f"Run {self.code}: close refused ({', '.join(check.messages)})",
                    extra={"run": self.pk, "blockers": check.codes},
                )
                return check

            self.status = RunStatus.COMPLETED
            self.completed_at = timezone.now()
            self.metadata["completed_by"] = _username(user) or None
            self.save(update_fields=["status", "completed_at", "metadata", "updated_at"])

        logger.info(
            f"Run {self.code} completed",
            extra={"run": self.pk, "code": self.code},
        )

        from batchline.signals import run_completed

        run_completed.send(sender=self.__class__, run=self, user=user)
        return check

    # ══════════════════════════════════════════════════════════════
    # EVENT LOG
    # ══════════════════════════════════════════════════════════════

    def _assert_events_writable(self):
        if self.status == RunStatus.COMPLETED:
            raise InvariantError("INVALID_STATUS", run=self.code, status=self.status)

    def add_event(self, event_type: str, description: str = "", user=None) -> ProductionEvent:
        """
        Registra evento de produção.

        Raises:
            LineError: INVALID_EVENT_TYPE, DESCRIPTION_REQUIRED (type "other")
            InvariantError: INVALID_STATUS (run completed)
        """
        if event_type not in EventType.values:
            raise LineError("INVALID_EVENT_TYPE", event_type=event_type)
        description = (description or "").strip()
        if event_type == EventType.OTHER and not description:
            raise LineError("DESCRIPTION_REQUIRED", event_type=event_type)

        self.refresh_from_db(fields=["status"])
        self._assert_events_writable()

        event = ProductionEvent.objects.create(
            run=self,
            event_type=event_type,
            description=description,
            author=_username(user),
        )
        logger.info(
            f"Run {self.code}: event {event_type}",
            extra={"run": self.pk, "event": event.pk, "event_type": event_type},
        )
        return event

    def delete_event(self, event_id: int, user=None) -> None:
        self.refresh_from_db(fields=["status"])
        self._assert_events_writable()

        event = self.events.filter(pk=event_id).first()
        if event is None:
            raise LineError("EVENT_NOT_FOUND", run=self.code, event=event_id)

        event.delete()
        logger.info(
            f"Run {self.code}: event {event_id} deleted",
            extra={"run": self.pk, "event": event_id, "user": _username(user) or None},
        )
