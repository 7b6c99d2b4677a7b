"""
Run service -- create, start next batch, pause, resume, close, events.

Composed into Line following the mixin pattern.
"""

import logging

from django.db import transaction

from batchline.exceptions import LineError
from batchline.models import Recipe, Run
from batchline.results import CloseCheck, OperationResult
from batchline.services.execution import attempt
from batchline.services.scaling import to_decimal

logger = logging.getLogger(__name__)


class LineRuns:
    """Run lifecycle operations."""

    @classmethod
    def create_run(
        cls,
        recipe: Recipe,
        target_weight,
        batch_size=None,
        user=None,
        notes: str = "",
    ) -> OperationResult:
        """
        Cria produção e seus lotes numa única transação.

        Example:
            result = line.create_run(recipe, 4500, batch_size=2000)
            result.value.batches.count()  # 3
        """

        def _create() -> Run:
            weight = to_decimal(target_weight, field="target_weight")
            if weight <= 0:
                raise LineError("INVALID_QUANTITY", target_weight=str(weight))
            if not recipe.is_active:
                raise LineError("RECIPE_INACTIVE", recipe=recipe.code)

            with transaction.atomic():
                run = Run.objects.create(
                    recipe=recipe,
                    target_weight=weight,
                    notes=notes,
                    created_by=user.username if user else "",
                )
                run.initialize(batch_size)
            return run

        return attempt("create_run", _create)

    @classmethod
    def start_next_batch(cls, run: Run, user=None) -> OperationResult:
        """Inicia o próximo lote. value = Batch."""
        return attempt("start_next_batch", run.start_next_batch, user=user)

    @classmethod
    def pause(cls, run: Run, reason: str = "", user=None) -> OperationResult:
        return attempt("pause", run.pause, reason, user=user)

    @classmethod
    def resume(cls, run: Run, user=None) -> OperationResult:
        return attempt("resume", run.resume, user=user)

    @classmethod
    def close_run(cls, run: Run, user=None) -> CloseCheck:
        return run.request_close(user=user)

    @classmethod
    def add_event(cls, run: Run, event_type: str, description: str = "", user=None) -> OperationResult:
        return attempt("add_event", run.add_event, event_type, description, user=user)

    @classmethod
    def delete_event(cls, run: Run, event_id: int, user=None) -> OperationResult:
        return attempt("delete_event", run.delete_event, event_id, user=user)
