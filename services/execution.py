"""
Execution service -- consumption ledger, quality gate, batch close.

Composed into Line following the mixin pattern. All methods are
@classmethod so the mixin can be composed into Line without instantiation.

Every mutating method returns an OperationResult instead of raising: the
model method raises LineError, the mixin turns it into a failed result.
"""

import logging

from batchline.exceptions import LineError
from batchline.models import Batch
from batchline.results import CloseCheck, IngredientProgress, OperationResult

logger = logging.getLogger(__name__)


def attempt(operation: str, fn, *args, **kwargs) -> OperationResult:
    """Run fn, converting a LineError into OperationResult.failed()."""
    try:
        value = fn(*args, **kwargs)
    except LineError as exc:
        logger.warning(
            f"{operation} rejected: {exc}",
            extra={"operation": operation, "code": exc.code, "kind": exc.kind, "details": exc.details},
        )
        return OperationResult.failed(exc)
    return OperationResult.ok(value)


class LineExecution:
    """
    Batch execution operations.

    Thin wrappers over Batch model methods.
    """

    # ── Consumption ledger ──

    @classmethod
    def record_consumption(
        cls, batch: Batch, ingredient: str, source_ref: str, quantity, user=None, claim=None
    ) -> OperationResult:
        """Registra consumo. value = ConsumptionEntry."""
        return attempt(
            "record_consumption",
            batch.record_consumption,
            ingredient,
            source_ref,
            quantity,
            user=user,
            claim=claim,
        )

    @classmethod
    def confirm_weight(cls, batch: Batch, ingredient: str, source_ref: str, total, user=None) -> OperationResult:
        """Confirma peso total. value = ConsumptionEntry do delta, ou None."""
        return attempt("confirm_weight", batch.confirm_weight, ingredient, source_ref, total, user=user)

    @classmethod
    def annul(cls, batch: Batch, entry_id: int, user=None) -> OperationResult:
        return attempt("annul", batch.annul, entry_id, user=user)

    @classmethod
    def undo_last(cls, batch: Batch, ingredient: str, user=None) -> OperationResult:
        return attempt("undo_last", batch.undo_last, ingredient, user=user)

    @classmethod
    def set_weighing_finished(cls, batch: Batch, ingredient: str, finished: bool = True, user=None) -> OperationResult:
        return attempt("set_weighing_finished", batch.set_weighing_finished, ingredient, finished, user=user)

    # ── Quality gate ──

    @classmethod
    def record_nirs(cls, batch: Batch, status: str, user=None) -> OperationResult:
        return attempt("record_nirs", batch.record_nirs, status, user=user)

    @classmethod
    def record_sampling(cls, batch: Batch, user=None) -> OperationResult:
        return attempt("record_sampling", batch.record_sampling, user=user)

    # ── Close ──

    @classmethod
    def close_batch(cls, batch: Batch, user=None) -> CloseCheck:
        """Solicita fechamento do lote. Blockers listam o que falta."""
        return batch.request_close(user=user)

    # ── Queries ──

    @classmethod
    def progress(cls, batch: Batch) -> list[IngredientProgress]:
        return batch.progress()
