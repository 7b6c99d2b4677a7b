"""
Adjustment service -- create, stage, pick, consume, cancel.

Composed into Line following the mixin pattern.
"""

from batchline.models import AdjustmentOrder, Batch
from batchline.results import OperationResult
from batchline.services.execution import attempt


class LineAdjustments:
    """Adjustment (correction) order operations."""

    @classmethod
    def create_adjustment(cls, batch: Batch, materials, reason: str = "", user=None) -> OperationResult:
        """Cria ordem de ajuste. value = AdjustmentOrder."""
        return attempt("create_adjustment", AdjustmentOrder.create, batch, materials, reason, user=user)

    @classmethod
    def assign_staging(cls, order: AdjustmentOrder, location: str, user=None) -> OperationResult:
        return attempt("assign_staging", order.assign_staging, location, user=user)

    @classmethod
    def pick(cls, order: AdjustmentOrder, index: int, quantity, source_ref: str | None = None, user=None) -> OperationResult:
        """Separa material. value = AdjustmentMaterial."""
        return attempt("pick", order.pick, index, quantity, source_ref, user=user)

    @classmethod
    def consume_adjustment(cls, order: AdjustmentOrder, user=None) -> OperationResult:
        """Incorpora ao lote. value = lista de ConsumptionEntry."""
        return attempt("consume_adjustment", order.consume, user=user)

    @classmethod
    def cancel_adjustment(cls, order: AdjustmentOrder, reason: str = "", user=None) -> OperationResult:
        return attempt("cancel_adjustment", order.cancel, reason, user=user)
