"""
Batchline Service - Thin wrapper over models.

✅ LÓGICA DE NEGÓCIO ESTÁ NOS MODELOS (SIREL principle)
Esta classe é um thin wrapper que converte LineError em OperationResult,
para que a interface mostre o motivo exato sem tratar exceções.

Usage:
    from batchline import line

    result = line.create_run(recipe, 4500, batch_size=2000)
    run = result.value

    batch = line.start_next_batch(run).value
    line.record_consumption(batch, "A", "PAL-1", 300, user=operador)

    check = line.close_batch(batch)
    if not check.ok:
        for blocker in check.blockers:
            print(blocker.message)  # "B short by 1kg"

    # Or directly on the model (raises LineError)
    batch.record_consumption("A", "PAL-1", 300, user=operador)
"""

import logging

from batchline.models import AdjustmentOrder, Batch, BatchStatus, Recipe, Run, RunStatus
from batchline.services.adjustments import LineAdjustments
from batchline.services.execution import LineExecution
from batchline.services.runs import LineRuns

logger = logging.getLogger(__name__)


class Line(LineRuns, LineExecution, LineAdjustments):
    """
    Main API for Batchline (thin wrapper).

    ✅ Lógica de negócio está nos modelos!
    """

    # ══════════════════════════════════════════════════════════════
    # QUERIES
    # ══════════════════════════════════════════════════════════════

    @classmethod
    def find_recipe(cls, code: str) -> Recipe | None:
        return Recipe.objects.filter(code=code, is_active=True).first()

    @classmethod
    def get_run(cls, code: str) -> Run | None:
        return Run.objects.filter(code=code).first()

    @classmethod
    def get_ongoing_batch(cls, run: Run) -> Batch | None:
        return run.ongoing_batch

    @classmethod
    def get_active_runs(cls) -> list[Run]:
        """Runs not yet completed, oldest first."""
        return list(
            Run.objects.exclude(status=RunStatus.COMPLETED).order_by("created_at")
        )

    @classmethod
    def get_ongoing_batches(cls) -> list[Batch]:
        return list(
            Batch.objects.filter(status=BatchStatus.ONGOING)
            .select_related("run", "run__recipe")
            .order_by("started_at")
        )

    @classmethod
    def get_active_adjustment(cls, batch: Batch) -> AdjustmentOrder | None:
        return batch.active_adjustment


line = Line
