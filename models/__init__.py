"""
Batchline Models.

Core models for batch execution:
- Recipe: fórmula com quantidades não escaladas
- RecipeIngredient: ingrediente da receita
- Run: produção de uma receita, dividida em lotes
- Batch: lote com ledger de consumo e portão de qualidade
- ConsumptionEntry: lançamento do ledger (anulável, nunca excluído)
- AdjustmentOrder / AdjustmentMaterial: ordem de correção pós-NIRS
- ProductionEvent: log de eventos da produção
- CodeSequence: contador atômico para códigos RUN-/ADJ-
"""

from batchline.models.sequence import CodeSequence
from batchline.models.recipe import Recipe, RecipeIngredient
from batchline.models.consumption import ConsumptionEntry
from batchline.models.batch import Batch, BatchStatus, NirsStatus, SamplingStatus
from batchline.models.event import EventType, ProductionEvent
from batchline.models.run import Run, RunStatus
from batchline.models.adjustment import (
    ACTIVE_STATUSES,
    AdjustmentMaterial,
    AdjustmentOrder,
    AdjustmentStatus,
)

__all__ = [
    "CodeSequence",
    "Recipe",
    "RecipeIngredient",
    "Run",
    "RunStatus",
    "Batch",
    "BatchStatus",
    "NirsStatus",
    "SamplingStatus",
    "ConsumptionEntry",
    "AdjustmentOrder",
    "AdjustmentMaterial",
    "AdjustmentStatus",
    "ACTIVE_STATUSES",
    "EventType",
    "ProductionEvent",
]
