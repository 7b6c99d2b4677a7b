"""
Correction Backend Protocol.

A correction backend decides which materials compensate a batch that failed
its NIRS check. When configured (BATCHLINE["CORRECTION_BACKEND"]), the
quality_rejected handler creates the AdjustmentOrder from its answer.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from batchline.models import Batch


@dataclass(frozen=True)
class MaterialNeed:
    """One compensating material for an adjustment order."""

    ingredient: str
    quantity: Decimal
    source_ref: str = ""


@runtime_checkable
class CorrectionBackend(Protocol):
    def recommend(self, batch: Batch) -> list[MaterialNeed]:
        """
        Return the materials that compensate the batch.

        An empty list means no automatic order is created.
        """
        ...
