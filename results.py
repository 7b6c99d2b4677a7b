"""
Batchline Result Types.

Structured results returned to callers instead of raising, so a UI can
render the precise reason without unwinding.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any

from batchline.exceptions import LineError


def format_kg(value: Decimal) -> str:
    """Render a quantity without trailing zeros: Decimal('1.000') -> '1'."""
    return f"{value.quantize(Decimal('0.001')).normalize():f}"


@dataclass(frozen=True)
class ScaledIngredient:
    """Ingredient requirement for one batch."""

    name: str
    unscaled: Decimal
    required: Decimal
    unit: str = "kg"


@dataclass(frozen=True)
class IngredientProgress:
    """Consumption state of one ingredient within a batch."""

    name: str
    required: Decimal
    consumed: Decimal
    within_tolerance: bool
    weighing_finished: bool

    @property
    def shortage(self) -> Decimal:
        return max(Decimal("0"), self.required - self.consumed)

    @property
    def percentage(self) -> int:
        if self.required <= 0:
            return 100
        return int(self.consumed / self.required * 100)


@dataclass(frozen=True)
class CloseBlocker:
    """One reason a batch or run cannot close."""

    code: str
    message: str
    ingredient: str | None = None
    required: Decimal | None = None
    consumed: Decimal | None = None
    batch_number: int | None = None

    @property
    def shortage(self) -> Decimal | None:
        if self.required is None or self.consumed is None:
            return None
        return self.required - self.consumed

    def as_dict(self) -> dict:
        data: dict[str, Any] = {"code": self.code, "message": self.message}
        if self.ingredient is not None:
            data["ingredient"] = self.ingredient
        if self.required is not None:
            data["required"] = str(self.required)
            data["consumed"] = str(self.consumed)
            data["shortage"] = str(self.shortage)
        if self.batch_number is not None:
            data["batch_number"] = self.batch_number
        return data


@dataclass
class CloseCheck:
    """
    Outcome of a close request.

    Se ok=True: the batch (or run) is closable / was closed
    Se ok=False: blockers lists every short ingredient or unresolved gate
    """

    ok: bool
    blockers: list[CloseBlocker] = field(default_factory=list)

    @property
    def codes(self) -> list[str]:
        return [b.code for b in self.blockers]

    @property
    def messages(self) -> list[str]:
        return [b.message for b in self.blockers]

    def as_dict(self) -> dict:
        return {"ok": self.ok, "blockers": [b.as_dict() for b in self.blockers]}


@dataclass
class OperationResult:
    """
    Discriminated success/failure of a mutating command.

    success=True: value holds the command output (entry, batch, order...)
    success=False: error holds the LineError describing the rejection
    """

    success: bool
    value: Any = None
    error: LineError | None = None
    message: str | None = None

    @classmethod
    def ok(cls, value: Any = None, message: str | None = None) -> OperationResult:
        return cls(success=True, value=value, message=message)

    @classmethod
    def failed(cls, error: LineError) -> OperationResult:
        return cls(success=False, error=error, message=str(error))

    @property
    def code(self) -> str | None:
        return self.error.code if self.error else None

    @property
    def kind(self) -> str | None:
        return self.error.kind if self.error else None
