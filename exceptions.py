"""
Batchline Exceptions.

Every rejection raised by the core is a LineError carrying a machine code
plus keyword details, so callers can render the precise reason.

Three kinds:
    validation  malformed or out-of-range input, state unchanged
    invariant   the operation would break a batch/run invariant
    external    a collaborator (source backend, correction backend) failed
"""

from typing import Any


class LineError(Exception):
    """
    Base exception for all Batchline errors.

    Usage:
        raise LineError("INVALID_QUANTITY", quantity="0")

    Attributes:
        code: Error code (INVALID_QUANTITY, NEGATIVE_BALANCE, etc.)
        details: Additional context as keyword arguments
    """

    kind = "validation"

    def __init__(self, code: str, **details: Any):
        self.code = code
        self.details = details
        message = f"{code}: {details}" if details else code
        super().__init__(message)

    def as_dict(self) -> dict:
        """Return error as dictionary for API responses."""
        return {"code": self.code, "kind": self.kind, **self.details}

    def __str__(self) -> str:
        name = type(self).__name__
        if self.details:
            details_str = ", ".join(f"{k}={v}" for k, v in self.details.items())
            return f"{name}({self.code}: {details_str})"
        return f"{name}({self.code})"


class InvariantError(LineError):
    """Operation rejected because it would violate a batch or run invariant."""

    kind = "invariant"


class ExternalError(LineError):
    """A collaborator call failed; surfaced verbatim, nothing committed."""

    kind = "external"


# Common error codes
# INVALID_QUANTITY: Quantity is zero, negative where not allowed, or malformed
# UNKNOWN_INGREDIENT: Ingredient is not part of the batch recipe
# INVALID_STATUS: Status transition not allowed
# NEGATIVE_BALANCE: Effective consumed quantity would drop below zero
# INGREDIENT_BUSY: Another writer holds the ingredient processing marker
# RUN_PAUSED: Ledger writes are refused while the run is paused
# BATCH_ALREADY_ONGOING: Run already has an ongoing batch
# QUALITY_ALREADY_RECORDED: Quality field was already set
# NIRS_NOT_REJECTED: Adjustment requested for a batch whose NIRS is not nok
# ADJUSTMENT_ALREADY_ACTIVE: Batch already has a non-terminal adjustment order
# PICK_EXCEEDS_REQUIRED: Material already fully picked
# SOURCE_NOT_FOUND / SOURCE_BLOCKED / SOURCE_MISMATCH / INSUFFICIENT_SOURCE
# SOURCE_BACKEND_FAILED: Source collaborator raised
