"""
Source collaborator calls.

Every call to the configured SourceBackend goes through call_source(), so a
backend failure surfaces as ExternalError("SOURCE_BACKEND_FAILED") and rolls
back the surrounding transaction instead of leaking an arbitrary exception.
"""

from __future__ import annotations

import logging
from decimal import Decimal

from batchline.conf import get_source_backend
from batchline.exceptions import ExternalError, LineError
from batchline.protocols.source import SourceMaterial

logger = logging.getLogger(__name__)


def call_source(method, *args):
    try:
        return method(*args)
    except LineError:
        raise
    except Exception as exc:
        name = getattr(method, "__name__", repr(method))
        logger.error(
            f"Source backend call {name} failed: {exc}",
            extra={"method": name, "call_args": [str(a) for a in args]},
        )
        raise ExternalError(
            "SOURCE_BACKEND_FAILED",
            method=name,
            error=str(exc),
        ) from exc


def validate_source(
    ref: str,
    ingredient: str,
    quantity: Decimal | None = None,
) -> SourceMaterial:
    """
    Check that a source can supply an ingredient.

    Raises:
        ExternalError: SOURCE_NOT_FOUND, SOURCE_BACKEND_FAILED
        LineError: SOURCE_REQUIRED, SOURCE_BLOCKED, SOURCE_MISMATCH,
            INSUFFICIENT_SOURCE
    """
    if not ref:
        raise LineError("SOURCE_REQUIRED", ingredient=ingredient)

    backend = get_source_backend()
    source = call_source(backend.lookup, ref)

    if source is None:
        raise ExternalError("SOURCE_NOT_FOUND", ref=ref)

    if source.is_blocked:
        raise LineError("SOURCE_BLOCKED", ref=ref, reason=source.block_reason)

    if source.product_name is not None and source.product_name != ingredient:
        raise LineError(
            "SOURCE_MISMATCH",
            ref=ref,
            expected=ingredient,
            found=source.product_name,
        )

    if quantity is not None and source.available < quantity:
        raise LineError(
            "INSUFFICIENT_SOURCE",
            ref=ref,
            available=str(source.available),
            requested=str(quantity),
        )

    return source


def withdraw(ref: str, quantity: Decimal, reference: str) -> None:
    backend = get_source_backend()
    call_source(backend.withdraw, ref, quantity, reference)


def restore(ref: str, quantity: Decimal, reference: str) -> None:
    backend = get_source_backend()
    call_source(backend.restore, ref, quantity, reference)


def locate(ingredient: str) -> str | None:
    backend = get_source_backend()
    return call_source(backend.locate, ingredient)
