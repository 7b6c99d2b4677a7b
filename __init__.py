"""
Django Batchline - Batch execution core for production lines.

Recipe scaling, consumption ledger, quality gate and correction workflow
for batches of a production run.

Usage:
    from batchline import line, LineError

    run = line.create_run(recipe, 4500, batch_size=2000).value
    batch = line.start_next_batch(run).value

    result = line.record_consumption(batch, "A", "PAL-1", 300, user=operador)
    if not result.success:
        print(result.error.code)

    line.record_nirs(batch, "ok")
    line.record_sampling(batch)

    check = line.close_batch(batch)
    if not check.ok:
        for blocker in check.blockers:
            print(blocker.message)  # "B short by 1kg", "quality gate unresolved"

    # Execution directly on model (SIREL!) raises LineError instead
    batch.record_consumption("B", "PAL-2", 200, user=operador)

Philosophy: SIREL (Simples, Robusto, Elegante)
"""

from batchline.exceptions import ExternalError, InvariantError, LineError


def __getattr__(name):
    """Lazy import to avoid AppRegistryNotReady errors."""
    if name in ("line", "Line"):
        from batchline.service import Line

        return Line
    if name in ("OperationResult", "CloseCheck", "CloseBlocker", "IngredientProgress"):
        from batchline import results

        return getattr(results, name)
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


__all__ = [
    "line",
    "Line",
    "LineError",
    "InvariantError",
    "ExternalError",
    "OperationResult",
    "CloseCheck",
    "CloseBlocker",
    "IngredientProgress",
]
__version__ = "0.1.0"
