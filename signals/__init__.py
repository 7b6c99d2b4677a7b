"""
Batchline Signals.

All communication with external systems happens via signals.
This ensures decoupling and allows for easy testing.

Signals:
    batch_started: A batch moved to ongoing
    quality_rejected: NIRS recorded as nok, a correction is needed
    adjustment_completed: Correction merged into the batch ledger
    batch_completed: Batch closed
    run_completed: Run closed
"""

from django.dispatch import Signal

# Batch moved to ongoing
# Sent by Run.start_next_batch()
# Args: batch, run, user
batch_started = Signal()

# NIRS rejected - sole trigger for adjustment orders
# Sent by Batch.record_nirs("nok")
# Args: batch, user
quality_rejected = Signal()

# Adjustment order consumed into the batch
# Sent by AdjustmentOrder.consume()
# Args: adjustment, batch, user
adjustment_completed = Signal()

# Batch closed
# Sent by Batch.request_close() when the close check passes
# Args: batch, user
batch_completed = Signal()

# Run closed
# Sent by Run.request_close() when every batch is completed
# Args: run, user
run_completed = Signal()

__all__ = [
    "batch_started",
    "quality_rejected",
    "adjustment_completed",
    "batch_completed",
    "run_completed",
]
