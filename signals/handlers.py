"""
Batchline Signal Handlers.

Connects quality rejection to the correction backend, so a failed NIRS can
open its AdjustmentOrder without an operator.

This module is imported in apps.py to register handlers.
"""

import logging

from django.dispatch import receiver

from batchline.conf import get_correction_backend
from batchline.exceptions import LineError
from batchline.signals import batch_completed, quality_rejected

logger = logging.getLogger(__name__)


@receiver(quality_rejected)
def create_adjustment_from_correction_backend(sender, batch, user=None, **kwargs):
    """
    When NIRS is rejected, ask the correction backend for materials.

    Only active when BATCHLINE["CORRECTION_BACKEND"] is set. The NIRS
    result is already recorded at this point, so failures are logged and
    the order can still be created by hand.
    """
    backend = get_correction_backend()
    if backend is None:
        logger.info(f"No correction backend, adjustment for {batch.code} left to the operator")
        return None

    from batchline.models import AdjustmentOrder

    try:
        needs = backend.recommend(batch)
        if not needs:
            logger.info(f"Correction backend recommended nothing for {batch.code}")
            return None

        order = AdjustmentOrder.create(batch, needs, reason="NIRS nok", user=user)
    except LineError as e:
        logger.warning(
            f"Automatic adjustment for {batch.code} refused: {e}",
            extra={"batch": batch.pk, "code": e.code},
        )
        return None
    except Exception as e:
        logger.error(f"Correction backend failed for {batch.code}: {e}")
        return None

    logger.info(
        f"Automatic adjustment {order.code} created for {batch.code}",
        extra={"batch": batch.pk, "adjustment": order.pk, "materials": len(needs)},
    )
    return order


@receiver(batch_completed)
def log_run_ready_to_close(sender, batch, **kwargs):
    """When the last batch of a run completes, note that the run can close."""
    run = batch.run
    progress = run.progress
    if progress["total"] and progress["completed"] == progress["total"]:
        logger.info(
            f"Run {run.code}: all {progress['total']} batches completed, ready to close",
            extra={"run": run.pk, "batches": progress["total"]},
        )
