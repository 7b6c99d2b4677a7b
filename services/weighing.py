"""
Auto-weighing control loop.

Cooperative, single-flight loop over one batch: while enabled it picks the
first recipe ingredient that is not signed off, not claimed by another
writer, and has a source staged at the weighing station; it claims it,
waits the configured latency, records the remaining quantity and signs the
ingredient off.

Disabling wakes a pending wait and the pending consumption is not applied.
A failed recording disables the loop. Completed steps are never rolled back.

Usage:
    weigher = AutoWeigher(batch, user=operador)
    weigher.enable()
    weigher.run()          # blocks until done, disabled or failed
    weigher.last_error     # LineError that stopped it, if any
"""

from __future__ import annotations

import logging
import threading
from decimal import Decimal
from typing import Callable

from batchline.conf import get_setting
from batchline.exceptions import LineError
from batchline.services import sources
from batchline.services.claims import claims

logger = logging.getLogger(__name__)


class AutoWeigher:
    OWNER = "system:auto-weigh"

    def __init__(
        self,
        batch,
        latency: float | None = None,
        wait: Callable[[float], object] | None = None,
        user=None,
    ):
        self.batch = batch
        self.latency = float(latency if latency is not None else get_setting("AUTO_WEIGH_SECONDS"))
        self.user = user
        self.last_error: LineError | None = None
        self.processed: list[str] = []
        self._enabled = threading.Event()
        self._wake = threading.Event()
        self._wait = wait or self._sleep

    # ── Switch ──

    @property
    def enabled(self) -> bool:
        return self._enabled.is_set()

    def enable(self) -> None:
        self.last_error = None
        self._wake.clear()
        self._enabled.set()
        logger.info(f"Auto-weighing enabled for batch {self.batch.code}")

    def disable(self) -> None:
        self._enabled.clear()
        self._wake.set()
        logger.info(f"Auto-weighing disabled for batch {self.batch.code}")

    def _sleep(self, seconds: float) -> None:
        self._wake.wait(seconds)

    # ── Loop ──

    def next_ingredient(self) -> tuple[str, str, Decimal] | None:
        """
        First eligible ingredient as (name, source_ref, required), or None.

        Eligible: not weighing-finished, not claimed, staged at the station.
        """
        self.batch.refresh_from_db()
        finished = set(self.batch.weighing_finished)

        for req in self.batch.requirements():
            if req.name in finished:
                continue
            if claims.is_held(self.batch.pk, req.name):
                continue
            source_ref = sources.locate(req.name)
            if not source_ref:
                continue
            return req.name, source_ref, req.required
        return None

    def step(self) -> str | None:
        """
        Process one ingredient.

        Returns the ingredient name, or None when nothing was applied
        (disabled, nothing eligible, interrupted or failed).
        """
        if not self.enabled:
            return None

        try:
            target = self.next_ingredient()
        except LineError as exc:
            return self._fail(None, exc)
        if target is None:
            return None

        ingredient, source_ref, required = target
        try:
            claim = claims.acquire(self.batch.pk, ingredient, owner=self.OWNER)
        except LineError as exc:
            logger.info(f"Auto-weighing skipped {ingredient}: {exc}")
            return None

        try:
            self._wait(self.latency)
            if not self.enabled:
                logger.info(
                    f"Auto-weighing interrupted before recording {ingredient}",
                    extra={"batch": self.batch.pk, "ingredient": ingredient},
                )
                return None

            remaining = required - self.batch.consumed_for(ingredient)
            if remaining > 0:
                self.batch.record_consumption(
                    ingredient, source_ref, remaining, user=self.user, claim=claim
                )
            self.batch.set_weighing_finished(ingredient, True, user=self.user)
        except LineError as exc:
            return self._fail(ingredient, exc)
        finally:
            claims.release(claim)

        self.processed.append(ingredient)
        logger.info(
            f"Auto-weighing recorded {ingredient} on batch {self.batch.code}",
            extra={"batch": self.batch.pk, "ingredient": ingredient, "source_ref": source_ref},
        )
        return ingredient

    def _fail(self, ingredient: str | None, exc: LineError) -> None:
        self.last_error = exc
        self.disable()
        logger.warning(
            f"Auto-weighing stopped on batch {self.batch.code}: {exc}",
            extra={"batch": self.batch.pk, "ingredient": ingredient, "code": exc.code},
        )
        return None

    def run(self) -> list[str]:
        """Step until disabled, failed, or out of eligible ingredients."""
        done = []
        while self.enabled:
            ingredient = self.step()
            if ingredient is None:
                break
            done.append(ingredient)
        return done
