"""
Ingredient processing markers.

A claim is a held token keyed by (batch, ingredient). Manual consumption and
the auto-weighing loop both go through it, so two writers never process the
same ingredient of the same batch at the same time.

Claims are acquired non-blocking: a held ingredient is reported as
INGREDIENT_BUSY instead of waited on.

Usage:
    from batchline.services.claims import claims

    with claims.hold(batch.pk, "A"):
        ...  # record consumption for A

    claim = claims.acquire(batch.pk, "A")
    try:
        ...
    finally:
        claims.release(claim)
"""

from __future__ import annotations

import logging
import threading
import uuid
from contextlib import contextmanager
from dataclasses import dataclass, field

from batchline.exceptions import InvariantError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Claim:
    """Token proving its holder may process one ingredient of one batch."""

    batch_id: int
    ingredient: str
    owner: str = ""
    token: str = field(default_factory=lambda: uuid.uuid4().hex)

    @property
    def key(self) -> tuple[int, str]:
        return (self.batch_id, self.ingredient)


class IngredientClaims:
    """Process-wide registry of held ingredient claims."""

    def __init__(self):
        self._lock = threading.Lock()
        self._held: dict[tuple[int, str], Claim] = {}

    def acquire(self, batch_id: int, ingredient: str, owner: str = "") -> Claim:
        """
        Claim an ingredient or raise INGREDIENT_BUSY.

        Raises:
            InvariantError: INGREDIENT_BUSY if another holder has it
        """
        key = (batch_id, ingredient)
        with self._lock:
            current = self._held.get(key)
            if current is not None:
                raise InvariantError(
                    "INGREDIENT_BUSY",
                    batch=batch_id,
                    ingredient=ingredient,
                    held_by=current.owner,
                )
            claim = Claim(batch_id=batch_id, ingredient=ingredient, owner=owner)
            self._held[key] = claim

        logger.debug(
            f"Claimed {ingredient} on batch {batch_id}",
            extra={"batch": batch_id, "ingredient": ingredient, "owner": owner},
        )
        return claim

    def release(self, claim: Claim) -> None:
        """Release a claim. Releasing a stale or foreign claim is a no-op."""
        with self._lock:
            if self._held.get(claim.key) == claim:
                del self._held[claim.key]

    def is_held(self, batch_id: int, ingredient: str) -> bool:
        with self._lock:
            return (batch_id, ingredient) in self._held

    def verify(self, claim: Claim, batch_id: int, ingredient: str) -> None:
        """Raise INGREDIENT_BUSY unless claim is the live claim for the key."""
        with self._lock:
            current = self._held.get((batch_id, ingredient))
        if claim.key != (batch_id, ingredient) or current != claim:
            raise InvariantError(
                "INGREDIENT_BUSY",
                batch=batch_id,
                ingredient=ingredient,
                held_by=current.owner if current else None,
            )

    @contextmanager
    def hold(self, batch_id: int, ingredient: str, owner: str = ""):
        claim = self.acquire(batch_id, ingredient, owner)
        try:
            yield claim
        finally:
            self.release(claim)

    def clear(self) -> None:
        """Drop every claim (for tests)."""
        with self._lock:
            self._held.clear()


claims = IngredientClaims()
