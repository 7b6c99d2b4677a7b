"""
Source Backend Protocol.

Defines the interface for the pallet/location storage collaborator.
Batchline never stores inventory: it asks the backend what a source holds
and tells it to withdraw or restore material.

Vocabulary:
    ref: identifier of a physical source (pallet, bin, silo...)
    product_name: ingredient held by the source
    available: quantity still on the source
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Protocol, runtime_checkable


@dataclass(frozen=True)
class SourceMaterial:
    """
    Snapshot of a physical source.

    product_name None means the backend does not track contents,
    so no product match is enforced.
    """

    ref: str
    product_name: str | None
    available: Decimal
    is_blocked: bool = False
    block_reason: str = ""
    location: str = ""


@runtime_checkable
class SourceBackend(Protocol):
    """
    Protocol for material source backends.

    Implementations:
        - NoopSourceBackend: unbounded, accepts everything (default)
        - InMemorySourceBackend: dict-backed, for tests and demos
    """

    def lookup(self, ref: str) -> SourceMaterial | None:
        """
        Return the source snapshot, or None if it does not exist.
        """
        ...

    def withdraw(self, ref: str, quantity: Decimal, reference: str) -> None:
        """
        Remove quantity from the source.

        Args:
            ref: Source identifier
            quantity: Positive quantity to remove
            reference: Traceability reference (batch code)
        """
        ...

    def restore(self, ref: str, quantity: Decimal, reference: str) -> None:
        """
        Put quantity back on the source (returns, annulments).
        """
        ...

    def locate(self, ingredient: str) -> str | None:
        """
        Return the ref of the source staged for an ingredient at the
        weighing station, or None if nothing is staged.
        """
        ...
