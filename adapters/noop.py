"""
Noop Source Backend -- an unbounded source for every ref.

Use this adapter for development or standalone setups where no pallet or
location system is connected. Every ref exists, nothing is blocked, and
withdraw/restore do nothing.

Configuration:
    BATCHLINE = {
        "SOURCE_BACKEND": "batchline.adapters.noop.NoopSourceBackend",
    }
"""

from __future__ import annotations

from decimal import Decimal

from batchline.protocols.source import SourceMaterial

UNBOUNDED = Decimal("999999999")


class NoopSourceBackend:
    """
    No-operation implementation of the SourceBackend protocol.

    lookup() reports product_name None, so the product match check is
    skipped. locate() stages a virtual source per ingredient, which lets the
    auto-weighing loop run without a station mapping.
    """

    def lookup(self, ref: str) -> SourceMaterial | None:
        return SourceMaterial(ref=ref, product_name=None, available=UNBOUNDED)

    def withdraw(self, ref: str, quantity: Decimal, reference: str) -> None:
        return None

    def restore(self, ref: str, quantity: Decimal, reference: str) -> None:
        return None

    def locate(self, ingredient: str) -> str | None:
        return f"noop:{ingredient}"
