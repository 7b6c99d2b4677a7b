"""
In-memory Source Backend.

Dict-backed implementation of the SourceBackend protocol for tests and
demos. Keeps per-source quantities and a movement log.

Configuration:
    BATCHLINE = {
        "SOURCE_BACKEND": "batchline.adapters.memory.InMemorySourceBackend",
    }

Usage:
    backend = get_source_backend()
    backend.add("PAL-1", "A", 1000)
    backend.stage("A", "PAL-1")   # station for A is fed by PAL-1
    backend.block("PAL-2", "humidity")
"""

from __future__ import annotations

import logging
import threading
from dataclasses import replace
from decimal import Decimal

from batchline.protocols.source import SourceMaterial

logger = logging.getLogger(__name__)


class InMemorySourceBackend:
    def __init__(self):
        self._lock = threading.Lock()
        self.sources: dict[str, SourceMaterial] = {}
        self.stations: dict[str, str] = {}
        self.movements: list[tuple[str, str, Decimal, str]] = []

    # ── Setup helpers ──

    def add(self, ref: str, product_name: str | None, available, location: str = "") -> SourceMaterial:
        source = SourceMaterial(
            ref=ref,
            product_name=product_name,
            available=Decimal(str(available)),
            location=location,
        )
        with self._lock:
            self.sources[ref] = source
        return source

    def block(self, ref: str, reason: str = "") -> None:
        with self._lock:
            self.sources[ref] = replace(self.sources[ref], is_blocked=True, block_reason=reason)

    def stage(self, ingredient: str, ref: str) -> None:
        with self._lock:
            self.stations[ingredient] = ref

    def unstage(self, ingredient: str) -> None:
        with self._lock:
            self.stations.pop(ingredient, None)

    def available(self, ref: str) -> Decimal:
        return self.sources[ref].available

    # ── SourceBackend ──

    def lookup(self, ref: str) -> SourceMaterial | None:
        with self._lock:
            return self.sources.get(ref)

    def withdraw(self, ref: str, quantity: Decimal, reference: str) -> None:
        with self._lock:
            source = self.sources[ref]
            self.sources[ref] = replace(source, available=source.available - quantity)
            self.movements.append(("withdraw", ref, quantity, reference))
        logger.debug(f"Withdrew {quantity} from {ref} for {reference}")

    def restore(self, ref: str, quantity: Decimal, reference: str) -> None:
        with self._lock:
            source = self.sources.get(ref)
            if source is not None:
                self.sources[ref] = replace(source, available=source.available + quantity)
            self.movements.append(("restore", ref, quantity, reference))
        logger.debug(f"Restored {quantity} to {ref} for {reference}")

    def locate(self, ingredient: str) -> str | None:
        with self._lock:
            return self.stations.get(ingredient)
