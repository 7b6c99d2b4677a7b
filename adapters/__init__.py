"""
Batchline Adapters.

Implementations of the source protocol. The active one is chosen by
BATCHLINE["SOURCE_BACKEND"] and resolved by batchline.conf.get_source_backend().
"""

from batchline.adapters.memory import InMemorySourceBackend
from batchline.adapters.noop import NoopSourceBackend

__all__ = [
    "NoopSourceBackend",
    "InMemorySourceBackend",
]
