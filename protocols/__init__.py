"""
Batchline Protocols.

Defines interfaces for external integrations.
"""

from batchline.protocols.correction import CorrectionBackend, MaterialNeed
from batchline.protocols.source import SourceBackend, SourceMaterial

__all__ = [
    # Source Protocol
    "SourceBackend",
    "SourceMaterial",
    # Correction Protocol
    "CorrectionBackend",
    "MaterialNeed",
]
