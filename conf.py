"""
Batchline Settings.

Supports two formats (dict takes priority):

    # Option 1: Dict
    BATCHLINE = {
        "DEFAULT_BATCH_SIZE": Decimal("2000"),
        "SOURCE_BACKEND": "myplant.stock.PalletSourceBackend",
    }

    # Option 2: Flat
    BATCHLINE_DEFAULT_BATCH_SIZE = Decimal("2000")
    BATCHLINE_SOURCE_BACKEND = "myplant.stock.PalletSourceBackend"

All settings have sensible defaults, zero configuration required.
"""

import threading
from decimal import Decimal

from django.conf import settings


# ── Defaults ──

DEFAULTS = {
    "DEFAULT_BATCH_SIZE": Decimal("2000"),
    "TOLERANCE": Decimal("0.999"),
    "AUTO_WEIGH_SECONDS": 2,
    "SOURCE_BACKEND": "batchline.adapters.noop.NoopSourceBackend",
    "CORRECTION_BACKEND": None,
}


# ── Accessors ──

_sentinel = object()


def get_setting(name, default=_sentinel):
    """
    Get a batchline setting.

    Looks up in order:
    1. BATCHLINE dict (e.g. BATCHLINE = {"TOLERANCE": ...})
    2. Flat setting (e.g. BATCHLINE_TOLERANCE = ...)
    3. DEFAULTS
    """
    batchline_dict = getattr(settings, "BATCHLINE", {})
    if name in batchline_dict:
        return batchline_dict[name]

    flat_value = getattr(settings, f"BATCHLINE_{name}", _sentinel)
    if flat_value is not _sentinel:
        return flat_value

    if default is not _sentinel:
        return default

    return DEFAULTS.get(name)


def get_tolerance() -> Decimal:
    """Fraction of a requirement that counts as fully consumed or picked."""
    return Decimal(str(get_setting("TOLERANCE")))


def get_default_batch_size() -> Decimal:
    return Decimal(str(get_setting("DEFAULT_BATCH_SIZE")))


_backend_lock = threading.Lock()
_source_backend_instance = None
_correction_backend_instance = None


def get_source_backend():
    """
    Return the configured source backend instance.

    The source backend answers "how much is on pallet X, is it blocked,
    what does it hold" and performs the physical withdraw/restore.
    """
    global _source_backend_instance

    if _source_backend_instance is None:
        with _backend_lock:
            if _source_backend_instance is None:  # double-checked
                from django.utils.module_loading import import_string

                path = get_setting("SOURCE_BACKEND")
                _source_backend_instance = import_string(path)()

    return _source_backend_instance


def get_correction_backend():
    """
    Return the configured correction backend instance, or None.

    The correction backend recommends the materials of an adjustment
    order when a batch fails its NIRS check.
    """
    global _correction_backend_instance

    path = get_setting("CORRECTION_BACKEND")
    if not path:
        return None

    if _correction_backend_instance is None:
        with _backend_lock:
            if _correction_backend_instance is None:
                from django.utils.module_loading import import_string

                _correction_backend_instance = import_string(path)()

    return _correction_backend_instance


def reset_backends() -> None:
    """Reset singletons (for tests)."""
    global _source_backend_instance, _correction_backend_instance
    _source_backend_instance = None
    _correction_backend_instance = None
