"""
Tests for source backends and settings (batchline.adapters, batchline.conf).
"""

from decimal import Decimal

import pytest

from batchline.adapters import InMemorySourceBackend, NoopSourceBackend
from batchline.conf import get_correction_backend, get_setting, get_source_backend, get_tolerance, reset_backends
from batchline.exceptions import ExternalError, LineError
from batchline.services import sources


class TestSettings:
    def test_dict_setting(self):
        assert get_setting("AUTO_WEIGH_SECONDS") == 0

    def test_default(self):
        assert get_tolerance() == Decimal("0.999")
        assert get_setting("DEFAULT_BATCH_SIZE") == Decimal("2000")

    def test_flat_setting(self, settings):
        settings.BATCHLINE = {}
        settings.BATCHLINE_TOLERANCE = "0.99"
        assert get_tolerance() == Decimal("0.99")

    def test_backend_singleton(self):
        assert isinstance(get_source_backend(), InMemorySourceBackend)
        assert get_source_backend() is get_source_backend()

    def test_noop_backend(self, settings):
        settings.BATCHLINE = {}
        reset_backends()
        assert isinstance(get_source_backend(), NoopSourceBackend)

    def test_no_correction_backend_by_default(self):
        assert get_correction_backend() is None


class TestNoopBackend:
    def test_accepts_any_source(self):
        backend = NoopSourceBackend()

        source = backend.lookup("PAL-1")

        assert source.ref == "PAL-1"
        assert source.product_name is None
        assert backend.locate("A") == "noop:A"


class TestValidateSource:
    def test_valid(self, backend):
        source = sources.validate_source("PAL-A", "A", Decimal("10"))
        assert source.available == Decimal("10000")

    def test_missing_ref(self, backend):
        with pytest.raises(LineError) as exc:
            sources.validate_source("", "A")
        assert exc.value.code == "SOURCE_REQUIRED"

    def test_not_found(self, backend):
        with pytest.raises(ExternalError) as exc:
            sources.validate_source("PAL-404", "A")
        assert exc.value.code == "SOURCE_NOT_FOUND"

    def test_unlabeled_source_matches_any_ingredient(self, backend):
        backend.add("PAL-MIX", None, 50)
        assert sources.validate_source("PAL-MIX", "B").ref == "PAL-MIX"

    def test_lookup_failure(self, backend, monkeypatch):
        def broken(ref):
            raise ConnectionError("wms down")

        monkeypatch.setattr(backend, "lookup", broken)

        with pytest.raises(ExternalError) as exc:
            sources.validate_source("PAL-A", "A")

        assert exc.value.code == "SOURCE_BACKEND_FAILED"
        assert exc.value.details["method"] == "broken"


class TestInMemoryBackend:
    def test_movements_logged(self, backend):
        backend.withdraw("PAL-A", Decimal("5"), "RUN-1-B1")
        backend.restore("PAL-A", Decimal("2"), "RUN-1-B1")

        assert backend.available("PAL-A") == Decimal("9997")
        assert backend.movements == [
            ("withdraw", "PAL-A", Decimal("5"), "RUN-1-B1"),
            ("restore", "PAL-A", Decimal("2"), "RUN-1-B1"),
        ]
