"""
Tests for CodeSequence (batchline.models.sequence).
"""

import re

import pytest
from django.utils import timezone

from batchline.models import CodeSequence


@pytest.mark.django_db
class TestCodeSequence:
    def test_next_value_increments(self):
        assert CodeSequence.next_value("TEST") == 1
        assert CodeSequence.next_value("TEST") == 2
        assert CodeSequence.next_value("OTHER") == 1

    def test_next_code_format(self):
        code = CodeSequence.next_code("RUN")

        assert re.fullmatch(r"RUN-\d{4}-\d{5}", code)
        assert code == f"RUN-{timezone.now().year}-00001"

    def test_run_and_adjustment_prefixes_are_independent(self, run):
        assert run.code.endswith("-00001")
        assert CodeSequence.next_code("ADJ").endswith("-00001")
        assert CodeSequence.next_code("RUN").endswith("-00002")

    def test_explicit_code_kept(self, recipe):
        from batchline.models import Run

        run = Run.objects.create(recipe=recipe, target_weight=100, code="RUN-MANUAL")
        assert run.code == "RUN-MANUAL"
