"""
Tests for the auto_weigh management command.
"""

from decimal import Decimal
from io import StringIO

import pytest
from django.core.management import call_command
from django.core.management.base import CommandError


def weigh(*args, **options):
    out = StringIO()
    call_command("auto_weigh", *args, stdout=out, **options)
    return out.getvalue()


class TestAutoWeighCommand:
    def test_weighs_ongoing_batch(self, batch, run, user):
        output = weigh(run.code, latency=0, user="operador")

        batch.refresh_from_db()
        assert batch.weighing_finished == ["A", "B"]
        assert batch.consumed_for("B") == Decimal("200")
        assert "✓ A" in output
        assert "Todos os ingredientes" in output

    def test_reports_pending_ingredients(self, batch, run, backend):
        backend.unstage("B")

        output = weigh(run.code, latency=0)

        assert "Pendentes: B" in output

    def test_failure_raises(self, batch, run, backend):
        backend.block("PAL-A", "umidade")

        with pytest.raises(CommandError, match="SOURCE_BLOCKED"):
            weigh(run.code, latency=0)

    def test_unknown_run(self, db):
        with pytest.raises(CommandError, match="não encontrada"):
            weigh("RUN-0000-00000")

    def test_run_without_ongoing_batch(self, run):
        with pytest.raises(CommandError, match="lote em andamento"):
            weigh(run.code)

    def test_unknown_user(self, batch, run):
        with pytest.raises(CommandError, match="Usuário"):
            weigh(run.code, user="ninguem")
