"""
Tests for the run lifecycle (batchline.models.run, batchline.services.runs).
"""

from decimal import Decimal

import pytest

from batchline import line
from batchline.exceptions import InvariantError, LineError
from batchline.models import BatchStatus, Run, RunStatus
from batchline.signals import batch_started, run_completed


@pytest.fixture
def long_run(recipe):
    return line.create_run(recipe, 4500, batch_size=2000).value


# ═══════════════════════════════════════════════════════════════════
# Creation and batch planning
# ═══════════════════════════════════════════════════════════════════


class TestCreateRun:
    def test_splits_target_into_batches(self, long_run):
        batches = list(long_run.batches.order_by("number"))

        assert [b.number for b in batches] == [1, 2, 3]
        assert [b.target_weight for b in batches] == [Decimal("2000"), Decimal("2000"), Decimal("500")]
        assert all(b.status == BatchStatus.PLANNED for b in batches)
        assert long_run.status == RunStatus.PLANNED
        assert long_run.batch_size == Decimal("2000")

    def test_exact_multiple(self, recipe):
        run = line.create_run(recipe, 4000, batch_size=2000).value
        assert list(run.batches.values_list("target_weight", flat=True)) == [Decimal("2000"), Decimal("2000")]

    def test_default_batch_size(self, recipe):
        run = line.create_run(recipe, 2500).value

        assert run.batch_size == Decimal("2000")
        assert run.batches.count() == 2

    def test_code_generated(self, long_run):
        assert long_run.code.startswith("RUN-")
        assert line.get_run(long_run.code) == long_run

    def test_batch_code(self, long_run):
        batch = long_run.batches.get(number=2)
        assert batch.code == f"{long_run.code}-B2"

    @pytest.mark.parametrize("weight", [0, -10, "abc"])
    def test_rejects_invalid_weight(self, recipe, weight):
        result = line.create_run(recipe, weight)

        assert not result.success
        assert result.code == "INVALID_QUANTITY"
        assert not Run.objects.exists()

    def test_rejects_inactive_recipe(self, recipe):
        recipe.is_active = False
        recipe.save()

        result = line.create_run(recipe, 500)

        assert result.code == "RECIPE_INACTIVE"

    def test_initialize_twice_rejected(self, long_run):
        with pytest.raises(InvariantError) as exc:
            long_run.initialize()
        assert exc.value.code == "ALREADY_INITIALIZED"

    def test_invalid_batch_size_rolls_back(self, recipe):
        result = line.create_run(recipe, 500, batch_size=0)

        assert result.code == "INVALID_QUANTITY"
        assert not Run.objects.exists()


# ═══════════════════════════════════════════════════════════════════
# Start next batch
# ═══════════════════════════════════════════════════════════════════


class TestStartNextBatch:
    def test_starts_first_planned(self, long_run):
        batch = line.start_next_batch(long_run).value

        assert batch.number == 1
        assert batch.status == BatchStatus.ONGOING
        assert batch.started_at is not None
        long_run.refresh_from_db()
        assert long_run.status == RunStatus.ONGOING
        assert long_run.started_at is not None

    def test_one_ongoing_batch_per_run(self, long_run):
        line.start_next_batch(long_run)

        result = line.start_next_batch(long_run)

        assert result.code == "BATCH_ALREADY_ONGOING"
        assert long_run.batches.filter(status=BatchStatus.ONGOING).count() == 1

    def test_next_after_completion(self, long_run, backend, complete_batch):
        first = line.start_next_batch(long_run).value
        complete_batch(first)

        second = line.start_next_batch(long_run).value

        assert second.number == 2
        assert line.get_ongoing_batch(long_run) == second

    def test_no_planned_batch(self, run, backend, complete_batch):
        complete_batch(line.start_next_batch(run).value)

        result = line.start_next_batch(run)

        assert result.code == "NO_PLANNED_BATCH"

    def test_paused_run_cannot_start(self, long_run):
        line.start_next_batch(long_run)
        line.pause(long_run, "Troca de turno")

        assert line.start_next_batch(long_run).code == "RUN_PAUSED"

    def test_emits_batch_started(self, long_run, user):
        received = []

        def handler(sender, batch, run, user=None, **kwargs):
            received.append((batch.number, run.pk, user))

        batch_started.connect(handler)
        try:
            line.start_next_batch(long_run, user=user)
        finally:
            batch_started.disconnect(handler)

        assert received == [(1, long_run.pk, user)]


# ═══════════════════════════════════════════════════════════════════
# Pause / resume
# ═══════════════════════════════════════════════════════════════════


class TestPauseResume:
    def test_pause_opens_downtime(self, long_run, user):
        line.start_next_batch(long_run)

        assert line.pause(long_run, "Falta de energia", user=user).success

        assert long_run.status == RunStatus.PAUSED
        downtime = long_run.open_downtime
        assert downtime["reason"] == "Falta de energia"
        assert downtime["user"] == "operador"
        assert downtime["ended_at"] is None

    def test_resume_closes_downtime(self, long_run):
        line.start_next_batch(long_run)
        line.pause(long_run, "Falta de energia")

        assert line.resume(long_run).success

        assert long_run.status == RunStatus.ONGOING
        assert long_run.open_downtime is None
        downtime = long_run.downtimes[0]
        assert downtime["ended_at"] is not None
        assert downtime["duration_minutes"] >= 0

    def test_pause_requires_ongoing(self, long_run):
        assert line.pause(long_run).code == "INVALID_STATUS"

    def test_resume_requires_paused(self, long_run):
        line.start_next_batch(long_run)
        assert line.resume(long_run).code == "INVALID_STATUS"


# ═══════════════════════════════════════════════════════════════════
# Close
# ═══════════════════════════════════════════════════════════════════


class TestCloseRun:
    def test_lists_open_batches(self, long_run):
        line.start_next_batch(long_run)

        check = line.close_run(long_run)

        assert not check.ok
        assert check.messages == [
            "batch 1 is ongoing",
            "batch 2 is planned",
            "batch 3 is planned",
        ]
        assert [b.batch_number for b in check.blockers] == [1, 2, 3]

    def test_closes_when_all_batches_completed(self, run, backend, complete_batch, user):
        complete_batch(line.start_next_batch(run).value)
        received = []

        def handler(sender, run, **kwargs):
            received.append(run.pk)

        run_completed.connect(handler)
        try:
            check = line.close_run(run, user=user)
        finally:
            run_completed.disconnect(handler)

        assert check.ok
        assert received == [run.pk]
        run.refresh_from_db()
        assert run.status == RunStatus.COMPLETED
        assert run.completed_at is not None
        assert run.metadata["completed_by"] == "operador"
        assert run.progress == {"completed": 1, "total": 1, "percentage": 100}

    def test_paused_run_cannot_close(self, run, backend, complete_batch):
        complete_batch(line.start_next_batch(run).value)
        line.pause(run, "Limpeza")

        check = line.close_run(run)

        assert check.codes == ["RUN_PAUSED"]

    def test_completed_run_cannot_close_again(self, run, backend, complete_batch):
        complete_batch(line.start_next_batch(run).value)
        line.close_run(run)

        assert line.close_run(run).messages == ["run is completed"]
        assert line.start_next_batch(run).code == "INVALID_STATUS"


# ═══════════════════════════════════════════════════════════════════
# Queries
# ═══════════════════════════════════════════════════════════════════


class TestQueries:
    def test_progress(self, long_run, backend, complete_batch):
        complete_batch(line.start_next_batch(long_run).value)

        assert long_run.progress == {"completed": 1, "total": 3, "percentage": 33}

    def test_active_runs_and_ongoing_batches(self, long_run, run, backend):
        batch = line.start_next_batch(long_run).value

        assert set(line.get_active_runs()) == {long_run, run}
        assert line.get_ongoing_batches() == [batch]

    def test_find_recipe(self, recipe):
        assert line.find_recipe("feed-v1") == recipe
        assert line.find_recipe("missing") is None


class TestInvalidWeightMessage:
    def test_error_details(self, recipe):
        result = line.create_run(recipe, -1)

        assert isinstance(result.error, LineError)
        assert result.error.details == {"target_weight": "-1"}
