"""
Tests for the production event log (Run.add_event / delete_event).
"""

import pytest

from batchline import line
from batchline.exceptions import InvariantError, LineError
from batchline.models import EventType, ProductionEvent


class TestAddEvent:
    def test_adds_event(self, run, user):
        event = run.add_event(EventType.PROBLEM, "Rosca travada", user=user)

        assert event.run == run
        assert event.author == "operador"
        assert list(run.events.all()) == [event]

    def test_description_optional_for_typed_events(self, run):
        event = run.add_event(EventType.SHIFT_CHANGE)
        assert event.description == ""

    def test_other_requires_description(self, run):
        with pytest.raises(LineError) as exc:
            run.add_event(EventType.OTHER, "   ")
        assert exc.value.code == "DESCRIPTION_REQUIRED"

    def test_invalid_type(self, run):
        with pytest.raises(LineError) as exc:
            run.add_event("party")
        assert exc.value.code == "INVALID_EVENT_TYPE"

    def test_completed_run_is_read_only(self, run, backend, complete_batch):
        complete_batch(line.start_next_batch(run).value)
        line.close_run(run)

        result = line.add_event(run, EventType.PROBLEM, "tarde demais")

        assert result.code == "INVALID_STATUS"
        assert isinstance(result.error, InvariantError)


class TestDeleteEvent:
    def test_deletes(self, run):
        event = run.add_event(EventType.DOWNTIME, "Sem energia")

        assert line.delete_event(run, event.pk).success
        assert not ProductionEvent.objects.filter(pk=event.pk).exists()

    def test_unknown_event(self, run):
        assert line.delete_event(run, 999999).code == "EVENT_NOT_FOUND"

    def test_event_of_other_run(self, run, recipe):
        other = line.create_run(recipe, 500).value
        event = other.add_event(EventType.PROBLEM, "x")

        assert line.delete_event(run, event.pk).code == "EVENT_NOT_FOUND"
        assert ProductionEvent.objects.filter(pk=event.pk).exists()
