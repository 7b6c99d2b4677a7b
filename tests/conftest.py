"""
Shared fixtures for Batchline tests.

Recipe "feed-v1" is A:600 + B:400, so a 500kg batch needs A 300 and B 200.
Pallets PAL-A and PAL-B hold 10000kg each and are staged at the weighing
station for their ingredient.
"""

from decimal import Decimal

import pytest
from django.contrib.auth import get_user_model

from batchline.conf import get_source_backend, reset_backends
from batchline.services.claims import claims

User = get_user_model()


@pytest.fixture(autouse=True)
def isolated_backends():
    """Fresh source backend and no leftover ingredient claims per test."""
    reset_backends()
    claims.clear()
    yield
    reset_backends()
    claims.clear()


@pytest.fixture
def backend():
    backend = get_source_backend()
    backend.add("PAL-A", "A", 10000, location="WH-1")
    backend.add("PAL-B", "B", 10000, location="WH-1")
    backend.stage("A", "PAL-A")
    backend.stage("B", "PAL-B")
    return backend


@pytest.fixture
def user(db):
    return User.objects.create_user(username="operador", password="testpass123")


@pytest.fixture
def recipe(db):
    from batchline.models import Recipe, RecipeIngredient

    recipe = Recipe.objects.create(code="feed-v1", name="Ração Crescimento")
    RecipeIngredient.objects.create(recipe=recipe, name="A", quantity=Decimal("600"), sort_order=1)
    RecipeIngredient.objects.create(recipe=recipe, name="B", quantity=Decimal("400"), sort_order=2)
    return recipe


@pytest.fixture
def run(recipe):
    """Single 500kg batch run."""
    from batchline import line

    return line.create_run(recipe, 500, batch_size=500).value


@pytest.fixture
def batch(run, backend):
    """Ongoing batch 1 of the run."""
    from batchline import line

    return line.start_next_batch(run).value


@pytest.fixture
def complete_batch(backend):
    """Consume every requirement, release quality, close."""

    def _complete(batch, user=None):
        for req in batch.requirements():
            remaining = req.required - batch.consumed_for(req.name)
            if remaining > 0:
                batch.record_consumption(req.name, f"PAL-{req.name}", remaining, user=user)
        batch.record_nirs("ok", user=user)
        batch.record_sampling(user=user)
        check = batch.request_close(user=user)
        assert check.ok, check.messages
        return batch

    return _complete
