"""
Tests for ingredient claims (batchline.services.claims).
"""

import threading

import pytest

from batchline.exceptions import InvariantError
from batchline.services.claims import IngredientClaims


@pytest.fixture
def registry():
    return IngredientClaims()


class TestIngredientClaims:
    def test_acquire_and_release(self, registry):
        claim = registry.acquire(1, "A", owner="joao")

        assert registry.is_held(1, "A")
        assert not registry.is_held(1, "B")
        assert not registry.is_held(2, "A")

        registry.release(claim)
        assert not registry.is_held(1, "A")

    def test_second_acquire_is_busy(self, registry):
        registry.acquire(1, "A", owner="joao")

        with pytest.raises(InvariantError) as exc:
            registry.acquire(1, "A", owner="maria")

        assert exc.value.code == "INGREDIENT_BUSY"
        assert exc.value.details["held_by"] == "joao"

    def test_stale_release_is_noop(self, registry):
        old = registry.acquire(1, "A")
        registry.release(old)
        current = registry.acquire(1, "A")

        registry.release(old)

        assert registry.is_held(1, "A")
        registry.verify(current, 1, "A")

    def test_verify_rejects_foreign_claim(self, registry):
        claim = registry.acquire(1, "A")

        with pytest.raises(InvariantError):
            registry.verify(claim, 1, "B")

        registry.release(claim)
        with pytest.raises(InvariantError):
            registry.verify(claim, 1, "A")

    def test_hold_releases_on_error(self, registry):
        with pytest.raises(RuntimeError):
            with registry.hold(1, "A"):
                raise RuntimeError("boom")

        assert not registry.is_held(1, "A")

    def test_only_one_thread_wins(self, registry):
        barrier = threading.Barrier(8)
        won, busy = [], []

        def contend():
            barrier.wait()
            try:
                won.append(registry.acquire(1, "A"))
            except InvariantError:
                busy.append(True)

        threads = [threading.Thread(target=contend) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert len(won) == 1
        assert len(busy) == 7
