"""
Tests for the adjustment (correction) workflow (batchline.models.adjustment).
"""

from decimal import Decimal

import pytest

from batchline import line
from batchline.exceptions import InvariantError, LineError
from batchline.models import AdjustmentOrder, AdjustmentStatus
from batchline.protocols import MaterialNeed
from batchline.signals import adjustment_completed


@pytest.fixture
def rejected_batch(batch):
    batch.record_consumption("A", "PAL-A", 300)
    batch.record_consumption("B", "PAL-B", 200)
    batch.record_nirs("nok")
    return batch


@pytest.fixture
def order(rejected_batch, user):
    return AdjustmentOrder.create(
        rejected_batch,
        [
            {"ingredient": "A", "quantity": "5", "source_ref": "PAL-A"},
            {"ingredient": "B", "quantity": "2"},
        ],
        reason="NIRS proteína baixa",
        user=user,
    )


# ═══════════════════════════════════════════════════════════════════
# Creation
# ═══════════════════════════════════════════════════════════════════


class TestCreate:
    def test_creates_planned_order(self, order, rejected_batch):
        assert order.status == AdjustmentStatus.PLANNED
        assert order.code.startswith("ADJ-")
        assert order.created_by == "operador"
        assert [(m.ingredient, m.required_quantity, m.source_ref) for m in order.materials.all()] == [
            ("A", Decimal("5"), "PAL-A"),
            ("B", Decimal("2"), ""),
        ]
        assert rejected_batch.active_adjustment == order

    def test_accepts_material_needs(self, rejected_batch):
        order = AdjustmentOrder.create(rejected_batch, [MaterialNeed("A", Decimal("3"))])
        assert order.materials.get().required_quantity == Decimal("3")

    def test_requires_nirs_rejection(self, batch):
        with pytest.raises(InvariantError) as exc:
            AdjustmentOrder.create(batch, [("A", 5)])
        assert exc.value.code == "NIRS_NOT_REJECTED"

    def test_one_active_order_per_batch(self, order, rejected_batch):
        with pytest.raises(InvariantError) as exc:
            AdjustmentOrder.create(rejected_batch, [("A", 1)])
        assert exc.value.code == "ADJUSTMENT_ALREADY_ACTIVE"

    def test_new_order_after_cancel(self, order, rejected_batch):
        order.cancel()

        again = AdjustmentOrder.create(rejected_batch, [("A", 1)])
        assert again.is_active

    def test_requires_materials(self, rejected_batch):
        with pytest.raises(LineError) as exc:
            AdjustmentOrder.create(rejected_batch, [])
        assert exc.value.code == "NO_MATERIALS"

    def test_rejects_non_positive_quantity(self, rejected_batch):
        with pytest.raises(LineError) as exc:
            AdjustmentOrder.create(rejected_batch, [("A", 0)])
        assert exc.value.code == "INVALID_QUANTITY"
        assert not rejected_batch.adjustments.exists()


# ═══════════════════════════════════════════════════════════════════
# Staging and picking
# ═══════════════════════════════════════════════════════════════════


class TestPicking:
    def test_assign_staging(self, order):
        order.assign_staging("DOCK-2")

        assert order.status == AdjustmentStatus.MATERIAL_PICKING
        assert order.staging_location == "DOCK-2"

    def test_staging_requires_location(self, order):
        with pytest.raises(LineError) as exc:
            order.assign_staging("")
        assert exc.value.code == "LOCATION_REQUIRED"

    def test_pick_requires_staging(self, order):
        with pytest.raises(InvariantError) as exc:
            order.pick(0, 1)
        assert exc.value.code == "INVALID_STATUS"

    def test_partial_pick_keeps_picking(self, order):
        order.assign_staging("DOCK-2")

        material = order.pick(0, 2)

        assert material.picked_quantity == Decimal("2")
        assert material.remaining == Decimal("3")
        assert order.status == AdjustmentStatus.MATERIAL_PICKING

    def test_pick_is_capped_at_required(self, order, backend):
        order.assign_staging("DOCK-2")

        material = order.pick(0, 50)

        assert material.picked_quantity == Decimal("5")
        assert backend.available("PAL-A") == Decimal("9695")
        assert order.metadata["pick_log"][0]["quantity"] == "5"

    def test_pick_on_full_material_rejected(self, order):
        order.assign_staging("DOCK-2")
        order.pick(0, 5)

        with pytest.raises(InvariantError) as exc:
            order.pick(0, 1)
        assert exc.value.code == "PICK_EXCEEDS_REQUIRED"

    def test_fully_picked_moves_to_processing(self, order):
        order.assign_staging("DOCK-2")
        order.pick(0, 5)
        order.pick(1, 2, source_ref="PAL-B")

        assert order.status == AdjustmentStatus.PROCESSING
        assert order.materials.get(ingredient="B").source_ref == "PAL-B"
        assert len(order.metadata["pick_log"]) == 2

    def test_pick_validates_source(self, order):
        order.assign_staging("DOCK-2")

        with pytest.raises(LineError) as exc:
            order.pick(1, 2, source_ref="PAL-A")
        assert exc.value.code == "SOURCE_MISMATCH"

    def test_pick_withdraws_from_source(self, order, backend):
        order.assign_staging("DOCK-2")

        order.pick(0, 2)
        order.pick(1, 2, source_ref="PAL-B")

        assert backend.available("PAL-A") == Decimal("9698")
        assert backend.available("PAL-B") == Decimal("9798")

    def test_pick_larger_than_pallet_rejected(self, rejected_batch, backend):
        backend.add("PAL-TINY", "A", 1, location="WH-2")
        order = AdjustmentOrder.create(rejected_batch, [("A", 50)])
        order.assign_staging("DOCK-2")

        with pytest.raises(LineError) as exc:
            order.pick(0, 50, source_ref="PAL-TINY")

        assert exc.value.code == "INSUFFICIENT_SOURCE"
        assert backend.available("PAL-TINY") == Decimal("1")
        assert order.materials.get().picked_quantity == Decimal("0")
        assert order.status == AdjustmentStatus.MATERIAL_PICKING

    def test_pick_requires_source(self, order):
        order.assign_staging("DOCK-2")

        with pytest.raises(LineError) as exc:
            order.pick(1, 2)

        assert exc.value.code == "SOURCE_REQUIRED"
        assert order.materials.get(ingredient="B").picked_quantity == Decimal("0")

    def test_pick_unknown_material(self, order):
        order.assign_staging("DOCK-2")

        with pytest.raises(LineError) as exc:
            order.pick(5, 1)
        assert exc.value.code == "MATERIAL_NOT_FOUND"


# ═══════════════════════════════════════════════════════════════════
# Consume
# ═══════════════════════════════════════════════════════════════════


class TestConsume:
    def test_consume_blocked_before_full_pick(self, order, rejected_batch):
        order.assign_staging("DOCK-2")
        order.pick(0, 5)

        with pytest.raises(InvariantError) as exc:
            order.consume()

        assert exc.value.code == "INVALID_STATUS"
        assert not rejected_batch.consumption_entries.filter(adjustment__isnull=False).exists()

    def test_consume_merges_into_ledger(self, order, rejected_batch):
        order.assign_staging("DOCK-2")
        order.pick(0, 5)
        order.pick(1, 2, source_ref="PAL-B")

        entries = order.consume()

        assert order.status == AdjustmentStatus.COMPLETED
        assert order.completed_at is not None
        assert [(e.ingredient, e.quantity, e.source_ref) for e in entries] == [
            ("A", Decimal("5"), "PAL-A"),
            ("B", Decimal("2"), "PAL-B"),
        ]
        assert all(e.is_adjustment for e in entries)
        assert rejected_batch.consumed_for("A") == Decimal("305")
        assert rejected_batch.nirs_healed

    def test_consume_leaves_source_stock_at_picked_level(self, order, backend):
        order.assign_staging("DOCK-2")
        order.pick(0, 5)
        order.pick(1, 2, source_ref="PAL-B")
        assert backend.available("PAL-A") == Decimal("9695")

        order.consume()

        assert backend.available("PAL-A") == Decimal("9695")
        assert backend.available("PAL-B") == Decimal("9798")

    def test_consume_rejected_while_run_paused(self, order, rejected_batch, run):
        order.assign_staging("DOCK-2")
        order.pick(0, 5)
        order.pick(1, 2, source_ref="PAL-B")
        run.pause("Falta de energia")

        with pytest.raises(InvariantError) as exc:
            order.consume()

        assert exc.value.code == "RUN_PAUSED"
        order.refresh_from_db()
        assert order.status == AdjustmentStatus.PROCESSING
        assert not rejected_batch.consumption_entries.filter(adjustment__isnull=False).exists()
        assert line.consume_adjustment(order).code == "RUN_PAUSED"

    def test_consume_emits_adjustment_completed(self, order, rejected_batch):
        order.assign_staging("DOCK-2")
        order.pick(0, 5)
        order.pick(1, 2, source_ref="PAL-B")
        received = []

        def handler(sender, adjustment, batch, **kwargs):
            received.append((adjustment.pk, batch.pk))

        adjustment_completed.connect(handler)
        try:
            order.consume()
        finally:
            adjustment_completed.disconnect(handler)

        assert received == [(order.pk, rejected_batch.pk)]

    def test_adjustment_entries_cannot_be_annulled(self, order, rejected_batch):
        order.assign_staging("DOCK-2")
        order.pick(0, 5)
        order.pick(1, 2, source_ref="PAL-B")
        entry = order.consume()[0]

        with pytest.raises(InvariantError) as exc:
            rejected_batch.annul(entry.pk)
        assert exc.value.code == "ADJUSTMENT_ENTRY"

    def test_undo_last_skips_adjustment_entries(self, order, rejected_batch):
        order.assign_staging("DOCK-2")
        order.pick(0, 5)
        order.pick(1, 2, source_ref="PAL-B")
        order.consume()

        undone = rejected_batch.undo_last("A")

        assert not undone.is_adjustment
        assert undone.quantity == Decimal("300")


# ═══════════════════════════════════════════════════════════════════
# Cancel
# ═══════════════════════════════════════════════════════════════════


class TestCancel:
    def test_cancel_from_picking(self, order):
        order.assign_staging("DOCK-2")

        order.cancel("material errado")

        assert order.status == AdjustmentStatus.CANCELLED
        assert order.cancelled_at is not None
        assert order.metadata["cancel_reason"] == "material errado"

    def test_cancel_terminal_rejected(self, order):
        order.cancel()

        with pytest.raises(InvariantError) as exc:
            order.cancel()
        assert exc.value.code == "INVALID_STATUS"


# ═══════════════════════════════════════════════════════════════════
# Facade
# ═══════════════════════════════════════════════════════════════════


class TestLineAdjustments:
    def test_full_workflow(self, rejected_batch):
        result = line.create_adjustment(rejected_batch, [("A", 5, "PAL-A")])
        assert result.success
        order = result.value

        assert line.assign_staging(order, "DOCK-1").success
        assert line.pick(order, 0, 5).success
        consumed = line.consume_adjustment(order)

        assert consumed.success
        assert len(consumed.value) == 1
        assert line.get_active_adjustment(rejected_batch) is None

    def test_failed_create(self, batch):
        result = line.create_adjustment(batch, [("A", 5)])

        assert not result.success
        assert result.code == "NIRS_NOT_REJECTED"
