"""
Batchline Admin: basic Django admin for recipes, runs, batches and
adjustment orders.

Ledger entries are shown read-only: corrections go through annul, never
through editing or deleting rows.
"""

from django.contrib import admin
from simple_history.admin import SimpleHistoryAdmin

from batchline.models import (
    AdjustmentMaterial,
    AdjustmentOrder,
    Batch,
    ConsumptionEntry,
    ProductionEvent,
    Recipe,
    RecipeIngredient,
    Run,
)


# ── Recipe ──


class RecipeIngredientInline(admin.TabularInline):
    """Inline for recipe ingredients."""

    model = RecipeIngredient
    extra = 1
    fields = ("name", "quantity", "unit", "sort_order")


@admin.register(Recipe)
class RecipeAdmin(SimpleHistoryAdmin):
    """Admin for production recipes."""

    list_display = ("code", "name", "is_active")
    list_filter = ("is_active",)
    search_fields = ("code", "name")
    inlines = [RecipeIngredientInline]
    readonly_fields = ("uuid", "created_at", "updated_at")


# ── Run ──


class BatchInline(admin.TabularInline):
    model = Batch
    extra = 0
    fields = ("number", "target_weight", "status", "nirs_status", "sampling_status")
    readonly_fields = fields
    can_delete = False
    show_change_link = True


class ProductionEventInline(admin.TabularInline):
    model = ProductionEvent
    extra = 0
    fields = ("event_type", "description", "author", "created_at")
    readonly_fields = ("author", "created_at")


@admin.register(Run)
class RunAdmin(SimpleHistoryAdmin):
    """Admin for production runs."""

    list_display = ("code", "recipe", "target_weight", "batch_size", "status", "started_at")
    list_filter = ("status",)
    search_fields = ("code", "recipe__code")
    raw_id_fields = ("recipe",)
    inlines = [BatchInline, ProductionEventInline]
    readonly_fields = ("uuid", "code", "status", "created_at", "updated_at", "started_at", "completed_at")


# ── Batch ──


class ConsumptionEntryInline(admin.TabularInline):
    model = ConsumptionEntry
    extra = 0
    fields = ("ingredient", "source_ref", "quantity", "is_annulled", "adjustment", "created_by", "created_at")
    readonly_fields = fields
    can_delete = False

    def has_add_permission(self, request, obj=None):
        return False


@admin.register(Batch)
class BatchAdmin(SimpleHistoryAdmin):
    """Admin for batches."""

    list_display = ("__str__", "status", "nirs_status", "sampling_status", "started_at", "completed_at")
    list_filter = ("status", "nirs_status", "sampling_status")
    search_fields = ("run__code",)
    raw_id_fields = ("run",)
    inlines = [ConsumptionEntryInline]
    readonly_fields = (
        "run",
        "number",
        "status",
        "nirs_status",
        "nirs_recorded_at",
        "sampling_status",
        "weighing_finished",
        "started_at",
        "completed_at",
    )


# ── AdjustmentOrder ──


class AdjustmentMaterialInline(admin.TabularInline):
    model = AdjustmentMaterial
    extra = 0
    fields = ("ingredient", "required_quantity", "picked_quantity", "source_ref")
    readonly_fields = ("picked_quantity",)


@admin.register(AdjustmentOrder)
class AdjustmentOrderAdmin(SimpleHistoryAdmin):
    """Admin for adjustment (correction) orders."""

    list_display = ("code", "batch", "status", "staging_location", "created_at")
    list_filter = ("status",)
    search_fields = ("code",)
    raw_id_fields = ("batch",)
    inlines = [AdjustmentMaterialInline]
    readonly_fields = ("code", "status", "completed_at", "cancelled_at", "created_at", "updated_at")
