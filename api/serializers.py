"""
Batchline API Serializers.
"""

from rest_framework import serializers

from batchline.models import (
    AdjustmentMaterial,
    AdjustmentOrder,
    Batch,
    ConsumptionEntry,
    EventType,
    NirsStatus,
    ProductionEvent,
    Recipe,
    RecipeIngredient,
    Run,
)


def quantity_field(**kwargs):
    return serializers.DecimalField(max_digits=12, decimal_places=3, **kwargs)


# ══════════════════════════════════════════════════════════════
# MODELS
# ══════════════════════════════════════════════════════════════


class RecipeIngredientSerializer(serializers.ModelSerializer):
    class Meta:
        model = RecipeIngredient
        fields = ["name", "quantity", "unit", "sort_order"]


class RecipeSerializer(serializers.ModelSerializer):
    """Serializer for Recipe model."""

    ingredients = RecipeIngredientSerializer(many=True, read_only=True)

    class Meta:
        model = Recipe
        fields = [
            "uuid",
            "code",
            "name",
            "is_active",
            "ingredients",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields


class BatchSerializer(serializers.ModelSerializer):
    """Serializer for Batch model."""

    code = serializers.CharField(read_only=True)
    run_code = serializers.CharField(source="run.code", read_only=True)
    nirs_released = serializers.BooleanField(read_only=True)

    class Meta:
        model = Batch
        fields = [
            "id",
            "code",
            "run",
            "run_code",
            "number",
            "target_weight",
            "status",
            "nirs_status",
            "nirs_released",
            "sampling_status",
            "weighing_finished",
            "started_at",
            "completed_at",
        ]
        read_only_fields = fields


class RunSerializer(serializers.ModelSerializer):
    """Serializer for Run model."""

    recipe_code = serializers.CharField(source="recipe.code", read_only=True)
    batches = BatchSerializer(many=True, read_only=True)
    progress = serializers.DictField(read_only=True)

    class Meta:
        model = Run
        fields = [
            "id",
            "uuid",
            "code",
            "recipe",
            "recipe_code",
            "target_weight",
            "batch_size",
            "status",
            "started_at",
            "completed_at",
            "notes",
            "progress",
            "batches",
        ]
        read_only_fields = fields


class ConsumptionEntrySerializer(serializers.ModelSerializer):
    is_adjustment = serializers.BooleanField(read_only=True)

    class Meta:
        model = ConsumptionEntry
        fields = [
            "id",
            "uuid",
            "ingredient",
            "source_ref",
            "quantity",
            "is_annulled",
            "is_adjustment",
            "created_by",
            "created_at",
        ]
        read_only_fields = fields


class AdjustmentMaterialSerializer(serializers.ModelSerializer):
    class Meta:
        model = AdjustmentMaterial
        fields = ["ingredient", "required_quantity", "picked_quantity", "source_ref"]
        read_only_fields = fields


class AdjustmentOrderSerializer(serializers.ModelSerializer):
    """Serializer for AdjustmentOrder model."""

    materials = AdjustmentMaterialSerializer(many=True, read_only=True)

    class Meta:
        model = AdjustmentOrder
        fields = [
            "id",
            "code",
            "batch",
            "status",
            "staging_location",
            "reason",
            "materials",
            "completed_at",
            "cancelled_at",
            "created_at",
        ]
        read_only_fields = fields


class ProductionEventSerializer(serializers.ModelSerializer):
    class Meta:
        model = ProductionEvent
        fields = ["id", "event_type", "description", "author", "created_at"]
        read_only_fields = ["id", "author", "created_at"]


# ══════════════════════════════════════════════════════════════
# ACTION INPUTS
# ══════════════════════════════════════════════════════════════


class RunCreateSerializer(serializers.Serializer):
    """Input for run creation."""

    recipe = serializers.SlugRelatedField(
        slug_field="code",
        queryset=Recipe.objects.filter(is_active=True),
    )
    target_weight = quantity_field()
    batch_size = quantity_field(required=False, allow_null=True)
    notes = serializers.CharField(required=False, allow_blank=True, default="")


class ReasonSerializer(serializers.Serializer):
    reason = serializers.CharField(required=False, allow_blank=True, default="")


class ConsumptionSerializer(serializers.Serializer):
    """Input for recording consumption. Negative quantity = return."""

    ingredient = serializers.CharField(max_length=100)
    source_ref = serializers.CharField(max_length=100)
    quantity = quantity_field()


class ConfirmWeightSerializer(serializers.Serializer):
    ingredient = serializers.CharField(max_length=100)
    source_ref = serializers.CharField(max_length=100)
    total = quantity_field(min_value=0)


class AnnulSerializer(serializers.Serializer):
    entry = serializers.IntegerField()


class IngredientSerializer(serializers.Serializer):
    ingredient = serializers.CharField(max_length=100)


class WeighingFinishedSerializer(serializers.Serializer):
    ingredient = serializers.CharField(max_length=100)
    finished = serializers.BooleanField(default=True)


class NirsSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=[NirsStatus.OK, NirsStatus.NOK])


class MaterialInputSerializer(serializers.Serializer):
    ingredient = serializers.CharField(max_length=100)
    quantity = quantity_field()
    source_ref = serializers.CharField(max_length=100, required=False, allow_blank=True, default="")


class AdjustmentCreateSerializer(serializers.Serializer):
    """Input for adjustment order creation."""

    batch = serializers.PrimaryKeyRelatedField(queryset=Batch.objects.all())
    reason = serializers.CharField(required=False, allow_blank=True, default="")
    materials = MaterialInputSerializer(many=True)


class StagingSerializer(serializers.Serializer):
    location = serializers.CharField(max_length=100)


class PickSerializer(serializers.Serializer):
    index = serializers.IntegerField(min_value=0)
    quantity = quantity_field()
    source_ref = serializers.CharField(max_length=100, required=False, allow_blank=True, default="")


class EventCreateSerializer(serializers.Serializer):
    event_type = serializers.ChoiceField(choices=EventType.choices)
    description = serializers.CharField(required=False, allow_blank=True, default="")
