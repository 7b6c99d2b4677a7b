"""
Batchline API ViewSets.

Rejections are returned with the LineError payload and an HTTP status by
kind: validation 400, invariant 409, external 502.
"""

from rest_framework import mixins, status, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from batchline.models import AdjustmentOrder, Batch, Recipe, Run
from batchline.results import CloseCheck, OperationResult
from batchline.service import line

from .serializers import (
    AdjustmentCreateSerializer,
    AdjustmentOrderSerializer,
    AdjustmentMaterialSerializer,
    AnnulSerializer,
    BatchSerializer,
    ConfirmWeightSerializer,
    ConsumptionEntrySerializer,
    ConsumptionSerializer,
    EventCreateSerializer,
    IngredientSerializer,
    NirsSerializer,
    PickSerializer,
    ProductionEventSerializer,
    ReasonSerializer,
    RecipeSerializer,
    RunCreateSerializer,
    RunSerializer,
    StagingSerializer,
    WeighingFinishedSerializer,
)

STATUS_BY_KIND = {
    "validation": status.HTTP_400_BAD_REQUEST,
    "invariant": status.HTTP_409_CONFLICT,
    "external": status.HTTP_502_BAD_GATEWAY,
}


def error_response(result: OperationResult) -> Response:
    return Response(
        {"error": result.error.as_dict(), "message": result.message},
        status=STATUS_BY_KIND.get(result.kind, status.HTTP_400_BAD_REQUEST),
    )


def close_response(check: CloseCheck) -> Response:
    return Response(
        check.as_dict(),
        status=status.HTTP_200_OK if check.ok else status.HTTP_409_CONFLICT,
    )


def validated(serializer_class, request):
    serializer = serializer_class(data=request.data)
    serializer.is_valid(raise_exception=True)
    return serializer.validated_data


class RecipeViewSet(viewsets.ReadOnlyModelViewSet):
    """
    ViewSet for Recipe (read-only).

    list: List all active recipes
    retrieve: Get a specific recipe by UUID
    """

    permission_classes = [IsAuthenticated]
    queryset = Recipe.objects.filter(is_active=True).prefetch_related("ingredients")
    serializer_class = RecipeSerializer
    lookup_field = "uuid"


class RunViewSet(
    mixins.ListModelMixin,
    mixins.RetrieveModelMixin,
    mixins.CreateModelMixin,
    viewsets.GenericViewSet,
):
    """
    ViewSet for Run.

    list / retrieve / create
    start_next: Start the next planned batch
    pause / resume: Downtime
    close: Complete the run
    events: List or add production events
    """

    permission_classes = [IsAuthenticated]
    queryset = Run.objects.select_related("recipe").prefetch_related("batches")
    serializer_class = RunSerializer
    lookup_field = "uuid"

    def create(self, request, *args, **kwargs):
        """
        POST /api/batchline/runs/
        {
            "recipe": "feed-v1",
            "target_weight": "4500",
            "batch_size": "2000"  // optional
        }
        """
        data = validated(RunCreateSerializer, request)
        result = line.create_run(
            data["recipe"],
            data["target_weight"],
            batch_size=data.get("batch_size"),
            user=request.user,
            notes=data["notes"],
        )
        if not result.success:
            return error_response(result)
        return Response(RunSerializer(result.value).data, status=status.HTTP_201_CREATED)

    @action(detail=True, methods=["post"], url_path="start-next")
    def start_next(self, request, uuid=None):
        """POST /api/batchline/runs/{uuid}/start-next/"""
        run = self.get_object()
        result = line.start_next_batch(run, user=request.user)
        if not result.success:
            return error_response(result)
        return Response(BatchSerializer(result.value).data)

    @action(detail=True, methods=["post"])
    def pause(self, request, uuid=None):
        """
        POST /api/batchline/runs/{uuid}/pause/
        {
            "reason": "Falta de energia"  // optional
        }
        """
        run = self.get_object()
        data = validated(ReasonSerializer, request)
        result = line.pause(run, data["reason"], user=request.user)
        if not result.success:
            return error_response(result)
        return Response({"status": run.status, "downtimes": run.downtimes})

    @action(detail=True, methods=["post"])
    def resume(self, request, uuid=None):
        """POST /api/batchline/runs/{uuid}/resume/"""
        run = self.get_object()
        result = line.resume(run, user=request.user)
        if not result.success:
            return error_response(result)
        return Response({"status": run.status, "downtimes": run.downtimes})

    @action(detail=True, methods=["post"])
    def close(self, request, uuid=None):
        """POST /api/batchline/runs/{uuid}/close/"""
        run = self.get_object()
        return close_response(line.close_run(run, user=request.user))

    @action(detail=True, methods=["get", "post"])
    def events(self, request, uuid=None):
        """
        GET  /api/batchline/runs/{uuid}/events/
        POST /api/batchline/runs/{uuid}/events/
        {
            "event_type": "problem",
            "description": "Rosca travada"
        }
        """
        run = self.get_object()
        if request.method == "GET":
            return Response(ProductionEventSerializer(run.events.all(), many=True).data)

        data = validated(EventCreateSerializer, request)
        result = line.add_event(run, data["event_type"], data["description"], user=request.user)
        if not result.success:
            return error_response(result)
        return Response(ProductionEventSerializer(result.value).data, status=status.HTTP_201_CREATED)

    @action(detail=True, methods=["delete"], url_path=r"events/(?P<event_id>\d+)")
    def delete_event(self, request, uuid=None, event_id=None):
        """DELETE /api/batchline/runs/{uuid}/events/{event_id}/"""
        run = self.get_object()
        result = line.delete_event(run, int(event_id), user=request.user)
        if not result.success:
            return error_response(result)
        return Response(status=status.HTTP_204_NO_CONTENT)


class BatchViewSet(viewsets.ReadOnlyModelViewSet):
    """
    ViewSet for Batch.

    consume / confirm-weight / annul / undo: Consumption ledger
    weighing-finished: Operator sign-off
    nirs / sampling: Quality gate (lab collaborator)
    progress / entries: Queries
    close: Complete the batch
    """

    permission_classes = [IsAuthenticated]
    queryset = Batch.objects.select_related("run", "run__recipe")
    serializer_class = BatchSerializer

    @action(detail=True, methods=["post"])
    def consume(self, request, pk=None):
        """
        POST /api/batchline/batches/{pk}/consume/
        {
            "ingredient": "A",
            "source_ref": "PAL-1",
            "quantity": "300"   // negative = return
        }
        """
        batch = self.get_object()
        data = validated(ConsumptionSerializer, request)
        result = line.record_consumption(
            batch, data["ingredient"], data["source_ref"], data["quantity"], user=request.user
        )
        if not result.success:
            return error_response(result)
        return Response(ConsumptionEntrySerializer(result.value).data, status=status.HTTP_201_CREATED)

    @action(detail=True, methods=["post"], url_path="confirm-weight")
    def confirm_weight(self, request, pk=None):
        """POST /api/batchline/batches/{pk}/confirm-weight/ {"ingredient", "source_ref", "total"}"""
        batch = self.get_object()
        data = validated(ConfirmWeightSerializer, request)
        result = line.confirm_weight(
            batch, data["ingredient"], data["source_ref"], data["total"], user=request.user
        )
        if not result.success:
            return error_response(result)
        entry = ConsumptionEntrySerializer(result.value).data if result.value else None
        return Response({"entry": entry, "weighing_finished": batch.weighing_finished})

    @action(detail=True, methods=["post"])
    def annul(self, request, pk=None):
        """POST /api/batchline/batches/{pk}/annul/ {"entry": 12}"""
        batch = self.get_object()
        data = validated(AnnulSerializer, request)
        result = line.annul(batch, data["entry"], user=request.user)
        if not result.success:
            return error_response(result)
        return Response(ConsumptionEntrySerializer(result.value).data)

    @action(detail=True, methods=["post"])
    def undo(self, request, pk=None):
        """POST /api/batchline/batches/{pk}/undo/ {"ingredient": "A"}"""
        batch = self.get_object()
        data = validated(IngredientSerializer, request)
        result = line.undo_last(batch, data["ingredient"], user=request.user)
        if not result.success:
            return error_response(result)
        return Response(ConsumptionEntrySerializer(result.value).data)

    @action(detail=True, methods=["post"], url_path="weighing-finished")
    def weighing_finished(self, request, pk=None):
        """POST /api/batchline/batches/{pk}/weighing-finished/ {"ingredient", "finished"}"""
        batch = self.get_object()
        data = validated(WeighingFinishedSerializer, request)
        result = line.set_weighing_finished(batch, data["ingredient"], data["finished"], user=request.user)
        if not result.success:
            return error_response(result)
        return Response({"weighing_finished": batch.weighing_finished})

    @action(detail=True, methods=["post"])
    def nirs(self, request, pk=None):
        """POST /api/batchline/batches/{pk}/nirs/ {"status": "ok" | "nok"}"""
        batch = self.get_object()
        data = validated(NirsSerializer, request)
        result = line.record_nirs(batch, data["status"], user=request.user)
        if not result.success:
            return error_response(result)
        return Response(BatchSerializer(batch).data)

    @action(detail=True, methods=["post"])
    def sampling(self, request, pk=None):
        """POST /api/batchline/batches/{pk}/sampling/"""
        batch = self.get_object()
        result = line.record_sampling(batch, user=request.user)
        if not result.success:
            return error_response(result)
        return Response(BatchSerializer(batch).data)

    @action(detail=True, methods=["get"])
    def progress(self, request, pk=None):
        """GET /api/batchline/batches/{pk}/progress/"""
        batch = self.get_object()
        return Response(
            [
                {
                    "ingredient": p.name,
                    "required": str(p.required),
                    "consumed": str(p.consumed),
                    "shortage": str(p.shortage),
                    "percentage": p.percentage,
                    "within_tolerance": p.within_tolerance,
                    "weighing_finished": p.weighing_finished,
                }
                for p in line.progress(batch)
            ]
        )

    @action(detail=True, methods=["get"])
    def entries(self, request, pk=None):
        """GET /api/batchline/batches/{pk}/entries/"""
        batch = self.get_object()
        return Response(ConsumptionEntrySerializer(batch.consumption_entries.all(), many=True).data)

    @action(detail=True, methods=["post"])
    def close(self, request, pk=None):
        """POST /api/batchline/batches/{pk}/close/"""
        batch = self.get_object()
        return close_response(line.close_batch(batch, user=request.user))


class AdjustmentOrderViewSet(
    mixins.ListModelMixin,
    mixins.RetrieveModelMixin,
    mixins.CreateModelMixin,
    viewsets.GenericViewSet,
):
    """
    ViewSet for AdjustmentOrder.

    create: Open an order for a NIRS-rejected batch
    stage / pick / consume / cancel: Workflow
    """

    permission_classes = [IsAuthenticated]
    queryset = AdjustmentOrder.objects.prefetch_related("materials")
    serializer_class = AdjustmentOrderSerializer

    def create(self, request, *args, **kwargs):
        """
        POST /api/batchline/adjustments/
        {
            "batch": 3,
            "reason": "NIRS proteína baixa",
            "materials": [{"ingredient": "Soy", "quantity": "12"}]
        }
        """
        data = validated(AdjustmentCreateSerializer, request)
        result = line.create_adjustment(data["batch"], data["materials"], data["reason"], user=request.user)
        if not result.success:
            return error_response(result)
        return Response(AdjustmentOrderSerializer(result.value).data, status=status.HTTP_201_CREATED)

    @action(detail=True, methods=["post"])
    def stage(self, request, pk=None):
        """POST /api/batchline/adjustments/{pk}/stage/ {"location": "DOCK-2"}"""
        order = self.get_object()
        data = validated(StagingSerializer, request)
        result = line.assign_staging(order, data["location"], user=request.user)
        if not result.success:
            return error_response(result)
        return Response(AdjustmentOrderSerializer(order).data)

    @action(detail=True, methods=["post"])
    def pick(self, request, pk=None):
        """POST /api/batchline/adjustments/{pk}/pick/ {"index": 0, "quantity": "5"}"""
        order = self.get_object()
        data = validated(PickSerializer, request)
        result = line.pick(
            order, data["index"], data["quantity"], data["source_ref"] or None, user=request.user
        )
        if not result.success:
            return error_response(result)
        return Response(
            {
                "status": order.status,
                "material": AdjustmentMaterialSerializer(result.value).data,
            }
        )

    @action(detail=True, methods=["post"])
    def consume(self, request, pk=None):
        """POST /api/batchline/adjustments/{pk}/consume/"""
        order = self.get_object()
        result = line.consume_adjustment(order, user=request.user)
        if not result.success:
            return error_response(result)
        return Response(
            {
                "status": order.status,
                "entries": ConsumptionEntrySerializer(result.value, many=True).data,
            }
        )

    @action(detail=True, methods=["post"])
    def cancel(self, request, pk=None):
        """POST /api/batchline/adjustments/{pk}/cancel/ {"reason": "..."}"""
        order = self.get_object()
        data = validated(ReasonSerializer, request)
        result = line.cancel_adjustment(order, data["reason"], user=request.user)
        if not result.success:
            return error_response(result)
        return Response(AdjustmentOrderSerializer(order).data)
