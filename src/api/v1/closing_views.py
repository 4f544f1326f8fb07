"""ViewSets for the monthly team closing."""
from rest_framework import mixins, status, viewsets
from rest_framework.decorators import action
from rest_framework.exceptions import ValidationError
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from api.v1.closing_serializers import (
    ClosingAdjustmentCreateSerializer,
    ClosingAdjustmentSerializer,
    ClosingConfigureSerializer,
    ClosingRecomputeSerializer,
    EmployeeClosingLineSerializer,
    MonthlyTargetSerializer,
    TeamClosingSerializer,
)
from api.v1.permissions import IsClosingManager
from closing.models import ClosingAdjustment, TeamClosing
from closing.services import (
    add_adjustment,
    closing_summary,
    configure_closing,
    get_statement,
    list_adjustments,
    recompute_closing,
    remove_adjustment,
)
from closing.statements import statement_to_json
from closing.tasks import recompute_team_closing


class TeamClosingViewSet(viewsets.ReadOnlyModelViewSet):
    """Closings are read here and changed only through ``configure`` and ``recompute``."""

    queryset = TeamClosing.objects.select_related("sales_period", "calculated_by")
    serializer_class = TeamClosingSerializer
    permission_classes = [IsAuthenticated, IsClosingManager]
    filterset_fields = ["status", "reference_month"]
    ordering_fields = ["reference_month", "calculated_at"]
    ordering = ["-reference_month"]

    @action(detail=False, methods=["post"], url_path="configure")
    def configure(self, request):
        serializer = ClosingConfigureSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        params = dict(serializer.validated_data)
        reference_month = params.pop("reference_month")

        target = configure_closing(reference_month, params, actor=request.user)
        closing = TeamClosing.objects.filter(reference_month=target.reference_month).first()
        return Response(
            {
                "target": MonthlyTargetSerializer(target).data,
                "team_closing": TeamClosingSerializer(closing).data if closing else None,
            }
        )

    @action(detail=False, methods=["post"], url_path="recompute")
    def recompute(self, request):
        serializer = ClosingRecomputeSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        reference_month = serializer.validated_data["reference_month"]

        if serializer.validated_data["run_async"]:
            result = recompute_team_closing.delay(reference_month=reference_month, actor_id=request.user.pk)
            return Response({"task_id": result.id, "reference_month": reference_month}, status=status.HTTP_202_ACCEPTED)

        closing = recompute_closing(reference_month, actor=request.user)
        return Response(TeamClosingSerializer(closing).data)

    @action(detail=True, methods=["get"], url_path="lines")
    def lines(self, request, pk=None):
        closing = self.get_object()
        adjustments = list(closing.adjustments.all())
        serializer = EmployeeClosingLineSerializer(
            closing.lines.order_by("employee_name", "employee_id"),
            many=True,
            context={"request": request, "adjustments": adjustments},
        )
        return Response(serializer.data)

    @action(detail=True, methods=["get"], url_path="summary")
    def summary(self, request, pk=None):
        return Response(statement_to_json(closing_summary(self.get_object())))

    @action(detail=True, methods=["get"], url_path="statement")
    def statement(self, request, pk=None):
        closing = self.get_object()
        employee_id = request.query_params.get("employee")
        if not employee_id:
            raise ValidationError({"employee": "This query parameter is required."})
        return Response(statement_to_json(get_statement(closing.reference_month, employee_id)))


class ClosingAdjustmentViewSet(
    mixins.CreateModelMixin,
    mixins.ListModelMixin,
    mixins.RetrieveModelMixin,
    mixins.DestroyModelMixin,
    viewsets.GenericViewSet,
):
    """Append/delete-only ledger; there is no update endpoint."""

    queryset = ClosingAdjustment.objects.select_related("employee", "created_by", "team_closing")
    serializer_class = ClosingAdjustmentSerializer
    permission_classes = [IsAuthenticated, IsClosingManager]
    filterset_fields = ["team_closing", "employee", "kind"]
    ordering_fields = ["created_at", "amount"]
    ordering = ["-created_at", "-id"]

    def get_queryset(self):
        team_closing_id = self.request.query_params.get("team_closing")
        if self.action == "list" and team_closing_id:
            closing = TeamClosing.objects.filter(pk=team_closing_id).first()
            if closing is not None:
                return list_adjustments(closing)
        return super().get_queryset()

    def create(self, request, *args, **kwargs):
        serializer = ClosingAdjustmentCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        adjustment = add_adjustment(
            team_closing=data["team_closing"],
            employee=data.get("employee"),
            kind=data["kind"],
            amount=data["amount"],
            description=data["description"],
            actor=request.user,
        )
        return Response(ClosingAdjustmentSerializer(adjustment).data, status=status.HTTP_201_CREATED)

    def perform_destroy(self, instance):
        remove_adjustment(instance.pk, actor=self.request.user)
