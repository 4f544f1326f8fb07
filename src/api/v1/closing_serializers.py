"""Serializers for the team closing API."""
from rest_framework import serializers

from closing.models import ClosingAdjustment, EmployeeClosingLine, TeamClosing
from closing.services import effective_payable
from hrm.models import Employee
from objectives.models import MonthlyTarget


class TeamClosingSerializer(serializers.ModelSerializer):
    sales_period_status = serializers.CharField(source="sales_period.status", read_only=True)
    calculated_by_name = serializers.SerializerMethodField()

    class Meta:
        model = TeamClosing
        fields = [
            "id",
            "reference_month",
            "sales_period",
            "sales_period_status",
            "status",
            "starting_subscriptions",
            "recurring_sales_count",
            "cancellations_count",
            "target_sales_quantity",
            "churn_rate",
            "cancellation_rate",
            "target_percent",
            "mrr_for_period",
            "mrr_qualifying_for_bonus",
            "churn_limit",
            "cancellation_limit",
            "churn_bonus_pct",
            "retention_bonus_pct",
            "target_bonus_pct",
            "churn_bonus_unlocked",
            "retention_bonus_unlocked",
            "target_bonus_unlocked",
            "participant_mode",
            "target_bonus_pool_total",
            "participant_count",
            "target_bonus_per_participant",
            "calculated_at",
            "calculated_by",
            "calculated_by_name",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields

    def get_calculated_by_name(self, obj):
        if obj.calculated_by is None:
            return ""
        return obj.calculated_by.get_full_name() or obj.calculated_by.get_username()


class EmployeeClosingLineSerializer(serializers.ModelSerializer):
    effective_payable = serializers.SerializerMethodField()

    class Meta:
        model = EmployeeClosingLine
        fields = [
            "id",
            "team_closing",
            "employee",
            "employee_name",
            "role",
            "base_salary",
            "services_commission_pct",
            "in_target_pool",
            "churn_bonus_amount",
            "retention_bonus_amount",
            "target_bonus_amount",
            "subtotal_salary_bonuses",
            "service_sales_count",
            "service_sales_total",
            "service_commission_amount",
            "individual_goals_count",
            "individual_goals_met",
            "individual_goals_bonus_amount",
            "total_payable",
            "effective_payable",
            "rendered_statement",
        ]
        read_only_fields = fields

    def get_effective_payable(self, obj):
        adjustments = self.context.get("adjustments")
        return str(effective_payable(obj, adjustments))


class ClosingAdjustmentSerializer(serializers.ModelSerializer):
    employee_name = serializers.CharField(source="employee.name", read_only=True, default="")
    signed_amount = serializers.DecimalField(max_digits=14, decimal_places=2, read_only=True)
    created_by_name = serializers.SerializerMethodField()

    class Meta:
        model = ClosingAdjustment
        fields = [
            "id",
            "team_closing",
            "employee",
            "employee_name",
            "kind",
            "amount",
            "signed_amount",
            "description",
            "created_by",
            "created_by_name",
            "created_at",
        ]
        read_only_fields = fields

    def get_created_by_name(self, obj):
        if obj.created_by is None:
            return ""
        return obj.created_by.get_full_name() or obj.created_by.get_username()


class ClosingAdjustmentCreateSerializer(serializers.Serializer):
    """Shape check only; amount and description rules live in the ledger service."""

    team_closing = serializers.PrimaryKeyRelatedField(queryset=TeamClosing.objects.all())
    employee = serializers.PrimaryKeyRelatedField(
        queryset=Employee.objects.all(), allow_null=True, required=False, default=None
    )
    kind = serializers.CharField(max_length=6)
    amount = serializers.DecimalField(max_digits=14, decimal_places=2)
    description = serializers.CharField(max_length=255, allow_blank=True, trim_whitespace=False)


class ClosingConfigureSerializer(serializers.Serializer):
    reference_month = serializers.CharField(max_length=10)
    starting_subscriptions = serializers.IntegerField(required=False)
    cancellations_count = serializers.IntegerField(required=False)
    target_sales_quantity = serializers.IntegerField(required=False)
    churn_limit = serializers.DecimalField(max_digits=7, decimal_places=4, required=False)
    cancellation_limit = serializers.DecimalField(max_digits=7, decimal_places=4, required=False)
    churn_bonus_pct = serializers.DecimalField(max_digits=7, decimal_places=4, required=False)
    retention_bonus_pct = serializers.DecimalField(max_digits=7, decimal_places=4, required=False)
    target_bonus_pct = serializers.DecimalField(max_digits=7, decimal_places=4, required=False)
    participant_mode = serializers.CharField(max_length=12, required=False)
    participant_ids = serializers.ListField(child=serializers.UUIDField(), required=False)
    notes = serializers.CharField(required=False, allow_blank=True)


class ClosingRecomputeSerializer(serializers.Serializer):
    reference_month = serializers.CharField(max_length=10)
    run_async = serializers.BooleanField(required=False, default=False)


class MonthlyTargetSerializer(serializers.ModelSerializer):
    participant_ids = serializers.PrimaryKeyRelatedField(source="participants", many=True, read_only=True)

    class Meta:
        model = MonthlyTarget
        fields = [
            "id",
            "reference_month",
            "starting_subscriptions",
            "cancellations_count",
            "target_sales_quantity",
            "churn_limit",
            "cancellation_limit",
            "churn_bonus_pct",
            "retention_bonus_pct",
            "target_bonus_pct",
            "participant_mode",
            "participant_ids",
            "notes",
            "updated_at",
        ]
        read_only_fields = fields
