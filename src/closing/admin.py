"""Django admin for team closings. Snapshots are read-only; recompute through the API."""
from django.contrib import admin

from closing.models import ClosingAdjustment, EmployeeClosingLine, TeamClosing


class EmployeeClosingLineInline(admin.TabularInline):
    model = EmployeeClosingLine
    extra = 0
    can_delete = False
    fields = (
        "employee_name", "churn_bonus_amount", "retention_bonus_amount",
        "target_bonus_amount", "service_commission_amount",
        "individual_goals_bonus_amount", "total_payable",
    )
    readonly_fields = fields

    def has_add_permission(self, request, obj=None):
        return False


@admin.register(TeamClosing)
class TeamClosingAdmin(admin.ModelAdmin):
    list_display = (
        "reference_month", "status", "churn_rate", "cancellation_rate", "target_percent",
        "target_bonus_pool_total", "participant_count", "calculated_at",
    )
    list_filter = ("status",)
    inlines = [EmployeeClosingLineInline]

    def get_readonly_fields(self, request, obj=None):
        return [field.name for field in self.model._meta.fields]

    def has_add_permission(self, request):
        return False


@admin.register(ClosingAdjustment)
class ClosingAdjustmentAdmin(admin.ModelAdmin):
    list_display = ("team_closing", "employee", "kind", "amount", "description", "created_by", "created_at")
    list_filter = ("kind",)
    search_fields = ("description", "employee__name")
    readonly_fields = ("created_by", "created_at", "updated_at")

    def has_change_permission(self, request, obj=None):
        return False

    def has_add_permission(self, request):
        return False

    def has_delete_permission(self, request, obj=None):
        return False
