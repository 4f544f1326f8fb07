"""Django admin for the objectives module."""
from django.contrib import admin

from objectives.models import IndividualGoal, MonthlyTarget


@admin.register(MonthlyTarget)
class MonthlyTargetAdmin(admin.ModelAdmin):
    list_display = (
        "reference_month", "starting_subscriptions", "cancellations_count",
        "target_sales_quantity", "churn_limit", "cancellation_limit", "participant_mode",
    )
    list_filter = ("participant_mode",)
    filter_horizontal = ("participants",)
    readonly_fields = ("created_at", "updated_at")
    ordering = ("-reference_month",)


@admin.register(IndividualGoal)
class IndividualGoalAdmin(admin.ModelAdmin):
    list_display = ("title", "employee", "reference_month", "bonus_kind", "bonus_value", "achieved")
    list_filter = ("achieved", "bonus_kind", "reference_month")
    search_fields = ("title", "employee__name")
    list_editable = ("achieved",)
