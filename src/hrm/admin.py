"""Django admin for HRM employees."""
from django.contrib import admin

from hrm.models import Employee


@admin.register(Employee)
class EmployeeAdmin(admin.ModelAdmin):
    list_display = (
        "name", "role", "base_salary", "services_commission_pct",
        "is_active", "participates_in_team_closing",
    )
    list_filter = ("is_active", "participates_in_team_closing", "role")
    search_fields = ("name", "email", "role")
    readonly_fields = ("created_at", "updated_at")
