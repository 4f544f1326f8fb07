"""Global Django admin customizations."""
from django.contrib import admin

from core.models import AuditLog


@admin.register(AuditLog)
class AuditLogAdmin(admin.ModelAdmin):
    list_display = ("created_at", "action", "entity_type", "entity_id", "actor")
    list_filter = ("action", "entity_type")
    search_fields = ("entity_id", "actor__username")
    readonly_fields = (
        "actor", "action", "entity_type", "entity_id",
        "before_json", "after_json", "ip_address", "created_at",
    )
    ordering = ("-created_at",)

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False


admin.site.site_header = "Team Closing - Administration"
admin.site.site_title = "Team Closing Admin"
admin.site.index_title = "Monthly closings"
