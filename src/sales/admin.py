"""Django admin for sales periods and service sales."""
from django.contrib import admin, messages

from sales.models import SalesPeriod, ServiceSale
from sales.services import approve_service_sale, close_sales_period


@admin.register(SalesPeriod)
class SalesPeriodAdmin(admin.ModelAdmin):
    list_display = (
        "reference_month", "status", "total_recurring_sales",
        "total_mrr", "qualifying_mrr", "target_met",
    )
    list_filter = ("status", "target_met")
    readonly_fields = ("closed_at", "created_at", "updated_at")
    actions = ["close_periods"]

    @admin.action(description="Close selected sales periods")
    def close_periods(self, request, queryset):
        for period in queryset.filter(status=SalesPeriod.Status.OPEN):
            close_sales_period(period, actor=request.user)
        self.message_user(request, "Selected periods closed.", messages.SUCCESS)


@admin.register(ServiceSale)
class ServiceSaleAdmin(admin.ModelAdmin):
    list_display = ("description", "client", "employee", "reference_month", "amount", "status")
    list_filter = ("status", "reference_month")
    search_fields = ("client", "description", "employee__name")
    readonly_fields = ("approved_at", "created_at", "updated_at")
    actions = ["approve_sales"]

    @admin.action(description="Approve selected service sales")
    def approve_sales(self, request, queryset):
        for sale in queryset.filter(status=ServiceSale.Status.PENDING):
            approve_service_sale(sale, actor=request.user)
        self.message_user(request, "Selected service sales approved.", messages.SUCCESS)
