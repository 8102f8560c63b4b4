from django.contrib import admin

from ledger_core.models import Service

from .ReadOnly import ReadOnlyAdmin


@admin.register(Service)
class ServiceAdmin(ReadOnlyAdmin):
    """Services post their own receivable/payable; edit them through the service flows."""

    list_display = (
        "id",
        "name",
        "service_type",
        "status",
        "customer",
        "vendor",
        "price",
        "cost",
        "receivable",
        "payable",
    )
    search_fields = ("name", "customer__name", "vendor__name")

    def get_list_filter(self, request):
        return ("status", "service_type", "business")

    def get_queryset(self, request):
        qs = super().get_queryset(request)
        return qs.select_related("customer", "vendor", "receivable", "payable")
