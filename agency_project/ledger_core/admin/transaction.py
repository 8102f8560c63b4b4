from django.contrib import admin

from ledger_core.models import Transaction

from .ReadOnly import ReadOnlyAdmin


# Register `Transaction` model
@admin.register(Transaction)
class TransactionAdmin(ReadOnlyAdmin):
    list_display = (
        "id",
        "date",
        "tx_type",
        "category",
        "business",
        "amount",
        "account",
        "customer",
        "vendor",
        "reference_model",
        "reference_id",
    )
    search_fields = ("description", "category")
    date_hierarchy = "date"

    # Fetch everything in one SQL join
    def get_queryset(self, request):
        qs = super().get_queryset(request)
        return qs.select_related("account", "customer", "vendor")
