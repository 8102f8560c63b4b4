from django.contrib import admin

from ledger_core.models import Payable, Receivable

from .ReadOnly import ReadOnlyAdmin


class ObligationAdmin(ReadOnlyAdmin):
    """Obligations change through the settlement services only."""

    list_display = (
        "id",
        "party",
        "business",
        "amount",
        "paid_amount",
        "status",
        "date",
        "due_date",
    )
    search_fields = ("party__name", "description")

    def get_list_filter(self, request):
        return ("status", "business")

    # Fetch everything in one SQL join
    def get_queryset(self, request):
        qs = super().get_queryset(request)
        return qs.select_related("party")


@admin.register(Receivable)
class ReceivableAdmin(ObligationAdmin):
    pass


@admin.register(Payable)
class PayableAdmin(ObligationAdmin):
    pass
