from django.contrib import admin

from ledger_core.models import Account


# Register `Account` model
@admin.register(Account)
class AccountAdmin(admin.ModelAdmin):
    list_display = (
        "id",
        "name",
        "ac_type",
        "bank_name",
        "account_number",
        "balance",
    )
    list_filter = ("ac_type",)
    search_fields = ("name", "bank_name", "account_number")
    ordering = ("name",)
    # balance only moves through the settlement services
    readonly_fields = ("balance", "created_at")
