from django.contrib import admin

from ledger_core.models import Customer, Vendor

from .actions import reconcile_selected_balances


# Register `Customer` model
@admin.register(Customer)
class CustomerAdmin(admin.ModelAdmin):
    list_display = ("id", "name", "phone", "passport_number", "balance")
    search_fields = ("name", "phone", "passport_number")
    readonly_fields = ("balance", "created_at")
    actions = [reconcile_selected_balances]


# Register `Vendor` model
@admin.register(Vendor)
class VendorAdmin(admin.ModelAdmin):
    list_display = ("id", "name", "phone", "balance")
    search_fields = ("name", "phone")
    readonly_fields = ("balance", "created_at")
    actions = [reconcile_selected_balances]
