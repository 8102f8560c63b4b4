from django import forms
from django.contrib import admin, messages
from django.contrib.admin.helpers import ActionForm

from ledger_core.exceptions import LedgerError
from ledger_core.models import Customer
from ledger_core.services.reconciliation import reconcile_party
from ledger_core.services.salaries import pay_salary

# ---------- Admin actions ----------


class SettlementAccountForm(ActionForm):
    # extra input rendered next to the action dropdown
    account_id = forms.IntegerField(required=False, label="Pay from account id")


@admin.action(description="Pay selected salaries")
def pay_selected_salaries(modeladmin, request, queryset):
    """
    Pay each selected unpaid salary from the account given in the action
    form. Every salary is its own atomic settlement; failures are reported
    per row and do not stop the rest.
    """
    account_id = request.POST.get("account_id")
    if not account_id:
        modeladmin.message_user(
            request, "Choose the account to pay from.", level=messages.ERROR)
        return

    paid = 0
    for salary in queryset.filter(status="unpaid"):
        try:
            pay_salary(salary.pk, account_id, user=request.user)
            paid += 1
        except LedgerError as exc:
            modeladmin.message_user(
                request,
                f"Salary #{salary.pk}: {exc.message}",
                level=messages.ERROR,
            )
    if paid:
        modeladmin.message_user(
            request, f"Paid {paid} salary record(s).", level=messages.SUCCESS)


@admin.action(description="Reconcile cached balance with the ledger")
def reconcile_selected_balances(modeladmin, request, queryset):
    fixed = 0
    for party in queryset:
        drift = reconcile_party(type(party), party.pk, fix=True)
        if drift:
            fixed += 1
            modeladmin.message_user(
                request,
                f"{party}: corrected drift of {drift}",
                level=messages.WARNING,
            )
    if not fixed:
        label = "customers" if queryset.model is Customer else "vendors"
        modeladmin.message_user(
            request, f"All selected {label} are in balance.",
            level=messages.SUCCESS)
