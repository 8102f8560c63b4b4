from django.contrib import admin

from ledger_core.models import Employee, Salary

from .actions import SettlementAccountForm, pay_selected_salaries


@admin.register(Employee)
class EmployeeAdmin(admin.ModelAdmin):
    list_display = ("id", "name", "role", "business", "base_salary", "active")
    list_filter = ("business", "active")
    search_fields = ("name", "phone")


@admin.register(Salary)
class SalaryAdmin(admin.ModelAdmin):
    list_display = (
        "id",
        "employee",
        "month",
        "business",
        "amount",
        "status",
        "paid_date",
    )
    list_filter = ("status", "business", "month")
    # status and paid_date move only through pay_salary
    readonly_fields = ("status", "paid_date", "created_at")
    action_form = SettlementAccountForm
    actions = [pay_selected_salaries]

    def get_queryset(self, request):
        qs = super().get_queryset(request)
        return qs.select_related("employee")
