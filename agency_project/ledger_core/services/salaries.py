import logging
import re

from django.db import transaction

from ..constants import EXPENSE, SALARY, SALARY_MODEL
from ..exceptions import (InsufficientBalance, InvalidInput,
                          SalaryAlreadyPaid, SalaryNotFound)
from ..models import Account, Employee, Salary, Transaction
from .audit_helper import log_action
from .settlement import _lock_account, _move_balance
from .validation import normalize_business, normalize_date, require_id

logger = logging.getLogger(__name__)

MONTH_RE = re.compile(r"^\d{4}-(0[1-9]|1[0-2])$")


def pay_salary(salary_id, account_id, paid_date=None, user=None):
    """
    One-line settlement: unpaid -> paid, one expense entry,
    account drained by the salary amount.
    """
    salary_id = require_id(salary_id, "Salary")
    account_id = require_id(account_id, "Account")
    paid_date = normalize_date(paid_date, "Paid date", default_today=True)

    with transaction.atomic():
        try:
            salary = (
                Salary.objects.select_for_update()
                .select_related("employee")
                .get(pk=salary_id)
            )
        except Salary.DoesNotExist:
            raise SalaryNotFound()
        if salary.status == "paid":
            raise SalaryAlreadyPaid()

        account = _lock_account(account_id)
        if account.balance < salary.amount:
            raise InsufficientBalance(
                "Insufficient account balance for salary payment")

        salary.transition_to("paid", paid_date=paid_date)
        entry = Transaction.objects.create(
            date=paid_date,
            amount=salary.amount,
            tx_type=EXPENSE,
            category=SALARY,
            business=salary.business,
            account=account,
            description=(
                f"Salary payment for {salary.employee.name} ({salary.month})"),
            reference_id=salary.pk,
            reference_model=SALARY_MODEL,
        )
        _move_balance(Account, account.pk, -salary.amount)

        log_action(
            action="pay_salary",
            instance=salary,
            user=user,
            changes={
                "amount": str(salary.amount),
                "account_id": account.pk,
                "transaction_id": entry.pk,
            },
        )

    logger.info("Paid salary #%s amount=%s from account=%s",
                salary_id, salary.amount, account_id)
    return salary


def generate_monthly_salaries(month, year, business):
    """
    One unpaid salary per active employee of the business for the month.
    Existing unpaid rows follow the employee's current base salary;
    paid rows are never touched.
    """
    month = (month or "").strip()
    if not MONTH_RE.match(month):
        raise InvalidInput("Month must be in YYYY-MM format")
    try:
        year = int(year)
    except (TypeError, ValueError):
        raise InvalidInput("Year must be a valid number")
    if year < 2000 or year > 3000:
        raise InvalidInput("Year must be a valid number")
    business = normalize_business(business)

    created_count = 0
    updated_count = 0
    with transaction.atomic():
        employees = Employee.objects.for_business(business).filter(active=True)
        for employee in employees:
            salary = (
                Salary.objects.select_for_update()
                .filter(employee=employee, month=month, year=year,
                        business=business)
                .first()
            )
            if salary is None:
                Salary.objects.create(
                    employee=employee,
                    amount=employee.base_salary,
                    month=month,
                    year=year,
                    business=business,
                )
                created_count += 1
                continue

            if salary.status == "unpaid" and salary.amount != employee.base_salary:
                salary.amount = employee.base_salary
                salary.save(update_fields=["amount"])
                updated_count += 1

    logger.info("Generated salaries for %s/%s: created=%s updated=%s",
                month, business, created_count, updated_count)
    return {"created_count": created_count, "updated_count": updated_count}
