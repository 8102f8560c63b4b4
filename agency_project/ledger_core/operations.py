"""
Entry points used by the views (and anything else outside the app).

Services raise typed LedgerError subclasses; this layer turns every
outcome into a Result so callers never see an exception for a
recoverable condition.
"""
import functools
import logging
from dataclasses import dataclass
from typing import Any, Optional

from django.core.exceptions import ValidationError
from django.db import DatabaseError

from .exceptions import (CONSISTENCY, VALIDATION, ConsistencyFailure,
                         LedgerError)
from .services import (entries, reporting, salaries, service_orders,
                       settlement)

logger = logging.getLogger(__name__)


@dataclass
class Result:
    ok: bool
    data: Any = None
    error: Optional[str] = None
    code: Optional[str] = None
    category: Optional[str] = None

    @classmethod
    def success(cls, data=None):
        return cls(ok=True, data=data)

    @classmethod
    def failure(cls, error, code, category):
        return cls(ok=False, error=error, code=code, category=category)


def _validation_message(exc):
    messages = getattr(exc, "messages", None) or [str(exc)]
    return "; ".join(str(m) for m in messages)


def as_result(func):
    """Run a service call and wrap its outcome."""

    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return Result.success(func(*args, **kwargs))
        except ConsistencyFailure as exc:
            logger.error("%s rolled back: %s", func.__name__, exc.message)
            return Result.failure(exc.message, exc.code, exc.category)
        except LedgerError as exc:
            logger.warning("%s rejected: %s", func.__name__, exc.message)
            return Result.failure(exc.message, exc.code, exc.category)
        except ValidationError as exc:
            message = _validation_message(exc)
            logger.warning("%s rejected: %s", func.__name__, message)
            return Result.failure(message, "invalid_input", VALIDATION)
        except DatabaseError:
            # the atomic block has already rolled back
            logger.exception("%s failed in storage", func.__name__)
            failure = ConsistencyFailure()
            return Result.failure(failure.message, failure.code, CONSISTENCY)

    return wrapper


# ----------------------------
# Settlement
# ----------------------------
@as_result
def record_payment(side, party_id, account_id, amount, discount=0,
                   extra_charge=0, date=None, note=None, user=None):
    return settlement.record_payment(
        side, party_id, account_id, amount,
        discount=discount, extra_charge=extra_charge,
        on_date=date, note=note, user=user,
    )


@as_result
def collect_obligation_payment(side, obligation_id, account_id, amount,
                               discount=0, extra_charge=0, date=None,
                               note=None, user=None):
    return settlement.collect_obligation_payment(
        side, obligation_id, account_id, amount,
        discount=discount, extra_charge=extra_charge,
        on_date=date, note=note, user=user,
    )


@as_result
def create_or_update_obligation(side, fields, obligation_id=None,
                                payment_amount=0, settlement_account_id=None,
                                payment_date=None, user=None):
    if obligation_id is None:
        return settlement.create_obligation(side, fields, user=user)
    return settlement.update_obligation(
        side, obligation_id, fields,
        payment_amount=payment_amount,
        settlement_account_id=settlement_account_id,
        payment_date=payment_date,
        user=user,
    )


@as_result
def delete_obligation(side, obligation_id, user=None):
    return settlement.delete_obligation(side, obligation_id, user=user)


# ----------------------------
# Services sold
# ----------------------------
@as_result
def create_service(fields, user=None):
    return service_orders.create_service(fields, user=user)


@as_result
def update_service(service_id, fields, user=None):
    return service_orders.update_service(service_id, fields, user=user)


@as_result
def deliver_service(service_id, delivery_date=None, user=None):
    return service_orders.deliver_service(service_id, delivery_date, user=user)


@as_result
def update_service_status(service_id, status, delivery_date=None, user=None):
    return service_orders.update_service_status(
        service_id, status, delivery_date, user=user)


@as_result
def delete_service(service_id, user=None):
    return service_orders.delete_service(service_id, user=user)


# ----------------------------
# Payroll
# ----------------------------
@as_result
def pay_salary(salary_id, account_id, paid_date=None, user=None):
    return salaries.pay_salary(salary_id, account_id, paid_date=paid_date, user=user)


@as_result
def generate_monthly_salaries(month, year, business):
    return salaries.generate_monthly_salaries(month, year, business)


# ----------------------------
# Manual income / expense
# ----------------------------
@as_result
def create_entry(tx_type, fields, user=None):
    return entries.create_entry(tx_type, fields, user=user)


@as_result
def update_entry(entry_id, fields, user=None):
    return entries.update_entry(entry_id, fields, user=user)


@as_result
def delete_entry(entry_id, user=None):
    return entries.delete_entry(entry_id, user=user)


# ----------------------------
# Read side
# ----------------------------
@as_result
def get_aging_snapshot(side, as_of=None, business="all"):
    return reporting.get_aging_snapshot(side, as_of, business).as_dict()


@as_result
def get_report_snapshot(from_date=None, to_date=None, business="all",
                        trend_window="6m"):
    return reporting.get_report_snapshot(from_date, to_date, business, trend_window)


@as_result
def get_dashboard_stats():
    return reporting.get_dashboard_stats()


@as_result
def get_party_ledger(side, party_id):
    return reporting.party_ledger(side, party_id)
