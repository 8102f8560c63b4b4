"""
Aging and reporting aggregates.

Read-only: every function here either folds rows it was handed or reads
one database snapshot through snapshot_read(). Nothing is written.
"""
import datetime
from contextlib import contextmanager
from dataclasses import asdict, dataclass
from decimal import Decimal
from typing import Dict, Iterable, List

from django.conf import settings
from django.db import transaction
from django.utils import timezone

from ..constants import BUSINESSES, EXPENSE, INCOME
from ..exceptions import InvalidInput, PartyNotFound
from ..models import Account, Payable, Receivable, Transaction
from .balances import ZERO, money, remaining_amount
from .settlement import get_binding
from .validation import normalize_date

TREND_WINDOWS = {"6m": 6, "12m": 12}


# ----------------------------
# Consistent reads
# ----------------------------
def begin_snapshot(connection):
    """
    Pin one snapshot for every statement of the current transaction.
    Must be the first statement the transaction runs.
    """
    # SQLite serializes writers and MySQL defaults to REPEATABLE READ
    if connection.vendor == "postgresql":
        with connection.cursor() as cursor:
            cursor.execute("SET TRANSACTION ISOLATION LEVEL REPEATABLE READ")


@contextmanager
def snapshot_read(using=None):
    """
    Read block where every query sees the same committed state.
    Nested inside a caller's transaction it reuses that transaction
    and its isolation level.
    """
    connection = transaction.get_connection(using)
    outermost = not connection.in_atomic_block
    with transaction.atomic(using=using):
        if outermost:
            begin_snapshot(connection)
        yield


# ----------------------------
# Aging
# ----------------------------
@dataclass
class AgingBuckets:
    bucket_0_30: Decimal = ZERO
    bucket_0_30_count: int = 0
    bucket_31_60: Decimal = ZERO
    bucket_31_60_count: int = 0
    bucket_61_plus: Decimal = ZERO
    bucket_61_plus_count: int = 0
    total: Decimal = ZERO
    total_count: int = 0

    def add(self, days: int, amount: Decimal):
        if days <= 30:
            self.bucket_0_30 += amount
            self.bucket_0_30_count += 1
        elif days <= 60:
            self.bucket_31_60 += amount
            self.bucket_31_60_count += 1
        else:
            self.bucket_61_plus += amount
            self.bucket_61_plus_count += 1
        self.total += amount
        self.total_count += 1

    def as_dict(self):
        return asdict(self)


def age_obligations(rows: Iterable, as_of: datetime.date) -> AgingBuckets:
    """
    Bucket open obligations by how overdue they are on `as_of`.
    Age counts from the due date, or the obligation date when there is
    none; not-yet-due rows land in 0-30.
    """
    buckets = AgingBuckets()
    for row in rows:
        outstanding = remaining_amount(row.amount, row.paid_amount)
        if outstanding <= ZERO:
            continue
        anchor = row.due_date or row.date
        days = max(0, (as_of - anchor).days)
        buckets.add(days, outstanding)
    return buckets


def _open_rows(obligation_model, business):
    return obligation_model.objects.open().for_business(business).only(
        "amount", "paid_amount", "date", "due_date")


def get_aging_snapshot(side_name, as_of=None, business="all"):
    _, _, obligation_model, _ = get_binding(side_name)
    as_of = normalize_date(as_of, "As of date", default_today=True)
    business = normalize_report_business(business)
    with snapshot_read():
        rows = list(_open_rows(obligation_model, business))
    return age_obligations(rows, as_of)


# ----------------------------
# Category / business / trend folds
# ----------------------------
def summarize_categories(transactions: Iterable) -> Dict[str, List[dict]]:
    """Sum amounts per (type, category); each list sorted by amount, largest first."""
    grouped: Dict[tuple, dict] = {}
    for tx in transactions:
        key = (tx.tx_type, tx.category)
        if key not in grouped:
            grouped[key] = {"category": tx.category, "amount": ZERO, "count": 0}
        grouped[key]["amount"] += money(tx.amount)
        grouped[key]["count"] += 1

    summary = {INCOME: [], EXPENSE: []}
    for (tx_type, _), row in grouped.items():
        summary[tx_type].append(row)
    for rows in summary.values():
        # ties keep category order stable
        rows.sort(key=lambda row: (-row["amount"], row["category"]))
    return summary


def summarize_businesses(transactions: Iterable) -> List[dict]:
    # every business unit shows up, even with no activity
    totals = {
        business: {"business": business, "income": ZERO, "expense": ZERO, "count": 0}
        for business in BUSINESSES
    }
    for tx in transactions:
        row = totals.get(tx.business)
        if row is None:
            continue
        row[tx.tx_type] += money(tx.amount)
        row["count"] += 1
    for row in totals.values():
        row["net"] = row["income"] - row["expense"]
    return list(totals.values())


def _shift_month(day: datetime.date, months: int) -> datetime.date:
    index = day.year * 12 + (day.month - 1) + months
    return datetime.date(index // 12, index % 12 + 1, 1)


def trend_start(to_date: datetime.date, months: int) -> datetime.date:
    """First day of the oldest month in a window ending at to_date's month."""
    return _shift_month(to_date, -(months - 1))


def monthly_trend(transactions: Iterable, to_date: datetime.date, months: int = 6):
    """
    Income / expense / net per calendar month, for `months` months ending
    with to_date's month. Every month is present, zero when idle.
    """
    start = trend_start(to_date, months)
    points = {}
    for offset in range(months):
        month = _shift_month(start, offset)
        points[(month.year, month.month)] = {
            "key": f"{month:%Y-%m}",
            "month": f"{month:%b %Y}",
            "income": ZERO,
            "expense": ZERO,
        }
    for tx in transactions:
        point = points.get((tx.date.year, tx.date.month))
        if point is None:
            continue
        point[tx.tx_type] += money(tx.amount)
    for point in points.values():
        point["net"] = point["income"] - point["expense"]
    return list(points.values())


# ----------------------------
# Snapshots
# ----------------------------
def normalize_report_business(value):
    # unknown filters fall back to everything
    return value if value in BUSINESSES else "all"


def normalize_trend_window(value):
    return value if value in TREND_WINDOWS else "6m"


def _report_date(value, fallback, label):
    if value is None or value == "":
        return fallback
    return normalize_date(value, label)


def _recent_row(tx):
    party = tx.customer or tx.vendor
    return {
        "id": tx.pk,
        "date": tx.date,
        "tx_type": tx.tx_type,
        "category": tx.category,
        "business": tx.business,
        "amount": tx.amount,
        "account_name": tx.account.name if tx.account_id else "Unknown Account",
        "party_name": party.name if party is not None else "-",
        "description": tx.description or "",
    }


def get_report_snapshot(from_date=None, to_date=None, business="all",
                        trend_window="6m"):
    """
    Overview, category and business summaries, monthly trend, aging and
    recent activity for one window, read from a single snapshot.
    """
    today = timezone.localdate()
    to_date = _report_date(to_date, today, "To date")
    from_date = _report_date(from_date, to_date.replace(day=1), "From date")
    if from_date > to_date:
        raise InvalidInput("From date cannot be after to date")
    business = normalize_report_business(business)
    trend_window = normalize_trend_window(trend_window)
    months = TREND_WINDOWS[trend_window]
    recent_limit = getattr(settings, "LEDGER_RECENT_TRANSACTION_LIMIT", 12)

    with snapshot_read():
        scoped = Transaction.objects.for_business(business)
        in_window = list(scoped.filter(date__gte=from_date, date__lte=to_date))
        # the trend covers its own window, not just the report range
        in_trend = list(scoped.filter(
            date__gte=trend_start(to_date, months), date__lte=to_date))
        receivables = list(_open_rows(Receivable, business))
        payables = list(_open_rows(Payable, business))
        recent = list(
            scoped.filter(date__gte=from_date, date__lte=to_date)
            .select_related("account", "customer", "vendor")
            .order_by("-date", "-created_at", "-pk")[:recent_limit]
        )

    total_income = sum(
        (money(tx.amount) for tx in in_window if tx.tx_type == INCOME), ZERO)
    total_expense = sum(
        (money(tx.amount) for tx in in_window if tx.tx_type == EXPENSE), ZERO)

    return {
        "filters": {
            "from_date": from_date,
            "to_date": to_date,
            "business": business,
            "trend_window": trend_window,
        },
        "overview": {
            "total_income": total_income,
            "total_expense": total_expense,
            "net_profit": total_income - total_expense,
            "transaction_count": len(in_window),
        },
        "category_summary": summarize_categories(in_window),
        "business_summary": summarize_businesses(in_window),
        "monthly_trend": monthly_trend(in_trend, to_date, months),
        "aging": {
            "receivable": age_obligations(receivables, to_date).as_dict(),
            "payable": age_obligations(payables, to_date).as_dict(),
        },
        "recent_transactions": [_recent_row(tx) for tx in recent],
    }


def get_dashboard_stats(today=None):
    """Headline numbers: cash on hand, open exposure, this month's result."""
    today = today or timezone.localdate()
    month_start = today.replace(day=1)

    with snapshot_read():
        total_balance = sum(
            (money(b) for b in Account.objects.values_list("balance", flat=True)),
            ZERO,
        )
        receivables = list(Receivable.objects.open().values_list("amount", "paid_amount"))
        payables = list(Payable.objects.open().values_list("amount", "paid_amount"))
        this_month = list(
            Transaction.objects.filter(date__gte=month_start, date__lte=today)
            .values_list("tx_type", "amount")
        )

    monthly_income = sum(
        (money(a) for t, a in this_month if t == INCOME), ZERO)
    monthly_expense = sum(
        (money(a) for t, a in this_month if t == EXPENSE), ZERO)
    return {
        "total_balance": total_balance,
        "total_receivable": sum(
            (remaining_amount(a, p) for a, p in receivables), ZERO),
        "open_receivable_count": len(receivables),
        "total_payable": sum(
            (remaining_amount(a, p) for a, p in payables), ZERO),
        "open_payable_count": len(payables),
        "monthly_income": monthly_income,
        "monthly_expense": monthly_expense,
        "net_profit": monthly_income - monthly_expense,
    }


# ----------------------------
# Party ledgers
# ----------------------------
def party_ledger(side_name, party_id):
    """Every obligation of one party with paid and due amounts, newest first."""
    _, party_model, obligation_model, _ = get_binding(side_name)
    with snapshot_read():
        party = party_model.objects.filter(pk=party_id).first()
        if party is None:
            raise PartyNotFound(f"{party_model.__name__} not found")
        rows = list(
            obligation_model.objects.for_party(party).order_by("-date", "-pk"))

    entries = [
        {
            "id": row.pk,
            "date": row.date,
            "due_date": row.due_date,
            "business": row.business,
            "amount": row.amount,
            "paid_amount": row.paid_amount,
            "due_amount": row.remaining,
            "status": row.status,
            "description": row.description or "",
        }
        for row in rows
    ]
    return {
        "party_id": party.pk,
        "party_name": party.name,
        "balance": party.balance,
        "entries": entries,
        "total_paid": sum((e["paid_amount"] for e in entries), ZERO),
        "total_due": sum((e["due_amount"] for e in entries), ZERO),
    }


def settlement_history(side_name, obligation_id):
    """Transactions that settled one obligation, oldest first."""
    side, _, _, _ = get_binding(side_name)
    rows = (
        Transaction.objects.filter(
            reference_model=side.reference_model, reference_id=obligation_id)
        .select_related("account")
        .order_by("date", "created_at", "pk")
    )
    return [
        {
            "id": tx.pk,
            "date": tx.date,
            "amount": tx.amount,
            "account_name": tx.account.name,
            "description": tx.description or "",
        }
        for tx in rows
    ]
