import datetime
from decimal import Decimal
from types import SimpleNamespace
from unittest import mock, skipUnless

import pytest
from django.db import connection
from django.test import TestCase, TransactionTestCase
from django.test.utils import CaptureQueriesContext

from .. import operations
from ..models import Account, Customer, Receivable, Vendor
from ..services import entries, reporting, settlement

AS_OF = datetime.date(2026, 10, 16)


def row(amount, paid="0", due_days_ago=None, date_days_ago=0):
    return SimpleNamespace(
        amount=Decimal(amount),
        paid_amount=Decimal(paid),
        date=AS_OF - datetime.timedelta(days=date_days_ago),
        due_date=(None if due_days_ago is None
                  else AS_OF - datetime.timedelta(days=due_days_ago)),
    )


def tx(amount, tx_type="income", category="Visa Fee", business="travel", date=AS_OF):
    return SimpleNamespace(
        amount=Decimal(amount), tx_type=tx_type, category=category,
        business=business, date=date,
    )


""" Aging """


def test_aging_bucket_boundaries():
    buckets = reporting.age_obligations(
        [
            row("100", due_days_ago=-5),   # not yet due
            row("100", due_days_ago=30),
            row("200", due_days_ago=31),
            row("200", due_days_ago=60),
            row("400", due_days_ago=61),
        ],
        AS_OF,
    )

    assert (buckets.bucket_0_30, buckets.bucket_0_30_count) == (Decimal("200"), 2)
    assert (buckets.bucket_31_60, buckets.bucket_31_60_count) == (Decimal("400"), 2)
    assert (buckets.bucket_61_plus, buckets.bucket_61_plus_count) == (Decimal("400"), 1)
    assert (buckets.total, buckets.total_count) == (Decimal("1000"), 5)


def test_aging_uses_remaining_and_skips_settled_rows():
    buckets = reporting.age_obligations(
        [
            row("100", paid="40", due_days_ago=10),
            row("100", paid="100", due_days_ago=90),
            # no due date: aged from the obligation date
            row("50", date_days_ago=45),
        ],
        AS_OF,
    )

    assert buckets.bucket_0_30 == Decimal("60")
    assert buckets.bucket_31_60 == Decimal("50")
    assert buckets.bucket_61_plus_count == 0
    assert buckets.total_count == 2


@pytest.mark.parametrize("days", [0, 7, 29, 30, 31, 59, 60, 61, 200, 1000])
def test_aging_buckets_add_up_to_total(days):
    rows = [row(str(10 + n), due_days_ago=days + n) for n in range(0, 90, 9)]
    buckets = reporting.age_obligations(rows, AS_OF)

    assert buckets.bucket_0_30 + buckets.bucket_31_60 + buckets.bucket_61_plus == buckets.total
    assert (buckets.bucket_0_30_count + buckets.bucket_31_60_count
            + buckets.bucket_61_plus_count) == buckets.total_count


""" Folds """


def test_category_summary_sorted_descending():
    summary = reporting.summarize_categories([
        tx("100", category="Visa Fee"),
        tx("500", category="Air Ticket"),
        tx("150", category="Visa Fee"),
        tx("80", tx_type="expense", category="Rent"),
        tx("90", tx_type="expense", category="Salary"),
    ])

    assert [(r["category"], r["amount"], r["count"]) for r in summary["income"]] == [
        ("Air Ticket", Decimal("500"), 1),
        ("Visa Fee", Decimal("250"), 2),
    ]
    assert [r["category"] for r in summary["expense"]] == ["Salary", "Rent"]


def test_business_summary_lists_every_business():
    summary = reporting.summarize_businesses([tx("100", business="isp")])

    by_business = {r["business"]: r for r in summary}
    assert set(by_business) == {"travel", "isp"}
    assert by_business["isp"]["net"] == Decimal("100")
    assert by_business["travel"]["count"] == 0


def test_monthly_trend_has_no_gaps():
    trend = reporting.monthly_trend(
        [
            tx("100", date=datetime.date(2026, 10, 1)),
            tx("40", tx_type="expense", date=datetime.date(2026, 8, 31)),
            # outside the window
            tx("999", date=datetime.date(2026, 4, 30)),
        ],
        AS_OF,
        months=6,
    )

    assert [p["key"] for p in trend] == [
        "2026-05", "2026-06", "2026-07", "2026-08", "2026-09", "2026-10"]
    assert trend[-1]["month"] == "Oct 2026"
    assert trend[-1]["income"] == Decimal("100")
    assert trend[3]["net"] == Decimal("-40")
    assert trend[0]["income"] == Decimal("0")


def test_twelve_month_trend_crosses_year_boundary():
    trend = reporting.monthly_trend([], datetime.date(2026, 3, 5), months=12)

    assert len(trend) == 12
    assert trend[0]["key"] == "2025-04"
    assert trend[-1]["key"] == "2026-03"


""" Consistent reads """


def test_snapshot_pins_repeatable_read_on_postgresql():
    conn = mock.MagicMock(vendor="postgresql")

    reporting.begin_snapshot(conn)

    cursor = conn.cursor.return_value.__enter__.return_value
    cursor.execute.assert_called_once_with(
        "SET TRANSACTION ISOLATION LEVEL REPEATABLE READ")


@pytest.mark.parametrize("vendor", ["sqlite", "mysql"])
def test_snapshot_leaves_other_backends_alone(vendor):
    conn = mock.MagicMock(vendor=vendor)

    reporting.begin_snapshot(conn)

    conn.cursor.assert_not_called()


@pytest.mark.django_db
def test_nested_snapshot_reuses_the_callers_transaction():
    # the test already runs inside a transaction
    with mock.patch.object(reporting, "begin_snapshot") as begin:
        reporting.get_dashboard_stats(today=AS_OF)

    begin.assert_not_called()


@skipUnless(connection.vendor == "postgresql", "isolation level is PostgreSQL-specific")
class SnapshotIsolationTests(TransactionTestCase):
    def test_report_reads_run_under_repeatable_read(self):
        with CaptureQueriesContext(connection) as queries:
            reporting.get_report_snapshot("2026-10-01", "2026-10-16")

        statements = [q["sql"] for q in queries.captured_queries]
        self.assertIn("REPEATABLE READ", statements[0])


""" Snapshots over the database """


class ReportSnapshotTests(TestCase):
    def setUp(self):
        self.cash = Account.objects.create(
            name="Cash", ac_type="Cash", balance=Decimal("10000.00"))
        self.customer = Customer.objects.create(name="Rahim", phone="01700000009")
        self.vendor = Vendor.objects.create(name="Sky Airways")
        settlement.create_obligation("receivable", {
            "party_id": self.customer.pk, "amount": "900",
            "date": "2026-07-01", "due_date": "2026-07-10",
        })
        settlement.create_obligation("receivable", {
            "party_id": self.customer.pk, "amount": "300",
            "date": "2026-10-01", "due_date": "2026-10-20", "business": "isp",
        })
        settlement.create_obligation("payable", {
            "party_id": self.vendor.pk, "amount": "700",
            "date": "2026-09-01", "due_date": "2026-09-05",
        })
        settlement.record_payment(
            "receivable", self.customer.pk, self.cash.pk, "400", on_date="2026-10-05")
        entries.create_entry("expense", {
            "date": "2026-10-06", "amount": "120", "category": "Office Rent",
            "account_id": self.cash.pk,
        })
        entries.create_entry("income", {
            "date": "2026-06-15", "amount": "75", "category": "Visa Fee",
            "account_id": self.cash.pk, "business": "isp",
        })

    def test_report_snapshot(self):
        snapshot = reporting.get_report_snapshot(
            "2026-10-01", "2026-10-16", "all", "6m")

        self.assertEqual(snapshot["overview"], {
            "total_income": Decimal("400.00"),
            "total_expense": Decimal("120.00"),
            "net_profit": Decimal("280.00"),
            "transaction_count": 2,
        })
        self.assertEqual(
            snapshot["category_summary"]["income"][0]["category"], "Receivable Collection")
        # trend reaches back past the report window
        june = next(p for p in snapshot["monthly_trend"] if p["key"] == "2026-06")
        self.assertEqual(june["income"], Decimal("75.00"))
        aging = snapshot["aging"]["receivable"]
        # 500 left on the July receivable, 98 days overdue on Oct 16
        self.assertEqual(aging["bucket_61_plus"], Decimal("500.00"))
        self.assertEqual(aging["bucket_0_30"], Decimal("300.00"))
        self.assertEqual(snapshot["aging"]["payable"]["bucket_31_60"], Decimal("700.00"))
        recent = snapshot["recent_transactions"]
        self.assertEqual(recent[0]["category"], "Office Rent")
        self.assertEqual(recent[1]["party_name"], "Rahim")
        self.assertEqual(recent[1]["account_name"], "Cash")

    def test_business_filter_and_fallbacks(self):
        snapshot = reporting.get_report_snapshot(
            "2026-06-01", "2026-10-16", "isp", "24m")

        self.assertEqual(snapshot["filters"]["business"], "isp")
        self.assertEqual(snapshot["filters"]["trend_window"], "6m")
        self.assertEqual(snapshot["overview"]["total_income"], Decimal("75.00"))
        self.assertEqual(snapshot["aging"]["receivable"]["total"], Decimal("300.00"))
        self.assertEqual(snapshot["aging"]["payable"]["total_count"], 0)

        unknown = reporting.get_report_snapshot(
            "2026-10-01", "2026-10-16", "shipping", "12m")
        self.assertEqual(unknown["filters"]["business"], "all")
        self.assertEqual(len(unknown["monthly_trend"]), 12)

    def test_inverted_window_is_rejected(self):
        result = operations.get_report_snapshot("2026-10-16", "2026-10-01")
        self.assertFalse(result.ok)
        self.assertEqual(result.category, "validation")

    def test_aging_snapshot(self):
        result = operations.get_aging_snapshot("payable", as_of="2026-10-16")

        self.assertTrue(result.ok)
        self.assertEqual(result.data["bucket_31_60"], Decimal("700.00"))
        self.assertEqual(result.data["total_count"], 1)

    def test_party_ledger_and_history(self):
        ledger = reporting.party_ledger("receivable", self.customer.pk)

        self.assertEqual(ledger["total_paid"], Decimal("400.00"))
        self.assertEqual(ledger["total_due"], Decimal("800.00"))
        july = Receivable.objects.get(date="2026-07-01")
        history = reporting.settlement_history("receivable", july.pk)
        self.assertEqual([h["amount"] for h in history], [Decimal("400.00")])

    def test_dashboard_stats(self):
        stats = reporting.get_dashboard_stats(today=AS_OF)

        self.assertEqual(stats["total_balance"], Decimal("10355.00"))
        self.assertEqual(stats["total_receivable"], Decimal("800.00"))
        self.assertEqual(stats["open_receivable_count"], 2)
        self.assertEqual(stats["total_payable"], Decimal("700.00"))
        self.assertEqual(stats["monthly_income"], Decimal("400.00"))
        self.assertEqual(stats["net_profit"], Decimal("280.00"))
