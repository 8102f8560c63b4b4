import datetime
from decimal import Decimal
from unittest import mock

from django.db import DatabaseError
from django.test import TestCase
from django.utils import timezone

from .. import operations
from ..exceptions import (AccountNotFound, DiscountExceedsDue,
                          InsufficientBalance, InvalidAmount, NothingToSettle,
                          PartyNotFound, PaymentAmountExceedsObligation)
from ..models import (Account, AuditLog, Customer, Payable, Receivable,
                      Transaction, Vendor)
from ..services import settlement
from ..services.reconciliation import recompute_balance


class SettlementTestMixin:
    def setUp(self):
        self.today = timezone.localdate()
        self.cash = Account.objects.create(
            name="Front Desk Cash", ac_type="Cash", balance=Decimal("5000.00"))
        self.customer = Customer.objects.create(name="Rahim", phone="01700000001")
        self.vendor = Vendor.objects.create(name="Sky Airways", phone="01800000001")

    def days(self, n):
        return self.today + datetime.timedelta(days=n)

    def make_receivable(self, amount, due_in=None, customer=None):
        return settlement.create_obligation("receivable", {
            "party_id": (customer or self.customer).pk,
            "amount": amount,
            "date": self.days(-30),
            "due_date": None if due_in is None else self.days(due_in),
        })

    def make_payable(self, amount, due_in=None, vendor=None):
        return settlement.create_obligation("payable", {
            "party_id": (vendor or self.vendor).pk,
            "amount": amount,
            "date": self.days(-30),
            "due_date": None if due_in is None else self.days(due_in),
        })

    def reload(self, *objs):
        for obj in objs:
            obj.refresh_from_db()


""" Customer payments across receivables """
class RecordCustomerPaymentTests(SettlementTestMixin, TestCase):

    def setUp(self):
        super().setUp()
        self.r1 = self.make_receivable("1000", due_in=-10)
        self.r2 = self.make_receivable("500", due_in=5)

    def test_new_receivables_start_unpaid_and_raise_balance(self):
        self.reload(self.customer)
        self.assertEqual(self.r1.status, "unpaid")
        self.assertEqual(self.r1.paid_amount, Decimal("0.00"))
        self.assertEqual(self.customer.balance, Decimal("1500.00"))

    def test_payment_settles_earliest_due_first(self):
        outcome = settlement.record_payment(
            "receivable", self.customer.pk, self.cash.pk, "1200")

        self.reload(self.r1, self.r2, self.cash, self.customer)
        self.assertEqual(self.r1.status, "paid")
        self.assertEqual(self.r1.paid_amount, Decimal("1000.00"))
        self.assertEqual(self.r2.status, "partial")
        self.assertEqual(self.r2.remaining, Decimal("300.00"))
        self.assertEqual(outcome["settled_amount"], Decimal("1200.00"))
        self.assertEqual(outcome["advance_amount"], Decimal("0.00"))
        self.assertEqual(outcome["total_due"], Decimal("300.00"))
        # account +1200, customer -1200
        self.assertEqual(self.cash.balance, Decimal("6200.00"))
        self.assertEqual(self.customer.balance, Decimal("300.00"))

    def test_each_settled_receivable_gets_its_own_transaction(self):
        settlement.record_payment(
            "receivable", self.customer.pk, self.cash.pk, "1200", note="Counter payment")

        rows = Transaction.objects.filter(customer=self.customer).order_by("pk")
        self.assertEqual(
            [(t.reference_id, t.amount) for t in rows],
            [(self.r1.pk, Decimal("1000.00")), (self.r2.pk, Decimal("200.00"))],
        )
        self.assertTrue(all(t.category == "Receivable Collection" for t in rows))
        self.assertTrue(all(t.description == "Counter payment" for t in rows))
        self.assertTrue(
            AuditLog.objects.filter(action="record_payment",
                                    object_id=str(self.customer.pk)).exists())

    def test_payment_with_discount(self):
        outcome = settlement.record_payment(
            "receivable", self.customer.pk, self.cash.pk, "100", discount="50")

        self.reload(self.r1, self.r2, self.customer, self.cash)
        self.assertEqual(self.r1.paid_amount, Decimal("100.00"))
        self.assertEqual(self.r1.amount, Decimal("1000.00"))
        self.assertEqual(self.r1.status, "partial")
        # the discount lands on the receivable the payment did not reach
        self.assertEqual(self.r2.amount, Decimal("450.00"))
        self.assertEqual(self.r2.paid_amount, Decimal("0.00"))
        self.assertEqual(self.r2.status, "unpaid")
        self.assertEqual(outcome["discounted_amount"], Decimal("50.00"))
        self.assertEqual(outcome["total_due"], Decimal("1350.00"))
        # customer -(100 + 50), account only sees the cash
        self.assertEqual(self.customer.balance, Decimal("1350.00"))
        self.assertEqual(self.cash.balance, Decimal("5100.00"))

    def test_fully_discounted_receivable_leaves_the_open_list(self):
        settlement.record_payment(
            "receivable", self.customer.pk, self.cash.pk, "1000", discount="500")

        self.reload(self.r2, self.customer)
        self.assertEqual(self.r2.amount, Decimal("0.00"))
        self.assertEqual(self.r2.paid_amount, Decimal("0.00"))
        self.assertFalse(Receivable.objects.open().exists())
        self.assertEqual(self.customer.balance, Decimal("0.00"))

        outcome = settlement.record_payment(
            "receivable", self.customer.pk, self.cash.pk, "50")

        self.assertEqual(outcome["advance_amount"], Decimal("50.00"))
        self.assertEqual(outcome["total_due"], Decimal("0.00"))

    def test_overpayment_is_held_as_advance(self):
        outcome = settlement.record_payment(
            "receivable", self.customer.pk, self.cash.pk, "1700")

        self.reload(self.customer, self.cash)
        self.assertEqual(outcome["advance_amount"], Decimal("200.00"))
        self.assertEqual(
            outcome["settled_amount"] + outcome["advance_amount"],
            outcome["applied_amount"],
        )
        self.assertEqual(self.customer.balance, Decimal("-200.00"))
        self.assertEqual(self.cash.balance, Decimal("6700.00"))
        advance = Transaction.objects.get(category="Advance")
        self.assertIsNone(advance.reference_id)
        self.assertEqual(advance.amount, Decimal("200.00"))

    def test_extra_charge_creates_unpaid_receivable(self):
        settlement.record_payment(
            "receivable", self.customer.pk, self.cash.pk, "100",
            extra_charge="40", on_date=self.today)

        extra = Receivable.objects.exclude(pk__in=[self.r1.pk, self.r2.pk]).get()
        self.assertEqual(extra.amount, Decimal("40.00"))
        self.assertEqual(extra.status, "unpaid")
        self.assertEqual(extra.due_date, self.days(7))
        self.reload(self.customer)
        self.assertEqual(self.customer.balance, Decimal("1440.00"))

    def test_discount_above_exposure_changes_nothing(self):
        with self.assertRaises(DiscountExceedsDue):
            settlement.record_payment(
                "receivable", self.customer.pk, self.cash.pk, "1000", discount="600")

        self.reload(self.r1, self.r2, self.customer, self.cash)
        self.assertEqual(self.r1.paid_amount, Decimal("0.00"))
        self.assertEqual(self.r2.amount, Decimal("500.00"))
        self.assertEqual(self.customer.balance, Decimal("1500.00"))
        self.assertEqual(self.cash.balance, Decimal("5000.00"))
        self.assertFalse(Transaction.objects.exists())

    def test_validation_errors_before_any_write(self):
        with self.assertRaises(InvalidAmount):
            settlement.record_payment("receivable", self.customer.pk, self.cash.pk, "0")
        with self.assertRaises(InvalidAmount):
            settlement.record_payment(
                "receivable", self.customer.pk, self.cash.pk, "10", discount="-1")
        with self.assertRaises(PartyNotFound):
            settlement.record_payment("receivable", 99999, self.cash.pk, "10")
        with self.assertRaises(AccountNotFound):
            settlement.record_payment("receivable", self.customer.pk, 99999, "10")
        self.assertFalse(Transaction.objects.exists())

    def test_storage_failure_rolls_back_every_write(self):
        with mock.patch.object(
            settlement, "_move_balance", side_effect=DatabaseError("disk full")
        ):
            result = operations.record_payment(
                "receivable", self.customer.pk, self.cash.pk, "1200")

        self.assertFalse(result.ok)
        self.assertEqual(result.code, "consistency_failure")
        self.reload(self.r1, self.r2, self.customer, self.cash)
        self.assertEqual(self.r1.paid_amount, Decimal("0.00"))
        self.assertEqual(self.r2.paid_amount, Decimal("0.00"))
        self.assertEqual(self.customer.balance, Decimal("1500.00"))
        self.assertEqual(self.cash.balance, Decimal("5000.00"))
        self.assertFalse(Transaction.objects.exists())

    def test_cached_balance_matches_ledger_after_payments(self):
        settlement.record_payment(
            "receivable", self.customer.pk, self.cash.pk, "300", discount="20")
        settlement.record_payment(
            "receivable", self.customer.pk, self.cash.pk, "1500", extra_charge="15")

        self.reload(self.customer)
        self.assertEqual(self.customer.balance, recompute_balance(self.customer))


""" Vendor payments across payables """
class RecordVendorPaymentTests(SettlementTestMixin, TestCase):

    def setUp(self):
        super().setUp()
        self.p1 = self.make_payable("800", due_in=3)
        self.p2 = self.make_payable("400", due_in=None)

    def test_payable_settlement_drains_account(self):
        outcome = settlement.record_payment(
            "payable", self.vendor.pk, self.cash.pk, "500")

        self.reload(self.p1, self.p2, self.vendor, self.cash)
        # undated payable is due first
        self.assertEqual(self.p2.status, "paid")
        self.assertEqual(self.p1.paid_amount, Decimal("100.00"))
        self.assertEqual(self.vendor.balance, Decimal("700.00"))
        self.assertEqual(self.cash.balance, Decimal("4500.00"))
        self.assertEqual(outcome["total_due"], Decimal("700.00"))
        self.assertEqual(
            set(Transaction.objects.values_list("tx_type", flat=True)), {"expense"})

    def test_insufficient_balance_is_reported_not_partially_paid(self):
        self.cash.balance = Decimal("100.00")
        self.cash.save()

        result = operations.record_payment(
            "payable", self.vendor.pk, self.cash.pk, "500")

        self.assertFalse(result.ok)
        self.assertEqual(result.code, "insufficient_balance")
        self.reload(self.p1, self.p2)
        self.assertEqual(self.p1.paid_amount, Decimal("0.00"))
        self.assertEqual(self.p2.paid_amount, Decimal("0.00"))

    def test_paying_more_than_owed_is_rejected(self):
        with self.assertRaises(PaymentAmountExceedsObligation):
            settlement.record_payment("payable", self.vendor.pk, self.cash.pk, "1300")
        self.assertFalse(Transaction.objects.exists())

    def test_vendor_without_payables(self):
        other = Vendor.objects.create(name="Hotel Bay")
        with self.assertRaises(NothingToSettle):
            settlement.record_payment("payable", other.pk, self.cash.pk, "10")


""" Single obligation collection """
class CollectObligationPaymentTests(SettlementTestMixin, TestCase):

    def setUp(self):
        super().setUp()
        self.receivable = self.make_receivable("1000", due_in=0)

    def test_collect_with_discount_and_extra_charge(self):
        outcome = settlement.collect_obligation_payment(
            "receivable", self.receivable.pk, self.cash.pk, "500",
            discount="100", extra_charge="30")

        self.reload(self.receivable, self.customer, self.cash)
        self.assertEqual(self.receivable.amount, Decimal("930.00"))
        self.assertEqual(self.receivable.paid_amount, Decimal("500.00"))
        self.assertEqual(outcome["remaining"], Decimal("430.00"))
        self.assertEqual(self.customer.balance, Decimal("430.00"))
        self.assertEqual(self.cash.balance, Decimal("5500.00"))

    def test_collect_more_than_remaining_is_rejected(self):
        with self.assertRaises(PaymentAmountExceedsObligation):
            settlement.collect_obligation_payment(
                "receivable", self.receivable.pk, self.cash.pk, "1001")

    def test_collect_on_paid_receivable_is_rejected(self):
        settlement.collect_obligation_payment(
            "receivable", self.receivable.pk, self.cash.pk, "1000")
        with self.assertRaises(NothingToSettle):
            settlement.collect_obligation_payment(
                "receivable", self.receivable.pk, self.cash.pk, "1")

    def test_discount_cannot_make_total_negative(self):
        with self.assertRaises(DiscountExceedsDue):
            settlement.collect_obligation_payment(
                "receivable", self.receivable.pk, self.cash.pk, "1", discount="1001")


""" Editing, reassigning and deleting obligations """
class ObligationEditTests(SettlementTestMixin, TestCase):

    def setUp(self):
        super().setUp()
        self.payable = self.make_payable("600", due_in=10)
        self.other_vendor = Vendor.objects.create(name="Visa Desk")

    def fields(self, **overrides):
        data = {
            "party_id": self.vendor.pk,
            "amount": "600",
            "date": self.days(-30),
            "due_date": self.days(10),
            "business": "travel",
            "description": "Dhaka-Dubai tickets",
        }
        data.update(overrides)
        return data

    def test_update_with_payment(self):
        settlement.update_obligation(
            "payable", self.payable.pk, self.fields(),
            payment_amount="250", settlement_account_id=self.cash.pk)

        self.reload(self.payable, self.vendor, self.cash)
        self.assertEqual(self.payable.paid_amount, Decimal("250.00"))
        self.assertEqual(self.payable.status, "partial")
        self.assertEqual(self.vendor.balance, Decimal("350.00"))
        self.assertEqual(self.cash.balance, Decimal("4750.00"))
        entry = Transaction.objects.get()
        self.assertEqual(entry.reference_id, self.payable.pk)
        self.assertEqual(entry.vendor, self.vendor)

    def test_amount_change_moves_party_balance(self):
        settlement.update_obligation(
            "payable", self.payable.pk, self.fields(amount="900"))

        self.reload(self.vendor)
        self.assertEqual(self.vendor.balance, Decimal("900.00"))

    def test_reassignment_moves_exposure_between_vendors(self):
        settlement.update_obligation(
            "payable", self.payable.pk,
            self.fields(party_id=self.other_vendor.pk, amount="650"),
            payment_amount="50", settlement_account_id=self.cash.pk)

        self.reload(self.payable, self.vendor, self.other_vendor, self.cash)
        self.assertEqual(self.payable.party, self.other_vendor)
        self.assertEqual(self.vendor.balance, Decimal("0.00"))
        self.assertEqual(self.other_vendor.balance, Decimal("600.00"))
        self.assertEqual(self.cash.balance, Decimal("4950.00"))
        self.assertEqual(Transaction.objects.get().vendor, self.other_vendor)

    def test_payment_beyond_amount_is_rejected(self):
        result = operations.create_or_update_obligation(
            "payable", self.fields(), obligation_id=self.payable.pk,
            payment_amount="601", settlement_account_id=self.cash.pk)

        self.assertFalse(result.ok)
        self.assertEqual(result.code, "payment_exceeds_obligation")
        self.reload(self.payable, self.vendor)
        self.assertEqual(self.payable.paid_amount, Decimal("0.00"))
        self.assertEqual(self.vendor.balance, Decimal("600.00"))

    def test_payment_requires_settlement_account(self):
        result = operations.create_or_update_obligation(
            "payable", self.fields(), obligation_id=self.payable.pk,
            payment_amount="100")

        self.assertFalse(result.ok)
        self.assertEqual(result.category, "validation")

    def test_payable_payment_checks_account_balance(self):
        poor = Account.objects.create(name="Petty", ac_type="Cash", balance=Decimal("10"))
        with self.assertRaises(InsufficientBalance):
            settlement.update_obligation(
                "payable", self.payable.pk, self.fields(),
                payment_amount="100", settlement_account_id=poor.pk)

    def test_delete_reverses_outstanding_exposure(self):
        settlement.record_payment("payable", self.vendor.pk, self.cash.pk, "200")

        outcome = settlement.delete_obligation("payable", self.payable.pk)

        self.reload(self.vendor)
        self.assertEqual(outcome["reversed_amount"], Decimal("400.00"))
        self.assertEqual(self.vendor.balance, Decimal("0.00"))
        self.assertFalse(Payable.objects.filter(pk=self.payable.pk).exists())
        # settlement history survives the obligation
        self.assertTrue(Transaction.objects.filter(reference_id=self.payable.pk).exists())

    def test_delete_unknown_obligation(self):
        result = operations.delete_obligation("payable", 424242)
        self.assertFalse(result.ok)
        self.assertEqual(result.code, "obligation_not_found")

    def test_unknown_side_is_rejected(self):
        result = operations.delete_obligation("ledger", self.payable.pk)
        self.assertFalse(result.ok)
        self.assertEqual(result.code, "invalid_input")
