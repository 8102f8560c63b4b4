"""
Obligation allocator.

Turns one payment into a settlement plan over a party's open obligations.
Pure computation: nothing here reads or writes the database, the caller
hands in snapshots and applies the returned plan.
"""
import datetime
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Dict, Iterable, List, Optional

from ..constants import (ADVANCE, EXPENSE, INCOME, PAYABLE,
                         PAYABLE_SETTLEMENT, RECEIVABLE,
                         RECEIVABLE_COLLECTION)
from ..exceptions import (DiscountExceedsDue, InvalidAmount, NothingToSettle,
                          PaymentAmountExceedsObligation)
from .balances import ZERO, derive_status, money, remaining_amount


@dataclass(frozen=True)
class Side:
    """Which half of the ledger a settlement runs on."""
    name: str
    tx_type: str
    category: str
    reference_model: str
    # leftover payment becomes an advance instead of an error
    allow_advance: bool
    # direction of the cash movement on the settlement account
    cash_sign: int


RECEIVABLE_SIDE = Side(
    name="receivable",
    tx_type=INCOME,
    category=RECEIVABLE_COLLECTION,
    reference_model=RECEIVABLE,
    allow_advance=True,
    cash_sign=1,
)
PAYABLE_SIDE = Side(
    name="payable",
    tx_type=EXPENSE,
    category=PAYABLE_SETTLEMENT,
    reference_model=PAYABLE,
    allow_advance=False,
    cash_sign=-1,
)
SIDES = {side.name: side for side in (RECEIVABLE_SIDE, PAYABLE_SIDE)}


@dataclass(frozen=True)
class OpenObligation:
    id: int
    amount: Decimal
    paid_amount: Decimal
    date: Optional[datetime.date] = None
    due_date: Optional[datetime.date] = None
    created_at: Optional[datetime.datetime] = None
    business: str = "travel"

    @property
    def remaining(self) -> Decimal:
        return remaining_amount(self.amount, self.paid_amount)

    @classmethod
    def from_model(cls, obligation) -> "OpenObligation":
        return cls(
            id=obligation.pk,
            amount=money(obligation.amount),
            paid_amount=money(obligation.paid_amount),
            date=obligation.date,
            due_date=obligation.due_date,
            created_at=obligation.created_at,
            business=obligation.business,
        )


def settlement_order_key(obligation):
    """
    Total order used for settlement: missing due date first, then the
    earliest due date, then creation time, then id.
    """
    created = obligation.created_at
    return (
        obligation.due_date is not None,
        obligation.due_date or datetime.date.min,
        created is not None,
        created.timestamp() if created is not None else 0.0,
        obligation.id or 0,
    )


@dataclass
class ObligationChange:
    obligation_id: int
    settled: Decimal
    discounted: Decimal
    amount: Decimal
    paid_amount: Decimal
    status: str


@dataclass
class TransactionLine:
    amount: Decimal
    tx_type: str
    category: str
    business: str
    reference_id: Optional[int] = None
    reference_model: Optional[str] = None


@dataclass
class NewObligation:
    amount: Decimal
    date: datetime.date
    due_date: datetime.date
    business: str
    description: str = "Extra charge"


@dataclass
class SettlementPlan:
    side: Side
    changes: List[ObligationChange] = field(default_factory=list)
    transaction_lines: List[TransactionLine] = field(default_factory=list)
    new_obligation: Optional[NewObligation] = None
    settled_total: Decimal = ZERO
    advance_total: Decimal = ZERO
    discount_total: Decimal = ZERO
    extra_charge: Decimal = ZERO

    @property
    def applied_total(self) -> Decimal:
        # every accepted unit of payment lands in exactly one of these
        return self.settled_total + self.advance_total

    @property
    def party_delta(self) -> Decimal:
        return -(self.settled_total + self.advance_total + self.discount_total) + self.extra_charge

    @property
    def cash_delta(self) -> Decimal:
        return self.applied_total * self.side.cash_sign


def _non_negative(value, label):
    value = money(value)
    if value < ZERO:
        raise InvalidAmount(f"{label} must be 0 or greater")
    return value


def allocate(
    open_obligations: Iterable[OpenObligation],
    payment_amount,
    discount_amount=ZERO,
    extra_charge_amount=ZERO,
    *,
    side: Side = RECEIVABLE_SIDE,
    on_date: datetime.date,
    business: str = "travel",
    extra_charge_due_days: int = 7,
) -> SettlementPlan:
    """
    Build a settlement plan.

    1. payment settles obligations in settlement order until exhausted
    2. leftover becomes an advance (receivable side only)
    3. discount cuts the amount of obligations up to each one's
       post-payment remaining: first those the payment did not touch,
       then the ones it settled, each group in settlement order
    4. extra charge becomes a new unpaid obligation due in a week

    Raises InvalidAmount, DiscountExceedsDue, NothingToSettle or
    PaymentAmountExceedsObligation; no plan is returned in that case.
    """
    payment = money(payment_amount)
    if payment <= ZERO:
        raise InvalidAmount("Payment amount must be greater than 0")
    discount = _non_negative(discount_amount, "Discount amount")
    extra_charge = _non_negative(extra_charge_amount, "Extra charge amount")

    ordered = sorted(open_obligations, key=settlement_order_key)
    # working copy: id -> [amount, paid_amount]
    state: Dict[int, List[Decimal]] = {
        o.id: [money(o.amount), money(o.paid_amount)] for o in ordered
    }
    settled_by: Dict[int, Decimal] = {}
    discounted_by: Dict[int, Decimal] = {}
    plan = SettlementPlan(side=side)

    total_due = sum((o.remaining for o in ordered), ZERO)
    if not side.allow_advance and total_due <= ZERO:
        raise NothingToSettle("No due entries found for this party")

    # 1. settle in order
    remaining_payment = payment
    for o in ordered:
        if remaining_payment <= ZERO:
            break
        amount, paid = state[o.id]
        due = remaining_amount(amount, paid)
        if due <= ZERO:
            continue
        settled = min(due, remaining_payment)
        state[o.id][1] = paid + settled
        settled_by[o.id] = settled_by.get(o.id, ZERO) + settled
        plan.transaction_lines.append(TransactionLine(
            amount=settled,
            tx_type=side.tx_type,
            category=side.category,
            business=o.business,
            reference_id=o.id,
            reference_model=side.reference_model,
        ))
        remaining_payment -= settled
        plan.settled_total += settled

    # 2. advance
    if remaining_payment > ZERO:
        if not side.allow_advance:
            raise PaymentAmountExceedsObligation(
                f"Payment exceeds total due ({total_due:.2f})")
        plan.advance_total = remaining_payment
        plan.transaction_lines.append(TransactionLine(
            amount=remaining_payment,
            tx_type=side.tx_type,
            category=ADVANCE,
            business=business,
        ))

    # 3. discount against what is still open
    if discount > ZERO:
        exposure = sum(
            (remaining_amount(*state[o.id]) for o in ordered), ZERO
        )
        if discount > exposure:
            raise DiscountExceedsDue(
                f"Discount ({discount:.2f}) exceeds total remaining due ({exposure:.2f})")
        left = discount
        # obligations this payment left untouched come first
        untouched = [o for o in ordered if o.id not in settled_by]
        touched = [o for o in ordered if o.id in settled_by]
        for o in untouched + touched:
            if left <= ZERO:
                break
            amount, paid = state[o.id]
            due = remaining_amount(amount, paid)
            if due <= ZERO:
                continue
            cut = min(due, left)
            state[o.id][0] = amount - cut
            discounted_by[o.id] = discounted_by.get(o.id, ZERO) + cut
            left -= cut
        plan.discount_total = discount

    # 4. extra charge
    if extra_charge > ZERO:
        plan.extra_charge = extra_charge
        plan.new_obligation = NewObligation(
            amount=extra_charge,
            date=on_date,
            due_date=on_date + datetime.timedelta(days=extra_charge_due_days),
            business=business,
        )

    for o in ordered:
        if o.id not in settled_by and o.id not in discounted_by:
            continue
        amount, paid = state[o.id]
        plan.changes.append(ObligationChange(
            obligation_id=o.id,
            settled=settled_by.get(o.id, ZERO),
            discounted=discounted_by.get(o.id, ZERO),
            amount=amount,
            paid_amount=paid,
            status=derive_status(amount, paid),
        ))
    return plan
