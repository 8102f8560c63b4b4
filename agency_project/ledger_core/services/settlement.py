import logging

from django.conf import settings
from django.db import transaction
from django.db.models import F

from ..exceptions import (AccountNotFound, ConsistencyFailure,
                          DiscountExceedsDue, InsufficientBalance,
                          InvalidInput, NothingToSettle, ObligationNotFound,
                          PartyNotFound, PaymentAmountExceedsObligation)
from ..models import (Account, Customer, Payable, Receivable, Transaction,
                      Vendor)
from .allocation import SIDES, OpenObligation, allocate
from .audit_helper import log_action
from .balances import ZERO, remaining_amount
from .validation import (normalize_business, normalize_date, normalize_text,
                         parse_non_negative, parse_positive_amount, require_id)

logger = logging.getLogger(__name__)

# side name -> (party model, obligation model, Transaction party field)
BINDINGS = {
    "receivable": (Customer, Receivable, "customer"),
    "payable": (Vendor, Payable, "vendor"),
}


def get_binding(side_name):
    if side_name not in BINDINGS:
        raise InvalidInput("Side must be receivable or payable")
    party_model, obligation_model, party_field = BINDINGS[side_name]
    return SIDES[side_name], party_model, obligation_model, party_field


def default_business():
    return getattr(settings, "LEDGER_DEFAULT_BUSINESS", "travel")


# ----------------------------
# Row locking
# Lock order inside one atomic block:
# parties (ascending id) -> account -> obligations
# ----------------------------
def _lock_party(party_model, party_id):
    try:
        return party_model.objects.select_for_update().get(pk=party_id)
    except party_model.DoesNotExist:
        raise PartyNotFound(f"{party_model.__name__} not found")


def _lock_parties(party_model, *party_ids):
    locked = {}
    for pk in sorted(set(party_ids)):
        locked[pk] = _lock_party(party_model, pk)
    return locked


def _lock_account(account_id):
    try:
        return Account.objects.select_for_update().get(pk=account_id)
    except Account.DoesNotExist:
        raise AccountNotFound("Selected settlement account does not exist")


def _lock_obligation(obligation_model, obligation_id):
    try:
        return obligation_model.objects.select_for_update().get(pk=obligation_id)
    except obligation_model.DoesNotExist:
        raise ObligationNotFound(f"{obligation_model.__name__} record not found")


def _obligation_party_id(obligation_model, obligation_id):
    party_id = (
        obligation_model.objects.filter(pk=obligation_id)
        .values_list("party_id", flat=True)
        .first()
    )
    if party_id is None:
        raise ObligationNotFound(f"{obligation_model.__name__} record not found")
    return party_id


def _move_balance(model, pk, delta):
    """Increment a cached balance in the database, never read-modify-write."""
    if delta:
        model.objects.filter(pk=pk).update(balance=F("balance") + delta)


def open_total(obligation_model, party):
    """Σ remaining over a party's open obligations."""
    rows = obligation_model.objects.open().for_party(party).values_list(
        "amount", "paid_amount")
    return sum((remaining_amount(a, p) for a, p in rows), ZERO)


def _line_description(side, line, note):
    if note:
        return note
    if line.reference_id is None:
        if side.name == "receivable":
            return "Advance payment received from customer"
        return "Advance payment made to vendor"
    if side.name == "receivable":
        return f"Customer payment against receivable #{line.reference_id}"
    return f"Vendor bill payment against payable #{line.reference_id}"


# ----------------------------
# Plan execution
# ----------------------------
def apply_settlement(party, account, plan, *, on_date, note=None, user=None):
    """
    Execute an allocator plan.
    Must run inside transaction.atomic() with party and account locked.
    Returns the outcome totals.
    """
    side, party_model, obligation_model, party_field = get_binding(plan.side.name)

    # Preconditions, nothing written yet
    if plan.side.cash_sign < 0 and account.balance < plan.applied_total:
        raise InsufficientBalance(
            "Insufficient account balance for this payment")

    touched_ids = [change.obligation_id for change in plan.changes]
    obligations = {
        o.pk: o
        for o in obligation_model.objects.select_for_update().filter(
            pk__in=touched_ids, party=party)
    }
    if len(obligations) != len(touched_ids):
        raise ConsistencyFailure(
            "Settlement plan references obligations outside this party")

    # (a) obligation rows
    for change in plan.changes:
        obligation = obligations[change.obligation_id]
        obligation.amount = change.amount
        obligation.paid_amount = change.paid_amount
        obligation.save(update_fields=["amount", "paid_amount"])

    # (b) transaction log
    for line in plan.transaction_lines:
        Transaction.objects.create(
            date=on_date,
            amount=line.amount,
            tx_type=line.tx_type,
            category=line.category,
            business=line.business,
            account=account,
            description=_line_description(side, line, note),
            reference_id=line.reference_id,
            reference_model=line.reference_model,
            **{party_field: party},
        )

    # (c) + (d) cached balances
    _move_balance(Account, account.pk, plan.cash_delta)
    _move_balance(party_model, party.pk, plan.party_delta)

    # (e) extra charge becomes its own obligation
    if plan.new_obligation is not None:
        obligation_model.objects.create(
            party=party,
            business=plan.new_obligation.business,
            amount=plan.new_obligation.amount,
            paid_amount=ZERO,
            date=plan.new_obligation.date,
            due_date=plan.new_obligation.due_date,
            description=plan.new_obligation.description,
        )

    log_action(
        action="record_payment",
        instance=party,
        user=user,
        changes={
            "side": side.name,
            "account_id": account.pk,
            "applied": str(plan.applied_total),
            "settled": str(plan.settled_total),
            "discounted": str(plan.discount_total),
            "advance": str(plan.advance_total),
            "extra_charge": str(plan.extra_charge),
            "obligations": [c.obligation_id for c in plan.changes],
        },
    )

    return {
        "applied_amount": plan.applied_total,
        "settled_amount": plan.settled_total,
        "discounted_amount": plan.discount_total,
        "advance_amount": plan.advance_total,
    }


def record_payment(
    side_name,
    party_id,
    account_id,
    amount,
    discount=None,
    extra_charge=None,
    on_date=None,
    note=None,
    user=None,
):
    """
    Apply one payment across every open obligation of a party,
    earliest due first, as a single atomic unit.
    """
    side, party_model, obligation_model, _ = get_binding(side_name)
    amount = parse_positive_amount(amount, "Payment amount")
    discount = parse_non_negative(discount, "Discount amount")
    extra_charge = parse_non_negative(extra_charge, "Extra charge amount")
    on_date = normalize_date(on_date, "Payment date", default_today=True)
    party_id = require_id(party_id, party_model.__name__)
    account_id = require_id(account_id, "Settlement account")
    note = normalize_text(note)

    with transaction.atomic():
        party = _lock_party(party_model, party_id)
        account = _lock_account(account_id)

        # cheap rejection before touching obligations
        if side.cash_sign < 0 and account.balance < amount:
            raise InsufficientBalance(
                "Insufficient account balance for this payment")

        open_rows = list(
            obligation_model.objects.select_for_update()
            .open()
            .for_party(party)
            .in_settlement_order()
        )
        plan = allocate(
            [OpenObligation.from_model(o) for o in open_rows],
            amount,
            discount,
            extra_charge,
            side=side,
            on_date=on_date,
            business=default_business(),
            extra_charge_due_days=getattr(
                settings, "LEDGER_EXTRA_CHARGE_DUE_DAYS", 7),
        )
        outcome = apply_settlement(
            party, account, plan, on_date=on_date, note=note, user=user)
        outcome["total_due"] = open_total(obligation_model, party)

    logger.info(
        "Recorded %s payment party=%s account=%s applied=%s settled=%s "
        "discount=%s advance=%s",
        side.name, party_id, account_id, outcome["applied_amount"],
        outcome["settled_amount"], outcome["discounted_amount"],
        outcome["advance_amount"],
    )
    return outcome


def collect_obligation_payment(
    side_name,
    obligation_id,
    account_id,
    amount,
    discount=None,
    extra_charge=None,
    on_date=None,
    note=None,
    user=None,
):
    """
    Settle one specific obligation.
    Discount and extra charge adjust that obligation's own amount.
    """
    side, party_model, obligation_model, party_field = get_binding(side_name)
    amount = parse_positive_amount(amount, "Payment amount")
    discount = parse_non_negative(discount, "Discount amount")
    extra_charge = parse_non_negative(extra_charge, "Extra charge amount")
    on_date = normalize_date(on_date, "Payment date", default_today=True)
    obligation_id = require_id(obligation_id, "Obligation")
    account_id = require_id(account_id, "Settlement account")
    note = normalize_text(note)

    with transaction.atomic():
        party_id = _obligation_party_id(obligation_model, obligation_id)
        party = _lock_party(party_model, party_id)
        account = _lock_account(account_id)
        obligation = _lock_obligation(obligation_model, obligation_id)
        if obligation.party_id != party_id:
            raise ConsistencyFailure("Obligation moved during update, retry")

        adjusted = obligation.amount + extra_charge - discount
        if adjusted < ZERO:
            raise DiscountExceedsDue(
                "Discount cannot make the obligation total negative")

        current_remaining = remaining_amount(adjusted, obligation.paid_amount)
        if current_remaining <= ZERO:
            raise NothingToSettle("This obligation is already fully paid")
        if amount > current_remaining:
            raise PaymentAmountExceedsObligation(
                "Payment amount cannot exceed remaining due")
        if side.cash_sign < 0 and account.balance < amount:
            raise InsufficientBalance(
                "Insufficient account balance for this payment")

        obligation.amount = adjusted
        obligation.paid_amount = obligation.paid_amount + amount
        obligation.save(update_fields=["amount", "paid_amount"])

        Transaction.objects.create(
            date=on_date,
            amount=amount,
            tx_type=side.tx_type,
            category=side.category,
            business=obligation.business,
            account=account,
            description=note or f"Settlement against {side.name} #{obligation.pk}",
            reference_id=obligation.pk,
            reference_model=side.reference_model,
            **{party_field: party},
        )
        _move_balance(Account, account.pk, amount * side.cash_sign)
        _move_balance(party_model, party.pk, -amount - discount + extra_charge)

        log_action(
            action="collect_payment",
            instance=obligation,
            user=user,
            changes={
                "amount": str(amount),
                "discount": str(discount),
                "extra_charge": str(extra_charge),
                "account_id": account.pk,
                "status": obligation.status,
            },
        )

    logger.info(
        "Collected %s on %s #%s via account=%s", amount, side.name,
        obligation_id, account_id)
    return {
        "applied_amount": amount,
        "remaining": obligation.remaining,
        "status": obligation.status,
    }


# ----------------------------
# Obligation create / update / delete
# ----------------------------
def _clean_obligation_fields(fields):
    due_date = fields.get("due_date")
    return {
        "party_id": require_id(fields.get("party_id"), "Party"),
        "amount": parse_positive_amount(fields.get("amount"), "Amount"),
        "date": normalize_date(fields.get("date"), "Date", default_today=True),
        # missing due date sorts first in settlement order
        "due_date": (
            None if due_date in (None, "") else normalize_date(due_date, "Due date")
        ),
        "business": normalize_business(
            fields.get("business") or default_business()),
        "description": normalize_text(fields.get("description")),
    }


def create_obligation(side_name, fields, user=None):
    """New obligations always start unpaid; the party's exposure grows by the amount."""
    side, party_model, obligation_model, _ = get_binding(side_name)
    data = _clean_obligation_fields(fields)

    with transaction.atomic():
        party = _lock_party(party_model, data["party_id"])
        obligation = obligation_model.objects.create(
            party=party,
            business=data["business"],
            amount=data["amount"],
            paid_amount=ZERO,
            date=data["date"],
            due_date=data["due_date"],
            description=data["description"],
        )
        _move_balance(party_model, party.pk, obligation.amount)
        log_action(
            action="create",
            instance=obligation,
            user=user,
            changes={"amount": str(obligation.amount), "party_id": party.pk},
        )

    logger.info("Created %s #%s for party=%s amount=%s",
                side.name, obligation.pk, party.pk, obligation.amount)
    return obligation


def update_obligation(
    side_name,
    obligation_id,
    fields,
    payment_amount=None,
    settlement_account_id=None,
    payment_date=None,
    user=None,
):
    """
    Edit an obligation, optionally recording a payment and/or moving it
    to another party. Exposure moves between parties in the same unit.
    """
    side, party_model, obligation_model, party_field = get_binding(side_name)
    obligation_id = require_id(obligation_id, "Obligation")
    data = _clean_obligation_fields(fields)
    payment = parse_non_negative(payment_amount, "Payment amount")
    account_id = None
    if payment > ZERO:
        if normalize_text(settlement_account_id) is None:
            raise InvalidInput(
                "Settlement account is required when recording payment")
        account_id = require_id(settlement_account_id, "Settlement account")
    payment_date = normalize_date(payment_date, "Payment date", default_today=True)

    with transaction.atomic():
        old_party_id = _obligation_party_id(obligation_model, obligation_id)
        new_party_id = data["party_id"]
        parties = _lock_parties(party_model, old_party_id, new_party_id)
        account = _lock_account(account_id) if account_id else None
        obligation = _lock_obligation(obligation_model, obligation_id)
        if obligation.party_id != old_party_id:
            raise ConsistencyFailure("Obligation moved during update, retry")

        before = {
            "party_id": obligation.party_id,
            "amount": str(obligation.amount),
            "paid_amount": str(obligation.paid_amount),
        }
        old_remaining = obligation.remaining
        new_paid = obligation.paid_amount + payment
        if new_paid > data["amount"]:
            raise PaymentAmountExceedsObligation(
                f"Payment amount cannot exceed remaining {side.name}")
        if account is not None and side.cash_sign < 0 and account.balance < payment:
            raise InsufficientBalance(
                "Insufficient account balance for this payment")
        new_remaining = remaining_amount(data["amount"], new_paid)

        # exposure on the party side
        if old_party_id == new_party_id:
            _move_balance(party_model, new_party_id, new_remaining - old_remaining)
        else:
            _move_balance(party_model, old_party_id, -old_remaining)
            _move_balance(party_model, new_party_id, new_remaining)

        if account is not None:
            Transaction.objects.create(
                date=payment_date,
                amount=payment,
                tx_type=side.tx_type,
                category=side.category,
                business=data["business"],
                account=account,
                description=f"Settlement against {side.name} #{obligation.pk}",
                reference_id=obligation.pk,
                reference_model=side.reference_model,
                **{party_field: parties[new_party_id]},
            )
            _move_balance(Account, account.pk, payment * side.cash_sign)

        obligation.party = parties[new_party_id]
        obligation.amount = data["amount"]
        obligation.paid_amount = new_paid
        obligation.date = data["date"]
        obligation.due_date = data["due_date"]
        obligation.business = data["business"]
        obligation.description = data["description"]
        obligation.save()

        log_action(
            action="update",
            instance=obligation,
            user=user,
            changes={
                "before": before,
                "after": {
                    "party_id": obligation.party_id,
                    "amount": str(obligation.amount),
                    "paid_amount": str(obligation.paid_amount),
                },
                "payment": str(payment),
            },
        )

    logger.info("Updated %s #%s payment=%s party %s -> %s", side.name,
                obligation_id, payment, old_party_id, new_party_id)
    return obligation


def delete_obligation(side_name, obligation_id, user=None):
    """Remove an obligation after taking its outstanding exposure off the party."""
    side, party_model, obligation_model, _ = get_binding(side_name)
    obligation_id = require_id(obligation_id, "Obligation")

    with transaction.atomic():
        party_id = _obligation_party_id(obligation_model, obligation_id)
        party = _lock_party(party_model, party_id)
        obligation = _lock_obligation(obligation_model, obligation_id)
        if obligation.party_id != party_id:
            raise ConsistencyFailure("Obligation moved during update, retry")
        outstanding = obligation.remaining

        _move_balance(party_model, party.pk, -outstanding)
        log_action(
            action="delete",
            instance=obligation,
            user=user,
            changes={
                "party_id": party.pk,
                "amount": str(obligation.amount),
                "paid_amount": str(obligation.paid_amount),
                "reversed": str(outstanding),
            },
        )
        obligation.delete()

    logger.info("Deleted %s #%s, reversed %s from party=%s",
                side.name, obligation_id, outstanding, party_id)
    return {"reversed_amount": outstanding}
