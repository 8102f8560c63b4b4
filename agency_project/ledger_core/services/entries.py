import logging

from django.db import transaction

from ..constants import EXPENSE, INCOME
from ..exceptions import (EntryNotFound, InsufficientBalance, InvalidInput,
                          PartyNotFound, SettlementEntryLocked)
from ..models import Account, Customer, Transaction, Vendor
from .audit_helper import log_action
from .balances import ZERO
from .settlement import _lock_account, _move_balance, default_business
from .validation import (normalize_business, normalize_date, normalize_text,
                         parse_positive_amount, require_id)

logger = logging.getLogger(__name__)


# ------------------------------------
# Manual income / expense entries
# ------------------------------------
def _signed(tx_type, amount):
    # income fills the account, expense drains it
    return amount if tx_type == INCOME else -amount


def _clean_entry_fields(tx_type, fields):
    if tx_type not in (INCOME, EXPENSE):
        raise InvalidInput("Entry type must be income or expense")
    category = normalize_text(fields.get("category"))
    if not category:
        raise InvalidInput("Category is required")
    data = {
        "date": normalize_date(fields.get("date"), "Date"),
        "amount": parse_positive_amount(fields.get("amount")),
        "category": category,
        "business": normalize_business(
            fields.get("business") or default_business()),
        "account_id": require_id(fields.get("account_id"), "Account"),
        "description": normalize_text(fields.get("description")),
        "customer": None,
        "vendor": None,
    }
    # income may name a customer, expense a vendor
    party_id = normalize_text(
        fields.get("customer_id" if tx_type == INCOME else "vendor_id"))
    if party_id is not None:
        party_model = Customer if tx_type == INCOME else Vendor
        party = party_model.objects.filter(
            pk=require_id(party_id, party_model.__name__)).first()
        if party is None:
            raise PartyNotFound(
                f"Selected {party_model.__name__.lower()} does not exist")
        data["customer" if tx_type == INCOME else "vendor"] = party
    return data


def _lock_entry(entry_id):
    try:
        entry = Transaction.objects.select_for_update().get(pk=entry_id)
    except Transaction.DoesNotExist:
        raise EntryNotFound()
    # engine-written rows only change through their own settlement
    if entry.is_settlement_entry:
        raise SettlementEntryLocked()
    return entry


def create_entry(tx_type, fields, user=None):
    data = _clean_entry_fields(tx_type, fields)

    with transaction.atomic():
        account = _lock_account(data.pop("account_id"))
        if tx_type == EXPENSE and account.balance < data["amount"]:
            raise InsufficientBalance(
                "Insufficient account balance for this expense")
        entry = Transaction.objects.create(
            tx_type=tx_type, account=account, **data)
        _move_balance(Account, account.pk, _signed(tx_type, entry.amount))
        log_action(
            action="create",
            instance=entry,
            user=user,
            changes={"amount": str(entry.amount), "account_id": account.pk},
        )

    logger.info("Created %s entry #%s amount=%s account=%s",
                tx_type, entry.pk, entry.amount, account.pk)
    return entry


def update_entry(entry_id, fields, user=None):
    entry_id = require_id(entry_id, "Entry")

    with transaction.atomic():
        entry = _lock_entry(entry_id)
        data = _clean_entry_fields(entry.tx_type, fields)
        new_account_id = data.pop("account_id")
        old_account_id = entry.account_id
        old_amount = entry.amount

        # lock both accounts in id order
        locked = {
            pk: _lock_account(pk)
            for pk in sorted({old_account_id, new_account_id})
        }
        new_account = locked[new_account_id]

        if old_account_id == new_account_id:
            delta = _signed(entry.tx_type, data["amount"] - old_amount)
            if (entry.tx_type == EXPENSE and delta < ZERO
                    and new_account.balance + delta < ZERO):
                raise InsufficientBalance(
                    "Insufficient account balance for this change")
            _move_balance(Account, new_account_id, delta)
        else:
            if (entry.tx_type == EXPENSE
                    and new_account.balance < data["amount"]):
                raise InsufficientBalance(
                    "Insufficient account balance for this expense")
            # reverse on the old account, apply on the new one
            _move_balance(Account, old_account_id, -_signed(entry.tx_type, old_amount))
            _move_balance(Account, new_account_id, _signed(entry.tx_type, data["amount"]))

        for name, value in data.items():
            setattr(entry, name, value)
        entry.account = new_account
        entry.save()

        log_action(
            action="update",
            instance=entry,
            user=user,
            changes={
                "before": {"amount": str(old_amount), "account_id": old_account_id},
                "after": {"amount": str(entry.amount), "account_id": new_account_id},
            },
        )

    logger.info("Updated %s entry #%s", entry.tx_type, entry.pk)
    return entry


def delete_entry(entry_id, user=None):
    """Reverse the entry's account movement, then drop the row."""
    entry_id = require_id(entry_id, "Entry")

    with transaction.atomic():
        entry = _lock_entry(entry_id)
        _lock_account(entry.account_id)
        amount = entry.amount
        reversal = -_signed(entry.tx_type, amount)
        _move_balance(Account, entry.account_id, reversal)
        log_action(
            action="delete",
            instance=entry,
            user=user,
            changes={
                "amount": str(entry.amount),
                "account_id": entry.account_id,
                "category": entry.category,
            },
        )
        entry.delete()

    logger.info("Deleted entry #%s, account moved by %s", entry_id, reversal)
    return {"reversed_amount": amount}
