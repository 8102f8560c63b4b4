import logging

from django.db import transaction
from django.db.models import Sum

from ..constants import ADVANCE
from ..models import Customer, Payable, Receivable, Transaction, Vendor
from .audit_helper import log_action
from .balances import ZERO, money, remaining_amount

logger = logging.getLogger(__name__)


def recompute_balance(party):
    """
    What the cached balance should be, rebuilt from ledger rows:
        customer: Σ remaining(receivables) − Σ advances received
        vendor:   Σ remaining(payables)
    """
    if isinstance(party, Customer):
        rows = Receivable.objects.filter(party=party)
    elif isinstance(party, Vendor):
        rows = Payable.objects.filter(party=party)
    else:
        raise TypeError(f"Not a ledger party: {party!r}")

    exposure = sum(
        (remaining_amount(a, p) for a, p in rows.values_list("amount", "paid_amount")),
        ZERO,
    )
    if isinstance(party, Customer):
        advances = Transaction.objects.filter(
            customer=party, category=ADVANCE
        ).aggregate(total=Sum("amount"))["total"]
        exposure -= money(advances)
    return exposure


def reconcile_party(party_model, party_id, fix=False):
    """Compare one cached balance with the ledger; optionally rewrite it."""
    with transaction.atomic():
        party = party_model.objects.select_for_update().get(pk=party_id)
        expected = recompute_balance(party)
        drift = money(party.balance) - expected
        if drift and fix:
            old_balance = party.balance
            party_model.objects.filter(pk=party.pk).update(balance=expected)
            log_action(
                action="reconcile",
                instance=party,
                changes={"before": str(old_balance), "after": str(expected)},
            )
    if drift:
        logger.warning("%s #%s balance drift %s (cached %s, ledger %s)%s",
                       party_model.__name__, party_id, drift, party.balance,
                       expected, " fixed" if fix else "")
    return drift


def reconcile_party_balances(fix=False):
    """Run reconcile_party over every customer and vendor."""
    drifted = []
    for party_model in (Customer, Vendor):
        for party_id in party_model.objects.values_list("pk", flat=True):
            drift = reconcile_party(party_model, party_id, fix=fix)
            if drift:
                drifted.append({
                    "party_type": party_model.__name__,
                    "party_id": party_id,
                    "drift": drift,
                })
    return drifted
