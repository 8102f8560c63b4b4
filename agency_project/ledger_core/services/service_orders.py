"""
Services sold by the agency and the obligations they carry.

A service holds at most one receivable (its price, owed by the customer)
and one payable (its cost, owed to the vendor). Every change re-derives
which of the two its status calls for, then posts, refreshes or releases
them through the settlement functions inside the same atomic block that
writes the service row.

Lock order: service row, then whatever the settlement function locks
(parties, account, obligation).
"""
import datetime
import logging

from django.conf import settings
from django.db import transaction
from django.utils import timezone

from ..exceptions import (InvalidInput, PartyNotFound, ServiceCancelled,
                          ServiceNotFound)
from ..models import Customer, Service, Vendor
from ..models.service import SERVICE_STATUS_CHOICES, SERVICE_TYPE_CHOICES
from . import settlement
from .audit_helper import log_action
from .balances import ZERO
from .validation import (normalize_business, normalize_date, normalize_text,
                         parse_non_negative, require_id)

logger = logging.getLogger(__name__)

SERVICE_STATUSES = {value for value, _ in SERVICE_STATUS_CHOICES}
SERVICE_TYPES = {value for value, _ in SERVICE_TYPE_CHOICES}

# side name -> (obligation link on Service, party id field, amount field)
LEDGER_LINKS = {
    "receivable": ("receivable", "customer_id", "price"),
    "payable": ("payable", "vendor_id", "cost"),
}


def wanted_exposure(service):
    """Obligation amount each side should carry for the service's status."""
    return {
        "receivable": service.price if service.status != "cancelled" else ZERO,
        "payable": service.cost if service.status == "delivered" else ZERO,
    }


def _ledger_basis(service):
    # what the posted obligations were last derived from
    return {
        side_name: (getattr(service, amount_field), getattr(service, party_field))
        for side_name, (_, party_field, amount_field) in LEDGER_LINKS.items()
    }


def _obligation_dates(service):
    today = timezone.localdate()
    base = service.delivery_date or today
    date = base if service.status == "delivered" else today
    due_days = getattr(settings, "LEDGER_SERVICE_DUE_DAYS", 7)
    return date, base + datetime.timedelta(days=due_days)


def _sync_side(service, side_name, wanted, before, user):
    link, party_field, _ = LEDGER_LINKS[side_name]
    obligation_id = getattr(service, f"{link}_id")
    party_id = getattr(service, party_field)

    if wanted <= ZERO:
        if obligation_id is None:
            return None
        settlement.delete_obligation(side_name, obligation_id, user=user)
        setattr(service, link, None)
        return "released"

    if obligation_id is None:
        date, due_date = _obligation_dates(service)
        obligation = settlement.create_obligation(side_name, {
            "party_id": party_id,
            "amount": wanted,
            "date": date,
            "due_date": due_date,
            "business": service.business,
            "description": f"Service {side_name}: {service.name}",
        }, user=user)
        setattr(service, link, obligation)
        return "posted"

    old_amount, old_party_id = before
    if wanted == old_amount and party_id == old_party_id:
        return None
    # shift by the price change so earlier discounts and charges survive
    current = getattr(service, link)
    settlement.update_obligation(side_name, obligation_id, {
        "party_id": party_id,
        "amount": current.amount + (wanted - old_amount),
        "date": current.date,
        "due_date": current.due_date,
        "business": current.business,
        "description": current.description,
    }, user=user)
    return "refreshed"


def _sync_ledger(service, before, user):
    return {
        side_name: _sync_side(
            service, side_name, wanted, before[side_name] if before else None, user)
        for side_name, wanted in wanted_exposure(service).items()
    }


def _clean_service_fields(fields):
    name = normalize_text(fields.get("name"))
    if name is None:
        raise InvalidInput("Service name is required")
    category = normalize_text(fields.get("category"))
    if category is None:
        raise InvalidInput("Category is required")
    status = normalize_text(fields.get("status")) or "pending"
    if status not in SERVICE_STATUSES:
        raise InvalidInput("Invalid status")
    service_type = normalize_text(fields.get("service_type")) or "other"
    if service_type not in SERVICE_TYPES:
        raise InvalidInput("Invalid service type")
    delivery_date = fields.get("delivery_date")
    return {
        "name": name,
        "description": normalize_text(fields.get("description")),
        "category": category,
        "service_type": service_type,
        "business": normalize_business(
            fields.get("business") or settlement.default_business()),
        "price": parse_non_negative(fields.get("price"), "Price"),
        "cost": parse_non_negative(fields.get("cost"), "Cost"),
        "status": status,
        "customer_id": require_id(fields.get("customer_id"), "Customer"),
        "vendor_id": require_id(fields.get("vendor_id"), "Vendor"),
        "delivery_date": (
            None if delivery_date in (None, "")
            else normalize_date(delivery_date, "Delivery date")
        ),
    }


def _require_parties(customer_id, vendor_id):
    if not Customer.objects.filter(pk=customer_id).exists():
        raise PartyNotFound("Selected customer does not exist")
    if not Vendor.objects.filter(pk=vendor_id).exists():
        raise PartyNotFound("Selected vendor does not exist")


def _lock_service(service_id):
    try:
        return Service.objects.select_for_update().get(pk=service_id)
    except Service.DoesNotExist:
        raise ServiceNotFound()


def _audit_changes(service, ledger):
    return {
        "status": service.status,
        "price": str(service.price),
        "cost": str(service.cost),
        "receivable_id": service.receivable_id,
        "payable_id": service.payable_id,
        "ledger": ledger,
    }


# ----------------------------
# Operations
# ----------------------------
def create_service(fields, user=None):
    """Record a sale; the customer owes the price unless it is cancelled."""
    data = _clean_service_fields(fields)

    with transaction.atomic():
        _require_parties(data["customer_id"], data["vendor_id"])
        service = Service.objects.create(**data)
        ledger = _sync_ledger(service, None, user)
        service.save(update_fields=["receivable", "payable"])
        log_action(action="create", instance=service, user=user,
                   changes=_audit_changes(service, ledger))

    logger.info("Created service #%s status=%s price=%s cost=%s",
                service.pk, service.status, service.price, service.cost)
    return service


def update_service(service_id, fields, user=None):
    """
    Edit a service. Price or cost changes shift the posted obligation by
    the difference; a new customer or vendor takes the obligation over.
    """
    service_id = require_id(service_id, "Service")
    data = _clean_service_fields(fields)

    with transaction.atomic():
        service = _lock_service(service_id)
        _require_parties(data["customer_id"], data["vendor_id"])
        before = _ledger_basis(service)
        for field_name, value in data.items():
            setattr(service, field_name, value)
        ledger = _sync_ledger(service, before, user)
        service.save()
        log_action(action="update", instance=service, user=user,
                   changes=_audit_changes(service, ledger))

    logger.info("Updated service #%s status=%s ledger=%s",
                service.pk, service.status, ledger)
    return service


def _change_status(service, status, delivery_date, user):
    before = _ledger_basis(service)
    service.status = status
    if status == "delivered":
        service.delivery_date = normalize_date(
            delivery_date, "Delivery date", default_today=True)
    ledger = _sync_ledger(service, before, user)
    service.save()
    log_action(action="status", instance=service, user=user,
               changes=_audit_changes(service, ledger))
    return ledger


def deliver_service(service_id, delivery_date=None, user=None):
    """Mark delivered: the vendor is now owed the cost."""
    service_id = require_id(service_id, "Service")

    with transaction.atomic():
        service = _lock_service(service_id)
        if service.status == "cancelled":
            raise ServiceCancelled()
        ledger = _change_status(service, "delivered", delivery_date, user)

    logger.info("Delivered service #%s ledger=%s", service.pk, ledger)
    return service


def update_service_status(service_id, status, delivery_date=None, user=None):
    """
    Move a service to any status. Cancelling releases both obligations,
    leaving delivery releases the payable, reopening re-posts the receivable.
    """
    service_id = require_id(service_id, "Service")
    status = normalize_text(status)
    if status not in SERVICE_STATUSES:
        raise InvalidInput("Invalid status")

    with transaction.atomic():
        service = _lock_service(service_id)
        if service.status == status:
            return service
        old_status = service.status
        ledger = _change_status(service, status, delivery_date, user)

    logger.info("Service #%s %s -> %s ledger=%s",
                service.pk, old_status, status, ledger)
    return service


def delete_service(service_id, user=None):
    """Release the outstanding part of both obligations, then delete."""
    service_id = require_id(service_id, "Service")

    with transaction.atomic():
        service = _lock_service(service_id)
        reversed_amounts = {}
        for side_name, (link, _, _) in LEDGER_LINKS.items():
            obligation_id = getattr(service, f"{link}_id")
            if obligation_id is None:
                reversed_amounts[side_name] = ZERO
                continue
            outcome = settlement.delete_obligation(side_name, obligation_id, user=user)
            reversed_amounts[side_name] = outcome["reversed_amount"]
        log_action(
            action="delete",
            instance=service,
            user=user,
            changes={side: str(amount) for side, amount in reversed_amounts.items()},
        )
        service.delete()

    logger.info("Deleted service #%s reversed=%s", service_id, reversed_amounts)
    return {"reversed": reversed_amounts}
