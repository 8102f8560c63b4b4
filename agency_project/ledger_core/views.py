import json

from django.core.serializers.json import DjangoJSONEncoder
from django.db import models
from django.http import JsonResponse
from django.views.decorators.http import require_GET, require_POST

from . import operations
from .exceptions import BUSINESS_RULE, REFERENCE_NOT_FOUND

# error category -> HTTP status
STATUS_BY_CATEGORY = {
    REFERENCE_NOT_FOUND: 404,
    BUSINESS_RULE: 409,
}


def _payload(request):
    # JSON bodies from the SPA, form posts from the admin screens
    if request.content_type == "application/json":
        try:
            return json.loads(request.body or b"{}")
        except ValueError:
            return {}
    return request.POST.dict()


def _plain(data):
    # model instances go out as their field values
    if isinstance(data, models.Model):
        return {
            field.attname: getattr(data, field.attname)
            for field in data._meta.concrete_fields
        }
    return data


def _respond(result):
    if result.ok:
        return JsonResponse(
            {"ok": True, "data": _plain(result.data)}, encoder=DjangoJSONEncoder)
    # validation problems are 400, storage failures 500
    status = STATUS_BY_CATEGORY.get(
        result.category, 500 if result.code == "consistency_failure" else 400)
    return JsonResponse(
        {"ok": False, "error": result.error, "code": result.code}, status=status)


def _user(request):
    return getattr(request, "user", None)


@require_POST
def record_payment_view(request, side, party_id):
    data = _payload(request)
    result = operations.record_payment(
        side,
        party_id,
        data.get("account_id"),
        data.get("amount"),
        discount=data.get("discount"),
        extra_charge=data.get("extra_charge"),
        date=data.get("date"),
        note=data.get("note"),
        user=_user(request),
    )
    return _respond(result)


@require_POST
def collect_payment_view(request, side, obligation_id):
    data = _payload(request)
    result = operations.collect_obligation_payment(
        side,
        obligation_id,
        data.get("account_id"),
        data.get("amount"),
        discount=data.get("discount"),
        extra_charge=data.get("extra_charge"),
        date=data.get("date"),
        note=data.get("note"),
        user=_user(request),
    )
    return _respond(result)


@require_POST
def save_obligation_view(request, side, obligation_id=None):
    data = _payload(request)
    result = operations.create_or_update_obligation(
        side,
        data,
        obligation_id=obligation_id,
        payment_amount=data.get("payment_amount"),
        settlement_account_id=data.get("settlement_account_id"),
        payment_date=data.get("payment_date"),
        user=_user(request),
    )
    return _respond(result)


@require_POST
def delete_obligation_view(request, side, obligation_id):
    return _respond(
        operations.delete_obligation(side, obligation_id, user=_user(request)))


@require_POST
def save_service_view(request, service_id=None):
    data = _payload(request)
    if service_id is None:
        result = operations.create_service(data, user=_user(request))
    else:
        result = operations.update_service(service_id, data, user=_user(request))
    return _respond(result)


@require_POST
def deliver_service_view(request, service_id):
    data = _payload(request)
    return _respond(operations.deliver_service(
        service_id, data.get("delivery_date"), user=_user(request)))


@require_POST
def service_status_view(request, service_id):
    data = _payload(request)
    return _respond(operations.update_service_status(
        service_id, data.get("status"), data.get("delivery_date"),
        user=_user(request)))


@require_POST
def delete_service_view(request, service_id):
    return _respond(
        operations.delete_service(service_id, user=_user(request)))


@require_POST
def pay_salary_view(request, salary_id):
    data = _payload(request)
    result = operations.pay_salary(
        salary_id,
        data.get("account_id"),
        paid_date=data.get("paid_date"),
        user=_user(request),
    )
    return _respond(result)


@require_POST
def generate_salaries_view(request):
    data = _payload(request)
    return _respond(operations.generate_monthly_salaries(
        data.get("month"), data.get("year"), data.get("business")))


@require_POST
def create_entry_view(request, tx_type):
    return _respond(
        operations.create_entry(tx_type, _payload(request), user=_user(request)))


@require_POST
def update_entry_view(request, entry_id):
    return _respond(
        operations.update_entry(entry_id, _payload(request), user=_user(request)))


@require_POST
def delete_entry_view(request, entry_id):
    return _respond(operations.delete_entry(entry_id, user=_user(request)))


@require_GET
def aging_view(request, side):
    result = operations.get_aging_snapshot(
        side,
        as_of=request.GET.get("as_of"),
        business=request.GET.get("business", "all"),
    )
    return _respond(result)


@require_GET
def report_view(request):
    result = operations.get_report_snapshot(
        from_date=request.GET.get("from_date"),
        to_date=request.GET.get("to_date"),
        business=request.GET.get("business", "all"),
        trend_window=request.GET.get("trend_window", "6m"),
    )
    return _respond(result)


@require_GET
def dashboard_view(request):
    return _respond(operations.get_dashboard_stats())


@require_GET
def party_ledger_view(request, side, party_id):
    return _respond(operations.get_party_ledger(side, party_id))
