import datetime
from decimal import Decimal, InvalidOperation

from django.utils import timezone
from django.utils.dateparse import parse_date

from ..constants import BUSINESSES
from ..exceptions import InvalidAmount, InvalidInput
from .balances import ZERO, money


# ------------------------------------
# Input normalization shared by
# every balance-affecting operation
# ------------------------------------
def _to_decimal(value, message):
    if isinstance(value, bool):
        raise InvalidAmount(message)
    try:
        number = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        raise InvalidAmount(message)
    if not number.is_finite():
        raise InvalidAmount(message)
    return money(number)


def parse_positive_amount(value, label="Amount"):
    message = f"{label} must be greater than 0"
    if value is None or value == "":
        raise InvalidAmount(message)
    number = _to_decimal(value, message)
    if number <= ZERO:
        raise InvalidAmount(message)
    return number


def parse_non_negative(value, label="Amount"):
    # missing means zero
    if value is None or value == "":
        return ZERO
    message = f"{label} must be 0 or greater"
    number = _to_decimal(value, message)
    if number < ZERO:
        raise InvalidAmount(message)
    return number


def normalize_date(value, label="Date", default_today=False):
    if value is None or value == "":
        if default_today:
            return timezone.localdate()
        raise InvalidInput(f"Valid {label.lower()} is required")
    if isinstance(value, datetime.datetime):
        return value.date()
    if isinstance(value, datetime.date):
        return value
    try:
        parsed = parse_date(str(value).strip()[:10])
    except ValueError:
        parsed = None
    if parsed is None:
        raise InvalidInput(f"Valid {label.lower()} is required")
    return parsed


def normalize_text(value):
    if value is None:
        return None
    normalized = str(value).strip()
    return normalized or None


def normalize_business(value, allow_all=False):
    business = normalize_text(value)
    if allow_all and business in (None, "all"):
        return "all"
    if business not in BUSINESSES:
        raise InvalidInput("Business must be travel or isp")
    return business


def require_id(value, label):
    # ids arrive as strings from forms
    if value is None or str(value).strip() == "":
        raise InvalidInput(f"{label} is required")
    try:
        return int(str(value).strip())
    except ValueError:
        raise InvalidInput(f"{label} is invalid")
