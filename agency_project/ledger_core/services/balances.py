from decimal import Decimal

ZERO = Decimal("0.00")
CENT = Decimal("0.01")

# Obligation lifecycle, derived from amounts only
OBLIGATION_STATUS_CHOICES = [
    ("unpaid", "Unpaid"),
    ("partial", "Partial"),
    ("paid", "Paid"),
]


def money(value) -> Decimal:
    """Coerce to a two-place Decimal (None counts as zero)."""
    if value is None:
        return ZERO
    if not isinstance(value, Decimal):
        value = Decimal(str(value))
    return value.quantize(CENT)


def derive_status(amount, paid_amount) -> str:
    """
    Status is a pure function of (amount, paid_amount):
        paid == 0          -> unpaid
        0 < paid < amount  -> partial
        paid >= amount     -> paid
    """
    amount = money(amount)
    paid_amount = money(paid_amount)
    if paid_amount <= ZERO:
        return "unpaid"
    if paid_amount >= amount:
        return "paid"
    return "partial"


def remaining_amount(amount, paid_amount) -> Decimal:
    # Never negative, an overpaid row simply has nothing left
    return max(ZERO, money(amount) - money(paid_amount))
