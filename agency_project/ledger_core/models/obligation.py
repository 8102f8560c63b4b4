from decimal import Decimal
from django.core.exceptions import ValidationError
from django.db import models
from ..managers import ObligationManager
from ..services.balances import (OBLIGATION_STATUS_CHOICES, derive_status,
                                 remaining_amount)
from .customer import Customer
from .vendor import Vendor

# Business units sharing the same ledger
BUSINESS_CHOICES = [
    ("travel", "Travel"),
    ("isp", "ISP"),
]


# ---------- Obligations ----------
# Shared shape of a Receivable (customer owes agency)
# and a Payable (agency owes vendor)
class Obligation(models.Model):
    business = models.CharField(
        max_length=10, choices=BUSINESS_CHOICES, default="travel"
    )

    # Face value (discounts reduce it, payments never do)
    amount = models.DecimalField(
        max_digits=18, decimal_places=2, default=Decimal("0.00")
    )
    # How much has been settled so far
    paid_amount = models.DecimalField(
        max_digits=18, decimal_places=2, default=Decimal("0.00")
    )

    date = models.DateField()  # when the obligation arose
    # payment deadline, missing means "due immediately"
    due_date = models.DateField(null=True, blank=True)

    # Always derived from (amount, paid_amount) on save
    status = models.CharField(
        max_length=10, choices=OBLIGATION_STATUS_CHOICES, default="unpaid"
    )
    description = models.TextField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    objects = ObligationManager()

    class Meta:
        abstract = True

    @property
    def remaining(self):
        return remaining_amount(self.amount, self.paid_amount)

    def clean(self):
        if self.amount is not None and self.amount < 0:
            raise ValidationError("Amount cannot be negative")
        if self.paid_amount is not None and self.paid_amount < 0:
            raise ValidationError("Paid amount cannot be negative")
        # never settle more than the face value
        if (
            self.amount is not None
            and self.paid_amount is not None
            and self.paid_amount > self.amount
        ):
            raise ValidationError("Paid amount cannot exceed amount")

    def save(self, *args, **kwargs):
        # status is never set by hand
        self.status = derive_status(self.amount, self.paid_amount)
        update_fields = kwargs.get("update_fields")
        if update_fields is not None and "status" not in update_fields:
            kwargs["update_fields"] = list(update_fields) + ["status"]
        self.full_clean()  # run validations before saving
        return super().save(*args, **kwargs)


class Receivable(Obligation):
    party = models.ForeignKey(
        Customer,
        # a customer with receivables on file cannot be removed
        on_delete=models.PROTECT,
        related_name="receivables",
    )

    class Meta:
        indexes = [
            models.Index(fields=["status", "due_date"], name="ix_receivable_status_due"),
        ]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(amount__gte=0)
                & models.Q(paid_amount__gte=0)
                & models.Q(paid_amount__lte=models.F("amount")),
                name="receivable_paid_within_amount",
            ),
        ]

    def __str__(self):
        return f"Receivable #{self.pk} ({self.party_id}) {self.amount}"


class Payable(Obligation):
    party = models.ForeignKey(
        Vendor,
        on_delete=models.PROTECT,
        related_name="payables",
    )

    class Meta:
        indexes = [
            models.Index(fields=["status", "due_date"], name="ix_payable_status_due"),
        ]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(amount__gte=0)
                & models.Q(paid_amount__gte=0)
                & models.Q(paid_amount__lte=models.F("amount")),
                name="payable_paid_within_amount",
            ),
        ]

    def __str__(self):
        return f"Payable #{self.pk} ({self.party_id}) {self.amount}"
