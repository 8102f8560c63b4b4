from decimal import Decimal
from django.core.exceptions import ValidationError
from django.db import models

# Choice Lists
AC_TYPES = [
    # Where the money physically sits
    ("Cash", "Cash"),
    ("Bank", "Bank"),
    ("Mobile Banking", "Mobile Banking"),
]


class Account(models.Model):
    """
    A settlement account (cash box, bank account, mobile wallet).
    - balance is a running total, only the settlement services move it
    - bank_name only makes sense for Bank accounts
    """

    name = models.CharField(max_length=200)  # "Front Desk Cash", "City Bank"

    ac_type = models.CharField(
        max_length=20,
        choices=AC_TYPES,
    )

    # Cached running total of every transaction posted against this account
    balance = models.DecimalField(
        max_digits=18, decimal_places=2, default=Decimal("0.00")
    )

    bank_name = models.CharField(max_length=200, null=True, blank=True)
    account_number = models.CharField(max_length=64, null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        indexes = [models.Index(fields=["ac_type"], name="ix_account_type")]

    def __str__(self):
        # "City Bank (Bank)"
        return f"{self.name} ({self.ac_type})"

    def clean(self):
        # Bank name belongs to bank accounts only
        if self.bank_name and self.ac_type != "Bank":
            raise ValidationError("Bank name can only be set on Bank accounts")

    def save(self, *args, **kwargs):
        self.full_clean()  # run validations before saving
        return super().save(*args, **kwargs)
