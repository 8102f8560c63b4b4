from decimal import Decimal
from django.db import models


# ---------- Customer ----------
# Represents a traveller or subscriber who owes the agency (AR side)
class Customer(models.Model):
    name = models.CharField(max_length=200)

    # Phone is the lookup key used by the front desk
    phone = models.CharField(max_length=32, unique=True)
    email = models.EmailField(null=True, blank=True)
    address = models.TextField(null=True, blank=True)

    # Signed exposure
    """ Example:
        balance = 1500 → customer owes the agency 1500
        balance = -200 → agency holds a 200 advance
    """
    balance = models.DecimalField(
        max_digits=18, decimal_places=2, default=Decimal("0.00")
    )

    # Travel-specific fields
    passport_number = models.CharField(max_length=32, null=True, blank=True)
    nationality = models.CharField(max_length=64, null=True, blank=True)
    notes = models.TextField(null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        indexes = [
            models.Index(fields=["name"], name="ix_customer_name"),
            models.Index(fields=["passport_number"], name="ix_customer_passport"),
        ]

    # Display customer name in admin/UI
    def __str__(self):
        return self.name

    def save(self, *args, **kwargs):
        self.full_clean()  # run validations before saving
        return super().save(*args, **kwargs)
