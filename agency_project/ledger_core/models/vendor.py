from decimal import Decimal
from django.db import models


class Vendor(models.Model):  # Mirrors Customer but for Accounts Payable (AP)

    # Airline, embassy agent, hotel, upstream ISP...
    name = models.CharField(max_length=200)
    phone = models.CharField(max_length=32, null=True, blank=True)
    email = models.EmailField(null=True, blank=True)
    address = models.TextField(null=True, blank=True)

    # Outstanding amount the agency owes this vendor
    """ Non-negative in normal operation:
    every payable adds to it, every settlement takes from it. """
    balance = models.DecimalField(
        max_digits=18, decimal_places=2, default=Decimal("0.00")
    )
    notes = models.TextField(null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        indexes = [models.Index(fields=["name"], name="ix_vendor_name")]

    def __str__(self):
        return self.name

    def save(self, *args, **kwargs):
        self.full_clean()  # run validations before saving
        return super().save(*args, **kwargs)
