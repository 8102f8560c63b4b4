from decimal import Decimal
from django.core.exceptions import ValidationError
from django.db import models
from ..managers import BusinessManager
from .customer import Customer
from .obligation import BUSINESS_CHOICES, Payable, Receivable
from .vendor import Vendor

SERVICE_STATUS_CHOICES = [
    ("pending", "Pending"),
    ("in-progress", "In progress"),
    ("ready", "Ready"),
    ("delivered", "Delivered"),
    ("cancelled", "Cancelled"),
]

SERVICE_TYPE_CHOICES = [
    ("visa", "Visa"),
    ("air_ticket", "Air ticket"),
    ("medical", "Medical"),
    ("taqamul", "Taqamul"),
    ("hotel", "Hotel"),
    ("package", "Package"),
    ("other", "Other"),
]


# ---------- Service ----------
# Something the agency sells to a customer and sources from a vendor.
# Its obligations follow its status:
#   not cancelled -> receivable for the price
#   delivered     -> payable for the cost
class Service(models.Model):
    name = models.CharField(max_length=200)
    description = models.TextField(null=True, blank=True)
    category = models.CharField(max_length=100)
    service_type = models.CharField(
        max_length=20, choices=SERVICE_TYPE_CHOICES, default="other"
    )
    business = models.CharField(
        max_length=10, choices=BUSINESS_CHOICES, default="travel"
    )

    price = models.DecimalField(
        max_digits=18, decimal_places=2, default=Decimal("0.00")
    )
    cost = models.DecimalField(
        max_digits=18, decimal_places=2, default=Decimal("0.00")
    )
    status = models.CharField(
        max_length=20, choices=SERVICE_STATUS_CHOICES, default="pending"
    )

    customer = models.ForeignKey(
        Customer, on_delete=models.PROTECT, related_name="services"
    )
    vendor = models.ForeignKey(
        Vendor, on_delete=models.PROTECT, related_name="services"
    )
    delivery_date = models.DateField(null=True, blank=True)

    # Obligations posted for this service, cleared when released
    receivable = models.OneToOneField(
        Receivable,
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
        related_name="service",
    )
    payable = models.OneToOneField(
        Payable,
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
        related_name="service",
    )

    created_at = models.DateTimeField(auto_now_add=True)

    objects = BusinessManager()

    class Meta:
        indexes = [
            models.Index(fields=["status"], name="ix_service_status"),
        ]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(price__gte=0) & models.Q(cost__gte=0),
                name="service_non_negative_amounts",
            ),
        ]

    @property
    def profit(self):
        return self.price - self.cost

    def clean(self):
        if self.price is not None and self.price < 0:
            raise ValidationError("Price must be 0 or greater")
        if self.cost is not None and self.cost < 0:
            raise ValidationError("Cost must be 0 or greater")

    def save(self, *args, **kwargs):
        self.full_clean()  # run validations before saving
        return super().save(*args, **kwargs)

    def __str__(self):
        return f"{self.name} ({self.get_status_display()})"
