from django.core.exceptions import ValidationError
from django.db import models
from ..constants import SETTLEMENT_CATEGORIES
from ..managers import BusinessManager
from .account import Account
from .customer import Customer
from .obligation import BUSINESS_CHOICES
from .vendor import Vendor

TX_TYPES = [
    ("income", "Income"),    # money into an account
    ("expense", "Expense"),  # money out of an account
]


# ---------- Transaction log ----------
class Transaction(models.Model):  # Append-only money movement
    date = models.DateField()
    # Always positive, direction comes from tx_type
    amount = models.DecimalField(max_digits=18, decimal_places=2)
    tx_type = models.CharField(max_length=10, choices=TX_TYPES)
    category = models.CharField(max_length=100)
    business = models.CharField(
        max_length=10, choices=BUSINESS_CHOICES, default="travel"
    )

    # prevent Account deletion if transactions exist
    account = models.ForeignKey(
        Account, on_delete=models.PROTECT, related_name="transactions"
    )
    # Parties are looked up, not owned
    customer = models.ForeignKey(
        Customer,
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
        related_name="transactions",
    )
    vendor = models.ForeignKey(
        Vendor,
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
        related_name="transactions",
    )
    description = models.TextField(null=True, blank=True)

    # Weak pointer to what this entry settles
    """ Example:
        reference_model="Receivable", reference_id=42
        survives deletion of receivable 42 (audit trail) """
    reference_id = models.PositiveBigIntegerField(null=True, blank=True)
    reference_model = models.CharField(max_length=32, null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)

    objects = BusinessManager()

    class Meta:
        indexes = [
            models.Index(fields=["date"], name="ix_tx_date"),
            models.Index(fields=["reference_model", "reference_id"], name="ix_tx_reference"),
            models.Index(fields=["tx_type", "category"], name="ix_tx_type_category"),
        ]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(amount__gt=0),
                name="transaction_positive_amount",
            ),
        ]

    def __str__(self):
        return f"{self.date} {self.tx_type} {self.category} {self.amount}"

    @property
    def is_settlement_entry(self):
        # Written by the engine, only the engine may touch it
        return bool(self.reference_model) or self.category in SETTLEMENT_CATEGORIES

    def clean(self):
        if self.amount is not None and self.amount <= 0:
            raise ValidationError("Transaction amount must be positive")
        # An entry is about one counterpart at most
        if self.customer_id and self.vendor_id:
            raise ValidationError(
                "Transaction cannot reference both a customer and a vendor")
        if bool(self.reference_id) != bool(self.reference_model):
            raise ValidationError(
                "reference_id and reference_model must be set together")

    def save(self, *args, **kwargs):
        self.full_clean()  # run validations before saving
        return super().save(*args, **kwargs)
