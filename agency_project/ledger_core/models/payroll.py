from decimal import Decimal
from django.core.exceptions import ValidationError
from django.core.validators import RegexValidator
from django.db import models
from ..managers import BusinessManager
from .obligation import BUSINESS_CHOICES

SALARY_STATUS_CHOICES = [
    ("unpaid", "Unpaid"),
    ("paid", "Paid"),
]


class Employee(models.Model):
    name = models.CharField(max_length=200)
    role = models.CharField(max_length=100)
    phone = models.CharField(max_length=32)
    base_salary = models.DecimalField(max_digits=18, decimal_places=2)
    business = models.CharField(
        max_length=10, choices=BUSINESS_CHOICES, default="travel"
    )
    # Inactive employees are skipped by salary generation
    active = models.BooleanField(default=True)

    objects = BusinessManager()

    def __str__(self):
        return f"{self.name} ({self.role})"


class Salary(models.Model):
    employee = models.ForeignKey(
        Employee, on_delete=models.PROTECT, related_name="salaries"
    )
    amount = models.DecimalField(
        max_digits=18, decimal_places=2, default=Decimal("0.00")
    )
    # "2026-10"
    month = models.CharField(
        max_length=7,
        validators=[RegexValidator(r"^\d{4}-(0[1-9]|1[0-2])$")],
    )
    year = models.PositiveIntegerField()
    business = models.CharField(
        max_length=10, choices=BUSINESS_CHOICES, default="travel"
    )
    status = models.CharField(
        max_length=10, choices=SALARY_STATUS_CHOICES, default="unpaid"
    )
    paid_date = models.DateField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    objects = BusinessManager()

    class Meta:
        constraints = [
            # one salary row per employee per month per business
            models.UniqueConstraint(
                fields=["employee", "month", "year", "business"],
                name="uq_salary_employee_month",
            ),
        ]

    def __str__(self):
        return f"{self.employee} {self.month} ({self.status})"

    def clean(self):
        # paid_date goes with paid status and nothing else
        if self.status == "paid" and not self.paid_date:
            raise ValidationError("Paid salary must have a paid date")
        if self.status == "unpaid" and self.paid_date:
            raise ValidationError("Unpaid salary cannot have a paid date")

    def transition_to(self, new_status, paid_date=None):
        # Current state vs. allowed next states
        allowed = {
            "unpaid": ["paid"],
            "paid": [],  # "paid" → (no further transitions)
        }
        if new_status not in allowed.get(self.status, []):
            raise ValidationError(
                f"Cannot go from {self.status} to {new_status}")
        self.status = new_status
        self.paid_date = paid_date
        self.save()

    def save(self, *args, **kwargs):
        self.full_clean()  # run validations before saving
        return super().save(*args, **kwargs)
