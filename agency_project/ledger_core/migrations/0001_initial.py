import decimal

import django.core.validators
import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models

BUSINESS_CHOICES = [("travel", "Travel"), ("isp", "ISP")]
OBLIGATION_STATUS_CHOICES = [
    ("unpaid", "Unpaid"),
    ("partial", "Partial"),
    ("paid", "Paid"),
]


def money_field(**kwargs):
    return models.DecimalField(max_digits=18, decimal_places=2, **kwargs)


def obligation_fields(party_model, related_name):
    return [
        ("id", models.BigAutoField(auto_created=True, primary_key=True,
                                   serialize=False, verbose_name="ID")),
        ("business", models.CharField(choices=BUSINESS_CHOICES,
                                      default="travel", max_length=10)),
        ("amount", money_field(default=decimal.Decimal("0.00"))),
        ("paid_amount", money_field(default=decimal.Decimal("0.00"))),
        ("date", models.DateField()),
        ("due_date", models.DateField(blank=True, null=True)),
        ("status", models.CharField(choices=OBLIGATION_STATUS_CHOICES,
                                    default="unpaid", max_length=10)),
        ("description", models.TextField(blank=True, null=True)),
        ("created_at", models.DateTimeField(auto_now_add=True)),
        ("party", models.ForeignKey(
            on_delete=django.db.models.deletion.PROTECT,
            related_name=related_name,
            to=party_model,
        )),
    ]


def paid_within_amount(name):
    return models.CheckConstraint(
        condition=models.Q(amount__gte=0)
        & models.Q(paid_amount__gte=0)
        & models.Q(paid_amount__lte=models.F("amount")),
        name=name,
    )


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="Account",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True,
                                           serialize=False, verbose_name="ID")),
                ("name", models.CharField(max_length=200)),
                ("ac_type", models.CharField(
                    choices=[("Cash", "Cash"), ("Bank", "Bank"),
                             ("Mobile Banking", "Mobile Banking")],
                    max_length=20,
                )),
                ("balance", money_field(default=decimal.Decimal("0.00"))),
                ("bank_name", models.CharField(blank=True, max_length=200, null=True)),
                ("account_number", models.CharField(blank=True, max_length=64, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
            ],
            options={
                "indexes": [models.Index(fields=["ac_type"], name="ix_account_type")],
            },
        ),
        migrations.CreateModel(
            name="Customer",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True,
                                           serialize=False, verbose_name="ID")),
                ("name", models.CharField(max_length=200)),
                ("phone", models.CharField(max_length=32, unique=True)),
                ("email", models.EmailField(blank=True, max_length=254, null=True)),
                ("address", models.TextField(blank=True, null=True)),
                ("balance", money_field(default=decimal.Decimal("0.00"))),
                ("passport_number", models.CharField(blank=True, max_length=32, null=True)),
                ("nationality", models.CharField(blank=True, max_length=64, null=True)),
                ("notes", models.TextField(blank=True, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
            ],
            options={
                "indexes": [
                    models.Index(fields=["name"], name="ix_customer_name"),
                    models.Index(fields=["passport_number"], name="ix_customer_passport"),
                ],
            },
        ),
        migrations.CreateModel(
            name="Vendor",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True,
                                           serialize=False, verbose_name="ID")),
                ("name", models.CharField(max_length=200)),
                ("phone", models.CharField(blank=True, max_length=32, null=True)),
                ("email", models.EmailField(blank=True, max_length=254, null=True)),
                ("address", models.TextField(blank=True, null=True)),
                ("balance", money_field(default=decimal.Decimal("0.00"))),
                ("notes", models.TextField(blank=True, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
            ],
            options={
                "indexes": [models.Index(fields=["name"], name="ix_vendor_name")],
            },
        ),
        migrations.CreateModel(
            name="Employee",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True,
                                           serialize=False, verbose_name="ID")),
                ("name", models.CharField(max_length=200)),
                ("role", models.CharField(max_length=100)),
                ("phone", models.CharField(max_length=32)),
                ("base_salary", money_field()),
                ("business", models.CharField(choices=BUSINESS_CHOICES,
                                              default="travel", max_length=10)),
                ("active", models.BooleanField(default=True)),
            ],
        ),
        migrations.CreateModel(
            name="Salary",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True,
                                           serialize=False, verbose_name="ID")),
                ("amount", money_field(default=decimal.Decimal("0.00"))),
                ("month", models.CharField(
                    max_length=7,
                    validators=[django.core.validators.RegexValidator(
                        "^\\d{4}-(0[1-9]|1[0-2])$")],
                )),
                ("year", models.PositiveIntegerField()),
                ("business", models.CharField(choices=BUSINESS_CHOICES,
                                              default="travel", max_length=10)),
                ("status", models.CharField(
                    choices=[("unpaid", "Unpaid"), ("paid", "Paid")],
                    default="unpaid", max_length=10,
                )),
                ("paid_date", models.DateField(blank=True, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("employee", models.ForeignKey(
                    on_delete=django.db.models.deletion.PROTECT,
                    related_name="salaries",
                    to="ledger_core.employee",
                )),
            ],
            options={
                "constraints": [
                    models.UniqueConstraint(
                        fields=("employee", "month", "year", "business"),
                        name="uq_salary_employee_month",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="Transaction",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True,
                                           serialize=False, verbose_name="ID")),
                ("date", models.DateField()),
                ("amount", money_field()),
                ("tx_type", models.CharField(
                    choices=[("income", "Income"), ("expense", "Expense")],
                    max_length=10,
                )),
                ("category", models.CharField(max_length=100)),
                ("business", models.CharField(choices=BUSINESS_CHOICES,
                                              default="travel", max_length=10)),
                ("description", models.TextField(blank=True, null=True)),
                ("reference_id", models.PositiveBigIntegerField(blank=True, null=True)),
                ("reference_model", models.CharField(blank=True, max_length=32, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("account", models.ForeignKey(
                    on_delete=django.db.models.deletion.PROTECT,
                    related_name="transactions",
                    to="ledger_core.account",
                )),
                ("customer", models.ForeignKey(
                    blank=True, null=True,
                    on_delete=django.db.models.deletion.SET_NULL,
                    related_name="transactions",
                    to="ledger_core.customer",
                )),
                ("vendor", models.ForeignKey(
                    blank=True, null=True,
                    on_delete=django.db.models.deletion.SET_NULL,
                    related_name="transactions",
                    to="ledger_core.vendor",
                )),
            ],
            options={
                "indexes": [
                    models.Index(fields=["date"], name="ix_tx_date"),
                    models.Index(fields=["reference_model", "reference_id"],
                                 name="ix_tx_reference"),
                    models.Index(fields=["tx_type", "category"],
                                 name="ix_tx_type_category"),
                ],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(amount__gt=0),
                        name="transaction_positive_amount",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="Receivable",
            fields=obligation_fields("ledger_core.customer", "receivables"),
            options={
                "indexes": [
                    models.Index(fields=["status", "due_date"],
                                 name="ix_receivable_status_due"),
                ],
                "constraints": [paid_within_amount("receivable_paid_within_amount")],
            },
        ),
        migrations.CreateModel(
            name="Payable",
            fields=obligation_fields("ledger_core.vendor", "payables"),
            options={
                "indexes": [
                    models.Index(fields=["status", "due_date"],
                                 name="ix_payable_status_due"),
                ],
                "constraints": [paid_within_amount("payable_paid_within_amount")],
            },
        ),
        migrations.CreateModel(
            name="AuditLog",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True,
                                           serialize=False, verbose_name="ID")),
                ("action", models.CharField(max_length=50)),
                ("object_type", models.CharField(max_length=100)),
                ("object_id", models.CharField(max_length=100)),
                ("changes", models.JSONField(blank=True, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("user", models.ForeignKey(
                    blank=True, null=True,
                    on_delete=django.db.models.deletion.SET_NULL,
                    to=settings.AUTH_USER_MODEL,
                )),
            ],
            options={
                "indexes": [
                    models.Index(fields=["object_type", "object_id"],
                                 name="ix_audit_object"),
                    models.Index(fields=["created_at"], name="ix_audit_created"),
                ],
            },
        ),
    ]
