import decimal

import django.db.models.deletion
from django.db import migrations, models

BUSINESS_CHOICES = [("travel", "Travel"), ("isp", "ISP")]
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


def money_field(**kwargs):
    return models.DecimalField(max_digits=18, decimal_places=2, **kwargs)


class Migration(migrations.Migration):

    dependencies = [
        ("ledger_core", "0001_initial"),
    ]

    operations = [
        migrations.CreateModel(
            name="Service",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True,
                                           serialize=False, verbose_name="ID")),
                ("name", models.CharField(max_length=200)),
                ("description", models.TextField(blank=True, null=True)),
                ("category", models.CharField(max_length=100)),
                ("service_type", models.CharField(choices=SERVICE_TYPE_CHOICES,
                                                  default="other", max_length=20)),
                ("business", models.CharField(choices=BUSINESS_CHOICES,
                                              default="travel", max_length=10)),
                ("price", money_field(default=decimal.Decimal("0.00"))),
                ("cost", money_field(default=decimal.Decimal("0.00"))),
                ("status", models.CharField(choices=SERVICE_STATUS_CHOICES,
                                            default="pending", max_length=20)),
                ("delivery_date", models.DateField(blank=True, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("customer", models.ForeignKey(
                    on_delete=django.db.models.deletion.PROTECT,
                    related_name="services",
                    to="ledger_core.customer",
                )),
                ("vendor", models.ForeignKey(
                    on_delete=django.db.models.deletion.PROTECT,
                    related_name="services",
                    to="ledger_core.vendor",
                )),
                ("receivable", models.OneToOneField(
                    blank=True, null=True,
                    on_delete=django.db.models.deletion.SET_NULL,
                    related_name="service",
                    to="ledger_core.receivable",
                )),
                ("payable", models.OneToOneField(
                    blank=True, null=True,
                    on_delete=django.db.models.deletion.SET_NULL,
                    related_name="service",
                    to="ledger_core.payable",
                )),
            ],
            options={
                "indexes": [
                    models.Index(fields=["status"], name="ix_service_status"),
                ],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(price__gte=0) & models.Q(cost__gte=0),
                        name="service_non_negative_amounts",
                    ),
                ],
            },
        ),
    ]
