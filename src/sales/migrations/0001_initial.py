from decimal import Decimal
import uuid

import django.core.validators
import django.db.models.deletion
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ("hrm", "0001_initial"),
    ]

    operations = [
        migrations.CreateModel(
            name="SalesPeriod",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("created_at", models.DateTimeField(auto_now_add=True, db_index=True, verbose_name="created at")),
                ("updated_at", models.DateTimeField(auto_now=True, verbose_name="updated at")),
                ("reference_month", models.DateField(unique=True, verbose_name="reference month")),
                (
                    "total_mrr",
                    models.DecimalField(
                        decimal_places=2,
                        default=Decimal("0.00"),
                        max_digits=14,
                        validators=[django.core.validators.MinValueValidator(Decimal("0"))],
                        verbose_name="total MRR",
                    ),
                ),
                (
                    "qualifying_mrr",
                    models.DecimalField(
                        decimal_places=2,
                        default=Decimal("0.00"),
                        help_text="Commission base MRR computed by the seller-commission closing.",
                        max_digits=14,
                        validators=[django.core.validators.MinValueValidator(Decimal("0"))],
                        verbose_name="MRR qualifying for bonus",
                    ),
                ),
                ("total_recurring_sales", models.PositiveIntegerField(default=0, verbose_name="recurring sales")),
                ("target_met", models.BooleanField(default=False, verbose_name="target met")),
                ("source_file", models.CharField(blank=True, default="", max_length=255, verbose_name="imported file")),
                (
                    "status",
                    models.CharField(
                        choices=[("OPEN", "Open"), ("CLOSED", "Closed")],
                        db_index=True,
                        default="OPEN",
                        max_length=10,
                        verbose_name="status",
                    ),
                ),
                ("closed_at", models.DateTimeField(blank=True, null=True, verbose_name="closed at")),
            ],
            options={
                "verbose_name": "sales period",
                "verbose_name_plural": "sales periods",
                "ordering": ["-reference_month"],
            },
        ),
        migrations.CreateModel(
            name="ServiceSale",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("created_at", models.DateTimeField(auto_now_add=True, db_index=True, verbose_name="created at")),
                ("updated_at", models.DateTimeField(auto_now=True, verbose_name="updated at")),
                ("reference_month", models.DateField(db_index=True, verbose_name="reference month")),
                ("sale_date", models.DateField(verbose_name="sale date")),
                ("client", models.CharField(max_length=200, verbose_name="client")),
                ("description", models.CharField(max_length=255, verbose_name="service")),
                (
                    "amount",
                    models.DecimalField(
                        decimal_places=2,
                        max_digits=14,
                        validators=[django.core.validators.MinValueValidator(Decimal("0"))],
                        verbose_name="amount",
                    ),
                ),
                (
                    "status",
                    models.CharField(
                        choices=[("PENDING", "Pending"), ("APPROVED", "Approved"), ("REJECTED", "Rejected")],
                        db_index=True,
                        default="PENDING",
                        max_length=10,
                        verbose_name="status",
                    ),
                ),
                ("approved_at", models.DateTimeField(blank=True, null=True, verbose_name="approved at")),
                ("rejection_reason", models.TextField(blank=True, default="", verbose_name="rejection reason")),
                (
                    "employee",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="service_sales",
                        to="hrm.employee",
                        verbose_name="employee",
                    ),
                ),
            ],
            options={
                "verbose_name": "service sale",
                "verbose_name_plural": "service sales",
                "ordering": ["-sale_date"],
                "indexes": [
                    models.Index(
                        fields=["employee", "reference_month", "status"],
                        name="service_sale_emp_month_idx",
                    ),
                ],
            },
        ),
    ]
