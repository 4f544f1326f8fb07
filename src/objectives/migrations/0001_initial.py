from decimal import Decimal
import uuid

import django.core.validators
import django.db.models.deletion
from django.db import migrations, models

import objectives.models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ("hrm", "0001_initial"),
    ]

    operations = [
        migrations.CreateModel(
            name="MonthlyTarget",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("created_at", models.DateTimeField(auto_now_add=True, db_index=True, verbose_name="created at")),
                ("updated_at", models.DateTimeField(auto_now=True, verbose_name="updated at")),
                (
                    "reference_month",
                    models.DateField(
                        unique=True,
                        validators=[objectives.models._validate_first_of_month],
                        verbose_name="reference month",
                    ),
                ),
                ("starting_subscriptions", models.PositiveIntegerField(default=0, verbose_name="subscriptions at month start")),
                ("cancellations_count", models.PositiveIntegerField(default=0, verbose_name="cancellations")),
                ("target_sales_quantity", models.PositiveIntegerField(default=0, verbose_name="recurring sales target")),
                (
                    "churn_limit",
                    models.DecimalField(
                        decimal_places=4,
                        default=Decimal("5"),
                        max_digits=7,
                        validators=[django.core.validators.MinValueValidator(Decimal("0"))],
                        verbose_name="churn limit (%)",
                    ),
                ),
                (
                    "cancellation_limit",
                    models.DecimalField(
                        decimal_places=4,
                        default=Decimal("50"),
                        max_digits=7,
                        validators=[django.core.validators.MinValueValidator(Decimal("0"))],
                        verbose_name="cancellation limit (%)",
                    ),
                ),
                (
                    "churn_bonus_pct",
                    models.DecimalField(
                        decimal_places=4,
                        default=Decimal("3"),
                        max_digits=7,
                        validators=[
                            django.core.validators.MinValueValidator(Decimal("0")),
                            django.core.validators.MaxValueValidator(Decimal("100")),
                        ],
                        verbose_name="churn bonus (% of salary)",
                    ),
                ),
                (
                    "retention_bonus_pct",
                    models.DecimalField(
                        decimal_places=4,
                        default=Decimal("3"),
                        max_digits=7,
                        validators=[
                            django.core.validators.MinValueValidator(Decimal("0")),
                            django.core.validators.MaxValueValidator(Decimal("100")),
                        ],
                        verbose_name="retention bonus (% of salary)",
                    ),
                ),
                (
                    "target_bonus_pct",
                    models.DecimalField(
                        decimal_places=4,
                        default=Decimal("10"),
                        max_digits=7,
                        validators=[
                            django.core.validators.MinValueValidator(Decimal("0")),
                            django.core.validators.MaxValueValidator(Decimal("100")),
                        ],
                        verbose_name="target bonus (% of qualifying MRR)",
                    ),
                ),
                (
                    "participant_mode",
                    models.CharField(
                        choices=[("ALL_ACTIVE", "All active employees"), ("EXPLICIT", "Selected employees")],
                        default="ALL_ACTIVE",
                        max_length=12,
                        verbose_name="target bonus participants",
                    ),
                ),
                ("notes", models.TextField(blank=True, default="", verbose_name="notes")),
                (
                    "participants",
                    models.ManyToManyField(
                        blank=True,
                        related_name="target_bonus_months",
                        to="hrm.employee",
                        verbose_name="participants",
                    ),
                ),
            ],
            options={
                "verbose_name": "monthly target",
                "verbose_name_plural": "monthly targets",
                "ordering": ["-reference_month"],
            },
        ),
        migrations.CreateModel(
            name="IndividualGoal",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("created_at", models.DateTimeField(auto_now_add=True, db_index=True, verbose_name="created at")),
                ("updated_at", models.DateTimeField(auto_now=True, verbose_name="updated at")),
                (
                    "reference_month",
                    models.DateField(
                        db_index=True,
                        validators=[objectives.models._validate_first_of_month],
                        verbose_name="reference month",
                    ),
                ),
                ("title", models.CharField(max_length=200, verbose_name="title")),
                ("description", models.TextField(blank=True, default="", verbose_name="description")),
                (
                    "bonus_value",
                    models.DecimalField(
                        decimal_places=2,
                        default=Decimal("0.00"),
                        max_digits=14,
                        validators=[django.core.validators.MinValueValidator(Decimal("0"))],
                        verbose_name="bonus value",
                    ),
                ),
                (
                    "bonus_kind",
                    models.CharField(
                        choices=[("FLAT", "Flat amount"), ("PERCENT_OF_SALARY", "Percent of base salary")],
                        default="FLAT",
                        max_length=20,
                        verbose_name="bonus kind",
                    ),
                ),
                ("achieved", models.BooleanField(default=False, verbose_name="achieved")),
                (
                    "employee",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="individual_goals",
                        to="hrm.employee",
                        verbose_name="employee",
                    ),
                ),
            ],
            options={
                "verbose_name": "individual goal",
                "verbose_name_plural": "individual goals",
                "ordering": ["reference_month", "title"],
                "indexes": [
                    models.Index(fields=["employee", "reference_month"], name="goal_emp_month_idx"),
                ],
            },
        ),
    ]
