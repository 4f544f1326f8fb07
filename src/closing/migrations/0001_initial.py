from decimal import Decimal
import uuid

import django.core.validators
import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


def money(verbose_name):
    return models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=14, verbose_name=verbose_name)


def rate(verbose_name):
    return models.DecimalField(decimal_places=4, default=Decimal("0"), max_digits=12, verbose_name=verbose_name)


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
        ("hrm", "0001_initial"),
        ("sales", "0001_initial"),
    ]

    operations = [
        migrations.CreateModel(
            name="TeamClosing",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("created_at", models.DateTimeField(auto_now_add=True, db_index=True, verbose_name="created at")),
                ("updated_at", models.DateTimeField(auto_now=True, verbose_name="updated at")),
                ("reference_month", models.DateField(unique=True, verbose_name="reference month")),
                ("starting_subscriptions", models.PositiveIntegerField(default=0, verbose_name="subscriptions at month start")),
                ("recurring_sales_count", models.PositiveIntegerField(default=0, verbose_name="recurring sales")),
                ("cancellations_count", models.PositiveIntegerField(default=0, verbose_name="cancellations")),
                ("target_sales_quantity", models.PositiveIntegerField(default=0, verbose_name="recurring sales target")),
                ("churn_rate", rate("churn rate (%)")),
                ("cancellation_rate", rate("cancellation rate (%)")),
                ("target_percent", rate("percent of target")),
                ("mrr_for_period", money("MRR of the period")),
                ("mrr_qualifying_for_bonus", money("MRR qualifying for bonus")),
                ("churn_limit", rate("churn limit (%)")),
                ("cancellation_limit", rate("cancellation limit (%)")),
                ("churn_bonus_pct", rate("churn bonus (%)")),
                ("retention_bonus_pct", rate("retention bonus (%)")),
                ("target_bonus_pct", rate("target bonus (%)")),
                ("churn_bonus_unlocked", models.BooleanField(default=False, verbose_name="churn bonus unlocked")),
                ("retention_bonus_unlocked", models.BooleanField(default=False, verbose_name="retention bonus unlocked")),
                ("target_bonus_unlocked", models.BooleanField(default=False, verbose_name="target bonus unlocked")),
                ("participant_mode", models.CharField(blank=True, default="", max_length=12, verbose_name="target bonus participants")),
                ("target_bonus_pool_total", money("target bonus pool")),
                ("participant_count", models.PositiveIntegerField(default=0, verbose_name="participants")),
                ("target_bonus_per_participant", money("target bonus per participant")),
                (
                    "status",
                    models.CharField(
                        choices=[("DRAFT", "Draft"), ("CALCULATED", "Calculated")],
                        db_index=True,
                        default="DRAFT",
                        max_length=12,
                        verbose_name="status",
                    ),
                ),
                ("calculated_at", models.DateTimeField(blank=True, null=True, verbose_name="calculated at")),
                (
                    "calculated_by",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="team_closings_calculated",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
                (
                    "sales_period",
                    models.OneToOneField(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="team_closing",
                        to="sales.salesperiod",
                        verbose_name="sales period",
                    ),
                ),
            ],
            options={
                "verbose_name": "team closing",
                "verbose_name_plural": "team closings",
                "ordering": ["-reference_month"],
            },
        ),
        migrations.CreateModel(
            name="EmployeeClosingLine",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("created_at", models.DateTimeField(auto_now_add=True, db_index=True, verbose_name="created at")),
                ("updated_at", models.DateTimeField(auto_now=True, verbose_name="updated at")),
                ("employee_name", models.CharField(max_length=150, verbose_name="employee")),
                ("role", models.CharField(blank=True, default="", max_length=100, verbose_name="role")),
                ("base_salary", money("base salary")),
                ("services_commission_pct", rate("services commission (%)")),
                ("in_target_pool", models.BooleanField(default=False, verbose_name="in target bonus pool")),
                ("churn_bonus_amount", money("churn bonus")),
                ("retention_bonus_amount", money("retention bonus")),
                ("target_bonus_amount", money("target bonus")),
                ("subtotal_salary_bonuses", money("salary bonuses subtotal")),
                ("service_sales_count", models.PositiveIntegerField(default=0, verbose_name="service sales")),
                ("service_sales_total", money("service sales total")),
                ("service_commission_amount", money("service commission")),
                ("individual_goals_count", models.PositiveIntegerField(default=0, verbose_name="individual goals")),
                ("individual_goals_met", models.PositiveIntegerField(default=0, verbose_name="individual goals met")),
                ("individual_goals_bonus_amount", money("individual goals bonus")),
                ("total_payable", money("total payable")),
                ("rendered_statement", models.TextField(blank=True, default="", verbose_name="statement")),
                (
                    "employee",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="closing_lines",
                        to="hrm.employee",
                    ),
                ),
                (
                    "team_closing",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="lines",
                        to="closing.teamclosing",
                    ),
                ),
            ],
            options={
                "verbose_name": "employee closing line",
                "verbose_name_plural": "employee closing lines",
                "ordering": ["employee_name", "employee_id"],
                "constraints": [
                    models.UniqueConstraint(
                        fields=("team_closing", "employee"),
                        name="uniq_closing_line_per_employee",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="ClosingAdjustment",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("created_at", models.DateTimeField(auto_now_add=True, db_index=True, verbose_name="created at")),
                ("updated_at", models.DateTimeField(auto_now=True, verbose_name="updated at")),
                (
                    "kind",
                    models.CharField(
                        choices=[("CREDIT", "Credit"), ("DEBIT", "Debit")],
                        max_length=6,
                        verbose_name="kind",
                    ),
                ),
                (
                    "amount",
                    models.DecimalField(
                        decimal_places=2,
                        max_digits=14,
                        validators=[django.core.validators.MinValueValidator(Decimal("0.01"))],
                        verbose_name="amount",
                    ),
                ),
                ("description", models.CharField(max_length=255, verbose_name="description")),
                (
                    "created_by",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="closing_adjustments_created",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
                (
                    "employee",
                    models.ForeignKey(
                        blank=True,
                        help_text="Empty for a general adjustment.",
                        null=True,
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="closing_adjustments",
                        to="hrm.employee",
                    ),
                ),
                (
                    "team_closing",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="adjustments",
                        to="closing.teamclosing",
                    ),
                ),
            ],
            options={
                "verbose_name": "closing adjustment",
                "verbose_name_plural": "closing adjustments",
                "ordering": ["-created_at", "-id"],
                "indexes": [
                    models.Index(fields=["team_closing", "employee"], name="adjustment_closing_emp_idx"),
                ],
            },
        ),
    ]
