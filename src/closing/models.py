"""Stored snapshot of a monthly team closing."""
from __future__ import annotations

from decimal import Decimal

from django.conf import settings
from django.core.validators import MinValueValidator
from django.db import models

from closing.exceptions import ClosingValidationError
from core.models import TimeStampedModel

ZERO = Decimal("0.00")


def _money(verbose_name: str, **kwargs) -> models.DecimalField:
    kwargs.setdefault("default", ZERO)
    return models.DecimalField(verbose_name, max_digits=14, decimal_places=2, **kwargs)


def _rate(verbose_name: str, **kwargs) -> models.DecimalField:
    kwargs.setdefault("default", Decimal("0"))
    return models.DecimalField(verbose_name, max_digits=12, decimal_places=4, **kwargs)


class TeamClosing(TimeStampedModel):
    """Team-level result of one month: ratios, gates and the target bonus pool.

    Moves DRAFT -> CALCULATED through ``closing.services.recompute_closing`` only.
    """

    class Status(models.TextChoices):
        DRAFT = "DRAFT", "Draft"
        CALCULATED = "CALCULATED", "Calculated"

    reference_month = models.DateField("reference month", unique=True)
    sales_period = models.OneToOneField(
        "sales.SalesPeriod",
        on_delete=models.PROTECT,
        related_name="team_closing",
        verbose_name="sales period",
    )

    starting_subscriptions = models.PositiveIntegerField("subscriptions at month start", default=0)
    recurring_sales_count = models.PositiveIntegerField("recurring sales", default=0)
    cancellations_count = models.PositiveIntegerField("cancellations", default=0)
    target_sales_quantity = models.PositiveIntegerField("recurring sales target", default=0)
    churn_rate = _rate("churn rate (%)")
    cancellation_rate = _rate("cancellation rate (%)")
    target_percent = _rate("percent of target")
    mrr_for_period = _money("MRR of the period")
    mrr_qualifying_for_bonus = _money("MRR qualifying for bonus")

    churn_limit = _rate("churn limit (%)")
    cancellation_limit = _rate("cancellation limit (%)")
    churn_bonus_pct = _rate("churn bonus (%)")
    retention_bonus_pct = _rate("retention bonus (%)")
    target_bonus_pct = _rate("target bonus (%)")

    churn_bonus_unlocked = models.BooleanField("churn bonus unlocked", default=False)
    retention_bonus_unlocked = models.BooleanField("retention bonus unlocked", default=False)
    target_bonus_unlocked = models.BooleanField("target bonus unlocked", default=False)

    participant_mode = models.CharField("target bonus participants", max_length=12, blank=True, default="")
    target_bonus_pool_total = _money("target bonus pool")
    participant_count = models.PositiveIntegerField("participants", default=0)
    target_bonus_per_participant = _money("target bonus per participant")

    status = models.CharField(
        "status",
        max_length=12,
        choices=Status.choices,
        default=Status.DRAFT,
        db_index=True,
    )
    calculated_at = models.DateTimeField("calculated at", null=True, blank=True)
    calculated_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="team_closings_calculated",
    )

    class Meta:
        verbose_name = "team closing"
        verbose_name_plural = "team closings"
        ordering = ["-reference_month"]

    def __str__(self) -> str:
        return f"Team closing {self.reference_month:%Y-%m} ({self.get_status_display()})"

    @property
    def is_locked(self) -> bool:
        """True once the sales period of the month is finalized."""
        return self.sales_period.is_closed


class EmployeeClosingLine(TimeStampedModel):
    """Payout of one employee for one closing, regenerated on every recompute."""

    team_closing = models.ForeignKey(
        TeamClosing,
        on_delete=models.CASCADE,
        related_name="lines",
    )
    employee = models.ForeignKey(
        "hrm.Employee",
        on_delete=models.PROTECT,
        related_name="closing_lines",
    )
    employee_name = models.CharField("employee", max_length=150)
    role = models.CharField("role", max_length=100, blank=True, default="")
    base_salary = _money("base salary")
    services_commission_pct = _rate("services commission (%)")
    in_target_pool = models.BooleanField("in target bonus pool", default=False)

    churn_bonus_amount = _money("churn bonus")
    retention_bonus_amount = _money("retention bonus")
    target_bonus_amount = _money("target bonus")
    subtotal_salary_bonuses = _money("salary bonuses subtotal")
    service_sales_count = models.PositiveIntegerField("service sales", default=0)
    service_sales_total = _money("service sales total")
    service_commission_amount = _money("service commission")
    individual_goals_count = models.PositiveIntegerField("individual goals", default=0)
    individual_goals_met = models.PositiveIntegerField("individual goals met", default=0)
    individual_goals_bonus_amount = _money("individual goals bonus")
    total_payable = _money("total payable")

    rendered_statement = models.TextField("statement", blank=True, default="")

    class Meta:
        verbose_name = "employee closing line"
        verbose_name_plural = "employee closing lines"
        ordering = ["employee_name", "employee_id"]
        constraints = [
            models.UniqueConstraint(
                fields=["team_closing", "employee"],
                name="uniq_closing_line_per_employee",
            ),
        ]

    def __str__(self) -> str:
        return f"{self.employee_name} - {self.team_closing.reference_month:%Y-%m}"


class ClosingAdjustment(TimeStampedModel):
    """Manual credit or debit layered on top of a closing.

    Rows are only ever added or deleted. The amount is stored positive and
    ``kind`` carries the sign.
    """

    class Kind(models.TextChoices):
        CREDIT = "CREDIT", "Credit"
        DEBIT = "DEBIT", "Debit"

    team_closing = models.ForeignKey(
        TeamClosing,
        on_delete=models.CASCADE,
        related_name="adjustments",
    )
    employee = models.ForeignKey(
        "hrm.Employee",
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="closing_adjustments",
        help_text="Empty for a general adjustment.",
    )
    kind = models.CharField("kind", max_length=6, choices=Kind.choices)
    amount = models.DecimalField(
        "amount",
        max_digits=14,
        decimal_places=2,
        validators=[MinValueValidator(Decimal("0.01"))],
    )
    description = models.CharField("description", max_length=255)
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="closing_adjustments_created",
    )

    class Meta:
        verbose_name = "closing adjustment"
        verbose_name_plural = "closing adjustments"
        ordering = ["-created_at", "-id"]
        indexes = [
            models.Index(fields=["team_closing", "employee"], name="adjustment_closing_emp_idx"),
        ]

    def __str__(self) -> str:
        return f"{self.get_kind_display()} {self.amount} - {self.description}"

    def save(self, *args, **kwargs):
        if not self._state.adding:
            raise ClosingValidationError("Adjustments cannot be edited. Remove it and add a new one.")
        super().save(*args, **kwargs)

    @property
    def signed_amount(self) -> Decimal:
        return self.amount if self.kind == self.Kind.CREDIT else -self.amount
