"""Monthly target configuration and individual goals feeding the team closing."""
from __future__ import annotations

from decimal import Decimal

from django.core.exceptions import ValidationError
from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models

from core.models import TimeStampedModel


def _validate_first_of_month(value) -> None:
    if value and value.day != 1:
        raise ValidationError("The reference month must be the first day of a month.")


class MonthlyTarget(TimeStampedModel):
    """Counters, thresholds and bonus percentages of one month.

    ``participant_mode`` selects who shares the target-bonus pool: every
    employee in the team closing, or only the ``participants`` listed here.
    """

    class ParticipantMode(models.TextChoices):
        ALL_ACTIVE = "ALL_ACTIVE", "All active employees"
        EXPLICIT = "EXPLICIT", "Selected employees"

    reference_month = models.DateField(
        "reference month", unique=True, validators=[_validate_first_of_month]
    )

    starting_subscriptions = models.PositiveIntegerField("subscriptions at month start", default=0)
    cancellations_count = models.PositiveIntegerField("cancellations", default=0)
    target_sales_quantity = models.PositiveIntegerField("recurring sales target", default=0)

    churn_limit = models.DecimalField(
        "churn limit (%)",
        max_digits=7,
        decimal_places=4,
        default=Decimal("5"),
        validators=[MinValueValidator(Decimal("0"))],
    )
    cancellation_limit = models.DecimalField(
        "cancellation limit (%)",
        max_digits=7,
        decimal_places=4,
        default=Decimal("50"),
        validators=[MinValueValidator(Decimal("0"))],
    )
    churn_bonus_pct = models.DecimalField(
        "churn bonus (% of salary)",
        max_digits=7,
        decimal_places=4,
        default=Decimal("3"),
        validators=[MinValueValidator(Decimal("0")), MaxValueValidator(Decimal("100"))],
    )
    retention_bonus_pct = models.DecimalField(
        "retention bonus (% of salary)",
        max_digits=7,
        decimal_places=4,
        default=Decimal("3"),
        validators=[MinValueValidator(Decimal("0")), MaxValueValidator(Decimal("100"))],
    )
    target_bonus_pct = models.DecimalField(
        "target bonus (% of qualifying MRR)",
        max_digits=7,
        decimal_places=4,
        default=Decimal("10"),
        validators=[MinValueValidator(Decimal("0")), MaxValueValidator(Decimal("100"))],
    )

    participant_mode = models.CharField(
        "target bonus participants",
        max_length=12,
        choices=ParticipantMode.choices,
        default=ParticipantMode.ALL_ACTIVE,
    )
    participants = models.ManyToManyField(
        "hrm.Employee",
        blank=True,
        related_name="target_bonus_months",
        verbose_name="participants",
    )
    notes = models.TextField("notes", blank=True, default="")

    class Meta:
        verbose_name = "monthly target"
        verbose_name_plural = "monthly targets"
        ordering = ["-reference_month"]

    def __str__(self) -> str:
        return f"Target {self.reference_month:%Y-%m}"


class IndividualGoal(TimeStampedModel):
    """Personal goal; an achieved goal adds its bonus to the employee's payout."""

    class BonusKind(models.TextChoices):
        FLAT = "FLAT", "Flat amount"
        PERCENT_OF_SALARY = "PERCENT_OF_SALARY", "Percent of base salary"

    employee = models.ForeignKey(
        "hrm.Employee",
        on_delete=models.CASCADE,
        related_name="individual_goals",
        verbose_name="employee",
    )
    reference_month = models.DateField(
        "reference month", db_index=True, validators=[_validate_first_of_month]
    )
    title = models.CharField("title", max_length=200)
    description = models.TextField("description", blank=True, default="")
    bonus_value = models.DecimalField(
        "bonus value",
        max_digits=14,
        decimal_places=2,
        default=Decimal("0.00"),
        validators=[MinValueValidator(Decimal("0"))],
    )
    bonus_kind = models.CharField(
        "bonus kind",
        max_length=20,
        choices=BonusKind.choices,
        default=BonusKind.FLAT,
    )
    achieved = models.BooleanField("achieved", default=False)

    class Meta:
        verbose_name = "individual goal"
        verbose_name_plural = "individual goals"
        ordering = ["reference_month", "title"]
        indexes = [
            models.Index(fields=["employee", "reference_month"], name="goal_emp_month_idx"),
        ]

    def __str__(self) -> str:
        return f"{self.title} ({self.employee})"
