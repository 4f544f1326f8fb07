"""HRM models: the employees that take part in monthly team closings."""
from decimal import Decimal

from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models

from core.models import TimeStampedModel


class EmployeeQuerySet(models.QuerySet):
    def active(self):
        return self.filter(is_active=True)

    def in_team_closing(self):
        """Active employees that opted into the monthly team closing."""
        return self.active().filter(participates_in_team_closing=True)


class Employee(TimeStampedModel):
    """Employee whose salary-based bonuses and commissions are closed monthly."""

    name = models.CharField("name", max_length=150)
    role = models.CharField("role", max_length=100, blank=True, default="")
    email = models.EmailField("e-mail", blank=True, default="")
    hire_date = models.DateField("hire date", null=True, blank=True)

    base_salary = models.DecimalField(
        "base salary",
        max_digits=14,
        decimal_places=2,
        default=Decimal("0.00"),
        validators=[MinValueValidator(Decimal("0"))],
    )
    services_commission_pct = models.DecimalField(
        "services commission (%)",
        max_digits=5,
        decimal_places=2,
        null=True,
        blank=True,
        validators=[MinValueValidator(Decimal("0")), MaxValueValidator(Decimal("100"))],
        help_text="Leave empty to use the default services commission.",
    )

    is_active = models.BooleanField("active", default=True, db_index=True)
    participates_in_team_closing = models.BooleanField(
        "participates in team closing",
        default=True,
        help_text="Opt-in for churn/retention bonuses. Target-bonus participation is configured per month.",
    )

    objects = EmployeeQuerySet.as_manager()

    class Meta:
        verbose_name = "employee"
        verbose_name_plural = "employees"
        ordering = ["name"]

    def __str__(self):
        return self.name
