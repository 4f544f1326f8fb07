"""Sales-period aggregates and approved one-off service sales.

Both models are fed by collaborators (sales imports, the seller-commission
calculation, service approval). The team closing only reads them.
"""
from decimal import Decimal

from django.core.exceptions import ValidationError
from django.core.validators import MinValueValidator
from django.db import models

from core.models import TimeStampedModel


class SalesPeriod(TimeStampedModel):
    """Monthly sales aggregate produced by the seller-commission closing."""

    class Status(models.TextChoices):
        OPEN = "OPEN", "Open"
        CLOSED = "CLOSED", "Closed"

    reference_month = models.DateField("reference month", unique=True)
    total_mrr = models.DecimalField(
        "total MRR",
        max_digits=14,
        decimal_places=2,
        default=Decimal("0.00"),
        validators=[MinValueValidator(Decimal("0"))],
    )
    qualifying_mrr = models.DecimalField(
        "MRR qualifying for bonus",
        max_digits=14,
        decimal_places=2,
        default=Decimal("0.00"),
        validators=[MinValueValidator(Decimal("0"))],
        help_text="Commission base MRR computed by the seller-commission closing.",
    )
    total_recurring_sales = models.PositiveIntegerField("recurring sales", default=0)
    target_met = models.BooleanField("target met", default=False)
    source_file = models.CharField("imported file", max_length=255, blank=True, default="")
    status = models.CharField(
        "status",
        max_length=10,
        choices=Status.choices,
        default=Status.OPEN,
        db_index=True,
    )
    closed_at = models.DateTimeField("closed at", null=True, blank=True)

    class Meta:
        verbose_name = "sales period"
        verbose_name_plural = "sales periods"
        ordering = ["-reference_month"]

    def __str__(self):
        return f"Sales {self.reference_month:%Y-%m} ({self.get_status_display()})"

    def clean(self):
        if self.reference_month and self.reference_month.day != 1:
            raise ValidationError({"reference_month": "The reference month must be the first day of a month."})

    @property
    def is_closed(self) -> bool:
        return self.status == self.Status.CLOSED


class ServiceSale(TimeStampedModel):
    """One-off service sold by an employee, pending manager approval."""

    class Status(models.TextChoices):
        PENDING = "PENDING", "Pending"
        APPROVED = "APPROVED", "Approved"
        REJECTED = "REJECTED", "Rejected"

    employee = models.ForeignKey(
        "hrm.Employee",
        on_delete=models.PROTECT,
        related_name="service_sales",
        verbose_name="employee",
    )
    reference_month = models.DateField("reference month", db_index=True)
    sale_date = models.DateField("sale date")
    client = models.CharField("client", max_length=200)
    description = models.CharField("service", max_length=255)
    amount = models.DecimalField(
        "amount",
        max_digits=14,
        decimal_places=2,
        validators=[MinValueValidator(Decimal("0"))],
    )
    status = models.CharField(
        "status",
        max_length=10,
        choices=Status.choices,
        default=Status.PENDING,
        db_index=True,
    )
    approved_at = models.DateTimeField("approved at", null=True, blank=True)
    rejection_reason = models.TextField("rejection reason", blank=True, default="")

    class Meta:
        verbose_name = "service sale"
        verbose_name_plural = "service sales"
        ordering = ["-sale_date"]
        indexes = [
            models.Index(fields=["employee", "reference_month", "status"], name="service_sale_emp_month_idx"),
        ]

    def __str__(self):
        return f"{self.description} - {self.client} ({self.amount})"
