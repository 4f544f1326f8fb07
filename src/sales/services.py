"""Business logic for sales periods and service sales."""
import logging

from django.db import transaction
from django.utils import timezone

from core.services import create_audit_log

from .models import SalesPeriod, ServiceSale

logger = logging.getLogger(__name__)


@transaction.atomic
def close_sales_period(period: SalesPeriod, actor=None) -> SalesPeriod:
    """Finalize a sales period. Team closings of that month become read-only.

    Raises
    ------
    ValueError
        If the period is already closed.
    """
    locked = SalesPeriod.objects.select_for_update().get(pk=period.pk)
    if locked.is_closed:
        raise ValueError("This sales period is already closed.")

    locked.status = SalesPeriod.Status.CLOSED
    locked.closed_at = timezone.now()
    locked.save(update_fields=["status", "closed_at", "updated_at"])

    create_audit_log(
        actor=actor,
        action="SALES_PERIOD_CLOSE",
        entity_type="SalesPeriod",
        entity_id=str(locked.pk),
        after={"reference_month": locked.reference_month.isoformat(), "status": locked.status},
    )
    logger.info("Sales period %s closed", locked.reference_month)
    return locked


@transaction.atomic
def approve_service_sale(sale: ServiceSale, actor=None) -> ServiceSale:
    """Approve a pending service sale so it counts towards the closing."""
    if sale.status != ServiceSale.Status.PENDING:
        raise ValueError("Only pending service sales can be approved.")
    sale.status = ServiceSale.Status.APPROVED
    sale.approved_at = timezone.now()
    sale.save(update_fields=["status", "approved_at", "updated_at"])
    create_audit_log(
        actor=actor,
        action="SERVICE_SALE_APPROVE",
        entity_type="ServiceSale",
        entity_id=str(sale.pk),
        after={"amount": str(sale.amount), "employee_id": str(sale.employee_id)},
    )
    return sale


@transaction.atomic
def reject_service_sale(sale: ServiceSale, reason: str, actor=None) -> ServiceSale:
    """Reject a pending service sale; it never reaches the closing."""
    if sale.status != ServiceSale.Status.PENDING:
        raise ValueError("Only pending service sales can be rejected.")
    if not (reason or "").strip():
        raise ValueError("A rejection reason is required.")
    sale.status = ServiceSale.Status.REJECTED
    sale.rejection_reason = reason.strip()
    sale.save(update_fields=["status", "rejection_reason", "updated_at"])
    create_audit_log(
        actor=actor,
        action="SERVICE_SALE_REJECT",
        entity_type="ServiceSale",
        entity_id=str(sale.pk),
        after={"reason": sale.rejection_reason},
    )
    return sale
