"""Commands of the monthly team closing.

Recompute, configuration and the adjustment ledger. Calculations are
delegated to :mod:`closing.engine`; this module loads inputs, guards
concurrent writers and stores the snapshot.
"""
from __future__ import annotations

import hashlib
import uuid
import logging
from collections import defaultdict
from decimal import Decimal, InvalidOperation
from typing import Any

from django.conf import settings
from django.core.cache import cache
from django.db import DatabaseError, connection, transaction
from django.db.models import Sum
from django.utils import timezone

from closing import engine
from closing.exceptions import (
    ClosedPeriodError,
    ClosingError,
    ClosingValidationError,
    InProgressError,
    MissingPrerequisiteError,
    StorageConsistencyError,
)
from closing.models import ClosingAdjustment, EmployeeClosingLine, TeamClosing
from closing.statements import build_statement, render_statement_text
from core.periods import parse_reference_month, period_label
from core.services import create_audit_log
from hrm.models import Employee
from objectives.models import IndividualGoal, MonthlyTarget
from sales.models import SalesPeriod, ServiceSale

logger = logging.getLogger(__name__)
audit_logger = logging.getLogger("teamclosing")

LOCK_KEY_PREFIX = "team-closing:recompute"

INTEGER_PARAMS = ("starting_subscriptions", "cancellations_count", "target_sales_quantity")
DECIMAL_PARAMS = (
    "churn_limit",
    "cancellation_limit",
    "churn_bonus_pct",
    "retention_bonus_pct",
    "target_bonus_pct",
)
CONFIG_PARAMS = INTEGER_PARAMS + DECIMAL_PARAMS + ("participant_mode", "participant_ids", "notes")
# Upper bound of the DECIMAL(7, 4) percentage columns.
MAX_PERCENT_VALUE = Decimal("999.9999")


# ----------------------------------------------------------------------
# Helpers
# ----------------------------------------------------------------------

def _parse_month(reference_month):
    try:
        return parse_reference_month(reference_month)
    except ValueError as exc:
        raise ClosingValidationError(str(exc), field="reference_month") from exc


def _get_sales_period(month) -> SalesPeriod:
    try:
        return SalesPeriod.objects.get(reference_month=month)
    except SalesPeriod.DoesNotExist:
        raise MissingPrerequisiteError(reference_month=month) from None


def _ensure_open(period: SalesPeriod) -> None:
    if period.is_closed:
        raise ClosedPeriodError(reference_month=period.reference_month)


def _to_decimal(name: str, value) -> Decimal:
    try:
        number = Decimal(str(value))
    except (InvalidOperation, ValueError, TypeError):
        raise ClosingValidationError(f"{name} must be a number.", field=name) from None
    if not number.is_finite():
        raise ClosingValidationError(f"{name} must be a number.", field=name)
    return number


def _to_int(name: str, value) -> int:
    number = _to_decimal(name, value)
    if number != number.to_integral_value():
        raise ClosingValidationError(f"{name} must be an integer.", field=name)
    return int(number)


def _to_uuid(value) -> uuid.UUID:
    try:
        return uuid.UUID(str(value))
    except (ValueError, TypeError, AttributeError):
        raise ClosingValidationError(f"Invalid employee id: {value!r}.", field="participant_ids") from None


def _commission_fallback_pct() -> Decimal:
    return Decimal(str(settings.SERVICE_COMMISSION_FALLBACK_PCT))


def _default_target_values() -> dict[str, Any]:
    defaults = settings.TEAM_CLOSING_DEFAULTS
    values: dict[str, Any] = {name: 0 for name in INTEGER_PARAMS}
    for name in DECIMAL_PARAMS:
        values[name] = _to_decimal(name, defaults[name])
    return values


def _lock_key(month) -> str:
    return f"{LOCK_KEY_PREFIX}:{period_label(month)}"


def _make_advisory_key(month) -> int:
    hex_digest = hashlib.md5(_lock_key(month).encode()).hexdigest()[:8]
    return int(hex_digest, 16) % (2**31)


def _acquire_advisory_lock(month) -> bool:
    """Transaction-scoped advisory lock; always granted outside PostgreSQL."""
    if connection.vendor != "postgresql":
        return True
    with connection.cursor() as cursor:
        cursor.execute("SELECT pg_try_advisory_xact_lock(%s)", [_make_advisory_key(month)])
        row = cursor.fetchone()
    return bool(row and row[0])


# ----------------------------------------------------------------------
# Configuration
# ----------------------------------------------------------------------

def build_config(reference_month) -> engine.ClosingConfig:
    """Immutable configuration of the month, from its target or the defaults."""
    month = _parse_month(reference_month)
    target = MonthlyTarget.objects.filter(reference_month=month).first()
    fallback_pct = _commission_fallback_pct()

    if target is None:
        values = _default_target_values()
        return engine.ClosingConfig(
            starting_subscriptions=values["starting_subscriptions"],
            cancellations=values["cancellations_count"],
            target_sales_quantity=values["target_sales_quantity"],
            churn_limit=values["churn_limit"],
            cancellation_limit=values["cancellation_limit"],
            churn_bonus_pct=values["churn_bonus_pct"],
            retention_bonus_pct=values["retention_bonus_pct"],
            target_bonus_pct=values["target_bonus_pct"],
            participants=engine.AllActiveEmployees(),
            service_commission_fallback_pct=fallback_pct,
        )

    if target.participant_mode == MonthlyTarget.ParticipantMode.EXPLICIT:
        participants = engine.ExplicitParticipants(
            frozenset(target.participants.values_list("pk", flat=True))
        )
    else:
        participants = engine.AllActiveEmployees()

    return engine.ClosingConfig(
        starting_subscriptions=target.starting_subscriptions,
        cancellations=target.cancellations_count,
        target_sales_quantity=target.target_sales_quantity,
        churn_limit=target.churn_limit,
        cancellation_limit=target.cancellation_limit,
        churn_bonus_pct=target.churn_bonus_pct,
        retention_bonus_pct=target.retention_bonus_pct,
        target_bonus_pct=target.target_bonus_pct,
        participants=participants,
        service_commission_fallback_pct=fallback_pct,
    )


def _target_snapshot(target: MonthlyTarget | None) -> dict[str, Any] | None:
    if target is None:
        return None
    data = {name: str(getattr(target, name)) for name in INTEGER_PARAMS + DECIMAL_PARAMS}
    data["participant_mode"] = target.participant_mode
    data["participant_ids"] = sorted(str(pk) for pk in target.participants.values_list("pk", flat=True))
    return data


def get_or_create_draft(reference_month) -> TeamClosing:
    """The closing of the month, created as DRAFT once its sales period exists.

    Raises
    ------
    MissingPrerequisiteError
        If no sales period exists for the month.
    """
    month = _parse_month(reference_month)
    period = _get_sales_period(month)
    closing, created = TeamClosing.objects.get_or_create(
        reference_month=month,
        defaults={"sales_period": period},
    )
    if created:
        logger.info("Draft team closing created for %s", period_label(month))
    return closing


@transaction.atomic
def configure_closing(reference_month, params: dict[str, Any], actor=None) -> MonthlyTarget:
    """Validate and upsert the monthly target configuration.

    Only the keys present in ``params`` change; the rest keep their stored
    value (or the defaults for a new month). Passing ``participant_ids``
    without ``participant_mode`` selects the explicit participant mode.

    Raises
    ------
    ClosingValidationError
        On unknown keys, malformed or negative values, or unknown employees.
    ClosedPeriodError
        If the sales period of the month is closed.
    """
    month = _parse_month(reference_month)
    params = dict(params or {})
    unknown = sorted(set(params) - set(CONFIG_PARAMS))
    if unknown:
        raise ClosingValidationError(f"Unknown configuration keys: {', '.join(unknown)}.", field=unknown[0])

    period = SalesPeriod.objects.filter(reference_month=month).first()
    if period is not None:
        _ensure_open(period)

    target = MonthlyTarget.objects.select_for_update().filter(reference_month=month).first()
    before = _target_snapshot(target)

    if target is None:
        values = _default_target_values()
        values["participant_mode"] = MonthlyTarget.ParticipantMode.ALL_ACTIVE
        values["notes"] = ""
        participant_ids = []
    else:
        values = {name: getattr(target, name) for name in INTEGER_PARAMS + DECIMAL_PARAMS}
        values["participant_mode"] = target.participant_mode
        values["notes"] = target.notes
        participant_ids = list(target.participants.values_list("pk", flat=True))

    for name in INTEGER_PARAMS:
        if name in params:
            values[name] = _to_int(name, params[name])
    for name in DECIMAL_PARAMS:
        if name in params:
            values[name] = _to_decimal(name, params[name])
    for name in DECIMAL_PARAMS:
        if values[name] > MAX_PERCENT_VALUE:
            raise ClosingValidationError(f"{name} cannot exceed {MAX_PERCENT_VALUE}.", field=name)
    if "notes" in params:
        values["notes"] = params["notes"] or ""

    if "participant_ids" in params:
        raw_ids = params["participant_ids"]
        if raw_ids is None or isinstance(raw_ids, (str, bytes)):
            raise ClosingValidationError("participant_ids must be a list of employee ids.", field="participant_ids")
        participant_ids = [_to_uuid(pk) for pk in raw_ids]
        if "participant_mode" not in params:
            values["participant_mode"] = MonthlyTarget.ParticipantMode.EXPLICIT
    if "participant_mode" in params:
        mode = str(params["participant_mode"] or "").upper()
        if mode not in MonthlyTarget.ParticipantMode.values:
            raise ClosingValidationError(f"Unknown participant mode: {params['participant_mode']!r}.", field="participant_mode")
        values["participant_mode"] = mode

    # Builds the immutable config only to run its validation.
    config = engine.ClosingConfig(
        starting_subscriptions=values["starting_subscriptions"],
        cancellations=values["cancellations_count"],
        target_sales_quantity=values["target_sales_quantity"],
        churn_limit=values["churn_limit"],
        cancellation_limit=values["cancellation_limit"],
        churn_bonus_pct=values["churn_bonus_pct"],
        retention_bonus_pct=values["retention_bonus_pct"],
        target_bonus_pct=values["target_bonus_pct"],
        participants=engine.ExplicitParticipants(frozenset(participant_ids))
        if values["participant_mode"] == MonthlyTarget.ParticipantMode.EXPLICIT
        else engine.AllActiveEmployees(),
        service_commission_fallback_pct=_commission_fallback_pct(),
    )
    try:
        config.validate()
    except ClosingValidationError as exc:
        if exc.field == "cancellations":
            exc.field = "cancellations_count"
        raise

    employees = list(Employee.objects.filter(pk__in=participant_ids)) if participant_ids else []
    if len(employees) != len(set(participant_ids)):
        raise ClosingValidationError("participant_ids lists unknown employees.", field="participant_ids")

    if target is None:
        target = MonthlyTarget(reference_month=month)
    for name, value in values.items():
        setattr(target, name, value)
    target.save()
    target.participants.set(employees)

    if period is not None:
        TeamClosing.objects.get_or_create(reference_month=month, defaults={"sales_period": period})

    create_audit_log(
        actor=actor,
        action="TEAM_CLOSING_CONFIGURE",
        entity_type="MonthlyTarget",
        entity_id=str(target.pk),
        before=before,
        after=_target_snapshot(target),
    )
    audit_logger.info("Team closing %s configured", period_label(month))
    return target


# ----------------------------------------------------------------------
# Recompute
# ----------------------------------------------------------------------

def load_working_set(month) -> list[engine.EmployeeInput]:
    """Active employees in the team closing, with approved sales and goals of the month."""
    employees = list(Employee.objects.in_team_closing().order_by("name", "id"))
    ids = [employee.pk for employee in employees]

    sale_amounts = defaultdict(list)
    sales = (
        ServiceSale.objects.filter(
            employee_id__in=ids,
            reference_month=month,
            status=ServiceSale.Status.APPROVED,
        )
        .order_by("sale_date", "id")
        .values_list("employee_id", "amount")
    )
    for employee_id, amount in sales:
        sale_amounts[employee_id].append(amount)

    goals = defaultdict(list)
    for goal in IndividualGoal.objects.filter(employee_id__in=ids, reference_month=month).order_by("title", "id"):
        goals[goal.employee_id].append(
            engine.GoalInput(
                title=goal.title,
                bonus_value=goal.bonus_value,
                bonus_kind=goal.bonus_kind,
                achieved=goal.achieved,
            )
        )

    return [
        engine.EmployeeInput(
            employee_id=str(employee.pk),
            name=employee.name,
            role=employee.role,
            base_salary=employee.base_salary,
            services_commission_pct=employee.services_commission_pct,
            service_sale_amounts=tuple(sale_amounts[employee.pk]),
            goals=tuple(goals[employee.pk]),
        )
        for employee in employees
    ]


def _statement_rows(month, employee_ids=None) -> tuple[dict, dict]:
    """Approved service sales and goals of the month, keyed by employee id."""
    sales = ServiceSale.objects.filter(reference_month=month, status=ServiceSale.Status.APPROVED)
    goals = IndividualGoal.objects.filter(reference_month=month)
    if employee_ids is not None:
        sales = sales.filter(employee_id__in=employee_ids)
        goals = goals.filter(employee_id__in=employee_ids)

    sales_by_employee = defaultdict(list)
    for sale in sales.order_by("sale_date", "id"):
        sales_by_employee[str(sale.employee_id)].append(sale)
    goals_by_employee = defaultdict(list)
    for goal in goals.order_by("title", "id"):
        goals_by_employee[str(goal.employee_id)].append(goal)
    return sales_by_employee, goals_by_employee


def _apply_result(closing: TeamClosing, result: engine.ClosingResult) -> None:
    config = result.config
    closing.starting_subscriptions = config.starting_subscriptions
    closing.cancellations_count = config.cancellations
    closing.target_sales_quantity = config.target_sales_quantity
    closing.recurring_sales_count = result.sales.recurring_sales
    closing.mrr_for_period = engine.to_money(result.sales.mrr_for_period)
    closing.mrr_qualifying_for_bonus = engine.to_money(result.sales.qualifying_mrr)

    closing.churn_rate = result.metrics.churn_rate
    closing.cancellation_rate = result.metrics.cancellation_rate
    closing.target_percent = result.metrics.percent_of_target

    closing.churn_limit = engine.to_rate(config.churn_limit)
    closing.cancellation_limit = engine.to_rate(config.cancellation_limit)
    closing.churn_bonus_pct = engine.to_rate(config.churn_bonus_pct)
    closing.retention_bonus_pct = engine.to_rate(config.retention_bonus_pct)
    closing.target_bonus_pct = engine.to_rate(config.target_bonus_pct)

    closing.churn_bonus_unlocked = result.gates.churn_bonus_unlocked
    closing.retention_bonus_unlocked = result.gates.retention_bonus_unlocked
    closing.target_bonus_unlocked = result.gates.target_bonus_unlocked

    if isinstance(config.participants, engine.ExplicitParticipants):
        closing.participant_mode = MonthlyTarget.ParticipantMode.EXPLICIT
    else:
        closing.participant_mode = MonthlyTarget.ParticipantMode.ALL_ACTIVE
    closing.target_bonus_pool_total = result.pool.pool_total
    closing.participant_count = result.pool.participant_count
    closing.target_bonus_per_participant = result.pool.per_participant


def _build_line(
    closing: TeamClosing,
    payout: engine.PayoutLine,
    service_sales=(),
    goals=(),
) -> EmployeeClosingLine:
    line = EmployeeClosingLine(
        team_closing=closing,
        employee_id=payout.employee_id,
        employee_name=payout.employee_name,
        role=payout.role,
        base_salary=payout.base_salary,
        services_commission_pct=engine.to_rate(payout.services_commission_pct),
        in_target_pool=payout.in_target_pool,
        churn_bonus_amount=payout.churn_bonus_amount,
        retention_bonus_amount=payout.retention_bonus_amount,
        target_bonus_amount=payout.target_bonus_amount,
        subtotal_salary_bonuses=payout.subtotal_salary_bonuses,
        service_sales_count=payout.service_sales_count,
        service_sales_total=payout.service_sales_total,
        service_commission_amount=payout.service_commission_amount,
        individual_goals_count=payout.individual_goals_count,
        individual_goals_met=payout.individual_goals_met,
        individual_goals_bonus_amount=payout.individual_goals_bonus_amount,
        total_payable=payout.total_payable,
    )
    line.rendered_statement = render_statement_text(
        build_statement(line, closing, service_sales=service_sales, goals=goals)
    )
    return line


def _insert_lines(lines: list[EmployeeClosingLine]) -> list[EmployeeClosingLine]:
    return EmployeeClosingLine.objects.bulk_create(lines)


def _closing_snapshot(closing: TeamClosing) -> dict[str, Any]:
    return {
        "status": closing.status,
        "churn_rate": str(closing.churn_rate),
        "cancellation_rate": str(closing.cancellation_rate),
        "target_percent": str(closing.target_percent),
        "target_bonus_pool_total": str(closing.target_bonus_pool_total),
        "participant_count": closing.participant_count,
        "calculated_at": closing.calculated_at.isoformat() if closing.calculated_at else None,
    }


def recompute_closing(reference_month, actor=None) -> TeamClosing:
    """Recalculate the month and replace its lines.

    The delete and insert of the lines and the update of the closing run in
    one transaction; a failure leaves the previous snapshot in place.

    Raises
    ------
    MissingPrerequisiteError
        If the sales period of the month does not exist.
    ClosedPeriodError
        If the sales period is closed. Nothing is written.
    InProgressError
        If another recompute of the same month holds the guard.
    ClosingValidationError
        If the monthly configuration is invalid.
    StorageConsistencyError
        If the lines cannot be replaced or the stored count does not match
        the computed one.
    """
    month = _parse_month(reference_month)
    _ensure_open(_get_sales_period(month))

    lock_key = _lock_key(month)
    token = uuid.uuid4().hex
    if not cache.add(lock_key, token, timeout=settings.TEAM_CLOSING_LOCK_TIMEOUT):
        raise InProgressError(reference_month=month)
    try:
        closing = _recompute_guarded(month, actor)
    except StorageConsistencyError:
        logger.exception("Team closing %s lines could not be stored consistently", period_label(month))
        raise
    except ClosingError as exc:
        logger.warning("Team closing %s recompute refused: %s", period_label(month), exc.code)
        raise
    finally:
        # An expired guard may already belong to the next writer.
        if cache.get(lock_key) == token:
            cache.delete(lock_key)

    totals = closing.lines.aggregate(total=Sum("total_payable"))
    audit_logger.info(
        "Team closing %s recomputed: %d lines, total payable %s",
        period_label(month),
        closing.lines.count(),
        totals["total"] or Decimal("0.00"),
    )
    return closing


def _recompute_guarded(month, actor) -> TeamClosing:
    with transaction.atomic():
        if not _acquire_advisory_lock(month):
            raise InProgressError(reference_month=month)

        period = SalesPeriod.objects.select_for_update().get(reference_month=month)
        _ensure_open(period)

        config = build_config(month)
        sales = engine.SalesInputs(
            recurring_sales=period.total_recurring_sales,
            mrr_for_period=period.total_mrr,
            qualifying_mrr=period.qualifying_mrr,
        )
        result = engine.run_closing(config, sales, load_working_set(month))

        TeamClosing.objects.get_or_create(reference_month=month, defaults={"sales_period": period})
        closing = TeamClosing.objects.select_for_update().get(reference_month=month)
        before = _closing_snapshot(closing)

        _apply_result(closing, result)
        closing.status = TeamClosing.Status.CALCULATED
        closing.calculated_at = timezone.now()
        if actor is not None and getattr(actor, "is_authenticated", False):
            closing.calculated_by = actor
        sales_by_employee, goals_by_employee = _statement_rows(month)
        lines = [
            _build_line(
                closing,
                payout,
                sales_by_employee.get(payout.employee_id, ()),
                goals_by_employee.get(payout.employee_id, ()),
            )
            for payout in result.lines
        ]

        try:
            closing.lines.all().delete()
            inserted = _insert_lines(lines)
        except DatabaseError as exc:
            raise StorageConsistencyError(
                f"Closing lines could not be replaced: {exc}",
                reference_month=month,
            ) from exc
        stored = EmployeeClosingLine.objects.filter(team_closing=closing).count()
        if len(inserted) != len(result.lines) or stored != len(result.lines):
            raise StorageConsistencyError(
                f"Expected {len(result.lines)} closing lines, stored {stored}.",
                reference_month=month,
            )
        closing.save()

        create_audit_log(
            actor=actor,
            action="TEAM_CLOSING_RECOMPUTE",
            entity_type="TeamClosing",
            entity_id=str(closing.pk),
            before=before,
            after=_closing_snapshot(closing),
        )
    return closing


# ----------------------------------------------------------------------
# Adjustment ledger
# ----------------------------------------------------------------------

def _adjustment_snapshot(adjustment: ClosingAdjustment) -> dict[str, Any]:
    return {
        "team_closing_id": str(adjustment.team_closing_id),
        "employee_id": str(adjustment.employee_id) if adjustment.employee_id else None,
        "kind": adjustment.kind,
        "amount": str(adjustment.amount),
        "description": adjustment.description,
    }


@transaction.atomic
def add_adjustment(
    team_closing: TeamClosing,
    employee: Employee | None,
    kind: str,
    amount,
    description: str,
    actor=None,
) -> ClosingAdjustment:
    """Append a manual credit or debit to a closing.

    ``employee=None`` books a general adjustment that counts in the team
    totals only.

    Raises
    ------
    ClosingValidationError
        If the amount is not positive, the description is blank or the kind is unknown.
    ClosedPeriodError
        If the sales period of the closing is closed.
    """
    kind = str(kind or "").upper()
    if kind not in ClosingAdjustment.Kind.values:
        raise ClosingValidationError(f"Unknown adjustment kind: {kind or None!r}.", field="kind")
    value = engine.to_money(_to_decimal("amount", amount))
    if value <= 0:
        raise ClosingValidationError("The adjustment amount must be greater than zero.", field="amount")
    description = (description or "").strip()
    if not description:
        raise ClosingValidationError("A description is required.", field="description")

    closing = TeamClosing.objects.select_related("sales_period").get(pk=team_closing.pk)
    _ensure_open(closing.sales_period)

    adjustment = ClosingAdjustment.objects.create(
        team_closing=closing,
        employee=employee,
        kind=kind,
        amount=value,
        description=description,
        created_by=actor if actor is not None and getattr(actor, "is_authenticated", False) else None,
    )
    create_audit_log(
        actor=actor,
        action="CLOSING_ADJUSTMENT_ADD",
        entity_type="ClosingAdjustment",
        entity_id=str(adjustment.pk),
        after=_adjustment_snapshot(adjustment),
    )
    audit_logger.info(
        "Adjustment %s %s booked on team closing %s",
        kind,
        value,
        period_label(closing.reference_month),
    )
    return adjustment


@transaction.atomic
def remove_adjustment(adjustment_id, actor=None) -> None:
    """Hard-delete an adjustment. Refused once the month is closed."""
    adjustment = ClosingAdjustment.objects.select_related("team_closing__sales_period").get(pk=adjustment_id)
    _ensure_open(adjustment.team_closing.sales_period)

    before = _adjustment_snapshot(adjustment)
    pk = adjustment.pk
    adjustment.delete()
    create_audit_log(
        actor=actor,
        action="CLOSING_ADJUSTMENT_REMOVE",
        entity_type="ClosingAdjustment",
        entity_id=str(pk),
        before=before,
    )
    audit_logger.info(
        "Adjustment %s removed from team closing %s",
        pk,
        period_label(adjustment.team_closing.reference_month),
    )


def list_adjustments(team_closing: TeamClosing):
    """Adjustments of the closing, most recent first."""
    return (
        ClosingAdjustment.objects.filter(team_closing=team_closing)
        .select_related("employee", "created_by")
        .order_by("-created_at", "-id")
    )


def effective_payable(line: EmployeeClosingLine, adjustments=None) -> Decimal:
    """``total_payable`` plus the employee's credits minus their debits."""
    if adjustments is None:
        adjustments = ClosingAdjustment.objects.filter(
            team_closing_id=line.team_closing_id,
            employee_id=line.employee_id,
        )
    own = [adj for adj in adjustments if adj.employee_id is not None and str(adj.employee_id) == str(line.employee_id)]
    return line.total_payable + engine.total_adjustments(own).net


def adjustment_totals(team_closing: TeamClosing) -> engine.AdjustmentTotals:
    """Credits and debits across the closing, general adjustments included."""
    return engine.total_adjustments(ClosingAdjustment.objects.filter(team_closing=team_closing))


def closing_summary(team_closing: TeamClosing) -> dict[str, Any]:
    """Team totals with adjustments applied, plus each employee's effective payable."""
    lines = list(team_closing.lines.order_by("employee_name", "employee_id"))
    adjustments = list(ClosingAdjustment.objects.filter(team_closing=team_closing))

    by_employee = defaultdict(list)
    general = []
    for adjustment in adjustments:
        if adjustment.employee_id is None:
            general.append(adjustment)
        else:
            by_employee[str(adjustment.employee_id)].append(adjustment)

    totals = engine.total_adjustments(adjustments)
    lines_total = sum((line.total_payable for line in lines), Decimal("0.00"))

    employees = []
    for line in lines:
        own = engine.total_adjustments(by_employee.get(str(line.employee_id), ()))
        employees.append(
            {
                "employee_id": str(line.employee_id),
                "employee_name": line.employee_name,
                "total_payable": line.total_payable,
                "adjustments_net": own.net,
                "effective_payable": line.total_payable + own.net,
            }
        )

    return {
        "reference_month": period_label(team_closing.reference_month),
        "status": team_closing.status,
        "line_count": len(lines),
        "total_payable": lines_total,
        "total_credits": totals.credits,
        "total_debits": totals.debits,
        "adjustments_net": totals.net,
        "general_adjustments_net": engine.total_adjustments(general).net,
        "grand_total": lines_total + totals.net,
        "employees": employees,
    }


def get_statement(reference_month, employee_id) -> dict[str, Any]:
    """Regenerate one employee's statement, adjustments included.

    The returned breakdown carries its plain-text rendering under ``text``.

    Raises
    ------
    MissingPrerequisiteError
        If the month has no closing or no line for the employee.
    """
    month = _parse_month(reference_month)
    closing = TeamClosing.objects.filter(reference_month=month).first()
    if closing is None:
        raise MissingPrerequisiteError("No team closing exists for this month.", reference_month=month)
    line = closing.lines.filter(employee_id=employee_id).first()
    if line is None:
        raise MissingPrerequisiteError(
            "The employee has no calculated line in this closing. Recompute it first.",
            reference_month=month,
        )
    sales_by_employee, goals_by_employee = _statement_rows(month, [line.employee_id])
    statement = build_statement(
        line,
        closing,
        list_adjustments(closing).filter(employee_id=line.employee_id),
        service_sales=sales_by_employee.get(str(line.employee_id), ()),
        goals=goals_by_employee.get(str(line.employee_id), ()),
    )
    statement["text"] = render_statement_text(statement)
    return statement
