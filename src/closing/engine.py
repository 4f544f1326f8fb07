"""Calculation core of the monthly team closing.

Everything in this module is a pure function of its arguments:

- ``compute_period_metrics``: churn, cancellation and percent-of-target ratios
- ``evaluate_gates``: the three independent bonus gates
- ``resolve_participants`` / ``distribute_pool``: the target bonus pool split
- ``compute_payout``: one payout line per employee
- ``run_closing``: all of the above for a whole month

Persistence, locking and auditing live in ``closing.services``.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Decimal
from fractions import Fraction
from typing import Iterable, Union

from closing.exceptions import ClosingValidationError

ZERO = Decimal("0")
HUNDRED = Decimal("100")
CENT = Decimal("0.01")
RATE_STEP = Decimal("0.0001")
DEFAULT_SERVICE_COMMISSION_PCT = Decimal("10")

GOAL_FLAT = "FLAT"
GOAL_PERCENT_OF_SALARY = "PERCENT_OF_SALARY"


def to_money(value) -> Decimal:
    """Quantize to cents, half-up."""
    return Decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def to_rate(value) -> Decimal:
    return Decimal(value).quantize(RATE_STEP, rounding=ROUND_HALF_UP)


def _ratio(numerator, denominator) -> Fraction:
    # Exact percentage; a zero denominator yields 0, never an error.
    if not denominator:
        return Fraction(0)
    return Fraction(int(numerator) * 100, int(denominator))


def _rounded(ratio: Fraction) -> Decimal:
    return to_rate(Decimal(ratio.numerator) / Decimal(ratio.denominator))


# ----------------------------------------------------------------------
# Value types
# ----------------------------------------------------------------------

@dataclass(frozen=True)
class AllActiveEmployees:
    """Every employee of the working set shares the target bonus pool."""


@dataclass(frozen=True)
class ExplicitParticipants:
    """Only the listed employees share the target bonus pool."""

    employee_ids: frozenset

    def __post_init__(self):
        object.__setattr__(self, "employee_ids", frozenset(str(pk) for pk in self.employee_ids))


ParticipantSelection = Union[AllActiveEmployees, ExplicitParticipants]


@dataclass(frozen=True)
class ClosingConfig:
    """Immutable monthly configuration passed into every calculation."""

    starting_subscriptions: int = 0
    cancellations: int = 0
    target_sales_quantity: int = 0
    churn_limit: Decimal = Decimal("5")
    cancellation_limit: Decimal = Decimal("50")
    churn_bonus_pct: Decimal = Decimal("3")
    retention_bonus_pct: Decimal = Decimal("3")
    target_bonus_pct: Decimal = Decimal("10")
    participants: ParticipantSelection = AllActiveEmployees()
    service_commission_fallback_pct: Decimal = DEFAULT_SERVICE_COMMISSION_PCT

    COUNTER_FIELDS = ("starting_subscriptions", "cancellations", "target_sales_quantity")
    PERCENT_FIELDS = (
        "churn_limit",
        "cancellation_limit",
        "churn_bonus_pct",
        "retention_bonus_pct",
        "target_bonus_pct",
        "service_commission_fallback_pct",
    )

    def validate(self) -> "ClosingConfig":
        """Return ``self`` or raise :class:`ClosingValidationError`.

        Counters, thresholds and percentages must all be non-negative.
        """
        for name in self.COUNTER_FIELDS:
            value = getattr(self, name)
            if value is None or int(value) != value or value < 0:
                raise ClosingValidationError(f"{name} must be a non-negative integer.", field=name)
        for name in self.PERCENT_FIELDS:
            value = getattr(self, name)
            if value is None or Decimal(value) < ZERO:
                raise ClosingValidationError(f"{name} cannot be negative.", field=name)
        if not isinstance(self.participants, (AllActiveEmployees, ExplicitParticipants)):
            raise ClosingValidationError("Unknown participant selection.", field="participants")
        return self


@dataclass(frozen=True)
class SalesInputs:
    """Aggregate read from the sales period of the month."""

    recurring_sales: int = 0
    mrr_for_period: Decimal = ZERO
    qualifying_mrr: Decimal = ZERO


@dataclass(frozen=True)
class GoalInput:
    title: str
    bonus_value: Decimal
    bonus_kind: str = GOAL_FLAT
    achieved: bool = False


@dataclass(frozen=True)
class EmployeeInput:
    """An employee of the working set with the month's service sales and goals."""

    employee_id: str
    name: str
    base_salary: Decimal
    role: str = ""
    services_commission_pct: Decimal | None = None
    service_sale_amounts: tuple = ()
    goals: tuple = ()


@dataclass(frozen=True)
class PeriodMetrics:
    """Rates rounded for storage, plus the exact ratios the gates compare."""

    churn_rate: Decimal
    cancellation_rate: Decimal
    percent_of_target: Decimal
    exact_churn_rate: Fraction | None = field(default=None, repr=False)
    exact_cancellation_rate: Fraction | None = field(default=None, repr=False)
    exact_percent_of_target: Fraction | None = field(default=None, repr=False)

    def exact(self, name: str) -> Fraction:
        value = getattr(self, f"exact_{name}")
        return value if value is not None else Fraction(getattr(self, name))


@dataclass(frozen=True)
class BonusGates:
    churn_bonus_unlocked: bool
    retention_bonus_unlocked: bool
    target_bonus_unlocked: bool


@dataclass(frozen=True)
class PoolDistribution:
    participant_ids: frozenset
    pool_total: Decimal
    per_participant: Decimal

    @property
    def participant_count(self) -> int:
        return len(self.participant_ids)


@dataclass(frozen=True)
class PayoutLine:
    employee_id: str
    employee_name: str
    role: str
    base_salary: Decimal
    services_commission_pct: Decimal
    in_target_pool: bool
    churn_bonus_amount: Decimal
    retention_bonus_amount: Decimal
    target_bonus_amount: Decimal
    subtotal_salary_bonuses: Decimal
    service_sales_count: int
    service_sales_total: Decimal
    service_commission_amount: Decimal
    individual_goals_count: int
    individual_goals_met: int
    individual_goals_bonus_amount: Decimal
    total_payable: Decimal


@dataclass(frozen=True)
class ClosingResult:
    config: ClosingConfig
    sales: SalesInputs
    metrics: PeriodMetrics
    gates: BonusGates
    pool: PoolDistribution
    lines: tuple

    @property
    def total_payable(self) -> Decimal:
        return sum((line.total_payable for line in self.lines), to_money(ZERO))


# ----------------------------------------------------------------------
# Calculations
# ----------------------------------------------------------------------

def compute_period_metrics(
    starting_subscriptions: int,
    cancellations: int,
    recurring_sales: int,
    target_sales_quantity: int,
) -> PeriodMetrics:
    churn = _ratio(cancellations, starting_subscriptions)
    cancellation = _ratio(cancellations, recurring_sales)
    target = _ratio(recurring_sales, target_sales_quantity)
    return PeriodMetrics(
        churn_rate=_rounded(churn),
        cancellation_rate=_rounded(cancellation),
        percent_of_target=_rounded(target),
        exact_churn_rate=churn,
        exact_cancellation_rate=cancellation,
        exact_percent_of_target=target,
    )


def evaluate_gates(metrics: PeriodMetrics, config: ClosingConfig) -> BonusGates:
    """Churn and retention unlock strictly below their limit; the target unlocks at 100%.

    The comparison uses the exact ratios, never the rounded rates.
    """
    return BonusGates(
        churn_bonus_unlocked=metrics.exact("churn_rate") < Fraction(Decimal(config.churn_limit)),
        retention_bonus_unlocked=metrics.exact("cancellation_rate") < Fraction(Decimal(config.cancellation_limit)),
        target_bonus_unlocked=metrics.exact("percent_of_target") >= Fraction(HUNDRED),
    )


def resolve_participants(selection: ParticipantSelection, working_set_ids: Iterable) -> frozenset:
    """Ids of the working set that share the target bonus pool.

    Explicit ids outside the working set (inactive or opted-out employees) are dropped.
    """
    working_set = frozenset(str(pk) for pk in working_set_ids)
    if isinstance(selection, ExplicitParticipants):
        return working_set & selection.employee_ids
    if isinstance(selection, AllActiveEmployees):
        return working_set
    raise ClosingValidationError("Unknown participant selection.", field="participants")


def distribute_pool(
    gates: BonusGates,
    qualifying_mrr: Decimal,
    target_bonus_pct: Decimal,
    participant_ids: frozenset,
) -> PoolDistribution:
    """Equal split of ``qualifying_mrr * pct`` across the participants.

    The per-participant share is rounded to cents, so ``share * count`` may
    differ from the pool by at most half a cent per participant.
    """
    if gates.target_bonus_unlocked:
        pool_total = to_money(Decimal(qualifying_mrr) * Decimal(target_bonus_pct) / HUNDRED)
    else:
        pool_total = to_money(ZERO)

    count = len(participant_ids)
    per_participant = to_money(pool_total / count) if count else to_money(ZERO)
    return PoolDistribution(
        participant_ids=frozenset(participant_ids),
        pool_total=pool_total,
        per_participant=per_participant,
    )


def goal_bonus(goal: GoalInput, base_salary: Decimal) -> Decimal:
    if not goal.achieved:
        return to_money(ZERO)
    if goal.bonus_kind == GOAL_PERCENT_OF_SALARY:
        return to_money(Decimal(base_salary) * Decimal(goal.bonus_value) / HUNDRED)
    if goal.bonus_kind == GOAL_FLAT:
        return to_money(goal.bonus_value)
    raise ClosingValidationError(f"Unknown goal bonus kind: {goal.bonus_kind!r}.", field="bonus_kind")


def compute_payout(
    employee: EmployeeInput,
    config: ClosingConfig,
    gates: BonusGates,
    pool: PoolDistribution,
) -> PayoutLine:
    """Payout line of one employee. Adjustments are never part of ``total_payable``."""
    base_salary = Decimal(employee.base_salary)

    churn_bonus = (
        to_money(base_salary * Decimal(config.churn_bonus_pct) / HUNDRED)
        if gates.churn_bonus_unlocked
        else to_money(ZERO)
    )
    retention_bonus = (
        to_money(base_salary * Decimal(config.retention_bonus_pct) / HUNDRED)
        if gates.retention_bonus_unlocked
        else to_money(ZERO)
    )
    in_target_pool = str(employee.employee_id) in pool.participant_ids
    target_bonus = pool.per_participant if in_target_pool else to_money(ZERO)
    subtotal = churn_bonus + retention_bonus + target_bonus

    commission_pct = employee.services_commission_pct
    if commission_pct is None:
        commission_pct = config.service_commission_fallback_pct
    commission_pct = Decimal(commission_pct)
    sales_total = to_money(sum((Decimal(amount) for amount in employee.service_sale_amounts), ZERO))
    commission = to_money(sales_total * commission_pct / HUNDRED)

    goals = tuple(employee.goals)
    goals_met = sum(1 for goal in goals if goal.achieved)
    goals_bonus = sum((goal_bonus(goal, base_salary) for goal in goals), to_money(ZERO))

    return PayoutLine(
        employee_id=str(employee.employee_id),
        employee_name=employee.name,
        role=employee.role,
        base_salary=to_money(base_salary),
        services_commission_pct=commission_pct,
        in_target_pool=in_target_pool,
        churn_bonus_amount=churn_bonus,
        retention_bonus_amount=retention_bonus,
        target_bonus_amount=target_bonus,
        subtotal_salary_bonuses=subtotal,
        service_sales_count=len(employee.service_sale_amounts),
        service_sales_total=sales_total,
        service_commission_amount=commission,
        individual_goals_count=len(goals),
        individual_goals_met=goals_met,
        individual_goals_bonus_amount=goals_bonus,
        total_payable=subtotal + commission + goals_bonus,
    )


def run_closing(config: ClosingConfig, sales: SalesInputs, employees: Iterable[EmployeeInput]) -> ClosingResult:
    """Compute the whole month for the given working set.

    Lines come back ordered by employee name, then id.
    """
    config.validate()
    employees = sorted(employees, key=lambda e: (e.name, str(e.employee_id)))

    ids = [str(e.employee_id) for e in employees]
    if len(set(ids)) != len(ids):
        raise ClosingValidationError("The working set lists an employee twice.", field="employees")

    metrics = compute_period_metrics(
        config.starting_subscriptions,
        config.cancellations,
        sales.recurring_sales,
        config.target_sales_quantity,
    )
    gates = evaluate_gates(metrics, config)
    participants = resolve_participants(config.participants, ids)
    pool = distribute_pool(gates, sales.qualifying_mrr, config.target_bonus_pct, participants)
    lines = tuple(compute_payout(employee, config, gates, pool) for employee in employees)

    return ClosingResult(
        config=config,
        sales=sales,
        metrics=metrics,
        gates=gates,
        pool=pool,
        lines=lines,
    )


# ----------------------------------------------------------------------
# Adjustment ledger arithmetic
# ----------------------------------------------------------------------

ADJUSTMENT_CREDIT = "CREDIT"
ADJUSTMENT_DEBIT = "DEBIT"


@dataclass(frozen=True)
class AdjustmentTotals:
    credits: Decimal
    debits: Decimal

    @property
    def net(self) -> Decimal:
        return self.credits - self.debits


def total_adjustments(adjustments: Iterable) -> AdjustmentTotals:
    """Sum credits and debits of any objects exposing ``kind`` and ``amount``."""
    credits = to_money(ZERO)
    debits = to_money(ZERO)
    for adjustment in adjustments:
        if adjustment.kind == ADJUSTMENT_CREDIT:
            credits += to_money(adjustment.amount)
        elif adjustment.kind == ADJUSTMENT_DEBIT:
            debits += to_money(adjustment.amount)
        else:
            raise ClosingValidationError(f"Unknown adjustment kind: {adjustment.kind!r}.", field="kind")
    return AdjustmentTotals(credits=credits, debits=debits)
