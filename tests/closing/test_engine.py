from decimal import Decimal

import pytest

from closing import engine
from closing.engine import (
    AllActiveEmployees,
    BonusGates,
    ClosingConfig,
    EmployeeInput,
    ExplicitParticipants,
    GoalInput,
    PeriodMetrics,
    SalesInputs,
    compute_payout,
    compute_period_metrics,
    distribute_pool,
    evaluate_gates,
    resolve_participants,
    run_closing,
    total_adjustments,
)
from closing.exceptions import ClosingValidationError

ALL_OPEN = BonusGates(churn_bonus_unlocked=True, retention_bonus_unlocked=True, target_bonus_unlocked=True)
ALL_LOCKED = BonusGates(churn_bonus_unlocked=False, retention_bonus_unlocked=False, target_bonus_unlocked=False)


def _employee(pk, name, salary, **kwargs):
    return EmployeeInput(employee_id=pk, name=name, base_salary=Decimal(salary), **kwargs)


class TestPeriodMetrics:
    def test_rates(self):
        metrics = compute_period_metrics(200, 8, 120, 100)
        assert metrics.churn_rate == Decimal("4.0000")
        assert metrics.cancellation_rate == Decimal("6.6667")
        assert metrics.percent_of_target == Decimal("120.0000")

    @pytest.mark.parametrize(
        "counters",
        [(0, 0, 0, 0), (0, 5, 0, 0), (0, 5, 10, 0)],
    )
    def test_zero_denominators_give_zero(self, counters):
        starting, cancellations, recurring, target = counters
        metrics = compute_period_metrics(starting, cancellations, recurring, target)
        if starting == 0:
            assert metrics.churn_rate == 0
        if recurring == 0:
            assert metrics.cancellation_rate == 0
        if target == 0:
            assert metrics.percent_of_target == 0
        for value in (metrics.churn_rate, metrics.cancellation_rate, metrics.percent_of_target):
            assert value.is_finite()


class TestBonusGates:
    def test_churn_limit_is_strict(self):
        config = ClosingConfig(churn_limit=Decimal("5"))
        at_limit = PeriodMetrics(Decimal("5.0000"), Decimal("0"), Decimal("0"))
        below = PeriodMetrics(Decimal("4.9999"), Decimal("0"), Decimal("0"))
        assert evaluate_gates(at_limit, config).churn_bonus_unlocked is False
        assert evaluate_gates(below, config).churn_bonus_unlocked is True

    def test_cancellation_limit_is_strict(self):
        config = ClosingConfig(cancellation_limit=Decimal("50"))
        at_limit = PeriodMetrics(Decimal("0"), Decimal("50.0000"), Decimal("0"))
        assert evaluate_gates(at_limit, config).retention_bonus_unlocked is False

    def test_target_is_inclusive(self):
        config = ClosingConfig()
        exactly = PeriodMetrics(Decimal("0"), Decimal("0"), Decimal("100.0000"))
        short = PeriodMetrics(Decimal("0"), Decimal("0"), Decimal("99.9999"))
        assert evaluate_gates(exactly, config).target_bonus_unlocked is True
        assert evaluate_gates(short, config).target_bonus_unlocked is False

    def test_churn_just_below_limit_rounds_up_but_unlocks(self):
        # 5000 / 100001 is 4.99995%, stored as 5.0000.
        metrics = compute_period_metrics(100001, 5000, 10000, 0)
        gates = evaluate_gates(metrics, ClosingConfig(churn_limit=Decimal("5")))
        assert metrics.churn_rate == Decimal("5.0000")
        assert gates.churn_bonus_unlocked is True

    def test_cancellations_just_below_limit_unlock(self):
        metrics = compute_period_metrics(0, 2, 3, 0)
        gates = evaluate_gates(metrics, ClosingConfig(cancellation_limit=Decimal("66.6667")))
        assert metrics.cancellation_rate == Decimal("66.6667")
        assert gates.retention_bonus_unlocked is True

    def test_target_missed_by_one_sale_stays_locked(self):
        metrics = compute_period_metrics(0, 0, 1999999, 2000000)
        gates = evaluate_gates(metrics, ClosingConfig())
        assert metrics.percent_of_target == Decimal("100.0000")
        assert gates.target_bonus_unlocked is False

    def test_gates_are_independent(self):
        config = ClosingConfig(churn_limit=Decimal("5"), cancellation_limit=Decimal("50"))
        metrics = PeriodMetrics(Decimal("12"), Decimal("10"), Decimal("80"))
        gates = evaluate_gates(metrics, config)
        assert gates == BonusGates(
            churn_bonus_unlocked=False,
            retention_bonus_unlocked=True,
            target_bonus_unlocked=False,
        )


class TestPoolDistribution:
    def test_all_active_uses_working_set(self):
        assert resolve_participants(AllActiveEmployees(), ["a", "b"]) == frozenset({"a", "b"})

    def test_explicit_list_is_filtered_to_working_set(self):
        selection = ExplicitParticipants(frozenset({"a", "c", "gone"}))
        assert resolve_participants(selection, ["a", "b", "c"]) == frozenset({"a", "c"})

    def test_equal_split(self):
        pool = distribute_pool(ALL_OPEN, Decimal("9000"), Decimal("10"), frozenset({"a", "b", "c"}))
        assert pool.pool_total == Decimal("900.00")
        assert pool.participant_count == 3
        assert pool.per_participant == Decimal("300.00")

    def test_rounded_share_stays_within_half_a_cent_per_participant(self):
        pool = distribute_pool(ALL_OPEN, Decimal("1000"), Decimal("10"), frozenset({"a", "b", "c"}))
        assert pool.per_participant == Decimal("33.33")
        assert abs(pool.per_participant * 3 - pool.pool_total) <= Decimal("0.005") * 3

    def test_no_participants_means_zero_share(self):
        pool = distribute_pool(ALL_OPEN, Decimal("9000"), Decimal("10"), frozenset())
        assert pool.pool_total == Decimal("900.00")
        assert pool.per_participant == Decimal("0.00")

    def test_locked_target_empties_the_pool(self):
        pool = distribute_pool(ALL_LOCKED, Decimal("9000"), Decimal("10"), frozenset({"a"}))
        assert pool.pool_total == Decimal("0.00")
        assert pool.per_participant == Decimal("0.00")


class TestPayout:
    def _pool(self, *ids, share="300.00"):
        return engine.PoolDistribution(
            participant_ids=frozenset(ids),
            pool_total=Decimal(share) * len(ids),
            per_participant=Decimal(share),
        )

    def test_churn_bonus_scenario(self):
        line = compute_payout(
            _employee("e1", "Ana", "3000"),
            ClosingConfig(churn_bonus_pct=Decimal("3")),
            ALL_OPEN,
            self._pool("e1"),
        )
        assert line.churn_bonus_amount == Decimal("90.00")

    def test_locked_gates_zero_salary_bonuses(self):
        line = compute_payout(_employee("e1", "Ana", "3000"), ClosingConfig(), ALL_LOCKED, self._pool("e1"))
        assert line.churn_bonus_amount == 0
        assert line.retention_bonus_amount == 0
        # The share comes from the pool; a locked target already yields a zero pool.
        assert line.target_bonus_amount == Decimal("300.00")

    def test_outsider_gets_no_target_bonus(self):
        line = compute_payout(_employee("e9", "Outsider", "3000"), ClosingConfig(), ALL_OPEN, self._pool("e1", "e2"))
        assert line.in_target_pool is False
        assert line.target_bonus_amount == Decimal("0.00")

    def test_service_commission_falls_back_to_default(self):
        employee = _employee("e1", "Ana", "3000", service_sale_amounts=(Decimal("1000"), Decimal("500")))
        line = compute_payout(employee, ClosingConfig(), ALL_LOCKED, self._pool())
        assert line.service_sales_count == 2
        assert line.service_sales_total == Decimal("1500.00")
        assert line.services_commission_pct == Decimal("10")
        assert line.service_commission_amount == Decimal("150.00")

    def test_zero_commission_is_not_replaced_by_fallback(self):
        employee = _employee(
            "e1", "Ana", "3000",
            services_commission_pct=Decimal("0"),
            service_sale_amounts=(Decimal("1000"),),
        )
        line = compute_payout(employee, ClosingConfig(), ALL_LOCKED, self._pool())
        assert line.service_commission_amount == Decimal("0.00")

    def test_individual_goals(self):
        goals = (
            GoalInput("Flat", Decimal("200"), engine.GOAL_FLAT, achieved=True),
            GoalInput("Percent", Decimal("5"), engine.GOAL_PERCENT_OF_SALARY, achieved=True),
            GoalInput("Missed", Decimal("999"), engine.GOAL_FLAT, achieved=False),
        )
        line = compute_payout(_employee("e1", "Ana", "3000", goals=goals), ClosingConfig(), ALL_LOCKED, self._pool())
        assert line.individual_goals_count == 3
        assert line.individual_goals_met == 2
        assert line.individual_goals_bonus_amount == Decimal("350.00")

    def test_total_payable_sums_components(self):
        employee = _employee(
            "e1", "Ana", "3000",
            service_sale_amounts=(Decimal("1500"),),
            goals=(GoalInput("Flat", Decimal("200"), engine.GOAL_FLAT, achieved=True),),
        )
        line = compute_payout(employee, ClosingConfig(), ALL_OPEN, self._pool("e1"))
        assert line.subtotal_salary_bonuses == Decimal("480.00")
        assert line.total_payable == Decimal("480.00") + Decimal("150.00") + Decimal("200.00")

    def test_unknown_goal_kind_is_rejected(self):
        employee = _employee("e1", "Ana", "3000", goals=(GoalInput("Odd", Decimal("1"), "BOGUS", achieved=True),))
        with pytest.raises(ClosingValidationError):
            compute_payout(employee, ClosingConfig(), ALL_LOCKED, self._pool())


class TestRunClosing:
    def _config(self, **overrides):
        values = dict(
            starting_subscriptions=200,
            cancellations=8,
            target_sales_quantity=100,
            participants=ExplicitParticipants(frozenset({"a", "b", "c"})),
        )
        values.update(overrides)
        return ClosingConfig(**values)

    def _employees(self):
        return [
            _employee("d", "Diego", "2500"),
            _employee("b", "Bruno", "2000"),
            _employee("a", "Ana", "3000"),
            _employee("c", "Carla", "4000"),
        ]

    def test_target_pool_scenario(self):
        result = run_closing(
            self._config(),
            SalesInputs(recurring_sales=120, qualifying_mrr=Decimal("9000")),
            self._employees(),
        )
        assert result.metrics.percent_of_target == Decimal("120.0000")
        assert result.gates.target_bonus_unlocked is True
        assert result.pool.pool_total == Decimal("900.00")
        assert result.pool.per_participant == Decimal("300.00")
        by_name = {line.employee_name: line for line in result.lines}
        assert by_name["Ana"].target_bonus_amount == Decimal("300.00")
        assert by_name["Diego"].target_bonus_amount == Decimal("0.00")

    def test_lines_ordered_by_name(self):
        result = run_closing(self._config(), SalesInputs(recurring_sales=120), self._employees())
        assert [line.employee_name for line in result.lines] == ["Ana", "Bruno", "Carla", "Diego"]

    def test_same_inputs_same_result(self):
        sales = SalesInputs(recurring_sales=120, qualifying_mrr=Decimal("9000"))
        first = run_closing(self._config(), sales, self._employees())
        second = run_closing(self._config(), sales, list(reversed(self._employees())))
        assert first.lines == second.lines

    def test_duplicate_employee_is_rejected(self):
        employees = self._employees() + [_employee("a", "Ana again", "1")]
        with pytest.raises(ClosingValidationError):
            run_closing(self._config(), SalesInputs(), employees)

    def test_negative_threshold_is_rejected(self):
        with pytest.raises(ClosingValidationError) as excinfo:
            run_closing(self._config(churn_limit=Decimal("-1")), SalesInputs(), self._employees())
        assert excinfo.value.field == "churn_limit"
        assert isinstance(excinfo.value, ValueError)

    def test_negative_counter_is_rejected(self):
        with pytest.raises(ClosingValidationError):
            self._config(cancellations=-3).validate()


class TestAdjustmentTotals:
    class _Adjustment:
        def __init__(self, kind, amount):
            self.kind = kind
            self.amount = Decimal(amount)

    def test_credit_and_debit(self):
        totals = total_adjustments([self._Adjustment("CREDIT", "150"), self._Adjustment("DEBIT", "50")])
        assert totals.credits == Decimal("150.00")
        assert totals.debits == Decimal("50.00")
        assert totals.net == Decimal("100.00")

    def test_empty_ledger(self):
        assert total_adjustments([]).net == Decimal("0.00")

    def test_unknown_kind(self):
        with pytest.raises(ClosingValidationError):
            total_adjustments([self._Adjustment("BONUS", "10")])
