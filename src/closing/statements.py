"""Per-employee closing statements.

``build_statement`` turns a stored closing line into a structured breakdown
and ``render_statement_text`` turns that breakdown into plain text. Neither
touches the database beyond the objects handed in.
"""
from __future__ import annotations

from decimal import Decimal
from typing import Any, Iterable

from django.template.loader import render_to_string

from closing.engine import HUNDRED, goal_bonus, to_money, total_adjustments
from core.periods import period_label

STATEMENT_TEMPLATE = "closing/statement.txt"


def _own(line, items: Iterable) -> list:
    return [item for item in items if item.employee_id is not None and str(item.employee_id) == str(line.employee_id)]


def _sale_items(line, service_sales: Iterable) -> list:
    pct = Decimal(line.services_commission_pct)
    return [
        {
            "sale_date": sale.sale_date,
            "client": sale.client,
            "description": sale.description,
            "amount": sale.amount,
            "commission": to_money(Decimal(sale.amount) * pct / HUNDRED),
        }
        for sale in _own(line, service_sales)
    ]


def _goal_items(line, goals: Iterable) -> list:
    return [
        {
            "title": goal.title,
            "kind": str(goal.bonus_kind),
            "value": goal.bonus_value,
            "bonus": goal_bonus(goal, line.base_salary),
        }
        for goal in _own(line, goals)
        if goal.achieved
    ]


def build_statement(
    line,
    closing,
    adjustments: Iterable = (),
    service_sales: Iterable = (),
    goals: Iterable = (),
) -> dict[str, Any]:
    """Structured breakdown of one employee's payout.

    ``service_sales`` (approved sales) and ``goals`` itemize the commission and
    the achieved goals. Only rows of ``line``'s employee are taken into
    account; general adjustments never reach an individual statement.
    """
    own = _own(line, adjustments)
    totals = total_adjustments(own)

    return {
        "reference_month": period_label(closing.reference_month),
        "status": closing.status,
        "employee": {
            "id": str(line.employee_id),
            "name": line.employee_name,
            "role": line.role,
            "base_salary": line.base_salary,
        },
        "indicators": [
            {
                "key": "churn",
                "label": "Churn",
                "value": closing.churn_rate,
                "limit": closing.churn_limit,
                "comparison": "<",
                "unlocked": closing.churn_bonus_unlocked,
            },
            {
                "key": "cancellation",
                "label": "Cancellations",
                "value": closing.cancellation_rate,
                "limit": closing.cancellation_limit,
                "comparison": "<",
                "unlocked": closing.retention_bonus_unlocked,
            },
            {
                "key": "target",
                "label": "Sales target",
                "value": closing.target_percent,
                "limit": HUNDRED,
                "comparison": ">=",
                "unlocked": closing.target_bonus_unlocked,
            },
        ],
        "team_bonus": {
            "churn_bonus": {
                "pct": closing.churn_bonus_pct,
                "unlocked": closing.churn_bonus_unlocked,
                "amount": line.churn_bonus_amount,
            },
            "retention_bonus": {
                "pct": closing.retention_bonus_pct,
                "unlocked": closing.retention_bonus_unlocked,
                "amount": line.retention_bonus_amount,
            },
            "target_bonus": {
                "pct": closing.target_bonus_pct,
                "unlocked": closing.target_bonus_unlocked,
                "mrr_qualifying_for_bonus": closing.mrr_qualifying_for_bonus,
                "pool_total": closing.target_bonus_pool_total,
                "participant_count": closing.participant_count,
                "per_participant": closing.target_bonus_per_participant,
                "in_pool": line.in_target_pool,
                "amount": line.target_bonus_amount,
            },
            "subtotal": line.subtotal_salary_bonuses,
        },
        "service_commission": {
            "sales_count": line.service_sales_count,
            "sales_total": line.service_sales_total,
            "commission_pct": line.services_commission_pct,
            "amount": line.service_commission_amount,
            "items": _sale_items(line, service_sales),
        },
        "individual_goals": {
            "count": line.individual_goals_count,
            "met": line.individual_goals_met,
            "amount": line.individual_goals_bonus_amount,
            "items": _goal_items(line, goals),
        },
        "adjustments": {
            "items": [
                {
                    "id": str(adj.pk) if getattr(adj, "pk", None) else None,
                    "kind": str(adj.kind),
                    "amount": adj.amount,
                    "description": adj.description,
                }
                for adj in own
            ],
            "credits": totals.credits,
            "debits": totals.debits,
            "net": totals.net,
        },
        "total_payable": line.total_payable,
        "effective_payable": line.total_payable + totals.net,
    }


def render_statement_text(statement: dict[str, Any]) -> str:
    return render_to_string(STATEMENT_TEMPLATE, {"statement": statement}).strip() + "\n"


def statement_to_json(value):
    """Decimals become strings so amounts survive JSON untouched."""
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, dict):
        return {key: statement_to_json(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [statement_to_json(item) for item in value]
    return value
