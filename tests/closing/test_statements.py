from datetime import date
from decimal import Decimal
from types import SimpleNamespace

import pytest

from closing.exceptions import MissingPrerequisiteError
from closing.services import add_adjustment, get_statement, recompute_closing
from closing.statements import build_statement, render_statement_text, statement_to_json


def make_closing(**overrides):
    values = dict(
        reference_month=date(2026, 3, 1),
        status="CALCULATED",
        churn_rate=Decimal("4.0000"),
        churn_limit=Decimal("5.0000"),
        churn_bonus_pct=Decimal("3.0000"),
        churn_bonus_unlocked=True,
        cancellation_rate=Decimal("60.0000"),
        cancellation_limit=Decimal("50.0000"),
        retention_bonus_pct=Decimal("3.0000"),
        retention_bonus_unlocked=False,
        target_percent=Decimal("80.0000"),
        target_bonus_pct=Decimal("10.0000"),
        target_bonus_unlocked=False,
        mrr_qualifying_for_bonus=Decimal("9000.00"),
        target_bonus_pool_total=Decimal("0.00"),
        participant_count=3,
        target_bonus_per_participant=Decimal("0.00"),
    )
    values.update(overrides)
    return SimpleNamespace(**values)


def make_line(**overrides):
    values = dict(
        employee_id="emp-1",
        employee_name="Ana Souza",
        role="Support",
        base_salary=Decimal("3000.00"),
        in_target_pool=True,
        churn_bonus_amount=Decimal("90.00"),
        retention_bonus_amount=Decimal("0.00"),
        target_bonus_amount=Decimal("0.00"),
        subtotal_salary_bonuses=Decimal("90.00"),
        service_sales_count=1,
        service_sales_total=Decimal("1234.50"),
        services_commission_pct=Decimal("10.0000"),
        service_commission_amount=Decimal("123.45"),
        individual_goals_count=0,
        individual_goals_met=0,
        individual_goals_bonus_amount=Decimal("0.00"),
        total_payable=Decimal("213.45"),
    )
    values.update(overrides)
    return SimpleNamespace(**values)


class TestBuildStatement:
    def test_breakdown(self):
        statement = build_statement(make_line(), make_closing())

        assert statement["reference_month"] == "2026-03"
        assert statement["employee"]["name"] == "Ana Souza"
        assert [item["unlocked"] for item in statement["indicators"]] == [True, False, False]
        assert statement["indicators"][2]["comparison"] == ">="
        assert statement["team_bonus"]["subtotal"] == Decimal("90.00")
        assert statement["adjustments"]["items"] == []
        assert statement["effective_payable"] == Decimal("213.45")

    def test_only_own_adjustments_count(self):
        adjustments = [
            SimpleNamespace(pk=1, employee_id="emp-1", kind="CREDIT", amount=Decimal("100.00"), description="Overtime"),
            SimpleNamespace(pk=2, employee_id="emp-1", kind="DEBIT", amount=Decimal("13.45"), description="Advance"),
            SimpleNamespace(pk=3, employee_id="emp-2", kind="CREDIT", amount=Decimal("500.00"), description="Other"),
            SimpleNamespace(pk=4, employee_id=None, kind="DEBIT", amount=Decimal("40.00"), description="General"),
        ]
        statement = build_statement(make_line(), make_closing(), adjustments)

        assert len(statement["adjustments"]["items"]) == 2
        assert statement["adjustments"]["net"] == Decimal("86.55")
        assert statement["effective_payable"] == Decimal("300.00")

    def test_text(self):
        text = render_statement_text(build_statement(make_line(), make_closing()))

        assert text.startswith("STATEMENT 2026-03 - Ana Souza (Support)")
        assert "Base salary: R$ 3.000,00" in text
        assert "- Churn: 4.00% (needs < 5.00%) [UNLOCKED]" in text
        assert "- Cancellations: 60.00% (needs < 50.00%) [LOCKED]" in text
        assert "totalling R$ 1.234,50 at 10.00%: R$ 123,45" in text
        assert "TOTAL PAYABLE: R$ 213,45" in text
        assert "EFFECTIVE PAYABLE" not in text
        assert text.endswith("\n")

    def test_itemizes_sales_and_achieved_goals(self):
        sales = [
            SimpleNamespace(
                employee_id="emp-1", sale_date=date(2026, 3, 4), client="Acme",
                description="Setup", amount=Decimal("1234.50"),
            ),
            SimpleNamespace(
                employee_id="emp-2", sale_date=date(2026, 3, 5), client="Globex",
                description="Training", amount=Decimal("900.00"),
            ),
        ]
        goals = [
            SimpleNamespace(employee_id="emp-1", title="NPS above 80", bonus_kind="FLAT",
                            bonus_value=Decimal("200.00"), achieved=True),
            SimpleNamespace(employee_id="emp-1", title="Zero escalations", bonus_kind="PERCENT_OF_SALARY",
                            bonus_value=Decimal("5.00"), achieved=True),
            SimpleNamespace(employee_id="emp-1", title="Certification", bonus_kind="FLAT",
                            bonus_value=Decimal("999.00"), achieved=False),
        ]
        statement = build_statement(make_line(), make_closing(), service_sales=sales, goals=goals)

        assert statement["service_commission"]["items"] == [
            {
                "sale_date": date(2026, 3, 4),
                "client": "Acme",
                "description": "Setup",
                "amount": Decimal("1234.50"),
                "commission": Decimal("123.45"),
            }
        ]
        assert [(item["title"], item["bonus"]) for item in statement["individual_goals"]["items"]] == [
            ("NPS above 80", Decimal("200.00")),
            ("Zero escalations", Decimal("150.00")),
        ]

        text = render_statement_text(statement)
        assert "  * 04/03/2026 Acme - Setup: R$ 1.234,50 -> R$ 123,45" in text
        assert "  * Zero escalations: R$ 150,00" in text
        assert "Globex" not in text
        assert "Certification" not in text

    def test_json_conversion(self):
        data = statement_to_json(build_statement(make_line(), make_closing()))

        assert data["total_payable"] == "213.45"
        assert data["indicators"][0]["value"] == "4.0000"
        assert data["team_bonus"]["target_bonus"]["participant_count"] == 3
        assert data["team_bonus"]["target_bonus"]["in_pool"] is True


@pytest.mark.django_db
class TestGetStatement:
    def test_without_closing(self, sales_period):
        with pytest.raises(MissingPrerequisiteError):
            get_statement("2026-03", "00000000-0000-0000-0000-000000000000")

    def test_employee_without_line(self, month_inputs, employees):
        recompute_closing("2026-03")
        with pytest.raises(MissingPrerequisiteError):
            get_statement("2026-03", employees["eva"].pk)

    def test_includes_adjustments(self, month_inputs, employees):
        closing = recompute_closing("2026-03")
        ana = employees["ana"]
        add_adjustment(closing, ana, "CREDIT", "20", "Weekend shift")
        add_adjustment(closing, None, "DEBIT", "40", "Team lunch")

        statement = get_statement("2026-03", ana.pk)

        assert statement["total_payable"] == Decimal("980.00")
        assert statement["effective_payable"] == Decimal("1000.00")
        assert "+R$ 20,00 Weekend shift" in statement["text"]
        assert "Team lunch" not in statement["text"]
        assert "EFFECTIVE PAYABLE: R$ 1.000,00" in statement["text"]

        stored = closing.lines.get(employee=ana).rendered_statement
        assert "EFFECTIVE PAYABLE" not in stored

    def test_lists_approved_sales_and_met_goals(self, month_inputs, employees):
        recompute_closing("2026-03")

        statement = get_statement("2026-03", employees["ana"].pk)

        sales = statement["service_commission"]["items"]
        assert [(item["client"], item["commission"]) for item in sales] == [
            ("Acme", Decimal("100.00")),
            ("Globex", Decimal("50.00")),
        ]
        assert [item["title"] for item in statement["individual_goals"]["items"]] == [
            "NPS above 80",
            "Zero escalations",
        ]
        assert "Acme - Setup: R$ 1.000,00 -> R$ 100,00" in statement["text"]
        assert "Initech" not in statement["text"]
        assert "Umbrella" not in statement["text"]
        assert "Certification" not in statement["text"]

    def test_stored_statement_is_itemized(self, month_inputs, employees):
        closing = recompute_closing("2026-03")

        stored = closing.lines.get(employee=employees["ana"]).rendered_statement
        assert "Globex - Training: R$ 500,00 -> R$ 50,00" in stored
        assert "  * NPS above 80: R$ 200,00" in stored
