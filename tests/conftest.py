from datetime import date
from decimal import Decimal

import pytest
from django.contrib.auth import get_user_model
from django.core.cache import cache
from rest_framework.test import APIClient

from hrm.models import Employee
from objectives.models import IndividualGoal, MonthlyTarget
from sales.models import SalesPeriod, ServiceSale

User = get_user_model()

MARCH = date(2026, 3, 1)


@pytest.fixture(autouse=True)
def clear_cache():
    cache.clear()
    yield
    cache.clear()


@pytest.fixture
def staff_user(db):
    return User.objects.create_user(
        username="manager",
        password="testpass123",
        first_name="Team",
        last_name="Manager",
        is_staff=True,
    )


@pytest.fixture
def regular_user(db):
    return User.objects.create_user(username="operator", password="testpass123")


@pytest.fixture
def api_client(staff_user):
    client = APIClient()
    client.force_authenticate(user=staff_user)
    return client


@pytest.fixture
def reference_month():
    return MARCH


@pytest.fixture
def sales_period(db):
    return SalesPeriod.objects.create(
        reference_month=MARCH,
        total_mrr=Decimal("15000.00"),
        qualifying_mrr=Decimal("9000.00"),
        total_recurring_sales=120,
    )


@pytest.fixture
def employees(db):
    """Four employees in the closing, plus one inactive and one opted out."""
    return {
        "ana": Employee.objects.create(name="Ana Souza", role="Support", base_salary=Decimal("3000.00")),
        "bruno": Employee.objects.create(
            name="Bruno Lima",
            role="Onboarding",
            base_salary=Decimal("2000.00"),
            services_commission_pct=Decimal("15"),
        ),
        "carla": Employee.objects.create(
            name="Carla Dias",
            role="Support",
            base_salary=Decimal("4000.00"),
            services_commission_pct=Decimal("5"),
        ),
        "diego": Employee.objects.create(name="Diego Alves", role="Finance", base_salary=Decimal("2500.00")),
        "eva": Employee.objects.create(name="Eva Rocha", base_salary=Decimal("5000.00"), is_active=False),
        "fabio": Employee.objects.create(
            name="Fabio Melo",
            base_salary=Decimal("5000.00"),
            participates_in_team_closing=False,
        ),
    }


@pytest.fixture
def monthly_target(db, employees):
    """200 subscriptions, 8 cancellations, target 100 sales; pool shared by Ana, Bruno and Carla."""
    target = MonthlyTarget.objects.create(
        reference_month=MARCH,
        starting_subscriptions=200,
        cancellations_count=8,
        target_sales_quantity=100,
        churn_limit=Decimal("5"),
        cancellation_limit=Decimal("50"),
        churn_bonus_pct=Decimal("3"),
        retention_bonus_pct=Decimal("3"),
        target_bonus_pct=Decimal("10"),
        participant_mode=MonthlyTarget.ParticipantMode.EXPLICIT,
    )
    target.participants.set([employees["ana"], employees["bruno"], employees["carla"]])
    return target


@pytest.fixture
def service_sales(db, employees):
    ana, bruno = employees["ana"], employees["bruno"]
    approved = ServiceSale.Status.APPROVED
    return [
        ServiceSale.objects.create(
            employee=ana, reference_month=MARCH, sale_date=date(2026, 3, 4),
            client="Acme", description="Setup", amount=Decimal("1000.00"), status=approved,
        ),
        ServiceSale.objects.create(
            employee=ana, reference_month=MARCH, sale_date=date(2026, 3, 18),
            client="Globex", description="Training", amount=Decimal("500.00"), status=approved,
        ),
        ServiceSale.objects.create(
            employee=ana, reference_month=MARCH, sale_date=date(2026, 3, 20),
            client="Initech", description="Migration", amount=Decimal("700.00"),
        ),
        ServiceSale.objects.create(
            employee=ana, reference_month=MARCH, sale_date=date(2026, 3, 21),
            client="Umbrella", description="Audit", amount=Decimal("900.00"),
            status=ServiceSale.Status.REJECTED,
        ),
        ServiceSale.objects.create(
            employee=bruno, reference_month=MARCH, sale_date=date(2026, 3, 10),
            client="Hooli", description="Integration", amount=Decimal("2000.00"), status=approved,
        ),
        ServiceSale.objects.create(
            employee=bruno, reference_month=date(2026, 2, 1), sale_date=date(2026, 2, 27),
            client="Hooli", description="Previous month", amount=Decimal("4000.00"), status=approved,
        ),
    ]


@pytest.fixture
def individual_goals(db, employees):
    ana = employees["ana"]
    return [
        IndividualGoal.objects.create(
            employee=ana, reference_month=MARCH, title="NPS above 80",
            bonus_value=Decimal("200.00"), bonus_kind=IndividualGoal.BonusKind.FLAT, achieved=True,
        ),
        IndividualGoal.objects.create(
            employee=ana, reference_month=MARCH, title="Zero escalations",
            bonus_value=Decimal("5.00"), bonus_kind=IndividualGoal.BonusKind.PERCENT_OF_SALARY, achieved=True,
        ),
        IndividualGoal.objects.create(
            employee=ana, reference_month=MARCH, title="Certification",
            bonus_value=Decimal("999.00"), bonus_kind=IndividualGoal.BonusKind.FLAT, achieved=False,
        ),
    ]


@pytest.fixture
def month_inputs(sales_period, monthly_target, service_sales, individual_goals):
    """Everything a full March closing needs."""
    return sales_period
