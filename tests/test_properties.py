from datetime import date

import pytest
from sqlalchemy import create_engine, func, select
from sqlalchemy.orm import Session

from database import Base
from models import (
    LoanType,
    OpportunityStatus,
    PropertyExpenseType,
    PropertyLoan,
    PropertyTenant,
    RentalIncome,
    RiskLevel,
)
from schemas import (
    OpportunityIn,
    PropertyExpenseIn,
    PropertyIn,
    PropertyLoanIn,
    PropertyTenantIn,
    RentalIncomeIn,
)
from services import OpportunityService, PropertyService


def _session() -> Session:
    engine = create_engine("sqlite:///:memory:")
    Base.metadata.create_all(engine)
    return Session(engine)


def _loan(balance: float = 180000, active: bool = True) -> PropertyLoanIn:
    return PropertyLoanIn(
        lender_name="First Bank",
        loan_type=LoanType.conventional,
        original_amount=200000,
        current_balance=balance,
        interest_rate=6.5,
        monthly_payment=1264,
        start_date=date(2023, 5, 1),
        is_active=active,
    )


def _tenant(name: str, active: bool = True) -> PropertyTenantIn:
    return PropertyTenantIn(
        tenant_name=name,
        monthly_rent=1800,
        lease_start_date=date(2024, 8, 1),
        is_active=active,
    )


def test_nested_records_require_owned_parent() -> None:
    with _session() as session:
        prop = PropertyService(session, 1).create(
            PropertyIn(property_name="Duplex", address="12 Elm St")
        )
        stranger = PropertyService(session, 2)

        with pytest.raises(ValueError, match="Property not found"):
            stranger.add_loan(prop.id, _loan())
        with pytest.raises(ValueError, match="Property not found"):
            stranger.tenants(prop.id)
        assert session.scalar(select(func.count()).select_from(PropertyLoan)) == 0


def test_rental_income_month_defaults_to_payment_date() -> None:
    with _session() as session:
        service = PropertyService(session, 1)
        prop = service.create(PropertyIn(property_name="Condo", address="3 Bay Rd"))

        derived = service.add_rental_income(
            prop.id, RentalIncomeIn(amount=1800, payment_date=date(2025, 4, 2))
        )
        explicit = service.add_rental_income(
            prop.id,
            RentalIncomeIn(amount=1800, payment_date=date(2025, 4, 30), month_year="2025-05"),
        )

        assert derived.month_year == "2025-04"
        assert explicit.month_year == "2025-05"


def test_detail_and_summary_roll_up_children() -> None:
    with _session() as session:
        service = PropertyService(session, 1)
        prop = service.create(PropertyIn(property_name="Duplex", address="12 Elm St"))
        service.add_loan(prop.id, _loan(180000))
        service.add_loan(prop.id, _loan(5000, active=False))
        service.add_tenant(prop.id, _tenant("Former", active=False))
        service.add_tenant(prop.id, _tenant("Current"))
        service.add_rental_income(
            prop.id, RentalIncomeIn(amount=1800, payment_date=date(2025, 4, 1))
        )
        service.add_expense(
            prop.id,
            PropertyExpenseIn(
                expense_type=PropertyExpenseType.repair,
                amount=350,
                expense_date=date(2025, 4, 9),
            ),
        )

        detail = service.detail(prop.id)
        summary = service.summary(prop.id)

        assert detail["property_name"] == "Duplex"
        assert len(detail["loans"]) == 2
        assert detail["active_tenant"]["tenant_name"] == "Current"
        assert len(detail["rental_income"]) == 1
        assert detail["expenses"][0]["expense_type"] == "repair"
        assert summary == {
            "property_id": prop.id,
            "total_income": 1800.0,
            "total_expenses": 350.0,
            "net_cash_flow": 1450.0,
            "active_loan_balance": 180000.0,
        }


def test_child_updates_check_parent_and_child() -> None:
    with _session() as session:
        service = PropertyService(session, 1)
        first = service.create(PropertyIn(property_name="A", address="1 A St"))
        second = service.create(PropertyIn(property_name="B", address="2 B St"))
        loan = service.add_loan(first.id, _loan())
        tenant = service.add_tenant(first.id, _tenant("Pat"))

        updated = service.update_loan(first.id, loan.id, _loan(170000))
        assert updated.current_balance == 170000

        with pytest.raises(ValueError, match="Loan not found"):
            service.update_loan(second.id, loan.id, _loan(1))
        with pytest.raises(ValueError, match="Tenant not found"):
            service.update_tenant(second.id, tenant.id, _tenant("Pat"))


def test_deleting_property_removes_children() -> None:
    with _session() as session:
        service = PropertyService(session, 1)
        prop = service.create(PropertyIn(property_name="Lot", address="9 Hill Rd"))
        service.add_loan(prop.id, _loan())
        service.add_tenant(prop.id, _tenant("Sam"))
        service.add_rental_income(
            prop.id, RentalIncomeIn(amount=900, payment_date=date(2025, 1, 3))
        )

        service.delete(prop.id)

        for model in (PropertyLoan, PropertyTenant, RentalIncome):
            assert session.scalar(select(func.count()).select_from(model)) == 0


def test_opportunity_filters_and_analytics() -> None:
    with _session() as session:
        service = OpportunityService(session, 1)
        service.create(
            OpportunityIn(
                name="REIT",
                type="real_estate",
                initial_investment=5000,
                expected_return=6,
                risk_level=RiskLevel.low,
            )
        )
        service.create(
            OpportunityIn(
                name="Startup",
                type="equity",
                initial_investment=2000,
                expected_return=20,
                risk_level=RiskLevel.high,
                status=OpportunityStatus.invested,
            )
        )
        service.create(
            OpportunityIn(
                name="Bonds",
                type="fixed_income",
                initial_investment=1000,
                expected_return=4,
                risk_level=RiskLevel.low,
            )
        )

        pending = service.list(status=OpportunityStatus.pending)
        assert {row.name for row in pending} == {"REIT", "Bonds"}
        assert [row.name for row in service.list(risk_level=RiskLevel.high)] == ["Startup"]

        analytics = service.analytics()
        by_status = {row["status"]: row for row in analytics["by_status"]}
        assert by_status["pending"]["count"] == 2
        assert by_status["pending"]["total_investment"] == pytest.approx(6000)
        assert by_status["pending"]["avg_return"] == pytest.approx(5)
        by_risk = {row["risk_level"]: row for row in analytics["by_risk"]}
        assert by_risk["low"]["count"] == 2
        assert by_risk["high"]["avg_return"] == pytest.approx(20)
