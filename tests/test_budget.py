from datetime import date

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import Session

from database import Base
from models import TransactionType
from periods import resolve_month
from schemas import BudgetGoalIn, TransactionIn
from services import BudgetService, TransactionService


def _session() -> Session:
    engine = create_engine("sqlite:///:memory:")
    Base.metadata.create_all(engine)
    return Session(engine)


def _txn(service, kind, amount, category, when) -> None:
    service.create(
        TransactionIn(type=kind, amount=amount, category=category, date=when)
    )


def test_overview_totals_the_selected_month() -> None:
    with _session() as session:
        txns = TransactionService(session, 1)
        _txn(txns, TransactionType.income, 4000, "Salary", date(2025, 3, 1))
        _txn(txns, TransactionType.expense, 1200, "Rent", date(2025, 3, 2))
        _txn(txns, TransactionType.expense, 300, "Food", date(2025, 3, 20))
        _txn(txns, TransactionType.expense, 999, "Food", date(2025, 2, 28))

        overview = BudgetService(session, 1).overview(resolve_month("2025-03"))

        assert overview["income"] == pytest.approx(4000)
        assert overview["expenses"] == pytest.approx(1500)
        assert overview["balance"] == pytest.approx(2500)
        assert [row["category"] for row in overview["category_breakdown"]] == ["Rent", "Food"]


def test_analysis_flags_high_spending_category() -> None:
    with _session() as session:
        txns = TransactionService(session, 1)
        _txn(txns, TransactionType.income, 10000, "Salary", date(2025, 3, 1))
        _txn(txns, TransactionType.expense, 3500, "Housing", date(2025, 3, 3))

        analysis = BudgetService(session, 1).analysis(resolve_month("2025-03"))

        assert analysis["savings_rate"] == 65.0
        assert [row["type"] for row in analysis["suggestions"]] == ["high_spending"]
        assert analysis["total_potential_savings"] == pytest.approx(525)
        assert analysis["expenses"][0]["transaction_count"] == 1


def test_goal_upsert_keeps_one_row_per_category() -> None:
    with _session() as session:
        budget = BudgetService(session, 1)
        first = budget.upsert_goal(BudgetGoalIn(category="Food", monthly_limit=300))
        second = budget.upsert_goal(BudgetGoalIn(category="Food", monthly_limit=450))

        goals = budget.list_goals()
        assert first.id == second.id
        assert [(goal.category, goal.monthly_limit) for goal in goals] == [("Food", 450)]

        budget.delete_goal(first.id)
        assert budget.list_goals() == []
        with pytest.raises(ValueError, match="Budget goal not found"):
            budget.delete_goal(first.id)


def test_variance_compares_spend_with_limits() -> None:
    with _session() as session:
        txns = TransactionService(session, 1)
        _txn(txns, TransactionType.expense, 300, "Food", date(2025, 3, 5))
        _txn(txns, TransactionType.expense, 200, "Food", date(2025, 3, 6))
        budget = BudgetService(session, 1)
        budget.upsert_goal(BudgetGoalIn(category="Food", monthly_limit=400))
        budget.upsert_goal(BudgetGoalIn(category="Travel", monthly_limit=100))

        report = budget.variance(resolve_month("2025-03"))

        food, travel = report["goals"]
        assert food["actual"] == pytest.approx(500)
        assert food["variance"] == pytest.approx(100)
        assert food["variance_percent"] == 25.0
        assert food["over_budget"] is True
        assert travel["actual"] == 0.0
        assert travel["variance_percent"] == -100.0
        assert report["total_variance"] == pytest.approx(0)


def test_trends_zero_fill_missing_months() -> None:
    with _session() as session:
        txns = TransactionService(session, 1)
        _txn(txns, TransactionType.income, 1000, "Salary", date(2025, 1, 5))
        _txn(txns, TransactionType.expense, 200, "Food", date(2025, 3, 2))
        _txn(txns, TransactionType.expense, 999, "Food", date(2024, 12, 31))

        trends = BudgetService(session, 1).trends(3, today=date(2025, 3, 15))

        assert trends == [
            {"month": "2025-01", "income": 1000.0, "expenses": 0.0, "net": 1000.0},
            {"month": "2025-02", "income": 0.0, "expenses": 0.0, "net": 0.0},
            {"month": "2025-03", "income": 0.0, "expenses": 200.0, "net": -200.0},
        ]


def test_transaction_filters_and_order() -> None:
    with _session() as session:
        txns = TransactionService(session, 1)
        _txn(txns, TransactionType.expense, 10, "Food", date(2025, 3, 1))
        _txn(txns, TransactionType.expense, 20, "Fuel", date(2025, 3, 9))
        _txn(txns, TransactionType.income, 30, "Salary", date(2025, 3, 5))
        _txn(TransactionService(session, 2), TransactionType.expense, 40, "Food", date(2025, 3, 7))

        assert [row.amount for row in txns.list()] == [20, 30, 10]
        assert [row.amount for row in txns.list(type=TransactionType.expense)] == [20, 10]
        assert [row.amount for row in txns.list(category="Food")] == [10]
        assert [
            row.amount
            for row in txns.list(start=date(2025, 3, 2), end=date(2025, 3, 8))
        ] == [30]
