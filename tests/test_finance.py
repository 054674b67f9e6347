from datetime import date

import pytest

from finance import (
    CategoryTotal,
    monthly_equivalent,
    predict_bill,
    savings_rate,
    savings_suggestions,
    total_potential_savings,
    variance_percent,
)
from models import IncomeFrequency
from periods import add_months, resolve_month, trailing_month_key, trailing_month_keys


@pytest.mark.parametrize(
    ("frequency", "expected"),
    [
        (IncomeFrequency.weekly, 1200 * 52 / 12),
        (IncomeFrequency.biweekly, 1200 * 26 / 12),
        (IncomeFrequency.monthly, 1200.0),
        (IncomeFrequency.quarterly, 400.0),
        (IncomeFrequency.annually, 100.0),
        (IncomeFrequency.variable, 1200.0),
        ("biweekly", 1200 * 26 / 12),
    ],
)
def test_monthly_equivalent_uses_fixed_factors(frequency, expected) -> None:
    assert monthly_equivalent(1200, frequency) == pytest.approx(expected)


def test_unknown_frequency_yields_zero() -> None:
    assert monthly_equivalent(1200, "fortnightly") == 0.0
    assert monthly_equivalent(1200, None) == 0.0


def test_category_above_thirty_percent_triggers_high_spending() -> None:
    suggestions = savings_suggestions(
        [CategoryTotal("Housing", 3500.0, 1)], total_income=10000, total_expenses=3500
    )

    high = [item for item in suggestions if item.type == "high_spending"]
    assert len(high) == 1
    assert high[0].category == "Housing"
    assert high[0].potential_savings == pytest.approx(525.0)


def test_category_at_twenty_percent_does_not_trigger_high_spending() -> None:
    suggestions = savings_suggestions(
        [CategoryTotal("Housing", 2000.0, 1)], total_income=10000, total_expenses=2000
    )

    assert [item for item in suggestions if item.type == "high_spending"] == []


def test_savings_shortfall_is_sized_to_the_gap() -> None:
    suggestions = savings_suggestions(
        [CategoryTotal("Misc", 1000.0, 2)], total_income=5000, total_expenses=4500
    )

    goal = [item for item in suggestions if item.type == "savings_goal"]
    assert len(goal) == 1
    assert goal[0].category == "general"
    assert goal[0].potential_savings == pytest.approx(500.0)


def test_many_small_transactions_flag_subscriptions() -> None:
    coffee = CategoryTotal("Coffee", 11 * 4.5, 11)
    suggestions = savings_suggestions([coffee], total_income=5000, total_expenses=49.5)

    assert [item.type for item in suggestions] == ["subscription_check"]
    assert total_potential_savings(suggestions) == pytest.approx(49.5 * 0.2)


def test_no_income_skips_share_rule() -> None:
    suggestions = savings_suggestions(
        [CategoryTotal("Rent", 900.0, 1)], total_income=0, total_expenses=900
    )

    assert "high_spending" not in {item.type for item in suggestions}


def test_variance_percent_guards_zero_target() -> None:
    assert variance_percent(120, 100) == 20.0
    assert variance_percent(80, 0) == 0.0


def test_savings_rate_rounds_and_handles_no_income() -> None:
    assert savings_rate(3000, 2000) == 33.3
    assert savings_rate(0, 100) == 0.0


def test_bill_prediction_trends() -> None:
    rising = predict_bill("Electric", [100, 100, 130, 140])
    assert rising.trend == "increasing"
    assert rising.predicted == pytest.approx((100 + 130 + 140) / 3)

    assert predict_bill("Water", [50, 51, 49, 50]).trend == "stable"
    assert predict_bill("Gas", [90, 90, 60, 60]).trend == "decreasing"

    single = predict_bill("Phone", [45])
    assert single.trend == "insufficient_data"
    assert single.predicted == 45


def test_month_helpers() -> None:
    assert add_months(date(2025, 1, 31), -1) == date(2024, 12, 1)
    assert trailing_month_key(date(2025, 3, 15), 6) == "2024-10"
    assert trailing_month_keys(date(2025, 1, 2), 3) == ["2024-11", "2024-12", "2025-01"]

    period = resolve_month("2024-02")
    assert (period.start, period.end) == (date(2024, 2, 1), date(2024, 2, 29))


@pytest.mark.parametrize("value", ["2025/02", "2025-13", "march"])
def test_resolve_month_rejects_bad_input(value) -> None:
    with pytest.raises(ValueError, match="YYYY-MM"):
        resolve_month(value)
