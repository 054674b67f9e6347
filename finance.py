"""Pure aggregation helpers shared by the budget, income, wealth and AI views.

Nothing here touches the database: callers pass in rows or totals they have
already queried and receive derived figures back.
"""

from dataclasses import asdict, dataclass
from enum import Enum
from typing import Iterable, Mapping, Sequence, Union


HIGH_SPENDING_SHARE = 0.30
HIGH_SPENDING_CUT = 0.15
SUBSCRIPTION_MIN_COUNT = 10
SUBSCRIPTION_MAX_AVERAGE = 50.0
SUBSCRIPTION_CUT = 0.20
SAVINGS_TARGET_RATE = 0.20
TREND_BAND = 0.10

_MONTHLY_FACTORS: dict[str, float] = {
    "weekly": 52 / 12,
    "biweekly": 26 / 12,
    "monthly": 1.0,
    "quarterly": 1 / 3,
    "annually": 1 / 12,
    "variable": 1.0,
}


@dataclass(frozen=True)
class CategoryTotal:
    category: str
    total: float
    count: int

    @property
    def average(self) -> float:
        return self.total / self.count if self.count else 0.0

    def to_dict(self) -> dict[str, object]:
        return {
            "category": self.category,
            "total": self.total,
            "transaction_count": self.count,
            "avg_transaction": self.average,
        }


@dataclass(frozen=True)
class Suggestion:
    type: str
    category: str
    message: str
    potential_savings: float

    def to_dict(self) -> dict[str, object]:
        return asdict(self)


@dataclass(frozen=True)
class BillPrediction:
    bill_name: str
    amounts: tuple[float, ...]
    predicted: float
    trend: str

    def to_dict(self) -> dict[str, object]:
        return {
            "bill_name": self.bill_name,
            "amounts": list(self.amounts),
            "predicted": self.predicted,
            "trend": self.trend,
        }


def monthly_equivalent(amount: float, frequency: Union[str, Enum, None]) -> float:
    if isinstance(frequency, Enum):
        frequency = frequency.value
    factor = _MONTHLY_FACTORS.get(frequency or "")
    if factor is None:
        return 0.0
    return amount * factor


def total_monthly(sources: Iterable[tuple[float, Union[str, Enum]]]) -> float:
    return sum(monthly_equivalent(amount, frequency) for amount, frequency in sources)


def savings_rate(income: float, expenses: float) -> float:
    if income <= 0:
        return 0.0
    return round((income - expenses) / income * 100, 1)


def variance(actual: float, target: float) -> float:
    return actual - target


def variance_percent(actual: float, target: float) -> float:
    # zero targets report 0% instead of dividing
    if not target:
        return 0.0
    return round((actual - target) / target * 100, 1)


def net_worth(total_assets: float, total_liabilities: float) -> float:
    return total_assets - total_liabilities


def savings_suggestions(
    categories: Sequence[CategoryTotal], total_income: float, total_expenses: float
) -> list[Suggestion]:
    """Apply the fixed threshold rules to one month of expense totals.

    The rules are independent, so a single category may trigger both the
    high-spending and the subscription check.
    """
    suggestions: list[Suggestion] = []

    if total_income > 0:
        for item in categories:
            share = item.total / total_income
            if share > HIGH_SPENDING_SHARE:
                suggestions.append(
                    Suggestion(
                        type="high_spending",
                        category=item.category,
                        message=(
                            f"{item.category} spending is {share * 100:.1f}% of your "
                            "income. Consider reducing by 10-15%."
                        ),
                        potential_savings=item.total * HIGH_SPENDING_CUT,
                    )
                )

    for item in categories:
        if item.count > SUBSCRIPTION_MIN_COUNT and item.average < SUBSCRIPTION_MAX_AVERAGE:
            suggestions.append(
                Suggestion(
                    type="subscription_check",
                    category=item.category,
                    message=(
                        f"You have {item.count} small transactions in {item.category}. "
                        "Review for unused subscriptions."
                    ),
                    potential_savings=item.total * SUBSCRIPTION_CUT,
                )
            )

    recommended = total_income * SAVINGS_TARGET_RATE
    actual = total_income - total_expenses
    if actual < recommended:
        suggestions.append(
            Suggestion(
                type="savings_goal",
                category="general",
                message=(
                    f"Aim to save 20% of income (${recommended:.2f}). "
                    f"Currently saving ${actual:.2f}."
                ),
                potential_savings=recommended - actual,
            )
        )
    return suggestions


def total_potential_savings(suggestions: Iterable[Suggestion]) -> float:
    return sum(item.potential_savings for item in suggestions)


def _mean(values: Sequence[float]) -> float:
    return sum(values) / len(values) if values else 0.0


def predict_bill(bill_name: str, amounts: Sequence[float]) -> BillPrediction:
    """``amounts`` must be ordered oldest first."""
    history = tuple(amounts)
    if len(history) < 2:
        return BillPrediction(
            bill_name, history, history[0] if history else 0.0, "insufficient_data"
        )

    predicted = _mean(history[-3:])
    half = len(history) // 2
    old_avg = _mean(history[:half])
    new_avg = _mean(history[half:])
    if new_avg > old_avg * (1 + TREND_BAND):
        trend = "increasing"
    elif new_avg < old_avg * (1 - TREND_BAND):
        trend = "decreasing"
    else:
        trend = "stable"
    return BillPrediction(bill_name, history, predicted, trend)


def predict_bill_amounts(
    amounts_by_bill: Mapping[str, Sequence[float]],
) -> list[BillPrediction]:
    return [predict_bill(name, amounts) for name, amounts in amounts_by_bill.items()]

