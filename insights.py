"""Rule-based insights, wealth-growth suggestions and chat intent matching."""

import re
from typing import Optional, Sequence

from rapidfuzz.distance import Levenshtein

from finance import BillPrediction, CategoryTotal, SAVINGS_TARGET_RATE


EXPENSE_SHARE_OF_INCOME = 0.7


def _insight(
    type_: str,
    category: str,
    title: str,
    message: str,
    recommendation: str,
    impact: str,
) -> dict[str, object]:
    return {
        "type": type_,
        "category": category,
        "title": title,
        "message": message,
        "recommendation": recommendation,
        "impact": impact,
    }


def generate_insights(
    *,
    expense_categories: Sequence[CategoryTotal],
    bill_predictions: Sequence[BillPrediction],
    monthly_income: float,
    income_source_count: int,
    recent_expenses: float,
    net_worth_history: Sequence[float],
    liquid_assets: float,
) -> list[dict[str, object]]:
    """Build the insight list shown on the dashboard.

    ``net_worth_history`` holds snapshot values newest first.
    """
    insights: list[dict[str, object]] = []

    if expense_categories and monthly_income > 0:
        top = max(expense_categories, key=lambda item: item.total)
        if top.total > monthly_income * 0.3:
            share = top.total / monthly_income * 100
            insights.append(
                _insight(
                    "warning",
                    "spending",
                    f"High Spending Alert: {top.category}",
                    f"You've spent ${top.total:.2f} on {top.category} in the last 30 "
                    f"days, which is {share:.1f}% of your income.",
                    f"Consider setting a budget limit for {top.category} to improve "
                    "savings.",
                    "high",
                )
            )

    for prediction in bill_predictions:
        if prediction.trend == "increasing":
            insights.append(
                _insight(
                    "info",
                    "bills",
                    f"Rising Bill: {prediction.bill_name}",
                    f"Your {prediction.bill_name} has been increasing. Current "
                    f"prediction: ${prediction.predicted:.2f}",
                    "Look for ways to reduce usage or consider switching providers "
                    "to save money.",
                    "medium",
                )
            )

    if monthly_income > 0:
        rate = (monthly_income - recent_expenses) / monthly_income * 100
        if rate < 10:
            insights.append(
                _insight(
                    "warning",
                    "savings",
                    "Low Savings Rate",
                    f"Your current savings rate is {rate:.1f}%, which is below the "
                    "recommended 20%.",
                    "Try to identify discretionary expenses to cut back. Aim to save "
                    f"at least ${monthly_income * SAVINGS_TARGET_RATE:.2f} per month.",
                    "high",
                )
            )
        elif rate >= 20:
            insights.append(
                _insight(
                    "success",
                    "savings",
                    "Great Savings Rate!",
                    f"Your savings rate of {rate:.1f}% exceeds the recommended 20%. "
                    "Keep up the excellent work!",
                    "Consider investing your surplus savings in retirement accounts "
                    "or diversified investments.",
                    "positive",
                )
            )

    if len(net_worth_history) >= 2:
        latest, previous = net_worth_history[0], net_worth_history[1]
        growth = latest - previous
        growth_percent = growth / abs(previous or 1) * 100
        if growth > 0:
            insights.append(
                _insight(
                    "success",
                    "net_worth",
                    "Net Worth Increasing",
                    f"Your net worth has grown by ${growth:.2f} "
                    f"({growth_percent:.1f}%) since last snapshot.",
                    "Continue your current financial habits. Consider increasing "
                    "investments to accelerate growth.",
                    "positive",
                )
            )
        elif growth < 0:
            insights.append(
                _insight(
                    "warning",
                    "net_worth",
                    "Net Worth Declining",
                    f"Your net worth has decreased by ${abs(growth):.2f} "
                    f"({abs(growth_percent):.1f}%).",
                    "Review your expenses and consider creating a debt payoff plan "
                    "to reverse this trend.",
                    "high",
                )
            )

    if income_source_count == 1:
        insights.append(
            _insight(
                "info",
                "income",
                "Single Income Source",
                "You're relying on a single income source. This could be risky if "
                "that source is disrupted.",
                "Consider developing a side business, freelancing, or passive income "
                "streams to diversify your income.",
                "medium",
            )
        )
    elif income_source_count >= 3:
        insights.append(
            _insight(
                "success",
                "income",
                "Well-Diversified Income",
                f"You have {income_source_count} income sources. This provides "
                "excellent financial security.",
                "Continue nurturing your income streams. Consider investing profits "
                "from side businesses.",
                "positive",
            )
        )

    if monthly_income > 0:
        monthly_costs = monthly_income * EXPENSE_SHARE_OF_INCOME
        months = liquid_assets / monthly_costs
        if months < 3:
            insights.append(
                _insight(
                    "warning",
                    "emergency_fund",
                    "Emergency Fund Below Target",
                    f"Your emergency fund covers only {months:.1f} months of "
                    "expenses. Target is 3-6 months.",
                    "Prioritize building your emergency fund to "
                    f"${monthly_costs * 6:.2f} (6 months of expenses).",
                    "high",
                )
            )
        elif months >= 6:
            insights.append(
                _insight(
                    "success",
                    "emergency_fund",
                    "Strong Emergency Fund",
                    f"Your emergency fund covers {months:.1f} months of expenses. "
                    "Well done!",
                    "Your emergency fund is solid. Consider investing excess cash "
                    "for better returns.",
                    "positive",
                )
            )

    return insights


def summarize_insights(insights: Sequence[dict[str, object]]) -> dict[str, int]:
    return {
        "total_insights": len(insights),
        "high_priority": sum(1 for item in insights if item["impact"] == "high"),
        "warnings": sum(1 for item in insights if item["type"] == "warning"),
        "positive": sum(1 for item in insights if item["type"] == "success"),
    }


def _dollars(amount: float) -> str:
    if not amount:
        return "$0"
    return f"${amount:,.0f}"


def risk_tolerance(net_worth: float) -> str:
    if net_worth > 100_000:
        return "moderate-aggressive"
    if net_worth > 50_000:
        return "moderate"
    return "conservative"


def wealth_growth_opportunities(
    *,
    liquid_assets: float,
    net_worth: float,
    retirement: float,
    income_sources: int,
    monthly_income: float,
) -> dict[str, object]:
    opportunities: list[dict[str, object]] = []

    if liquid_assets > 10_000:
        stake = min(liquid_assets * 0.3, 25_000)
        monthly_gain = stake * 0.045 / 12
        opportunities.append(
            {
                "title": "High-Yield Investment Account",
                "description": (
                    f"You have {_dollars(liquid_assets)} in liquid assets. Move a "
                    "portion to high-yield investments earning 4-5% APY instead of "
                    "standard savings rates."
                ),
                "category": "investment",
                "risk_level": "low",
                "timeline": "Short-term (1-3 months)",
                "initial_investment": stake,
                "potential_monthly_gain": monthly_gain,
                "roi": 4.5,
                "action_steps": [
                    "Research high-yield savings accounts or money market funds",
                    "Transfer 30% of liquid assets while keeping your emergency fund",
                    "Set up automatic monthly contributions from checking",
                    "Review rates quarterly and switch if better options appear",
                ],
                "personalization_reason": (
                    f"Based on your {_dollars(liquid_assets)} in liquid assets, you "
                    f"could earn an extra {_dollars(monthly_gain)}/month with minimal "
                    "risk."
                ),
            }
        )

    if net_worth > 20_000:
        stake = min(liquid_assets * 0.2, 10_000)
        opportunities.append(
            {
                "title": "Low-Cost Index Fund Portfolio",
                "description": (
                    "Build wealth through diversified index funds (S&P 500, Total "
                    "Market) with historical 10% average annual returns."
                ),
                "category": "investment",
                "risk_level": "medium",
                "timeline": "Long-term (5+ years)",
                "initial_investment": stake,
                "potential_monthly_gain": stake * 0.10 / 12,
                "roi": 10,
                "action_steps": [
                    "Open a low-cost brokerage account",
                    "Split between total market, international and bond funds",
                    "Automate a monthly contribution",
                    "Rebalance once a year",
                ],
                "personalization_reason": (
                    f"Your net worth of {_dollars(net_worth)} positions you well for "
                    "long-term wealth building through index funds."
                ),
            }
        )

    if income_sources < 3:
        opportunities.append(
            {
                "title": "Monetize Your Skills - Consulting/Freelancing",
                "description": (
                    "Launch a consulting or freelance business in your area of "
                    "expertise."
                ),
                "category": "business",
                "risk_level": "medium",
                "timeline": "Medium-term (3-6 months)",
                "initial_investment": 500,
                "potential_monthly_gain": 2000,
                "roi": 400,
                "action_steps": [
                    "Identify your most valuable skill",
                    "Create profiles on freelance marketplaces or LinkedIn",
                    "Set competitive hourly rates",
                    "Dedicate 5-10 hours a week and scale with demand",
                ],
                "personalization_reason": (
                    f"You currently have {income_sources} income source(s). Adding "
                    "consulting could increase monthly income by $2,000-5,000."
                ),
            }
        )

    if net_worth > 50_000:
        opportunities.append(
            {
                "title": "Real Estate Investment (REIT or Rental)",
                "description": (
                    "Invest in REITs or consider rental property for passive income "
                    "and appreciation."
                ),
                "category": "real_estate",
                "risk_level": "medium",
                "timeline": "Long-term (3-10 years)",
                "initial_investment": 20_000,
                "potential_monthly_gain": 500,
                "roi": 8,
                "action_steps": [
                    "Research REITs with 6-8% dividend yields",
                    "Analyze the local rental market using the 1% rule",
                    "Save a 20-25% down payment",
                    "Focus on cash-flow positive properties",
                ],
                "personalization_reason": (
                    f"With {_dollars(net_worth)} net worth, you can leverage real "
                    "estate for $500+ monthly passive income."
                ),
            }
        )

    opportunities.append(
        {
            "title": "Automated Digital Product Business",
            "description": (
                "Create and sell digital products (courses, templates, ebooks) that "
                "generate passive income."
            ),
            "category": "passive",
            "risk_level": "low",
            "timeline": "Medium-term (2-4 months)",
            "initial_investment": 200,
            "potential_monthly_gain": 1500,
            "roi": 750,
            "action_steps": [
                "Pick a problem you can solve from your expertise",
                "Build a course, template pack or ebook",
                "Set up an automated sales funnel",
                "Drive traffic with content marketing",
            ],
            "personalization_reason": (
                "Digital products have near-zero marginal costs and scale with "
                "minimal ongoing effort."
            ),
        }
    )

    if monthly_income < 15_000:
        opportunities.append(
            {
                "title": "High-Income Skill Development",
                "description": (
                    "Learn premium skills (AI/ML, cloud architecture, sales) that "
                    "command $150-500/hour rates."
                ),
                "category": "skill",
                "risk_level": "low",
                "timeline": "Medium-term (3-6 months)",
                "initial_investment": 1000,
                "potential_monthly_gain": 3000,
                "roi": 300,
                "action_steps": [
                    "Choose an in-demand skill",
                    "Take a focused course or bootcamp",
                    "Build a portfolio of 3-5 real projects",
                    "Get certified and market yourself as a specialist",
                ],
                "personalization_reason": (
                    f"Your current income of {_dollars(monthly_income)}/month can "
                    "grow 2-3x with specialized skills."
                ),
            }
        )

    if retirement > 10_000:
        opportunities.append(
            {
                "title": "Dividend Aristocrat Portfolio",
                "description": (
                    "Build a portfolio of stocks with 25+ years of consecutive "
                    "dividend increases for reliable passive income."
                ),
                "category": "investment",
                "risk_level": "medium",
                "timeline": "Long-term (5+ years)",
                "initial_investment": 5000,
                "potential_monthly_gain": 150,
                "roi": 3.6,
                "action_steps": [
                    "Review the Dividend Aristocrats list",
                    "Hold 15-20 dividend stocks across sectors",
                    "Target a 3-4% average yield",
                    "Reinvest dividends automatically",
                ],
                "personalization_reason": (
                    f"Your {_dollars(retirement)} retirement funds can generate "
                    "growing passive income through dividend stocks."
                ),
            }
        )

    return {
        "opportunities": opportunities,
        "profile": {
            "net_worth": net_worth,
            "liquid_assets": liquid_assets,
            "monthly_income": monthly_income,
            "income_sources": income_sources,
            "risk_tolerance": risk_tolerance(net_worth),
        },
        "summary": {
            "total_opportunities": len(opportunities),
            "total_potential_monthly": sum(
                float(item["potential_monthly_gain"]) for item in opportunities
            ),
            "recommended_focus": opportunities[0]["category"],
        },
    }


# chat

HELP_TEXT = (
    "I can help you with:\n"
    '- Checking your spending ("How much did I spend last month?")\n'
    '- Reviewing your income ("What\'s my total income?")\n'
    '- Tracking net worth ("What\'s my net worth?")\n'
    '- Analyzing savings ("How much am I saving?")\n'
    '- Managing bills ("Show me my bills")\n\n'
    "Just ask me anything about your finances!"
)

FALLBACK_TEXT = (
    "I'm here to help with your finances! Try asking me about your spending, "
    'income, savings, net worth, or bills. For example: "How much did I spend '
    'last month?" or "What\'s my total income?"'
)

_INTENT_KEYWORDS: tuple[tuple[str, tuple[str, ...]], ...] = (
    ("spending", ("spend", "spent", "spending")),
    ("income", ("income", "make", "earn", "earning")),
    ("net_worth", ("networth",)),
    ("savings", ("save", "saving", "savings")),
    ("bills", ("bill", "bills")),
    ("help", ("help",)),
)

_WORD = re.compile(r"[a-z]+")


def _matches(word: str, keyword: str, fuzzy: bool) -> bool:
    if word == keyword:
        return True
    if not fuzzy or len(keyword) < 5 or word[:1] != keyword[:1]:
        return False
    return Levenshtein.distance(word, keyword, score_cutoff=1) <= 1


def _has_keyword(words: Sequence[str], keywords: Sequence[str], fuzzy: bool) -> bool:
    return any(
        _matches(word, keyword, fuzzy) for word in words for keyword in keywords
    )


def _has_phrase(words: Sequence[str], first: str, second: str, fuzzy: bool) -> bool:
    return any(
        _matches(a, first, fuzzy) and _matches(b, second, fuzzy)
        for a, b in zip(words, words[1:])
    )


def _find_intent(words: Sequence[str], lowered: str, fuzzy: bool) -> Optional[str]:
    for intent, keywords in _INTENT_KEYWORDS:
        if intent == "net_worth" and _has_phrase(words, "net", "worth", fuzzy):
            return intent
        if intent == "help" and "what can you" in lowered:
            return intent
        if _has_keyword(words, keywords, fuzzy):
            return intent
    return None


def detect_intent(message: str) -> Optional[str]:
    """Map a chat message to an intent.

    Exact keyword hits across every intent are tried before one-edit typo
    matches, and a typo match must keep the keyword's first letter.
    """
    lowered = (message or "").lower()
    words = _WORD.findall(lowered)
    return _find_intent(words, lowered, fuzzy=False) or _find_intent(
        words, lowered, fuzzy=True
    )
