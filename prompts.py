from jinja2 import DictLoader, Environment, StrictUndefined


INSIGHTS_SYSTEM_PROMPT = (
    "You are an expert financial advisor. Analyze the provided financial data and "
    "generate 3-5 specific, actionable insights. Focus on spending patterns, savings "
    "opportunities, and financial health. Respond with only a JSON array of objects "
    'with the fields "type" (warning, success or info), "title", "message", '
    '"recommendation" and "impact" (high, medium or low).'
)

QUICK_SCAN_SYSTEM_PROMPT = (
    "You are a financial advisor. Quickly identify any urgent alerts or new "
    "opportunities. Be concise."
)

DEFAULT_SYSTEM_PROMPT = (
    "You are a helpful financial advisor assistant. Provide clear, actionable "
    "advice based on the data provided."
)

CONNECTION_TEST_PROMPT = (
    'Hello! Please respond with "Connection successful" to confirm API access.'
)

_TEMPLATES = {
    "insights.txt": """\
Analyze this financial data and provide specific insights:

INCOME:
- Monthly Income: ${{ income | money }}
- Income Sources: {{ income_sources }}

EXPENSES:
- Monthly Expenses: ${{ expenses | money }}
- Top Categories:
{%- for item in top_categories %}
  - {{ item.category }}: ${{ item.total | money }}
{%- else %} none recorded
{%- endfor %}

SAVINGS:
- Savings Rate: {{ savings_rate }}%
- Emergency Fund: ${{ emergency_fund | money }} ({{ months_of_expenses }} months)

NET WORTH:
- Total: ${{ net_worth | money }}

BILLS:
- Monthly Bills: ${{ total_bills | money }}
- Average vs Target: {{ bills_variance_percent }}%

Provide 3-5 actionable insights with specific recommendations.""",
    "quick_scan.txt": """\
Quick financial check (last 30 days):
- Monthly Income: ${{ income | money }}
- Monthly Expenses: ${{ expenses | money }}
- Savings Rate: {{ savings_rate }}%
- Net Worth: ${{ net_worth | money }}

Identify any urgent alerts or new opportunities (2-3 sentences max).""",
}


def _money(value: float) -> str:
    return f"{float(value or 0):,.2f}"


env = Environment(
    loader=DictLoader(_TEMPLATES),
    undefined=StrictUndefined,
    autoescape=False,
    keep_trailing_newline=False,
)
env.filters["money"] = _money


def render_prompt(name: str, context: dict[str, object]) -> str:
    return env.get_template(name).render(**context)


def insights_prompt(snapshot: dict[str, object]) -> str:
    return render_prompt("insights.txt", snapshot)


def quick_scan_prompt(snapshot: dict[str, object]) -> str:
    return render_prompt("quick_scan.txt", snapshot)
