"""finance tracker schema

Revision ID: 202610010900
Revises:
Create Date: 2026-10-01 09:00:00.000000

"""

from alembic import op
import sqlalchemy as sa


revision = "202610010900"
down_revision = None
branch_labels = None
depends_on = None


FREQUENCIES = ("weekly", "biweekly", "monthly", "quarterly", "annually")


def _timestamps():
    return [
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
    ]


def _owner():
    return sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False)


def _property_owner():
    return sa.Column(
        "property_id",
        sa.Integer(),
        sa.ForeignKey("investment_properties.id"),
        nullable=False,
    )


def upgrade():
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("username", sa.String(length=80), nullable=False, unique=True),
        sa.Column("email", sa.String(length=255), nullable=False, unique=True),
        sa.Column("password_hash", sa.String(length=255), nullable=False),
        *_timestamps(),
    )

    op.create_table(
        "transactions",
        sa.Column("id", sa.Integer(), primary_key=True),
        _owner(),
        sa.Column(
            "type", sa.Enum("income", "expense", name="transactiontype"), nullable=False
        ),
        sa.Column("amount", sa.Float(), nullable=False),
        sa.Column("category", sa.String(length=100), nullable=False),
        sa.Column("description", sa.Text()),
        sa.Column("date", sa.Date(), nullable=False),
        *_timestamps(),
    )
    op.create_index("ix_transactions_user_date", "transactions", ["user_id", "date"])
    op.create_index(
        "ix_transactions_user_type_date", "transactions", ["user_id", "type", "date"]
    )

    op.create_table(
        "budget_goals",
        sa.Column("id", sa.Integer(), primary_key=True),
        _owner(),
        sa.Column("category", sa.String(length=100), nullable=False),
        sa.Column("monthly_limit", sa.Float(), nullable=False),
        *_timestamps(),
        sa.UniqueConstraint("user_id", "category", name="uq_budget_goal_user_category"),
    )

    op.create_table(
        "income_sources",
        sa.Column("id", sa.Integer(), primary_key=True),
        _owner(),
        sa.Column("source_name", sa.String(length=120), nullable=False),
        sa.Column(
            "source_type",
            sa.Enum(
                "primary_job",
                "secondary_job",
                "side_business",
                "freelance",
                "rental",
                "investments",
                "other",
                name="incomesourcetype",
            ),
            nullable=False,
        ),
        sa.Column("amount", sa.Float(), nullable=False),
        sa.Column(
            "frequency",
            sa.Enum(*FREQUENCIES, "variable", name="incomefrequency"),
            nullable=False,
        ),
        sa.Column("employer_company", sa.String(length=120)),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("start_date", sa.Date()),
        sa.Column("notes", sa.Text()),
        *_timestamps(),
    )

    op.create_table(
        "bills",
        sa.Column("id", sa.Integer(), primary_key=True),
        _owner(),
        sa.Column("bill_name", sa.String(length=120), nullable=False),
        sa.Column(
            "bill_type",
            sa.Enum(
                "electric",
                "water",
                "gas",
                "internet",
                "phone",
                "hoa",
                "insurance",
                "subscription",
                "other",
                name="billtype",
            ),
            nullable=False,
        ),
        sa.Column("target_amount", sa.Float(), nullable=False),
        sa.Column("due_day", sa.Integer()),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("notes", sa.Text()),
        *_timestamps(),
        sa.CheckConstraint(
            "due_day IS NULL OR (due_day BETWEEN 1 AND 31)", name="ck_bill_due_day"
        ),
    )

    op.create_table(
        "bill_payments",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("bill_id", sa.Integer(), sa.ForeignKey("bills.id"), nullable=False),
        _owner(),
        sa.Column("amount_paid", sa.Float(), nullable=False),
        sa.Column("payment_date", sa.Date(), nullable=False),
        sa.Column("month_year", sa.String(length=7), nullable=False),
        sa.Column("notes", sa.Text()),
        *_timestamps(),
    )
    op.create_index(
        "ix_bill_payments_user_month", "bill_payments", ["user_id", "month_year"]
    )
    op.create_index(
        "ix_bill_payments_bill_month", "bill_payments", ["bill_id", "month_year"]
    )

    op.create_table(
        "accounts",
        sa.Column("id", sa.Integer(), primary_key=True),
        _owner(),
        sa.Column("name", sa.String(length=120), nullable=False),
        sa.Column(
            "type",
            sa.Enum(
                "checking",
                "savings",
                "credit_card",
                "loan",
                "mortgage",
                "other_debt",
                name="accounttype",
            ),
            nullable=False,
        ),
        sa.Column("balance", sa.Float(), nullable=False, server_default="0"),
        sa.Column("credit_limit", sa.Float()),
        sa.Column("interest_rate", sa.Float()),
        sa.Column("due_date", sa.String(length=20)),
        sa.Column("institution", sa.String(length=120)),
        *_timestamps(),
    )

    op.create_table(
        "retirement_accounts",
        sa.Column("id", sa.Integer(), primary_key=True),
        _owner(),
        sa.Column("name", sa.String(length=120), nullable=False),
        sa.Column(
            "type",
            sa.Enum(
                "401k",
                "roth_401k",
                "traditional_ira",
                "roth_ira",
                "sep_ira",
                "pension",
                "other",
                name="retirementtype",
            ),
            nullable=False,
        ),
        sa.Column("balance", sa.Float(), nullable=False, server_default="0"),
        sa.Column("contribution_amount", sa.Float(), server_default="0"),
        sa.Column(
            "contribution_frequency",
            sa.Enum(*FREQUENCIES, name="contributionfrequency"),
        ),
        sa.Column("employer_match", sa.Float()),
        *_timestamps(),
    )

    op.create_table(
        "assets",
        sa.Column("id", sa.Integer(), primary_key=True),
        _owner(),
        sa.Column("name", sa.String(length=120), nullable=False),
        sa.Column(
            "type",
            sa.Enum(
                "real_estate",
                "vehicle",
                "jewelry",
                "art",
                "collectibles",
                "business",
                "other",
                name="assettype",
            ),
            nullable=False,
        ),
        sa.Column("value", sa.Float(), nullable=False),
        sa.Column("purchase_price", sa.Float()),
        sa.Column("purchase_date", sa.Date()),
        sa.Column("notes", sa.Text()),
        *_timestamps(),
    )

    op.create_table(
        "net_worth_snapshots",
        sa.Column("id", sa.Integer(), primary_key=True),
        _owner(),
        sa.Column("total_assets", sa.Float(), nullable=False),
        sa.Column("total_liabilities", sa.Float(), nullable=False),
        sa.Column("net_worth", sa.Float(), nullable=False),
        sa.Column("snapshot_date", sa.Date(), nullable=False),
        *_timestamps(),
    )
    op.create_index(
        "ix_snapshots_user_date", "net_worth_snapshots", ["user_id", "snapshot_date"]
    )

    op.create_table(
        "financial_targets",
        sa.Column("id", sa.Integer(), primary_key=True),
        _owner(),
        sa.Column(
            "category",
            sa.Enum(
                "monthly_income",
                "savings_rate",
                "net_worth",
                "debt_payoff",
                "retirement",
                "emergency_fund",
                "custom",
                name="targetcategory",
            ),
            nullable=False,
        ),
        sa.Column("name", sa.String(length=120), nullable=False),
        sa.Column("target_value", sa.Float(), nullable=False),
        sa.Column("current_value", sa.Float(), nullable=False, server_default="0"),
        sa.Column("target_date", sa.Date()),
        sa.Column(
            "is_achieved", sa.Boolean(), nullable=False, server_default=sa.false()
        ),
        *_timestamps(),
    )

    op.create_table(
        "credit_scores",
        sa.Column("id", sa.Integer(), primary_key=True),
        _owner(),
        sa.Column("score", sa.Integer(), nullable=False),
        sa.Column(
            "bureau",
            sa.Enum(
                "experian",
                "equifax",
                "transunion",
                "vantage",
                "other",
                name="creditbureau",
            ),
        ),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("notes", sa.Text()),
        *_timestamps(),
    )

    op.create_table(
        "opportunities",
        sa.Column("id", sa.Integer(), primary_key=True),
        _owner(),
        sa.Column("name", sa.String(length=120), nullable=False),
        sa.Column("type", sa.String(length=60), nullable=False),
        sa.Column("description", sa.Text()),
        sa.Column("initial_investment", sa.Float()),
        sa.Column("expected_return", sa.Float()),
        sa.Column("risk_level", sa.Enum("low", "medium", "high", name="risklevel")),
        sa.Column("time_horizon", sa.String(length=60)),
        sa.Column(
            "status",
            sa.Enum(
                "pending", "invested", "completed", "declined", name="opportunitystatus"
            ),
            nullable=False,
            server_default="pending",
        ),
        sa.Column("notes", sa.Text()),
        *_timestamps(),
    )

    op.create_table(
        "investment_properties",
        sa.Column("id", sa.Integer(), primary_key=True),
        _owner(),
        sa.Column("property_name", sa.String(length=120), nullable=False),
        sa.Column("address", sa.String(length=255), nullable=False),
        sa.Column("city", sa.String(length=120)),
        sa.Column("state", sa.String(length=60)),
        sa.Column("zip_code", sa.String(length=20)),
        sa.Column(
            "property_type",
            sa.Enum(
                "single_family",
                "multi_family",
                "condo",
                "townhouse",
                "land",
                "commercial",
                "other",
                name="propertytype",
            ),
        ),
        sa.Column("purchase_price", sa.Float()),
        sa.Column("purchase_date", sa.Date()),
        sa.Column("current_value", sa.Float()),
        sa.Column("bedrooms", sa.Integer()),
        sa.Column("bathrooms", sa.Float()),
        sa.Column("square_feet", sa.Integer()),
        sa.Column(
            "status",
            sa.Enum("active", "pending_sale", "sold", "inactive", name="propertystatus"),
            nullable=False,
            server_default="active",
        ),
        sa.Column("notes", sa.Text()),
        *_timestamps(),
    )

    op.create_table(
        "property_loans",
        sa.Column("id", sa.Integer(), primary_key=True),
        _property_owner(),
        _owner(),
        sa.Column("lender_name", sa.String(length=120), nullable=False),
        sa.Column(
            "loan_type",
            sa.Enum(
                "conventional",
                "fha",
                "va",
                "usda",
                "commercial",
                "hard_money",
                "other",
                name="loantype",
            ),
        ),
        sa.Column("original_amount", sa.Float(), nullable=False),
        sa.Column("current_balance", sa.Float(), nullable=False),
        sa.Column("interest_rate", sa.Float(), nullable=False),
        sa.Column("monthly_payment", sa.Float(), nullable=False),
        sa.Column("start_date", sa.Date(), nullable=False),
        sa.Column("term_months", sa.Integer()),
        sa.Column("notes", sa.Text()),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        *_timestamps(),
    )

    op.create_table(
        "rental_income",
        sa.Column("id", sa.Integer(), primary_key=True),
        _property_owner(),
        _owner(),
        sa.Column("tenant_name", sa.String(length=120)),
        sa.Column("amount", sa.Float(), nullable=False),
        sa.Column("payment_date", sa.Date(), nullable=False),
        sa.Column("month_year", sa.String(length=7), nullable=False),
        sa.Column(
            "payment_method",
            sa.Enum(
                "cash",
                "check",
                "bank_transfer",
                "venmo",
                "paypal",
                "other",
                name="paymentmethod",
            ),
        ),
        sa.Column("notes", sa.Text()),
        *_timestamps(),
    )

    op.create_table(
        "property_expenses",
        sa.Column("id", sa.Integer(), primary_key=True),
        _property_owner(),
        _owner(),
        sa.Column(
            "expense_type",
            sa.Enum(
                "property_tax",
                "insurance",
                "hoa",
                "maintenance",
                "repair",
                "utilities",
                "property_management",
                "advertising",
                "legal",
                "accounting",
                "other",
                name="propertyexpensetype",
            ),
            nullable=False,
        ),
        sa.Column("amount", sa.Float(), nullable=False),
        sa.Column("expense_date", sa.Date(), nullable=False),
        sa.Column("vendor", sa.String(length=120)),
        sa.Column("description", sa.Text()),
        sa.Column(
            "is_recurring", sa.Boolean(), nullable=False, server_default=sa.false()
        ),
        *_timestamps(),
    )

    op.create_table(
        "property_tenants",
        sa.Column("id", sa.Integer(), primary_key=True),
        _property_owner(),
        _owner(),
        sa.Column("tenant_name", sa.String(length=120), nullable=False),
        sa.Column("tenant_email", sa.String(length=255)),
        sa.Column("tenant_phone", sa.String(length=40)),
        sa.Column("monthly_rent", sa.Float(), nullable=False),
        sa.Column("security_deposit", sa.Float()),
        sa.Column("lease_start_date", sa.Date(), nullable=False),
        sa.Column("lease_end_date", sa.Date()),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("notes", sa.Text()),
        *_timestamps(),
    )

    op.create_table(
        "ai_tokens",
        sa.Column("id", sa.Integer(), primary_key=True),
        _owner(),
        sa.Column(
            "service",
            sa.Enum(
                "groq",
                "huggingface",
                "together",
                "openrouter",
                "anthropic",
                name="aiservice",
            ),
            nullable=False,
        ),
        sa.Column("token_encrypted", sa.Text(), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("last_used", sa.DateTime()),
        *_timestamps(),
        sa.UniqueConstraint("user_id", "service", name="uq_ai_token_user_service"),
    )

    op.create_table(
        "ai_scheduler_config",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column(
            "user_id",
            sa.Integer(),
            sa.ForeignKey("users.id"),
            nullable=False,
            unique=True,
        ),
        sa.Column(
            "daily_enabled", sa.Boolean(), nullable=False, server_default=sa.true()
        ),
        sa.Column(
            "five_hour_enabled", sa.Boolean(), nullable=False, server_default=sa.true()
        ),
        *_timestamps(),
    )

    op.create_table(
        "ai_insights_history",
        sa.Column("id", sa.Integer(), primary_key=True),
        _owner(),
        sa.Column("insight_type", sa.String(length=20), nullable=False),
        sa.Column("provider", sa.String(length=40)),
        sa.Column("insights_json", sa.Text(), nullable=False),
        *_timestamps(),
    )
    op.create_index(
        "ix_ai_insights_user_created", "ai_insights_history", ["user_id", "created_at"]
    )


def downgrade():
    op.drop_index("ix_ai_insights_user_created", table_name="ai_insights_history")
    op.drop_table("ai_insights_history")
    op.drop_table("ai_scheduler_config")
    op.drop_table("ai_tokens")
    op.drop_table("property_tenants")
    op.drop_table("property_expenses")
    op.drop_table("rental_income")
    op.drop_table("property_loans")
    op.drop_table("investment_properties")
    op.drop_table("opportunities")
    op.drop_table("credit_scores")
    op.drop_table("financial_targets")
    op.drop_index("ix_snapshots_user_date", table_name="net_worth_snapshots")
    op.drop_table("net_worth_snapshots")
    op.drop_table("assets")
    op.drop_table("retirement_accounts")
    op.drop_table("accounts")
    op.drop_index("ix_bill_payments_bill_month", table_name="bill_payments")
    op.drop_index("ix_bill_payments_user_month", table_name="bill_payments")
    op.drop_table("bill_payments")
    op.drop_table("bills")
    op.drop_table("income_sources")
    op.drop_table("budget_goals")
    op.drop_index("ix_transactions_user_type_date", table_name="transactions")
    op.drop_index("ix_transactions_user_date", table_name="transactions")
    op.drop_table("transactions")
    op.drop_table("users")
