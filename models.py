from datetime import date, datetime
from enum import Enum
from typing import Optional

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Date,
    DateTime,
    Enum as SAEnum,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from database import Base


class TransactionType(str, Enum):
    income = "income"
    expense = "expense"


class IncomeFrequency(str, Enum):
    weekly = "weekly"
    biweekly = "biweekly"
    monthly = "monthly"
    quarterly = "quarterly"
    annually = "annually"
    variable = "variable"


class ContributionFrequency(str, Enum):
    weekly = "weekly"
    biweekly = "biweekly"
    monthly = "monthly"
    quarterly = "quarterly"
    annually = "annually"


class IncomeSourceType(str, Enum):
    primary_job = "primary_job"
    secondary_job = "secondary_job"
    side_business = "side_business"
    freelance = "freelance"
    rental = "rental"
    investments = "investments"
    other = "other"


class BillType(str, Enum):
    electric = "electric"
    water = "water"
    gas = "gas"
    internet = "internet"
    phone = "phone"
    hoa = "hoa"
    insurance = "insurance"
    subscription = "subscription"
    other = "other"


class AccountType(str, Enum):
    checking = "checking"
    savings = "savings"
    credit_card = "credit_card"
    loan = "loan"
    mortgage = "mortgage"
    other_debt = "other_debt"


ASSET_ACCOUNT_TYPES = (AccountType.checking, AccountType.savings)
LIABILITY_ACCOUNT_TYPES = (
    AccountType.credit_card,
    AccountType.loan,
    AccountType.mortgage,
    AccountType.other_debt,
)


class RetirementType(str, Enum):
    k401 = "401k"
    roth_401k = "roth_401k"
    traditional_ira = "traditional_ira"
    roth_ira = "roth_ira"
    sep_ira = "sep_ira"
    pension = "pension"
    other = "other"


class AssetType(str, Enum):
    real_estate = "real_estate"
    vehicle = "vehicle"
    jewelry = "jewelry"
    art = "art"
    collectibles = "collectibles"
    business = "business"
    other = "other"


class TargetCategory(str, Enum):
    monthly_income = "monthly_income"
    savings_rate = "savings_rate"
    net_worth = "net_worth"
    debt_payoff = "debt_payoff"
    retirement = "retirement"
    emergency_fund = "emergency_fund"
    custom = "custom"


class CreditBureau(str, Enum):
    experian = "experian"
    equifax = "equifax"
    transunion = "transunion"
    vantage = "vantage"
    other = "other"


class OpportunityStatus(str, Enum):
    pending = "pending"
    invested = "invested"
    completed = "completed"
    declined = "declined"


class RiskLevel(str, Enum):
    low = "low"
    medium = "medium"
    high = "high"


class PropertyType(str, Enum):
    single_family = "single_family"
    multi_family = "multi_family"
    condo = "condo"
    townhouse = "townhouse"
    land = "land"
    commercial = "commercial"
    other = "other"


class PropertyStatus(str, Enum):
    active = "active"
    pending_sale = "pending_sale"
    sold = "sold"
    inactive = "inactive"


class LoanType(str, Enum):
    conventional = "conventional"
    fha = "fha"
    va = "va"
    usda = "usda"
    commercial = "commercial"
    hard_money = "hard_money"
    other = "other"


class PaymentMethod(str, Enum):
    cash = "cash"
    check = "check"
    bank_transfer = "bank_transfer"
    venmo = "venmo"
    paypal = "paypal"
    other = "other"


class PropertyExpenseType(str, Enum):
    property_tax = "property_tax"
    insurance = "insurance"
    hoa = "hoa"
    maintenance = "maintenance"
    repair = "repair"
    utilities = "utilities"
    property_management = "property_management"
    advertising = "advertising"
    legal = "legal"
    accounting = "accounting"
    other = "other"


class AIService(str, Enum):
    groq = "groq"
    huggingface = "huggingface"
    together = "together"
    openrouter = "openrouter"
    anthropic = "anthropic"


def _enum(enum_cls: type[Enum], name: str) -> SAEnum:
    return SAEnum(
        enum_cls,
        name=name,
        values_callable=lambda members: [member.value for member in members],
    )


class TimestampMixin:
    created_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False
    )

    def to_dict(self) -> dict[str, object]:
        data: dict[str, object] = {}
        for column in self.__table__.columns:
            value = getattr(self, column.key)
            if isinstance(value, Enum):
                value = value.value
            data[column.key] = value
        return data


class User(Base, TimestampMixin):
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    username: Mapped[str] = mapped_column(String(80), nullable=False, unique=True)
    email: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)

    def to_dict(self) -> dict[str, object]:
        return {
            "id": self.id,
            "username": self.username,
            "email": self.email,
            "created_at": self.created_at,
        }


class Transaction(Base, TimestampMixin):
    __tablename__ = "transactions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id"), nullable=False)
    type: Mapped[TransactionType] = mapped_column(
        _enum(TransactionType, "transactiontype"), nullable=False
    )
    amount: Mapped[float] = mapped_column(Float, nullable=False)
    category: Mapped[str] = mapped_column(String(100), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text)
    date: Mapped[date] = mapped_column(Date, nullable=False)

    __table_args__ = (
        Index("ix_transactions_user_date", "user_id", "date"),
        Index("ix_transactions_user_type_date", "user_id", "type", "date"),
    )


class BudgetGoal(Base, TimestampMixin):
    __tablename__ = "budget_goals"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id"), nullable=False)
    category: Mapped[str] = mapped_column(String(100), nullable=False)
    monthly_limit: Mapped[float] = mapped_column(Float, nullable=False)

    __table_args__ = (
        UniqueConstraint("user_id", "category", name="uq_budget_goal_user_category"),
    )


class IncomeSource(Base, TimestampMixin):
    __tablename__ = "income_sources"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id"), nullable=False)
    source_name: Mapped[str] = mapped_column(String(120), nullable=False)
    source_type: Mapped[IncomeSourceType] = mapped_column(
        _enum(IncomeSourceType, "incomesourcetype"), nullable=False
    )
    amount: Mapped[float] = mapped_column(Float, nullable=False)
    frequency: Mapped[IncomeFrequency] = mapped_column(
        _enum(IncomeFrequency, "incomefrequency"), nullable=False
    )
    employer_company: Mapped[Optional[str]] = mapped_column(String(120))
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    start_date: Mapped[Optional[date]] = mapped_column(Date)
    notes: Mapped[Optional[str]] = mapped_column(Text)


class Bill(Base, TimestampMixin):
    __tablename__ = "bills"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id"), nullable=False)
    bill_name: Mapped[str] = mapped_column(String(120), nullable=False)
    bill_type: Mapped[BillType] = mapped_column(
        _enum(BillType, "billtype"), nullable=False
    )
    target_amount: Mapped[float] = mapped_column(Float, nullable=False)
    due_day: Mapped[Optional[int]] = mapped_column(Integer)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    notes: Mapped[Optional[str]] = mapped_column(Text)

    payments: Mapped[list["BillPayment"]] = relationship(
        "BillPayment", back_populates="bill", cascade="all, delete-orphan"
    )

    __table_args__ = (
        CheckConstraint("due_day IS NULL OR (due_day BETWEEN 1 AND 31)", name="ck_bill_due_day"),
    )


class BillPayment(Base, TimestampMixin):
    __tablename__ = "bill_payments"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    bill_id: Mapped[int] = mapped_column(ForeignKey("bills.id"), nullable=False)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id"), nullable=False)
    amount_paid: Mapped[float] = mapped_column(Float, nullable=False)
    payment_date: Mapped[date] = mapped_column(Date, nullable=False)
    month_year: Mapped[str] = mapped_column(String(7), nullable=False)
    notes: Mapped[Optional[str]] = mapped_column(Text)

    bill: Mapped["Bill"] = relationship("Bill", back_populates="payments")

    __table_args__ = (
        Index("ix_bill_payments_user_month", "user_id", "month_year"),
        Index("ix_bill_payments_bill_month", "bill_id", "month_year"),
    )


class Account(Base, TimestampMixin):
    __tablename__ = "accounts"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id"), nullable=False)
    name: Mapped[str] = mapped_column(String(120), nullable=False)
    type: Mapped[AccountType] = mapped_column(
        _enum(AccountType, "accounttype"), nullable=False
    )
    balance: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    credit_limit: Mapped[Optional[float]] = mapped_column(Float)
    interest_rate: Mapped[Optional[float]] = mapped_column(Float)
    due_date: Mapped[Optional[str]] = mapped_column(String(20))
    institution: Mapped[Optional[str]] = mapped_column(String(120))


class RetirementAccount(Base, TimestampMixin):
    __tablename__ = "retirement_accounts"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id"), nullable=False)
    name: Mapped[str] = mapped_column(String(120), nullable=False)
    type: Mapped[RetirementType] = mapped_column(
        _enum(RetirementType, "retirementtype"), nullable=False
    )
    balance: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    contribution_amount: Mapped[Optional[float]] = mapped_column(Float, default=0)
    contribution_frequency: Mapped[Optional[ContributionFrequency]] = mapped_column(
        _enum(ContributionFrequency, "contributionfrequency")
    )
    employer_match: Mapped[Optional[float]] = mapped_column(Float)


class Asset(Base, TimestampMixin):
    __tablename__ = "assets"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id"), nullable=False)
    name: Mapped[str] = mapped_column(String(120), nullable=False)
    type: Mapped[AssetType] = mapped_column(_enum(AssetType, "assettype"), nullable=False)
    value: Mapped[float] = mapped_column(Float, nullable=False)
    purchase_price: Mapped[Optional[float]] = mapped_column(Float)
    purchase_date: Mapped[Optional[date]] = mapped_column(Date)
    notes: Mapped[Optional[str]] = mapped_column(Text)


class NetWorthSnapshot(Base, TimestampMixin):
    __tablename__ = "net_worth_snapshots"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id"), nullable=False)
    total_assets: Mapped[float] = mapped_column(Float, nullable=False)
    total_liabilities: Mapped[float] = mapped_column(Float, nullable=False)
    net_worth: Mapped[float] = mapped_column(Float, nullable=False)
    snapshot_date: Mapped[date] = mapped_column(Date, nullable=False)

    __table_args__ = (Index("ix_snapshots_user_date", "user_id", "snapshot_date"),)


class FinancialTarget(Base, TimestampMixin):
    __tablename__ = "financial_targets"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id"), nullable=False)
    category: Mapped[TargetCategory] = mapped_column(
        _enum(TargetCategory, "targetcategory"), nullable=False
    )
    name: Mapped[str] = mapped_column(String(120), nullable=False)
    target_value: Mapped[float] = mapped_column(Float, nullable=False)
    current_value: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    target_date: Mapped[Optional[date]] = mapped_column(Date)
    is_achieved: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)


class CreditScore(Base, TimestampMixin):
    __tablename__ = "credit_scores"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id"), nullable=False)
    score: Mapped[int] = mapped_column(Integer, nullable=False)
    bureau: Mapped[Optional[CreditBureau]] = mapped_column(
        _enum(CreditBureau, "creditbureau")
    )
    date: Mapped[date] = mapped_column(Date, nullable=False)
    notes: Mapped[Optional[str]] = mapped_column(Text)


class Opportunity(Base, TimestampMixin):
    __tablename__ = "opportunities"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id"), nullable=False)
    name: Mapped[str] = mapped_column(String(120), nullable=False)
    type: Mapped[str] = mapped_column(String(60), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text)
    initial_investment: Mapped[Optional[float]] = mapped_column(Float)
    expected_return: Mapped[Optional[float]] = mapped_column(Float)
    risk_level: Mapped[Optional[RiskLevel]] = mapped_column(_enum(RiskLevel, "risklevel"))
    time_horizon: Mapped[Optional[str]] = mapped_column(String(60))
    status: Mapped[OpportunityStatus] = mapped_column(
        _enum(OpportunityStatus, "opportunitystatus"),
        nullable=False,
        default=OpportunityStatus.pending,
    )
    notes: Mapped[Optional[str]] = mapped_column(Text)


class InvestmentProperty(Base, TimestampMixin):
    __tablename__ = "investment_properties"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id"), nullable=False)
    property_name: Mapped[str] = mapped_column(String(120), nullable=False)
    address: Mapped[str] = mapped_column(String(255), nullable=False)
    city: Mapped[Optional[str]] = mapped_column(String(120))
    state: Mapped[Optional[str]] = mapped_column(String(60))
    zip_code: Mapped[Optional[str]] = mapped_column(String(20))
    property_type: Mapped[Optional[PropertyType]] = mapped_column(
        _enum(PropertyType, "propertytype")
    )
    purchase_price: Mapped[Optional[float]] = mapped_column(Float)
    purchase_date: Mapped[Optional[date]] = mapped_column(Date)
    current_value: Mapped[Optional[float]] = mapped_column(Float)
    bedrooms: Mapped[Optional[int]] = mapped_column(Integer)
    bathrooms: Mapped[Optional[float]] = mapped_column(Float)
    square_feet: Mapped[Optional[int]] = mapped_column(Integer)
    status: Mapped[PropertyStatus] = mapped_column(
        _enum(PropertyStatus, "propertystatus"),
        nullable=False,
        default=PropertyStatus.active,
    )
    notes: Mapped[Optional[str]] = mapped_column(Text)

    loans: Mapped[list["PropertyLoan"]] = relationship(
        "PropertyLoan", back_populates="property", cascade="all, delete-orphan"
    )
    rental_income: Mapped[list["RentalIncome"]] = relationship(
        "RentalIncome", back_populates="property", cascade="all, delete-orphan"
    )
    expenses: Mapped[list["PropertyExpense"]] = relationship(
        "PropertyExpense", back_populates="property", cascade="all, delete-orphan"
    )
    tenants: Mapped[list["PropertyTenant"]] = relationship(
        "PropertyTenant", back_populates="property", cascade="all, delete-orphan"
    )


class PropertyLoan(Base, TimestampMixin):
    __tablename__ = "property_loans"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    property_id: Mapped[int] = mapped_column(
        ForeignKey("investment_properties.id"), nullable=False
    )
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id"), nullable=False)
    lender_name: Mapped[str] = mapped_column(String(120), nullable=False)
    loan_type: Mapped[Optional[LoanType]] = mapped_column(_enum(LoanType, "loantype"))
    original_amount: Mapped[float] = mapped_column(Float, nullable=False)
    current_balance: Mapped[float] = mapped_column(Float, nullable=False)
    interest_rate: Mapped[float] = mapped_column(Float, nullable=False)
    monthly_payment: Mapped[float] = mapped_column(Float, nullable=False)
    start_date: Mapped[date] = mapped_column(Date, nullable=False)
    term_months: Mapped[Optional[int]] = mapped_column(Integer)
    notes: Mapped[Optional[str]] = mapped_column(Text)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    property: Mapped["InvestmentProperty"] = relationship(
        "InvestmentProperty", back_populates="loans"
    )


class RentalIncome(Base, TimestampMixin):
    __tablename__ = "rental_income"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    property_id: Mapped[int] = mapped_column(
        ForeignKey("investment_properties.id"), nullable=False
    )
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id"), nullable=False)
    tenant_name: Mapped[Optional[str]] = mapped_column(String(120))
    amount: Mapped[float] = mapped_column(Float, nullable=False)
    payment_date: Mapped[date] = mapped_column(Date, nullable=False)
    month_year: Mapped[str] = mapped_column(String(7), nullable=False)
    payment_method: Mapped[Optional[PaymentMethod]] = mapped_column(
        _enum(PaymentMethod, "paymentmethod")
    )
    notes: Mapped[Optional[str]] = mapped_column(Text)

    property: Mapped["InvestmentProperty"] = relationship(
        "InvestmentProperty", back_populates="rental_income"
    )


class PropertyExpense(Base, TimestampMixin):
    __tablename__ = "property_expenses"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    property_id: Mapped[int] = mapped_column(
        ForeignKey("investment_properties.id"), nullable=False
    )
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id"), nullable=False)
    expense_type: Mapped[PropertyExpenseType] = mapped_column(
        _enum(PropertyExpenseType, "propertyexpensetype"), nullable=False
    )
    amount: Mapped[float] = mapped_column(Float, nullable=False)
    expense_date: Mapped[date] = mapped_column(Date, nullable=False)
    vendor: Mapped[Optional[str]] = mapped_column(String(120))
    description: Mapped[Optional[str]] = mapped_column(Text)
    is_recurring: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    property: Mapped["InvestmentProperty"] = relationship(
        "InvestmentProperty", back_populates="expenses"
    )


class PropertyTenant(Base, TimestampMixin):
    __tablename__ = "property_tenants"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    property_id: Mapped[int] = mapped_column(
        ForeignKey("investment_properties.id"), nullable=False
    )
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id"), nullable=False)
    tenant_name: Mapped[str] = mapped_column(String(120), nullable=False)
    tenant_email: Mapped[Optional[str]] = mapped_column(String(255))
    tenant_phone: Mapped[Optional[str]] = mapped_column(String(40))
    monthly_rent: Mapped[float] = mapped_column(Float, nullable=False)
    security_deposit: Mapped[Optional[float]] = mapped_column(Float)
    lease_start_date: Mapped[date] = mapped_column(Date, nullable=False)
    lease_end_date: Mapped[Optional[date]] = mapped_column(Date)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    notes: Mapped[Optional[str]] = mapped_column(Text)

    property: Mapped["InvestmentProperty"] = relationship(
        "InvestmentProperty", back_populates="tenants"
    )


class AIToken(Base, TimestampMixin):
    __tablename__ = "ai_tokens"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id"), nullable=False)
    service: Mapped[AIService] = mapped_column(
        _enum(AIService, "aiservice"), nullable=False
    )
    token_encrypted: Mapped[str] = mapped_column(Text, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    last_used: Mapped[Optional[datetime]] = mapped_column(DateTime)

    __table_args__ = (
        UniqueConstraint("user_id", "service", name="uq_ai_token_user_service"),
    )


class AISchedulerConfig(Base, TimestampMixin):
    __tablename__ = "ai_scheduler_config"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[int] = mapped_column(
        ForeignKey("users.id"), nullable=False, unique=True
    )
    daily_enabled: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    five_hour_enabled: Mapped[bool] = mapped_column(
        Boolean, default=True, nullable=False
    )


class AIInsightRecord(Base, TimestampMixin):
    __tablename__ = "ai_insights_history"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id"), nullable=False)
    insight_type: Mapped[str] = mapped_column(String(20), nullable=False)
    provider: Mapped[Optional[str]] = mapped_column(String(40))
    insights_json: Mapped[str] = mapped_column(Text, nullable=False)

    __table_args__ = (Index("ix_ai_insights_user_created", "user_id", "created_at"),)
