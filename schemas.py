import datetime as dt
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

from models import (
    AccountType,
    AIService,
    AssetType,
    BillType,
    ContributionFrequency,
    CreditBureau,
    IncomeFrequency,
    IncomeSourceType,
    LoanType,
    OpportunityStatus,
    PaymentMethod,
    PropertyExpenseType,
    PropertyStatus,
    PropertyType,
    RetirementType,
    RiskLevel,
    TargetCategory,
    TransactionType,
)


class RegisterIn(BaseModel):
    username: str = Field(..., min_length=3, max_length=80)
    email: str = Field(..., min_length=3, max_length=255, pattern=r"^[^@\s]+@[^@\s]+$")
    password: str = Field(..., min_length=8, max_length=128)


class LoginIn(BaseModel):
    username: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1)


class TransactionIn(BaseModel):
    type: TransactionType
    amount: float = Field(..., gt=0)
    category: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = Field(default=None, max_length=500)
    date: dt.date


class BudgetGoalIn(BaseModel):
    category: str = Field(..., min_length=1, max_length=100)
    monthly_limit: float = Field(..., gt=0)


class IncomeSourceIn(BaseModel):
    source_name: str = Field(..., min_length=1, max_length=120)
    source_type: IncomeSourceType
    amount: float = Field(..., gt=0)
    frequency: IncomeFrequency
    employer_company: Optional[str] = Field(default=None, max_length=120)
    is_active: bool = True
    start_date: Optional[dt.date] = None
    notes: Optional[str] = None


class BillIn(BaseModel):
    bill_name: str = Field(..., min_length=1, max_length=120)
    bill_type: BillType
    target_amount: float = Field(..., gt=0)
    due_day: Optional[int] = Field(default=None, ge=1, le=31)
    is_active: bool = True
    notes: Optional[str] = None


class BillPaymentIn(BaseModel):
    amount_paid: float = Field(..., gt=0)
    payment_date: dt.date
    notes: Optional[str] = None


class AccountIn(BaseModel):
    name: str = Field(..., min_length=1, max_length=120)
    type: AccountType
    balance: float = 0
    credit_limit: Optional[float] = Field(default=None, ge=0)
    interest_rate: Optional[float] = Field(default=None, ge=0)
    due_date: Optional[str] = Field(default=None, max_length=20)
    institution: Optional[str] = Field(default=None, max_length=120)


class RetirementAccountIn(BaseModel):
    name: str = Field(..., min_length=1, max_length=120)
    type: RetirementType
    balance: float = Field(default=0, ge=0)
    contribution_amount: Optional[float] = Field(default=0, ge=0)
    contribution_frequency: Optional[ContributionFrequency] = None
    employer_match: Optional[float] = Field(default=None, ge=0)


class AssetIn(BaseModel):
    name: str = Field(..., min_length=1, max_length=120)
    type: AssetType
    value: float = Field(..., ge=0)
    purchase_price: Optional[float] = Field(default=None, ge=0)
    purchase_date: Optional[dt.date] = None
    notes: Optional[str] = None


class SnapshotIn(BaseModel):
    total_assets: Optional[float] = None
    total_liabilities: Optional[float] = None
    snapshot_date: Optional[dt.date] = None


class FinancialTargetIn(BaseModel):
    category: TargetCategory
    name: str = Field(..., min_length=1, max_length=120)
    target_value: float
    current_value: float = 0
    target_date: Optional[dt.date] = None
    is_achieved: bool = False


class CreditScoreIn(BaseModel):
    score: int = Field(..., ge=300, le=850)
    bureau: Optional[CreditBureau] = None
    date: dt.date
    notes: Optional[str] = None


class OpportunityIn(BaseModel):
    name: str = Field(..., min_length=1, max_length=120)
    type: str = Field(..., min_length=1, max_length=60)
    description: Optional[str] = None
    initial_investment: Optional[float] = Field(default=None, ge=0)
    expected_return: Optional[float] = None
    risk_level: Optional[RiskLevel] = None
    time_horizon: Optional[str] = Field(default=None, max_length=60)
    status: OpportunityStatus = OpportunityStatus.pending
    notes: Optional[str] = None


class PropertyIn(BaseModel):
    property_name: str = Field(..., min_length=1, max_length=120)
    address: str = Field(..., min_length=1, max_length=255)
    city: Optional[str] = Field(default=None, max_length=120)
    state: Optional[str] = Field(default=None, max_length=60)
    zip_code: Optional[str] = Field(default=None, max_length=20)
    property_type: Optional[PropertyType] = None
    purchase_price: Optional[float] = Field(default=None, ge=0)
    purchase_date: Optional[dt.date] = None
    current_value: Optional[float] = Field(default=None, ge=0)
    bedrooms: Optional[int] = Field(default=None, ge=0)
    bathrooms: Optional[float] = Field(default=None, ge=0)
    square_feet: Optional[int] = Field(default=None, ge=0)
    status: PropertyStatus = PropertyStatus.active
    notes: Optional[str] = None


class PropertyLoanIn(BaseModel):
    lender_name: str = Field(..., min_length=1, max_length=120)
    loan_type: Optional[LoanType] = None
    original_amount: float = Field(..., gt=0)
    current_balance: float = Field(..., ge=0)
    interest_rate: float = Field(..., ge=0)
    monthly_payment: float = Field(..., ge=0)
    start_date: dt.date
    term_months: Optional[int] = Field(default=None, gt=0)
    notes: Optional[str] = None
    is_active: bool = True


class RentalIncomeIn(BaseModel):
    tenant_name: Optional[str] = Field(default=None, max_length=120)
    amount: float = Field(..., gt=0)
    payment_date: dt.date
    month_year: Optional[str] = Field(default=None, pattern=r"^\d{4}-(0[1-9]|1[0-2])$")
    payment_method: Optional[PaymentMethod] = None
    notes: Optional[str] = None


class PropertyExpenseIn(BaseModel):
    expense_type: PropertyExpenseType
    amount: float = Field(..., gt=0)
    expense_date: dt.date
    vendor: Optional[str] = Field(default=None, max_length=120)
    description: Optional[str] = None
    is_recurring: bool = False


class PropertyTenantIn(BaseModel):
    tenant_name: str = Field(..., min_length=1, max_length=120)
    tenant_email: Optional[str] = Field(default=None, max_length=255)
    tenant_phone: Optional[str] = Field(default=None, max_length=40)
    monthly_rent: float = Field(..., gt=0)
    security_deposit: Optional[float] = Field(default=None, ge=0)
    lease_start_date: dt.date
    lease_end_date: Optional[dt.date] = None
    is_active: bool = True
    notes: Optional[str] = None


class AITokenIn(BaseModel):
    service: AIService
    token: str = Field(..., min_length=10, max_length=512)


class TokenTestIn(BaseModel):
    service: AIService
    token: str = Field(..., min_length=1, max_length=512)


class ChatIn(BaseModel):
    message: str = Field(..., min_length=1, max_length=2000)


class SchedulerConfigIn(BaseModel):
    daily_enabled: Optional[bool] = None
    five_hour_enabled: Optional[bool] = None


class InsightOut(BaseModel):
    """One structured insight as returned by a language model."""

    model_config = ConfigDict(extra="ignore", str_strip_whitespace=True)

    type: Literal["warning", "success", "info"]
    title: str = Field(..., min_length=1, max_length=200)
    message: str = Field(..., min_length=1)
    recommendation: str = ""
    impact: Literal["high", "medium", "low", "positive"]
