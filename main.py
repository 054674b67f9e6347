import logging
from datetime import date
from typing import Optional

from fastapi import Depends, FastAPI, HTTPException, Query, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from auth import current_user_id, issue_token
from config import get_settings
from database import SessionLocal, init_db
from encryption import warn_if_default_key
from llm import LLMError, LLMService, NoProvidersConfigured
from models import AccountType, OpportunityStatus, RiskLevel, TransactionType
from periods import Period, resolve_month
from scheduler import SchedulerManager
from schemas import (
    AccountIn,
    AITokenIn,
    AssetIn,
    BillIn,
    BillPaymentIn,
    BudgetGoalIn,
    ChatIn,
    CreditScoreIn,
    FinancialTargetIn,
    IncomeSourceIn,
    LoginIn,
    OpportunityIn,
    PropertyExpenseIn,
    PropertyIn,
    PropertyLoanIn,
    PropertyTenantIn,
    RegisterIn,
    RentalIncomeIn,
    RetirementAccountIn,
    SchedulerConfigIn,
    SnapshotIn,
    TokenTestIn,
    TransactionIn,
)
from services import (
    AI_SERVICE_LINKS,
    AccountService,
    AITokenService,
    AssetService,
    BillService,
    BudgetService,
    CreditScoreService,
    FinancialTargetService,
    IncomeService,
    InsightService,
    OpportunityService,
    PropertyService,
    RetirementAccountService,
    TransactionService,
    UserService,
    WealthService,
)


logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

app = FastAPI(title="Finance Tracker")


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def month_from_query(month: Optional[str] = None) -> Period:
    try:
        return resolve_month(month)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc


def _not_found(exc: ValueError) -> HTTPException:
    return HTTPException(status_code=404, detail=str(exc))


def _deleted(label: str) -> dict[str, str]:
    return {"message": f"{label} deleted successfully"}


scheduler_manager = SchedulerManager()


@app.on_event("startup")
def startup_event():
    init_db()
    warn_if_default_key()
    if get_settings().scheduler_enabled:
        scheduler_manager.start()


@app.on_event("shutdown")
def shutdown_event():
    scheduler_manager.stop()


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    first = errors[0] if errors else {}
    loc = [str(part) for part in first.get("loc", ()) if part not in ("body", "query", "path")]
    field = ".".join(loc) or "request"
    message = f"{field}: {first.get('msg', 'Invalid value')}"
    return JSONResponse(status_code=400, content={"detail": message})


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception(f"request_failed: method={request.method} path={request.url.path}")
    return JSONResponse(status_code=500, content={"detail": "Internal server error"})


@app.get("/api/health")
def health():
    return {"status": "ok"}


# auth


@app.post("/api/auth/register", status_code=201)
def register(payload: RegisterIn, db: Session = Depends(get_db)):
    try:
        user = UserService(db).register(payload)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return {"token": issue_token(user.id), "user": user.to_dict()}


@app.post("/api/auth/login")
def login(payload: LoginIn, db: Session = Depends(get_db)):
    user = UserService(db).authenticate(payload)
    if not user:
        raise HTTPException(status_code=401, detail="Invalid username or password")
    return {"token": issue_token(user.id), "user": user.to_dict()}


@app.get("/api/auth/me")
def me(user_id: int = Depends(current_user_id), db: Session = Depends(get_db)):
    try:
        return UserService(db).get(user_id).to_dict()
    except ValueError as exc:
        raise HTTPException(status_code=401, detail=str(exc)) from exc


# transactions


@app.get("/api/transactions")
def list_transactions(
    start_date: Optional[date] = Query(default=None, alias="startDate"),
    end_date: Optional[date] = Query(default=None, alias="endDate"),
    type: Optional[TransactionType] = None,
    category: Optional[str] = None,
    user_id: int = Depends(current_user_id),
    db: Session = Depends(get_db),
):
    rows = TransactionService(db, user_id).list(start_date, end_date, type, category)
    return [row.to_dict() for row in rows]


@app.get("/api/transactions/{transaction_id}")
def get_transaction(
    transaction_id: int,
    user_id: int = Depends(current_user_id),
    db: Session = Depends(get_db),
):
    try:
        return TransactionService(db, user_id).get(transaction_id).to_dict()
    except ValueError as exc:
        raise _not_found(exc) from exc


@app.post("/api/transactions", status_code=201)
def create_transaction(
    payload: TransactionIn,
    user_id: int = Depends(current_user_id),
    db: Session = Depends(get_db),
):
    return TransactionService(db, user_id).create(payload).to_dict()


@app.put("/api/transactions/{transaction_id}")
def update_transaction(
    transaction_id: int,
    payload: TransactionIn,
    user_id: int = Depends(current_user_id),
    db: Session = Depends(get_db),
):
    try:
        return TransactionService(db, user_id).update(transaction_id, payload).to_dict()
    except ValueError as exc:
        raise _not_found(exc) from exc


@app.delete("/api/transactions/{transaction_id}")
def delete_transaction(
    transaction_id: int,
    user_id: int = Depends(current_user_id),
    db: Session = Depends(get_db),
):
    try:
        TransactionService(db, user_id).delete(transaction_id)
    except ValueError as exc:
        raise _not_found(exc) from exc
    return _deleted("Transaction")


# budget


@app.get("/api/budget/overview")
def budget_overview(
    period: Period = Depends(month_from_query),
    user_id: int = Depends(current_user_id),
    db: Session = Depends(get_db),
):
    return BudgetService(db, user_id).overview(period)


@app.get("/api/budget/analysis")
def budget_analysis(
    period: Period = Depends(month_from_query),
    user_id: int = Depends(current_user_id),
    db: Session = Depends(get_db),
):
    return BudgetService(db, user_id).analysis(period)


@app.get("/api/budget/goals")
def list_budget_goals(
    user_id: int = Depends(current_user_id), db: Session = Depends(get_db)
):
    return [goal.to_dict() for goal in BudgetService(db, user_id).list_goals()]


@app.post("/api/budget/goals", status_code=201)
def save_budget_goal(
    payload: BudgetGoalIn,
    user_id: int = Depends(current_user_id),
    db: Session = Depends(get_db),
):
    return BudgetService(db, user_id).upsert_goal(payload).to_dict()


@app.delete("/api/budget/goals/{goal_id}")
def delete_budget_goal(
    goal_id: int,
    user_id: int = Depends(current_user_id),
    db: Session = Depends(get_db),
):
    try:
        BudgetService(db, user_id).delete_goal(goal_id)
    except ValueError as exc:
        raise _not_found(exc) from exc
    return _deleted("Budget goal")


@app.get("/api/budget/variance")
def budget_variance(
    period: Period = Depends(month_from_query),
    user_id: int = Depends(current_user_id),
    db: Session = Depends(get_db),
):
    return BudgetService(db, user_id).variance(period)


@app.get("/api/budget/trends")
def budget_trends(
    months: int = Query(default=6, ge=1, le=60),
    user_id: int = Depends(current_user_id),
    db: Session = Depends(get_db),
):
    return BudgetService(db, user_id).trends(months)


# income


@app.get("/api/income")
def list_income(
    is_active: Optional[bool] = None,
    user_id: int = Depends(current_user_id),
    db: Session = Depends(get_db),
):
    return [row.to_dict() for row in IncomeService(db, user_id).list(is_active)]


@app.get("/api/income/summary")
def income_summary(user_id: int = Depends(current_user_id), db: Session = Depends(get_db)):
    return IncomeService(db, user_id).summary()


@app.get("/api/income/{source_id}")
def get_income(
    source_id: int,
    user_id: int = Depends(current_user_id),
    db: Session = Depends(get_db),
):
    try:
        return IncomeService(db, user_id).get(source_id).to_dict()
    except ValueError as exc:
        raise _not_found(exc) from exc


@app.post("/api/income", status_code=201)
def create_income(
    payload: IncomeSourceIn,
    user_id: int = Depends(current_user_id),
    db: Session = Depends(get_db),
):
    return IncomeService(db, user_id).create(payload).to_dict()


@app.put("/api/income/{source_id}")
def update_income(
    source_id: int,
    payload: IncomeSourceIn,
    user_id: int = Depends(current_user_id),
    db: Session = Depends(get_db),
):
    try:
        return IncomeService(db, user_id).update(source_id, payload).to_dict()
    except ValueError as exc:
        raise _not_found(exc) from exc


@app.delete("/api/income/{source_id}")
def delete_income(
    source_id: int,
    user_id: int = Depends(current_user_id),
    db: Session = Depends(get_db),
):
    try:
        IncomeService(db, user_id).delete(source_id)
    except ValueError as exc:
        raise _not_found(exc) from exc
    return _deleted("Income source")


# bills


@app.get("/api/bills")
def list_bills(
    is_active: Optional[bool] = None,
    user_id: int = Depends(current_user_id),
    db: Session = Depends(get_db),
):
    return [bill.to_dict() for bill in BillService(db, user_id).list(is_active)]


@app.get("/api/bills/analytics/summary")
def bills_analytics_summary(
    months: int = Query(default=6, ge=1, le=60),
    user_id: int = Depends(current_user_id),
    db: Session = Depends(get_db),
):
    return BillService(db, user_id).analytics_summary(months)


@app.get("/api/bills/analytics/trends")
def bills_analytics_trends(
    months: int = Query(default=12, ge=1, le=60),
    user_id: int = Depends(current_user_id),
    db: Session = Depends(get_db),
):
    return BillService(db, user_id).analytics_trends(months)


@app.get("/api/bills/{bill_id}")
def get_bill(
    bill_id: int,
    user_id: int = Depends(current_user_id),
    db: Session = Depends(get_db),
):
    try:
        return BillService(db, user_id).detail(bill_id)
    except ValueError as exc:
        raise _not_found(exc) from exc


@app.post("/api/bills", status_code=201)
def create_bill(
    payload: BillIn,
    user_id: int = Depends(current_user_id),
    db: Session = Depends(get_db),
):
    return BillService(db, user_id).create(payload).to_dict()


@app.put("/api/bills/{bill_id}")
def update_bill(
    bill_id: int,
    payload: BillIn,
    user_id: int = Depends(current_user_id),
    db: Session = Depends(get_db),
):
    try:
        return BillService(db, user_id).update(bill_id, payload).to_dict()
    except ValueError as exc:
        raise _not_found(exc) from exc


@app.delete("/api/bills/payments/{payment_id}")
def delete_bill_payment(
    payment_id: int,
    user_id: int = Depends(current_user_id),
    db: Session = Depends(get_db),
):
    try:
        BillService(db, user_id).delete_payment(payment_id)
    except ValueError as exc:
        raise _not_found(exc) from exc
    return _deleted("Payment")


@app.delete("/api/bills/{bill_id}")
def delete_bill(
    bill_id: int,
    user_id: int = Depends(current_user_id),
    db: Session = Depends(get_db),
):
    try:
        BillService(db, user_id).delete(bill_id)
    except ValueError as exc:
        raise _not_found(exc) from exc
    return _deleted("Bill")


@app.post("/api/bills/{bill_id}/payments", status_code=201)
def add_bill_payment(
    bill_id: int,
    payload: BillPaymentIn,
    user_id: int = Depends(current_user_id),
    db: Session = Depends(get_db),
):
    try:
        return BillService(db, user_id).add_payment(bill_id, payload).to_dict()
    except ValueError as exc:
        raise _not_found(exc) from exc


@app.get("/api/bills/{bill_id}/payments")
def list_bill_payments(
    bill_id: int,
    limit: Optional[int] = Query(default=None, ge=1, le=500),
    user_id: int = Depends(current_user_id),
    db: Session = Depends(get_db),
):
    try:
        rows = BillService(db, user_id).payments(bill_id, limit)
    except ValueError as exc:
        raise _not_found(exc) from exc
    return [row.to_dict() for row in rows]


# wealth


@app.get("/api/wealth/networth")
def get_net_worth(user_id: int = Depends(current_user_id), db: Session = Depends(get_db)):
    return WealthService(db, user_id).net_worth()


@app.post("/api/wealth/networth/snapshot", status_code=201)
def save_net_worth_snapshot(
    payload: SnapshotIn,
    user_id: int = Depends(current_user_id),
    db: Session = Depends(get_db),
):
    return WealthService(db, user_id).create_snapshot(payload).to_dict()


@app.get("/api/wealth/networth/history")
def net_worth_history(
    user_id: int = Depends(current_user_id), db: Session = Depends(get_db)
):
    return [row.to_dict() for row in WealthService(db, user_id).history()]


@app.get("/api/wealth/accounts")
def list_accounts(
    type: Optional[AccountType] = None,
    user_id: int = Depends(current_user_id),
    db: Session = Depends(get_db),
):
    return [row.to_dict() for row in AccountService(db, user_id).list(type)]


@app.post("/api/wealth/accounts", status_code=201)
def create_account(
    payload: AccountIn,
    user_id: int = Depends(current_user_id),
    db: Session = Depends(get_db),
):
    return AccountService(db, user_id).create(payload).to_dict()


@app.put("/api/wealth/accounts/{account_id}")
def update_account(
    account_id: int,
    payload: AccountIn,
    user_id: int = Depends(current_user_id),
    db: Session = Depends(get_db),
):
    try:
        return AccountService(db, user_id).update(account_id, payload).to_dict()
    except ValueError as exc:
        raise _not_found(exc) from exc


@app.delete("/api/wealth/accounts/{account_id}")
def delete_account(
    account_id: int,
    user_id: int = Depends(current_user_id),
    db: Session = Depends(get_db),
):
    try:
        AccountService(db, user_id).delete(account_id)
    except ValueError as exc:
        raise _not_found(exc) from exc
    return _deleted("Account")


@app.get("/api/wealth/retirement")
def list_retirement_accounts(
    user_id: int = Depends(current_user_id), db: Session = Depends(get_db)
):
    return [row.to_dict() for row in RetirementAccountService(db, user_id).list()]


@app.post("/api/wealth/retirement", status_code=201)
def create_retirement_account(
    payload: RetirementAccountIn,
    user_id: int = Depends(current_user_id),
    db: Session = Depends(get_db),
):
    return RetirementAccountService(db, user_id).create(payload).to_dict()


@app.put("/api/wealth/retirement/{account_id}")
def update_retirement_account(
    account_id: int,
    payload: RetirementAccountIn,
    user_id: int = Depends(current_user_id),
    db: Session = Depends(get_db),
):
    try:
        return RetirementAccountService(db, user_id).update(account_id, payload).to_dict()
    except ValueError as exc:
        raise _not_found(exc) from exc


@app.delete("/api/wealth/retirement/{account_id}")
def delete_retirement_account(
    account_id: int,
    user_id: int = Depends(current_user_id),
    db: Session = Depends(get_db),
):
    try:
        RetirementAccountService(db, user_id).delete(account_id)
    except ValueError as exc:
        raise _not_found(exc) from exc
    return _deleted("Retirement account")


@app.get("/api/wealth/assets")
def list_assets(user_id: int = Depends(current_user_id), db: Session = Depends(get_db)):
    return [row.to_dict() for row in AssetService(db, user_id).list()]


@app.post("/api/wealth/assets", status_code=201)
def create_asset(
    payload: AssetIn,
    user_id: int = Depends(current_user_id),
    db: Session = Depends(get_db),
):
    return AssetService(db, user_id).create(payload).to_dict()


@app.put("/api/wealth/assets/{asset_id}")
def update_asset(
    asset_id: int,
    payload: AssetIn,
    user_id: int = Depends(current_user_id),
    db: Session = Depends(get_db),
):
    try:
        return AssetService(db, user_id).update(asset_id, payload).to_dict()
    except ValueError as exc:
        raise _not_found(exc) from exc


@app.delete("/api/wealth/assets/{asset_id}")
def delete_asset(
    asset_id: int,
    user_id: int = Depends(current_user_id),
    db: Session = Depends(get_db),
):
    try:
        AssetService(db, user_id).delete(asset_id)
    except ValueError as exc:
        raise _not_found(exc) from exc
    return _deleted("Asset")


@app.get("/api/wealth/targets")
def list_targets(user_id: int = Depends(current_user_id), db: Session = Depends(get_db)):
    return [row.to_dict() for row in FinancialTargetService(db, user_id).list()]


@app.post("/api/wealth/targets", status_code=201)
def create_target(
    payload: FinancialTargetIn,
    user_id: int = Depends(current_user_id),
    db: Session = Depends(get_db),
):
    return FinancialTargetService(db, user_id).create(payload).to_dict()


@app.put("/api/wealth/targets/{target_id}")
def update_target(
    target_id: int,
    payload: FinancialTargetIn,
    user_id: int = Depends(current_user_id),
    db: Session = Depends(get_db),
):
    try:
        return FinancialTargetService(db, user_id).update(target_id, payload).to_dict()
    except ValueError as exc:
        raise _not_found(exc) from exc


@app.delete("/api/wealth/targets/{target_id}")
def delete_target(
    target_id: int,
    user_id: int = Depends(current_user_id),
    db: Session = Depends(get_db),
):
    try:
        FinancialTargetService(db, user_id).delete(target_id)
    except ValueError as exc:
        raise _not_found(exc) from exc
    return _deleted("Target")


@app.get("/api/wealth/credit")
def list_credit_scores(
    user_id: int = Depends(current_user_id), db: Session = Depends(get_db)
):
    return [row.to_dict() for row in CreditScoreService(db, user_id).list()]


@app.post("/api/wealth/credit", status_code=201)
def create_credit_score(
    payload: CreditScoreIn,
    user_id: int = Depends(current_user_id),
    db: Session = Depends(get_db),
):
    return CreditScoreService(db, user_id).create(payload).to_dict()


@app.delete("/api/wealth/credit/{score_id}")
def delete_credit_score(
    score_id: int,
    user_id: int = Depends(current_user_id),
    db: Session = Depends(get_db),
):
    try:
        CreditScoreService(db, user_id).delete(score_id)
    except ValueError as exc:
        raise _not_found(exc) from exc
    return _deleted("Credit score")


# opportunities


@app.get("/api/opportunities")
def list_opportunities(
    status: Optional[OpportunityStatus] = None,
    risk_level: Optional[RiskLevel] = None,
    user_id: int = Depends(current_user_id),
    db: Session = Depends(get_db),
):
    rows = OpportunityService(db, user_id).list(status, risk_level)
    return [row.to_dict() for row in rows]


@app.get("/api/opportunities/analytics")
def opportunity_analytics(
    user_id: int = Depends(current_user_id), db: Session = Depends(get_db)
):
    return OpportunityService(db, user_id).analytics()


@app.get("/api/opportunities/{opportunity_id}")
def get_opportunity(
    opportunity_id: int,
    user_id: int = Depends(current_user_id),
    db: Session = Depends(get_db),
):
    try:
        return OpportunityService(db, user_id).get(opportunity_id).to_dict()
    except ValueError as exc:
        raise _not_found(exc) from exc


@app.post("/api/opportunities", status_code=201)
def create_opportunity(
    payload: OpportunityIn,
    user_id: int = Depends(current_user_id),
    db: Session = Depends(get_db),
):
    return OpportunityService(db, user_id).create(payload).to_dict()


@app.put("/api/opportunities/{opportunity_id}")
def update_opportunity(
    opportunity_id: int,
    payload: OpportunityIn,
    user_id: int = Depends(current_user_id),
    db: Session = Depends(get_db),
):
    try:
        return OpportunityService(db, user_id).update(opportunity_id, payload).to_dict()
    except ValueError as exc:
        raise _not_found(exc) from exc


@app.delete("/api/opportunities/{opportunity_id}")
def delete_opportunity(
    opportunity_id: int,
    user_id: int = Depends(current_user_id),
    db: Session = Depends(get_db),
):
    try:
        OpportunityService(db, user_id).delete(opportunity_id)
    except ValueError as exc:
        raise _not_found(exc) from exc
    return _deleted("Opportunity")


# properties


@app.get("/api/properties")
def list_properties(
    user_id: int = Depends(current_user_id), db: Session = Depends(get_db)
):
    return [row.to_dict() for row in PropertyService(db, user_id).list()]


@app.get("/api/properties/{property_id}")
def get_property(
    property_id: int,
    user_id: int = Depends(current_user_id),
    db: Session = Depends(get_db),
):
    try:
        return PropertyService(db, user_id).detail(property_id)
    except ValueError as exc:
        raise _not_found(exc) from exc


@app.post("/api/properties", status_code=201)
def create_property(
    payload: PropertyIn,
    user_id: int = Depends(current_user_id),
    db: Session = Depends(get_db),
):
    return PropertyService(db, user_id).create(payload).to_dict()


@app.put("/api/properties/{property_id}")
def update_property(
    property_id: int,
    payload: PropertyIn,
    user_id: int = Depends(current_user_id),
    db: Session = Depends(get_db),
):
    try:
        return PropertyService(db, user_id).update(property_id, payload).to_dict()
    except ValueError as exc:
        raise _not_found(exc) from exc


@app.delete("/api/properties/{property_id}")
def delete_property(
    property_id: int,
    user_id: int = Depends(current_user_id),
    db: Session = Depends(get_db),
):
    try:
        PropertyService(db, user_id).delete(property_id)
    except ValueError as exc:
        raise _not_found(exc) from exc
    return _deleted("Property")


@app.get("/api/properties/{property_id}/summary")
def property_summary(
    property_id: int,
    user_id: int = Depends(current_user_id),
    db: Session = Depends(get_db),
):
    try:
        return PropertyService(db, user_id).summary(property_id)
    except ValueError as exc:
        raise _not_found(exc) from exc


@app.get("/api/properties/{property_id}/loans")
def list_property_loans(
    property_id: int,
    user_id: int = Depends(current_user_id),
    db: Session = Depends(get_db),
):
    try:
        rows = PropertyService(db, user_id).loans(property_id)
    except ValueError as exc:
        raise _not_found(exc) from exc
    return [row.to_dict() for row in rows]


@app.post("/api/properties/{property_id}/loans", status_code=201)
def create_property_loan(
    property_id: int,
    payload: PropertyLoanIn,
    user_id: int = Depends(current_user_id),
    db: Session = Depends(get_db),
):
    try:
        return PropertyService(db, user_id).add_loan(property_id, payload).to_dict()
    except ValueError as exc:
        raise _not_found(exc) from exc


@app.put("/api/properties/{property_id}/loans/{loan_id}")
def update_property_loan(
    property_id: int,
    loan_id: int,
    payload: PropertyLoanIn,
    user_id: int = Depends(current_user_id),
    db: Session = Depends(get_db),
):
    try:
        loan = PropertyService(db, user_id).update_loan(property_id, loan_id, payload)
    except ValueError as exc:
        raise _not_found(exc) from exc
    return loan.to_dict()


@app.get("/api/properties/{property_id}/income")
def list_rental_income(
    property_id: int,
    user_id: int = Depends(current_user_id),
    db: Session = Depends(get_db),
):
    try:
        rows = PropertyService(db, user_id).rental_income(property_id)
    except ValueError as exc:
        raise _not_found(exc) from exc
    return [row.to_dict() for row in rows]


@app.post("/api/properties/{property_id}/income", status_code=201)
def create_rental_income(
    property_id: int,
    payload: RentalIncomeIn,
    user_id: int = Depends(current_user_id),
    db: Session = Depends(get_db),
):
    try:
        row = PropertyService(db, user_id).add_rental_income(property_id, payload)
    except ValueError as exc:
        raise _not_found(exc) from exc
    return row.to_dict()


@app.get("/api/properties/{property_id}/expenses")
def list_property_expenses(
    property_id: int,
    user_id: int = Depends(current_user_id),
    db: Session = Depends(get_db),
):
    try:
        rows = PropertyService(db, user_id).expenses(property_id)
    except ValueError as exc:
        raise _not_found(exc) from exc
    return [row.to_dict() for row in rows]


@app.post("/api/properties/{property_id}/expenses", status_code=201)
def create_property_expense(
    property_id: int,
    payload: PropertyExpenseIn,
    user_id: int = Depends(current_user_id),
    db: Session = Depends(get_db),
):
    try:
        return PropertyService(db, user_id).add_expense(property_id, payload).to_dict()
    except ValueError as exc:
        raise _not_found(exc) from exc


@app.get("/api/properties/{property_id}/tenants")
def list_property_tenants(
    property_id: int,
    user_id: int = Depends(current_user_id),
    db: Session = Depends(get_db),
):
    try:
        rows = PropertyService(db, user_id).tenants(property_id)
    except ValueError as exc:
        raise _not_found(exc) from exc
    return [row.to_dict() for row in rows]


@app.post("/api/properties/{property_id}/tenants", status_code=201)
def create_property_tenant(
    property_id: int,
    payload: PropertyTenantIn,
    user_id: int = Depends(current_user_id),
    db: Session = Depends(get_db),
):
    try:
        return PropertyService(db, user_id).add_tenant(property_id, payload).to_dict()
    except ValueError as exc:
        raise _not_found(exc) from exc


@app.put("/api/properties/{property_id}/tenants/{tenant_id}")
def update_property_tenant(
    property_id: int,
    tenant_id: int,
    payload: PropertyTenantIn,
    user_id: int = Depends(current_user_id),
    db: Session = Depends(get_db),
):
    try:
        tenant = PropertyService(db, user_id).update_tenant(property_id, tenant_id, payload)
    except ValueError as exc:
        raise _not_found(exc) from exc
    return tenant.to_dict()


# ai tokens


@app.get("/api/ai-tokens")
def list_ai_tokens(user_id: int = Depends(current_user_id), db: Session = Depends(get_db)):
    return AITokenService(db, user_id).list()


@app.post("/api/ai-tokens")
def save_ai_token(
    payload: AITokenIn,
    response: Response,
    user_id: int = Depends(current_user_id),
    db: Session = Depends(get_db),
):
    service = AITokenService(db, user_id)
    row, created = service.upsert(payload)
    response.status_code = 201 if created else 200
    verb = "added" if created else "updated"
    return {
        "message": f"{payload.service.value} token {verb} successfully",
        "token": service.describe(row),
    }


@app.get("/api/ai-tokens/links")
def ai_token_links(user_id: int = Depends(current_user_id)):
    return AI_SERVICE_LINKS


@app.get("/api/ai-tokens/status")
def ai_token_status(user_id: int = Depends(current_user_id), db: Session = Depends(get_db)):
    return AITokenService(db, user_id).status()


@app.post("/api/ai-tokens/test")
def test_ai_token(
    payload: TokenTestIn,
    user_id: int = Depends(current_user_id),
    db: Session = Depends(get_db),
):
    return AITokenService(db, user_id).test(payload.service, payload.token)


@app.put("/api/ai-tokens/{token_id}/toggle")
def toggle_ai_token(
    token_id: int,
    user_id: int = Depends(current_user_id),
    db: Session = Depends(get_db),
):
    service = AITokenService(db, user_id)
    try:
        row = service.toggle(token_id)
    except ValueError as exc:
        raise _not_found(exc) from exc
    state = "activated" if row.is_active else "deactivated"
    return {"message": f"Token {state} successfully", "token": service.describe(row)}


@app.delete("/api/ai-tokens/{token_id}")
def delete_ai_token(
    token_id: int,
    user_id: int = Depends(current_user_id),
    db: Session = Depends(get_db),
):
    try:
        AITokenService(db, user_id).delete(token_id)
    except ValueError as exc:
        raise _not_found(exc) from exc
    return _deleted("Token")


# ai


@app.get("/api/ai/insights")
def ai_insights(user_id: int = Depends(current_user_id), db: Session = Depends(get_db)):
    return InsightService(db, user_id).rule_insights()


@app.post("/api/ai/chat")
def ai_chat(
    payload: ChatIn,
    user_id: int = Depends(current_user_id),
    db: Session = Depends(get_db),
):
    return InsightService(db, user_id).chat(payload)


@app.get("/api/ai/wealth-growth")
def ai_wealth_growth(
    user_id: int = Depends(current_user_id), db: Session = Depends(get_db)
):
    return InsightService(db, user_id).wealth_growth()


@app.post("/api/ai/llm-insights")
def ai_llm_insights(
    user_id: int = Depends(current_user_id), db: Session = Depends(get_db)
):
    try:
        return InsightService(db, user_id).llm_insights(LLMService(db, user_id))
    except NoProvidersConfigured as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    except LLMError as exc:
        logger.warning(f"llm_insights_failed: user={user_id} error={exc}")
        raise HTTPException(
            status_code=500, detail="AI analysis is unavailable right now"
        ) from exc


@app.get("/api/ai/history")
def ai_history(
    limit: int = Query(default=20, ge=1, le=100),
    user_id: int = Depends(current_user_id),
    db: Session = Depends(get_db),
):
    return InsightService(db, user_id).history(limit)


@app.get("/api/ai/scheduler")
def get_ai_scheduler(
    user_id: int = Depends(current_user_id), db: Session = Depends(get_db)
):
    return InsightService(db, user_id).scheduler_config()


@app.put("/api/ai/scheduler")
def update_ai_scheduler(
    payload: SchedulerConfigIn,
    user_id: int = Depends(current_user_id),
    db: Session = Depends(get_db),
):
    return InsightService(db, user_id).update_scheduler_config(payload)


def main():
    import uvicorn

    uvicorn.run("main:app", host="0.0.0.0", port=8000, reload=False)


if __name__ == "__main__":
    main()
