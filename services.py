from __future__ import annotations

import json
import logging
from datetime import date, datetime, timezone
from typing import Callable, Optional

from pydantic import BaseModel
from sqlalchemy import and_, func, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

import finance
from auth import hash_password, verify_password
from encryption import EncryptionError, decrypt, encrypt, mask_token
from insights import (
    FALLBACK_TEXT,
    HELP_TEXT,
    detect_intent,
    generate_insights,
    summarize_insights,
    wealth_growth_opportunities,
)
from llm import CompletionOptions, LLMService, check_connection
from models import (
    ASSET_ACCOUNT_TYPES,
    LIABILITY_ACCOUNT_TYPES,
    AIInsightRecord,
    AISchedulerConfig,
    AIService,
    AIToken,
    Account,
    AccountType,
    Asset,
    Bill,
    BillPayment,
    BudgetGoal,
    CreditScore,
    FinancialTarget,
    IncomeSource,
    InvestmentProperty,
    NetWorthSnapshot,
    Opportunity,
    OpportunityStatus,
    PropertyExpense,
    PropertyLoan,
    PropertyTenant,
    RentalIncome,
    RetirementAccount,
    RiskLevel,
    Transaction,
    TransactionType,
    User,
)
from periods import (
    Period,
    add_months,
    month_key,
    resolve_month,
    trailing_days,
    trailing_month_key,
    trailing_month_keys,
)
from prompts import QUICK_SCAN_SYSTEM_PROMPT, quick_scan_prompt
from schemas import (
    AITokenIn,
    BillPaymentIn,
    BudgetGoalIn,
    ChatIn,
    LoginIn,
    PropertyExpenseIn,
    PropertyLoanIn,
    PropertyTenantIn,
    RegisterIn,
    RentalIncomeIn,
    SchedulerConfigIn,
    SnapshotIn,
    TransactionIn,
)


logger = logging.getLogger(__name__)

INSIGHT_WINDOW_DAYS = 30
PREDICTION_WINDOW_MONTHS = 6
TOP_CATEGORY_LIMIT = 5


def _sum(value) -> float:
    return float(value or 0)


class UserService:
    def __init__(self, session: Session) -> None:
        self.session = session

    def register(self, data: RegisterIn) -> User:
        username = data.username.strip()
        email = data.email.strip().lower()
        existing = self.session.scalar(
            select(User).where(
                or_(func.lower(User.username) == username.lower(), User.email == email)
            )
        )
        if existing:
            raise ValueError("Username or email already registered")
        user = User(
            username=username, email=email, password_hash=hash_password(data.password)
        )
        self.session.add(user)
        try:
            self.session.commit()
        except IntegrityError as exc:
            self.session.rollback()
            raise ValueError("Username or email already registered") from exc
        self.session.refresh(user)
        logger.info(f"user_registered: user={user.id}")
        return user

    def authenticate(self, data: LoginIn) -> Optional[User]:
        user = self.session.scalar(
            select(User).where(func.lower(User.username) == data.username.strip().lower())
        )
        if not user or not verify_password(data.password, user.password_hash):
            return None
        return user

    def get(self, user_id: int) -> User:
        user = self.session.get(User, user_id)
        if not user:
            raise ValueError("User not found")
        return user


class OwnedRecordService:
    """CRUD for a table whose rows belong to one user.

    Subclasses set ``model`` and ``label``; ``label`` feeds the
    ``"<label> not found"`` message the routes turn into a 404.
    """

    model: type = None
    label: str = "Record"

    def __init__(self, session: Session, user_id: int) -> None:
        self.session = session
        self.user_id = user_id

    def _owned(self):
        return select(self.model).where(self.model.user_id == self.user_id)

    def _values(self, data: BaseModel) -> dict[str, object]:
        return data.model_dump()

    def get(self, record_id: int):
        record = self.session.get(self.model, record_id)
        if not record or record.user_id != self.user_id:
            raise ValueError(f"{self.label} not found")
        return record

    def create(self, data: BaseModel):
        record = self.model(user_id=self.user_id, **self._values(data))
        self.session.add(record)
        self.session.commit()
        self.session.refresh(record)
        return record

    def update(self, record_id: int, data: BaseModel):
        record = self.get(record_id)
        for key, value in self._values(data).items():
            setattr(record, key, value)
        self.session.commit()
        self.session.refresh(record)
        return record

    def delete(self, record_id: int) -> None:
        record = self.get(record_id)
        self.session.delete(record)
        self.session.commit()


class TransactionService(OwnedRecordService):
    model = Transaction
    label = "Transaction"

    def list(
        self,
        start: Optional[date] = None,
        end: Optional[date] = None,
        type: Optional[TransactionType] = None,
        category: Optional[str] = None,
    ) -> list[Transaction]:
        stmt = self._owned()
        if start:
            stmt = stmt.where(Transaction.date >= start)
        if end:
            stmt = stmt.where(Transaction.date <= end)
        if type:
            stmt = stmt.where(Transaction.type == type)
        if category:
            stmt = stmt.where(Transaction.category == category)
        stmt = stmt.order_by(Transaction.date.desc(), Transaction.id.desc())
        return self.session.scalars(stmt).all()

    def totals(self, start: date, end: date) -> tuple[float, float]:
        stmt = (
            select(Transaction.type, func.sum(Transaction.amount))
            .where(
                Transaction.user_id == self.user_id,
                Transaction.date >= start,
                Transaction.date <= end,
            )
            .group_by(Transaction.type)
        )
        totals = {row[0]: _sum(row[1]) for row in self.session.execute(stmt)}
        return (
            totals.get(TransactionType.income, 0.0),
            totals.get(TransactionType.expense, 0.0),
        )

    def expense_categories(self, start: date, end: date) -> list[finance.CategoryTotal]:
        total = func.sum(Transaction.amount)
        stmt = (
            select(Transaction.category, total, func.count(Transaction.id))
            .where(
                Transaction.user_id == self.user_id,
                Transaction.type == TransactionType.expense,
                Transaction.date >= start,
                Transaction.date <= end,
            )
            .group_by(Transaction.category)
            .order_by(total.desc(), Transaction.category)
        )
        return [
            finance.CategoryTotal(row[0], _sum(row[1]), int(row[2]))
            for row in self.session.execute(stmt)
        ]

    def monthly_series(self, months: int, today: date) -> dict[str, dict[str, float]]:
        first = add_months(today, -(months - 1))
        last = resolve_month(month_key(today)).end
        month_col = func.strftime("%Y-%m", Transaction.date)
        stmt = (
            select(month_col, Transaction.type, func.sum(Transaction.amount))
            .where(
                Transaction.user_id == self.user_id,
                Transaction.date >= first,
                Transaction.date <= last,
            )
            .group_by(month_col, Transaction.type)
        )
        series: dict[str, dict[str, float]] = {}
        for key, txn_type, amount in self.session.execute(stmt):
            bucket = series.setdefault(key, {})
            bucket[txn_type.value] = _sum(amount)
        return series


class BudgetService:
    def __init__(self, session: Session, user_id: int) -> None:
        self.session = session
        self.user_id = user_id
        self.transactions = TransactionService(session, user_id)

    def overview(self, period: Period) -> dict[str, object]:
        income, expenses = self.transactions.totals(period.start, period.end)
        categories = self.transactions.expense_categories(period.start, period.end)
        return {
            "month": period.slug,
            "income": income,
            "expenses": expenses,
            "balance": income - expenses,
            "category_breakdown": [
                {"category": item.category, "total": item.total} for item in categories
            ],
        }

    def analysis(self, period: Period) -> dict[str, object]:
        categories = self.transactions.expense_categories(period.start, period.end)
        income, _ = self.transactions.totals(period.start, period.end)
        expenses = sum(item.total for item in categories)
        suggestions = finance.savings_suggestions(categories, income, expenses)
        return {
            "month": period.slug,
            "total_income": income,
            "total_expenses": expenses,
            "savings_rate": finance.savings_rate(income, expenses),
            "expenses": [item.to_dict() for item in categories],
            "suggestions": [item.to_dict() for item in suggestions],
            "total_potential_savings": finance.total_potential_savings(suggestions),
        }

    def list_goals(self) -> list[BudgetGoal]:
        stmt = (
            select(BudgetGoal)
            .where(BudgetGoal.user_id == self.user_id)
            .order_by(BudgetGoal.category)
        )
        return self.session.scalars(stmt).all()

    def upsert_goal(self, data: BudgetGoalIn) -> BudgetGoal:
        category = data.category.strip()
        goal = self.session.scalar(
            select(BudgetGoal).where(
                BudgetGoal.user_id == self.user_id, BudgetGoal.category == category
            )
        )
        if goal:
            goal.monthly_limit = data.monthly_limit
        else:
            goal = BudgetGoal(
                user_id=self.user_id, category=category, monthly_limit=data.monthly_limit
            )
            self.session.add(goal)
        self.session.commit()
        self.session.refresh(goal)
        return goal

    def delete_goal(self, goal_id: int) -> None:
        goal = self.session.get(BudgetGoal, goal_id)
        if not goal or goal.user_id != self.user_id:
            raise ValueError("Budget goal not found")
        self.session.delete(goal)
        self.session.commit()

    def variance(self, period: Period) -> dict[str, object]:
        spent = {
            item.category: item.total
            for item in self.transactions.expense_categories(period.start, period.end)
        }
        rows = []
        for goal in self.list_goals():
            actual = spent.get(goal.category, 0.0)
            rows.append(
                {
                    "id": goal.id,
                    "category": goal.category,
                    "monthly_limit": goal.monthly_limit,
                    "actual": actual,
                    "variance": finance.variance(actual, goal.monthly_limit),
                    "variance_percent": finance.variance_percent(
                        actual, goal.monthly_limit
                    ),
                    "over_budget": actual > goal.monthly_limit,
                }
            )
        total_limit = sum(row["monthly_limit"] for row in rows)
        total_actual = sum(row["actual"] for row in rows)
        return {
            "month": period.slug,
            "goals": rows,
            "total_limit": total_limit,
            "total_actual": total_actual,
            "total_variance": finance.variance(total_actual, total_limit),
            "total_variance_percent": finance.variance_percent(total_actual, total_limit),
        }

    def trends(self, months: int, today: Optional[date] = None) -> list[dict[str, object]]:
        today = today or date.today()
        series = self.transactions.monthly_series(months, today)
        result = []
        for key in trailing_month_keys(today, months):
            bucket = series.get(key, {})
            income = bucket.get(TransactionType.income.value, 0.0)
            expenses = bucket.get(TransactionType.expense.value, 0.0)
            result.append(
                {"month": key, "income": income, "expenses": expenses, "net": income - expenses}
            )
        return result


class IncomeService(OwnedRecordService):
    model = IncomeSource
    label = "Income source"

    def list(self, is_active: Optional[bool] = None) -> list[IncomeSource]:
        stmt = self._owned()
        if is_active is not None:
            stmt = stmt.where(IncomeSource.is_active.is_(is_active))
        stmt = stmt.order_by(IncomeSource.source_name)
        return self.session.scalars(stmt).all()

    def monthly_total(self) -> tuple[float, int]:
        sources = self.list(is_active=True)
        total = finance.total_monthly((s.amount, s.frequency) for s in sources)
        return total, len(sources)

    def summary(self) -> dict[str, object]:
        sources = self.list(is_active=True)
        by_type: dict[str, float] = {}
        by_source = []
        for source in sources:
            monthly = finance.monthly_equivalent(source.amount, source.frequency)
            key = source.source_type.value
            by_type[key] = by_type.get(key, 0.0) + monthly
            by_source.append(
                {
                    "id": source.id,
                    "source_name": source.source_name,
                    "source_type": key,
                    "frequency": source.frequency.value,
                    "amount": source.amount,
                    "monthly_amount": monthly,
                }
            )
        total_monthly = sum(item["monthly_amount"] for item in by_source)
        return {
            "total_monthly": total_monthly,
            "total_annual": total_monthly * 12,
            "by_type": by_type,
            "by_source": by_source,
            "active_sources": len(sources),
        }


class BillService(OwnedRecordService):
    model = Bill
    label = "Bill"

    def list(self, is_active: Optional[bool] = None) -> list[Bill]:
        stmt = self._owned()
        if is_active is not None:
            stmt = stmt.where(Bill.is_active.is_(is_active))
        stmt = stmt.order_by(Bill.bill_name)
        return self.session.scalars(stmt).all()

    def detail(self, bill_id: int) -> dict[str, object]:
        bill = self.get(bill_id)
        data = bill.to_dict()
        data["payment_history"] = [p.to_dict() for p in self.payments(bill_id, limit=12)]
        return data

    def add_payment(self, bill_id: int, data: BillPaymentIn) -> BillPayment:
        bill = self.get(bill_id)
        payment = BillPayment(
            bill_id=bill.id,
            user_id=self.user_id,
            amount_paid=data.amount_paid,
            payment_date=data.payment_date,
            month_year=month_key(data.payment_date),
            notes=data.notes,
        )
        self.session.add(payment)
        self.session.commit()
        self.session.refresh(payment)
        return payment

    def payments(self, bill_id: int, limit: Optional[int] = None) -> list[BillPayment]:
        self.get(bill_id)
        stmt = (
            select(BillPayment)
            .where(BillPayment.bill_id == bill_id, BillPayment.user_id == self.user_id)
            .order_by(BillPayment.payment_date.desc(), BillPayment.id.desc())
        )
        if limit:
            stmt = stmt.limit(limit)
        return self.session.scalars(stmt).all()

    def delete_payment(self, payment_id: int) -> None:
        payment = self.session.get(BillPayment, payment_id)
        if not payment or payment.user_id != self.user_id:
            raise ValueError("Payment not found")
        self.session.delete(payment)
        self.session.commit()

    def total_active_targets(self) -> float:
        stmt = select(func.sum(Bill.target_amount)).where(
            Bill.user_id == self.user_id, Bill.is_active.is_(True)
        )
        return _sum(self.session.execute(stmt).scalar_one())

    def analytics_summary(
        self, months: int = 6, today: Optional[date] = None
    ) -> dict[str, object]:
        today = today or date.today()
        bills = self.list(is_active=True)
        if not bills:
            return {
                "total_target_monthly": 0.0,
                "total_average_paid": 0.0,
                "overall_variance": 0.0,
                "overall_variance_percent": 0.0,
                "bills_with_trends": [],
            }

        stmt = (
            select(
                BillPayment.bill_id,
                BillPayment.month_year,
                func.sum(BillPayment.amount_paid),
            )
            .where(
                BillPayment.user_id == self.user_id,
                BillPayment.bill_id.in_([bill.id for bill in bills]),
                BillPayment.month_year >= trailing_month_key(today, months),
            )
            .group_by(BillPayment.bill_id, BillPayment.month_year)
            .order_by(BillPayment.month_year)
        )
        monthly: dict[int, list[tuple[str, float]]] = {}
        for bill_id, key, total in self.session.execute(stmt):
            monthly.setdefault(bill_id, []).append((key, _sum(total)))

        bills_with_trends = []
        for bill in bills:
            rows = monthly.get(bill.id, [])
            average = sum(total for _, total in rows) / len(rows) if rows else 0.0
            data = bill.to_dict()
            data.update(
                {
                    "average_paid": average,
                    "variance": finance.variance(average, bill.target_amount),
                    "variance_percent": finance.variance_percent(
                        average, bill.target_amount
                    ),
                    "payments_count": len(rows),
                    "trend_data": [
                        {
                            "month": key,
                            "amount": total,
                            "target": bill.target_amount,
                            "variance": finance.variance(total, bill.target_amount),
                            "variance_percent": finance.variance_percent(
                                total, bill.target_amount
                            ),
                        }
                        for key, total in rows
                    ],
                }
            )
            bills_with_trends.append(data)

        total_target = sum(bill.target_amount for bill in bills)
        total_average = sum(item["average_paid"] for item in bills_with_trends)
        return {
            "total_target_monthly": total_target,
            "total_average_paid": total_average,
            "overall_variance": finance.variance(total_average, total_target),
            "overall_variance_percent": finance.variance_percent(
                total_average, total_target
            ),
            "bills_with_trends": bills_with_trends,
        }

    def analytics_trends(
        self, months: int = 12, today: Optional[date] = None
    ) -> dict[str, object]:
        today = today or date.today()
        total_target = self.total_active_targets()
        if not self.list(is_active=True):
            return {"monthly_data": []}
        stmt = (
            select(BillPayment.month_year, func.sum(BillPayment.amount_paid))
            .where(
                BillPayment.user_id == self.user_id,
                BillPayment.month_year >= trailing_month_key(today, months),
            )
            .group_by(BillPayment.month_year)
            .order_by(BillPayment.month_year)
        )
        monthly_data = []
        for key, total in self.session.execute(stmt):
            actual = _sum(total)
            monthly_data.append(
                {
                    "month": key,
                    "actual": actual,
                    "target": total_target,
                    "variance": finance.variance(actual, total_target),
                    "variance_percent": finance.variance_percent(actual, total_target),
                }
            )
        return {"monthly_data": monthly_data}

    def payment_history_by_bill(
        self, months: int = PREDICTION_WINDOW_MONTHS, today: Optional[date] = None
    ) -> dict[str, list[float]]:
        today = today or date.today()
        stmt = (
            select(Bill.bill_name, BillPayment.amount_paid)
            .join(BillPayment, BillPayment.bill_id == Bill.id)
            .where(
                Bill.user_id == self.user_id,
                BillPayment.month_year >= trailing_month_key(today, months),
            )
            .order_by(BillPayment.payment_date, BillPayment.id)
        )
        history: dict[str, list[float]] = {}
        for name, amount in self.session.execute(stmt):
            history.setdefault(name, []).append(float(amount))
        return history


class AccountService(OwnedRecordService):
    model = Account
    label = "Account"

    def list(self, type: Optional[AccountType] = None) -> list[Account]:
        stmt = self._owned()
        if type:
            stmt = stmt.where(Account.type == type)
        return self.session.scalars(stmt.order_by(Account.type, Account.name)).all()


class RetirementAccountService(OwnedRecordService):
    model = RetirementAccount
    label = "Retirement account"

    def list(self) -> list[RetirementAccount]:
        return self.session.scalars(self._owned().order_by(RetirementAccount.name)).all()


class AssetService(OwnedRecordService):
    model = Asset
    label = "Asset"

    def list(self) -> list[Asset]:
        return self.session.scalars(self._owned().order_by(Asset.value.desc())).all()


class FinancialTargetService(OwnedRecordService):
    model = FinancialTarget
    label = "Target"

    def list(self) -> list[FinancialTarget]:
        stmt = self._owned().order_by(
            FinancialTarget.is_achieved,
            FinancialTarget.target_date.is_(None),
            FinancialTarget.target_date,
            FinancialTarget.id,
        )
        return self.session.scalars(stmt).all()


class CreditScoreService(OwnedRecordService):
    model = CreditScore
    label = "Credit score"

    def list(self, limit: int = 24) -> list[CreditScore]:
        stmt = self._owned().order_by(CreditScore.date.desc(), CreditScore.id.desc())
        return self.session.scalars(stmt.limit(limit)).all()


class WealthService:
    def __init__(self, session: Session, user_id: int) -> None:
        self.session = session
        self.user_id = user_id

    def _account_total(self, types, *, absolute: bool = False) -> float:
        column = func.abs(Account.balance) if absolute else Account.balance
        stmt = select(func.sum(column)).where(
            Account.user_id == self.user_id, Account.type.in_(types)
        )
        return _sum(self.session.execute(stmt).scalar_one())

    def balances(self) -> dict[str, float]:
        checking = self._account_total([AccountType.checking])
        savings = self._account_total([AccountType.savings])
        retirement = _sum(
            self.session.execute(
                select(func.sum(RetirementAccount.balance)).where(
                    RetirementAccount.user_id == self.user_id
                )
            ).scalar_one()
        )
        assets = _sum(
            self.session.execute(
                select(func.sum(Asset.value)).where(Asset.user_id == self.user_id)
            ).scalar_one()
        )
        liabilities = self._account_total(LIABILITY_ACCOUNT_TYPES, absolute=True)
        return {
            "checking": checking,
            "savings": savings,
            "retirement": retirement,
            "assets": assets,
            "liabilities": liabilities,
        }

    def net_worth(self) -> dict[str, object]:
        balances = self.balances()
        liquid = sum(balances[t.value] for t in ASSET_ACCOUNT_TYPES)
        total_assets = liquid + balances["retirement"] + balances["assets"]
        total_liabilities = balances["liabilities"]
        return {
            "total_assets": total_assets,
            "total_liabilities": total_liabilities,
            "net_worth": finance.net_worth(total_assets, total_liabilities),
            "liquid_assets": liquid,
            "breakdown": balances,
        }

    def create_snapshot(
        self, data: SnapshotIn, today: Optional[date] = None
    ) -> NetWorthSnapshot:
        current = None
        if data.total_assets is None or data.total_liabilities is None:
            current = self.net_worth()
        total_assets = (
            data.total_assets if data.total_assets is not None else current["total_assets"]
        )
        total_liabilities = (
            data.total_liabilities
            if data.total_liabilities is not None
            else current["total_liabilities"]
        )
        snapshot = NetWorthSnapshot(
            user_id=self.user_id,
            total_assets=total_assets,
            total_liabilities=total_liabilities,
            net_worth=finance.net_worth(total_assets, total_liabilities),
            snapshot_date=data.snapshot_date or today or date.today(),
        )
        self.session.add(snapshot)
        self.session.commit()
        self.session.refresh(snapshot)
        return snapshot

    def history(self, limit: int = 12) -> list[NetWorthSnapshot]:
        stmt = (
            select(NetWorthSnapshot)
            .where(NetWorthSnapshot.user_id == self.user_id)
            .order_by(NetWorthSnapshot.snapshot_date.desc(), NetWorthSnapshot.id.desc())
            .limit(limit)
        )
        return self.session.scalars(stmt).all()


class OpportunityService(OwnedRecordService):
    model = Opportunity
    label = "Opportunity"

    def list(
        self,
        status: Optional[OpportunityStatus] = None,
        risk_level: Optional[RiskLevel] = None,
    ) -> list[Opportunity]:
        stmt = self._owned()
        if status:
            stmt = stmt.where(Opportunity.status == status)
        if risk_level:
            stmt = stmt.where(Opportunity.risk_level == risk_level)
        stmt = stmt.order_by(Opportunity.created_at.desc(), Opportunity.id.desc())
        return self.session.scalars(stmt).all()

    def analytics(self) -> dict[str, object]:
        by_status_stmt = (
            select(
                Opportunity.status,
                func.count(Opportunity.id),
                func.sum(Opportunity.initial_investment),
                func.avg(Opportunity.expected_return),
            )
            .where(Opportunity.user_id == self.user_id)
            .group_by(Opportunity.status)
        )
        by_risk_stmt = (
            select(
                Opportunity.risk_level,
                func.count(Opportunity.id),
                func.avg(Opportunity.expected_return),
            )
            .where(
                Opportunity.user_id == self.user_id,
                Opportunity.risk_level.is_not(None),
            )
            .group_by(Opportunity.risk_level)
        )
        return {
            "by_status": [
                {
                    "status": status.value,
                    "count": int(count),
                    "total_investment": _sum(total),
                    "avg_return": _sum(avg_return),
                }
                for status, count, total, avg_return in self.session.execute(
                    by_status_stmt
                )
            ],
            "by_risk": [
                {
                    "risk_level": risk.value,
                    "count": int(count),
                    "avg_return": _sum(avg_return),
                }
                for risk, count, avg_return in self.session.execute(by_risk_stmt)
            ],
        }


class PropertyService(OwnedRecordService):
    model = InvestmentProperty
    label = "Property"

    def list(self) -> list[InvestmentProperty]:
        stmt = self._owned().order_by(InvestmentProperty.property_name)
        return self.session.scalars(stmt).all()

    def _children(self, model, property_id: int, order_by, limit: Optional[int] = None):
        self.get(property_id)
        stmt = (
            select(model)
            .where(model.property_id == property_id, model.user_id == self.user_id)
            .order_by(*order_by)
        )
        if limit:
            stmt = stmt.limit(limit)
        return self.session.scalars(stmt).all()

    def _add_child(self, model, property_id: int, values: dict[str, object]):
        prop = self.get(property_id)
        record = model(property_id=prop.id, user_id=self.user_id, **values)
        self.session.add(record)
        self.session.commit()
        self.session.refresh(record)
        return record

    def _get_child(self, model, label: str, property_id: int, child_id: int):
        self.get(property_id)
        record = self.session.get(model, child_id)
        if (
            not record
            or record.user_id != self.user_id
            or record.property_id != property_id
        ):
            raise ValueError(f"{label} not found")
        return record

    def detail(self, property_id: int) -> dict[str, object]:
        prop = self.get(property_id)
        active_tenants = [t for t in self.tenants(property_id) if t.is_active]
        data = prop.to_dict()
        data.update(
            {
                "loans": [loan.to_dict() for loan in self.loans(property_id)],
                "active_tenant": active_tenants[0].to_dict() if active_tenants else None,
                "rental_income": [
                    row.to_dict() for row in self.rental_income(property_id, limit=12)
                ],
                "expenses": [row.to_dict() for row in self.expenses(property_id, limit=50)],
            }
        )
        return data

    def summary(self, property_id: int) -> dict[str, object]:
        self.get(property_id)
        income = _sum(
            self.session.execute(
                select(func.sum(RentalIncome.amount)).where(
                    RentalIncome.property_id == property_id,
                    RentalIncome.user_id == self.user_id,
                )
            ).scalar_one()
        )
        expenses = _sum(
            self.session.execute(
                select(func.sum(PropertyExpense.amount)).where(
                    PropertyExpense.property_id == property_id,
                    PropertyExpense.user_id == self.user_id,
                )
            ).scalar_one()
        )
        loan_balance = _sum(
            self.session.execute(
                select(func.sum(PropertyLoan.current_balance)).where(
                    PropertyLoan.property_id == property_id,
                    PropertyLoan.user_id == self.user_id,
                    PropertyLoan.is_active.is_(True),
                )
            ).scalar_one()
        )
        return {
            "property_id": property_id,
            "total_income": income,
            "total_expenses": expenses,
            "net_cash_flow": income - expenses,
            "active_loan_balance": loan_balance,
        }

    def loans(self, property_id: int) -> list[PropertyLoan]:
        return self._children(
            PropertyLoan, property_id, (PropertyLoan.start_date.desc(), PropertyLoan.id)
        )

    def add_loan(self, property_id: int, data: PropertyLoanIn) -> PropertyLoan:
        return self._add_child(PropertyLoan, property_id, data.model_dump())

    def update_loan(
        self, property_id: int, loan_id: int, data: PropertyLoanIn
    ) -> PropertyLoan:
        loan = self._get_child(PropertyLoan, "Loan", property_id, loan_id)
        for key, value in data.model_dump().items():
            setattr(loan, key, value)
        self.session.commit()
        self.session.refresh(loan)
        return loan

    def rental_income(
        self, property_id: int, limit: Optional[int] = None
    ) -> list[RentalIncome]:
        return self._children(
            RentalIncome,
            property_id,
            (RentalIncome.payment_date.desc(), RentalIncome.id.desc()),
            limit,
        )

    def add_rental_income(self, property_id: int, data: RentalIncomeIn) -> RentalIncome:
        values = data.model_dump()
        values["month_year"] = values["month_year"] or month_key(data.payment_date)
        return self._add_child(RentalIncome, property_id, values)

    def expenses(
        self, property_id: int, limit: Optional[int] = None
    ) -> list[PropertyExpense]:
        return self._children(
            PropertyExpense,
            property_id,
            (PropertyExpense.expense_date.desc(), PropertyExpense.id.desc()),
            limit,
        )

    def add_expense(self, property_id: int, data: PropertyExpenseIn) -> PropertyExpense:
        return self._add_child(PropertyExpense, property_id, data.model_dump())

    def tenants(self, property_id: int) -> list[PropertyTenant]:
        return self._children(
            PropertyTenant,
            property_id,
            (PropertyTenant.lease_start_date.desc(), PropertyTenant.id.desc()),
        )

    def add_tenant(self, property_id: int, data: PropertyTenantIn) -> PropertyTenant:
        return self._add_child(PropertyTenant, property_id, data.model_dump())

    def update_tenant(
        self, property_id: int, tenant_id: int, data: PropertyTenantIn
    ) -> PropertyTenant:
        tenant = self._get_child(PropertyTenant, "Tenant", property_id, tenant_id)
        for key, value in data.model_dump().items():
            setattr(tenant, key, value)
        self.session.commit()
        self.session.refresh(tenant)
        return tenant


AI_SERVICE_LINKS: dict[str, object] = {
    "services": [
        {
            "name": "groq",
            "display_name": "Groq",
            "description": "Very fast hosted inference for open Llama models",
            "signup_url": "https://console.groq.com/keys",
            "cost": "FREE",
            "recommended": True,
            "speed": "fastest",
        },
        {
            "name": "huggingface",
            "display_name": "Hugging Face",
            "description": "Inference API for a large catalogue of open models",
            "signup_url": "https://huggingface.co/settings/tokens",
            "cost": "FREE",
            "recommended": True,
            "speed": "medium",
        },
        {
            "name": "together",
            "display_name": "Together AI",
            "description": "Fast inference for open source models",
            "signup_url": "https://api.together.xyz/settings/api-keys",
            "cost": "Pay per token",
            "recommended": False,
            "speed": "fast",
        },
        {
            "name": "openrouter",
            "display_name": "OpenRouter",
            "description": "One API for models from many providers",
            "signup_url": "https://openrouter.ai/keys",
            "cost": "Varies by model",
            "recommended": False,
            "speed": "medium",
        },
        {
            "name": "anthropic",
            "display_name": "Anthropic Claude",
            "description": "Claude models with strong reasoning",
            "signup_url": "https://console.anthropic.com/settings/keys",
            "cost": "Pay per token",
            "recommended": False,
            "speed": "fast",
        },
    ],
    "instructions": {
        "groq": [
            "1. Visit https://console.groq.com/keys",
            "2. Sign in or create a free account",
            '3. Click "Create API Key"',
            '4. Copy the key (starts with "gsk_")',
            "5. Paste it here and save",
        ],
        "huggingface": [
            "1. Visit https://huggingface.co/settings/tokens",
            "2. Log in or create a free account",
            '3. Click "New token" with "Read" permission',
            '4. Copy the token (starts with "hf_")',
            "5. Paste it here and save",
        ],
        "together": [
            "1. Visit https://api.together.xyz/settings/api-keys",
            "2. Create an account and add a payment method",
            "3. Generate an API key and paste it here",
        ],
        "openrouter": [
            "1. Visit https://openrouter.ai/keys",
            '2. Sign in and click "Create Key"',
            '3. Copy the key (starts with "sk-or-") and paste it here',
        ],
        "anthropic": [
            "1. Visit https://console.anthropic.com/settings/keys",
            "2. Create a key in your workspace",
            '3. Copy the key (starts with "sk-ant-") and paste it here',
        ],
    },
}

FREE_SERVICES = (AIService.groq, AIService.huggingface)


class AITokenService:
    def __init__(self, session: Session, user_id: int) -> None:
        self.session = session
        self.user_id = user_id

    def _rows(self) -> list[AIToken]:
        stmt = (
            select(AIToken)
            .where(AIToken.user_id == self.user_id)
            .order_by(AIToken.service)
        )
        return self.session.scalars(stmt).all()

    def get(self, token_id: int) -> AIToken:
        row = self.session.get(AIToken, token_id)
        if not row or row.user_id != self.user_id:
            raise ValueError("Token not found")
        return row

    def _masked(self, row: AIToken) -> str:
        try:
            return mask_token(decrypt(row.token_encrypted))
        except EncryptionError:
            return mask_token(None)

    def describe(self, row: AIToken) -> dict[str, object]:
        return {
            "id": row.id,
            "service": row.service.value,
            "is_active": row.is_active,
            "status": "active" if row.is_active else "inactive",
            "last_used": row.last_used,
            "created_at": row.created_at,
            "has_token": True,
            "masked_token": self._masked(row),
        }

    def list(self) -> list[dict[str, object]]:
        return [self.describe(row) for row in self._rows()]

    def upsert(self, data: AITokenIn) -> tuple[AIToken, bool]:
        sealed = encrypt(data.token)
        row = self.session.scalar(
            select(AIToken).where(
                AIToken.user_id == self.user_id, AIToken.service == data.service
            )
        )
        created = row is None
        if created:
            row = AIToken(
                user_id=self.user_id,
                service=data.service,
                token_encrypted=sealed,
                is_active=True,
            )
            self.session.add(row)
        else:
            row.token_encrypted = sealed
            row.is_active = True
        self.session.commit()
        self.session.refresh(row)
        logger.info(
            f"ai_token_saved: user={self.user_id} service={data.service.value} "
            f"created={created}"
        )
        return row, created

    def toggle(self, token_id: int) -> AIToken:
        row = self.get(token_id)
        row.is_active = not row.is_active
        self.session.commit()
        self.session.refresh(row)
        return row

    def delete(self, token_id: int) -> None:
        row = self.get(token_id)
        self.session.delete(row)
        self.session.commit()

    def status(self) -> dict[str, object]:
        rows = self._rows()
        active = [row for row in rows if row.is_active]
        return {
            "total_tokens": len(rows),
            "active_tokens": len(active),
            "services": {
                row.service.value: {
                    "configured": True,
                    "active": row.is_active,
                    "last_used": row.last_used,
                }
                for row in rows
            },
            "has_free_token": any(row.service in FREE_SERVICES for row in active),
            "ready_for_ai": bool(active),
        }

    def test(self, service: AIService, token: str) -> dict[str, object]:
        return check_connection(service, token)


class FinancialSnapshotService:
    """Collects the figures the insight prompts are rendered from."""

    def __init__(self, session: Session, user_id: int) -> None:
        self.session = session
        self.user_id = user_id

    def build(self, today: Optional[date] = None) -> dict[str, object]:
        today = today or date.today()
        window = trailing_days(INSIGHT_WINDOW_DAYS, today=today)
        transactions = TransactionService(self.session, self.user_id)
        income, source_count = IncomeService(self.session, self.user_id).monthly_total()
        _, expenses = transactions.totals(window.start, window.end)
        top = transactions.expense_categories(window.start, window.end)[:TOP_CATEGORY_LIMIT]
        wealth = WealthService(self.session, self.user_id)
        worth = wealth.net_worth()
        bills = BillService(self.session, self.user_id)
        emergency_fund = worth["liquid_assets"]
        months_covered = round(emergency_fund / expenses, 1) if expenses > 0 else 0.0
        return {
            "income": round(income, 2),
            "income_sources": source_count,
            "expenses": round(expenses, 2),
            "savings_rate": finance.savings_rate(income, expenses),
            "net_worth": round(worth["net_worth"], 2),
            "total_bills": round(bills.total_active_targets(), 2),
            "emergency_fund": round(emergency_fund, 2),
            "months_of_expenses": months_covered,
            "top_categories": [
                {"category": item.category, "total": round(item.total, 2)} for item in top
            ],
            "bills_variance_percent": bills.analytics_summary(6, today)[
                "overall_variance_percent"
            ],
        }


class InsightService:
    def __init__(self, session: Session, user_id: int) -> None:
        self.session = session
        self.user_id = user_id

    def rule_insights(self, today: Optional[date] = None) -> dict[str, object]:
        today = today or date.today()
        window = trailing_days(INSIGHT_WINDOW_DAYS, today=today)
        transactions = TransactionService(self.session, self.user_id)
        categories = transactions.expense_categories(window.start, window.end)
        _, recent_expenses = transactions.totals(window.start, window.end)
        predictions = finance.predict_bill_amounts(
            BillService(self.session, self.user_id).payment_history_by_bill(
                PREDICTION_WINDOW_MONTHS, today
            )
        )
        monthly_income, source_count = IncomeService(
            self.session, self.user_id
        ).monthly_total()
        wealth = WealthService(self.session, self.user_id)
        history = [snap.net_worth for snap in wealth.history(limit=6)]
        insights = generate_insights(
            expense_categories=categories,
            bill_predictions=predictions,
            monthly_income=monthly_income,
            income_source_count=source_count,
            recent_expenses=recent_expenses,
            net_worth_history=history,
            liquid_assets=wealth.net_worth()["liquid_assets"],
        )
        return {
            "insights": insights,
            "summary": summarize_insights(insights),
            "bill_predictions": [item.to_dict() for item in predictions],
        }

    def chat(self, data: ChatIn, today: Optional[date] = None) -> dict[str, object]:
        today = today or date.today()
        intent = detect_intent(data.message)
        window = trailing_days(INSIGHT_WINDOW_DAYS, today=today)
        transactions = TransactionService(self.session, self.user_id)

        if intent == "spending":
            _, expenses = transactions.totals(window.start, window.end)
            response = f"You spent ${expenses:.2f} in the last 30 days."
        elif intent == "income":
            total, count = IncomeService(self.session, self.user_id).monthly_total()
            plural = "" if count == 1 else "s"
            response = (
                f"Your total monthly income is ${total:.2f} from {count} source{plural}."
            )
        elif intent == "net_worth":
            worth = WealthService(self.session, self.user_id).net_worth()["net_worth"]
            response = f"Your current net worth is ${worth:.2f}."
        elif intent == "savings":
            income, expenses = transactions.totals(window.start, window.end)
            saved = income - expenses
            rate = finance.savings_rate(income, expenses)
            response = (
                f"You saved ${saved:.2f} in the last 30 days, which is a {rate}% "
                "savings rate. The recommended target is 20%."
            )
        elif intent == "bills":
            bills = BillService(self.session, self.user_id).list(is_active=True)
            if not bills:
                response = "You don't have any active bills tracked yet."
            else:
                total = sum(bill.target_amount for bill in bills)
                response = (
                    f"You have {len(bills)} bills totaling ${total:.2f} per month."
                )
                if len(bills) <= 3:
                    listed = ", ".join(
                        f"{bill.bill_name} (${bill.target_amount:.2f})" for bill in bills
                    )
                    response += f" Your bills are: {listed}"
        elif intent == "help":
            response = HELP_TEXT
        else:
            response = FALLBACK_TEXT

        return {
            "response": response,
            "intent": intent or "unknown",
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }

    def wealth_growth(self) -> dict[str, object]:
        worth = WealthService(self.session, self.user_id).net_worth()
        monthly_income, source_count = IncomeService(
            self.session, self.user_id
        ).monthly_total()
        return wealth_growth_opportunities(
            liquid_assets=worth["liquid_assets"],
            net_worth=worth["net_worth"],
            retirement=worth["breakdown"]["retirement"],
            income_sources=source_count,
            monthly_income=monthly_income,
        )

    def save(
        self, insight_type: str, payload: dict[str, object], provider: Optional[str]
    ) -> AIInsightRecord:
        record = AIInsightRecord(
            user_id=self.user_id,
            insight_type=insight_type,
            provider=provider,
            insights_json=json.dumps(payload, default=str),
        )
        self.session.add(record)
        self.session.flush()
        return record

    def llm_insights(
        self, llm: LLMService, today: Optional[date] = None
    ) -> dict[str, object]:
        snapshot = FinancialSnapshotService(self.session, self.user_id).build(today)
        payload = llm.generate_financial_insights(snapshot)
        record = self.save("on_demand", payload, payload.get("provider"))
        self.session.commit()
        return {**payload, "id": record.id, "snapshot": snapshot}

    def history(self, limit: int = 20) -> list[dict[str, object]]:
        stmt = (
            select(AIInsightRecord)
            .where(AIInsightRecord.user_id == self.user_id)
            .order_by(AIInsightRecord.created_at.desc(), AIInsightRecord.id.desc())
            .limit(limit)
        )
        rows = []
        for record in self.session.scalars(stmt):
            try:
                payload = json.loads(record.insights_json)
            except json.JSONDecodeError:
                payload = {"insights": []}
            rows.append(
                {
                    "id": record.id,
                    "insight_type": record.insight_type,
                    "provider": record.provider,
                    "created_at": record.created_at,
                    "insights": payload.get("insights", []),
                }
            )
        return rows

    def scheduler_config(self) -> dict[str, object]:
        config = self.session.scalar(
            select(AISchedulerConfig).where(AISchedulerConfig.user_id == self.user_id)
        )
        if not config:
            return {"daily_enabled": True, "five_hour_enabled": True}
        return {
            "daily_enabled": config.daily_enabled,
            "five_hour_enabled": config.five_hour_enabled,
        }

    def update_scheduler_config(self, data: SchedulerConfigIn) -> dict[str, object]:
        config = self.session.scalar(
            select(AISchedulerConfig).where(AISchedulerConfig.user_id == self.user_id)
        )
        if not config:
            config = AISchedulerConfig(
                user_id=self.user_id, daily_enabled=True, five_hour_enabled=True
            )
            self.session.add(config)
        if data.daily_enabled is not None:
            config.daily_enabled = data.daily_enabled
        if data.five_hour_enabled is not None:
            config.five_hour_enabled = data.five_hour_enabled
        self.session.commit()
        return self.scheduler_config()


LLMFactory = Callable[[Session, int], LLMService]


class AIInsightJobService:
    """Batch runs of the LLM analysis for every eligible user."""

    def __init__(self, session: Session, llm_factory: Optional[LLMFactory] = None) -> None:
        self.session = session
        self.llm_factory = llm_factory or LLMService

    def eligible_users(self, job: str) -> list[int]:
        flag = (
            AISchedulerConfig.daily_enabled
            if job == "daily"
            else AISchedulerConfig.five_hour_enabled
        )
        stmt = (
            select(AIToken.user_id)
            .join(
                AISchedulerConfig,
                AISchedulerConfig.user_id == AIToken.user_id,
                isouter=True,
            )
            .where(
                AIToken.is_active.is_(True),
                or_(AISchedulerConfig.id.is_(None), flag.is_(True)),
            )
            .distinct()
            .order_by(AIToken.user_id)
        )
        return list(self.session.scalars(stmt).all())

    def _run(self, job: str, work) -> dict[str, int]:
        users = self.eligible_users(job)
        succeeded = failed = 0
        for user_id in users:
            try:
                work(user_id)
                self.session.commit()
                succeeded += 1
            except Exception:
                self.session.rollback()
                failed += 1
                logger.exception(f"scheduler_user_failed: job={job} user={user_id}")
        logger.info(
            f"scheduler_run: job={job} users={len(users)} "
            f"succeeded={succeeded} failed={failed}"
        )
        return {"users": len(users), "succeeded": succeeded, "failed": failed}

    def _daily_for_user(self, user_id: int) -> None:
        snapshot = FinancialSnapshotService(self.session, user_id).build()
        llm = self.llm_factory(self.session, user_id)
        payload = llm.generate_financial_insights(snapshot)
        InsightService(self.session, user_id).save("daily", payload, payload["provider"])

    def _scan_for_user(self, user_id: int) -> None:
        snapshot = FinancialSnapshotService(self.session, user_id).build()
        llm = self.llm_factory(self.session, user_id)
        result = llm.generate_completion(
            quick_scan_prompt(snapshot),
            CompletionOptions(
                system_prompt=QUICK_SCAN_SYSTEM_PROMPT, max_tokens=800, temperature=0.4
            ),
        )
        payload = {
            "insights": [
                {
                    "type": "info",
                    "title": "5-Hour Scan Results",
                    "message": result.text,
                    "recommendation": "",
                    "impact": "medium",
                }
            ],
            "provider": result.provider,
            "generated_at": datetime.now(timezone.utc).isoformat(),
        }
        InsightService(self.session, user_id).save("5hour", payload, result.provider)

    def run_daily(self) -> dict[str, int]:
        return self._run("daily", self._daily_for_user)

    def run_five_hour_scan(self) -> dict[str, int]:
        return self._run("five_hour", self._scan_for_user)
