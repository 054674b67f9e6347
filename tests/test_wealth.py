from datetime import date

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import Session

from database import Base
from models import AccountType, AssetType, RetirementType, TargetCategory
from schemas import (
    AccountIn,
    AssetIn,
    CreditScoreIn,
    FinancialTargetIn,
    RetirementAccountIn,
    SnapshotIn,
)
from services import (
    AccountService,
    AssetService,
    CreditScoreService,
    FinancialTargetService,
    RetirementAccountService,
    WealthService,
)


def _session() -> Session:
    engine = create_engine("sqlite:///:memory:")
    Base.metadata.create_all(engine)
    return Session(engine)


def _add_accounts(session: Session, user_id: int = 1) -> None:
    accounts = AccountService(session, user_id)
    accounts.create(AccountIn(name="Everyday", type=AccountType.checking, balance=1000))
    accounts.create(AccountIn(name="Rainy day", type=AccountType.savings, balance=2000))
    accounts.create(AccountIn(name="Visa", type=AccountType.credit_card, balance=-500))


def test_net_worth_subtracts_absolute_liabilities() -> None:
    with _session() as session:
        _add_accounts(session)

        summary = WealthService(session, 1).net_worth()

        assert summary["total_assets"] == pytest.approx(3000)
        assert summary["total_liabilities"] == pytest.approx(500)
        assert summary["net_worth"] == pytest.approx(2500)
        assert summary["liquid_assets"] == pytest.approx(3000)


def test_net_worth_includes_retirement_and_assets_for_owner_only() -> None:
    with _session() as session:
        _add_accounts(session)
        RetirementAccountService(session, 1).create(
            RetirementAccountIn(name="Work plan", type=RetirementType.k401, balance=4000)
        )
        AssetService(session, 1).create(
            AssetIn(name="Car", type=AssetType.vehicle, value=6000)
        )
        AccountService(session, 2).create(
            AccountIn(name="Other", type=AccountType.mortgage, balance=-90000)
        )

        summary = WealthService(session, 1).net_worth()

        assert summary["net_worth"] == pytest.approx(12500)
        assert summary["breakdown"]["retirement"] == pytest.approx(4000)
        assert summary["breakdown"]["assets"] == pytest.approx(6000)


def test_retirement_type_is_stored_by_value() -> None:
    with _session() as session:
        account = RetirementAccountService(session, 1).create(
            RetirementAccountIn(name="Plan", type=RetirementType.k401, balance=1)
        )
        assert account.to_dict()["type"] == "401k"


def test_snapshot_defaults_to_current_totals() -> None:
    with _session() as session:
        _add_accounts(session)
        wealth = WealthService(session, 1)

        snapshot = wealth.create_snapshot(SnapshotIn(), today=date(2025, 4, 1))

        assert snapshot.total_assets == pytest.approx(3000)
        assert snapshot.total_liabilities == pytest.approx(500)
        assert snapshot.net_worth == pytest.approx(2500)
        assert snapshot.snapshot_date == date(2025, 4, 1)


def test_snapshot_history_is_newest_first_and_limited() -> None:
    with _session() as session:
        wealth = WealthService(session, 1)
        for month in range(1, 15):
            wealth.create_snapshot(
                SnapshotIn(
                    total_assets=month * 100,
                    total_liabilities=0,
                    snapshot_date=date(2024 + (month - 1) // 12, (month - 1) % 12 + 1, 1),
                )
            )

        history = wealth.history()

        assert len(history) == 12
        assert history[0].net_worth == pytest.approx(1400)
        assert history[0].snapshot_date > history[-1].snapshot_date


def test_account_type_filter_and_missing_update() -> None:
    with _session() as session:
        _add_accounts(session)
        accounts = AccountService(session, 1)

        savings = accounts.list(AccountType.savings)
        assert [row.name for row in savings] == ["Rainy day"]

        with pytest.raises(ValueError, match="Account not found"):
            accounts.update(
                999, AccountIn(name="Ghost", type=AccountType.checking, balance=0)
            )


def test_targets_list_unachieved_first_then_by_date() -> None:
    with _session() as session:
        targets = FinancialTargetService(session, 1)
        targets.create(
            FinancialTargetIn(
                category=TargetCategory.custom,
                name="Done",
                target_value=1,
                target_date=date(2024, 1, 1),
                is_achieved=True,
            )
        )
        targets.create(
            FinancialTargetIn(
                category=TargetCategory.net_worth, name="No date", target_value=5
            )
        )
        targets.create(
            FinancialTargetIn(
                category=TargetCategory.emergency_fund,
                name="Soon",
                target_value=10,
                target_date=date(2025, 6, 1),
            )
        )

        assert [row.name for row in targets.list()] == ["Soon", "No date", "Done"]


def test_credit_scores_latest_first() -> None:
    with _session() as session:
        scores = CreditScoreService(session, 1)
        scores.create(CreditScoreIn(score=700, date=date(2024, 1, 1)))
        scores.create(CreditScoreIn(score=720, date=date(2024, 6, 1)))

        assert [row.score for row in scores.list()] == [720, 700]

        scores.delete(scores.list()[0].id)
        assert [row.score for row in scores.list()] == [700]
