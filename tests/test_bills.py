from datetime import date

import pytest
from sqlalchemy import create_engine, func, select
from sqlalchemy.orm import Session

from database import Base
from models import Bill, BillPayment, BillType
from schemas import BillIn, BillPaymentIn
from services import BillService


def _session() -> Session:
    engine = create_engine("sqlite:///:memory:")
    Base.metadata.create_all(engine)
    return Session(engine)


def _bill(service: BillService, name: str = "Electric", target: float = 100.0) -> Bill:
    return service.create(
        BillIn(bill_name=name, bill_type=BillType.electric, target_amount=target)
    )


def _count(session: Session, model) -> int:
    return session.scalar(select(func.count()).select_from(model))


def test_deleting_missing_bill_leaves_rows_untouched() -> None:
    with _session() as session:
        service = BillService(session, 1)
        _bill(service)

        with pytest.raises(ValueError, match="Bill not found"):
            service.delete(999)

        assert _count(session, Bill) == 1


def test_other_users_bill_is_not_visible() -> None:
    with _session() as session:
        bill = _bill(BillService(session, 1))

        with pytest.raises(ValueError, match="Bill not found"):
            BillService(session, 2).get(bill.id)
        with pytest.raises(ValueError, match="Bill not found"):
            BillService(session, 2).add_payment(
                bill.id, BillPaymentIn(amount_paid=10, payment_date=date(2025, 1, 1))
            )


def test_update_then_read_returns_submitted_fields() -> None:
    with _session() as session:
        service = BillService(session, 1)
        bill = _bill(service)
        submitted = BillIn(
            bill_name="Fiber",
            bill_type=BillType.internet,
            target_amount=65.5,
            due_day=12,
            is_active=False,
            notes="promo ends in june",
        )

        service.update(bill.id, submitted)
        reread = service.get(bill.id).to_dict()

        assert {key: reread[key] for key in submitted.model_dump()} == submitted.model_dump(
            mode="json"
        )


def test_payment_month_key_is_derived_from_date() -> None:
    with _session() as session:
        service = BillService(session, 1)
        bill = _bill(service)

        payment = service.add_payment(
            bill.id, BillPaymentIn(amount_paid=98.2, payment_date=date(2025, 2, 27))
        )

        assert payment.month_year == "2025-02"
        assert payment.user_id == 1


def test_detail_lists_latest_twelve_payments() -> None:
    with _session() as session:
        service = BillService(session, 1)
        bill = _bill(service)
        for month in range(1, 15):
            service.add_payment(
                bill.id,
                BillPaymentIn(
                    amount_paid=month,
                    payment_date=date(2024 + (month - 1) // 12, (month - 1) % 12 + 1, 5),
                ),
            )

        detail = service.detail(bill.id)

        assert len(detail["payment_history"]) == 12
        assert detail["payment_history"][0]["month_year"] == "2025-02"
        assert len(service.payments(bill.id, limit=3)) == 3


def test_deleting_bill_removes_its_payments() -> None:
    with _session() as session:
        service = BillService(session, 1)
        bill = _bill(service)
        service.add_payment(
            bill.id, BillPaymentIn(amount_paid=10, payment_date=date(2025, 1, 1))
        )

        service.delete(bill.id)

        assert _count(session, BillPayment) == 0


def test_delete_payment_requires_ownership() -> None:
    with _session() as session:
        service = BillService(session, 1)
        bill = _bill(service)
        payment = service.add_payment(
            bill.id, BillPaymentIn(amount_paid=10, payment_date=date(2025, 1, 1))
        )

        with pytest.raises(ValueError, match="Payment not found"):
            BillService(session, 2).delete_payment(payment.id)

        service.delete_payment(payment.id)
        assert _count(session, BillPayment) == 0


def test_analytics_summary_averages_the_trailing_window() -> None:
    with _session() as session:
        service = BillService(session, 1)
        bill = _bill(service, target=100)
        for paid, when in [(50, date(2024, 6, 3)), (120, date(2025, 1, 10)), (80, date(2025, 2, 10))]:
            service.add_payment(bill.id, BillPaymentIn(amount_paid=paid, payment_date=when))

        summary = service.analytics_summary(months=6, today=date(2025, 3, 15))

        row = summary["bills_with_trends"][0]
        assert row["payments_count"] == 2
        assert row["average_paid"] == pytest.approx(100)
        assert row["variance_percent"] == 0.0
        assert [point["month"] for point in row["trend_data"]] == ["2025-01", "2025-02"]
        assert row["trend_data"][0]["variance_percent"] == 20.0
        assert summary["total_target_monthly"] == pytest.approx(100)


def test_zero_target_bill_reports_zero_variance_percent() -> None:
    with _session() as session:
        bill = Bill(user_id=1, bill_name="Free tier", bill_type=BillType.other, target_amount=0)
        session.add(bill)
        session.commit()
        BillService(session, 1).add_payment(
            bill.id, BillPaymentIn(amount_paid=15, payment_date=date(2025, 3, 1))
        )

        summary = BillService(session, 1).analytics_summary(today=date(2025, 3, 20))

        row = summary["bills_with_trends"][0]
        assert row["variance"] == pytest.approx(15)
        assert row["variance_percent"] == 0.0
        assert summary["overall_variance_percent"] == 0.0


def test_analytics_without_bills_is_empty() -> None:
    with _session() as session:
        service = BillService(session, 1)

        assert service.analytics_summary()["bills_with_trends"] == []
        assert service.analytics_trends() == {"monthly_data": []}


def test_analytics_trends_compare_monthly_totals_to_active_targets() -> None:
    with _session() as session:
        service = BillService(session, 1)
        electric = _bill(service, "Electric", 100)
        water = _bill(service, "Water", 50)
        service.add_payment(
            electric.id, BillPaymentIn(amount_paid=110, payment_date=date(2025, 3, 2))
        )
        service.add_payment(
            water.id, BillPaymentIn(amount_paid=70, payment_date=date(2025, 3, 9))
        )

        trends = service.analytics_trends(months=12, today=date(2025, 3, 31))

        assert trends["monthly_data"] == [
            {
                "month": "2025-03",
                "actual": 180.0,
                "target": 150.0,
                "variance": 30.0,
                "variance_percent": 20.0,
            }
        ]


def test_payment_history_feeds_predictions_oldest_first() -> None:
    with _session() as session:
        service = BillService(session, 1)
        bill = _bill(service)
        for amount, when in [(90, date(2025, 1, 5)), (100, date(2025, 2, 5)), (130, date(2025, 3, 5))]:
            service.add_payment(bill.id, BillPaymentIn(amount_paid=amount, payment_date=when))

        history = service.payment_history_by_bill(today=date(2025, 3, 20))

        assert history == {"Electric": [90.0, 100.0, 130.0]}
