import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import Session

from database import Base
from models import IncomeFrequency, IncomeSourceType
from schemas import IncomeSourceIn
from services import IncomeService


def _source(name, kind, amount, frequency, active=True) -> IncomeSourceIn:
    return IncomeSourceIn(
        source_name=name,
        source_type=kind,
        amount=amount,
        frequency=frequency,
        is_active=active,
    )


def test_summary_normalizes_active_sources_only() -> None:
    engine = create_engine("sqlite:///:memory:")
    Base.metadata.create_all(engine)

    with Session(engine) as session:
        service = IncomeService(session, 1)
        service.create(
            _source("Tutoring", IncomeSourceType.side_business, 100, IncomeFrequency.weekly)
        )
        service.create(
            _source("Acme", IncomeSourceType.primary_job, 2000, IncomeFrequency.monthly)
        )
        service.create(
            _source(
                "Old gig",
                IncomeSourceType.freelance,
                12000,
                IncomeFrequency.annually,
                active=False,
            )
        )

        summary = service.summary()

        assert summary["active_sources"] == 2
        assert summary["total_monthly"] == pytest.approx(2000 + 100 * 52 / 12)
        assert summary["total_annual"] == pytest.approx(summary["total_monthly"] * 12)
        assert set(summary["by_type"]) == {"side_business", "primary_job"}
        assert [row["source_name"] for row in summary["by_source"]] == ["Acme", "Tutoring"]


def test_list_filters_by_active_flag_and_scopes_by_user() -> None:
    engine = create_engine("sqlite:///:memory:")
    Base.metadata.create_all(engine)

    with Session(engine) as session:
        mine = IncomeService(session, 1)
        mine.create(_source("Acme", IncomeSourceType.primary_job, 10, IncomeFrequency.monthly))
        mine.create(
            _source(
                "Paused", IncomeSourceType.other, 10, IncomeFrequency.monthly, active=False
            )
        )
        IncomeService(session, 2).create(
            _source("Theirs", IncomeSourceType.rental, 10, IncomeFrequency.monthly)
        )

        assert [row.source_name for row in mine.list()] == ["Acme", "Paused"]
        assert [row.source_name for row in mine.list(is_active=False)] == ["Paused"]
        assert mine.monthly_total() == (pytest.approx(10.0), 1)


def test_missing_source_raises_not_found() -> None:
    engine = create_engine("sqlite:///:memory:")
    Base.metadata.create_all(engine)

    with Session(engine) as session:
        with pytest.raises(ValueError, match="Income source not found"):
            IncomeService(session, 1).delete(42)
