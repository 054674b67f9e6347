from dataclasses import dataclass
from datetime import date, timedelta
from typing import Optional


@dataclass(frozen=True)
class Period:
    slug: str
    start: date
    end: date


def month_key(value: date) -> str:
    return f"{value.year:04d}-{value.month:02d}"


def add_months(value: date, months: int) -> date:
    """Shift to the first day of the month ``months`` away from ``value``."""
    index = value.year * 12 + (value.month - 1) + months
    return date(index // 12, index % 12 + 1, 1)


def trailing_month_key(today: date, months: int) -> str:
    """First key of the ``months`` long window that ends with today's month."""
    return month_key(add_months(today, -(max(months, 1) - 1)))


def trailing_month_keys(today: date, months: int) -> list[str]:
    # oldest first, current month last
    return [month_key(add_months(today, -offset)) for offset in range(months - 1, -1, -1)]


def resolve_month(month: Optional[str], *, today: Optional[date] = None) -> Period:
    today = today or date.today()
    if not month:
        first = today.replace(day=1)
    else:
        try:
            year_str, month_str = month.split("-", 1)
            first = date(int(year_str), int(month_str), 1)
        except ValueError as exc:
            raise ValueError("Month must be formatted as YYYY-MM") from exc
    last = add_months(first, 1) - date.resolution
    return Period(month_key(first), first, last)


def trailing_days(days: int, *, today: Optional[date] = None) -> Period:
    today = today or date.today()
    return Period(f"last_{days}_days", today - timedelta(days=days), today)
