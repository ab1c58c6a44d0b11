"""Shared money and date helpers."""

from datetime import date
from decimal import Decimal
from typing import Tuple

from dateutil.relativedelta import relativedelta

CENT = Decimal("0.01")


def to_decimal(value) -> Decimal:
    """Coerce a stored amount to Decimal without float noise."""
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def amounts_equal(a, b) -> bool:
    """Amounts are equal when they differ by less than one cent."""
    return abs(to_decimal(a) - to_decimal(b)) < CENT


def amounts_differ(a, b) -> bool:
    """Amounts differ when they are more than one cent apart."""
    return abs(to_decimal(a) - to_decimal(b)) > CENT


def days_between(a: date, b: date) -> int:
    return abs((b - a).days)


def add_months(d: date, months: int) -> date:
    """Add calendar months, clamping the day to the end of the target month."""
    return d + relativedelta(months=months)


def month_bounds(month: int, year: int) -> Tuple[date, date]:
    """First day of the month and first day of the following month."""
    start = date(year, month, 1)
    return start, add_months(start, 1)


def next_month(month: int, year: int) -> Tuple[int, int]:
    if month == 12:
        return 1, year + 1
    return month + 1, year
