"""Date helpers for effective-dated windows and payroll periods."""

import calendar
from datetime import date, timedelta


def day_before(day: date) -> date:
    """Return the cutoff for a window superseded on ``day``."""
    return day - timedelta(days=1)


def month_bounds(month: int, year: int) -> tuple[date, date]:
    """Return the first and last day of a calendar month."""
    last = calendar.monthrange(year, month)[1]
    return date(year, month, 1), date(year, month, last)
