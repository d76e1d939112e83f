"""
Calendar helpers used by the month view and the statistics view.
"""

import calendar
import datetime as dt

STATS_PERIODS = ("week", "month", "year", "all")


def month_grid(year: int, month: int) -> list[list[dt.date | None]]:
    """
    Returns the weeks of a month as Monday-first rows of seven cells.
    Cells outside the month are None.
    """
    cal = calendar.Calendar(firstweekday=calendar.MONDAY)
    weeks = []
    for week in cal.monthdatescalendar(year, month):
        weeks.append([day if day.month == month else None for day in week])
    return weeks


def shift_month(year: int, month: int, delta: int) -> tuple[int, int]:
    """Moves (year, month) by `delta` months, wrapping across years."""
    index = year * 12 + (month - 1) + delta
    return index // 12, index % 12 + 1


def parse_month(value: str) -> tuple[int, int]:
    """Parses 'YYYY-MM' into (year, month)."""
    try:
        parsed = dt.datetime.strptime(value, "%Y-%m")
    except ValueError as e:
        raise ValueError(f"Month must look like YYYY-MM, got '{value}'.") from e
    return parsed.year, parsed.month


def period_start(period: str, today: dt.date) -> dt.date | None:
    """
    First day counted by a statistics period.

    'week' is the trailing seven days, 'month' and 'year' start at the first
    day of the current month or year, and 'all' has no lower bound (None).
    """
    if period == "week":
        return today - dt.timedelta(days=7)
    if period == "month":
        return today.replace(day=1)
    if period == "year":
        return today.replace(month=1, day=1)
    if period == "all":
        return None
    raise ValueError(f"Unknown statistics period '{period}'.")
