"""
Calendar-month arithmetic for obligation cycles.

Pure functions, zero I/O.  A cycle advance is always exactly one calendar
month; a day that does not exist in the target month is clamped to that
month's last day (31 Jan -> 29 Feb 2024 -> 29 Mar 2024).
"""

import calendar
from datetime import date


def add_months(day: date, months: int) -> date:
    """Shift ``day`` by ``months`` calendar months, clamping to month end."""
    month_index = day.month - 1 + months
    year = day.year + month_index // 12
    month = month_index % 12 + 1
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, min(day.day, last_day))


def add_one_month(day: date) -> date:
    return add_months(day, 1)


def roll_forward(day: date, today: date) -> tuple[date, int]:
    """
    Advance ``day`` one month at a time until it is no longer before ``today``.

    Returns:
        The rolled date and the number of single-month steps taken.  A date
        already on or after ``today`` comes back unchanged with 0 steps, which
        makes repeated application idempotent.
    """
    steps = 0
    while day < today:
        day = add_one_month(day)
        steps += 1
    return day, steps
