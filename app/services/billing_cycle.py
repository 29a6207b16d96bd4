"""Billing cycle arithmetic.

Pure functions only: the invoice run's idempotency check and the due date
shown to gyms must agree for identical inputs.
"""

import calendar
from datetime import date
from typing import List, NamedTuple, Tuple


class BillingPeriod(NamedTuple):
    month: int
    year: int
    due_date: date


def _next_month(month: int, year: int) -> Tuple[int, int]:
    if month == 12:
        return 1, year + 1
    return month + 1, year


def previous_period(month: int, year: int) -> Tuple[int, int]:
    """(month, year) of the billing period before the given one"""
    _check_month(month)
    if month == 1:
        return 12, year - 1
    return month - 1, year


def trailing_periods(month: int, year: int, count: int) -> List[Tuple[int, int]]:
    """
    The last ``count`` periods ending with (month, year), oldest first.
    """
    periods = []
    current = (month, year)
    for _ in range(count):
        periods.append(current)
        current = previous_period(*current)
    periods.reverse()
    return periods


def clamp_day(year: int, month: int, day: int) -> date:
    """Date for ``day`` in the month, clamped to the month's last day"""
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, min(day, last_day))


def compute_period(reference_date: date, cycle_start_day: int) -> BillingPeriod:
    """
    Map a reference date and a gym's billing cycle day to its billing period.

    The period is the reference date's month. The invoice falls due on the
    cycle day of the following month (e.g. day 30 becomes Feb 28/29).

    Args:
        reference_date: Date the billing run is performed for
        cycle_start_day: Day-of-month the gym's cycle starts on

    Returns:
        BillingPeriod(month, year, due_date)
    """
    if not 1 <= cycle_start_day <= 31:
        raise ValueError(f"Billing cycle day must be between 1 and 31, got {cycle_start_day}")

    due_month, due_year = _next_month(reference_date.month, reference_date.year)
    return BillingPeriod(
        month=reference_date.month,
        year=reference_date.year,
        due_date=clamp_day(due_year, due_month, cycle_start_day),
    )


def next_invoice_date(reference_date: date, cycle_start_day: int) -> date:
    """Date the next invoice cycle starts for a gym, as shown on the billing overview"""
    return compute_period(reference_date, cycle_start_day).due_date


def _check_month(month: int) -> None:
    if not 1 <= month <= 12:
        raise ValueError(f"Month must be between 1 and 12, got {month}")
