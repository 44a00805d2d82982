"""
Occurrence date arithmetic for recurring transactions.

Days of week use Sunday = 0. Monthly, quarterly and yearly schedules clamp the
day of month to the length of the target month (31 -> 28/29 in February).
"""

from datetime import date, timedelta
from typing import List, Optional

from dateutil.relativedelta import relativedelta

from ..models.transaction import RecurrenceFrequency
from ..utils.date_utils import DateUtils

MAX_OCCURRENCES = 100
DEFAULT_HORIZON_MONTHS = 12

_WEEK_PERIODS = {
    RecurrenceFrequency.WEEKLY: 7,
    RecurrenceFrequency.BIWEEKLY: 14,
}
_MONTH_STEPS = {
    RecurrenceFrequency.MONTHLY: 1,
    RecurrenceFrequency.QUARTERLY: 3,
}


def next_occurrence(
    current: date,
    frequency: RecurrenceFrequency,
    day_of_month: Optional[int] = None,
    day_of_week: Optional[int] = None,
) -> date:
    """Date of the occurrence that follows ``current``."""
    frequency = RecurrenceFrequency(frequency)

    if frequency == RecurrenceFrequency.DAILY:
        return current + timedelta(days=1)

    if frequency in _WEEK_PERIODS:
        period = _WEEK_PERIODS[frequency]
        following = current + timedelta(days=period)
        if day_of_week is not None:
            diff = (day_of_week - DateUtils.sunday_based_weekday(following) + 7) % 7
            if diff > 0:
                following += timedelta(days=diff - period)
        return following

    if frequency in _MONTH_STEPS:
        first_of_month = current.replace(day=1) + relativedelta(months=_MONTH_STEPS[frequency])
        if day_of_month:
            return DateUtils.clamp_day(first_of_month.year, first_of_month.month, day_of_month)
        return first_of_month

    if frequency == RecurrenceFrequency.YEARLY:
        year, month = current.year + 1, current.month
        return DateUtils.clamp_day(year, month, day_of_month or current.day)

    return current


def first_occurrence(
    start: date,
    frequency: RecurrenceFrequency,
    day_of_month: Optional[int] = None,
    day_of_week: Optional[int] = None,
) -> date:
    """First occurrence on or after ``start`` that matches the schedule."""
    frequency = RecurrenceFrequency(frequency)

    if frequency in _WEEK_PERIODS:
        if day_of_week is not None:
            diff = (day_of_week - DateUtils.sunday_based_weekday(start) + 7) % 7
            return start + timedelta(days=diff)
        return start

    if frequency in (RecurrenceFrequency.MONTHLY, RecurrenceFrequency.QUARTERLY, RecurrenceFrequency.YEARLY):
        if day_of_month:
            candidate = DateUtils.clamp_day(start.year, start.month, day_of_month)
            if candidate < start:
                return next_occurrence(candidate, frequency, day_of_month, day_of_week)
            return candidate

    return start


def occurrence_dates(
    start: date,
    end: Optional[date],
    frequency: RecurrenceFrequency,
    day_of_month: Optional[int] = None,
    day_of_week: Optional[int] = None,
    max_date: Optional[date] = None,
    max_occurrences: int = MAX_OCCURRENCES,
) -> List[date]:
    """
    All occurrence dates from ``start`` up to ``end`` or ``max_date``, whichever comes first.

    ``max_date`` defaults to twelve months from today and the result is capped at
    ``max_occurrences`` dates.
    """
    limit = max_date or date.today() + relativedelta(months=DEFAULT_HORIZON_MONTHS)
    effective_end = end if end is not None and end < limit else limit

    current = first_occurrence(start, frequency, day_of_month, day_of_week)
    if current < start:
        current = next_occurrence(current, frequency, day_of_month, day_of_week)

    dates: List[date] = []
    while current <= effective_end:
        dates.append(current)
        following = next_occurrence(current, frequency, day_of_month, day_of_week)
        if following <= current:
            break
        current = following
        if len(dates) >= max_occurrences:
            break
    return dates
