"""
Date utility functions.
"""

import calendar
from datetime import date, datetime
from typing import Tuple

from dateutil.relativedelta import relativedelta


class DateUtils:
    """Utility functions for date operations."""

    @staticmethod
    def days_in_month(year: int, month: int) -> int:
        return calendar.monthrange(year, month)[1]

    @staticmethod
    def get_month_range(year: int, month: int) -> Tuple[date, date]:
        """Get first and last day of a month."""
        first_day = date(year, month, 1)
        last_day = date(year, month, DateUtils.days_in_month(year, month))
        return first_day, last_day

    @staticmethod
    def clamp_day(year: int, month: int, day: int) -> date:
        """Date in the given month with ``day`` capped at the month length."""
        return date(year, month, min(day, DateUtils.days_in_month(year, month)))

    @staticmethod
    def add_months(start_date: date, months: int) -> date:
        """Add months to a date, keeping the day when the target month allows it."""
        return start_date + relativedelta(months=months)

    @staticmethod
    def previous_period(year: int, month: int) -> Tuple[int, int]:
        """Year and month before the given one (January wraps to December)."""
        if month == 1:
            return year - 1, 12
        return year, month - 1

    @staticmethod
    def sunday_based_weekday(value: date) -> int:
        """Weekday with Sunday as 0 and Saturday as 6."""
        return (value.weekday() + 1) % 7

    @staticmethod
    def hours_since(moment: datetime, now: datetime = None) -> float:
        now = now or datetime.now()
        return (now - moment).total_seconds() / 3600

    @staticmethod
    def month_key(value: date) -> str:
        """``YYYY-MM`` key of a date."""
        return value.strftime("%Y-%m")

    @staticmethod
    def end_of_month(value: date) -> date:
        return DateUtils.get_month_range(value.year, value.month)[1]
