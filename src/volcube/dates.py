"""
Period arithmetic and swap leg schedules.

Expiries and tenors are quoted as periods ("1M", "18M", "10Y"). They are
turned into dates by calendar arithmetic and into times by the cube's
day count; leg schedules are rolled backward from maturity.
"""

from dataclasses import dataclass
from datetime import date, timedelta
from typing import List, Optional, Sequence, Tuple
import calendar
import re

import numpy as np

from .conventions import (
    BusinessDayConvention,
    DayCount,
    adjust_business_day,
    is_business_day,
    year_fraction
)

_PERIOD_RE = re.compile(r'^(\d+)([DWMY])$')

_APPROX_YEARS = {'D': 1 / 365.0, 'W': 7 / 365.0, 'M': 1 / 12.0, 'Y': 1.0}


def _add_months(start: date, months: int) -> date:
    # Day clamped to the target month's length (Jan 31 + 1M -> Feb 28/29)
    y, m = divmod(start.month - 1 + months, 12)
    year, month = start.year + y, m + 1
    return date(year, month, min(start.day, calendar.monthrange(year, month)[1]))


def _add_business_days(start: date, count: int, holidays: Optional[set]) -> date:
    d = start
    while count > 0:
        d += timedelta(days=1)
        if is_business_day(d, holidays):
            count -= 1
    return d


class DateUtils:
    """Period parsing and date arithmetic."""

    @staticmethod
    def parse_tenor(tenor: str) -> Tuple[int, str]:
        """
        Split a period string into (amount, unit), e.g. "18m" -> (18, "M").

        Raises:
            ValueError: If the string is not <digits><D|W|M|Y>
        """
        match = _PERIOD_RE.match(tenor.strip().upper())
        if match is None:
            raise ValueError(f"Invalid tenor format: {tenor}. Expected format like '3M', '2Y'")
        return int(match.group(1)), match.group(2)

    @staticmethod
    def add_tenor(start: date, tenor: str, holidays: Optional[set] = None) -> date:
        """
        Shift a date by a period.

        "D" periods count business days. Weeks, months and years are plain
        calendar shifts and are not rolled.
        """
        amount, unit = DateUtils.parse_tenor(tenor)
        if unit == 'D':
            return _add_business_days(start, amount, holidays)
        if unit == 'W':
            return start + timedelta(weeks=amount)
        return _add_months(start, amount * (12 if unit == 'Y' else 1))

    @staticmethod
    def tenor_to_years(tenor: str) -> float:
        """Rough length of a period in years (no calendar involved)."""
        amount, unit = DateUtils.parse_tenor(tenor)
        return amount * _APPROX_YEARS[unit]

    @staticmethod
    def period_times(
        reference_date: date,
        periods: Sequence[str],
        day_count: DayCount = DayCount.ACT_365
    ) -> np.ndarray:
        """
        Year fractions from the reference date to reference + period.

        Cube and ATM matrix axes both come from here, so equal periods give
        bit-identical times. Input order is kept.
        """
        return np.array(
            [year_fraction(reference_date, DateUtils.add_tenor(reference_date, p), day_count)
             for p in periods],
            dtype=np.float64,
        )

    @staticmethod
    def generate_schedule(
        start: date,
        end: date,
        frequency: int,
        convention: BusinessDayConvention = BusinessDayConvention.MODIFIED_FOLLOWING,
        holidays: Optional[set] = None
    ) -> List[date]:
        """
        Adjusted payment dates in (start, end], generated backward from end.

        Args:
            start: Accrual start
            end: Maturity
            frequency: Payments per year; must divide 12
            convention: Roll applied to each date
            holidays: Holiday calendar

        Returns:
            Payment dates in increasing order; any stub is at the front
        """
        if frequency <= 0 or 12 % frequency:
            raise ValueError(f"Frequency must divide 12, got {frequency}")

        step = 12 // frequency
        dates = []
        k = 0
        d = end
        while d > start:
            dates.append(d)
            k += 1
            d = _add_months(end, -k * step)

        return [adjust_business_day(d, convention, holidays) for d in reversed(dates)]


@dataclass
class ScheduleInfo:
    """Payment dates of a leg with their accrual periods."""
    payment_dates: List[date]
    accrual_starts: List[date]
    accrual_ends: List[date]
    year_fractions: List[float]
    day_count: DayCount


def generate_leg_schedule(
    effective: date,
    maturity: date,
    frequency: int,
    day_count: DayCount,
    convention: BusinessDayConvention = BusinessDayConvention.MODIFIED_FOLLOWING,
    holidays: Optional[set] = None
) -> ScheduleInfo:
    """
    Schedule of one swap leg.

    Each accrual period runs from the previous payment date (the
    effective date for the first) to the next one.
    """
    payments = [
        d for d in DateUtils.generate_schedule(effective, maturity, frequency, convention, holidays)
        if d > effective
    ] or [maturity]

    starts = [effective] + payments[:-1]
    return ScheduleInfo(
        payment_dates=payments,
        accrual_starts=starts,
        accrual_ends=list(payments),
        year_fractions=[year_fraction(s, e, day_count) for s, e in zip(starts, payments)],
        day_count=day_count
    )


__all__ = [
    "DateUtils",
    "ScheduleInfo",
    "generate_leg_schedule",
]
