"""
Market conventions for the swaps underlying quoted swaptions.

Day counts turn date pairs into accrual fractions (ACT/360 floating legs,
30/360 fixed legs, ACT/365 for the vol cube time axis). Business day
conventions roll payment and exercise dates off weekends and holidays.
"""

from datetime import date, timedelta
from enum import Enum
from typing import Optional
import calendar


class DayCount(Enum):
    """Day count convention enumeration."""
    ACT_360 = "ACT/360"
    ACT_365 = "ACT/365"
    ACT_ACT = "ACT/ACT"
    THIRTY_360 = "30/360"

    @classmethod
    def from_string(cls, s: str) -> "DayCount":
        """Parse "ACT/360", "act360", "30/360", ..."""
        key = s.upper().replace(" ", "").replace("/", "")
        for member in cls:
            if member.value.replace("/", "") == key:
                return member
        raise ValueError(f"Unknown day count convention: {s}")


class BusinessDayConvention(Enum):
    """How a date falling on a non-business day is rolled."""
    MODIFIED_FOLLOWING = "ModifiedFollowing"
    FOLLOWING = "Following"
    PRECEDING = "Preceding"
    UNADJUSTED = "Unadjusted"


def _act_act(start: date, end: date) -> float:
    # ISDA: each calendar year contributes days / days-in-that-year
    total = 0.0
    for year in range(start.year, end.year + 1):
        lo = max(start, date(year, 1, 1))
        hi = min(end, date(year + 1, 1, 1))
        if hi > lo:
            total += (hi - lo).days / (366 if calendar.isleap(year) else 365)
    return total


def _thirty_360(start: date, end: date) -> float:
    d1 = min(start.day, 30)
    d2 = 30 if (end.day == 31 and d1 == 30) else end.day
    days = 360 * (end.year - start.year) + 30 * (end.month - start.month) + (d2 - d1)
    return days / 360.0


def year_fraction(start: date, end: date, day_count: DayCount) -> float:
    """
    Accrual fraction between two dates.

    Returns 0.0 when end is not after start.
    """
    if end <= start:
        return 0.0

    if day_count == DayCount.ACT_360:
        return (end - start).days / 360.0
    if day_count == DayCount.ACT_365:
        return (end - start).days / 365.0
    if day_count == DayCount.ACT_ACT:
        return _act_act(start, end)
    if day_count == DayCount.THIRTY_360:
        return _thirty_360(start, end)
    raise ValueError(f"Unknown day count: {day_count}")


def is_business_day(d: date, holidays: Optional[set] = None) -> bool:
    """Weekdays not in the holiday set."""
    return d.weekday() < 5 and not (holidays and d in holidays)


def _roll(d: date, step: int, holidays: Optional[set]) -> date:
    while not is_business_day(d, holidays):
        d += timedelta(days=step)
    return d


def adjust_business_day(
    d: date,
    convention: BusinessDayConvention,
    holidays: Optional[set] = None
) -> date:
    """
    Roll a date onto a business day.

    Args:
        d: Date to adjust
        convention: Business day adjustment rule
        holidays: Optional set of holiday dates

    Returns:
        Adjusted date
    """
    if convention == BusinessDayConvention.UNADJUSTED:
        return d
    if convention == BusinessDayConvention.PRECEDING:
        return _roll(d, -1, holidays)

    following = _roll(d, 1, holidays)
    if convention == BusinessDayConvention.MODIFIED_FOLLOWING and following.month != d.month:
        return _roll(d, -1, holidays)
    return following


__all__ = [
    "DayCount",
    "BusinessDayConvention",
    "year_fraction",
    "is_business_day",
    "adjust_business_day",
]
