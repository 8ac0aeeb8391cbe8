"""
Vanilla interest rate swaps for ATM strike computation.

The ATM strike of a swaption is the fair fixed rate of the underlying
forward-starting swap:

    fair_rate = PV_float / Annuity

    Annuity  = sum(delta_fixed_i * DF(T_i))
    PV_float = sum((P(s_j) / P(e_j) - 1) * DF(T_j))

where P is the index projection curve and DF the discount curve.
"""

from dataclasses import dataclass, field
from datetime import date
from typing import Optional

from .conventions import BusinessDayConvention, DayCount
from .curves.curve import Curve
from .dates import DateUtils, ScheduleInfo, generate_leg_schedule


@dataclass
class SwapIndex:
    """
    Floating rate index of a swap.

    Attributes:
        name: Index name (e.g., "USD-LIBOR-3M")
        curve: Projection curve for the index fixings
        frequency: Floating payments per year
        day_count: Floating leg accrual day count
        business_day: Floating leg payment adjustment
    """
    name: str
    curve: Curve
    frequency: int = 4
    day_count: DayCount = DayCount.ACT_360
    business_day: BusinessDayConvention = BusinessDayConvention.MODIFIED_FOLLOWING


@dataclass
class SwapConventions:
    """
    Conventions of the swaps underlying the quoted swaptions.

    Attributes:
        index: Floating index for long tenors
        settlement_days: Business days from exercise to swap start
        fixed_frequency: Fixed leg payments per year
        fixed_business_day: Fixed leg payment adjustment
        fixed_day_count: Fixed leg accrual day count
        short_tenor: Tenors up to this length (years) use short_index
        short_index: Floating index for short tenors (defaults to index)
        discount_curve: Discount curve (defaults to the index curve)
        holidays: Holiday calendar
    """
    index: SwapIndex
    settlement_days: int = 2
    fixed_frequency: int = 1
    fixed_business_day: BusinessDayConvention = BusinessDayConvention.MODIFIED_FOLLOWING
    fixed_day_count: DayCount = DayCount.THIRTY_360
    short_tenor: float = 0.0
    short_index: Optional[SwapIndex] = None
    discount_curve: Optional[Curve] = None
    holidays: set = field(default_factory=set)

    def index_for(self, length: float) -> SwapIndex:
        """Floating index used for a swap of the given length in years."""
        if self.short_index is not None and length <= self.short_tenor:
            return self.short_index
        return self.index


class VanillaSwap:
    """
    Fixed-vs-floating swap with unit notional.

    Only the fair rate and its building blocks are exposed; the swap is a
    collaborator of the vol cube, not a priced trade.
    """

    def __init__(
        self,
        effective: date,
        maturity: date,
        index: SwapIndex,
        fixed_frequency: int = 1,
        fixed_day_count: DayCount = DayCount.THIRTY_360,
        fixed_business_day: BusinessDayConvention = BusinessDayConvention.MODIFIED_FOLLOWING,
        discount_curve: Optional[Curve] = None,
        holidays: Optional[set] = None
    ):
        if maturity <= effective:
            raise ValueError(f"Swap maturity {maturity} must be after effective date {effective}")

        self.effective = effective
        self.maturity = maturity
        self.index = index
        self.discount_curve = discount_curve or index.curve

        self.fixed_schedule: ScheduleInfo = generate_leg_schedule(
            effective, maturity, fixed_frequency, fixed_day_count,
            fixed_business_day, holidays
        )
        self.float_schedule: ScheduleInfo = generate_leg_schedule(
            effective, maturity, index.frequency, index.day_count,
            index.business_day, holidays
        )

    def annuity(self) -> float:
        """Fixed leg PV01 for unit notional."""
        return sum(
            yf * self.discount_curve.discount_factor(pmt)
            for yf, pmt in zip(self.fixed_schedule.year_fractions,
                               self.fixed_schedule.payment_dates)
        )

    def floating_leg_pv(self) -> float:
        """PV of the floating leg projected off the index curve."""
        schedule = self.float_schedule
        projection = self.index.curve
        pv = 0.0
        for start, end, pmt, yf in zip(schedule.accrual_starts, schedule.accrual_ends,
                                       schedule.payment_dates, schedule.year_fractions):
            fwd = projection.forward_rate(start, end, accrual=yf)
            pv += fwd * yf * self.discount_curve.discount_factor(pmt)
        return pv

    def fair_rate(self) -> float:
        """Fixed rate that sets the swap value to zero."""
        annuity = self.annuity()
        if annuity <= 0:
            raise ValueError(f"Non-positive annuity {annuity} for swap {self.effective} -> {self.maturity}")
        return self.floating_leg_pv() / annuity


def make_vanilla_swap(
    conventions: SwapConventions,
    exercise_date: date,
    length: float
) -> VanillaSwap:
    """
    Build the swap underlying a swaption.

    The swap starts ``settlement_days`` business days after exercise and
    runs for ``length`` years, rounded to whole months.

    Args:
        conventions: Swap conventions
        exercise_date: Swaption exercise date
        length: Swap length in years

    Returns:
        VanillaSwap
    """
    start = exercise_date
    if conventions.settlement_days > 0:
        start = DateUtils.add_tenor(exercise_date, f"{conventions.settlement_days}D",
                                    conventions.holidays)

    months = max(int(round(length * 12)), 1)
    end = DateUtils.add_tenor(start, f"{months}M")

    return VanillaSwap(
        effective=start,
        maturity=end,
        index=conventions.index_for(length),
        fixed_frequency=conventions.fixed_frequency,
        fixed_day_count=conventions.fixed_day_count,
        fixed_business_day=conventions.fixed_business_day,
        discount_curve=conventions.discount_curve,
        holidays=conventions.holidays
    )


__all__ = [
    "SwapIndex",
    "SwapConventions",
    "VanillaSwap",
    "make_vanilla_swap",
]
