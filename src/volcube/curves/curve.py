"""
Discount curve for projecting and discounting the swaps behind each
swaption node.

Nodes are discount factors at year fractions from the anchor date. The
curve interpolates continuously compounded zero rates between nodes and
exposes discount factors and simple forward rates by time or date.
"""

from datetime import date
from typing import Dict, List, Optional, Tuple, Union
import numpy as np

from ..conventions import DayCount, year_fraction
from .interpolation import Interpolator, create_interpolator

TimeOrDate = Union[float, date]


class Curve:
    """
    Zero-rate interpolated discount curve.

    Attributes:
        anchor_date: Date at time 0, where P(0, 0) = 1
        currency: Currency code
        day_count: Day count turning dates into curve times
        interpolation_method: Interpolator name for zero rates
    """

    def __init__(
        self,
        anchor_date: date,
        currency: str = "USD",
        day_count: DayCount = DayCount.ACT_365,
        interpolation_method: str = "cubic_spline"
    ):
        self.anchor_date = anchor_date
        self.currency = currency
        self.day_count = day_count
        self.interpolation_method = interpolation_method

        # time -> discount factor; the anchor is always a node
        self._dfs: Dict[float, float] = {0.0: 1.0}
        self._interpolator: Optional[Interpolator] = None

    def add_node(self, time: float, discount_factor: float) -> None:
        """Add or replace the discount factor at a curve time."""
        if time < 0:
            raise ValueError("Time must be non-negative")
        if discount_factor <= 0:
            raise ValueError(f"Invalid discount factor: {discount_factor}")

        self._dfs[float(time)] = float(discount_factor)
        self._interpolator = None

    def build(self) -> None:
        """
        Fit the zero-rate interpolator.

        The anchor node has no rate of its own and takes the first node's
        zero rate, giving a flat short end.
        """
        if len(self._dfs) < 2:
            raise ValueError("Need at least 2 nodes to build curve")

        times = np.array(sorted(self._dfs))
        zeros = np.empty(len(times))
        zeros[1:] = [-np.log(self._dfs[t]) / t for t in times[1:]]
        zeros[0] = zeros[1]

        interpolator = create_interpolator(self.interpolation_method)
        interpolator.fit(times, zeros)
        self._interpolator = interpolator

    def _zero(self, t: float) -> float:
        if self._interpolator is None:
            self.build()
        return self._interpolator.interpolate(t)

    def time(self, d: date) -> float:
        """Year fraction from the anchor date."""
        return year_fraction(self.anchor_date, d, self.day_count)

    def _as_time(self, t: TimeOrDate) -> float:
        return self.time(t) if isinstance(t, date) else float(t)

    def discount_factor(self, t: TimeOrDate) -> float:
        """P(0, t); 1.0 at or before the anchor."""
        t = self._as_time(t)
        if t <= 0:
            return 1.0
        return float(np.exp(-self._zero(t) * t))

    def zero_rate(self, t: TimeOrDate) -> float:
        """Continuously compounded zero rate z(t)."""
        return self._zero(max(self._as_time(t), 0.0))

    def forward_rate(
        self,
        t1: TimeOrDate,
        t2: TimeOrDate,
        accrual: Optional[float] = None
    ) -> float:
        """
        Simply compounded forward rate over [t1, t2].

        Args:
            t1: Period start
            t2: Period end
            accrual: Accrual fraction of the period; defaults to t2 - t1
                in curve time

        Returns:
            (P(t1) / P(t2) - 1) / accrual
        """
        t1 = self._as_time(t1)
        t2 = self._as_time(t2)
        if t2 <= t1:
            raise ValueError("t2 must be greater than t1")

        delta = accrual if accrual is not None else t2 - t1
        return (self.discount_factor(t1) / self.discount_factor(t2) - 1) / delta

    def get_nodes(self) -> List[Tuple[float, float, float]]:
        """(time, discount factor, zero rate) per node, by time."""
        nodes = []
        for t in sorted(self._dfs):
            df = self._dfs[t]
            nodes.append((t, df, -np.log(df) / t if t > 0 else 0.0))
        return nodes

    def __repr__(self) -> str:
        return (f"Curve(anchor={self.anchor_date}, currency={self.currency}, "
                f"nodes={len(self._dfs)}, method={self.interpolation_method})")


def create_flat_curve(
    anchor_date: date,
    rate: float,
    max_tenor_years: float = 40.0,
    currency: str = "USD"
) -> Curve:
    """
    Curve with a constant continuously compounded zero rate.

    Args:
        anchor_date: Date at time 0
        rate: Flat zero rate
        max_tenor_years: Longest node
        currency: Currency code

    Returns:
        Built curve with linear zero-rate interpolation
    """
    curve = Curve(anchor_date, currency, interpolation_method="linear")
    for t in (0.25, 0.5, 1.0, 2.0, 5.0, 10.0, 20.0, max_tenor_years):
        curve.add_node(t, float(np.exp(-rate * t)))
    curve.build()
    return curve


__all__ = [
    "Curve",
    "create_flat_curve",
]
