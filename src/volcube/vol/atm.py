"""
ATM swaption volatility matrix.

Strike-independent Black vols on an expiry x tenor grid, interpolated
bilinearly. It feeds the vol cube with ATM levels and with the (usually
finer) grid the cube is densified onto.
"""

from datetime import date
from typing import Optional, Sequence

import numpy as np

from ..conventions import DayCount
from ..curves.interpolation import BilinearInterpolator
from ..dates import DateUtils
from ..exceptions import DimensionMismatchError, InvalidGridError
from .grid import check_strictly_increasing


class SwaptionVolMatrix:
    """
    ATM Black volatility by (expiry, tenor).

    Attributes:
        reference_date: Date at time 0
        expiries: Expiry periods ("1M", "1Y", ...)
        tenors: Swap tenor periods
        expiry_times: Expiry axis in years from the reference date
        tenor_times: Tenor axis in years, measured the same way
    """

    def __init__(
        self,
        reference_date: date,
        expiries: Sequence[str],
        tenors: Sequence[str],
        vols,
        day_count: DayCount = DayCount.ACT_365
    ):
        if len(expiries) < 2 or len(tenors) < 2:
            raise InvalidGridError(
                f"ATM matrix needs at least 2 expiries and 2 tenors, got {len(expiries)}x{len(tenors)}"
            )
        vols = np.asarray(vols, dtype=np.float64)
        if vols.shape != (len(expiries), len(tenors)):
            raise DimensionMismatchError(
                f"ATM vols shape {vols.shape} does not match grid ({len(expiries)}, {len(tenors)})"
            )
        if np.any(vols <= 0):
            raise ValueError("ATM volatilities must be positive")

        self.reference_date = reference_date
        self.expiries = list(expiries)
        self.tenors = list(tenors)
        self.day_count = day_count

        self.expiry_times = DateUtils.period_times(reference_date, expiries, day_count)
        self.tenor_times = DateUtils.period_times(reference_date, tenors, day_count)
        check_strictly_increasing(self.expiry_times, "ATM expiries")
        check_strictly_increasing(self.tenor_times, "ATM tenors")

        self._vols = vols.copy()
        self._interpolator = BilinearInterpolator(extrapolate=True)
        self._interpolator.fit(self.expiry_times, self.tenor_times, self._vols)

    @property
    def vols(self) -> np.ndarray:
        return self._vols.copy()

    def volatility(self, expiry: float, tenor: float, strike: Optional[float] = None) -> float:
        """ATM vol at (expiry, tenor); the strike is ignored."""
        return self._interpolator(expiry, tenor)

    def __repr__(self) -> str:
        return f"SwaptionVolMatrix(expiries={self.expiries}, tenors={self.tenors})"


__all__ = ["SwaptionVolMatrix"]
