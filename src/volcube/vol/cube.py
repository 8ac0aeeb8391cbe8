"""
Swaption volatility cubes.

A cube maps (expiry, tenor, strike) to a Black volatility, built from an
ATM volatility structure and a grid of market vol spreads quoted at fixed
offsets from the ATM forward swap rate.

Two flavours share the construction inputs:
- SpreadVolCube: bilinear interpolation of the quoted spreads per strike
  and a linear smile in strike.
- SabrVolCube: SABR calibrated on the quoted grid, densified onto the ATM
  matrix grid, recalibrated, and queried through interpolated SABR
  parameters.
"""

from abc import ABC, abstractmethod
from bisect import bisect_left
from datetime import date
from typing import List, Optional, Sequence, Set, Tuple, Union
import logging

import numpy as np
import pandas as pd

from ..conventions import BusinessDayConvention, DayCount, adjust_business_day
from ..curves.interpolation import BilinearInterpolator, LinearInterpolator
from ..dates import DateUtils
from ..exceptions import DimensionMismatchError, InvalidGridError
from ..swaps import SwapConventions, make_vanilla_swap
from .calibration import SabrCalibrationConfig
from .grid import Cube, check_strictly_increasing, on_axis
from .parameters import NodeDiagnostics, calibrate_parameter_cube
from .sabr import PARAMETER_NAMES, SabrParams
from .smile import SmileSection, canonical_strikes

logger = logging.getLogger(__name__)

TimeLike = Union[float, str]


def _bracket(axis: Sequence[float], value: float) -> int:
    """
    Lower index of the pair of axis points around ``value``.

    Values on a node pair with the following node; the last node pairs
    with the one before it.
    """
    i = bisect_left(axis, value)
    if i == len(axis) or (i > 0 and axis[i] > value):
        i -= 1
    if i >= len(axis) - 1:
        i = len(axis) - 2
    return max(i, 0)


class SwaptionVolCube(ABC):
    """
    Base swaption vol cube: ATM structure plus spreads on a strike grid.

    Args:
        atm_vol: ATM structure exposing volatility(expiry, tenor, strike),
            expiry_times and tenor_times
        reference_date: Date at time 0
        expiries: Quoted expiry periods, increasing
        tenors: Quoted swap tenor periods, increasing
        strike_spreads: Offsets from the ATM forward, strictly increasing
        vol_spreads: Vol spreads, one row per (expiry, tenor) node in
            expiry-major order and one column per strike spread
        conventions: Conventions of the underlying swaps
        day_count: Day count of the time axes
    """

    def __init__(
        self,
        atm_vol,
        reference_date: date,
        expiries: Sequence[str],
        tenors: Sequence[str],
        strike_spreads: Sequence[float],
        vol_spreads,
        conventions: SwapConventions,
        day_count: DayCount = DayCount.ACT_365
    ):
        if len(expiries) < 2:
            raise InvalidGridError(f"Need at least 2 expiries, got {len(expiries)}")
        if len(tenors) < 2:
            raise InvalidGridError(f"Need at least 2 tenors, got {len(tenors)}")
        if len(strike_spreads) < 2:
            raise InvalidGridError(f"Need at least 2 strike spreads, got {len(strike_spreads)}")
        check_strictly_increasing(strike_spreads, "strike spreads")

        vol_spreads = np.asarray(vol_spreads, dtype=np.float64)
        expected = (len(expiries) * len(tenors), len(strike_spreads))
        if vol_spreads.shape != expected:
            raise DimensionMismatchError(
                f"Vol spreads shape {vol_spreads.shape}, expected {expected} "
                f"(expiries x tenors rows, strike spread columns)"
            )

        self.atm_vol = atm_vol
        self.reference_date = reference_date
        self.expiries = list(expiries)
        self.tenors = list(tenors)
        self.strike_spreads = np.asarray(strike_spreads, dtype=np.float64)
        self.vol_spreads = vol_spreads
        self.conventions = conventions
        self.day_count = day_count

        self.expiry_times = DateUtils.period_times(reference_date, expiries, day_count)
        self.tenor_times = DateUtils.period_times(reference_date, tenors, day_count)
        check_strictly_increasing(self.expiry_times, "expiries")
        check_strictly_increasing(self.tenor_times, "tenors")

        self.exercise_dates = [
            adjust_business_day(
                DateUtils.add_tenor(reference_date, p),
                BusinessDayConvention.FOLLOWING,
                conventions.holidays
            )
            for p in expiries
        ]
        self._exercise_interpolator = LinearInterpolator(extrapolate=True)
        self._exercise_interpolator.fit(
            self.expiry_times, np.array([d.toordinal() for d in self.exercise_dates], dtype=np.float64)
        )

    @property
    def n_strikes(self) -> int:
        return len(self.strike_spreads)

    def expiry_time(self, expiry: TimeLike) -> float:
        """Expiry in years; periods are measured from the reference date."""
        if isinstance(expiry, str):
            return float(DateUtils.period_times(self.reference_date, [expiry], self.day_count)[0])
        return float(expiry)

    def tenor_time(self, tenor: TimeLike) -> float:
        """Swap length in years, on the same time axis as the grid tenors."""
        if isinstance(tenor, str):
            return float(DateUtils.period_times(self.reference_date, [tenor], self.day_count)[0])
        return float(tenor)

    def exercise_date(self, expiry: TimeLike) -> date:
        """Exercise date at an expiry time, interpolated between quoted dates."""
        ordinal = self._exercise_interpolator(self.expiry_time(expiry))
        return date.fromordinal(int(round(ordinal)))

    def atm_strike(self, expiry: TimeLike, tenor: TimeLike) -> float:
        """Fair rate of the forward swap underlying the (expiry, tenor) swaption."""
        swap = make_vanilla_swap(self.conventions, self.exercise_date(expiry), self.tenor_time(tenor))
        return swap.fair_rate()

    def atm_volatility(self, expiry: TimeLike, tenor: TimeLike) -> float:
        """ATM vol from the ATM structure."""
        t_exp = self.expiry_time(expiry)
        t_ten = self.tenor_time(tenor)
        return float(self.atm_vol.volatility(t_exp, t_ten, self.atm_strike(t_exp, t_ten)))

    def variance(self, expiry: TimeLike, tenor: TimeLike, strike: Optional[float] = None) -> float:
        """Total Black variance vol^2 * T."""
        vol = self.volatility(expiry, tenor, strike)
        return vol * vol * self.expiry_time(expiry)

    @abstractmethod
    def volatility(self, expiry: TimeLike, tenor: TimeLike, strike: Optional[float] = None) -> float:
        """Black vol at (expiry, tenor, strike); ATM when strike is None."""
        pass

    @abstractmethod
    def smile_section(self, expiry: TimeLike, tenor: TimeLike) -> SmileSection:
        """SABR smile at (expiry, tenor)."""
        pass


class SpreadVolCube(SwaptionVolCube):
    """
    Single-stage cube interpolating market spreads directly.

    One grid layer per strike spread holds the quoted vol spreads. The
    smile at a node is linear in strike through ATM vol + spread at
    forward + spread.
    """

    def __init__(self, *args, config: Optional[SabrCalibrationConfig] = None, **kwargs):
        super().__init__(*args, **kwargs)
        self.config = config or SabrCalibrationConfig()

        n_ten = len(self.tenors)
        self.spread_cube = Cube(self.expiry_times, self.tenor_times, self.n_strikes)
        for i in range(self.n_strikes):
            matrix = self.vol_spreads[:, i].reshape(len(self.expiries), n_ten)
            self.spread_cube.set_layer(i, matrix)
        self.spread_cube.update_interpolators()
        logger.info(
            "Spread vol cube built: %d expiries x %d tenors x %d strikes",
            len(self.expiries), n_ten, self.n_strikes
        )

    def _samples(self, expiry: float, tenor: float) -> Tuple[float, np.ndarray, np.ndarray]:
        forward = self.atm_strike(expiry, tenor)
        atm_vol = float(self.atm_vol.volatility(expiry, tenor, forward))
        spreads = self.spread_cube(expiry, tenor)
        return forward, forward + self.strike_spreads, atm_vol + spreads

    def smile(self, expiry: TimeLike, tenor: TimeLike) -> LinearInterpolator:
        """Linear smile in strike at (expiry, tenor), extrapolated linearly."""
        _, strikes, vols = self._samples(self.expiry_time(expiry), self.tenor_time(tenor))
        interp = LinearInterpolator(extrapolate=True)
        interp.fit(strikes, vols)
        return interp

    def volatility(self, expiry: TimeLike, tenor: TimeLike, strike: Optional[float] = None) -> float:
        t_exp = self.expiry_time(expiry)
        t_ten = self.tenor_time(tenor)
        if strike is None:
            strike = self.atm_strike(t_exp, t_ten)
        return self.smile(t_exp, t_ten)(strike)

    def smile_section(self, expiry: TimeLike, tenor: TimeLike) -> SmileSection:
        """SABR section fitted to the interpolated spreads at (expiry, tenor)."""
        t_exp = self.expiry_time(expiry)
        forward, strikes, vols = self._samples(t_exp, self.tenor_time(tenor))
        return SmileSection.from_samples(t_exp, forward, strikes, vols, self.config)


class SabrVolCube(SwaptionVolCube):
    """
    SABR swaption vol cube.

    Construction runs four stages and either completes or raises:
    1. SABR fit at every quoted node (sparse parameters)
    2. Densification onto the ATM matrix grid by moneyness-scaled spread
       interpolation between the four surrounding sparse smiles
    3. SABR fit at every node of the densified cube (dense parameters)
    4. Interpolator rebuild; queries never mutate the cube

    Queries interpolate the dense parameters bilinearly (extrapolating
    outside the grid) and evaluate the Hagan formula.
    """

    def __init__(self, *args, config: Optional[SabrCalibrationConfig] = None, **kwargs):
        super().__init__(*args, **kwargs)
        self.config = config or SabrCalibrationConfig()

        self._check_within_sparse_bounds()
        n_exp, n_ten = len(self.expiries), len(self.tenors)

        self.market_vol_cube = Cube(self.expiry_times, self.tenor_times, self.n_strikes)
        for j, t_exp in enumerate(self.expiry_times):
            for k, t_ten in enumerate(self.tenor_times):
                atm_vol = self.atm_volatility(t_exp, t_ten)
                for i in range(self.n_strikes):
                    self.market_vol_cube.set_element(i, j, k, atm_vol + self.vol_spreads[j * n_ten + k, i])
        self.market_vol_cube.update_interpolators()

        self.sparse_diagnostics: List[NodeDiagnostics] = []
        self.sparse_parameters = calibrate_parameter_cube(
            self.market_vol_cube, self.strike_spreads, self.atm_strike,
            self.config, self.sparse_diagnostics
        )
        logger.info("Sparse SABR calibration done on %d x %d nodes", n_exp, n_ten)

        self.dense_vol_cube = self.fill_volatility_cube()
        dense_exp, dense_ten = len(self.dense_vol_cube.expiries), len(self.dense_vol_cube.tenors)
        logger.info("Vol cube densified to %d x %d nodes", dense_exp, dense_ten)

        self.dense_diagnostics: List[NodeDiagnostics] = []
        self.dense_parameters = calibrate_parameter_cube(
            self.dense_vol_cube, self.strike_spreads, self.atm_strike,
            self.config, self.dense_diagnostics
        )
        logger.info("Dense SABR calibration done on %d x %d nodes", dense_exp, dense_ten)

    # ==============================================================================
    # Densification

    def _sparse_smiles(self) -> List[List[SmileSection]]:
        """Closed-form smile per sparse node, no refitting."""
        strikes = canonical_strikes(self.n_strikes)
        points = self.sparse_parameters.points
        smiles = []
        for j, t_exp in enumerate(self.sparse_parameters.expiries):
            row = []
            for k in range(len(self.sparse_parameters.tenors)):
                params = SabrParams.from_layers(points[:, j, k])
                row.append(SmileSection.from_parameters(t_exp, params, strikes))
            smiles.append(row)
        return smiles

    def _check_within_sparse_bounds(self) -> None:
        """The ATM grid must lie inside the quoted grid."""
        expiries = np.asarray(self.atm_vol.expiry_times, dtype=np.float64)
        tenors = np.asarray(self.atm_vol.tenor_times, dtype=np.float64)
        sparse_exp = self.expiry_times
        sparse_ten = self.tenor_times
        if expiries[0] < sparse_exp[0] or expiries[-1] > sparse_exp[-1]:
            raise InvalidGridError(
                f"ATM expiries [{expiries[0]:.4f}, {expiries[-1]:.4f}] outside quoted expiries "
                f"[{sparse_exp[0]:.4f}, {sparse_exp[-1]:.4f}]"
            )
        if tenors[0] < sparse_ten[0] or tenors[-1] > sparse_ten[-1]:
            raise InvalidGridError(
                f"ATM tenors [{tenors[0]:.4f}, {tenors[-1]:.4f}] outside quoted tenors "
                f"[{sparse_ten[0]:.4f}, {sparse_ten[-1]:.4f}]"
            )

    def spread_vol_interpolation(
        self,
        expiry: float,
        tenor: float,
        smiles: Optional[List[List[SmileSection]]] = None
    ) -> np.ndarray:
        """
        Spread vols per strike spread at an off-grid node.

        Each strike keeps its moneyness forward/strike when carried to the
        four surrounding sparse smiles; their spread vols (smile at the
        carried strike minus smile at their own forward) are interpolated
        bilinearly at the node.
        """
        if smiles is None:
            smiles = self._sparse_smiles()
        sparse_exp = self.sparse_parameters.expiries.tolist()
        sparse_ten = self.sparse_parameters.tenors.tolist()

        j = _bracket(sparse_exp, expiry)
        k = _bracket(sparse_ten, tenor)
        neighbours = [[smiles[j + a][k + b] for b in (0, 1)] for a in (0, 1)]

        forward = self.atm_strike(expiry, tenor)
        result = np.empty(self.n_strikes)
        for i, spread in enumerate(self.strike_spreads):
            moneyness = forward / (forward + spread)
            spread_vols = np.array([
                [smile.volatility(smile.forward / moneyness) - smile.volatility(smile.forward)
                 for smile in row]
                for row in neighbours
            ])
            interp = BilinearInterpolator(extrapolate=True)
            interp.fit(sparse_exp[j:j + 2], sparse_ten[k:k + 2], spread_vols)
            result[i] = interp(expiry, tenor)
        return result

    def _write_interpolated_node(self, cube: Cube, expiry: float, tenor: float, smiles) -> None:
        vols = self.atm_volatility(expiry, tenor) + self.spread_vol_interpolation(expiry, tenor, smiles)
        cube.set_point(expiry, tenor, vols)
        logger.debug("Interpolated node expiry=%.4f tenor=%.4f", expiry, tenor)

    def fill_volatility_cube(self) -> Cube:
        """
        Market vol cube extended to every node of the ATM matrix grid.

        ATM nodes whose expiry or tenor is missing from the quoted axes get
        vols from spread_vol_interpolation; other nodes keep the market
        vols. Union-grid nodes left empty by the insertion are filled the
        same way.

        Raises:
            InvalidGridError: If the ATM grid reaches outside the quoted grid
        """
        atm_expiries = np.asarray(self.atm_vol.expiry_times, dtype=np.float64)
        atm_tenors = np.asarray(self.atm_vol.tenor_times, dtype=np.float64)
        self._check_within_sparse_bounds()

        sparse_exp = self.sparse_parameters.expiries.tolist()
        sparse_ten = self.sparse_parameters.tenors.tolist()
        smiles = self._sparse_smiles()

        dense = self.market_vol_cube.copy()
        populated: Set[Tuple[float, float]] = {(e, t) for e in sparse_exp for t in sparse_ten}

        for t_exp in atm_expiries:
            for t_ten in atm_tenors:
                if on_axis(sparse_exp, t_exp) and on_axis(sparse_ten, t_ten):
                    continue
                self._write_interpolated_node(dense, float(t_exp), float(t_ten), smiles)
                populated.add((float(t_exp), float(t_ten)))

        holes = [
            (e, t) for e in dense.expiries.tolist() for t in dense.tenors.tolist()
            if (e, t) not in populated
        ]
        for t_exp, t_ten in holes:
            self._write_interpolated_node(dense, t_exp, t_ten, smiles)
        if holes:
            logger.debug("Filled %d union-grid nodes", len(holes))

        dense.update_interpolators()
        return dense

    # ==============================================================================
    # Queries

    def parameters(self, expiry: TimeLike, tenor: TimeLike) -> SabrParams:
        """Dense SABR parameters at (expiry, tenor), clipped when extrapolated."""
        values = self.dense_parameters(self.expiry_time(expiry), self.tenor_time(tenor))
        return SabrParams.from_layers(values, clip=True)

    def smile_section(self, expiry: TimeLike, tenor: TimeLike) -> SmileSection:
        t_exp = self.expiry_time(expiry)
        return SmileSection.from_parameters(
            t_exp, self.parameters(t_exp, tenor), canonical_strikes(self.n_strikes)
        )

    def volatility(self, expiry: TimeLike, tenor: TimeLike, strike: Optional[float] = None) -> float:
        section = self.smile_section(expiry, tenor)
        if strike is None:
            strike = section.forward
        return section.volatility(strike)

    def calibration_report(self) -> pd.DataFrame:
        """
        Sparse and dense parameters with fit diagnostics, one row per node.

        Columns: stage, expiry, tenor, alpha, beta, nu, rho, forward, rmse,
        max_error, iterations.
        """
        rows = []
        for stage, cube, diagnostics in (
            ("sparse", self.sparse_parameters, self.sparse_diagnostics),
            ("dense", self.dense_parameters, self.dense_diagnostics),
        ):
            points = cube.points
            n_ten = len(cube.tenors)
            for n, diag in enumerate(diagnostics):
                j, k = divmod(n, n_ten)
                row = {"stage": stage, "expiry": diag.expiry, "tenor": diag.tenor}
                row.update(zip(PARAMETER_NAMES, points[:, j, k].tolist()))
                row.update(rmse=diag.rmse, max_error=diag.max_error, iterations=diag.iterations)
                rows.append(row)
        return pd.DataFrame(rows)


__all__ = [
    "SwaptionVolCube",
    "SpreadVolCube",
    "SabrVolCube",
]
