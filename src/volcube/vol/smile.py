"""
Smile sections: volatility against strike for one (expiry, tenor) node.

A section is built either by fitting SABR to (strike, vol) samples or
directly from known SABR parameters. Both modes resolve to a SabrParams
evaluated by the same Hagan formula.
"""

from dataclasses import dataclass
from typing import Optional, Sequence, Tuple, Union

import numpy as np

from ..exceptions import CalibrationAccuracyError
from .calibration import CalibrationResult, SabrCalibrationConfig, SabrCalibrator
from .sabr import SabrParams, sabr_smile, sabr_vol


@dataclass(frozen=True)
class FittedFromSamples:
    """Section source: SABR fitted to market samples."""
    forward: float
    strikes: Tuple[float, ...]
    volatilities: Tuple[float, ...]
    tolerance: float


@dataclass(frozen=True)
class FromParameters:
    """Section source: known SABR parameters."""
    alpha: float
    beta: float
    nu: float
    rho: float
    forward: float


SmileSource = Union[FittedFromSamples, FromParameters]


def canonical_strikes(n_strikes: int) -> np.ndarray:
    """Anchor strikes 0.05*i + 0.01 for closed-form sections."""
    return 0.05 * np.arange(n_strikes) + 0.01


class SmileSection:
    """
    SABR smile for one expiry.

    Use SmileSection.from_samples or SmileSection.from_parameters rather
    than the constructor.

    Attributes:
        time_to_expiry: Option expiry in years
        source: How the section was built
        params: Resolved SABR parameters
        strikes: Strikes the section is anchored on
        calibration: Fit result for sample-fitted sections, else None
    """

    def __init__(
        self,
        time_to_expiry: float,
        source: SmileSource,
        params: SabrParams,
        strikes: Sequence[float],
        calibration: Optional[CalibrationResult] = None
    ):
        if time_to_expiry <= 0:
            raise ValueError(f"Time to expiry must be positive, got {time_to_expiry}")
        self.time_to_expiry = float(time_to_expiry)
        self.source = source
        self.params = params
        self.strikes = np.asarray(strikes, dtype=np.float64)
        self.calibration = calibration

    @classmethod
    def from_samples(
        cls,
        time_to_expiry: float,
        forward: float,
        strikes: Sequence[float],
        volatilities: Sequence[float],
        config: Optional[SabrCalibrationConfig] = None
    ) -> "SmileSection":
        """
        Fit SABR to (strike, vol) samples.

        Raises:
            CalibrationAccuracyError: If the RMS vol residual is not below
                config.accuracy_tolerance
        """
        config = config or SabrCalibrationConfig()
        source = FittedFromSamples(
            forward=float(forward),
            strikes=tuple(float(k) for k in strikes),
            volatilities=tuple(float(v) for v in volatilities),
            tolerance=config.accuracy_tolerance,
        )
        result = SabrCalibrator(config).fit(
            source.strikes, source.volatilities, source.forward, time_to_expiry
        )
        if not result.accurate(source.tolerance):
            raise CalibrationAccuracyError(
                f"SABR smile accuracy not reached: rmse {result.rmse:.3e} >= {source.tolerance:.1e}",
                error=result.rmse,
                tolerance=source.tolerance,
            )
        return cls(time_to_expiry, source, result.params, source.strikes, calibration=result)

    @classmethod
    def from_parameters(
        cls,
        time_to_expiry: float,
        params: SabrParams,
        strikes: Optional[Sequence[float]] = None
    ) -> "SmileSection":
        """Closed-form section from known parameters; no fitting."""
        source = FromParameters(
            alpha=params.alpha, beta=params.beta, nu=params.nu,
            rho=params.rho, forward=params.forward
        )
        if strikes is None:
            strikes = [params.forward]
        return cls(time_to_expiry, source, params, strikes)

    @property
    def forward(self) -> float:
        return self.params.forward

    @property
    def is_fitted(self) -> bool:
        return isinstance(self.source, FittedFromSamples)

    def volatility(self, strike: float) -> float:
        """Black implied vol at strike."""
        return sabr_vol(strike, self.time_to_expiry, self.params)

    def variance(self, strike: float) -> float:
        """Total Black variance vol^2 * T at strike."""
        vol = self.volatility(strike)
        return vol * vol * self.time_to_expiry

    def smile(self, strikes: Optional[Sequence[float]] = None) -> np.ndarray:
        """Vols across strikes (the anchor strikes by default)."""
        if strikes is None:
            strikes = self.strikes
        return sabr_smile(strikes, self.time_to_expiry, self.params)

    def __repr__(self) -> str:
        mode = "fitted" if self.is_fitted else "parameters"
        return (f"SmileSection(T={self.time_to_expiry:.4f}, F={self.forward:.6f}, "
                f"mode={mode})")


__all__ = [
    "FittedFromSamples",
    "FromParameters",
    "SmileSection",
    "canonical_strikes",
]
