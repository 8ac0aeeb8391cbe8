"""
SABR model calibration.

Fits all four SABR parameters (alpha, beta, nu, rho) to a smile of
(strike, Black vol) samples at a known forward:
- Bounded quasi-Newton descent (L-BFGS-B) from an explicit initial guess
- Beta capped by the configured upper bound
- Accuracy gating on the RMS vol residual

Parameter cubes are calibrated node by node in vol.parameters.
"""

from dataclasses import dataclass, field
from typing import Dict, Optional, Sequence

import numpy as np
from scipy.optimize import minimize

from ..exceptions import DimensionMismatchError
from .sabr import MAX_ABS_RHO, MIN_ALPHA, SabrParams, hagan_black_vol


# Objective residuals in vol basis points
_RESIDUAL_SCALE = 1e4
_PENALTY = 1e10


@dataclass(frozen=True)
class SabrInitialGuess:
    """Starting point of every SABR fit."""
    alpha: float = 0.02
    beta: float = 0.36
    nu: float = 0.4
    rho: float = 0.2

    def to_array(self) -> np.ndarray:
        return np.array([self.alpha, self.beta, self.nu, self.rho])


@dataclass(frozen=True)
class SabrCalibrationConfig:
    """
    Settings of a SABR fit.

    Attributes:
        initial_guess: Starting (alpha, beta, nu, rho)
        beta_max: Upper bound on beta
        nu_max: Upper bound on nu
        accuracy_tolerance: Maximum admissible RMS vol residual
        max_iterations: Iteration cap of the optimizer
        tolerance: Relative objective tolerance of the optimizer
        gradient_tolerance: Projected gradient tolerance of the optimizer
    """
    initial_guess: SabrInitialGuess = field(default_factory=SabrInitialGuess)
    beta_max: float = 0.7
    nu_max: float = 5.0
    accuracy_tolerance: float = 1e-4
    max_iterations: int = 10000
    tolerance: float = 1e-15
    gradient_tolerance: float = 1e-12

    def __post_init__(self):
        if not 0 <= self.beta_max <= 1:
            raise ValueError(f"beta_max must be in [0, 1], got {self.beta_max}")
        if self.accuracy_tolerance <= 0:
            raise ValueError("accuracy_tolerance must be positive")
        if self.max_iterations <= 0:
            raise ValueError("max_iterations must be positive")

    def bounds(self):
        """Box constraints for (alpha, beta, nu, rho)."""
        return [
            (MIN_ALPHA, None),
            (0.0, self.beta_max),
            (0.0, self.nu_max),
            (-MAX_ABS_RHO, MAX_ABS_RHO),
        ]


@dataclass
class CalibrationResult:
    """Result of a SABR fit."""
    params: SabrParams
    rmse: float
    max_error: float
    vol_errors: Dict[float, float]  # {strike: model - market}
    iterations: int
    converged: bool
    message: str

    def accurate(self, tolerance: float) -> bool:
        """True if the RMS residual is below the tolerance."""
        return self.rmse < tolerance


class SabrCalibrator:
    """
    Calibrator for SABR parameters from a single smile.

    The fit is deterministic: it always starts from the configured initial
    guess and is never re-seeded.
    """

    def __init__(self, config: Optional[SabrCalibrationConfig] = None):
        self.config = config or SabrCalibrationConfig()

    def fit(
        self,
        strikes: Sequence[float],
        vols: Sequence[float],
        forward: float,
        expiry: float,
        weights: Optional[Sequence[float]] = None
    ) -> CalibrationResult:
        """
        Fit SABR parameters to Black vol samples.

        Args:
            strikes: Absolute strikes
            vols: Black implied vols at the strikes
            forward: ATM forward rate
            expiry: Time to expiry in years
            weights: Optional per-strike weights

        Returns:
            CalibrationResult with fitted parameters and residuals
        """
        strikes = np.asarray(strikes, dtype=np.float64)
        vols = np.asarray(vols, dtype=np.float64)

        if len(strikes) != len(vols):
            raise DimensionMismatchError(
                f"{len(strikes)} strikes but {len(vols)} volatilities"
            )
        if len(strikes) < 2:
            raise ValueError("Need at least 2 strikes to calibrate a smile")
        if forward <= 0:
            raise ValueError(f"Forward must be positive: {forward}")
        if expiry <= 0:
            raise ValueError(f"Time to expiry must be positive: {expiry}")
        if np.any(strikes <= 0):
            raise ValueError(f"Strikes must be positive for a lognormal smile: {strikes}")

        if weights is None:
            weights = np.ones(len(strikes))
        weights = np.asarray(weights, dtype=np.float64)
        weights = weights / weights.sum()

        def model_vols(x):
            alpha, beta, nu, rho = x
            return np.array([
                hagan_black_vol(forward, K, expiry, alpha, beta, rho, nu) for K in strikes
            ])

        def objective(x):
            try:
                # Trial points near the alpha bound overflow z; scored by the penalty
                with np.errstate(over="ignore", invalid="ignore", divide="ignore"):
                    errors = (model_vols(x) - vols) * _RESIDUAL_SCALE
            except (ValueError, ZeroDivisionError, FloatingPointError):
                return _PENALTY
            value = float(np.sum(weights * errors ** 2))
            return value if np.isfinite(value) else _PENALTY

        bounds = self.config.bounds()
        x0 = np.array([
            np.clip(v, lo if lo is not None else -np.inf, hi if hi is not None else np.inf)
            for v, (lo, hi) in zip(self.config.initial_guess.to_array(), bounds)
        ])

        result = minimize(
            objective,
            x0,
            method='L-BFGS-B',
            bounds=bounds,
            options={
                'maxiter': self.config.max_iterations,
                'maxfun': 20 * self.config.max_iterations,
                'ftol': self.config.tolerance,
                'gtol': self.config.gradient_tolerance,
            }
        )

        alpha, beta, nu, rho = result.x
        params = SabrParams(alpha=float(alpha), beta=float(beta), nu=float(nu),
                            rho=float(rho), forward=float(forward))

        errors = model_vols(result.x) - vols
        vol_errors = {float(K): float(e) for K, e in zip(strikes, errors)}
        rmse = float(np.sqrt(np.mean(errors ** 2)))

        return CalibrationResult(
            params=params,
            rmse=rmse,
            max_error=float(np.max(np.abs(errors))),
            vol_errors=vol_errors,
            iterations=int(result.nit),
            converged=bool(result.success),
            message=str(result.message),
        )


__all__ = [
    "SabrInitialGuess",
    "SabrCalibrationConfig",
    "CalibrationResult",
    "SabrCalibrator",
]
