"""
SABR smile model.

Black implied vols follow the lognormal expansion of Hagan, Kumar,
Lesniewski and Woodward, "Managing Smile Risk" (Wilmott, 2002). A node's
parameters are carried as (alpha, beta, nu, rho, forward), the order of
the layers in a SABR parameter cube.
"""

from dataclasses import dataclass, astuple
from typing import Dict, Sequence
import numpy as np

PARAMETER_NAMES = ("alpha", "beta", "nu", "rho", "forward")

# Bounds applied when parameters come from extrapolated cube layers
MIN_ALPHA = 1e-8
MAX_ABS_RHO = 0.9999


@dataclass
class SabrParams:
    """
    Calibrated SABR node.

    Attributes:
        alpha: Vol level, > 0
        beta: Backbone exponent in [0, 1]
        nu: Vol of vol, >= 0
        rho: Spot/vol correlation in (-1, 1)
        forward: ATM forward swap rate, > 0
    """
    alpha: float
    beta: float
    nu: float
    rho: float
    forward: float

    def __post_init__(self):
        checks = (
            (self.alpha > 0, "alpha must be positive"),
            (0 <= self.beta <= 1, "beta must be in [0, 1]"),
            (self.nu >= 0, "nu must be non-negative"),
            (-1 < self.rho < 1, "rho must be in (-1, 1)"),
            (self.forward > 0, "forward must be positive"),
        )
        for ok, message in checks:
            if not ok:
                raise ValueError(f"{message}, got {self}")

    def to_array(self) -> np.ndarray:
        return np.array(astuple(self), dtype=np.float64)

    def to_dict(self) -> Dict[str, float]:
        return dict(zip(PARAMETER_NAMES, astuple(self)))

    @classmethod
    def from_dict(cls, d: Dict[str, float]) -> "SabrParams":
        return cls(**{name: d[name] for name in PARAMETER_NAMES})

    @classmethod
    def from_layers(cls, values: Sequence[float], clip: bool = False) -> "SabrParams":
        """
        Build from one value per parameter layer.

        With ``clip`` the model parameters are first moved into the
        admissible region; interpolating or extrapolating a parameter cube
        can leave it (negative nu, |rho| >= 1, ...).
        """
        alpha, beta, nu, rho, forward = map(float, values)
        if clip:
            alpha = max(alpha, MIN_ALPHA)
            beta = min(max(beta, 0.0), 1.0)
            nu = max(nu, 0.0)
            rho = min(max(rho, -MAX_ABS_RHO), MAX_ABS_RHO)
        return cls(alpha, beta, nu, rho, forward)


def _time_correction(fk_beta: float, alpha: float, beta: float, rho: float, nu: float) -> float:
    """Coefficient of T in Hagan's expansion; fk_beta = (F K)^((1 - beta) / 2)."""
    return ((1 - beta) ** 2 * alpha ** 2 / (24 * fk_beta ** 2)
            + rho * beta * nu * alpha / (4 * fk_beta)
            + (2 - 3 * rho ** 2) * nu ** 2 / 24)


def hagan_black_vol(
    F: float,
    K: float,
    T: float,
    alpha: float,
    beta: float,
    rho: float,
    nu: float
) -> float:
    """
    Black vol of a SABR smile at strike K.

    Args:
        F: Forward rate
        K: Strike
        T: Expiry in years
        alpha, beta, rho, nu: SABR parameters

    Returns:
        Lognormal implied volatility

    Raises:
        ValueError: If F or K is not positive
    """
    if F <= 0 or K <= 0:
        raise ValueError(f"Forward ({F}) and strike ({K}) must be positive")
    if abs(F - K) < 1e-10:
        return _hagan_atm_vol(F, T, alpha, beta, rho, nu)

    b = 1 - beta
    lfk = np.log(F / K)
    fk_beta = (F * K) ** (b / 2)
    backbone = fk_beta * (1 + (b * lfk) ** 2 / 24 + (b * lfk) ** 4 / 1920)

    z = nu / alpha * fk_beta * lfk
    if abs(z) < 1e-10:
        ratio = 1.0
    else:
        x = np.log((np.sqrt(1 - 2 * rho * z + z * z) + z - rho) / (1 - rho))
        ratio = z / x

    return float(alpha / backbone * ratio
                 * (1 + _time_correction(fk_beta, alpha, beta, rho, nu) * T))


def _hagan_atm_vol(
    F: float,
    T: float,
    alpha: float,
    beta: float,
    rho: float,
    nu: float
) -> float:
    """K = F limit of hagan_black_vol."""
    f_beta = F ** (1 - beta)
    return float(alpha / f_beta * (1 + _time_correction(f_beta, alpha, beta, rho, nu) * T))


def sabr_vol(K: float, T: float, params: SabrParams) -> float:
    return hagan_black_vol(params.forward, K, T, params.alpha, params.beta, params.rho, params.nu)


def sabr_smile(strikes: Sequence[float], T: float, params: SabrParams) -> np.ndarray:
    """Vols of one SABR node across strikes."""
    return np.array([sabr_vol(K, T, params) for K in strikes], dtype=np.float64)


__all__ = [
    "PARAMETER_NAMES",
    "MIN_ALPHA",
    "MAX_ABS_RHO",
    "SabrParams",
    "hagan_black_vol",
    "sabr_vol",
    "sabr_smile",
]
