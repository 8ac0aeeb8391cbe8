"""
Volatility module - swaption vol cubes and SABR calibration.

Provides:
- Layered expiry x tenor grid with node insertion
- SABR stochastic volatility model (Hagan lognormal approximation)
- SABR calibration per smile and per grid node
- Smile sections fitted from samples or built from parameters
- ATM swaption vol matrix
- Spread and SABR swaption vol cubes
- Vol spread quote intake
"""

from .grid import Cube, check_strictly_increasing, on_axis
from .sabr import (
    PARAMETER_NAMES,
    SabrParams,
    hagan_black_vol,
    sabr_vol,
    sabr_smile,
)
from .calibration import (
    SabrInitialGuess,
    SabrCalibrationConfig,
    CalibrationResult,
    SabrCalibrator,
)
from .smile import FittedFromSamples, FromParameters, SmileSection, canonical_strikes
from .parameters import NodeDiagnostics, calibrate_parameter_cube, node_params
from .atm import SwaptionVolMatrix
from .cube import SwaptionVolCube, SpreadVolCube, SabrVolCube
from .quotes import parse_strike_spread, vol_spreads_from_frame

__all__ = [
    "Cube",
    "check_strictly_increasing",
    "on_axis",
    "PARAMETER_NAMES",
    "SabrParams",
    "hagan_black_vol",
    "sabr_vol",
    "sabr_smile",
    "SabrInitialGuess",
    "SabrCalibrationConfig",
    "CalibrationResult",
    "SabrCalibrator",
    "FittedFromSamples",
    "FromParameters",
    "SmileSection",
    "canonical_strikes",
    "NodeDiagnostics",
    "calibrate_parameter_cube",
    "node_params",
    "SwaptionVolMatrix",
    "SwaptionVolCube",
    "SpreadVolCube",
    "SabrVolCube",
    "parse_strike_spread",
    "vol_spreads_from_frame",
]
