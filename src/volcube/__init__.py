"""
VolCube: Swaption Volatility Cube Library

A library for:
- Building swaption vol cubes from ATM vols and spread quotes
- Calibrating SABR smiles node by node on sparse and densified grids
- Querying Black vols and variances at any (expiry, tenor, strike)

Scope: lognormal (Black) swaption vols; pricing off the cube is left to
the caller.
"""

__version__ = "0.1.0"

# Core modules
from .conventions import DayCount, BusinessDayConvention, year_fraction
from .dates import DateUtils, ScheduleInfo
from .exceptions import (
    VolCubeError,
    ValidationError,
    InvalidGridError,
    NonMonotonicInputError,
    DimensionMismatchError,
    IndexOutOfRangeError,
    NumericalError,
    CalibrationAccuracyError,
)

# Curves
from .curves import Curve, LinearInterpolator, BilinearInterpolator, create_flat_curve

# Swaps
from .swaps import SwapIndex, SwapConventions, VanillaSwap, make_vanilla_swap

# Volatility
from .vol import (
    Cube,
    SabrParams,
    SabrCalibrationConfig,
    SabrInitialGuess,
    SabrCalibrator,
    SmileSection,
    SwaptionVolMatrix,
    SpreadVolCube,
    SabrVolCube,
)

__all__ = [
    "DayCount",
    "BusinessDayConvention",
    "year_fraction",
    "DateUtils",
    "ScheduleInfo",
    "VolCubeError",
    "ValidationError",
    "InvalidGridError",
    "NonMonotonicInputError",
    "DimensionMismatchError",
    "IndexOutOfRangeError",
    "NumericalError",
    "CalibrationAccuracyError",
    "Curve",
    "LinearInterpolator",
    "BilinearInterpolator",
    "create_flat_curve",
    "SwapIndex",
    "SwapConventions",
    "VanillaSwap",
    "make_vanilla_swap",
    "Cube",
    "SabrParams",
    "SabrCalibrationConfig",
    "SabrInitialGuess",
    "SabrCalibrator",
    "SmileSection",
    "SwaptionVolMatrix",
    "SpreadVolCube",
    "SabrVolCube",
]
