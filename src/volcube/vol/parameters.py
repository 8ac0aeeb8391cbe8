"""
SABR parameter cubes.

Runs an independent SABR fit at every node of a market vol cube and
collects (alpha, beta, nu, rho, forward) into a five-layer Cube. The same
routine calibrates the sparse quote grid and the densified grid.
"""

from dataclasses import dataclass
from typing import Callable, List, Optional, Sequence
import logging

import numpy as np

from ..exceptions import CalibrationAccuracyError, DimensionMismatchError
from .calibration import SabrCalibrationConfig
from .grid import Cube
from .sabr import PARAMETER_NAMES, SabrParams
from .smile import SmileSection

logger = logging.getLogger(__name__)


@dataclass
class NodeDiagnostics:
    """Fit diagnostics of one parameter cube node."""
    expiry: float
    tenor: float
    rmse: float
    max_error: float
    iterations: int


def calibrate_parameter_cube(
    vol_cube: Cube,
    strike_spreads: Sequence[float],
    atm_strike: Callable[[float, float], float],
    config: Optional[SabrCalibrationConfig] = None,
    diagnostics: Optional[List[NodeDiagnostics]] = None
) -> Cube:
    """
    Calibrate a SABR smile at every node of a market vol cube.

    Layer i of the vol cube holds the Black vol at strike
    ``forward + strike_spreads[i]``. Nodes are fitted independently, with
    no smoothing across the grid.

    Args:
        vol_cube: Market vol cube, one layer per strike spread
        strike_spreads: Strike offsets from the ATM forward
        atm_strike: Callable (expiry, tenor) -> ATM forward
        config: Calibration settings
        diagnostics: Optional list collecting a NodeDiagnostics per node

    Returns:
        Parameter cube with layers alpha, beta, nu, rho, forward on the
        vol cube axes

    Raises:
        CalibrationAccuracyError: If any node misses the accuracy tolerance;
            no partial cube is returned
    """
    config = config or SabrCalibrationConfig()
    if vol_cube.n_layers != len(strike_spreads):
        raise DimensionMismatchError(
            f"Vol cube has {vol_cube.n_layers} layers for {len(strike_spreads)} strike spreads"
        )

    expiries = vol_cube.expiries
    tenors = vol_cube.tenors
    points = vol_cube.points
    spreads = np.asarray(strike_spreads, dtype=np.float64)

    layers = np.zeros((len(PARAMETER_NAMES), len(expiries), len(tenors)))

    for j, expiry in enumerate(expiries):
        for k, tenor in enumerate(tenors):
            forward = atm_strike(expiry, tenor)

            try:
                smile = SmileSection.from_samples(
                    expiry, forward, forward + spreads, points[:, j, k], config
                )
            except CalibrationAccuracyError as exc:
                logger.error(
                    "SABR calibration failed at expiry=%.4f tenor=%.4f: rmse=%.3e",
                    expiry, tenor, exc.error
                )
                raise CalibrationAccuracyError(
                    f"Accuracy not reached at expiry {expiry:.4f}, tenor {tenor:.4f}: "
                    f"rmse {exc.error:.3e} >= {exc.tolerance:.1e}",
                    error=exc.error,
                    tolerance=exc.tolerance,
                    expiry=float(expiry),
                    tenor=float(tenor),
                ) from exc

            fit = smile.calibration
            logger.debug(
                "SABR node expiry=%.4f tenor=%.4f: alpha=%.6f beta=%.4f nu=%.4f rho=%.4f rmse=%.2e",
                expiry, tenor, fit.params.alpha, fit.params.beta, fit.params.nu,
                fit.params.rho, fit.rmse
            )
            if diagnostics is not None:
                diagnostics.append(NodeDiagnostics(
                    expiry=float(expiry), tenor=float(tenor), rmse=fit.rmse,
                    max_error=fit.max_error, iterations=fit.iterations
                ))

            layers[:, j, k] = smile.params.to_array()

    parameters = Cube(expiries, tenors, len(PARAMETER_NAMES), layer_names=PARAMETER_NAMES)
    parameters.set_points(layers)
    parameters.update_interpolators()
    return parameters


def node_params(parameters: Cube, row: int, col: int) -> SabrParams:
    """SABR parameters stored at a parameter cube node."""
    return SabrParams.from_layers(parameters.points[:, row, col])


__all__ = [
    "NodeDiagnostics",
    "calibrate_parameter_cube",
    "node_params",
]
