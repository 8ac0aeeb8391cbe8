"""
Vol spread quote handling.

Provides utilities for:
- Parsing strike spread conventions (ATM, +/-25bp, +0.5%)
- Pivoting long-format quote tables into the vol spread matrix the cubes
  are built from
"""

from typing import Sequence, Union

import numpy as np
import pandas as pd

from ..exceptions import DimensionMismatchError


def parse_strike_spread(label: Union[str, float]) -> float:
    """
    Convert a strike label to a spread from the ATM forward.

    Args:
        label: "ATM", "+25BP", "-0.5%", or a number already in rate units

    Returns:
        Spread in rate units (25bp -> 0.0025)
    """
    if isinstance(label, (int, float, np.number)):
        return float(label)

    text = str(label).upper().strip().replace(" ", "")

    if text == "ATM":
        return 0.0
    if text.startswith("ATM"):
        text = text[3:]
    if text.endswith("BP"):
        return float(text[:-2]) / 10000.0
    if text.endswith("%"):
        return float(text[:-1]) / 100.0
    try:
        return float(text)
    except ValueError:
        raise ValueError(f"Unknown strike format: {label}")


def vol_spreads_from_frame(
    frame: pd.DataFrame,
    expiries: Sequence[str],
    tenors: Sequence[str],
    strike_spreads: Sequence[float]
) -> np.ndarray:
    """
    Pivot long-format quotes into a vol spread matrix.

    Expected columns: expiry, tenor, strike, vol_spread. Strike labels go
    through parse_strike_spread.

    Args:
        frame: Quote table
        expiries: Expiry periods, in grid order
        tenors: Tenor periods, in grid order
        strike_spreads: Strike spreads, in grid order

    Returns:
        Matrix of shape (len(expiries) * len(tenors), len(strike_spreads)),
        row j * len(tenors) + k holding node (expiries[j], tenors[k])

    Raises:
        DimensionMismatchError: If a quote is missing or duplicated
    """
    df = frame.copy()
    df.columns = [c.strip().lower() for c in df.columns]

    missing_cols = {"expiry", "tenor", "strike", "vol_spread"} - set(df.columns)
    if missing_cols:
        raise ValueError(f"Quote table is missing columns: {sorted(missing_cols)}")

    df["expiry"] = df["expiry"].astype(str).str.strip().str.upper()
    df["tenor"] = df["tenor"].astype(str).str.strip().str.upper()
    # Rounded so that "+25bp" and 0.0025 land on the same column
    df["strike"] = df["strike"].map(parse_strike_spread).round(10)

    duplicated = df.duplicated(subset=["expiry", "tenor", "strike"])
    if duplicated.any():
        first = df[duplicated].iloc[0]
        raise DimensionMismatchError(
            f"Duplicate quote for {first['expiry']} x {first['tenor']} at strike {first['strike']}"
        )

    rows = pd.MultiIndex.from_product(
        [[str(e).upper() for e in expiries], [str(t).upper() for t in tenors]],
        names=["expiry", "tenor"],
    )
    columns = np.round(np.asarray(strike_spreads, dtype=np.float64), 10)

    table = df.pivot_table(
        index=["expiry", "tenor"], columns="strike", values="vol_spread", aggfunc="first"
    )
    table = table.reindex(index=rows, columns=columns)

    if table.isna().any().any():
        gaps = table.isna().stack()
        expiry, tenor, strike = gaps[gaps].index[0]
        raise DimensionMismatchError(
            f"Missing quote for {expiry} x {tenor} at strike {strike}"
        )

    return table.to_numpy(dtype=np.float64)


__all__ = [
    "parse_strike_spread",
    "vol_spreads_from_frame",
]
