"""Straight-axis hole geometry: collar-to-toe length and depth interpolation.

Positions are interpolated linearly along the line from collar to toe; hole
curvature is not modelled.  A zero-length hole (collar == toe) places every
sample at the collar.
"""

from __future__ import annotations

import numpy as np
import pandas as pd

COLLAR_COLUMNS = ["collar_x", "collar_y", "collar_z"]
TOE_COLUMNS = ["toe_x", "toe_y", "toe_z"]
POSITION_COLUMNS = ["x", "y", "z"]


def hole_length(df: pd.DataFrame) -> pd.Series:
    """3D collar-to-toe distance for each row."""
    collar = df[COLLAR_COLUMNS].to_numpy(dtype=float)
    toe = df[TOE_COLUMNS].to_numpy(dtype=float)
    return pd.Series(np.sqrt(((toe - collar) ** 2).sum(axis=1)), index=df.index)


def axis_fraction(depth: pd.Series, length: pd.Series) -> pd.Series:
    """Fraction of the hole axis reached at each depth (0 for zero-length holes)."""
    d = depth.to_numpy(dtype=float)
    lengths = length.to_numpy(dtype=float)
    fraction = np.zeros_like(d)
    np.divide(d, lengths, out=fraction, where=lengths > 0)
    # Missing geometry stays missing
    fraction[np.isnan(lengths) | np.isnan(d)] = np.nan
    return pd.Series(fraction, index=depth.index)


def interpolate_positions(df: pd.DataFrame, fraction_col: str = "axis_fraction") -> pd.DataFrame:
    """Return x, y, z at ``collar + fraction * (toe - collar)`` for each row."""
    collar = df[COLLAR_COLUMNS].to_numpy(dtype=float)
    toe = df[TOE_COLUMNS].to_numpy(dtype=float)
    fraction = df[fraction_col].to_numpy(dtype=float)[:, None]
    positions = collar + fraction * (toe - collar)
    return pd.DataFrame(positions, columns=POSITION_COLUMNS, index=df.index)
