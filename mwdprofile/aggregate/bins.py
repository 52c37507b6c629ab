"""Two-stage depth binning: raw samples → fine bins → coarse bins.

Both stages share one interface, ``aggregate(frame) -> DataFrame``, and
group within a single hole attempt (see ``HoleKey``).  Stage 2 reads only
Stage 1 output; it never goes back to the raw samples.

Known approximations at Stage 2:

- pressure and penetration-rate means are means of the Stage 1 means, not
  sample-weighted;
- the standard deviation is pooled as ``sqrt(mean(std_i ** 2))``, which
  assumes the fine bins hold roughly equal sample counts.

Smoothed values are log-domain geometric means, ``exp(mean(ln(x)))`` over
positive values.  At Stage 2 hardness1, specific energy and proxy strength
take the geometric mean of the Stage 1 smoothed values, while hardness2
exponentiates the mean of the Stage 1 mean log-hardness.  The two routes
are not algebraically equivalent and are not interchangeable.
"""

from __future__ import annotations

import logging

import numpy as np
import pandas as pd

from mwdprofile.config import COARSE_BIN_M, FINE_BIN_M, INDEX_COLUMNS
from mwdprofile.features.geometry import POSITION_COLUMNS, interpolate_positions
from mwdprofile.models.core import HoleKey

logger = logging.getLogger(__name__)

PRESSURE_COLUMNS = {
    "avg_percussion_pressure": "percussion_pressure",
    "avg_feeder_pressure": "feeder_pressure",
    "avg_penetration_rate_m_per_min": "penetration_rate_m_per_min",
}


def _log_positive(series: pd.Series) -> pd.Series:
    """ln(x) for x > 0, NaN otherwise."""
    return np.log(series.where(series > 0))


class DepthBinAggregator:
    """Aggregate the rows of each hole attempt into fixed-width depth bins.

    Subclasses decide how a row maps to a bin index and which statistics
    describe a bin.
    """

    bin_column = "bin"
    depth_column = "depth_bin_m"

    def __init__(self, bin_width: float):
        if bin_width <= 0:
            raise ValueError(f"Bin width must be positive, got {bin_width}")
        self.bin_width = bin_width

    @property
    def group_columns(self) -> list[str]:
        return HoleKey.columns() + [self.bin_column]

    def aggregate(self, frame: pd.DataFrame) -> pd.DataFrame:
        work = self.prepare(frame.copy())
        work[self.bin_column] = self.assign_bins(work).astype("int64")

        grouped = work.groupby(self.group_columns, dropna=False, sort=True)
        stats = self.statistics(grouped).reset_index()

        depth = (stats[self.bin_column] * self.bin_width).round(6)
        stats.insert(len(self.group_columns), self.depth_column, depth)
        numeric = stats.select_dtypes("number").columns
        stats[numeric] = stats[numeric].replace([np.inf, -np.inf], np.nan)

        logger.info(
            "%s: %d rows → %d bins of %.3g m",
            type(self).__name__, len(frame), len(stats), self.bin_width,
        )
        return stats

    def prepare(self, frame: pd.DataFrame) -> pd.DataFrame:
        return frame

    def assign_bins(self, frame: pd.DataFrame) -> pd.Series:
        raise NotImplementedError

    def statistics(self, grouped) -> pd.DataFrame:
        raise NotImplementedError


class SampleBinAggregator(DepthBinAggregator):
    """Stage 1: raw samples into fine bins (200 mm by default)."""

    bin_column = "fine_bin"
    depth_column = "fine_depth_m"

    def __init__(self, bin_width: float = FINE_BIN_M):
        super().__init__(bin_width)

    def prepare(self, frame: pd.DataFrame) -> pd.DataFrame:
        frame["depth_m"] = pd.to_numeric(frame["depth_m"], errors="coerce")
        no_depth = frame["depth_m"].isna()
        if no_depth.any():
            logger.warning("Dropping %d samples without a depth", int(no_depth.sum()))
            frame = frame[~no_depth].copy()

        for col in PRESSURE_COLUMNS.values():
            frame[col] = pd.to_numeric(frame[col], errors="coerce")
        frame[POSITION_COLUMNS] = interpolate_positions(frame)
        for col in INDEX_COLUMNS:
            frame[f"_ln_{col}"] = _log_positive(frame[col])
        return frame

    def assign_bins(self, frame: pd.DataFrame) -> pd.Series:
        # A depth on a bin edge belongs to the deeper bin (0.6 / 0.2 is 2.9999...)
        return np.floor((frame["depth_m"] / self.bin_width).round(9))

    def statistics(self, grouped) -> pd.DataFrame:
        spec = {
            "sample_count": ("depth_m", "size"),
            "min_depth_m": ("depth_m", "min"),
            "avg_depth_m": ("depth_m", "mean"),
            "max_depth_m": ("depth_m", "max"),
        }
        spec.update({col: (col, "mean") for col in POSITION_COLUMNS})
        spec.update({name: (col, "mean") for name, col in PRESSURE_COLUMNS.items()})
        for col in INDEX_COLUMNS:
            spec[col] = (col, "mean")
            spec[f"max_{col}"] = (col, "max")
            spec[f"std_{col}"] = (col, "std")
            spec[f"_ln_{col}"] = (f"_ln_{col}", "mean")
        spec["avg_log_hardness2"] = ("log_hardness2", "mean")

        stats = grouped.agg(**spec)
        for col in INDEX_COLUMNS:
            stats[f"smoothed_{col}"] = np.exp(stats.pop(f"_ln_{col}"))
        return stats


class BinOfBinsAggregator(DepthBinAggregator):
    """Stage 2: fine bins into coarse bins (1 m by default).

    The coarse width must be a whole multiple of the fine width so that
    every fine bin nests in exactly one coarse bin.
    """

    bin_column = "coarse_bin"
    depth_column = "depth_interval_m"

    # Indices whose smoothed value is rebuilt from the Stage 1 mean log
    # rather than from the Stage 1 smoothed value
    LOG_MEAN_SOURCES = {"hardness2": "avg_log_hardness2"}

    def __init__(self, bin_width: float = COARSE_BIN_M, fine_bin_width: float = FINE_BIN_M):
        super().__init__(bin_width)
        ratio = bin_width / fine_bin_width
        if abs(ratio - round(ratio)) > 1e-9 or round(ratio) < 1:
            raise ValueError(f"{bin_width} m bins cannot be built from {fine_bin_width} m bins")
        self.fine_per_bin = int(round(ratio))

    def prepare(self, frame: pd.DataFrame) -> pd.DataFrame:
        for col in INDEX_COLUMNS:
            frame[f"_var_{col}"] = frame[f"std_{col}"] ** 2
            if col not in self.LOG_MEAN_SOURCES:
                frame[f"_ln_{col}"] = _log_positive(frame[f"smoothed_{col}"])
        return frame

    def assign_bins(self, frame: pd.DataFrame) -> pd.Series:
        return frame[SampleBinAggregator.bin_column] // self.fine_per_bin

    def statistics(self, grouped) -> pd.DataFrame:
        spec = {
            "fine_bin_count": (SampleBinAggregator.bin_column, "size"),
            "total_sample_count": ("sample_count", "sum"),
            "from_depth_m": ("min_depth_m", "min"),
            "avg_depth_m": ("avg_depth_m", "mean"),
            "to_depth_m": ("max_depth_m", "max"),
        }
        spec.update({col: (col, "mean") for col in POSITION_COLUMNS})
        spec.update({name: (name, "mean") for name in PRESSURE_COLUMNS})
        for col in INDEX_COLUMNS:
            spec[col] = (col, "mean")
            spec[f"max_{col}"] = (f"max_{col}", "max")
            spec[f"_var_{col}"] = (f"_var_{col}", "mean")
            if col not in self.LOG_MEAN_SOURCES:
                spec[f"_ln_{col}"] = (f"_ln_{col}", "mean")
        spec["avg_log_hardness2"] = ("avg_log_hardness2", "mean")

        stats = grouped.agg(**spec)
        stats["avg_penetration_rate_m_per_hr"] = (stats["avg_penetration_rate_m_per_min"] * 60).round(2)
        for col in INDEX_COLUMNS:
            stats[f"std_{col}"] = np.sqrt(stats.pop(f"_var_{col}"))
            if col in self.LOG_MEAN_SOURCES:
                stats[f"smoothed_{col}"] = np.exp(stats[self.LOG_MEAN_SOURCES[col]])
            else:
                stats[f"smoothed_{col}"] = np.exp(stats.pop(f"_ln_{col}"))
        return stats


def aggregate_profile(
    samples: pd.DataFrame,
    fine_bin_m: float = FINE_BIN_M,
    coarse_bin_m: float = COARSE_BIN_M,
) -> tuple[pd.DataFrame, pd.DataFrame]:
    """Run both stages over feature-enriched samples; return (fine, coarse)."""
    fine = SampleBinAggregator(fine_bin_m).aggregate(samples)
    coarse = BinOfBinsAggregator(coarse_bin_m, fine_bin_m).aggregate(fine)
    return fine, coarse
