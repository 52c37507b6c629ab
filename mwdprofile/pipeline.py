"""Profile pipeline: samples → fine bins → coarse bins → holes → cycle times → output.

``build_profile`` is a pure function of its two input frames; re-running it
on the same input gives the same rows in the same order.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field

import pandas as pd

from mwdprofile.aggregate.bins import aggregate_profile
from mwdprofile.analysis.cycle_time import compute_cycle_times
from mwdprofile.analysis.sequencing import assign_sequence, summarize_holes
from mwdprofile.config import OUTPUT_COLUMNS, ProfileSettings
from mwdprofile.features.derive import JoinReport, derive_features, join_samples
from mwdprofile.features.geometry import POSITION_COLUMNS
from mwdprofile.models.core import CycleTimeRecord, HoleKey

logger = logging.getLogger(__name__)

FIRST_DEPTH_COLUMNS = ["first_x", "first_y", "first_z"]
PROFILE_ORDER = ["pattern", "rig", "rig_hole_sequence", "depth_interval_m"]


@dataclass
class ProfileResult:
    """Everything one pipeline run produces."""

    profile: pd.DataFrame  # one row per hole attempt and depth interval
    cycles: pd.DataFrame  # one row per hole attempt
    fine_bins: pd.DataFrame = field(default_factory=pd.DataFrame)
    report: JoinReport = field(default_factory=JoinReport)

    def cycle_records(self) -> list[CycleTimeRecord]:
        return [CycleTimeRecord.from_row(row) for _, row in self.cycles.iterrows()]


def first_depth_coordinates(coarse: pd.DataFrame) -> pd.DataFrame:
    """Position of the shallowest coarse interval of each hole attempt."""
    keys = HoleKey.columns()
    first = (
        coarse.sort_values(keys + ["depth_interval_m"], kind="mergesort", na_position="last")
        .groupby(keys, dropna=False, sort=False)
        .head(1)
    )
    first = first[keys + POSITION_COLUMNS].rename(columns=dict(zip(POSITION_COLUMNS, FIRST_DEPTH_COLUMNS)))
    return first.reset_index(drop=True)


def _missing(value) -> bool:
    return value is None or value is pd.NaT or (isinstance(value, float) and math.isnan(value))


def _format_diameter(diameter: float) -> str:
    value = float(diameter)
    text = str(int(value)) if value.is_integer() else f"{value:g}"
    return text.zfill(4)


def format_hole_attempt_id(row) -> str | None:
    """``rig-serial-pattern-hole(5)-diameter(4)-X-Y-Z`` with coordinates in mm.

    Returns None when any part is missing; a missing bit diameter or start
    position is never filled in.
    """
    parts = [row["rig"], row["rig_serial"], row["pattern"], row["hole_id"], row["bit_diameter_mm"]]
    coords = [row[c] for c in FIRST_DEPTH_COLUMNS]
    if any(_missing(v) for v in parts + coords):
        return None
    rig, serial, pattern, hole_id, diameter = parts
    mm = [str(int(c * 1000)) for c in coords]  # truncates toward zero
    return "-".join([str(rig), str(serial), str(pattern), str(hole_id).zfill(5), _format_diameter(diameter), *mm])


def attach_attempt_ids(frame: pd.DataFrame, first: pd.DataFrame) -> pd.DataFrame:
    """Left-join first-depth coordinates and build ``hole_attempt_id``."""
    merged = frame.merge(first, on=HoleKey.columns(), how="left", validate="many_to_one")
    if merged.empty:
        merged["hole_attempt_id"] = pd.Series(dtype=object)
    else:
        merged["hole_attempt_id"] = merged.apply(format_hole_attempt_id, axis=1)
    return merged


def assemble_profile(coarse: pd.DataFrame, cycles: pd.DataFrame, first: pd.DataFrame) -> pd.DataFrame:
    """Left-join coarse bins with cycle records and attempt ids.

    Every coarse bin keeps its row even if a hole-level lookup is missing.
    """
    keys = HoleKey.columns()
    derived = set(coarse.columns) | set(FIRST_DEPTH_COLUMNS) | {"hole_attempt_id"}
    cycle_cols = [c for c in cycles.columns if c in keys or c not in derived]
    profile = coarse.merge(cycles[cycle_cols], on=keys, how="left", validate="many_to_one")
    profile = attach_attempt_ids(profile, first)

    for col in ("rig_hole_sequence", "combined_sequence_id"):
        profile[col] = profile[col].astype("Int64")

    order = PROFILE_ORDER + [k for k in keys if k not in PROFILE_ORDER]
    profile = profile.sort_values(order, kind="mergesort", na_position="last").reset_index(drop=True)
    return profile[OUTPUT_COLUMNS]


def build_profile(
    samples: pd.DataFrame,
    holes: pd.DataFrame,
    settings: ProfileSettings | None = None,
) -> ProfileResult:
    """Run the whole pipeline over in-memory sample and hole tables."""
    settings = settings or ProfileSettings()

    joined, report = join_samples(samples, holes)
    if joined.empty:
        logger.warning("No samples matched any hole; nothing to profile")
        return ProfileResult(
            profile=pd.DataFrame(columns=OUTPUT_COLUMNS),
            cycles=pd.DataFrame(),
            report=report,
        )

    features = derive_features(joined)
    fine, coarse = aggregate_profile(features, settings.fine_bin_m, settings.coarse_bin_m)

    sequenced = assign_sequence(summarize_holes(coarse, settings.coarse_bin_m))
    cycles = compute_cycle_times(sequenced)
    first = first_depth_coordinates(coarse)
    cycles = attach_attempt_ids(cycles, first)

    profile = assemble_profile(coarse, cycles, first)
    logger.info(
        "Profile built: %d hole attempts, %d depth intervals, %d fine bins",
        len(cycles), len(profile), len(fine),
    )
    return ProfileResult(profile=profile, cycles=cycles, fine_bins=fine, report=report)
