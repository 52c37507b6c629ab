"""Hole identity and sequencing.

Collapses coarse bins to one row per hole attempt, ranks the attempts of
each (pattern, rig) by log start time, and builds the CombinedSequenceId
``rig_number * 100000 + rig_hole_sequence`` (e.g. DR0094 hole 1 → 9400001).

Ranking needs the whole (pattern, rig) group sorted first; this is the one
step that cannot run per hole attempt.  Ties on start time fall back to
hole id, then rig serial, bit diameter and end time, so the ranking is
total and repeatable.
"""

from __future__ import annotations

import re

import pandas as pd

from mwdprofile.config import COARSE_BIN_M, RIG_NUMBER_WIDTH, SEQUENCE_MULTIPLIER
from mwdprofile.errors import MalformedIdentityError
from mwdprofile.models.core import HoleKey

GROUP_COLUMNS = ["pattern", "rig"]
SEQUENCE_ORDER = ["pattern", "rig", "start_log_time", "hole_id", "rig_serial", "bit_diameter_mm", "end_log_time"]

# Rig names carry a fixed-width number after an alphabetic prefix: "DR0094"
_RIG_NUMBER_RE = re.compile(r"^\D*(?P<number>\d{%d})$" % RIG_NUMBER_WIDTH)


def rig_number(rig) -> int | None:
    """Numeric suffix of a rig name, or None when the name has none."""
    if not isinstance(rig, str):
        return None
    m = _RIG_NUMBER_RE.match(rig.strip())
    if m is None:
        return None
    return int(m.group("number"))


def summarize_holes(coarse: pd.DataFrame, coarse_bin_m: float = COARSE_BIN_M) -> pd.DataFrame:
    """One row per hole attempt with its approximate total depth.

    Depth is the deepest coarse interval plus one bin width.
    """
    holes = (
        coarse.groupby(HoleKey.columns(), dropna=False, sort=True)
        .agg(hole_depth_m=("depth_interval_m", "max"))
        .reset_index()
    )
    holes["hole_depth_m"] = holes["hole_depth_m"] + coarse_bin_m
    return holes


def order_holes(holes: pd.DataFrame) -> pd.DataFrame:
    """Sort hole attempts into per-(pattern, rig) start-time order."""
    return holes.sort_values(SEQUENCE_ORDER, kind="mergesort", na_position="last").reset_index(drop=True)


def assign_sequence(holes: pd.DataFrame) -> pd.DataFrame:
    """Add ``rig_hole_sequence`` (1..N per pattern and rig) and ``combined_sequence_id``."""
    ordered = order_holes(holes)
    ordered["rig_hole_sequence"] = ordered.groupby(GROUP_COLUMNS, dropna=False, sort=False).cumcount() + 1
    ordered["combined_sequence_id"] = combined_sequence_ids(ordered)
    return ordered


def combined_sequence_ids(sequenced: pd.DataFrame) -> pd.Series:
    """Compute ``rig_number * 100000 + rig_hole_sequence`` for every row.

    Raises MalformedIdentityError for the first row whose rig name has no
    numeric suffix or whose sequence no longer fits below the multiplier;
    either would make two holes share an id.
    """
    numbers = sequenced["rig"].map(rig_number)

    bad = numbers.isna()
    if bad.any():
        row = sequenced[bad].iloc[0]
        raise MalformedIdentityError(
            HoleKey.from_row(row),
            f"Rig name {row['rig']!r} does not end in a {RIG_NUMBER_WIDTH}-digit number",
        )

    overflow = sequenced["rig_hole_sequence"] >= SEQUENCE_MULTIPLIER
    if overflow.any():
        row = sequenced[overflow].iloc[0]
        raise MalformedIdentityError(
            HoleKey.from_row(row),
            f"Rig hole sequence {row['rig_hole_sequence']} does not fit below {SEQUENCE_MULTIPLIER}",
        )

    return (numbers.astype("int64") * SEQUENCE_MULTIPLIER + sequenced["rig_hole_sequence"]).astype("int64")
