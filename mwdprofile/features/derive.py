"""Attach raw MWD samples to their hole context and derive per-sample features.

Samples reach the hole table through the (pattern, hole_id, rig_serial,
start_log_time) tuple.  The two source tables format the log start time with
different sub-second precision, so the times are compared at one-second
resolution.  Hole ids alone are not unique: redrills reuse them.

Rock-response indices (all undefined when the penetration rate is zero):

- hardness1 = percussion pressure / penetration rate (mm/s)
- hardness2 = (percussion + feeder pressure) / penetration rate (mm/s)
- specific_energy = percussion pressure / penetration rate (m/s)
- proxy_strength = 0.5 * specific_energy
- log_hardness2 = ln(hardness2), undefined for hardness2 <= 0
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

import numpy as np
import pandas as pd

from mwdprofile.errors import MissingColumnsError
from mwdprofile.features.geometry import COLLAR_COLUMNS, TOE_COLUMNS, axis_fraction, hole_length

logger = logging.getLogger(__name__)

SAMPLE_COLUMNS = [
    "pattern",
    "hole_id",
    "rig_serial",
    "start_log_time",
    "depth_m",
    "percussion_pressure",
    "feeder_pressure",
    "penetration_rate_m_per_min",
]
HOLE_COLUMNS = [
    "pattern",
    "hole_id",
    "rig",
    "rig_serial",
    "bit_diameter_mm",
    *COLLAR_COLUMNS,
    *TOE_COLUMNS,
    "start_log_time",
    "end_log_time",
]
JOIN_KEY = ["pattern", "hole_id", "rig_serial", "_join_time"]


@dataclass
class JoinReport:
    """Counts of records excluded while joining samples to holes."""

    samples_in: int = 0
    samples_joined: int = 0
    orphan_samples: int = 0  # no hole with a matching key
    holes_in: int = 0
    holes_without_rig: int = 0  # rig serial not in the rig table
    duplicate_holes: int = 0  # same join key as an earlier hole row
    holes_without_samples: int = 0

    @property
    def has_missing_references(self) -> bool:
        return bool(self.orphan_samples or self.holes_without_rig or self.duplicate_holes)

    def summary_line(self) -> str:
        return (
            f"samples {self.samples_joined}/{self.samples_in} joined "
            f"({self.orphan_samples} orphaned) | holes {self.holes_in} "
            f"({self.holes_without_rig} without rig, {self.duplicate_holes} duplicate, "
            f"{self.holes_without_samples} without samples)"
        )


def require_columns(df: pd.DataFrame, columns: list[str], table: str) -> None:
    missing = [c for c in columns if c not in df.columns]
    if missing:
        raise MissingColumnsError(table, missing)


def _id_string(value) -> str | None:
    """Id as text; whole floats (numeric ids with nulls in the column) drop their '.0'."""
    if pd.isna(value):
        return None
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def _key_frame(df: pd.DataFrame) -> pd.DataFrame:
    """Normalize join key columns: string ids, start time truncated to the second."""
    df = df.copy()
    df["hole_id"] = df["hole_id"].map(_id_string)
    df["rig_serial"] = df["rig_serial"].map(_id_string)
    df["start_log_time"] = pd.to_datetime(df["start_log_time"], errors="coerce")
    df["_join_time"] = df["start_log_time"].dt.floor("s")
    return df


def join_samples(samples: pd.DataFrame, holes: pd.DataFrame) -> tuple[pd.DataFrame, JoinReport]:
    """Inner-join samples onto their hole context.

    Unmatched samples, holes with no rig name and repeated hole rows are
    excluded and counted in the returned JoinReport.
    """
    require_columns(samples, SAMPLE_COLUMNS, "samples")
    require_columns(holes, HOLE_COLUMNS, "holes")

    report = JoinReport(samples_in=len(samples), holes_in=len(holes))

    holes = _key_frame(holes[HOLE_COLUMNS])
    holes["end_log_time"] = pd.to_datetime(holes["end_log_time"], errors="coerce")
    no_rig = holes["rig"].isna() | holes["rig"].astype(str).str.strip().eq("")
    report.holes_without_rig = int(no_rig.sum())
    holes = holes[~no_rig]

    dupes = holes.duplicated(subset=JOIN_KEY, keep="first")
    report.duplicate_holes = int(dupes.sum())
    holes = holes[~dupes]

    hole_only = [c for c in HOLE_COLUMNS if c not in SAMPLE_COLUMNS]
    sample_cols = [c for c in samples.columns if c not in hole_only]
    samples = _key_frame(samples[sample_cols]).drop(columns=["start_log_time"])

    merged = samples.merge(holes, on=JOIN_KEY, how="left", indicator=True, validate="many_to_one")
    matched = merged["_merge"] == "both"
    report.orphan_samples = int((~matched).sum())
    joined = merged[matched].drop(columns=["_merge", "_join_time"]).reset_index(drop=True)
    report.samples_joined = len(joined)

    used = holes.merge(
        samples[JOIN_KEY].drop_duplicates(), on=JOIN_KEY, how="left", indicator=True
    )
    report.holes_without_samples = int((used["_merge"] == "left_only").sum())

    if report.has_missing_references:
        logger.warning("Missing references while joining samples to holes: %s", report.summary_line())
    else:
        logger.info("Joined samples to holes: %s", report.summary_line())

    return joined, report


def derive_features(joined: pd.DataFrame) -> pd.DataFrame:
    """Add penetration-rate conversions, rock-response indices and axis position."""
    df = joined.copy()
    rate = pd.to_numeric(df["penetration_rate_m_per_min"], errors="coerce")
    percussion = pd.to_numeric(df["percussion_pressure"], errors="coerce")
    feeder = pd.to_numeric(df["feeder_pressure"], errors="coerce").fillna(0.0)

    df["pen_rate_mm_per_s"] = rate * 1000.0 / 60.0
    df["pen_rate_m_per_s"] = rate / 60.0

    # Zero rate makes every ratio undefined
    defined = rate.notna() & rate.ne(0)
    rate_mm_s = df["pen_rate_mm_per_s"].where(defined)
    rate_m_s = df["pen_rate_m_per_s"].where(defined)

    df["hardness1"] = percussion / rate_mm_s
    df["hardness2"] = (percussion + feeder) / rate_mm_s
    df["specific_energy"] = percussion / rate_m_s
    df["proxy_strength"] = 0.5 * df["specific_energy"]
    df["log_hardness2"] = np.log(df["hardness2"].where(df["hardness2"] > 0))

    index_cols = ["hardness1", "hardness2", "specific_energy", "proxy_strength", "log_hardness2"]
    df[index_cols] = df[index_cols].replace([np.inf, -np.inf], np.nan)

    df["hole_length_m"] = hole_length(df)
    df["axis_fraction"] = axis_fraction(pd.to_numeric(df["depth_m"], errors="coerce"), df["hole_length_m"])
    return df
