"""Paths, constants, and configuration."""

from __future__ import annotations

from dataclasses import dataclass, fields
from datetime import date, datetime
from pathlib import Path

import yaml

# Depth bin widths (m)
FINE_BIN_M = 0.2
COARSE_BIN_M = 1.0

# CombinedSequenceId = rig number * multiplier + rig hole sequence
SEQUENCE_MULTIPLIER = 100_000
# Rig names end in a fixed-width number, e.g. "DR0094"
RIG_NUMBER_WIDTH = 4

# Input tables (file stem, parquet or csv)
SAMPLES_TABLE = "samples"
HOLES_TABLE = "holes"
RIGS_TABLE = "rigs"
TABLE_SUFFIXES = (".parquet", ".csv")

# Output layout
PROFILES_DIR = "profiles"
HOLES_FILE = "holes"
HOLES_BY_RIG_FILE = "holes_by_rig"
RIG_STATUS_FILE = "rig_status"
# Profile rows with no pattern name; pattern stems never start with "_"
NO_PATTERN_FILE = "_no_pattern"

# Rig loggers write this when their clock was never set
PLACEHOLDER_TIMESTAMP = datetime(1984, 1, 1)

# Bit diameters below this (mm) are logger defaults, not real bits
MIN_BIT_DIAMETER_MM = 1.0

# Rock-response indices carried through both binning stages
INDEX_COLUMNS = ["hardness1", "hardness2", "specific_energy", "proxy_strength"]

# Final profile column order
OUTPUT_COLUMNS = [
    "hole_attempt_id",
    "pattern",
    "rig",
    "rig_serial",
    "hole_id",
    "depth_interval_m",
    "bit_diameter_mm",
    "avg_depth_m",
    "from_depth_m",
    "to_depth_m",
    "x",
    "y",
    "z",
    "fine_bin_count",
    "total_sample_count",
    "avg_percussion_pressure",
    "avg_feeder_pressure",
    "avg_penetration_rate_m_per_min",
    "avg_penetration_rate_m_per_hr",
    "hardness1",
    "max_hardness1",
    "std_hardness1",
    "smoothed_hardness1",
    "hardness2",
    "max_hardness2",
    "std_hardness2",
    "smoothed_hardness2",
    "specific_energy",
    "max_specific_energy",
    "std_specific_energy",
    "smoothed_specific_energy",
    "proxy_strength",
    "max_proxy_strength",
    "std_proxy_strength",
    "smoothed_proxy_strength",
    "rig_hole_sequence",
    "combined_sequence_id",
    "hole_depth_m",
    "start_log_time",
    "end_log_time",
    "drilling_time_min",
    "drilling_time_s",
    "next_hole_start_time",
    "cycle_time_min",
    "cycle_time_s",
    "non_drilling_time_min",
    "drilling_rop_m_per_hr",
    "cycle_rop_m_per_hr",
]


@dataclass
class ProfileSettings:
    """Run parameters for one profile build."""

    pattern: str = "%"  # SQL LIKE pattern on the pattern (drill plan) name
    start: datetime | None = None
    end: datetime | None = None
    fine_bin_m: float = FINE_BIN_M
    coarse_bin_m: float = COARSE_BIN_M
    fmt: str = "parquet"

    def __post_init__(self):
        if self.fine_bin_m <= 0 or self.coarse_bin_m <= 0:
            raise ValueError("Bin widths must be positive")
        ratio = self.coarse_bin_m / self.fine_bin_m
        if abs(ratio - round(ratio)) > 1e-9:
            raise ValueError(
                f"Coarse bin ({self.coarse_bin_m} m) must be a whole multiple of the fine bin ({self.fine_bin_m} m)"
            )
        if self.fmt not in ("parquet", "csv"):
            raise ValueError(f"Unknown output format: {self.fmt}")

    def with_overrides(self, **overrides) -> ProfileSettings:
        """Return a copy with every non-None override applied."""
        values = {f.name: getattr(self, f.name) for f in fields(self)}
        values.update({k: v for k, v in overrides.items() if v is not None})
        return ProfileSettings(**values)


def load_settings(path: Path | None) -> ProfileSettings:
    """Load settings from a YAML file; missing keys keep their defaults."""
    if path is None:
        return ProfileSettings()

    with open(path) as f:
        data = yaml.safe_load(f) or {}

    known = {f.name for f in fields(ProfileSettings)}
    unknown = sorted(set(data) - known)
    if unknown:
        raise ValueError(f"Unknown settings in {path}: {', '.join(unknown)}")

    # YAML gives str, date or datetime depending on how the value was written
    for key in ("start", "end"):
        value = data.get(key)
        if isinstance(value, str):
            data[key] = datetime.fromisoformat(value)
        elif isinstance(value, date) and not isinstance(value, datetime):
            data[key] = datetime.combine(value, datetime.min.time())
    return ProfileSettings(**data)
