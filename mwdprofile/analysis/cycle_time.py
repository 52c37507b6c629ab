"""Per-hole cycle time and productivity.

Within each (pattern, rig), in sequence order:

- drilling time: the hole's own log window (end - start);
- cycle time: start of this hole to start of the next one;
- non-drilling time: cycle - drilling (tramming, positioning).  Negative
  when log windows overlap; kept as is, it flags bad logger clocks;
- drilling ROP: hole depth per drilling hour;
- cycle ROP: hole depth per cycle hour.

Durations count whole-second boundaries crossed: both times are truncated
to the second before subtracting, so 08:00:00.9 to 08:10:00.1 is 600 s.

The last hole of a sequence has no next start, so its cycle, non-drilling
and cycle ROP values are null.
"""

from __future__ import annotations

import pandas as pd

from mwdprofile.analysis.sequencing import GROUP_COLUMNS, order_holes


def compute_cycle_times(sequenced: pd.DataFrame) -> pd.DataFrame:
    """Add drilling, cycle and ROP columns to sequenced hole summaries."""
    df = order_holes(sequenced)
    df["start_log_time"] = pd.to_datetime(df["start_log_time"])
    df["end_log_time"] = pd.to_datetime(df["end_log_time"])

    df["next_hole_start_time"] = df.groupby(GROUP_COLUMNS, dropna=False, sort=False)["start_log_time"].shift(-1)

    start = df["start_log_time"].dt.floor("s")
    drilling_s = (df["end_log_time"].dt.floor("s") - start).dt.total_seconds()
    cycle_s = (df["next_hole_start_time"].dt.floor("s") - start).dt.total_seconds()

    df["drilling_time_s"] = drilling_s
    df["drilling_time_min"] = drilling_s / 60.0
    df["cycle_time_s"] = cycle_s
    df["cycle_time_min"] = cycle_s / 60.0
    df["non_drilling_time_s"] = cycle_s - drilling_s
    df["non_drilling_time_min"] = df["cycle_time_min"] - df["drilling_time_min"]

    df["drilling_rop_m_per_hr"] = (df["hole_depth_m"] / (drilling_s / 3600.0)).where(drilling_s > 0)
    df["cycle_rop_m_per_hr"] = (df["hole_depth_m"] / (cycle_s / 3600.0)).where(cycle_s > 0)
    return df


def hole_cycle_summary(cycles: pd.DataFrame) -> pd.DataFrame:
    """Hole-level cycle table with per-(pattern, rig) averages.

    Sequence-end holes have no cycle time and are left out.  Returns one row
    per remaining hole with ``avg_cycle_time_min_by_rig``,
    ``avg_drilling_rop_by_rig`` and ``avg_cycle_rop_by_rig`` repeated on
    every row of the group.
    """
    df = cycles[cycles["cycle_time_min"].notna()].copy()
    group = df.groupby(GROUP_COLUMNS, dropna=False, sort=False)
    df["avg_cycle_time_min_by_rig"] = group["cycle_time_min"].transform("mean")
    df["avg_drilling_rop_by_rig"] = group["drilling_rop_m_per_hr"].transform("mean")
    df["avg_cycle_rop_by_rig"] = group["cycle_rop_m_per_hr"].transform("mean")
    return df.sort_values(["pattern", "rig", "rig_hole_sequence"], kind="mergesort").reset_index(drop=True)
