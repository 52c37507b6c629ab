"""Drilling data quality checks.

Pure analysis, no file I/O.  Takes hole and cycle DataFrames and returns
HoleIssue records, plus a per-rig status table.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, fields

import pandas as pd

from mwdprofile.config import MIN_BIT_DIAMETER_MM, PLACEHOLDER_TIMESTAMP
from mwdprofile.features.derive import JoinReport
from mwdprofile.features.geometry import hole_length

# Issue types
PLACEHOLDER_START = "PLACEHOLDER_START"  # logger clock never set (1984-01-01)
BAD_DIAMETER = "BAD_DIAMETER"  # missing or < 1 mm bit diameter
ZERO_LENGTH = "ZERO_LENGTH"  # collar == toe
NON_POSITIVE_DRILLING = "NON_POSITIVE_DRILLING"  # end log time <= start
OVERLAPPING_WINDOWS = "OVERLAPPING_WINDOWS"  # next hole started before this one ended
MISSING_REFERENCE = "MISSING_REFERENCE"  # records dropped by the sample/hole join


@dataclass
class HoleIssue:
    """A single detected hole-level quality issue."""

    issue_type: str
    severity: str  # warning | error
    pattern: str = ""
    rig: str = ""
    hole_id: str = ""
    start_log_time: object = None
    detail: str = ""


def _issue(row: pd.Series, issue_type: str, severity: str, detail: str) -> HoleIssue:
    return HoleIssue(
        issue_type=issue_type,
        severity=severity,
        pattern=str(row.get("pattern", "")),
        rig=str(row.get("rig", "")),
        hole_id=str(row.get("hole_id", "")),
        start_log_time=row.get("start_log_time"),
        detail=detail,
    )


def check_holes(holes: pd.DataFrame) -> list[HoleIssue]:
    """Flag placeholder timestamps, bad bit diameters and zero-length holes."""
    holes = holes.reset_index(drop=True)
    issues = []
    start = pd.to_datetime(holes["start_log_time"], errors="coerce")
    diameter = pd.to_numeric(holes["bit_diameter_mm"], errors="coerce")
    length = hole_length(holes)

    for i, row in holes.iterrows():
        if start[i] == PLACEHOLDER_TIMESTAMP:
            issues.append(_issue(row, PLACEHOLDER_START, "error", "start log time is the 1984-01-01 placeholder"))
        if pd.isna(diameter[i]) or diameter[i] < MIN_BIT_DIAMETER_MM:
            issues.append(_issue(row, BAD_DIAMETER, "warning", f"bit diameter {diameter[i]}"))
        if length[i] == 0:
            issues.append(_issue(row, ZERO_LENGTH, "warning", "collar and toe coincide; samples placed at collar"))
    return issues


def check_cycle_times(cycles: pd.DataFrame) -> list[HoleIssue]:
    """Flag non-positive drilling times and overlapping log windows."""
    issues = []
    for _, row in cycles.iterrows():
        drilling = row["drilling_time_s"]
        if pd.notna(drilling) and drilling <= 0:
            issues.append(_issue(row, NON_POSITIVE_DRILLING, "warning", f"drilling time {drilling:.0f} s"))
        non_drilling = row["non_drilling_time_s"]
        if pd.notna(non_drilling) and non_drilling < 0:
            issues.append(
                _issue(row, OVERLAPPING_WINDOWS, "warning", f"non-drilling time {non_drilling:.0f} s")
            )
    return issues


def check_join(report: JoinReport) -> list[HoleIssue]:
    """Turn join exclusions into issues so they are never dropped silently."""
    counts = {
        "samples without a matching hole": report.orphan_samples,
        "holes without a rig name": report.holes_without_rig,
        "duplicate hole rows": report.duplicate_holes,
        "holes without samples": report.holes_without_samples,
    }
    return [
        HoleIssue(issue_type=MISSING_REFERENCE, severity="warning", detail=f"{n} {what}")
        for what, n in counts.items()
        if n
    ]


def issues_to_frame(issues: list[HoleIssue]) -> pd.DataFrame:
    columns = [f.name for f in fields(HoleIssue)]
    return pd.DataFrame([asdict(i) for i in issues], columns=columns)


def rig_status(holes: pd.DataFrame) -> pd.DataFrame:
    """Per (pattern, rig): hole count, drilled metres, bad diameters, placeholder starts.

    Drilled metres are the sum of straight collar-to-toe lengths.
    """
    df = holes.copy()
    df["length_m"] = hole_length(df)
    diameter = pd.to_numeric(df["bit_diameter_mm"], errors="coerce")
    df["bad_diameter"] = diameter.isna() | (diameter < MIN_BIT_DIAMETER_MM)
    df["placeholder_start"] = pd.to_datetime(df["start_log_time"], errors="coerce").eq(PLACEHOLDER_TIMESTAMP)

    return (
        df.groupby(["pattern", "rig"], dropna=False)
        .agg(
            hole_count=("hole_id", "size"),
            total_drilled_m=("length_m", "sum"),
            bad_diameter_count=("bad_diameter", "sum"),
            placeholder_start_count=("placeholder_start", "sum"),
        )
        .reset_index()
    )
