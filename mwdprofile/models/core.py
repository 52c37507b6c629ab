"""Core data models for the MWD depth profile pipeline."""

from __future__ import annotations

import math
from dataclasses import asdict, dataclass, fields
from datetime import datetime

import pandas as pd


@dataclass(frozen=True)
class HoleKey:
    """Identity of one drilling attempt.

    Hole ids are reused when a hole is redrilled, so an attempt is only
    unique together with its rig, bit and log window.  Every join between
    pipeline stages uses these columns, in this order.
    """

    pattern: str
    rig: str
    rig_serial: str
    hole_id: str
    bit_diameter_mm: float | None
    start_log_time: datetime
    end_log_time: datetime | None

    @classmethod
    def columns(cls) -> list[str]:
        return [f.name for f in fields(cls)]

    @classmethod
    def from_row(cls, row) -> HoleKey:
        """Build a key from a DataFrame row (Series or namedtuple)."""
        get = row.get if hasattr(row, "get") else lambda name: getattr(row, name)
        values = {}
        for name in cls.columns():
            value = get(name)
            values[name] = None if _is_missing(value) else value
        return cls(**values)

    def describe(self) -> str:
        """Short location string for error messages."""
        return f"pattern={self.pattern!r} rig={self.rig!r} hole_id={self.hole_id!r} start={self.start_log_time}"


def _is_missing(value) -> bool:
    if value is None or value is pd.NaT:
        return True
    return isinstance(value, float) and math.isnan(value)


@dataclass(frozen=True)
class RawSample:
    """A single downhole measurement."""

    pattern: str  # drill plan name, e.g. "1160-3231"
    hole_id: str
    rig_serial: str
    start_log_time: datetime  # owning hole's log start, used as join key
    time: datetime
    depth_m: float
    percussion_pressure: float | None = None
    feeder_pressure: float | None = None
    penetration_rate_m_per_min: float | None = None


@dataclass(frozen=True)
class HoleContext:
    """Static attributes of one drilled hole attempt."""

    pattern: str
    hole_id: str
    rig: str  # e.g. "DR0094"
    rig_serial: str
    bit_diameter_mm: float | None  # no default; missing stays missing
    collar_x: float
    collar_y: float
    collar_z: float
    toe_x: float
    toe_y: float
    toe_z: float
    start_log_time: datetime
    end_log_time: datetime | None = None


@dataclass
class HoleSummary:
    """One hole attempt with its depth and place in the rig's sequence."""

    pattern: str
    rig: str
    rig_serial: str
    hole_id: str
    bit_diameter_mm: float | None
    start_log_time: datetime
    end_log_time: datetime | None
    hole_depth_m: float
    rig_hole_sequence: int
    combined_sequence_id: int

    @property
    def key(self) -> HoleKey:
        return HoleKey(**{name: getattr(self, name) for name in HoleKey.columns()})


@dataclass
class CycleTimeRecord(HoleSummary):
    """Hole summary plus drilling, cycle, and productivity metrics.

    ``next_hole_start_time`` is None for the last hole of a (pattern, rig)
    sequence; the cycle fields are then None as well.
    """

    drilling_time_s: float | None
    next_hole_start_time: datetime | None
    cycle_time_s: float | None
    non_drilling_time_s: float | None
    drilling_rop_m_per_hr: float | None
    cycle_rop_m_per_hr: float | None

    @property
    def is_sequence_end(self) -> bool:
        return self.next_hole_start_time is None

    @classmethod
    def from_row(cls, row: pd.Series) -> CycleTimeRecord:
        values = {}
        for f in fields(cls):
            value = row.get(f.name)
            if _is_missing(value):
                value = None
            elif isinstance(value, pd.Timestamp):
                value = value.to_pydatetime()
            values[f.name] = value
        values["rig_hole_sequence"] = int(values["rig_hole_sequence"])
        values["combined_sequence_id"] = int(values["combined_sequence_id"])
        return cls(**values)


def records_to_frame(records: list) -> pd.DataFrame:
    """Convert a list of dataclass records to a DataFrame, one row each."""
    if not records:
        return pd.DataFrame()
    return pd.DataFrame([asdict(r) for r in records])
