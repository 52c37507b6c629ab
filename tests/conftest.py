"""Shared fixtures for mwdprofile tests."""

from __future__ import annotations

from dataclasses import asdict
from datetime import datetime, timedelta

import numpy as np
import pandas as pd
import pytest

from mwdprofile.models import HoleContext, RawSample

PATTERN = "1160-3231"
RIG = "DR0094"
SERIAL = "10294"
DAY = datetime(2024, 3, 1)


def make_hole(
    hole_id,
    start: datetime,
    end: datetime | None,
    *,
    pattern=PATTERN,
    rig=RIG,
    rig_serial=SERIAL,
    bit_diameter_mm=115.0,
    collar=(100.0, 200.0, 50.0),
    toe=(100.0, 200.0, 40.0),
) -> dict:
    """One hole row in canonical column names."""
    hole = HoleContext(
        pattern=pattern,
        hole_id=str(hole_id),
        rig=rig,
        rig_serial=rig_serial,
        bit_diameter_mm=bit_diameter_mm,
        collar_x=collar[0],
        collar_y=collar[1],
        collar_z=collar[2],
        toe_x=toe[0],
        toe_y=toe[1],
        toe_z=toe[2],
        start_log_time=start,
        end_log_time=end,
    )
    return asdict(hole)


def make_samples(
    hole: dict,
    depths,
    *,
    percussion=150.0,
    feeder=60.0,
    rate=1.2,
    start_offset=timedelta(milliseconds=250),
) -> list[dict]:
    """Samples for ``hole`` at the given depths.

    The sample side carries the log start with a sub-second offset, as the
    source tables do.  ``percussion``, ``feeder`` and ``rate`` may be scalars
    or one value per depth.
    """
    depths = list(depths)
    n = len(depths)

    def per_depth(value):
        return list(value) if isinstance(value, (list, tuple, np.ndarray)) else [value] * n

    percussion, feeder, rate = per_depth(percussion), per_depth(feeder), per_depth(rate)
    samples = [
        RawSample(
            pattern=hole["pattern"],
            hole_id=hole["hole_id"],
            rig_serial=hole["rig_serial"],
            start_log_time=hole["start_log_time"] + start_offset,
            time=hole["start_log_time"] + timedelta(seconds=i),
            depth_m=depth,
            percussion_pressure=percussion[i],
            feeder_pressure=feeder[i],
            penetration_rate_m_per_min=rate[i],
        )
        for i, depth in enumerate(depths)
    ]
    return [asdict(s) for s in samples]


def at(hour: int, minute: int) -> datetime:
    return DAY.replace(hour=hour, minute=minute)


def ten_metre_depths():
    """100 samples, one every 0.1 m from 0.05 to 9.95 m."""
    return np.round(0.05 + 0.1 * np.arange(100), 2)


@pytest.fixture
def dr0094_holes():
    """Three 10 m holes on DR0094 starting 08:00, 08:25 and 08:50."""
    return [
        make_hole("12", at(8, 0), at(8, 10)),
        make_hole("13", at(8, 25), at(8, 40)),
        make_hole("14", at(8, 50), at(9, 0)),
    ]


@pytest.fixture
def dr0094_tables(dr0094_holes):
    """(samples, holes) frames for the three DR0094 holes."""
    samples = []
    for hole in dr0094_holes:
        samples += make_samples(hole, ten_metre_depths())
    return pd.DataFrame(samples), pd.DataFrame(dr0094_holes)


@pytest.fixture
def hole_summaries():
    """Factory for sequenced-hole frames as produced by ``summarize_holes``."""

    def build(rows):
        records = []
        for row in rows:
            record = make_hole(row["hole_id"], row["start"], row["end"], rig=row.get("rig", RIG))
            record = {k: record[k] for k in ("pattern", "rig", "rig_serial", "hole_id", "bit_diameter_mm")}
            record.update(
                start_log_time=row["start"],
                end_log_time=row["end"],
                hole_depth_m=row.get("depth", 10.0),
            )
            records.append(record)
        return pd.DataFrame(records)

    return build
