"""Write profile results as Parquet (or CSV) files."""

from __future__ import annotations

import hashlib
import logging
import re
from pathlib import Path

import pandas as pd
import pyarrow as pa
import pyarrow.parquet as pq
from tqdm import tqdm

from mwdprofile.analysis.cycle_time import hole_cycle_summary
from mwdprofile.config import (
    HOLES_BY_RIG_FILE,
    HOLES_FILE,
    NO_PATTERN_FILE,
    PROFILES_DIR,
    RIG_STATUS_FILE,
    ProfileSettings,
)
from mwdprofile.pipeline import ProfileResult

logger = logging.getLogger(__name__)

_UNSAFE_CHARS_RE = re.compile(r"[^A-Za-z0-9_-]+")


def pattern_filename(pattern: str) -> str:
    """File-system safe stem for a pattern name, e.g. '1160-3231 N.2' → '1160-3231_N_2'."""
    return _UNSAFE_CHARS_RE.sub("_", str(pattern)).strip("_") or "unnamed"


def pattern_filenames(patterns) -> dict[str, str]:
    """File stems for a set of patterns, unique within the set.

    Patterns whose safe stems clash (e.g. 'A B' and 'A_B') each get a short
    hash of the raw name appended.
    """
    stems = {p: pattern_filename(p) for p in patterns}
    counts = pd.Series(list(stems.values()), dtype=object).value_counts()
    for pattern, stem in stems.items():
        if counts[stem] > 1:
            digest = hashlib.sha1(str(pattern).encode("utf-8")).hexdigest()[:8]
            stems[pattern] = f"{stem}-{digest}"
    return stems


def write_table(df: pd.DataFrame, path: Path, fmt: str = "parquet") -> Path:
    """Write one table; NaN in float columns is written as null."""
    path = path.parent / f"{path.name}.{fmt}"
    path.parent.mkdir(parents=True, exist_ok=True)
    if fmt == "csv":
        df.to_csv(path, index=False)
    else:
        table = pa.Table.from_pandas(df, preserve_index=False)
        pq.write_table(table, path)
    return path


def write_profile(output_dir: Path, result: ProfileResult, settings: ProfileSettings) -> list[Path]:
    """Write one profile file per pattern plus the hole-level tables.

    Intervals without a pattern name go to ``profiles/_no_pattern``.
    """
    output_dir.mkdir(parents=True, exist_ok=True)
    written = []

    profile = result.profile
    patterns = sorted(profile["pattern"].dropna().unique()) if not profile.empty else []
    stems = pattern_filenames(patterns)
    for pattern in tqdm(patterns, desc="Writing profiles"):
        rows = profile[profile["pattern"] == pattern].reset_index(drop=True)
        path = output_dir / PROFILES_DIR / stems[pattern]
        written.append(write_table(rows, path, settings.fmt))
        logger.info("Wrote %d intervals for pattern %s", len(rows), pattern)

    no_pattern = profile[profile["pattern"].isna()].reset_index(drop=True)
    if not no_pattern.empty:
        logger.warning("%d intervals have no pattern name; writing them to %s", len(no_pattern), NO_PATTERN_FILE)
        written.append(write_table(no_pattern, output_dir / PROFILES_DIR / NO_PATTERN_FILE, settings.fmt))

    if not result.cycles.empty:
        written.append(write_table(result.cycles, output_dir / HOLES_FILE, settings.fmt))
        written.append(write_table(hole_cycle_summary(result.cycles), output_dir / HOLES_BY_RIG_FILE, settings.fmt))

    return written


def write_rig_status(output_dir: Path, status: pd.DataFrame, fmt: str = "parquet") -> Path:
    return write_table(status, output_dir / RIG_STATUS_FILE, fmt)
