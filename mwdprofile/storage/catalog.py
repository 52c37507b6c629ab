"""DuckDB access to the sample, hole and rig tables of an export directory.

An export directory holds ``samples``, ``holes`` and optionally ``rigs``
tables, each as Parquet or CSV.  Source column names are harmonized to the
canonical names on the way in, and the pattern and date filters run in SQL
so unrelated patterns are never materialized.
"""

from __future__ import annotations

import logging
from pathlib import Path

import duckdb
import pandas as pd

from mwdprofile.config import HOLES_TABLE, RIGS_TABLE, SAMPLES_TABLE, TABLE_SUFFIXES, ProfileSettings
from mwdprofile.harmonize.column_map import canonical_renames

logger = logging.getLogger(__name__)


def find_table(input_dir: Path, name: str) -> Path | None:
    """Return the first ``{name}.parquet`` / ``{name}.csv`` found, or None."""
    for suffix in TABLE_SUFFIXES:
        path = input_dir / f"{name}{suffix}"
        if path.exists():
            return path
    return None


def _reader(path: Path) -> str:
    if path.suffix == ".parquet":
        return f"read_parquet('{path}')"
    return f"read_csv_auto('{path}', header=true)"


def _create_view(con: duckdb.DuckDBPyConnection, path: Path, name: str) -> None:
    """Create view ``name`` over the file with canonical column names."""
    con.execute(f"CREATE VIEW _raw_{name} AS SELECT * FROM {_reader(path)}")
    columns = con.table(f"_raw_{name}").columns
    renames = canonical_renames(columns, name)
    select = ", ".join(
        f'"{col}" AS "{renames[col]}"' if col in renames else f'"{col}"' for col in columns
    )
    con.execute(f"CREATE VIEW {name} AS SELECT {select} FROM _raw_{name}")


def get_duckdb_connection(input_dir: Path) -> duckdb.DuckDBPyConnection:
    """Get a DuckDB connection with samples, holes (and rigs) loaded as views."""
    con = duckdb.connect()
    for name in (SAMPLES_TABLE, HOLES_TABLE):
        path = find_table(input_dir, name)
        if path is None:
            raise FileNotFoundError(
                f"No {name}.parquet or {name}.csv in {input_dir}. Export the {name} table first."
            )
        _create_view(con, path, name)

    rigs_path = find_table(input_dir, RIGS_TABLE)
    if rigs_path is not None:
        _create_view(con, rigs_path, RIGS_TABLE)
    return con


def _time_filter(settings: ProfileSettings, column: str) -> tuple[str, list]:
    clauses, params = [], []
    if settings.start is not None:
        clauses.append(f"{column} >= ?")
        params.append(settings.start)
    if settings.end is not None:
        clauses.append(f"{column} <= ?")
        params.append(settings.end)
    return "".join(f" AND {c}" for c in clauses), params


def load_holes(con: duckdb.DuckDBPyConnection, settings: ProfileSettings) -> pd.DataFrame:
    """Holes of the selected patterns, with rig names joined from the rig table."""
    hole_columns = con.table(HOLES_TABLE).columns
    has_rigs = RIGS_TABLE in {row[0] for row in con.execute("SELECT view_name FROM duckdb_views()").fetchall()}

    if "rig" not in hole_columns and has_rigs:
        source = (
            f"(SELECT h.*, r.rig FROM {HOLES_TABLE} h "
            f"LEFT JOIN {RIGS_TABLE} r ON CAST(r.rig_serial AS VARCHAR) = CAST(h.rig_serial AS VARCHAR))"
        )
    elif "rig" not in hole_columns:
        raise FileNotFoundError("Holes table has no rig column and no rigs table was found.")
    else:
        source = HOLES_TABLE

    time_sql, time_params = _time_filter(settings, "start_log_time")
    query = f"SELECT * FROM {source} WHERE CAST(pattern AS VARCHAR) LIKE ?{time_sql}"
    holes = con.execute(query, [settings.pattern, *time_params]).df()
    logger.info("Loaded %d holes matching %r", len(holes), settings.pattern)
    return holes


def load_samples(con: duckdb.DuckDBPyConnection, settings: ProfileSettings) -> pd.DataFrame:
    """Samples of the selected patterns.

    Sample log start times carry sub-second digits the hole table lacks, so
    the date filter compares them truncated to the second.
    """
    time_sql, time_params = _time_filter(settings, "date_trunc('second', start_log_time)")
    query = f"SELECT * FROM {SAMPLES_TABLE} WHERE CAST(pattern AS VARCHAR) LIKE ?{time_sql}"
    samples = con.execute(query, [settings.pattern, *time_params]).df()
    logger.info("Loaded %d samples matching %r", len(samples), settings.pattern)
    return samples


def load_tables(input_dir: Path, settings: ProfileSettings) -> tuple[pd.DataFrame, pd.DataFrame]:
    """Load (samples, holes) for a profile run."""
    con = get_duckdb_connection(input_dir)
    try:
        return load_samples(con, settings), load_holes(con, settings)
    finally:
        con.close()


def dataset_info(input_dir: Path) -> str:
    """Generate a dataset summary string."""
    try:
        con = get_duckdb_connection(input_dir)
    except FileNotFoundError as e:
        return str(e)

    try:
        n_samples = con.execute(f"SELECT COUNT(*) FROM {SAMPLES_TABLE}").fetchone()[0]
        n_holes, n_patterns, n_rigs, t_min, t_max = con.execute(
            f"SELECT COUNT(*), COUNT(DISTINCT pattern), COUNT(DISTINCT rig_serial), "
            f"MIN(start_log_time), MAX(start_log_time) FROM {HOLES_TABLE}"
        ).fetchone()
        patterns = [
            row[0]
            for row in con.execute(
                f"SELECT DISTINCT pattern FROM {HOLES_TABLE} ORDER BY pattern LIMIT 20"
            ).fetchall()
        ]
    finally:
        con.close()

    lines = [
        "Dataset Summary",
        "=" * 50,
        f"Samples: {n_samples:,}",
        f"Hole attempts: {n_holes:,}",
        f"Patterns: {n_patterns}",
        f"Rigs: {n_rigs}",
        f"Date range: {t_min} to {t_max}",
        f"Patterns (first 20): {', '.join(str(p) for p in patterns)}",
    ]
    return "\n".join(lines)
