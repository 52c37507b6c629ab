"""Column name harmonization: source database names → canonical names."""

from __future__ import annotations

from pathlib import Path

import yaml

_COLUMN_MAP: dict[str, dict] | None = None
_DEFINITIONS_PATH = Path(__file__).parent / "column_map.yaml"


def _load_column_map() -> dict[str, dict]:
    global _COLUMN_MAP
    if _COLUMN_MAP is not None:
        return _COLUMN_MAP

    with open(_DEFINITIONS_PATH) as f:
        _COLUMN_MAP = yaml.safe_load(f)
    return _COLUMN_MAP


def get_canonical_name(column: str, table: str = "any") -> str:
    """Get the canonical name for a source column, or the name unchanged."""
    entry = _load_column_map().get(column)
    if entry and entry.get("table", "any") in ("any", table):
        return entry["canonical"]
    return column


def canonical_renames(columns: list[str], table: str = "any") -> dict[str, str]:
    """Map each known source column of a table onto its canonical name.

    A column that already carries a canonical name wins over a source column
    mapping onto the same name.
    """
    renames = {}
    for col in columns:
        canonical = get_canonical_name(col, table)
        if canonical != col and canonical not in columns and canonical not in renames.values():
            renames[col] = canonical
    return renames
