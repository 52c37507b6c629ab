"""Data models for samples, holes, and per-hole cycle records."""

from mwdprofile.models.core import (
    CycleTimeRecord,
    HoleContext,
    HoleKey,
    HoleSummary,
    RawSample,
    records_to_frame,
)

__all__ = [
    "RawSample",
    "HoleContext",
    "HoleKey",
    "HoleSummary",
    "CycleTimeRecord",
    "records_to_frame",
]
