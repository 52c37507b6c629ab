"""Exceptions raised by the profile pipeline."""

from __future__ import annotations

from mwdprofile.models.core import HoleKey


class MwdProfileError(Exception):
    """Base class for pipeline errors."""


class MissingColumnsError(MwdProfileError):
    """An input table lacks columns the pipeline needs."""

    def __init__(self, table: str, missing: list[str]):
        self.table = table
        self.missing = missing
        super().__init__(f"{table} is missing required columns: {', '.join(missing)}")


class MalformedIdentityError(MwdProfileError):
    """A hole attempt cannot be given a CombinedSequenceId."""

    def __init__(self, key: HoleKey, reason: str):
        self.key = key
        self.reason = reason
        super().__init__(f"{reason} ({key.describe()})")
