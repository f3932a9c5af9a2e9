"""
Errors
======

Every failure the pipeline reports to its callers. Nothing here is caught
inside the package: `load` / `set_time_range` callers see these directly.
"""

from __future__ import annotations
from typing import Any, Optional


class FiraError(Exception):
    """Base class for all pipeline errors."""


class ParseError(FiraError, ValueError):
    """A raw field could not be turned into its typed value.

    `raw` is None when the column is missing altogether.
    """
    def __init__(self, field: str, raw: Any, row: Optional[int] = None, reason: str = "") -> None:
        self.field = field
        self.raw = raw
        self.row = row
        self.reason = reason
        where = f" (row {row})" if row is not None else ""
        msg = f"Cannot parse field {field!r}{where}: {raw!r}"
        if reason:
            msg += f" - {reason}"
        super().__init__(msg)

    def at_row(self, row: int) -> "ParseError":
        """Return a copy of this error tagged with the input row index."""
        return ParseError(self.field, self.raw, row=row, reason=self.reason)


class InvalidRangeError(FiraError, ValueError):
    """Time range whose start lies after its end."""
    def __init__(self, start: Any, end: Any) -> None:
        self.start = start
        self.end = end
        super().__init__(f"Invalid time range: start {start} is after end {end}")


class LoadInFlightError(FiraError, RuntimeError):
    """A non-waiting load was requested while another load is running."""
