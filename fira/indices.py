"""
Indices (precomputed lookup tables)
===================================

Built once per `IncidentStore.load`, next to the sorted incident list:

- `times[i]` is `incidents[i].fire_time`, so a time range maps to one
  contiguous slice found by binary search.
- `by_type["森林"]` gives the sorted positions of that category.

The index is replaced together with the incident list and is never updated
in place.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from bisect import bisect_left, bisect_right
from datetime import datetime
from typing import Dict, List, Tuple

from .models import IncidentRecord


@dataclass(frozen=True)
class IncidentIndex:
    """Lookup tables over one sorted incident list."""
    times: List[datetime] = field(default_factory=list)
    by_type: Dict[str, List[int]] = field(default_factory=dict)

    def __len__(self) -> int:
        return len(self.times)


def build_index(incidents: List[IncidentRecord]) -> IncidentIndex:
    """Build the index; `incidents` must already be sorted by `fire_time`."""
    by_type: Dict[str, List[int]] = {}
    for pos, e in enumerate(incidents):
        by_type.setdefault(e.fire_type, []).append(pos)
    return IncidentIndex(times=[e.fire_time for e in incidents], by_type=by_type)


def time_slice(idx: IncidentIndex, start: datetime, end: datetime) -> Tuple[int, int]:
    """Return `(lo, hi)` such that positions lo..hi-1 satisfy start <= t <= end."""
    lo = bisect_left(idx.times, start)
    hi = bisect_right(idx.times, end)
    return lo, max(lo, hi)
