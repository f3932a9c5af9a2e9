"""
Incident store
==============

The store owns the canonical incident list and the current `FilterState`:

1) `load(rows)` -> normalize, stable-sort by `fire_time`, build the index,
   then swap everything in with a single assignment
2) `set_time_range` / `set_active_categories` replace the `FilterState`
3) every derived view (`filtered_incidents`, `unique_locations`,
   `unique_stations`, ...) is recomputed from canonical state + filter on
   each call; there is no cache to invalidate

Filtering uses the index: binary search for the time slice, then either a
scan of the slice or a merge of the per-category position lists, whichever
touches fewer rows.
"""

from __future__ import annotations
from bisect import bisect_left
from collections import Counter
from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Any, Awaitable, Callable, Dict, Iterable, List, Optional, Tuple, Union
import asyncio
import heapq
import json
import logging

import pandas as pd

from .dsa import merge_sort, unique_by
from .indices import IncidentIndex, build_index, time_slice
from .loader import (
    Row, SkippedRow, normalize_incident_rows, normalize_incident_rows_lenient, parse_datetime,
)
from .models import DerivedLocation, DerivedStation, FilterState, IncidentRecord, record_to_dict

logger = logging.getLogger(__name__)

TimeLike = Union[datetime, str]


@dataclass(frozen=True)
class _Snapshot:
    """Canonical state; replaced as a whole on every successful load."""
    incidents: Tuple[IncidentRecord, ...] = ()
    idx: IncidentIndex = field(default_factory=IncidentIndex)


class IncidentStore:
    """Canonical incidents + filter state, with derived views computed on read."""

    def __init__(self, filter_state: Optional[FilterState] = None, load_lock: Optional[asyncio.Lock] = None) -> None:
        self._snap = _Snapshot()
        self.filter_state = filter_state or FilterState()
        # Presentation hint only; nothing below depends on it.
        self.highlighted_type: Optional[str] = None
        # A Session passes one lock to both stores.
        self._load_lock = load_lock if load_lock is not None else asyncio.Lock()

    # ---------------- Loading ----------------
    def load(self, raw_rows: Iterable[Row], lenient: bool = False) -> List[SkippedRow]:
        """Replace canonical state with the normalized, time-sorted rows.

        Strict mode raises `ParseError` on the first bad row and leaves the
        previous state untouched. Lenient mode skips bad rows and returns them.
        """
        snap, skipped = self.prepare(raw_rows, lenient=lenient)
        self.commit(snap)
        return skipped

    @staticmethod
    def prepare(raw_rows: Iterable[Row], lenient: bool = False) -> Tuple[_Snapshot, List[SkippedRow]]:
        """Build (but do not install) the state for `raw_rows`."""
        skipped: List[SkippedRow] = []
        if lenient:
            res = normalize_incident_rows_lenient(raw_rows)
            records, skipped = res.records, res.skipped
            for s in skipped:
                logger.warning("Skipped incident row: %s", s.error)
        else:
            records = normalize_incident_rows(raw_rows)
        ordered = merge_sort(records, key=lambda e: e.fire_time)
        return _Snapshot(incidents=tuple(ordered), idx=build_index(ordered)), skipped

    def commit(self, snap: _Snapshot) -> None:
        self._snap = snap
        logger.info("Loaded %d incidents", len(snap.incidents))

    async def load_async(self, fetch: Callable[[], Awaitable[Iterable[Row]]], lenient: bool = False) -> List[SkippedRow]:
        """Await `fetch()` and load its rows. Concurrent calls are queued."""
        async with self._load_lock:
            rows = await fetch()
            return self.load(rows, lenient=lenient)

    @property
    def load_in_progress(self) -> bool:
        return self._load_lock.locked()

    @property
    def incidents(self) -> Tuple[IncidentRecord, ...]:
        """The canonical incident list, sorted by `fire_time`."""
        return self._snap.incidents

    # ---------------- Filters ----------------
    def set_time_range(self, start: TimeLike, end: TimeLike) -> None:
        """Replace the time range; `InvalidRangeError` keeps the old one."""
        s = parse_datetime(start, "start")
        e = parse_datetime(end, "end")
        self.filter_state = replace(self.filter_state, start=s, end=e)
        logger.debug("Time range set to %s .. %s", s, e)

    def set_active_categories(self, categories: Iterable[str]) -> None:
        """Replace the category set. Labels outside FIRE_TYPES are accepted."""
        if isinstance(categories, str):
            raise TypeError("categories must be a collection of labels, not a single string")
        self.filter_state = replace(self.filter_state, categories=frozenset(categories))
        logger.debug("Active categories: %d", len(self.filter_state.categories))

    @property
    def time_range(self) -> Tuple[datetime, datetime]:
        return self.filter_state.time_range

    @property
    def active_categories(self):
        return self.filter_state.categories

    # ---------------- Derived views ----------------
    def _select(self, lo: int, hi: int, categories) -> List[IncidentRecord]:
        snap = self._snap
        by_type = snap.idx.by_type
        lists = [by_type[c] for c in categories if c in by_type]
        candidates = sum(len(p) for p in lists)
        if candidates >= hi - lo:
            return [e for e in snap.incidents[lo:hi] if e.fire_type in categories]
        # Fewer rows via the category lists: clip each to [lo, hi) and merge.
        clipped = []
        for pos in lists:
            a = bisect_left(pos, lo)
            b = bisect_left(pos, hi)
            if a < b:
                clipped.append(pos[a:b])
        return [snap.incidents[p] for p in heapq.merge(*clipped)]

    def filtered_incidents(self) -> List[IncidentRecord]:
        """Incidents inside the time range (inclusive) with an active category."""
        fs = self.filter_state
        lo, hi = time_slice(self._snap.idx, fs.start, fs.end)
        return self._select(lo, hi, fs.categories)

    def category_filtered_incidents(self) -> List[IncidentRecord]:
        """Like `filtered_incidents`, ignoring the time range."""
        return self._select(0, len(self._snap.incidents), self.filter_state.categories)

    def unique_locations(self) -> List[DerivedLocation]:
        """One location per `fire_code`, first occurrence in time order."""
        firsts = unique_by(self.filtered_incidents(), key=lambda e: e.fire_code)
        return [DerivedLocation.from_incident(e) for e in firsts]

    def unique_stations(self) -> List[DerivedStation]:
        """One station per `station_code` with the number of filtered incidents it served."""
        rows = self.filtered_incidents()
        counts = Counter(e.station_code for e in rows)
        return [
            DerivedStation(
                station_code=e.station_code,
                station_lat=e.station_lat,
                station_lng=e.station_lng,
                task_count=counts[e.station_code],
            )
            for e in unique_by(rows, key=lambda e: e.station_code)
        ]

    def category_counts(self) -> List[Tuple[str, int]]:
        """Filtered incident count per category, largest first."""
        return Counter(e.fire_type for e in self.filtered_incidents()).most_common()

    def timeline_counts(self, freq: str = "MS") -> List[Tuple[datetime, int]]:
        """Filtered incident count per period (pandas offset alias, default month start)."""
        rows = self.filtered_incidents()
        if not rows:
            return []
        s = pd.Series(1, index=pd.DatetimeIndex([e.fire_time for e in rows]))
        counts = s.resample(freq).sum()
        return [(ts.to_pydatetime(), int(n)) for ts, n in counts.items()]

    def export_json(self, path: str) -> int:
        """Write the filtered incidents to a JSON array; returns the row count."""
        rows = [record_to_dict(e) for e in self.filtered_incidents()]
        with open(path, "w", encoding="utf-8") as f:
            json.dump(rows, f, ensure_ascii=False, indent=2)
        return len(rows)

    def summary(self) -> Dict[str, Any]:
        fs = self.filter_state
        return {
            "incidents": len(self._snap.incidents),
            "filtered": len(self.filtered_incidents()),
            "categories": len(self._snap.idx.by_type),
            "start": fs.start,
            "end": fs.end,
        }
