"""
Auxiliary time-series store
===========================

Holds the weather series and the socio-economic series. It has no filter of
its own: every query takes a time range, usually the incident store's
current one, read at call time.

The two series are independent (their periods need not line up). Each is
sorted by time on load, which lets `join_incidents` find the period that
encloses an incident with a binary search.
"""

from __future__ import annotations
from bisect import bisect_right
from dataclasses import dataclass
from datetime import datetime
from statistics import fmean
from typing import Any, Awaitable, Callable, Dict, Iterable, List, Optional, Sequence, Tuple, Union
import asyncio
import logging

from .dsa import merge_sort, to_columns
from .errors import ParseError
from .loader import Row, normalize_socio_documents, normalize_weather_rows
from .models import (
    FilterState, IncidentRecord, JoinedIncidentFactors, SocioEconomicRecord, WeatherRecord,
    SOCIO_FACTORS, WEATHER_FACTORS,
)

logger = logging.getLogger(__name__)

# A time range may come from a (start, end) pair, a FilterState, or any
# object with a `time_range` attribute (e.g. IncidentStore).
RangeLike = Union[Tuple[datetime, datetime], FilterState, Any]


def resolve_range(time_range: RangeLike) -> Tuple[datetime, datetime]:
    tr = getattr(time_range, "time_range", time_range)
    start, end = tr
    return start, end


@dataclass(frozen=True)
class _Series:
    weather: Tuple[WeatherRecord, ...] = ()
    socio: Tuple[SocioEconomicRecord, ...] = ()


def _check_unique_times(records: Sequence[WeatherRecord]) -> None:
    """`records` must be sorted; equal neighbours mean a duplicate period."""
    for i in range(1, len(records)):
        if records[i].time == records[i - 1].time:
            raise ParseError("time", records[i].time.isoformat(sep=" "), reason="duplicate weather period")


def _snapshot_value(v: Any) -> Optional[float]:
    if isinstance(v, tuple):
        return fmean(v) if v else None
    return v


class SeriesStore:
    """Weather + socio-economic series with range-filtered factor columns."""

    def __init__(self, load_lock: Optional[asyncio.Lock] = None) -> None:
        self._series = _Series()
        self.highlighted_factor: Optional[str] = None
        self._load_lock = load_lock if load_lock is not None else asyncio.Lock()

    # ---------------- Loading ----------------
    def load(self, raw_weather_rows: Iterable[Row], raw_socio_docs: Iterable[Row]) -> None:
        """Normalize both series, then commit them together."""
        self.commit(self.prepare(raw_weather_rows, raw_socio_docs))

    @staticmethod
    def prepare(raw_weather_rows: Iterable[Row], raw_socio_docs: Iterable[Row]) -> _Series:
        """Build (but do not install) both series."""
        weather = merge_sort(normalize_weather_rows(raw_weather_rows), key=lambda r: r.time)
        _check_unique_times(weather)
        socio = merge_sort(normalize_socio_documents(raw_socio_docs), key=lambda r: r.time)
        return _Series(weather=tuple(weather), socio=tuple(socio))

    def commit(self, series: _Series) -> None:
        self._series = series
        logger.info("Loaded %d weather periods and %d socio-economic periods",
                    len(series.weather), len(series.socio))

    async def load_async(
        self,
        fetch_weather: Callable[[], Awaitable[Iterable[Row]]],
        fetch_socio: Callable[[], Awaitable[Iterable[Row]]],
    ) -> None:
        """Await both fetches and load them. Concurrent calls are queued."""
        async with self._load_lock:
            weather_rows = await fetch_weather()
            socio_docs = await fetch_socio()
            self.load(weather_rows, socio_docs)

    @property
    def load_in_progress(self) -> bool:
        return self._load_lock.locked()

    @property
    def weather(self) -> Tuple[WeatherRecord, ...]:
        return self._series.weather

    @property
    def socio(self) -> Tuple[SocioEconomicRecord, ...]:
        return self._series.socio

    # ---------------- Derived views ----------------
    def filtered_weather(self, time_range: RangeLike) -> List[WeatherRecord]:
        start, end = resolve_range(time_range)
        return [r for r in self._series.weather if start <= r.time <= end]

    def filtered_socio(self, time_range: RangeLike) -> List[SocioEconomicRecord]:
        start, end = resolve_range(time_range)
        return [r for r in self._series.socio if start <= r.time <= end]

    def filtered_factor_columns(self, time_range: RangeLike) -> Dict[str, List[Any]]:
        """Factor name -> values for the periods inside `time_range`.

        Socio-economic sample arrays are flattened into their column. On a
        name clash the socio-economic column replaces the weather one.
        """
        weather_cols = to_columns(self.filtered_weather(time_range))
        socio_cols = to_columns(self.filtered_socio(time_range), flatten=True)
        merged = dict(weather_cols)
        merged.update(socio_cols)
        return merged

    def _period_lookup(self) -> Callable[[datetime], Dict[str, Optional[float]]]:
        series = (self._series.weather, self._series.socio)
        times = [[r.time for r in s] for s in series]

        def lookup(t: datetime) -> Dict[str, Optional[float]]:
            out: Dict[str, Optional[float]] = {name: None for name in SOCIO_FACTORS}
            out.update({name: None for name in WEATHER_FACTORS})
            for ts, s in zip(times, series):
                pos = bisect_right(ts, t) - 1
                if pos < 0:
                    continue
                for name, v in s[pos].factor_items().items():
                    out[name] = _snapshot_value(v)
            return out

        return lookup

    def factors_at(self, t: datetime) -> Dict[str, Optional[float]]:
        """Factor snapshot from the latest weather / socio period starting at or before `t`.

        Sample arrays are reduced to their mean; factors without an enclosing
        period are None.
        """
        return self._period_lookup()(t)

    def join_incidents(self, incidents: Iterable[IncidentRecord]) -> List[JoinedIncidentFactors]:
        """Attach the enclosing-period factor snapshot to each incident."""
        lookup = self._period_lookup()
        return [JoinedIncidentFactors(incident=e, factors=lookup(e.fire_time)) for e in incidents]
