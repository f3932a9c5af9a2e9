"""
Session
=======

One `Session` per run: both stores, the aggregator bound to them, and the
config they were built from. Consumers get the session (or a store) by
reference; there is no module-level singleton.

Loading is the only step that waits on I/O. Loads are serialized by one
`asyncio.Lock`: a second `load_async` waits until the first has committed
(queue policy). `load_nowait_async` refuses instead, with `LoadInFlightError`.
Both stores are prepared before either is committed, so a failed load leaves
the previous data in place everywhere.
"""

from __future__ import annotations
from typing import Any, Awaitable, Callable, Dict, Iterable, List, Optional
import asyncio
import logging

from .aggregator import FactorAggregator
from .config import PipelineConfig
from .errors import LoadInFlightError
from .incident_store import IncidentStore
from .loader import Row, SkippedRow, read_csv_rows, read_json_documents
from .models import FilterState
from .series_store import SeriesStore

logger = logging.getLogger(__name__)

Fetch = Callable[[], Awaitable[Iterable[Row]]]


class Session:
    """Stores + aggregator for one analysis session."""

    def __init__(self, config: Optional[PipelineConfig] = None) -> None:
        self.config = config or PipelineConfig()
        # Guards session loads and both stores' load_async.
        self._load_lock = asyncio.Lock()
        self.incidents = IncidentStore(FilterState(start=self.config.start, end=self.config.end),
                                       load_lock=self._load_lock)
        self.series = SeriesStore(load_lock=self._load_lock)
        self.aggregator = FactorAggregator(self.incidents, self.series)
        self.skipped: List[SkippedRow] = []

    def load(self, fire_rows: Iterable[Row], weather_rows: Iterable[Row], socio_docs: Iterable[Row]) -> List[SkippedRow]:
        """Normalize all three inputs, then commit both stores."""
        snap, skipped = self.incidents.prepare(fire_rows, lenient=self.config.lenient)
        series = self.series.prepare(weather_rows, socio_docs)
        self.incidents.commit(snap)
        self.series.commit(series)
        self.skipped = skipped
        return skipped

    def load_files(self) -> List[SkippedRow]:
        """Read the configured CSV / JSON files and load them."""
        cfg = self.config
        logger.info("Reading %s, %s, %s", cfg.fires_path, cfg.weather_path, cfg.socio_path)
        return self.load(read_csv_rows(cfg.fires_path), read_csv_rows(cfg.weather_path),
                         read_json_documents(cfg.socio_path))

    async def load_async(self, fetch_fires: Fetch, fetch_weather: Fetch, fetch_socio: Fetch) -> List[SkippedRow]:
        """Fetch and load; a call made while another load runs waits its turn."""
        async with self._load_lock:
            fire_rows, weather_rows, socio_docs = await asyncio.gather(
                fetch_fires(), fetch_weather(), fetch_socio())
            return self.load(fire_rows, weather_rows, socio_docs)

    async def load_nowait_async(self, fetch_fires: Fetch, fetch_weather: Fetch, fetch_socio: Fetch) -> List[SkippedRow]:
        """Like `load_async`, but raise `LoadInFlightError` instead of waiting."""
        if self._load_lock.locked():
            raise LoadInFlightError("A load is already in progress")
        return await self.load_async(fetch_fires, fetch_weather, fetch_socio)

    async def load_files_async(self) -> List[SkippedRow]:
        """`load_files` with the file reads run in worker threads."""
        cfg = self.config

        async def fires():
            return await asyncio.to_thread(read_csv_rows, cfg.fires_path)

        async def weather():
            return await asyncio.to_thread(read_csv_rows, cfg.weather_path)

        async def socio():
            return await asyncio.to_thread(read_json_documents, cfg.socio_path)

        return await self.load_async(fires, weather, socio)

    @property
    def load_in_progress(self) -> bool:
        return self._load_lock.locked()

    def summary(self) -> Dict[str, Any]:
        out = dict(self.incidents.summary())
        out["weather_periods"] = len(self.series.weather)
        out["socio_periods"] = len(self.series.socio)
        out["skipped_rows"] = len(self.skipped)
        return out
