"""
FIRA package
============

Fire Incident Reactive Aggregator: loads fire incident, weather and
socio-economic records once per session and serves filtered, derived views.

- Record normalization is in `fira/loader.py`.
- The incident store (filters, dedup, station counts) is in `fira/incident_store.py`.
- Weather / socio-economic series live in `fira/series_store.py`.
- Factor columns for correlation are built in `fira/aggregator.py`.
- The CLI entry point is in `fira/cli.py`.
"""

from .errors import FiraError, ParseError, InvalidRangeError, LoadInFlightError
from .incident_store import IncidentStore
from .series_store import SeriesStore
from .aggregator import FactorAggregator
from .session import Session

__version__ = '0.3.0'

__all__ = [
    "FiraError", "ParseError", "InvalidRangeError", "LoadInFlightError",
    "IncidentStore", "SeriesStore", "FactorAggregator", "Session",
]
