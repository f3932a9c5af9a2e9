"""
Factor aggregator
=================

Reshapes records into column-oriented factor arrays for correlation
consumers. Two samplings of the same factor vocabulary:

- per period: `SeriesStore.filtered_factor_columns` (one value per period)
- per incident: `incident_linked_factor_columns` (one value per incident)

Both go through `dsa.to_columns`, so a new factor shows up in both.
"""

from __future__ import annotations
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence

import pandas as pd

from .dsa import to_columns
from .incident_store import IncidentStore
from .models import FACTOR_NAMES, JoinedIncidentFactors
from .series_store import SeriesStore


def incident_linked_factor_columns(
    joined: Iterable[JoinedIncidentFactors],
    names: Sequence[str] = FACTOR_NAMES,
) -> Dict[str, List[Optional[float]]]:
    """Factor name -> one value per incident, in incident order."""
    return to_columns(joined, names=names)


def correlation_matrix(columns: Mapping[str, List[Any]], method: str = "pearson") -> pd.DataFrame:
    """Pairwise correlation between equal-length factor columns.

    None values become NaN and are excluded pairwise by pandas.
    """
    lengths = {len(v) for v in columns.values()}
    if len(lengths) > 1:
        raise ValueError(f"Columns must have equal length to correlate, got lengths {sorted(lengths)}")
    df = pd.DataFrame({k: pd.to_numeric(pd.Series(v, dtype="object"), errors="coerce") for k, v in columns.items()})
    return df.corr(method=method)


class FactorAggregator:
    """Binds both stores; every call reads their current state."""

    incident_linked_factor_columns = staticmethod(incident_linked_factor_columns)

    def __init__(self, incidents: IncidentStore, series: SeriesStore) -> None:
        self.incidents = incidents
        self.series = series

    def filtered_factor_columns(self) -> Dict[str, List[Any]]:
        """Per-period factor columns over the incident store's time range."""
        return self.series.filtered_factor_columns(self.incidents)

    def joined_incidents(self) -> List[JoinedIncidentFactors]:
        return self.series.join_incidents(self.incidents.filtered_incidents())

    def incident_factor_columns(self) -> Dict[str, List[Optional[float]]]:
        """Per-incident factor columns over the filtered incidents."""
        return incident_linked_factor_columns(self.joined_incidents())

    def incident_correlation(self, method: str = "pearson") -> pd.DataFrame:
        return correlation_matrix(self.incident_factor_columns(), method=method)
