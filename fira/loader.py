"""
Record normalizer (raw rows -> typed records)
=============================================

This module turns raw rows (column name -> string) and raw JSON documents
into the immutable records of `fira.models`.

Key ideas:
- Conversion helpers (_to_int/_to_float/_to_datetime) are strict: a bad
  cell raises `ParseError` with the field name and raw value. A silently
  wrong number or date would corrupt counts and sort order later.
- Normalizers are pure: one row in, one record out (or one error). No
  filtering, sorting or aggregation happens here.
- The lenient variant is a separate, explicitly named function and reports
  every row it skipped.
- `read_csv_rows` / `read_json_documents` are the thin file boundary used
  by the CLI; the stores themselves only ever see rows.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Iterable, List, Mapping, Sequence
import json
import math

import pandas as pd

from .errors import ParseError
from .models import (
    IncidentRecord, SocioEconomicRecord, WeatherRecord, SOCIO_FACTORS, WEATHER_FACTORS, SocioValue,
)

Row = Mapping[str, Any]


def _col(row: Row, name: str) -> Any:
    """Return the raw value of a required column."""
    if name not in row:
        raise ParseError(name, None, reason="missing column")
    return row[name]


def _to_str(x: Any) -> str:
    if x is None: return ""
    return str(x).strip()


def _to_int(x: Any, name: str) -> int:
    """Parse an integer-valued field ('12' ok, '12.5' and '' are errors)."""
    if isinstance(x, bool):
        raise ParseError(name, x, reason="boolean is not a number")
    if isinstance(x, int):
        return x
    s = _to_str(x)
    if "_" in s:
        raise ParseError(name, x, reason="digit separators are not allowed")
    try:
        return int(s)
    except ValueError:
        raise ParseError(name, x, reason="expected an integer") from None


def _to_float(x: Any, name: str) -> float:
    """Parse a floating point field; NaN/inf and blanks are errors."""
    if isinstance(x, bool):
        raise ParseError(name, x, reason="boolean is not a number")
    if isinstance(x, str) and "_" in x:
        raise ParseError(name, x, reason="digit separators are not allowed")
    try:
        v = float(x) if isinstance(x, (int, float)) else float(_to_str(x))
    except (TypeError, ValueError):
        raise ParseError(name, x, reason="expected a number") from None
    if not math.isfinite(v):
        raise ParseError(name, x, reason="not a finite number")
    return v


def _to_number(x: Any, name: str, integer: bool):
    return _to_int(x, name) if integer else _to_float(x, name)


def parse_datetime(x: Any, name: str = "time") -> datetime:
    """Parse an ISO 8601 date/time into a naive `datetime`.

    Only ISO 8601 text is accepted ("2010-05-01", "2010-05-01 08:00:00",
    "2010-05-01T08:00:00+08:00"); fragments like "May" or "3/4" are errors.

    Timezone-aware inputs are converted to UTC and made naive so every
    timestamp in a session compares against every other one.
    """
    if isinstance(x, datetime):
        ts = pd.Timestamp(x)
    else:
        s = _to_str(x)
        if not s:
            raise ParseError(name, x, reason="empty date")
        try:
            ts = pd.to_datetime(s, format="ISO8601")
        except (TypeError, ValueError, OverflowError) as exc:
            raise ParseError(name, x, reason=str(exc)) from None
    if pd.isna(ts):
        raise ParseError(name, x, reason="not a date")
    if ts.tzinfo is not None:
        ts = ts.tz_convert("UTC").tz_localize(None)
    return ts.to_pydatetime()


# ---------------- Single-record normalizers ----------------
def normalize_incident(row: Row) -> IncidentRecord:
    return IncidentRecord(
        id=_to_int(_col(row, "id"), "id"),
        fire_code=_to_int(_col(row, "fire_code"), "fire_code"),
        fire_time=parse_datetime(_col(row, "fire_time"), "fire_time"),
        fire_type=_to_str(_col(row, "fire_type")),
        station_code=_to_str(_col(row, "station_code")),
        battle_type=_to_str(_col(row, "battle_type")),
        fire_lat=_to_float(_col(row, "fire_lat"), "fire_lat"),
        fire_lng=_to_float(_col(row, "fire_lng"), "fire_lng"),
        station_lat=_to_float(_col(row, "station_lat"), "station_lat"),
        station_lng=_to_float(_col(row, "station_lng"), "station_lng"),
        station_build_time=parse_datetime(_col(row, "station_build_time"), "station_build_time"),
    )


def normalize_weather(row: Row) -> WeatherRecord:
    values = {name: _to_number(_col(row, name), name, integer)
              for name, integer in WEATHER_FACTORS.items()}
    return WeatherRecord(time=parse_datetime(_col(row, "time"), "time"), values=values)


def normalize_socio(doc: Row) -> SocioEconomicRecord:
    """One JSON object: `time`, the SOCIO_FACTORS indicators, and any extra
    numeric fields. Each value is a scalar or a list of sub-region samples.
    """
    t = parse_datetime(_col(doc, "time"), "time")
    values: Dict[str, SocioValue] = {}
    keys = list(SOCIO_FACTORS) + [k for k in doc if k != "time" and k not in SOCIO_FACTORS]
    for key in keys:
        raw = _col(doc, key)
        if isinstance(raw, (list, tuple)):
            values[key] = tuple(_to_float(v, key) for v in raw)
        else:
            values[key] = _to_float(raw, key)
    return SocioEconomicRecord(time=t, values=values)


# ---------------- Batch normalizers (strict) ----------------
def _normalize_all(rows: Iterable[Row], one) -> list:
    out = []
    for i, row in enumerate(rows):
        try:
            out.append(one(row))
        except ParseError as exc:
            raise exc.at_row(i) from None
    return out


def normalize_incident_rows(rows: Iterable[Row]) -> List[IncidentRecord]:
    """Normalize incident rows; the first bad row aborts the whole batch."""
    return _normalize_all(rows, normalize_incident)


def normalize_weather_rows(rows: Iterable[Row]) -> List[WeatherRecord]:
    return _normalize_all(rows, normalize_weather)


def normalize_socio_documents(docs: Iterable[Row]) -> List[SocioEconomicRecord]:
    return _normalize_all(docs, normalize_socio)


# ---------------- Lenient mode ----------------
@dataclass(frozen=True)
class SkippedRow:
    index: int
    error: ParseError


@dataclass
class LenientResult:
    """Records that parsed, plus every row that did not."""
    records: List[IncidentRecord] = field(default_factory=list)
    skipped: List[SkippedRow] = field(default_factory=list)


def normalize_incident_rows_lenient(rows: Iterable[Row]) -> LenientResult:
    res = LenientResult()
    for i, row in enumerate(rows):
        try:
            res.records.append(normalize_incident(row))
        except ParseError as exc:
            res.skipped.append(SkippedRow(index=i, error=exc.at_row(i)))
    return res


# ---------------- File boundary ----------------
def read_csv_rows(path: str) -> List[Dict[str, str]]:
    """Read a CSV file as raw string rows (no type inference, blanks kept as '')."""
    df = pd.read_csv(path, dtype=str, keep_default_na=False, encoding="utf-8")
    df.rename(columns={c: str(c).strip() for c in df.columns}, inplace=True)
    return df.to_dict(orient="records")


def read_json_documents(path: str) -> Sequence[Dict[str, Any]]:
    """Read a JSON array of objects."""
    with open(path, "r", encoding="utf-8") as f:
        docs = json.load(f)
    if not isinstance(docs, list):
        raise ValueError(f"{path}: expected a JSON array of objects")
    return docs
