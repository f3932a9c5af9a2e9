"""
Data model
==========

Every raw row is converted into one immutable record (`frozen=True`):
- records cannot be modified after loading, and
- filters only *select* records, they never edit them.

Only `FilterState` changes during a session, and it is replaced as a whole
rather than mutated in place.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, FrozenSet, Mapping, Optional, Tuple, Union

from .errors import InvalidRangeError

# Fire categories known to the dashboard. Advisory only: it seeds the default
# category filter and the color palette, unknown labels are still accepted.
FIRE_TYPES: Tuple[str, ...] = (
    '办公场所',
    '厂房',
    '学校',
    '居住场所',
    '其他',
    '商业场所',
    '公共娱乐场所',
    '纯餐饮场所',
    '石油化工企业',
    '轿车',
    '物资仓储场所',
    '工地',
    '宾馆、饭店、招待所',
    '通信场所',
    '货车',
    '汽车库',
    '垃圾堆',
    '交通枢纽（站）',
    '客车',
    '公园',
    '露天农副业场所',
    '加油加气站充电站',
    '宗教场所',
    '金融交易场所',
    '医疗机构',
    '养老院',
    '露天堆垛',
    '室外集贸市场',
    '科研试验场所',
    '室内农副业场所',
    '特种车',
    '城市轨道交通工具',
    '体育场馆',
    '文物古建筑',
    '会议、展览中心',
    '船舶',
    '道路绿化带、隔离带',
    '室外独立生产设施设备',
    '电动助力车（三轮车、自行车）',
    '垃圾箱',
    '森林',
    '废品回收场所',
    '修车库',
    '摩托车',
    '垃圾场',
    '文博馆（图书馆、博物馆、档案馆等）',
)

# Weather columns and whether they hold integer day-counts.
WEATHER_FACTORS: Dict[str, bool] = {
    'T': False,
    'T. max ave.': False,
    'T. min ave.': False,
    'T. max abs.': False,
    'T. min abs.': False,
    'Prec.(mm)': False,
    'Days(1mm)': True,
    'Days(0.1mm)': True,
    'Days(snow)': True,
    'Days(storm)': True,
    'Days(fog)': True,
    'Days(frost)': True,
}

SOCIO_FACTORS: Tuple[str, ...] = (
    'population_density',
    'mean_registered_capital',
    'enterprise_count',
)

# Column order used for incident-level factor columns.
FACTOR_NAMES: Tuple[str, ...] = SOCIO_FACTORS + tuple(WEATHER_FACTORS)

DEFAULT_START = datetime(2007, 1, 1)
DEFAULT_END = datetime(2021, 1, 1)

Number = Union[int, float]
SocioValue = Union[float, Tuple[float, ...]]


@dataclass(frozen=True)
class IncidentRecord:
    """One fire-response row: one responding unit for one event."""
    id: int
    fire_code: int
    fire_time: datetime
    fire_type: str
    station_code: str
    battle_type: str
    fire_lat: float
    fire_lng: float
    station_lat: float
    station_lng: float
    station_build_time: datetime


@dataclass(frozen=True)
class WeatherRecord:
    """Climate factors for one period (typically a month)."""
    time: datetime
    values: Mapping[str, Number] = field(hash=False)

    def factor_items(self) -> Mapping[str, Number]:
        return self.values


@dataclass(frozen=True)
class SocioEconomicRecord:
    """Socio-economic indicators for one period.

    A value is either a scalar or a tuple of sub-region samples; sample order
    is the order of the source document.
    """
    time: datetime
    values: Mapping[str, SocioValue] = field(hash=False)

    def factor_items(self) -> Mapping[str, SocioValue]:
        return self.values


@dataclass(frozen=True)
class JoinedIncidentFactors:
    """An incident plus the factor snapshot in effect at its `fire_time`."""
    incident: IncidentRecord
    factors: Mapping[str, Optional[float]] = field(hash=False)

    def factor_items(self) -> Mapping[str, Optional[float]]:
        return self.factors


@dataclass(frozen=True)
class FilterState:
    """Inclusive time range plus active category set."""
    start: datetime = DEFAULT_START
    end: datetime = DEFAULT_END
    categories: FrozenSet[str] = frozenset(FIRE_TYPES)

    def __post_init__(self) -> None:
        if self.start > self.end:
            raise InvalidRangeError(self.start, self.end)

    def in_range(self, t: datetime) -> bool:
        return self.start <= t <= self.end

    def matches(self, incident: IncidentRecord) -> bool:
        return self.in_range(incident.fire_time) and incident.fire_type in self.categories

    @property
    def time_range(self) -> Tuple[datetime, datetime]:
        return (self.start, self.end)


@dataclass(frozen=True)
class DerivedLocation:
    fire_code: int
    fire_lat: float
    fire_lng: float
    station_code: str
    battle_type: str
    fire_type: str

    @classmethod
    def from_incident(cls, e: IncidentRecord) -> "DerivedLocation":
        return cls(
            fire_code=e.fire_code, fire_lat=e.fire_lat, fire_lng=e.fire_lng,
            station_code=e.station_code, battle_type=e.battle_type, fire_type=e.fire_type,
        )


@dataclass(frozen=True)
class DerivedStation:
    station_code: str
    station_lat: float
    station_lng: float
    task_count: int = 0


def record_to_dict(obj: Any) -> Dict[str, Any]:
    """Flatten a record into JSON-friendly primitives (datetimes as ISO text)."""
    if isinstance(obj, JoinedIncidentFactors):
        out = record_to_dict(obj.incident)
        out.update(obj.factors)
        return out
    if isinstance(obj, (WeatherRecord, SocioEconomicRecord)):
        out = {"time": obj.time.isoformat(sep=" ")}
        for k, v in obj.values.items():
            out[k] = list(v) if isinstance(v, tuple) else v
        return out
    out = {}
    for k, v in vars(obj).items():
        out[k] = v.isoformat(sep=" ") if isinstance(v, datetime) else v
    return out
