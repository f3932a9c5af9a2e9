from datetime import datetime

import pytest

from fira.errors import ParseError
from fira.incident_store import IncidentStore
from fira.loader import normalize_incident_rows
from fira.models import FilterState
from fira.series_store import SeriesStore

RANGE_2010 = (datetime(2010, 1, 1), datetime(2010, 12, 31))


@pytest.fixture
def series(weather_rows, socio_docs):
    s = SeriesStore()
    s.load(weather_rows, socio_docs)
    return s


def test_columns_follow_time_order(series):
    cols = series.filtered_factor_columns(RANGE_2010)
    assert cols["T"] == [5.0, 7.0, 12.0]
    assert cols["Days(snow)"] == [3, 3, 3]


def test_range_is_inclusive(series):
    cols = series.filtered_factor_columns((datetime(2010, 2, 1), datetime(2010, 3, 1)))
    assert cols["T"] == [7.0, 12.0]


def test_socio_arrays_are_flattened(series):
    cols = series.filtered_factor_columns(RANGE_2010)
    assert cols["population_density"] == [100.0, 200.0, 300.0]
    assert cols["enterprise_count"] == [10.0, 30.0, 40.0]
    assert cols["mean_registered_capital"] == [5.5, 6.5]


def test_socio_column_wins_name_collision(weather_rows):
    s = SeriesStore()
    s.load(weather_rows, [{"time": "2010-01-01", "population_density": 1.0, "mean_registered_capital": 2.0,
                           "enterprise_count": 3, "T": [99.0, 98.0]}])
    assert s.filtered_factor_columns(RANGE_2010)["T"] == [99.0, 98.0]


def test_filtered_columns_are_idempotent(series):
    assert series.filtered_factor_columns(RANGE_2010) == series.filtered_factor_columns(RANGE_2010)


def test_range_can_come_from_incident_store(series):
    store = IncidentStore()
    store.set_time_range("2010-03-01", "2010-12-31")
    assert series.filtered_factor_columns(store)["T"] == [12.0]
    assert series.filtered_factor_columns(FilterState(start=datetime(2010, 1, 1), end=datetime(2010, 1, 1)))["T"] == [5.0]


def test_empty_range_gives_no_columns(series):
    assert series.filtered_factor_columns((datetime(2000, 1, 1), datetime(2000, 2, 1))) == {}


def test_duplicate_weather_period_rejected(weather_rows, make_weather_row, socio_docs, series):
    before = series.weather
    with pytest.raises(ParseError) as exc:
        series.load(weather_rows + [make_weather_row("2010-02-01")], socio_docs)
    assert exc.value.field == "time"
    assert series.weather is before


def test_bad_socio_document_leaves_both_series_unchanged(series, weather_rows):
    before = (series.weather, series.socio)
    with pytest.raises(ParseError):
        series.load(weather_rows, [{"time": "", "population_density": 1.0}])
    assert (series.weather, series.socio) == before


def test_join_uses_enclosing_period(series, make_fire_row):
    incidents = normalize_incident_rows([
        make_fire_row(1, "2010-02-20 10:00:00"),
        make_fire_row(2, "2009-12-31 23:00:00"),
    ])
    joined = series.join_incidents(incidents)
    feb = joined[0].factors
    assert feb["T"] == 7.0
    assert feb["population_density"] == pytest.approx(150.0)
    assert feb["mean_registered_capital"] == 5.5
    before_any = joined[1].factors
    assert before_any["T"] is None
    assert before_any["enterprise_count"] is None


def test_factors_at_period_start(series):
    assert series.factors_at(datetime(2010, 3, 1))["T"] == 12.0


def test_async_load(weather_rows, socio_docs):
    import asyncio

    s = SeriesStore()

    async def weather():
        return weather_rows

    async def socio():
        return socio_docs

    asyncio.run(s.load_async(weather, socio))
    assert len(s.weather) == 3
    assert len(s.socio) == 2
