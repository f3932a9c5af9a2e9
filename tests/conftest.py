import pytest

from fira.models import WEATHER_FACTORS


def fire_row(id, fire_time, fire_type="森林", fire_code=None, station_code="S1", **extra):
    row = {
        "id": str(id),
        "fire_code": str(fire_code if fire_code is not None else 1000 + id),
        "fire_time": fire_time,
        "fire_type": fire_type,
        "station_code": station_code,
        "battle_type": "主战",
        "fire_lat": "30.25",
        "fire_lng": "120.16",
        "station_lat": "30.20",
        "station_lng": "120.10",
        "station_build_time": "1998-06-01",
    }
    row.update({k: str(v) for k, v in extra.items()})
    return row


def weather_row(time, T="17.5", **extra):
    row = {name: ("3" if integer else "1.5") for name, integer in WEATHER_FACTORS.items()}
    row["time"] = time
    row["T"] = T
    row.update({k: str(v) for k, v in extra.items()})
    return row


@pytest.fixture
def make_fire_row():
    return fire_row


@pytest.fixture
def make_weather_row():
    return weather_row


@pytest.fixture
def fire_rows():
    # Deliberately unsorted; ids 3 and 4 share a fire_code (two units, one event).
    return [
        fire_row(1, "2010-03-01 08:00:00", "森林", station_code="S1"),
        fire_row(2, "2010-01-15 12:00:00", "厂房", station_code="S2"),
        fire_row(3, "2010-02-01 00:00:00", "森林", fire_code=77, station_code="S1"),
        fire_row(4, "2010-02-01 00:00:00", "森林", fire_code=77, station_code="S3"),
        fire_row(5, "2011-07-04 18:30:00", "学校", station_code="S2"),
    ]


@pytest.fixture
def weather_rows():
    return [
        weather_row("2010-01-01", T="5.0"),
        weather_row("2010-02-01", T="7.0"),
        weather_row("2010-03-01", T="12.0"),
    ]


@pytest.fixture
def socio_docs():
    return [
        {"time": "2010-01-01", "population_density": [100.0, 200.0], "mean_registered_capital": 5.5, "enterprise_count": [10, 30]},
        {"time": "2010-03-01", "population_density": [300.0], "mean_registered_capital": 6.5, "enterprise_count": [40]},
    ]
