from datetime import datetime
import asyncio
import json

import pytest

from fira.errors import InvalidRangeError, ParseError
from fira.incident_store import IncidentStore
from fira.models import FIRE_TYPES, FilterState

T1 = "2015-01-01 00:00:00"
T2 = "2015-02-01 00:00:00"
T3 = "2015-03-01 00:00:00"


@pytest.fixture
def store(fire_rows):
    s = IncidentStore()
    s.load(fire_rows)
    return s


def _assert_subsequence(sub, full):
    it = iter(full)
    assert all(any(x is y for y in it) for x in sub)


def test_load_sorts_by_time_and_keeps_ties_in_row_order(store):
    assert [e.id for e in store.incidents] == [2, 3, 4, 1, 5]


def test_load_round_trip_count(fire_rows, store):
    assert len(store.incidents) == len(fire_rows)


def test_failed_load_keeps_previous_state(store, make_fire_row):
    before = store.incidents
    with pytest.raises(ParseError):
        store.load([make_fire_row(9, "2012-01-01"), make_fire_row(10, "2012-01-02", fire_lat="abc")])
    assert store.incidents is before


def test_lenient_load_returns_skipped(make_fire_row):
    s = IncidentStore()
    skipped = s.load([make_fire_row(1, "2012-01-01"), make_fire_row(2, "")], lenient=True)
    assert len(s.incidents) == 1
    assert [sk.index for sk in skipped] == [1]


def test_empty_store_has_empty_views():
    s = IncidentStore()
    assert s.filtered_incidents() == []
    assert s.category_filtered_incidents() == []
    assert s.unique_locations() == []
    assert s.unique_stations() == []
    assert s.category_counts() == []
    assert s.timeline_counts() == []


def test_default_filter_covers_2007_to_2021_and_all_types():
    fs = IncidentStore().filter_state
    assert fs.start == datetime(2007, 1, 1)
    assert fs.end == datetime(2021, 1, 1)
    assert fs.categories == frozenset(FIRE_TYPES)


def test_scenario_range_and_category(make_fire_row):
    s = IncidentStore()
    s.load([
        make_fire_row(1, T1, "A", station_code="S1"),
        make_fire_row(2, T2, "B", station_code="S1"),
        make_fire_row(3, T3, "A", station_code="S2"),
    ])
    s.set_time_range(T1, T2)
    s.set_active_categories({"A"})
    assert [e.id for e in s.filtered_incidents()] == [1]
    assert len(s.unique_locations()) == 1
    assert s.unique_stations()[0].task_count == 1


def test_station_counts_cover_filtered_incidents_only(make_fire_row):
    s = IncidentStore()
    s.load([
        make_fire_row(1, T1, "A", station_code="S1"),
        make_fire_row(2, T2, "A", station_code="S1"),
        make_fire_row(3, T3, "B", station_code="S2"),
    ])
    s.set_time_range(T1, T3)
    s.set_active_categories({"A"})
    stations = s.unique_stations()
    assert [(st.station_code, st.task_count) for st in stations] == [("S1", 2)]


def test_task_counts_sum_to_filtered_size(store):
    store.set_time_range("2010-01-01", "2012-01-01")
    total = sum(st.task_count for st in store.unique_stations())
    assert total == len(store.filtered_incidents())


def test_unique_locations_dedupes_fire_code(store):
    store.set_time_range("2010-01-01", "2012-01-01")
    locs = store.unique_locations()
    codes = [l.fire_code for l in locs]
    assert len(codes) == len(set(codes))
    assert len(locs) <= len(store.filtered_incidents())
    shared = [l for l in locs if l.fire_code == 77]
    assert shared[0].station_code == "S1"


def test_single_instant_range_is_inclusive(store):
    store.set_time_range("2010-02-01 00:00:00", "2010-02-01 00:00:00")
    assert [e.id for e in store.filtered_incidents()] == [3, 4]


def test_invalid_range_keeps_previous_filter(store):
    store.set_time_range("2010-01-01", "2010-06-01")
    before = store.filter_state
    with pytest.raises(InvalidRangeError):
        store.set_time_range("2011-01-01", "2010-01-01")
    assert store.filter_state is before


def test_filter_changes_are_seen_on_next_read(store):
    store.set_time_range("2010-01-01", "2012-01-01")
    assert len(store.filtered_incidents()) == 5
    store.set_active_categories({"森林"})
    assert [e.id for e in store.filtered_incidents()] == [3, 4, 1]
    store.set_time_range("2010-02-15", "2012-01-01")
    assert [e.id for e in store.filtered_incidents()] == [1]


@pytest.mark.parametrize("categories", [set(), {"森林"}, {"厂房", "学校"}, set(FIRE_TYPES), {"not-a-type"}])
def test_filtered_is_ordered_subsequence_matching_predicate(store, categories):
    store.set_time_range("2010-01-20", "2011-12-31")
    store.set_active_categories(categories)
    out = store.filtered_incidents()
    _assert_subsequence(out, store.incidents)
    fs = store.filter_state
    assert all(fs.matches(e) for e in out)
    assert len(out) == sum(1 for e in store.incidents if fs.matches(e))


def test_unknown_category_is_accepted(make_fire_row):
    s = IncidentStore()
    s.load([make_fire_row(1, "2012-01-01", "无人机")])
    s.set_active_categories({"无人机"})
    assert len(s.filtered_incidents()) == 1


def test_category_filter_ignores_time(store):
    store.set_time_range("2010-01-01", "2010-01-31")
    store.set_active_categories({"学校", "厂房"})
    assert [e.id for e in store.filtered_incidents()] == [2]
    assert [e.id for e in store.category_filtered_incidents()] == [2, 5]


def test_category_counts_and_timeline(store):
    store.set_time_range("2010-01-01", "2010-12-31")
    assert store.category_counts() == [("森林", 3), ("厂房", 1)]
    timeline = store.timeline_counts()
    assert timeline == [(datetime(2010, 1, 1), 1), (datetime(2010, 2, 1), 2), (datetime(2010, 3, 1), 1)]


def test_highlight_does_not_affect_views(store):
    before = store.filtered_incidents()
    store.highlighted_type = "森林"
    assert store.filtered_incidents() == before


def test_export_json(store, tmp_path):
    store.set_time_range("2010-01-01", "2010-01-31")
    p = tmp_path / "out.json"
    assert store.export_json(str(p)) == 1
    data = json.loads(p.read_text(encoding="utf-8"))
    assert data[0]["id"] == 2
    assert data[0]["fire_time"] == "2010-01-15 12:00:00"


def test_concurrent_async_loads_are_queued(make_fire_row):
    s = IncidentStore()
    order = []

    def fetcher(tag, rows, delay):
        async def fetch():
            order.append(f"start {tag}")
            await asyncio.sleep(delay)
            order.append(f"end {tag}")
            return rows
        return fetch

    first = [make_fire_row(i, "2012-01-01") for i in range(3)]
    second = [make_fire_row(10, "2013-01-01")]

    async def run():
        await asyncio.gather(
            s.load_async(fetcher("a", first, 0.02)),
            s.load_async(fetcher("b", second, 0.0)),
        )

    asyncio.run(run())
    assert order == ["start a", "end a", "start b", "end b"]
    assert [e.id for e in s.incidents] == [10]


def test_filter_state_rejects_inverted_range():
    with pytest.raises(InvalidRangeError):
        FilterState(start=datetime(2020, 1, 1), end=datetime(2019, 1, 1))


def test_single_string_category_is_rejected(store):
    before = store.filter_state
    with pytest.raises(TypeError):
        store.set_active_categories("森林")
    assert store.filter_state is before
