"""
FIRA Command Line Interface (CLI)
=================================

Interactive terminal program over one session:

    python -m fira.cli --fires fire_info.csv --weather weather_info.csv --socio other_info.json

The CLI loads the three files once, then lets you move the time range and
category filter and print any derived view. It never writes to the input
files; `export` writes the current selection to a new JSON file.
"""

from __future__ import annotations
import argparse, shlex
import logging

from .config import PipelineConfig
from .loader import parse_datetime
from .logging_setup import configure_logging
from .models import FIRE_TYPES
from .palette import category_color
from .session import Session

logger = logging.getLogger(__name__)

HELP = """
Commands:
  help
  stats

  range "<start>" "<end>"              (example: range 2010-01-01 "2010-12-31 23:59:59")
  types all | none
  types "<type>" ["<type>" ...]        (example: types 森林 厂房)
  highlight "<type>" | highlight off

  show [n]                             filtered incidents
  locations [n]                        unique fire locations
  stations [n]                         unique stations with task counts
  categories                           incidents per category
  timeline [freq]                      incidents per period (default MS = month)

  factors                              per-period factor columns in the time range
  linked                               per-incident factor columns
  corr [pearson|spearman|kendall]      correlation of per-incident factors

  export "<out.json>"                  filtered incidents as JSON
  quit
"""


def main(argv=None):
    """Entry point for the FIRA CLI.

    1) Build config (defaults <- FIRA_* env <- flags)
    2) Load the three data files into a session
    3) Start an interactive REPL
    """
    ap = argparse.ArgumentParser(prog="fira")
    ap.add_argument("--fires", help="Incident CSV (fire_info.csv)")
    ap.add_argument("--weather", help="Weather CSV (weather_info.csv)")
    ap.add_argument("--socio", help="Socio-economic JSON (other_info.json)")
    ap.add_argument("--start", help="Initial range start")
    ap.add_argument("--end", help="Initial range end")
    ap.add_argument("--lenient", action="store_true", default=None,
                    help="Skip malformed incident rows (they are listed) instead of failing")
    ap.add_argument("--log-level", help="DEBUG, INFO, WARNING, ...")
    args = ap.parse_args(argv)

    cfg = PipelineConfig().with_overrides(
        fires_path=args.fires, weather_path=args.weather, socio_path=args.socio,
        start=parse_datetime(args.start, "--start") if args.start else None,
        end=parse_datetime(args.end, "--end") if args.end else None,
        lenient=args.lenient, log_level=args.log_level,
    )
    configure_logging(cfg.log_level)

    session = Session(cfg)
    skipped = session.load_files()
    for s in skipped:
        print(f"Skipped row {s.index}: {s.error}")

    print(f"Loaded {len(session.incidents.incidents)} incidents. Type 'help' for commands.")
    while True:
        try:
            line = input("fira> ")
        except EOFError:
            break
        if not line.strip():
            continue
        if line.strip().lower() in ("quit", "exit"):
            break
        try:
            handle(session, line)
        except Exception as e:
            logger.debug("Command failed: %s", line, exc_info=True)
            print(f"Error: {e}")


def handle(session: Session, line: str) -> None:
    """Handle one CLI command line."""
    store = session.incidents
    parts = shlex.split(line)
    cmd = parts[0].lower()

    if cmd == "help":
        print(HELP)
        return

    if cmd == "stats":
        for k, v in session.summary().items():
            print(f"{k}: {v}")
        return

    if cmd == "range":
        if len(parts) != 3:
            raise ValueError('usage: range "<start>" "<end>"')
        store.set_time_range(parts[1], parts[2])
        print(f"Range {store.time_range[0]} .. {store.time_range[1]}. Size={len(store.filtered_incidents())}")
        return

    if cmd == "types":
        if len(parts) < 2:
            raise ValueError('usage: types all | none | "<type>" ...')
        if parts[1].lower() == "all":
            store.set_active_categories(FIRE_TYPES)
        elif parts[1].lower() == "none":
            store.set_active_categories([])
        else:
            store.set_active_categories(parts[1:])
        print(f"{len(store.active_categories)} active types. Size={len(store.filtered_incidents())}")
        return

    if cmd == "highlight":
        store.highlighted_type = None if len(parts) < 2 or parts[1].lower() == "off" else parts[1]
        if store.highlighted_type:
            print(f"Highlighting {store.highlighted_type} ({category_color(store.highlighted_type)})")
        else:
            print("Highlight cleared.")
        return

    n = int(parts[1]) if len(parts) >= 2 and parts[1].isdigit() else 10

    if cmd == "show":
        rows = store.filtered_incidents()
        for e in rows[:n]:
            print(f"[{e.id}] {e.fire_time} | {e.fire_type} | fire_code={e.fire_code} station={e.station_code} ({e.battle_type})")
        print(f"({len(rows)} total)")
        return

    if cmd == "locations":
        locs = store.unique_locations()
        for l in locs[:n]:
            print(f"{l.fire_code} | {l.fire_type} | {l.fire_lat:.5f},{l.fire_lng:.5f} | station={l.station_code}")
        print(f"({len(locs)} locations)")
        return

    if cmd == "stations":
        stations = sorted(store.unique_stations(), key=lambda s: s.task_count, reverse=True)
        for s in stations[:n]:
            print(f"{s.station_code} | {s.station_lat:.5f},{s.station_lng:.5f} | tasks={s.task_count}")
        print(f"({len(stations)} stations)")
        return

    if cmd == "categories":
        for name, count in store.category_counts():
            print(f"{count:6d}  {name}  {category_color(name)}")
        return

    if cmd == "timeline":
        freq = parts[1] if len(parts) >= 2 else "MS"
        for ts, count in store.timeline_counts(freq):
            print(f"{ts:%Y-%m-%d}  {count}")
        return

    if cmd in ("factors", "linked"):
        cols = session.aggregator.filtered_factor_columns() if cmd == "factors" else session.aggregator.incident_factor_columns()
        for name, values in cols.items():
            shown = ", ".join("-" if v is None else f"{v:g}" for v in values[:8])
            more = " ..." if len(values) > 8 else ""
            print(f"{name:>24}: [{shown}{more}] ({len(values)})")
        return

    if cmd == "corr":
        method = parts[1].lower() if len(parts) >= 2 else "pearson"
        print(session.aggregator.incident_correlation(method=method).round(3).to_string())
        return

    if cmd == "export":
        if len(parts) < 2:
            print('Usage: export "out.json"')
            return
        count = store.export_json(parts[1])
        print(f"Exported {count} incidents to {parts[1]}")
        return

    print("Unknown command. Type 'help'.")


if __name__ == "__main__":
    main()
