"""
racenav CLI entrypoint.

Quick local checks without a Signal K server:
- `distance` / `segment`: one-off geodesic queries
- `courses`: show the courses resolved from settings
- `replay`: drive a full race from a recorded CSV track (timestamps are the clock)
"""

from __future__ import annotations

import argparse
import csv
import json
from typing import Any

from racenav.config.settings import get_settings
from racenav.core.angles import deg_to_rad, rad_to_deg
from racenav.core.geo import GeoPoint, Solution
from racenav.core.env import resolve_project_path
from racenav.core.logging import configure_logging
from racenav.core.models import get_distance_model
from racenav.core.segment import distance_to_segment
from racenav.core.time import epoch_ms, parse_datetime
from racenav.core.vincenty import ConvergenceFailure
from racenav.courses.loader import load_courses
from racenav.host.signalk import RacingCalculator

_METRICS = ["haversine", "wsg84"]
_TRACK_COLUMNS = ["timestamp_ms", "latitude", "longitude", "cog_deg", "sog"]


def _point(values: list[float]) -> GeoPoint:
    lat, lon = values
    return GeoPoint.from_lat_lon(lat, lon)


def _solution_payload(solution: Solution) -> dict[str, float]:
    return {
        "distance_m": solution.distance,
        "initial_bearing_deg": rad_to_deg(solution.initial_bearing),
        "final_bearing_deg": rad_to_deg(solution.final_bearing),
    }


def _print_solution(solution: Solution, *, as_json: bool) -> None:
    payload = _solution_payload(solution)
    if as_json:
        print(json.dumps(payload, indent=2))
        return
    print(f"distance: {payload['distance_m']:.3f} m")
    print(f"initial bearing: {payload['initial_bearing_deg']:.3f} deg")
    print(f"final bearing: {payload['final_bearing_deg']:.3f} deg")


def _cmd_distance(args: argparse.Namespace) -> int:
    model = get_distance_model(args.metric or get_settings().race.distance_metric)
    try:
        solution = model.distance(_point(args.from_point), _point(args.to_point))
    except ConvergenceFailure as e:
        print(f"error: {e}")
        return 2
    _print_solution(solution, as_json=bool(args.json))
    return 0


def _cmd_segment(args: argparse.Namespace) -> int:
    model = get_distance_model(args.metric or get_settings().race.distance_metric)
    try:
        solution = distance_to_segment(_point(args.point), _point(args.a), _point(args.b), model)
    except ConvergenceFailure as e:
        print(f"error: {e}")
        return 2
    _print_solution(solution, as_json=bool(args.json))
    return 0


def _cmd_courses(args: argparse.Namespace) -> int:
    courses = load_courses(get_settings())
    if args.json:
        print(json.dumps({name: c.model_dump(mode="json") for name, c in courses.items()}, indent=2))
        return 0
    if not courses:
        print("No race courses configured.")
        return 0
    for course in courses.values():
        print(f"{course.name} (bearing {rad_to_deg(course.bearing):.0f} deg)")
        for i, leg in enumerate(course.legs, start=1):
            p = leg.waypoint_mark_point
            print(f"  {i}. {leg.waypoint_mark_name:<12} {leg.direction:<8} ({p.lat:.5f}, {p.lon:.5f})")
    return 0


def _optional_float(row: dict[str, str], key: str) -> float | None:
    raw = (row.get(key) or "").strip()
    return float(raw) if raw else None


def _read_track(path: str) -> list[dict[str, str]]:
    with resolve_project_path(path).open(newline="", encoding="utf-8") as f:
        reader = csv.DictReader(f)
        missing = [c for c in _TRACK_COLUMNS if c not in (reader.fieldnames or [])]
        if missing:
            raise ValueError(f"Track {path} is missing columns: {', '.join(missing)}")
        return list(reader)


def _cmd_replay(args: argparse.Namespace) -> int:
    settings = get_settings()
    rows = _read_track(args.track)
    if not rows:
        print("Track is empty.")
        return 1

    clock_now = {"ms": float(rows[0]["timestamp_ms"])}
    calc = RacingCalculator(
        settings,
        publish=lambda _context, _delta: None,
        clock=lambda: clock_now["ms"],
    )

    setup: list[tuple[str, Any, GeoPoint | None]] = [("racing.selectRaceCourse", args.course, None)]
    if args.boat_end:
        setup.append(("racing.pingBoat", None, _point(args.boat_end)))
    if args.pin_end:
        setup.append(("racing.pingPin", None, _point(args.pin_end)))
    if args.start_at:
        start_ms = epoch_ms(parse_datetime(args.start_at, settings.app.timezone))
        setup.append(("racing.startCountdown", (start_ms - clock_now["ms"]) / 1000, None))
    elif args.start_in is not None:
        setup.append(("racing.startCountdown", args.start_in, None))

    for path, value, position in setup:
        result = calc.handle_put(path, value, position)
        if not result.ok:
            print(f"error: {path}: {result.message}")
            return 1

    for row in rows:
        clock_now["ms"] = float(row["timestamp_ms"])
        cog_deg = _optional_float(row, "cog_deg")
        lat = _optional_float(row, "latitude")
        lon = _optional_float(row, "longitude")
        position = GeoPoint.from_lat_lon(lat, lon) if lat is not None and lon is not None else None
        delta = calc.tick(
            position=position,
            cog=deg_to_rad(cog_deg) if cog_deg is not None else None,
            sog=_optional_float(row, "sog"),
        )
        values = {v["path"].rsplit(".", 1)[-1]: v["value"] for v in delta["updates"][0]["values"]}
        print(json.dumps({"timestamp_ms": clock_now["ms"], **values}))

    state = calc.machine.state
    leg = state.current_leg
    summary = {"status": state.status.value, "leg": state.current_leg_index, "mark": leg.waypoint_mark_name if leg else None}
    print(json.dumps({"summary": summary}))
    return 0


def _lat_lon_arg(parser: argparse.ArgumentParser, flag: str, *, dest: str, required: bool) -> None:
    parser.add_argument(flag, dest=dest, nargs=2, type=float, metavar=("LAT", "LON"), required=required)


def build_parser() -> argparse.ArgumentParser:
    """Build the argparse parser for the racenav CLI."""
    parser = argparse.ArgumentParser(prog="racenav")
    parser.add_argument("--log-level", default=None, help="Overrides app.log_level (e.g. DEBUG)")
    sub = parser.add_subparsers(dest="command", required=True)

    dist = sub.add_parser("distance", help="Distance and bearings between two points.")
    _lat_lon_arg(dist, "--from", dest="from_point", required=True)
    _lat_lon_arg(dist, "--to", dest="to_point", required=True)
    dist.add_argument("--metric", choices=_METRICS, default=None, help="Defaults to race.distance_metric")
    dist.add_argument("--json", action="store_true", help="Output machine-readable JSON")
    dist.set_defaults(func=_cmd_distance)

    seg = sub.add_parser("segment", help="Distance from a point to a short segment (e.g. a start line).")
    _lat_lon_arg(seg, "--point", dest="point", required=True)
    _lat_lon_arg(seg, "--a", dest="a", required=True)
    _lat_lon_arg(seg, "--b", dest="b", required=True)
    seg.add_argument("--metric", choices=_METRICS, default=None)
    seg.add_argument("--json", action="store_true")
    seg.set_defaults(func=_cmd_segment)

    crs = sub.add_parser("courses", help="List race courses resolved from settings.")
    crs.add_argument("--json", action="store_true")
    crs.set_defaults(func=_cmd_courses)

    rep = sub.add_parser("replay", help="Replay a CSV track (timestamp_ms,latitude,longitude,cog_deg,sog).")
    rep.add_argument("track")
    rep.add_argument("--course", required=True)
    start = rep.add_mutually_exclusive_group()
    start.add_argument("--start-in", type=float, default=None, help="Seconds after the first fix")
    start.add_argument("--start-at", type=str, default=None, help="ISO datetime of the gun")
    _lat_lon_arg(rep, "--boat-end", dest="boat_end", required=False)
    _lat_lon_arg(rep, "--pin-end", dest="pin_end", required=False)
    rep.set_defaults(func=_cmd_replay)
    return parser


def main(argv: list[str] | None = None) -> int:
    """CLI entrypoint callable used by `python -m racenav.cli`."""
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging(args.log_level)
    func: Any = getattr(args, "func")
    return int(func(args))


if __name__ == "__main__":
    raise SystemExit(main())
