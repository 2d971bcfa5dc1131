"""Command-line interface for trip_analyze.

Run:
    python -m trip_analyze track --csv samples.csv --category LOCAL
    python -m trip_analyze predict
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from dataclasses import asdict
from enum import Enum
from typing import Any

from trip_analyze.aggregator import TrackingParams
from trip_analyze.analysis import AnalysisParams
from trip_analyze.csv_io import load_position_samples
from trip_analyze.errors import AlreadyActiveError, AnalysisError
from trip_analyze.models import DEFAULT_TZ, NOISE_THRESHOLD_M, Trip, TripCategory
from trip_analyze.prediction import PredictionResult, PredictionService
from trip_analyze.repository import JsonTripStore
from trip_analyze.stats import summarize_trips
from trip_analyze.timeutils import ManualClock, dt_from_epoch_ms, epoch_ms_from_dt, format_hhmmss, parse_dt
from trip_analyze.tracker import TripTracker

logger = logging.getLogger(__name__)


def _fmt_time(epoch_ms: int | None, tz_name: str) -> str:
    if epoch_ms is None:
        return "in progress"
    return dt_from_epoch_ms(epoch_ms, tz_name).isoformat(sep=" ", timespec="minutes")


def _trip_row(trip: Trip, tz_name: str) -> str:
    duration = trip.duration_seconds
    return (
        f"#{trip.trip_id} {trip.category.value:<9} start={_fmt_time(trip.start_ms, tz_name)} "
        f"end={_fmt_time(trip.end_ms, tz_name)} distance={trip.distance_km:.2f}km "
        f"duration={format_hhmmss(duration) if duration is not None else 'N/A'} "
        f"destination={trip.destination!r}"
    )


def _jsonable(obj: Any) -> Any:
    if isinstance(obj, dict):
        return {(k.name if isinstance(k, Enum) else k): _jsonable(v) for k, v in obj.items()}
    if isinstance(obj, (list, tuple)):
        return [_jsonable(v) for v in obj]
    if isinstance(obj, Enum):
        return obj.name
    return obj


def prediction_to_dict(result: PredictionResult) -> dict[str, Any]:
    """Plain-JSON view of a prediction result (enums by name)."""

    return _jsonable(asdict(result))


def _cmd_track(args: argparse.Namespace) -> int:
    samples, summary = load_position_samples(args.csv)
    if not samples:
        print(f"no usable samples in {args.csv} (rows={summary.rows_total})", file=sys.stderr)
        return 1

    store = JsonTripStore(args.store)
    # pinned to sample time so the trip keeps its recorded start/end
    clock = ManualClock(samples[0].timestamp_ms)
    tracker = TripTracker.from_repository(
        store,
        params=TrackingParams(noise_threshold_m=args.noise_threshold_m),
        clock=clock,
    )
    try:
        tracker.start(args.category, destination=args.destination, notes=args.notes)
    except AlreadyActiveError as exc:
        print(f"{exc}; stop it first", file=sys.stderr)
        return 1

    tracker.replay(samples)
    clock.value_ms = samples[-1].timestamp_ms
    trip = tracker.stop()
    points = store.list_points_for_trip(trip.trip_id)
    c = tracker.counters

    print(_trip_row(trip, args.tz))
    print(
        f"samples={summary.rows_parsed} skipped_rows={summary.rows_skipped} accepted={c.accepted} "
        f"jitter={c.rejected} invalid={c.invalid} points={len(points)}"
    )
    return 0


def _cmd_predict(args: argparse.Namespace) -> int:
    store = JsonTripStore(args.store)
    params = AnalysisParams(window_months=args.window_months, tz_name=args.tz)
    if args.now:
        now_ms = epoch_ms_from_dt(parse_dt(args.now, args.tz))
        service = PredictionService.from_repository(store, params=params, clock=ManualClock(now_ms))
    else:
        service = PredictionService.from_repository(store, params=params)

    try:
        result = service.generate_complete_prediction()
    except AnalysisError as exc:
        logger.error("prediction failed: %s", exc, exc_info=exc.__cause__)
        print(f"prediction failed: {exc}", file=sys.stderr)
        return 2

    if args.json:
        print(json.dumps(prediction_to_dict(result), ensure_ascii=False, indent=2))
        return 0

    a = result.historical_analysis
    f = result.forecast
    print(f"### Last {args.window_months} months")
    print(
        f"trips={a.total_trips}, distance={a.total_distance_km:.2f}km, "
        f"avg_trips/month={a.avg_trips_per_period:.2f}, avg_distance/month={a.avg_distance_per_period:.2f}km"
    )
    by_cat = ", ".join(f"{c.value}={a.trips_by_category.get(c, 0)}" for c in TripCategory)
    print(f"by_category: {by_cat}")
    print(f"trend={a.trend.value}, data_quality={a.data_quality.value}")
    print()

    print("### Next month")
    print(f"trips={f.predicted_trips}, distance={f.predicted_distance_km:.2f}km, confidence={f.confidence:.0%}")
    print(f.message)
    print()

    print("### Recommendations")
    for r in result.recommendations:
        print(f"[{r.priority.name}] {r.title}: {r.description}")
    return 0


def _cmd_stats(args: argparse.Namespace) -> int:
    store = JsonTripStore(args.store)
    st = summarize_trips(store.list_trips())

    if args.json:
        print(json.dumps(_jsonable(asdict(st)), ensure_ascii=False, indent=2))
        return 0

    print(f"trips={st.total_trips} (completed={st.completed_trips}, active={st.active_trips})")
    print(f"distance={st.total_distance_km:.1f}km, avg={st.avg_distance_km:.2f}km/trip")
    for category, cs in st.by_category.items():
        print(f"  {category.value:<9} trips={cs.trips} distance={cs.distance_km:.1f}km")
    if st.longest_by_distance is not None:
        print(f"longest (distance): {_trip_row(st.longest_by_distance, args.tz)}")
    if st.longest_by_duration is not None:
        print(f"longest (duration): {_trip_row(st.longest_by_duration, args.tz)}")
    return 0


def _cmd_trips(args: argparse.Namespace) -> int:
    store = JsonTripStore(args.store)
    trips = store.list_trips()
    if not trips:
        print("no trips recorded")
        return 0
    for trip in trips:
        print(_trip_row(trip, args.tz))
    return 0


def build_parser() -> argparse.ArgumentParser:
    """Build CLI parser."""

    p = argparse.ArgumentParser(prog="trip_analyze")
    p.add_argument(
        "--log-level",
        type=str,
        default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level",
    )
    sub = p.add_subparsers(dest="cmd", required=True)

    common = argparse.ArgumentParser(add_help=False)
    common.add_argument("--store", type=str, default="trips.json", help="Trip store (JSON file)")
    common.add_argument("--tz", type=str, default=DEFAULT_TZ, help="Timezone (IANA)")

    p_track = sub.add_parser("track", parents=[common], help="Replay a samples CSV as one trip")
    p_track.add_argument("--csv", type=str, required=True, help="Input CSV (geoTime, latitude, longitude, ...)")
    p_track.add_argument(
        "--category",
        type=str,
        default=TripCategory.LOCAL.value,
        choices=[c.value for c in TripCategory],
        help="Trip category",
    )
    p_track.add_argument("--destination", type=str, default="", help="Destination label")
    p_track.add_argument("--notes", type=str, default="", help="Free-text notes")
    p_track.add_argument(
        "--noise-threshold-m",
        type=float,
        default=NOISE_THRESHOLD_M,
        help="Minimum displacement (meters) counted as movement",
    )
    p_track.set_defaults(func=_cmd_track)

    p_pred = sub.add_parser("predict", parents=[common], help="Historical analysis, forecast and recommendations")
    p_pred.add_argument("--window-months", type=int, default=3, help="Look-back window in months")
    p_pred.add_argument("--now", type=str, default=None, help="Analyze as of this time (e.g. 2025-12-01 00:00:00)")
    p_pred.add_argument("--json", action="store_true", help="Print JSON")
    p_pred.set_defaults(func=_cmd_predict)

    p_stats = sub.add_parser("stats", parents=[common], help="Statistics over all stored trips")
    p_stats.add_argument("--json", action="store_true", help="Print JSON")
    p_stats.set_defaults(func=_cmd_stats)

    p_trips = sub.add_parser("trips", parents=[common], help="List stored trips")
    p_trips.set_defaults(func=_cmd_trips)

    return p


def main(argv: list[str] | None = None) -> int:
    """CLI entrypoint."""

    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(level=getattr(logging, args.log_level), format="%(levelname)s %(name)s: %(message)s")
    return int(args.func(args))


if __name__ == "__main__":
    raise SystemExit(main())
