from __future__ import annotations

import argparse
import logging
import os
import sys
from datetime import datetime
from pathlib import Path
from typing import Dict, List, Optional

import pandas as pd

from .aggregation.summary import ActivityCollection, average_weekly_distance, summarize, weekly_distance
from .aggregation.training_load import analyze
from .io.strava_export import ActivityLoadError, load_export
from .metrics.distribution import calculate_zone_distribution
from .metrics.zones import zone_label
from .models.athlete_profile import load_athlete_profile, save_athlete_profile
from .models.context import AthleteSettings, InvalidSettingError
from .models.types import Activity, IntervalResult, LoadReport
from .recognition.classify import classify_many, training_load_stats
from .recognition.intervals import detect_interval
from .storage.export import export_classifications_csv, export_training_load_csv, export_weekly_distance_csv

logger = logging.getLogger(__name__)

STATUS_MARKERS = {"green": "[GREEN] ", "yellow": "[YELLOW]", "red": "[RED]   "}


def _parse_zones(text: str) -> Dict[str, float]:
    parts = [p.strip() for p in text.split(",") if p.strip()]
    if len(parts) != 4:
        raise argparse.ArgumentTypeError("--zones needs four comma-separated fractions, e.g. 0.75,0.85,0.9,0.95")
    try:
        values = [float(p) for p in parts]
    except ValueError as e:
        raise argparse.ArgumentTypeError(f"--zones: {e}") from e
    return dict(zip(("z2_upper", "z3_upper", "z4_upper", "z5_upper"), values))


def _parse_date(text: str) -> datetime:
    ts = pd.to_datetime(text, errors="coerce")
    if pd.isna(ts):
        raise argparse.ArgumentTypeError(f"Invalid date: {text}")
    if ts.tzinfo is not None:
        ts = ts.tz_convert("UTC").tz_localize(None)
    return ts.to_pydatetime()


def _build_settings(args: argparse.Namespace) -> AthleteSettings:
    settings = load_athlete_profile(Path(args.profile)) if args.profile else AthleteSettings()
    if args.zones:
        settings.set_zones(args.zones)
    if args.max_hr:
        settings.set_max_hr(args.max_hr)
    if args.ftp:
        settings.set_ftp(args.ftp)
    if args.profile:
        save_athlete_profile(Path(args.profile), settings)
    return settings


def _print_report(
    activities: List[Activity],
    settings: AthleteSettings,
    reports: Dict[str, LoadReport],
    intervals: Dict[str, IntervalResult],
    as_of: Optional[datetime],
) -> None:
    context = settings.context()
    summary = summarize(activities, as_of)
    print(f"Activities: {summary['total']} | last 7 days: {summary['last_7_days']['count']} "
          f"({summary['last_7_days']['distance']:.1f} km) | 6-month weekly avg: "
          f"{summary['last_6_months']['avg_weekly']:.1f} km")
    print(f"Max HR {context.max_hr:.0f} bpm, FTP {context.ftp:.0f} W")
    print()
    print("Training load")
    for r in reports.values():
        print(f"  {STATUS_MARKERS.get(r.status, r.status)} {r.metric}: {r.message}")

    dist = calculate_zone_distribution(activities, context)
    print()
    print(f"Zone distribution ({dist.activities_with_detailed} of {dist.activities_analyzed} with HR streams)")
    for zone in range(1, 7):
        key = f"z{zone}"
        print(f"  {zone_label(zone, context.zones, context.max_hr):<32} "
              f"{dist.percentages[key]:5.1f}%  {dist.distances[key]:7.1f} km")

    detected = [r for r in intervals.values() if r.is_interval]
    if detected:
        print()
        print(f"Interval sessions: {len(detected)}")
        for r in detected:
            print(f"  {r.details}")


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Activity Foundation CLI: zone distribution, classification and training load")
    parser.add_argument("export", help="Strava bulk export ZIP or extracted directory")
    parser.add_argument("--max-hr", type=float, help="Max heart rate in bpm (default: from profile or 190)")
    parser.add_argument("--ftp", type=float, help="Functional threshold power in watts")
    parser.add_argument("--zones", type=_parse_zones, help="Zone upper bounds as fractions of max HR: z2,z3,z4,z5")
    parser.add_argument("--sport", default="run", choices=["run", "ride", "swim", "all"], help="Sport to analyze (default: run)")
    parser.add_argument("--as-of", type=_parse_date, help="Analysis date (default: now)")
    parser.add_argument("--profile", help="Athlete directory holding profile.json")
    parser.add_argument("--output", help="Directory for CSV exports")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        settings = _build_settings(args)
    except InvalidSettingError as e:
        parser.error(str(e))

    try:
        collection = ActivityCollection()
        collection.add(load_export(args.export), source="ZIP")
    except ActivityLoadError as e:
        logger.error("%s", e)
        return 1

    sport = None if args.sport == "all" else args.sport
    activities = collection.activities if sport is None else collection.by_sport(sport)
    if not activities:
        print("No activities found.")
        return 0

    context = settings.context()
    reports = analyze(activities, context, as_of=args.as_of, sport=sport)
    intervals = {a.id: detect_interval(a) for a in activities if a.pace_stream is not None}
    _print_report(activities, settings, reports, intervals, args.as_of)

    if args.output:
        os.makedirs(args.output, exist_ok=True)
        pairs = classify_many(activities, context, average_weekly_distance(activities, args.as_of))
        stats = training_load_stats(pairs)
        logger.debug("Category totals: %s", stats)
        export_classifications_csv(pairs, os.path.join(args.output, "classifications.csv"), intervals)
        export_training_load_csv(reports, os.path.join(args.output, "training_load.csv"))
        export_weekly_distance_csv(weekly_distance(activities), os.path.join(args.output, "weekly_distance.csv"))
        print(f"Wrote CSV exports to {args.output}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
