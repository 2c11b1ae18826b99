"""
Load a Strava bulk export (the ZIP archive or its extracted directory).

``activities.csv`` supplies the per-activity summaries; ``activities/``
holds the optional ``.tcx(.gz)`` and ``.fit(.gz)`` files whose streams are
attached to the summary with the matching ``Filename``.
"""
from __future__ import annotations

import gzip
import io
import logging
import zipfile
import zlib
from dataclasses import replace
from pathlib import Path, PurePosixPath
from typing import Dict, Iterator, List, Optional, Tuple, Union

import pandas as pd
from fitparse import FitParseError

from ..models.types import Activity
from .fit_loader import load_fit_activity
from .normalize import normalize_activity
from .tcx import TCXParseError, parse_tcx

logger = logging.getLogger(__name__)

SOURCE_TAG = "ZIP"

SPORT_TYPES = {"Run": "run", "Ride": "ride", "VirtualRide": "ride", "Swim": "swim"}


class ActivityLoadError(Exception):
    """Raised when an export archive cannot be read at all."""


def _stem(name: str) -> str:
    """``activities/123.tcx.gz`` -> ``123``."""
    return PurePosixPath(name).name.split(".")[0]


def _iter_files(path: Path) -> Iterator[Tuple[str, bytes]]:
    if path.is_dir():
        for fp in sorted(path.rglob("*")):
            if fp.is_file() and not fp.name.startswith("."):
                yield fp.relative_to(path).as_posix(), fp.read_bytes()
        return
    try:
        with zipfile.ZipFile(path) as zf:
            for name in zf.namelist():
                if not name.endswith("/"):
                    yield name, zf.read(name)
    except (zipfile.BadZipFile, OSError) as e:
        raise ActivityLoadError(f"Cannot read export archive {path}: {e}") from e


def _column(df: pd.DataFrame, *names: str) -> pd.Series:
    for name in names:
        if name in df.columns:
            return df[name]
    return pd.Series([None] * len(df), index=df.index)


def parse_activities_csv(data: Union[str, bytes]) -> List[dict]:
    """Summary records for runs, rides and swims in ``activities.csv``.

    Strava writes ``Distance`` twice; pandas renames the second (meters)
    column to ``Distance.1``, which is preferred when present.
    """
    text = data.decode("utf-8-sig") if isinstance(data, bytes) else data
    df = pd.read_csv(io.StringIO(text))
    if df.empty:
        return []

    sport = _column(df, "Activity Type").map(SPORT_TYPES)
    distance_m = pd.to_numeric(_column(df, "Distance.1", "Distance"), errors="coerce")
    frame = pd.DataFrame(
        {
            "id": _column(df, "Activity ID"),
            "date": pd.to_datetime(_column(df, "Activity Date"), errors="coerce", format="mixed"),
            "sport": sport,
            "distance": distance_m / 1000.0,
            "duration": pd.to_numeric(_column(df, "Moving Time"), errors="coerce"),
            "avg_hr": pd.to_numeric(_column(df, "Average Heart Rate"), errors="coerce"),
            "max_hr": pd.to_numeric(_column(df, "Max Heart Rate"), errors="coerce"),
            "avg_watts": pd.to_numeric(_column(df, "Average Watts"), errors="coerce"),
            "max_watts": pd.to_numeric(_column(df, "Max Watts"), errors="coerce"),
            "filename": _column(df, "Filename"),
        }
    )
    kept = frame[frame["sport"].notna() & frame["date"].notna() & (frame["distance"] > 0) & (frame["duration"] > 0)]
    logger.info("activities.csv: %d rows, %d runs/rides/swims kept", len(frame), len(kept))

    records = []
    for row in kept.to_dict(orient="records"):
        row = {k: (None if not isinstance(v, str) and pd.isna(v) else v) for k, v in row.items()}
        records.append(row)
    return records


def _read_stream_file(name: str, payload: bytes, activity_id: str) -> Optional[Activity]:
    lower = name.lower()
    if lower.endswith(".gz"):
        payload = gzip.decompress(payload)
        lower = lower[:-3]
    if lower.endswith(".tcx"):
        tcx = parse_tcx(payload.decode("utf-8-sig"))
        return Activity(
            id=activity_id,
            date=tcx.start_time,
            hr_stream=tcx.hr_stream,
            pace_stream=tcx.pace_stream,
            source=SOURCE_TAG,
        )
    if lower.endswith(".fit"):
        return load_fit_activity(payload, activity_id=activity_id, source_tag=SOURCE_TAG)
    return None


def load_export(path: Union[str, Path]) -> List[Activity]:
    """Read summaries and attach matching TCX/FIT streams.

    Raises ActivityLoadError when the archive is unreadable or has no
    ``activities.csv``. A single unreadable stream file is skipped with a
    warning.
    """
    path = Path(path)
    if not path.exists():
        raise ActivityLoadError(f"Export not found: {path}")

    csv_payload: Optional[bytes] = None
    stream_files: Dict[str, Tuple[str, bytes]] = {}
    for name, payload in _iter_files(path):
        if name.endswith("activities.csv"):
            csv_payload = payload
        elif "activities/" in name or path.is_dir():
            if any(name.lower().endswith(ext) for ext in (".tcx", ".tcx.gz", ".fit", ".fit.gz")):
                stream_files[_stem(name)] = (name, payload)

    if csv_payload is None:
        raise ActivityLoadError(f"No activities.csv found in {path}")

    activities: List[Activity] = []
    matched = 0
    for record in parse_activities_csv(csv_payload):
        activity = normalize_activity(record, source=SOURCE_TAG)
        filename = record.get("filename")
        stream_file = stream_files.get(_stem(filename)) if filename else None
        if stream_file is not None:
            name, payload = stream_file
            try:
                streams = _read_stream_file(name, payload, activity.id)
            except (TCXParseError, FitParseError, OSError, EOFError, zlib.error, UnicodeDecodeError) as e:
                logger.warning("Skipping unreadable stream file %s: %s", name, e)
                streams = None
            if streams is not None:
                matched += 1
                activity = replace(
                    activity,
                    hr_stream=streams.hr_stream or activity.hr_stream,
                    pace_stream=streams.pace_stream or activity.pace_stream,
                    power_stream=streams.power_stream or activity.power_stream,
                    cadence=streams.cadence or activity.cadence,
                )
        activities.append(activity)

    logger.info("Loaded %d activities from %s (%d with streams of %d files)", len(activities), path, matched, len(stream_files))
    return activities
