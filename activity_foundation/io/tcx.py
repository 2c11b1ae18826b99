from __future__ import annotations

import logging
import os
import tempfile
from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional

import numpy as np
import pandas as pd
from tcxreader.tcxreader import TCXReader

from ..models.types import HRStream, PaceStream
from .normalize import normalize_hr_stream, normalize_pace_stream

logger = logging.getLogger(__name__)

EARTH_RADIUS_M = 6371000.0

TRACKPOINT_COLUMNS = ["time", "hr", "lat", "lon", "ele", "distance"]


class TCXParseError(ValueError):
    """Raised when a TCX document cannot be read."""


@dataclass
class TCXData:
    hr_stream: Optional[HRStream]
    pace_stream: Optional[PaceStream]
    start_time: Optional[datetime] = None
    duration_s: float = 0.0
    distance_km: float = 0.0


def haversine_m(lat1, lon1, lat2, lon2):
    """Great-circle distance in metres; works on scalars and arrays."""
    phi1 = np.radians(np.asarray(lat1, dtype=float))
    phi2 = np.radians(np.asarray(lat2, dtype=float))
    dphi = phi2 - phi1
    dlambda = np.radians(np.asarray(lon2, dtype=float) - np.asarray(lon1, dtype=float))
    a = np.sin(dphi / 2) ** 2 + np.cos(phi1) * np.cos(phi2) * np.sin(dlambda / 2) ** 2
    return EARTH_RADIUS_M * 2 * np.arctan2(np.sqrt(a), np.sqrt(1 - a))


def _read_trackpoints(text: str) -> pd.DataFrame:
    """Run the document through TCXReader and flatten its trackpoints."""
    fd, path = tempfile.mkstemp(suffix=".tcx")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(text.strip())
        try:
            exercise = TCXReader().read(path, only_gps=False)
        except Exception as e:
            raise TCXParseError(f"Invalid TCX document: {e}") from e
    finally:
        os.remove(path)

    rows = [
        {
            "time": tp.time,
            "hr": tp.hr_value,
            "lat": tp.latitude,
            "lon": tp.longitude,
            "ele": tp.elevation,
            "distance": tp.distance,
        }
        for tp in exercise.trackpoints or []
    ]
    return pd.DataFrame(rows, columns=TRACKPOINT_COLUMNS)


def _interpolate(values: pd.Series) -> List[Optional[float]]:
    """Linear fill of interior gaps, nearest value at the edges."""
    s = values.astype(float)
    if s.notna().sum() == 0:
        return [None] * len(s)
    return s.interpolate(method="linear").bfill().tolist()


def parse_tcx(text: str) -> TCXData:
    """Extract HR and pace streams from a TCX document.

    Pace comes from haversine distance between consecutive positions
    (``16.667 / speed`` min/km); gaps are linearly interpolated before the
    usual validity filtering.
    """
    df = _read_trackpoints(text)
    df["time"] = pd.to_datetime(df["time"], errors="coerce", utc=True)
    df = df.dropna(subset=["time"]).reset_index(drop=True)
    if df.empty:
        logger.debug("TCX document has no timed trackpoints")
        return TCXData(hr_stream=None, pace_stream=None)
    for col in ("hr", "lat", "lon", "ele", "distance"):
        df[col] = pd.to_numeric(df[col], errors="coerce")

    start = df["time"].iloc[0]
    elapsed = (df["time"] - start).dt.total_seconds().astype(int).astype(float)
    heartrate = df["hr"].where((df["hr"] > 0) & (df["hr"] < 250)).round()

    gps = df.dropna(subset=["lat", "lon"])
    step = pd.Series(
        haversine_m(gps["lat"].shift(1), gps["lon"].shift(1), gps["lat"], gps["lon"]),
        index=gps.index,
    )
    dt = gps["time"].diff().dt.total_seconds()
    pace = (16.667 / (step / dt)).where((step > 0) & (dt > 0)).reindex(df.index)
    travelled = step.fillna(0.0).cumsum().reindex(df.index).ffill().fillna(0.0)
    distance = df["distance"].fillna(travelled)

    hr_stream = normalize_hr_stream({"heartrate": _interpolate(heartrate), "time": elapsed.tolist()})
    pace_stream = normalize_pace_stream(
        {
            "pace": _interpolate(pace),
            "time": elapsed.tolist(),
            "elevation": _interpolate(df["ele"]) if df["ele"].notna().any() else None,
            "distance": distance.tolist(),
        }
    )
    total_m = float(distance.max()) if distance.notna().any() else 0.0
    return TCXData(
        hr_stream=hr_stream,
        pace_stream=pace_stream,
        start_time=start.tz_localize(None).to_pydatetime(),
        duration_s=float(elapsed.iloc[-1]),
        distance_km=total_m / 1000.0,
    )
