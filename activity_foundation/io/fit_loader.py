from __future__ import annotations

import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional, Union

import numpy as np
import pandas as pd
from fitparse import FitFile, FitParseError

from ..models.types import Activity
from .normalize import normalize_activity

logger = logging.getLogger(__name__)

RECORD_COLUMNS = ["timestamp", "power", "heart_rate", "cadence", "speed", "distance", "altitude"]

FIT_SPORTS = {"running": "run", "cycling": "ride", "swimming": "swim"}

FitSource = Union[str, Path, bytes]


def _naive_utc(value):
    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def _extract_record_fields(record) -> Dict[str, Optional[float]]:
    data: Dict[str, Any] = {col: None for col in RECORD_COLUMNS}
    alt_raw = None
    alt_enh = None
    speed_raw = None
    speed_enh = None
    for field in record:
        name = field.name
        value = field.value
        if name == "timestamp":
            data["timestamp"] = _naive_utc(value)
        elif name in ("power", "heart_rate", "cadence", "distance"):
            data[name] = float(value) if value is not None else None
        elif name == "speed":
            speed_raw = float(value) if value is not None else None
        elif name == "enhanced_speed":
            speed_enh = float(value) if value is not None else None
        elif name == "altitude":
            alt_raw = float(value) if value is not None else None
        elif name == "enhanced_altitude":
            alt_enh = float(value) if value is not None else None
    # Prefer enhanced fields deterministically
    data["altitude"] = alt_enh if alt_enh is not None else alt_raw
    data["speed"] = speed_enh if speed_enh is not None else speed_raw
    return data


def _empty_frame() -> pd.DataFrame:
    return pd.DataFrame(columns=RECORD_COLUMNS).astype({"timestamp": "datetime64[ns]"})


def _open(source: FitSource) -> FitFile:
    return FitFile(source if isinstance(source, bytes) else str(source))


def load_fit_to_dataframe(source: FitSource) -> pd.DataFrame:
    """Load FIT records into a 1 Hz pandas DataFrame.

    Columns: timestamp, power (W), heart_rate (bpm), cadence, speed (m/s),
    distance (m), altitude (m)
    """
    try:
        fit = _open(source)
        records = [row for row in (_extract_record_fields(m) for m in fit.get_messages("record")) if row["timestamp"] is not None]
    except (FitParseError, OSError) as e:
        logger.warning("Failed to read FIT records from %s: %s", source if not isinstance(source, bytes) else "<bytes>", e)
        return _empty_frame()

    if not records:
        return _empty_frame()

    df = pd.DataFrame.from_records(records)
    df[RECORD_COLUMNS[1:]] = df[RECORD_COLUMNS[1:]].astype(float)
    df = df.sort_values("timestamp").drop_duplicates("timestamp").reset_index(drop=True)

    # Resample to 1 Hz with bounded gap handling
    df = df.set_index("timestamp")
    full_index = pd.date_range(df.index.min(), df.index.max(), freq="1s")
    df = df.reindex(full_index)
    for col in RECORD_COLUMNS[1:]:
        if col == "power":
            # Zero-order hold up to 3s; leave longer gaps as NaN
            df[col] = df[col].ffill(limit=3)
        elif col in ("heart_rate", "cadence", "speed"):
            df[col] = df[col].interpolate(method="time", limit=5, limit_direction="both", limit_area="inside")
        else:
            df[col] = df[col].interpolate(method="time", limit=10, limit_direction="both", limit_area="inside")
    df.index.name = "timestamp"
    return df.reset_index()


def _session_summary(fit: FitFile) -> Dict[str, Any]:
    for message in fit.get_messages("session"):
        return {field.name: field.value for field in message}
    return {}


def _column_or_none(df: pd.DataFrame, col: str):
    if col not in df or df[col].isna().all():
        return None
    return df[col].tolist()


def load_fit_activity(source: FitSource, activity_id: Optional[str] = None, source_tag: str = "FIT") -> Optional[Activity]:
    """Read a FIT file into an Activity with HR, pace and power streams.

    Returns None when the file holds no timed records.
    """
    df = load_fit_to_dataframe(source)
    if df.empty:
        return None
    try:
        session = _session_summary(_open(source))
    except (FitParseError, OSError) as e:
        logger.warning("Failed to read FIT session summary: %s", e)
        session = {}

    elapsed = (df["timestamp"] - df["timestamp"].iloc[0]).dt.total_seconds().tolist()
    speed = df["speed"].to_numpy(dtype=float)
    with np.errstate(divide="ignore", invalid="ignore"):
        pace = np.where(speed > 0, 16.667 / speed, np.nan)

    distance_m = session.get("total_distance")
    if distance_m is None and df["distance"].notna().any():
        distance_m = float(df["distance"].max())
    duration = session.get("total_timer_time") or (elapsed[-1] if elapsed else 0.0)

    if activity_id is None:
        activity_id = Path(str(source)).name.split(".")[0] if not isinstance(source, bytes) else str(
            int(df["timestamp"].iloc[0].timestamp())
        )

    raw = {
        "id": activity_id,
        "date": _naive_utc(session.get("start_time")) or df["timestamp"].iloc[0],
        "sport": FIT_SPORTS.get(str(session.get("sport", "")).lower(), "run"),
        "distance": (distance_m or 0.0) / 1000.0,
        "duration": duration,
        "avg_hr": session.get("avg_heart_rate"),
        "max_hr": session.get("max_heart_rate"),
        "avg_watts": session.get("avg_power"),
        "max_watts": session.get("max_power"),
        "hr_stream": {"heartrate": df["heart_rate"].tolist(), "time": elapsed},
        "pace_stream": {
            "pace": pace.tolist(),
            "time": elapsed,
            "elevation": _column_or_none(df, "altitude"),
            "distance": _column_or_none(df, "distance"),
        },
        "power_stream": {"watts": df["power"].tolist(), "time": elapsed} if df["power"].notna().any() else None,
        "cadence": [c for c in df["cadence"].tolist() if pd.notna(c)] or None,
        "filename": None if isinstance(source, bytes) else Path(str(source)).name,
    }
    return normalize_activity(raw, source=source_tag)
