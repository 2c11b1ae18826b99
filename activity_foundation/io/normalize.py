"""
Coerce heterogeneous activity records into the shared `Activity` shape.

Inputs come from CSV exports, TCX/FIT parsers, API payloads or a local
cache, so both snake_case and camelCase keys are accepted. Invalid samples
are dropped together with their time stamps; an empty result is ``None``,
never an empty stream.
"""
from __future__ import annotations

import logging
import math
from dataclasses import replace
from datetime import datetime
from typing import Any, Callable, List, Mapping, Optional, Sequence, Tuple, Union

import pandas as pd

from ..config import HR_VALID_RANGE, PACE_VALID_RANGE
from ..models.types import Activity, HRStream, PaceStream, PowerStream

logger = logging.getLogger(__name__)


def _get(raw: Mapping[str, Any], *keys: str, default: Any = None) -> Any:
    for key in keys:
        if key in raw and raw[key] is not None:
            return raw[key]
    return default


def _to_float(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    try:
        out = float(value)
    except (TypeError, ValueError):
        return None
    if math.isnan(out) or math.isinf(out):
        return None
    return out


def _positive_or_none(value: Any) -> Optional[float]:
    out = _to_float(value)
    if out is None or out <= 0:
        return None
    return out


def _filter_aligned(
    values: Sequence[Any],
    time: Optional[Sequence[Any]],
    keep: Callable[[float], bool],
    extras: Sequence[Optional[Sequence[Any]]] = (),
) -> Optional[Tuple[List[float], List[float], List[Optional[List[float]]]]]:
    """Filter values and drop the matching time stamps and parallel arrays."""
    if values is None:
        return None
    values = list(values)
    if not values:
        return None
    if time is None or len(time) != len(values):
        if time is not None:
            logger.debug("Time array length %d != %d values; synthesizing indices", len(time), len(values))
        time = list(range(len(values)))
    aligned_extras = [list(e) if e is not None and len(e) == len(values) else None for e in extras]

    out_values: List[float] = []
    out_time: List[float] = []
    out_extras: List[List[float]] = [[] for _ in aligned_extras]
    for i, raw_value in enumerate(values):
        v = _to_float(raw_value)
        if v is None or not keep(v):
            continue
        t = _to_float(time[i])
        out_values.append(v)
        out_time.append(t if t is not None else float(i))
        for j, extra in enumerate(aligned_extras):
            if extra is not None:
                out_extras[j].append(_to_float(extra[i]))

    if not out_values:
        return None
    return out_values, out_time, [out_extras[j] if e is not None else None for j, e in enumerate(aligned_extras)]


def _in_open_range(bounds: Tuple[float, float]) -> Callable[[float], bool]:
    low, high = bounds
    return lambda v: low < v < high


def normalize_hr_stream(raw: Any) -> Optional[HRStream]:
    """Return an HRStream with samples restricted to (0, 250) bpm, or None.

    Accepts an ``HRStream``, ``{"heartrate": [...], "time": [...]}`` or the
    legacy ``{"records": [{"heart_rate": .., "time": ..}]}`` shape.
    """
    if raw is None:
        return None
    if isinstance(raw, HRStream):
        values, time = raw.heartrate, raw.time
    elif isinstance(raw, Mapping) and "records" in raw:
        records = raw.get("records") or []
        values = [r.get("heart_rate", r.get("heartrate")) for r in records]
        times = [r.get("time") for r in records]
        # Successive indices when the legacy records carry no time
        if all(isinstance(t, (int, float)) and not isinstance(t, bool) for t in times) and times:
            time = times
        else:
            time = list(range(len(records)))
    elif isinstance(raw, Mapping):
        values, time = raw.get("heartrate"), raw.get("time")
    else:
        return None

    filtered = _filter_aligned(values, time, _in_open_range(HR_VALID_RANGE))
    if filtered is None:
        return None
    hr, t, _ = filtered
    return HRStream(heartrate=hr, time=t)


def normalize_pace_stream(raw: Any) -> Optional[PaceStream]:
    """Return a PaceStream with samples restricted to (0, 20) min/km, or None."""
    if raw is None:
        return None
    if isinstance(raw, PaceStream):
        values, time, elevation, distance = raw.pace, raw.time, raw.elevation, raw.distance
    elif isinstance(raw, Mapping):
        values = raw.get("pace")
        time = raw.get("time")
        elevation = _get(raw, "elevation", "altitude")
        distance = raw.get("distance")
    else:
        return None

    filtered = _filter_aligned(values, time, _in_open_range(PACE_VALID_RANGE), extras=(elevation, distance))
    if filtered is None:
        return None
    pace, t, (elev, dist) = filtered
    return PaceStream(pace=pace, time=t, elevation=elev, distance=dist)


def normalize_power_stream(raw: Any) -> Optional[PowerStream]:
    """Return a PowerStream keeping non-negative watts, or None."""
    if raw is None:
        return None
    if isinstance(raw, PowerStream):
        values, time = raw.watts, raw.time
    elif isinstance(raw, Mapping):
        values, time = _get(raw, "watts", "power"), raw.get("time")
    else:
        return None

    filtered = _filter_aligned(values, time, lambda v: v >= 0)
    if filtered is None:
        return None
    watts, t, _ = filtered
    return PowerStream(watts=watts, time=t)


def _normalize_sport(value: Any) -> str:
    text = str(value or "run").strip().lower()
    if text in ("ride", "virtualride", "virtual ride", "cycling", "bike", "ebikeride"):
        return "ride"
    if text in ("swim", "swimming"):
        return "swim"
    return "run"


def _normalize_date(value: Any) -> datetime:
    ts = pd.to_datetime(value, errors="coerce")
    if pd.isna(ts):
        raise ValueError(f"Unparseable activity date: {value!r}")
    # Naive UTC so dates from every source compare with each other
    if ts.tzinfo is not None:
        ts = ts.tz_convert("UTC").tz_localize(None)
    return ts.to_pydatetime()


def normalize_activity(raw: Union[Mapping[str, Any], Activity], source: Optional[str] = None) -> Activity:
    """Coerce a raw record (or an existing Activity) into a normalized Activity."""
    if isinstance(raw, Activity):
        return replace(
            raw,
            distance=max(0.0, raw.distance or 0.0),
            duration=max(0.0, raw.duration or 0.0),
            hr_stream=normalize_hr_stream(raw.hr_stream),
            pace_stream=normalize_pace_stream(raw.pace_stream),
            power_stream=normalize_power_stream(raw.power_stream),
            source=source or raw.source,
        )

    raw_id = _get(raw, "id", "activity_id", "Activity ID")
    if raw_id is None:
        raise ValueError("Activity record has no id")
    if isinstance(raw_id, float) and raw_id.is_integer():
        raw_id = int(raw_id)

    cadence = _get(raw, "cadence")
    if cadence is not None:
        cadence = [c for c in (_to_float(v) for v in cadence) if c is not None] or None

    return Activity(
        id=str(raw_id),
        date=_normalize_date(_get(raw, "date", "start_date", "start_date_local")),
        sport=_normalize_sport(_get(raw, "sport", "type", "sport_type")),
        distance=max(0.0, _to_float(_get(raw, "distance")) or 0.0),
        duration=max(0.0, _to_float(_get(raw, "duration", "moving_time")) or 0.0),
        avg_hr=_positive_or_none(_get(raw, "avg_hr", "avgHR")),
        max_hr=_positive_or_none(_get(raw, "max_hr", "maxHR")),
        avg_watts=_positive_or_none(_get(raw, "avg_watts", "avgWatts")),
        max_watts=_positive_or_none(_get(raw, "max_watts", "maxWatts")),
        hr_stream=normalize_hr_stream(_get(raw, "hr_stream", "hrStream")),
        pace_stream=normalize_pace_stream(_get(raw, "pace_stream", "paceStream")),
        power_stream=normalize_power_stream(_get(raw, "power_stream", "powerStream")),
        cadence=cadence,
        source=source or str(_get(raw, "source", default="unknown")),
        filename=_get(raw, "filename"),
    )
