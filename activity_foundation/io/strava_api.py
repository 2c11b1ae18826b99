from __future__ import annotations

from typing import Any, Dict, Iterable, List, Mapping, Optional, Union

from ..models.types import Activity
from .normalize import normalize_activity

SOURCE_TAG = "Strava API"

StreamPayload = Union[Iterable[Mapping[str, Any]], Mapping[str, Any]]


def _streams_by_type(streams: Optional[StreamPayload]) -> Dict[str, List[Any]]:
    """Accept the API's list form ``[{type, data}]`` or its ``key_by_type`` mapping."""
    if not streams:
        return {}
    if isinstance(streams, Mapping):
        return {k: list(v.get("data") or []) if isinstance(v, Mapping) else list(v) for k, v in streams.items()}
    return {s["type"]: list(s.get("data") or []) for s in streams if "type" in s}


def _pace_from_velocity(velocity: List[Optional[float]]) -> List[Optional[float]]:
    """m/s to min/km; standing samples become None and are filtered later."""
    return [1000.0 / (v * 60.0) if v else None for v in velocity]


def activity_from_strava(summary: Mapping[str, Any], streams: Optional[StreamPayload] = None) -> Activity:
    """Map a Strava activity summary plus its streams onto an Activity."""
    by_type = _streams_by_type(streams)
    time = by_type.get("time")

    raw: Dict[str, Any] = {
        "id": summary.get("id"),
        "date": summary.get("start_date") or summary.get("start_date_local"),
        "sport": summary.get("sport_type") or summary.get("type"),
        "distance": (summary.get("distance") or 0.0) / 1000.0,
        "duration": summary.get("moving_time") or 0.0,
        "avg_hr": summary.get("average_heartrate"),
        "max_hr": summary.get("max_heartrate"),
        "avg_watts": summary.get("average_watts"),
        "max_watts": summary.get("max_watts"),
        "cadence": by_type.get("cadence"),
    }
    if "heartrate" in by_type:
        raw["hr_stream"] = {"heartrate": by_type["heartrate"], "time": time}
    if "velocity_smooth" in by_type:
        raw["pace_stream"] = {
            "pace": _pace_from_velocity(by_type["velocity_smooth"]),
            "time": time,
            "elevation": by_type.get("altitude"),
            "distance": by_type.get("distance"),
        }
    if "watts" in by_type:
        raw["power_stream"] = {"watts": by_type["watts"], "time": time}
    return normalize_activity(raw, source=SOURCE_TAG)
