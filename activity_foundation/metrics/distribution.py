"""
Time-in-zone distributions for HR and power streams.

Percentages are taken over valid samples, not elapsed time, so irregular
sampling weights densely sampled spans more heavily.
"""
from __future__ import annotations

from typing import Callable, Dict, Iterable, Optional, Sequence

import numpy as np

from ..config import HR_VALID_RANGE
from ..models.context import AnalysisContext
from ..models.types import (
    Activity,
    BasicData,
    DetailedData,
    Distribution,
    HRStream,
    NoData,
    PowerStream,
    SeriesData,
    ZoneBoundaries,
    ZoneDistributionSummary,
)
from .zones import get_zone

ZONE_KEYS = ("z1", "z2", "z3", "z4", "z5", "z6")


def hr_data(activity: Activity) -> SeriesData:
    """Tag an activity's heart-rate data as detailed, basic or none."""
    stream = activity.hr_stream
    if stream is not None and len(stream.heartrate) > 0:
        return DetailedData(values=list(stream.heartrate), time=list(stream.time))
    if activity.avg_hr and activity.avg_hr > 0 and activity.max_hr and activity.max_hr > 0:
        return BasicData(avg=activity.avg_hr, max=activity.max_hr)
    return NoData()


def power_data(activity: Activity) -> SeriesData:
    """Tag an activity's power data as detailed, basic or none."""
    stream = activity.power_stream
    if stream is not None and len(stream.watts) > 0:
        return DetailedData(values=list(stream.watts), time=list(stream.time))
    if activity.avg_watts:
        return BasicData(avg=activity.avg_watts, max=activity.max_watts or activity.avg_watts)
    return NoData()


def _stream_values(stream) -> Optional[Sequence[float]]:
    if stream is None:
        return None
    if isinstance(stream, HRStream):
        return stream.heartrate
    if isinstance(stream, PowerStream):
        return stream.watts
    if isinstance(stream, DetailedData):
        return stream.values
    if isinstance(stream, dict):
        for key in ("heartrate", "watts", "values"):
            if key in stream:
                return stream[key]
        return None
    return stream


def valid_hr(arr: np.ndarray) -> np.ndarray:
    low, high = HR_VALID_RANGE
    return (arr > low) & (arr < high)


def valid_power(arr: np.ndarray) -> np.ndarray:
    return arr >= 0


def analyze_stream(
    stream,
    boundaries: ZoneBoundaries,
    valid: Callable[[np.ndarray], np.ndarray] = valid_hr,
) -> Optional[Distribution]:
    """Bucket every valid sample into one of six zones using `<=` upper bounds.

    Samples rejected by `valid` (HR outside (0, 250) bpm by default) are
    dropped first. Returns None when nothing valid is left, the explicit
    "no data" signal.
    """
    values = _stream_values(stream)
    if values is None or len(values) == 0:
        return None
    arr = np.asarray(values, dtype=float)
    arr = arr[~np.isnan(arr)]
    arr = arr[valid(arr)]
    if arr.size == 0:
        return None

    # First upper bound with v <= upper; past the last bound is zone 6
    zone_idx = np.searchsorted(np.asarray(boundaries.uppers(), dtype=float), arr, side="left")
    counts = np.bincount(zone_idx, minlength=6)

    total = int(arr.size)
    pct = [float(c) / total * 100.0 for c in counts]
    return Distribution(
        percent_z1=pct[0],
        percent_z2=pct[1],
        percent_z3=pct[2],
        percent_z4=pct[3],
        percent_z5=pct[4],
        percent_z6=pct[5],
        avg=float(arr.mean()),
        max=float(arr.max()),
        min=float(arr.min()),
        total_data_points=total,
        values=arr.tolist(),
    )


def analyze_hr_stream(stream, context: AnalysisContext) -> Optional[Distribution]:
    return analyze_stream(stream, context.zones_bpm())


def analyze_power_stream(stream, context: AnalysisContext) -> Optional[Distribution]:
    return analyze_stream(stream, context.power_zones(), valid_power)


def calculate_zone_distribution(activities: Iterable[Activity], context: AnalysisContext) -> ZoneDistributionSummary:
    """Aggregate time-in-zone and distance-in-zone over many activities.

    Detailed activities spread their distance across zones in proportion to
    their zone percentages and contribute sample counts. Basic-only
    activities put their whole distance into the zone of their average HR
    and contribute no counts.
    """
    boundaries = context.zones_bpm()
    counts: Dict[str, float] = {k: 0.0 for k in ZONE_KEYS}
    distances: Dict[str, float] = {k: 0.0 for k in ZONE_KEYS}
    total_points = 0
    analyzed = 0
    with_detailed = 0

    for activity in activities:
        analyzed += 1
        data = hr_data(activity)
        if isinstance(data, DetailedData):
            with_detailed += 1
            dist = analyze_stream(data, boundaries)
            if dist is None:
                continue
            total_points += dist.total_data_points
            for key, p in zip(ZONE_KEYS, dist.percentages()):
                counts[key] += dist.total_data_points * p / 100.0
                distances[key] += activity.distance * p / 100.0
        elif isinstance(data, BasicData):
            zone = get_zone(data.avg, boundaries)
            distances[f"z{zone}"] += activity.distance

    percentages = {k: (counts[k] / total_points * 100.0 if total_points > 0 else 0.0) for k in ZONE_KEYS}
    return ZoneDistributionSummary(
        percentages=percentages,
        distances=distances,
        total_data_points=total_points,
        activities_analyzed=analyzed,
        activities_with_detailed=with_detailed,
    )

