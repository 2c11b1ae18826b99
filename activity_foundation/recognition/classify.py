"""
Training-category classification for runs, rides and swims.

Rules are ordered ``(predicate, category)`` pairs; the first match wins.
Nothing here mutates the activities passed in.
"""
from __future__ import annotations

from typing import Callable, Dict, Iterable, List, Optional, Tuple

from ..config import LONG_ACTIVITY_MIN_KM, LONG_ACTIVITY_SHARE_OF_WEEKLY
from ..metrics.distribution import analyze_stream, hr_data, power_data, valid_power
from ..metrics.zones import get_power_zone, get_zone
from ..models.context import AnalysisContext
from ..models.types import (
    DATA_NONE,
    INTENSITY_EFFORT,
    MIXED_EFFORT,
    RACE_EFFORT,
    Z2,
    Activity,
    BasicData,
    Classification,
    DetailedData,
    Distribution,
    ZoneBoundaries,
)


def _race_share(d: Distribution) -> float:
    return d.percent_z5 + d.percent_z6


def _intensity_share(d: Distribution) -> float:
    return d.percent_z3 + d.percent_z4 + d.percent_z5


DETAILED_RULES: List[Tuple[Callable[[Distribution], bool], str]] = [
    (lambda d: d.percent_z2 >= 75 and _race_share(d) <= 5, Z2),
    (lambda d: _race_share(d) >= 80, RACE_EFFORT),
    (lambda d: _intensity_share(d) >= 80, INTENSITY_EFFORT),
]

# Predicates over (avg_zone, max_zone)
BASIC_RULES: List[Tuple[Callable[[int, int], bool], str]] = [
    (lambda avg, mx: avg == 2 and mx <= 4, Z2),
    (lambda avg, mx: avg >= 5, RACE_EFFORT),
    (lambda avg, mx: avg in (3, 4), INTENSITY_EFFORT),
]

TENDENCY_MIN_PERCENT = 30.0


def classify_distribution(distribution: Distribution) -> Tuple[str, Optional[str]]:
    """Return (category, tendency) for a time-in-zone distribution."""
    for predicate, category in DETAILED_RULES:
        if predicate(distribution):
            return category, None

    # Earlier entries win ties
    tendencies = [
        ("Z2", distribution.percent_z2),
        ("Intensity", _intensity_share(distribution)),
        ("Race", _race_share(distribution)),
    ]
    name, percent = tendencies[0]
    for candidate, value in tendencies[1:]:
        if value > percent:
            name, percent = candidate, value
    return MIXED_EFFORT, (name if percent > TENDENCY_MIN_PERCENT else None)


def _classify_zones(avg_zone: Optional[int], max_zone: Optional[int]) -> str:
    if avg_zone is None:
        return MIXED_EFFORT
    if max_zone is None:
        max_zone = avg_zone
    for predicate, category in BASIC_RULES:
        if predicate(avg_zone, max_zone):
            return category
    return MIXED_EFFORT


def classify_basic(avg: float, max_value: Optional[float], boundaries: ZoneBoundaries) -> str:
    """Coarse category from average/max HR alone; never carries a tendency."""
    max_zone = get_zone(max_value, boundaries) if max_value is not None else None
    return _classify_zones(get_zone(avg, boundaries), max_zone)


def classify_basic_power(avg_watts: float, max_watts: Optional[float], ftp: float) -> str:
    return _classify_zones(get_power_zone(avg_watts, ftp), get_power_zone(max_watts, ftp))


def is_long(activity: Activity, avg_weekly: float) -> bool:
    """Longer than half the weekly average, plus a per-sport absolute minimum."""
    min_km = LONG_ACTIVITY_MIN_KM.get(activity.sport, 0.0)
    return activity.distance > LONG_ACTIVITY_SHARE_OF_WEEKLY * (avg_weekly or 0.0) and activity.distance > min_km


def _classify_hr(activity: Activity, context: AnalysisContext, long_flag: bool) -> Classification:
    data = hr_data(activity)
    boundaries = context.zones_bpm()
    if isinstance(data, DetailedData):
        distribution = analyze_stream(data, boundaries)
        if distribution is not None:
            category, tendency = classify_distribution(distribution)
            return Classification(category, long_flag, data.kind, tendency, distribution)
        return Classification(MIXED_EFFORT, long_flag, data.kind)
    if isinstance(data, BasicData):
        return Classification(classify_basic(data.avg, data.max, boundaries), long_flag, data.kind)
    return Classification(MIXED_EFFORT, long_flag, DATA_NONE)


def _classify_power(activity: Activity, context: AnalysisContext, long_flag: bool) -> Optional[Classification]:
    data = power_data(activity)
    if isinstance(data, DetailedData):
        distribution = analyze_stream(data, context.power_zones(), valid_power)
        if distribution is None:
            return None
        category, tendency = classify_distribution(distribution)
        return Classification(category, long_flag, data.kind, tendency, distribution)
    if isinstance(data, BasicData):
        return Classification(classify_basic_power(data.avg, data.max, context.ftp), long_flag, data.kind)
    return None


def classify_activity(activity: Activity, context: AnalysisContext, avg_weekly: float = 0.0) -> Classification:
    """Classify one activity.

    Runs and swims use heart rate. Rides use power when present and fall
    back to heart rate otherwise.
    """
    long_flag = is_long(activity, avg_weekly)
    if activity.sport == "ride":
        by_power = _classify_power(activity, context, long_flag)
        if by_power is not None:
            return by_power
    return _classify_hr(activity, context, long_flag)


def classify_many(
    activities: Iterable[Activity], context: AnalysisContext, avg_weekly: float = 0.0
) -> List[Tuple[Activity, Classification]]:
    return [(a, classify_activity(a, context, avg_weekly)) for a in activities]


def _stats_key(classification: Classification) -> str:
    if classification.category == Z2:
        return "z2"
    if classification.category == INTENSITY_EFFORT:
        return "intensity"
    if classification.category == RACE_EFFORT:
        return "race"
    if classification.data_type == DATA_NONE:
        return "no_hr"
    return "mixed"


def training_load_stats(pairs: Iterable[Tuple[Activity, Classification]]) -> Dict[str, Dict[str, float]]:
    """Count, distance and duration per category bucket."""
    stats: Dict[str, Dict[str, float]] = {
        key: {"count": 0, "distance": 0.0, "duration": 0.0}
        for key in ("z2", "intensity", "race", "mixed", "no_hr")
    }
    for activity, classification in pairs:
        bucket = stats[_stats_key(classification)]
        bucket["count"] += 1
        bucket["distance"] += activity.distance
        bucket["duration"] += activity.duration
    return stats
