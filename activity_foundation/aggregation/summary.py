from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Any, Dict, Iterable, List, Mapping, Optional, Union

import pandas as pd

from ..config import BASELINE_WINDOW_DAYS, CACHED_SOURCE
from ..io.normalize import normalize_activity
from ..models.types import Activity

logger = logging.getLogger(__name__)


def _now(as_of: Optional[datetime]) -> datetime:
    return as_of if as_of is not None else datetime.now()


def activities_in_range(activities: Iterable[Activity], days: int, as_of: Optional[datetime] = None) -> List[Activity]:
    """Activities dated within the last `days` days up to `as_of` (default now)."""
    end = _now(as_of)
    cutoff = end - timedelta(days=days)
    return [a for a in activities if cutoff <= a.date <= end]


def total_distance(activities: Iterable[Activity]) -> float:
    return float(sum(a.distance for a in activities))


def average_weekly_distance(
    activities: Iterable[Activity], as_of: Optional[datetime] = None, days: int = BASELINE_WINDOW_DAYS
) -> float:
    """Distance over the window divided by its length in weeks."""
    return total_distance(activities_in_range(activities, days, as_of)) / (days / 7.0)


def _hr_len(activity: Activity) -> int:
    return len(activity.hr_stream.heartrate) if activity.hr_stream is not None else 0


def _has_pace(activity: Activity) -> bool:
    return activity.pace_stream is not None and len(activity.pace_stream.pace) > 0


def _has_basic_hr(activity: Activity) -> bool:
    return bool(activity.avg_hr and activity.avg_hr > 0 and activity.max_hr and activity.max_hr > 0)


def has_more_data(candidate: Activity, existing: Activity) -> bool:
    """True when `candidate` carries richer data than `existing`.

    Longer detailed HR first, then pace data, then basic HR. On a full tie a
    fresh record replaces a cached one.
    """
    a_len, b_len = _hr_len(candidate), _hr_len(existing)
    if a_len or b_len:
        if a_len != b_len:
            return a_len > b_len
    else:
        a_pace, b_pace = _has_pace(candidate), _has_pace(existing)
        if a_pace != b_pace:
            return a_pace
        a_basic, b_basic = _has_basic_hr(candidate), _has_basic_hr(existing)
        if a_basic != b_basic:
            return a_basic
    return existing.source == CACHED_SOURCE and candidate.source != CACHED_SOURCE


class ActivityCollection:
    """The deduplicated, newest-first set of activities the analyzers read."""

    def __init__(self, activities: Optional[Iterable[Activity]] = None):
        self._activities: List[Activity] = []
        if activities:
            self.add(activities)

    def __len__(self) -> int:
        return len(self._activities)

    def __iter__(self):
        return iter(self._activities)

    @property
    def activities(self) -> List[Activity]:
        return list(self._activities)

    def add(self, activities: Iterable[Union[Activity, Mapping[str, Any]]], source: Optional[str] = None) -> List[Activity]:
        normalized = [normalize_activity(a, source=source) for a in activities]
        unique: Dict[str, Activity] = {a.id: a for a in self._activities}
        for activity in normalized:
            existing = unique.get(activity.id)
            if existing is None or has_more_data(activity, existing):
                unique[activity.id] = activity
        self._activities = sorted(unique.values(), key=lambda a: a.date, reverse=True)
        logger.info("Total unique activities: %d (added %d from %s)", len(self._activities), len(normalized), source or "input")
        return self.activities

    def clear(self) -> None:
        self._activities = []

    def by_sport(self, sport: str) -> List[Activity]:
        return [a for a in self._activities if a.sport == sport]

    def in_range(self, days: int, as_of: Optional[datetime] = None) -> List[Activity]:
        return activities_in_range(self._activities, days, as_of)

    def between(self, start: datetime, end: datetime) -> List[Activity]:
        return [a for a in self._activities if start <= a.date <= end]

    def calculate_max_hr(self) -> Optional[float]:
        """Highest HR seen in any basic summary or stream, None if there is none."""
        best = 0.0
        for a in self._activities:
            if a.max_hr and a.max_hr > best:
                best = a.max_hr
            if a.hr_stream is not None and a.hr_stream.heartrate:
                best = max(best, max(a.hr_stream.heartrate))
        return best if best > 0 else None


def summarize(activities: Iterable[Activity], as_of: Optional[datetime] = None) -> Dict[str, Any]:
    """Totals for the last 7/28/180 days and data coverage."""
    activities = list(activities)
    last7 = activities_in_range(activities, 7, as_of)
    last28 = activities_in_range(activities, 28, as_of)
    last180 = activities_in_range(activities, BASELINE_WINDOW_DAYS, as_of)
    return {
        "total": len(activities),
        "last_7_days": {"count": len(last7), "distance": total_distance(last7)},
        "last_28_days": {"count": len(last28), "distance": total_distance(last28)},
        "last_6_months": {
            "count": len(last180),
            "distance": total_distance(last180),
            "avg_weekly": total_distance(last180) / (BASELINE_WINDOW_DAYS / 7.0),
        },
        "hr_data": {
            "with_basic_hr": sum(1 for a in activities if a.avg_hr),
            "with_stream_hr": sum(1 for a in activities if _hr_len(a) > 0),
        },
        "pace_data": {"with_pace": sum(1 for a in activities if _has_pace(a))},
    }


def weekly_distance(activities: Iterable[Activity]) -> pd.DataFrame:
    """Distance and activity count per Monday-anchored week."""
    rows = [{"date": pd.Timestamp(a.date), "distance_km": a.distance} for a in activities]
    df = pd.DataFrame(rows)
    if df.empty:
        return pd.DataFrame(columns=["week_start", "distance_km", "activities"])
    df["week_start"] = df["date"].dt.to_period("W-SUN").dt.start_time
    grouped = df.groupby("week_start").agg(
        distance_km=("distance_km", "sum"),
        activities=("distance_km", "size"),
    )
    return grouped.reset_index()
