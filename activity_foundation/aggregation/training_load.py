"""
Traffic-light training load reports.

Each analysis takes already-selected windows of classified activities and is
independent of the others. An empty window is a yellow "no data" verdict,
never an error.
"""
from __future__ import annotations

from datetime import datetime
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from ..config import LONG_ACTIVITY_SHARE_OF_WEEKLY
from ..models.context import AnalysisContext
from ..models.types import (
    GREEN,
    INTENSITY_EFFORT,
    RACE_EFFORT,
    RED,
    YELLOW,
    Z2,
    Activity,
    Classification,
    LoadReport,
)
from ..recognition.classify import classify_many
from .summary import activities_in_range, average_weekly_distance, total_distance

Classified = Sequence[Tuple[Activity, Classification]]

HARD_CATEGORIES = (INTENSITY_EFFORT, RACE_EFFORT)


def _count(pairs: Classified, *categories: str) -> int:
    return sum(1 for _, c in pairs if c.category in categories)


def _days_ago(date: datetime, as_of: Optional[datetime]) -> int:
    return max(0, ((as_of or datetime.now()) - date).days)


def analyze_recovery(class7: Classified) -> LoadReport:
    """Easy vs high-intensity balance over the last 7 days."""
    metric = "Recovery & Rest"
    high = _count(class7, *HARD_CATEGORIES)
    z2 = _count(class7, Z2)
    total = len(class7)
    values = {"total": total, "z2": z2, "high_intensity": high}

    if total == 0:
        return LoadReport(YELLOW, "No activities recorded in the last 7 days.", metric, values)
    if high >= 4:
        return LoadReport(
            RED,
            f"{high} high-intensity sessions in 7 days with only {z2} easy sessions. High training stress detected.",
            metric,
            values,
        )
    if high == 3 and z2 < 2:
        return LoadReport(
            YELLOW,
            f"{high} high-intensity sessions with limited easy training ({z2} Z2). Recovery may be insufficient.",
            metric,
            values,
        )
    if total >= 6 and z2 < 3:
        return LoadReport(
            YELLOW,
            f"{total} activities in 7 days but only {z2} easy efforts. Volume is high with limited recovery.",
            metric,
            values,
        )
    if z2 >= total * 0.6:
        return LoadReport(
            GREEN,
            f"Good recovery balance: {z2} easy out of {total} total ({z2 / total * 100:.0f}% easy).",
            metric,
            values,
        )
    return LoadReport(
        GREEN,
        f"{total} activities in the last week with {high} high-intensity sessions. Training load appears manageable.",
        metric,
        values,
    )


def analyze_intensity_distribution(class28: Classified) -> LoadReport:
    """80/20 check over the last 28 days."""
    metric = "Intensity Distribution (28 days)"
    total = len(class28)
    z2 = _count(class28, Z2)
    intensity = _count(class28, INTENSITY_EFFORT)
    race = _count(class28, RACE_EFFORT)
    z2_pct = z2 / total * 100 if total else 0.0
    hard_pct = (intensity + race) / total * 100 if total else 0.0
    values = {"total": total, "z2_pct": z2_pct, "hard_pct": hard_pct}

    if total == 0:
        return LoadReport(YELLOW, "No activities in the last 28 days. Training consistency is very low.", metric, values)
    if z2_pct < 50 and hard_pct > 40:
        return LoadReport(
            RED,
            f"Training is heavily skewed toward intensity: {hard_pct:.0f}% hard vs {z2_pct:.0f}% easy. "
            "Risk of overtraining and injury.",
            metric,
            values,
        )
    if z2_pct < 60 and hard_pct > 30:
        return LoadReport(
            YELLOW,
            f"Intensity distribution: {z2_pct:.0f}% easy, {hard_pct:.0f}% hard. Below the recommended 80/20 split.",
            metric,
            values,
        )
    if z2_pct >= 75:
        z2_km = sum(a.distance for a, c in class28 if c.category == Z2)
        hard_km = sum(a.distance for a, c in class28 if c.category in HARD_CATEGORIES)
        return LoadReport(
            GREEN,
            f"Excellent polarization: {z2_pct:.0f}% easy ({z2_km:.1f} km), {hard_pct:.0f}% hard ({hard_km:.1f} km).",
            metric,
            values,
        )
    return LoadReport(
        GREEN,
        f"Balanced distribution over {total} activities: {z2} easy, {intensity} intensity, {race} race efforts. "
        f"Total: {sum(a.distance for a, _ in class28):.1f} km.",
        metric,
        values,
    )


def volume_change_pct(dist7: float, dist14: float) -> float:
    """Change of the last week against the two-week weekly average, in percent."""
    prior = dist14 / 2
    if prior <= 0:
        return 0.0
    return (dist7 - prior) / prior * 100


def analyze_volume(dist7: float, dist14: float, dist28: float = 0.0) -> LoadReport:
    """10 %-rule style check on weekly distance."""
    metric = "Volume Progression"
    change = volume_change_pct(dist7, dist14)
    prior = dist14 / 2
    values = {"dist7": dist7, "dist14": dist14, "dist28": dist28, "change_pct": change}

    if dist7 == 0:
        return LoadReport(YELLOW, "No volume in the last 7 days.", metric, values)
    if change > 30:
        return LoadReport(
            RED,
            f"Volume increased {change:.0f}% from previous weeks ({dist7:.1f} km vs {prior:.1f} km). "
            "Exceeds the 10% rule significantly.",
            metric,
            values,
        )
    if change > 15:
        return LoadReport(
            YELLOW,
            f"Volume increased {change:.0f}% this week ({dist7:.1f} km vs {prior:.1f} km avg). Moderate increase detected.",
            metric,
            values,
        )
    if change < -40:
        return LoadReport(
            YELLOW,
            f"Volume decreased {abs(change):.0f}% ({dist7:.1f} km this week vs {prior:.1f} km average). "
            "Significant drop in training load.",
            metric,
            values,
        )
    return LoadReport(
        GREEN,
        f"Consistent weekly volume: {dist7:.1f} km last 7 days, {dist28 / 4:.1f} km average per week over 28 days.",
        metric,
        values,
    )


def analyze_long_runs(
    activities28: Iterable[Activity], avg_weekly: float, as_of: Optional[datetime] = None
) -> LoadReport:
    """Long-run frequency over 28 days; long means over half the weekly average."""
    metric = "Long Run Frequency"
    long_runs = [
        a for a in activities28 if a.sport == "run" and a.distance > LONG_ACTIVITY_SHARE_OF_WEEKLY * avg_weekly
    ]
    count = len(long_runs)
    days_since = min((_days_ago(a.date, as_of) for a in long_runs), default=28)
    values = {"long_runs": count, "days_since_last": days_since, "avg_weekly": avg_weekly}

    if count == 0:
        return LoadReport(
            YELLOW,
            f"No long runs (>half the weekly average) in the last 28 days. Last long run was {days_since}+ days ago.",
            metric,
            values,
        )
    if count >= 4:
        return LoadReport(YELLOW, f"{count} long runs in 28 days. High frequency may impact recovery.", metric, values)
    if days_since <= 10:
        return LoadReport(
            GREEN,
            f"{count} long run(s) in last 28 days. Most recent: {days_since} days ago. Consistent endurance training.",
            metric,
            values,
        )
    return LoadReport(GREEN, f"{count} long run(s) completed. Last long run: {days_since} days ago.", metric, values)


def analyze_race_efforts(class7: Classified, class14: Classified, class28: Classified) -> LoadReport:
    """Race-effort frequency over 7/14/28-day windows."""
    metric = "Race Effort Frequency"
    race7 = _count(class7, RACE_EFFORT)
    race14 = _count(class14, RACE_EFFORT)
    race28 = _count(class28, RACE_EFFORT)
    values = {"race7": race7, "race14": race14, "race28": race28, "total7": len(class7)}

    if race7 >= 3:
        return LoadReport(
            RED, f"{race7} race efforts in 7 days. Very high anaerobic stress with elevated injury risk.", metric, values
        )
    if race7 == 2 and len(class7) <= 4:
        return LoadReport(
            YELLOW,
            f"{race7} race efforts out of {len(class7)} activities this week. High proportion of maximal efforts.",
            metric,
            values,
        )
    if race14 >= 4:
        return LoadReport(
            YELLOW, f"{race14} race efforts in the last 14 days. Consider spacing out maximal efforts.", metric, values
        )
    if race28 == 0:
        return LoadReport(
            GREEN, "No race efforts in the last 28 days. Training focused on aerobic development.", metric, values
        )
    if race28 <= 3:
        return LoadReport(
            GREEN, f"{race28} race effort(s) in 28 days. Appropriate frequency for high-intensity work.", metric, values
        )
    return LoadReport(
        YELLOW, f"{race28} race efforts in 28 days. High frequency of maximal efforts detected.", metric, values
    )


def analyze(
    activities: Iterable[Activity],
    context: AnalysisContext,
    as_of: Optional[datetime] = None,
    sport: Optional[str] = "run",
) -> Dict[str, LoadReport]:
    """Run all five analyses over the windows ending at `as_of`.

    Long-run frequency always looks at runs alone, against the run-only
    weekly average, whatever `sport` selects for the other analyses.
    """
    activities = list(activities)
    selected: List[Activity] = [a for a in activities if sport is None or a.sport == sport]
    avg_weekly = average_weekly_distance(selected, as_of)
    runs = [a for a in activities if a.sport == "run"]

    last28 = activities_in_range(selected, 28, as_of)
    class28 = classify_many(last28, context, avg_weekly)
    # Windows nest, so the 7 and 14 day sets reuse the 28 day classifications
    ids14 = {a.id for a in activities_in_range(last28, 14, as_of)}
    ids7 = {a.id for a in activities_in_range(last28, 7, as_of)}
    class14 = [(a, c) for a, c in class28 if a.id in ids14]
    class7 = [(a, c) for a, c in class28 if a.id in ids7]

    return {
        "recovery": analyze_recovery(class7),
        "intensity": analyze_intensity_distribution(class28),
        "volume": analyze_volume(
            total_distance(a for a, _ in class7),
            total_distance(a for a, _ in class14),
            total_distance(last28),
        ),
        "long_runs": analyze_long_runs(
            activities_in_range(runs, 28, as_of), average_weekly_distance(runs, as_of), as_of
        ),
        "race_efforts": analyze_race_efforts(class7, class14, class28),
    }
