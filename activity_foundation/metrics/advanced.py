from __future__ import annotations

from typing import Optional, Sequence

import numpy as np
import pandas as pd

from ..models.context import AnalysisContext
from ..models.types import Activity, PaceStream, RunningMetrics

GRADE_PACE_FACTOR = 0.035
NGP_WINDOW = 30
MIN_NGP_SAMPLES = 30
MIN_DECOUPLING_SAMPLES = 60


def grade_adjusted_pace(pace: float, grade_pct: float) -> float:
    """Pace made equivalent to flat ground; uphill grades make it faster."""
    return pace * (1 - grade_pct * GRADE_PACE_FACTOR)


def _grades(elevation: np.ndarray, distance: np.ndarray) -> np.ndarray:
    elev_change = np.diff(elevation, prepend=elevation[0])
    dist_change = np.diff(distance, prepend=distance[0])
    grade = np.zeros_like(elevation, dtype=float)
    moving = dist_change > 0
    grade[moving] = elev_change[moving] / dist_change[moving] * 100
    return grade


def normalized_graded_pace(stream: Optional[PaceStream]) -> Optional[float]:
    """NGP: grade-adjusted pace, 30-sample rolling mean, 4th-power mean, 4th root.

    Needs at least 30 samples with elevation and cumulative distance arrays.
    """
    if stream is None or stream.elevation is None or stream.distance is None:
        return None
    n = len(stream.pace)
    if n < MIN_NGP_SAMPLES or len(stream.elevation) != n or len(stream.distance) != n:
        return None
    pace = pd.Series(stream.pace, dtype=float)
    elevation = pd.Series(stream.elevation, dtype=float).ffill().bfill().to_numpy()
    distance = pd.Series(stream.distance, dtype=float).ffill().bfill().to_numpy()
    if np.isnan(elevation).any() or np.isnan(distance).any():
        return None

    gap = pace * (1 - _grades(elevation, distance) * GRADE_PACE_FACTOR)
    rolling = gap.rolling(window=NGP_WINDOW, min_periods=1).mean()
    mean_fourth = rolling.pow(4).mean(skipna=True)
    if pd.isna(mean_fourth) or mean_fourth <= 0:
        return None
    return float(np.power(mean_fourth, 0.25))


def average_pace(activity: Activity) -> Optional[float]:
    """Moving pace in min/km from distance and duration."""
    if activity.distance <= 0 or activity.duration <= 0:
        return None
    return activity.duration / 60.0 / activity.distance


def pace_variability_index(ngp: Optional[float], avg_pace: Optional[float]) -> Optional[float]:
    if ngp is None or not avg_pace:
        return None
    return ngp / avg_pace


def efficiency_factor(ngp: Optional[float], avg_hr: Optional[float]) -> Optional[float]:
    if ngp is None or not avg_hr:
        return None
    return ngp / avg_hr


def aerobic_decoupling(pace: Optional[Sequence[float]], heartrate: Optional[Sequence[float]]) -> Optional[float]:
    """Change in pace/HR efficiency from the first half to the second, in percent."""
    if not pace or not heartrate:
        return None
    n = min(len(pace), len(heartrate))
    if n < MIN_DECOUPLING_SAMPLES:
        return None
    p = np.asarray(pace[:n], dtype=float)
    hr = np.asarray(heartrate[:n], dtype=float)
    mid = n // 2
    hr1, hr2 = hr[:mid].mean(), hr[mid:].mean()
    if hr1 <= 0 or hr2 <= 0:
        return None
    ef1 = p[:mid].mean() / hr1
    ef2 = p[mid:].mean() / hr2
    if ef1 == 0:
        return None
    return round(float((ef2 - ef1) / ef1 * 100), 1)


def running_tss(duration_s: float, ngp: Optional[float], threshold_pace: Optional[float]) -> Optional[float]:
    if not duration_s or not ngp or not threshold_pace:
        return None
    intensity = threshold_pace / ngp
    return duration_s / 3600.0 * intensity ** 2 * 100


def hr_tss(
    duration_s: float, avg_hr: Optional[float], max_hr: Optional[float], resting_hr: float = 50.0
) -> Optional[float]:
    """Heart-rate TSS using heart-rate reserve as intensity."""
    if not duration_s or not avg_hr or not max_hr or max_hr <= resting_hr:
        return None
    intensity = min(1.0, max(0.0, (avg_hr - resting_hr) / (max_hr - resting_hr)))
    return duration_s / 3600.0 * intensity ** 2 * 100


def average_cadence(cadence: Optional[Sequence[float]]) -> Optional[float]:
    if not cadence:
        return None
    values = [c for c in cadence if c is not None]
    if not values:
        return None
    return float(round(sum(values) / len(values)))


def average_stride_length(distance_m: Optional[float], total_steps: Optional[int]) -> Optional[float]:
    if not distance_m or not total_steps:
        return None
    return round(distance_m / total_steps, 2)


def cadence_category(cadence: Optional[float]) -> str:
    if not cadence:
        return "Unknown"
    if cadence < 160:
        return "Low (Consider increasing)"
    if cadence < 170:
        return "Below Average"
    if cadence < 180:
        return "Good"
    if cadence < 190:
        return "Excellent"
    return "Elite"


def decoupling_category(decoupling: Optional[float]) -> str:
    if decoupling is None:
        return "Unknown"
    if decoupling < 5:
        return "Excellent (Good aerobic base)"
    if decoupling < 10:
        return "Good"
    if decoupling < 15:
        return "Fair (Some fatigue)"
    return "Poor (Significant fatigue)"


def calculate_running_metrics(
    activity: Activity, context: AnalysisContext, total_steps: Optional[int] = None
) -> RunningMetrics:
    """Every running metric the activity's data supports; the rest stay None."""
    metrics = RunningMetrics()
    stream = activity.pace_stream
    avg_pace = average_pace(activity)
    avg_hr = activity.avg_hr
    if avg_hr is None and activity.hr_stream is not None and activity.hr_stream.heartrate:
        avg_hr = float(np.mean(activity.hr_stream.heartrate))

    if stream is not None and stream.pace:
        metrics.ngp = normalized_graded_pace(stream)
        metrics.pvi = pace_variability_index(metrics.ngp, avg_pace)
        metrics.ef = efficiency_factor(metrics.ngp, avg_hr)
        metrics.rtss = running_tss(activity.duration, metrics.ngp, context.threshold_pace)

    if stream is not None and activity.hr_stream is not None:
        metrics.decoupling_pct = aerobic_decoupling(stream.pace, activity.hr_stream.heartrate)
        if metrics.decoupling_pct is not None:
            metrics.decoupling_category = decoupling_category(metrics.decoupling_pct)

    # hrTSS only stands in when rTSS is unavailable
    if metrics.rtss is None:
        metrics.hr_tss = hr_tss(activity.duration, avg_hr, context.max_hr, context.resting_hr)

    metrics.avg_cadence = average_cadence(activity.cadence)
    if metrics.avg_cadence:
        metrics.cadence_category = cadence_category(metrics.avg_cadence)
    metrics.avg_stride_length_m = average_stride_length(activity.distance * 1000.0, total_steps)
    return metrics
