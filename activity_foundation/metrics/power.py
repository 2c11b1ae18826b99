from __future__ import annotations

import logging
from typing import Iterable, Optional

import numpy as np
import pandas as pd

from ..config import FTP_VALID_RANGE
from ..models.context import AnalysisContext
from ..models.types import Activity, PowerMetrics, PowerStream
from .advanced import hr_tss

logger = logging.getLogger(__name__)

NP_WINDOW = 30
FTP_20MIN_WINDOW = 1200
FTP_5MIN_WINDOW = 300
FTP_20MIN_FACTOR = 0.95
FTP_5MIN_FACTOR = 0.76


def _series(stream) -> pd.Series:
    if stream is None:
        return pd.Series(dtype=float)
    values = stream.watts if isinstance(stream, PowerStream) else stream
    return pd.Series(list(values), dtype=float).dropna()


def normalized_power(stream) -> Optional[float]:
    """Normalized Power using a 30-sample rolling average of power, ^4, mean, 4th root.

    Requires 30 valid samples; shorter streams give None rather than a mean
    of partial windows.
    """
    ps = _series(stream)
    if len(ps) < NP_WINDOW:
        return None
    rolling = ps.rolling(window=NP_WINDOW, min_periods=NP_WINDOW).mean()
    mean_fourth = rolling.pow(4).mean(skipna=True)
    if pd.isna(mean_fourth):
        return None
    return float(np.power(mean_fourth, 1.0 / 4.0))


def intensity_factor(np_w: Optional[float], ftp: Optional[float]) -> Optional[float]:
    if not np_w or not ftp:
        return None
    return np_w / ftp


def training_stress_score(
    duration_s: Optional[float], np_w: Optional[float], if_value: Optional[float], ftp: Optional[float]
) -> Optional[float]:
    if not duration_s or not np_w or not if_value or not ftp:
        return None
    return (duration_s * np_w * if_value) / (ftp * 3600.0) * 100.0


def variability_index(np_w: Optional[float], avg_w: Optional[float]) -> Optional[float]:
    if not np_w or not avg_w:
        return None
    return np_w / avg_w


def work_kj(avg_w: Optional[float], duration_s: Optional[float]) -> Optional[float]:
    if not avg_w or not duration_s:
        return None
    return avg_w * duration_s / 1000.0


def watts_per_kg(power_w: Optional[float], weight_kg: Optional[float]) -> Optional[float]:
    if not power_w or not weight_kg:
        return None
    return power_w / weight_kg


def if_category(if_value: Optional[float]) -> str:
    if if_value is None:
        return "Unknown"
    if if_value < 0.65:
        return "Recovery"
    if if_value < 0.75:
        return "Endurance"
    if if_value < 0.85:
        return "Tempo"
    if if_value < 0.95:
        return "Threshold"
    if if_value < 1.05:
        return "VO2 Max"
    return "Anaerobic"


def tss_category(tss: Optional[float]) -> str:
    if tss is None:
        return "Unknown"
    if tss < 150:
        return "Low"
    if tss < 300:
        return "Medium"
    if tss < 450:
        return "High"
    return "Very High"


def _peak_power(ps: pd.Series, window_s: int) -> Optional[float]:
    if len(ps) < window_s:
        return None
    rolling = ps.rolling(window=window_s, min_periods=window_s).mean()
    best = rolling.max()
    return float(best) if not pd.isna(best) and best > 0 else None


def estimate_ftp_from_stream(stream) -> Optional[float]:
    """Best 20 min x 0.95, else best 5 min x 0.76 (1 Hz samples assumed)."""
    ps = _series(stream)
    best20 = _peak_power(ps, FTP_20MIN_WINDOW)
    if best20 is not None:
        return float(round(best20 * FTP_20MIN_FACTOR))
    best5 = _peak_power(ps, FTP_5MIN_WINDOW)
    if best5 is not None:
        return float(round(best5 * FTP_5MIN_FACTOR))
    return None


def estimate_ftp(activities: Iterable[Activity]) -> Optional[float]:
    """Highest estimate across activities, preferring any 20-minute based one."""
    best20: Optional[float] = None
    best5: Optional[float] = None
    for activity in activities:
        ps = _series(activity.power_stream)
        p20 = _peak_power(ps, FTP_20MIN_WINDOW)
        p5 = _peak_power(ps, FTP_5MIN_WINDOW)
        if p20 is not None:
            est = float(round(p20 * FTP_20MIN_FACTOR))
            best20 = est if best20 is None else max(best20, est)
        if p5 is not None:
            est = float(round(p5 * FTP_5MIN_FACTOR))
            best5 = est if best5 is None else max(best5, est)
    estimate = best20 if best20 is not None else best5
    if estimate is not None and not FTP_VALID_RANGE[0] < estimate < FTP_VALID_RANGE[1]:
        logger.warning("Discarding FTP estimate %.0f W outside the valid range", estimate)
        return None
    return estimate


def calculate_power_metrics(
    activity: Activity, context: AnalysisContext, weight_kg: Optional[float] = None
) -> PowerMetrics:
    """Power metrics for one ride; hrTSS is filled when no power TSS exists."""
    metrics = PowerMetrics()
    ftp = context.ftp
    avg_w = activity.avg_watts
    ps = _series(activity.power_stream)
    if avg_w is None and not ps.empty:
        avg_w = float(ps.mean())

    if not ps.empty:
        metrics.normalized_power_w = normalized_power(ps)
        metrics.intensity_factor_if = intensity_factor(metrics.normalized_power_w, ftp)
        if metrics.intensity_factor_if is not None:
            metrics.if_category = if_category(metrics.intensity_factor_if)
            metrics.training_stress_score_tss = training_stress_score(
                activity.duration, metrics.normalized_power_w, metrics.intensity_factor_if, ftp
            )
            if metrics.training_stress_score_tss is not None:
                metrics.tss_category = tss_category(metrics.training_stress_score_tss)
        metrics.variability_index_vi = variability_index(metrics.normalized_power_w, avg_w)

    metrics.work_kj = work_kj(avg_w, activity.duration)
    metrics.avg_wkg = watts_per_kg(avg_w, weight_kg)
    metrics.np_wkg = watts_per_kg(metrics.normalized_power_w, weight_kg)

    if metrics.training_stress_score_tss is None:
        metrics.hr_tss = hr_tss(activity.duration, activity.avg_hr, context.max_hr, context.resting_hr)
    return metrics
