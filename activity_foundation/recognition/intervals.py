from __future__ import annotations

import logging
from typing import List, Optional, Tuple

import numpy as np
import pandas as pd

from ..config import PACE_VALID_RANGE
from ..models.types import Activity, IntervalResult, Segment

logger = logging.getLogger(__name__)

MIN_PACE_SAMPLES = 10
MIN_CORE_SAMPLES = 10

# Warmup / cooldown search
EDGE_SEARCH_FRACTION = 0.4
STABLE_RATIO_RANGE = (0.85, 1.15)
STABLE_SAMPLES = 5
ACCELERATION_DELTA = -0.05
SLOWING_DELTA = 0.03
SLOWING_RATIO = 1.08
MIDDLE_SECTION = (0.3, 0.7)

# Segmentation
THRESHOLD_STD_FACTOR = 0.4
MIN_SEGMENT_DURATION_S = 30.0
MIN_SEGMENT_SAMPLES = 3
MIN_SPEED_SEPARATION = 0.06

# Decision and pattern
CV_THRESHOLD = 0.12
STRUCTURED_DURATION_CV = 0.35
EQUAL_DURATION_TOLERANCE = 0.2


def format_pace(pace: Optional[float]) -> str:
    """Format min/km as ``m:ss/km``."""
    if pace is None or not np.isfinite(pace) or pace <= 0:
        return "-"
    minutes = int(pace)
    seconds = int(round((pace - minutes) * 60))
    if seconds == 60:
        minutes += 1
        seconds = 0
    return f"{minutes}:{seconds:02d}/km"


def _cv(values) -> float:
    arr = np.asarray(values, dtype=float)
    if arr.size == 0:
        return 0.0
    mean = arr.mean()
    if mean == 0:
        return 0.0
    return float(arr.std() / mean)


def _valid_paces(activity: Activity) -> Tuple[np.ndarray, Optional[np.ndarray]]:
    stream = activity.pace_stream
    if stream is None or not stream.pace:
        return np.array([]), None
    pace = np.asarray(stream.pace, dtype=float)
    time = np.asarray(stream.time, dtype=float) if stream.time is not None and len(stream.time) == len(pace) else None
    low, high = PACE_VALID_RANGE
    mask = np.isfinite(pace) & (pace > low) & (pace < high)
    return pace[mask], (time[mask] if time is not None else None)


def _time_axis(activity: Activity, n: int, stream_time: Optional[np.ndarray]) -> np.ndarray:
    if stream_time is not None and len(stream_time) == n and np.all(np.isfinite(stream_time)):
        return stream_time
    if activity.duration and activity.duration > 0 and n > 1:
        return np.arange(n) * (activity.duration / (n - 1))
    return np.arange(n, dtype=float)


def _moving_average(pace: np.ndarray) -> np.ndarray:
    window = max(5, len(pace) // 20)
    return pd.Series(pace).rolling(window=window, center=True, min_periods=1).mean().to_numpy()


def _relative_delta(ma: np.ndarray) -> np.ndarray:
    delta = np.zeros_like(ma)
    prev = ma[:-1]
    with np.errstate(divide="ignore", invalid="ignore"):
        delta[1:] = np.where(prev > 0, (ma[1:] - prev) / prev, 0.0)
    return delta


def _find_warmup_end(ma: np.ndarray, overall_mean: float) -> int:
    """First point where pace settles near the overall mean and stops accelerating."""
    n = len(ma)
    window = max(5, n // 20)
    limit = int(n * EDGE_SEARCH_FRACTION)
    delta = _relative_delta(ma)
    low, high = STABLE_RATIO_RANGE
    stable = 0
    for i in range(window, limit):
        ratio = ma[i] / overall_mean
        if low <= ratio <= high and delta[i] > ACCELERATION_DELTA:
            stable += 1
            if stable >= STABLE_SAMPLES:
                return max(0, i - STABLE_SAMPLES)
        else:
            stable = 0
    return 0


def _find_cooldown_start(ma: np.ndarray) -> int:
    """Start of the trailing run of slowing samples, or len(ma) if there is none."""
    n = len(ma)
    mid = ma[int(n * MIDDLE_SECTION[0]):int(n * MIDDLE_SECTION[1])]
    mid_mean = float(mid.mean()) if mid.size else float(ma.mean())
    delta = _relative_delta(ma)
    floor = int(n * (1 - EDGE_SEARCH_FRACTION))
    start = n
    for i in range(n - 1, floor - 1, -1):
        slowing = delta[i] > SLOWING_DELTA or (mid_mean > 0 and ma[i] / mid_mean > SLOWING_RATIO)
        if not slowing:
            break
        start = i
    if n - start >= STABLE_SAMPLES:
        return start
    return n


def _segment(pace: np.ndarray, time: np.ndarray, offset: int = 0) -> List[Segment]:
    """Split into runs above/below the speed threshold and keep the long ones."""
    speed = 1.0 / pace
    threshold = speed.mean() + THRESHOLD_STD_FACTOR * speed.std()
    is_fast = speed > threshold

    segments: List[Segment] = []
    start = 0
    for i in range(1, len(pace) + 1):
        if i < len(pace) and is_fast[i] == is_fast[start]:
            continue
        end = i - 1
        count = end - start + 1
        duration = float(time[end] - time[start])
        if duration >= MIN_SEGMENT_DURATION_S and count >= MIN_SEGMENT_SAMPLES:
            segments.append(
                Segment(
                    start=start + offset,
                    end=end + offset,
                    duration_s=duration,
                    avg_pace=float(pace[start:end + 1].mean()),
                    avg_speed=float(speed[start:end + 1].mean()),
                    label="fast" if is_fast[start] else "slow",
                )
            )
        start = i
    return segments


def _pattern(fast: List[Segment], slow: List[Segment]) -> Tuple[str, str]:
    fast_dur = [s.duration_s for s in fast]
    slow_dur = [s.duration_s for s in slow]
    structured = _cv(fast_dur) <= STRUCTURED_DURATION_CV and _cv(slow_dur) <= STRUCTURED_DURATION_CV
    workout_type = "structured-intervals" if structured else "fartlek-intervals"

    median = float(np.median(fast_dur)) if fast_dur else 0.0
    equal = median > 0 and all(abs(d - median) / median <= EQUAL_DURATION_TOLERANCE for d in fast_dur)
    return workout_type, "equal" if equal else "mixed"


def _not_interval(reason: str, cv: float = 0.0, **kwargs) -> IntervalResult:
    logger.debug("Not an interval session: %s", reason)
    return IntervalResult(is_interval=False, coefficient_of_variation=cv, reason=reason, **kwargs)


def detect_interval(activity: Activity) -> IntervalResult:
    """Decide whether a pace stream shows structured fast/slow repetitions.

    Warmup and cooldown are trimmed first, then the core is segmented on
    speed against ``mean + 0.4 * std``. Runs whose fast and slow segments
    differ by less than 6 % in speed are treated as steady state.
    """
    pace, stream_time = _valid_paces(activity)
    n = len(pace)
    if n < MIN_PACE_SAMPLES:
        return _not_interval(f"Only {n} valid pace points (need at least {MIN_PACE_SAMPLES})")

    time = _time_axis(activity, n, stream_time)
    ma = _moving_average(pace)
    core_start = _find_warmup_end(ma, float(pace.mean()))
    core_end = _find_cooldown_start(ma)
    logger.debug("Activity %s core section %d-%d of %d", activity.id, core_start, core_end, n)

    core = pace[core_start:core_end]
    if len(core) < MIN_CORE_SAMPLES:
        return _not_interval(
            "Core section too short after removing warmup/cooldown", core_start=core_start, core_end=core_end
        )

    cv = _cv(core)
    segments = _segment(core, time[core_start:core_end], offset=core_start)
    fast = [s for s in segments if s.label == "fast"]
    slow = [s for s in segments if s.label == "slow"]

    if fast and slow:
        fast_speed = float(np.mean([s.avg_speed for s in fast]))
        slow_speed = float(np.mean([s.avg_speed for s in slow]))
        if abs(fast_speed - slow_speed) / slow_speed < MIN_SPEED_SEPARATION:
            return _not_interval(
                f"Steady pace: fast/slow speed differ by {abs(fast_speed - slow_speed) / slow_speed * 100:.1f}%",
                cv=cv,
                core_start=core_start,
                core_end=core_end,
            )

    fast_count = len(fast)
    # Second clause repeats its condition; kept as the established decision rule (see DESIGN.md)
    is_interval = (cv > CV_THRESHOLD and fast_count >= 2) or (fast_count >= 3 and fast_count >= 3)

    avg_fast = float(np.mean([s.avg_pace for s in fast])) if fast else None
    avg_slow = float(np.mean([s.avg_pace for s in slow])) if slow else None
    if not is_interval:
        return _not_interval(
            f"{fast_count} fast segments with CV {cv:.3f}",
            cv=cv,
            intervals=fast_count,
            core_start=core_start,
            core_end=core_end,
            avg_fast_pace=avg_fast,
            avg_slow_pace=avg_slow,
        )

    workout_type, subtype = _pattern(fast, slow)
    details = (
        f"{fast_count} intervals detected ({workout_type}, {subtype}). "
        f"Fast: {format_pace(avg_fast)}, Slow: {format_pace(avg_slow)}"
    )
    logger.debug("Activity %s: %s", activity.id, details)
    return IntervalResult(
        is_interval=True,
        intervals=fast_count,
        details=details,
        coefficient_of_variation=cv,
        workout_type=workout_type,
        pattern_subtype=subtype,
        core_start=core_start,
        core_end=core_end,
        avg_fast_pace=avg_fast,
        avg_slow_pace=avg_slow,
    )
