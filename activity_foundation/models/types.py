from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Optional, Union

from ..config import Z1_FRACTION_OF_Z2

# Training categories
Z2 = "Z2"
INTENSITY_EFFORT = "Intensity Effort"
RACE_EFFORT = "Race Effort"
MIXED_EFFORT = "Mixed Effort"

CATEGORIES = (Z2, INTENSITY_EFFORT, RACE_EFFORT, MIXED_EFFORT)

# Data availability tags
DATA_NONE = "none"
DATA_BASIC = "basic"
DATA_DETAILED = "detailed"

# Traffic-light statuses
GREEN = "green"
YELLOW = "yellow"
RED = "red"


@dataclass
class HRStream:
    heartrate: List[float]
    time: List[float]


@dataclass
class PaceStream:
    pace: List[float]  # min/km
    time: List[float]
    elevation: Optional[List[float]] = None  # m
    distance: Optional[List[float]] = None  # m, cumulative


@dataclass
class PowerStream:
    watts: List[float]
    time: List[float]


@dataclass(frozen=True)
class Activity:
    """One run, ride or swim in the shared normalized shape."""
    id: str
    date: datetime
    sport: str = "run"  # "run", "ride" or "swim"
    distance: float = 0.0  # km
    duration: float = 0.0  # s
    avg_hr: Optional[float] = None
    max_hr: Optional[float] = None
    avg_watts: Optional[float] = None
    max_watts: Optional[float] = None
    hr_stream: Optional[HRStream] = None
    pace_stream: Optional[PaceStream] = None
    power_stream: Optional[PowerStream] = None
    cadence: Optional[List[float]] = None
    source: str = "unknown"
    filename: Optional[str] = None


@dataclass(frozen=True)
class NoData:
    kind: str = DATA_NONE


@dataclass(frozen=True)
class BasicData:
    avg: float
    max: float
    kind: str = DATA_BASIC


@dataclass(frozen=True)
class DetailedData:
    values: List[float]
    time: List[float]
    kind: str = DATA_DETAILED


SeriesData = Union[NoData, BasicData, DetailedData]


@dataclass(frozen=True)
class ZoneBoundaries:
    """Absolute zone upper bounds (bpm or watts)."""
    z2_upper: float
    z3_upper: float
    z4_upper: float
    z5_upper: float
    z1_upper: Optional[float] = None

    @property
    def recovery_upper(self) -> float:
        if self.z1_upper is not None:
            return self.z1_upper
        return self.z2_upper * Z1_FRACTION_OF_Z2

    def uppers(self) -> List[float]:
        return [self.recovery_upper, self.z2_upper, self.z3_upper, self.z4_upper, self.z5_upper]


@dataclass
class Distribution:
    percent_z1: float
    percent_z2: float
    percent_z3: float
    percent_z4: float
    percent_z5: float
    percent_z6: float
    avg: float
    max: float
    min: float
    total_data_points: int
    values: List[float] = field(default_factory=list)

    def percentages(self) -> List[float]:
        return [self.percent_z1, self.percent_z2, self.percent_z3, self.percent_z4, self.percent_z5, self.percent_z6]


@dataclass
class ZoneDistributionSummary:
    percentages: Dict[str, float]
    distances: Dict[str, float]
    total_data_points: float
    activities_analyzed: int
    activities_with_detailed: int


@dataclass
class Classification:
    category: str
    is_long: bool
    data_type: str
    tendency: Optional[str] = None
    distribution: Optional[Distribution] = None

    @property
    def label(self) -> str:
        if self.tendency:
            return f"{self.category} (→ {self.tendency})"
        return self.category


@dataclass
class IntervalResult:
    is_interval: bool
    intervals: int = 0
    details: Optional[str] = None
    coefficient_of_variation: float = 0.0
    workout_type: str = "none"  # structured-intervals, fartlek-intervals, none
    pattern_subtype: Optional[str] = None  # equal, mixed
    reason: Optional[str] = None
    core_start: Optional[int] = None
    core_end: Optional[int] = None
    avg_fast_pace: Optional[float] = None
    avg_slow_pace: Optional[float] = None


@dataclass
class Segment:
    start: int
    end: int
    duration_s: float
    avg_pace: float
    avg_speed: float
    label: str  # "fast" or "slow"


@dataclass
class LoadReport:
    status: str
    message: str
    metric: str
    values: Dict[str, float] = field(default_factory=dict)


@dataclass
class RunningMetrics:
    ngp: Optional[float] = None
    pvi: Optional[float] = None
    ef: Optional[float] = None
    decoupling_pct: Optional[float] = None
    decoupling_category: Optional[str] = None
    rtss: Optional[float] = None
    hr_tss: Optional[float] = None
    avg_cadence: Optional[float] = None
    cadence_category: Optional[str] = None
    avg_stride_length_m: Optional[float] = None


@dataclass
class PowerMetrics:
    normalized_power_w: Optional[float] = None
    intensity_factor_if: Optional[float] = None
    if_category: Optional[str] = None
    training_stress_score_tss: Optional[float] = None
    tss_category: Optional[str] = None
    variability_index_vi: Optional[float] = None
    work_kj: Optional[float] = None
    avg_wkg: Optional[float] = None
    np_wkg: Optional[float] = None
    hr_tss: Optional[float] = None
