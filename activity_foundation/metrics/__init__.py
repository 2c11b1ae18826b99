"""Zone, distribution, running and power metrics."""

from .advanced import calculate_running_metrics
from .distribution import analyze_hr_stream, analyze_power_stream, calculate_zone_distribution
from .power import calculate_power_metrics, estimate_ftp
from .zones import get_power_zone, get_zone, get_zones_bpm

__all__ = [
    "get_zones_bpm",
    "get_zone",
    "get_power_zone",
    "analyze_hr_stream",
    "analyze_power_stream",
    "calculate_zone_distribution",
    "calculate_running_metrics",
    "calculate_power_metrics",
    "estimate_ftp",
]
