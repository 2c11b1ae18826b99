"""Central config with the default athlete constants and analysis limits."""

from typing import Dict, Tuple

# Athlete defaults
MAX_HR_BPM: int = 190
RESTING_HR_BPM: int = 50
FTP_WATTS: int = 200

# Zone upper bounds as fractions of max HR: z2, z3, z4, z5
ZONE_FRACTIONS: Tuple[float, float, float, float] = (0.75, 0.85, 0.90, 0.95)

# Zone 1 sits below this share of the z2 upper bound
Z1_FRACTION_OF_Z2: float = 0.8

# Power zone upper bounds as fractions of FTP: z1..z5
POWER_ZONE_FRACTIONS: Tuple[float, float, float, float, float] = (0.55, 0.75, 0.90, 1.05, 1.20)

# Valid sample ranges (open intervals)
HR_VALID_RANGE: Tuple[float, float] = (0.0, 250.0)
PACE_VALID_RANGE: Tuple[float, float] = (0.0, 20.0)  # min/km
FTP_VALID_RANGE: Tuple[float, float] = (0.0, 600.0)

# Long-activity absolute minimum distance (km) on top of the relative rule
LONG_ACTIVITY_MIN_KM: Dict[str, float] = {"run": 10.0, "ride": 30.0, "swim": 0.0}
LONG_ACTIVITY_SHARE_OF_WEEKLY: float = 0.5

# Rolling window used for the weekly-average baseline
BASELINE_WINDOW_DAYS: int = 180

# Source tag given to activities restored from a local cache
CACHED_SOURCE: str = "Cached"
