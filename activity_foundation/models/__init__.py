"""Typed domain objects, zone configuration and athlete settings."""

from .athlete_profile import load_athlete_profile, save_athlete_profile
from .context import (
    AnalysisContext,
    AthleteSettings,
    InvalidSettingError,
    InvalidZoneConfigError,
    ZoneConfig,
)
from .types import Activity, HRStream, PaceStream, PowerStream

__all__ = [
    "Activity",
    "HRStream",
    "PaceStream",
    "PowerStream",
    "ZoneConfig",
    "AnalysisContext",
    "AthleteSettings",
    "InvalidSettingError",
    "InvalidZoneConfigError",
    "load_athlete_profile",
    "save_athlete_profile",
]
