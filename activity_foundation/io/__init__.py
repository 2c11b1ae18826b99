"""Loaders that turn exports, TCX/FIT files and API payloads into activities."""

from .fit_loader import load_fit_activity, load_fit_to_dataframe
from .normalize import normalize_activity
from .strava_api import activity_from_strava
from .strava_export import ActivityLoadError, load_export
from .tcx import TCXParseError, parse_tcx

__all__ = [
    "normalize_activity",
    "load_export",
    "ActivityLoadError",
    "parse_tcx",
    "TCXParseError",
    "load_fit_to_dataframe",
    "load_fit_activity",
    "activity_from_strava",
]
