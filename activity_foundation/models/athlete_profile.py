from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict

from .context import AnalysisContext, AthleteSettings, InvalidSettingError, ZoneConfig

logger = logging.getLogger(__name__)

PROFILE_FILENAME = "profile.json"


def _settings_from_dict(data: Dict[str, Any]) -> AthleteSettings:
    settings = AthleteSettings()
    if "zones" in data:
        settings.set_zones(data["zones"])
    if "max_hr" in data:
        settings.set_max_hr(data["max_hr"])
    if "ftp" in data:
        settings.set_ftp(data["ftp"])
    if "resting_hr" in data:
        settings.set_resting_hr(data["resting_hr"])
    if data.get("threshold_pace") is not None:
        settings.set_threshold_pace(data["threshold_pace"])
    return settings


def load_athlete_profile(athlete_dir: Path) -> AthleteSettings:
    """Load athlete settings from profile.json in their directory."""
    athlete_dir = Path(athlete_dir)
    profile_path = athlete_dir / PROFILE_FILENAME

    if not profile_path.exists():
        settings = AthleteSettings()
        save_athlete_profile(athlete_dir, settings)
        return settings

    try:
        with open(profile_path, "r") as f:
            data = json.load(f)
        if not isinstance(data, dict):
            raise InvalidSettingError("profile must be a JSON object")
        return _settings_from_dict(data)
    except (OSError, json.JSONDecodeError, InvalidSettingError) as e:
        # Corrupt profile: fall back to defaults and overwrite it
        logger.warning("Restoring default profile in %s: %s", athlete_dir, e)
        settings = AthleteSettings(AnalysisContext(zones=ZoneConfig()))
        save_athlete_profile(athlete_dir, settings)
        return settings


def save_athlete_profile(athlete_dir: Path, settings: AthleteSettings) -> None:
    """Save athlete settings to profile.json in their directory."""
    athlete_dir = Path(athlete_dir)
    profile_path = athlete_dir / PROFILE_FILENAME
    athlete_dir.mkdir(parents=True, exist_ok=True)

    with open(profile_path, "w") as f:
        json.dump(settings.get_summary(), f, indent=2)
