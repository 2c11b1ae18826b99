import json
import logging

import pytest

from activity_foundation.models.athlete_profile import PROFILE_FILENAME, load_athlete_profile, save_athlete_profile
from activity_foundation.models.context import (
    AthleteSettings,
    InvalidSettingError,
    InvalidZoneConfigError,
    ZoneConfig,
)


def test_zone_config_defaults_and_camel_case_mapping():
    assert ZoneConfig().to_dict() == {"z2_upper": 0.75, "z3_upper": 0.85, "z4_upper": 0.90, "z5_upper": 0.95}
    zones = ZoneConfig.from_mapping({"z2Upper": 0.7, "z3Upper": 0.8, "z4Upper": 0.88, "z5Upper": 0.93})
    assert zones.z4_upper == 0.88


@pytest.mark.parametrize(
    "values",
    [
        (0.85, 0.75, 0.90, 0.95),  # not ascending
        (0.75, 0.75, 0.90, 0.95),  # equal
        (0.0, 0.85, 0.90, 0.95),
        (0.75, 0.85, 0.90, 1.0),
        ("0.75", 0.85, 0.90, 0.95),
    ],
)
def test_zone_config_rejects_invalid_boundaries(values):
    with pytest.raises(InvalidZoneConfigError):
        ZoneConfig(*values)


def test_rejected_zone_update_keeps_previous_zones():
    settings = AthleteSettings()
    settings.set_zones({"z2_upper": 0.7, "z3_upper": 0.8, "z4_upper": 0.88, "z5_upper": 0.93})
    before = settings.zones

    with pytest.raises(InvalidZoneConfigError):
        settings.set_zones({"z2_upper": 0.9, "z3_upper": 0.8, "z4_upper": 0.88, "z5_upper": 0.93})
    assert settings.zones == before


def test_setting_validation():
    settings = AthleteSettings()
    with pytest.raises(InvalidSettingError):
        settings.set_max_hr(300)
    with pytest.raises(InvalidSettingError):
        settings.set_ftp(0)
    with pytest.raises(InvalidSettingError):
        settings.set_resting_hr(settings.max_hr)
    assert settings.max_hr == 190
    assert settings.ftp == 200

    settings.set_threshold_pace(4.5)
    settings.set_threshold_pace(None)
    assert settings.threshold_pace is None


def test_context_is_a_snapshot():
    settings = AthleteSettings()
    snapshot = settings.context()
    settings.set_max_hr(180)
    assert snapshot.max_hr == 190
    assert settings.context().max_hr == 180
    assert settings.context().zones_bpm().z2_upper == pytest.approx(135.0)


def test_missing_profile_is_created_with_defaults(tmp_path):
    settings = load_athlete_profile(tmp_path / "athlete")
    assert settings.max_hr == 190
    assert (tmp_path / "athlete" / PROFILE_FILENAME).exists()


def test_profile_round_trip(tmp_path):
    settings = AthleteSettings()
    settings.set_max_hr(182)
    settings.set_ftp(250)
    settings.set_zones(ZoneConfig(0.7, 0.8, 0.88, 0.93))
    save_athlete_profile(tmp_path, settings)

    loaded = load_athlete_profile(tmp_path)
    assert loaded.get_summary() == settings.get_summary()


@pytest.mark.parametrize(
    "content",
    [
        "{not json",
        json.dumps(["a", "list"]),
        json.dumps({"zones": {"z2_upper": 0.9, "z3_upper": 0.8, "z4_upper": 0.88, "z5_upper": 0.93}}),
        json.dumps({"max_hr": -5}),
    ],
)
def test_corrupt_profile_restores_defaults(tmp_path, caplog, content):
    (tmp_path / PROFILE_FILENAME).write_text(content)
    with caplog.at_level(logging.WARNING):
        settings = load_athlete_profile(tmp_path)

    assert settings.get_summary() == AthleteSettings().get_summary()
    assert "Restoring default profile" in caplog.text
    with open(tmp_path / PROFILE_FILENAME) as f:
        assert json.load(f)["max_hr"] == 190
