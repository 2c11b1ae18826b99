from datetime import datetime

import pytest

from activity_foundation.io.normalize import (
    normalize_activity,
    normalize_hr_stream,
    normalize_pace_stream,
    normalize_power_stream,
)
from activity_foundation.models.types import Activity, HRStream


def test_hr_stream_drops_invalid_samples_with_their_times():
    stream = normalize_hr_stream({"heartrate": [0, 120, 260, None, 130], "time": [0, 1, 2, 3, 4]})
    assert stream.heartrate == [120, 130]
    assert stream.time == [1, 4]


def test_hr_stream_records_without_time_get_indices():
    stream = normalize_hr_stream({"records": [{"heart_rate": 100}, {"heart_rate": 110}, {"heart_rate": 300}]})
    assert stream.heartrate == [100, 110]
    assert stream.time == [0, 1]


def test_hr_stream_time_length_mismatch_synthesizes_indices():
    stream = normalize_hr_stream(HRStream(heartrate=[100, 101, 102], time=[0, 5]))
    assert stream.time == [0, 1, 2]


def test_empty_or_all_invalid_streams_are_none():
    assert normalize_hr_stream(None) is None
    assert normalize_hr_stream({"heartrate": [], "time": []}) is None
    assert normalize_hr_stream({"heartrate": [0, 255], "time": [0, 1]}) is None
    assert normalize_pace_stream({"pace": [0, 25], "time": [0, 1]}) is None


def test_pace_stream_keeps_elevation_and_distance_aligned():
    stream = normalize_pace_stream(
        {"pace": [5.0, 25.0, -1.0, 6.0], "time": [0, 1, 2, 3], "altitude": [10, 11, 12, 13], "distance": [0, 3, 6, 9]}
    )
    assert stream.pace == [5.0, 6.0]
    assert stream.time == [0, 3]
    assert stream.elevation == [10, 13]
    assert stream.distance == [0, 9]


def test_power_stream_keeps_zero_watts():
    stream = normalize_power_stream({"power": [0, -5, 250], "time": [0, 1, 2]})
    assert stream.watts == [0, 250]
    assert stream.time == [0, 2]


def test_normalize_activity_accepts_camel_case_and_clamps():
    activity = normalize_activity(
        {
            "id": 12.0,
            "date": "2024-05-01T09:00:00+02:00",
            "type": "VirtualRide",
            "distance": -3,
            "duration": 3600,
            "avgHR": 0,
            "maxHR": 170,
            "hrStream": {"heartrate": [120, 125], "time": [0, 1]},
        },
        source="Strava API",
    )
    assert activity.id == "12"
    assert activity.date == datetime(2024, 5, 1, 7, 0, 0)
    assert activity.sport == "ride"
    assert activity.distance == 0.0
    assert activity.avg_hr is None
    assert activity.max_hr == 170
    assert activity.hr_stream.heartrate == [120, 125]
    assert activity.source == "Strava API"


def test_normalize_activity_defaults_sport_to_run():
    activity = normalize_activity({"id": "a", "date": "2024-05-01", "sport": "Hike"})
    assert activity.sport == "run"
    assert activity.source == "unknown"


def test_normalize_existing_activity_refilters_streams():
    raw = Activity(id="x", date=datetime(2024, 5, 1), hr_stream=HRStream(heartrate=[0, 0], time=[0, 1]), source="Cached")
    activity = normalize_activity(raw)
    assert activity.hr_stream is None
    assert activity.source == "Cached"


def test_normalize_activity_rejects_missing_id_and_bad_date():
    with pytest.raises(ValueError):
        normalize_activity({"date": "2024-05-01"})
    with pytest.raises(ValueError):
        normalize_activity({"id": 1, "date": "not a date"})
