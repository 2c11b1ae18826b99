import numpy as np
import pytest

from activity_foundation.metrics.distribution import (
    analyze_hr_stream,
    analyze_power_stream,
    analyze_stream,
    calculate_zone_distribution,
    hr_data,
)
from activity_foundation.metrics.zones import get_power_zone, get_zone, get_zones_bpm, zone_label
from activity_foundation.models.context import ZoneConfig
from activity_foundation.models.types import BasicData, DetailedData, NoData


def test_zone_boundaries_in_bpm():
    b = get_zones_bpm(ZoneConfig(), 190)
    assert b.z2_upper == pytest.approx(142.5)
    assert b.z3_upper == pytest.approx(161.5)
    assert b.z4_upper == pytest.approx(171.0)
    assert b.z5_upper == pytest.approx(180.5)


def test_get_zone_upper_bounds_are_inclusive():
    b = get_zones_bpm(ZoneConfig(), 190)
    assert get_zone(50, b) == 2
    assert get_zone(142.5, b) == 2
    assert get_zone(142.6, b) == 3
    assert get_zone(175, b) == 5
    assert get_zone(181, b) == 6


def test_power_zone_cut_points_are_strict():
    assert get_power_zone(109, 200) == 1
    assert get_power_zone(110, 200) == 2
    assert get_power_zone(200, 200) == 4
    assert get_power_zone(240, 200) == 6
    assert get_power_zone(200, None) is None
    assert get_power_zone(None, 200) is None


def test_zone_labels():
    zones = ZoneConfig()
    assert zone_label(1, zones, 190) == "Z1: <60% (<114 bpm)"
    assert zone_label(6, zones, 190) == "Z6: >95% (>180 bpm)"
    assert zone_label(4, zones, 200) == "Z4: 85-90% (170-180 bpm)"
    with pytest.raises(ValueError):
        zone_label(7, zones, 190)


def test_analyze_stream_without_data_is_none(context):
    assert analyze_stream(None, context.zones_bpm()) is None
    assert analyze_hr_stream([], context) is None
    assert analyze_hr_stream([float("nan")], context) is None


def test_analyze_hr_stream_buckets_every_sample(context):
    dist = analyze_hr_stream([100, 130, 150, 165, 175, 185, 142.5, 120], context)
    assert dist.total_data_points == 8
    assert dist.percent_z1 == pytest.approx(12.5)
    assert dist.percent_z2 == pytest.approx(37.5)
    for p in (dist.percent_z3, dist.percent_z4, dist.percent_z5, dist.percent_z6):
        assert p == pytest.approx(12.5)
    assert sum(dist.percentages()) == pytest.approx(100.0)
    assert dist.max == 185
    assert dist.min == 100


def test_analyze_hr_stream_ignores_invalid_samples(context):
    dist = analyze_hr_stream({"heartrate": [0, 300, 130, 130, -5, 250]}, context)
    assert dist.total_data_points == 2
    assert dist.percent_z2 == pytest.approx(100.0)
    assert dist.percent_z1 == 0.0
    assert dist.percent_z6 == 0.0

    assert analyze_hr_stream({"heartrate": [0, 0, 0]}, context) is None
    assert analyze_stream({"heartrate": [0, 0, 0]}, context.zones_bpm()) is None


def test_analyze_power_stream_keeps_zero_watts(context):
    dist = analyze_power_stream({"watts": [0, 0, -10, 300]}, context)
    assert dist.total_data_points == 3
    assert dist.percent_z1 == pytest.approx(200 / 3)
    assert dist.percent_z6 == pytest.approx(100 / 3)


def test_analyze_stream_is_repeatable(context):
    stream = {"heartrate": [100, 130, 150, 165, 175, 185, 0, 142.5]}
    first = analyze_hr_stream(stream, context)
    assert analyze_hr_stream(stream, context) == first
    assert stream["heartrate"][6] == 0


@pytest.mark.parametrize("max_hr,fractions", [(190, None), (200, (0.7, 0.8, 0.88, 0.94)), (165, (0.75, 0.85, 0.9, 0.95))])
def test_get_zone_is_monotonic(max_hr, fractions):
    zones = ZoneConfig(*fractions) if fractions else ZoneConfig()
    b = get_zones_bpm(zones, max_hr)
    zones_seen = [get_zone(hr, b) for hr in np.arange(0.0, 250.5, 0.5)]
    assert all(lo <= hi for lo, hi in zip(zones_seen, zones_seen[1:]))
    assert zones_seen[0] == 2 and zones_seen[-1] == 6


def test_get_power_zone_is_monotonic():
    zones_seen = [get_power_zone(w, 250) for w in np.arange(0.0, 500.5, 0.5)]
    assert all(lo <= hi for lo, hi in zip(zones_seen, zones_seen[1:]))
    assert zones_seen[0] == 1 and zones_seen[-1] == 6


def test_analyze_power_stream_uses_ftp(context):
    dist = analyze_power_stream({"watts": [100, 140, 170, 200, 230, 300]}, context)
    assert dist.percentages() == pytest.approx([100 / 6] * 6)


def test_hr_data_tags(make_activity):
    assert isinstance(hr_data(make_activity(hr=[120, 130])), DetailedData)
    basic = hr_data(make_activity(avg_hr=140.0, max_hr=165.0))
    assert isinstance(basic, BasicData) and basic.max == 165.0
    # An average without a max is not enough for basic data
    assert isinstance(hr_data(make_activity(avg_hr=140.0)), NoData)
    assert isinstance(hr_data(make_activity(avg_hr=140.0, max_hr=0.0)), NoData)
    assert isinstance(hr_data(make_activity()), NoData)


def test_calculate_zone_distribution_mixes_detailed_and_basic(make_activity, context):
    activities = [
        make_activity(id="a", distance=10.0, hr=[130] * 10),
        make_activity(id="b", distance=5.0, avg_hr=165.0, max_hr=170.0),
        make_activity(id="c", distance=3.0),
    ]
    summary = calculate_zone_distribution(activities, context)

    assert summary.activities_analyzed == 3
    assert summary.activities_with_detailed == 1
    assert summary.total_data_points == 10
    assert summary.percentages["z2"] == pytest.approx(100.0)
    assert summary.distances["z2"] == pytest.approx(10.0)
    assert summary.distances["z4"] == pytest.approx(5.0)
    assert sum(summary.distances.values()) == pytest.approx(15.0)


def test_calculate_zone_distribution_without_streams_has_zero_percentages(make_activity, context):
    summary = calculate_zone_distribution([make_activity(avg_hr=130.0, max_hr=150.0)], context)
    assert all(p == 0.0 for p in summary.percentages.values())
