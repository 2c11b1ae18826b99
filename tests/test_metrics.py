from dataclasses import replace

import pytest

from activity_foundation.metrics.advanced import (
    aerobic_decoupling,
    average_cadence,
    average_stride_length,
    cadence_category,
    calculate_running_metrics,
    decoupling_category,
    grade_adjusted_pace,
    hr_tss,
    normalized_graded_pace,
    running_tss,
)
from activity_foundation.metrics.power import (
    calculate_power_metrics,
    estimate_ftp,
    estimate_ftp_from_stream,
    if_category,
    intensity_factor,
    normalized_power,
    training_stress_score,
    tss_category,
)
from activity_foundation.models.context import AnalysisContext
from activity_foundation.models.types import PaceStream


def _flat_stream(n=60, pace=5.0):
    return PaceStream(
        pace=[pace] * n,
        time=list(range(n)),
        elevation=[100.0] * n,
        distance=[i * 3.3 for i in range(n)],
    )


def test_grade_adjusted_pace():
    assert grade_adjusted_pace(5.0, 0) == 5.0
    assert grade_adjusted_pace(5.0, 10) == pytest.approx(3.25)
    assert grade_adjusted_pace(5.0, -10) == pytest.approx(6.75)


def test_normalized_graded_pace_flat_equals_pace():
    assert normalized_graded_pace(_flat_stream()) == pytest.approx(5.0)


def test_normalized_graded_pace_requires_elevation_and_samples():
    stream = _flat_stream()
    assert normalized_graded_pace(PaceStream(pace=stream.pace, time=stream.time)) is None
    assert normalized_graded_pace(_flat_stream(n=20)) is None
    assert normalized_graded_pace(None) is None


def test_aerobic_decoupling():
    assert aerobic_decoupling([5.0] * 30, [140] * 30) is None
    assert aerobic_decoupling([5.0] * 100, [140] * 100) == 0.0
    assert aerobic_decoupling([5.0] * 100, [140] * 50 + [154] * 50) == pytest.approx(-9.1)


def test_tss_variants():
    assert running_tss(3600, 5.0, 5.0) == pytest.approx(100.0)
    assert running_tss(3600, 5.0, None) is None
    assert hr_tss(3600, 150, 190, 50) == pytest.approx(100 * (100 / 140) ** 2)
    assert hr_tss(3600, 150, 40, 50) is None


def test_cadence_and_stride():
    assert average_cadence([170, 172, None, 174]) == 172.0
    assert average_cadence([]) is None
    assert average_stride_length(1000, 800) == 1.25
    assert cadence_category(155) == "Low (Consider increasing)"
    assert cadence_category(175) == "Good"
    assert cadence_category(195) == "Elite"


def test_decoupling_category():
    assert decoupling_category(3) == "Excellent (Good aerobic base)"
    assert decoupling_category(12) == "Fair (Some fatigue)"
    assert decoupling_category(None) == "Unknown"


def test_running_metrics_with_threshold_pace(make_activity):
    activity = make_activity(distance=10.0, duration=3000, hr=[150] * 60, cadence=[170, 180])
    activity = replace(activity, pace_stream=_flat_stream())
    metrics = calculate_running_metrics(activity, AnalysisContext(threshold_pace=5.0), total_steps=8000)

    assert metrics.ngp == pytest.approx(5.0)
    assert metrics.pvi == pytest.approx(1.0)
    assert metrics.ef == pytest.approx(5.0 / 150)
    assert metrics.decoupling_pct == 0.0
    assert metrics.decoupling_category == "Excellent (Good aerobic base)"
    assert metrics.rtss == pytest.approx(3000 / 3600 * 100)
    assert metrics.hr_tss is None
    assert metrics.avg_cadence == 175.0
    assert metrics.avg_stride_length_m == 1.25


def test_running_metrics_fall_back_to_hr_tss(make_activity, context):
    metrics = calculate_running_metrics(make_activity(duration=3600, hr=[150] * 10), context)
    assert metrics.ngp is None
    assert metrics.rtss is None
    assert metrics.hr_tss == pytest.approx(100 * (100 / 140) ** 2)


def test_normalized_power():
    assert normalized_power([200] * 60) == pytest.approx(200.0)
    assert normalized_power([200] * 29) is None
    assert normalized_power(None) is None


def test_power_helpers():
    assert intensity_factor(200, 200) == 1.0
    assert training_stress_score(3600, 200, 1.0, 200) == pytest.approx(100.0)
    assert if_category(0.6) == "Recovery"
    assert if_category(0.9) == "Threshold"
    assert if_category(1.2) == "Anaerobic"
    assert tss_category(120) == "Low"
    assert tss_category(500) == "Very High"


def test_estimate_ftp_from_stream():
    assert estimate_ftp_from_stream([300] * 1200) == 285.0
    assert estimate_ftp_from_stream([250] * 300) == 190.0
    assert estimate_ftp_from_stream([250] * 100) is None


def test_estimate_ftp_prefers_twenty_minute_efforts(make_activity):
    activities = [
        make_activity(id="long", sport="ride", watts=[200] * 1200),
        make_activity(id="short", sport="ride", watts=[400] * 300),
    ]
    assert estimate_ftp(activities) == 190.0


def test_estimate_ftp_discards_implausible_values(make_activity, caplog):
    assert estimate_ftp([make_activity(sport="ride", watts=[700] * 1200)]) is None
    assert "outside the valid range" in caplog.text
    assert estimate_ftp([make_activity(sport="ride")]) is None


def test_calculate_power_metrics(make_activity, context):
    ride = make_activity(sport="ride", duration=3600, watts=[200] * 60, avg_hr=140.0)
    metrics = calculate_power_metrics(ride, context, weight_kg=80)

    assert metrics.normalized_power_w == pytest.approx(200.0)
    assert metrics.intensity_factor_if == pytest.approx(1.0)
    assert metrics.if_category == "VO2 Max"
    assert metrics.training_stress_score_tss == pytest.approx(100.0)
    assert metrics.tss_category == "Low"
    assert metrics.variability_index_vi == pytest.approx(1.0)
    assert metrics.work_kj == pytest.approx(720.0)
    assert metrics.avg_wkg == pytest.approx(2.5)
    assert metrics.hr_tss is None


def test_power_metrics_without_power_use_hr_tss(make_activity, context):
    metrics = calculate_power_metrics(make_activity(sport="ride", duration=3600, avg_hr=150.0), context)
    assert metrics.normalized_power_w is None
    assert metrics.hr_tss == pytest.approx(100 * (100 / 140) ** 2)
