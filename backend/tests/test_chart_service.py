from datetime import datetime, timedelta, timezone
from types import SimpleNamespace

import pytest

from hatchwatch.services.chart_service import (
    HUMIDITY,
    TEMPERATURE,
    AlertEvent,
    ChartConfig,
    Sample,
    align_alerts,
    alerts_for_channel,
    build_channel_chart,
    compute_domain,
    nearest_index,
    round_half_up,
    samples_for,
    smooth,
)
from hatchwatch.services.thresholds import Band

T0 = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)
TEMP_BAND = Band(min=37.3, max=38.3)


def at(seconds):
    return T0 + timedelta(seconds=seconds)


def test_round_half_up():
    assert round_half_up(2.5, 0) == 3
    assert round_half_up(-2.5, 0) == -2
    assert round_half_up(37.25, 1) == pytest.approx(37.3)


def test_domain_without_data_is_padded_band():
    lo, hi = compute_domain([], TEMP_BAND, pad=0.2, decimals=1)
    assert lo == pytest.approx(37.1)
    assert hi == pytest.approx(38.5)


def test_domain_covers_data_outside_band():
    lo, hi = compute_domain([36.9, None, 38.9], TEMP_BAND, pad=0.2, decimals=1)
    assert lo == pytest.approx(36.7)
    assert hi == pytest.approx(39.1)


def test_domain_ignores_nan():
    lo, hi = compute_domain([float("nan"), 55.0], Band(50, 60), pad=2.0, decimals=0)
    assert (lo, hi) == (48, 62)


def test_domain_degenerate_band_still_has_range():
    lo, hi = compute_domain([60.0], Band(60, 60), pad=2.0, decimals=0)
    assert lo < hi


def test_nearest_index_earliest_wins_ties():
    assert nearest_index([0, 10, 20], 5) == 0
    assert nearest_index([0, 10, 20], 6) == 1


def test_nearest_overlay_snaps_to_closest_sample():
    samples = [Sample(at(0), 37.0), Sample(at(60), 38.4)]
    points = align_alerts(samples, [AlertEvent(at(50), "TEMP_HIGH", "Temperature too high")])
    assert len(points) == 1
    assert points[0].x == at(60)
    assert points[0].y == 38.4
    assert points[0].label == "Temperature too high"


def test_nearest_overlay_drops_alert_on_null_sample():
    samples = [Sample(at(0), 37.0), Sample(at(60), None)]
    assert align_alerts(samples, [AlertEvent(at(55), "TEMP_HIGH")]) == []


def test_overlay_points_with_same_position_keep_last_label():
    samples = [Sample(at(0), 37.0), Sample(at(60), 38.4)]
    alerts = [AlertEvent(at(50), "TEMP_HIGH", "first"), AlertEvent(at(70), "TEMP_HIGH", "second")]
    points = align_alerts(samples, alerts)
    assert [p.label for p in points] == ["second"]


def test_overlay_label_falls_back_to_code():
    samples = [Sample(at(0), 37.0)]
    assert align_alerts(samples, [AlertEvent(at(0), "TEMP_LOW")])[0].label == "TEMP_LOW"
    assert align_alerts(samples, [AlertEvent(at(0))])[0].label == "Alert"


def test_overlay_empty_inputs():
    assert align_alerts([], [AlertEvent(at(0))]) == []
    assert align_alerts([Sample(at(0), 37.0)], []) == []
    assert align_alerts([Sample(at(0), 37.0)], [AlertEvent(at(0))], "none") == []


def test_interpolated_overlay():
    samples = [Sample(at(0), 37.0), Sample(at(60), 38.2)]
    points = align_alerts(samples, [AlertEvent(at(30), "TEMP_HIGH")], "interpolate")
    assert points[0].x == at(30)
    assert points[0].y == pytest.approx(37.6)


def test_interpolated_overlay_outside_series_uses_nearest():
    samples = [Sample(at(0), 37.0), Sample(at(60), 38.2)]
    points = align_alerts(samples, [AlertEvent(at(120), "TEMP_HIGH")], "interpolate")
    assert points[0].x == at(60)
    assert points[0].y == 38.2


def test_smoothing_keeps_gaps():
    samples = [Sample(at(0), 1.0), Sample(at(60), 3.0), Sample(at(120), None), Sample(at(180), 5.0)]
    out = smooth(samples, 2)
    assert [s.value for s in out] == [1.0, 2.0, None, 4.0]


def test_smoothing_window_one_is_identity():
    samples = [Sample(at(0), 1.0), Sample(at(60), 3.0)]
    assert [s.value for s in smooth(samples, 1)] == [1.0, 3.0]


def test_alerts_routed_by_code_prefix():
    alerts = [AlertEvent(at(0), "TEMP_HIGH"), AlertEvent(at(0), "HUM_LOW"), AlertEvent(at(0), "POWER")]
    assert [a.code for a in alerts_for_channel(alerts, TEMPERATURE)] == ["TEMP_HIGH", "POWER"]
    assert [a.code for a in alerts_for_channel(alerts, HUMIDITY)] == ["HUM_LOW", "POWER"]


def test_build_channel_chart():
    rows = [
        SimpleNamespace(ts=at(0), temp=37.8, hum=54.0),
        SimpleNamespace(ts=at(60), temp=38.4, hum=56.0),
    ]
    alerts = [AlertEvent(at(55), "TEMP_HIGH", "Temperature too high"), AlertEvent(at(5), "HUM_LOW", "Humidity low")]

    temp = build_channel_chart(samples_for(rows, TEMPERATURE), TEMPERATURE, alerts, TEMP_BAND)
    assert [p.value for p in temp.points] == [37.8, 38.4]
    assert temp.domain == (pytest.approx(37.1), pytest.approx(38.6))
    assert [(p.x, p.y) for p in temp.overlay] == [(at(60), 38.4)]

    hum = build_channel_chart(
        samples_for(rows, HUMIDITY), HUMIDITY, alerts, Band(50, 60), ChartConfig(overlay="none"),
    )
    assert hum.domain == (48, 62)
    assert hum.overlay == []


def test_samples_for_normalizes_naive_timestamps():
    rows = [SimpleNamespace(ts=at(0).replace(tzinfo=None), temp=37.8, hum=None)]
    assert samples_for(rows, TEMPERATURE)[0].ts == at(0)
