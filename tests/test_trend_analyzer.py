import pytest

from labtracker.services.marker_series import build_marker_series
from labtracker.services.trend_analyzer import (
    build_trend_summaries,
    build_trt_stability_series,
    calculate_percent_change,
    classify_marker_trend,
    compute_trt_stability_index,
)


def _series(make_report, marker, values, unit="nmol/L"):
    reports = [
        make_report(f"r{index}", f"2025-{index + 1:02d}-01", [(marker, value, unit)])
        for index, value in enumerate(values)
    ]
    return build_marker_series(reports, marker, "eu")


@pytest.mark.parametrize(
    "values, expected",
    [
        ([10, 12, 14, 16], "rising"),
        ([20, 18, 16, 15], "falling"),
        ([20, 20.1, 19.9, 20], "stable"),
        ([10, 20, 9, 21], "volatile"),
    ],
)
def test_trend_classification(make_report, values, expected):
    summary = classify_marker_trend(_series(make_report, "Testosterone", values), "Testosterone")
    assert summary.trend == expected
    assert summary.points == len(values)


def test_trend_uses_recent_window(make_report):
    values = [30, 5, 10, 11, 12, 13, 14, 15]
    summary = classify_marker_trend(_series(make_report, "Testosterone", values), "Testosterone")

    assert summary.points == 6
    assert summary.trend == "rising"


def test_single_point_is_not_classified(make_report):
    summary = classify_marker_trend(_series(make_report, "Testosterone", [20]), "Testosterone")

    assert summary.trend == "stable"
    assert summary.points == 1
    assert "Insufficient" in summary.explanation


def test_summaries_skip_single_point_markers(make_report):
    reports = [
        make_report("r1", "2025-01-01", [("Testosterone", 20, "nmol/L"), ("SHBG", 40, "nmol/L")]),
        make_report("r2", "2025-02-01", [("Testosterone", 24, "nmol/L")]),
    ]
    assert [s.marker for s in build_trend_summaries(reports, "eu")] == ["Testosterone"]


def test_percent_change():
    assert calculate_percent_change(10, 12) == pytest.approx(20)
    assert calculate_percent_change(-10, -5) == pytest.approx(-50)
    assert calculate_percent_change(-0.4, 0.2) == pytest.approx(-150)
    assert calculate_percent_change(0, 5) is None
    assert calculate_percent_change(None, 5) is None


def test_stable_values_score_full_stability(make_report):
    reports = [
        make_report("r1", "2025-01-01", [("Testosterone", 20, "nmol/L"), ("Hematocrit", 47, "%")]),
        make_report("r2", "2025-02-01", [("Testosterone", 20, "nmol/L"), ("Hematocrit", 47, "%")]),
    ]
    result = compute_trt_stability_index(reports)

    assert result.score == 100
    assert {c.marker for c in result.components} == {"Testosterone", "Hematocrit"}


def test_variable_values_lower_stability(make_report):
    reports = [
        make_report("r1", "2025-01-01", [("Testosterone", 12, "nmol/L")]),
        make_report("r2", "2025-02-01", [("Testosterone", 36, "nmol/L")]),
    ]
    # cv = 0.5 -> 100 - 110, clipped at zero
    assert compute_trt_stability_index(reports).score == 0


def test_stability_is_none_without_repeat_measurements(make_report):
    reports = [make_report("r1", "2025-01-01", [("Testosterone", 20, "nmol/L")])]
    assert compute_trt_stability_index(reports).score is None
    assert build_trt_stability_series(reports) == []


def test_stability_series_is_cumulative(make_report):
    reports = [
        make_report("r1", "2025-01-01", [("Testosterone", 20, "nmol/L")]),
        make_report("r2", "2025-02-01", [("Testosterone", 20, "nmol/L")]),
        make_report("r3", "2025-03-01", [("Testosterone", 30, "nmol/L")]),
    ]
    series = build_trt_stability_series(reports)

    assert [p.key for p in series] == ["2025-02-01__r2", "2025-03-01__r3"]
    assert series[0].score == 100
    assert series[1].score < 100
