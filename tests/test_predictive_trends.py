from datetime import date, datetime

import pytest

from labtracker.schemas.series import MarkerSeriesPoint, ProtocolContext
from labtracker.services.predictive_trends import (
    build_predictive_alerts,
    build_predictive_alerts_from_reports,
    get_target_zone,
)


def _point(marker: str, day: str, value: float, unit: str) -> MarkerSeriesPoint:
    test_date = date.fromisoformat(day)
    return MarkerSeriesPoint(
        key=f"{marker}-{day}",
        test_date=test_date,
        report_id=f"report-{day}",
        created_at=datetime(test_date.year, test_date.month, test_date.day),
        value=value,
        unit=unit,
        abnormal="normal",
        context=ProtocolContext(),
    )


def _hematocrit(*rows):
    return {"Hematocrit": [_point("Hematocrit", day, value, "%") for day, value in rows]}


def test_no_alert_with_single_point():
    assert build_predictive_alerts(_hematocrit(("2025-01-01", 47)), "eu") == []


def test_rising_hematocrit_alerts_nearest_threshold():
    alerts = build_predictive_alerts(
        _hematocrit(("2025-01-01", 45), ("2025-03-01", 47), ("2025-05-01", 49)), "eu"
    )

    assert len(alerts) == 1
    alert = alerts[0]
    assert alert.marker == "Hematocrit"
    assert alert.direction == "rising"
    assert alert.threshold == 52
    assert alert.confidence == "medium"
    assert 80 <= alert.days_until <= 100
    assert alert.predicted_value == 52
    assert "approximately 3 month" in alert.narrative


def test_no_alert_when_moving_away_from_threshold():
    alerts = build_predictive_alerts(
        _hematocrit(("2025-01-01", 51), ("2025-03-01", 49), ("2025-05-01", 47)), "eu"
    )
    assert alerts == []


def test_no_alert_when_threshold_already_crossed():
    assert build_predictive_alerts(_hematocrit(("2025-01-01", 54.2), ("2025-03-01", 55.1)), "eu") == []


def test_no_alert_beyond_horizon():
    assert build_predictive_alerts(_hematocrit(("2023-01-01", 40), ("2024-01-01", 40.5)), "eu") == []


def test_sorted_by_urgency_one_per_marker():
    series = _hematocrit(("2025-01-01", 45), ("2025-03-01", 47), ("2025-05-01", 49))
    series["ALT"] = [_point("ALT", "2025-01-01", 30, "U/L"), _point("ALT", "2025-03-01", 42, "U/L")]
    alerts = build_predictive_alerts(series, "eu")

    assert [alert.marker for alert in alerts] == ["ALT", "Hematocrit"]
    assert alerts[0].days_until < alerts[1].days_until
    assert alerts[0].confidence == "low"


def test_thresholds_follow_unit_system():
    eu = build_predictive_alerts(
        {"LDL Cholesterol": [
            _point("LDL Cholesterol", "2025-01-01", 3.4, "mmol/L"),
            _point("LDL Cholesterol", "2025-03-01", 3.8, "mmol/L"),
        ]},
        "eu",
    )
    us = build_predictive_alerts(
        {"LDL Cholesterol": [
            _point("LDL Cholesterol", "2025-01-01", 138, "mg/dL"),
            _point("LDL Cholesterol", "2025-03-01", 150, "mg/dL"),
        ]},
        "us",
    )

    assert eu[0].threshold == 4
    assert us[0].threshold == 155


def test_series_in_other_unit_system_is_converted():
    series = {"LDL Cholesterol": [
        _point("LDL Cholesterol", "2025-01-01", 138, "mg/dL"),
        _point("LDL Cholesterol", "2025-03-01", 150, "mg/dL"),
    ]}
    alerts = build_predictive_alerts(series, "eu")

    assert len(alerts) == 1
    assert alerts[0].unit == "mmol/L"
    assert alerts[0].threshold == 4
    assert alerts[0].current_value == pytest.approx(150 / 38.67, abs=1e-3)


def test_vendor_unit_spelling_still_alerts():
    series = {"ALT": [_point("ALT", "2025-01-01", 30, "IU/L"), _point("ALT", "2025-03-01", 42, "IU/L")]}
    alerts = build_predictive_alerts(series, "eu")

    assert [alert.marker for alert in alerts] == ["ALT"]
    assert alerts[0].unit == "U/L"


def test_unit_that_cannot_be_compared_is_ignored():
    series = {"ALT": [_point("ALT", "2025-01-01", 0.5, "ukat/L"), _point("ALT", "2025-03-01", 0.7, "ukat/L")]}
    assert build_predictive_alerts(series, "eu") == []


def test_falling_testosterone_alert_in_dutch():
    series = {"Testosterone": [
        _point("Testosterone", "2025-01-01", 18, "nmol/L"),
        _point("Testosterone", "2025-02-01", 16, "nmol/L"),
        _point("Testosterone", "2025-03-01", 14, "nmol/L"),
    ]}
    english = build_predictive_alerts(series, "eu")[0]
    dutch = build_predictive_alerts(series, "eu", language="nl")[0]

    assert english.direction == "falling"
    assert english.threshold == 12.1
    assert english.threshold_label == "lower therapeutic target (trough)"
    assert dutch.threshold_label == "ondergrens van het therapeutisch doel (dal)"
    assert dutch.threshold_label in dutch.narrative
    assert dutch.narrative != english.narrative


def test_alerts_from_reports_convert_units(make_report):
    reports = [
        make_report("r1", "2025-01-01", [("Hematocrit", 0.45, "L/L")]),
        make_report("r2", "2025-03-01", [("Hematocrit", 0.47, "L/L")]),
        make_report("r3", "2025-05-01", [("Hematocrit", 0.49, "L/L")]),
    ]
    alerts = build_predictive_alerts_from_reports(reports, "eu")

    assert [alert.marker for alert in alerts] == ["Hematocrit"]
    assert alerts[0].unit == "%"


def test_target_zone_in_requested_units():
    eu = get_target_zone("Testosterone", "eu")
    us = get_target_zone("Testosterone", "us")

    assert eu.unit == "nmol/L"
    assert us.unit == "ng/dL"
    assert us.min == round(eu.min * 28.84, 2)
    assert get_target_zone("Mystery Marker", "eu") is None
