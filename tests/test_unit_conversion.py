import math

import pytest

from labtracker.services.unit_conversion import build_unit_rules, convert, convert_measurement, normalize_unit_token


def test_testosterone_converts_between_systems():
    value, unit = convert("Testosterone", 20, "nmol/L", "us")
    assert unit == "ng/dL"
    assert value == pytest.approx(576.8)

    back, back_unit = convert("Testosterone", value, unit, "eu")
    assert back_unit == "nmol/L"
    assert abs(back - 20) < 1e-6


def test_conversion_to_same_system_is_identity():
    value, unit = convert("Estradiol", 110, "pmol/L", "eu")
    assert (value, unit) == (110, "pmol/L")


def test_vendor_spelling_is_normalized_first():
    value, unit = convert("Testosterone", 5, "ng/mL", "eu")
    assert unit == "nmol/L"
    assert value == pytest.approx(500 / 28.84)


def test_hematocrit_ratio_becomes_percent():
    value, unit = convert("Hematocrit", 0.45, "L/L", "eu")
    assert unit == "%"
    assert value == pytest.approx(45.0)

    measurement = convert_measurement("Hematocrit", 0.48, "", "us", reference_min=0.4, reference_max=0.54)
    assert measurement.unit == "%"
    assert measurement.reference_min == pytest.approx(40.0)
    assert measurement.reference_max == pytest.approx(54.0)


def test_hematocrit_percent_is_kept():
    assert convert("Hematocrit", 47.5, "%", "us") == (47.5, "%")


def test_unknown_marker_passes_through():
    assert convert("Mystery Marker", 3.2, "arb", "us") == (3.2, "arb")


def test_non_numeric_value_becomes_nan():
    value, unit = convert("Testosterone", "n/a", "nmol/L", "us")
    assert math.isnan(value)
    assert unit == "ng/dL"


def test_unit_token_normalization():
    assert normalize_unit_token(" µmol / L ") == "umol/l"
    assert normalize_unit_token(None) == ""


def test_custom_rules_are_honored():
    rules = build_unit_rules(system_conversions={"Widget": ("a", "b", 2.0)}, unit_normalizations={})
    assert convert("Widget", 3, "a", "us", rules) == (6.0, "b")
    assert convert("Testosterone", 10, "nmol/L", "us", rules) == (10.0, "nmol/L")
