import math

import pytest

from labtracker.schemas.lab_report import MarkerValue
from labtracker.services.calculated_markers import derive_calculated_markers, enrich_report, solve_free_testosterone


def test_free_testosterone_solver_gives_physiological_value():
    free_t = solve_free_testosterone(20, 40, 45)
    assert free_t is not None
    assert 0.3 < free_t < 0.45


def test_free_testosterone_rises_when_shbg_falls():
    assert solve_free_testosterone(20, 20, 45) > solve_free_testosterone(20, 60, 45)


@pytest.mark.parametrize(
    "total_t, shbg, albumin",
    [(0, 40, 45), (20, -1, 45), (20, 40, 0), (math.nan, 40, 45), (None, 40, 45)],
)
def test_free_testosterone_solver_rejects_bad_input(total_t, shbg, albumin):
    assert solve_free_testosterone(total_t, shbg, albumin) is None


def test_derives_ratios_and_indices(make_report):
    report = make_report(
        "r1",
        "2025-01-01",
        [
            ("Testosterone", 20, "nmol/L"),
            ("Estradiol", 100, "pmol/L"),
            ("SHBG", 40, "nmol/L"),
            ("Albumin", 45, "g/L"),
            ("LDL Cholesterol", 3.0, "mmol/L"),
            ("HDL Cholesterol", 1.5, "mmol/L"),
            ("Total Cholesterol", 5.0, "mmol/L"),
        ],
    )
    derived = {m.canonical_marker: m for m in derive_calculated_markers(report)}

    assert derived["T/E2 Ratio"].value == 200
    assert derived["Free Androgen Index"].value == 50
    assert derived["LDL/HDL Ratio"].value == 2
    assert derived["Non-HDL Cholesterol"].value == 3.5
    assert 0.3 < derived["Free Testosterone"].value < 0.45
    assert all(m.is_calculated for m in derived.values())


def test_calculated_markers_have_no_reference_range(make_report):
    report = make_report("r1", "2025-01-01", [("Testosterone", 20, "nmol/L"), ("SHBG", 40, "nmol/L")])
    fai = derive_calculated_markers(report)[0]

    assert fai.canonical_marker == "Free Androgen Index"
    assert fai.reference_min is None
    assert fai.reference_max is None
    assert fai.abnormal == "unknown"


def test_us_units_are_converted_before_deriving(make_report):
    report = make_report("r1", "2025-01-01", [("Testosterone", 576.8, "ng/dL"), ("SHBG", 40, "nmol/L")])
    derived = {m.canonical_marker: m for m in derive_calculated_markers(report)}

    assert derived["Free Androgen Index"].value == pytest.approx(50, abs=0.01)


def test_measured_marker_is_not_overwritten(make_report):
    report = make_report(
        "r1",
        "2025-01-01",
        [
            ("Testosterone", 20, "nmol/L"),
            ("SHBG", 40, "nmol/L"),
            ("Albumin", 45, "g/L"),
            ("Free Testosterone", 0.5, "nmol/L"),
        ],
    )
    names = [m.canonical_marker for m in derive_calculated_markers(report)]

    assert "Free Testosterone" not in names
    assert "Free Androgen Index" in names


def test_missing_inputs_derive_nothing(make_report):
    report = make_report("r1", "2025-01-01", [("Testosterone", 20, "nmol/L")])
    assert derive_calculated_markers(report) == []


def test_enrich_replaces_stale_calculated_values(make_report):
    report = make_report("r1", "2025-01-01", [("Testosterone", 20, "nmol/L"), ("SHBG", 40, "nmol/L")])
    stale = MarkerValue(
        marker="Free Androgen Index",
        canonical_marker="Free Androgen Index",
        value=999,
        unit="index",
        is_calculated=True,
    )
    enriched = enrich_report(report.model_copy(update={"markers": [*report.markers, stale]}))
    fai = [m for m in enriched.markers if m.canonical_marker == "Free Androgen Index"]

    assert len(fai) == 1
    assert fai[0].value == 50
