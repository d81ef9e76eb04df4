from datetime import date

from labtracker.schemas.lab_report import MarkerValue, SupplementEntry
from labtracker.services.marker_series import (
    build_marker_series,
    build_series_by_marker,
    filter_reports_by_sampling,
    find_marker_in_report,
    list_canonical_markers,
)


def test_series_is_chronological_and_converted(make_report):
    reports = [
        make_report("r2", "2025-03-01", [("Testosterone", 25, "nmol/L")]),
        make_report("r1", "2025-01-01", [("Testosterone", 20, "nmol/L")]),
    ]
    series = build_marker_series(reports, "Testosterone", "us")

    assert [p.report_id for p in series] == ["r1", "r2"]
    assert [p.value for p in series] == [576.8, 721.0]
    assert series[0].unit == "ng/dL"
    assert series[0].key == "2025-01-01__r1"


def test_one_point_per_report_prefers_measured_then_confidence(make_report):
    report = make_report("r1", "2025-01-01", [])
    markers = [
        MarkerValue(marker="T calc", canonical_marker="Testosterone", value=30, unit="nmol/L", is_calculated=True),
        MarkerValue(marker="T", canonical_marker="Testosterone", value=18, unit="nmol/L", confidence=0.6),
        MarkerValue(marker="T", canonical_marker="Testosterone", value=21, unit="nmol/L", confidence=0.9),
    ]
    report = report.model_copy(update={"markers": markers})

    assert find_marker_in_report(report, "Testosterone").value == 21
    series = build_marker_series([report, report], "Testosterone", "eu")
    assert len(series) == 1
    assert series[0].value == 21


def test_reference_range_converted_and_flag_derived(make_report):
    report = make_report("r1", "2025-01-01", [])
    marker = MarkerValue(
        marker="Testosterone",
        canonical_marker="Testosterone",
        value=8,
        unit="nmol/L",
        reference_min=10,
        reference_max=30,
    )
    point = build_marker_series([report.model_copy(update={"markers": [marker]})], "Testosterone", "us")[0]

    assert point.reference_min == 288.4
    assert point.reference_max == 865.2
    assert point.abnormal == "low"


def test_protocol_context_from_linked_protocol(make_report, make_protocol):
    protocol = make_protocol("p-a", 120, "2x/week")
    report = make_report("r1", "2025-01-01", [("Hematocrit", 48, "%")], "p-a", symptoms="fatigue")
    point = build_marker_series([report], "Hematocrit", "eu", [protocol])[0]

    assert point.context.dosage_mg_per_week == 120
    assert point.context.injection_frequency == "2x/week"
    assert point.context.compound == "Testosterone Enanthate (120)"
    assert point.context.symptoms == "fatigue"
    assert point.context.sampling_timing == "trough"


def test_protocol_context_falls_back_to_annotations(make_report):
    report = make_report(
        "r1",
        "2025-01-01",
        [("Hematocrit", 48, "%")],
        dosage_mg_per_week=100,
        compound="Testosterone Cypionate",
        injection_frequency="every 3 days",
    )
    point = build_marker_series([report], "Hematocrit", "eu")[0]

    assert point.context.dosage_mg_per_week == 100
    assert point.context.compound == "Testosterone Cypionate"
    assert point.context.injection_frequency == "every 3 days"


def test_supplement_timeline_resolves_active_stack(make_report):
    timeline = [
        SupplementEntry(name="Vitamin D", dose="4000 IU", start_date=date(2024, 12, 1)),
        SupplementEntry(name="Fish oil", dose="2 g", start_date=date(2024, 6, 1), end_date=date(2024, 12, 31)),
    ]
    report = make_report("r1", "2025-01-15", [("Hematocrit", 48, "%")])
    point = build_marker_series([report], "Hematocrit", "eu", supplement_timeline=timeline)[0]

    assert point.context.supplements == "Vitamin D 4000 IU"


def test_series_by_marker_and_marker_listing(make_report):
    reports = [
        make_report("r1", "2025-01-01", [("Testosterone", 20, "nmol/L"), ("SHBG", 40, "nmol/L")]),
        make_report("r2", "2025-02-01", [("SHBG", 38, "nmol/L")]),
    ]
    assert list_canonical_markers(reports) == ["SHBG", "Testosterone"]

    series = build_series_by_marker(reports, "eu")
    assert len(series["SHBG"]) == 2
    assert len(series["Testosterone"]) == 1


def test_sampling_filter(make_report):
    reports = [
        make_report("r1", "2025-01-01", [], sampling_timing="trough"),
        make_report("r2", "2025-02-01", [], sampling_timing="peak"),
    ]
    assert [r.id for r in filter_reports_by_sampling(reports, "trough")] == ["r1"]
    assert [r.id for r in filter_reports_by_sampling(reports, "peak")] == ["r2"]
    assert len(filter_reports_by_sampling(reports, "all")) == 2
