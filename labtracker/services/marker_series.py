import math
from typing import Iterable, Literal

from labtracker.schemas.lab_report import AbnormalFlag, LabReport, MarkerValue, Protocol, SupplementEntry, UnitSystem
from labtracker.schemas.series import MarkerSeriesPoint, ProtocolContext
from labtracker.services.protocol_utils import ResolvedProtocol, resolve_report_protocol, sort_reports_chronological
from labtracker.services.statistics import round_to
from labtracker.services.unit_conversion import DEFAULT_UNIT_RULES, UnitRules, convert_measurement

SamplingFilter = Literal["all", "trough", "peak"]


def derive_abnormal_flag(value: float, reference_min: float | None, reference_max: float | None) -> AbnormalFlag:
    if reference_min is None and reference_max is None:
        return "unknown"
    if reference_min is not None and value < reference_min:
        return "low"
    if reference_max is not None and value > reference_max:
        return "high"
    return "normal"


def find_marker_in_report(report: LabReport, marker: str, prefer_raw: bool = True) -> MarkerValue | None:
    """Best value for a canonical marker: measured before calculated, then confidence, then value."""
    candidates = [m for m in report.markers if m.canonical_marker == marker and math.isfinite(m.value)]
    if not candidates:
        return None
    candidates.sort(key=lambda m: (m.is_calculated if prefer_raw else False, -m.confidence, -m.value))
    return candidates[0]


def build_protocol_context(report: LabReport, resolved: ResolvedProtocol) -> ProtocolContext:
    annotations = report.annotations
    return ProtocolContext(
        dosage_mg_per_week=resolved.dose_mg_per_week,
        compound=resolved.compounds_text,
        injection_frequency=resolved.injection_frequency,
        protocol=resolved.label,
        supplements=resolved.supplements_text,
        symptoms=annotations.symptoms,
        notes=annotations.notes,
        sampling_timing=annotations.sampling_timing,
    )


def build_marker_series(
    reports: Iterable[LabReport],
    marker: str,
    unit_system: UnitSystem,
    protocols: Iterable[Protocol] = (),
    supplement_timeline: Iterable[SupplementEntry] | None = None,
    rules: UnitRules = DEFAULT_UNIT_RULES,
) -> list[MarkerSeriesPoint]:
    protocols = list(protocols)
    timeline = list(supplement_timeline or [])
    seen_reports: set[str] = set()
    points: list[MarkerSeriesPoint] = []

    for report in sort_reports_chronological(reports):
        if report.id in seen_reports:
            continue
        found = find_marker_in_report(report, marker)
        if found is None:
            continue
        converted = convert_measurement(
            marker, found.value, found.unit, unit_system, found.reference_min, found.reference_max, rules
        )
        value = round_to(converted.value, 3)
        if value is None:
            continue

        reference_min = round_to(converted.reference_min, 3)
        reference_max = round_to(converted.reference_max, 3)
        abnormal = found.abnormal
        if abnormal == "unknown":
            abnormal = derive_abnormal_flag(value, reference_min, reference_max)

        resolved = resolve_report_protocol(report, protocols, timeline)
        seen_reports.add(report.id)
        points.append(
            MarkerSeriesPoint(
                key=f"{report.test_date.isoformat()}__{report.id}",
                test_date=report.test_date,
                report_id=report.id,
                created_at=report.created_at,
                value=value,
                unit=converted.unit,
                reference_min=reference_min,
                reference_max=reference_max,
                abnormal=abnormal,
                context=build_protocol_context(report, resolved),
                is_calculated=found.is_calculated,
            )
        )
    return points


def list_canonical_markers(reports: Iterable[LabReport]) -> list[str]:
    return sorted({m.canonical_marker for report in reports for m in report.markers if m.canonical_marker})


def build_series_by_marker(
    reports: Iterable[LabReport],
    unit_system: UnitSystem,
    protocols: Iterable[Protocol] = (),
    markers: Iterable[str] | None = None,
    rules: UnitRules = DEFAULT_UNIT_RULES,
) -> dict[str, list[MarkerSeriesPoint]]:
    reports = list(reports)
    protocols = list(protocols)
    names = list(markers) if markers is not None else list_canonical_markers(reports)
    return {name: build_marker_series(reports, name, unit_system, protocols, rules=rules) for name in names}


def filter_reports_by_sampling(reports: Iterable[LabReport], mode: SamplingFilter) -> list[LabReport]:
    if mode == "all":
        return list(reports)
    return [report for report in reports if report.annotations.sampling_timing == mode]
