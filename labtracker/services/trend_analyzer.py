from typing import Iterable

from labtracker.schemas.lab_report import LabReport, Protocol, UnitSystem
from labtracker.schemas.series import (
    MarkerSeriesPoint,
    MarkerTrendSummary,
    TrtStabilityComponent,
    TrtStabilityPoint,
    TrtStabilityResult,
)
from labtracker.services.marker_series import build_marker_series, list_canonical_markers
from labtracker.services.protocol_utils import sort_reports_chronological
from labtracker.services.statistics import EPSILON, clip, linear_regression, mean, round_to, std_dev

TREND_WINDOW = 6
VOLATILE_CV = 0.2
SLOPE_THRESHOLD = 0.03

# Lower variability in the core TRT markers raises the stability score.
TRT_STABILITY_WEIGHTS = {
    "Testosterone": 0.35,
    "Estradiol": 0.25,
    "Hematocrit": 0.25,
    "SHBG": 0.15,
}
CV_PENALTY = 220


def calculate_percent_change(prev: float | None, curr: float | None) -> float | None:
    if prev is None or curr is None or abs(prev) <= EPSILON:
        return None
    return ((curr - prev) / prev) * 100.0


def classify_marker_trend(series: list[MarkerSeriesPoint], marker: str) -> MarkerTrendSummary:
    values = [point.value for point in series]
    unit = series[-1].unit if series else ""
    if len(values) < 2:
        return MarkerTrendSummary(
            marker=marker,
            unit=unit,
            trend="stable",
            slope=0.0,
            mean=values[0] if values else 0.0,
            std_dev=0.0,
            coefficient_of_variation=0.0,
            points=len(values),
            explanation="Insufficient points for trend classification.",
        )

    recent = values[-TREND_WINDOW:]
    fit = linear_regression(list(range(len(recent))), recent)
    slope = fit.slope if fit else 0.0
    avg = mean(recent) or 0.0
    spread = std_dev(recent)
    cv = 0.0 if abs(avg) <= EPSILON else spread / abs(avg)
    slope_relative = 0.0 if abs(avg) <= EPSILON else slope / abs(avg)

    if len(recent) >= 4 and cv > VOLATILE_CV:
        trend, explanation = "volatile", f"Volatile pattern: variability is high (std dev {round(spread, 3)})."
    elif slope_relative > SLOPE_THRESHOLD:
        trend, explanation = "rising", "Rising trend based on positive linear regression slope."
    elif slope_relative < -SLOPE_THRESHOLD:
        trend, explanation = "falling", "Falling trend based on negative linear regression slope."
    else:
        trend, explanation = "stable", "Stable trend: slope remains close to zero."

    return MarkerTrendSummary(
        marker=marker,
        unit=unit,
        trend=trend,
        slope=round(slope, 3),
        mean=round(avg, 3),
        std_dev=round(spread, 3),
        coefficient_of_variation=round(cv, 3),
        points=len(recent),
        explanation=explanation,
    )


def build_trend_summaries(
    reports: Iterable[LabReport],
    unit_system: UnitSystem,
    protocols: Iterable[Protocol] = (),
    markers: Iterable[str] | None = None,
) -> list[MarkerTrendSummary]:
    reports = list(reports)
    protocols = list(protocols)
    summaries = []
    for marker in (list_canonical_markers(reports) if markers is None else markers):
        series = build_marker_series(reports, marker, unit_system, protocols)
        if len(series) < 2:
            continue
        summaries.append(classify_marker_trend(series, marker))
    return summaries


def compute_trt_stability_index(
    reports: Iterable[LabReport],
    unit_system: UnitSystem = "eu",
    protocols: Iterable[Protocol] = (),
    weights: dict[str, float] | None = None,
) -> TrtStabilityResult:
    reports = list(reports)
    protocols = list(protocols)
    marker_weights = weights or TRT_STABILITY_WEIGHTS
    components = []
    weighted_sum = 0.0
    weight_total = 0.0

    for marker, weight in marker_weights.items():
        series = build_marker_series(reports, marker, unit_system, protocols)
        if len(series) < 2:
            continue
        values = [point.value for point in series]
        avg = mean(values) or 0.0
        cv = 0.0 if abs(avg) <= EPSILON else std_dev(values) / abs(avg)
        score = clip(100 - cv * CV_PENALTY, 0, 100)
        components.append(
            TrtStabilityComponent(
                marker=marker,
                score=round_to(score, 2),
                coefficient_of_variation=round_to(cv, 3),
                points=len(values),
                weight=weight,
            )
        )
        weighted_sum += score * weight
        weight_total += weight

    if weight_total <= 0:
        return TrtStabilityResult(score=None, components=components)
    return TrtStabilityResult(score=round(weighted_sum / weight_total), components=components)


def build_trt_stability_series(
    reports: Iterable[LabReport],
    unit_system: UnitSystem = "eu",
    protocols: Iterable[Protocol] = (),
) -> list[TrtStabilityPoint]:
    ordered = sort_reports_chronological(reports)
    protocols = list(protocols)
    points = []
    for index, report in enumerate(ordered):
        score = compute_trt_stability_index(ordered[: index + 1], unit_system, protocols).score
        if score is None:
            continue
        points.append(
            TrtStabilityPoint(key=f"{report.test_date.isoformat()}__{report.id}", test_date=report.test_date, score=score)
        )
    return points
