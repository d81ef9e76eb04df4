"""
Personal dose-response models per marker.

Samples pair the resolved weekly dose of a report with the marker value on
that report. The estimator prefers trough draws, drops MAD outliers, fits OLS
with a Theil-Sen fallback and classifies the relationship. Population priors
are merged afterwards by ``apply_dose_priors``, a pure function that never
fetches anything itself.
"""
import logging
import math
from collections import Counter
from dataclasses import dataclass, field
from datetime import date
from typing import Iterable

from labtracker.config import Settings, settings
from labtracker.schemas.dose_response import (
    BlendDiagnostics,
    DoseCorrelationInsight,
    DosePrediction,
    DosePrior,
    DoseScenario,
    ExcludedPoint,
)
from labtracker.schemas.lab_report import LabReport, Protocol, SamplingTiming, UnitSystem
from labtracker.services.marker_catalog import DEFAULT_CATALOG, MarkerCatalog
from labtracker.services.marker_series import build_marker_series
from labtracker.services.protocol_utils import resolve_report_protocol, sort_reports_chronological
from labtracker.services.statistics import (
    EPSILON,
    LinearFit,
    clip,
    linear_regression,
    mean,
    median,
    median_absolute_deviation,
    pearson,
    round_to,
    std_dev,
    theil_sen,
)
from labtracker.services.trend_analyzer import calculate_percent_change
from labtracker.services.unit_conversion import normalize_unit_token

logger = logging.getLogger(__name__)

EXPECTED_POSITIVE_MARKERS = frozenset({"Testosterone", "Free Testosterone", "Free Androgen Index"})
MIN_MODEL_SAMPLES = 4
MIN_TROUGH_SAMPLES = 3
MAD_TO_SIGMA = 1.4826
MAD_CUTOFF = 3.0
STATUS_ORDER = {"clear": 0, "unclear": 1, "insufficient": 2}
CONFIDENCE_ORDER = {"High": 0, "Medium": 1, "Low": 2}


@dataclass(frozen=True)
class DoseScenarioPolicy:
    """Which lower-dose scenario to evaluate and which candidate doses to tabulate."""
    offset_mg: float = -20.0
    floor_mg: float = 40.0
    margin_mg: float = 20.0
    candidate_doses: tuple[float, ...] = (80, 100, 120, 140, 160, 180)
    margin_below_mg: float = 20.0
    margin_above_mg: float = 30.0

    @classmethod
    def from_settings(cls, config: Settings = settings) -> "DoseScenarioPolicy":
        return cls(
            offset_mg=config.suggested_dose_offset_mg,
            floor_mg=config.suggested_dose_floor_mg,
            margin_mg=config.suggested_dose_margin_mg,
            margin_below_mg=config.scenario_margin_below_mg,
            margin_above_mg=config.scenario_margin_above_mg,
        )

    def suggested_dose(self, current_dose: float, observed_min: float, observed_max: float) -> float:
        low = max(self.floor_mg, observed_min - self.margin_mg)
        return clip(current_dose + self.offset_mg, low, max(low, observed_max + self.margin_mg))

    def scenario_doses(self, observed_min: float, observed_max: float) -> list[float]:
        return [
            dose
            for dose in self.candidate_doses
            if observed_min - self.margin_below_mg <= dose <= observed_max + self.margin_above_mg
        ]


@dataclass(frozen=True)
class DoseSample:
    report_id: str
    test_date: date
    dose: float
    value: float
    unit: str
    sampling_timing: SamplingTiming

    def excluded(self, reason: str) -> ExcludedPoint:
        return ExcludedPoint(
            report_id=self.report_id,
            test_date=self.test_date,
            dose=self.dose,
            value=self.value,
            unit=self.unit,
            reason=reason,
        )


@dataclass
class _SampleSet:
    unit: str
    samples: list[DoseSample]
    excluded: list[ExcludedPoint] = field(default_factory=list)


def unique_dose_count(samples: Iterable[DoseSample]) -> int:
    return len({round(sample.dose, 2) for sample in samples})


def collect_dose_samples(
    reports: Iterable[LabReport],
    marker: str,
    unit_system: UnitSystem,
    protocols: Iterable[Protocol] = (),
) -> list[DoseSample]:
    ordered = sort_reports_chronological(reports)
    protocols = list(protocols)
    points = {point.report_id: point for point in build_marker_series(ordered, marker, unit_system, protocols)}
    samples = []
    for report in ordered:
        point = points.get(report.id)
        dose = resolve_report_protocol(report, protocols).dose_mg_per_week
        if point is None or dose is None or not math.isfinite(dose) or not math.isfinite(point.value):
            continue
        samples.append(
            DoseSample(
                report_id=report.id,
                test_date=report.test_date,
                dose=dose,
                value=point.value,
                unit=point.unit,
                sampling_timing=report.annotations.sampling_timing,
            )
        )
    return samples


def select_unit(samples: list[DoseSample]) -> _SampleSet:
    """Keep the most common unit (ties go to the latest sample's unit); exclude the rest."""
    counts = Counter(sample.unit for sample in samples)
    latest_unit = samples[-1].unit
    unit = sorted(counts, key=lambda u: (-counts[u], u != latest_unit, u))[0]
    kept = [s for s in samples if s.unit == unit]
    excluded = [s.excluded(f"Excluded due to unit mismatch ({s.unit} vs {unit}).") for s in samples if s.unit != unit]
    if excluded:
        logger.debug("Excluded %d samples with a unit other than %s", len(excluded), unit)
    return _SampleSet(unit=unit, samples=kept, excluded=excluded)


def filter_outliers_by_mad(samples: list[DoseSample]) -> tuple[list[DoseSample], list[DoseSample], float | None]:
    """Split samples into (kept, excluded, threshold) using a 3 x robust-sigma cutoff around the median."""
    if len(samples) < MIN_MODEL_SAMPLES:
        return samples, [], None
    values = [sample.value for sample in samples]
    center = median(values)
    mad = median_absolute_deviation(values)
    if mad is None or mad <= EPSILON:
        return samples, [], None

    threshold = MAD_CUTOFF * MAD_TO_SIGMA * mad
    kept = [s for s in samples if abs(s.value - center) <= threshold]
    excluded = [s for s in samples if abs(s.value - center) > threshold]
    if not excluded or len(kept) < 3 or unique_dose_count(kept) < 2:
        return samples, [], threshold
    return kept, excluded, threshold


def evaluate_dose_relationship(
    marker: str, samples: list[DoseSample], slope: float, correlation_r: float | None
) -> tuple[str, str]:
    if len(samples) < MIN_MODEL_SAMPLES:
        return (
            "insufficient",
            f"At least {MIN_MODEL_SAMPLES} results with a recorded weekly dose are needed; there are {len(samples)}.",
        )
    if unique_dose_count(samples) < 2:
        return "insufficient", "Only one dose level so far, so dose-response cannot be estimated yet."
    if correlation_r is None:
        return "insufficient", "Not enough consistent data to calculate a reliable relationship."

    doses = [s.dose for s in samples]
    span = max(doses) - min(doses)
    average = max(abs(mean(s.value for s in samples) or 0.0), EPSILON)
    relative_effect = abs(slope) * max(span, 1) / average
    if marker in EXPECTED_POSITIVE_MARKERS and slope < -EPSILON:
        return (
            "unclear",
            f"The pattern moves opposite to the expected direction for this marker ({round(slope, 3)} per mg/week).",
        )
    if abs(correlation_r) < 0.2 or relative_effect < 0.03:
        return "unclear", f"The link between dose and this marker is weak (r={round(abs(correlation_r), 3)})."
    return "clear", f"A usable dose-response pattern was found from {len(samples)} data points (r={round(correlation_r, 3)})."


def confidence_from_dose_stats(sample_count: int, correlation_r: float | None) -> str:
    abs_r = abs(correlation_r or 0.0)
    if sample_count >= 6 and abs_r >= 0.6:
        return "High"
    if sample_count >= 4 and abs_r >= 0.35:
        return "Medium"
    return "Low"


def _sampling_warning(use_trough: bool, samples: list[DoseSample]) -> str | None:
    if use_trough:
        return None
    if any(s.sampling_timing == "trough" for s in samples):
        return "Too few trough-only points, so this estimate uses all sampling timings."
    if any(s.sampling_timing != "unknown" for s in samples):
        return "Sampling times are mixed; interpret this estimate with extra caution."
    return "Sampling timing is mostly unknown, so this estimate may be less reliable."


def _insufficient_prediction(
    marker: str,
    unit: str,
    samples: list[DoseSample],
    unit_samples: list[DoseSample],
    excluded: list[ExcludedPoint],
    reason: str,
) -> DosePrediction:
    latest = samples[-1]
    return DosePrediction(
        marker=marker,
        unit=unit,
        slope_per_mg=0.0,
        intercept=latest.value,
        r_squared=0.0,
        correlation_r=None,
        sample_count=len(samples),
        unique_dose_levels=unique_dose_count(samples),
        all_sample_count=len(unit_samples),
        trough_sample_count=sum(1 for s in unit_samples if s.sampling_timing == "trough"),
        current_dose=round_to(latest.dose, 2),
        suggested_dose=round_to(latest.dose, 2),
        current_estimate=round_to(latest.value, 2),
        suggested_estimate=round_to(latest.value, 2),
        confidence="Low",
        status="insufficient",
        status_reason=reason,
        sampling_mode="all",
        sampling_warning="Estimate hidden until there are enough dose-linked results.",
        used_report_dates=[s.test_date for s in samples],
        excluded_points=excluded,
        model_type="linear",
    )


def _choose_model(samples: list[DoseSample]) -> tuple[LinearFit | None, str, str]:
    doses = [s.dose for s in samples]
    values = [s.value for s in samples]
    linear = linear_regression(doses, values)
    if linear is None:
        return None, "linear", ""
    robust = theil_sen(doses, values)
    if robust is not None:
        linear_sign = 0 if abs(linear.slope) <= EPSILON else math.copysign(1, linear.slope)
        robust_sign = 0 if abs(robust.slope) <= EPSILON else math.copysign(1, robust.slope)
        if linear_sign and robust_sign and linear_sign != robust_sign:
            return robust, "theil-sen", " Used the robust Theil-Sen fit because the linear slope direction conflicted."
    return linear, "linear", ""


def estimate_marker_dose_response(
    marker: str,
    samples: list[DoseSample],
    policy: DoseScenarioPolicy,
) -> DosePrediction | None:
    if not samples:
        return None

    selection = select_unit(samples)
    unit, unit_samples, excluded = selection.unit, selection.samples, list(selection.excluded)
    if len(unit_samples) < 2:
        return _insufficient_prediction(
            marker, unit, unit_samples, unit_samples, excluded,
            f"Not enough usable results yet ({len(unit_samples)}). Add more reports with a recorded weekly dose.",
        )
    if unique_dose_count(unit_samples) < 2:
        return _insufficient_prediction(
            marker, unit, unit_samples, unit_samples, excluded,
            "Only one dose level so far, so dose-response cannot be estimated yet.",
        )

    trough = [s for s in unit_samples if s.sampling_timing == "trough"]
    use_trough = len(trough) >= MIN_TROUGH_SAMPLES and unique_dose_count(trough) >= 2
    working = trough if use_trough else unit_samples

    kept, outliers, threshold = filter_outliers_by_mad(working)
    for sample in outliers:
        excluded.append(sample.excluded(f"Excluded as outlier (>3 MAD; threshold={round(threshold, 3)} {unit})."))
    if outliers:
        logger.debug("%s: excluded %d MAD outliers", marker, len(outliers))

    model, model_type, model_note = _choose_model(kept)
    if model is None:
        return _insufficient_prediction(
            marker, unit, kept, unit_samples, excluded,
            "The current data does not fit a stable model yet. Add a few more measurements.",
        )

    correlation_r = pearson([s.dose for s in kept], [s.value for s in kept])
    status, reason = evaluate_dose_relationship(marker, kept, model.slope, correlation_r)
    confidence = confidence_from_dose_stats(len(kept), correlation_r)

    observed_min = min(s.dose for s in kept)
    observed_max = max(s.dose for s in kept)
    current_dose = working[-1].dose
    suggested_dose = policy.suggested_dose(current_dose, observed_min, observed_max)

    def predict(dose: float) -> float:
        return max(0.0, model.predict(dose))

    current_estimate = predict(current_dose)
    suggested_estimate = predict(suggested_dose) if status == "clear" else current_estimate
    residuals = [s.value - model.predict(s.dose) for s in kept]
    residual_sigma = max(std_dev(residuals), 0.02 * abs(current_estimate), 0.1)

    scenarios = []
    if status == "clear":
        scenarios = [
            DoseScenario(dose=dose, estimated_value=round_to(predict(dose), 2))
            for dose in policy.scenario_doses(observed_min, observed_max)
        ]
        if not any(abs(s.dose - round(suggested_dose, 2)) <= EPSILON for s in scenarios):
            scenarios.append(DoseScenario(dose=round(suggested_dose, 2), estimated_value=round_to(suggested_estimate, 2)))
        scenarios.sort(key=lambda scenario: scenario.dose)

    clear = status == "clear"
    return DosePrediction(
        marker=marker,
        unit=unit,
        slope_per_mg=model.slope,
        intercept=model.intercept,
        r_squared=round_to(model.r_squared, 4),
        correlation_r=correlation_r,
        sample_count=len(kept),
        unique_dose_levels=unique_dose_count(kept),
        all_sample_count=len(unit_samples),
        trough_sample_count=len(trough),
        current_dose=round_to(current_dose, 2),
        suggested_dose=round_to(suggested_dose, 2),
        current_estimate=round_to(current_estimate, 2),
        suggested_estimate=round_to(suggested_estimate, 2),
        residual_sigma=round_to(residual_sigma, 3),
        prediction_sigma=round_to(residual_sigma, 3) if clear else None,
        predicted_low=round_to(max(0.0, suggested_estimate - residual_sigma), 2) if clear else None,
        predicted_high=round_to(suggested_estimate + residual_sigma, 2) if clear else None,
        suggested_percent_change=round_to(calculate_percent_change(current_estimate, suggested_estimate), 2) if clear else None,
        confidence=confidence,
        status=status,
        status_reason=f"{reason}{model_note}",
        sampling_mode="trough" if use_trough else "all",
        sampling_warning=_sampling_warning(use_trough, unit_samples),
        used_report_dates=[s.test_date for s in kept],
        excluded_points=excluded,
        model_type=model_type,
        scenarios=scenarios,
    )


def estimate_dose_response(
    reports: Iterable[LabReport],
    markers: Iterable[str],
    unit_system: UnitSystem,
    protocols: Iterable[Protocol] = (),
    policy: DoseScenarioPolicy | None = None,
    catalog: MarkerCatalog = DEFAULT_CATALOG,
) -> list[DosePrediction]:
    reports = list(reports)
    protocols = list(protocols)
    policy = policy or DoseScenarioPolicy.from_settings()
    predictions = []
    for marker in markers:
        prediction = estimate_marker_dose_response(
            marker, collect_dose_samples(reports, marker, unit_system, protocols), policy
        )
        if prediction is not None:
            predictions.append(with_relevance(prediction, catalog))
    return sorted(
        predictions,
        key=lambda p: (STATUS_ORDER[p.status], CONFIDENCE_ORDER[p.confidence], -abs(p.correlation_r or 0.0)),
    )


def is_personal_prediction_eligible(prediction: DosePrediction) -> bool:
    if prediction.correlation_r is None:
        return False
    if prediction.sample_count < MIN_MODEL_SAMPLES or prediction.unique_dose_levels < 2:
        return False
    if abs(prediction.correlation_r) < 0.35:
        return False
    return not (prediction.marker in EXPECTED_POSITIVE_MARKERS and prediction.slope_per_mg < -EPSILON)


def relevance_score(prediction: DosePrediction, catalog: MarkerCatalog = DEFAULT_CATALOG) -> float:
    data_quality = (
        min(prediction.sample_count, 8) / 8 * 35
        + min(prediction.unique_dose_levels, 4) / 4 * 20
        + abs(prediction.correlation_r or 0.0) * 30
        + (15 if prediction.sampling_mode == "trough" else 7)
    )
    if prediction.source == "study_prior":
        data_quality *= 1 - 0.58
    elif prediction.source == "hybrid":
        data_quality *= 1 - 0.28
    effect_potential = min(abs(prediction.suggested_percent_change or 0.0), 25) / 25 * 100
    score = 0.45 * catalog.clinical_weight(prediction.marker) + 0.35 * data_quality + 0.20 * effect_potential
    return round(clip(score, 0, 100), 1)


def _why_relevant(prediction: DosePrediction, catalog: MarkerCatalog) -> str:
    sources = {
        "personal": "your own results",
        "study_prior": "published study data",
        "hybrid": "your results blended with study data",
    }
    return (
        f"{prediction.marker} carries clinical weight {catalog.clinical_weight(prediction.marker)}; "
        f"estimate based on {sources[prediction.source]} ({prediction.sample_count} samples, "
        f"{prediction.unique_dose_levels} dose levels)."
    )


def with_relevance(prediction: DosePrediction, catalog: MarkerCatalog = DEFAULT_CATALOG) -> DosePrediction:
    return prediction.model_copy(
        update={"relevance_score": relevance_score(prediction, catalog), "why_relevant": _why_relevant(prediction, catalog)}
    )


def _find_prior(prediction: DosePrediction, priors: list[DosePrior]) -> DosePrior | None:
    unit = normalize_unit_token(prediction.unit)
    return next(
        (p for p in priors if p.marker == prediction.marker and normalize_unit_token(p.unit) == unit),
        None,
    )


def _projection_update(
    prediction: DosePrediction,
    slope: float,
    sigma: float,
    prior: DosePrior,
    policy: DoseScenarioPolicy,
) -> dict:
    """Line through the current observed point with the given slope, plus bounds and scenarios."""
    current_dose = prediction.current_dose
    current_estimate = prediction.current_estimate
    intercept = current_estimate - slope * current_dose
    low_dose, high_dose = prior.dose_range
    suggested_dose = policy.suggested_dose(current_dose, current_dose, current_dose)

    def predict(dose: float) -> float:
        return max(0.0, intercept + slope * dose)

    suggested_estimate = predict(suggested_dose)
    scenarios = [
        DoseScenario(dose=dose, estimated_value=round_to(predict(dose), 2))
        for dose in policy.candidate_doses
        if low_dose <= dose <= high_dose
    ]
    if not any(abs(s.dose - round(suggested_dose, 2)) <= EPSILON for s in scenarios):
        scenarios.append(DoseScenario(dose=round(suggested_dose, 2), estimated_value=round_to(suggested_estimate, 2)))
    return {
        "slope_per_mg": slope,
        "intercept": intercept,
        "suggested_dose": round_to(suggested_dose, 2),
        "suggested_estimate": round_to(suggested_estimate, 2),
        "suggested_percent_change": round_to(calculate_percent_change(current_estimate, suggested_estimate), 2),
        "prediction_sigma": round_to(sigma, 3),
        "predicted_low": round_to(max(0.0, suggested_estimate - sigma), 2),
        "predicted_high": round_to(suggested_estimate + sigma, 2),
        "scenarios": sorted(scenarios, key=lambda scenario: scenario.dose),
    }


def blend_with_prior(
    prediction: DosePrediction,
    prior: DosePrior,
    api_assisted: bool = False,
    policy: DoseScenarioPolicy | None = None,
) -> DosePrediction:
    """Merge one personal prediction with one population prior."""
    if is_personal_prediction_eligible(prediction):
        return prediction
    if prediction.current_dose is None or prediction.current_estimate is None:
        return prediction

    policy = policy or DoseScenarioPolicy.from_settings()
    citations = [item.citation for item in prior.evidence]
    no_linkage = prediction.unique_dose_levels < 2 or prediction.correlation_r is None
    residual_sigma = prediction.residual_sigma or 0.0

    if no_linkage:
        update = _projection_update(prediction, prior.slope_per_mg, prior.sigma, prior, policy)
        update.update(
            source="study_prior",
            model_type="prior",
            confidence="Low",
            status="unclear",
            status_reason="Too little personal dose data; the estimate follows the published dose-response slope.",
            is_api_assisted=api_assisted,
            blend_diagnostics=BlendDiagnostics(
                personal_weight=0.0,
                prior_weight=1.0,
                personal_slope=None,
                prior_slope=prior.slope_per_mg,
                blended_slope=prior.slope_per_mg,
                sigma_personal=0.0,
                sigma_prior=prior.sigma,
                sigma_residual=residual_sigma,
                prior_citations=citations,
            ),
        )
        return prediction.model_copy(update=update)

    personal_weight = clip((prediction.sample_count - 2) / 6, 0, 1) * clip(abs(prediction.correlation_r) / 0.6, 0, 1)
    prior_weight = 1 - personal_weight
    blended_slope = personal_weight * prediction.slope_per_mg + prior_weight * prior.slope_per_mg
    sigma_personal = prediction.prediction_sigma or residual_sigma or prior.sigma
    combined_sigma = math.sqrt(
        (personal_weight * sigma_personal) ** 2 + (prior_weight * prior.sigma) ** 2 + residual_sigma**2
    )
    update = _projection_update(prediction, blended_slope, combined_sigma, prior, policy)
    update.update(
        source="hybrid",
        model_type="hybrid",
        confidence="Medium" if personal_weight >= 0.5 else "Low",
        status="unclear" if prediction.status == "insufficient" else prediction.status,
        status_reason=f"{prediction.status_reason} Blended with published dose-response data.",
        is_api_assisted=api_assisted,
        blend_diagnostics=BlendDiagnostics(
            personal_weight=round(personal_weight, 3),
            prior_weight=round(prior_weight, 3),
            personal_slope=prediction.slope_per_mg,
            prior_slope=prior.slope_per_mg,
            blended_slope=blended_slope,
            sigma_personal=sigma_personal,
            sigma_prior=prior.sigma,
            sigma_residual=residual_sigma,
            prior_citations=citations,
        ),
    )
    return prediction.model_copy(update=update)


def apply_dose_priors(
    predictions: Iterable[DosePrediction],
    priors: Iterable[DosePrior],
    api_assisted_markers: Iterable[str] = (),
    policy: DoseScenarioPolicy | None = None,
    catalog: MarkerCatalog = DEFAULT_CATALOG,
) -> list[DosePrediction]:
    priors = list(priors)
    assisted = set(api_assisted_markers)
    merged = []
    for prediction in predictions:
        prior = _find_prior(prediction, priors)
        if prior is not None:
            prediction = blend_with_prior(prediction, prior, prediction.marker in assisted, policy)
        merged.append(with_relevance(prediction, catalog))
    return sorted(merged, key=lambda p: -p.relevance_score)


def build_dose_correlation_insights(
    reports: Iterable[LabReport],
    markers: Iterable[str],
    unit_system: UnitSystem,
    protocols: Iterable[Protocol] = (),
) -> list[DoseCorrelationInsight]:
    reports = list(reports)
    protocols = list(protocols)
    insights = []
    for marker in markers:
        samples = collect_dose_samples(reports, marker, unit_system, protocols)
        if len(samples) < 3:
            continue
        same_unit = select_unit(samples).samples
        r = pearson([s.dose for s in same_unit], [s.value for s in same_unit])
        if r is None:
            continue
        strength = "strong" if abs(r) >= 0.6 else "moderate" if abs(r) >= 0.35 else "weak"
        insights.append(
            DoseCorrelationInsight(
                marker=marker,
                correlation_r=round(r, 3),
                sample_count=len(same_unit),
                strength=strength,
                direction="positive" if r >= 0 else "negative",
            )
        )
    return sorted(insights, key=lambda insight: -abs(insight.correlation_r))
