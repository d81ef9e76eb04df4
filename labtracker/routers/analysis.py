import logging

from fastapi import APIRouter, Depends

from labtracker.schemas.analysis import AnalysisRequest, StabilityResponse
from labtracker.schemas.dose_response import DoseCorrelationInsight, DosePrediction, DosePriorRequestPayload
from labtracker.schemas.lab_report import LabReport
from labtracker.schemas.predictive import PredictiveAlert
from labtracker.schemas.protocol_impact import ProtocolImpactDoseEvent
from labtracker.schemas.series import MarkerSeriesPoint, MarkerTrendSummary
from labtracker.routers.deps import get_dose_policy, get_marker_catalog, get_unit_rules
from labtracker.services.calculated_markers import enrich_reports
from labtracker.services.dose_priors import build_dose_prior_request_payload, local_dose_priors
from labtracker.services.dose_response import (
    DoseScenarioPolicy,
    apply_dose_priors,
    build_dose_correlation_insights,
    estimate_dose_response,
)
from labtracker.services.marker_catalog import MarkerCatalog
from labtracker.services.marker_series import build_series_by_marker, filter_reports_by_sampling, list_canonical_markers
from labtracker.services.predictive_trends import build_predictive_alerts
from labtracker.services.protocol_impact import build_protocol_impact_dose_events
from labtracker.services.trend_analyzer import (
    build_trend_summaries,
    build_trt_stability_series,
    compute_trt_stability_index,
)
from labtracker.services.unit_conversion import UnitRules

router = APIRouter(prefix="/api/analysis", tags=["analysis"])
logger = logging.getLogger(__name__)


def _prepare_reports(payload: AnalysisRequest, rules: UnitRules) -> list[LabReport]:
    reports = filter_reports_by_sampling(payload.reports, payload.sampling)
    if payload.include_calculated:
        reports = enrich_reports(reports, rules=rules)
    return reports


def _markers(payload: AnalysisRequest, reports: list[LabReport]) -> list[str]:
    return payload.markers if payload.markers is not None else list_canonical_markers(reports)


@router.post("/series", response_model=dict[str, list[MarkerSeriesPoint]])
def series(payload: AnalysisRequest, rules: UnitRules = Depends(get_unit_rules)):
    reports = _prepare_reports(payload, rules)
    return build_series_by_marker(reports, payload.unit_system, payload.protocols, _markers(payload, reports), rules)


@router.post("/trends", response_model=list[MarkerTrendSummary])
def trends(payload: AnalysisRequest, rules: UnitRules = Depends(get_unit_rules)):
    reports = _prepare_reports(payload, rules)
    return build_trend_summaries(reports, payload.unit_system, payload.protocols, payload.markers)


@router.post("/protocol-impact", response_model=list[ProtocolImpactDoseEvent])
def protocol_impact(
    payload: AnalysisRequest,
    catalog: MarkerCatalog = Depends(get_marker_catalog),
    rules: UnitRules = Depends(get_unit_rules),
):
    events = build_protocol_impact_dose_events(
        _prepare_reports(payload, rules),
        payload.unit_system,
        payload.window_size,
        payload.protocols,
        payload.supplement_timeline,
        catalog,
        rules,
        payload.language,
    )
    logger.info("Detected %d protocol events across %d reports", len(events), len(payload.reports))
    return events


def _predictions(
    payload: AnalysisRequest, rules: UnitRules, policy: DoseScenarioPolicy, catalog: MarkerCatalog
) -> list[DosePrediction]:
    reports = _prepare_reports(payload, rules)
    return estimate_dose_response(
        reports, _markers(payload, reports), payload.unit_system, payload.protocols, policy, catalog
    )


@router.post("/dose-response", response_model=list[DosePrediction])
def dose_response(
    payload: AnalysisRequest,
    catalog: MarkerCatalog = Depends(get_marker_catalog),
    rules: UnitRules = Depends(get_unit_rules),
    policy: DoseScenarioPolicy = Depends(get_dose_policy),
):
    predictions = _predictions(payload, rules, policy, catalog)
    priors = list(payload.priors)
    if payload.use_local_priors:
        supplied = {(p.marker, p.unit_system) for p in priors}
        priors.extend(p for p in local_dose_priors(payload.unit_system) if (p.marker, p.unit_system) not in supplied)
    if not priors:
        return predictions
    return apply_dose_priors(predictions, priors, {p.marker for p in payload.priors}, policy, catalog)


@router.post("/dose-priors/request", response_model=DosePriorRequestPayload)
def dose_prior_request(
    payload: AnalysisRequest,
    catalog: MarkerCatalog = Depends(get_marker_catalog),
    rules: UnitRules = Depends(get_unit_rules),
    policy: DoseScenarioPolicy = Depends(get_dose_policy),
):
    predictions = _predictions(payload, rules, policy, catalog)
    markers = payload.markers if payload.markers is not None else [p.marker for p in predictions]
    return build_dose_prior_request_payload(predictions, payload.unit_system, markers)


@router.post("/dose-correlations", response_model=list[DoseCorrelationInsight])
def dose_correlations(payload: AnalysisRequest, rules: UnitRules = Depends(get_unit_rules)):
    reports = _prepare_reports(payload, rules)
    return build_dose_correlation_insights(reports, _markers(payload, reports), payload.unit_system, payload.protocols)


@router.post("/predictive-alerts", response_model=list[PredictiveAlert])
def predictive_alerts(payload: AnalysisRequest, rules: UnitRules = Depends(get_unit_rules)):
    reports = _prepare_reports(payload, rules)
    series_by_marker = build_series_by_marker(
        reports, payload.unit_system, payload.protocols, _markers(payload, reports), rules
    )
    return build_predictive_alerts(series_by_marker, payload.unit_system, language=payload.language)


@router.post("/stability", response_model=StabilityResponse)
def stability(payload: AnalysisRequest, rules: UnitRules = Depends(get_unit_rules)):
    reports = _prepare_reports(payload, rules)
    return StabilityResponse(
        current=compute_trt_stability_index(reports, payload.unit_system, payload.protocols),
        series=build_trt_stability_series(reports, payload.unit_system, payload.protocols),
    )
