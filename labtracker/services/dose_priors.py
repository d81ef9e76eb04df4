from typing import Iterable

from labtracker.schemas.dose_response import (
    DosePrediction,
    DosePrior,
    DosePriorEvidence,
    DosePriorRequestContext,
    DosePriorRequestPayload,
    SamplingModeDistribution,
)
from labtracker.schemas.lab_report import UnitSystem
from labtracker.seed.dose_priors import DEFAULT_DOSE_RANGE, LOCAL_DOSE_PRIORS
from labtracker.services.statistics import round_to
from labtracker.services.unit_conversion import normalize_unit_token


def _to_prior(entry: dict) -> DosePrior:
    return DosePrior(
        marker=entry["marker"],
        unit_system=entry["unit_system"],
        unit=entry["unit"],
        slope_per_mg=entry["slope_per_mg"],
        sigma=entry["sigma"],
        dose_range=entry.get("dose_range", DEFAULT_DOSE_RANGE),
        evidence=[DosePriorEvidence(**item) for item in entry.get("evidence", [])],
    )


def local_dose_priors(unit_system: UnitSystem | None = None, entries: Iterable[dict] | None = None) -> list[DosePrior]:
    entries = LOCAL_DOSE_PRIORS if entries is None else entries
    return [_to_prior(entry) for entry in entries if unit_system is None or entry["unit_system"] == unit_system]


def get_local_dose_prior(marker: str, unit_system: UnitSystem, unit: str | None = None) -> DosePrior | None:
    """Built-in prior for the marker in the unit system; ``unit`` must match when given."""
    for prior in local_dose_priors(unit_system):
        if prior.marker != marker:
            continue
        if unit is not None and normalize_unit_token(prior.unit) != normalize_unit_token(unit):
            continue
        return prior
    return None


def build_dose_prior_request_payload(
    predictions: Iterable[DosePrediction],
    unit_system: UnitSystem,
    markers: list[str],
) -> DosePriorRequestPayload:
    """Anonymized modeling context for a prior lookup; no values, dates or identifiers leave the core."""
    wanted = set(markers)
    context = [
        DosePriorRequestContext(
            marker=prediction.marker,
            current_dose=round_to(prediction.current_dose, 3),
            sample_count=prediction.sample_count,
            unique_dose_levels=prediction.unique_dose_levels,
            correlation_r=round_to(prediction.correlation_r, 3),
            sampling_mode_distribution=SamplingModeDistribution(
                trough=prediction.trough_sample_count,
                mixed=max(0, prediction.all_sample_count - prediction.trough_sample_count),
            ),
        )
        for prediction in predictions
        if prediction.marker in wanted
    ]
    return DosePriorRequestPayload(unit_system=unit_system, markers=list(markers), context=context)
