from datetime import date
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

from labtracker.schemas.lab_report import UnitSystem

DoseStatus = Literal["clear", "unclear", "insufficient"]
ModelType = Literal["linear", "theil-sen", "hybrid", "prior"]
PredictionSource = Literal["personal", "study_prior", "hybrid"]
SamplingMode = Literal["trough", "all"]
ConfidenceLabel = Literal["High", "Medium", "Low"]


class DosePriorEvidence(BaseModel):
    model_config = ConfigDict(frozen=True)

    citation: str
    study_type: str = ""
    relevance: str = ""
    quality: Literal["high", "medium", "low"] = "medium"


class DosePrior(BaseModel):
    """Population dose-response prior, supplied by a collaborator or the local table."""
    model_config = ConfigDict(frozen=True)

    marker: str
    unit_system: UnitSystem
    unit: str
    slope_per_mg: float
    sigma: float = Field(gt=0)
    dose_range: tuple[float, float] = (60.0, 220.0)
    evidence: list[DosePriorEvidence] = Field(default_factory=list)


class ExcludedPoint(BaseModel):
    report_id: str
    test_date: date
    dose: float
    value: float
    unit: str
    reason: str


class DoseScenario(BaseModel):
    dose: float
    estimated_value: float


class BlendDiagnostics(BaseModel):
    personal_weight: float
    prior_weight: float
    personal_slope: float | None
    prior_slope: float
    blended_slope: float
    sigma_personal: float
    sigma_prior: float
    sigma_residual: float
    prior_citations: list[str] = Field(default_factory=list)


class DosePrediction(BaseModel):
    marker: str
    unit: str
    slope_per_mg: float
    intercept: float
    r_squared: float | None
    correlation_r: float | None
    sample_count: int
    unique_dose_levels: int
    all_sample_count: int
    trough_sample_count: int
    current_dose: float | None
    suggested_dose: float | None
    current_estimate: float | None
    suggested_estimate: float | None
    residual_sigma: float | None = None
    prediction_sigma: float | None = None
    predicted_low: float | None = None
    predicted_high: float | None = None
    suggested_percent_change: float | None = None
    confidence: ConfidenceLabel
    status: DoseStatus
    status_reason: str
    sampling_mode: SamplingMode
    sampling_warning: str | None = None
    used_report_dates: list[date] = Field(default_factory=list)
    excluded_points: list[ExcludedPoint] = Field(default_factory=list)
    model_type: ModelType
    source: PredictionSource = "personal"
    relevance_score: float = 0.0
    why_relevant: str = ""
    is_api_assisted: bool = False
    blend_diagnostics: BlendDiagnostics | None = None
    scenarios: list[DoseScenario] = Field(default_factory=list)


class DoseCorrelationInsight(BaseModel):
    marker: str
    correlation_r: float
    sample_count: int
    strength: Literal["strong", "moderate", "weak"]
    direction: Literal["positive", "negative"]


class SamplingModeDistribution(BaseModel):
    trough: int
    mixed: int


class DosePriorRequestContext(BaseModel):
    marker: str
    current_dose: float | None
    sample_count: int
    unique_dose_levels: int
    correlation_r: float | None
    sampling_mode_distribution: SamplingModeDistribution


class DosePriorRequestPayload(BaseModel):
    unit_system: UnitSystem
    markers: list[str]
    context: list[DosePriorRequestContext]
