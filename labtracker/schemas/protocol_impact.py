from datetime import date
from typing import Literal

from pydantic import BaseModel, Field

EventType = Literal["dose", "frequency", "compound", "mixed"]
EventSubtype = Literal["start", "adjustment"]
SignalStatus = Literal["early_signal", "building_signal", "established_pattern"]
ReadinessStatus = Literal["ready", "waiting_pre", "waiting_post", "waiting_both"]
ConfidenceLabel = Literal["High", "Medium", "Low"]
ValueSource = Literal["window", "nearest", "baseline", "none"]
ComparisonBasis = Literal["window", "event_reports", "insufficient"]
RowTrend = Literal["up", "down", "flat", "insufficient"]


class EventConfounders(BaseModel):
    sampling_changed: bool = False
    supplements_changed: bool = False
    symptoms_changed: bool = False


class ProtocolImpactMarkerRow(BaseModel):
    marker: str
    unit: str
    lag_days: int
    pre_window_start: date
    pre_window_end: date
    post_window_start: date
    post_window_end: date
    before_avg: float | None
    after_avg: float | None
    n_before: int
    n_after: int
    before_source: ValueSource
    after_source: ValueSource
    before_fallback: bool = Field(description="Pre value came from the nearest report outside the window")
    after_fallback: bool = Field(description="Post value came from the nearest report outside the window")
    delta_abs: float | None
    delta_pct: float | None
    trend: RowTrend
    comparison_basis: ComparisonBasis
    consistency_score: int
    sample_score: int
    effect_score: int
    effect_clarity_score: int
    clinical_weight: int
    impact_score: int
    confounder_penalty: int
    confidence_score: int
    confidence: ConfidenceLabel
    confidence_reason: str
    signal_status: SignalStatus
    readiness_status: ReadinessStatus
    recommended_next_test_date: date | None = None
    insufficient_data: bool
    narrative: str


class ProtocolImpactDoseEvent(BaseModel):
    id: str
    change_date: date
    from_report_id: str
    to_report_id: str
    from_dose_mg_per_week: float | None
    to_dose_mg_per_week: float | None
    from_frequency_per_week: float | None
    to_frequency_per_week: float | None
    from_compounds: list[str]
    to_compounds: list[str]
    event_type: EventType
    event_subtype: EventSubtype
    trigger_strength: int
    window_days: int
    before_count: int
    after_count: int
    confounders: EventConfounders
    rows: list[ProtocolImpactMarkerRow]
    top_impacts: list[ProtocolImpactMarkerRow]
    event_confidence: int
    event_confidence_label: ConfidenceLabel
    signal_status: SignalStatus
    headline_narrative: str
    story_observed: str
    story_interpretation: str
    story_change: str
    story_effect: str
    story_reliability: str
    story_summary: str
