from datetime import date, datetime
from typing import Literal

from pydantic import BaseModel, Field

from labtracker.schemas.lab_report import AbnormalFlag, SamplingTiming

TrendKind = Literal["rising", "falling", "stable", "volatile"]


class ProtocolContext(BaseModel):
    """Protocol snapshot captured at the time of a report."""
    dosage_mg_per_week: float | None = None
    compound: str = ""
    injection_frequency: str = "unknown"
    protocol: str = ""
    supplements: str = ""
    symptoms: str = ""
    notes: str = ""
    sampling_timing: SamplingTiming = "unknown"


class MarkerSeriesPoint(BaseModel):
    key: str
    test_date: date
    report_id: str
    created_at: datetime | None = None
    value: float
    unit: str
    reference_min: float | None = None
    reference_max: float | None = None
    abnormal: AbnormalFlag = "unknown"
    context: ProtocolContext
    is_calculated: bool = False


class MarkerTrendSummary(BaseModel):
    marker: str
    unit: str = ""
    trend: TrendKind
    slope: float = Field(description="OLS slope per point over the recent window")
    mean: float
    std_dev: float
    coefficient_of_variation: float
    points: int
    explanation: str


class TrtStabilityComponent(BaseModel):
    marker: str
    score: float
    coefficient_of_variation: float
    points: int
    weight: float


class TrtStabilityResult(BaseModel):
    score: int | None
    components: list[TrtStabilityComponent] = Field(default_factory=list)


class TrtStabilityPoint(BaseModel):
    key: str
    test_date: date
    score: int
