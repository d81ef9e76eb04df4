from datetime import date, datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

UnitSystem = Literal["eu", "us"]
SamplingTiming = Literal["trough", "peak", "mid", "unknown"]
AbnormalFlag = Literal["high", "low", "normal", "unknown"]


class MarkerValue(BaseModel):
    """Single measured (or derived) marker on a lab report."""
    model_config = ConfigDict(frozen=True)

    marker: str = Field(description="Marker label as printed by the lab")
    canonical_marker: str = Field(description="Normalized marker name used for analysis")
    value: float
    unit: str = ""
    reference_min: float | None = None
    reference_max: float | None = None
    abnormal: AbnormalFlag = "unknown"
    confidence: float = Field(default=1.0, ge=0.0, le=1.0, description="Extraction confidence")
    is_calculated: bool = Field(default=False, description="Derived by formula instead of measured")


class SupplementEntry(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    dose: str = ""
    frequency: str = ""
    start_date: date | None = Field(default=None, description="Start of a supplement timeline period")
    end_date: date | None = Field(default=None, description="End of a supplement timeline period (open when empty)")


class ReportAnnotations(BaseModel):
    """Protocol annotations captured alongside a report."""
    model_config = ConfigDict(frozen=True)

    protocol_id: str | None = None
    protocol: str = Field(default="", description="Free-text protocol fallback")
    dosage_mg_per_week: float | None = Field(default=None, description="Fallback weekly dose when no protocol is linked")
    compound: str = Field(default="", description="Fallback compound text")
    injection_frequency: str = Field(default="", description="Fallback injection frequency text")
    supplements: str = ""
    supplement_overrides: list[SupplementEntry] | None = None
    symptoms: str = ""
    notes: str = ""
    sampling_timing: SamplingTiming = "unknown"


class LabReport(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    test_date: date
    created_at: datetime | None = None
    markers: list[MarkerValue] = Field(default_factory=list)
    annotations: ReportAnnotations = Field(default_factory=ReportAnnotations)
    is_baseline: bool = False


class CompoundEntry(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    dose_mg: str = Field(default="", description="Weekly dose in mg, as entered")
    frequency: str = Field(default="unknown", description="Administration frequency, e.g. 2x_week or 'every 3 days'")
    route: str = ""


class Protocol(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    name: str = ""
    compounds: list[CompoundEntry] = Field(default_factory=list)
    supplements: list[SupplementEntry] = Field(default_factory=list)
    notes: str = ""
    created_at: datetime | None = None
    updated_at: datetime | None = None
