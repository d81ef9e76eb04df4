from typing import Literal

from pydantic import BaseModel, Field

from labtracker.schemas.dose_response import DosePrior
from labtracker.schemas.lab_report import LabReport, Protocol, SupplementEntry, UnitSystem
from labtracker.schemas.series import TrtStabilityPoint, TrtStabilityResult


class AnalysisRequest(BaseModel):
    """Reports and protocol history for one analysis call; nothing is stored between calls."""
    reports: list[LabReport] = Field(default_factory=list)
    protocols: list[Protocol] = Field(default_factory=list)
    unit_system: UnitSystem = "eu"
    window_size: float | None = Field(default=None, description="Protocol-impact window in days, clamped to 21-90")
    markers: list[str] | None = Field(default=None, description="Restrict the analysis to these canonical markers")
    priors: list[DosePrior] = Field(default_factory=list, description="Externally fetched dose-response priors")
    use_local_priors: bool = False
    supplement_timeline: list[SupplementEntry] | None = None
    sampling: Literal["all", "trough", "peak"] = "all"
    include_calculated: bool = Field(default=True, description="Derive ratios, HOMA-IR, FAI and free testosterone")
    language: Literal["en", "nl"] | None = None


class StabilityResponse(BaseModel):
    current: TrtStabilityResult
    series: list[TrtStabilityPoint]
