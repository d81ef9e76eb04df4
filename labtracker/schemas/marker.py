from pydantic import BaseModel, Field

from labtracker.schemas.lab_report import UnitSystem


class MarkerCatalogItem(BaseModel):
    name: str
    category: str
    clinical_weight: int
    lag_days: int = Field(description="Expected delay before a protocol change shows in this marker")


class CanonicalizeRequest(BaseModel):
    labels: list[str] = Field(min_length=1, description="Marker labels as printed by the lab")


class CanonicalizeResult(BaseModel):
    label: str
    canonical_marker: str


class ConvertRequest(BaseModel):
    marker: str
    value: float
    unit: str
    to_system: UnitSystem


class ConvertResult(BaseModel):
    marker: str
    value: float | None
    unit: str
