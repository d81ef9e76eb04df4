from datetime import date
from typing import Literal

from pydantic import BaseModel


class PredictiveAlert(BaseModel):
    marker: str
    unit: str
    direction: Literal["rising", "falling"]
    threshold: float
    threshold_label: str
    current_value: float
    slope_per_day: float
    slope_per_month: float
    days_until: int
    predicted_date: date
    predicted_value: float
    points_used: int
    confidence: Literal["high", "medium", "low"]
    narrative: str


class TargetZone(BaseModel):
    marker: str
    min: float
    max: float
    unit: str
