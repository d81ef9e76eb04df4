from labtracker.schemas.dose_response import DosePrediction, DosePrior
from labtracker.schemas.lab_report import CompoundEntry, LabReport, MarkerValue, Protocol, ReportAnnotations, SupplementEntry
from labtracker.schemas.predictive import PredictiveAlert, TargetZone
from labtracker.schemas.protocol_impact import ProtocolImpactDoseEvent, ProtocolImpactMarkerRow
from labtracker.schemas.series import MarkerSeriesPoint, MarkerTrendSummary, TrtStabilityResult

__all__ = [
    "CompoundEntry",
    "DosePrediction",
    "DosePrior",
    "LabReport",
    "MarkerSeriesPoint",
    "MarkerTrendSummary",
    "MarkerValue",
    "PredictiveAlert",
    "Protocol",
    "ProtocolImpactDoseEvent",
    "ProtocolImpactMarkerRow",
    "ReportAnnotations",
    "SupplementEntry",
    "TargetZone",
    "TrtStabilityResult",
]
