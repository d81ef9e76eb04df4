import logging
import math
from datetime import timedelta
from typing import Iterable, Mapping

from labtracker.config import settings
from labtracker.schemas.lab_report import LabReport, Protocol, UnitSystem
from labtracker.schemas.predictive import PredictiveAlert, TargetZone
from labtracker.schemas.series import MarkerSeriesPoint
from labtracker.seed.alert_thresholds import PREDICTIVE_THRESHOLDS
from labtracker.services import narratives
from labtracker.services.marker_catalog import DEFAULT_CATALOG, MarkerCatalog
from labtracker.services.marker_series import build_series_by_marker
from labtracker.services.statistics import EPSILON, linear_regression, round_to
from labtracker.services.unit_conversion import DEFAULT_UNIT_RULES, UnitRules, convert, normalize_unit_token

logger = logging.getLogger(__name__)


def _confidence(points: int) -> str:
    if points >= 4:
        return "high"
    if points == 3:
        return "medium"
    return "low"


def _in_unit_system(
    marker: str, series: list[MarkerSeriesPoint], unit_system: UnitSystem, rules: UnitRules
) -> list[MarkerSeriesPoint]:
    converted = []
    for point in series:
        value, unit = convert(marker, point.value, point.unit, unit_system, rules)
        converted.append(point.model_copy(update={"value": value, "unit": unit}))
    return converted


def build_predictive_alerts(
    series_by_marker: Mapping[str, list[MarkerSeriesPoint]],
    unit_system: UnitSystem,
    thresholds: Iterable[tuple] = PREDICTIVE_THRESHOLDS,
    horizon_days: int | None = None,
    language: str | None = None,
    rules: UnitRules = DEFAULT_UNIT_RULES,
) -> list[PredictiveAlert]:
    """Project each marker's linear trend forward and report the nearest threshold crossing per marker.

    Series are brought into the requested unit system first, so vendor spellings
    such as IU/L compare against a U/L threshold.
    """
    horizon = settings.predictive_horizon_days if horizon_days is None else horizon_days
    language = narratives.resolve_language(language)
    alerts = []
    for marker, direction, eu_threshold, eu_unit, us_threshold, us_unit, labels in thresholds:
        series = sorted(series_by_marker.get(marker, []), key=lambda p: (p.test_date, p.created_at.isoformat() if p.created_at else ""))
        threshold, threshold_unit = (us_threshold, us_unit) if unit_system == "us" else (eu_threshold, eu_unit)
        comparable = [
            p
            for p in _in_unit_system(marker, series, unit_system, rules)
            if math.isfinite(p.value) and normalize_unit_token(p.unit) == normalize_unit_token(threshold_unit)
        ]
        if len(comparable) < len(series):
            logger.info("%s: %d points in a unit not comparable with %s", marker, len(series) - len(comparable), threshold_unit)
        series = comparable
        if len(series) < 2:
            continue
        current = series[-1]
        label = labels.get(language, labels["en"])

        fit = linear_regression([p.test_date.toordinal() for p in series], [p.value for p in series])
        if fit is None or abs(fit.slope) <= EPSILON:
            continue
        slope = fit.slope
        if direction == "rising" and (slope <= 0 or current.value >= threshold):
            continue
        if direction == "falling" and (slope >= 0 or current.value <= threshold):
            continue

        days_until = round(abs((threshold - current.value) / slope))
        if days_until <= 0 or days_until > horizon:
            continue

        slope_per_month = round(slope * 30, 2)
        alerts.append(
            PredictiveAlert(
                marker=marker,
                unit=current.unit,
                direction=direction,
                threshold=threshold,
                threshold_label=label,
                current_value=round_to(current.value, 3),
                slope_per_day=round_to(slope, 5),
                slope_per_month=slope_per_month,
                days_until=days_until,
                predicted_date=current.test_date + timedelta(days=days_until),
                predicted_value=round(current.value + slope * days_until, 2),
                points_used=len(series),
                confidence=_confidence(len(series)),
                narrative=narratives.alert_narrative(
                    marker,
                    direction,
                    len(series),
                    slope_per_month,
                    current.unit,
                    label,
                    threshold,
                    threshold_unit,
                    days_until,
                    language,
                ),
            )
        )

    alerts.sort(key=lambda alert: alert.days_until)
    seen: set[str] = set()
    nearest = []
    for alert in alerts:
        if alert.marker in seen:
            continue
        seen.add(alert.marker)
        nearest.append(alert)
    return nearest


def build_predictive_alerts_from_reports(
    reports: Iterable[LabReport],
    unit_system: UnitSystem,
    protocols: Iterable[Protocol] = (),
    thresholds: Iterable[tuple] = PREDICTIVE_THRESHOLDS,
    language: str | None = None,
    rules: UnitRules = DEFAULT_UNIT_RULES,
) -> list[PredictiveAlert]:
    thresholds = list(thresholds)
    markers = sorted({entry[0] for entry in thresholds})
    series_by_marker = build_series_by_marker(reports, unit_system, protocols, markers, rules)
    return build_predictive_alerts(series_by_marker, unit_system, thresholds, language=language, rules=rules)


def get_target_zone(
    marker: str,
    unit_system: UnitSystem,
    mode: str = "trt",
    catalog: MarkerCatalog = DEFAULT_CATALOG,
    rules: UnitRules = DEFAULT_UNIT_RULES,
) -> TargetZone | None:
    """Target zone in the requested unit system; zones are stored in EU units."""
    zone = catalog.target_zones.get(mode, {}).get(marker)
    if zone is None:
        return None
    low, high, unit = zone
    low_value, target_unit = convert(marker, low, unit, unit_system, rules)
    high_value, _ = convert(marker, high, unit, unit_system, rules)
    return TargetZone(marker=marker, min=round_to(low_value, 2), max=round_to(high_value, 2), unit=target_unit)
