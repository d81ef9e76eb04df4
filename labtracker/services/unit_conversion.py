import math
from dataclasses import dataclass
from types import MappingProxyType
from typing import Mapping

from labtracker.schemas.lab_report import UnitSystem
from labtracker.seed.unit_rules import HEMATOCRIT_RATIO_UNITS, SYSTEM_CONVERSIONS, UNIT_NORMALIZATIONS
from labtracker.services.statistics import finite_or_none

HEMATOCRIT = "Hematocrit"


@dataclass(frozen=True)
class UnitRules:
    system_conversions: Mapping[str, tuple[str, str, float]]
    unit_normalizations: Mapping[str, Mapping[str, tuple[str, float]]]
    hematocrit_ratio_units: frozenset[str]

    def canonical_unit(self, marker: str, unit_system: UnitSystem) -> str | None:
        rule = self.system_conversions.get(marker)
        if rule is None:
            return None
        return rule[0] if unit_system == "eu" else rule[1]


def build_unit_rules(
    system_conversions: dict | None = None,
    unit_normalizations: dict | None = None,
) -> UnitRules:
    conversions = SYSTEM_CONVERSIONS if system_conversions is None else system_conversions
    normalizations = UNIT_NORMALIZATIONS if unit_normalizations is None else unit_normalizations
    return UnitRules(
        system_conversions=MappingProxyType(dict(conversions)),
        unit_normalizations=MappingProxyType(
            {marker: MappingProxyType(dict(tokens)) for marker, tokens in normalizations.items()}
        ),
        hematocrit_ratio_units=frozenset(HEMATOCRIT_RATIO_UNITS),
    )


DEFAULT_UNIT_RULES = build_unit_rules()


@dataclass(frozen=True)
class Measurement:
    value: float
    unit: str
    reference_min: float | None = None
    reference_max: float | None = None

    def scaled(self, factor: float, unit: str) -> "Measurement":
        return Measurement(
            value=self.value * factor,
            unit=unit,
            reference_min=None if self.reference_min is None else self.reference_min * factor,
            reference_max=None if self.reference_max is None else self.reference_max * factor,
        )


def normalize_unit_token(unit: str | None) -> str:
    return "".join((unit or "").split()).lower().replace("µ", "u").replace("μ", "u")


def to_number(value) -> float:
    """Float value, or NaN when the input is not a finite number."""
    number = finite_or_none(value)
    return math.nan if number is None else number


def _to_percent_if_ratio(value: float | None) -> float | None:
    if value is None:
        return None
    return value * 100 if value <= 1.5 else value


def _normalize_hematocrit(measurement: Measurement, token: str, rules: UnitRules) -> Measurement:
    bounds = [b for b in (measurement.reference_min, measurement.reference_max) if b is not None]
    ratio_hint = (
        token in rules.hematocrit_ratio_units
        or measurement.value <= 1.5
        or any(bound <= 1.5 for bound in bounds)
    )
    if not ratio_hint:
        return Measurement(measurement.value, "%", measurement.reference_min, measurement.reference_max)
    return Measurement(
        value=_to_percent_if_ratio(measurement.value),
        unit="%",
        reference_min=_to_percent_if_ratio(measurement.reference_min),
        reference_max=_to_percent_if_ratio(measurement.reference_max),
    )


def normalize_measurement(
    marker: str,
    value,
    unit: str,
    reference_min: float | None = None,
    reference_max: float | None = None,
    rules: UnitRules = DEFAULT_UNIT_RULES,
) -> Measurement:
    """Rewrite vendor unit spellings to the marker's canonical EU or US unit."""
    measurement = Measurement(
        value=to_number(value),
        unit=unit or "",
        reference_min=finite_or_none(reference_min),
        reference_max=finite_or_none(reference_max),
    )
    token = normalize_unit_token(unit)
    if marker == HEMATOCRIT:
        return _normalize_hematocrit(measurement, token, rules)

    marker_tokens = rules.unit_normalizations.get(marker, {})
    if token in marker_tokens:
        target_unit, factor = marker_tokens[token]
        return measurement.scaled(factor, target_unit)

    rule = rules.system_conversions.get(marker)
    if rule is not None:
        eu_unit, us_unit, _ = rule
        if token == normalize_unit_token(eu_unit):
            return measurement.scaled(1.0, eu_unit)
        if token == normalize_unit_token(us_unit):
            return measurement.scaled(1.0, us_unit)
    return measurement


def convert_measurement(
    marker: str,
    value,
    unit: str,
    to_system: UnitSystem,
    reference_min: float | None = None,
    reference_max: float | None = None,
    rules: UnitRules = DEFAULT_UNIT_RULES,
) -> Measurement:
    measurement = normalize_measurement(marker, value, unit, reference_min, reference_max, rules)
    rule = rules.system_conversions.get(marker)
    if rule is None:
        return measurement

    eu_unit, us_unit, eu_to_us = rule
    token = normalize_unit_token(measurement.unit)
    if token == normalize_unit_token(eu_unit):
        return measurement if to_system == "eu" else measurement.scaled(eu_to_us, us_unit)
    if token == normalize_unit_token(us_unit):
        return measurement if to_system == "us" else measurement.scaled(1 / eu_to_us, eu_unit)
    return measurement


def convert(
    marker: str,
    value,
    from_unit: str,
    to_system: UnitSystem,
    rules: UnitRules = DEFAULT_UNIT_RULES,
) -> tuple[float, str]:
    """Convert a value to the unit system; unknown markers/units pass through unchanged.

    A non-numeric input comes back as NaN so callers can drop it with ``math.isfinite``.
    """
    measurement = convert_measurement(marker, value, from_unit, to_system, rules=rules)
    return measurement.value, measurement.unit
