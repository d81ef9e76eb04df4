from labtracker.services.dose_response import DoseScenarioPolicy
from labtracker.services.marker_catalog import DEFAULT_CATALOG, MarkerCatalog
from labtracker.services.unit_conversion import DEFAULT_UNIT_RULES, UnitRules


def get_marker_catalog() -> MarkerCatalog:
    return DEFAULT_CATALOG


def get_unit_rules() -> UnitRules:
    return DEFAULT_UNIT_RULES


def get_dose_policy() -> DoseScenarioPolicy:
    return DoseScenarioPolicy.from_settings()
