import logging
import math

from labtracker.schemas.lab_report import LabReport, MarkerValue, UnitSystem
from labtracker.services.marker_series import derive_abnormal_flag, find_marker_in_report
from labtracker.services.statistics import EPSILON, finite_or_none, round_adaptive
from labtracker.services.unit_conversion import DEFAULT_UNIT_RULES, UnitRules, convert_measurement, normalize_unit_token

logger = logging.getLogger(__name__)

# Association constants (L/mol) for the Vermeulen mass-action model.
K_ALBUMIN = 3.6e4
K_SHBG = 1e9
ALBUMIN_MOLAR_MASS_G_PER_MOL = 66500.0


def solve_free_testosterone(total_t_nmol_l: float, shbg_nmol_l: float, albumin_g_l: float) -> float | None:
    """Free testosterone (nmol/L) from the quadratic binding equilibrium, or None when unsolvable."""
    inputs = [finite_or_none(v) for v in (total_t_nmol_l, shbg_nmol_l, albumin_g_l)]
    if any(v is None or v <= 0 for v in inputs):
        return None
    total_t_nmol, shbg_nmol, albumin_g = inputs

    total_t = total_t_nmol * 1e-9
    shbg = shbg_nmol * 1e-9
    albumin = albumin_g / ALBUMIN_MOLAR_MASS_G_PER_MOL

    non_specific_binding = 1 + K_ALBUMIN * albumin
    a = K_SHBG * non_specific_binding
    b = non_specific_binding + K_SHBG * shbg - K_SHBG * total_t
    c = -total_t
    if abs(a) <= 1e-20:
        return None

    discriminant = b * b - 4 * a * c
    if not math.isfinite(discriminant) or discriminant < 0:
        return None

    root = math.sqrt(discriminant)
    candidates = [r for r in ((-b + root) / (2 * a), (-b - root) / (2 * a)) if math.isfinite(r) and r >= 0]
    if not candidates:
        return None
    return finite_or_none(min(candidates) * 1e9)


def _measured_in(report: LabReport, marker: str, expected_unit: str, rules: UnitRules, system: UnitSystem = "eu") -> float | None:
    found = find_marker_in_report(report, marker, prefer_raw=True)
    if found is None:
        return None
    measurement = convert_measurement(marker, found.value, found.unit, system, rules=rules)
    if normalize_unit_token(measurement.unit) != normalize_unit_token(expected_unit):
        return None
    return finite_or_none(measurement.value)


def _calculated(name: str, value: float | None, unit: str) -> MarkerValue | None:
    rounded = round_adaptive(value)
    if rounded is None:
        return None
    return MarkerValue(
        marker=name,
        canonical_marker=name,
        value=rounded,
        unit=unit,
        abnormal=derive_abnormal_flag(rounded, None, None),
        confidence=1.0,
        is_calculated=True,
    )


def _free_testosterone(report: LabReport, rules: UnitRules) -> MarkerValue | None:
    total_t = _measured_in(report, "Testosterone", "nmol/L", rules)
    if total_t is None:
        logger.debug("Calculated free T skipped for %s: missing total testosterone", report.id)
        return None
    shbg = _measured_in(report, "SHBG", "nmol/L", rules)
    if shbg is None:
        logger.debug("Calculated free T skipped for %s: missing SHBG", report.id)
        return None
    albumin = _measured_in(report, "Albumin", "g/L", rules)
    if albumin is None:
        logger.debug("Calculated free T skipped for %s: missing albumin", report.id)
        return None

    free_t = solve_free_testosterone(total_t, shbg, albumin)
    if free_t is None:
        logger.debug("Calculated free T skipped for %s: solver failed", report.id)
        return None
    return _calculated("Free Testosterone", free_t, "nmol/L")


def derive_calculated_markers(
    report: LabReport,
    include_free_testosterone: bool = True,
    rules: UnitRules = DEFAULT_UNIT_RULES,
) -> list[MarkerValue]:
    raw_markers = [m for m in report.markers if not m.is_calculated]
    raw_report = report.model_copy(update={"markers": raw_markers})
    raw_names = {m.canonical_marker for m in raw_markers}
    derived: list[MarkerValue] = []

    def add(marker: MarkerValue | None) -> None:
        if marker is None or marker.canonical_marker in raw_names:
            return
        if any(item.canonical_marker == marker.canonical_marker for item in derived):
            return
        derived.append(marker)

    testosterone = _measured_in(raw_report, "Testosterone", "nmol/L", rules)
    estradiol = _measured_in(raw_report, "Estradiol", "pmol/L", rules)
    if testosterone is not None and estradiol is not None and estradiol > EPSILON:
        add(_calculated("T/E2 Ratio", testosterone * 1000 / estradiol, "ratio"))

    ldl = _measured_in(raw_report, "LDL Cholesterol", "mmol/L", rules)
    hdl = _measured_in(raw_report, "HDL Cholesterol", "mmol/L", rules)
    if ldl is not None and hdl is not None and hdl > EPSILON:
        add(_calculated("LDL/HDL Ratio", ldl / hdl, "ratio"))

    total_cholesterol = _measured_in(raw_report, "Total Cholesterol", "mmol/L", rules)
    if total_cholesterol is not None and hdl is not None:
        add(_calculated("Non-HDL Cholesterol", total_cholesterol - hdl, "mmol/L"))

    glucose = _measured_in(raw_report, "Fasting Glucose", "mmol/L", rules)
    insulin = _measured_in(raw_report, "Insulin", "uIU/mL", rules, system="us")
    if glucose is not None and insulin is not None:
        add(_calculated("HOMA-IR", glucose * insulin / 22.5, "index"))

    if testosterone is not None:
        shbg = _measured_in(raw_report, "SHBG", "nmol/L", rules)
        if shbg is not None and shbg > EPSILON:
            add(_calculated("Free Androgen Index", 100 * testosterone / shbg, "index"))

    if include_free_testosterone:
        add(_free_testosterone(raw_report, rules))

    return derived


def enrich_report(
    report: LabReport,
    include_free_testosterone: bool = True,
    rules: UnitRules = DEFAULT_UNIT_RULES,
) -> LabReport:
    """Copy of the report with stale calculated markers replaced by fresh derivations."""
    raw_markers = [m for m in report.markers if not m.is_calculated]
    calculated = derive_calculated_markers(report, include_free_testosterone, rules)
    return report.model_copy(update={"markers": [*raw_markers, *calculated]})


def enrich_reports(
    reports: list[LabReport],
    include_free_testosterone: bool = True,
    rules: UnitRules = DEFAULT_UNIT_RULES,
) -> list[LabReport]:
    return [enrich_report(report, include_free_testosterone, rules) for report in reports]
