import re
from dataclasses import dataclass
from datetime import date
from typing import Iterable, Literal

from labtracker.schemas.lab_report import LabReport, Protocol, CompoundEntry, SupplementEntry
from labtracker.seed.protocol_standards import INJECTION_FREQUENCIES


def _frequency_key(text: str) -> str:
    return re.sub(r"\s+", " ", (text or "").replace("_", " ").strip().lower())


_FREQUENCY_BY_ALIAS = {
    _frequency_key(alias): option
    for option in INJECTION_FREQUENCIES
    for alias in [option["value"], option["label"]["en"], option["label"]["nl"], *option["aliases"]]
    if _frequency_key(alias)
}


@dataclass(frozen=True)
class ResolvedProtocol:
    """Protocol state active for one report, from a linked protocol or the annotation fallback."""
    source: Literal["protocol", "annotations"]
    protocol_id: str | None
    name: str
    dose_mg_per_week: float | None
    frequency_per_week: float | None
    injection_frequency: str
    compounds: tuple[str, ...]
    compounds_text: str
    supplements: tuple[SupplementEntry, ...]

    @property
    def label(self) -> str:
        return self.name or self.compounds_text

    @property
    def compound_set(self) -> frozenset[str]:
        return frozenset(normalize_compound_name(name) for name in self.compounds if normalize_compound_name(name))

    @property
    def supplements_text(self) -> str:
        return supplements_to_text(self.supplements)

    @property
    def supplement_keys(self) -> tuple[str, ...]:
        return build_supplement_stack_key(self.supplements)

    @property
    def has_signal(self) -> bool:
        """True when any dose, frequency or compound information is set."""
        if (self.dose_mg_per_week or 0) > 0 or (self.frequency_per_week or 0) > 0:
            return True
        return self.dose_mg_per_week is None and bool(self.compound_set)


def normalize_compound_name(name: str) -> str:
    return re.sub(r"\s+", " ", (name or "").strip().lower())


def parse_dose_mg(value) -> float | None:
    if value is None:
        return None
    if isinstance(value, (int, float)):
        return float(value)
    match = re.search(r"-?\d+(?:\.\d+)?", str(value).replace(",", "."))
    return float(match.group(0)) if match else None


def parse_frequency_per_week(text: str) -> float | None:
    normalized = _frequency_key(text).replace(",", ".")
    if not normalized:
        return None
    if re.search(r"\b(?:daily|dagelijks|every day|ed)\b", normalized):
        return 7.0
    if re.search(r"\b(?:eod|every other day|om de dag|qod)\b", normalized):
        return 3.5

    per_week = re.search(r"(\d+(?:\.\d+)?)\s*x\s*(?:per|/)?\s*week", normalized)
    if per_week is None:
        per_week = re.search(r"(\d+(?:\.\d+)?)\s*(?:times|keer)\s*(?:per|/)?\s*week", normalized)
    if per_week:
        return float(per_week.group(1))

    every_days = re.search(r"(?:every|elke)\s*(\d+(?:\.\d+)?)\s*(?:days?|dagen?)", normalized)
    if every_days:
        days = float(every_days.group(1))
        return 7 / days if days > 0 else None
    return None


def frequency_per_week(injection_frequency: str, fallback_text: str = "") -> float | None:
    option = _FREQUENCY_BY_ALIAS.get(_frequency_key(injection_frequency))
    if option is not None and option["doses_per_week"] is not None:
        return float(option["doses_per_week"])
    parsed = parse_frequency_per_week(injection_frequency)
    if parsed is not None:
        return parsed
    return parse_frequency_per_week(fallback_text)


def get_report_protocol(report: LabReport, protocols: Iterable[Protocol]) -> Protocol | None:
    protocol_id = report.annotations.protocol_id
    if not protocol_id:
        return None
    return next((p for p in protocols if p.id == protocol_id), None)


def get_primary_compound(protocol: Protocol | None) -> CompoundEntry | None:
    if protocol is None or not protocol.compounds:
        return None
    return next((c for c in protocol.compounds if "testosterone" in c.name.lower()), protocol.compounds[0])


def compounds_to_text(compounds: Iterable[CompoundEntry]) -> str:
    parts = []
    for entry in compounds:
        dose = str(entry.dose_mg).strip()
        parts.append(f"{entry.name} ({dose})" if dose else entry.name)
    return " + ".join(parts)


def supplements_to_text(supplements: Iterable[SupplementEntry]) -> str:
    parts = []
    for item in supplements:
        dose = item.dose.strip()
        frequency = item.frequency.strip()
        if frequency == "unknown":
            frequency = ""
        parts.append(" ".join(part for part in (item.name, dose, frequency) if part))
    return ", ".join(parts)


def build_supplement_stack_key(supplements: Iterable[SupplementEntry]) -> tuple[str, ...]:
    keys = {
        f"{item.name.strip().lower()}|{item.dose.strip().lower()}|{item.frequency.strip().lower()}"
        for item in supplements
        if item.name.strip()
    }
    return tuple(sorted(keys))


def _sort_supplements(items: Iterable[SupplementEntry]) -> tuple[SupplementEntry, ...]:
    return tuple(
        sorted(
            items,
            key=lambda s: (s.start_date or date.min, s.end_date or date.max, s.name),
        )
    )


def active_supplements_at(timeline: Iterable[SupplementEntry], when: date) -> tuple[SupplementEntry, ...]:
    active = [
        period
        for period in timeline
        if period.start_date is not None
        and period.start_date <= when
        and (period.end_date is None or when <= period.end_date)
    ]
    return _sort_supplements(active)


def _parse_supplement_text(text: str) -> tuple[SupplementEntry, ...]:
    return tuple(SupplementEntry(name=part.strip()) for part in (text or "").split(",") if part.strip())


def resolve_report_supplements(
    report: LabReport,
    protocol: Protocol | None,
    timeline: Iterable[SupplementEntry] | None = None,
) -> tuple[SupplementEntry, ...]:
    if report.annotations.supplement_overrides is not None:
        return _sort_supplements(report.annotations.supplement_overrides)
    if timeline:
        return active_supplements_at(timeline, report.test_date)
    if protocol is not None and protocol.supplements:
        return tuple(protocol.supplements)
    return _parse_supplement_text(report.annotations.supplements)


def resolve_report_protocol(
    report: LabReport,
    protocols: Iterable[Protocol],
    supplement_timeline: Iterable[SupplementEntry] | None = None,
) -> ResolvedProtocol:
    protocol = get_report_protocol(report, protocols)
    supplements = resolve_report_supplements(report, protocol, supplement_timeline)
    annotations = report.annotations

    if protocol is not None:
        primary = get_primary_compound(protocol)
        frequency = primary.frequency if primary else "unknown"
        return ResolvedProtocol(
            source="protocol",
            protocol_id=protocol.id,
            name=protocol.name,
            dose_mg_per_week=parse_dose_mg(primary.dose_mg) if primary else None,
            frequency_per_week=frequency_per_week(frequency, protocol.notes) if primary else None,
            injection_frequency=frequency or "unknown",
            compounds=tuple(c.name for c in protocol.compounds),
            compounds_text=compounds_to_text(protocol.compounds),
            supplements=supplements,
        )

    compounds = tuple(part.strip() for part in re.split(r"[+,]", annotations.compound) if part.strip())
    return ResolvedProtocol(
        source="annotations",
        protocol_id=None,
        name=annotations.protocol,
        dose_mg_per_week=annotations.dosage_mg_per_week,
        frequency_per_week=frequency_per_week(annotations.injection_frequency, annotations.protocol),
        injection_frequency=annotations.injection_frequency or "unknown",
        compounds=compounds,
        compounds_text=" + ".join(compounds),
        supplements=supplements,
    )


def sort_reports_chronological(reports: Iterable[LabReport]) -> list[LabReport]:
    return sorted(
        reports,
        key=lambda r: (r.test_date, r.created_at.isoformat() if r.created_at else ""),
    )
