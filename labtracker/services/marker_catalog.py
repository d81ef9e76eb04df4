import re
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Mapping

from labtracker.seed.marker_catalog import (
    CATEGORY_LAG_DAYS,
    DEFAULT_CLINICAL_WEIGHT,
    DEFAULT_LAG_DAYS,
    LONGEVITY_TARGET_ZONES,
    MARKERS,
    TRT_TARGET_ZONES,
)


def normalize_marker_text(text: str) -> str:
    """Lowercase alphanumeric words separated by single spaces."""
    return re.sub(r"[^a-z0-9]+", " ", (text or "").lower()).strip()


def _frozen(mapping: dict) -> Mapping:
    return MappingProxyType(dict(mapping))


@dataclass(frozen=True)
class MarkerCatalog:
    """Read-only marker lookup tables: aliases, categories, weights, lags and target zones."""
    aliases: Mapping[str, str]
    categories: Mapping[str, str]
    clinical_weights: Mapping[str, int]
    lag_days_by_category: Mapping[str, int] = field(default_factory=lambda: _frozen(CATEGORY_LAG_DAYS))
    target_zones: Mapping[str, Mapping[str, tuple]] = field(default_factory=lambda: _frozen({}))
    default_clinical_weight: int = DEFAULT_CLINICAL_WEIGHT
    default_lag_days: int = DEFAULT_LAG_DAYS

    def aliases_by_length(self) -> list[tuple[str, str]]:
        return sorted(self.aliases.items(), key=lambda item: len(item[0]), reverse=True)

    def category_of(self, marker: str) -> str:
        return self.categories.get(marker, "Other")

    def lag_days(self, marker: str) -> int:
        return self.lag_days_by_category.get(self.category_of(marker), self.default_lag_days)

    def clinical_weight(self, marker: str) -> int:
        return self.clinical_weights.get(marker, self.default_clinical_weight)


def build_marker_catalog(markers: list[dict] | None = None) -> MarkerCatalog:
    entries = MARKERS if markers is None else markers
    aliases: dict[str, str] = {}
    categories: dict[str, str] = {}
    weights: dict[str, int] = {}
    for entry in entries:
        name = entry["name"]
        categories[name] = entry.get("category", "Other")
        if "weight" in entry:
            weights[name] = int(entry["weight"])
        for alias in [name, *entry.get("aliases", [])]:
            normalized = normalize_marker_text(alias)
            if normalized:
                aliases.setdefault(normalized, name)

    zones = {
        "trt": _frozen(TRT_TARGET_ZONES),
        "longevity": _frozen(LONGEVITY_TARGET_ZONES),
    }
    return MarkerCatalog(
        aliases=_frozen(aliases),
        categories=_frozen(categories),
        clinical_weights=_frozen(weights),
        target_zones=_frozen(zones),
    )


DEFAULT_CATALOG = build_marker_catalog()
