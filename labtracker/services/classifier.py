import re
from typing import Iterable

from rapidfuzz import fuzz

from labtracker.config import settings
from labtracker.services.marker_catalog import DEFAULT_CATALOG, MarkerCatalog, normalize_marker_text

UNKNOWN_MARKER = "Unknown Marker"

_TESTOSTERONE = re.compile(r"\b(?:testosterone|testosteron)\b")
_FREE = re.compile(r"\b(?:free|vrij|vrije)\b")
_BIOAVAILABLE = re.compile(r"\bbioavailable\b")


def _compact(text: str) -> str:
    return re.sub(r"[^a-z0-9]", "", text.lower())


def _has_whole_alias(normalized_text: str, alias: str) -> bool:
    return re.search(rf"\b{re.escape(alias)}\b", normalized_text) is not None


def _fuzzy_match_marker(catalog: MarkerCatalog, normalized: str, threshold: int) -> tuple[str | None, float]:
    name_compact = _compact(normalized)
    best_score = -1.0
    best_name = None
    # Very short labels ("hb", "e2") only match exactly.
    if len(name_compact) < 4:
        return None, best_score

    for alias, canonical in catalog.aliases.items():
        score = fuzz.ratio(name_compact, _compact(alias))
        if score > best_score:
            best_score = score
            best_name = canonical

    if best_score >= threshold:
        return best_name, best_score
    return None, best_score


def _title_case(text: str) -> str:
    return " ".join(word[0].upper() + word[1:].lower() for word in text.strip().split(" ") if word)


def canonicalize(marker_text: str, catalog: MarkerCatalog = DEFAULT_CATALOG, threshold: int | None = None) -> str:
    normalized = normalize_marker_text(marker_text)
    if not normalized:
        return UNKNOWN_MARKER

    if _BIOAVAILABLE.search(normalized) and _TESTOSTERONE.search(normalized):
        return "Bioavailable Testosterone"
    if _TESTOSTERONE.search(normalized) and _FREE.search(normalized):
        return "Free Testosterone"

    exact = catalog.aliases.get(normalized)
    if exact:
        return exact

    for alias, canonical in catalog.aliases_by_length():
        if _has_whole_alias(normalized, alias):
            return canonical

    score_threshold = threshold if threshold is not None else settings.marker_fuzzy_threshold
    fuzzy_match, _ = _fuzzy_match_marker(catalog, normalized, score_threshold)
    if fuzzy_match is not None:
        return fuzzy_match

    return _title_case(marker_text)


def canonicalize_many(marker_texts: Iterable[str], catalog: MarkerCatalog = DEFAULT_CATALOG) -> dict[str, str]:
    return {text: canonicalize(text, catalog) for text in marker_texts}
