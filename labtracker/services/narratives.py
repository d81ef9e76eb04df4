"""
Deterministic sentence templates for protocol-impact events and alerts.

Every sentence is rendered from a lookup table keyed by template name and
language, so identical inputs always produce identical text.
"""
from datetime import date
from typing import Iterable

from labtracker.config import settings
from labtracker.schemas.protocol_impact import ProtocolImpactMarkerRow, SignalStatus

TEMPLATES: dict[str, dict[str, str]] = {
    "en": {
        "headline_dose": "Weekly dose change ({from_dose} → {to_dose} mg/week) on {change_date}",
        "headline_frequency": "Injection frequency change ({from_frequency} → {to_frequency}x/week) on {change_date}",
        "headline_compound": "Compound change ({from_compounds} → {to_compounds}) on {change_date}",
        "headline_mixed": "Protocol change ({parts}) on {change_date}",
        "headline_start": "Protocol start: {headline}",
        "part_dose": "dose {from_dose} → {to_dose} mg/week",
        "part_frequency": "frequency {from_frequency} → {to_frequency}x/week",
        "part_compound": "compound {from_compounds} → {to_compounds}",
        "row_waiting_post": "{marker}: no measurement in the post window yet ({start} to {end}). Retest around {next_date}.",
        "row_waiting_pre": "{marker}: no measurement in the pre window ({start} to {end}) to compare against.",
        "row_waiting_both": "{marker}: no measurements in the pre window or the post window yet.",
        "row_up": "{marker} rose from {before} to {after} {unit} ({pct}) after the change.",
        "row_down": "{marker} fell from {before} to {after} {unit} ({pct}) after the change.",
        "row_flat": "{marker} stayed level at about {after} {unit} after the change.",
        "observed_item": "{marker} {before} → {after} {unit} ({pct})",
        "observed_none": "No marker has been measured on both sides of this change yet.",
        "interpretation_early_signal": "This is an early signal: there are too few measurements around the change to link differences to it.",
        "interpretation_building_signal": "A signal is building around {marker}, but another test is needed before drawing conclusions.",
        "interpretation_established_pattern": "The signal for {marker} is an established pattern that repeats on both sides of the change.",
        "change": "What changed: {parts}.",
        "effect": "Largest effect: {marker} {direction} {pct} ({before} → {after} {unit}).",
        "effect_none": "No measurable effect yet.",
        "direction_up": "up",
        "direction_down": "down",
        "direction_flat": "unchanged",
        "reliability": "Confidence {label} ({score}/100) with {before_count} report(s) before and {after_count} after the change.",
        "reliability_sampling": "Sampling timing differed between the windows.",
        "reliability_supplements": "The supplement stack changed at the same time.",
        "reliability_symptoms": "Reported symptoms changed at the same time.",
        "summary_early_signal": "Too early to judge this change. Retest after the response window.",
        "summary_building_signal": "Early results point in one direction. Confirm with another test.",
        "summary_established_pattern": "The effect of this change is consistent across repeat tests.",
        "reason_window": "{n_before} before / {n_after} after in window",
        "reason_fallback_pre": "pre value from nearest report ({source})",
        "reason_fallback_post": "post value from nearest report",
        "reason_confounded": "confounders present",
        "alert_rising": "Based on your last {points} measurements, {marker} is trending upward at ~{rate} {unit}/month. If you stay on your current protocol, it could reach the {label} of {threshold} {threshold_unit} {timing}.",
        "alert_falling": "Based on your last {points} measurements, {marker} is trending downward at ~{rate} {unit}/month. If you stay on your current protocol, it could fall below the {label} of {threshold} {threshold_unit} {timing}.",
        "alert_weeks": "within {weeks} weeks",
        "alert_months": "in approximately {months} month(s)",
        "unknown": "unknown",
        "none": "none",
    },
    "nl": {
        "headline_dose": "Wijziging weekdosis ({from_dose} → {to_dose} mg/week) op {change_date}",
        "headline_frequency": "Wijziging injectiefrequentie ({from_frequency} → {to_frequency}x/week) op {change_date}",
        "headline_compound": "Wijziging middel ({from_compounds} → {to_compounds}) op {change_date}",
        "headline_mixed": "Protocolwijziging ({parts}) op {change_date}",
        "headline_start": "Start protocol: {headline}",
        "part_dose": "dosis {from_dose} → {to_dose} mg/week",
        "part_frequency": "frequentie {from_frequency} → {to_frequency}x/week",
        "part_compound": "middel {from_compounds} → {to_compounds}",
        "row_waiting_post": "{marker}: nog geen meting in het na-venster ({start} tot {end}). Test opnieuw rond {next_date}.",
        "row_waiting_pre": "{marker}: geen meting in het voor-venster ({start} tot {end}) om mee te vergelijken.",
        "row_waiting_both": "{marker}: nog geen metingen in het voor-venster of het na-venster.",
        "row_up": "{marker} steeg van {before} naar {after} {unit} ({pct}) na de wijziging.",
        "row_down": "{marker} daalde van {before} naar {after} {unit} ({pct}) na de wijziging.",
        "row_flat": "{marker} bleef ongeveer gelijk op {after} {unit} na de wijziging.",
        "observed_item": "{marker} {before} → {after} {unit} ({pct})",
        "observed_none": "Nog geen marker is aan beide kanten van deze wijziging gemeten.",
        "interpretation_early_signal": "Dit is een vroeg signaal: er zijn te weinig metingen rond de wijziging om verschillen eraan te koppelen.",
        "interpretation_building_signal": "Er ontstaat een signaal rond {marker}, maar een extra test is nodig voor conclusies.",
        "interpretation_established_pattern": "Het signaal voor {marker} is een vast patroon dat aan beide kanten van de wijziging terugkomt.",
        "change": "Wat veranderde: {parts}.",
        "effect": "Grootste effect: {marker} {direction} {pct} ({before} → {after} {unit}).",
        "effect_none": "Nog geen meetbaar effect.",
        "direction_up": "omhoog",
        "direction_down": "omlaag",
        "direction_flat": "onveranderd",
        "reliability": "Betrouwbaarheid {label} ({score}/100) met {before_count} rapport(en) voor en {after_count} na de wijziging.",
        "reliability_sampling": "Het afnamemoment verschilde tussen de vensters.",
        "reliability_supplements": "De supplementen veranderden tegelijkertijd.",
        "reliability_symptoms": "De gemelde klachten veranderden tegelijkertijd.",
        "summary_early_signal": "Te vroeg om deze wijziging te beoordelen. Test opnieuw na het responsvenster.",
        "summary_building_signal": "De eerste resultaten wijzen één richting op. Bevestig met een extra test.",
        "summary_established_pattern": "Het effect van deze wijziging is consistent over herhaalde tests.",
        "reason_window": "{n_before} voor / {n_after} na in venster",
        "reason_fallback_pre": "voorwaarde uit dichtstbijzijnde rapport ({source})",
        "reason_fallback_post": "nawaarde uit dichtstbijzijnde rapport",
        "reason_confounded": "verstorende factoren aanwezig",
        "alert_rising": "Op basis van je laatste {points} metingen stijgt {marker} met ~{rate} {unit}/maand. Als je op dit protocol blijft, bereikt het de {label} van {threshold} {threshold_unit} {timing}.",
        "alert_falling": "Op basis van je laatste {points} metingen daalt {marker} met ~{rate} {unit}/maand. Als je op dit protocol blijft, zakt het onder de {label} van {threshold} {threshold_unit} {timing}.",
        "alert_weeks": "binnen {weeks} weken",
        "alert_months": "over ongeveer {months} maand(en)",
        "unknown": "onbekend",
        "none": "geen",
    },
}

LABEL_TRANSLATIONS = {"nl": {"High": "hoog", "Medium": "gemiddeld", "Low": "laag"}}


def resolve_language(language: str | None) -> str:
    language = language or settings.narrative_language
    return language if language in TEMPLATES else "en"


def render(key: str, language: str | None = None, **params) -> str:
    return TEMPLATES[resolve_language(language)][key].format(**params)


def format_number(value: float | None, language: str | None = None) -> str:
    if value is None:
        return render("unknown", language)
    return f"{round(value, 2):g}"


def format_percent(value: float | None) -> str:
    if value is None:
        return "n/a"
    return f"{value:+.1f}%"


def _compounds(names: Iterable[str], language: str | None) -> str:
    names = [name for name in names if name]
    return ", ".join(names) if names else render("none", language)


def change_parts(
    triggered: Iterable[str],
    from_dose: float | None,
    to_dose: float | None,
    from_frequency: float | None,
    to_frequency: float | None,
    from_compounds: list[str],
    to_compounds: list[str],
    language: str | None = None,
) -> list[str]:
    params = {
        "from_dose": format_number(from_dose, language),
        "to_dose": format_number(to_dose, language),
        "from_frequency": format_number(from_frequency, language),
        "to_frequency": format_number(to_frequency, language),
        "from_compounds": _compounds(from_compounds, language),
        "to_compounds": _compounds(to_compounds, language),
    }
    return [render(f"part_{dimension}", language, **params) for dimension in triggered]


def event_headline(
    event_type: str,
    event_subtype: str,
    change_date: date,
    parts: list[str],
    from_dose: float | None,
    to_dose: float | None,
    from_frequency: float | None,
    to_frequency: float | None,
    from_compounds: list[str],
    to_compounds: list[str],
    language: str | None = None,
) -> str:
    headline = render(
        f"headline_{event_type}",
        language,
        from_dose=format_number(from_dose, language),
        to_dose=format_number(to_dose, language),
        from_frequency=format_number(from_frequency, language),
        to_frequency=format_number(to_frequency, language),
        from_compounds=_compounds(from_compounds, language),
        to_compounds=_compounds(to_compounds, language),
        parts="; ".join(parts),
        change_date=change_date.isoformat(),
    )
    if event_subtype == "start":
        return render("headline_start", language, headline=headline)
    return headline


def row_narrative(
    marker: str,
    unit: str,
    readiness_status: str,
    trend: str,
    before_avg: float | None,
    after_avg: float | None,
    delta_pct: float | None,
    pre_window: tuple[date, date],
    post_window: tuple[date, date],
    next_test_date: date | None,
    language: str | None = None,
) -> str:
    if readiness_status == "waiting_post":
        return render(
            "row_waiting_post",
            language,
            marker=marker,
            start=post_window[0].isoformat(),
            end=post_window[1].isoformat(),
            next_date=next_test_date.isoformat() if next_test_date else render("unknown", language),
        )
    if readiness_status == "waiting_pre":
        return render(
            "row_waiting_pre", language, marker=marker, start=pre_window[0].isoformat(), end=pre_window[1].isoformat()
        )
    if readiness_status == "waiting_both":
        return render("row_waiting_both", language, marker=marker)
    return render(
        f"row_{trend}",
        language,
        marker=marker,
        unit=unit,
        before=format_number(before_avg, language),
        after=format_number(after_avg, language),
        pct=format_percent(delta_pct),
    )


def story_observed(top_impacts: list[ProtocolImpactMarkerRow], language: str | None = None) -> str:
    if not top_impacts:
        return render("observed_none", language)
    items = [
        render(
            "observed_item",
            language,
            marker=row.marker,
            before=format_number(row.before_avg, language),
            after=format_number(row.after_avg, language),
            unit=row.unit,
            pct=format_percent(row.delta_pct),
        )
        for row in top_impacts
    ]
    return "; ".join(items) + "."


def story_interpretation(
    status: SignalStatus, top_impacts: list[ProtocolImpactMarkerRow], language: str | None = None
) -> str:
    marker = top_impacts[0].marker if top_impacts else render("unknown", language)
    return render(f"interpretation_{status}", language, marker=marker)


def story_change(parts: list[str], language: str | None = None) -> str:
    return render("change", language, parts="; ".join(parts))


def story_effect(top_impacts: list[ProtocolImpactMarkerRow], language: str | None = None) -> str:
    if not top_impacts:
        return render("effect_none", language)
    row = top_impacts[0]
    direction = {"up": "up", "down": "down"}.get(row.trend, "flat")
    return render(
        "effect",
        language,
        marker=row.marker,
        direction=render(f"direction_{direction}", language),
        pct=format_percent(row.delta_pct),
        before=format_number(row.before_avg, language),
        after=format_number(row.after_avg, language),
        unit=row.unit,
    )


def story_reliability(
    label: str,
    score: int,
    before_count: int,
    after_count: int,
    sampling_changed: bool,
    supplements_changed: bool,
    symptoms_changed: bool,
    language: str | None = None,
) -> str:
    language = resolve_language(language)
    sentences = [
        render(
            "reliability",
            language,
            label=LABEL_TRANSLATIONS.get(language, {}).get(label, label),
            score=score,
            before_count=before_count,
            after_count=after_count,
        )
    ]
    if sampling_changed:
        sentences.append(render("reliability_sampling", language))
    if supplements_changed:
        sentences.append(render("reliability_supplements", language))
    if symptoms_changed:
        sentences.append(render("reliability_symptoms", language))
    return " ".join(sentences)


def story_summary(status: SignalStatus, language: str | None = None) -> str:
    return render(f"summary_{status}", language)


def confidence_reason(
    n_before: int,
    n_after: int,
    before_fallback: bool,
    after_fallback: bool,
    before_source: str,
    confounder_penalty: int,
    language: str | None = None,
) -> str:
    parts = [render("reason_window", language, n_before=n_before, n_after=n_after)]
    if before_fallback:
        parts.append(render("reason_fallback_pre", language, source=before_source))
    if after_fallback:
        parts.append(render("reason_fallback_post", language))
    if confounder_penalty > 0:
        parts.append(render("reason_confounded", language))
    return "; ".join(parts)


def alert_narrative(
    marker: str,
    direction: str,
    points: int,
    slope_per_month: float,
    unit: str,
    label: str,
    threshold: float,
    threshold_unit: str,
    days_until: int,
    language: str | None = None,
) -> str:
    if days_until <= 45:
        timing = render("alert_weeks", language, weeks=-(-days_until // 7))
    else:
        timing = render("alert_months", language, months=max(1, round(days_until / 30)))
    return render(
        f"alert_{direction}",
        language,
        points=points,
        marker=marker,
        rate=format_number(abs(slope_per_month), language),
        unit=unit,
        label=label,
        threshold=format_number(threshold, language),
        threshold_unit=threshold_unit,
        timing=timing,
    )
