"""
Protocol-change event detection with lag-aware before/after comparisons.

An event is recorded for every pair of chronologically adjacent reports whose
resolved protocol differs in weekly dose, injection frequency or compound set.
For each marker seen around the change, values in a pre window are compared
with values in a marker-specific post window, scored for sample size,
consistency, effect size and confounders, and narrated from templates.
Everything is recomputed on each call.
"""
import logging
from collections import Counter
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Iterable

from labtracker.config import settings
from labtracker.schemas.lab_report import LabReport, Protocol, SupplementEntry, UnitSystem
from labtracker.schemas.protocol_impact import (
    EventConfounders,
    ProtocolImpactDoseEvent,
    ProtocolImpactMarkerRow,
)
from labtracker.schemas.series import MarkerSeriesPoint
from labtracker.services import narratives
from labtracker.services.marker_catalog import DEFAULT_CATALOG, MarkerCatalog
from labtracker.services.marker_series import build_marker_series
from labtracker.services.protocol_utils import ResolvedProtocol, resolve_report_protocol, sort_reports_chronological
from labtracker.services.statistics import EPSILON, clip, mean, round_to, std_dev
from labtracker.services.trend_analyzer import calculate_percent_change
from labtracker.services.unit_conversion import DEFAULT_UNIT_RULES, UnitRules

logger = logging.getLogger(__name__)

DOSE_TRIGGER_MG = 1.0
FREQUENCY_TRIGGER_PER_WEEK = 0.25
COMPOUND_TRIGGER_STRENGTH = 70
EXTRA_DIMENSION_BONUS = 10
EFFECT_CAP_PCT = 45.0
MAX_TOP_IMPACTS = 4
RETEST_BUFFER_DAYS = 14
EMPTY_WINDOW_CONFIDENCE_CAP = 40
STALE_FALLBACK_MAX_PENALTY = 25
DEFAULT_EVENT_CONFIDENCE = 35
SAMPLING_PRIORITY = ("trough", "peak", "mid", "unknown")


def clamp_window_days(window_size: float | None) -> int:
    if window_size is None:
        window_size = settings.protocol_window_days
    return int(clip(round(window_size), settings.protocol_window_min_days, settings.protocol_window_max_days))


def confidence_label(score: float) -> str:
    if score >= 75:
        return "High"
    if score >= 50:
        return "Medium"
    return "Low"


def _delta(before: float | None, after: float | None) -> float | None:
    if before is None and after is None:
        return None
    return (after or 0.0) - (before or 0.0)


@dataclass(frozen=True)
class ProtocolChange:
    previous: LabReport
    current: LabReport
    before: ResolvedProtocol
    after: ResolvedProtocol

    @property
    def change_date(self) -> date:
        return self.current.test_date

    @property
    def dose_delta(self) -> float | None:
        return _delta(self.before.dose_mg_per_week, self.after.dose_mg_per_week)

    @property
    def frequency_delta(self) -> float | None:
        return _delta(self.before.frequency_per_week, self.after.frequency_per_week)

    @property
    def triggered(self) -> list[str]:
        dimensions = []
        if self.dose_delta is not None and abs(self.dose_delta) >= DOSE_TRIGGER_MG:
            dimensions.append("dose")
        if self.frequency_delta is not None and abs(self.frequency_delta) >= FREQUENCY_TRIGGER_PER_WEEK:
            dimensions.append("frequency")
        if self.before.compound_set != self.after.compound_set:
            dimensions.append("compound")
        return dimensions

    @property
    def event_type(self) -> str:
        triggered = self.triggered
        return "mixed" if len(triggered) >= 2 else triggered[0]

    @property
    def event_subtype(self) -> str:
        return "adjustment" if self.before.has_signal else "start"

    @property
    def trigger_strength(self) -> int:
        components = []
        if "dose" in self.triggered:
            components.append(clip(abs(self.dose_delta) / 50 * 100, 0, 100))
        if "frequency" in self.triggered:
            components.append(clip(abs(self.frequency_delta) / 2 * 100, 0, 100))
        if "compound" in self.triggered:
            components.append(COMPOUND_TRIGGER_STRENGTH)
        if not components:
            return 0
        strength = max(components) + EXTRA_DIMENSION_BONUS * (len(components) - 1)
        return round(clip(strength, 0, 100))

    @property
    def supplements_changed(self) -> bool:
        return self.before.supplement_keys != self.after.supplement_keys

    @property
    def symptoms_changed(self) -> bool:
        before = " ".join(self.previous.annotations.symptoms.lower().split())
        after = " ".join(self.current.annotations.symptoms.lower().split())
        return before != after and bool(before or after)


def detect_protocol_changes(
    reports: Iterable[LabReport],
    protocols: Iterable[Protocol] = (),
    supplement_timeline: Iterable[SupplementEntry] | None = None,
) -> list[ProtocolChange]:
    protocols = list(protocols)
    timeline = list(supplement_timeline or [])
    ordered = sort_reports_chronological(reports)
    changes = []
    for previous, current in zip(ordered, ordered[1:]):
        change = ProtocolChange(
            previous=previous,
            current=current,
            before=resolve_report_protocol(previous, protocols, timeline),
            after=resolve_report_protocol(current, protocols, timeline),
        )
        if change.triggered:
            changes.append(change)
    return changes


@dataclass(frozen=True)
class WindowSelection:
    points: list[MarkerSeriesPoint]
    fallback: MarkerSeriesPoint | None
    source: str

    @property
    def values(self) -> list[float]:
        if self.points:
            return [p.value for p in self.points]
        return [self.fallback.value] if self.fallback else []

    @property
    def used_points(self) -> list[MarkerSeriesPoint]:
        if self.points:
            return self.points
        return [self.fallback] if self.fallback else []


def _select_pre(
    series: list[MarkerSeriesPoint], start: date, end: date, change_date: date, baseline_ids: set[str]
) -> WindowSelection:
    in_window = [p for p in series if start <= p.test_date <= end]
    if in_window:
        return WindowSelection(in_window, None, "window")
    earlier = [p for p in series if p.test_date < change_date]
    if not earlier:
        return WindowSelection([], None, "none")
    nearest = earlier[-1]
    return WindowSelection([], nearest, "baseline" if nearest.report_id in baseline_ids else "nearest")


def _select_post(series: list[MarkerSeriesPoint], start: date, end: date, change_date: date) -> WindowSelection:
    in_window = [p for p in series if start <= p.test_date <= end]
    if in_window:
        return WindowSelection(in_window, None, "window")
    later = [p for p in series if p.test_date >= change_date]
    if not later:
        return WindowSelection([], None, "none")
    return WindowSelection([], later[0], "nearest")


def _dominant_sampling(points: list[MarkerSeriesPoint]) -> str | None:
    if not points:
        return None
    counts = Counter(p.context.sampling_timing for p in points)
    return max(SAMPLING_PRIORITY, key=lambda timing: (counts.get(timing, 0), -SAMPLING_PRIORITY.index(timing)))


def _consistency_score(post_values: list[float], before_avg: float | None, delta: float | None) -> float:
    if before_avg is None or delta is None or abs(delta) <= EPSILON or not post_values:
        return 50.0
    sign = 1 if delta > 0 else -1
    matching = sum(1 for value in post_values if (value - before_avg) * sign > 0)
    return matching / len(post_values) * 100


def _sample_score(n_before: int, n_after: int) -> float:
    paired = min(min(n_before, n_after), 3) / 3 * 100
    total = min(n_before + n_after, 8) / 8 * 100
    return 0.7 * paired + 0.3 * total


def _effect_clarity_score(effect_score: float, delta: float | None, pre_values: list[float], post_values: list[float]) -> float:
    if delta is None:
        return 0.0
    noise = std_dev(pre_values) + std_dev(post_values)
    penalty = 0
    if noise > EPSILON:
        snr = abs(delta) / noise
        if snr < 0.5:
            penalty = 20
        elif snr < 0.8:
            penalty = 10
    return clip(effect_score - penalty, 0, 100)


def _stale_fallback_penalty(selection: WindowSelection, change_date: date, window_days: int) -> float:
    if selection.fallback is None:
        return 0.0
    gap_days = abs((change_date - selection.fallback.test_date).days)
    return clip((gap_days - window_days) / 30 * 3, 0, STALE_FALLBACK_MAX_PENALTY)


def _signal_status(confidence: float, has_pre: bool, has_post: bool, n_before: int, n_after: int, penalty: int) -> str:
    if not has_pre or not has_post:
        return "early_signal"
    if confidence >= 75 and n_before >= 2 and n_after >= 2 and penalty <= 10:
        return "established_pattern"
    if confidence >= 50 and n_before >= 1 and n_after >= 1:
        return "building_signal"
    return "early_signal"


def _readiness_status(has_pre: bool, has_post: bool) -> str:
    if has_pre and has_post:
        return "ready"
    if not has_pre and not has_post:
        return "waiting_both"
    return "waiting_pre" if not has_pre else "waiting_post"


def _row_trend(delta: float | None) -> str:
    if delta is None:
        return "insufficient"
    if abs(delta) <= EPSILON:
        return "flat"
    return "up" if delta > 0 else "down"


def build_marker_row(
    marker: str,
    series: list[MarkerSeriesPoint],
    change: ProtocolChange,
    window_days: int,
    baseline_ids: set[str],
    catalog: MarkerCatalog = DEFAULT_CATALOG,
    language: str | None = None,
) -> tuple[ProtocolImpactMarkerRow, bool]:
    """Score one marker around one change; also reports whether sampling timing differed."""
    change_date = change.change_date
    lag = catalog.lag_days(marker)
    pre_start = change_date - timedelta(days=window_days)
    pre_end = change_date - timedelta(days=1)
    post_start = change_date + timedelta(days=lag)
    post_end = post_start + timedelta(days=window_days)

    pre = _select_pre(series, pre_start, pre_end, change_date, baseline_ids)
    post = _select_post(series, post_start, post_end, change_date)
    has_pre, has_post = bool(pre.points), bool(post.points)
    pre_values, post_values = pre.values, post.values
    n_before, n_after = len(pre_values), len(post_values)

    before_avg = mean(pre_values)
    after_avg = mean(post_values)
    delta = None if before_avg is None or after_avg is None else after_avg - before_avg
    delta_pct = calculate_percent_change(before_avg, after_avg)

    consistency = _consistency_score(post_values, before_avg, delta)
    sample = _sample_score(n_before, n_after)
    effect = 0.0 if delta_pct is None else min(abs(delta_pct), EFFECT_CAP_PCT) / EFFECT_CAP_PCT * 100
    clarity = _effect_clarity_score(effect, delta, pre_values, post_values)
    weight = catalog.clinical_weight(marker)
    impact = round(0.55 * effect + 0.45 * weight)

    pre_timing = _dominant_sampling(pre.used_points)
    post_timing = _dominant_sampling(post.used_points)
    sampling_changed = pre_timing is not None and post_timing is not None and pre_timing != post_timing
    penalty = 15 * sampling_changed + 10 * change.supplements_changed + 10 * change.symptoms_changed

    confidence = clip(
        0.35 * sample + 0.25 * consistency + 0.20 * change.trigger_strength + 0.20 * clarity - penalty, 0, 100
    )
    if not has_pre or not has_post:
        confidence = min(confidence, EMPTY_WINDOW_CONFIDENCE_CAP)
    stale = max(
        _stale_fallback_penalty(pre, change_date, window_days),
        _stale_fallback_penalty(post, change_date, window_days),
    )
    confidence_score = round(clip(confidence - stale, 0, 100))

    readiness = _readiness_status(has_pre, has_post)
    next_test_date = None if has_post else change_date + timedelta(days=lag + RETEST_BUFFER_DAYS)
    if has_pre and has_post:
        basis = "window"
    elif before_avg is not None and after_avg is not None:
        basis = "event_reports"
    else:
        basis = "insufficient"

    unit = next((p.unit for p in [*post.used_points, *pre.used_points]), "")
    trend = _row_trend(delta)
    rounded_before = round_to(before_avg, 2)
    rounded_after = round_to(after_avg, 2)
    rounded_pct = round_to(delta_pct, 2)

    row = ProtocolImpactMarkerRow(
        marker=marker,
        unit=unit,
        lag_days=lag,
        pre_window_start=pre_start,
        pre_window_end=pre_end,
        post_window_start=post_start,
        post_window_end=post_end,
        before_avg=rounded_before,
        after_avg=rounded_after,
        n_before=n_before,
        n_after=n_after,
        before_source=pre.source,
        after_source=post.source,
        before_fallback=pre.fallback is not None,
        after_fallback=post.fallback is not None,
        delta_abs=round_to(delta, 2),
        delta_pct=rounded_pct,
        trend=trend,
        comparison_basis=basis,
        consistency_score=round(consistency),
        sample_score=round(sample),
        effect_score=round(effect),
        effect_clarity_score=round(clarity),
        clinical_weight=weight,
        impact_score=impact,
        confounder_penalty=penalty,
        confidence_score=confidence_score,
        confidence=confidence_label(confidence_score),
        confidence_reason=narratives.confidence_reason(
            n_before, n_after, pre.fallback is not None, post.fallback is not None, pre.source, penalty, language
        ),
        signal_status=_signal_status(confidence_score, has_pre, has_post, n_before, n_after, penalty),
        readiness_status=readiness,
        recommended_next_test_date=next_test_date,
        insufficient_data=not (has_pre and has_post),
        narrative=narratives.row_narrative(
            marker,
            unit,
            readiness,
            trend if trend != "insufficient" else "flat",
            rounded_before,
            rounded_after,
            rounded_pct,
            (pre_start, pre_end),
            (post_start, post_end),
            next_test_date,
            language,
        ),
    )
    return row, sampling_changed


def _sort_rows(rows: list[ProtocolImpactMarkerRow]) -> list[ProtocolImpactMarkerRow]:
    return sorted(
        rows,
        key=lambda row: (
            row.insufficient_data,
            -row.impact_score,
            -(abs(row.delta_pct) if row.delta_pct is not None else -1),
        ),
    )


def _event_signal_status(rows: list[ProtocolImpactMarkerRow], top_impacts: list, event_confidence: int) -> str:
    established = sum(1 for row in rows if row.signal_status == "established_pattern")
    building = any(row.signal_status == "building_signal" for row in rows)
    if (
        established >= 2
        or (established == 1 and event_confidence >= 68)
        or (len(top_impacts) >= 2 and event_confidence >= 60)
        or event_confidence >= 78
    ):
        return "established_pattern"
    if building or event_confidence >= 50:
        return "building_signal"
    return "early_signal"


def _candidate_markers(reports: list[LabReport], start: date, end: date) -> list[str]:
    return sorted(
        {
            m.canonical_marker
            for report in reports
            if start <= report.test_date <= end
            for m in report.markers
            if not m.is_calculated and m.canonical_marker
        }
    )


def build_protocol_impact_dose_events(
    reports: Iterable[LabReport],
    unit_system: UnitSystem,
    window_size: float | None = None,
    protocols: Iterable[Protocol] = (),
    supplement_timeline: Iterable[SupplementEntry] | None = None,
    catalog: MarkerCatalog = DEFAULT_CATALOG,
    rules: UnitRules = DEFAULT_UNIT_RULES,
    language: str | None = None,
) -> list[ProtocolImpactDoseEvent]:
    ordered = sort_reports_chronological(reports)
    protocols = list(protocols)
    timeline = list(supplement_timeline or [])
    window_days = clamp_window_days(window_size)
    max_lag = max([catalog.default_lag_days, *catalog.lag_days_by_category.values()])
    baseline_ids = {report.id for report in ordered if report.is_baseline}
    series_cache: dict[str, list[MarkerSeriesPoint]] = {}

    def series_for(marker: str) -> list[MarkerSeriesPoint]:
        if marker not in series_cache:
            series_cache[marker] = build_marker_series(ordered, marker, unit_system, protocols, timeline, rules)
        return series_cache[marker]

    events = []
    for change in detect_protocol_changes(ordered, protocols, timeline):
        change_date = change.change_date
        candidate_start = change_date - timedelta(days=window_days)
        candidate_end = change_date + timedelta(days=max_lag + window_days)

        scored = [
            build_marker_row(marker, series_for(marker), change, window_days, baseline_ids, catalog, language)
            for marker in _candidate_markers(ordered, candidate_start, candidate_end)
        ]
        rows = _sort_rows([row for row, _ in scored])
        sampling_changed = any(flag for _, flag in scored)
        top_impacts = [row for row in rows if not row.insufficient_data and row.delta_pct is not None][:MAX_TOP_IMPACTS]
        ranked = [row for row in rows if not row.insufficient_data][:MAX_TOP_IMPACTS]
        event_confidence = (
            round(sum(row.confidence_score for row in ranked) / len(ranked)) if ranked else DEFAULT_EVENT_CONFIDENCE
        )
        signal_status = _event_signal_status(rows, top_impacts, event_confidence)
        label = confidence_label(event_confidence)

        from_compounds = sorted(change.before.compounds)
        to_compounds = sorted(change.after.compounds)
        parts = narratives.change_parts(
            change.triggered,
            change.before.dose_mg_per_week,
            change.after.dose_mg_per_week,
            change.before.frequency_per_week,
            change.after.frequency_per_week,
            from_compounds,
            to_compounds,
            language,
        )
        before_count = sum(1 for r in ordered if candidate_start <= r.test_date < change_date)
        after_count = sum(1 for r in ordered if change_date <= r.test_date <= change_date + timedelta(days=window_days))

        logger.debug(
            "Protocol %s event on %s (%s): %d marker rows, confidence %d",
            change.event_type,
            change_date,
            change.event_subtype,
            len(rows),
            event_confidence,
        )
        events.append(
            ProtocolImpactDoseEvent(
                id=f"{change.previous.id}-{change.current.id}",
                change_date=change_date,
                from_report_id=change.previous.id,
                to_report_id=change.current.id,
                from_dose_mg_per_week=change.before.dose_mg_per_week,
                to_dose_mg_per_week=change.after.dose_mg_per_week,
                from_frequency_per_week=round_to(change.before.frequency_per_week, 3),
                to_frequency_per_week=round_to(change.after.frequency_per_week, 3),
                from_compounds=from_compounds,
                to_compounds=to_compounds,
                event_type=change.event_type,
                event_subtype=change.event_subtype,
                trigger_strength=change.trigger_strength,
                window_days=window_days,
                before_count=before_count,
                after_count=after_count,
                confounders=EventConfounders(
                    sampling_changed=sampling_changed,
                    supplements_changed=change.supplements_changed,
                    symptoms_changed=change.symptoms_changed,
                ),
                rows=rows,
                top_impacts=top_impacts,
                event_confidence=event_confidence,
                event_confidence_label=label,
                signal_status=signal_status,
                headline_narrative=narratives.event_headline(
                    change.event_type,
                    change.event_subtype,
                    change_date,
                    parts,
                    change.before.dose_mg_per_week,
                    change.after.dose_mg_per_week,
                    change.before.frequency_per_week,
                    change.after.frequency_per_week,
                    from_compounds,
                    to_compounds,
                    language,
                ),
                story_observed=narratives.story_observed(top_impacts, language),
                story_interpretation=narratives.story_interpretation(signal_status, top_impacts, language),
                story_change=narratives.story_change(parts, language),
                story_effect=narratives.story_effect(top_impacts, language),
                story_reliability=narratives.story_reliability(
                    label,
                    event_confidence,
                    before_count,
                    after_count,
                    sampling_changed,
                    change.supplements_changed,
                    change.symptoms_changed,
                    language,
                ),
                story_summary=narratives.story_summary(signal_status, language),
            )
        )

    return sorted(events, key=lambda event: event.change_date, reverse=True)
