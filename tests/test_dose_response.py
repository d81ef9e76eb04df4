from datetime import date

import pytest

from labtracker.schemas.dose_response import DosePrediction, DoseScenario
from labtracker.services.dose_priors import build_dose_prior_request_payload, get_local_dose_prior, local_dose_priors
from labtracker.services.dose_response import (
    DoseSample,
    DoseScenarioPolicy,
    apply_dose_priors,
    build_dose_correlation_insights,
    estimate_dose_response,
    filter_outliers_by_mad,
)


def _prediction(**overrides) -> DosePrediction:
    fields = dict(
        marker="Estradiol",
        unit="pmol/L",
        slope_per_mg=0.8,
        intercept=20,
        r_squared=0.46,
        correlation_r=0.52,
        sample_count=5,
        unique_dose_levels=3,
        all_sample_count=5,
        trough_sample_count=4,
        current_dose=120,
        suggested_dose=100,
        current_estimate=135,
        suggested_estimate=119,
        prediction_sigma=24,
        predicted_low=95,
        predicted_high=143,
        suggested_percent_change=-11.9,
        confidence="Medium",
        status="clear",
        status_reason="Clear dose-response relation.",
        sampling_mode="trough",
        used_report_dates=[date(2025, 4, 1), date(2025, 6, 1), date(2025, 8, 1)],
        model_type="linear",
        scenarios=[DoseScenario(dose=100, estimated_value=119), DoseScenario(dose=120, estimated_value=135)],
    )
    fields.update(overrides)
    return DosePrediction(**fields)


def _dose_reports(make_report, make_protocol, rows, marker="Testosterone", unit="nmol/L"):
    protocols = []
    reports = []
    for index, (dose, value, timing) in enumerate(rows):
        protocol_id = f"p-{index}"
        protocols.append(make_protocol(protocol_id, dose))
        reports.append(
            make_report(f"r{index}", f"2025-{index + 1:02d}-01", [(marker, value, unit)], protocol_id, sampling_timing=timing)
        )
    return reports, protocols


def _sample(index: int, dose: float, value: float) -> DoseSample:
    return DoseSample(
        report_id=f"r{index}",
        test_date=date(2025, index + 1, 1),
        dose=dose,
        value=value,
        unit="nmol/L",
        sampling_timing="trough",
    )


def test_mad_filter_drops_single_outlier():
    samples = [_sample(i, dose, value) for i, (dose, value) in enumerate(zip([100, 120, 140, 160, 180], [10, 11, 9, 10, 50]))]
    kept, excluded, threshold = filter_outliers_by_mad(samples)

    assert [s.value for s in excluded] == [50]
    assert len(kept) == 4
    assert threshold == pytest.approx(3 * 1.4826)


def test_mad_filter_needs_four_samples():
    samples = [_sample(i, 100 + i * 20, value) for i, value in enumerate([10, 11, 90])]
    kept, excluded, threshold = filter_outliers_by_mad(samples)

    assert kept == samples
    assert excluded == []
    assert threshold is None


def test_clear_relationship_from_trough_samples(make_report, make_protocol):
    rows = [(100, 15, "trough"), (120, 18, "trough"), (140, 21, "trough"), (160, 24, "trough")]
    reports, protocols = _dose_reports(make_report, make_protocol, rows)
    prediction = estimate_dose_response(reports, ["Testosterone"], "eu", protocols)[0]

    assert prediction.status == "clear"
    assert prediction.sampling_mode == "trough"
    assert prediction.slope_per_mg == pytest.approx(0.15)
    assert prediction.correlation_r == pytest.approx(1.0)
    assert prediction.confidence == "Medium"
    assert prediction.current_dose == 160
    assert prediction.suggested_dose == 140
    assert prediction.suggested_estimate == pytest.approx(21)
    assert prediction.suggested_percent_change == pytest.approx(-12.5)
    assert [s.dose for s in prediction.scenarios] == [80, 100, 120, 140, 160, 180]
    assert prediction.predicted_low < prediction.suggested_estimate < prediction.predicted_high
    assert prediction.relevance_score > 0


def test_fewer_than_four_samples_is_insufficient(make_report, make_protocol):
    rows = [(100, 15, "trough"), (120, 18, "trough"), (140, 21, "trough")]
    reports, protocols = _dose_reports(make_report, make_protocol, rows)
    prediction = estimate_dose_response(reports, ["Testosterone"], "eu", protocols)[0]

    assert prediction.status == "insufficient"
    assert prediction.scenarios == []


def test_single_dose_level_is_insufficient(make_report, make_protocol):
    rows = [(120, 15, "trough"), (120, 18, "trough"), (120, 21, "trough"), (120, 19, "trough")]
    reports, protocols = _dose_reports(make_report, make_protocol, rows)
    prediction = estimate_dose_response(reports, ["Testosterone"], "eu", protocols)[0]

    assert prediction.status == "insufficient"
    assert prediction.unique_dose_levels == 1
    assert "one dose level" in prediction.status_reason


def test_falling_testosterone_with_dose_is_unclear(make_report, make_protocol):
    rows = [(100, 24, "trough"), (120, 21, "trough"), (140, 18, "trough"), (160, 15, "trough")]
    reports, protocols = _dose_reports(make_report, make_protocol, rows)
    prediction = estimate_dose_response(reports, ["Testosterone"], "eu", protocols)[0]

    assert prediction.status == "unclear"
    assert "opposite" in prediction.status_reason


def test_mixed_sampling_uses_all_points_with_warning(make_report, make_protocol):
    rows = [(100, 15, "trough"), (120, 19, "peak"), (140, 21, "peak"), (160, 25, "peak")]
    reports, protocols = _dose_reports(make_report, make_protocol, rows)
    prediction = estimate_dose_response(reports, ["Testosterone"], "eu", protocols)[0]

    assert prediction.sampling_mode == "all"
    assert prediction.trough_sample_count == 1
    assert prediction.sampling_warning


def test_markers_without_dose_data_are_skipped(make_report, make_protocol):
    rows = [(100, 15, "trough"), (120, 18, "trough")]
    reports, protocols = _dose_reports(make_report, make_protocol, rows)
    assert estimate_dose_response(reports, ["Hematocrit"], "eu", protocols) == []


def test_scenario_policy():
    policy = DoseScenarioPolicy()
    assert policy.suggested_dose(120, 100, 140) == 100
    assert policy.suggested_dose(50, 50, 60) == 40
    assert policy.scenario_doses(100, 120) == [80, 100, 120, 140]

    custom = DoseScenarioPolicy(offset_mg=10)
    assert custom.suggested_dose(120, 100, 140) == 130


def test_strong_personal_model_stays_personal():
    prior = get_local_dose_prior("Estradiol", "eu", "pmol/L")
    assert prior is not None

    output = apply_dose_priors([_prediction()], [prior])
    assert output[0].source == "personal"
    assert output[0].model_type == "linear"
    assert output[0].is_api_assisted is False


def test_weaker_personal_data_blends_into_hybrid(make_report, make_protocol):
    rows = [(100, 80, "trough"), (140, 110, "trough"), (180, 140, "trough")]
    reports, protocols = _dose_reports(make_report, make_protocol, rows, marker="Estradiol", unit="pmol/L")
    personal = estimate_dose_response(reports, ["Estradiol"], "eu", protocols)[0]
    assert personal.status == "insufficient"
    assert personal.sample_count == 3
    assert personal.unique_dose_levels == 3
    assert personal.correlation_r == pytest.approx(1.0)

    prior = get_local_dose_prior("Estradiol", "eu", "pmol/L")
    blended = apply_dose_priors([personal], [prior], api_assisted_markers={"Estradiol"})[0]

    assert blended.source == "hybrid"
    assert blended.model_type == "hybrid"
    assert blended.status == "unclear"
    assert blended.confidence == "Low"
    assert blended.blend_diagnostics.personal_weight == pytest.approx(0.167)
    assert blended.blend_diagnostics.prior_weight == pytest.approx(0.833)
    assert blended.slope_per_mg == pytest.approx(0.75 / 6 + 0.95 * 5 / 6)
    assert blended.current_estimate == pytest.approx(140)
    assert blended.prediction_sigma is not None
    assert blended.predicted_low < blended.suggested_estimate < blended.predicted_high
    assert blended.is_api_assisted is True
    assert blended.blend_diagnostics.prior_citations == ["Aromatization studies in TRT"]


def test_insufficient_personal_signal_falls_back_to_study_prior():
    prior = get_local_dose_prior("Estradiol", "eu", "pmol/L")
    sparse = _prediction(
        sample_count=1,
        unique_dose_levels=1,
        correlation_r=None,
        status="insufficient",
        confidence="Low",
        prediction_sigma=None,
    )
    output = apply_dose_priors([sparse], [prior])[0]

    assert output.source == "study_prior"
    assert output.model_type == "prior"
    assert output.confidence == "Low"
    assert output.slope_per_mg == prior.slope_per_mg
    assert output.relevance_score > 0
    assert all(60 <= s.dose <= 220 for s in output.scenarios if s.dose != output.suggested_dose)


def test_prior_with_other_unit_is_ignored():
    prior = get_local_dose_prior("Estradiol", "us")
    output = apply_dose_priors([_prediction(sample_count=1, correlation_r=None, status="insufficient")], [prior])
    assert output[0].source == "personal"


def test_local_priors_by_unit_system():
    assert {p.unit_system for p in local_dose_priors("us")} == {"us"}
    assert get_local_dose_prior("Estradiol", "eu", "pg/mL") is None
    assert get_local_dose_prior("PSA", "eu") is None


def test_prior_request_payload_is_anonymized():
    payload = build_dose_prior_request_payload([_prediction()], "eu", ["Estradiol"])
    assert payload.model_dump() == {
        "unit_system": "eu",
        "markers": ["Estradiol"],
        "context": [
            {
                "marker": "Estradiol",
                "current_dose": 120,
                "sample_count": 5,
                "unique_dose_levels": 3,
                "correlation_r": 0.52,
                "sampling_mode_distribution": {"trough": 4, "mixed": 1},
            }
        ],
    }


def test_dose_correlation_insights(make_report, make_protocol):
    rows = [(100, 15, "trough"), (120, 18, "trough"), (140, 20, "trough")]
    reports, protocols = _dose_reports(make_report, make_protocol, rows)
    insights = build_dose_correlation_insights(reports, ["Testosterone"], "eu", protocols)

    assert len(insights) == 1
    assert insights[0].strength == "strong"
    assert insights[0].direction == "positive"
    assert insights[0].sample_count == 3
