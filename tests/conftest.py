from collections.abc import Generator
from datetime import date, datetime

import pytest
from fastapi.testclient import TestClient

from labtracker.main import app
from labtracker.schemas.lab_report import (
    CompoundEntry,
    LabReport,
    MarkerValue,
    Protocol,
    ReportAnnotations,
    SupplementEntry,
)


def _make_protocol(
    protocol_id: str,
    dose_mg: float,
    frequency: str = "2x/week",
    compound: str = "Testosterone Enanthate",
    supplements: list[SupplementEntry] | None = None,
) -> Protocol:
    return Protocol(
        id=protocol_id,
        name=protocol_id,
        compounds=[CompoundEntry(name=compound, dose_mg=str(dose_mg), frequency=frequency, route="IM")],
        supplements=supplements or [],
        created_at=datetime(2025, 1, 1),
        updated_at=datetime(2025, 1, 1),
    )


def _make_marker(marker: str, value: float, unit: str, **kwargs) -> MarkerValue:
    return MarkerValue(marker=marker, canonical_marker=marker, value=value, unit=unit, **kwargs)


def _make_report(
    report_id: str,
    test_date: str,
    markers: list[tuple[str, float, str]],
    protocol_id: str | None = None,
    sampling_timing: str = "trough",
    symptoms: str = "",
    is_baseline: bool = False,
    **annotations,
) -> LabReport:
    day = date.fromisoformat(test_date)
    return LabReport(
        id=report_id,
        test_date=day,
        created_at=datetime(day.year, day.month, day.day, 8, 0),
        markers=[_make_marker(name, value, unit) for name, value, unit in markers],
        annotations=ReportAnnotations(
            protocol_id=protocol_id,
            symptoms=symptoms,
            sampling_timing=sampling_timing,
            **annotations,
        ),
        is_baseline=is_baseline,
    )


def _report_payload(report: LabReport) -> dict:
    return report.model_dump(mode="json")


@pytest.fixture()
def client() -> Generator[TestClient, None, None]:
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture()
def make_report():
    return _make_report


@pytest.fixture()
def make_protocol():
    return _make_protocol


@pytest.fixture()
def as_payload():
    return _report_payload
