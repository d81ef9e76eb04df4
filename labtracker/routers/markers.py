from fastapi import APIRouter, Depends, HTTPException, Query

from labtracker.schemas.lab_report import UnitSystem
from labtracker.schemas.marker import (
    CanonicalizeRequest,
    CanonicalizeResult,
    ConvertRequest,
    ConvertResult,
    MarkerCatalogItem,
)
from labtracker.schemas.predictive import TargetZone
from labtracker.routers.deps import get_marker_catalog, get_unit_rules
from labtracker.services.classifier import canonicalize
from labtracker.services.marker_catalog import MarkerCatalog
from labtracker.services.predictive_trends import get_target_zone
from labtracker.services.statistics import finite_or_none
from labtracker.services.unit_conversion import UnitRules, convert

router = APIRouter(prefix="/api/markers", tags=["markers"])


@router.get("", response_model=list[MarkerCatalogItem])
def catalog(catalog: MarkerCatalog = Depends(get_marker_catalog)):
    items = [
        MarkerCatalogItem(
            name=name,
            category=category,
            clinical_weight=catalog.clinical_weight(name),
            lag_days=catalog.lag_days(name),
        )
        for name, category in catalog.categories.items()
    ]
    return sorted(items, key=lambda x: (x.category, x.name))


@router.post("/canonicalize", response_model=list[CanonicalizeResult])
def canonicalize_labels(payload: CanonicalizeRequest, catalog: MarkerCatalog = Depends(get_marker_catalog)):
    return [CanonicalizeResult(label=label, canonical_marker=canonicalize(label, catalog)) for label in payload.labels]


@router.post("/convert", response_model=ConvertResult)
def convert_value(payload: ConvertRequest, rules: UnitRules = Depends(get_unit_rules)):
    value, unit = convert(payload.marker, payload.value, payload.unit, payload.to_system, rules)
    return ConvertResult(marker=payload.marker, value=finite_or_none(value), unit=unit)


@router.get("/{marker}/target-zone", response_model=TargetZone)
def target_zone(
    marker: str,
    unit_system: UnitSystem = Query(default="eu"),
    mode: str = Query(default="trt", pattern="^(trt|longevity)$"),
    catalog: MarkerCatalog = Depends(get_marker_catalog),
    rules: UnitRules = Depends(get_unit_rules),
):
    zone = get_target_zone(marker, unit_system, mode, catalog, rules)
    if zone is None:
        raise HTTPException(status_code=404, detail=f"No {mode} target zone for {marker}")
    return zone
