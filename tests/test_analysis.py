import pandas as pd
import pytest

from conftest import new_id, transient
from offset_service.analysis import (
    analyze_coordinates,
    analyze_project,
    download_report,
    ndvi_time_series_frame,
    normalize_analysis,
)
from offset_service.errors import AnalysisError, PermanentRemoteError, ProjectValidationError


def test_normalize_reads_alternate_key_names():
    data = {
        "ndvi": {"mean_ndvi": 0.8, "ndvi_trend": 0.01},
        "carbon_stock": {"total_carbon_tons": 900, "carbon_per_hectare": 9, "area_hectares": 100},
        "confidence_score": 0.9,
    }
    result = normalize_analysis(data, "p", 1.0, 2.0)

    assert result.ndvi_summary.mean_ndvi == 0.8
    assert result.ndvi_summary.location == {"lat": 1.0, "lon": 2.0}
    assert result.carbon_stock.total_carbon_tons == 900
    assert result.carbon_stock.vegetation_density == "high"
    assert result.confidence_score == 0.9


def test_normalize_empty_payload_has_defaults():
    result = normalize_analysis({}, "p", 0, 0)

    assert result.ndvi_summary.mean_ndvi == 0.0
    assert result.carbon_stock.area_hectares == 100.0
    assert result.carbon_stock.confidence_level == 0.0
    assert result.carbon_stock.vegetation_density == "low"
    assert result.confidence_score == 0.8


def test_analyze_project_records_measurement(store, backend):
    project_id = new_id()

    result = analyze_project(store, backend, project_id, "-3.46,-62.21")

    assert result.data_source == "project_analysis"
    assert result.carbon_stock.total_carbon_tons == 500
    assert store.carbon_data[0]["project_id"] == project_id
    assert store.carbon_data[0]["carbon_tons"] == 500


def test_analyze_project_falls_back_to_satellite(store, backend):
    backend.analysis = PermanentRemoteError("Backend request failed: 404", 404)

    result = analyze_project(store, backend, new_id(), "-3.46,-62.21")

    assert result.data_source == "satellite_fallback"
    assert result.ndvi_summary.mean_ndvi == 0.5
    assert result.carbon_stock.total_carbon_tons == 120
    assert len(store.carbon_data) == 1


def test_analyze_project_fails_when_fallback_fails(store, backend):
    backend.analysis = transient(500)
    backend.location = transient(503)

    with pytest.raises(AnalysisError, match="Both analysis and fallback failed"):
        analyze_project(store, backend, new_id(), "-3.46,-62.21")
    assert store.carbon_data == []


def test_analyze_project_survives_store_failure(store, backend):
    store.fail = True
    result = analyze_project(store, backend, new_id(), "10,10")
    assert result.status == "success"


def test_analyze_project_validates_inputs(store, backend):
    with pytest.raises(ProjectValidationError):
        analyze_project(store, backend, "nope", "10,10")
    with pytest.raises(ProjectValidationError):
        analyze_project(store, backend, new_id(), "10")


def test_analyze_coordinates(backend):
    result = analyze_coordinates(backend, 1.0, 2.0)
    assert result.project_id == "coordinate-based"
    assert result.data_source == "coordinates"
    assert result.carbon_stock.forest_type == "tropical"


def test_download_report(backend):
    assert download_report(backend, new_id()).startswith(b"%PDF")


def test_ndvi_time_series_sorted_by_date():
    df = ndvi_time_series_frame({"time_series": [
        {"date": "2024-03-01", "ndvi": 0.6, "confidence": 0.9, "carbon_estimate": 10},
        {"date": "2024-01-01", "ndvi": 0.5, "confidence": 0.8, "carbon_estimate": 9},
    ]})

    assert list(df.columns) == ["date", "ndvi", "confidence", "carbon_estimate"]
    assert list(df["ndvi"]) == [0.5, 0.6]
    assert pd.api.types.is_datetime64_any_dtype(df["date"])


def test_ndvi_time_series_empty():
    assert ndvi_time_series_frame({}).empty
