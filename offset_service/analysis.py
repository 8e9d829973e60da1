import datetime
import logging
import pandas as pd

from offset_service.errors import AnalysisError, PrimaryStoreError, RemoteServiceError
from offset_service.schemas import AnalysisResult, CarbonMeasurement, CarbonStock, NDVISummary
from offset_service.stores import AnalysisBackendClient, SupabaseStore
from utils.functions.validation import parse_coordinates, validate_project_id, vegetation_density

logger = logging.getLogger(__name__)

DEFAULT_CONFIDENCE = 0.8

def _first(d: dict, *keys, default=None):
    for k in keys:
        v = d.get(k)
        if v:
            return v
    return default

def normalize_analysis(
    data: dict,
    project_id: str,
    lat: float,
    lon: float,
    data_source: str = "project_analysis",
    forest_type: str | None = None,
) -> AnalysisResult:
    """
    Coerce the backend's analysis payloads (which name the same values
    differently depending on the endpoint) into one AnalysisResult.
    """
    ndvi = data.get("ndvi_summary") or data.get("ndvi") or {}
    carbon = data.get("carbon_stock") or {}
    mean_ndvi = float(_first(ndvi, "mean", "mean_ndvi", default=0.0))

    ndvi_summary = NDVISummary(
        dates=ndvi.get("dates") or [],
        ndvi_values=ndvi.get("ndvi_values") or [],
        mean_ndvi=mean_ndvi,
        ndvi_trend=float(_first(ndvi, "trend", "ndvi_trend", default=0.0)),
        satellite=ndvi.get("satellite") or "Sentinel-2",
        location={"lat": lat, "lon": lon},
    )

    carbon_stock = CarbonStock(
        total_carbon_tons=float(_first(carbon, "total_tons", "total_carbon_tons", default=data.get("carbon_tons") or 0.0)),
        carbon_per_hectare=float(_first(carbon, "per_hectare", "carbon_per_hectare", default=0.0)),
        area_hectares=float(_first(carbon, "area_hectares", default=100.0)),
        vegetation_density=vegetation_density(mean_ndvi),
        confidence_level=DEFAULT_CONFIDENCE if mean_ndvi > 0 else 0.0,
        mean_ndvi=mean_ndvi,
        forest_type=carbon.get("forest_type") or forest_type,
        date=carbon.get("date") or datetime.date.today().isoformat(),
    )

    return AnalysisResult(
        status=data.get("status") or "success",
        project_id=project_id,
        data_source=data_source,
        ndvi_summary=ndvi_summary,
        carbon_stock=carbon_stock,
        confidence_score=float(data.get("confidence_score") or DEFAULT_CONFIDENCE),
    )

def record_measurement(store: SupabaseStore, result: AnalysisResult) -> None:
    """Append the analysis outcome to carbon_data. Failures are logged only."""
    measurement = CarbonMeasurement(
        project_id=result.project_id,
        carbon_tons=result.carbon_stock.total_carbon_tons,
        confidence_score=result.confidence_score,
        measurement_date=datetime.date.today().isoformat(),
    )
    try:
        store.insert_carbon_data(measurement.model_dump())
    except PrimaryStoreError as e:
        logger.warning(f"Failed to store analysis for {result.project_id}: {e}")

def analyze_coordinates(backend: AnalysisBackendClient, lat: float, lon: float,
                        forest_type: str = "tropical") -> AnalysisResult:
    data = backend.test_location(lat, lon)
    return normalize_analysis(data, "coordinate-based", lat, lon, data_source="coordinates", forest_type=forest_type)

def analyze_project(store: SupabaseStore, backend: AnalysisBackendClient,
                    project_id: str, coordinates: str) -> AnalysisResult:
    """
    Run the backend's project analysis, falling back to a point analysis at
    the project's coordinates when the backend does not know the project or
    the analysis fails. The result is recorded in carbon_data either way.
    """
    validate_project_id(project_id)
    lat, lon = parse_coordinates(coordinates)

    try:
        data = backend.analyze_project(project_id, lat, lon)
        result = normalize_analysis(data, project_id, lat, lon)
    except (RemoteServiceError, ValueError) as e:
        logger.warning(f"Project analysis failed for {project_id} ({e}); falling back to satellite data")
        try:
            data = backend.test_location(lat, lon)
            result = normalize_analysis(data, project_id, lat, lon, data_source="satellite_fallback")
        except (RemoteServiceError, ValueError) as fallback_error:
            logger.error(f"Satellite fallback failed for {project_id}: {fallback_error}")
            raise AnalysisError(f"Both analysis and fallback failed. Original error: {e}") from fallback_error

    record_measurement(store, result)
    return result

def download_report(backend: AnalysisBackendClient, project_id: str) -> bytes:
    validate_project_id(project_id)
    return backend.download_report(project_id)

def ndvi_time_series_frame(ndvi_data: dict) -> pd.DataFrame:
    """
    ndvi_data: backend NDVI payload with a 'time_series' list
    returns: DataFrame with ['date', 'ndvi', 'confidence', 'carbon_estimate'] sorted by date
    """
    columns = ["date", "ndvi", "confidence", "carbon_estimate"]
    df = pd.DataFrame(ndvi_data.get("time_series") or [], columns=columns)
    if df.empty:
        return df
    df["date"] = pd.to_datetime(df["date"])
    return df.sort_values("date").reset_index(drop=True)
