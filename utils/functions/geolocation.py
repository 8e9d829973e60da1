import io
import numpy as np
import pandas as pd
from PIL import ExifTags, Image, UnidentifiedImageError

KM_PER_DEGREE_LAT = 111

def _degrees_per_km(lat: float) -> tuple[float, float]:
    lat_deg = 1 / KM_PER_DEGREE_LAT
    lon_deg = 1 / (KM_PER_DEGREE_LAT * np.cos(np.deg2rad(lat)))
    return lat_deg, lon_deg

def calculate_bounding_box(lat: float, lon: float, buffer_km: float) -> dict:
    """
    Returns: {"northeast": {"lat", "lon"}, "southwest": {"lat", "lon"}}
    """
    lat_deg, lon_deg = _degrees_per_km(lat)
    lat_buf = buffer_km * lat_deg
    lon_buf = buffer_km * lon_deg
    return {
        "northeast": {"lat": lat + lat_buf, "lon": lon + lon_buf},
        "southwest": {"lat": lat - lat_buf, "lon": lon - lon_buf},
    }

def generate_analysis_grid(lat: float, lon: float, buffer_km: float,
                           grid_resolution_km: float = 1.0) -> pd.DataFrame:
    """
    Grid of sample points covering the bounding box around (lat, lon),
    spaced grid_resolution_km apart.

    Returns: DataFrame with ['lat', 'lon'], rounded to 6 decimals
    """
    lat_deg, lon_deg = _degrees_per_km(lat)
    lat_buf, lon_buf = buffer_km * lat_deg, buffer_km * lon_deg
    lat_step, lon_step = grid_resolution_km * lat_deg, grid_resolution_km * lon_deg

    # small epsilon so the far edge is included despite float drift
    lats = np.arange(lat - lat_buf, lat + lat_buf + lat_step * 1e-9, lat_step)
    lons = np.arange(lon - lon_buf, lon + lon_buf + lon_step * 1e-9, lon_step)
    grid_lat, grid_lon = np.meshgrid(lats, lons, indexing="ij")

    return pd.DataFrame({
        "lat": np.round(grid_lat.ravel(), 6),
        "lon": np.round(grid_lon.ravel(), 6),
    })

def estimate_project_area(buffer_km: float = 1.0) -> float:
    """Area in hectares of a circular buffer around a point (1 km² = 100 ha)."""
    return float(np.pi * buffer_km ** 2 * 100)

def coverage_quality(ratio: float) -> str:
    if ratio > 0.9:
        return "excellent"
    if ratio > 0.7:
        return "good"
    if ratio > 0.5:
        return "partial"
    return "poor"

def aggregate_grid_results(df_grid: pd.DataFrame, total_area_ha: float) -> dict:
    """
    df_grid: DataFrame with ['ndvi', 'carbon_estimate', 'forest_coverage', 'data_quality']
    returns: summary dict of NDVI statistics, carbon stock and forest cover

    Rows with data_quality <= 0 are excluded. Raises ValueError when no row is usable.
    """
    valid = df_grid[df_grid["data_quality"] > 0]
    if valid.empty:
        raise ValueError("No valid data points found in analysis")

    ratio = len(valid) / len(df_grid)
    total_carbon = float(valid["carbon_estimate"].sum())
    avg_forest = float(valid["forest_coverage"].mean())

    return {
        "ndvi": {
            "mean": float(valid["ndvi"].mean()),
            "std": float(valid["ndvi"].std(ddof=0)),
            "min": float(valid["ndvi"].min()),
            "max": float(valid["ndvi"].max()),
        },
        "carbon_stock": {
            "total_tons": total_carbon,
            "per_hectare": total_carbon / total_area_ha if total_area_ha else 0.0,
            "confidence": ratio,
        },
        "forest_cover": {
            "percentage": avg_forest,
            "area_hectares": avg_forest / 100 * total_area_ha,
            "quality_score": ratio,
        },
        "confidence_score": ratio,
        "coverage_quality": coverage_quality(ratio),
    }

# ---------- Photo GPS ----------

def dms_to_decimal(dms, ref) -> float:
    """(degrees, minutes, seconds) + hemisphere ref -> signed decimal degrees."""
    degrees, minutes, seconds = (float(v) for v in dms)
    decimal = degrees + minutes / 60 + seconds / 3600
    if isinstance(ref, bytes):
        ref = ref.decode("ascii", "ignore")
    if str(ref).strip().upper() in {"S", "W"}:
        decimal = -decimal
    return decimal

def gps_from_exif(gps_ifd: dict) -> tuple[float, float] | None:
    """
    gps_ifd: the EXIF GPSInfo directory, keyed by numeric tag or tag name
    returns: (lat, lon), or None when the photo carries no position
    """
    gps = {ExifTags.GPSTAGS.get(k, k): v for k, v in (gps_ifd or {}).items()}
    if "GPSLatitude" not in gps or "GPSLongitude" not in gps:
        return None

    lat = dms_to_decimal(gps["GPSLatitude"], gps.get("GPSLatitudeRef", "N"))
    lon = dms_to_decimal(gps["GPSLongitude"], gps.get("GPSLongitudeRef", "E"))
    return round(lat, 6), round(lon, 6)

def extract_gps_coordinates(image_bytes: bytes) -> tuple[float, float] | None:
    """
    Read the position a camera or phone stored in a photo's EXIF metadata.
    Returns None when there is none. Raises ValueError if the bytes are not
    a readable image.
    """
    try:
        with Image.open(io.BytesIO(image_bytes)) as img:
            gps_ifd = img.getexif().get_ifd(ExifTags.IFD.GPSInfo)
    except UnidentifiedImageError as e:
        raise ValueError("Failed to read image metadata. Please try another image.") from e

    return gps_from_exif(gps_ifd)
