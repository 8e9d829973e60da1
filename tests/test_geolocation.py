import io
import math

import pandas as pd
import pytest
from PIL import Image
from PIL.TiffImagePlugin import IFDRational

from utils.functions.geolocation import (
    aggregate_grid_results,
    calculate_bounding_box,
    coverage_quality,
    dms_to_decimal,
    estimate_project_area,
    extract_gps_coordinates,
    generate_analysis_grid,
    gps_from_exif,
)


def test_bounding_box_is_centered():
    box = calculate_bounding_box(0.0, 10.0, 11.1)
    assert box["northeast"]["lat"] == pytest.approx(0.1)
    assert box["southwest"]["lat"] == pytest.approx(-0.1)
    assert box["northeast"]["lon"] == pytest.approx(10.1)


def test_bounding_box_widens_longitude_away_from_equator():
    equator = calculate_bounding_box(0.0, 0.0, 5)
    north = calculate_bounding_box(60.0, 0.0, 5)
    assert north["northeast"]["lon"] > equator["northeast"]["lon"]


def test_analysis_grid_covers_box():
    grid = generate_analysis_grid(0.0, 0.0, buffer_km=1.0, grid_resolution_km=1.0)

    assert list(grid.columns) == ["lat", "lon"]
    # -1, 0, +1 km in each direction
    assert len(grid) == 9
    assert grid["lat"].min() == pytest.approx(-1 / 111, abs=1e-6)
    assert grid["lat"].max() == pytest.approx(1 / 111, abs=1e-6)


def test_estimate_project_area():
    assert estimate_project_area(1.0) == pytest.approx(math.pi * 100)


@pytest.mark.parametrize("ratio, label", [(0.95, "excellent"), (0.8, "good"), (0.6, "partial"), (0.5, "poor")])
def test_coverage_quality(ratio, label):
    assert coverage_quality(ratio) == label


def test_aggregate_skips_invalid_points():
    df = pd.DataFrame({
        "ndvi": [0.6, 0.8, 0.0, 0.7],
        "carbon_estimate": [100.0, 200.0, 999.0, 300.0],
        "forest_coverage": [80.0, 90.0, 0.0, 70.0],
        "data_quality": [1.0, 0.9, 0.0, 0.8],
    })

    summary = aggregate_grid_results(df, total_area_ha=100)

    assert summary["ndvi"]["mean"] == pytest.approx(0.7)
    assert summary["carbon_stock"]["total_tons"] == 600
    assert summary["carbon_stock"]["per_hectare"] == 6
    assert summary["forest_cover"]["percentage"] == pytest.approx(80)
    assert summary["confidence_score"] == 0.75
    assert summary["coverage_quality"] == "good"


def test_aggregate_without_valid_points():
    df = pd.DataFrame({"ndvi": [0.1], "carbon_estimate": [1.0], "forest_coverage": [1.0], "data_quality": [0.0]})
    with pytest.raises(ValueError, match="No valid data points"):
        aggregate_grid_results(df, 10)


# ---------- Photo GPS ----------

def test_dms_to_decimal_north_east():
    assert dms_to_decimal((41, 24, 12.2), "N") == pytest.approx(41.403389, abs=1e-6)
    assert dms_to_decimal((2, 10, 26.5), "E") == pytest.approx(2.174028, abs=1e-6)


@pytest.mark.parametrize("ref", ["S", "W", b"S", " w "])
def test_dms_to_decimal_south_west_is_negative(ref):
    assert dms_to_decimal((33, 52, 4), ref) == pytest.approx(-33.867778, abs=1e-6)


def test_dms_accepts_exif_rationals():
    dms = (IFDRational(3, 1), IFDRational(30, 1), IFDRational(1800, 100))
    assert dms_to_decimal(dms, "S") == pytest.approx(-3.505)


def test_gps_from_exif_numeric_tags():
    # 1/2 = latitude ref/value, 3/4 = longitude ref/value
    gps_ifd = {1: "S", 2: (3, 27, 55.08), 3: "W", 4: (62, 12, 57.24)}
    assert gps_from_exif(gps_ifd) == (-3.4653, -62.2159)


def test_gps_from_exif_named_tags():
    gps_ifd = {"GPSLatitudeRef": "N", "GPSLatitude": (1, 30, 0), "GPSLongitudeRef": "E", "GPSLongitude": (114, 12, 0)}
    assert gps_from_exif(gps_ifd) == (1.5, 114.2)


@pytest.mark.parametrize("gps_ifd", [{}, None, {1: "N", 2: (1, 0, 0)}])
def test_gps_from_exif_without_position(gps_ifd):
    assert gps_from_exif(gps_ifd) is None


def test_photo_without_gps_data():
    buf = io.BytesIO()
    Image.new("RGB", (8, 8), "green").save(buf, format="JPEG")
    assert extract_gps_coordinates(buf.getvalue()) is None


def test_unreadable_photo():
    with pytest.raises(ValueError, match="Failed to read image metadata"):
        extract_gps_coordinates(b"not an image")
