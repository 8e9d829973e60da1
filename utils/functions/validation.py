import re

from offset_service.errors import ProjectValidationError

# RFC 4122 UUID, versions 1-5
UUID_PATTERN = re.compile(
    r"^[0-9a-f]{8}-[0-9a-f]{4}-[1-5][0-9a-f]{3}-[89ab][0-9a-f]{3}-[0-9a-f]{12}$",
    re.IGNORECASE,
)

def is_valid_uuid(value) -> bool:
    return isinstance(value, str) and bool(UUID_PATTERN.match(value))

def validate_project_id(project_id: str | None) -> str:
    """
    Reject missing or malformed project ids before any request is made.
    """
    if not project_id:
        raise ProjectValidationError("Project ID is required")
    if not is_valid_uuid(project_id):
        raise ProjectValidationError(
            "Invalid project ID format. Please check the URL or select a valid project."
        )
    return project_id

def parse_coordinates(coordinates: str | None) -> tuple[float, float]:
    """
    Parse a "lat,lon" string into floats.

    Raises ProjectValidationError when the string is malformed or out of range.
    """
    if not coordinates or not isinstance(coordinates, str):
        raise ProjectValidationError('Invalid coordinates format. Expected "lat,lon"')

    parts = [p.strip() for p in coordinates.split(",")]
    if len(parts) != 2:
        raise ProjectValidationError('Invalid coordinates format. Expected "lat,lon"')

    try:
        lat, lon = float(parts[0]), float(parts[1])
    except ValueError:
        raise ProjectValidationError('Invalid coordinates format. Expected "lat,lon"') from None

    if lat != lat or lon != lon:
        raise ProjectValidationError('Invalid coordinates format. Expected "lat,lon"')
    if not -90 <= lat <= 90 or not -180 <= lon <= 180:
        raise ProjectValidationError(f"Invalid coordinates: lat={lat}, lon={lon}")

    return lat, lon

def format_coordinates(lat: float, lon: float) -> str:
    return f"{lat:.6f},{lon:.6f}"

def ndvi_status(ndvi: float) -> str:
    if ndvi < 0.3:
        return "Poor vegetation"
    if ndvi < 0.6:
        return "Moderate vegetation"
    return "Excellent vegetation"

def vegetation_density(mean_ndvi: float) -> str:
    if mean_ndvi > 0.7:
        return "high"
    if mean_ndvi > 0.4:
        return "medium"
    return "low"

def format_confidence(confidence: float) -> str:
    return f"{round(confidence * 100)}%"

def parse_api_error(error) -> str:
    """
    Human-readable message from an exception or a FastAPI-style error body
    ({"detail": [...]}, {"detail": "..."} or {"message": "..."}).
    """
    if isinstance(error, Exception):
        return str(error)

    if isinstance(error, dict):
        detail = error.get("detail")
        if isinstance(detail, list):
            first = detail[0] if detail else {}
            return (first.get("msg") if isinstance(first, dict) else None) or "An error occurred with the request"
        if isinstance(detail, str):
            return detail
        if error.get("message"):
            return error["message"]

    return "An unexpected error occurred. Please try again."

def report_filename(project_name: str) -> str:
    slug = re.sub(r"\s+", "-", project_name.strip()).lower()
    return f"{slug}-report.pdf"
