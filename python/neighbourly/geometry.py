"""Coordinate parsing and bounding-box helpers for Singapore reference data."""
import math

from shapely.geometry.base import BaseGeometry

SG_LAT_MIN, SG_LAT_MAX = 1.1, 1.5
SG_LNG_MIN, SG_LNG_MAX = 103.5, 104.1


def in_singapore(lat: float, lng: float) -> bool:
    """Return True if (lat, lng) is finite and inside the Singapore envelope."""
    if not (math.isfinite(lat) and math.isfinite(lng)):
        return False
    return SG_LAT_MIN <= lat <= SG_LAT_MAX and SG_LNG_MIN <= lng <= SG_LNG_MAX


def parse_latlng(lat: object, lng: object) -> tuple[float, float]:
    """Parse raw latitude/longitude values into a validated (lat, lng) tuple.

    Accepts numbers or numeric strings, as returned by OneMap and by the
    transaction table.

    Args:
        lat: Raw latitude value.
        lng: Raw longitude value.

    Returns:
        (latitude, longitude) as floats.

    Raises:
        ValueError: If either value is missing, not numeric, not finite, or
            the point lies outside the Singapore envelope.
    """
    if lat is None or lng is None:
        raise ValueError("Latitude/longitude missing")
    try:
        lat_f = float(lat)
        lng_f = float(lng)
    except (TypeError, ValueError):
        raise ValueError(f"Unparseable coordinate ({lat!r}, {lng!r})") from None

    if not (math.isfinite(lat_f) and math.isfinite(lng_f)):
        raise ValueError(f"Non-finite coordinate ({lat_f}, {lng_f})")
    if not in_singapore(lat_f, lng_f):
        raise ValueError(
            f"Coordinate ({lat_f:.5f}, {lng_f:.5f}) outside Singapore bounds "
            f"(lat {SG_LAT_MIN}-{SG_LAT_MAX}, lng {SG_LNG_MIN}-{SG_LNG_MAX})"
        )
    return lat_f, lng_f


def bbox_of(geometry: BaseGeometry) -> dict[str, float]:
    """Return the minimum enclosing box of a lng/lat geometry.

    Geometries are stored GeoJSON-style (x = longitude, y = latitude), so
    shapely's ``bounds`` is (min_lng, min_lat, max_lng, max_lat).
    """
    min_lng, min_lat, max_lng, max_lat = geometry.bounds
    return {
        "min_lat": min_lat,
        "max_lat": max_lat,
        "min_lng": min_lng,
        "max_lng": max_lng,
    }
