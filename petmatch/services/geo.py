# petmatch/services/geo.py
from math import radians, sin, cos, atan2, isfinite
from typing import Sequence, Tuple

EARTH_RADIUS_KM = 6371.0


def distance_km(a: Sequence[float], b: Sequence[float]) -> float:
    """
    a, b: [lng, lat] pairs (GeoJSON order)
    returns great-circle distance in km
    """
    lng1, lat1 = float(a[0]), float(a[1])
    lng2, lat2 = float(b[0]), float(b[1])
    dlat = radians(lat2 - lat1)
    dlng = radians(lng2 - lng1)
    s = sin(dlat / 2) ** 2 + cos(radians(lat1)) * cos(radians(lat2)) * sin(dlng / 2) ** 2
    s = min(1.0, s)  # rounding can push near-antipodal pairs past 1
    return 2 * EARTH_RADIUS_KM * atan2(s ** 0.5, (1 - s) ** 0.5)


def coordinates_of(record: dict) -> Tuple[float, float]:
    """
    Pull [lng, lat] out of a pet/report-like dict.

    Accepts ``location.coordinates`` as a plain pair or as a GeoJSON point,
    or a top-level ``coordinates`` pair. Anything that is not a list or tuple
    of exactly two finite numbers falls back to (0.0, 0.0); distances from
    that sentinel are large but finite, so such records simply never land
    inside a search radius.
    """
    loc = (record or {}).get("location") or {}
    coords = loc.get("coordinates") if isinstance(loc, dict) else None
    if isinstance(coords, dict):
        coords = coords.get("coordinates")
    if coords is None:
        coords = (record or {}).get("coordinates")
    if not isinstance(coords, (list, tuple)) or len(coords) != 2:
        return (0.0, 0.0)
    try:
        lng, lat = float(coords[0]), float(coords[1])
    except (TypeError, ValueError):
        return (0.0, 0.0)
    if not (isfinite(lng) and isfinite(lat)):
        return (0.0, 0.0)
    return (lng, lat)


def has_coordinates(record: dict) -> bool:
    return coordinates_of(record) != (0.0, 0.0)
