from math import radians, degrees, sin, cos, asin, sqrt, pi

EARTH_RADIUS_KM = 6371.0


def haversine_km(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Calculate the great circle distance between two points on the earth (km)."""
    # convert decimal degrees to radians
    lon1, lat1, lon2, lat2 = map(radians, [lon1, lat1, lon2, lat2])
    # haversine formula
    dlon = lon2 - lon1
    dlat = lat2 - lat1
    a = sin(dlat / 2) ** 2 + cos(lat1) * cos(lat2) * sin(dlon / 2) ** 2
    # rounding can push a slightly above 1 for antipodal points
    c = 2 * asin(sqrt(min(1.0, a)))
    return c * EARTH_RADIUS_KM


def bounding_box(latitude: float, longitude: float, radius_km: float) -> tuple[float, float, float, float]:
    """
    Return (min_lat, max_lat, min_lon, max_lon) enclosing every point within radius_km.
    Used only as a coarse storage pre-filter; haversine_km makes the final call.
    """
    # angular radius, padded so boundary points survive float rounding
    angle = radius_km / EARTH_RADIUS_KM * 1.0001
    lat_delta = degrees(angle)
    min_lat, max_lat = latitude - lat_delta, latitude + lat_delta
    if max_lat >= 90.0 or min_lat <= -90.0 or angle >= pi / 2:
        # circle reaches a pole, every longitude qualifies
        return (max(min_lat, -90.0), min(max_lat, 90.0), -180.0, 180.0)
    lon_delta = degrees(asin(min(1.0, sin(angle) / cos(radians(latitude)))))
    min_lon, max_lon = longitude - lon_delta, longitude + lon_delta
    if min_lon < -180.0 or max_lon > 180.0:
        # crosses the antimeridian; skip the longitude filter
        return (min_lat, max_lat, -180.0, 180.0)
    return (min_lat, max_lat, min_lon, max_lon)
