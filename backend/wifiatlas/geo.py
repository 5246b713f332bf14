"""
WifiAtlas Backend — Spherical Earth Geometry
==============================================

What:  Great-circle distance and search bounding boxes on a spherical earth.
Why:   Distances in flat latitude/longitude degrees are wrong away from the
       equator (a degree of longitude shrinks with cos(latitude)). Proximity
       search therefore measures in meters along the sphere.
How:   Haversine formula with the IUGG mean earth radius. The bounding box is
       a conservative prefilter: every point within the radius lies inside
       it, and the exact test is the haversine distance.
"""

import math
from dataclasses import dataclass
from typing import List, Tuple

# IUGG mean earth radius in meters
EARTH_RADIUS_M = 6_371_008.8

# Kilometers per degree of latitude, as used by the directory search box
KM_PER_DEGREE = 111.0


def validate_position(latitude: float, longitude: float) -> bool:
    """True when the pair is a valid WGS84 position."""
    return -90.0 <= latitude <= 90.0 and -180.0 <= longitude <= 180.0


def haversine_meters(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Great-circle distance between two positions, in meters."""
    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    d_phi = math.radians(lat2 - lat1)
    d_lambda = math.radians(lon2 - lon1)

    a = (
        math.sin(d_phi / 2) ** 2
        + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2
    )
    # min() guards against a > 1 from floating point error on antipodes
    return 2 * EARTH_RADIUS_M * math.asin(min(1.0, math.sqrt(a)))


@dataclass(frozen=True)
class BoundingBox:
    """
    Latitude/longitude ranges enclosing a search circle.

    `longitude_ranges` has two entries when the box crosses the antimeridian
    and covers the full circle when it reaches a pole.
    """

    min_lat: float
    max_lat: float
    longitude_ranges: List[Tuple[float, float]]


def bounding_box(latitude: float, longitude: float, radius_m: float) -> BoundingBox:
    """
    Smallest lat/lon box containing every point within `radius_m`.

    Uses the angular radius on the sphere; longitude span widens with
    latitude following Bounding Coordinates (Matuszek), so high-latitude
    searches do not lose points to longitude distortion.
    """
    angular = radius_m / EARTH_RADIUS_M
    lat_r = math.radians(latitude)
    lon_r = math.radians(longitude)

    min_lat_r = lat_r - angular
    max_lat_r = lat_r + angular

    if min_lat_r <= -math.pi / 2 or max_lat_r >= math.pi / 2:
        # Circle contains a pole: every longitude is in range
        return BoundingBox(
            min_lat=max(-90.0, math.degrees(min_lat_r)),
            max_lat=min(90.0, math.degrees(max_lat_r)),
            longitude_ranges=[(-180.0, 180.0)],
        )

    delta_lon = math.asin(min(1.0, math.sin(angular) / math.cos(lat_r)))
    min_lon = math.degrees(lon_r - delta_lon)
    max_lon = math.degrees(lon_r + delta_lon)

    if min_lon < -180.0:
        ranges = [(min_lon + 360.0, 180.0), (-180.0, max_lon)]
    elif max_lon > 180.0:
        ranges = [(min_lon, 180.0), (-180.0, max_lon - 360.0)]
    else:
        ranges = [(min_lon, max_lon)]

    return BoundingBox(
        min_lat=math.degrees(min_lat_r),
        max_lat=math.degrees(max_lat_r),
        longitude_ranges=ranges,
    )


def directory_search_box(latitude: float, longitude: float, radius_km: float) -> dict:
    """
    Search rectangle in the form the network directory API expects.

    The directory works in plain degrees: radius/111 for latitude and
    radius/(111·cos lat) for longitude.
    """
    lat_delta = radius_km / KM_PER_DEGREE
    cos_lat = math.cos(math.radians(latitude))
    # Clamp so a query at the pole does not divide by zero
    lng_delta = radius_km / (KM_PER_DEGREE * max(cos_lat, 1e-6))
    return {
        "latrange1": latitude - lat_delta,
        "latrange2": latitude + lat_delta,
        "longrange1": longitude - lng_delta,
        "longrange2": longitude + lng_delta,
    }
