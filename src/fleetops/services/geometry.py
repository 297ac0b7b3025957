"""Geospatial helper functions for route polylines."""

from __future__ import annotations

import math
from typing import Callable, Sequence

from shapely.geometry import Point, Polygon

from ..models.domain import GeoPoint

EARTH_RADIUS_KM = 6371.0
POLYLINE_PRECISION = 1e5
DEFAULT_SIMPLIFY_THRESHOLD_KM = 0.05
DEFAULT_CROSSING_TOLERANCE_KM = 0.01
MAX_CROSSING_ITERATIONS = 20

# Encoded characters cover 63 ('?') to 126 ('~').
_MIN_CODE_POINT = 63
_MAX_CODE_POINT = 126


class MalformedPolylineError(ValueError):
    """Raised when an encoded polyline cannot be decoded."""


def haversine_km(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Compute distance between two coordinates using the Haversine formula."""

    phi1, phi2 = math.radians(lat1), math.radians(lat2)
    d_phi = math.radians(lat2 - lat1)
    d_lambda = math.radians(lon2 - lon1)

    a = math.sin(d_phi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return EARTH_RADIUS_KM * c


def distance(a: GeoPoint, b: GeoPoint) -> float:
    """Great-circle distance in km between two points."""
    return haversine_km(a.lat, a.lng, b.lat, b.lng)


def path_distance(points: Sequence[GeoPoint]) -> float:
    """Total length in km of the path through ``points``."""
    return sum(distance(points[i], points[i + 1]) for i in range(len(points) - 1))


def _decode_value(polyline: str, index: int) -> tuple[int, int]:
    shift = 0
    result = 0
    while True:
        if index >= len(polyline):
            raise MalformedPolylineError(f"Polyline ended in the middle of a value at position {index}.")
        code = ord(polyline[index])
        if code < _MIN_CODE_POINT or code > _MAX_CODE_POINT:
            raise MalformedPolylineError(
                f"Invalid character {polyline[index]!r} at position {index} in encoded polyline."
            )
        b = code - 63
        index += 1
        result |= (b & 0x1F) << shift
        shift += 5
        if b < 0x20:
            break
    value = ~(result >> 1) if (result & 1) else (result >> 1)
    return value, index


def decode(polyline: str) -> list[GeoPoint]:
    """Decode a Google encoded polyline into points.

    Args:
        polyline: Encoded polyline string (precision 1e5)

    Returns:
        List of GeoPoint, empty for an empty string

    Raises:
        MalformedPolylineError: on characters outside the encoding alphabet or truncated input
    """
    points: list[GeoPoint] = []
    index = 0
    lat = 0
    lng = 0

    while index < len(polyline):
        dlat, index = _decode_value(polyline, index)
        if index >= len(polyline):
            raise MalformedPolylineError("Polyline has a latitude without a matching longitude.")
        dlng, index = _decode_value(polyline, index)
        lat += dlat
        lng += dlng
        points.append(GeoPoint(lat=lat / POLYLINE_PRECISION, lng=lng / POLYLINE_PRECISION))

    return points


def _encode_value(value: int) -> str:
    value = ~(value << 1) if value < 0 else value << 1
    chunks = []
    while value >= 0x20:
        chunks.append(chr((0x20 | (value & 0x1F)) + 63))
        value >>= 5
    chunks.append(chr(value + 63))
    return "".join(chunks)


def encode(points: Sequence[GeoPoint]) -> str:
    """Encode points as a Google polyline string."""
    output = []
    prev_lat = 0
    prev_lng = 0
    for point in points:
        lat = round(point.lat * POLYLINE_PRECISION)
        lng = round(point.lng * POLYLINE_PRECISION)
        output.append(_encode_value(lat - prev_lat))
        output.append(_encode_value(lng - prev_lng))
        prev_lat, prev_lng = lat, lng
    return "".join(output)


def simplify(points: Sequence[GeoPoint], threshold_km: float = DEFAULT_SIMPLIFY_THRESHOLD_KM) -> list[GeoPoint]:
    """Drop interior points closer than ``threshold_km`` to the last kept point.

    The first and last points are always kept.
    """
    if len(points) <= 2:
        return list(points)

    kept = [points[0]]
    for point in points[1:-1]:
        if distance(kept[-1], point) >= threshold_km:
            kept.append(point)
    kept.append(points[-1])
    return kept


def interpolate(a: GeoPoint, b: GeoPoint, t: float) -> GeoPoint:
    """Linear interpolation between ``a`` (t=0) and ``b`` (t=1)."""
    return GeoPoint(lat=a.lat + (b.lat - a.lat) * t, lng=a.lng + (b.lng - a.lng) * t)


def find_crossing(
    a: GeoPoint,
    b: GeoPoint,
    predicate: Callable[[GeoPoint], bool],
    tolerance_km: float = DEFAULT_CROSSING_TOLERANCE_KM,
) -> GeoPoint:
    """Binary search along ``a -> b`` for the point where ``predicate`` flips.

    The predicate value at ``a`` is the reference: the search narrows towards the last
    position still agreeing with it. The result always lies on the segment.
    """
    segment_km = distance(a, b)
    if segment_km <= tolerance_km:
        return interpolate(a, b, 0.5)

    reference = predicate(a)
    low, high = 0.0, 1.0
    step_tolerance = tolerance_km / segment_km
    iterations = 0
    while high - low > step_tolerance and iterations < MAX_CROSSING_ITERATIONS:
        mid = (low + high) / 2
        if predicate(interpolate(a, b, mid)) == reference:
            low = mid
        else:
            high = mid
        iterations += 1

    return interpolate(a, b, (low + high) / 2)


def bounds(points: Sequence[GeoPoint]) -> dict[str, GeoPoint]:
    """Return the north-east / south-west bounding corners of ``points``."""
    if not points:
        raise ValueError("At least one point is required to compute bounds.")
    lats = [p.lat for p in points]
    lngs = [p.lng for p in points]
    return {
        "northeast": GeoPoint(lat=max(lats), lng=max(lngs)),
        "southwest": GeoPoint(lat=min(lats), lng=min(lngs)),
    }


def point_in_polygon(point: GeoPoint, polygon_coords: Sequence[GeoPoint]) -> bool:
    """Return True if the point is inside the polygon."""

    if len(polygon_coords) < 3:
        return False
    polygon = Polygon([(p.lng, p.lat) for p in polygon_coords])
    return polygon.contains(Point(point.lng, point.lat))


def polygon_centroid(polygon_coords: Sequence[GeoPoint]) -> GeoPoint:
    centroid = Polygon([(p.lng, p.lat) for p in polygon_coords]).centroid
    return GeoPoint(lat=centroid.y, lng=centroid.x)
