"""Geometry primitives for route progress and path encoding.

Distances to route segments use a flat projection that treats raw latitude
and longitude degrees as planar coordinates. This is only accurate over short
segments away from the poles. Distances between waypoints use the haversine
great-circle formula, so a remaining-distance value mixes both models.
"""

from __future__ import annotations

import math
from typing import Iterable, List, Protocol, Sequence, Tuple

import numpy as np
import polyline

from .config import ARRIVAL_EPSILON_M, METERS_PER_FOOT
from .models import Coordinate, Route

_EARTH_RADIUS_M = 6_371_000.0
POLYLINE_PRECISION = 5

LatLon = Tuple[float, float]


class HasLatLon(Protocol):
    @property
    def latitude(self) -> float: ...

    @property
    def longitude(self) -> float: ...


def planar_distance(a: HasLatLon, b: HasLatLon) -> float:
    """Euclidean distance in degrees between two points."""

    return math.hypot(b.longitude - a.longitude, b.latitude - a.latitude)


def point_to_segment_distance(a: HasLatLon, b: HasLatLon, p: HasLatLon) -> float:
    """Return the planar distance (degrees) from ``p`` to segment ``a``-``b``.

    The projection parameter is clamped to [0, 1], so points beyond either
    end measure to the nearer endpoint rather than to the infinite line.
    """

    dx = b.longitude - a.longitude
    dy = b.latitude - a.latitude
    length_sq = dx * dx + dy * dy
    if length_sq == 0.0:
        return planar_distance(a, p)
    t = ((p.longitude - a.longitude) * dx + (p.latitude - a.latitude) * dy) / length_sq
    t = max(0.0, min(1.0, t))
    px = a.longitude + t * dx
    py = a.latitude + t * dy
    return math.hypot(p.longitude - px, p.latitude - py)


def nearest_segment(route: Route, origin: HasLatLon) -> int:
    """Index of the waypoint pair closest to ``origin``; ties keep the lowest."""

    points = route.waypoints
    best_index = 0
    best_distance = math.inf
    for index in range(len(points) - 1):
        distance = point_to_segment_distance(points[index], points[index + 1], origin)
        if distance < best_distance:
            best_index = index
            best_distance = distance
    return best_index


def distance_m(first: HasLatLon, second: HasLatLon) -> float:
    """Haversine great-circle distance in metres."""

    lat1_rad = math.radians(first.latitude)
    lat2_rad = math.radians(second.latitude)
    delta_lat = lat2_rad - lat1_rad
    delta_lon = math.radians(second.longitude - first.longitude)
    sin_half_lat = math.sin(delta_lat / 2.0)
    sin_half_lon = math.sin(delta_lon / 2.0)
    a = (
        sin_half_lat**2
        + math.cos(lat1_rad) * math.cos(lat2_rad) * sin_half_lon**2
    )
    c = 2.0 * math.atan2(math.sqrt(a), math.sqrt(1.0 - a))
    return _EARTH_RADIUS_M * c


def path_length_m(points: Sequence[HasLatLon]) -> float:
    """Sum of great-circle distances between consecutive points."""

    if len(points) < 2:
        return 0.0
    lat = np.radians(np.array([p.latitude for p in points], dtype=np.float64))
    lon = np.radians(np.array([p.longitude for p in points], dtype=np.float64))
    delta_lat = np.diff(lat)
    delta_lon = np.diff(lon)
    a = (
        np.sin(delta_lat / 2.0) ** 2
        + np.cos(lat[:-1]) * np.cos(lat[1:]) * np.sin(delta_lon / 2.0) ** 2
    )
    c = 2.0 * np.arctan2(np.sqrt(a), np.sqrt(1.0 - a))
    return float(np.sum(c) * _EARTH_RADIUS_M)


def meters_to_feet(meters: float) -> int:
    return int(math.floor(meters / METERS_PER_FOOT))


def remaining_distance(route: Route, origin: HasLatLon) -> int:
    """Feet left to walk from ``origin`` to the end of ``route``, floored.

    Measures to the far endpoint of the nearest segment, then adds the length
    of every later leg.
    """

    if distance_m(origin, route.destination) <= ARRIVAL_EPSILON_M:
        return 0
    index = nearest_segment(route, origin)
    far_end = route.waypoints[index + 1]
    total = distance_m(origin, far_end) + path_length_m(route.waypoints[index + 1 :])
    return meters_to_feet(total)


def encode_path(points: Iterable[HasLatLon]) -> str:
    """Encode points as a precision-5 polyline string."""

    return polyline.encode(
        [(p.latitude, p.longitude) for p in points], precision=POLYLINE_PRECISION
    )


def decode_path(encoded: str) -> List[Coordinate]:
    """Decode a polyline string; altitude is not carried and comes back as 0."""

    if not encoded:
        return []
    try:
        decoded = polyline.decode(encoded, precision=POLYLINE_PRECISION)
    except (ValueError, TypeError, IndexError) as exc:
        raise ValueError("Unable to decode polyline") from exc
    return [Coordinate(float(lat), float(lon)) for lat, lon in decoded]


__all__ = [
    "HasLatLon",
    "LatLon",
    "POLYLINE_PRECISION",
    "decode_path",
    "distance_m",
    "encode_path",
    "meters_to_feet",
    "nearest_segment",
    "path_length_m",
    "planar_distance",
    "point_to_segment_distance",
    "remaining_distance",
]
