"""
Geodesic primitives and the spherical distance model.

Every distance model in `racenav` satisfies the small `DistanceModel` protocol:
`distance(a, b) -> Solution`. The race state machine and the segment projector
only ever see that protocol, so switching between the sphere and the ellipsoid
is a configuration choice (see `racenav.core.models`).
"""

from __future__ import annotations

from dataclasses import dataclass
from math import atan2, cos, pi, sin, sqrt
from typing import Protocol

from racenav.core.angles import TWO_PI, deg_to_rad, normalize_bearing

# Equatorial radius, used as the sphere radius for Haversine and the local plane.
EARTH_RADIUS_M = 6378137.0


@dataclass(frozen=True)
class GeoPoint:
    """A WGS84 longitude/latitude pair in decimal degrees."""

    lon: float
    lat: float

    @classmethod
    def from_lat_lon(cls, lat: float, lon: float) -> "GeoPoint":
        return cls(lon=float(lon), lat=float(lat))


@dataclass(frozen=True)
class Solution:
    """Result of a distance computation.

    `distance` is in meters; both bearings are radians clockwise from true north,
    normalized to [0, 2*pi).
    """

    distance: float
    initial_bearing: float
    final_bearing: float

    @classmethod
    def zero(cls) -> "Solution":
        return cls(distance=0.0, initial_bearing=0.0, final_bearing=0.0)


class DistanceModel(Protocol):
    name: str

    def distance(self, a: GeoPoint, b: GeoPoint) -> Solution: ...


def _initial_bearing(lon1: float, lat1: float, lon2: float, lat2: float) -> float:
    y = sin(lon2 - lon1) * cos(lat2)
    x = cos(lat1) * sin(lat2) - sin(lat1) * cos(lat2) * cos(lon2 - lon1)
    return normalize_bearing(atan2(y, x))


def haversine_solution(a: GeoPoint, b: GeoPoint) -> Solution:
    """Great-circle distance and bearings on a sphere of radius `EARTH_RADIUS_M`."""
    lon1, lat1 = deg_to_rad(a.lon), deg_to_rad(a.lat)
    lon2, lat2 = deg_to_rad(b.lon), deg_to_rad(b.lat)
    dlat = lat2 - lat1
    dlon = lon2 - lon1

    # Rounding can push h just past 1 for antipodal pairs.
    h = min(sin(dlat / 2) ** 2 + cos(lat1) * cos(lat2) * sin(dlon / 2) ** 2, 1.0)
    if h == 0:
        # Coincident points: the reverse-bearing trick below would report pi.
        return Solution.zero()

    return Solution(
        distance=EARTH_RADIUS_M * 2 * atan2(sqrt(h), sqrt(1 - h)),
        initial_bearing=_initial_bearing(lon1, lat1, lon2, lat2),
        final_bearing=(_initial_bearing(lon2, lat2, lon1, lat1) + pi) % TWO_PI,
    )


class HaversineModel:
    """Spherical Earth model. Never fails."""

    name = "haversine"

    def distance(self, a: GeoPoint, b: GeoPoint) -> Solution:
        return haversine_solution(a, b)
