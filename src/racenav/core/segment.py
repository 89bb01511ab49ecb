"""
Point-to-segment distance for start lines.

The segment is projected onto a local equirectangular plane centred at the
query point (same trick as a grid index, but around P instead of a fixed
reference latitude). The closest point on the flat segment is converted back to
lon/lat and measured with whichever `DistanceModel` the caller hands in.

Only valid for short spans: a start line is tens to hundreds of meters long.
It is not a geodesic point-to-segment solver.
"""

from __future__ import annotations

from math import cos

from racenav.core.angles import deg_to_rad, rad_to_deg
from racenav.core.geo import EARTH_RADIUS_M, DistanceModel, GeoPoint, Solution


def _to_local_xy(lon: float, lat: float, *, lon0: float, lat0: float) -> tuple[float, float]:
    x = EARTH_RADIUS_M * (lon - lon0) * cos(lat0)
    y = EARTH_RADIUS_M * (lat - lat0)
    return x, y


def distance_to_segment(p: GeoPoint, a: GeoPoint, b: GeoPoint, model: DistanceModel) -> Solution:
    """Shortest distance from `p` to the segment `a`-`b`."""
    lon0, lat0 = deg_to_rad(p.lon), deg_to_rad(p.lat)
    lon1, lat1 = deg_to_rad(a.lon), deg_to_rad(a.lat)
    lon2, lat2 = deg_to_rad(b.lon), deg_to_rad(b.lat)

    x1, y1 = _to_local_xy(lon1, lat1, lon0=lon0, lat0=lat0)
    x2, y2 = _to_local_xy(lon2, lat2, lon0=lon0, lat0=lat0)
    dx = x1 - x2
    dy = y1 - y2

    length_sq = dx * dx + dy * dy
    if length_sq == 0:
        return model.distance(p, a)

    t = max(0.0, min(1.0, (x1 * dx + y1 * dy) / length_sq))
    closest = GeoPoint(
        lon=rad_to_deg(lon1 - t * (lon1 - lon2)),
        lat=rad_to_deg(lat1 - t * (lat1 - lat2)),
    )
    return model.distance(p, closest)
