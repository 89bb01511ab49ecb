"""
Ellipsoidal distance model (Vincenty inverse, WGS84).

The numeric core is `_solve_lambda`: a bounded fixed-point iteration on the
auxiliary-sphere longitude difference. It never raises; it returns one of three
tagged results and `VincentyModel.distance` decodes them:

- `_Converged`: the state needed to finish the series expansion
- `_Coincident`: sin(sigma) hit zero, the points are the same
- `_Failed`: the iteration budget ran out (typically nearly antipodal points)

Reference: T. Vincenty (1975), with the equatorial-line fix from section 6 of
the movable-type write-up (cos2SigmaM := 0 when cos^2(alpha) == 0).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from math import atan2, cos, sin, sqrt, tan

from racenav.core.angles import deg_to_rad, normalize_bearing
from racenav.core.geo import GeoPoint, Solution

logger = logging.getLogger(__name__)

SEMI_MAJOR_AXIS_M = 6378137.0
SEMI_MINOR_AXIS_M = 6356752.314245
FLATTENING = 1 / 298.257223563
ECC_SQUARED = 0.006694380004260827

MAX_ITERATIONS = 100
TOLERANCE = 1e-12


class ConvergenceFailure(ArithmeticError):
    """Vincenty's iteration did not settle within its budget."""

    def __init__(self, iterations: int):
        super().__init__(f"Vincenty formula failed to converge within {iterations} iterations")
        self.iterations = iterations


@dataclass(frozen=True)
class _Converged:
    lam: float
    sin_sigma: float
    cos_sigma: float
    sigma: float
    cos_sq_alpha: float
    cos2_sigma_m: float


@dataclass(frozen=True)
class _Coincident:
    pass


@dataclass(frozen=True)
class _Failed:
    iterations: int


_IterationResult = _Converged | _Coincident | _Failed


@dataclass(frozen=True)
class _ReducedLatitude:
    sin_u: float
    cos_u: float

    @classmethod
    def from_degrees(cls, lat: float) -> "_ReducedLatitude":
        tan_u = (1 - FLATTENING) * tan(deg_to_rad(lat))
        cos_u = 1 / sqrt(1 + tan_u * tan_u)
        return cls(sin_u=tan_u * cos_u, cos_u=cos_u)


def _solve_lambda(
    big_l: float,
    u1: _ReducedLatitude,
    u2: _ReducedLatitude,
    *,
    max_iterations: int = MAX_ITERATIONS,
    tolerance: float = TOLERANCE,
) -> _IterationResult:
    lam = big_l
    for _ in range(max_iterations):
        sin_lam = sin(lam)
        cos_lam = cos(lam)
        cross = u1.cos_u * u2.sin_u - u1.sin_u * u2.cos_u * cos_lam
        sin_sigma = sqrt((u2.cos_u * sin_lam) ** 2 + cross**2)
        if sin_sigma == 0:
            return _Coincident()

        cos_sigma = u1.sin_u * u2.sin_u + u1.cos_u * u2.cos_u * cos_lam
        sigma = atan2(sin_sigma, cos_sigma)
        sin_alpha = u1.cos_u * u2.cos_u * sin_lam / sin_sigma
        cos_sq_alpha = 1 - sin_alpha * sin_alpha
        if cos_sq_alpha == 0:
            cos2_sigma_m = 0.0  # equatorial line
        else:
            cos2_sigma_m = cos_sigma - 2 * u1.sin_u * u2.sin_u / cos_sq_alpha

        c = FLATTENING / 16 * cos_sq_alpha * (4 + FLATTENING * (4 - 3 * cos_sq_alpha))
        lam_prev = lam
        lam = big_l + (1 - c) * FLATTENING * sin_alpha * (
            sigma + c * sin_sigma * (cos2_sigma_m + c * cos_sigma * (-1 + 2 * cos2_sigma_m**2))
        )
        if abs(lam - lam_prev) <= tolerance:
            return _Converged(
                lam=lam,
                sin_sigma=sin_sigma,
                cos_sigma=cos_sigma,
                sigma=sigma,
                cos_sq_alpha=cos_sq_alpha,
                cos2_sigma_m=cos2_sigma_m,
            )
    return _Failed(iterations=max_iterations)


def vincenty_solution(a: GeoPoint, b: GeoPoint) -> Solution:
    """Distance and bearings on the WGS84 ellipsoid.

    Raises:
        ConvergenceFailure: if the iteration budget is exhausted.
    """
    big_l = deg_to_rad(b.lon) - deg_to_rad(a.lon)
    u1 = _ReducedLatitude.from_degrees(a.lat)
    u2 = _ReducedLatitude.from_degrees(b.lat)

    result = _solve_lambda(big_l, u1, u2)
    if isinstance(result, _Coincident):
        return Solution.zero()
    if isinstance(result, _Failed):
        logger.debug("Vincenty did not converge for %s -> %s", a, b)
        raise ConvergenceFailure(result.iterations)

    a2 = SEMI_MAJOR_AXIS_M * SEMI_MAJOR_AXIS_M
    b2 = SEMI_MINOR_AXIS_M * SEMI_MINOR_AXIS_M
    u_sq = result.cos_sq_alpha * (a2 - b2) / b2
    big_a = 1 + u_sq / 16384 * (4096 + u_sq * (-768 + u_sq * (320 - 175 * u_sq)))
    big_b = u_sq / 1024 * (256 + u_sq * (-128 + u_sq * (74 - 47 * u_sq)))

    sin_sigma = result.sin_sigma
    cos_sigma = result.cos_sigma
    c2sm = result.cos2_sigma_m
    delta_sigma = big_b * sin_sigma * (
        c2sm
        + big_b
        / 4
        * (
            cos_sigma * (-1 + 2 * c2sm * c2sm)
            - big_b / 6 * c2sm * (-3 + 4 * sin_sigma * sin_sigma) * (-3 + 4 * c2sm * c2sm)
        )
    )
    s = SEMI_MINOR_AXIS_M * big_a * (result.sigma - delta_sigma)

    sin_lam = sin(result.lam)
    cos_lam = cos(result.lam)
    alpha1 = atan2(u2.cos_u * sin_lam, u1.cos_u * u2.sin_u - u1.sin_u * u2.cos_u * cos_lam)
    alpha2 = atan2(u1.cos_u * sin_lam, -u1.sin_u * u2.cos_u + u1.cos_u * u2.sin_u * cos_lam)

    return Solution(
        distance=round(s, 4),
        initial_bearing=normalize_bearing(alpha1),
        final_bearing=normalize_bearing(alpha2),
    )


class VincentyModel:
    """WGS84 ellipsoid model; more accurate than Haversine over long distances."""

    name = "wsg84"

    def distance(self, a: GeoPoint, b: GeoPoint) -> Solution:
        return vincenty_solution(a, b)
