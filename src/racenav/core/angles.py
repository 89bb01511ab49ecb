"""
Angle helpers.

Degrees only appear at the edges (settings, CLI, Signal K payloads). Everything
inside `core/` and `race/` works in radians.
"""

from __future__ import annotations

import math

TWO_PI = 2 * math.pi


def deg_to_rad(deg: float) -> float:
    return deg * (math.pi / 180.0)


def rad_to_deg(rad: float) -> float:
    return 180.0 * (rad / math.pi)


def normalize_bearing(rad: float) -> float:
    """Wrap a bearing into [0, 2*pi)."""
    return (rad + TWO_PI) % TWO_PI
