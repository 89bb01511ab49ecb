"""
Distance model registry.

Settings name the metric (`haversine` or `wsg84`); the host builds the model
once at start-up and injects it. Models are stateless, so a single shared
instance per name is enough.
"""

from __future__ import annotations

from typing import Literal

from racenav.core.geo import DistanceModel, HaversineModel
from racenav.core.vincenty import VincentyModel

DistanceMetric = Literal["haversine", "wsg84"]

_MODELS: dict[str, DistanceModel] = {
    "haversine": HaversineModel(),
    "wsg84": VincentyModel(),
}


def get_distance_model(metric: str) -> DistanceModel:
    """Return the model registered under `metric`."""
    try:
        return _MODELS[metric]
    except KeyError:
        known = ", ".join(sorted(_MODELS))
        raise ValueError(f"Unknown distance metric '{metric}'; expected one of: {known}") from None
