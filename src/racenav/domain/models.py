"""
Domain models (Pydantic).

These types are the contract between the configuration layer, the race state
machine and the host adapter:
- race course definitions (`CourseLeg`, `Course`), built by `courses/loader.py`
- per-tick navigation output (`DerivedMetrics`), built by `race/machine.py`

Courses are frozen: once selected, a race holds a reference to the same object
for its whole lifetime.
"""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from racenav.core.angles import normalize_bearing
from racenav.core.geo import GeoPoint

LegDirection = Literal["upwind", "downwind"]


class CourseLeg(BaseModel):
    """One leg: sail to `waypoint_mark_point`."""

    model_config = ConfigDict(frozen=True)

    waypoint_mark_name: str = Field(..., min_length=1)
    waypoint_mark_point: GeoPoint
    direction: LegDirection


class Course(BaseModel):
    """An ordered list of legs plus the nominal course bearing (radians)."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(..., min_length=1)
    bearing: float
    legs: tuple[CourseLeg, ...] = Field(..., min_length=2)

    @field_validator("bearing")
    @classmethod
    def _normalize_bearing(cls, bearing: float) -> float:
        return normalize_bearing(bearing)

    def mark_names(self) -> list[str]:
        return [leg.waypoint_mark_name for leg in self.legs]


class DerivedMetrics(BaseModel):
    """Values computed by one `evaluate` tick.

    A field is `None` when its inputs were unavailable (no start time, no ping,
    no position, ...). `race_status` is only set on the tick that starts the race
    and `mark_name` only on the tick that auto-advances a leg.
    """

    time_to_start: float | None = None
    race_status: str | None = None
    distance_boat_end: float | None = None
    distance_pin_end: float | None = None
    distance_startline: float | None = None
    distance_to_mark: float | None = None
    cog_to_mark: float | None = None
    bearing_to_mark: float | None = None
    vmg_to_mark: float | None = None
    vmg: float | None = None
    mark_name: str | None = None

    def present(self) -> dict[str, Any]:
        """Only the metrics that were actually computed."""
        return self.model_dump(exclude_none=True)
