"""
Mutable race state.

`RaceState` is plain data; all transitions go through
`racenav.race.machine.RaceStateMachine`.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from racenav.core.geo import GeoPoint
from racenav.domain.models import Course, CourseLeg


class RaceStatus(str, Enum):
    SETUP = "setup"
    PRE_START = "pre-start"
    RACING = "racing"


@dataclass
class StartLine:
    boat_end: GeoPoint | None = None
    pin_end: GeoPoint | None = None


@dataclass
class RaceState:
    course: Course | None = None
    startline: StartLine = field(default_factory=StartLine)
    start_timestamp: float | None = None
    status: RaceStatus = RaceStatus.SETUP
    current_leg_index: int = 0

    @property
    def current_leg(self) -> CourseLeg | None:
        if self.course is None:
            return None
        return self.course.legs[self.current_leg_index]

    @property
    def is_last_leg(self) -> bool:
        return self.course is None or self.current_leg_index + 1 >= len(self.course.legs)
