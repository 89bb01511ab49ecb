"""
Race state machine.

States: setup -> pre-start -> racing (cancel returns to setup from anywhere).

The machine never reads a clock. Every time-dependent call receives `now` in
epoch milliseconds from the host, so a whole race can be replayed
deterministically in tests.

`evaluate` is the per-tick step:
1. countdown / gun detection
2. start-line distances (boat end, pin end, line)
3. mark distance, bearings and VMG, with at most one automatic leg advance

All distance model calls happen before state is touched, so a
`ConvergenceFailure` leaves the race exactly as it was.
"""

from __future__ import annotations

import logging
import math

from racenav.core.angles import normalize_bearing
from racenav.core.geo import DistanceModel, GeoPoint
from racenav.core.segment import distance_to_segment
from racenav.domain.models import Course, CourseLeg, DerivedMetrics
from racenav.race.errors import LastLegReached, NoCourseSelected, NoPositionAvailable, RaceInProgress
from racenav.race.state import RaceState, RaceStatus

logger = logging.getLogger(__name__)

DEFAULT_LEG_COMPLETION_M = 30.0


class RaceStateMachine:
    def __init__(
        self,
        model: DistanceModel,
        *,
        leg_completion_distance: float = DEFAULT_LEG_COMPLETION_M,
        state: RaceState | None = None,
    ):
        if leg_completion_distance < 0:
            raise ValueError("leg_completion_distance must be >= 0")
        self._model = model
        self._leg_completion_distance = float(leg_completion_distance)
        self._state = state or RaceState()

    @property
    def model(self) -> DistanceModel:
        return self._model

    @property
    def state(self) -> RaceState:
        return self._state

    @property
    def leg_completion_distance(self) -> float:
        return self._leg_completion_distance

    # Commands

    def start_countdown(self, now: float, seconds_from_now: float) -> float:
        """Arm the start `seconds_from_now` after `now`; returns the start timestamp (ms)."""
        seconds = float(seconds_from_now)
        if not math.isfinite(seconds) or not math.isfinite(float(now)):
            raise ValueError(f"Countdown needs finite numbers, got now={now!r} seconds={seconds_from_now!r}")
        self._state.start_timestamp = now + seconds * 1000
        self._state.status = RaceStatus.PRE_START
        self._state.current_leg_index = 0
        logger.debug("Countdown armed; start at %s", self._state.start_timestamp)
        return self._state.start_timestamp

    def cancel_race(self) -> None:
        self._state.start_timestamp = None
        self._state.status = RaceStatus.SETUP
        self._state.current_leg_index = 0
        logger.debug("Race cancelled")

    def ping_boat_end(self, position: GeoPoint | None) -> GeoPoint:
        if position is None:
            raise NoPositionAvailable("boat end ping")
        self._state.startline.boat_end = position
        return position

    def ping_pin_end(self, position: GeoPoint | None) -> GeoPoint:
        if position is None:
            raise NoPositionAvailable("pin end ping")
        self._state.startline.pin_end = position
        return position

    def select_course(self, course: Course) -> CourseLeg:
        """Select `course` and rewind to its first leg."""
        if self._state.status is RaceStatus.RACING:
            raise RaceInProgress()
        self._state.course = course
        self._state.current_leg_index = 0
        return course.legs[0]

    def advance_leg(self) -> CourseLeg:
        """Move on to the next leg and return it."""
        state = self._state
        if state.course is None:
            raise NoCourseSelected()
        if state.is_last_leg:
            raise LastLegReached(state.course.legs[state.current_leg_index].waypoint_mark_name)
        state.current_leg_index += 1
        leg = state.course.legs[state.current_leg_index]
        logger.debug("Advanced to leg %d (%s)", state.current_leg_index, leg.waypoint_mark_name)
        return leg

    # Per-tick evaluation

    def evaluate(
        self,
        now: float,
        position: GeoPoint | None = None,
        cog: float | None = None,
        sog: float | None = None,
    ) -> DerivedMetrics:
        """Compute navigation metrics for this tick and apply time/leg transitions.

        Args:
            now: Epoch milliseconds.
            position: Current vessel position, if known.
            cog: Course over ground (radians, true).
            sog: Speed over ground (m/s).
        """
        state = self._state
        metrics = DerivedMetrics()

        start_racing = False
        if state.start_timestamp is not None:
            metrics.time_to_start = (state.start_timestamp - now) / 1000
            if state.status is RaceStatus.PRE_START and metrics.time_to_start < 0:
                start_racing = True
                metrics.race_status = RaceStatus.RACING.value

        boat_end = state.startline.boat_end
        pin_end = state.startline.pin_end
        if position is not None and boat_end is not None:
            metrics.distance_boat_end = self._model.distance(position, boat_end).distance
            if pin_end is not None:
                metrics.distance_startline = distance_to_segment(position, boat_end, pin_end, self._model).distance
        if position is not None and pin_end is not None:
            metrics.distance_pin_end = self._model.distance(position, pin_end).distance

        advance = False
        leg = state.current_leg
        if state.course is not None and leg is not None and position is not None and cog is not None and sog is not None:
            to_mark = self._model.distance(position, leg.waypoint_mark_point)
            bearing_to_mark = normalize_bearing(to_mark.initial_bearing - cog)
            metrics.distance_to_mark = to_mark.distance
            metrics.cog_to_mark = to_mark.initial_bearing
            metrics.bearing_to_mark = bearing_to_mark
            metrics.vmg_to_mark = sog * math.cos(bearing_to_mark)
            metrics.vmg = sog * math.cos(normalize_bearing(state.course.bearing - cog))
            advance = to_mark.distance < self._leg_completion_distance and not state.is_last_leg

        if start_racing:
            state.status = RaceStatus.RACING
            logger.debug("Start time passed; racing")
        if advance:
            metrics.mark_name = self.advance_leg().waypoint_mark_name

        return metrics
