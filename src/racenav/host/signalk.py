"""
Signal K host adapter.

This is the collaborator layer around `RaceStateMachine`:
- builds the distance model and courses from settings
- dispatches `racing.*` put commands to the machine and maps failures to status codes
- turns each `evaluate` tick into a `navigation.racing.*` delta and hands it to `publish`

Transport is not our concern: `publish(context, delta)` is injected (a Signal K
server's `handleMessage`, a websocket writer, or a list in tests).
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, Literal

from racenav.config.settings import Settings
from racenav.core.geo import GeoPoint
from racenav.core.models import get_distance_model
from racenav.core.time import now_ms
from racenav.core.vincenty import ConvergenceFailure
from racenav.courses.loader import load_courses
from racenav.domain.models import Course, DerivedMetrics
from racenav.race.errors import RaceError
from racenav.race.machine import RaceStateMachine

logger = logging.getLogger(__name__)

RACING_CONTEXT = "navigation.racing"

# DerivedMetrics field -> Signal K path suffix under `navigation.racing`.
METRIC_PATHS: dict[str, str] = {
    "time_to_start": "timeToStart",
    "race_status": "raceStatus",
    "distance_boat_end": "distanceBoatEnd",
    "distance_startline": "distanceStartline",
    "distance_pin_end": "distancePinEnd",
    "distance_to_mark": "distanceToMark",
    "cog_to_mark": "cogToMark",
    "bearing_to_mark": "bearingToMark",
    "vmg_to_mark": "vmgToMark",
    "vmg": "vmg",
    "mark_name": "markName",
}

PublishFn = Callable[[str, dict[str, Any]], None]
ClockFn = Callable[[], float]


@dataclass(frozen=True)
class NavigationReading:
    """Vessel inputs sampled for one tick (cog in radians, sog in m/s)."""

    position: GeoPoint | None = None
    cog: float | None = None
    sog: float | None = None


@dataclass(frozen=True)
class PutResult:
    state: Literal["SUCCESS", "COMPLETED"]
    status_code: int
    message: str | None = None

    @property
    def ok(self) -> bool:
        return self.status_code == 200


def _success(message: str | None = None) -> PutResult:
    return PutResult(state="SUCCESS", status_code=200, message=message)


def _rejected(message: str) -> PutResult:
    return PutResult(state="COMPLETED", status_code=400, message=message)


def racing_value(name: str, value: Any) -> dict[str, Any]:
    return {"path": f"{RACING_CONTEXT}.{name}", "value": value}


def build_delta(values: list[dict[str, Any]]) -> dict[str, Any]:
    return {"updates": [{"values": values}]}


def metrics_to_values(metrics: DerivedMetrics) -> list[dict[str, Any]]:
    present = metrics.present()
    return [racing_value(path, present[field]) for field, path in METRIC_PATHS.items() if field in present]


class RacingCalculator:
    """One race, driven by put commands and periodic `tick` calls."""

    def __init__(self, settings: Settings, publish: PublishFn, *, clock: ClockFn = now_ms):
        race = settings.race
        self._settings = settings
        self._publish = publish
        self._clock = clock
        self.courses: dict[str, Course] = load_courses(settings)
        self.machine = RaceStateMachine(
            get_distance_model(race.distance_metric),
            leg_completion_distance=race.distance_to_detect_leg_completion,
        )
        self._handlers: dict[str, Callable[[Any, GeoPoint | None], PutResult]] = {
            "racing.startCountdown": self._start_countdown,
            "racing.cancelRace": self._cancel_race,
            "racing.pingBoat": self._ping_boat,
            "racing.pingPin": self._ping_pin,
            "racing.selectRaceCourse": self._select_race_course,
            "racing.nextWaypoint": self._next_waypoint,
        }
        logger.info(
            "Racing calculator ready: metric=%s courses=%s",
            race.distance_metric,
            ", ".join(self.courses) or "<none>",
        )

    @property
    def update_period_ms(self) -> int:
        return self._settings.race.update_period_ms

    @property
    def put_paths(self) -> list[str]:
        return list(self._handlers)

    def handle_put(self, path: str, value: Any = None, position: GeoPoint | None = None) -> PutResult:
        """Run the put command registered under `path`.

        `position` is the vessel position at call time (used by the ping commands).
        """
        handler = self._handlers.get(path)
        if handler is None:
            logger.warning("Unknown put path: %s", path)
            return _rejected(f"Unknown put path '{path}'")
        try:
            result = handler(value, position)
        except RaceError as e:
            logger.warning("%s rejected: %s", path, str(e))
            return _rejected(str(e))
        if result.ok:
            logger.info("%s ok%s", path, f" ({result.message})" if result.message else "")
        else:
            logger.warning("%s rejected: %s", path, result.message)
        return result

    def tick(
        self,
        position: GeoPoint | None = None,
        cog: float | None = None,
        sog: float | None = None,
    ) -> dict[str, Any]:
        """Evaluate the race at `clock()` and publish the resulting delta."""
        try:
            metrics = self.machine.evaluate(self._clock(), position, cog, sog)
        except ConvergenceFailure as e:
            logger.error("Distance computation failed this tick: %s", str(e))
            metrics = DerivedMetrics()
        return self._emit(metrics_to_values(metrics))

    # Put handlers

    def _start_countdown(self, value: Any, _position: GeoPoint | None) -> PutResult:
        try:
            seconds = float(value)
            start = self.machine.start_countdown(self._clock(), seconds)
        except (TypeError, ValueError) as e:
            return _rejected(f"Invalid countdown value {value!r}: {e}")
        values = [racing_value("raceStatus", self.machine.state.status.value)]
        self._append_mark_name(values)
        self._emit(values)
        return _success(f"start @ {start:.0f}")

    def _cancel_race(self, _value: Any, _position: GeoPoint | None) -> PutResult:
        self.machine.cancel_race()
        values = [
            racing_value("timeToStart", self._settings.race.default_countdown_seconds),
            racing_value("raceStatus", self.machine.state.status.value),
        ]
        self._append_mark_name(values)
        self._emit(values)
        return _success("race cancelled")

    def _ping_boat(self, _value: Any, position: GeoPoint | None) -> PutResult:
        point = self.machine.ping_boat_end(position)
        return _success(f"boat end @ ({point.lat}, {point.lon})")

    def _ping_pin(self, _value: Any, position: GeoPoint | None) -> PutResult:
        point = self.machine.ping_pin_end(position)
        return _success(f"pin end @ ({point.lat}, {point.lon})")

    def _select_race_course(self, value: Any, _position: GeoPoint | None) -> PutResult:
        course = self.courses.get(str(value))
        if course is None:
            return _rejected(f"Unknown race course {value!r}")
        leg = self.machine.select_course(course)
        self._emit([racing_value("markName", leg.waypoint_mark_name)])
        return _success(f"course {course.name}")

    def _next_waypoint(self, _value: Any, _position: GeoPoint | None) -> PutResult:
        leg = self.machine.advance_leg()
        self._emit([racing_value("markName", leg.waypoint_mark_name)])
        return _success(f"next mark {leg.waypoint_mark_name}")

    def _append_mark_name(self, values: list[dict[str, Any]]) -> None:
        leg = self.machine.state.current_leg
        if leg is not None:
            values.append(racing_value("markName", leg.waypoint_mark_name))

    def _emit(self, values: list[dict[str, Any]]) -> dict[str, Any]:
        delta = build_delta(values)
        self._publish(RACING_CONTEXT, delta)
        return delta


def run_ticks(
    calc: RacingCalculator,
    read_navigation: Callable[[], NavigationReading],
    *,
    should_stop: Callable[[], bool],
    sleep: Callable[[float], None] = time.sleep,
    period_ms: int | None = None,
) -> int:
    """Tick `calc` every `period_ms` (default: settings) until `should_stop()`; returns the number of ticks."""
    period_ms = period_ms or calc.update_period_ms
    ticks = 0
    while not should_stop():
        reading = read_navigation()
        calc.tick(reading.position, reading.cog, reading.sog)
        ticks += 1
        sleep(period_ms / 1000)
    logger.info("Tick loop stopped after %d ticks", ticks)
    return ticks
