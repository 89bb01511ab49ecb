"""
Race course loader.

Settings describe courses by mark *name*; this module resolves those names
against the configured fixed marks and validates the result into frozen
`Course` models, so the race state machine can assume a consistent shape.

A course that references an unknown mark, or has fewer than two legs, is
skipped with a warning rather than failing start-up: the remaining courses
stay usable.
"""

from __future__ import annotations

import logging

from pydantic import ValidationError

from racenav.config.settings import FixedMarkSettings, RaceCourseSettings, Settings
from racenav.core.angles import deg_to_rad
from racenav.core.geo import GeoPoint
from racenav.domain.models import Course, CourseLeg

logger = logging.getLogger(__name__)


def load_fixed_marks(marks: list[FixedMarkSettings]) -> dict[str, GeoPoint]:
    """Map mark name -> position. Later duplicates win."""
    out: dict[str, GeoPoint] = {}
    for mark in marks:
        if mark.mark_name in out:
            logger.warning("Fixed mark '%s' defined more than once; using the last definition", mark.mark_name)
        out[mark.mark_name] = GeoPoint.from_lat_lon(mark.latitude, mark.longitude)
        logger.debug("%s @ (%s, %s)", mark.mark_name, mark.latitude, mark.longitude)
    return out


def build_course(course: RaceCourseSettings, marks: dict[str, GeoPoint]) -> Course:
    """Resolve one configured course.

    Raises:
        ValueError: if a leg names an unknown mark or the course has < 2 legs.
    """
    missing = [leg.waypoint_mark for leg in course.legs if leg.waypoint_mark not in marks]
    if missing:
        raise ValueError(f"Course '{course.course_name}' references unknown marks: {', '.join(missing)}")

    legs = [
        CourseLeg(
            waypoint_mark_name=leg.waypoint_mark,
            waypoint_mark_point=marks[leg.waypoint_mark],
            direction=leg.direction,
        )
        for leg in course.legs
    ]
    try:
        return Course(name=course.course_name, bearing=deg_to_rad(course.course_bearing), legs=tuple(legs))
    except ValidationError as e:
        raise ValueError(f"Course '{course.course_name}' is invalid: {e.errors()[0]['msg']}") from e


def load_courses(settings: Settings) -> dict[str, Course]:
    """Build every valid configured course, keyed by name."""
    marks = load_fixed_marks(settings.race.fixed_marks)
    courses: dict[str, Course] = {}
    for configured in settings.race.race_courses:
        try:
            course = build_course(configured, marks)
        except ValueError as e:
            logger.warning("Skipping race course: %s", str(e))
            continue
        courses[course.name] = course
        logger.debug("%s = %s", course.name, " > ".join(course.mark_names()))
    return courses
