"""Errors raised by race commands. None of them leave the race state modified."""

from __future__ import annotations


class RaceError(Exception):
    """Base class for rejected race commands."""


class NoPositionAvailable(RaceError):
    def __init__(self, what: str = "position"):
        super().__init__(f"No vessel position available for {what}")


class RaceInProgress(RaceError):
    def __init__(self) -> None:
        super().__init__("Cannot change the race course while racing")


class NoCourseSelected(RaceError):
    def __init__(self) -> None:
        super().__init__("No race course selected")


class LastLegReached(RaceError):
    def __init__(self, mark_name: str):
        super().__init__(f"Already on the last leg (mark '{mark_name}')")
        self.mark_name = mark_name
