# src/racenav/config/settings.py
"""
Application settings (Pydantic).

Settings are loaded from `src/racenav/config/defaults.yaml`, then optionally overridden by:
- an external YAML file via `RACENAV_CONFIG_PATH` (replaces the packaged defaults)
- environment variables (`RACENAV_LOG_LEVEL`, `RACENAV_DISTANCE_METRIC`, `RACENAV_LEG_COMPLETION_M`)

Design rule:
- Marks, courses and tuning knobs live in YAML, not hard-coded in race logic.
"""

from __future__ import annotations

import os
from functools import lru_cache
from importlib import resources
from pathlib import Path
from typing import Any, Literal

import yaml
from pydantic import BaseModel, Field

from racenav.core.env import load_dotenv_if_present, resolve_project_path
from racenav.core.models import DistanceMetric


def _read_package_yaml(filename: str) -> dict[str, Any]:
    """Read a YAML file packaged inside `racenav.config`."""
    text = resources.files("racenav.config").joinpath(filename).read_text(encoding="utf-8")
    data = yaml.safe_load(text) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Invalid YAML root object for {filename}; expected a mapping.")
    return data


def _read_yaml_file(path: str | Path) -> dict[str, Any]:
    """Read a YAML file from disk and return its mapping root."""
    data = yaml.safe_load(resolve_project_path(path).read_text(encoding="utf-8")) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Invalid YAML root object for {path}; expected a mapping.")
    return data


class AppSettings(BaseModel):
    name: str = "racenav"
    timezone: str = "UTC"
    log_level: str = "INFO"


class FixedMarkSettings(BaseModel):
    mark_name: str = Field(..., min_length=1)
    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)


class RaceLegSettings(BaseModel):
    waypoint_mark: str
    direction: Literal["upwind", "downwind"]


class RaceCourseSettings(BaseModel):
    course_name: str = Field(..., min_length=1)
    # Approximate true bearing of the downwind legs, in degrees.
    course_bearing: float
    legs: list[RaceLegSettings] = Field(default_factory=list)


class RaceSettings(BaseModel):
    distance_metric: DistanceMetric = "haversine"
    distance_to_detect_leg_completion: float = Field(30.0, ge=0)
    update_period_ms: int = Field(500, gt=0)
    # Published by cancelRace so displays fall back to a standard 5 minute sequence.
    default_countdown_seconds: float = 300
    fixed_marks: list[FixedMarkSettings] = Field(default_factory=list)
    race_courses: list[RaceCourseSettings] = Field(default_factory=list)


class Settings(BaseModel):
    app: AppSettings = Field(default_factory=AppSettings)
    race: RaceSettings = Field(default_factory=RaceSettings)


def _apply_env_overrides(data: dict[str, Any]) -> dict[str, Any]:
    """Overlay selected environment variables onto raw settings payload."""
    data = dict(data)

    log_level = os.getenv("RACENAV_LOG_LEVEL")
    if log_level:
        data.setdefault("app", {})["log_level"] = log_level

    metric = os.getenv("RACENAV_DISTANCE_METRIC")
    if metric:
        data.setdefault("race", {})["distance_metric"] = metric

    leg_completion = os.getenv("RACENAV_LEG_COMPLETION_M")
    if leg_completion:
        data.setdefault("race", {})["distance_to_detect_leg_completion"] = leg_completion

    return data


@lru_cache
def get_settings() -> Settings:
    """Load and validate settings (cached)."""
    load_dotenv_if_present()
    config_path = os.getenv("RACENAV_CONFIG_PATH")
    raw = _read_yaml_file(config_path) if config_path else _read_package_yaml("defaults.yaml")
    raw = _apply_env_overrides(raw)
    return Settings.model_validate(raw)


@lru_cache
def get_logging_config() -> dict[str, Any]:
    """Load logging configuration (cached)."""
    return _read_package_yaml("logging.yaml")
