"""
Logging configuration.

The packaged `logging.yaml` sends everything to stderr, so `replay` output on
stdout stays machine-readable. The level comes from, in order: an explicit
`level` argument (the CLI `--log-level` flag), then `app.log_level` in settings
(`RACENAV_LOG_LEVEL`).
"""

from __future__ import annotations

import copy
import logging.config
from typing import Any

from racenav.config.settings import get_logging_config, get_settings


def _with_level(config: dict[str, Any], level: str) -> dict[str, Any]:
    config = copy.deepcopy(config)
    config.setdefault("root", {})["level"] = level
    for handler in config.get("handlers", {}).values():
        if isinstance(handler, dict) and "level" in handler:
            handler["level"] = level
    return config


def configure_logging(level: str | None = None) -> None:
    """Apply the packaged logging config at `level` (default: settings)."""
    level = (level or get_settings().app.log_level).upper()
    if not isinstance(logging.getLevelName(level), int):
        raise ValueError(f"Unknown log level '{level}'")
    logging.config.dictConfig(_with_level(get_logging_config(), level))
