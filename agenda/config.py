"""
Centralized configuration for the aftermarket agenda.

All values that vary by deployment belong here.
Override via environment variables, or via an optional YAML overlay
(see load_settings).
"""

import logging
import os
from dataclasses import dataclass, fields
from pathlib import Path
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import yaml

from agenda import paths

logger = logging.getLogger(__name__)

# ============================================================
# Time
# ============================================================

AGENDA_TIMEZONE: str = os.environ.get("AGENDA_TIMEZONE", "America/New_York")
"""IANA zone every day boundary and day key is computed in."""

OVERDUE_RECENT_DAYS: int = int(os.environ.get("AGENDA_OVERDUE_RECENT_DAYS", "7"))
"""Whole days past the scheduled end that still count as overdue_recent."""

# ============================================================
# Agenda load window
# ============================================================

LOAD_LOOKBACK_DAYS: int = int(os.environ.get("AGENDA_LOAD_LOOKBACK_DAYS", "30"))
"""Days before now covered by the coarse agenda overlap query."""

LOAD_LOOKAHEAD_DAYS: int = int(os.environ.get("AGENDA_LOAD_LOOKAHEAD_DAYS", "90"))
"""Days after now covered by the coarse agenda overlap query."""

# ============================================================
# Vendor conflict check
# ============================================================

CONFLICT_PADDING_MINUTES: int = int(os.environ.get("AGENDA_CONFLICT_PADDING_MINUTES", "30"))
"""Padding applied on both sides of a window before asking for vendor conflicts."""

# ============================================================
# Logging
# ============================================================

LOG_LEVEL: str = os.environ.get("AGENDA_LOG_LEVEL", "INFO")


@dataclass(frozen=True)
class AgendaSettings:
    """Resolved settings for one process."""

    timezone: str = AGENDA_TIMEZONE
    overdue_recent_days: int = OVERDUE_RECENT_DAYS
    lookback_days: int = LOAD_LOOKBACK_DAYS
    lookahead_days: int = LOAD_LOOKAHEAD_DAYS
    conflict_padding_minutes: int = CONFLICT_PADDING_MINUTES
    log_level: str = LOG_LEVEL

    def __post_init__(self):
        try:
            ZoneInfo(self.timezone)
        except (ZoneInfoNotFoundError, ValueError) as e:
            raise ValueError(f"Invalid timezone: {self.timezone}") from e
        if self.overdue_recent_days < 0:
            raise ValueError("overdue_recent_days must be >= 0")
        if self.lookback_days < 0 or self.lookahead_days < 0:
            raise ValueError("load window days must be >= 0")


def load_settings(path: Path | str | None = None) -> AgendaSettings:
    """
    Build settings from environment defaults plus an optional YAML overlay.

    Args:
        path: YAML file to read. Defaults to paths.config_path(); a missing
            file means "environment only".

    Returns:
        AgendaSettings

    Raises:
        ValueError: If the resulting timezone or day counts are invalid
    """
    config_file = Path(path) if path is not None else paths.config_path()
    overrides: dict = {}

    if config_file.exists():
        with open(config_file) as f:
            data = yaml.safe_load(f) or {}
        if not isinstance(data, dict):
            raise ValueError(f"Settings file must contain a mapping: {config_file}")

        known = {f.name for f in fields(AgendaSettings)}
        for key, value in data.items():
            if key in known:
                overrides[key] = value
            else:
                logger.warning(f"Ignoring unknown setting '{key}' in {config_file}")

    return AgendaSettings(**overrides)
