from __future__ import annotations

import os
from pathlib import Path

APP_ENV_HOME = "AGENDA_HOME"
APP_ENV_DB = "AGENDA_DB"
APP_ENV_CONFIG = "AGENDA_CONFIG"


def app_home() -> Path:
    """
    User-writable home for the agenda service.
    Override with AGENDA_HOME.
    """
    if os.environ.get(APP_ENV_HOME):
        return Path(os.environ[APP_ENV_HOME]).expanduser().resolve()
    return (Path.home() / ".aftermarket_agenda").resolve()


def config_dir() -> Path:
    d = app_home() / "config"
    d.mkdir(parents=True, exist_ok=True)
    return d


def data_dir() -> Path:
    d = app_home() / "data"
    d.mkdir(parents=True, exist_ok=True)
    return d


def config_path() -> Path:
    """
    Optional YAML settings overlay.

    Resolution order:
    1. AGENDA_CONFIG env var (explicit override)
    2. ~/.aftermarket_agenda/config/agenda.yaml (default)
    """
    if os.environ.get(APP_ENV_CONFIG):
        return Path(os.environ[APP_ENV_CONFIG]).expanduser().resolve()
    return config_dir() / "agenda.yaml"


def db_path() -> Path:
    """
    Canonical DB path for the agenda store.

    Resolution order:
    1. AGENDA_DB env var (explicit override)
    2. ~/.aftermarket_agenda/data/agenda.db (default)
    """
    if os.environ.get(APP_ENV_DB):
        return Path(os.environ[APP_ENV_DB]).expanduser().resolve()
    return data_dir() / "agenda.db"
