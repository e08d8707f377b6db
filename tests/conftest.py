"""
Test configuration: ensures repo root is in sys.path + determinism guards.

Enforces determinism by pointing AGENDA_HOME at a temporary directory and
blocking any sqlite3.connect to the live agenda database.
"""

import os
import sqlite3
import sys
import tempfile
from pathlib import Path

import pytest

# Add repo root to sys.path so tests can import agenda.*, api.*, tests.fixtures
REPO_ROOT = Path(__file__).parent.parent
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

# Isolate the app home before any agenda module resolves paths
os.environ["AGENDA_HOME"] = tempfile.mkdtemp(prefix="agenda-test-home-")
os.environ.pop("AGENDA_DB", None)
os.environ.pop("AGENDA_CONFIG", None)

from agenda.clock import ZonedClock  # noqa: E402
from agenda.store import connect, init_schema  # noqa: E402

# =============================================================================
# DETERMINISM GUARD: Block live database access
# =============================================================================

LIVE_DB_ABSOLUTE = Path.home() / ".aftermarket_agenda" / "data" / "agenda.db"

_original_sqlite_connect = sqlite3.connect


def _guarded_sqlite_connect(database, *args, **kwargs):
    """Intercept sqlite3.connect to block live DB access."""
    db_str = str(database)
    if db_str != ":memory:":
        try:
            abs_path = Path(db_str).resolve()
        except (OSError, ValueError):
            abs_path = Path(db_str)
        if abs_path == LIVE_DB_ABSOLUTE:
            raise RuntimeError(
                f"DETERMINISM VIOLATION: Test attempted to access live DB at {database}.\n"
                "Tests must use the agenda_db fixture."
            )
    return _original_sqlite_connect(database, *args, **kwargs)


@pytest.fixture(autouse=True)
def guard_live_db_access(monkeypatch):
    """Automatically guard all tests against live DB access."""
    monkeypatch.setattr(sqlite3, "connect", _guarded_sqlite_connect)


# =============================================================================
# CLOCKS
# =============================================================================


@pytest.fixture
def zclock():
    """ZonedClock pinned to America/New_York."""
    return ZonedClock("America/New_York")


# =============================================================================
# SQLITE
# =============================================================================


@pytest.fixture
def agenda_db(tmp_path):
    """Empty agenda database with the schema applied."""
    db_path = tmp_path / "agenda.db"
    conn = connect(db_path)
    init_schema(conn)
    conn.close()
    return db_path
