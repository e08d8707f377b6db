"""
SQLite Store

Reference implementations of the collaborator contracts on a small SQLite
schema. Every call opens its own connection and runs in a worker thread,
so the async contracts never block the event loop.

Timestamps are stored as canonical ISO 8601 UTC strings
("YYYY-MM-DDTHH:MM:SS.sssZ"), which makes SQL string comparison equal to
chronological comparison. Promised dates are stored as "YYYY-MM-DD".

Scope is the work order's org_id; None means unscoped.
"""

import asyncio
import logging
import sqlite3
from collections.abc import Generator
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Any

from agenda import paths
from agenda.clock import parse_instant, to_iso
from agenda.contracts import OverlapQueryResult, OverlapRow
from agenda.models import WorkOrder

logger = logging.getLogger(__name__)

# SQLite's default host-parameter limit is far above this; keeps IN lists short
CHUNK_SIZE = 200

SCHEMA = """
CREATE TABLE IF NOT EXISTS vendors (
    id TEXT PRIMARY KEY,
    name TEXT NOT NULL,
    org_id TEXT
);

CREATE TABLE IF NOT EXISTS vehicles (
    id TEXT PRIMARY KEY,
    year TEXT,
    make TEXT,
    model TEXT,
    stock_number TEXT,
    owner_name TEXT,
    org_id TEXT
);

CREATE TABLE IF NOT EXISTS staff (
    id TEXT PRIMARY KEY,
    full_name TEXT NOT NULL,
    org_id TEXT
);

CREATE TABLE IF NOT EXISTS work_orders (
    id TEXT PRIMARY KEY,
    org_id TEXT,
    status TEXT NOT NULL DEFAULT 'pending',
    title TEXT NOT NULL DEFAULT '',
    description TEXT NOT NULL DEFAULT '',
    job_number TEXT,
    customer_name TEXT,
    created_at TEXT,
    vehicle_id TEXT REFERENCES vehicles(id),
    vendor_id TEXT REFERENCES vendors(id),
    assigned_to TEXT REFERENCES staff(id),
    needs_loaner INTEGER NOT NULL DEFAULT 0,
    loaner_number TEXT,
    scheduled_start_time TEXT,
    scheduled_end_time TEXT,
    appt_start TEXT,
    appt_end TEXT,
    promised_date TEXT,
    total_amount REAL
);

CREATE TABLE IF NOT EXISTS line_items (
    id TEXT PRIMARY KEY,
    work_order_id TEXT NOT NULL REFERENCES work_orders(id) ON DELETE CASCADE,
    org_id TEXT,
    unit_price REAL,
    quantity_used REAL,
    total_price REAL,
    promised_date TEXT,
    scheduled_start_time TEXT,
    scheduled_end_time TEXT,
    requires_scheduling INTEGER NOT NULL DEFAULT 1,
    is_off_site INTEGER
);

CREATE TABLE IF NOT EXISTS loaner_assignments (
    id TEXT PRIMARY KEY,
    work_order_id TEXT NOT NULL REFERENCES work_orders(id) ON DELETE CASCADE,
    loaner_number TEXT,
    issued_at TEXT,
    returned_at TEXT
);

CREATE INDEX IF NOT EXISTS idx_work_orders_org ON work_orders(org_id);
CREATE INDEX IF NOT EXISTS idx_work_orders_vendor ON work_orders(vendor_id);
CREATE INDEX IF NOT EXISTS idx_line_items_work_order ON line_items(work_order_id);
CREATE INDEX IF NOT EXISTS idx_line_items_promised ON line_items(promised_date);
CREATE INDEX IF NOT EXISTS idx_loaners_work_order ON loaner_assignments(work_order_id);
"""

# Effective window per work order: line items, then work-order fields, then
# the legacy appointment. End defaults to start and never precedes it.
EFFECTIVE_WINDOWS_CTE = """
WITH li AS (
    SELECT work_order_id,
           MIN(scheduled_start_time) AS li_start,
           MAX(scheduled_end_time) AS li_end
    FROM line_items
    WHERE scheduled_start_time IS NOT NULL
    GROUP BY work_order_id
),
eff AS (
    SELECT w.id, w.org_id, w.vendor_id, w.status,
           CASE
               WHEN li.li_start IS NOT NULL THEN li.li_start
               WHEN w.scheduled_start_time IS NOT NULL THEN w.scheduled_start_time
               ELSE w.appt_start
           END AS start_at,
           CASE
               WHEN li.li_start IS NOT NULL THEN COALESCE(li.li_end, li.li_start)
               WHEN w.scheduled_start_time IS NOT NULL
                   THEN COALESCE(w.scheduled_end_time, w.scheduled_start_time)
               ELSE COALESCE(w.appt_end, w.appt_start)
           END AS raw_end
    FROM work_orders w
    LEFT JOIN li ON li.work_order_id = w.id
),
effective AS (
    SELECT id, org_id, vendor_id, status, start_at, MAX(start_at, raw_end) AS end_at
    FROM eff
    WHERE start_at IS NOT NULL
)
"""


# =============================================================================
# CONNECTION
# =============================================================================


def _dict_factory(cursor: sqlite3.Cursor, row: tuple) -> dict[str, Any]:
    """Row factory that returns dicts instead of tuples."""
    return {col[0]: row[idx] for idx, col in enumerate(cursor.description)}


def connect(db_path: Path | str | None = None) -> sqlite3.Connection:
    """Open a connection with dict rows and foreign keys on."""
    conn = sqlite3.connect(str(db_path or paths.db_path()))
    conn.row_factory = _dict_factory
    conn.execute("PRAGMA foreign_keys = ON")
    return conn


def init_schema(conn: sqlite3.Connection) -> None:
    """Create tables and indexes. Idempotent."""
    conn.executescript(SCHEMA)
    conn.commit()


def _chunks(ids: list[str], size: int = CHUNK_SIZE) -> Generator[list[str], None, None]:
    for i in range(0, len(ids), size):
        yield ids[i : i + size]


def _placeholders(n: int) -> str:
    return ",".join("?" * n)


def _ts(value) -> str | None:
    """Canonical stored form of an instant."""
    dt = parse_instant(value)
    return to_iso(dt) if dt else None


def _scope_clause(scope: str | None, column: str = "w.org_id") -> tuple[str, tuple]:
    if scope is None:
        return "", ()
    return f" AND {column} = ?", (scope,)


class SqliteAdapter:
    """Base for adapters sharing one database file."""

    def __init__(self, db_path: Path | str | None = None):
        self.db_path = str(db_path or paths.db_path())

    @contextmanager
    def _connect(self) -> Generator[sqlite3.Connection, None, None]:
        conn = connect(self.db_path)
        try:
            yield conn
        finally:
            conn.close()


# =============================================================================
# WORK ORDERS
# =============================================================================


class SqliteWorkOrderStore(SqliteAdapter):
    """WorkOrderStore over the work_orders/line_items tables."""

    async def get_by_ids(self, ids: list[str], scope: str | None = None) -> list[WorkOrder]:
        if not ids:
            return []
        return await asyncio.to_thread(self._get_by_ids, list(ids), scope)

    async def promise_candidates(
        self, start_key: str, end_key: str, scope: str | None = None
    ) -> list[str]:
        return await asyncio.to_thread(self._promise_candidates, start_key, end_key, scope)

    def _get_by_ids(self, ids: list[str], scope: str | None) -> list[WorkOrder]:
        scope_sql, scope_params = _scope_clause(scope)
        rows: list[dict] = []
        parts: dict[str, list[dict]] = {}

        with self._connect() as conn:
            for chunk in _chunks(ids):
                marks = _placeholders(len(chunk))
                rows.extend(
                    conn.execute(
                        f"""
                        SELECT w.*,
                               s.full_name AS assigned_to_name,
                               v.name AS vendor_name,
                               vh.year AS vehicle_year, vh.make AS vehicle_make,
                               vh.model AS vehicle_model,
                               vh.stock_number AS vehicle_stock_number,
                               vh.owner_name AS vehicle_owner_name
                        FROM work_orders w
                        LEFT JOIN staff s ON s.id = w.assigned_to
                        LEFT JOIN vendors v ON v.id = w.vendor_id
                        LEFT JOIN vehicles vh ON vh.id = w.vehicle_id
                        WHERE w.id IN ({marks}){scope_sql}
                        """,
                        (*chunk, *scope_params),
                    ).fetchall()
                )
                for part in conn.execute(
                    f"SELECT * FROM line_items WHERE work_order_id IN ({marks}) ORDER BY id",
                    chunk,
                ).fetchall():
                    parts.setdefault(part["work_order_id"], []).append(part)

        return [WorkOrder.from_dict(self._shape(row, parts.get(row["id"], []))) for row in rows]

    @staticmethod
    def _shape(row: dict, parts: list[dict]) -> dict:
        """Nest joined reference columns the way WorkOrder.from_dict reads them."""
        data = dict(row)
        if data.get("vendor_id"):
            data["vendor"] = {"id": data["vendor_id"], "name": data.pop("vendor_name", None)}
        if data.get("vehicle_id"):
            data["vehicle"] = {
                "id": data["vehicle_id"],
                "year": data.pop("vehicle_year", None),
                "make": data.pop("vehicle_make", None),
                "model": data.pop("vehicle_model", None),
                "stock_number": data.pop("vehicle_stock_number", None),
                "owner_name": data.pop("vehicle_owner_name", None),
            }
        data["line_items"] = parts
        return data

    def _promise_candidates(self, start_key: str, end_key: str, scope: str | None) -> list[str]:
        scope_sql, scope_params = _scope_clause(scope)
        with self._connect() as conn:
            rows = conn.execute(
                f"""
                SELECT DISTINCT li.work_order_id AS id
                FROM line_items li
                JOIN work_orders w ON w.id = li.work_order_id
                WHERE li.requires_scheduling = 1
                  AND li.scheduled_start_time IS NULL
                  AND li.promised_date IS NOT NULL
                  AND substr(li.promised_date, 1, 10) >= ?
                  AND substr(li.promised_date, 1, 10) < ?{scope_sql}
                ORDER BY id
                """,
                (start_key, end_key, *scope_params),
            ).fetchall()
        return [row["id"] for row in rows]


# =============================================================================
# OVERLAP QUERY
# =============================================================================


class SqliteOverlapRangeService(SqliteAdapter):
    """Effective windows overlapping [start, end), computed in SQL."""

    async def query(
        self, start: datetime, end: datetime, scope: str | None = None
    ) -> OverlapQueryResult:
        try:
            return await asyncio.to_thread(self._query, start, end, scope)
        except sqlite3.Error as e:
            logger.warning(f"Overlap query failed: {e}")
            return OverlapQueryResult(error=str(e))

    def _query(self, start: datetime, end: datetime, scope: str | None) -> OverlapQueryResult:
        scope_sql, scope_params = _scope_clause(scope, column="org_id")
        with self._connect() as conn:
            rows = conn.execute(
                f"""
                {EFFECTIVE_WINDOWS_CTE}
                SELECT id, start_at, end_at FROM effective
                WHERE start_at < ? AND end_at > ?{scope_sql}
                ORDER BY start_at, id
                """,
                (to_iso(end), to_iso(start), *scope_params),
            ).fetchall()
        return OverlapQueryResult(
            rows=[
                OverlapRow(
                    id=row["id"],
                    start=parse_instant(row["start_at"]),
                    end=parse_instant(row["end_at"]),
                )
                for row in rows
            ]
        )


# =============================================================================
# LOANERS
# =============================================================================


class SqliteLoanerStore(SqliteAdapter):
    """Unreturned loaner assignments."""

    async def active_for(self, ids: list[str], scope: str | None = None) -> set[str]:
        if not ids:
            return set()
        try:
            return await asyncio.to_thread(self._active_for, list(ids), scope)
        except sqlite3.Error as e:
            logger.warning(f"Loaner lookup failed: {e}")
            return set()

    def _active_for(self, ids: list[str], scope: str | None) -> set[str]:
        scope_sql, scope_params = _scope_clause(scope)
        active: set[str] = set()
        with self._connect() as conn:
            for chunk in _chunks(ids):
                rows = conn.execute(
                    f"""
                    SELECT DISTINCT la.work_order_id AS id
                    FROM loaner_assignments la
                    JOIN work_orders w ON w.id = la.work_order_id
                    WHERE la.returned_at IS NULL
                      AND la.work_order_id IN ({_placeholders(len(chunk))}){scope_sql}
                    """,
                    (*chunk, *scope_params),
                ).fetchall()
                active.update(row["id"] for row in rows)
        return active


# =============================================================================
# VENDOR CONFLICTS
# =============================================================================


class SqliteConflictService(SqliteAdapter):
    """Another live work order of the same vendor overlapping a window."""

    async def has_conflict(
        self,
        vendor_id: str,
        start: datetime,
        end: datetime,
        exclude_id: str | None = None,
    ) -> bool:
        return await asyncio.to_thread(self._has_conflict, vendor_id, start, end, exclude_id)

    def _has_conflict(
        self, vendor_id: str, start: datetime, end: datetime, exclude_id: str | None
    ) -> bool:
        with self._connect() as conn:
            row = conn.execute(
                f"""
                {EFFECTIVE_WINDOWS_CTE}
                SELECT COUNT(*) AS n FROM effective
                WHERE vendor_id = ?
                  AND id != ?
                  AND lower(status) NOT IN ('cancelled', 'canceled')
                  AND start_at < ? AND end_at > ?
                """,
                (vendor_id, exclude_id or "", to_iso(end), to_iso(start)),
            ).fetchone()
        return row["n"] > 0


# =============================================================================
# WRITES (seeding and tests)
# =============================================================================


def write_vendor(conn: sqlite3.Connection, id: str, name: str, org_id: str | None = None):
    conn.execute(
        "INSERT OR REPLACE INTO vendors (id, name, org_id) VALUES (?, ?, ?)", (id, name, org_id)
    )


def write_staff(conn: sqlite3.Connection, id: str, full_name: str, org_id: str | None = None):
    conn.execute(
        "INSERT OR REPLACE INTO staff (id, full_name, org_id) VALUES (?, ?, ?)",
        (id, full_name, org_id),
    )


def write_vehicle(conn: sqlite3.Connection, id: str, **fields):
    conn.execute(
        """
        INSERT OR REPLACE INTO vehicles
            (id, year, make, model, stock_number, owner_name, org_id)
        VALUES (?, ?, ?, ?, ?, ?, ?)
        """,
        (
            id,
            fields.get("year"),
            fields.get("make"),
            fields.get("model"),
            fields.get("stock_number"),
            fields.get("owner_name"),
            fields.get("org_id"),
        ),
    )


def write_work_order(conn: sqlite3.Connection, data: dict) -> None:
    """
    Insert or replace a work order and its line items.

    `data` uses the WorkOrder.from_dict field names; instants may be
    datetimes or ISO strings and are stored in canonical form.
    """
    conn.execute(
        """
        INSERT OR REPLACE INTO work_orders (
            id, org_id, status, title, description, job_number, customer_name,
            created_at, vehicle_id, vendor_id, assigned_to, needs_loaner,
            loaner_number, scheduled_start_time, scheduled_end_time,
            appt_start, appt_end, promised_date, total_amount
        ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        """,
        (
            data["id"],
            data.get("org_id"),
            data.get("status", "pending"),
            data.get("title", ""),
            data.get("description", ""),
            data.get("job_number"),
            data.get("customer_name"),
            _ts(data.get("created_at")),
            data.get("vehicle_id"),
            data.get("vendor_id"),
            data.get("assigned_to"),
            1 if data.get("needs_loaner") else 0,
            data.get("loaner_number"),
            _ts(data.get("scheduled_start")),
            _ts(data.get("scheduled_end")),
            _ts(data.get("appt_start")),
            _ts(data.get("appt_end")),
            data.get("promised_date"),
            data.get("total_amount"),
        ),
    )
    conn.execute("DELETE FROM line_items WHERE work_order_id = ?", (data["id"],))
    for item in data.get("line_items", []):
        write_line_item(conn, data["id"], item, org_id=data.get("org_id"))


def write_line_item(
    conn: sqlite3.Connection, work_order_id: str, item: dict, org_id: str | None = None
) -> None:
    off_site = item.get("is_off_site")
    conn.execute(
        """
        INSERT OR REPLACE INTO line_items (
            id, work_order_id, org_id, unit_price, quantity_used, total_price,
            promised_date, scheduled_start_time, scheduled_end_time,
            requires_scheduling, is_off_site
        ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        """,
        (
            item["id"],
            work_order_id,
            org_id,
            item.get("unit_price"),
            item.get("quantity"),
            item.get("total_price"),
            item.get("promised_date"),
            _ts(item.get("scheduled_start")),
            _ts(item.get("scheduled_end")),
            0 if item.get("requires_scheduling") is False else 1,
            None if off_site is None else int(bool(off_site)),
        ),
    )


def write_loaner(
    conn: sqlite3.Connection,
    id: str,
    work_order_id: str,
    loaner_number: str | None = None,
    returned_at=None,
) -> None:
    conn.execute(
        """
        INSERT OR REPLACE INTO loaner_assignments
            (id, work_order_id, loaner_number, returned_at)
        VALUES (?, ?, ?, ?)
        """,
        (id, work_order_id, loaner_number, _ts(returned_at)),
    )
