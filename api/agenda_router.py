"""
Agenda API Router - read-only agenda endpoint.

GET /api/agenda
    Query: q, status, date_range, vendor, assignee, location, conflicts
    Headers: X-User-Id (caller identity for assignee=me), X-Org-Id (scope)
"""

import logging
from functools import lru_cache
from pathlib import Path

from fastapi import APIRouter, Depends, Header, HTTPException, Query

from agenda import paths
from agenda.clock import ZonedClock
from agenda.config import AgendaSettings, load_settings
from agenda.conflicts import ConflictChecker
from agenda.models import AgendaFilterCriteria, AssigneeMode, DateRange, LocationType
from agenda.pipeline import RangeHydrationPipeline
from agenda.service import AgendaService
from agenda.store import (
    SqliteConflictService,
    SqliteLoanerStore,
    SqliteOverlapRangeService,
    SqliteWorkOrderStore,
    connect,
    init_schema,
)
from api.response_models import AgendaResponse

logger = logging.getLogger(__name__)

agenda_router = APIRouter(
    prefix="/api",
    tags=["Agenda"],
)


def build_service(
    settings: AgendaSettings | None = None, db_path: Path | str | None = None
) -> AgendaService:
    """Wire an AgendaService onto the SQLite store."""
    settings = settings or load_settings()
    db_path = Path(db_path or paths.db_path())
    db_path.parent.mkdir(parents=True, exist_ok=True)

    conn = connect(db_path)
    try:
        init_schema(conn)
    finally:
        conn.close()

    zoned_clock = ZonedClock(settings.timezone)
    pipeline = RangeHydrationPipeline(
        SqliteWorkOrderStore(db_path),
        SqliteOverlapRangeService(db_path),
        SqliteLoanerStore(db_path),
        zoned_clock=zoned_clock,
        recent_days=settings.overdue_recent_days,
    )
    return AgendaService(
        pipeline,
        zoned_clock=zoned_clock,
        conflict_checker=ConflictChecker(
            SqliteConflictService(db_path), settings.conflict_padding_minutes
        ),
        lookback_days=settings.lookback_days,
        lookahead_days=settings.lookahead_days,
    )


@lru_cache(maxsize=1)
def get_agenda_service() -> AgendaService:
    """Process-wide service; tests override this dependency."""
    return build_service()


def _parse_choice(enum_cls, value: str | None, name: str):
    if value is None:
        return None
    try:
        return enum_cls(value)
    except ValueError as e:
        allowed = ", ".join(repr(m.value) for m in enum_cls)
        raise HTTPException(status_code=400, detail=f"Invalid {name}. Supported: {allowed}") from e


@agenda_router.get("/agenda", response_model=AgendaResponse)
async def get_agenda(
    q: str = Query("", description="Free-text search"),
    status: str | None = Query(None, description="Exact work order status"),
    date_range: str = Query("all", description="all, today, next3days, next7days"),
    vendor: str | None = Query(None, description="Vendor id"),
    assignee: str = Query("", description="'me' to show only the caller's work"),
    location: str | None = Query(None, description="In-House, Off-Site or Mixed"),
    conflicts: bool = Query(False, description="Run the vendor conflict check"),
    x_user_id: str | None = Header(None),
    x_org_id: str | None = Header(None),
    service: AgendaService = Depends(get_agenda_service),
) -> dict:
    """
    Agenda grouped by local day.

    assignee=me without an X-User-Id header yields an empty agenda.
    """
    criteria = AgendaFilterCriteria(
        q=q,
        status=status or None,
        date_range=_parse_choice(DateRange, date_range, "date_range"),
        vendor_id=vendor or None,
        assignee=_parse_choice(AssigneeMode, assignee, "assignee"),
        caller_id=x_user_id,
        location=_parse_choice(LocationType, location or None, "location"),
    )

    view = await service.build(criteria, scope=x_org_id, check_conflicts=conflicts)
    logger.info(f"Agenda served: {view.total} items in {len(view.groups)} groups")
    return view.to_dict()
