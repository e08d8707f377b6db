# Aftermarket Agenda - Schedule reconciliation engine
"""
Exports for the API layer and other consumers.
"""

from .classify import classify
from .clock import ZonedClock, parse_day, parse_instant, to_iso
from .conflicts import ConflictChecker
from .filters import apply_filters
from .grouping import AgendaGroup, group_by_day
from .models import (
    AgendaFilterCriteria,
    AssigneeMode,
    DateRange,
    LineItem,
    LocationType,
    NormalizedScheduleItem,
    ScheduleSource,
    ScheduleState,
    ScheduleWindow,
    WorkOrder,
    WorkOrderStatus,
)
from .normalizer import normalize_work_order
from .pipeline import JobsResult, LoadResult, RangeHydrationPipeline
from .promises import resolve_promise
from .service import AgendaService, AgendaView
from .windows import resolve_window

__all__ = [
    "AgendaFilterCriteria",
    "AgendaGroup",
    "AgendaService",
    "AgendaView",
    "AssigneeMode",
    "ConflictChecker",
    "DateRange",
    "JobsResult",
    "LineItem",
    "LoadResult",
    "LocationType",
    "NormalizedScheduleItem",
    "RangeHydrationPipeline",
    "ScheduleSource",
    "ScheduleState",
    "ScheduleWindow",
    "WorkOrder",
    "WorkOrderStatus",
    "ZonedClock",
    "apply_filters",
    "classify",
    "group_by_day",
    "normalize_work_order",
    "parse_day",
    "parse_instant",
    "resolve_promise",
    "resolve_window",
    "to_iso",
]
