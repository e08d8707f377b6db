"""
Agenda Models

Work orders as read from the store, plus the derived values the agenda
engine produces: schedule windows, normalized schedule items and filter
criteria.

Work orders are read-only here; derived values are recomputed on every
load and never persisted.
"""

import math
from dataclasses import dataclass, field
from datetime import datetime
from enum import StrEnum
from typing import Any

from agenda.clock import parse_day, parse_instant, to_iso

# =============================================================================
# ENUMS
# =============================================================================


class WorkOrderStatus(StrEnum):
    """Work order lifecycle status."""

    DRAFT = "draft"
    PENDING = "pending"
    SCHEDULED = "scheduled"
    IN_PROGRESS = "in_progress"
    QUALITY_CHECK = "quality_check"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class ScheduleSource(StrEnum):
    """Where a resolved schedule window came from."""

    LINE_ITEMS = "line_items"
    WORK_ORDER = "work_order"
    LEGACY_APPOINTMENT = "legacy_appointment"
    NONE = "none"


class ScheduleState(StrEnum):
    """Temporal state of a schedule window relative to now."""

    UNSCHEDULED = "unscheduled"
    SCHEDULED = "scheduled"
    IN_PROGRESS = "in_progress"
    OVERDUE_RECENT = "overdue_recent"
    OVERDUE_OLD = "overdue_old"


class LocationType(StrEnum):
    """Where a work order's line items are performed."""

    IN_HOUSE = "In-House"
    OFF_SITE = "Off-Site"
    MIXED = "Mixed"


class DateRange(StrEnum):
    """Agenda date-range modes."""

    ALL = "all"
    TODAY = "today"
    NEXT_3_DAYS = "next3days"
    NEXT_7_DAYS = "next7days"

    @property
    def days(self) -> int | None:
        """Local calendar days covered, starting today; None = unrestricted."""
        return {
            DateRange.ALL: None,
            DateRange.TODAY: 1,
            DateRange.NEXT_3_DAYS: 3,
            DateRange.NEXT_7_DAYS: 7,
        }[self]


class AssigneeMode(StrEnum):
    """Assignee filter modes."""

    ANY = ""
    ME = "me"


# =============================================================================
# HELPERS
# =============================================================================


def _number(value) -> float | None:
    """Finite float or None; booleans are not numbers here."""
    if value is None or isinstance(value, bool):
        return None
    try:
        num = float(value)
    except (TypeError, ValueError):
        return None
    return num if math.isfinite(num) else None


def _flag(value) -> bool | None:
    if value is None:
        return None
    if isinstance(value, str):
        return value.strip().lower() in ("1", "true", "yes", "t")
    return bool(value)


def _text(value) -> str | None:
    if value is None:
        return None
    text = str(value)
    return text if text else None


def _promised(value) -> str | None:
    """Keep a promised value only when it names a real calendar day."""
    if value is None or value == "":
        return None
    if parse_day(value) is None:
        return None
    return value if isinstance(value, str) else value.isoformat()


# =============================================================================
# REFERENCE DATA
# =============================================================================


@dataclass(frozen=True)
class Vehicle:
    """Customer vehicle attached to a work order."""

    id: str | None = None
    year: str | None = None
    make: str | None = None
    model: str | None = None
    stock_number: str | None = None
    owner_name: str | None = None

    @property
    def label(self) -> str:
        base = f"{self.year or ''} {self.make or ''} {self.model or ''}".strip()
        base = " ".join(base.split())
        stock = f" • Stock {self.stock_number}" if self.stock_number else ""
        return f"{base}{stock}".strip()

    @classmethod
    def from_dict(cls, data: dict | None) -> "Vehicle | None":
        if not data:
            return None
        return cls(
            id=_text(data.get("id")),
            year=_text(data.get("year")),
            make=_text(data.get("make")),
            model=_text(data.get("model")),
            stock_number=_text(data.get("stock_number")),
            owner_name=_text(data.get("owner_name")),
        )


@dataclass(frozen=True)
class Vendor:
    """Outside vendor performing work."""

    id: str | None = None
    name: str | None = None

    @classmethod
    def from_dict(cls, data: dict | None) -> "Vendor | None":
        if not data:
            return None
        return cls(id=_text(data.get("id")), name=_text(data.get("name")))


# =============================================================================
# WORK ORDERS
# =============================================================================


@dataclass(frozen=True)
class LineItem:
    """One individually schedulable unit of work within a work order."""

    id: str
    work_order_id: str | None = None
    scheduled_start: datetime | None = None
    scheduled_end: datetime | None = None
    promised_date: str | None = None  # pure calendar day, "YYYY-MM-DD"
    unit_price: float | None = None
    quantity: float | None = None
    total_price: float | None = None
    is_off_site: bool | None = None
    requires_scheduling: bool = True

    @classmethod
    def from_dict(cls, data: dict) -> "LineItem":
        start = parse_instant(data.get("scheduled_start_time", data.get("scheduled_start")))
        end = parse_instant(data.get("scheduled_end_time", data.get("scheduled_end")))
        requires = _flag(data.get("requires_scheduling"))
        return cls(
            id=str(data.get("id", "")),
            work_order_id=_text(data.get("work_order_id", data.get("job_id"))),
            scheduled_start=start,
            scheduled_end=end if start is not None else None,
            promised_date=_promised(data.get("promised_date")),
            unit_price=_number(data.get("unit_price")),
            quantity=_number(data.get("quantity_used", data.get("quantity"))),
            total_price=_number(data.get("total_price")),
            is_off_site=_flag(data.get("is_off_site")),
            requires_scheduling=True if requires is None else requires,
        )


@dataclass(frozen=True)
class WorkOrder:
    """
    A unit of customer-facing work (a "deal" or "job").

    scheduled_start/scheduled_end are the work-order-level window;
    appt_start/appt_end are the legacy appointment fields of records that
    predate line-item scheduling. promised_date is an optional override
    for the promised day.
    """

    id: str
    status: str = WorkOrderStatus.PENDING.value
    title: str = ""
    description: str = ""
    job_number: str | None = None
    customer_name: str | None = None
    created_at: str | None = None
    org_id: str | None = None

    vehicle: Vehicle | None = None
    vendor: Vendor | None = None
    vendor_id: str | None = None
    assigned_to: str | None = None
    assigned_to_name: str | None = None

    needs_loaner: bool = False
    loaner_number: str | None = None
    has_active_loaner: bool = False

    line_items: tuple[LineItem, ...] = ()

    scheduled_start: datetime | None = None
    scheduled_end: datetime | None = None
    appt_start: datetime | None = None
    appt_end: datetime | None = None

    promised_date: str | None = None
    total_amount: float | None = None

    @property
    def normalized_status(self) -> str:
        return (self.status or "").strip().lower()

    @classmethod
    def from_dict(cls, data: dict) -> "WorkOrder":
        """
        Build a work order from a store row.

        Accepts both the current column names and the older aliases
        (job_status, job_parts, *_time suffixes). Malformed instants are
        treated as absent.
        """
        raw_items = data.get("line_items", data.get("job_parts")) or []
        vendor = Vendor.from_dict(data.get("vendor"))
        return cls(
            id=str(data["id"]),
            status=str(data.get("status", data.get("job_status")) or "").strip().lower(),
            title=data.get("title") or "",
            description=data.get("description") or "",
            job_number=_text(data.get("job_number")),
            customer_name=_text(data.get("customer_name")),
            created_at=_text(data.get("created_at")),
            org_id=_text(data.get("org_id")),
            vehicle=Vehicle.from_dict(data.get("vehicle")),
            vendor=vendor,
            vendor_id=_text(data.get("vendor_id")) or (vendor.id if vendor else None),
            assigned_to=_text(data.get("assigned_to")),
            assigned_to_name=_text(data.get("assigned_to_name")),
            needs_loaner=bool(_flag(data.get("needs_loaner"))),
            loaner_number=_text(data.get("loaner_number")),
            has_active_loaner=bool(_flag(data.get("has_active_loaner"))),
            line_items=tuple(LineItem.from_dict(p) for p in raw_items if p),
            scheduled_start=parse_instant(
                data.get("scheduled_start_time", data.get("scheduled_start"))
            ),
            scheduled_end=parse_instant(data.get("scheduled_end_time", data.get("scheduled_end"))),
            appt_start=parse_instant(data.get("appt_start")),
            appt_end=parse_instant(data.get("appt_end")),
            promised_date=_promised(data.get("promised_date")),
            total_amount=_number(data.get("total_amount")),
        )


# =============================================================================
# DERIVED VALUES
# =============================================================================


@dataclass(frozen=True)
class ScheduleWindow:
    """
    One authoritative time window for a work order.

    Invariants: end >= start whenever both are set; source is NONE iff
    start and end are both None.
    """

    start: datetime | None = None
    end: datetime | None = None
    source: ScheduleSource = ScheduleSource.NONE

    @classmethod
    def of(
        cls, start: datetime | None, end: datetime | None, source: ScheduleSource
    ) -> "ScheduleWindow":
        """Build a window, defaulting end to start and clamping end >= start."""
        if start is None:
            return cls.empty()
        if end is None or end < start:
            end = start
        return cls(start=start, end=end, source=source)

    @classmethod
    def empty(cls) -> "ScheduleWindow":
        return cls()

    @property
    def is_empty(self) -> bool:
        return self.start is None


@dataclass(frozen=True)
class NormalizedScheduleItem:
    """Agenda-ready projection of one work order."""

    id: str
    created_at: str | None
    promised_at: str | None  # day marker, "YYYY-MM-DDT00:00:00Z"
    scheduled_start: datetime | None
    scheduled_end: datetime | None
    customer_name: str
    staff_name: str
    vehicle_label: str
    vendor_id: str | None
    vendor_name: str
    location_type: LocationType | None
    loaner_tag: bool
    needs_loaner: bool
    amount: float | None
    schedule_state: ScheduleState
    schedule_source: ScheduleSource
    raw: WorkOrder = field(repr=False, compare=False)

    @property
    def promised_day_key(self) -> str | None:
        return self.promised_at[:10] if self.promised_at else None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "created_at": self.created_at,
            "promised_at": self.promised_at,
            "scheduled_start": to_iso(self.scheduled_start) if self.scheduled_start else None,
            "scheduled_end": to_iso(self.scheduled_end) if self.scheduled_end else None,
            "customer_name": self.customer_name,
            "staff_name": self.staff_name,
            "vehicle_label": self.vehicle_label,
            "vendor_id": self.vendor_id,
            "vendor_name": self.vendor_name,
            "location_type": self.location_type.value if self.location_type else None,
            "loaner_tag": self.loaner_tag,
            "needs_loaner": self.needs_loaner,
            "amount": self.amount,
            "schedule_state": self.schedule_state.value,
            "schedule_source": self.schedule_source.value,
            "status": self.raw.normalized_status,
            "title": self.raw.title,
            "job_number": self.raw.job_number,
        }


@dataclass(frozen=True)
class AgendaFilterCriteria:
    """
    Caller-supplied agenda filters.

    `now` is injectable for deterministic results; None means "current time".
    """

    q: str = ""
    status: str | None = None
    date_range: DateRange = DateRange.ALL
    vendor_id: str | None = None
    assignee: AssigneeMode = AssigneeMode.ANY
    caller_id: str | None = None
    location: LocationType | None = None
    now: datetime | None = None
