"""
Agenda Item Normalizer

Composes window resolution, promise resolution, state classification and
reference data into one flat NormalizedScheduleItem per work order.

Cancelled, completed and draft work orders are dropped here. This exclusion
belongs to the agenda path only: the full-job path
(RangeHydrationPipeline.load_jobs) returns those rows unfiltered.
"""

import math
from collections.abc import Collection, Iterable
from datetime import datetime

from agenda import config
from agenda.classify import classify
from agenda.models import (
    LineItem,
    LocationType,
    NormalizedScheduleItem,
    ScheduleWindow,
    WorkOrder,
)
from agenda.promises import resolve_promise
from agenda.windows import resolve_window

EXCLUDED_STATUSES = frozenset({"cancelled", "canceled", "completed", "draft"})

UNASSIGNED_VENDOR = "Unassigned"


def compute_location_type(line_items: Iterable[LineItem]) -> LocationType | None:
    """Off-Site, In-House or Mixed from the line items' off-site flags."""
    items = list(line_items)
    if not items:
        return None

    has_off_site = any(li.is_off_site is True for li in items)
    has_in_house = any(li.is_off_site is False for li in items)

    if has_off_site and has_in_house:
        return LocationType.MIXED
    if has_off_site:
        return LocationType.OFF_SITE
    if has_in_house:
        return LocationType.IN_HOUSE
    return None


def compute_amount(work_order: WorkOrder) -> float | None:
    """
    Explicit work-order total, else the line-item roll-up.

    Each line contributes total_price, or unit_price * quantity (quantity
    defaults to 1). A zero or non-finite roll-up is reported as None.
    """
    if work_order.total_amount is not None:
        return work_order.total_amount

    total = 0.0
    for li in work_order.line_items:
        if li.total_price is not None:
            line = li.total_price
        elif li.unit_price is not None:
            line = li.unit_price * (li.quantity if li.quantity is not None else 1)
        else:
            line = 0.0
        if math.isfinite(line):
            total += line

    return total if math.isfinite(total) and total > 0 else None


def normalize_work_order(
    work_order: WorkOrder | None,
    *,
    now: datetime,
    active_loaners: Collection[str] = frozenset(),
    override: ScheduleWindow | None = None,
    recent_days: int = config.OVERDUE_RECENT_DAYS,
) -> NormalizedScheduleItem | None:
    """
    Project a hydrated work order into an agenda item.

    Args:
        work_order: Hydrated work order
        now: Reference instant for state classification
        active_loaners: Work order ids with an unreturned loaner
        override: Authoritative window from the range query, if any
        recent_days: Overdue threshold passed to the classifier

    Returns:
        NormalizedScheduleItem, or None for excluded statuses
    """
    if work_order is None:
        return None
    if work_order.normalized_status in EXCLUDED_STATUSES:
        return None

    window = resolve_window(work_order, override=override)
    promised_at = resolve_promise(work_order)
    state = classify(
        window.start,
        window.end,
        work_order.normalized_status,
        now,
        recent_days=recent_days,
    )

    vehicle = work_order.vehicle
    vendor = work_order.vendor

    return NormalizedScheduleItem(
        id=work_order.id,
        created_at=work_order.created_at,
        promised_at=promised_at,
        scheduled_start=window.start,
        scheduled_end=window.end,
        customer_name=work_order.customer_name or (vehicle.owner_name if vehicle else None) or "",
        staff_name=work_order.assigned_to_name or "",
        vehicle_label=vehicle.label if vehicle else "",
        vendor_id=work_order.vendor_id or (vendor.id if vendor else None),
        vendor_name=(vendor.name if vendor else None) or UNASSIGNED_VENDOR,
        location_type=compute_location_type(work_order.line_items),
        loaner_tag=(
            bool(work_order.loaner_number)
            or work_order.has_active_loaner
            or work_order.id in active_loaners
        ),
        needs_loaner=work_order.needs_loaner,
        amount=compute_amount(work_order),
        schedule_state=state,
        schedule_source=window.source,
        raw=work_order,
    )
