"""
Agenda Filter Engine

Pure filtering of normalized agenda items by caller criteria.

Order of checks per item:
1. status, assignee ("me"), vendor, location
2. placement: an item with neither a window nor a promised day is dropped
3. date range: interval overlap for scheduled rows, day-key comparison
   for promise-only rows
4. free text

A promised day is a calendar date, not an instant: it is compared as a
"YYYY-MM-DD" string against the range's local day keys and never shifted
through a timezone offset.
"""

from collections.abc import Iterable
from datetime import UTC, datetime

from agenda.clock import ZonedClock
from agenda.models import (
    AgendaFilterCriteria,
    AssigneeMode,
    DateRange,
    NormalizedScheduleItem,
)


def date_range_bounds(
    mode: DateRange, now: datetime, clock: ZonedClock
) -> tuple[datetime, datetime] | None:
    """
    [start, end) of a date-range mode in the clock's zone.

    Returns:
        (start, end) instants, or None for "all"
    """
    days = DateRange(mode).days
    if days is None:
        return None
    return clock.start_of_day(now), clock.start_of_day_plus(now, days)


def search_text(item: NormalizedScheduleItem) -> str:
    """Lowercased haystack of an item's display fields."""
    raw = item.raw
    parts = (
        raw.title if raw else "",
        raw.description if raw else "",
        raw.job_number if raw else "",
        item.customer_name,
        item.vehicle_label,
    )
    return " ".join(p for p in parts if p).lower()


def matches_query(item: NormalizedScheduleItem, q: str | None) -> bool:
    needle = (q or "").strip().lower()
    if not needle:
        return True
    return needle in search_text(item)


def _in_range(
    item: NormalizedScheduleItem,
    bounds: tuple[datetime, datetime] | None,
    clock: ZonedClock,
) -> bool:
    start = item.scheduled_start
    end = item.scheduled_end

    promised_key = item.promised_day_key

    # Nothing to anchor the row on any day
    if start is None and promised_key is None:
        return False

    if bounds is None:
        return True

    range_start, range_end = bounds
    if start is not None:
        end = end or start
        return start < range_end and end > range_start

    return clock.day_key(range_start) <= promised_key < clock.day_key(range_end)


def apply_filters(
    items: Iterable[NormalizedScheduleItem],
    criteria: AgendaFilterCriteria,
    clock: ZonedClock | None = None,
) -> list[NormalizedScheduleItem]:
    """
    Filter items by criteria; order is preserved.

    Args:
        items: Normalized agenda items
        criteria: Filters; criteria.now pins the date range
        clock: Zone for day boundaries (default: configured zone)

    Returns:
        The kept items, in input order
    """
    clock = clock or ZonedClock()
    now = criteria.now or datetime.now(UTC)
    bounds = date_range_bounds(criteria.date_range, now, clock)

    status = (criteria.status or "").strip().lower()
    vendor_id = criteria.vendor_id or None

    kept = []
    for item in items:
        if status and (item.raw.normalized_status if item.raw else "") != status:
            continue

        if criteria.assignee == AssigneeMode.ME:
            if not criteria.caller_id:
                continue
            if item.raw is None or item.raw.assigned_to != criteria.caller_id:
                continue

        if vendor_id and item.vendor_id != vendor_id:
            continue

        if criteria.location and item.location_type != criteria.location:
            continue

        if not _in_range(item, bounds, clock):
            continue

        if not matches_query(item, criteria.q):
            continue

        kept.append(item)
    return kept
