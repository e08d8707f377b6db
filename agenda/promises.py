"""
Promise Date Resolution

The promised date is a pure calendar day a customer was told the work will
be done. The earliest candidate across the work-order override and every
line item wins. Values are day markers ("2025-06-05T00:00:00Z") compared as
strings, never converted through a timezone.
"""

from agenda.clock import parse_day, parse_instant
from agenda.models import WorkOrder


def to_promise_iso(value) -> str | None:
    """
    Normalize a promised value to an ISO string.

    A pure day gets "T00:00:00Z" appended; a value that already carries a
    time component is kept as given. Unparseable values are dropped.
    """
    if value is None or value == "":
        return None
    text = value if isinstance(value, str) else value.isoformat()
    text = text.strip()

    if "T" in text:
        return text if parse_instant(text) is not None else None
    if parse_day(text) is None or len(text) != 10:
        return None
    return f"{text}T00:00:00Z"


def resolve_promise(work_order: WorkOrder | None) -> str | None:
    """
    Earliest promised day across the override and all line items.

    ISO strings of this shape sort chronologically, so the lexicographic
    minimum is the earliest day.

    Returns:
        ISO day marker, or None when no candidate exists
    """
    if work_order is None:
        return None

    candidates = [to_promise_iso(work_order.promised_date)]
    candidates.extend(to_promise_iso(li.promised_date) for li in work_order.line_items)

    present = [c for c in candidates if c]
    return min(present) if present else None
