"""
Agenda Grouping

Buckets filtered items by local day key, in ascending key order.

A row's day is its scheduled start, else its promised day, else the start
of its effective window. Within a day, all-day (promise-only) rows come
first, then timed rows, each in upstream order.
"""

from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Any

from agenda.clock import ZonedClock
from agenda.models import NormalizedScheduleItem
from agenda.windows import resolve_window


@dataclass
class AgendaGroup:
    """One day of the agenda."""

    key: str
    label: str
    items: list[NormalizedScheduleItem] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "key": self.key,
            "label": self.label,
            "items": [item.to_dict() for item in self.items],
        }


def row_day_key(item: NormalizedScheduleItem, clock: ZonedClock) -> str | None:
    if item.scheduled_start is not None:
        return clock.day_key(item.scheduled_start)
    if item.promised_day_key:
        return item.promised_day_key
    window = resolve_window(item.raw)
    if window.start is not None:
        return clock.day_key(window.start)
    return None


def group_by_day(
    items: Iterable[NormalizedScheduleItem], clock: ZonedClock | None = None
) -> list[AgendaGroup]:
    """
    Group items by day.

    Rows with no resolvable day are dropped.

    Returns:
        AgendaGroup list sorted by key
    """
    clock = clock or ZonedClock()
    all_day: dict[str, list[NormalizedScheduleItem]] = {}
    timed: dict[str, list[NormalizedScheduleItem]] = {}

    for item in items:
        key = row_day_key(item, clock)
        if key is None:
            continue
        bucket = timed if item.scheduled_start is not None else all_day
        bucket.setdefault(key, []).append(item)

    keys = sorted(set(all_day) | set(timed))
    return [
        AgendaGroup(
            key=key,
            label=clock.format_day_header(key),
            items=all_day.get(key, []) + timed.get(key, []),
        )
        for key in keys
    ]
