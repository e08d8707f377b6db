"""
Agenda Service

Top-level entry point: load a coarse window of scheduled and promise-only
items, filter them by caller criteria and group them by day.

Usage:
    service = AgendaService(pipeline)
    view = await service.build(AgendaFilterCriteria(date_range=DateRange.TODAY))
    for group in view.groups:
        print(group.label, len(group.items))
"""

import asyncio
import logging
from dataclasses import dataclass, field, replace
from datetime import datetime, timedelta
from typing import Any

from agenda import config
from agenda.clock import ZonedClock, epoch_ms, parse_instant
from agenda.conflicts import ConflictChecker
from agenda.contracts import Clock, SystemClock
from agenda.filters import apply_filters
from agenda.grouping import AgendaGroup, group_by_day
from agenda.models import AgendaFilterCriteria, NormalizedScheduleItem, WorkOrderStatus
from agenda.pipeline import RangeHydrationPipeline

logger = logging.getLogger(__name__)

# Dropped again after merging, whatever the source returned
HIDDEN_STATUSES = frozenset({WorkOrderStatus.DRAFT.value, WorkOrderStatus.CANCELLED.value})


@dataclass
class AgendaLoad:
    """Merged scheduled and promise-only items for one load."""

    items: list[NormalizedScheduleItem] = field(default_factory=list)
    debug: dict[str, Any] = field(default_factory=dict)


@dataclass
class AgendaView:
    """Filtered, grouped agenda."""

    groups: list[AgendaGroup] = field(default_factory=list)
    total: int = 0
    debug: dict[str, Any] = field(default_factory=dict)
    conflicts: dict[str, bool] | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "groups": [g.to_dict() for g in self.groups],
            "total": self.total,
            "debug": self.debug,
            "conflicts": self.conflicts,
        }


def _sort_key(item: NormalizedScheduleItem) -> float:
    if item.scheduled_start is not None:
        return epoch_ms(item.scheduled_start)
    return epoch_ms(parse_instant(item.promised_at))


class AgendaService:
    def __init__(
        self,
        pipeline: RangeHydrationPipeline,
        clock: Clock | None = None,
        zoned_clock: ZonedClock | None = None,
        conflict_checker: ConflictChecker | None = None,
        lookback_days: int = config.LOAD_LOOKBACK_DAYS,
        lookahead_days: int = config.LOAD_LOOKAHEAD_DAYS,
    ):
        self.pipeline = pipeline
        self.clock = clock or pipeline.clock or SystemClock()
        self.zoned_clock = zoned_clock or pipeline.zoned_clock
        self.conflict_checker = conflict_checker
        self.lookback = timedelta(days=lookback_days)
        self.lookahead = timedelta(days=lookahead_days)

    async def load(self, now: datetime | None = None, scope: str | None = None) -> AgendaLoad:
        """
        Scheduled items over [now - lookback, now + lookahead) merged with
        promise-only items in the same window. Schedule states are
        classified against the same `now`.

        Returns:
            AgendaLoad; never raises
        """
        now = now or self.clock.now()
        range_start = now - self.lookback
        range_end = now + self.lookahead

        scheduled, needs = await asyncio.gather(
            self.pipeline.load(range_start, range_end, scope, now=now),
            self.pipeline.load_needs_scheduling(range_start, range_end, scope, now=now),
        )

        seen: set[str] = set()
        items = []
        for item in sorted(scheduled.items + needs.items, key=_sort_key):
            if item.id in seen:
                continue
            if item.raw is not None and item.raw.normalized_status in HIDDEN_STATUSES:
                continue
            seen.add(item.id)
            items.append(item)

        debug = {
            "rpcCount": scheduled.debug.get("overlap_count", 0),
            "jobCount": scheduled.debug.get("normalized", 0),
            "needsSchedulingCount": len(needs.items),
        }
        if scheduled.reason:
            debug["reason"] = scheduled.reason
        if needs.reason:
            debug["needsSchedulingReason"] = needs.reason

        logger.debug(f"Agenda load for scope={scope}: {len(items)} items")
        return AgendaLoad(items=items, debug=debug)

    async def build(
        self,
        criteria: AgendaFilterCriteria | None = None,
        scope: str | None = None,
        check_conflicts: bool = False,
    ) -> AgendaView:
        """
        Load, filter and group the agenda.

        Args:
            criteria: Caller filters; criteria.now defaults to the clock
            scope: Tenant scope
            check_conflicts: Also run the advisory vendor conflict check

        Returns:
            AgendaView
        """
        criteria = criteria or AgendaFilterCriteria()
        if criteria.now is None:
            criteria = replace(criteria, now=self.clock.now())

        loaded = await self.load(criteria.now, scope)
        filtered = apply_filters(loaded.items, criteria, self.zoned_clock)
        groups = group_by_day(filtered, self.zoned_clock)

        conflicts = None
        if check_conflicts and self.conflict_checker is not None:
            conflicts = await self.conflict_checker.check(filtered)

        return AgendaView(
            groups=groups,
            total=sum(len(g.items) for g in groups),
            debug=loaded.debug,
            conflicts=conflicts,
        )
