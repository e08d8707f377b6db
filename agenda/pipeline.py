"""
Range Hydration Pipeline

Turns a coarse date range into normalized agenda items:

1. Overlap query -> candidate ids with authoritative windows
2. Hydrate full work orders  } issued concurrently
3. Active loaner flags       } (both only need the id list)
4. Normalize (drops excluded statuses)
5. Stable sort by scheduled start (missing = epoch 0)

I/O failures never escape: the result carries an empty list and a reason
code in `debug`. Loaner flags are advisory and degrade to "no flag".
"""

import asyncio
import logging
from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Any

from agenda import config
from agenda.clock import ZonedClock, epoch_ms, parse_instant
from agenda.contracts import Clock, LoanerStore, OverlapRangeService, SystemClock, WorkOrderStore
from agenda.models import (
    NormalizedScheduleItem,
    ScheduleSource,
    ScheduleWindow,
    WorkOrder,
)
from agenda.normalizer import normalize_work_order
from agenda.promises import resolve_promise
from agenda.windows import resolve_window

logger = logging.getLogger(__name__)

# Reason codes carried in debug["reason"]
REASON_INVALID_RANGE = "invalid_range"
REASON_OVERLAP_FAILED = "overlap_query_failed"
REASON_HYDRATE_FAILED = "hydrate_failed"
REASON_NEEDS_SCHEDULING_FAILED = "needs_scheduling_query_failed"


@dataclass
class LoadResult:
    """Normalized items plus diagnostics."""

    items: list[NormalizedScheduleItem] = field(default_factory=list)
    debug: dict[str, Any] = field(default_factory=dict)

    @property
    def reason(self) -> str | None:
        return self.debug.get("reason")


@dataclass
class JobsResult:
    """Full work orders (window override applied) plus diagnostics."""

    jobs: list[WorkOrder] = field(default_factory=list)
    debug: dict[str, Any] = field(default_factory=dict)

    @property
    def reason(self) -> str | None:
        return self.debug.get("reason")


class RangeHydrationPipeline:
    """
    Canonical schedule pipeline.

    Usage:
        pipeline = RangeHydrationPipeline(work_orders, overlaps, loaners)
        result = await pipeline.load(range_start, range_end, scope="org-1")
        result.items   # sorted NormalizedScheduleItem list
        result.debug   # counts, or {"reason": ...} on failure
    """

    def __init__(
        self,
        work_orders: WorkOrderStore,
        overlaps: OverlapRangeService,
        loaners: LoanerStore,
        clock: Clock | None = None,
        zoned_clock: ZonedClock | None = None,
        recent_days: int = config.OVERDUE_RECENT_DAYS,
    ):
        self.work_orders = work_orders
        self.overlaps = overlaps
        self.loaners = loaners
        self.clock = clock or SystemClock()
        self.zoned_clock = zoned_clock or ZonedClock()
        self.recent_days = recent_days

    # =========================================================================
    # Agenda items
    # =========================================================================

    async def load(
        self,
        range_start,
        range_end,
        scope: str | None = None,
        now: datetime | None = None,
    ) -> LoadResult:
        """
        Normalized agenda items whose schedule overlaps [range_start, range_end).

        `now` is the instant schedule states are classified against
        (default: the pipeline clock).

        Returns:
            LoadResult; never raises
        """
        start = parse_instant(range_start)
        end = parse_instant(range_end)
        if start is None or end is None:
            return LoadResult(debug={"reason": REASON_INVALID_RANGE})

        now = now or self.clock.now()

        windows = await self._query_overlaps(start, end, scope)
        if windows is None:
            return LoadResult(debug={"overlap_count": 0, "reason": REASON_OVERLAP_FAILED})

        ids = list(windows)
        if not ids:
            return LoadResult(debug={"overlap_count": 0, "hydrated": 0, "normalized": 0})

        try:
            work_orders, active = await self._hydrate(ids, scope)
        except Exception as e:
            logger.warning(f"Hydration failed for {len(ids)} work orders: {e}")
            return LoadResult(debug={"overlap_count": len(ids), "reason": REASON_HYDRATE_FAILED})

        sources = {source.value: 0 for source in ScheduleSource if source != ScheduleSource.NONE}
        items = []
        for work_order in work_orders:
            window = windows.get(work_order.id) or resolve_window(work_order)
            if window.source != ScheduleSource.NONE:
                sources[window.source.value] += 1

            item = normalize_work_order(
                work_order,
                now=now,
                active_loaners=active,
                override=window,
                recent_days=self.recent_days,
            )
            if item is not None:
                items.append(item)

        items.sort(key=lambda it: epoch_ms(it.scheduled_start))

        logger.debug(
            f"Loaded agenda range: {len(ids)} candidates, "
            f"{len(work_orders)} hydrated, {len(items)} normalized"
        )
        return LoadResult(
            items=items,
            debug={
                "overlap_count": len(ids),
                "hydrated": len(work_orders),
                "normalized": len(items),
                "schedule_sources": sources,
            },
        )

    # =========================================================================
    # Full work orders
    # =========================================================================

    async def load_jobs(self, range_start, range_end, scope: str | None = None) -> JobsResult:
        """
        Full work orders overlapping the range, with the authoritative window
        written onto the work-order-level fields.

        Unlike load(), no status is excluded.
        """
        start = parse_instant(range_start)
        end = parse_instant(range_end)
        if start is None or end is None:
            return JobsResult(debug={"reason": REASON_INVALID_RANGE})

        windows = await self._query_overlaps(start, end, scope)
        if windows is None:
            return JobsResult(debug={"overlap_count": 0, "reason": REASON_OVERLAP_FAILED})

        ids = list(windows)
        if not ids:
            return JobsResult(debug={"overlap_count": 0, "job_count": 0})

        try:
            work_orders, active = await self._hydrate(ids, scope)
        except Exception as e:
            logger.warning(f"Hydration failed for {len(ids)} work orders: {e}")
            return JobsResult(debug={"overlap_count": len(ids), "reason": REASON_HYDRATE_FAILED})

        patched = []
        for work_order in work_orders:
            window = windows.get(work_order.id)
            if window is not None:
                work_order = replace(
                    work_order,
                    scheduled_start=window.start,
                    scheduled_end=window.end,
                    promised_date=work_order.promised_date or resolve_promise(work_order),
                )
            if work_order.id in active:
                work_order = replace(work_order, has_active_loaner=True)
            patched.append(work_order)

        patched.sort(key=lambda wo: epoch_ms(wo.scheduled_start))

        return JobsResult(
            jobs=patched,
            debug={"overlap_count": len(ids), "job_count": len(patched)},
        )

    # =========================================================================
    # Promise-only items
    # =========================================================================

    async def load_needs_scheduling(
        self,
        range_start,
        range_end,
        scope: str | None = None,
        now: datetime | None = None,
    ) -> LoadResult:
        """
        Promise-only items: a line item requiring scheduling is promised
        inside the range's local days, and the work order resolves to no
        schedule window at all.
        """
        start = parse_instant(range_start)
        end = parse_instant(range_end)
        if start is None or end is None:
            return LoadResult(debug={"reason": REASON_INVALID_RANGE})

        start_key = self.zoned_clock.day_key(start)
        end_key = self.zoned_clock.day_key(end)
        now = now or self.clock.now()

        try:
            ids = await self.work_orders.promise_candidates(start_key, end_key, scope)
            ids = list(dict.fromkeys(i for i in ids if i))
            if not ids:
                return LoadResult(debug={"candidates": 0, "hydrated": 0, "kept": 0})
            work_orders, active = await self._hydrate(ids, scope)
        except Exception as e:
            logger.warning(f"Needs-scheduling query failed: {e}")
            return LoadResult(debug={"reason": REASON_NEEDS_SCHEDULING_FAILED})

        items = []
        for work_order in work_orders:
            if not resolve_window(work_order).is_empty:
                continue

            item = normalize_work_order(
                work_order,
                now=now,
                active_loaners=active,
                override=ScheduleWindow.empty(),
                recent_days=self.recent_days,
            )
            day = item.promised_day_key if item else None
            if day is None or day < start_key or day >= end_key:
                continue
            items.append(item)

        items.sort(key=lambda it: it.promised_at or "")

        return LoadResult(
            items=items,
            debug={"candidates": len(ids), "hydrated": len(work_orders), "kept": len(items)},
        )

    # =========================================================================
    # I/O boundary
    # =========================================================================

    async def _query_overlaps(
        self, start: datetime, end: datetime, scope: str | None
    ) -> dict[str, ScheduleWindow] | None:
        """Override windows by id, or None when the query failed."""
        try:
            result = await self.overlaps.query(start, end, scope)
        except Exception as e:
            logger.warning(f"Overlap query raised: {e}")
            return None

        if not result.ok:
            logger.warning(f"Overlap query failed: {result.error}")
            return None

        windows: dict[str, ScheduleWindow] = {}
        for row in result.rows:
            if row.id and row.id not in windows:
                windows[row.id] = ScheduleWindow.of(row.start, row.end, ScheduleSource.LINE_ITEMS)
        return windows

    async def _hydrate(
        self, ids: list[str], scope: str | None
    ) -> tuple[list[WorkOrder], frozenset[str]]:
        """Work orders and active-loaner ids, fetched concurrently."""
        work_orders, active = await asyncio.gather(
            self.work_orders.get_by_ids(ids, scope),
            self._active_loaners(ids, scope),
        )
        return list(work_orders or []), active

    async def _active_loaners(self, ids: list[str], scope: str | None) -> frozenset[str]:
        """Advisory: any failure means "no loaner flags"."""
        try:
            return frozenset(await self.loaners.active_for(ids, scope) or ())
        except Exception as e:
            logger.warning(f"Loaner lookup failed, continuing without flags: {e}")
            return frozenset()
