"""
Schedule Window Resolution

Resolves one authoritative {start, end, source} window for a work order.

Precedence (highest first):
1. Override window supplied by the range query (tagged LINE_ITEMS)
2. Line items with a scheduled start
3. Work-order-level scheduled start
4. Legacy appointment start
5. Empty window (source NONE)

Each tier is a strategy returning a window or None; the first non-None wins.
"""

from collections.abc import Callable, Sequence

from agenda.models import ScheduleSource, ScheduleWindow, WorkOrder

WindowStrategy = Callable[[WorkOrder], ScheduleWindow | None]


def from_line_items(work_order: WorkOrder) -> ScheduleWindow | None:
    """
    Earliest line-item start; latest end among the same items.

    End falls back to the earliest item's own end, then to the start.
    """
    scheduled = sorted(
        (li for li in work_order.line_items if li.scheduled_start is not None),
        key=lambda li: li.scheduled_start,
    )
    if not scheduled:
        return None

    first = scheduled[0]
    ends = [li.scheduled_end for li in scheduled if li.scheduled_end is not None]
    end = max(ends) if ends else first.scheduled_end
    return ScheduleWindow.of(first.scheduled_start, end, ScheduleSource.LINE_ITEMS)


def from_work_order(work_order: WorkOrder) -> ScheduleWindow | None:
    if work_order.scheduled_start is None:
        return None
    return ScheduleWindow.of(
        work_order.scheduled_start, work_order.scheduled_end, ScheduleSource.WORK_ORDER
    )


def from_legacy_appointment(work_order: WorkOrder) -> ScheduleWindow | None:
    if work_order.appt_start is None:
        return None
    return ScheduleWindow.of(
        work_order.appt_start, work_order.appt_end, ScheduleSource.LEGACY_APPOINTMENT
    )


DEFAULT_STRATEGIES: tuple[WindowStrategy, ...] = (
    from_line_items,
    from_work_order,
    from_legacy_appointment,
)


def resolve_window(
    work_order: WorkOrder | None,
    override: ScheduleWindow | None = None,
    strategies: Sequence[WindowStrategy] = DEFAULT_STRATEGIES,
) -> ScheduleWindow:
    """
    Resolve the effective schedule window of a work order.

    Args:
        work_order: Hydrated work order (None yields an empty window)
        override: Window that wins over every field of the work order,
            including an explicitly empty one
        strategies: Ordered resolver tiers

    Returns:
        ScheduleWindow; never raises
    """
    if override is not None:
        return override
    if work_order is None:
        return ScheduleWindow.empty()

    for strategy in strategies:
        window = strategy(work_order)
        if window is not None:
            return window
    return ScheduleWindow.empty()
