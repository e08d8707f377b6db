"""
Schedule State Classification

Maps a schedule window and work order status to one flat state. There is no
persisted state machine: the state is recomputed on every call.
"""

from datetime import datetime, timedelta

from agenda import config
from agenda.models import ScheduleState, WorkOrderStatus

# Statuses that mean "work is happening", regardless of the clock
ACTIVE_STATUSES = frozenset(
    {WorkOrderStatus.IN_PROGRESS.value, WorkOrderStatus.QUALITY_CHECK.value}
)

ONE_DAY = timedelta(days=1)


def classify(
    scheduled_start: datetime | None,
    scheduled_end: datetime | None,
    status: str | None,
    now: datetime,
    recent_days: int = config.OVERDUE_RECENT_DAYS,
) -> ScheduleState:
    """
    Classify a schedule window relative to now.

    Rules, in order:
    - no start -> unscheduled
    - status in_progress / quality_check -> in_progress, even past the end
    - end before now -> overdue_recent when at most `recent_days` whole days
      have elapsed since the end, else overdue_old
    - otherwise scheduled

    Args:
        scheduled_start: Window start
        scheduled_end: Window end (defaults to start)
        status: Work order status
        now: Reference instant
        recent_days: Overdue threshold in whole days

    Returns:
        ScheduleState
    """
    if scheduled_start is None:
        return ScheduleState.UNSCHEDULED

    end = scheduled_end or scheduled_start

    if (status or "").strip().lower() in ACTIVE_STATUSES:
        return ScheduleState.IN_PROGRESS

    if end < now:
        days = (now - end) // ONE_DAY
        if days <= recent_days:
            return ScheduleState.OVERDUE_RECENT
        return ScheduleState.OVERDUE_OLD

    return ScheduleState.SCHEDULED
