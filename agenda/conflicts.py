"""
Vendor Conflict Check

Advisory double-booking check run after the agenda list is built. Each
item is checked independently; a failure for one item is logged and that
item is left out of the result.
"""

import asyncio
import logging
from collections.abc import Iterable
from datetime import timedelta

from agenda import config
from agenda.contracts import ConflictService
from agenda.models import NormalizedScheduleItem

logger = logging.getLogger(__name__)


class ConflictChecker:
    """
    Usage:
        checker = ConflictChecker(service)
        flags = await checker.check(items)  # {"wo-1": False, "wo-2": True}
    """

    def __init__(
        self,
        service: ConflictService,
        padding_minutes: int = config.CONFLICT_PADDING_MINUTES,
    ):
        self.service = service
        self.padding = timedelta(minutes=padding_minutes)

    async def check(self, items: Iterable[NormalizedScheduleItem]) -> dict[str, bool]:
        """
        Conflict flag per checkable item.

        Only items with a vendor and both ends of a window are checked.
        Never raises.
        """
        checkable = [
            item
            for item in items
            if item.vendor_id and item.scheduled_start and item.scheduled_end
        ]
        if not checkable:
            return {}

        results = await asyncio.gather(
            *(self._check_one(item) for item in checkable),
            return_exceptions=True,
        )

        flags: dict[str, bool] = {}
        for item, result in zip(checkable, results, strict=True):
            if isinstance(result, BaseException):
                logger.warning(f"Conflict check failed for {item.id}: {result}")
                continue
            flags[item.id] = bool(result)
        return flags

    async def _check_one(self, item: NormalizedScheduleItem) -> bool:
        return await self.service.has_conflict(
            item.vendor_id,
            item.scheduled_start - self.padding,
            item.scheduled_end + self.padding,
            item.id,
        )
