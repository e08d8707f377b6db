"""
Tests for the advisory vendor conflict check.
"""

import asyncio
from datetime import timedelta

from agenda.conflicts import ConflictChecker
from agenda.normalizer import normalize_work_order
from tests.fixtures import NOW, FakeConflictService, make_work_order, utc


def _item(id, **fields):
    fields.setdefault("scheduled_start", utc(2025, 6, 3, 13))
    fields.setdefault("scheduled_end", utc(2025, 6, 3, 15))
    return normalize_work_order(make_work_order(id, **fields), now=NOW)


class TestConflictChecker:
    def test_flags_per_item(self):
        service = FakeConflictService(conflicting={"wo-2"})
        flags = asyncio.run(ConflictChecker(service).check([_item("wo-1"), _item("wo-2")]))
        assert flags == {"wo-1": False, "wo-2": True}

    def test_window_padded(self):
        service = FakeConflictService()
        asyncio.run(ConflictChecker(service, padding_minutes=30).check([_item("wo-1")]))
        vendor_id, start, end, exclude_id = service.calls[0]
        assert vendor_id == "v-1"
        assert start == utc(2025, 6, 3, 13) - timedelta(minutes=30)
        assert end == utc(2025, 6, 3, 15) + timedelta(minutes=30)
        assert exclude_id == "wo-1"

    def test_items_without_vendor_or_window_skipped(self):
        service = FakeConflictService()
        items = [
            _item("no-vendor", vendor=None, vendor_id=None),
            normalize_work_order(make_work_order("no-window"), now=NOW),
        ]
        assert asyncio.run(ConflictChecker(service).check(items)) == {}
        assert service.calls == []

    def test_failure_for_one_item_does_not_block_others(self, caplog):
        service = FakeConflictService(conflicting={"wo-3"}, failing={"wo-2"})
        items = [_item("wo-1"), _item("wo-2"), _item("wo-3")]
        flags = asyncio.run(ConflictChecker(service).check(items))
        assert flags == {"wo-1": False, "wo-3": True}
        assert "wo-2" in caplog.text
