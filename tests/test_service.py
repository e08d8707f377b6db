"""
Tests for AgendaService: merged load, filtering, grouping and conflicts.
"""

import asyncio
from datetime import timedelta

import pytest

from agenda.clock import ZonedClock
from agenda.conflicts import ConflictChecker
from agenda.contracts import FixedClock
from agenda.models import AgendaFilterCriteria, DateRange, ScheduleState
from agenda.pipeline import RangeHydrationPipeline
from agenda.service import AgendaService
from tests.fixtures import (
    NOW,
    FakeConflictService,
    FakeLoanerStore,
    FakeOverlapService,
    FakeWorkOrderStore,
    make_work_order,
    utc,
)


@pytest.fixture
def work_orders():
    return [
        make_work_order("wo-1"),
        make_work_order("wo-2", line_items=[{"promised_date": "2025-06-02"}]),
    ]


def _service(
    work_orders, rows=(), overlaps=None, conflicts=None, candidates=None, clock=None
):
    zoned = ZonedClock("America/New_York")
    pipeline = RangeHydrationPipeline(
        FakeWorkOrderStore(work_orders, candidates=candidates),
        overlaps or FakeOverlapService(rows),
        FakeLoanerStore(),
        clock=clock or FixedClock(NOW),
        zoned_clock=zoned,
    )
    checker = ConflictChecker(conflicts) if conflicts is not None else None
    return AgendaService(pipeline, conflict_checker=checker, lookback_days=30, lookahead_days=90)


ROWS = [("wo-1", utc(2025, 6, 3, 13), utc(2025, 6, 3, 15))]


class TestLoad:
    def test_merges_scheduled_and_promise_only(self, work_orders):
        loaded = asyncio.run(_service(work_orders, ROWS).load(NOW))
        assert [i.id for i in loaded.items] == ["wo-2", "wo-1"]
        assert loaded.debug["rpcCount"] == 1
        assert loaded.debug["jobCount"] == 1
        assert loaded.debug["needsSchedulingCount"] == 1

    def test_coarse_window(self, work_orders):
        service = _service(work_orders, ROWS)
        asyncio.run(service.load(NOW))
        start, end, _ = service.pipeline.overlaps.calls[0]
        assert start == NOW - timedelta(days=30)
        assert end == NOW + timedelta(days=90)

    def test_duplicate_ids_kept_once(self):
        orders = [make_work_order("wo-1", line_items=[{"promised_date": "2025-06-04"}])]
        loaded = asyncio.run(_service(orders, ROWS).load(NOW))
        assert [i.id for i in loaded.items] == ["wo-1"]
        assert loaded.items[0].scheduled_start == utc(2025, 6, 3, 13)

    def test_overlap_failure_keeps_promise_items(self, work_orders):
        service = _service(work_orders, overlaps=FakeOverlapService(error="timeout"))
        loaded = asyncio.run(service.load(NOW))
        assert [i.id for i in loaded.items] == ["wo-2"]
        assert loaded.debug["reason"] == "overlap_query_failed"

    def test_defaults_to_clock_now(self, work_orders):
        service = _service(work_orders, ROWS)
        asyncio.run(service.load())
        assert service.pipeline.overlaps.calls[0][0] == NOW - timedelta(days=30)


class TestBuild:
    def test_today(self, work_orders):
        criteria = AgendaFilterCriteria(date_range=DateRange.TODAY, now=NOW)
        view = asyncio.run(_service(work_orders, ROWS).build(criteria))
        assert [g.key for g in view.groups] == ["2025-06-02"]
        assert view.total == 1
        assert view.conflicts is None

    def test_next_seven_days(self, work_orders):
        criteria = AgendaFilterCriteria(date_range=DateRange.NEXT_7_DAYS, now=NOW)
        view = asyncio.run(_service(work_orders, ROWS).build(criteria))
        assert [(g.key, g.label) for g in view.groups] == [
            ("2025-06-02", "Mon, Jun 2"),
            ("2025-06-03", "Tue, Jun 3"),
        ]
        assert view.total == 2

    def test_now_defaults_to_clock(self, work_orders):
        criteria = AgendaFilterCriteria(date_range=DateRange.TODAY)
        view = asyncio.run(_service(work_orders, ROWS).build(criteria))
        assert view.total == 1

    def test_conflicts_on_request(self, work_orders):
        service = _service(work_orders, ROWS, conflicts=FakeConflictService(conflicting={"wo-1"}))
        view = asyncio.run(service.build(AgendaFilterCriteria(now=NOW), check_conflicts=True))
        assert view.conflicts == {"wo-1": True}

    def test_to_dict(self, work_orders):
        view = asyncio.run(_service(work_orders, ROWS).build(AgendaFilterCriteria(now=NOW)))
        data = view.to_dict()
        assert data["total"] == 2
        assert [g["key"] for g in data["groups"]] == ["2025-06-02", "2025-06-03"]
        assert data["debug"]["rpcCount"] == 1

    def test_states_follow_criteria_now_not_pipeline_clock(self):
        orders = [make_work_order("wo-1")]
        rows = [("wo-1", utc(2025, 6, 2, 15), utc(2025, 6, 2, 16))]
        service = _service(orders, rows, clock=FixedClock(utc(2025, 6, 22, 14)))

        criteria = AgendaFilterCriteria(date_range=DateRange.TODAY, now=NOW)
        view = asyncio.run(service.build(criteria))

        assert [g.key for g in view.groups] == ["2025-06-02"]
        item = view.groups[0].items[0]
        assert item.schedule_state == ScheduleState.SCHEDULED
