"""
Tests for the agenda filter engine.

NOW is Monday 2025-06-02 10:00 EDT, so "today" is
[2025-06-02T04:00Z, 2025-06-03T04:00Z).
"""

import pytest

from agenda.filters import apply_filters, date_range_bounds, matches_query
from agenda.models import (
    AgendaFilterCriteria,
    AssigneeMode,
    DateRange,
    LocationType,
    ScheduleWindow,
    Vendor,
)
from agenda.normalizer import normalize_work_order
from tests.fixtures import NOW, make_work_order, utc


def _item(id="wo-1", now=NOW, override=None, **fields):
    return normalize_work_order(make_work_order(id, **fields), now=now, override=override)


def _ids(items):
    return [i.id for i in items]


def _criteria(**kwargs):
    kwargs.setdefault("now", NOW)
    return AgendaFilterCriteria(**kwargs)


class TestDateRangeBounds:
    def test_all_is_unbounded(self, zclock):
        assert date_range_bounds(DateRange.ALL, NOW, zclock) is None

    def test_today(self, zclock):
        assert date_range_bounds(DateRange.TODAY, NOW, zclock) == (
            utc(2025, 6, 2, 4),
            utc(2025, 6, 3, 4),
        )

    def test_next_seven_days(self, zclock):
        assert date_range_bounds(DateRange.NEXT_7_DAYS, NOW, zclock) == (
            utc(2025, 6, 2, 4),
            utc(2025, 6, 9, 4),
        )

    def test_next_three_days_across_fall_back(self, zclock):
        start, end = date_range_bounds(DateRange.NEXT_3_DAYS, utc(2025, 11, 1, 15), zclock)
        assert start == utc(2025, 11, 1, 4)
        assert end == utc(2025, 11, 4, 5)


class TestTodayBoundaries:
    def test_starting_tomorrow_local_midnight_excluded(self, zclock):
        item = _item(scheduled_start=utc(2025, 6, 3, 4))
        assert apply_filters([item], _criteria(date_range=DateRange.TODAY), zclock) == []

    def test_ending_2359_local_today_included(self, zclock):
        item = _item(scheduled_start=utc(2025, 6, 3, 2), scheduled_end=utc(2025, 6, 3, 3, 59))
        assert _ids(apply_filters([item], _criteria(date_range=DateRange.TODAY), zclock)) == [
            "wo-1"
        ]

    def test_ended_before_today_excluded(self, zclock):
        item = _item(scheduled_start=utc(2025, 6, 1, 14), scheduled_end=utc(2025, 6, 1, 16))
        assert apply_filters([item], _criteria(date_range=DateRange.TODAY), zclock) == []

    def test_spanning_into_today_included(self, zclock):
        item = _item(scheduled_start=utc(2025, 6, 1, 14), scheduled_end=utc(2025, 6, 2, 16))
        assert len(apply_filters([item], _criteria(date_range=DateRange.TODAY), zclock)) == 1

    def test_spanning_whole_range_included(self, zclock):
        item = _item(scheduled_start=utc(2025, 5, 30, 14), scheduled_end=utc(2025, 6, 10, 16))
        assert len(apply_filters([item], _criteria(date_range=DateRange.NEXT_7_DAYS), zclock)) == 1


class TestPromiseOnly:
    @pytest.fixture
    def promised(self):
        return _item("wo-p", line_items=[{"promised_date": "2025-03-09"}])

    @pytest.mark.parametrize(
        "now",
        [
            utc(2025, 3, 9, 15),  # Sun 11:00 EDT
            utc(2025, 3, 9, 5),  # Sun 00:00 EST, first instant of the day
            utc(2025, 3, 10, 3, 59),  # Sun 23:59 EDT, already Monday in UTC
        ],
    )
    def test_included_when_local_today_matches(self, promised, zclock, now):
        criteria = _criteria(date_range=DateRange.TODAY, now=now)
        assert _ids(apply_filters([promised], criteria, zclock)) == ["wo-p"]

    @pytest.mark.parametrize(
        "now",
        [
            utc(2025, 3, 9, 3),  # Sat 22:00 EST, already Sunday in UTC
            utc(2025, 3, 10, 5),  # Mon 01:00 EDT
        ],
    )
    def test_excluded_when_local_today_differs(self, promised, zclock, now):
        criteria = _criteria(date_range=DateRange.TODAY, now=now)
        assert apply_filters([promised], criteria, zclock) == []

    def test_last_day_of_range_included(self, zclock):
        item = _item("wo-p", line_items=[{"promised_date": "2025-06-08"}])
        criteria = _criteria(date_range=DateRange.NEXT_7_DAYS)
        assert _ids(apply_filters([item], criteria, zclock)) == ["wo-p"]

    def test_range_end_day_excluded(self, zclock):
        item = _item("wo-p", line_items=[{"promised_date": "2025-06-09"}])
        criteria = _criteria(date_range=DateRange.NEXT_7_DAYS)
        assert apply_filters([item], criteria, zclock) == []

    def test_empty_override_places_row_by_promised_day(self, zclock):
        item = _item(
            "wo-p",
            override=ScheduleWindow.empty(),
            scheduled_start=utc(2025, 6, 3, 14),
            line_items=[{"promised_date": "2025-06-02"}],
        )
        assert item.scheduled_start is None
        today = apply_filters([item], _criteria(date_range=DateRange.TODAY), zclock)
        assert _ids(today) == ["wo-p"]

    def test_empty_override_without_promise_is_unplaced(self, zclock):
        item = _item("wo-x", override=ScheduleWindow.empty(), scheduled_start=utc(2025, 6, 2, 14))
        assert apply_filters([item], _criteria(), zclock) == []


class TestPlacement:
    def test_unanchored_item_excluded_even_for_all(self, zclock):
        assert apply_filters([_item()], _criteria(), zclock) == []

    def test_scheduled_item_kept_for_all(self, zclock):
        item = _item(scheduled_start=utc(2024, 1, 1, 12))
        assert len(apply_filters([item], _criteria(), zclock)) == 1


class TestAttributeFilters:
    @pytest.fixture
    def items(self):
        return [
            _item(
                "wo-1",
                status="scheduled",
                assigned_to="u-1",
                scheduled_start=utc(2025, 6, 2, 15),
                line_items=[{"is_off_site": True}],
            ),
            _item(
                "wo-2",
                status="in_progress",
                assigned_to="u-2",
                vendor=Vendor(id="v-2", name="Detail Co"),
                vendor_id="v-2",
                scheduled_start=utc(2025, 6, 2, 16),
                line_items=[{"is_off_site": False}],
            ),
        ]

    def test_status(self, items, zclock):
        assert _ids(apply_filters(items, _criteria(status="in_progress"), zclock)) == ["wo-2"]

    def test_status_unset_keeps_all(self, items, zclock):
        assert _ids(apply_filters(items, _criteria(status=None), zclock)) == ["wo-1", "wo-2"]

    def test_assignee_me(self, items, zclock):
        criteria = _criteria(assignee=AssigneeMode.ME, caller_id="u-2")
        assert _ids(apply_filters(items, criteria, zclock)) == ["wo-2"]

    def test_assignee_me_without_identity_excludes_everything(self, items, zclock):
        criteria = _criteria(assignee=AssigneeMode.ME, caller_id=None)
        assert apply_filters(items, criteria, zclock) == []

    def test_vendor(self, items, zclock):
        assert _ids(apply_filters(items, _criteria(vendor_id="v-1"), zclock)) == ["wo-1"]

    def test_location(self, items, zclock):
        criteria = _criteria(location=LocationType.IN_HOUSE)
        assert _ids(apply_filters(items, criteria, zclock)) == ["wo-2"]

    def test_order_preserved(self, items, zclock):
        assert _ids(apply_filters(list(reversed(items)), _criteria(), zclock)) == ["wo-2", "wo-1"]


class TestFreeText:
    @pytest.fixture
    def item(self):
        return _item(
            title="Window tint",
            description="Front two windows",
            job_number="J-2041",
            customer_name="Pat Lee",
            scheduled_start=utc(2025, 6, 2, 15),
        )

    @pytest.mark.parametrize("q", ["tint", "FRONT", "j-2041", "pat", "accord", "stock s100", "  "])
    def test_matches(self, item, q):
        assert matches_query(item, q)

    def test_no_match_excluded(self, item, zclock):
        assert apply_filters([item], _criteria(q="ceramic"), zclock) == []

    def test_match_kept(self, item, zclock):
        assert _ids(apply_filters([item], _criteria(q="Tint"), zclock)) == ["wo-1"]
