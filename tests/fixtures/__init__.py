"""
Test fixtures for deterministic testing.

This module provides:
- make_work_order: WorkOrder factory with sensible defaults
- Fake*: in-memory implementations of the store contracts
- NOW / utc: pinned reference instant and UTC shorthand
"""

from .agenda_fixtures import (
    NOW,
    FakeConflictService,
    FakeLoanerStore,
    FakeOverlapService,
    FakeWorkOrderStore,
    make_work_order,
    utc,
)

__all__ = [
    "NOW",
    "FakeConflictService",
    "FakeLoanerStore",
    "FakeOverlapService",
    "FakeWorkOrderStore",
    "make_work_order",
    "utc",
]
