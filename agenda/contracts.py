"""
Collaborator Contracts

Logical interfaces the agenda engine reads through. Implementations live
outside the core (see agenda.store for the SQLite adapters). All reads are
async so the pipeline can issue independent lookups concurrently.

`scope` is the tenant key (org id); None means unscoped.
"""

from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Protocol

from agenda.models import WorkOrder


@dataclass(frozen=True)
class OverlapRow:
    """One overlap candidate with its storage-computed window."""

    id: str
    start: datetime | None
    end: datetime | None


@dataclass
class OverlapQueryResult:
    """
    Overlap query outcome.

    A failed query carries an empty row list and a non-empty error instead
    of raising.
    """

    rows: list[OverlapRow] = field(default_factory=list)
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


class WorkOrderStore(Protocol):
    async def get_by_ids(self, ids: list[str], scope: str | None) -> list[WorkOrder]:
        """Full hydration including line items, vehicle, vendor and staff."""
        ...

    async def promise_candidates(
        self, start_key: str, end_key: str, scope: str | None
    ) -> list[str]:
        """
        Ids of work orders with an unscheduled line item that requires
        scheduling and is promised in [start_key, end_key).
        """
        ...


class OverlapRangeService(Protocol):
    async def query(
        self, start: datetime, end: datetime, scope: str | None
    ) -> OverlapQueryResult:
        """Work orders whose effective window overlaps [start, end)."""
        ...


class LoanerStore(Protocol):
    async def active_for(self, ids: list[str], scope: str | None) -> set[str]:
        """Ids among `ids` with a currently unreturned loaner."""
        ...


class ConflictService(Protocol):
    async def has_conflict(
        self, vendor_id: str, start: datetime, end: datetime, exclude_id: str | None
    ) -> bool:
        """Whether the vendor has another work order overlapping [start, end)."""
        ...


class Clock(Protocol):
    def now(self) -> datetime: ...


class SystemClock:
    """Wall clock in UTC."""

    def now(self) -> datetime:
        return datetime.now(UTC)


class FixedClock:
    """Clock pinned to one instant, for deterministic runs."""

    def __init__(self, instant: datetime):
        self.instant = instant

    def now(self) -> datetime:
        return self.instant
