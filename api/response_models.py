"""
Pydantic response models for the agenda API.

These models give FastAPI the type information it needs to generate
accurate OpenAPI schemas.

Usage:
    from api.response_models import AgendaResponse

    @router.get("/agenda", response_model=AgendaResponse)
    async def get_agenda(): ...
"""

from typing import Any

from pydantic import BaseModel, Field

# ==== Agenda ====
# Shape: {groups: [{key, label, items}], total, debug, conflicts}


class AgendaItemModel(BaseModel):
    """One normalized agenda row."""

    id: str
    created_at: str | None = None
    promised_at: str | None = Field(default=None, description="Day marker, YYYY-MM-DDT00:00:00Z")
    scheduled_start: str | None = Field(default=None, description="ISO instant (UTC)")
    scheduled_end: str | None = Field(default=None, description="ISO instant (UTC)")
    customer_name: str = ""
    staff_name: str = ""
    vehicle_label: str = ""
    vendor_id: str | None = None
    vendor_name: str = ""
    location_type: str | None = Field(default=None, description="In-House, Off-Site or Mixed")
    loaner_tag: bool = False
    needs_loaner: bool = Field(default=False, description="Customer asked for a loaner")
    amount: float | None = None
    schedule_state: str = Field(description="unscheduled, scheduled, in_progress, overdue_*")
    schedule_source: str = Field(description="line_items, work_order, legacy_appointment, none")
    status: str = ""
    title: str = ""
    job_number: str | None = None


class AgendaGroupModel(BaseModel):
    """One local day of the agenda."""

    key: str = Field(description="Local day key, YYYY-MM-DD")
    label: str = Field(description="Display header, e.g. 'Tue, Jun 3'")
    items: list[AgendaItemModel] = Field(default_factory=list)


class AgendaResponse(BaseModel):
    """Grouped agenda."""

    groups: list[AgendaGroupModel] = Field(default_factory=list)
    total: int = Field(default=0, description="Rows across all groups")
    debug: dict[str, Any] = Field(default_factory=dict, description="Load diagnostics")
    conflicts: dict[str, bool] | None = Field(
        default=None, description="Vendor conflict flag per item id, when requested"
    )


# ==== Health Check ====


class HealthResponse(BaseModel):
    """Health check result."""

    status: str = Field(description="ok when the app is serving")
    timezone: str = Field(description="Zone day boundaries are computed in")
    timestamp: str = Field(description="ISO timestamp")
