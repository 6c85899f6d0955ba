from pydantic import BaseModel, Field
from typing import Optional

from engtrack.constants import DEFAULT_WEEKLY_CAPACITY, MAX_LEAVE_DAYS


class TimeEntry(BaseModel):
    """One project row of a user's week.

    ``hours`` is authoritative for persistence and reporting. ``percentage`` is
    only meaningful for work projects and ``days`` only for leave projects.
    """
    project_id: str
    percentage: float = 0
    days: float = 0
    hours: float = 0


class ProjectOut(BaseModel):
    id: str
    name: str
    category: str

    model_config = {"from_attributes": True}


class EntryInput(BaseModel):
    project_id: str = Field(..., min_length=1, max_length=64)
    percentage: float = Field(0, ge=0, le=100)
    days: float = Field(0, ge=0, le=MAX_LEAVE_DAYS, multiple_of=0.5)


class WeekSaveRequest(BaseModel):
    capacity: float = Field(DEFAULT_WEEKLY_CAPACITY, ge=0, le=168)
    entries: list[EntryInput]


class AllocationStatus(BaseModel):
    total_percentage: float
    leave_hours: float
    work_hours: float
    total_hours: float
    available_work_hours: float
    allocation_valid: bool


class WeekView(BaseModel):
    user_id: str
    year: int
    week: int
    capacity: float
    entries: list[TimeEntry]
    submitted: bool
    prefilled: bool = False
    work_locked: bool = False
    allocation: AllocationStatus


class SaveResponse(BaseModel):
    ok: bool
    rows_written: int
    allocation: AllocationStatus
    warning: Optional[str] = None


class PreferredProjectsUpdate(BaseModel):
    project_ids: list[str]
