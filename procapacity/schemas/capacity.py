"""Capacity grid and availability schemas."""

from datetime import date
from uuid import UUID

from pydantic import BaseModel, Field, model_validator


class GridAllocation(BaseModel):
    assignment_id: UUID
    project_id: UUID
    project_name: str
    hours_per_week: float
    billable: bool


class GridCell(BaseModel):
    week_start: date
    total_hours: float
    billable_hours: float
    non_billable_hours: float
    capacity: float
    utilization: float
    level: str
    allocations: list[GridAllocation] = Field(default_factory=list)


class GridRow(BaseModel):
    team_member_id: UUID
    name: str
    role: str
    skills: list[str]
    capacity_hours: int
    weeks: list[GridCell]


class CapacityGridResponse(BaseModel):
    """Schema for the team by week capacity grid."""

    weeks: list[date]
    rows: list[GridRow]
    roles: list[str]
    warning_threshold: float
    critical_threshold: float


class WhosFreeRequest(BaseModel):
    """Schema for searching members with free hours in a date range."""

    week_start: date
    week_end: date
    required_hours: int = Field(..., ge=1, le=168)
    role: str | None = None
    skill: str | None = None

    @model_validator(mode="after")
    def check_range(self) -> "WhosFreeRequest":
        if self.week_end < self.week_start:
            raise ValueError("End date must be after start date")
        return self


class AvailableMemberResponse(BaseModel):
    team_member_id: UUID
    name: str
    role: str
    skills: list[str]
    capacity_hours: float
    free_hours: float
    utilization: float


class WhosFreeResponse(BaseModel):
    members: list[AvailableMemberResponse]


class CapacityCheckResponse(BaseModel):
    """Schema for the "can we take this on" answer."""

    verdict: str
    hours_per_week: float
    weeks: int
    skill: str | None = None
    total_available_hours: float
    available_members: list[AvailableMemberResponse]
