"""Assignment schemas."""

from datetime import date, datetime
from uuid import UUID

from pydantic import BaseModel, Field, model_validator


class AssignmentCreate(BaseModel):
    """Schema for creating an assignment."""

    project_id: UUID
    team_member_id: UUID
    start_date: date
    end_date: date
    hours_per_week: float = Field(..., ge=0.5, le=168)
    billable: bool = True
    role_on_project: str | None = Field(None, max_length=255)
    notes: str | None = Field(None, max_length=5000)

    @model_validator(mode="after")
    def check_dates(self) -> "AssignmentCreate":
        if self.end_date < self.start_date:
            raise ValueError("End date must be after start date")
        return self


class AssignmentUpdate(BaseModel):
    """Schema for updating an assignment."""

    team_member_id: UUID | None = None
    start_date: date | None = None
    end_date: date | None = None
    hours_per_week: float | None = Field(None, ge=0.5, le=168)
    billable: bool | None = None
    role_on_project: str | None = Field(None, max_length=255)
    notes: str | None = Field(None, max_length=5000)


class AssignmentResponse(BaseModel):
    """Schema for assignment response."""

    id: UUID
    project_id: UUID
    team_member_id: UUID
    start_date: date
    end_date: date
    hours_per_week: float
    billable: bool
    role_on_project: str | None = None
    notes: str | None = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class AffectedWeekResponse(BaseModel):
    week_start: date
    utilization: float
    total_hours: float


class OverAllocationResponse(BaseModel):
    is_over_allocated: bool
    max_utilization: float
    affected_weeks: list[AffectedWeekResponse]


class AssignmentWithWarning(AssignmentResponse):
    """Saved assignment plus any over-allocation it causes."""

    over_allocation: OverAllocationResponse


class AssignmentCheckRequest(BaseModel):
    """Schema for previewing over-allocation before saving."""

    team_member_id: UUID
    start_date: date
    end_date: date
    hours_per_week: float = Field(..., ge=0.5, le=168)
    exclude_assignment_id: UUID | None = None

    @model_validator(mode="after")
    def check_dates(self) -> "AssignmentCheckRequest":
        if self.end_date < self.start_date:
            raise ValueError("End date must be after start date")
        return self


class AssignmentListResponse(BaseModel):
    items: list[AssignmentResponse]
    total: int
