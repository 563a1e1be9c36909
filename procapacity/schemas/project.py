"""Project schemas."""

from datetime import date, datetime
from uuid import UUID

from pydantic import BaseModel, Field, field_validator, model_validator

from procapacity.models.sql.project import BillingCycle, ProjectStatus, ProjectType


class ProjectBase(BaseModel):
    """Base project schema."""

    name: str = Field(..., min_length=2, max_length=255)
    client_name: str | None = Field(None, max_length=255)
    type: ProjectType = ProjectType.PROJECT
    status: ProjectStatus = ProjectStatus.PLANNED
    start_date: date
    end_date: date | None = None
    total_budget_hours: int | None = Field(None, ge=1)
    billing_cycle: BillingCycle | None = None
    required_skills: list[str] = Field(default_factory=list)
    owner_id: UUID | None = None
    notes: str | None = Field(None, max_length=5000)


class ProjectCreate(ProjectBase):
    """Schema for creating a project."""

    @model_validator(mode="after")
    def check_dates(self) -> "ProjectCreate":
        if self.end_date is not None and self.end_date < self.start_date:
            raise ValueError("End date must be after start date")
        return self


class ProjectUpdate(BaseModel):
    """Schema for updating a project. Only provided fields change."""

    name: str | None = Field(None, min_length=2, max_length=255)
    client_name: str | None = Field(None, max_length=255)
    type: ProjectType | None = None
    status: ProjectStatus | None = None
    start_date: date | None = None
    end_date: date | None = None
    total_budget_hours: int | None = Field(None, ge=1)
    billing_cycle: BillingCycle | None = None
    required_skills: list[str] | None = None
    owner_id: UUID | None = None
    notes: str | None = Field(None, max_length=5000)


class ProjectStatusUpdate(BaseModel):
    status: ProjectStatus


class ShiftTimelineRequest(BaseModel):
    """Schema for moving a project and all its assignments by whole weeks."""

    project_id: UUID
    delta_weeks: int

    @field_validator("delta_weeks")
    @classmethod
    def non_zero(cls, v: int) -> int:
        if v == 0:
            raise ValueError("delta_weeks must not be zero")
        return v


class ProjectResponse(BaseModel):
    """Schema for project response."""

    id: UUID
    name: str
    client_name: str | None = None
    type: str
    status: str
    start_date: date
    end_date: date | None = None
    total_budget_hours: int | None = None
    billing_cycle: str | None = None
    required_skills: list[str] = Field(default_factory=list)
    owner_id: UUID | None = None
    notes: str | None = None
    active: bool
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class ProjectHealthResponse(BaseModel):
    status: str
    reasons: list[str]


class ProjectAssignment(BaseModel):
    id: UUID
    team_member_id: UUID
    team_member_name: str
    start_date: date
    end_date: date
    hours_per_week: float
    billable: bool
    role_on_project: str | None = None


class ProjectSummary(ProjectResponse):
    """Project in a list, with its health and assignment count."""

    assignment_count: int = 0
    health: ProjectHealthResponse | None = None


class ProjectDetailResponse(ProjectResponse):
    """Schema for project detail with assignments and health."""

    assignments: list[ProjectAssignment] = Field(default_factory=list)
    allocated_hours: float = 0
    health: ProjectHealthResponse


class ProjectListResponse(BaseModel):
    """Schema for paginated project list."""

    items: list[ProjectSummary]
    total: int
    page: int
    page_size: int
    pages: int


class ShiftTimelineResponse(BaseModel):
    success: bool
    message: str
