"""Team member schemas."""

from datetime import date, datetime
from uuid import UUID

from pydantic import BaseModel, Field, field_validator

from procapacity.schemas.skill import MemberSkillResponse


def _clean_skills(v: list[str] | None) -> list[str] | None:
    if v is None:
        return v
    return list(dict.fromkeys(s.strip() for s in v if s and s.strip()))


class TeamMemberCreate(BaseModel):
    """Schema for creating a team member."""

    name: str = Field(..., min_length=2, max_length=255)
    title: str | None = Field(None, max_length=255)
    role: str = Field(..., min_length=1, max_length=255)
    skills: list[str] = Field(default_factory=list)
    default_weekly_capacity_hours: int = Field(40, ge=1, le=168)

    @field_validator("skills")
    @classmethod
    def clean_skills(cls, v: list[str]) -> list[str]:
        return _clean_skills(v)


class TeamMemberUpdate(BaseModel):
    """Schema for updating a team member."""

    name: str | None = Field(None, min_length=2, max_length=255)
    title: str | None = Field(None, max_length=255)
    role: str | None = Field(None, min_length=1, max_length=255)
    skills: list[str] | None = None
    default_weekly_capacity_hours: int | None = Field(None, ge=1, le=168)
    active: bool | None = None

    @field_validator("skills")
    @classmethod
    def clean_skills(cls, v: list[str] | None) -> list[str] | None:
        return _clean_skills(v)


class TeamMemberResponse(BaseModel):
    """Schema for team member response."""

    id: UUID
    name: str
    title: str | None = None
    role: str
    skills: list[str] = Field(default_factory=list)
    default_weekly_capacity_hours: int
    active: bool
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class MemberAssignment(BaseModel):
    id: UUID
    project_id: UUID
    project_name: str
    start_date: date
    end_date: date
    hours_per_week: float
    billable: bool


class WeekUtilization(BaseModel):
    week_start: date
    total_hours: float
    billable_hours: float
    non_billable_hours: float
    capacity: float
    utilization: float
    level: str


class TeamMemberDetailResponse(TeamMemberResponse):
    """Schema for a team member with skills, assignments and upcoming utilization."""

    skill_details: list[MemberSkillResponse] = Field(default_factory=list)
    assignments: list[MemberAssignment] = Field(default_factory=list)
    utilization: list[WeekUtilization] = Field(default_factory=list)
    has_login: bool = False


class TeamMemberListResponse(BaseModel):
    """Schema for paginated team member list."""

    items: list[TeamMemberResponse]
    total: int
    page: int
    page_size: int
    pages: int
