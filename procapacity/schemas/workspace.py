"""Workspace schemas."""

from datetime import date, datetime
from uuid import UUID

from pydantic import BaseModel, Field


class WorkspaceResponse(BaseModel):
    """Schema for workspace response."""

    id: UUID
    name: str
    plan: str
    billing_period: str
    trial_ends_at: datetime | None = None
    subscribed_at: datetime | None = None
    current_seats: int
    included_seats: int
    industry: str | None = None
    onboarding_completed: bool
    default_capacity_hours: int
    warning_threshold: float
    critical_threshold: float
    created_at: datetime

    # Derived trial state
    trial_active: bool = False
    trial_days_remaining: int = 0
    read_only: bool = False

    class Config:
        from_attributes = True


class WorkspaceSettingsUpdate(BaseModel):
    """Schema for updating workspace capacity settings.

    Thresholds are utilization ratios, e.g. 0.8 for 80%.
    """

    name: str | None = Field(None, min_length=2, max_length=255)
    default_capacity_hours: int | None = None
    warning_threshold: float | None = None
    critical_threshold: float | None = None


class UsageItem(BaseModel):
    current: int
    limit: int
    percentage: float


class SeatUsage(BaseModel):
    current: int
    included: int
    max: int
    extra: int


class WorkspaceUsageResponse(BaseModel):
    team_members: UsageItem
    projects: UsageItem
    owner_users: UsageItem
    seats: SeatUsage


class MemberUtilizationSummary(BaseModel):
    team_member_id: UUID
    name: str
    role: str
    capacity_hours: float
    average_utilization: float
    over_capacity_weeks: int


class RecentProject(BaseModel):
    id: UUID
    name: str
    client_name: str | None = None
    status: str
    start_date: date
    end_date: date | None = None
    assignment_count: int
    updated_at: datetime


class DashboardResponse(BaseModel):
    """Schema for the workspace dashboard."""

    active_team_members: int
    active_projects: int
    weeks: list[date]
    utilization: list[MemberUtilizationSummary]
    over_capacity_members: int
    recent_projects: list[RecentProject]
    is_empty: bool
    has_demo_data: bool


class DemoSeedResponse(BaseModel):
    message: str
    team_members: int
    projects: int
    assignments: int
    utilization_preview: list[dict]


class DemoClearResponse(BaseModel):
    message: str
    assignments: int
    projects: int
    team_members: int
