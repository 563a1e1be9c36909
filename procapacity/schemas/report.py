"""Report schemas."""

from datetime import date
from uuid import UUID

from pydantic import BaseModel


class UtilizationRowResponse(BaseModel):
    team_member_id: UUID
    name: str
    role: str
    week_start: date
    billable_hours: float
    non_billable_hours: float
    total_hours: float
    capacity: float
    utilization_percent: float


class UtilizationReportResponse(BaseModel):
    """Schema for the weekly utilization report."""

    start_date: date
    end_date: date
    member_count: int
    roles: list[str]
    rows: list[UtilizationRowResponse]
