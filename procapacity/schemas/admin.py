"""Admin maintenance schemas."""

from uuid import UUID

from pydantic import BaseModel


class WorkspaceSeatBackfill(BaseModel):
    workspace_id: UUID
    previous_seats: int
    current_seats: int
    included_seats: int


class BackfillSeatsResponse(BaseModel):
    """Schema for the seat backfill summary."""

    workspaces: int
    updated: int
    results: list[WorkspaceSeatBackfill]
