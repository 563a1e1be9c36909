"""Assignment endpoints."""

from datetime import date
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from procapacity.api.deps import ensure_allowed, get_current_user, require_assignment_manager
from procapacity.core.capacity import MemberLoad, OverAllocationResult, check_over_allocation
from procapacity.db.postgres import get_db
from procapacity.models.sql.assignment import Assignment
from procapacity.models.sql.project import Project
from procapacity.models.sql.team_member import TeamMember
from procapacity.models.sql.user import User
from procapacity.schemas.assignment import (
    AffectedWeekResponse,
    AssignmentCheckRequest,
    AssignmentCreate,
    AssignmentListResponse,
    AssignmentResponse,
    AssignmentUpdate,
    AssignmentWithWarning,
    OverAllocationResponse,
)
from procapacity.services.plan_limits import has_write_access

router = APIRouter()


async def _member_load(db: AsyncSession, workspace_id: UUID, member_id: UUID) -> MemberLoad:
    result = await db.execute(
        select(TeamMember).where(
            TeamMember.id == member_id,
            TeamMember.workspace_id == workspace_id,
            TeamMember.active.is_(True),
        )
    )
    member = result.scalar_one_or_none()
    if member is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Team member not found",
        )

    assignments = await db.execute(select(Assignment).where(Assignment.team_member_id == member.id))
    return MemberLoad.from_member(member, assignments.scalars().all())


async def _get_assignment(db: AsyncSession, workspace_id: UUID, assignment_id: UUID) -> Assignment:
    result = await db.execute(
        select(Assignment).where(
            Assignment.id == assignment_id, Assignment.workspace_id == workspace_id
        )
    )
    assignment = result.scalar_one_or_none()
    if assignment is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Assignment not found",
        )
    return assignment


def _over_allocation(result: OverAllocationResult) -> OverAllocationResponse:
    return OverAllocationResponse(
        is_over_allocated=result.is_over_allocated,
        max_utilization=result.max_utilization,
        affected_weeks=[
            AffectedWeekResponse(
                week_start=w.week_start, utilization=w.utilization, total_hours=w.total_hours
            )
            for w in result.affected_weeks
        ],
    )


@router.get(
    "",
    response_model=AssignmentListResponse,
    summary="List assignments",
)
async def list_assignments(
    project_id: Optional[UUID] = None,
    team_member_id: Optional[UUID] = None,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> AssignmentListResponse:
    """Assignments in the workspace, optionally limited to those overlapping a date range."""
    query = select(Assignment).where(Assignment.workspace_id == current_user.workspace_id)

    if project_id:
        query = query.where(Assignment.project_id == project_id)
    if team_member_id:
        query = query.where(Assignment.team_member_id == team_member_id)
    if start_date:
        query = query.where(Assignment.end_date >= start_date)
    if end_date:
        query = query.where(Assignment.start_date <= end_date)

    result = await db.execute(query.order_by(Assignment.start_date))
    items = list(result.scalars().all())
    return AssignmentListResponse(items=items, total=len(items))


@router.post(
    "",
    response_model=AssignmentWithWarning,
    status_code=status.HTTP_201_CREATED,
    summary="Create an assignment",
)
async def create_assignment(
    data: AssignmentCreate,
    current_user: User = Depends(require_assignment_manager),
    db: AsyncSession = Depends(get_db),
) -> AssignmentWithWarning:
    """Save the assignment and report any weeks it pushes over capacity."""
    workspace_id = current_user.workspace_id
    ensure_allowed(await has_write_access(db, workspace_id))

    result = await db.execute(
        select(Project.id).where(
            Project.id == data.project_id,
            Project.workspace_id == workspace_id,
            Project.active.is_(True),
        )
    )
    if result.scalar_one_or_none() is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Project not found",
        )

    load = await _member_load(db, workspace_id, data.team_member_id)
    over = check_over_allocation(load, data.start_date, data.end_date, data.hours_per_week)

    assignment = Assignment(workspace_id=workspace_id, **data.model_dump())
    db.add(assignment)
    await db.flush()
    await db.refresh(assignment)

    return AssignmentWithWarning(
        **AssignmentResponse.model_validate(assignment).model_dump(),
        over_allocation=_over_allocation(over),
    )


@router.post(
    "/check",
    response_model=OverAllocationResponse,
    summary="Preview over-allocation for a proposed assignment",
)
async def check_assignment(
    data: AssignmentCheckRequest,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> OverAllocationResponse:
    load = await _member_load(db, current_user.workspace_id, data.team_member_id)
    return _over_allocation(
        check_over_allocation(
            load,
            data.start_date,
            data.end_date,
            data.hours_per_week,
            exclude_id=data.exclude_assignment_id,
        )
    )


@router.patch(
    "/{assignment_id}",
    response_model=AssignmentWithWarning,
    summary="Update an assignment",
)
async def update_assignment(
    assignment_id: UUID,
    data: AssignmentUpdate,
    current_user: User = Depends(require_assignment_manager),
    db: AsyncSession = Depends(get_db),
) -> AssignmentWithWarning:
    workspace_id = current_user.workspace_id
    ensure_allowed(await has_write_access(db, workspace_id))
    assignment = await _get_assignment(db, workspace_id, assignment_id)

    updates = {k: v for k, v in data.model_dump(exclude_unset=True).items() if v is not None}
    for field in ("role_on_project", "notes"):
        if field in data.model_fields_set:
            updates[field] = getattr(data, field)

    start = updates.get("start_date", assignment.start_date)
    end = updates.get("end_date", assignment.end_date)
    if end < start:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="End date must be after start date",
        )

    member_id = updates.get("team_member_id", assignment.team_member_id)
    load = await _member_load(db, workspace_id, member_id)
    over = check_over_allocation(
        load,
        start,
        end,
        updates.get("hours_per_week", assignment.hours_per_week),
        exclude_id=assignment.id,
    )

    for field, value in updates.items():
        setattr(assignment, field, value)
    await db.flush()
    await db.refresh(assignment)

    return AssignmentWithWarning(
        **AssignmentResponse.model_validate(assignment).model_dump(),
        over_allocation=_over_allocation(over),
    )


@router.delete(
    "/{assignment_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete an assignment",
)
async def delete_assignment(
    assignment_id: UUID,
    current_user: User = Depends(require_assignment_manager),
    db: AsyncSession = Depends(get_db),
) -> None:
    assignment = await _get_assignment(db, current_user.workspace_id, assignment_id)
    await db.delete(assignment)
    await db.flush()
