"""Project endpoints."""

import logging
from math import ceil
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from procapacity.api.deps import ensure_allowed, get_current_user, require_project_manager
from procapacity.core.dates import add_weeks
from procapacity.core.project_health import HealthAssignment, calculate_project_health
from procapacity.db.postgres import get_db
from procapacity.models.sql.assignment import Assignment
from procapacity.models.sql.project import Project, ProjectStatus
from procapacity.models.sql.team_member import TeamMember
from procapacity.models.sql.user import User
from procapacity.schemas.project import (
    ProjectAssignment,
    ProjectCreate,
    ProjectDetailResponse,
    ProjectHealthResponse,
    ProjectListResponse,
    ProjectResponse,
    ProjectStatusUpdate,
    ProjectSummary,
    ProjectUpdate,
    ShiftTimelineRequest,
    ShiftTimelineResponse,
)
from procapacity.services.plan_limits import can_add_project, has_write_access

logger = logging.getLogger(__name__)

router = APIRouter()


async def _get_project(
    db: AsyncSession, workspace_id: UUID, project_id: UUID, active_only: bool = True
) -> Project:
    query = select(Project).where(Project.id == project_id, Project.workspace_id == workspace_id)
    if active_only:
        query = query.where(Project.active.is_(True))
    result = await db.execute(query)
    project = result.scalar_one_or_none()

    if project is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Project not found",
        )
    return project


async def _check_owner(db: AsyncSession, workspace_id: UUID, owner_id: Optional[UUID]) -> None:
    if owner_id is None:
        return
    result = await db.execute(
        select(User.id).where(User.id == owner_id, User.workspace_id == workspace_id)
    )
    if result.scalar_one_or_none() is None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Project owner not found in workspace",
        )


async def _assignment_rows(db: AsyncSession, project_ids: list[UUID]) -> list[tuple]:
    if not project_ids:
        return []
    result = await db.execute(
        select(Assignment, TeamMember.name, TeamMember.skills)
        .join(TeamMember, TeamMember.id == Assignment.team_member_id)
        .where(Assignment.project_id.in_(project_ids))
        .order_by(Assignment.start_date)
    )
    return list(result.all())


def _health(project: Project, rows: list[tuple]) -> ProjectHealthResponse:
    health = calculate_project_health(
        project,
        [
            HealthAssignment(
                hours_per_week=a.hours_per_week,
                start_date=a.start_date,
                end_date=a.end_date,
                member_skills=list(skills or []),
            )
            for a, _, skills in rows
        ],
    )
    return ProjectHealthResponse(status=health.status, reasons=health.reasons)


@router.get(
    "",
    response_model=ProjectListResponse,
    summary="List projects",
)
async def list_projects(
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    search: Optional[str] = None,
    project_status: Optional[ProjectStatus] = Query(None, alias="status"),
    include_inactive: bool = False,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> ProjectListResponse:
    """List workspace projects with assignment counts and health."""
    query = select(Project).where(Project.workspace_id == current_user.workspace_id)

    if not include_inactive:
        query = query.where(Project.active.is_(True))
    if project_status is not None:
        query = query.where(Project.status == project_status.value)
    if search:
        query = query.where(
            Project.name.ilike(f"%{search}%") | Project.client_name.ilike(f"%{search}%")
        )

    count_query = select(func.count()).select_from(query.subquery())
    total = (await db.execute(count_query)).scalar() or 0

    query = query.order_by(Project.updated_at.desc())
    query = query.offset((page - 1) * page_size).limit(page_size)
    projects = list((await db.execute(query)).scalars().all())

    by_project: dict[UUID, list[tuple]] = {}
    for row in await _assignment_rows(db, [p.id for p in projects]):
        by_project.setdefault(row[0].project_id, []).append(row)

    items = []
    for project in projects:
        rows = by_project.get(project.id, [])
        items.append(
            ProjectSummary(
                **ProjectResponse.model_validate(project).model_dump(),
                assignment_count=len(rows),
                health=_health(project, rows),
            )
        )

    return ProjectListResponse(
        items=items,
        total=total,
        page=page,
        page_size=page_size,
        pages=ceil(total / page_size) if total > 0 else 1,
    )


@router.post(
    "",
    response_model=ProjectResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a new project",
)
async def create_project(
    data: ProjectCreate,
    current_user: User = Depends(require_project_manager),
    db: AsyncSession = Depends(get_db),
) -> Project:
    ensure_allowed(await can_add_project(db, current_user.workspace_id))
    await _check_owner(db, current_user.workspace_id, data.owner_id)

    project = Project(
        workspace_id=current_user.workspace_id,
        name=data.name,
        client_name=data.client_name,
        type=data.type.value,
        status=data.status.value,
        start_date=data.start_date,
        end_date=data.end_date,
        total_budget_hours=data.total_budget_hours,
        billing_cycle=data.billing_cycle.value if data.billing_cycle else None,
        required_skills=data.required_skills,
        owner_id=data.owner_id or current_user.id,
        notes=data.notes,
    )
    db.add(project)
    await db.flush()
    await db.refresh(project)
    return project


@router.post(
    "/shift-timeline",
    response_model=ShiftTimelineResponse,
    summary="Shift a project and its assignments by whole weeks",
)
async def shift_timeline(
    data: ShiftTimelineRequest,
    current_user: User = Depends(require_project_manager),
    db: AsyncSession = Depends(get_db),
) -> ShiftTimelineResponse:
    ensure_allowed(await has_write_access(db, current_user.workspace_id))
    project = await _get_project(db, current_user.workspace_id, data.project_id)

    project.start_date = add_weeks(project.start_date, data.delta_weeks)
    if project.end_date is not None:
        project.end_date = add_weeks(project.end_date, data.delta_weeks)

    result = await db.execute(select(Assignment).where(Assignment.project_id == project.id))
    assignments = result.scalars().all()
    for assignment in assignments:
        assignment.start_date = add_weeks(assignment.start_date, data.delta_weeks)
        assignment.end_date = add_weeks(assignment.end_date, data.delta_weeks)
    await db.flush()

    return ShiftTimelineResponse(
        success=True,
        message=f"Shifted {len(assignments) + 1} records by {data.delta_weeks} weeks",
    )


@router.get(
    "/{project_id}",
    response_model=ProjectDetailResponse,
    summary="Get project details",
)
async def get_project(
    project_id: UUID,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> ProjectDetailResponse:
    """Project with its assignments, allocated hours and health."""
    project = await _get_project(db, current_user.workspace_id, project_id, active_only=False)
    rows = await _assignment_rows(db, [project.id])

    allocated = 0.0
    for a, _, _ in rows:
        weeks = max(1, (a.end_date - a.start_date).days // 7 + 1)
        allocated += a.hours_per_week * weeks

    return ProjectDetailResponse(
        **ProjectResponse.model_validate(project).model_dump(),
        assignments=[
            ProjectAssignment(
                id=a.id,
                team_member_id=a.team_member_id,
                team_member_name=name,
                start_date=a.start_date,
                end_date=a.end_date,
                hours_per_week=a.hours_per_week,
                billable=a.billable,
                role_on_project=a.role_on_project,
            )
            for a, name, _ in rows
        ],
        allocated_hours=allocated,
        health=_health(project, rows),
    )


@router.patch(
    "/{project_id}",
    response_model=ProjectResponse,
    summary="Update a project",
)
async def update_project(
    project_id: UUID,
    data: ProjectUpdate,
    current_user: User = Depends(require_project_manager),
    db: AsyncSession = Depends(get_db),
) -> Project:
    ensure_allowed(await has_write_access(db, current_user.workspace_id))
    project = await _get_project(db, current_user.workspace_id, project_id)

    updates = data.model_dump(exclude_unset=True)
    if "owner_id" in updates:
        await _check_owner(db, current_user.workspace_id, updates["owner_id"])

    start = updates.get("start_date", project.start_date)
    end = updates.get("end_date", project.end_date)
    if end is not None and end < start:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="End date must be after start date",
        )

    for field, value in updates.items():
        if field in ("name", "type", "status", "start_date") and value is None:
            continue
        if field == "required_skills" and value is None:
            value = []
        setattr(project, field, value.value if hasattr(value, "value") else value)

    await db.flush()
    await db.refresh(project)
    return project


@router.delete(
    "/{project_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Archive a project",
)
async def delete_project(
    project_id: UUID,
    current_user: User = Depends(require_project_manager),
    db: AsyncSession = Depends(get_db),
) -> None:
    """Soft delete (active=false)."""
    project = await _get_project(db, current_user.workspace_id, project_id)
    project.active = False
    await db.flush()


@router.patch(
    "/{project_id}/status",
    response_model=ProjectResponse,
    summary="Change project status",
)
async def update_project_status(
    project_id: UUID,
    data: ProjectStatusUpdate,
    current_user: User = Depends(require_project_manager),
    db: AsyncSession = Depends(get_db),
) -> Project:
    project = await _get_project(db, current_user.workspace_id, project_id)
    project.status = data.status.value
    await db.flush()
    await db.refresh(project)
    return project


@router.post(
    "/{project_id}/duplicate",
    response_model=ProjectResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Duplicate a project",
)
async def duplicate_project(
    project_id: UUID,
    current_user: User = Depends(require_project_manager),
    db: AsyncSession = Depends(get_db),
) -> Project:
    """Copy the project's details into a new PLANNED project without assignments."""
    source = await _get_project(db, current_user.workspace_id, project_id)
    ensure_allowed(await can_add_project(db, current_user.workspace_id))

    copy = Project(
        workspace_id=source.workspace_id,
        name=f"{source.name} (Copy)",
        client_name=source.client_name,
        type=source.type,
        status=ProjectStatus.PLANNED.value,
        start_date=source.start_date,
        end_date=source.end_date,
        total_budget_hours=source.total_budget_hours,
        billing_cycle=source.billing_cycle,
        required_skills=list(source.required_skills or []),
        owner_id=source.owner_id,
        notes=source.notes,
    )
    db.add(copy)
    await db.flush()
    await db.refresh(copy)

    logger.info(f"Project {source.id} duplicated as {copy.id}")
    return copy
