"""Workspace endpoints: settings, usage, dashboard and demo data."""

import logging

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from procapacity.api.deps import (
    RequirePermission,
    ensure_allowed,
    get_current_user,
    get_current_workspace,
    require_workspace_manager,
)
from procapacity.core.capacity import MemberLoad, get_weekly_utilization
from procapacity.core.dates import end_of_week, generate_weeks
from procapacity.core.permissions import Permission
from procapacity.core.pricing import get_days_remaining, is_trial_active
from procapacity.db.postgres import get_db
from procapacity.models.sql.assignment import Assignment
from procapacity.models.sql.project import Project
from procapacity.models.sql.team_member import TeamMember
from procapacity.models.sql.user import User
from procapacity.models.sql.workspace import Workspace
from procapacity.schemas.workspace import (
    DashboardResponse,
    DemoClearResponse,
    DemoSeedResponse,
    MemberUtilizationSummary,
    RecentProject,
    WorkspaceResponse,
    WorkspaceSettingsUpdate,
    WorkspaceUsageResponse,
)
from procapacity.services.demo_data import DEMO_TEAM_MEMBERS, clear_demo_data, seed_demo_data
from procapacity.services.plan_limits import get_workspace_usage, has_write_access, is_read_only

logger = logging.getLogger(__name__)

router = APIRouter()

DASHBOARD_WEEKS = 4
RECENT_PROJECTS = 5

require_demo_loader = RequirePermission(
    Permission.WORKSPACE_MANAGE, "Only workspace owners can load demo data"
)
require_demo_clearer = RequirePermission(
    Permission.WORKSPACE_MANAGE, "Only workspace owners can clear demo data"
)


def workspace_response(workspace: Workspace) -> WorkspaceResponse:
    response = WorkspaceResponse.model_validate(workspace)
    response.trial_active = is_trial_active(workspace.trial_ends_at, workspace.subscribed_at)
    response.trial_days_remaining = (
        get_days_remaining(workspace.trial_ends_at) if response.trial_active else 0
    )
    response.read_only = is_read_only(workspace)
    return response


async def _has_demo_data(db: AsyncSession, workspace_id) -> bool:
    names = [m["name"] for m in DEMO_TEAM_MEMBERS]
    result = await db.execute(
        select(func.count())
        .select_from(TeamMember)
        .where(TeamMember.workspace_id == workspace_id, TeamMember.name.in_(names))
    )
    return (result.scalar() or 0) > 0


@router.get(
    "",
    response_model=WorkspaceResponse,
    summary="Get current workspace",
)
async def get_workspace(
    workspace: Workspace = Depends(get_current_workspace),
) -> WorkspaceResponse:
    return workspace_response(workspace)


@router.get(
    "/usage",
    response_model=WorkspaceUsageResponse,
    summary="Usage against plan limits",
)
async def get_usage(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> dict:
    return await get_workspace_usage(db, current_user.workspace_id)


@router.get(
    "/dashboard",
    response_model=DashboardResponse,
    summary="Workspace dashboard",
)
async def get_dashboard(
    workspace: Workspace = Depends(get_current_workspace),
    db: AsyncSession = Depends(get_db),
) -> DashboardResponse:
    """Team utilization for the next four weeks and recently updated projects."""
    weeks = generate_weeks(DASHBOARD_WEEKS)

    result = await db.execute(
        select(TeamMember)
        .where(TeamMember.workspace_id == workspace.id, TeamMember.active.is_(True))
        .order_by(TeamMember.name)
    )
    members = list(result.scalars().all())

    result = await db.execute(
        select(Assignment)
        .join(Project, Project.id == Assignment.project_id)
        .where(
            Assignment.workspace_id == workspace.id,
            Project.active.is_(True),
            Assignment.start_date <= end_of_week(weeks[-1]),
            Assignment.end_date >= weeks[0],
        )
    )
    by_member: dict = {}
    for assignment in result.scalars().all():
        by_member.setdefault(assignment.team_member_id, []).append(assignment)

    utilization = []
    for member in members:
        load = MemberLoad.from_member(member, by_member.get(member.id, []))
        member_weeks = get_weekly_utilization(load, weeks)
        utilization.append(
            MemberUtilizationSummary(
                team_member_id=member.id,
                name=member.name,
                role=member.role,
                capacity_hours=load.capacity_hours,
                average_utilization=sum(w.ratio for w in member_weeks) / len(member_weeks),
                over_capacity_weeks=sum(1 for w in member_weeks if w.ratio > 1),
            )
        )

    active_projects = (
        await db.execute(
            select(func.count())
            .select_from(Project)
            .where(Project.workspace_id == workspace.id, Project.active.is_(True))
        )
    ).scalar() or 0

    assignment_counts = (
        select(Assignment.project_id, func.count(Assignment.id).label("assignment_count"))
        .group_by(Assignment.project_id)
        .subquery()
    )
    result = await db.execute(
        select(Project, func.coalesce(assignment_counts.c.assignment_count, 0))
        .outerjoin(assignment_counts, assignment_counts.c.project_id == Project.id)
        .where(Project.workspace_id == workspace.id, Project.active.is_(True))
        .order_by(Project.updated_at.desc())
        .limit(RECENT_PROJECTS)
    )
    recent = [
        RecentProject(
            id=project.id,
            name=project.name,
            client_name=project.client_name,
            status=project.status,
            start_date=project.start_date,
            end_date=project.end_date,
            assignment_count=count,
            updated_at=project.updated_at,
        )
        for project, count in result.all()
    ]

    return DashboardResponse(
        active_team_members=len(members),
        active_projects=active_projects,
        weeks=weeks,
        utilization=utilization,
        over_capacity_members=sum(1 for u in utilization if u.over_capacity_weeks > 0),
        recent_projects=recent,
        is_empty=not members and active_projects == 0,
        has_demo_data=await _has_demo_data(db, workspace.id),
    )


@router.patch(
    "/settings",
    response_model=WorkspaceResponse,
    summary="Update workspace settings",
)
async def update_settings(
    data: WorkspaceSettingsUpdate,
    current_user: User = Depends(require_workspace_manager),
    workspace: Workspace = Depends(get_current_workspace),
    db: AsyncSession = Depends(get_db),
) -> WorkspaceResponse:
    """Thresholds are ratios: 0.8 means 80%."""
    capacity = data.default_capacity_hours
    if capacity is not None and not 1 <= capacity <= 168:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Capacity must be between 1 and 168 hours",
        )

    warning = (
        data.warning_threshold
        if data.warning_threshold is not None
        else workspace.warning_threshold
    )
    critical = (
        data.critical_threshold
        if data.critical_threshold is not None
        else workspace.critical_threshold
    )
    if data.warning_threshold is not None and not 0.01 <= warning <= 1.0:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Warning threshold must be between 1% and 100%",
        )
    if data.critical_threshold is not None and not 0.01 <= critical <= 2.0:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Critical threshold must be between 1% and 200%",
        )
    if warning >= critical:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Warning threshold must be less than critical threshold",
        )

    if data.name is not None:
        workspace.name = data.name
    if capacity is not None:
        workspace.default_capacity_hours = capacity
    workspace.warning_threshold = warning
    workspace.critical_threshold = critical

    await db.flush()
    await db.refresh(workspace)
    return workspace_response(workspace)


@router.post(
    "/complete-onboarding",
    response_model=WorkspaceResponse,
    summary="Mark onboarding as finished",
)
async def complete_onboarding(
    current_user: User = Depends(require_workspace_manager),
    workspace: Workspace = Depends(get_current_workspace),
    db: AsyncSession = Depends(get_db),
) -> WorkspaceResponse:
    workspace.onboarding_completed = True
    await db.flush()
    await db.refresh(workspace)
    return workspace_response(workspace)


@router.post(
    "/seed-demo",
    response_model=DemoSeedResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Load sample team, projects and assignments",
)
async def seed_demo(
    current_user: User = Depends(require_demo_loader),
    db: AsyncSession = Depends(get_db),
) -> DemoSeedResponse:
    workspace_id = current_user.workspace_id
    ensure_allowed(await has_write_access(db, workspace_id))

    if await _has_demo_data(db, workspace_id):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Demo data has already been loaded",
        )

    summary = await seed_demo_data(db, workspace_id)
    return DemoSeedResponse(
        message="Demo data loaded",
        team_members=summary.team_members,
        projects=summary.projects,
        assignments=summary.assignments,
        utilization_preview=summary.utilization_preview,
    )


@router.post(
    "/clear-demo",
    response_model=DemoClearResponse,
    summary="Remove projects, assignments and members without a login",
)
async def clear_demo(
    current_user: User = Depends(require_demo_clearer),
    db: AsyncSession = Depends(get_db),
) -> DemoClearResponse:
    summary = await clear_demo_data(db, current_user.workspace_id)
    logger.info(f"User {current_user.id} cleared workspace data")
    return DemoClearResponse(
        message="Workspace data cleared",
        assignments=summary.assignments,
        projects=summary.projects,
        team_members=summary.team_members,
    )
