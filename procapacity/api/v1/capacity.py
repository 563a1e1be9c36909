"""Capacity grid, who's-free search and capacity check endpoints."""

from datetime import date
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from procapacity.api.deps import get_current_workspace
from procapacity.core.capacity import (
    AvailableMember,
    MemberLoad,
    capacity_check,
    find_available_members,
    get_weekly_utilization,
    utilization_level,
)
from procapacity.core.dates import (
    add_weeks,
    end_of_week,
    generate_weeks,
    start_of_week,
    utcnow,
)
from procapacity.db.postgres import get_db
from procapacity.models.sql.assignment import Assignment
from procapacity.models.sql.project import Project
from procapacity.models.sql.skill import Skill, TeamMemberSkill
from procapacity.models.sql.team_member import TeamMember
from procapacity.models.sql.workspace import Workspace
from procapacity.schemas.capacity import (
    AvailableMemberResponse,
    CapacityCheckResponse,
    CapacityGridResponse,
    GridAllocation,
    GridCell,
    GridRow,
    WhosFreeRequest,
    WhosFreeResponse,
)

router = APIRouter()


async def _active_members(
    db: AsyncSession, workspace_id: UUID, role: Optional[str] = None
) -> list[TeamMember]:
    query = select(TeamMember).where(
        TeamMember.workspace_id == workspace_id, TeamMember.active.is_(True)
    )
    if role and role != "all":
        query = query.where(TeamMember.role == role)
    result = await db.execute(query.order_by(TeamMember.name))
    return list(result.scalars().all())


async def _assignments_in_window(
    db: AsyncSession,
    workspace_id: UUID,
    window_start: date,
    window_end: date,
    active_projects_only: bool = False,
) -> dict[UUID, list[tuple[Assignment, str]]]:
    query = (
        select(Assignment, Project.name)
        .join(Project, Project.id == Assignment.project_id)
        .where(
            Assignment.workspace_id == workspace_id,
            Assignment.start_date <= window_end,
            Assignment.end_date >= window_start,
        )
    )
    if active_projects_only:
        query = query.where(Project.active.is_(True))

    by_member: dict[UUID, list[tuple[Assignment, str]]] = {}
    for assignment, project_name in (await db.execute(query)).all():
        by_member.setdefault(assignment.team_member_id, []).append((assignment, project_name))
    return by_member


def _available(result: AvailableMember) -> AvailableMemberResponse:
    return AvailableMemberResponse(
        team_member_id=result.member.id,
        name=result.member.name,
        role=result.member.role,
        skills=result.member.skills,
        capacity_hours=result.member.capacity_hours,
        free_hours=result.free_hours,
        utilization=result.utilization,
    )


@router.get(
    "/grid",
    response_model=CapacityGridResponse,
    summary="Team by week utilization grid",
)
async def capacity_grid(
    start_date: Optional[date] = None,
    weeks: int = Query(8, ge=1, le=26),
    role: Optional[str] = None,
    workspace: Workspace = Depends(get_current_workspace),
    db: AsyncSession = Depends(get_db),
) -> CapacityGridResponse:
    week_dates = generate_weeks(weeks, today=start_date)
    members = await _active_members(db, workspace.id, role)
    by_member = await _assignments_in_window(
        db, workspace.id, week_dates[0], end_of_week(week_dates[-1])
    )

    rows = []
    for member in members:
        pairs = by_member.get(member.id, [])
        project_names = {a.id: name for a, name in pairs}
        load = MemberLoad.from_member(member, [a for a, _ in pairs])

        cells = [
            GridCell(
                week_start=week.week_start,
                total_hours=week.total_hours,
                billable_hours=week.billable_hours,
                non_billable_hours=week.non_billable_hours,
                capacity=week.capacity,
                utilization=week.ratio,
                level=utilization_level(
                    week.ratio, workspace.warning_threshold, workspace.critical_threshold
                ),
                allocations=[
                    GridAllocation(
                        assignment_id=a.id,
                        project_id=a.project_id,
                        project_name=project_names.get(a.id, ""),
                        hours_per_week=a.hours_per_week,
                        billable=a.billable,
                    )
                    for a in week.allocations
                ],
            )
            for week in get_weekly_utilization(load, week_dates)
        ]
        rows.append(
            GridRow(
                team_member_id=member.id,
                name=member.name,
                role=member.role,
                skills=list(member.skills or []),
                capacity_hours=member.default_weekly_capacity_hours,
                weeks=cells,
            )
        )

    roles = await db.execute(
        select(TeamMember.role)
        .where(TeamMember.workspace_id == workspace.id, TeamMember.active.is_(True))
        .distinct()
        .order_by(TeamMember.role)
    )

    return CapacityGridResponse(
        weeks=week_dates,
        rows=rows,
        roles=list(roles.scalars().all()),
        warning_threshold=workspace.warning_threshold,
        critical_threshold=workspace.critical_threshold,
    )


@router.post(
    "/whos-free",
    response_model=WhosFreeResponse,
    summary="Find members with free hours in a date range",
)
async def whos_free(
    data: WhosFreeRequest,
    workspace: Workspace = Depends(get_current_workspace),
    db: AsyncSession = Depends(get_db),
) -> WhosFreeResponse:
    week_start = start_of_week(data.week_start)
    week_end = end_of_week(data.week_end)
    members = await _active_members(db, workspace.id)
    by_member = await _assignments_in_window(db, workspace.id, week_start, week_end)

    loads = [
        MemberLoad.from_member(m, [a for a, _ in by_member.get(m.id, [])]) for m in members
    ]
    found = find_available_members(
        loads,
        week_start,
        week_end,
        data.required_hours,
        role=data.role or None,
        skill=data.skill or None,
    )
    return WhosFreeResponse(members=[_available(r) for r in found])


@router.get(
    "/check",
    response_model=CapacityCheckResponse,
    summary="Can the team take on more work?",
)
async def check_capacity(
    hours_per_week: float = Query(20, gt=0, le=10000),
    weeks: int = Query(4, ge=1, le=52),
    skill: Optional[str] = None,
    workspace: Workspace = Depends(get_current_workspace),
    db: AsyncSession = Depends(get_db),
) -> CapacityCheckResponse:
    """Answer whether ``hours_per_week`` can be absorbed over the next ``weeks`` weeks."""
    current_week = start_of_week(utcnow().date())
    members = await _active_members(db, workspace.id)
    by_member = await _assignments_in_window(
        db, workspace.id, current_week, add_weeks(current_week, weeks), active_projects_only=True
    )

    links = await db.execute(
        select(TeamMemberSkill.team_member_id, Skill.name)
        .join(Skill, Skill.id == TeamMemberSkill.skill_id)
        .where(Skill.workspace_id == workspace.id)
    )
    linked: dict[UUID, list[str]] = {}
    for member_id, name in links.all():
        linked.setdefault(member_id, []).append(name)

    loads = [
        MemberLoad.from_member(
            m, [a for a, _ in by_member.get(m.id, [])], extra_skills=linked.get(m.id, [])
        )
        for m in members
    ]
    result = capacity_check(loads, hours_per_week, weeks, skill=skill or None, today=current_week)

    return CapacityCheckResponse(
        verdict=result.verdict,
        hours_per_week=hours_per_week,
        weeks=weeks,
        skill=skill,
        total_available_hours=result.total_available_hours,
        available_members=[_available(r) for r in result.available_members],
    )
