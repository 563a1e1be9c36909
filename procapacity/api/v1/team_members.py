"""Team member endpoints."""

from math import ceil
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from procapacity.api.deps import (
    ensure_allowed,
    get_current_user,
    get_current_workspace,
    require_team_manager,
)
from procapacity.core.capacity import MemberLoad, get_weekly_utilization, utilization_level
from procapacity.core.dates import generate_weeks
from procapacity.db.postgres import get_db
from procapacity.models.sql.assignment import Assignment
from procapacity.models.sql.project import Project
from procapacity.models.sql.skill import Proficiency, Skill, TeamMemberSkill
from procapacity.models.sql.team_member import TeamMember
from procapacity.models.sql.user import User
from procapacity.models.sql.workspace import Workspace
from procapacity.schemas.skill import MemberSkillAssign, MemberSkillResponse, MemberSkillsReplace
from procapacity.schemas.team import (
    MemberAssignment,
    TeamMemberCreate,
    TeamMemberDetailResponse,
    TeamMemberListResponse,
    TeamMemberResponse,
    TeamMemberUpdate,
    WeekUtilization,
)
from procapacity.services import skills as skill_service
from procapacity.services.plan_limits import can_add_team_member, has_write_access

router = APIRouter()

UTILIZATION_WEEKS = 8


async def _get_member(db: AsyncSession, workspace_id: UUID, member_id: UUID) -> TeamMember:
    result = await db.execute(
        select(TeamMember).where(TeamMember.id == member_id, TeamMember.workspace_id == workspace_id)
    )
    member = result.scalar_one_or_none()
    if member is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Team member not found",
        )
    return member


async def _skill_details(db: AsyncSession, member_id: UUID) -> list[MemberSkillResponse]:
    result = await db.execute(
        select(TeamMemberSkill, Skill)
        .join(Skill, Skill.id == TeamMemberSkill.skill_id)
        .where(TeamMemberSkill.team_member_id == member_id)
        .order_by(Skill.name)
    )
    return [
        MemberSkillResponse(
            skill_id=skill.id,
            name=skill.name,
            category=skill.category,
            proficiency=link.proficiency,
        )
        for link, skill in result.all()
    ]


async def _set_skills_by_name(
    db: AsyncSession, workspace_id: UUID, member_id: UUID, names: list[str]
) -> None:
    """Link the member to exactly these skill names, keeping known proficiencies."""
    records = await skill_service.ensure_skills(db, workspace_id, names)
    current = await db.execute(
        select(TeamMemberSkill.skill_id, TeamMemberSkill.proficiency).where(
            TeamMemberSkill.team_member_id == member_id
        )
    )
    proficiencies = dict(current.all())
    await skill_service.replace_member_skills(
        db,
        workspace_id,
        member_id,
        [
            (skill.id, proficiencies.get(skill.id, Proficiency.PROFICIENT.value))
            for skill in records.values()
        ],
    )


def _skill_error(e: Exception) -> HTTPException:
    if isinstance(e, skill_service.SkillNotFoundError):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


@router.get(
    "",
    response_model=TeamMemberListResponse,
    summary="List team members",
)
async def list_team_members(
    page: int = Query(1, ge=1),
    page_size: int = Query(50, ge=1, le=200),
    search: Optional[str] = None,
    role: Optional[str] = None,
    include_inactive: bool = False,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> TeamMemberListResponse:
    query = select(TeamMember).where(TeamMember.workspace_id == current_user.workspace_id)

    if not include_inactive:
        query = query.where(TeamMember.active.is_(True))
    if role:
        query = query.where(TeamMember.role == role)
    if search:
        query = query.where(TeamMember.name.ilike(f"%{search}%"))

    count_query = select(func.count()).select_from(query.subquery())
    total = (await db.execute(count_query)).scalar() or 0

    query = query.order_by(TeamMember.name).offset((page - 1) * page_size).limit(page_size)
    result = await db.execute(query)

    return TeamMemberListResponse(
        items=list(result.scalars().all()),
        total=total,
        page=page,
        page_size=page_size,
        pages=ceil(total / page_size) if total > 0 else 1,
    )


@router.post(
    "",
    response_model=TeamMemberResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a team member",
)
async def create_team_member(
    data: TeamMemberCreate,
    current_user: User = Depends(require_team_manager),
    db: AsyncSession = Depends(get_db),
) -> TeamMember:
    """Add a person to the roster. Counts against the plan's team member limit."""
    ensure_allowed(await can_add_team_member(db, current_user.workspace_id))

    member = TeamMember(
        workspace_id=current_user.workspace_id,
        name=data.name,
        title=data.title,
        role=data.role,
        skills=[],
        default_weekly_capacity_hours=data.default_weekly_capacity_hours,
    )
    db.add(member)
    await db.flush()

    if data.skills:
        await _set_skills_by_name(db, current_user.workspace_id, member.id, data.skills)

    await db.refresh(member)
    return member


@router.get(
    "/{member_id}",
    response_model=TeamMemberDetailResponse,
    summary="Get team member details",
)
async def get_team_member(
    member_id: UUID,
    workspace: Workspace = Depends(get_current_workspace),
    db: AsyncSession = Depends(get_db),
) -> TeamMemberDetailResponse:
    """Team member with skills, assignments and utilization for the next 8 weeks."""
    member = await _get_member(db, workspace.id, member_id)

    result = await db.execute(
        select(Assignment, Project.name)
        .join(Project, Project.id == Assignment.project_id)
        .where(Assignment.team_member_id == member.id)
        .order_by(Assignment.start_date)
    )
    rows = result.all()
    assignments = [a for a, _ in rows]

    load = MemberLoad.from_member(member, assignments)
    utilization = [
        WeekUtilization(
            week_start=week.week_start,
            total_hours=week.total_hours,
            billable_hours=week.billable_hours,
            non_billable_hours=week.non_billable_hours,
            capacity=week.capacity,
            utilization=week.ratio,
            level=utilization_level(
                week.ratio, workspace.warning_threshold, workspace.critical_threshold
            ),
        )
        for week in get_weekly_utilization(load, generate_weeks(UTILIZATION_WEEKS))
    ]

    login = await db.execute(select(User.id).where(User.team_member_id == member.id))

    return TeamMemberDetailResponse(
        **TeamMemberResponse.model_validate(member).model_dump(),
        skill_details=await _skill_details(db, member.id),
        assignments=[
            MemberAssignment(
                id=a.id,
                project_id=a.project_id,
                project_name=project_name,
                start_date=a.start_date,
                end_date=a.end_date,
                hours_per_week=a.hours_per_week,
                billable=a.billable,
            )
            for a, project_name in rows
        ],
        utilization=utilization,
        has_login=login.scalar_one_or_none() is not None,
    )


@router.patch(
    "/{member_id}",
    response_model=TeamMemberResponse,
    summary="Update a team member",
)
async def update_team_member(
    member_id: UUID,
    data: TeamMemberUpdate,
    current_user: User = Depends(require_team_manager),
    db: AsyncSession = Depends(get_db),
) -> TeamMember:
    workspace_id = current_user.workspace_id
    ensure_allowed(await has_write_access(db, workspace_id))
    member = await _get_member(db, workspace_id, member_id)

    if data.active and not member.active:
        ensure_allowed(await can_add_team_member(db, workspace_id))

    if data.name is not None:
        member.name = data.name
    if data.title is not None:
        member.title = data.title or None
    if data.role is not None:
        member.role = data.role
    if data.default_weekly_capacity_hours is not None:
        member.default_weekly_capacity_hours = data.default_weekly_capacity_hours
    if data.active is not None:
        member.active = data.active
    await db.flush()

    if data.skills is not None:
        await _set_skills_by_name(db, workspace_id, member.id, data.skills)

    await db.refresh(member)
    return member


@router.delete(
    "/{member_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Deactivate a team member",
)
async def delete_team_member(
    member_id: UUID,
    current_user: User = Depends(require_team_manager),
    db: AsyncSession = Depends(get_db),
) -> None:
    """Soft delete: the member and their history are kept with active=false."""
    member = await _get_member(db, current_user.workspace_id, member_id)
    member.active = False
    await db.flush()


@router.put(
    "/{member_id}/skills",
    response_model=list[MemberSkillResponse],
    summary="Replace a team member's skills",
)
async def replace_team_member_skills(
    member_id: UUID,
    data: MemberSkillsReplace,
    current_user: User = Depends(require_team_manager),
    db: AsyncSession = Depends(get_db),
) -> list[MemberSkillResponse]:
    try:
        await skill_service.replace_member_skills(
            db,
            current_user.workspace_id,
            member_id,
            [(item.skill_id, item.proficiency.value) for item in data.skills],
        )
    except (skill_service.SkillNotFoundError, skill_service.SkillValidationError) as e:
        raise _skill_error(e)
    return await _skill_details(db, member_id)


@router.post(
    "/{member_id}/skills/{skill_id}",
    response_model=MemberSkillResponse,
    summary="Assign a skill to a team member",
)
async def assign_team_member_skill(
    member_id: UUID,
    skill_id: UUID,
    data: MemberSkillAssign,
    current_user: User = Depends(require_team_manager),
    db: AsyncSession = Depends(get_db),
) -> MemberSkillResponse:
    try:
        link = await skill_service.assign_skill(
            db, current_user.workspace_id, member_id, skill_id, data.proficiency.value
        )
        skill = await skill_service.get_skill(db, current_user.workspace_id, skill_id)
    except (skill_service.SkillNotFoundError, skill_service.SkillValidationError) as e:
        raise _skill_error(e)

    return MemberSkillResponse(
        skill_id=skill.id,
        name=skill.name,
        category=skill.category,
        proficiency=link.proficiency,
    )


@router.delete(
    "/{member_id}/skills/{skill_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Remove a skill from a team member",
)
async def remove_team_member_skill(
    member_id: UUID,
    skill_id: UUID,
    current_user: User = Depends(require_team_manager),
    db: AsyncSession = Depends(get_db),
) -> None:
    try:
        await skill_service.remove_skill(db, current_user.workspace_id, member_id, skill_id)
    except (skill_service.SkillNotFoundError, skill_service.SkillValidationError) as e:
        raise _skill_error(e)
