"""Plan limit and trial enforcement."""

from dataclasses import dataclass
from typing import Optional
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from procapacity.core.permissions import Role
from procapacity.core.pricing import get_next_plan, get_plan, is_trial_expired
from procapacity.models.sql.project import Project
from procapacity.models.sql.team_member import TeamMember
from procapacity.models.sql.user import User
from procapacity.models.sql.workspace import Workspace
from procapacity.services.seats import calculate_extra_seats, check_seat, get_workspace


@dataclass
class PlanCheckResult:
    allowed: bool
    reason: Optional[str] = None
    upgrade_required: bool = False
    upgrade_plan: Optional[str] = None
    requires_stripe_update: bool = False


def is_read_only(workspace: Workspace) -> bool:
    """Expired trial without a subscription."""
    return is_trial_expired(workspace.trial_ends_at) and workspace.subscribed_at is None


def _trial_expired(action: str) -> PlanCheckResult:
    return PlanCheckResult(
        allowed=False,
        reason=f"Your trial has expired. Please subscribe to {action}.",
        upgrade_required=True,
    )


async def _count(db: AsyncSession, model, *criteria) -> int:
    result = await db.execute(select(func.count()).select_from(model).where(*criteria))
    return result.scalar() or 0


async def count_active_team_members(db: AsyncSession, workspace_id: UUID) -> int:
    return await _count(
        db, TeamMember, TeamMember.workspace_id == workspace_id, TeamMember.active.is_(True)
    )


async def count_active_projects(db: AsyncSession, workspace_id: UUID) -> int:
    return await _count(db, Project, Project.workspace_id == workspace_id, Project.active.is_(True))


async def has_write_access(db: AsyncSession, workspace_id: UUID) -> PlanCheckResult:
    workspace = await get_workspace(db, workspace_id)
    if is_read_only(workspace):
        return _trial_expired("make changes")
    return PlanCheckResult(allowed=True)


async def can_add_team_member(db: AsyncSession, workspace_id: UUID, adding: int = 1) -> PlanCheckResult:
    workspace = await get_workspace(db, workspace_id)
    if is_read_only(workspace):
        return _trial_expired("add team members")

    plan = get_plan(workspace.plan)
    current = await count_active_team_members(db, workspace_id)
    if current + adding > plan.limits.team_members:
        return PlanCheckResult(
            allowed=False,
            reason=(
                f"You've reached the limit of {plan.limits.team_members} team members on the "
                f"{plan.name} plan. Please upgrade to add more."
            ),
            upgrade_required=True,
            upgrade_plan=get_next_plan(workspace.plan),
        )
    return PlanCheckResult(allowed=True)


async def can_add_project(db: AsyncSession, workspace_id: UUID) -> PlanCheckResult:
    workspace = await get_workspace(db, workspace_id)
    if is_read_only(workspace):
        return _trial_expired("add projects")

    plan = get_plan(workspace.plan)
    current = await count_active_projects(db, workspace_id)
    if current >= plan.limits.active_projects:
        return PlanCheckResult(
            allowed=False,
            reason=(
                f"You've reached the limit of {plan.limits.active_projects} active projects on the "
                f"{plan.name} plan. Please upgrade to add more."
            ),
            upgrade_required=True,
            upgrade_plan=get_next_plan(workspace.plan),
        )
    return PlanCheckResult(allowed=True)


async def can_add_user(db: AsyncSession, workspace_id: UUID) -> PlanCheckResult:
    """Write access plus a free seat."""
    write_access = await has_write_access(db, workspace_id)
    if not write_access.allowed:
        return write_access

    workspace = await get_workspace(db, workspace_id)
    seat = check_seat(workspace.plan, workspace.current_seats)
    if not seat.allowed:
        return PlanCheckResult(
            allowed=False,
            reason=seat.reason,
            upgrade_required=seat.requires_upgrade,
            upgrade_plan=seat.next_plan,
        )
    return PlanCheckResult(allowed=True, requires_stripe_update=seat.requires_stripe_update)


def _usage(current: int, limit: int) -> dict:
    return {"current": current, "limit": limit, "percentage": current / limit * 100 if limit else 0}


async def get_workspace_usage(db: AsyncSession, workspace_id: UUID) -> dict:
    workspace = await get_workspace(db, workspace_id)
    plan = get_plan(workspace.plan)

    team_members = await count_active_team_members(db, workspace_id)
    projects = await count_active_projects(db, workspace_id)
    owners = await _count(
        db, User, User.workspace_id == workspace_id, User.role == Role.OWNER.value
    )

    return {
        "team_members": _usage(team_members, plan.limits.team_members),
        "projects": _usage(projects, plan.limits.active_projects),
        "owner_users": _usage(owners, plan.limits.owner_users),
        "seats": {
            "current": workspace.current_seats,
            "included": workspace.included_seats,
            "max": plan.seat_pricing.max_seats,
            "extra": calculate_extra_seats(workspace.current_seats, workspace.included_seats),
        },
    }
