"""Workspace skill taxonomy and member skill links.

``TeamMember.skills`` keeps a denormalised list of skill names for
filtering. Every change to ``TeamMemberSkill`` rows must be followed by
``sync_member_skills`` for the affected members.
"""

import logging
from typing import Iterable, Optional
from uuid import UUID

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from procapacity.core.seed_skills import skills_for_industry
from procapacity.models.sql.project import Project
from procapacity.models.sql.skill import Proficiency, Skill, SkillCategory, TeamMemberSkill
from procapacity.models.sql.team_member import TeamMember
from procapacity.models.sql.workspace import Workspace

logger = logging.getLogger(__name__)

MIN_SKILL_NAME_LENGTH = 2


class SkillNotFoundError(LookupError):
    """Skill or team member is missing or belongs to another workspace."""


class SkillValidationError(ValueError):
    """Invalid skill input or a naming conflict."""


def _validate_name(name: str) -> str:
    name = (name or "").strip()
    if len(name) < MIN_SKILL_NAME_LENGTH:
        raise SkillValidationError("Skill name must be at least 2 characters")
    return name


async def list_skills(db: AsyncSession, workspace_id: UUID) -> list[tuple[Skill, int]]:
    """Skills in the workspace with the number of members holding each."""
    result = await db.execute(
        select(Skill)
        .where(Skill.workspace_id == workspace_id)
        .options(selectinload(Skill.member_skills))
        .order_by(Skill.category, Skill.name)
    )
    return [(skill, len(skill.member_skills)) for skill in result.scalars().all()]


async def get_skill(db: AsyncSession, workspace_id: UUID, skill_id: UUID) -> Skill:
    result = await db.execute(
        select(Skill).where(Skill.id == skill_id, Skill.workspace_id == workspace_id)
    )
    skill = result.scalar_one_or_none()
    if skill is None:
        raise SkillNotFoundError("Skill not found")
    return skill


async def get_member(db: AsyncSession, workspace_id: UUID, team_member_id: UUID) -> TeamMember:
    result = await db.execute(
        select(TeamMember).where(
            TeamMember.id == team_member_id, TeamMember.workspace_id == workspace_id
        )
    )
    member = result.scalar_one_or_none()
    if member is None:
        raise SkillNotFoundError("Team member not found")
    return member


async def _find_by_name(db: AsyncSession, workspace_id: UUID, name: str) -> Optional[Skill]:
    result = await db.execute(
        select(Skill).where(Skill.workspace_id == workspace_id, Skill.name == name)
    )
    return result.scalar_one_or_none()


async def sync_member_skills(db: AsyncSession, team_member_id: UUID) -> list[str]:
    """Rewrite a member's ``skills`` name list from their skill links."""
    result = await db.execute(
        select(Skill.name)
        .join(TeamMemberSkill, TeamMemberSkill.skill_id == Skill.id)
        .where(TeamMemberSkill.team_member_id == team_member_id)
        .order_by(TeamMemberSkill.created_at, Skill.name)
    )
    names = list(result.scalars().all())

    member = await db.get(TeamMember, team_member_id)
    if member is not None:
        member.skills = names
        await db.flush()
    return names


async def members_with_skill(db: AsyncSession, skill_id: UUID) -> list[UUID]:
    result = await db.execute(
        select(TeamMemberSkill.team_member_id).where(TeamMemberSkill.skill_id == skill_id)
    )
    return list(result.scalars().all())


async def seed_workspace_skills(db: AsyncSession, workspace_id: UUID, industry: str) -> int:
    """Create the preset skills for an industry and mark onboarding complete.

    Returns the number of skills created. Existing names are skipped.
    """
    existing = await db.execute(select(Skill.name).where(Skill.workspace_id == workspace_id))
    taken = set(existing.scalars().all())

    count = 0
    for name, category in skills_for_industry(industry):
        if name in taken:
            continue
        db.add(Skill(workspace_id=workspace_id, name=name, category=category, is_preset=True))
        taken.add(name)
        count += 1

    workspace = await db.get(Workspace, workspace_id)
    workspace.industry = industry
    workspace.onboarding_completed = True
    await db.flush()

    logger.info(f"Seeded {count} {industry} skills for workspace {workspace_id}")
    return count


async def create_skill(
    db: AsyncSession,
    workspace_id: UUID,
    name: str,
    category: str = SkillCategory.CUSTOM.value,
    description: Optional[str] = None,
) -> Skill:
    name = _validate_name(name)
    if await _find_by_name(db, workspace_id, name):
        raise SkillValidationError(f'A skill named "{name}" already exists')

    skill = Skill(
        workspace_id=workspace_id,
        name=name,
        category=category or SkillCategory.CUSTOM.value,
        description=(description or "").strip() or None,
        is_preset=False,
    )
    db.add(skill)
    await db.flush()
    await db.refresh(skill)
    return skill


async def update_skill(
    db: AsyncSession,
    workspace_id: UUID,
    skill_id: UUID,
    name: Optional[str] = None,
    category: Optional[str] = None,
    description: Optional[str] = None,
) -> Skill:
    skill = await get_skill(db, workspace_id, skill_id)
    renamed = False

    if name is not None:
        name = _validate_name(name)
        if name != skill.name:
            clash = await _find_by_name(db, workspace_id, name)
            if clash is not None and clash.id != skill.id:
                raise SkillValidationError(f'A skill named "{name}" already exists')
            skill.name = name
            renamed = True
    if category is not None:
        skill.category = category
    if description is not None:
        skill.description = description.strip() or None

    await db.flush()

    if renamed:
        for member_id in await members_with_skill(db, skill.id):
            await sync_member_skills(db, member_id)

    await db.refresh(skill)
    return skill


async def delete_skill(db: AsyncSession, workspace_id: UUID, skill_id: UUID) -> None:
    skill = await get_skill(db, workspace_id, skill_id)
    affected = await members_with_skill(db, skill.id)

    await db.execute(delete(TeamMemberSkill).where(TeamMemberSkill.skill_id == skill.id))
    await db.delete(skill)
    await db.flush()

    for member_id in affected:
        await sync_member_skills(db, member_id)


async def assign_skill(
    db: AsyncSession,
    workspace_id: UUID,
    team_member_id: UUID,
    skill_id: UUID,
    proficiency: str = Proficiency.PROFICIENT.value,
) -> TeamMemberSkill:
    """Link a skill to a member, or update the proficiency of an existing link."""
    await get_member(db, workspace_id, team_member_id)
    await get_skill(db, workspace_id, skill_id)

    result = await db.execute(
        select(TeamMemberSkill).where(
            TeamMemberSkill.team_member_id == team_member_id,
            TeamMemberSkill.skill_id == skill_id,
        )
    )
    link = result.scalar_one_or_none()
    if link is None:
        link = TeamMemberSkill(
            team_member_id=team_member_id, skill_id=skill_id, proficiency=proficiency
        )
        db.add(link)
    else:
        link.proficiency = proficiency
    await db.flush()

    await sync_member_skills(db, team_member_id)
    return link


async def remove_skill(
    db: AsyncSession, workspace_id: UUID, team_member_id: UUID, skill_id: UUID
) -> None:
    await get_member(db, workspace_id, team_member_id)
    await get_skill(db, workspace_id, skill_id)

    result = await db.execute(
        delete(TeamMemberSkill).where(
            TeamMemberSkill.team_member_id == team_member_id,
            TeamMemberSkill.skill_id == skill_id,
        )
    )
    if result.rowcount == 0:
        raise SkillNotFoundError("Skill is not assigned to this team member")
    await db.flush()

    await sync_member_skills(db, team_member_id)


async def replace_member_skills(
    db: AsyncSession,
    workspace_id: UUID,
    team_member_id: UUID,
    skills: Iterable[tuple[UUID, str]],
) -> list[str]:
    """Replace all of a member's skills with ``(skill_id, proficiency)`` pairs."""
    await get_member(db, workspace_id, team_member_id)

    # Last proficiency wins for repeated ids
    wanted = dict(skills)
    if wanted:
        result = await db.execute(
            select(Skill.id).where(Skill.id.in_(wanted.keys()), Skill.workspace_id == workspace_id)
        )
        if len(result.scalars().all()) != len(wanted):
            raise SkillValidationError("One or more skills not found in workspace")

    await db.execute(delete(TeamMemberSkill).where(TeamMemberSkill.team_member_id == team_member_id))
    for skill_id, proficiency in wanted.items():
        db.add(
            TeamMemberSkill(team_member_id=team_member_id, skill_id=skill_id, proficiency=proficiency)
        )
    await db.flush()

    return await sync_member_skills(db, team_member_id)


async def ensure_skills(
    db: AsyncSession,
    workspace_id: UUID,
    names: Iterable[str],
    category: str = SkillCategory.GENERAL.value,
) -> dict[str, Skill]:
    """Skill records for the given names, creating missing ones."""
    wanted = list(dict.fromkeys(n.strip() for n in names if n and n.strip()))
    if not wanted:
        return {}

    result = await db.execute(
        select(Skill).where(Skill.workspace_id == workspace_id, Skill.name.in_(wanted))
    )
    found = {skill.name: skill for skill in result.scalars().all()}

    for name in wanted:
        if name not in found:
            skill = Skill(workspace_id=workspace_id, name=name, category=category, is_preset=False)
            db.add(skill)
            found[name] = skill
    await db.flush()
    return found


async def backfill_workspace_skills(db: AsyncSession, workspace_id: UUID) -> int:
    """Create skill records for names used on active members and projects, then link members."""
    members = (
        await db.execute(
            select(TeamMember).where(
                TeamMember.workspace_id == workspace_id, TeamMember.active.is_(True)
            )
        )
    ).scalars().all()
    projects = (
        await db.execute(
            select(Project).where(Project.workspace_id == workspace_id, Project.active.is_(True))
        )
    ).scalars().all()

    names: list[str] = []
    for member in members:
        names.extend(member.skills or [])
    for project in projects:
        names.extend(project.required_skills or [])

    skill_map = await ensure_skills(db, workspace_id, names)

    links = await db.execute(
        select(TeamMemberSkill.team_member_id, TeamMemberSkill.skill_id).where(
            TeamMemberSkill.team_member_id.in_([m.id for m in members])
        )
    )
    existing = set(links.all())

    for member in members:
        for name in member.skills or []:
            skill = skill_map.get(name.strip())
            if skill is None or (member.id, skill.id) in existing:
                continue
            db.add(TeamMemberSkill(team_member_id=member.id, skill_id=skill.id))
            existing.add((member.id, skill.id))
    await db.flush()

    logger.info(f"Backfilled {len(skill_map)} skills for workspace {workspace_id}")
    return len(skill_map)
