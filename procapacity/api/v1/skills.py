"""Skill taxonomy endpoints."""

from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from procapacity.api.deps import get_current_user, require_skill_manager
from procapacity.core.seed_skills import INDUSTRY_OPTIONS
from procapacity.db.postgres import get_db
from procapacity.models.sql.skill import Skill
from procapacity.models.sql.user import User
from procapacity.schemas.skill import (
    IndustryOption,
    SeedSkillsRequest,
    SkillCountResponse,
    SkillCreate,
    SkillResponse,
    SkillUpdate,
)
from procapacity.services import skills as skill_service

router = APIRouter()


def _response(skill: Skill, member_count: int = 0) -> SkillResponse:
    return SkillResponse(
        id=skill.id,
        name=skill.name,
        category=skill.category,
        description=skill.description,
        is_preset=skill.is_preset,
        member_count=member_count,
        created_at=skill.created_at,
    )


@router.get(
    "",
    response_model=list[SkillResponse],
    summary="List workspace skills",
)
async def list_skills(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> list[SkillResponse]:
    skills = await skill_service.list_skills(db, current_user.workspace_id)
    return [_response(skill, count) for skill, count in skills]


@router.get(
    "/industries",
    response_model=list[IndustryOption],
    summary="Industries with preset skill sets",
)
async def list_industries() -> list[dict]:
    return INDUSTRY_OPTIONS


@router.post(
    "",
    response_model=SkillResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a custom skill",
)
async def create_skill(
    data: SkillCreate,
    current_user: User = Depends(require_skill_manager),
    db: AsyncSession = Depends(get_db),
) -> SkillResponse:
    try:
        skill = await skill_service.create_skill(
            db, current_user.workspace_id, data.name, data.category.value, data.description
        )
    except skill_service.SkillValidationError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    return _response(skill)


@router.post(
    "/seed",
    response_model=SkillCountResponse,
    summary="Create preset skills for an industry",
)
async def seed_skills(
    data: SeedSkillsRequest,
    current_user: User = Depends(require_skill_manager),
    db: AsyncSession = Depends(get_db),
) -> SkillCountResponse:
    """Adds the industry's preset skills and completes onboarding."""
    count = await skill_service.seed_workspace_skills(
        db, current_user.workspace_id, data.industry.value
    )
    return SkillCountResponse(count=count)


@router.post(
    "/backfill",
    response_model=SkillCountResponse,
    summary="Create skill records from skill names already in use",
)
async def backfill_skills(
    current_user: User = Depends(require_skill_manager),
    db: AsyncSession = Depends(get_db),
) -> SkillCountResponse:
    count = await skill_service.backfill_workspace_skills(db, current_user.workspace_id)
    return SkillCountResponse(count=count)


@router.patch(
    "/{skill_id}",
    response_model=SkillResponse,
    summary="Update a skill",
)
async def update_skill(
    skill_id: UUID,
    data: SkillUpdate,
    current_user: User = Depends(require_skill_manager),
    db: AsyncSession = Depends(get_db),
) -> SkillResponse:
    try:
        skill = await skill_service.update_skill(
            db,
            current_user.workspace_id,
            skill_id,
            name=data.name,
            category=data.category.value if data.category else None,
            description=data.description,
        )
    except skill_service.SkillNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except skill_service.SkillValidationError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    members = await skill_service.members_with_skill(db, skill.id)
    return _response(skill, len(members))


@router.delete(
    "/{skill_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete a skill",
)
async def delete_skill(
    skill_id: UUID,
    current_user: User = Depends(require_skill_manager),
    db: AsyncSession = Depends(get_db),
) -> None:
    """Removes the skill from every member holding it."""
    try:
        await skill_service.delete_skill(db, current_user.workspace_id, skill_id)
    except skill_service.SkillNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
