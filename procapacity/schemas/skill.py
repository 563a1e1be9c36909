"""Skill taxonomy schemas."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field

from procapacity.models.sql.skill import Proficiency, SkillCategory
from procapacity.models.sql.workspace import IndustryVertical


class SkillCreate(BaseModel):
    """Schema for creating a custom skill."""

    name: str = Field(..., max_length=255)
    category: SkillCategory = SkillCategory.CUSTOM
    description: str | None = Field(None, max_length=2000)


class SkillUpdate(BaseModel):
    """Schema for updating a skill."""

    name: str | None = Field(None, max_length=255)
    category: SkillCategory | None = None
    description: str | None = Field(None, max_length=2000)


class SkillResponse(BaseModel):
    """Schema for skill response."""

    id: UUID
    name: str
    category: str
    description: str | None = None
    is_preset: bool
    member_count: int = 0
    created_at: datetime

    class Config:
        from_attributes = True


class SeedSkillsRequest(BaseModel):
    industry: IndustryVertical


class SkillCountResponse(BaseModel):
    count: int


class IndustryOption(BaseModel):
    value: str
    label: str
    description: str


class MemberSkillAssign(BaseModel):
    """Schema for linking one skill to a team member."""

    proficiency: Proficiency = Proficiency.PROFICIENT


class MemberSkillItem(BaseModel):
    skill_id: UUID
    proficiency: Proficiency = Proficiency.PROFICIENT


class MemberSkillsReplace(BaseModel):
    """Schema for replacing all of a team member's skills."""

    skills: list[MemberSkillItem] = Field(default_factory=list)


class MemberSkillResponse(BaseModel):
    skill_id: UUID
    name: str
    category: str
    proficiency: str
