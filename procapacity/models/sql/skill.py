"""Skill taxonomy SQLAlchemy models."""

from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING, List, Optional
from uuid import UUID, uuid4

from sqlalchemy import Boolean, DateTime, ForeignKey, String, Text, UniqueConstraint, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from procapacity.db.postgres import Base

if TYPE_CHECKING:
    from procapacity.models.sql.team_member import TeamMember


class SkillCategory(str, Enum):
    CREATIVE = "CREATIVE"
    DIGITAL_PAID = "DIGITAL_PAID"
    STRATEGY = "STRATEGY"
    DEVELOPMENT = "DEVELOPMENT"
    LEGAL = "LEGAL"
    FINANCE = "FINANCE"
    CONSULTING = "CONSULTING"
    GENERAL = "GENERAL"
    CUSTOM = "CUSTOM"


class Proficiency(str, Enum):
    BEGINNER = "BEGINNER"
    PROFICIENT = "PROFICIENT"
    EXPERT = "EXPERT"


class Skill(Base):
    """Workspace-scoped skill."""

    __tablename__ = "pc_skills"
    __table_args__ = (UniqueConstraint("workspace_id", "name", name="uq_skill_workspace_name"),)

    id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    workspace_id: Mapped[UUID] = mapped_column(
        ForeignKey("pc_workspaces.id", ondelete="CASCADE"), index=True, nullable=False
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    category: Mapped[str] = mapped_column(
        String(20), default=SkillCategory.CUSTOM.value, nullable=False
    )
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    is_preset: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

    # Relationships
    member_skills: Mapped[List["TeamMemberSkill"]] = relationship(
        "TeamMemberSkill", back_populates="skill", cascade="all, delete-orphan"
    )

    def __repr__(self) -> str:
        return f"<Skill(id={self.id}, name={self.name})>"


class TeamMemberSkill(Base):
    """Link between a team member and a skill, with proficiency."""

    __tablename__ = "pc_team_member_skills"
    __table_args__ = (
        UniqueConstraint("team_member_id", "skill_id", name="uq_member_skill"),
    )

    id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    team_member_id: Mapped[UUID] = mapped_column(
        ForeignKey("pc_team_members.id", ondelete="CASCADE"), index=True, nullable=False
    )
    skill_id: Mapped[UUID] = mapped_column(
        ForeignKey("pc_skills.id", ondelete="CASCADE"), index=True, nullable=False
    )
    proficiency: Mapped[str] = mapped_column(
        String(20), default=Proficiency.PROFICIENT.value, nullable=False
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    # Relationships
    team_member: Mapped["TeamMember"] = relationship("TeamMember", back_populates="member_skills")
    skill: Mapped["Skill"] = relationship("Skill", back_populates="member_skills")

    def __repr__(self) -> str:
        return (
            f"<TeamMemberSkill(member={self.team_member_id}, skill={self.skill_id}, "
            f"proficiency={self.proficiency})>"
        )
