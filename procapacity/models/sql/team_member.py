"""Team member SQLAlchemy model."""

from datetime import datetime
from typing import TYPE_CHECKING, List, Optional
from uuid import UUID, uuid4

from sqlalchemy import JSON, Boolean, DateTime, ForeignKey, Integer, String, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from procapacity.db.postgres import Base

if TYPE_CHECKING:
    from procapacity.models.sql.assignment import Assignment
    from procapacity.models.sql.skill import TeamMemberSkill
    from procapacity.models.sql.user import User
    from procapacity.models.sql.workspace import Workspace


class TeamMember(Base):
    """A person whose weekly hours are planned. May or may not have a login."""

    __tablename__ = "pc_team_members"

    id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    workspace_id: Mapped[UUID] = mapped_column(
        ForeignKey("pc_workspaces.id", ondelete="CASCADE"), index=True, nullable=False
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    title: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    role: Mapped[str] = mapped_column(String(255), nullable=False)
    # Skill names, kept in sync with member_skills
    skills: Mapped[list] = mapped_column(JSON, default=list, nullable=False)
    default_weekly_capacity_hours: Mapped[int] = mapped_column(
        Integer, default=40, nullable=False
    )
    active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
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
    workspace: Mapped["Workspace"] = relationship("Workspace", back_populates="team_members")
    user: Mapped[Optional["User"]] = relationship(
        "User", back_populates="team_member", uselist=False
    )
    assignments: Mapped[List["Assignment"]] = relationship(
        "Assignment", back_populates="team_member", cascade="all, delete-orphan"
    )
    member_skills: Mapped[List["TeamMemberSkill"]] = relationship(
        "TeamMemberSkill", back_populates="team_member", cascade="all, delete-orphan"
    )

    def __repr__(self) -> str:
        return f"<TeamMember(id={self.id}, name={self.name})>"
