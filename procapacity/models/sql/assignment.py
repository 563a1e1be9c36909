"""Assignment SQLAlchemy model."""

from datetime import date, datetime
from typing import TYPE_CHECKING, Optional
from uuid import UUID, uuid4

from sqlalchemy import Boolean, Date, DateTime, Float, ForeignKey, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from procapacity.db.postgres import Base

if TYPE_CHECKING:
    from procapacity.models.sql.project import Project
    from procapacity.models.sql.team_member import TeamMember


class Assignment(Base):
    """Hours per week a team member commits to a project over a date range."""

    __tablename__ = "pc_assignments"

    id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    workspace_id: Mapped[UUID] = mapped_column(
        ForeignKey("pc_workspaces.id", ondelete="CASCADE"), index=True, nullable=False
    )
    project_id: Mapped[UUID] = mapped_column(
        ForeignKey("pc_projects.id", ondelete="CASCADE"), index=True, nullable=False
    )
    team_member_id: Mapped[UUID] = mapped_column(
        ForeignKey("pc_team_members.id", ondelete="CASCADE"), index=True, nullable=False
    )
    start_date: Mapped[date] = mapped_column(Date, nullable=False)
    end_date: Mapped[date] = mapped_column(Date, nullable=False)
    hours_per_week: Mapped[float] = mapped_column(Float, nullable=False)
    billable: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    role_on_project: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
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
    project: Mapped["Project"] = relationship("Project", back_populates="assignments")
    team_member: Mapped["TeamMember"] = relationship("TeamMember", back_populates="assignments")

    def __repr__(self) -> str:
        return (
            f"<Assignment(id={self.id}, member={self.team_member_id}, "
            f"project={self.project_id}, hours={self.hours_per_week})>"
        )
