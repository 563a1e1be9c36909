"""Project SQLAlchemy model."""

from datetime import date, datetime
from enum import Enum
from typing import TYPE_CHECKING, List, Optional
from uuid import UUID, uuid4

from sqlalchemy import JSON, Boolean, Date, DateTime, ForeignKey, Integer, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from procapacity.db.postgres import Base

if TYPE_CHECKING:
    from procapacity.models.sql.assignment import Assignment
    from procapacity.models.sql.user import User
    from procapacity.models.sql.workspace import Workspace


class ProjectType(str, Enum):
    PROJECT = "PROJECT"
    RETAINER = "RETAINER"
    CAMPAIGN = "CAMPAIGN"
    AUDIT = "AUDIT"


class ProjectStatus(str, Enum):
    PLANNED = "PLANNED"
    ACTIVE = "ACTIVE"
    ON_HOLD = "ON_HOLD"
    COMPLETED = "COMPLETED"
    ARCHIVED = "ARCHIVED"


class BillingCycle(str, Enum):
    WEEKLY = "WEEKLY"
    MONTHLY = "MONTHLY"


class Project(Base):
    """Client or internal project that team members are assigned to."""

    __tablename__ = "pc_projects"

    id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    workspace_id: Mapped[UUID] = mapped_column(
        ForeignKey("pc_workspaces.id", ondelete="CASCADE"), index=True, nullable=False
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    client_name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    type: Mapped[str] = mapped_column(String(20), default=ProjectType.PROJECT.value, nullable=False)
    status: Mapped[str] = mapped_column(
        String(20), default=ProjectStatus.PLANNED.value, index=True, nullable=False
    )
    start_date: Mapped[date] = mapped_column(Date, nullable=False)
    end_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    total_budget_hours: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    billing_cycle: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    required_skills: Mapped[list] = mapped_column(JSON, default=list, nullable=False)
    owner_id: Mapped[Optional[UUID]] = mapped_column(
        ForeignKey("pc_users.id", ondelete="SET NULL"), nullable=True
    )
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
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
    workspace: Mapped["Workspace"] = relationship("Workspace", back_populates="projects")
    owner: Mapped[Optional["User"]] = relationship("User")
    assignments: Mapped[List["Assignment"]] = relationship(
        "Assignment", back_populates="project", cascade="all, delete-orphan"
    )

    def __repr__(self) -> str:
        return f"<Project(id={self.id}, name={self.name}, status={self.status})>"
