"""Workspace SQLAlchemy model."""

from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING, List, Optional
from uuid import UUID, uuid4

from sqlalchemy import Boolean, DateTime, Float, Integer, String, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from procapacity.db.postgres import Base

if TYPE_CHECKING:
    from procapacity.models.sql.project import Project
    from procapacity.models.sql.team_member import TeamMember
    from procapacity.models.sql.user import User


class Plan(str, Enum):
    """Subscription plans."""

    STARTER = "STARTER"
    GROWTH = "GROWTH"
    SCALE = "SCALE"


class BillingPeriod(str, Enum):
    """Billing periods."""

    MONTHLY = "MONTHLY"
    YEARLY = "YEARLY"


class IndustryVertical(str, Enum):
    """Industry used to pick preset skills."""

    MARKETING_AGENCY = "MARKETING_AGENCY"
    LAW_FIRM = "LAW_FIRM"
    DESIGN_STUDIO = "DESIGN_STUDIO"
    CONSULTANCY = "CONSULTANCY"
    ARCHITECTURE = "ARCHITECTURE"
    CUSTOM = "CUSTOM"


class Workspace(Base):
    """Tenant that owns users, team members, projects and billing state."""

    __tablename__ = "pc_workspaces"

    id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    name: Mapped[str] = mapped_column(String(255), nullable=False)

    # Billing
    plan: Mapped[str] = mapped_column(String(20), default=Plan.GROWTH.value, nullable=False)
    billing_period: Mapped[str] = mapped_column(
        String(20), default=BillingPeriod.MONTHLY.value, nullable=False
    )
    trial_ends_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    subscribed_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    stripe_customer_id: Mapped[Optional[str]] = mapped_column(
        String(255), unique=True, nullable=True
    )
    stripe_subscription_id: Mapped[Optional[str]] = mapped_column(
        String(255), unique=True, nullable=True
    )
    stripe_base_item_id: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    stripe_seat_item_id: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    current_seats: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    included_seats: Mapped[int] = mapped_column(Integer, default=30, nullable=False)

    # Onboarding
    industry: Mapped[Optional[str]] = mapped_column(String(40), nullable=True)
    onboarding_completed: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    # Capacity settings
    default_capacity_hours: Mapped[int] = mapped_column(Integer, default=40, nullable=False)
    warning_threshold: Mapped[float] = mapped_column(Float, default=0.8, nullable=False)
    critical_threshold: Mapped[float] = mapped_column(Float, default=0.95, nullable=False)

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
    users: Mapped[List["User"]] = relationship(
        "User", back_populates="workspace", cascade="all, delete-orphan"
    )
    team_members: Mapped[List["TeamMember"]] = relationship(
        "TeamMember", back_populates="workspace", cascade="all, delete-orphan"
    )
    projects: Mapped[List["Project"]] = relationship(
        "Project", back_populates="workspace", cascade="all, delete-orphan"
    )

    def __repr__(self) -> str:
        return f"<Workspace(id={self.id}, name={self.name}, plan={self.plan})>"
