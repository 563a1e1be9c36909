"""User SQLAlchemy model."""

from datetime import datetime
from typing import TYPE_CHECKING, Optional
from uuid import UUID, uuid4

from sqlalchemy import Boolean, DateTime, ForeignKey, String, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from procapacity.core.permissions import Role
from procapacity.db.postgres import Base

if TYPE_CHECKING:
    from procapacity.models.sql.team_member import TeamMember
    from procapacity.models.sql.workspace import Workspace


class User(Base):
    """Login account. Every active user occupies one billable seat."""

    __tablename__ = "pc_users"

    id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    email: Mapped[str] = mapped_column(
        String(255), unique=True, index=True, nullable=False
    )
    name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    hashed_password: Mapped[str] = mapped_column(String(255), nullable=False)
    role: Mapped[str] = mapped_column(String(20), default=Role.MEMBER.value, nullable=False)
    active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    workspace_id: Mapped[UUID] = mapped_column(
        ForeignKey("pc_workspaces.id", ondelete="CASCADE"), index=True, nullable=False
    )
    team_member_id: Mapped[Optional[UUID]] = mapped_column(
        ForeignKey("pc_team_members.id", ondelete="SET NULL"), unique=True, nullable=True
    )
    password_reset_token: Mapped[Optional[str]] = mapped_column(
        String(128), unique=True, nullable=True
    )
    password_reset_expires: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
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
    workspace: Mapped["Workspace"] = relationship("Workspace", back_populates="users")
    team_member: Mapped[Optional["TeamMember"]] = relationship(
        "TeamMember", back_populates="user"
    )

    @property
    def is_owner(self) -> bool:
        return self.role == Role.OWNER.value

    def __repr__(self) -> str:
        return f"<User(id={self.id}, email={self.email})>"
