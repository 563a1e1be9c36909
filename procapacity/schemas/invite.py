"""Workspace invite and user management schemas."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, EmailStr, field_validator

from procapacity.core.permissions import Role
from procapacity.schemas.auth import UserResponse


class InviteCreate(BaseModel):
    """Schema for inviting someone to the workspace."""

    email: EmailStr
    role: Role = Role.MEMBER

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        return v.lower()


class InviteResponse(BaseModel):
    """Schema for invite response."""

    id: UUID
    email: str
    role: str
    expires_at: datetime
    created_at: datetime

    class Config:
        from_attributes = True


class InviteLookupResponse(BaseModel):
    """Public view of an invite, shown on the accept page."""

    email: str
    role: str
    workspace_name: str
    expires_at: datetime


class UserStatusUpdate(BaseModel):
    active: bool


class UserStatusResponse(BaseModel):
    success: bool
    message: str
    user: UserResponse
    current_seats: int
