"""Workspace invite endpoints."""

import logging
from datetime import timedelta

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from procapacity.api.deps import get_current_workspace, require_user_inviter
from procapacity.config import settings
from procapacity.core.dates import as_utc, utcnow
from procapacity.core.security import generate_url_token
from procapacity.db.postgres import get_db
from procapacity.models.sql.invite import WorkspaceInvite
from procapacity.models.sql.user import User
from procapacity.models.sql.workspace import Workspace
from procapacity.schemas.invite import InviteCreate, InviteLookupResponse, InviteResponse
from procapacity.services.email import TASK_SEND_TEAM_INVITE, enqueue_email
from procapacity.services.plan_limits import can_add_user

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post(
    "",
    response_model=InviteResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Invite someone to the workspace",
)
async def create_invite(
    data: InviteCreate,
    current_user: User = Depends(require_user_inviter),
    workspace: Workspace = Depends(get_current_workspace),
    db: AsyncSession = Depends(get_db),
) -> WorkspaceInvite:
    """Create a 7-day invite and email the link."""
    result = await db.execute(
        select(User.id).where(User.email == data.email, User.workspace_id == workspace.id)
    )
    if result.scalar_one_or_none():
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="This person is already a member of your workspace",
        )

    result = await db.execute(
        select(WorkspaceInvite.id).where(
            WorkspaceInvite.email == data.email,
            WorkspaceInvite.workspace_id == workspace.id,
            WorkspaceInvite.expires_at > utcnow(),
        )
    )
    if result.scalars().first():
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="An invite has already been sent to this email address",
        )

    seat_check = await can_add_user(db, workspace.id)
    if not seat_check.allowed:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=seat_check.reason or "Seat limit reached",
        )

    invite = WorkspaceInvite(
        workspace_id=workspace.id,
        email=data.email,
        token=generate_url_token(),
        role=data.role.value,
        expires_at=utcnow() + timedelta(days=settings.INVITE_EXPIRE_DAYS),
    )
    db.add(invite)
    await db.flush()
    await db.refresh(invite)

    enqueue_email(
        TASK_SEND_TEAM_INVITE,
        to=invite.email,
        inviter_name=current_user.name or current_user.email or "Your admin",
        workspace_name=workspace.name,
        action_url=f"{settings.APP_URL}/invite/{invite.token}",
    )
    logger.info(f"Invite sent to {invite.email} for workspace {workspace.id}")
    return invite


@router.get(
    "",
    response_model=list[InviteResponse],
    summary="List pending invites",
)
async def list_invites(
    current_user: User = Depends(require_user_inviter),
    db: AsyncSession = Depends(get_db),
) -> list[WorkspaceInvite]:
    result = await db.execute(
        select(WorkspaceInvite)
        .where(
            WorkspaceInvite.workspace_id == current_user.workspace_id,
            WorkspaceInvite.expires_at > utcnow(),
        )
        .order_by(WorkspaceInvite.created_at.desc())
    )
    return list(result.scalars().all())


@router.get(
    "/{token}",
    response_model=InviteLookupResponse,
    summary="Look up an invite by token",
)
async def get_invite(
    token: str,
    db: AsyncSession = Depends(get_db),
) -> InviteLookupResponse:
    """Public endpoint used by the accept-invite page."""
    result = await db.execute(
        select(WorkspaceInvite, Workspace.name)
        .join(Workspace, Workspace.id == WorkspaceInvite.workspace_id)
        .where(WorkspaceInvite.token == token)
    )
    row = result.one_or_none()

    if row is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Invite not found",
        )

    invite, workspace_name = row
    if as_utc(invite.expires_at) < utcnow():
        raise HTTPException(
            status_code=status.HTTP_410_GONE,
            detail="This invite has expired",
        )

    return InviteLookupResponse(
        email=invite.email,
        role=invite.role,
        workspace_name=workspace_name,
        expires_at=invite.expires_at,
    )
