"""Workspace user (login) management endpoints."""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from procapacity.api.deps import get_current_user, require_user_manager
from procapacity.db.postgres import get_db
from procapacity.db.redis import revoke_refresh_token
from procapacity.models.sql.user import User
from procapacity.schemas.auth import UserResponse
from procapacity.schemas.invite import UserStatusResponse, UserStatusUpdate
from procapacity.services.seats import can_add_seat, get_current_seats, sync_workspace_seats

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get(
    "",
    response_model=list[UserResponse],
    summary="List users in the workspace",
)
async def list_users(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> list[User]:
    result = await db.execute(
        select(User)
        .where(User.workspace_id == current_user.workspace_id)
        .order_by(User.created_at)
    )
    return list(result.scalars().all())


@router.patch(
    "/{user_id}/status",
    response_model=UserStatusResponse,
    summary="Activate or deactivate a user",
)
async def update_user_status(
    user_id: UUID,
    data: UserStatusUpdate,
    current_user: User = Depends(require_user_manager),
    db: AsyncSession = Depends(get_db),
) -> UserStatusResponse:
    """Toggle a user's seat. Reactivation must fit within the plan's seat limit."""
    result = await db.execute(select(User).where(User.id == user_id))
    target = result.scalar_one_or_none()

    if target is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="User not found",
        )

    if target.workspace_id != current_user.workspace_id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="User is not in your workspace",
        )

    if target.id == current_user.id and not data.active:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="You cannot deactivate your own account",
        )

    if target.active == data.active:
        return UserStatusResponse(
            success=True,
            message=f"User is already {'active' if data.active else 'inactive'}",
            user=UserResponse.model_validate(target),
            current_seats=await get_current_seats(db, target.workspace_id),
        )

    if data.active:
        seat_check = await can_add_seat(db, target.workspace_id)
        if not seat_check.allowed:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=seat_check.reason,
            )

    target.active = data.active
    await db.flush()
    await db.refresh(target)
    if not data.active:
        await revoke_refresh_token(target.id)

    sync = await sync_workspace_seats(db, target.workspace_id)
    logger.info(
        f"User {target.id} {'activated' if data.active else 'deactivated'} by {current_user.id}"
    )

    return UserStatusResponse(
        success=True,
        message=f"User {'activated' if data.active else 'deactivated'} successfully",
        user=UserResponse.model_validate(target),
        current_seats=sync.current_seats,
    )
