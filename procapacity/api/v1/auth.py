"""Authentication and account endpoints."""

import logging
from datetime import timedelta
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from procapacity.api.deps import get_current_user
from procapacity.config import settings
from procapacity.core.dates import as_utc, utcnow
from procapacity.core.permissions import Role
from procapacity.core.pricing import DEFAULT_TRIAL_PLAN, get_plan, get_trial_end_date
from procapacity.core.security import (
    create_token_pair,
    generate_url_token,
    hash_password,
    verify_password,
    verify_refresh_token,
)
from procapacity.db.postgres import get_db
from procapacity.db.redis import (
    is_current_refresh_token,
    revoke_refresh_token,
    store_refresh_token,
)
from procapacity.models.sql.invite import WorkspaceInvite
from procapacity.models.sql.user import User
from procapacity.models.sql.workspace import Workspace
from procapacity.schemas.auth import (
    AcceptInviteRequest,
    ForgotPasswordRequest,
    LoginRequest,
    MessageResponse,
    PasswordChange,
    ResetPasswordRequest,
    SignupRequest,
    TokenRefresh,
    TokenResponse,
    UserResponse,
    UserUpdate,
)
from procapacity.services.email import (
    TASK_SEND_PASSWORD_RESET,
    TASK_SEND_WELCOME,
    enqueue_email,
)
from procapacity.services.seats import SeatLimitError, add_user_with_seat_check, sync_workspace_seats

logger = logging.getLogger(__name__)

router = APIRouter()


async def _issue_tokens(user: User) -> TokenResponse:
    access_token, refresh_token = create_token_pair(user.id, user.workspace_id, user.role)

    await store_refresh_token(user.id, refresh_token)

    return TokenResponse(
        access_token=access_token,
        refresh_token=refresh_token,
        expires_in=settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60,
    )


async def _email_taken(db: AsyncSession, email: str) -> bool:
    result = await db.execute(select(User.id).where(User.email == email))
    return result.scalar_one_or_none() is not None


@router.post(
    "/signup",
    response_model=TokenResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create an account and its workspace",
)
async def signup(
    data: SignupRequest,
    db: AsyncSession = Depends(get_db),
) -> TokenResponse:
    """Create a workspace on a trial of the default plan, with the caller as owner."""
    if await _email_taken(db, data.email):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="An account with this email already exists",
        )

    workspace = Workspace(
        name=data.workspace_name,
        plan=DEFAULT_TRIAL_PLAN,
        trial_ends_at=get_trial_end_date(),
        included_seats=get_plan(DEFAULT_TRIAL_PLAN).seat_pricing.included_seats,
    )
    db.add(workspace)
    await db.flush()

    user = User(
        email=data.email,
        name=data.name,
        hashed_password=hash_password(data.password),
        role=Role.OWNER.value,
        active=True,
        workspace_id=workspace.id,
    )
    db.add(user)
    await db.flush()
    await db.refresh(user)

    await sync_workspace_seats(db, workspace.id)

    enqueue_email(TASK_SEND_WELCOME, to=user.email, first_name=data.name.split(" ")[0])
    logger.info(f"New workspace {workspace.id} created by {user.email}")

    return await _issue_tokens(user)


@router.post(
    "/login",
    response_model=TokenResponse,
    summary="Login and get access tokens",
)
async def login(
    credentials: LoginRequest,
    db: AsyncSession = Depends(get_db),
) -> TokenResponse:
    """Authenticate user and return access tokens."""
    result = await db.execute(select(User).where(User.email == credentials.email))
    user = result.scalar_one_or_none()

    if user is None or not verify_password(credentials.password, user.hashed_password):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid email or password",
            headers={"WWW-Authenticate": "Bearer"},
        )

    if not user.active:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="User account is disabled",
        )

    return await _issue_tokens(user)


@router.post(
    "/refresh",
    response_model=TokenResponse,
    summary="Refresh access token",
)
async def refresh_token(
    token_data: TokenRefresh,
    db: AsyncSession = Depends(get_db),
) -> TokenResponse:
    """Refresh access token using refresh token."""
    try:
        payload = verify_refresh_token(token_data.refresh_token)
        user_id = UUID(payload["sub"])
    except ValueError as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=str(e),
            headers={"WWW-Authenticate": "Bearer"},
        )

    result = await db.execute(select(User).where(User.id == user_id))
    user = result.scalar_one_or_none()

    if user is None or not user.active:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid refresh token",
            headers={"WWW-Authenticate": "Bearer"},
        )

    if not await is_current_refresh_token(user.id, token_data.refresh_token):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Refresh token has been revoked",
            headers={"WWW-Authenticate": "Bearer"},
        )

    return await _issue_tokens(user)


@router.post(
    "/logout",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Logout and invalidate tokens",
)
async def logout(
    current_user: User = Depends(get_current_user),
) -> None:
    """Logout and invalidate refresh token."""
    await revoke_refresh_token(current_user.id)


@router.get(
    "/me",
    response_model=UserResponse,
    summary="Get current user profile",
)
async def get_me(
    current_user: User = Depends(get_current_user),
) -> User:
    """Get current authenticated user's profile."""
    return current_user


@router.patch(
    "/me",
    response_model=UserResponse,
    summary="Update current user profile",
)
async def update_me(
    user_data: UserUpdate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> User:
    """Update current user's profile."""
    if user_data.name is not None:
        current_user.name = user_data.name

    await db.flush()
    await db.refresh(current_user)
    return current_user


@router.post(
    "/change-password",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Change password",
)
async def change_password(
    password_data: PasswordChange,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> None:
    """Change current user's password."""
    if not verify_password(password_data.current_password, current_user.hashed_password):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Current password is incorrect",
        )

    current_user.hashed_password = hash_password(password_data.new_password)
    await db.flush()

    # Sign out every session
    await revoke_refresh_token(current_user.id)


@router.post(
    "/forgot-password",
    response_model=MessageResponse,
    summary="Email a password reset link",
)
async def forgot_password(
    data: ForgotPasswordRequest,
    db: AsyncSession = Depends(get_db),
) -> MessageResponse:
    """Always answers the same way so emails cannot be enumerated."""
    response = MessageResponse(
        message="If an account exists for that email, a reset link has been sent."
    )

    result = await db.execute(select(User).where(User.email == data.email))
    user = result.scalar_one_or_none()
    if user is None:
        return response

    token = generate_url_token()
    expires = utcnow() + timedelta(minutes=settings.PASSWORD_RESET_EXPIRE_MINUTES)
    user.password_reset_token = token
    user.password_reset_expires = expires
    await db.flush()

    enqueue_email(
        TASK_SEND_PASSWORD_RESET,
        to=user.email,
        reset_url=f"{settings.APP_URL}/reset-password?token={token}",
        expires_at=expires.isoformat(),
    )
    return response


@router.post(
    "/reset-password",
    response_model=MessageResponse,
    summary="Set a new password with a reset token",
)
async def reset_password(
    data: ResetPasswordRequest,
    db: AsyncSession = Depends(get_db),
) -> MessageResponse:
    result = await db.execute(select(User).where(User.password_reset_token == data.token))
    user = result.scalar_one_or_none()

    if (
        user is None
        or user.password_reset_expires is None
        or as_utc(user.password_reset_expires) < utcnow()
    ):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid or expired reset link",
        )

    user.hashed_password = hash_password(data.password)
    user.password_reset_token = None
    user.password_reset_expires = None
    await db.flush()

    await revoke_refresh_token(user.id)
    return MessageResponse(message="Password has been reset. You can now log in.")


@router.post(
    "/accept-invite",
    response_model=TokenResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create an account from an invite",
)
async def accept_invite(
    data: AcceptInviteRequest,
    db: AsyncSession = Depends(get_db),
) -> TokenResponse:
    result = await db.execute(select(WorkspaceInvite).where(WorkspaceInvite.token == data.token))
    invite = result.scalar_one_or_none()

    if invite is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Invalid or expired invite link",
        )

    if as_utc(invite.expires_at) < utcnow():
        raise HTTPException(
            status_code=status.HTTP_410_GONE,
            detail="This invite has expired",
        )

    if await _email_taken(db, invite.email):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="An account with this email already exists",
        )

    try:
        user = await add_user_with_seat_check(
            db,
            invite.workspace_id,
            email=invite.email,
            name=data.name,
            hashed_password=hash_password(data.password),
            role=invite.role,
        )
    except SeatLimitError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e),
        )

    await db.delete(invite)
    await db.flush()

    logger.info(f"Invite accepted by {user.email} for workspace {user.workspace_id}")
    return await _issue_tokens(user)
