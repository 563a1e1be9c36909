"""API dependencies for dependency injection."""

from uuid import UUID

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from procapacity.core.permissions import Permission, PermissionChecker
from procapacity.core.security import verify_access_token
from procapacity.db.postgres import get_db
from procapacity.models.sql.user import User
from procapacity.models.sql.workspace import Workspace
from procapacity.services.plan_limits import PlanCheckResult

# Security scheme
security = HTTPBearer()


async def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    db: AsyncSession = Depends(get_db),
) -> User:
    """Get the current authenticated user."""
    try:
        payload = verify_access_token(credentials.credentials)
        user_id = UUID(payload["sub"])
    except (ValueError, KeyError) as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=str(e),
            headers={"WWW-Authenticate": "Bearer"},
        )

    result = await db.execute(select(User).where(User.id == user_id))
    user = result.scalar_one_or_none()

    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User not found",
            headers={"WWW-Authenticate": "Bearer"},
        )

    if not user.active:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="User account is disabled",
        )

    return user


async def get_current_workspace(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> Workspace:
    """Get the workspace the current user belongs to."""
    result = await db.execute(select(Workspace).where(Workspace.id == current_user.workspace_id))
    workspace = result.scalar_one_or_none()

    if workspace is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Workspace not found",
        )
    return workspace


class RequirePermission:
    """Dependency that returns the current user if their role grants a permission."""

    def __init__(self, permission: Permission, detail: str | None = None):
        self.checker = PermissionChecker(permission, detail)

    async def __call__(self, current_user: User = Depends(get_current_user)) -> User:
        self.checker(current_user.role)
        return current_user


def ensure_allowed(check: PlanCheckResult) -> None:
    """Raise 403 when a plan or trial check failed."""
    if not check.allowed:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=check.reason or "Upgrade required",
        )


# Common permission dependencies
require_team_manager = RequirePermission(
    Permission.TEAM_MANAGE, "Only owners can manage team members"
)
require_project_manager = RequirePermission(
    Permission.PROJECT_MANAGE, "Only owners can manage projects"
)
require_assignment_manager = RequirePermission(
    Permission.ASSIGNMENT_MANAGE, "Only owners can manage assignments"
)
require_skill_manager = RequirePermission(Permission.SKILL_MANAGE, "Only owners can manage skills")
require_user_inviter = RequirePermission(
    Permission.USER_INVITE, "Only workspace owners can send invites"
)
require_user_manager = RequirePermission(
    Permission.USER_MANAGE, "Only workspace owners can manage users"
)
require_billing_manager = RequirePermission(
    Permission.BILLING_MANAGE, "Only workspace owners can manage billing"
)
require_workspace_manager = RequirePermission(
    Permission.WORKSPACE_MANAGE, "Only workspace owners can update settings"
)
require_team_importer = RequirePermission(
    Permission.USER_INVITE, "Only workspace owners can import team members"
)
