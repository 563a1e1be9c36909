"""Workspace roles and the permissions each one grants.

Owners manage everything. Members get a read-only view of the workspace.
"""

from enum import Enum

from fastapi import HTTPException, status


class Role(str, Enum):
    OWNER = "OWNER"
    MEMBER = "MEMBER"


class Permission(str, Enum):
    # Workspace data
    WORKSPACE_READ = "workspace:read"
    WORKSPACE_MANAGE = "workspace:manage"

    # Team and projects
    TEAM_READ = "team:read"
    TEAM_MANAGE = "team:manage"
    PROJECT_READ = "project:read"
    PROJECT_MANAGE = "project:manage"
    ASSIGNMENT_MANAGE = "assignment:manage"
    SKILL_MANAGE = "skill:manage"

    # Users and billing
    USER_INVITE = "user:invite"
    USER_MANAGE = "user:manage"
    BILLING_MANAGE = "billing:manage"

    # Reports
    REPORT_READ = "report:read"


ROLE_PERMISSIONS: dict[Role, set[Permission]] = {
    Role.OWNER: set(Permission),
    Role.MEMBER: {
        Permission.WORKSPACE_READ,
        Permission.TEAM_READ,
        Permission.PROJECT_READ,
        Permission.REPORT_READ,
    },
}


def has_permission(role: Role | str, permission: Permission) -> bool:
    return permission in ROLE_PERMISSIONS.get(Role(role), set())


class PermissionChecker:
    """Raises 403 with a fixed message when a role lacks a permission."""

    def __init__(self, required_permission: Permission, detail: str | None = None):
        self.required_permission = required_permission
        self.detail = detail or f"Permission denied: {required_permission.value} required"

    def __call__(self, user_role: Role | str) -> bool:
        if not has_permission(user_role, self.required_permission):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=self.detail,
            )
        return True
