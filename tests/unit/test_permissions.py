"""Unit tests for role-based access control."""

import pytest
from fastapi import HTTPException

from procapacity.core.permissions import (
    ROLE_PERMISSIONS,
    Permission,
    PermissionChecker,
    Role,
    has_permission,
)


class TestRolePermissions:
    """Tests for RBAC functionality."""

    def test_owner_has_all_permissions(self):
        """Verify owner role has all permissions."""
        for permission in Permission:
            assert has_permission(Role.OWNER, permission) is True

    def test_member_is_read_only(self):
        """Verify members can read but not change anything."""
        assert has_permission(Role.MEMBER, Permission.TEAM_READ) is True
        assert has_permission(Role.MEMBER, Permission.PROJECT_READ) is True
        assert has_permission(Role.MEMBER, Permission.REPORT_READ) is True

        assert has_permission(Role.MEMBER, Permission.TEAM_MANAGE) is False
        assert has_permission(Role.MEMBER, Permission.ASSIGNMENT_MANAGE) is False
        assert has_permission(Role.MEMBER, Permission.USER_INVITE) is False
        assert has_permission(Role.MEMBER, Permission.BILLING_MANAGE) is False

    def test_role_given_as_string(self):
        """Verify stored role strings are accepted."""
        assert has_permission("OWNER", Permission.BILLING_MANAGE) is True
        assert has_permission("MEMBER", Permission.BILLING_MANAGE) is False

    def test_role_permissions_mapping_complete(self):
        """Verify all roles have permissions mapped."""
        for role in Role:
            assert role in ROLE_PERMISSIONS
            assert isinstance(ROLE_PERMISSIONS[role], set)


class TestPermissionChecker:
    def test_allows_permitted_role(self):
        checker = PermissionChecker(Permission.TEAM_MANAGE)

        assert checker("OWNER") is True

    def test_rejects_with_custom_detail(self):
        """Verify the configured message is returned with a 403."""
        checker = PermissionChecker(Permission.TEAM_MANAGE, "Only owners can manage team members")

        with pytest.raises(HTTPException) as exc_info:
            checker(Role.MEMBER)

        assert exc_info.value.status_code == 403
        assert exc_info.value.detail == "Only owners can manage team members"

    def test_default_detail_names_the_permission(self):
        checker = PermissionChecker(Permission.BILLING_MANAGE)

        with pytest.raises(HTTPException) as exc_info:
            checker(Role.MEMBER)

        assert exc_info.value.detail == "Permission denied: billing:manage required"
