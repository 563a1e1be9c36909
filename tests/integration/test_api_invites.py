"""Integration tests for invites and workspace user management."""

from datetime import timedelta
from types import SimpleNamespace
from unittest.mock import MagicMock
from uuid import uuid4

import pytest
from httpx import AsyncClient
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from procapacity.core.dates import utcnow
from procapacity.models.sql.invite import WorkspaceInvite
from procapacity.models.sql.user import User
from procapacity.models.sql.workspace import Workspace
from procapacity.services.email import TASK_SEND_TEAM_INVITE


async def _add_invite(
    db_session: AsyncSession, workspace: Workspace, email: str, expires_in: timedelta
) -> WorkspaceInvite:
    invite = WorkspaceInvite(
        id=uuid4(),
        workspace_id=workspace.id,
        email=email,
        role="MEMBER",
        token=uuid4().hex * 2,
        expires_at=utcnow() + expires_in,
    )
    db_session.add(invite)
    await db_session.commit()
    return invite


@pytest.mark.asyncio
class TestInvitesAPI:
    """Integration tests for invite endpoints."""

    async def test_create_invite(
        self,
        client: AsyncClient,
        auth_headers: dict,
        db_session: AsyncSession,
        send_task: MagicMock,
    ):
        """Test an invite is stored and the invite email queued."""
        response = await client.post(
            "/api/v1/invites",
            headers=auth_headers,
            json={"email": "New.Hire@Example.com"},
        )

        assert response.status_code == 201
        data = response.json()
        assert data["email"] == "new.hire@example.com"
        assert data["role"] == "MEMBER"

        invite = (await db_session.execute(select(WorkspaceInvite))).scalar_one()
        assert len(invite.token) == 64

        send_task.assert_called_once()
        assert send_task.call_args.args[0] == TASK_SEND_TEAM_INVITE
        queued = send_task.call_args.kwargs["kwargs"]
        assert queued["workspace_name"] == "Acme Agency"
        assert queued["action_url"].endswith(f"/invite/{invite.token}")

    async def test_invite_existing_member(
        self, client: AsyncClient, auth_headers: dict, member: User
    ):
        """Test inviting someone who already has a login in the workspace."""
        response = await client.post(
            "/api/v1/invites", headers=auth_headers, json={"email": member.email}
        )

        assert response.status_code == 400
        assert response.json()["detail"] == "This person is already a member of your workspace"

    async def test_invite_twice(
        self,
        client: AsyncClient,
        auth_headers: dict,
        workspace: Workspace,
        db_session: AsyncSession,
    ):
        """Test a pending invite blocks a second one for the same address."""
        await _add_invite(db_session, workspace, "pending@example.com", timedelta(days=3))

        response = await client.post(
            "/api/v1/invites", headers=auth_headers, json={"email": "pending@example.com"}
        )

        assert response.status_code == 400
        assert response.json()["detail"] == (
            "An invite has already been sent to this email address"
        )

    async def test_invite_as_member_forbidden(self, client: AsyncClient, member_headers: dict):
        """Test members cannot send invites."""
        response = await client.post(
            "/api/v1/invites", headers=member_headers, json={"email": "x@example.com"}
        )

        assert response.status_code == 403
        assert response.json()["detail"] == "Only workspace owners can send invites"

    async def test_invite_when_seats_full(
        self,
        client: AsyncClient,
        auth_headers: dict,
        workspace: Workspace,
        db_session: AsyncSession,
    ):
        """Test inviting past the plan's maximum seats is refused."""
        workspace.plan = "STARTER"
        workspace.current_seats = 15
        await db_session.commit()

        response = await client.post(
            "/api/v1/invites", headers=auth_headers, json={"email": "late@example.com"}
        )

        assert response.status_code == 400
        assert "maximum of 15 users" in response.json()["detail"]

    async def test_list_invites_hides_expired(
        self,
        client: AsyncClient,
        auth_headers: dict,
        workspace: Workspace,
        db_session: AsyncSession,
    ):
        """Test only pending invites are listed."""
        await _add_invite(db_session, workspace, "fresh@example.com", timedelta(days=3))
        await _add_invite(db_session, workspace, "stale@example.com", timedelta(days=-3))

        response = await client.get("/api/v1/invites", headers=auth_headers)

        assert response.status_code == 200
        assert [i["email"] for i in response.json()] == ["fresh@example.com"]

    async def test_lookup_invite(
        self, client: AsyncClient, workspace: Workspace, db_session: AsyncSession
    ):
        """Test the public lookup shows the workspace name."""
        invite = await _add_invite(db_session, workspace, "guest@example.com", timedelta(days=3))

        response = await client.get(f"/api/v1/invites/{invite.token}")

        assert response.status_code == 200
        data = response.json()
        assert data["email"] == "guest@example.com"
        assert data["workspace_name"] == "Acme Agency"

    async def test_lookup_expired_invite(
        self, client: AsyncClient, workspace: Workspace, db_session: AsyncSession
    ):
        """Test an expired invite answers 410."""
        invite = await _add_invite(db_session, workspace, "guest@example.com", timedelta(days=-1))

        response = await client.get(f"/api/v1/invites/{invite.token}")

        assert response.status_code == 410

    async def test_lookup_unknown_invite(self, client: AsyncClient, db_session: AsyncSession):
        """Test an unknown token answers 404."""
        response = await client.get("/api/v1/invites/unknown-token")

        assert response.status_code == 404
        assert response.json()["detail"] == "Invite not found"


@pytest.mark.asyncio
class TestUsersAPI:
    """Integration tests for user activation."""

    async def test_list_users(
        self, client: AsyncClient, member_headers: dict, owner: User, member: User
    ):
        """Test everyone in the workspace can see the user list."""
        response = await client.get("/api/v1/users", headers=member_headers)

        assert response.status_code == 200
        emails = {u["email"] for u in response.json()}
        assert emails == {owner.email, member.email}

    async def test_deactivate_and_reactivate(
        self,
        client: AsyncClient,
        auth_headers: dict,
        member: User,
        workspace: Workspace,
        refresh_store: SimpleNamespace,
    ):
        """Test toggling a user frees and re-consumes a seat."""
        response = await client.patch(
            f"/api/v1/users/{member.id}/status", headers=auth_headers, json={"active": False}
        )

        assert response.status_code == 200
        data = response.json()
        assert data["message"] == "User deactivated successfully"
        assert data["user"]["active"] is False
        assert data["current_seats"] == 1
        assert workspace.current_seats == 1
        refresh_store.revoke.assert_awaited_once_with(member.id)

        response = await client.patch(
            f"/api/v1/users/{member.id}/status", headers=auth_headers, json={"active": True}
        )

        assert response.status_code == 200
        assert response.json()["current_seats"] == 2

    async def test_status_no_change(self, client: AsyncClient, auth_headers: dict, member: User):
        """Test setting the current status is a no-op."""
        response = await client.patch(
            f"/api/v1/users/{member.id}/status", headers=auth_headers, json={"active": True}
        )

        assert response.status_code == 200
        assert response.json()["message"] == "User is already active"

    async def test_cannot_deactivate_self(
        self, client: AsyncClient, auth_headers: dict, owner: User
    ):
        """Test owners cannot lock themselves out."""
        response = await client.patch(
            f"/api/v1/users/{owner.id}/status", headers=auth_headers, json={"active": False}
        )

        assert response.status_code == 400
        assert response.json()["detail"] == "You cannot deactivate your own account"

    async def test_member_cannot_manage_users(
        self, client: AsyncClient, member_headers: dict, owner: User
    ):
        """Test members cannot change user status."""
        response = await client.patch(
            f"/api/v1/users/{owner.id}/status", headers=member_headers, json={"active": False}
        )

        assert response.status_code == 403

    async def test_reactivate_over_seat_limit(
        self,
        client: AsyncClient,
        auth_headers: dict,
        member: User,
        workspace: Workspace,
        db_session: AsyncSession,
    ):
        """Test reactivation is refused when the plan is full."""
        member.active = False
        workspace.plan = "STARTER"
        workspace.current_seats = 15
        await db_session.commit()

        response = await client.patch(
            f"/api/v1/users/{member.id}/status", headers=auth_headers, json={"active": True}
        )

        assert response.status_code == 400
        assert "maximum of 15 users" in response.json()["detail"]

    async def test_user_in_other_workspace(
        self, client: AsyncClient, auth_headers: dict, db_session: AsyncSession
    ):
        """Test users of another workspace cannot be touched."""
        other = Workspace(id=uuid4(), name="Other Agency")
        db_session.add(other)
        await db_session.flush()
        stranger = User(
            id=uuid4(),
            email="stranger@example.com",
            hashed_password="x",
            role="MEMBER",
            workspace_id=other.id,
        )
        db_session.add(stranger)
        await db_session.commit()

        response = await client.patch(
            f"/api/v1/users/{stranger.id}/status", headers=auth_headers, json={"active": False}
        )

        assert response.status_code == 403
