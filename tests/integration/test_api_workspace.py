"""Integration tests for workspace API."""

from datetime import timedelta
from uuid import uuid4

import pytest
from httpx import AsyncClient
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from procapacity.core.dates import add_weeks, start_of_week, utcnow
from procapacity.models.sql.assignment import Assignment
from procapacity.models.sql.project import Project
from procapacity.models.sql.team_member import TeamMember
from procapacity.models.sql.workspace import Workspace


@pytest.mark.asyncio
class TestWorkspaceAPI:
    """Integration tests for workspace endpoints."""

    async def test_get_workspace(self, client: AsyncClient, member_headers: dict):
        """Test the derived trial state is included."""
        response = await client.get("/api/v1/workspace", headers=member_headers)

        assert response.status_code == 200
        data = response.json()
        assert data["name"] == "Acme Agency"
        assert data["trial_active"] is True
        assert data["trial_days_remaining"] in (14, 15)
        assert data["read_only"] is False

    async def test_expired_trial_is_read_only(
        self,
        client: AsyncClient,
        auth_headers: dict,
        workspace: Workspace,
        db_session: AsyncSession,
    ):
        """Test an expired, unpaid trial is reported as read-only."""
        workspace.trial_ends_at = utcnow() - timedelta(days=2)
        await db_session.commit()

        response = await client.get("/api/v1/workspace", headers=auth_headers)

        data = response.json()
        assert data["trial_active"] is False
        assert data["trial_days_remaining"] == 0
        assert data["read_only"] is True

    async def test_usage(self, client: AsyncClient, auth_headers: dict, team_member: TeamMember):
        """Test usage against the Growth plan limits."""
        response = await client.get("/api/v1/workspace/usage", headers=auth_headers)

        assert response.status_code == 200
        data = response.json()
        assert data["team_members"] == {"current": 1, "limit": 30, "percentage": pytest.approx(3.33, abs=0.01)}
        assert data["projects"]["limit"] == 75
        assert data["owner_users"]["current"] == 1
        assert data["seats"] == {"current": 1, "included": 30, "max": 40, "extra": 0}

    async def test_empty_dashboard(self, client: AsyncClient, auth_headers: dict):
        """Test a fresh workspace reports itself as empty."""
        response = await client.get("/api/v1/workspace/dashboard", headers=auth_headers)

        assert response.status_code == 200
        data = response.json()
        assert data["is_empty"] is True
        assert data["has_demo_data"] is False
        assert len(data["weeks"]) == 4

    async def test_dashboard(
        self,
        client: AsyncClient,
        auth_headers: dict,
        workspace: Workspace,
        team_member: TeamMember,
        db_session: AsyncSession,
    ):
        """Test utilization and recent projects on the dashboard."""
        monday = start_of_week(utcnow().date())
        project = Project(
            id=uuid4(),
            workspace_id=workspace.id,
            name="Busy Project",
            status="ACTIVE",
            start_date=monday,
            end_date=add_weeks(monday, 8),
        )
        db_session.add(project)
        await db_session.flush()
        db_session.add(
            Assignment(
                id=uuid4(),
                workspace_id=workspace.id,
                project_id=project.id,
                team_member_id=team_member.id,
                start_date=monday,
                end_date=add_weeks(monday, 8),
                hours_per_week=50,
            )
        )
        await db_session.commit()

        response = await client.get("/api/v1/workspace/dashboard", headers=auth_headers)

        data = response.json()
        assert data["active_team_members"] == 1
        assert data["active_projects"] == 1
        assert data["over_capacity_members"] == 1
        summary = data["utilization"][0]
        assert summary["average_utilization"] == 1.25
        assert summary["over_capacity_weeks"] == 4
        assert data["recent_projects"][0]["name"] == "Busy Project"
        assert data["recent_projects"][0]["assignment_count"] == 1
        assert data["is_empty"] is False


@pytest.mark.asyncio
class TestWorkspaceSettingsAPI:
    """Integration tests for capacity settings."""

    async def test_update_settings(self, client: AsyncClient, auth_headers: dict):
        """Test saving name, capacity and thresholds."""
        response = await client.patch(
            "/api/v1/workspace/settings",
            headers=auth_headers,
            json={
                "name": "Acme Creative",
                "default_capacity_hours": 35,
                "warning_threshold": 0.7,
                "critical_threshold": 1.1,
            },
        )

        assert response.status_code == 200
        data = response.json()
        assert data["name"] == "Acme Creative"
        assert data["default_capacity_hours"] == 35
        assert data["warning_threshold"] == 0.7
        assert data["critical_threshold"] == 1.1

    @pytest.mark.parametrize(
        "payload, detail",
        [
            ({"default_capacity_hours": 0}, "Capacity must be between 1 and 168 hours"),
            ({"warning_threshold": 1.5}, "Warning threshold must be between 1% and 100%"),
            ({"critical_threshold": 2.5}, "Critical threshold must be between 1% and 200%"),
            ({"warning_threshold": 0.96}, "Warning threshold must be less than critical threshold"),
        ],
    )
    async def test_invalid_settings(
        self, client: AsyncClient, auth_headers: dict, payload: dict, detail: str
    ):
        """Test each validation message."""
        response = await client.patch(
            "/api/v1/workspace/settings", headers=auth_headers, json=payload
        )

        assert response.status_code == 400
        assert response.json()["detail"] == detail

    async def test_member_cannot_update_settings(self, client: AsyncClient, member_headers: dict):
        """Test members cannot change settings."""
        response = await client.patch(
            "/api/v1/workspace/settings", headers=member_headers, json={"name": "Hijacked"}
        )

        assert response.status_code == 403
        assert response.json()["detail"] == "Only workspace owners can update settings"

    async def test_complete_onboarding(self, client: AsyncClient, auth_headers: dict):
        """Test onboarding can be marked finished."""
        response = await client.post(
            "/api/v1/workspace/complete-onboarding", headers=auth_headers
        )

        assert response.status_code == 200
        assert response.json()["onboarding_completed"] is True


@pytest.mark.asyncio
class TestDemoDataAPI:
    """Integration tests for loading and clearing demo data."""

    async def test_seed_and_clear_demo(
        self,
        client: AsyncClient,
        auth_headers: dict,
        workspace: Workspace,
        db_session: AsyncSession,
    ):
        """Test demo data loads once and clear removes it."""
        response = await client.post("/api/v1/workspace/seed-demo", headers=auth_headers)

        assert response.status_code == 201
        data = response.json()
        assert data["message"] == "Demo data loaded"
        assert data["team_members"] == 6
        assert data["projects"] == 9
        assert data["assignments"] == 13
        assert len(data["utilization_preview"]) == 6
        assert workspace.onboarding_completed is True

        response = await client.post("/api/v1/workspace/seed-demo", headers=auth_headers)
        assert response.status_code == 400
        assert response.json()["detail"] == "Demo data has already been loaded"

        response = await client.post("/api/v1/workspace/clear-demo", headers=auth_headers)

        assert response.status_code == 200
        data = response.json()
        assert data["message"] == "Workspace data cleared"
        assert data["team_members"] == 6
        assert data["projects"] == 9

        remaining = await db_session.execute(select(func.count()).select_from(TeamMember))
        assert remaining.scalar() == 0

    async def test_member_cannot_seed_demo(self, client: AsyncClient, member_headers: dict):
        """Test members cannot load demo data."""
        response = await client.post("/api/v1/workspace/seed-demo", headers=member_headers)

        assert response.status_code == 403
        assert response.json()["detail"] == "Only workspace owners can load demo data"
