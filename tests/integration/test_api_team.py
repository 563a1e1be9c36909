"""Integration tests for team member API."""

from datetime import timedelta
from uuid import uuid4

import pytest
from httpx import AsyncClient
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from procapacity.core.dates import utcnow
from procapacity.models.sql.skill import Skill, TeamMemberSkill
from procapacity.models.sql.team_member import TeamMember
from procapacity.models.sql.workspace import Workspace


@pytest.mark.asyncio
class TestTeamMembersAPI:
    """Integration tests for team member endpoints."""

    async def test_create_team_member(
        self, client: AsyncClient, auth_headers: dict, db_session: AsyncSession
    ):
        """Test creating a member links their skills to skill records."""
        response = await client.post(
            "/api/v1/team-members",
            headers=auth_headers,
            json={
                "name": "Sam Strategist",
                "role": "Strategy",
                "title": "Lead Strategist",
                "skills": ["SEO", "Copywriting"],
                "default_weekly_capacity_hours": 32,
            },
        )

        assert response.status_code == 201
        data = response.json()
        assert data["name"] == "Sam Strategist"
        assert data["default_weekly_capacity_hours"] == 32
        assert sorted(data["skills"]) == ["Copywriting", "SEO"]

        links = await db_session.execute(select(TeamMemberSkill))
        assert len(links.scalars().all()) == 2

    async def test_create_team_member_as_member_forbidden(
        self, client: AsyncClient, member_headers: dict
    ):
        """Test members cannot add people to the roster."""
        response = await client.post(
            "/api/v1/team-members",
            headers=member_headers,
            json={"name": "Sam Strategist", "role": "Strategy"},
        )

        assert response.status_code == 403
        assert response.json()["detail"] == "Only owners can manage team members"

    async def test_create_team_member_invalid_capacity(
        self, client: AsyncClient, auth_headers: dict
    ):
        """Test capacity above 168 hours is rejected."""
        response = await client.post(
            "/api/v1/team-members",
            headers=auth_headers,
            json={"name": "Sam Strategist", "role": "Strategy", "default_weekly_capacity_hours": 200},
        )

        assert response.status_code == 422

    async def test_create_team_member_trial_expired(
        self,
        client: AsyncClient,
        auth_headers: dict,
        workspace: Workspace,
        db_session: AsyncSession,
    ):
        """Test an expired trial makes the workspace read-only."""
        workspace.trial_ends_at = utcnow() - timedelta(days=1)
        await db_session.commit()

        response = await client.post(
            "/api/v1/team-members",
            headers=auth_headers,
            json={"name": "Sam Strategist", "role": "Strategy"},
        )

        assert response.status_code == 403
        assert "trial has expired" in response.json()["detail"]

    async def test_list_team_members(
        self,
        client: AsyncClient,
        member_headers: dict,
        team_member: TeamMember,
        db_session: AsyncSession,
        workspace: Workspace,
    ):
        """Test members can read the roster and inactive people are hidden."""
        db_session.add(
            TeamMember(
                id=uuid4(),
                workspace_id=workspace.id,
                name="Gone Person",
                role="Designer",
                active=False,
            )
        )
        await db_session.commit()

        response = await client.get("/api/v1/team-members", headers=member_headers)

        assert response.status_code == 200
        data = response.json()
        assert data["total"] == 1
        assert data["items"][0]["name"] == team_member.name

        response = await client.get(
            "/api/v1/team-members",
            headers=member_headers,
            params={"include_inactive": True},
        )
        assert response.json()["total"] == 2

    async def test_get_team_member_detail(
        self, client: AsyncClient, auth_headers: dict, team_member: TeamMember
    ):
        """Test detail includes eight weeks of utilization."""
        response = await client.get(f"/api/v1/team-members/{team_member.id}", headers=auth_headers)

        assert response.status_code == 200
        data = response.json()
        assert len(data["utilization"]) == 8
        assert data["utilization"][0]["total_hours"] == 0
        assert data["has_login"] is False

    async def test_get_team_member_other_workspace(
        self, client: AsyncClient, auth_headers: dict, db_session: AsyncSession
    ):
        """Test people in another workspace are invisible."""
        other = Workspace(id=uuid4(), name="Other Agency")
        db_session.add(other)
        await db_session.flush()
        stranger = TeamMember(id=uuid4(), workspace_id=other.id, name="Stranger", role="Dev")
        db_session.add(stranger)
        await db_session.commit()

        response = await client.get(f"/api/v1/team-members/{stranger.id}", headers=auth_headers)

        assert response.status_code == 404
        assert response.json()["detail"] == "Team member not found"

    async def test_update_team_member(
        self, client: AsyncClient, auth_headers: dict, team_member: TeamMember
    ):
        """Test updating the title and capacity."""
        response = await client.patch(
            f"/api/v1/team-members/{team_member.id}",
            headers=auth_headers,
            json={"title": "Design Director", "default_weekly_capacity_hours": 30},
        )

        assert response.status_code == 200
        data = response.json()
        assert data["title"] == "Design Director"
        assert data["default_weekly_capacity_hours"] == 30

    async def test_delete_team_member_is_soft(
        self,
        client: AsyncClient,
        auth_headers: dict,
        team_member: TeamMember,
        db_session: AsyncSession,
    ):
        """Test deleting keeps the row with active=false."""
        response = await client.delete(
            f"/api/v1/team-members/{team_member.id}", headers=auth_headers
        )

        assert response.status_code == 204
        assert await db_session.get(TeamMember, team_member.id) is not None
        assert team_member.active is False


@pytest.mark.asyncio
class TestTeamMemberSkillsAPI:
    """Integration tests for per-member skill links."""

    async def _skill(self, db_session: AsyncSession, workspace: Workspace, name: str) -> Skill:
        skill = Skill(id=uuid4(), workspace_id=workspace.id, name=name, category="DESIGN")
        db_session.add(skill)
        await db_session.commit()
        return skill

    async def test_assign_and_remove_skill(
        self,
        client: AsyncClient,
        auth_headers: dict,
        team_member: TeamMember,
        workspace: Workspace,
        db_session: AsyncSession,
    ):
        """Test assigning a skill with a proficiency and removing it again."""
        skill = await self._skill(db_session, workspace, "Illustration")

        response = await client.post(
            f"/api/v1/team-members/{team_member.id}/skills/{skill.id}",
            headers=auth_headers,
            json={"proficiency": "EXPERT"},
        )
        assert response.status_code == 200
        assert response.json()["proficiency"] == "EXPERT"
        assert "Illustration" in team_member.skills

        response = await client.delete(
            f"/api/v1/team-members/{team_member.id}/skills/{skill.id}",
            headers=auth_headers,
        )
        assert response.status_code == 204
        assert "Illustration" not in team_member.skills

    async def test_replace_skills(
        self,
        client: AsyncClient,
        auth_headers: dict,
        team_member: TeamMember,
        workspace: Workspace,
        db_session: AsyncSession,
    ):
        """Test replacing the full skill set."""
        first = await self._skill(db_session, workspace, "Motion")
        second = await self._skill(db_session, workspace, "Typography")

        response = await client.put(
            f"/api/v1/team-members/{team_member.id}/skills",
            headers=auth_headers,
            json={
                "skills": [
                    {"skill_id": str(first.id), "proficiency": "BEGINNER"},
                    {"skill_id": str(second.id), "proficiency": "EXPERT"},
                ]
            },
        )

        assert response.status_code == 200
        names = [s["name"] for s in response.json()]
        assert names == ["Motion", "Typography"]

    async def test_assign_unknown_skill(
        self, client: AsyncClient, auth_headers: dict, team_member: TeamMember
    ):
        """Test assigning a skill that does not exist."""
        response = await client.post(
            f"/api/v1/team-members/{team_member.id}/skills/{uuid4()}",
            headers=auth_headers,
            json={"proficiency": "EXPERT"},
        )

        assert response.status_code == 404
