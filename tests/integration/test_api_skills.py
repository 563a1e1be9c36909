"""Integration tests for skills API."""

from uuid import uuid4

import pytest
from httpx import AsyncClient
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from procapacity.core.seed_skills import skills_for_industry
from procapacity.models.sql.skill import Skill, TeamMemberSkill
from procapacity.models.sql.team_member import TeamMember
from procapacity.models.sql.workspace import Workspace


async def _linked_skill(
    db_session: AsyncSession, workspace: Workspace, member: TeamMember, name: str
) -> Skill:
    skill = Skill(id=uuid4(), workspace_id=workspace.id, name=name, category="CREATIVE")
    db_session.add(skill)
    await db_session.flush()
    db_session.add(TeamMemberSkill(team_member_id=member.id, skill_id=skill.id))
    await db_session.commit()
    return skill


@pytest.mark.asyncio
class TestSkillsAPI:
    """Integration tests for skill endpoints."""

    async def test_list_industries(self, client: AsyncClient):
        """Test the industry options are public."""
        response = await client.get("/api/v1/skills/industries")

        assert response.status_code == 200
        values = [option["value"] for option in response.json()]
        assert "MARKETING_AGENCY" in values
        assert "CUSTOM" in values

    async def test_create_skill(self, client: AsyncClient, auth_headers: dict):
        """Test creating a custom skill."""
        response = await client.post(
            "/api/v1/skills",
            headers=auth_headers,
            json={"name": "  Motion Design ", "description": "After Effects work"},
        )

        assert response.status_code == 201
        data = response.json()
        assert data["name"] == "Motion Design"
        assert data["category"] == "CUSTOM"
        assert data["is_preset"] is False
        assert data["member_count"] == 0

    async def test_create_duplicate_skill(
        self,
        client: AsyncClient,
        auth_headers: dict,
        workspace: Workspace,
        team_member: TeamMember,
        db_session: AsyncSession,
    ):
        """Test names are unique per workspace."""
        await _linked_skill(db_session, workspace, team_member, "Figma")

        response = await client.post(
            "/api/v1/skills", headers=auth_headers, json={"name": "Figma"}
        )

        assert response.status_code == 400
        assert response.json()["detail"] == 'A skill named "Figma" already exists'

    async def test_create_skill_short_name(self, client: AsyncClient, auth_headers: dict):
        """Test one-character names are rejected."""
        response = await client.post("/api/v1/skills", headers=auth_headers, json={"name": "X"})

        assert response.status_code == 400
        assert response.json()["detail"] == "Skill name must be at least 2 characters"

    async def test_member_cannot_create_skill(self, client: AsyncClient, member_headers: dict):
        """Test members cannot change the taxonomy."""
        response = await client.post(
            "/api/v1/skills", headers=member_headers, json={"name": "Sneaky"}
        )

        assert response.status_code == 403
        assert response.json()["detail"] == "Only owners can manage skills"

    async def test_list_skills_with_member_counts(
        self,
        client: AsyncClient,
        member_headers: dict,
        workspace: Workspace,
        team_member: TeamMember,
        db_session: AsyncSession,
    ):
        """Test listing reports how many members hold each skill."""
        await _linked_skill(db_session, workspace, team_member, "Figma")

        response = await client.get("/api/v1/skills", headers=member_headers)

        assert response.status_code == 200
        data = response.json()
        assert len(data) == 1
        assert data[0]["name"] == "Figma"
        assert data[0]["member_count"] == 1

    async def test_seed_industry_skills(
        self, client: AsyncClient, auth_headers: dict, workspace: Workspace
    ):
        """Test seeding creates presets and finishes onboarding."""
        response = await client.post(
            "/api/v1/skills/seed", headers=auth_headers, json={"industry": "LAW_FIRM"}
        )

        assert response.status_code == 200
        assert response.json()["count"] == len(skills_for_industry("LAW_FIRM"))
        assert workspace.industry == "LAW_FIRM"
        assert workspace.onboarding_completed is True

        response = await client.post(
            "/api/v1/skills/seed", headers=auth_headers, json={"industry": "LAW_FIRM"}
        )
        assert response.json()["count"] == 0

    async def test_backfill_skills(
        self,
        client: AsyncClient,
        auth_headers: dict,
        team_member: TeamMember,
        db_session: AsyncSession,
    ):
        """Test skill names already on members become linked records."""
        response = await client.post("/api/v1/skills/backfill", headers=auth_headers)

        assert response.status_code == 200
        assert response.json()["count"] == 2

        result = await db_session.execute(
            select(TeamMemberSkill).where(TeamMemberSkill.team_member_id == team_member.id)
        )
        assert len(result.scalars().all()) == 2

    async def test_rename_skill_updates_members(
        self,
        client: AsyncClient,
        auth_headers: dict,
        workspace: Workspace,
        team_member: TeamMember,
        db_session: AsyncSession,
    ):
        """Test renaming a skill rewrites the holders' skill names."""
        skill = await _linked_skill(db_session, workspace, team_member, "Figma")

        response = await client.patch(
            f"/api/v1/skills/{skill.id}", headers=auth_headers, json={"name": "Figma Pro"}
        )

        assert response.status_code == 200
        data = response.json()
        assert data["name"] == "Figma Pro"
        assert data["member_count"] == 1
        assert "Figma Pro" in team_member.skills

    async def test_update_unknown_skill(self, client: AsyncClient, auth_headers: dict):
        """Test updating a missing skill."""
        response = await client.patch(
            f"/api/v1/skills/{uuid4()}", headers=auth_headers, json={"name": "Nothing"}
        )

        assert response.status_code == 404
        assert response.json()["detail"] == "Skill not found"

    async def test_delete_skill(
        self,
        client: AsyncClient,
        auth_headers: dict,
        workspace: Workspace,
        team_member: TeamMember,
        db_session: AsyncSession,
    ):
        """Test deleting a skill removes it from its holders."""
        skill = await _linked_skill(db_session, workspace, team_member, "Figma")

        response = await client.delete(f"/api/v1/skills/{skill.id}", headers=auth_headers)

        assert response.status_code == 204
        assert "Figma" not in team_member.skills
