"""Integration tests for projects API."""

from datetime import date
from uuid import uuid4

import pytest
import pytest_asyncio
from httpx import AsyncClient
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from procapacity.core.dates import add_weeks, start_of_week, utcnow
from procapacity.models.sql.assignment import Assignment
from procapacity.models.sql.project import Project
from procapacity.models.sql.team_member import TeamMember
from procapacity.models.sql.user import User
from procapacity.models.sql.workspace import Workspace


def this_monday() -> date:
    return start_of_week(utcnow().date())


@pytest_asyncio.fixture
async def project(db_session: AsyncSession, workspace: Workspace, owner: User) -> Project:
    """An active eight-week project starting this week."""
    project = Project(
        id=uuid4(),
        workspace_id=workspace.id,
        name="Website Redesign",
        client_name="Acme Corp",
        type="PROJECT",
        status="ACTIVE",
        start_date=this_monday(),
        end_date=add_weeks(this_monday(), 8),
        total_budget_hours=400,
        required_skills=["Figma"],
        owner_id=owner.id,
    )
    db_session.add(project)
    await db_session.commit()
    await db_session.refresh(project)
    return project


@pytest.mark.asyncio
class TestProjectsAPI:
    """Integration tests for project endpoints."""

    async def test_create_project(self, client: AsyncClient, owner: User, auth_headers: dict):
        """Test project creation defaults the owner to the caller."""
        response = await client.post(
            "/api/v1/projects",
            headers=auth_headers,
            json={
                "name": "Brand Refresh",
                "client_name": "GreenLife",
                "type": "CAMPAIGN",
                "start_date": this_monday().isoformat(),
                "end_date": add_weeks(this_monday(), 4).isoformat(),
                "total_budget_hours": 120,
            },
        )

        assert response.status_code == 201
        data = response.json()
        assert data["name"] == "Brand Refresh"
        assert data["status"] == "PLANNED"
        assert data["type"] == "CAMPAIGN"
        assert data["owner_id"] == str(owner.id)

    async def test_create_project_end_before_start(self, client: AsyncClient, auth_headers: dict):
        """Test a project ending before it starts is rejected."""
        response = await client.post(
            "/api/v1/projects",
            headers=auth_headers,
            json={
                "name": "Backwards",
                "start_date": "2026-03-10",
                "end_date": "2026-03-01",
            },
        )

        assert response.status_code == 422

    async def test_create_project_unknown_owner(self, client: AsyncClient, auth_headers: dict):
        """Test the owner must be a user in the workspace."""
        response = await client.post(
            "/api/v1/projects",
            headers=auth_headers,
            json={"name": "Orphan", "start_date": "2026-03-02", "owner_id": str(uuid4())},
        )

        assert response.status_code == 400
        assert response.json()["detail"] == "Project owner not found in workspace"

    async def test_create_project_as_member_forbidden(
        self, client: AsyncClient, member_headers: dict
    ):
        """Test members cannot create projects."""
        response = await client.post(
            "/api/v1/projects",
            headers=member_headers,
            json={"name": "Nope", "start_date": "2026-03-02"},
        )

        assert response.status_code == 403

    async def test_create_project_unauthenticated(self, client: AsyncClient):
        """Test project creation without auth fails."""
        response = await client.post(
            "/api/v1/projects",
            json={"name": "Test Project", "start_date": "2026-03-02"},
        )

        assert response.status_code in (401, 403)

    async def test_list_projects_with_health(
        self, client: AsyncClient, member_headers: dict, project: Project
    ):
        """Test listing includes health and assignment counts."""
        response = await client.get("/api/v1/projects", headers=member_headers)

        assert response.status_code == 200
        data = response.json()
        assert data["total"] == 1
        item = data["items"][0]
        assert item["assignment_count"] == 0
        assert item["health"]["status"] == "critical"
        assert item["health"]["reasons"] == ["No team members assigned, starting within 1 week"]

    async def test_list_projects_filters(
        self,
        client: AsyncClient,
        auth_headers: dict,
        project: Project,
        workspace: Workspace,
        db_session: AsyncSession,
    ):
        """Test status and search filters."""
        db_session.add(
            Project(
                id=uuid4(),
                workspace_id=workspace.id,
                name="Quarterly Audit",
                type="AUDIT",
                status="PLANNED",
                start_date=add_weeks(this_monday(), 6),
            )
        )
        await db_session.commit()

        response = await client.get(
            "/api/v1/projects", headers=auth_headers, params={"status": "PLANNED"}
        )
        assert [p["name"] for p in response.json()["items"]] == ["Quarterly Audit"]

        response = await client.get(
            "/api/v1/projects", headers=auth_headers, params={"search": "acme"}
        )
        assert [p["name"] for p in response.json()["items"]] == ["Website Redesign"]

    async def test_list_projects_pagination(
        self,
        client: AsyncClient,
        auth_headers: dict,
        workspace: Workspace,
        db_session: AsyncSession,
    ):
        """Test project listing with pagination."""
        for i in range(5):
            db_session.add(
                Project(
                    id=uuid4(),
                    workspace_id=workspace.id,
                    name=f"Project {i}",
                    start_date=this_monday(),
                )
            )
        await db_session.commit()

        response = await client.get(
            "/api/v1/projects", headers=auth_headers, params={"page": 1, "page_size": 2}
        )

        data = response.json()
        assert data["total"] == 5
        assert len(data["items"]) == 2
        assert data["pages"] == 3

    async def test_get_project_detail(
        self,
        client: AsyncClient,
        auth_headers: dict,
        project: Project,
        team_member: TeamMember,
        workspace: Workspace,
        db_session: AsyncSession,
    ):
        """Test detail lists assignments and allocated hours."""
        db_session.add(
            Assignment(
                id=uuid4(),
                workspace_id=workspace.id,
                project_id=project.id,
                team_member_id=team_member.id,
                start_date=this_monday(),
                end_date=add_weeks(this_monday(), 1),
                hours_per_week=20,
            )
        )
        await db_session.commit()

        response = await client.get(f"/api/v1/projects/{project.id}", headers=auth_headers)

        assert response.status_code == 200
        data = response.json()
        assert len(data["assignments"]) == 1
        assert data["assignments"][0]["team_member_name"] == "Dana Designer"
        # 8 days inclusive counts as two weeks
        assert data["allocated_hours"] == 40
        assert data["health"]["status"] == "healthy"

    async def test_get_project_not_found(self, client: AsyncClient, auth_headers: dict):
        """Test getting a missing project."""
        response = await client.get(f"/api/v1/projects/{uuid4()}", headers=auth_headers)

        assert response.status_code == 404
        assert response.json()["detail"] == "Project not found"

    async def test_update_project(self, client: AsyncClient, auth_headers: dict, project: Project):
        """Test updating name and status."""
        response = await client.patch(
            f"/api/v1/projects/{project.id}",
            headers=auth_headers,
            json={"name": "Website Redesign v2", "status": "ON_HOLD"},
        )

        assert response.status_code == 200
        data = response.json()
        assert data["name"] == "Website Redesign v2"
        assert data["status"] == "ON_HOLD"

    async def test_update_project_end_before_start(
        self, client: AsyncClient, auth_headers: dict, project: Project
    ):
        """Test moving the end before the stored start is rejected."""
        response = await client.patch(
            f"/api/v1/projects/{project.id}",
            headers=auth_headers,
            json={"end_date": add_weeks(project.start_date, -1).isoformat()},
        )

        assert response.status_code == 400
        assert response.json()["detail"] == "End date must be after start date"

    async def test_update_status(self, client: AsyncClient, auth_headers: dict, project: Project):
        """Test the status endpoint."""
        response = await client.patch(
            f"/api/v1/projects/{project.id}/status",
            headers=auth_headers,
            json={"status": "COMPLETED"},
        )

        assert response.status_code == 200
        assert response.json()["status"] == "COMPLETED"

    async def test_delete_project_is_soft(
        self, client: AsyncClient, auth_headers: dict, project: Project
    ):
        """Test deleted projects are hidden but kept."""
        response = await client.delete(f"/api/v1/projects/{project.id}", headers=auth_headers)
        assert response.status_code == 204
        assert project.active is False

        response = await client.get("/api/v1/projects", headers=auth_headers)
        assert response.json()["total"] == 0

    async def test_duplicate_project(
        self,
        client: AsyncClient,
        auth_headers: dict,
        project: Project,
        db_session: AsyncSession,
    ):
        """Test duplicating copies details as a planned project."""
        response = await client.post(
            f"/api/v1/projects/{project.id}/duplicate", headers=auth_headers
        )

        assert response.status_code == 201
        data = response.json()
        assert data["name"] == "Website Redesign (Copy)"
        assert data["status"] == "PLANNED"
        assert data["client_name"] == "Acme Corp"
        assert data["id"] != str(project.id)


@pytest.mark.asyncio
class TestShiftTimelineAPI:
    """Integration tests for shifting a project's timeline."""

    async def test_shift_timeline(
        self,
        client: AsyncClient,
        auth_headers: dict,
        project: Project,
        team_member: TeamMember,
        workspace: Workspace,
        db_session: AsyncSession,
    ):
        """Test the project and its assignments move together."""
        assignment = Assignment(
            id=uuid4(),
            workspace_id=workspace.id,
            project_id=project.id,
            team_member_id=team_member.id,
            start_date=this_monday(),
            end_date=add_weeks(this_monday(), 2),
            hours_per_week=10,
        )
        db_session.add(assignment)
        await db_session.commit()
        original_start = project.start_date

        response = await client.post(
            "/api/v1/projects/shift-timeline",
            headers=auth_headers,
            json={"project_id": str(project.id), "delta_weeks": 2},
        )

        assert response.status_code == 200
        assert response.json()["message"] == "Shifted 2 records by 2 weeks"

        result = await db_session.execute(select(Assignment).where(Assignment.id == assignment.id))
        moved = result.scalar_one()
        assert moved.start_date == add_weeks(this_monday(), 2)
        assert project.start_date == add_weeks(original_start, 2)

    async def test_shift_timeline_zero_weeks(
        self, client: AsyncClient, auth_headers: dict, project: Project
    ):
        """Test a zero shift is rejected."""
        response = await client.post(
            "/api/v1/projects/shift-timeline",
            headers=auth_headers,
            json={"project_id": str(project.id), "delta_weeks": 0},
        )

        assert response.status_code == 422
