"""Integration tests for reports API."""

import csv
import io
from uuid import uuid4

import pytest
import pytest_asyncio
from httpx import AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from procapacity.core.dates import add_weeks, start_of_week, utcnow
from procapacity.models.sql.assignment import Assignment
from procapacity.models.sql.project import Project
from procapacity.models.sql.team_member import TeamMember
from procapacity.models.sql.workspace import Workspace


@pytest_asyncio.fixture
async def booked_member(
    db_session: AsyncSession, workspace: Workspace, team_member: TeamMember
) -> TeamMember:
    """The designer booked 30 h billable and 4 h internal this week."""
    monday = start_of_week(utcnow().date())
    client_project = Project(
        id=uuid4(), workspace_id=workspace.id, name="Client Work", status="ACTIVE", start_date=monday
    )
    archived = Project(
        id=uuid4(),
        workspace_id=workspace.id,
        name="Old Work",
        status="COMPLETED",
        start_date=monday,
        active=False,
    )
    db_session.add_all([client_project, archived])
    await db_session.flush()
    db_session.add_all(
        [
            Assignment(
                id=uuid4(),
                workspace_id=workspace.id,
                project_id=client_project.id,
                team_member_id=team_member.id,
                start_date=monday,
                end_date=monday,
                hours_per_week=30,
            ),
            Assignment(
                id=uuid4(),
                workspace_id=workspace.id,
                project_id=client_project.id,
                team_member_id=team_member.id,
                start_date=monday,
                end_date=monday,
                hours_per_week=4,
                billable=False,
            ),
            Assignment(
                id=uuid4(),
                workspace_id=workspace.id,
                project_id=archived.id,
                team_member_id=team_member.id,
                start_date=monday,
                end_date=monday,
                hours_per_week=6,
            ),
        ]
    )
    await db_session.commit()
    return team_member


@pytest.mark.asyncio
class TestReportsAPI:
    """Integration tests for utilization reports."""

    async def test_utilization_json(
        self, client: AsyncClient, member_headers: dict, booked_member: TeamMember
    ):
        """Test the default window is eight weeks from this week."""
        response = await client.get("/api/v1/reports/utilization", headers=member_headers)

        assert response.status_code == 200
        data = response.json()
        monday = start_of_week(utcnow().date())
        assert data["start_date"] == monday.isoformat()
        assert data["end_date"] == add_weeks(monday, 7).isoformat()
        assert data["member_count"] == 1
        assert len(data["rows"]) == 8

        first = data["rows"][0]
        assert first["billable_hours"] == 36
        assert first["non_billable_hours"] == 4
        assert first["utilization_percent"] == 100

    async def test_utilization_invalid_range(self, client: AsyncClient, auth_headers: dict):
        """Test an end before the start is rejected."""
        response = await client.get(
            "/api/v1/reports/utilization",
            headers=auth_headers,
            params={"start_date": "2026-03-09", "end_date": "2026-03-02"},
        )

        assert response.status_code == 400
        assert response.json()["detail"] == "End date must be after start date"

    async def test_utilization_csv(
        self, client: AsyncClient, auth_headers: dict, booked_member: TeamMember
    ):
        """Test the CSV export has one row per member week."""
        monday = start_of_week(utcnow().date())
        response = await client.get(
            "/api/v1/reports/utilization",
            headers=auth_headers,
            params={"format": "csv", "end_date": add_weeks(monday, 1).isoformat()},
        )

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/csv")
        assert response.headers["content-disposition"] == (
            f'attachment; filename="utilization-{monday.isoformat()}-'
            f'{add_weeks(monday, 1).isoformat()}.csv"'
        )

        rows = list(csv.DictReader(io.StringIO(response.text)))
        assert len(rows) == 2
        assert rows[0]["name"] == "Dana Designer"
        assert float(rows[0]["total_hours"]) == 40
        assert float(rows[1]["total_hours"]) == 0

    async def test_utilization_csv_path(
        self, client: AsyncClient, auth_headers: dict, booked_member: TeamMember
    ):
        """Test the dedicated CSV path."""
        response = await client.get("/api/v1/reports/utilization.csv", headers=auth_headers)

        assert response.status_code == 200
        assert response.text.splitlines()[0] == (
            "name,role,week_start,billable_hours,non_billable_hours,"
            "total_hours,capacity,utilization_percent"
        )

    async def test_utilization_pdf(
        self, client: AsyncClient, auth_headers: dict, booked_member: TeamMember
    ):
        """Test the PDF export is a PDF document."""
        response = await client.get("/api/v1/reports/pdf", headers=auth_headers)

        assert response.status_code == 200
        assert response.headers["content-type"] == "application/pdf"
        assert "procapacity-report-" in response.headers["content-disposition"]
        assert response.content.startswith(b"%PDF")

    async def test_reports_require_auth(self, client: AsyncClient):
        """Test reports are not public."""
        response = await client.get("/api/v1/reports/utilization")

        assert response.status_code in (401, 403)
