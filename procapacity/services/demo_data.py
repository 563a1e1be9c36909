"""Demo workspace data for first-run exploration."""

import logging
from dataclasses import dataclass
from datetime import date
from typing import Optional
from uuid import UUID

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from procapacity.core.capacity import MemberLoad, get_weekly_utilization, utilization_level
from procapacity.core.constants import INTERNAL_PROJECTS
from procapacity.core.dates import add_weeks, start_of_week, utcnow
from procapacity.models.sql.assignment import Assignment
from procapacity.models.sql.project import Project, ProjectStatus, ProjectType
from procapacity.models.sql.skill import TeamMemberSkill
from procapacity.models.sql.team_member import TeamMember
from procapacity.models.sql.user import User
from procapacity.models.sql.workspace import Workspace

logger = logging.getLogger(__name__)

RETAINER_DEFAULT_WEEKS = 12

DEMO_TEAM_MEMBERS = [
    {
        "name": "Sarah Chen",
        "title": "Lead Designer",
        "role": "Designer",
        "skills": ["Figma", "Brand", "UI/UX"],
        "default_weekly_capacity_hours": 40,
    },
    {
        "name": "Mike Johnson",
        "title": "Senior Paid Media Manager",
        "role": "Paid Media Specialist",
        "skills": ["Meta Ads", "Google Ads", "TikTok"],
        "default_weekly_capacity_hours": 40,
    },
    {
        "name": "Lisa Park",
        "title": "SEO Manager",
        "role": "SEO Strategist",
        "skills": ["Technical SEO", "Content Strategy"],
        "default_weekly_capacity_hours": 40,
    },
    {
        "name": "Tom Wilson",
        "title": "Senior Developer",
        "role": "Developer",
        "skills": ["React", "Node.js", "WordPress"],
        "default_weekly_capacity_hours": 40,
    },
    {
        "name": "Emma Davis",
        "title": "Account Director",
        "role": "Account Manager",
        "skills": ["Client Relations", "Project Management"],
        "default_weekly_capacity_hours": 40,
    },
    {
        "name": "James Lee",
        "title": "Content Strategist",
        "role": "Content Strategist",
        "skills": ["Copywriting", "Social Media"],
        "default_weekly_capacity_hours": 32,
    },
]

# Offsets are in weeks from this week's Monday. No end offset means an open retainer.
DEMO_PROJECTS = [
    {
        "name": "Acme Corp Website Redesign",
        "client_name": "Acme Corp",
        "type": ProjectType.PROJECT.value,
        "status": ProjectStatus.ACTIVE.value,
        "start_offset": -2,
        "end_offset": 6,
        "notes": "Complete website redesign with new branding.",
    },
    {
        "name": "TechStart Product Launch",
        "client_name": "TechStart",
        "type": ProjectType.PROJECT.value,
        "status": ProjectStatus.ACTIVE.value,
        "start_offset": -1,
        "end_offset": 7,
        "notes": "Product launch campaign across paid and organic channels.",
    },
    {
        "name": "GreenLife Brand Refresh",
        "client_name": "GreenLife Organics",
        "type": ProjectType.PROJECT.value,
        "status": ProjectStatus.PLANNED.value,
        "start_offset": 2,
        "end_offset": 14,
        "notes": "Complete brand refresh including new visual identity.",
    },
    {
        "name": "Meridian Digital Retainer",
        "client_name": "Meridian Group",
        "type": ProjectType.RETAINER.value,
        "status": ProjectStatus.ACTIVE.value,
        "start_offset": -12,
        "end_offset": None,
        "notes": "Ongoing digital marketing retainer - paid media focus.",
    },
    {
        "name": "Coastal Realty Monthly",
        "client_name": "Coastal Realty",
        "type": ProjectType.RETAINER.value,
        "status": ProjectStatus.ACTIVE.value,
        "start_offset": -8,
        "end_offset": None,
        "notes": "Monthly content and SEO retainer.",
    },
]

# (member, project, hours per week)
DEMO_ASSIGNMENTS = [
    ("Sarah Chen", "Acme Corp Website Redesign", 20),
    ("Sarah Chen", "GreenLife Brand Refresh", 15),
    ("Mike Johnson", "Meridian Digital Retainer", 25),
    ("Mike Johnson", "TechStart Product Launch", 20),
    ("Lisa Park", "Coastal Realty Monthly", 15),
    ("Lisa Park", "TechStart Product Launch", 10),
    ("Tom Wilson", "Acme Corp Website Redesign", 30),
    ("Emma Davis", "Acme Corp Website Redesign", 10),
    ("Emma Davis", "TechStart Product Launch", 10),
    ("Emma Davis", "Meridian Digital Retainer", 10),
    ("Emma Davis", "Coastal Realty Monthly", 10),
    ("James Lee", "Coastal Realty Monthly", 20),
]

INTERNAL_ASSIGNMENT = {
    "member": "Tom Wilson",
    "project": "Internal / Admin",
    "hours_per_week": 8,
    "start_offset": -4,
    "end_offset": 12,
    "notes": "Admin, planning, and team support",
}


@dataclass
class DemoSummary:
    team_members: int
    projects: int
    assignments: int
    utilization_preview: list[dict]


@dataclass
class ClearSummary:
    assignments: int
    projects: int
    team_members: int


async def seed_demo_data(
    db: AsyncSession, workspace_id: UUID, today: Optional[date] = None
) -> DemoSummary:
    """Create internal projects, demo members, client projects and assignments."""
    today = today or utcnow().date()
    week_start = start_of_week(today)

    internal = {}
    for name in INTERNAL_PROJECTS:
        project = Project(
            workspace_id=workspace_id,
            name=name,
            type=ProjectType.PROJECT.value,
            status=ProjectStatus.ACTIVE.value,
            start_date=add_weeks(today, -52),
            end_date=add_weeks(today, 52),
            notes="Internal non-billable time tracking",
        )
        db.add(project)
        internal[name] = project

    members = {}
    for data in DEMO_TEAM_MEMBERS:
        member = TeamMember(workspace_id=workspace_id, **data)
        db.add(member)
        members[member.name] = member

    projects = {}
    windows = {}
    for data in DEMO_PROJECTS:
        start = add_weeks(week_start, data["start_offset"])
        end = add_weeks(week_start, data["end_offset"]) if data["end_offset"] is not None else None
        project = Project(
            workspace_id=workspace_id,
            name=data["name"],
            client_name=data["client_name"],
            type=data["type"],
            status=data["status"],
            start_date=start,
            end_date=end,
            notes=data["notes"],
        )
        db.add(project)
        projects[project.name] = project
        windows[project.name] = (start, end or add_weeks(week_start, RETAINER_DEFAULT_WEEKS))

    await db.flush()

    assignments = []
    for member_name, project_name, hours in DEMO_ASSIGNMENTS:
        start, end = windows[project_name]
        assignments.append(
            Assignment(
                workspace_id=workspace_id,
                project_id=projects[project_name].id,
                team_member_id=members[member_name].id,
                start_date=start,
                end_date=end,
                hours_per_week=hours,
                billable=True,
            )
        )

    assignments.append(
        Assignment(
            workspace_id=workspace_id,
            project_id=internal[INTERNAL_ASSIGNMENT["project"]].id,
            team_member_id=members[INTERNAL_ASSIGNMENT["member"]].id,
            start_date=add_weeks(week_start, INTERNAL_ASSIGNMENT["start_offset"]),
            end_date=add_weeks(week_start, INTERNAL_ASSIGNMENT["end_offset"]),
            hours_per_week=INTERNAL_ASSIGNMENT["hours_per_week"],
            billable=False,
            notes=INTERNAL_ASSIGNMENT["notes"],
        )
    )
    db.add_all(assignments)

    workspace = await db.get(Workspace, workspace_id)
    workspace.onboarding_completed = True
    await db.flush()

    preview = []
    for member in members.values():
        load = MemberLoad.from_member(
            member, [a for a in assignments if a.team_member_id == member.id]
        )
        week = get_weekly_utilization(load, [week_start])[0]
        preview.append(
            {
                "name": member.name,
                "utilization": round(week.ratio * 100, 1),
                "status": utilization_level(
                    week.ratio, workspace.warning_threshold, workspace.critical_threshold
                ),
            }
        )

    logger.info(f"Seeded demo data for workspace {workspace_id}")
    return DemoSummary(
        team_members=len(members),
        projects=len(projects) + len(internal),
        assignments=len(assignments),
        utilization_preview=preview,
    )


async def clear_demo_data(db: AsyncSession, workspace_id: UUID) -> ClearSummary:
    """Delete all assignments and projects, and team members without a login."""
    deleted_assignments = await db.execute(
        delete(Assignment).where(Assignment.workspace_id == workspace_id)
    )
    deleted_projects = await db.execute(delete(Project).where(Project.workspace_id == workspace_id))

    linked = select(User.team_member_id).where(
        User.workspace_id == workspace_id, User.team_member_id.is_not(None)
    )
    orphans = select(TeamMember.id).where(
        TeamMember.workspace_id == workspace_id, TeamMember.id.not_in(linked)
    )
    await db.execute(delete(TeamMemberSkill).where(TeamMemberSkill.team_member_id.in_(orphans)))
    deleted_members = await db.execute(
        delete(TeamMember).where(
            TeamMember.workspace_id == workspace_id, TeamMember.id.not_in(linked)
        )
    )

    workspace = await db.get(Workspace, workspace_id)
    workspace.onboarding_completed = False
    await db.flush()

    logger.info(f"Cleared demo data for workspace {workspace_id}")
    return ClearSummary(
        assignments=deleted_assignments.rowcount,
        projects=deleted_projects.rowcount,
        team_members=deleted_members.rowcount,
    )
