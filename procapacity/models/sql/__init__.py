"""SQLAlchemy models package."""

from procapacity.models.sql.assignment import Assignment
from procapacity.models.sql.invite import WorkspaceInvite
from procapacity.models.sql.project import Project
from procapacity.models.sql.skill import Skill, TeamMemberSkill
from procapacity.models.sql.team_import import TeamImport
from procapacity.models.sql.team_member import TeamMember
from procapacity.models.sql.user import User
from procapacity.models.sql.workspace import Workspace

__all__ = [
    "Workspace",
    "User",
    "TeamMember",
    "Project",
    "Assignment",
    "Skill",
    "TeamMemberSkill",
    "WorkspaceInvite",
    "TeamImport",
]
