"""API v1 router aggregation."""

from fastapi import APIRouter

from procapacity.api.v1.admin import router as admin_router
from procapacity.api.v1.assignments import router as assignments_router
from procapacity.api.v1.auth import router as auth_router
from procapacity.api.v1.billing import router as billing_router
from procapacity.api.v1.capacity import router as capacity_router
from procapacity.api.v1.invites import router as invites_router
from procapacity.api.v1.projects import router as projects_router
from procapacity.api.v1.reports import router as reports_router
from procapacity.api.v1.skills import router as skills_router
from procapacity.api.v1.team_import import router as team_import_router
from procapacity.api.v1.team_members import router as team_members_router
from procapacity.api.v1.users import router as users_router
from procapacity.api.v1.workspace import router as workspace_router

api_router = APIRouter()

# Include all routers
api_router.include_router(auth_router, prefix="/auth", tags=["Authentication"])
api_router.include_router(invites_router, prefix="/invites", tags=["Invites"])
api_router.include_router(users_router, prefix="/users", tags=["Users"])
api_router.include_router(team_members_router, prefix="/team-members", tags=["Team"])
api_router.include_router(projects_router, prefix="/projects", tags=["Projects"])
api_router.include_router(assignments_router, prefix="/assignments", tags=["Assignments"])
api_router.include_router(capacity_router, prefix="/capacity", tags=["Capacity"])
api_router.include_router(skills_router, prefix="/skills", tags=["Skills"])
api_router.include_router(team_import_router, prefix="/team-import", tags=["Team Import"])
api_router.include_router(reports_router, prefix="/reports", tags=["Reports"])
api_router.include_router(workspace_router, prefix="/workspace", tags=["Workspace"])
api_router.include_router(billing_router, prefix="/billing", tags=["Billing"])
api_router.include_router(admin_router, prefix="/admin", tags=["Admin"])
