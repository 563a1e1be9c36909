"""Maintenance endpoints. Disabled in production."""

import logging

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from procapacity.api.deps import require_workspace_manager
from procapacity.config import settings
from procapacity.core.pricing import get_plan
from procapacity.db.postgres import get_db
from procapacity.models.sql.user import User
from procapacity.models.sql.workspace import Workspace
from procapacity.schemas.admin import BackfillSeatsResponse, WorkspaceSeatBackfill
from procapacity.services.seats import sync_workspace_seats

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post(
    "/backfill-seats",
    response_model=BackfillSeatsResponse,
    summary="Recount seats and included seats for every workspace",
)
async def backfill_seats(
    current_user: User = Depends(require_workspace_manager),
    db: AsyncSession = Depends(get_db),
) -> BackfillSeatsResponse:
    if settings.is_production:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="This endpoint is disabled in production",
        )

    result = await db.execute(select(Workspace.id, Workspace.plan).order_by(Workspace.created_at))
    results = []
    for workspace_id, plan in result.all():
        included = get_plan(plan).seat_pricing.included_seats
        workspace = await db.get(Workspace, workspace_id)
        workspace.included_seats = included

        sync = await sync_workspace_seats(db, workspace_id)
        results.append(
            WorkspaceSeatBackfill(
                workspace_id=workspace_id,
                previous_seats=sync.previous_seats,
                current_seats=sync.current_seats,
                included_seats=included,
            )
        )

    updated = sum(1 for r in results if r.previous_seats != r.current_seats)
    logger.info(f"Seat backfill by {current_user.id}: {updated}/{len(results)} workspaces changed")
    return BackfillSeatsResponse(workspaces=len(results), updated=updated, results=results)
