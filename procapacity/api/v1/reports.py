"""Utilization report endpoints (JSON, CSV and PDF)."""

from dataclasses import asdict
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from procapacity.api.deps import get_current_user
from procapacity.core.dates import add_weeks, start_of_week, utcnow
from procapacity.db.postgres import get_db
from procapacity.models.sql.user import User
from procapacity.schemas.report import UtilizationReportResponse, UtilizationRowResponse
from procapacity.services.reports import (
    UtilizationReport,
    build_utilization_report,
    pdf_filename,
    report_to_csv,
    report_to_pdf,
)

router = APIRouter()

DEFAULT_REPORT_WEEKS = 8


async def _report(
    db: AsyncSession,
    user: User,
    start_date: Optional[date],
    end_date: Optional[date],
    role: Optional[str],
    active_projects_only: bool = False,
) -> UtilizationReport:
    start = start_date or start_of_week(utcnow().date())
    end = end_date or add_weeks(start, DEFAULT_REPORT_WEEKS - 1)
    if end < start:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="End date must be after start date",
        )
    return await build_utilization_report(
        db, user.workspace_id, start, end, role=role, active_projects_only=active_projects_only
    )


def _csv_response(report: UtilizationReport) -> Response:
    filename = f"utilization-{report.start_date.isoformat()}-{report.end_date.isoformat()}.csv"
    return Response(
        content=report_to_csv(report),
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.get(
    "/utilization",
    response_model=UtilizationReportResponse,
    summary="Weekly utilization per team member",
)
async def utilization_report(
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    role: Optional[str] = None,
    export_format: Optional[str] = Query(None, alias="format"),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Returns JSON, or CSV when ``format=csv``."""
    report = await _report(db, current_user, start_date, end_date, role)
    if export_format == "csv":
        return _csv_response(report)

    return UtilizationReportResponse(
        start_date=report.start_date,
        end_date=report.end_date,
        member_count=report.member_count,
        roles=report.roles,
        rows=[UtilizationRowResponse(**asdict(row)) for row in report.rows],
    )


@router.get(
    "/utilization.csv",
    summary="Weekly utilization as CSV",
)
async def utilization_csv(
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    role: Optional[str] = None,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> Response:
    report = await _report(db, current_user, start_date, end_date, role)
    return _csv_response(report)


@router.get(
    "/pdf",
    summary="Weekly utilization as a PDF document",
)
async def utilization_pdf(
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    role: Optional[str] = None,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> Response:
    """Only assignments on active projects are counted."""
    report = await _report(db, current_user, start_date, end_date, role, active_projects_only=True)
    return Response(
        content=report_to_pdf(report),
        media_type="application/pdf",
        headers={"Content-Disposition": f'attachment; filename="{pdf_filename(report)}"'},
    )
