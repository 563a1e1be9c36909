"""Bulk team import endpoints: parse an upload, validate rows, then import."""

import logging
from dataclasses import asdict

from fastapi import APIRouter, Depends, File, HTTPException, Query, UploadFile, status
from sqlalchemy.ext.asyncio import AsyncSession

from procapacity.api.deps import get_current_user, require_team_importer
from procapacity.core.csv_parser import (
    CSVParseError,
    apply_mapping,
    auto_detect_columns,
    parse_file,
)
from procapacity.db.postgres import get_db
from procapacity.models.sql.user import User
from procapacity.schemas.team_import import (
    BillingPreviewResponse,
    ImportExecuteRequest,
    ImportResultResponse,
    ImportSkill,
    ImportValidateRequest,
    ImportValidationResponse,
    ParsedRowResponse,
    ParseResponse,
    RowErrorResponse,
)
from procapacity.services.team_import import (
    TeamImportError,
    execute_import,
    preview_billing_impact,
    validate_import,
)

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post(
    "/parse",
    response_model=ParseResponse,
    summary="Parse a CSV or Excel file of team members",
)
async def parse_upload(
    file: UploadFile = File(...),
    current_user: User = Depends(require_team_importer),
) -> ParseResponse:
    """Read the upload, detect which columns hold which fields, and map the rows."""
    content = await file.read()
    file_name = file.filename or "upload.csv"

    try:
        parsed = parse_file(file_name, content)
    except CSVParseError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    mapping = auto_detect_columns(parsed.headers)
    rows = apply_mapping(parsed.rows, mapping)

    return ParseResponse(
        file_name=file_name,
        headers=parsed.headers,
        mapping=mapping,
        row_count=len(rows),
        rows=[
            ParsedRowResponse(
                row_number=row.row_number,
                name=row.name,
                email=row.email,
                role=row.role,
                title=row.title,
                skills=[
                    ImportSkill(name=s.name, proficiency=s.proficiency) for s in row.skills or []
                ],
            )
            for row in rows
        ],
    )


@router.post(
    "/validate",
    response_model=ImportValidationResponse,
    summary="Validate mapped rows and preview the billing impact",
)
async def validate_rows(
    data: ImportValidateRequest,
    current_user: User = Depends(require_team_importer),
    db: AsyncSession = Depends(get_db),
) -> ImportValidationResponse:
    validation = await validate_import(db, current_user.workspace_id, data.parsed_rows())

    return ImportValidationResponse(
        valid_count=validation.valid_count,
        error_count=validation.error_count,
        duplicate_emails=validation.duplicate_emails,
        existing_emails=validation.existing_emails,
        errors=[
            RowErrorResponse(row_number=e.row_number, field=e.field, message=e.message)
            for e in validation.errors
        ],
        billing=BillingPreviewResponse(**asdict(validation.billing)),
    )


@router.post(
    "/execute",
    response_model=ImportResultResponse,
    summary="Create users and team members from validated rows",
)
async def run_import(
    data: ImportExecuteRequest,
    current_user: User = Depends(require_team_importer),
    db: AsyncSession = Depends(get_db),
) -> ImportResultResponse:
    try:
        result = await execute_import(
            db, current_user.workspace_id, current_user, data.parsed_rows(), data.file_name
        )
    except TeamImportError as e:
        if e.import_id is not None:
            # Keep the FAILED audit record even though the request errors
            await db.commit()
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=e.message)

    return ImportResultResponse(
        import_id=result.import_id,
        imported=result.imported,
        skipped=result.skipped,
        new_seat_count=result.new_seat_count,
        errors=result.errors,
    )


@router.get(
    "/billing-preview",
    response_model=BillingPreviewResponse,
    summary="Seat and cost impact of adding users",
)
async def billing_preview(
    count: int = Query(..., ge=0, le=1000),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> BillingPreviewResponse:
    preview = await preview_billing_impact(db, current_user.workspace_id, count)
    return BillingPreviewResponse(**asdict(preview))
