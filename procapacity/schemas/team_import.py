"""Bulk team import schemas."""

from uuid import UUID

from pydantic import BaseModel, Field

from procapacity.core.csv_parser import ParsedRow, SkillWithProficiency
from procapacity.core.permissions import Role
from procapacity.models.sql.skill import Proficiency

MAX_IMPORT_ROWS = 200


class ImportSkill(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    proficiency: Proficiency = Proficiency.PROFICIENT


class ImportRow(BaseModel):
    """One person to import, after column mapping."""

    row_number: int | None = None
    name: str = Field(..., min_length=1, max_length=255)
    email: str = Field(..., min_length=1, max_length=255)
    role: Role = Role.MEMBER
    title: str | None = Field(None, max_length=255)
    skills: list[ImportSkill] = Field(default_factory=list)

    def to_parsed(self, index: int) -> ParsedRow:
        return ParsedRow(
            row_number=self.row_number or index + 1,
            name=self.name.strip(),
            email=self.email.strip().lower(),
            role=self.role.value,
            title=self.title,
            skills=[
                SkillWithProficiency(name=s.name.strip(), proficiency=s.proficiency.value)
                for s in self.skills
            ]
            or None,
        )


class ImportValidateRequest(BaseModel):
    rows: list[ImportRow] = Field(..., min_length=1, max_length=MAX_IMPORT_ROWS)

    def parsed_rows(self) -> list[ParsedRow]:
        return [row.to_parsed(i) for i, row in enumerate(self.rows)]


class ImportExecuteRequest(ImportValidateRequest):
    """Schema for running an import."""

    file_name: str = Field(..., min_length=1, max_length=255)


class ParsedRowResponse(BaseModel):
    row_number: int
    name: str
    email: str
    role: str | None = None
    title: str | None = None
    skills: list[ImportSkill] = Field(default_factory=list)


class ParseResponse(BaseModel):
    """Schema for an uploaded file after parsing and column detection."""

    file_name: str
    headers: list[str]
    mapping: dict[str, str | None]
    row_count: int
    rows: list[ParsedRowResponse]


class RowErrorResponse(BaseModel):
    row_number: int
    field: str
    message: str


class BillingPreviewResponse(BaseModel):
    current_seats: int
    users_to_import: int
    new_total: int
    included_seats: int
    max_seats: int
    extra_seats_before: int
    extra_seats_after: int
    per_seat_price: int
    base_price: int
    cost_before: int
    cost_after: int
    cost_change: int
    period: str
    status: str
    exceeds_by: int | None = None
    next_plan: str | None = None
    next_plan_name: str | None = None


class ImportValidationResponse(BaseModel):
    valid_count: int
    error_count: int
    duplicate_emails: list[str]
    existing_emails: list[str]
    errors: list[RowErrorResponse]
    billing: BillingPreviewResponse


class ImportEmailError(BaseModel):
    email: str
    reason: str


class ImportResultResponse(BaseModel):
    """Schema for a completed import."""

    import_id: UUID
    imported: int
    skipped: int
    new_seat_count: int
    errors: list[ImportEmailError] = Field(default_factory=list)
