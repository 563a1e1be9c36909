"""CSV / Excel parsing, column auto-detection and row validation for team imports."""

import csv
import io
import re
from dataclasses import dataclass, field
from pathlib import PurePath
from typing import Optional

from email_validator import EmailNotValidError, validate_email
from openpyxl import load_workbook

MAX_FILE_SIZE_BYTES = 5 * 1024 * 1024
MAX_ROWS = 200
ACCEPTED_EXTENSIONS = (".csv", ".xlsx")
PROFICIENCIES = ("BEGINNER", "PROFICIENT", "EXPERT")
DEFAULT_PROFICIENCY = "PROFICIENT"

# Lower-cased header aliases per field
COLUMN_ALIASES: dict[str, list[str]] = {
    "name": [
        "name",
        "full name",
        "fullname",
        "full_name",
        "employee name",
        "employee",
        "person",
        "display name",
        "displayname",
        "first name",
        "firstname",
        "first",
    ],
    "email": [
        "email",
        "email address",
        "emailaddress",
        "email_address",
        "e-mail",
        "mail",
        "work email",
        "workemail",
    ],
    "role": ["role", "user role", "userrole", "access", "permission", "type"],
    "title": [
        "title",
        "job title",
        "jobtitle",
        "job_title",
        "position",
        "designation",
        "department",
    ],
    "skills": [
        "skills",
        "skill",
        "specialties",
        "expertise",
        "competencies",
        "specialities",
        "capabilities",
    ],
}

SKILL_PATTERN = re.compile(r"^(.+?)\s*\((\w+)\)\s*$")


class CSVParseError(ValueError):
    """Raised when an uploaded file cannot be read as a team list."""


@dataclass
class SkillWithProficiency:
    name: str
    proficiency: str = DEFAULT_PROFICIENCY


@dataclass
class ParsedRow:
    row_number: int
    name: str
    email: str
    raw: dict[str, str] = field(default_factory=dict)
    role: Optional[str] = None
    title: Optional[str] = None
    skills: Optional[list[SkillWithProficiency]] = None


@dataclass
class RowValidationError:
    row_number: int
    field: str
    message: str


@dataclass
class ValidationResult:
    valid_rows: list[ParsedRow]
    errors: list[RowValidationError]
    duplicate_emails: list[str]
    existing_emails: list[str]


@dataclass
class ParseFileResult:
    headers: list[str]
    rows: list[dict[str, str]]


def get_file_extension(filename: str) -> str:
    return PurePath(filename).suffix.lower()


def parse_file(filename: str, content: bytes) -> ParseFileResult:
    """Parse CSV or XLSX bytes into trimmed headers and at most ``MAX_ROWS`` rows."""
    ext = get_file_extension(filename)
    if ext not in ACCEPTED_EXTENSIONS:
        raise CSVParseError(
            f'Unsupported file type "{ext}". Please upload a .csv or .xlsx file.'
        )

    if len(content) > MAX_FILE_SIZE_BYTES:
        raise CSVParseError(
            f"File is too large ({len(content) / 1024 / 1024:.1f} MB). Maximum is 5 MB."
        )

    if ext == ".csv":
        return _parse_csv(content)
    return _parse_excel(content)


def _parse_csv(content: bytes) -> ParseFileResult:
    try:
        text = content.decode("utf-8-sig")
    except UnicodeDecodeError as e:
        raise CSVParseError(f"Failed to parse CSV: {e}")

    reader = csv.reader(io.StringIO(text))
    try:
        header_row = next(reader, None)
        headers = [h.strip() for h in header_row or []]
        if not any(headers):
            raise CSVParseError("No columns detected. Is the file empty?")

        rows = []
        for record in reader:
            if not any(value.strip() for value in record):
                continue
            rows.append(
                {header: (record[i] if i < len(record) else "").strip() for i, header in enumerate(headers)}
            )
            if len(rows) >= MAX_ROWS:
                break
    except csv.Error as e:
        raise CSVParseError(f"Failed to parse CSV: {e}")

    if not rows:
        raise CSVParseError("No data rows found. The file appears to have only headers.")

    return ParseFileResult(headers=headers, rows=rows)


def _parse_excel(content: bytes) -> ParseFileResult:
    try:
        workbook = load_workbook(io.BytesIO(content), read_only=True, data_only=True)
    except Exception as e:
        raise CSVParseError(f"Failed to parse Excel file: {e}")

    try:
        if not workbook.sheetnames:
            raise CSVParseError("The Excel file has no worksheets.")

        sheet = workbook[workbook.sheetnames[0]]
        values = sheet.iter_rows(values_only=True)
        header_row = next(values, None)
        headers = [str(h).strip() if h is not None else "" for h in header_row or ()]
        if not any(headers):
            raise CSVParseError("No columns detected. Is the file empty?")

        rows = []
        for record in values:
            cells = ["" if v is None else str(v).strip() for v in record]
            if not any(cells):
                continue
            rows.append(
                {header: (cells[i] if i < len(cells) else "") for i, header in enumerate(headers)}
            )
            if len(rows) >= MAX_ROWS:
                break
    finally:
        workbook.close()

    if not rows:
        raise CSVParseError("No data rows found. The file appears to have only headers.")

    return ParseFileResult(headers=headers, rows=rows)


def auto_detect_columns(headers: list[str]) -> dict[str, Optional[str]]:
    """Map each field to the first header matching one of its aliases, or None."""
    normalised = [h.lower().strip() for h in headers]
    mapping: dict[str, Optional[str]] = {}
    for field_name, aliases in COLUMN_ALIASES.items():
        mapping[field_name] = None
        for index, header in enumerate(normalised):
            if header in aliases:
                mapping[field_name] = headers[index]
                break
    return mapping


def parse_skills_string(value: str) -> list[SkillWithProficiency]:
    """Parse ``"SEO, Copywriting (Expert)"`` into skills with proficiency."""
    skills = []
    for entry in (part.strip() for part in value.split(",")):
        if not entry:
            continue
        match = SKILL_PATTERN.match(entry)
        if match:
            proficiency = match.group(2).upper()
            if proficiency not in PROFICIENCIES:
                proficiency = DEFAULT_PROFICIENCY
            skills.append(SkillWithProficiency(name=match.group(1).strip(), proficiency=proficiency))
        else:
            skills.append(SkillWithProficiency(name=entry))
    return skills


def apply_mapping(rows: list[dict[str, str]], mapping: dict[str, Optional[str]]) -> list[ParsedRow]:
    def column(raw: dict[str, str], field_name: str) -> str:
        header = mapping.get(field_name)
        if not header:
            return ""
        return (raw.get(header) or "").strip()

    parsed = []
    for index, raw in enumerate(rows):
        role = column(raw, "role").upper()
        skills = column(raw, "skills")
        parsed.append(
            ParsedRow(
                row_number=index + 1,
                raw=raw,
                name=column(raw, "name"),
                email=column(raw, "email").lower(),
                role=role if role in ("OWNER", "MEMBER") else None,
                title=column(raw, "title") or None,
                skills=parse_skills_string(skills) if skills else None,
            )
        )
    return parsed


def is_valid_email(value: str) -> bool:
    try:
        validate_email(value, check_deliverability=False)
    except EmailNotValidError:
        return False
    return True


def validate_rows(rows: list[ParsedRow], existing_emails: list[str] | None = None) -> ValidationResult:
    """Split rows into valid rows and per-row errors.

    ``existing_emails`` are the emails already present in the workspace.
    """
    existing = {e.lower() for e in existing_emails or []}
    seen: set[str] = set()
    errors: list[RowValidationError] = []
    valid: list[ParsedRow] = []
    duplicates: list[str] = []
    matches: list[str] = []

    for row in rows:
        has_error = False

        if not row.name:
            errors.append(RowValidationError(row.row_number, "name", "Name is required"))
            has_error = True

        if not row.email:
            errors.append(RowValidationError(row.row_number, "email", "Email is required"))
            has_error = True
        elif not is_valid_email(row.email):
            errors.append(RowValidationError(row.row_number, "email", "Invalid email format"))
            has_error = True

        if row.email and row.email in seen:
            errors.append(RowValidationError(row.row_number, "email", "Duplicate email in file"))
            duplicates.append(row.email)
            has_error = True

        if row.email and row.email in existing:
            errors.append(
                RowValidationError(row.row_number, "email", "User already exists in workspace")
            )
            matches.append(row.email)
            has_error = True

        if row.email:
            seen.add(row.email)

        if not has_error:
            valid.append(row)

    return ValidationResult(
        valid_rows=valid,
        errors=errors,
        duplicate_emails=list(dict.fromkeys(duplicates)),
        existing_emails=list(dict.fromkeys(matches)),
    )
