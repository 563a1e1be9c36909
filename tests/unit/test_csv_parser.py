"""Unit tests for team file parsing and row validation."""

import io

import pytest
from openpyxl import Workbook

from procapacity.core.csv_parser import (
    MAX_ROWS,
    CSVParseError,
    ParsedRow,
    apply_mapping,
    auto_detect_columns,
    parse_file,
    parse_skills_string,
    validate_rows,
)


def xlsx_bytes(rows: list[list]) -> bytes:
    workbook = Workbook()
    sheet = workbook.active
    for row in rows:
        sheet.append(row)
    buffer = io.BytesIO()
    workbook.save(buffer)
    return buffer.getvalue()


class TestParseFile:
    """Tests for reading CSV and Excel uploads."""

    def test_parse_csv_trims_and_skips_blank_lines(self):
        content = b"\xef\xbb\xbf Name , Email\nAlex,alex@example.com\n,\nBea, bea@example.com \n"

        result = parse_file("team.CSV", content)

        assert result.headers == ["Name", "Email"]
        assert result.rows == [
            {"Name": "Alex", "Email": "alex@example.com"},
            {"Name": "Bea", "Email": "bea@example.com"},
        ]

    def test_parse_csv_caps_rows(self):
        lines = ["name,email"] + [f"P{i},p{i}@example.com" for i in range(MAX_ROWS + 20)]

        result = parse_file("team.csv", "\n".join(lines).encode())

        assert len(result.rows) == MAX_ROWS

    def test_parse_xlsx(self):
        content = xlsx_bytes([["Full Name", "Email"], [None, None], ["Alex", "alex@example.com"]])

        result = parse_file("team.xlsx", content)

        assert result.headers == ["Full Name", "Email"]
        assert len(result.rows) == 1
        assert result.rows[0]["Full Name"] == "Alex"

    def test_rejects_unsupported_extension(self):
        with pytest.raises(CSVParseError, match="Unsupported file type"):
            parse_file("team.xls", b"data")

    def test_rejects_large_files(self):
        with pytest.raises(CSVParseError, match="too large"):
            parse_file("team.csv", b"a" * (5 * 1024 * 1024 + 1))

    def test_rejects_empty_file(self):
        with pytest.raises(CSVParseError, match="No columns detected"):
            parse_file("team.csv", b"")

    def test_rejects_corrupt_xlsx(self):
        with pytest.raises(CSVParseError, match="Failed to parse Excel file"):
            parse_file("team.xlsx", b"not a zip file")


class TestMapping:
    """Tests for header detection and row mapping."""

    def test_auto_detect_columns(self):
        mapping = auto_detect_columns(["Employee Name", "E-Mail", "Position", "Access", "Notes"])

        assert mapping == {
            "name": "Employee Name",
            "email": "E-Mail",
            "role": "Access",
            "title": "Position",
            "skills": None,
        }

    def test_parse_skills_string(self):
        skills = parse_skills_string("SEO, Copywriting (Expert), Figma (guru), ")

        assert [(s.name, s.proficiency) for s in skills] == [
            ("SEO", "PROFICIENT"),
            ("Copywriting", "EXPERT"),
            ("Figma", "PROFICIENT"),
        ]

    def test_apply_mapping(self):
        mapping = {"name": "Name", "email": "Email", "role": "Role", "title": None, "skills": None}
        rows = [
            {"Name": "Alex", "Email": "ALEX@Example.com", "Role": "owner"},
            {"Name": "Bea", "Email": "bea@example.com", "Role": "admin"},
        ]

        parsed = apply_mapping(rows, mapping)

        assert parsed[0].email == "alex@example.com"
        assert parsed[0].role == "OWNER"
        assert parsed[1].role is None
        assert parsed[1].row_number == 2
        assert parsed[1].skills is None


class TestValidateRows:
    def test_reports_each_problem(self):
        rows = [
            ParsedRow(row_number=1, name="Alex", email="alex@example.com"),
            ParsedRow(row_number=2, name="", email="bad-email"),
            ParsedRow(row_number=3, name="Alex Again", email="alex@example.com"),
            ParsedRow(row_number=4, name="Owner", email="owner@example.com"),
        ]

        result = validate_rows(rows, ["Owner@Example.com"])

        assert [r.row_number for r in result.valid_rows] == [1]
        assert [(e.row_number, e.field, e.message) for e in result.errors] == [
            (2, "name", "Name is required"),
            (2, "email", "Invalid email format"),
            (3, "email", "Duplicate email in file"),
            (4, "email", "User already exists in workspace"),
        ]
        assert result.duplicate_emails == ["alex@example.com"]
        assert result.existing_emails == ["owner@example.com"]
