"""Utilization reports: weekly rows, CSV export and PDF export."""

import csv
import io
from dataclasses import asdict, dataclass
from datetime import date
from typing import Optional
from uuid import UUID

from reportlab.lib import colors
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.lib.units import mm
from reportlab.pdfgen import canvas
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from procapacity.core.capacity import MemberLoad, get_weekly_utilization
from procapacity.core.dates import end_of_week, start_of_week, utcnow, weeks_between
from procapacity.core.numbers import round_half_up
from procapacity.models.sql.assignment import Assignment
from procapacity.models.sql.project import Project
from procapacity.models.sql.team_member import TeamMember

BRAND_GREEN = colors.HexColor("#10b981")
ROW_ALT = colors.HexColor("#f8fafc")

CSV_COLUMNS = [
    "name",
    "role",
    "week_start",
    "billable_hours",
    "non_billable_hours",
    "total_hours",
    "capacity",
    "utilization_percent",
]


@dataclass
class UtilizationRow:
    team_member_id: UUID
    name: str
    role: str
    week_start: date
    billable_hours: float
    non_billable_hours: float
    total_hours: float
    capacity: float
    utilization_percent: float


@dataclass
class UtilizationReport:
    start_date: date
    end_date: date
    rows: list[UtilizationRow]
    roles: list[str]
    member_count: int


async def build_utilization_report(
    db: AsyncSession,
    workspace_id: UUID,
    start_date: date,
    end_date: date,
    role: Optional[str] = None,
    active_projects_only: bool = False,
) -> UtilizationReport:
    """One row per active team member per week between the two dates."""
    first_week = start_of_week(start_date)
    last_week = start_of_week(end_date)
    weeks = weeks_between(first_week, last_week)

    query = select(TeamMember).where(
        TeamMember.workspace_id == workspace_id, TeamMember.active.is_(True)
    )
    if role and role != "all":
        query = query.where(TeamMember.role == role)
    members = (await db.execute(query.order_by(TeamMember.name))).scalars().all()

    assignment_query = select(Assignment).where(
        Assignment.workspace_id == workspace_id,
        Assignment.start_date <= end_of_week(last_week),
        Assignment.end_date >= first_week,
    )
    if active_projects_only:
        assignment_query = assignment_query.join(Project, Project.id == Assignment.project_id).where(
            Project.active.is_(True)
        )
    assignments = (await db.execute(assignment_query)).scalars().all()

    by_member: dict[UUID, list[Assignment]] = {}
    for assignment in assignments:
        by_member.setdefault(assignment.team_member_id, []).append(assignment)

    rows = []
    for member in members:
        load = MemberLoad.from_member(member, by_member.get(member.id, []))
        for week in get_weekly_utilization(load, weeks):
            rows.append(
                UtilizationRow(
                    team_member_id=member.id,
                    name=member.name,
                    role=member.role,
                    week_start=week.week_start,
                    billable_hours=week.billable_hours,
                    non_billable_hours=week.non_billable_hours,
                    total_hours=week.total_hours,
                    capacity=week.capacity,
                    utilization_percent=week.ratio * 100,
                )
            )

    role_result = await db.execute(
        select(TeamMember.role)
        .where(TeamMember.workspace_id == workspace_id, TeamMember.active.is_(True))
        .distinct()
        .order_by(TeamMember.role)
    )

    return UtilizationReport(
        start_date=first_week,
        end_date=last_week,
        rows=rows,
        roles=list(role_result.scalars().all()),
        member_count=len(members),
    )


def report_to_csv(report: UtilizationReport) -> str:
    buffer = io.StringIO()
    writer = csv.DictWriter(buffer, fieldnames=CSV_COLUMNS, extrasaction="ignore")
    writer.writeheader()
    for row in report.rows:
        data = asdict(row)
        data["week_start"] = row.week_start.isoformat()
        data["utilization_percent"] = round(row.utilization_percent, 1)
        writer.writerow(data)
    return buffer.getvalue()


def pdf_filename(report: UtilizationReport) -> str:
    return f"procapacity-report-{report.start_date.isoformat()}-{report.end_date.isoformat()}.pdf"


def _hours(value: float) -> str:
    return f"{value:g}h"


class NumberedCanvas(canvas.Canvas):
    """Canvas that stamps "Page i of n" once the total page count is known."""

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self._saved_page_states: list[dict] = []

    def showPage(self):
        self._saved_page_states.append(dict(self.__dict__))
        self._startPage()

    def save(self):
        total = len(self._saved_page_states)
        for state in self._saved_page_states:
            self.__dict__.update(state)
            self._draw_footer(total)
            super().showPage()
        super().save()

    def _draw_footer(self, total: int) -> None:
        self.setFont("Helvetica", 7)
        self.setFillColor(colors.HexColor("#969696"))
        self.drawString(14 * mm, 10 * mm, f"ProCapacity | Page {self._pageNumber} of {total}")


def report_to_pdf(report: UtilizationReport) -> bytes:
    styles = getSampleStyleSheet()
    title_style = ParagraphStyle(
        "ReportTitle", parent=styles["Title"], fontSize=18, alignment=0, spaceAfter=6
    )
    meta_style = ParagraphStyle(
        "ReportMeta", parent=styles["Normal"], fontSize=10, textColor=colors.HexColor("#646464")
    )
    heading_style = ParagraphStyle("ReportHeading", parent=styles["Heading3"], fontSize=11)
    summary_style = ParagraphStyle(
        "ReportSummary", parent=styles["Normal"], fontSize=9, textColor=colors.HexColor("#3c3c3c")
    )

    rows = report.rows
    avg_util = round_half_up(sum(r.utilization_percent for r in rows) / len(rows)) if rows else 0
    total_billable = round_half_up(sum(r.billable_hours for r in rows))

    story = [
        Paragraph("ProCapacity - Utilization Report", title_style),
        Paragraph(
            f"{report.start_date:%b %d, %Y} - {report.end_date:%b %d, %Y}", meta_style
        ),
        Paragraph(f"Generated: {utcnow():%b %d, %Y %H:%M} UTC", meta_style),
        Spacer(1, 6 * mm),
        Paragraph("Summary", heading_style),
        Paragraph(
            f"Team Members: {report.member_count} &nbsp;&nbsp;&nbsp; "
            f"Average Utilization: {avg_util}% &nbsp;&nbsp;&nbsp; "
            f"Total Billable Hours: {total_billable}h",
            summary_style,
        ),
        Spacer(1, 4 * mm),
    ]

    data = [["Name", "Role", "Week", "Billable", "Non-Billable", "Total", "Util %"]]
    for row in rows:
        data.append(
            [
                row.name,
                row.role,
                f"{row.week_start:%b %d}",
                _hours(row.billable_hours),
                _hours(row.non_billable_hours),
                _hours(row.total_hours),
                f"{round_half_up(row.utilization_percent)}%",
            ]
        )

    table = Table(
        data,
        colWidths=[35 * mm, 30 * mm, 25 * mm, 22 * mm, 22 * mm, 20 * mm, 20 * mm],
        repeatRows=1,
    )
    table.setStyle(
        TableStyle(
            [
                ("BACKGROUND", (0, 0), (-1, 0), BRAND_GREEN),
                ("TEXTCOLOR", (0, 0), (-1, 0), colors.white),
                ("FONTNAME", (0, 0), (-1, 0), "Helvetica-Bold"),
                ("FONTSIZE", (0, 0), (-1, -1), 8),
                ("ALIGN", (3, 0), (-1, -1), "RIGHT"),
                ("ROWBACKGROUNDS", (0, 1), (-1, -1), [colors.white, ROW_ALT]),
                ("BOTTOMPADDING", (0, 0), (-1, -1), 4),
            ]
        )
    )
    story.append(table)

    buffer = io.BytesIO()
    doc = SimpleDocTemplate(
        buffer,
        pagesize=A4,
        leftMargin=14 * mm,
        rightMargin=14 * mm,
        topMargin=14 * mm,
        bottomMargin=18 * mm,
        title="ProCapacity - Utilization Report",
    )
    doc.build(story, canvasmaker=NumberedCanvas)
    return buffer.getvalue()
