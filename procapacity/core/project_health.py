"""Project health scoring."""

from dataclasses import dataclass, field
from datetime import date
from typing import Any, Iterable, Literal, Optional

from procapacity.core.dates import add_weeks, start_of_week, to_date, utcnow
from procapacity.core.numbers import round_half_up

HealthStatus = Literal["healthy", "at-risk", "critical", "na"]

CLOSED_STATUSES = {"COMPLETED", "ARCHIVED"}
NEAR_BUDGET_RATIO = 0.8


@dataclass
class HealthAssignment:
    hours_per_week: float
    start_date: date
    end_date: date
    member_skills: list[str] = field(default_factory=list)


@dataclass
class ProjectHealth:
    status: HealthStatus
    reasons: list[str]


def calculate_project_health(
    project: Any,
    assignments: Iterable[HealthAssignment],
    today: Optional[date] = None,
) -> ProjectHealth:
    """Score a project as healthy, at-risk or critical.

    ``project`` needs ``status``, ``start_date``, ``total_budget_hours`` and
    ``required_skills``.
    """
    if project.status in CLOSED_STATUSES:
        return ProjectHealth(status="na", reasons=["Project is completed/archived"])

    assignments = list(assignments)
    reasons: list[str] = []
    severity: HealthStatus = "healthy"

    one_week_out = add_weeks(start_of_week(today or utcnow().date()), 1)

    if not assignments:
        if to_date(project.start_date) <= one_week_out:
            return ProjectHealth(
                status="critical", reasons=["No team members assigned, starting within 1 week"]
            )
        return ProjectHealth(status="at-risk", reasons=["No team members assigned yet"])

    budget = project.total_budget_hours
    if budget and budget > 0:
        allocated = 0.0
        for a in assignments:
            weeks = max(1, (a.end_date - a.start_date).days // 7 + 1)
            allocated += a.hours_per_week * weeks

        usage = allocated / budget
        if usage > 1:
            severity = "critical"
            reasons.append(f"Over budget: {round_half_up(allocated)}h allocated of {budget}h")
        elif usage > NEAR_BUDGET_RATIO:
            if severity == "healthy":
                severity = "at-risk"
            reasons.append(f"Near budget: {round_half_up(usage * 100)}% of hours allocated")

    required = project.required_skills or []
    if required:
        covered = {skill.lower() for a in assignments for skill in a.member_skills}
        missing = [s for s in required if s.lower() not in covered]
        if missing:
            if severity != "critical":
                severity = "at-risk"
            reasons.append(f"Missing skills: {', '.join(missing)}")

    if not reasons:
        reasons.append("All good")

    return ProjectHealth(status=severity, reasons=reasons)
