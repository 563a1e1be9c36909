"""Capacity and utilization calculations.

All functions here are pure: they work on ``MemberLoad`` snapshots so the
same code serves the capacity grid, the who's-free search, over-allocation
warnings and reports. Week boundaries are Monday..Sunday, inclusive.
"""

from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import Any, Iterable, Literal, Optional
from uuid import UUID

from procapacity.core.constants import DEFAULT_CRITICAL_THRESHOLD, DEFAULT_WARNING_THRESHOLD
from procapacity.core.dates import end_of_week, generate_weeks, start_of_week, weeks_between
from procapacity.core.numbers import round_half_up


@dataclass
class Allocation:
    """Committed hours over a date range."""

    start_date: date
    end_date: date
    hours_per_week: float
    billable: bool = True
    id: Optional[UUID] = None
    project_id: Optional[UUID] = None

    @classmethod
    def from_assignment(cls, assignment: Any) -> "Allocation":
        return cls(
            start_date=assignment.start_date,
            end_date=assignment.end_date,
            hours_per_week=assignment.hours_per_week,
            billable=assignment.billable,
            id=assignment.id,
            project_id=assignment.project_id,
        )


@dataclass
class MemberLoad:
    """A team member together with the allocations that count against them."""

    capacity_hours: float
    allocations: list[Allocation] = field(default_factory=list)
    id: Optional[UUID] = None
    name: str = ""
    role: str = ""
    skills: list[str] = field(default_factory=list)

    @classmethod
    def from_member(
        cls,
        member: Any,
        assignments: Iterable[Any],
        extra_skills: Iterable[str] = (),
    ) -> "MemberLoad":
        skills = list(member.skills or [])
        for name in extra_skills:
            if name not in skills:
                skills.append(name)
        return cls(
            capacity_hours=member.default_weekly_capacity_hours,
            allocations=[Allocation.from_assignment(a) for a in assignments],
            id=member.id,
            name=member.name,
            role=member.role,
            skills=skills,
        )


@dataclass
class WeeklyUtilization:
    week_start: date
    total_hours: float
    billable_hours: float
    non_billable_hours: float
    capacity: float
    ratio: float
    allocations: list[Allocation] = field(default_factory=list)


@dataclass
class AffectedWeek:
    week_start: date
    utilization: float
    total_hours: float


@dataclass
class OverAllocationResult:
    is_over_allocated: bool
    max_utilization: float
    affected_weeks: list[AffectedWeek]


@dataclass
class AvailableMember:
    member: MemberLoad
    free_hours: float
    utilization: float


@dataclass
class CapacityCheckResult:
    verdict: Literal["yes", "partial", "no"]
    available_members: list[AvailableMember]
    total_available_hours: float


def assignment_overlaps_week(allocation: Any, week_start: date) -> bool:
    """True if the week start falls inside the allocation, or the allocation starts in the week."""
    week_end = end_of_week(week_start)
    return (
        allocation.start_date <= week_start <= allocation.end_date
        or week_start <= allocation.start_date <= week_end
    )


def get_weekly_utilization(member: MemberLoad, weeks: Iterable[date]) -> list[WeeklyUtilization]:
    results = []
    for week in weeks:
        week_start = start_of_week(week)
        overlapping = [a for a in member.allocations if assignment_overlaps_week(a, week_start)]

        billable = sum(a.hours_per_week for a in overlapping if a.billable)
        non_billable = sum(a.hours_per_week for a in overlapping if not a.billable)
        total = billable + non_billable
        capacity = member.capacity_hours
        ratio = total / capacity if capacity > 0 else 0

        results.append(
            WeeklyUtilization(
                week_start=week_start,
                total_hours=total,
                billable_hours=billable,
                non_billable_hours=non_billable,
                capacity=capacity,
                ratio=ratio,
                allocations=overlapping,
            )
        )
    return results


def check_over_allocation(
    member: MemberLoad,
    start_date: date,
    end_date: date,
    hours_per_week: float,
    exclude_id: Optional[UUID] = None,
) -> OverAllocationResult:
    """Evaluate the weeks of a proposed assignment against the member's existing load.

    The proposed assignment is counted as billable. When ``exclude_id`` is
    given, that existing allocation is ignored (used when editing).
    """
    weeks = weeks_between(start_date, end_date)
    existing = [a for a in member.allocations if exclude_id is None or a.id != exclude_id]
    proposed = MemberLoad(
        capacity_hours=member.capacity_hours,
        allocations=existing
        + [Allocation(start_date=start_date, end_date=end_date, hours_per_week=hours_per_week)],
        id=member.id,
        name=member.name,
        role=member.role,
        skills=member.skills,
    )

    utilization = get_weekly_utilization(proposed, weeks)
    affected = [
        AffectedWeek(week_start=u.week_start, utilization=u.ratio, total_hours=u.total_hours)
        for u in utilization
        if u.ratio > 1
    ]
    max_utilization = max((u.ratio for u in utilization), default=0)

    return OverAllocationResult(
        is_over_allocated=len(affected) > 0,
        max_utilization=max_utilization,
        affected_weeks=affected,
    )


def find_available_members(
    members: Iterable[MemberLoad],
    week_start: date,
    week_end: date,
    required_hours: float,
    role: Optional[str] = None,
    skill: Optional[str] = None,
) -> list[AvailableMember]:
    """Members with at least ``required_hours`` free in every week of the range."""
    weeks = weeks_between(week_start, week_end)
    results = []

    for member in members:
        if role and member.role != role:
            continue
        if skill and skill not in member.skills:
            continue

        utilization = get_weekly_utilization(member, weeks)
        min_free = min(u.capacity - u.total_hours for u in utilization)
        avg_ratio = sum(u.ratio for u in utilization) / len(utilization)

        free_hours = max(0, min_free)
        if free_hours >= required_hours:
            results.append(AvailableMember(member=member, free_hours=free_hours, utilization=avg_ratio))

    results.sort(key=lambda r: r.free_hours, reverse=True)
    return results


def capacity_check(
    members: Iterable[MemberLoad],
    hours_per_week: float = 20,
    weeks: int = 4,
    skill: Optional[str] = None,
    today: Optional[date] = None,
) -> CapacityCheckResult:
    """Answer "can we take on N hours/week for the next W weeks?".

    Skill matching is case-insensitive. Free hours per member are the
    rounded minimum across the window.
    """
    week_dates = generate_weeks(weeks, today=today)
    needle = skill.lower() if skill else None

    available = []
    for member in members:
        if needle and not any(s.lower() == needle for s in member.skills):
            continue

        total_free = 0.0
        min_free = float("inf")
        for week in week_dates:
            week_end = week + timedelta(days=6)
            committed = sum(
                a.hours_per_week
                for a in member.allocations
                if a.start_date <= week <= a.end_date or week <= a.start_date <= week_end
            )
            free = member.capacity_hours - committed
            total_free += free
            min_free = min(min_free, free)

        avg_free = total_free / weeks if weeks else 0
        utilization = 1 - avg_free / member.capacity_hours if member.capacity_hours > 0 else 1
        free_hours = max(0, round_half_up(min_free)) if week_dates else 0

        if free_hours > 0:
            available.append(AvailableMember(member=member, free_hours=free_hours, utilization=utilization))

    available.sort(key=lambda r: r.free_hours, reverse=True)
    total = sum(m.free_hours for m in available)

    if total >= hours_per_week:
        verdict = "yes"
    elif total > 0:
        verdict = "partial"
    else:
        verdict = "no"

    return CapacityCheckResult(verdict=verdict, available_members=available, total_available_hours=total)


def utilization_level(
    ratio: float,
    warning_threshold: float = DEFAULT_WARNING_THRESHOLD,
    critical_threshold: float = DEFAULT_CRITICAL_THRESHOLD,
) -> Literal["healthy", "warning", "critical"]:
    """Bucket a utilization ratio using the workspace thresholds."""
    if ratio <= warning_threshold:
        return "healthy"
    if ratio <= critical_threshold:
        return "warning"
    return "critical"
