"""Plans, limits, seat pricing and trial helpers."""

import math
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Optional

from procapacity.config import settings
from procapacity.core.dates import as_utc, utcnow

TRIAL_DAYS = 14
DEFAULT_TRIAL_PLAN = "GROWTH"
PLAN_ORDER = ["STARTER", "GROWTH", "SCALE"]


@dataclass(frozen=True)
class PlanLimits:
    team_members: int
    active_projects: int
    owner_users: int


@dataclass(frozen=True)
class SeatPricing:
    included_seats: int
    max_seats: int
    base_monthly: int
    base_yearly: int
    per_seat_monthly: int
    per_seat_yearly: int


@dataclass(frozen=True)
class PlanInfo:
    id: str
    name: str
    description: str
    best_for: str
    monthly: int
    yearly: int
    limits: PlanLimits
    seat_pricing: SeatPricing
    features: list[str] = field(default_factory=list)
    highlighted: bool = False


PLANS: dict[str, PlanInfo] = {
    "STARTER": PlanInfo(
        id="STARTER",
        name="Starter",
        description="For small agencies getting started with capacity planning",
        best_for="Small agencies (5-10 people)",
        monthly=149,
        yearly=1490,
        limits=PlanLimits(team_members=10, active_projects=25, owner_users=1),
        seat_pricing=SeatPricing(
            included_seats=10,
            max_seats=15,
            base_monthly=149,
            base_yearly=1490,
            per_seat_monthly=15,
            per_seat_yearly=150,
        ),
        features=[
            "Up to 10 team members",
            "Up to 25 active projects/retainers",
            "Team management (roles, skills, capacity)",
            "Capacity calendar with color-coded view",
            "Over-allocation warnings",
            "Who's Free search",
            "Weekly utilization report + CSV export",
            "Email support (2-business-day response)",
        ],
    ),
    "GROWTH": PlanInfo(
        id="GROWTH",
        name="Growth",
        description="For growing agencies with multiple teams",
        best_for="Growing agencies (10-30 people)",
        monthly=299,
        yearly=2990,
        limits=PlanLimits(team_members=30, active_projects=75, owner_users=3),
        seat_pricing=SeatPricing(
            included_seats=30,
            max_seats=40,
            base_monthly=299,
            base_yearly=2990,
            per_seat_monthly=12,
            per_seat_yearly=120,
        ),
        features=[
            "Up to 30 team members",
            "Up to 75 active projects/retainers",
            "Everything in Starter, plus:",
            "Role & department filters",
            "Advanced report filters",
            "Priority email support (next-business-day)",
            "Early access to integrations",
            "Optional 30-min onboarding call",
        ],
        highlighted=True,
    ),
    "SCALE": PlanInfo(
        id="SCALE",
        name="Scale",
        description="For larger agencies who rely on capacity data",
        best_for="Large agencies (30-60 people)",
        monthly=499,
        yearly=4990,
        limits=PlanLimits(team_members=60, active_projects=150, owner_users=5),
        seat_pricing=SeatPricing(
            included_seats=60,
            max_seats=80,
            base_monthly=499,
            base_yearly=4990,
            per_seat_monthly=10,
            per_seat_yearly=100,
        ),
        features=[
            "Up to 60 team members",
            "Up to 150 active projects/retainers",
            "Everything in Growth, plus:",
            "Priority support (same-day weekdays)",
            "Dedicated onboarding setup",
            "Extended data retention (12-18 months)",
            "Custom integration requests",
            "5 owner/admin users",
        ],
    ),
}


@dataclass
class DowngradeCheck:
    can_downgrade: bool
    reason: Optional[str] = None


def get_plan(plan_id: str) -> PlanInfo:
    try:
        return PLANS[plan_id]
    except KeyError:
        raise ValueError(f"Unknown plan: {plan_id}")


def get_base_price(plan_id: str, period: str) -> int:
    pricing = get_plan(plan_id).seat_pricing
    return pricing.base_yearly if period == "YEARLY" else pricing.base_monthly


def get_per_seat_price(plan_id: str, period: str) -> int:
    pricing = get_plan(plan_id).seat_pricing
    return pricing.per_seat_yearly if period == "YEARLY" else pricing.per_seat_monthly


def get_yearly_savings(plan_id: str) -> int:
    plan = get_plan(plan_id)
    return plan.monthly * 12 - plan.yearly


def get_next_plan(plan_id: str) -> Optional[str]:
    """The next plan up, or None at the top tier."""
    index = PLAN_ORDER.index(plan_id)
    if index + 1 < len(PLAN_ORDER):
        return PLAN_ORDER[index + 1]
    return None


def plan_rank(plan_id: str) -> int:
    return PLAN_ORDER.index(plan_id)


def format_price(amount: float) -> str:
    """Format as US dollars with no cents, e.g. ``$1,490``."""
    if float(amount).is_integer():
        return f"${int(amount):,}"
    return f"${amount:,.2f}"


def get_stripe_price_ids(plan_id: str, period: str) -> dict[str, str]:
    """Base and per-seat Stripe price IDs for a plan and billing period."""
    suffix = "YEARLY" if period == "YEARLY" else "MONTHLY"
    return {
        "base": getattr(settings, f"STRIPE_{plan_id}_{suffix}_PRICE_ID"),
        "seat": getattr(settings, f"STRIPE_{plan_id}_SEAT_{suffix}_PRICE_ID"),
    }


def plan_for_price_id(price_id: str) -> Optional[tuple[str, str, str]]:
    """Reverse lookup: (plan, period, kind) where kind is ``base`` or ``seat``."""
    if not price_id:
        return None
    for plan_id in PLAN_ORDER:
        for period in ("MONTHLY", "YEARLY"):
            for kind, value in get_stripe_price_ids(plan_id, period).items():
                if value and value == price_id:
                    return plan_id, period, kind
    return None


def can_downgrade_to(target_plan: str, team_members: int, active_projects: int) -> DowngradeCheck:
    plan = get_plan(target_plan)
    limits = plan.limits

    if team_members > limits.team_members:
        return DowngradeCheck(
            can_downgrade=False,
            reason=(
                f"You have {team_members} team members, but {plan.name} allows up to "
                f"{limits.team_members}. Please archive some team members first."
            ),
        )

    if active_projects > limits.active_projects:
        return DowngradeCheck(
            can_downgrade=False,
            reason=(
                f"You have {active_projects} active projects, but {plan.name} allows up to "
                f"{limits.active_projects}. Please archive some projects first."
            ),
        )

    return DowngradeCheck(can_downgrade=True)


def get_trial_end_date(now: Optional[datetime] = None) -> datetime:
    return (now or utcnow()) + timedelta(days=TRIAL_DAYS)


def get_days_remaining(trial_ends_at: Optional[datetime], now: Optional[datetime] = None) -> int:
    if trial_ends_at is None:
        return 0
    diff = as_utc(trial_ends_at) - (now or utcnow())
    return max(0, math.ceil(diff.total_seconds() / 86400))


def is_trial_expired(trial_ends_at: Optional[datetime], now: Optional[datetime] = None) -> bool:
    if trial_ends_at is None:
        return False
    return (now or utcnow()) > as_utc(trial_ends_at)


def is_trial_active(
    trial_ends_at: Optional[datetime],
    subscribed_at: Optional[datetime],
    now: Optional[datetime] = None,
) -> bool:
    if subscribed_at is not None:
        return False
    if trial_ends_at is None:
        return False
    return not is_trial_expired(trial_ends_at, now)
