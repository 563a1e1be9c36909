"""Seat accounting.

A seat is an active ``User``. Team members without a login never consume
a seat. Seat counts are always recomputed from the database, and every
operation that changes the active user count must finish with
``sync_workspace_seats`` so the stored count and the Stripe seat item
follow.
"""

import logging
from dataclasses import dataclass
from typing import Optional
from uuid import UUID

import stripe
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from procapacity.core.pricing import (
    format_price,
    get_base_price,
    get_next_plan,
    get_per_seat_price,
    get_plan,
    get_stripe_price_ids,
)
from procapacity.models.sql.user import User
from procapacity.models.sql.workspace import Workspace
from procapacity.services import stripe_client

logger = logging.getLogger(__name__)


class SeatLimitError(Exception):
    """Raised when adding a user would exceed the plan's maximum seats."""


@dataclass
class SeatCheckResult:
    allowed: bool
    requires_upgrade: bool
    current_seats: int
    max_seats: int
    requires_stripe_update: bool
    reason: Optional[str] = None
    next_plan: Optional[str] = None


@dataclass
class WorkspacePrice:
    base_price: int
    seat_price: int
    per_seat_price: int
    extra_seats: int
    total_price: int
    included_seats: int
    current_seats: int
    breakdown: str


@dataclass
class SyncResult:
    previous_seats: int
    current_seats: int
    stripe_updated: bool


def calculate_extra_seats(current_seats: int, included_seats: int) -> int:
    return max(0, current_seats - included_seats)


def upgrade_hint(plan_id: str) -> str:
    next_plan = get_next_plan(plan_id)
    if next_plan:
        return f" Upgrade to {get_plan(next_plan).name} to add more users."
    return " Contact us for custom pricing."


def check_seat(plan_id: str, current_seats: int) -> SeatCheckResult:
    """Decide whether one more seat fits on the plan."""
    plan = get_plan(plan_id)
    included = plan.seat_pricing.included_seats
    max_seats = plan.seat_pricing.max_seats
    after = current_seats + 1

    if after > max_seats:
        return SeatCheckResult(
            allowed=False,
            requires_upgrade=True,
            current_seats=current_seats,
            max_seats=max_seats,
            requires_stripe_update=False,
            reason=(
                f"You've reached the maximum of {max_seats} users on the {plan.name} plan."
                f"{upgrade_hint(plan_id)}"
            ),
            next_plan=get_next_plan(plan_id),
        )

    return SeatCheckResult(
        allowed=True,
        requires_upgrade=False,
        current_seats=current_seats,
        max_seats=max_seats,
        requires_stripe_update=after > included,
    )


def price_for(plan_id: str, period: str, current_seats: int, included_seats: int) -> WorkspacePrice:
    base = get_base_price(plan_id, period)
    per_seat = get_per_seat_price(plan_id, period)
    extra = calculate_extra_seats(current_seats, included_seats)
    seat_price = extra * per_seat
    total = base + seat_price

    label = "yr" if period == "YEARLY" else "mo"
    breakdown = f"{format_price(base)}/{label} base"
    if extra > 0:
        plural = "s" if extra != 1 else ""
        breakdown += (
            f" + {extra} extra seat{plural} × {format_price(per_seat)}"
            f" = {format_price(total)}/{label}"
        )

    return WorkspacePrice(
        base_price=base,
        seat_price=seat_price,
        per_seat_price=per_seat,
        extra_seats=extra,
        total_price=total,
        included_seats=included_seats,
        current_seats=current_seats,
        breakdown=breakdown,
    )


async def get_current_seats(db: AsyncSession, workspace_id: UUID) -> int:
    result = await db.execute(
        select(func.count())
        .select_from(User)
        .where(User.workspace_id == workspace_id, User.active.is_(True))
    )
    return result.scalar() or 0


async def get_workspace(db: AsyncSession, workspace_id: UUID, for_update: bool = False) -> Workspace:
    query = select(Workspace).where(Workspace.id == workspace_id)
    if for_update:
        query = query.with_for_update()
    result = await db.execute(query)
    return result.scalar_one()


async def can_add_seat(db: AsyncSession, workspace_id: UUID) -> SeatCheckResult:
    workspace = await get_workspace(db, workspace_id)
    return check_seat(workspace.plan, workspace.current_seats)


async def calculate_workspace_price(db: AsyncSession, workspace_id: UUID) -> WorkspacePrice:
    workspace = await get_workspace(db, workspace_id)
    return price_for(
        workspace.plan,
        workspace.billing_period,
        workspace.current_seats,
        workspace.included_seats,
    )


async def sync_workspace_seats(db: AsyncSession, workspace_id: UUID) -> SyncResult:
    """Recount active users, store the count, and reconcile the Stripe seat item.

    Stripe failures are logged and never raised.
    """
    current = await get_current_seats(db, workspace_id)
    workspace = await get_workspace(db, workspace_id)
    previous = workspace.current_seats

    workspace.current_seats = current
    await db.flush()

    stripe_updated = False
    if workspace.stripe_subscription_id:
        extra = calculate_extra_seats(current, workspace.included_seats)
        try:
            client = stripe_client.get_stripe()

            if workspace.stripe_seat_item_id:
                if extra > 0:
                    previous_extra = calculate_extra_seats(previous, workspace.included_seats)
                    proration = "always_invoice" if extra > previous_extra else "create_prorations"
                    await client.subscription_items.update_async(
                        workspace.stripe_seat_item_id,
                        params={"quantity": extra, "proration_behavior": proration},
                    )
                else:
                    await client.subscription_items.delete_async(workspace.stripe_seat_item_id)
                    workspace.stripe_seat_item_id = None
                stripe_updated = True
            elif extra > 0:
                price_ids = get_stripe_price_ids(workspace.plan, workspace.billing_period)
                item = await client.subscription_items.create_async(
                    params={
                        "subscription": workspace.stripe_subscription_id,
                        "price": price_ids["seat"],
                        "quantity": extra,
                        "proration_behavior": "always_invoice",
                    }
                )
                workspace.stripe_seat_item_id = item.id
                stripe_updated = True

            await db.flush()
        except (stripe.StripeError, stripe_client.BillingNotConfiguredError) as e:
            logger.error(f"Stripe seat sync failed for workspace {workspace_id}: {e}")

    return SyncResult(previous_seats=previous, current_seats=current, stripe_updated=stripe_updated)


async def add_user_with_seat_check(
    db: AsyncSession,
    workspace_id: UUID,
    email: str,
    name: Optional[str],
    hashed_password: str,
    role: str,
) -> User:
    """Create an active user after re-checking the seat limit under a row lock."""
    workspace = await get_workspace(db, workspace_id, for_update=True)
    active = await get_current_seats(db, workspace_id)
    plan = get_plan(workspace.plan)
    max_seats = plan.seat_pricing.max_seats

    if active + 1 > max_seats:
        raise SeatLimitError(
            f"Seat limit reached: {active}/{max_seats} on {plan.name}.{upgrade_hint(workspace.plan)}"
        )

    user = User(
        email=email,
        name=name,
        hashed_password=hashed_password,
        role=role,
        active=True,
        workspace_id=workspace_id,
    )
    db.add(user)
    workspace.current_seats = active + 1
    await db.flush()
    await db.refresh(user)

    await sync_workspace_seats(db, workspace_id)
    return user
