"""Stripe subscription workflows: checkout, plan changes, portal and webhooks."""

import logging
from typing import Any, Optional
from uuid import UUID

import stripe
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from procapacity.config import settings
from procapacity.core.dates import utcnow
from procapacity.core.pricing import (
    PLAN_ORDER,
    can_downgrade_to,
    get_plan,
    get_stripe_price_ids,
    plan_for_price_id,
    plan_rank,
)
from procapacity.models.sql.user import User
from procapacity.models.sql.workspace import Workspace
from procapacity.services import stripe_client
from procapacity.services.plan_limits import count_active_projects, count_active_team_members
from procapacity.services.seats import calculate_extra_seats, get_current_seats, sync_workspace_seats

logger = logging.getLogger(__name__)

BILLING_PERIODS = ("MONTHLY", "YEARLY")


class BillingError(Exception):
    """Billing rule failure with the HTTP status it maps to."""

    def __init__(self, message: str, status_code: int = 400):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


def _validate_choice(plan: str, billing_period: str) -> None:
    if plan not in PLAN_ORDER:
        raise BillingError("Invalid plan")
    if billing_period not in BILLING_PERIODS:
        raise BillingError("Invalid billing period")


async def create_checkout_session(
    db: AsyncSession,
    workspace: Workspace,
    user: User,
    plan: str,
    billing_period: str,
) -> str:
    """Create a subscription checkout session and return its URL."""
    _validate_choice(plan, billing_period)

    if workspace.stripe_subscription_id:
        raise BillingError("Already subscribed. Use change plan instead.")

    client = stripe_client.get_stripe()

    if not workspace.stripe_customer_id:
        customer = await client.customers.create_async(
            params={
                "email": user.email,
                "name": workspace.name,
                "metadata": {"workspaceId": str(workspace.id), "userId": str(user.id)},
            }
        )
        workspace.stripe_customer_id = customer.id
        await db.flush()

    price_ids = get_stripe_price_ids(plan, billing_period)
    included = get_plan(plan).seat_pricing.included_seats
    current_seats = await get_current_seats(db, workspace.id)
    extra = calculate_extra_seats(current_seats, included)

    line_items = [{"price": price_ids["base"], "quantity": 1}]
    if extra > 0:
        line_items.append({"price": price_ids["seat"], "quantity": extra})

    logger.info(
        f"Checkout for workspace {workspace.id}: plan={plan} period={billing_period} "
        f"seats={current_seats} included={included} extra={extra}"
    )

    metadata = {
        "workspaceId": str(workspace.id),
        "plan": plan,
        "billingPeriod": billing_period,
        "includedSeats": str(included),
    }
    session = await client.checkout.sessions.create_async(
        params={
            "customer": workspace.stripe_customer_id,
            "mode": "subscription",
            "payment_method_types": ["card"],
            "line_items": line_items,
            "success_url": f"{settings.APP_URL}/settings/billing?success=true",
            "cancel_url": f"{settings.APP_URL}/settings/billing?canceled=true",
            "metadata": {**metadata, "currentSeats": str(current_seats)},
            "subscription_data": {"metadata": metadata},
        }
    )
    return session.url


async def _pay_proration_invoice(client: stripe.StripeClient, subscription: Any) -> None:
    invoice_ref = subscription.get("latest_invoice")
    if not invoice_ref:
        return
    invoice_id = invoice_ref if isinstance(invoice_ref, str) else invoice_ref["id"]

    try:
        invoice = await client.invoices.retrieve_async(invoice_id)
        if invoice["status"] == "draft":
            await client.invoices.finalize_invoice_async(invoice_id)
        if invoice["status"] in ("open", "draft"):
            await client.invoices.pay_async(invoice_id)
    except stripe.StripeError as e:
        # Stripe retries unpaid invoices on its own schedule
        logger.error(f"Error paying proration invoice {invoice_id}: {e}")


async def change_plan(
    db: AsyncSession,
    workspace: Workspace,
    plan: str,
    billing_period: str,
) -> dict:
    """Switch an existing subscription to another plan and/or billing period."""
    _validate_choice(plan, billing_period)

    if not workspace.stripe_subscription_id:
        raise BillingError("No active subscription found. Please subscribe first.")

    is_upgrade = plan_rank(plan) > plan_rank(workspace.plan)
    is_downgrade = plan_rank(plan) < plan_rank(workspace.plan)
    is_period_change = workspace.billing_period != billing_period

    if is_downgrade:
        check = can_downgrade_to(
            plan,
            team_members=await count_active_team_members(db, workspace.id),
            active_projects=await count_active_projects(db, workspace.id),
        )
        if not check.can_downgrade:
            raise BillingError(check.reason)

    if is_upgrade:
        proration = "always_invoice"
    elif is_downgrade:
        proration = "none"
    elif is_period_change:
        proration = "always_invoice"
    else:
        return {"success": True, "message": "No changes needed", "change_type": None}

    price_ids = get_stripe_price_ids(plan, billing_period)
    if not price_ids["base"]:
        raise BillingError("Stripe price not configured for this plan", status_code=500)

    client = stripe_client.get_stripe()
    subscription = await client.subscriptions.retrieve_async(workspace.stripe_subscription_id)
    if subscription["status"] == "canceled":
        raise BillingError("Subscription not found or canceled")

    base_item_id = workspace.stripe_base_item_id
    if not base_item_id:
        existing_items = subscription["items"]["data"]
        if not existing_items:
            raise BillingError("Subscription item not found")
        base_item_id = existing_items[0]["id"]

    items = [{"id": base_item_id, "price": price_ids["base"]}]
    if workspace.stripe_seat_item_id and price_ids["seat"]:
        items.append({"id": workspace.stripe_seat_item_id, "price": price_ids["seat"]})

    updated = await client.subscriptions.update_async(
        workspace.stripe_subscription_id,
        params={
            "items": items,
            "metadata": {
                "workspaceId": str(workspace.id),
                "plan": plan,
                "billingPeriod": billing_period,
            },
            "proration_behavior": proration,
            "billing_cycle_anchor": "unchanged",
            "payment_behavior": "error_if_incomplete",
        },
    )

    if is_upgrade or is_period_change:
        await _pay_proration_invoice(client, updated)

    workspace.plan = plan
    workspace.billing_period = billing_period
    workspace.stripe_base_item_id = base_item_id
    workspace.included_seats = get_plan(plan).seat_pricing.included_seats
    await db.flush()
    await sync_workspace_seats(db, workspace.id)

    change_type = "upgraded" if is_upgrade else "downgraded" if is_downgrade else "updated"
    message = f"Your plan has been {change_type} to {get_plan(plan).name}."
    if is_downgrade:
        message += " The new rate will take effect at your next billing date."

    logger.info(f"Workspace {workspace.id} {change_type} to {plan} ({billing_period})")
    return {"success": True, "message": message, "change_type": change_type}


async def create_portal_session(workspace: Workspace) -> str:
    if not workspace.stripe_customer_id:
        raise BillingError("No billing account found", status_code=404)

    client = stripe_client.get_stripe()
    session = await client.billing_portal.sessions.create_async(
        params={
            "customer": workspace.stripe_customer_id,
            "return_url": f"{settings.APP_URL}/settings/billing",
        }
    )
    return session.url


# Webhooks


def _identify_items(items: list, plan: str, billing_period: str) -> tuple[Optional[str], Optional[str]]:
    price_ids = get_stripe_price_ids(plan, billing_period)
    base_id = seat_id = None
    for item in items:
        price_id = item["price"]["id"]
        if price_ids["base"] and price_id == price_ids["base"]:
            base_id = item["id"]
        elif price_ids["seat"] and price_id == price_ids["seat"]:
            seat_id = item["id"]
    return base_id, seat_id


async def _workspace_by_id(db: AsyncSession, workspace_id: str) -> Optional[Workspace]:
    try:
        key = UUID(workspace_id)
    except ValueError:
        return None
    result = await db.execute(select(Workspace).where(Workspace.id == key))
    return result.scalar_one_or_none()


async def _workspace_by_subscription(db: AsyncSession, subscription_id: str) -> Optional[Workspace]:
    result = await db.execute(
        select(Workspace).where(Workspace.stripe_subscription_id == subscription_id)
    )
    return result.scalar_one_or_none()


async def handle_checkout_completed(db: AsyncSession, session: dict) -> None:
    metadata = session.get("metadata") or {}
    workspace_id = metadata.get("workspaceId")
    plan = metadata.get("plan")
    billing_period = metadata.get("billingPeriod") or "MONTHLY"

    if not workspace_id or plan not in PLAN_ORDER:
        logger.error(f"Missing metadata in checkout session {session.get('id')}: {metadata}")
        return

    workspace = await _workspace_by_id(db, workspace_id)
    if workspace is None:
        logger.error(f"Checkout completed for unknown workspace {workspace_id}")
        return

    subscription_id = session.get("subscription")
    client = stripe_client.get_stripe()
    subscription = await client.subscriptions.retrieve_async(subscription_id)
    items = subscription["items"]["data"]

    base_id, seat_id = _identify_items(items, plan, billing_period)
    if base_id is None and items:
        base_id = items[0]["id"]

    workspace.plan = plan
    workspace.billing_period = billing_period
    workspace.stripe_subscription_id = subscription_id
    workspace.stripe_base_item_id = base_id
    workspace.stripe_seat_item_id = seat_id
    workspace.included_seats = get_plan(plan).seat_pricing.included_seats
    workspace.subscribed_at = utcnow()
    workspace.trial_ends_at = None
    await db.flush()

    await sync_workspace_seats(db, workspace.id)
    logger.info(f"Workspace {workspace.id} subscribed to {plan} ({billing_period})")


async def handle_subscription_updated(db: AsyncSession, subscription: dict) -> None:
    metadata = subscription.get("metadata") or {}
    workspace = None
    if metadata.get("workspaceId"):
        workspace = await _workspace_by_id(db, metadata["workspaceId"])
    if workspace is None:
        workspace = await _workspace_by_subscription(db, subscription["id"])
    if workspace is None:
        logger.error(f"Could not find workspace for subscription {subscription['id']}")
        return

    plan = metadata.get("plan")
    billing_period = metadata.get("billingPeriod")

    if plan not in PLAN_ORDER:
        # Changes made in the billing portal leave metadata untouched
        for item in subscription["items"]["data"]:
            match = plan_for_price_id(item["price"]["id"])
            if match and match[2] == "base":
                plan, billing_period = match[0], match[1]
                break

    if plan in PLAN_ORDER and billing_period in BILLING_PERIODS:
        base_id, seat_id = _identify_items(subscription["items"]["data"], plan, billing_period)
        if base_id:
            workspace.stripe_base_item_id = base_id
        workspace.stripe_seat_item_id = seat_id

    if plan in PLAN_ORDER:
        workspace.plan = plan
        workspace.included_seats = get_plan(plan).seat_pricing.included_seats
    if billing_period in BILLING_PERIODS:
        workspace.billing_period = billing_period

    await db.flush()
    logger.info(f"Subscription {subscription['id']} updated for workspace {workspace.id}")


async def handle_subscription_deleted(db: AsyncSession, subscription: dict) -> None:
    workspace = await _workspace_by_subscription(db, subscription["id"])
    if workspace is None:
        logger.error(f"Could not find workspace for subscription {subscription['id']}")
        return

    workspace.stripe_subscription_id = None
    workspace.stripe_base_item_id = None
    workspace.stripe_seat_item_id = None
    workspace.subscribed_at = None
    # Expired trial makes the workspace read-only
    workspace.trial_ends_at = utcnow()
    await db.flush()
    logger.info(f"Subscription canceled for workspace {workspace.id}")


async def handle_payment_failed(db: AsyncSession, invoice: dict) -> None:
    subscription_id = invoice.get("subscription") or (
        (invoice.get("parent") or {}).get("subscription_details") or {}
    ).get("subscription")
    if not subscription_id:
        logger.error(f"No subscription found for invoice {invoice.get('id')}")
        return

    workspace = await _workspace_by_subscription(db, subscription_id)
    if workspace is None:
        logger.error(f"Could not find workspace for failed payment on {subscription_id}")
        return

    logger.warning(f"Payment failed for workspace {workspace.id} (invoice {invoice.get('id')})")


WEBHOOK_HANDLERS = {
    "checkout.session.completed": handle_checkout_completed,
    "customer.subscription.updated": handle_subscription_updated,
    "customer.subscription.deleted": handle_subscription_deleted,
    "invoice.payment_failed": handle_payment_failed,
}


async def handle_webhook_event(db: AsyncSession, event: dict) -> None:
    handler = WEBHOOK_HANDLERS.get(event["type"])
    if handler is None:
        logger.info(f"Unhandled event type: {event['type']}")
        return
    await handler(db, event["data"]["object"])
