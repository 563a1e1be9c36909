"""Plans, subscription management and the Stripe webhook."""

import logging
from dataclasses import asdict

import stripe
from fastapi import APIRouter, Depends, Header, HTTPException, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from procapacity.api.deps import get_current_workspace, require_billing_manager
from procapacity.config import settings
from procapacity.core.pricing import (
    PLAN_ORDER,
    get_days_remaining,
    get_plan,
    get_yearly_savings,
    is_trial_active,
)
from procapacity.db.postgres import get_db
from procapacity.models.sql.user import User
from procapacity.models.sql.workspace import Workspace
from procapacity.schemas.billing import (
    BillingStatusResponse,
    ChangePlanRequest,
    ChangePlanResponse,
    CheckoutRequest,
    PlanLimitsResponse,
    PlanResponse,
    SeatPricingResponse,
    UrlResponse,
    WebhookResponse,
    WorkspacePriceResponse,
)
from procapacity.services import billing as billing_service
from procapacity.services.plan_limits import is_read_only
from procapacity.services.seats import calculate_workspace_price
from procapacity.services.stripe_client import BillingNotConfiguredError, construct_webhook_event

logger = logging.getLogger(__name__)

router = APIRouter()


def _billing_error(e: Exception) -> HTTPException:
    if isinstance(e, billing_service.BillingError):
        return HTTPException(status_code=e.status_code, detail=e.message)
    return HTTPException(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        detail="Billing is not configured",
    )


@router.get(
    "/plans",
    response_model=list[PlanResponse],
    summary="List plans and prices",
)
async def list_plans() -> list[PlanResponse]:
    plans = []
    for plan_id in PLAN_ORDER:
        plan = get_plan(plan_id)
        plans.append(
            PlanResponse(
                id=plan.id,
                name=plan.name,
                description=plan.description,
                best_for=plan.best_for,
                monthly=plan.monthly,
                yearly=plan.yearly,
                yearly_savings=get_yearly_savings(plan.id),
                limits=PlanLimitsResponse(**asdict(plan.limits)),
                seat_pricing=SeatPricingResponse(**asdict(plan.seat_pricing)),
                features=list(plan.features),
                highlighted=plan.highlighted,
            )
        )
    return plans


@router.get(
    "",
    response_model=BillingStatusResponse,
    summary="Subscription state and current price",
)
async def billing_status(
    workspace: Workspace = Depends(get_current_workspace),
    db: AsyncSession = Depends(get_db),
) -> BillingStatusResponse:
    price = await calculate_workspace_price(db, workspace.id)
    trial_active = is_trial_active(workspace.trial_ends_at, workspace.subscribed_at)

    return BillingStatusResponse(
        plan=workspace.plan,
        plan_name=get_plan(workspace.plan).name,
        billing_period=workspace.billing_period,
        subscribed=workspace.stripe_subscription_id is not None,
        subscribed_at=workspace.subscribed_at,
        trial_active=trial_active,
        trial_ends_at=workspace.trial_ends_at,
        trial_days_remaining=get_days_remaining(workspace.trial_ends_at) if trial_active else 0,
        read_only=is_read_only(workspace),
        has_billing_account=workspace.stripe_customer_id is not None,
        price=WorkspacePriceResponse(**asdict(price)),
    )


@router.post(
    "/checkout",
    response_model=UrlResponse,
    summary="Start a subscription checkout",
)
async def checkout(
    data: CheckoutRequest,
    current_user: User = Depends(require_billing_manager),
    workspace: Workspace = Depends(get_current_workspace),
    db: AsyncSession = Depends(get_db),
) -> UrlResponse:
    try:
        url = await billing_service.create_checkout_session(
            db, workspace, current_user, data.plan.value, data.billing_period.value
        )
    except (billing_service.BillingError, BillingNotConfiguredError) as e:
        raise _billing_error(e)
    return UrlResponse(url=url)


@router.post(
    "/change-plan",
    response_model=ChangePlanResponse,
    summary="Switch plan or billing period",
)
async def change_plan(
    data: ChangePlanRequest,
    current_user: User = Depends(require_billing_manager),
    workspace: Workspace = Depends(get_current_workspace),
    db: AsyncSession = Depends(get_db),
) -> ChangePlanResponse:
    """Upgrades are prorated and charged now. Downgrades apply at the next billing date."""
    try:
        result = await billing_service.change_plan(
            db, workspace, data.plan.value, data.billing_period.value
        )
    except (billing_service.BillingError, BillingNotConfiguredError) as e:
        raise _billing_error(e)
    return ChangePlanResponse(**result)


@router.post(
    "/portal",
    response_model=UrlResponse,
    summary="Open the customer billing portal",
)
async def portal(
    current_user: User = Depends(require_billing_manager),
    workspace: Workspace = Depends(get_current_workspace),
) -> UrlResponse:
    try:
        url = await billing_service.create_portal_session(workspace)
    except (billing_service.BillingError, BillingNotConfiguredError) as e:
        raise _billing_error(e)
    return UrlResponse(url=url)


@router.post(
    "/webhook",
    response_model=WebhookResponse,
    summary="Stripe webhook receiver",
)
async def webhook(
    request: Request,
    stripe_signature: str = Header(..., alias="stripe-signature"),
    db: AsyncSession = Depends(get_db),
) -> WebhookResponse:
    if not settings.STRIPE_WEBHOOK_SECRET:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Billing is not configured",
        )
    payload = await request.body()

    try:
        event = construct_webhook_event(payload, stripe_signature, settings.STRIPE_WEBHOOK_SECRET)
    except (ValueError, stripe.SignatureVerificationError) as e:
        logger.warning(f"Rejected webhook: {e}")
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid webhook signature",
        )

    try:
        await billing_service.handle_webhook_event(db, event)
    except Exception as e:
        logger.error(f"Webhook handler failed for {event['type']}: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Webhook handler failed",
        )

    return WebhookResponse(received=True)
