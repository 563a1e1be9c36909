"""Billing and subscription schemas."""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel

from procapacity.models.sql.workspace import BillingPeriod, Plan


class PlanLimitsResponse(BaseModel):
    team_members: int
    active_projects: int
    owner_users: int


class SeatPricingResponse(BaseModel):
    included_seats: int
    max_seats: int
    per_seat_monthly: int
    per_seat_yearly: int


class PlanResponse(BaseModel):
    """Schema for a plan on the pricing page."""

    id: str
    name: str
    description: str
    best_for: str
    monthly: int
    yearly: int
    yearly_savings: int
    limits: PlanLimitsResponse
    seat_pricing: SeatPricingResponse
    features: list[str]
    highlighted: bool


class WorkspacePriceResponse(BaseModel):
    base_price: int
    seat_price: int
    per_seat_price: int
    extra_seats: int
    total_price: int
    included_seats: int
    current_seats: int
    breakdown: str


class BillingStatusResponse(BaseModel):
    """Schema for the workspace's subscription state."""

    plan: str
    plan_name: str
    billing_period: str
    subscribed: bool
    subscribed_at: datetime | None = None
    trial_active: bool
    trial_ends_at: datetime | None = None
    trial_days_remaining: int
    read_only: bool
    has_billing_account: bool
    price: WorkspacePriceResponse


class CheckoutRequest(BaseModel):
    plan: Plan
    billing_period: BillingPeriod = BillingPeriod.MONTHLY


class ChangePlanRequest(BaseModel):
    plan: Plan
    billing_period: BillingPeriod


class ChangePlanResponse(BaseModel):
    success: bool
    message: str
    change_type: Literal["upgraded", "downgraded", "updated"] | None = None


class UrlResponse(BaseModel):
    url: str


class WebhookResponse(BaseModel):
    received: bool = True
