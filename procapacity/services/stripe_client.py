"""Lazily constructed Stripe client."""

import logging
from typing import Optional

import stripe

from procapacity.config import settings

logger = logging.getLogger(__name__)

_client: Optional[stripe.StripeClient] = None


class BillingNotConfiguredError(RuntimeError):
    """Raised when a billing operation runs without STRIPE_SECRET_KEY."""


def get_stripe() -> stripe.StripeClient:
    """Return the shared Stripe client, creating it on first use."""
    global _client

    if _client is None:
        if not settings.STRIPE_SECRET_KEY:
            raise BillingNotConfiguredError(
                "Missing STRIPE_SECRET_KEY environment variable. "
                "Please set it to enable billing features."
            )
        _client = stripe.StripeClient(
            settings.STRIPE_SECRET_KEY,
            http_client=stripe.HTTPXClient(),
        )
        logger.info("Stripe client initialized")
    return _client


def construct_webhook_event(payload: bytes, signature: str, secret: str) -> stripe.Event:
    """Verify the signature header and parse the event payload."""
    return stripe.Webhook.construct_event(payload, signature, secret)
