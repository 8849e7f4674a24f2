"""Billing webhook endpoint — Stripe."""

import json
import logging

from fastapi import APIRouter, Header, Request

from creatorgate.billing.schemas import WebhookResult
from creatorgate.billing.stripe_webhook import parse_stripe_event, verify_stripe_signature
from creatorgate.common.config import get_settings
from creatorgate.common.exceptions import WebhookError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/webhooks", tags=["billing"])


def _get_service():
    from creatorgate.deps import get_billing_service
    return get_billing_service()


@router.post("/stripe", response_model=WebhookResult)
async def stripe_webhook(
    request: Request,
    stripe_signature: str = Header("", alias="Stripe-Signature"),
):
    """Handle Stripe payment and cancellation events."""
    settings = get_settings()
    body = await request.body()

    if settings.stripe_webhook_secret:
        if not verify_stripe_signature(
            body, stripe_signature, settings.stripe_webhook_secret,
            tolerance=settings.stripe_signature_tolerance,
        ):
            logger.warning("Invalid Stripe webhook signature")
            raise WebhookError("Invalid signature")

    try:
        event_data = json.loads(body)
    except json.JSONDecodeError:
        raise WebhookError("Invalid JSON") from None
    if not isinstance(event_data, dict):
        raise WebhookError("Event payload must be an object")

    change = parse_stripe_event(event_data)
    if change is None:
        # Acknowledge so Stripe stops redelivering events we don't act on.
        return WebhookResult(success=True, error="Unhandled event type or missing metadata")

    return await _get_service().apply(change)
