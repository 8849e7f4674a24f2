"""Stripe webhook verification and event parsing."""

import hashlib
import hmac
import logging
import time
from datetime import datetime, timezone
from typing import Any, Optional

from creatorgate.billing.schemas import TierChange
from creatorgate.catalog.tiers import Tier

logger = logging.getLogger(__name__)

HANDLED_EVENTS = (
    "checkout.session.completed",
    "invoice.paid",
    "customer.subscription.deleted",
)


def verify_stripe_signature(
    payload: bytes,
    signature_header: str,
    webhook_secret: str,
    tolerance: Optional[int] = None,
    now: Optional[float] = None,
) -> bool:
    """Verify Stripe webhook signature (v1 scheme).

    Stripe sends: t=<timestamp>,v1=<signature>[,v1=<signature>...]
    With ``tolerance`` set, timestamps older than that many seconds fail.
    """
    if not signature_header or not webhook_secret:
        return False

    timestamp = ""
    signatures = []
    for item in signature_header.split(","):
        key, _, value = item.partition("=")
        key = key.strip()
        if key == "t":
            timestamp = value.strip()
        elif key == "v1":
            signatures.append(value.strip())
    if not timestamp or not signatures:
        return False

    if tolerance is not None:
        try:
            age = (now if now is not None else time.time()) - int(timestamp)
        except ValueError:
            return False
        if age > tolerance:
            logger.warning("Stripe webhook timestamp outside tolerance (%ss)", int(age))
            return False

    signed_payload = f"{timestamp}.".encode() + payload
    computed = hmac.new(
        webhook_secret.encode(),
        signed_payload,
        hashlib.sha256,
    ).hexdigest()

    return any(hmac.compare_digest(computed, sig) for sig in signatures)


def _user_id(obj: dict[str, Any], metadata: dict[str, Any]) -> str:
    return obj.get("client_reference_id") or metadata.get("user_id") or ""


def _timestamp(value: Any) -> Optional[datetime]:
    if not value:
        return None
    try:
        return datetime.fromtimestamp(int(value), tz=timezone.utc)
    except (TypeError, ValueError, OverflowError):
        return None


def _paid_tier(metadata: dict[str, Any]) -> Optional[str]:
    raw = (metadata.get("tier") or "").strip().lower()
    if raw not in {t.value for t in Tier} or raw == Tier.FREE.value:
        return None
    return raw


def parse_stripe_event(event_data: dict[str, Any]) -> Optional[TierChange]:
    """Extract a tier change from a Stripe event, or None if it carries none.

    Expected metadata (checkout session, or the subscription behind an invoice):
    - user_id: the account to upgrade (or client_reference_id on the session)
    - tier: basic, pro or creator
    """
    event_type = event_data.get("type", "")
    if event_type not in HANDLED_EVENTS:
        logger.debug("Ignoring Stripe event type: %s", event_type)
        return None

    obj = event_data.get("data", {}).get("object", {}) or {}

    if event_type == "customer.subscription.deleted":
        metadata = obj.get("metadata") or {}
        user_id = metadata.get("user_id", "")
        if not user_id:
            logger.warning("Stripe subscription deletion missing user_id metadata")
            return None
        return TierChange(
            user_id=user_id,
            action="cancel",
            payment_id=obj.get("id", ""),
            event_type=event_type,
        )

    if event_type == "checkout.session.completed":
        metadata = obj.get("metadata") or {}
        if obj.get("payment_status") not in (None, "paid", "no_payment_required"):
            logger.info("Stripe checkout not paid yet: %s", obj.get("payment_status"))
            return None
        expires_at = None
    else:
        metadata = (obj.get("subscription_details") or {}).get("metadata") or obj.get("metadata") or {}
        lines = (obj.get("lines") or {}).get("data") or []
        expires_at = _timestamp(((lines[0].get("period") or {}).get("end")) if lines else None)

    user_id = _user_id(obj, metadata)
    tier = _paid_tier(metadata)
    if not user_id or not tier:
        logger.warning("Stripe %s missing user_id/tier in metadata", event_type)
        return None

    return TierChange(
        user_id=user_id,
        action="apply",
        tier=tier,
        expires_at=expires_at,
        payment_id=obj.get("id", ""),
        event_type=event_type,
    )
