"""Billing service — applies confirmed payments to subscriptions and usage."""

from datetime import timedelta

from creatorgate.billing.schemas import TierChange, WebhookResult
from creatorgate.common.config import CreatorgateSettings
from creatorgate.common.logging import get_logger

logger = get_logger("billing")


class BillingService:
    """Turns a billing event into a tier write and a usage reset.

    A renewal or upgrade always starts a fresh quota period. Redelivered
    events (same payment id) are acknowledged without resetting again.
    """

    def __init__(self, settings: CreatorgateSettings, subscriptions, ledger):
        self.settings = settings
        self.subscriptions = subscriptions
        self.ledger = ledger

    async def apply(self, change: TierChange) -> WebhookResult:
        if change.action == "cancel":
            sub = await self.subscriptions.cancel(change.user_id)
            return WebhookResult(
                success=sub is not None,
                action="cancel",
                user_id=change.user_id,
                tier=sub.tier if sub else None,
                error=None if sub else "Unknown subscription",
            )

        existing = await self.subscriptions.get(change.user_id)
        if existing is not None and change.payment_id and existing.payment_id == change.payment_id:
            logger.info(
                "Duplicate billing event ignored",
                extra={"user_id": change.user_id, "payment_id": change.payment_id},
            )
            return WebhookResult(
                success=True, action="apply", user_id=change.user_id,
                tier=existing.tier, duplicate=True,
            )

        # Reset before recording the payment id: a failed reset leaves the
        # event unapplied so the provider's retry runs it again.
        await self.ledger.reset_all_for_user(change.user_id)

        expires_at = change.expires_at or (
            self.subscriptions.clock() + timedelta(days=self.settings.reset_period_days)
        )
        sub, _ = await self.subscriptions.apply_tier(
            change.user_id, change.tier,
            expires_at=expires_at,
            payment_id=change.payment_id or None,
        )
        logger.info(
            "Billing event applied",
            extra={
                "user_id": change.user_id,
                "tier": change.tier,
                "event_type": change.event_type,
            },
        )
        return WebhookResult(
            success=True, action="apply", user_id=change.user_id,
            tier=sub.tier, usage_reset=True,
        )
