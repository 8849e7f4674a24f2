"""Subscription service — the source of a user's tier."""

from datetime import datetime
from typing import Any, Callable, Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError

from creatorgate.catalog.tiers import Tier
from creatorgate.common.database import DatabaseManager
from creatorgate.common.logging import get_logger
from creatorgate.common.models import as_utc, utcnow
from creatorgate.subscriptions.models import SubscriptionModel

logger = get_logger("subscriptions")

SUBSCRIPTION_STATUSES = ("active", "canceled", "past_due", "unpaid")


class SubscriptionService:
    """Reads and writes subscription rows.

    Signup gets a free row lazily; after that only the billing webhook
    changes a user's tier.
    """

    def __init__(self, db: DatabaseManager, clock: Callable[[], datetime] = utcnow):
        self.db = db
        self.clock = clock

    async def get(self, user_id: str) -> Optional[SubscriptionModel]:
        async with self.db.get_session() as session:
            result = await session.execute(
                select(SubscriptionModel).where(SubscriptionModel.user_id == user_id)
            )
            return result.scalar_one_or_none()

    async def get_or_create(self, user_id: str) -> SubscriptionModel:
        existing = await self.get(user_id)
        if existing is not None:
            return existing
        try:
            async with self.db.get_session() as session:
                sub = SubscriptionModel(
                    user_id=user_id, tier=Tier.FREE.value, status="active",
                )
                session.add(sub)
                await session.flush()
            logger.info("Created free subscription", extra={"user_id": user_id})
            return sub
        except IntegrityError:
            # Another request created it first.
            return await self.get(user_id)

    def effective_tier(self, sub: Optional[SubscriptionModel]) -> Tier:
        """Stored tier while active and unexpired; free otherwise."""
        if sub is None or sub.status != "active":
            return Tier.FREE
        expires_at = as_utc(sub.expires_at)
        if expires_at is not None and expires_at <= self.clock():
            return Tier.FREE
        return Tier.parse(sub.tier)

    async def tier_for(self, user_id: str) -> Tier:
        return self.effective_tier(await self.get_or_create(user_id))

    async def apply_tier(
        self,
        user_id: str,
        tier: Any,
        expires_at: Optional[datetime] = None,
        payment_id: Optional[str] = None,
    ) -> tuple[SubscriptionModel, bool]:
        """Set a user's tier from a confirmed payment.

        Returns (subscription, changed). A payment id that was already applied
        leaves the row untouched and reports changed=False.
        """
        tier = Tier.parse(tier)
        await self.get_or_create(user_id)
        async with self.db.get_session() as session:
            result = await session.execute(
                select(SubscriptionModel).where(SubscriptionModel.user_id == user_id)
            )
            sub = result.scalar_one()
            if payment_id and sub.payment_id == payment_id:
                return sub, False

            previous = sub.tier
            sub.tier = tier.value
            sub.status = "active"
            sub.expires_at = expires_at
            if payment_id:
                sub.payment_id = payment_id
            await session.flush()

        logger.info(
            "Subscription tier applied",
            extra={"user_id": user_id, "from_tier": previous, "to_tier": tier.value},
        )
        return sub, True

    async def cancel(self, user_id: str) -> Optional[SubscriptionModel]:
        async with self.db.get_session() as session:
            result = await session.execute(
                select(SubscriptionModel).where(SubscriptionModel.user_id == user_id)
            )
            sub = result.scalar_one_or_none()
            if sub is None:
                return None
            sub.status = "canceled"
            await session.flush()
        logger.info("Subscription canceled", extra={"user_id": user_id})
        return sub
