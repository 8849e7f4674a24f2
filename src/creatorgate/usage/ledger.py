"""Usage ledger — per-user, per-feature monthly consumption."""

from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum
from typing import Any, Callable, Optional

from sqlalchemy.exc import SQLAlchemyError

from creatorgate.catalog.tiers import FeatureKey, Tier, limit_for
from creatorgate.common.config import CreatorgateSettings
from creatorgate.common.exceptions import LedgerReadError, LedgerWriteError
from creatorgate.common.logging import get_logger
from creatorgate.common.models import as_utc, utcnow
from creatorgate.usage.models import UsageRecordModel
from creatorgate.usage.store import UsageStore

logger = get_logger("usage.ledger")


class IncrementOutcome(str, Enum):
    APPLIED = "applied"
    DENIED = "denied"
    FAILED = "failed"


@dataclass
class FeatureUsage:
    feature: FeatureKey
    limit: int
    used: int
    remaining: int
    reset_at: Optional[datetime] = None

    @property
    def entitled(self) -> bool:
        return self.limit > 0


class UsageLedger:
    """Reads and mutates usage counters.

    Reads that fail raise LedgerReadError so the caller can deny access;
    nothing here ever substitutes "full quota" for an unreadable row.
    """

    def __init__(
        self,
        settings: CreatorgateSettings,
        store: UsageStore,
        subscriptions=None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.settings = settings
        self.store = store
        self.subscriptions = subscriptions
        self.clock = clock

    @property
    def reset_period(self) -> timedelta:
        return timedelta(days=self.settings.reset_period_days)

    def _live_count(self, record: UsageRecordModel | None, now: datetime) -> int:
        if record is None:
            return 0
        if as_utc(record.reset_at) <= now:
            return 0
        return max(0, record.count)

    async def _resolve_tier(self, user_id: str, tier: Any) -> Tier:
        if tier is not None:
            return Tier.parse(tier)
        if self.subscriptions is None:
            return Tier.FREE
        return await self.subscriptions.tier_for(user_id)

    async def get_usage(self, user_id: str, feature: Any) -> int:
        """Units consumed this period. Missing or expired rows count as 0."""
        feature = FeatureKey.parse(feature)
        try:
            record = await self.store.get(user_id, feature.value)
        except SQLAlchemyError as exc:
            logger.error(
                "Usage read failed", extra={"user_id": user_id, "feature": feature.value},
            )
            raise LedgerReadError(f"Could not read usage for {feature.value}") from exc
        return self._live_count(record, self.clock())

    async def remaining(self, user_id: str, feature: Any, tier: Any) -> int:
        feature = FeatureKey.parse(feature)
        limit = limit_for(tier, feature)
        if limit == 0:
            return 0
        used = await self.get_usage(user_id, feature)
        return max(0, limit - used)

    async def try_increment(
        self, user_id: str, feature: Any, tier: Any = None,
    ) -> IncrementOutcome:
        """Record one unit of use, reporting why nothing was recorded."""
        feature = FeatureKey.parse(feature)
        try:
            resolved = await self._resolve_tier(user_id, tier)
        except SQLAlchemyError:
            logger.exception(
                "Tier lookup failed during increment",
                extra={"user_id": user_id, "feature": feature.value},
            )
            return IncrementOutcome.FAILED

        limit = limit_for(resolved, feature)
        if limit == 0:
            logger.debug(
                "Increment refused: not entitled",
                extra={"user_id": user_id, "feature": feature.value, "tier": resolved.value},
            )
            return IncrementOutcome.DENIED

        now = self.clock()
        try:
            count = await self.store.increment_if_below(
                user_id, feature.value, limit, now, now + self.reset_period,
            )
        except SQLAlchemyError:
            logger.exception(
                "Usage increment failed",
                extra={"user_id": user_id, "feature": feature.value},
            )
            return IncrementOutcome.FAILED

        if count is None:
            logger.debug(
                "Increment refused: quota exhausted",
                extra={"user_id": user_id, "feature": feature.value, "limit": limit},
            )
            return IncrementOutcome.DENIED
        return IncrementOutcome.APPLIED

    async def increment(self, user_id: str, feature: Any, tier: Any = None) -> bool:
        return await self.try_increment(user_id, feature, tier) is IncrementOutcome.APPLIED

    async def reset_all_for_user(self, user_id: str) -> None:
        """Zero every feature for the user and start a fresh period."""
        now = self.clock()
        try:
            await self.store.reset_for_user(
                user_id, [f.value for f in FeatureKey], now + self.reset_period, now,
            )
        except SQLAlchemyError as exc:
            logger.error("Usage reset failed", extra={"user_id": user_id})
            raise LedgerWriteError(f"Could not reset usage for {user_id}") from exc
        logger.info("Usage reset", extra={"user_id": user_id})

    async def usage_summary(self, user_id: str, tier: Any) -> list[FeatureUsage]:
        try:
            records = await self.store.list_for_user(user_id)
        except SQLAlchemyError as exc:
            logger.error("Usage summary read failed", extra={"user_id": user_id})
            raise LedgerReadError("Could not read usage") from exc

        now = self.clock()
        by_feature = {r.feature: r for r in records}
        summary = []
        for feature in FeatureKey:
            record = by_feature.get(feature.value)
            limit = limit_for(tier, feature)
            used = self._live_count(record, now)
            reset_at = as_utc(record.reset_at) if record is not None else None
            if reset_at is not None and reset_at <= now:
                reset_at = None
            summary.append(FeatureUsage(
                feature=feature,
                limit=limit,
                used=used,
                remaining=max(0, limit - used),
                reset_at=reset_at,
            ))
        return summary
