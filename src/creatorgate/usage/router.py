"""Usage API router."""

from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy.exc import SQLAlchemyError

from creatorgate.catalog.tiers import FeatureKey, Tier, limit_for
from creatorgate.common.exceptions import LedgerReadError, NotAuthenticatedError
from creatorgate.common.logging import get_logger
from creatorgate.common.security import (
    CurrentUser,
    require_api_key,
    require_super_admin,
    resolve_current_user,
)
from creatorgate.usage.ledger import IncrementOutcome
from creatorgate.usage.schemas import (
    FeatureUsageResponse,
    IncrementResponse,
    ResetResponse,
    UsageSummaryResponse,
)

logger = get_logger("usage.router")

router = APIRouter()


def _get_ledger():
    from creatorgate.deps import get_usage_ledger
    return get_usage_ledger()


def _get_subscriptions():
    from creatorgate.deps import get_subscription_service
    return get_subscription_service()


def _signed_in(user: Optional[CurrentUser]) -> CurrentUser:
    if user is None:
        raise NotAuthenticatedError()
    return user


async def _tier_for(user_id: str) -> Tier:
    try:
        return await _get_subscriptions().tier_for(user_id)
    except SQLAlchemyError as exc:
        logger.error("Subscription lookup failed", extra={"user_id": user_id})
        raise LedgerReadError("Could not read subscription") from exc


@router.get("/usage", response_model=UsageSummaryResponse, dependencies=[Depends(require_api_key)])
async def get_usage_summary(user: Optional[CurrentUser] = Depends(resolve_current_user)):
    user = _signed_in(user)
    tier = await _tier_for(user.id)
    summary = await _get_ledger().usage_summary(user.id, tier)
    return UsageSummaryResponse(
        user_id=user.id,
        tier=tier.value,
        features=[FeatureUsageResponse.from_usage(u) for u in summary],
    )


@router.get(
    "/usage/{feature}",
    response_model=FeatureUsageResponse,
    dependencies=[Depends(require_api_key)],
)
async def get_feature_usage(
    feature: str,
    user: Optional[CurrentUser] = Depends(resolve_current_user),
):
    user = _signed_in(user)
    feature = FeatureKey.parse(feature)
    tier = await _tier_for(user.id)
    ledger = _get_ledger()
    limit = limit_for(tier, feature)
    used = await ledger.get_usage(user.id, feature) if limit else 0
    return FeatureUsageResponse(
        feature=feature.value,
        limit=limit,
        used=used,
        remaining=max(0, limit - used),
        entitled=limit > 0,
    )


@router.post(
    "/usage/{feature}/increment",
    response_model=IncrementResponse,
    dependencies=[Depends(require_api_key)],
)
async def increment_usage(
    feature: str,
    user: Optional[CurrentUser] = Depends(resolve_current_user),
):
    user = _signed_in(user)
    feature = FeatureKey.parse(feature)
    tier = await _tier_for(user.id)
    ledger = _get_ledger()
    outcome = await ledger.try_increment(user.id, feature, tier)
    remaining = None
    if outcome is not IncrementOutcome.FAILED:
        # The outcome stands even when the follow-up read fails.
        try:
            remaining = await ledger.remaining(user.id, feature, tier)
        except LedgerReadError:
            logger.warning(
                "Remaining unavailable after increment",
                extra={"user_id": user.id, "feature": feature.value, "outcome": outcome.value},
            )
    return IncrementResponse(
        success=outcome is IncrementOutcome.APPLIED,
        outcome=outcome.value,
        feature=feature.value,
        remaining=remaining,
    )


@router.post(
    "/usage/{user_id}/reset",
    response_model=ResetResponse,
    dependencies=[Depends(require_super_admin)],
)
async def reset_usage(user_id: str):
    await _get_ledger().reset_all_for_user(user_id)
    return ResetResponse(user_id=user_id)
