"""Subscription API router."""

from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy.exc import SQLAlchemyError

from creatorgate.common.exceptions import LedgerReadError, NotAuthenticatedError
from creatorgate.common.logging import get_logger
from creatorgate.common.models import as_utc
from creatorgate.common.security import CurrentUser, require_api_key, resolve_current_user
from creatorgate.subscriptions.schemas import SubscriptionResponse

logger = get_logger("subscriptions.router")

router = APIRouter(dependencies=[Depends(require_api_key)])


def _get_service():
    from creatorgate.deps import get_subscription_service
    return get_subscription_service()


@router.get("/subscription", response_model=SubscriptionResponse)
async def get_subscription(user: Optional[CurrentUser] = Depends(resolve_current_user)):
    if user is None:
        raise NotAuthenticatedError()
    svc = _get_service()
    try:
        sub = await svc.get_or_create(user.id)
    except SQLAlchemyError as exc:
        logger.error("Subscription lookup failed", extra={"user_id": user.id})
        raise LedgerReadError("Could not read subscription") from exc
    effective = svc.effective_tier(sub)
    return SubscriptionResponse(
        user_id=sub.user_id,
        tier=sub.tier,
        effective_tier=effective.value,
        status=sub.status,
        is_active=sub.status == "active",
        expires_at=as_utc(sub.expires_at),
    )
