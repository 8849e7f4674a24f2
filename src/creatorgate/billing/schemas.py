"""Pydantic schemas for billing webhook payloads."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class TierChange(BaseModel):
    """Internal representation of a billing event that changes a subscription."""

    user_id: str = Field(..., min_length=1)
    action: str = Field(default="apply", pattern="^(apply|cancel)$")
    tier: str = Field(default="free", pattern="^(free|basic|pro|creator)$")
    expires_at: Optional[datetime] = None
    payment_id: str = ""
    event_type: str = ""


class WebhookResult(BaseModel):
    """Result of handling one webhook delivery."""

    success: bool
    action: Optional[str] = None
    user_id: Optional[str] = None
    tier: Optional[str] = None
    usage_reset: bool = False
    duplicate: bool = False
    error: Optional[str] = None
