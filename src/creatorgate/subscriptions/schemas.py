"""Pydantic schemas for subscription endpoints."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel


class SubscriptionResponse(BaseModel):
    user_id: str
    tier: str
    effective_tier: str
    status: str
    is_active: bool
    expires_at: Optional[datetime] = None
